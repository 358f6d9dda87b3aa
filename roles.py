"""
Roles and the capability table.

Every permission question in the app is answered by one lookup into
`ROLE_CAPABILITIES`; callers never compare role names themselves.
"""

from __future__ import annotations

from enum import Enum
from typing import Dict, FrozenSet, Optional, Union


class Role(str, Enum):
    KETUA_MEDIA = "ketua_media"    # chief, sole final approver
    SETIAUSAHA = "setiausaha"      # secretary
    JQC = "jqc"
    KETUA_VIDEO = "ketua_video"    # video unit lead
    KETUA_POSTER = "ketua_poster"  # poster unit lead
    MEMBER = "member"


class Capability(str, Enum):
    VIEW_ALL_SUBMISSIONS = "view_all_submissions"
    VIEW_VIDEO_SUBMISSIONS = "view_video_submissions"
    VIEW_POSTER_SUBMISSIONS = "view_poster_submissions"
    APPROVE_SUBMISSION = "approve_submission"
    SUPPORT_SUBMISSION = "support_submission"
    APPROVE_LEAVE = "approve_leave"
    SUPPORT_LEAVE = "support_leave"
    ADMIN = "admin"


# Building blocks shared by several roles
_OVERSIGHT = frozenset({
    Capability.VIEW_ALL_SUBMISSIONS,
    Capability.VIEW_VIDEO_SUBMISSIONS,
    Capability.VIEW_POSTER_SUBMISSIONS,
    Capability.ADMIN,
})
_SUPPORTER = frozenset({Capability.SUPPORT_SUBMISSION, Capability.SUPPORT_LEAVE})

ROLE_CAPABILITIES: Dict[Role, FrozenSet[Capability]] = {
    Role.KETUA_MEDIA: _OVERSIGHT | {Capability.APPROVE_SUBMISSION, Capability.APPROVE_LEAVE},
    Role.SETIAUSAHA: _OVERSIGHT | _SUPPORTER,
    Role.JQC: _OVERSIGHT | _SUPPORTER,
    Role.KETUA_VIDEO: _SUPPORTER | {Capability.VIEW_VIDEO_SUBMISSIONS},
    Role.KETUA_POSTER: _SUPPORTER | {Capability.VIEW_POSTER_SUBMISSIONS},
    Role.MEMBER: frozenset(),
}


def has_capability(role: Optional[Union[Role, str]], capability: Capability) -> bool:
    """True if `role` grants `capability`. Unknown or missing roles get nothing."""
    if role is None:
        return False
    try:
        role = Role(role)
    except ValueError:
        return False
    return capability in ROLE_CAPABILITIES.get(role, frozenset())
