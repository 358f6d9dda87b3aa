"""
Identity & authorization.

`Identity` answers two questions for the rest of the app: who is acting now,
and what may they do. It owns the current `Session` and persists it through
an injected key-value store (see storage.py).

Capability checks are authoritative. The workflow engine calls `require()`
before every mutation, so hiding a button in the client is never the only
guard.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

from errors import Forbidden, InvalidCredentials, InvalidInput, MissingInput, Unauthenticated
from roles import Capability, Role, has_capability
from storage import CURRENT_USER_KEY, LOGGED_IN_KEY
from users_data import USERS

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Session:
    """Public fields of the logged-in user. Never carries the password."""
    username: str
    full_name: str
    role: Role
    role_name: str
    profile_pic: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "username": self.username,
            "fullName": self.full_name,
            "role": self.role.value,
            "roleName": self.role_name,
            "profilePic": self.profile_pic,
        }

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "Session":
        """Build from the stored shape; raises KeyError/ValueError if malformed."""
        return cls(
            username=d["username"],
            full_name=d["fullName"],
            role=Role(d["role"]),
            role_name=d.get("roleName", ""),
            profile_pic=d.get("profilePic", ""),
        )

    @classmethod
    def from_user(cls, user: Dict[str, Any]) -> "Session":
        return cls.from_dict({k: v for k, v in user.items() if k != "password"})


class Identity:
    def __init__(self, store, users: Optional[Dict[str, Dict[str, Any]]] = None):
        self._store = store
        self._users = USERS if users is None else users
        self.session: Optional[Session] = None

    # -------------------------------------------------------------------------
    # Session lifecycle
    # -------------------------------------------------------------------------
    def authenticate(self, username: Optional[str], password: Optional[str]) -> Session:
        """
        Log in against the user table.

        - Username is stripped; the password is compared as typed.
        - Raises MissingInput if either field is empty, InvalidInput if either
          is not a string, and InvalidCredentials if the user is unknown or
          the password does not match.
        - On success the session is persisted and returned.
        """
        if not all(v is None or isinstance(v, str) for v in (username, password)):
            raise InvalidInput("Username and password must be text.")
        username = (username or "").strip()
        password = password or ""
        if not username or not password:
            raise MissingInput("Please enter username and password")

        user = self._users.get(username)
        if not user or user.get("password") != password:
            logger.warning("Failed login for %r", username)
            raise InvalidCredentials()

        self.session = Session.from_user(user)
        self._store.save(CURRENT_USER_KEY, self.session.to_dict())
        self._store.save(LOGGED_IN_KEY, "true")
        logger.info("User %s logged in as %s", username, self.session.role.value)
        return self.session

    def restore_session(self) -> Optional[Session]:
        """Rehydrate the session from storage. Malformed state counts as logged out."""
        payload = self._store.load(CURRENT_USER_KEY)
        logged_in = self._store.load(LOGGED_IN_KEY)
        if not payload or not logged_in:
            self.session = None
            return None
        try:
            self.session = Session.from_dict(payload)
        except (KeyError, TypeError, ValueError) as exc:
            logger.warning("Discarding malformed stored session: %s", exc)
            self.session = None
        return self.session

    def end_session(self) -> None:
        if self.session:
            logger.info("User %s logged out", self.session.username)
        self.session = None
        self._store.remove(CURRENT_USER_KEY)
        self._store.remove(LOGGED_IN_KEY)

    @property
    def is_logged_in(self) -> bool:
        return self.session is not None

    @property
    def current_user(self) -> Optional[Session]:
        return self.session

    def require_session(self) -> Session:
        if self.session is None:
            raise Unauthenticated()
        return self.session

    # -------------------------------------------------------------------------
    # Capabilities
    # -------------------------------------------------------------------------
    def has_capability(self, capability: Capability) -> bool:
        # No session means no permissions
        role = self.session.role if self.session else None
        return has_capability(role, capability)

    def require(self, capability: Capability) -> Session:
        """Return the session if it grants `capability`; raise otherwise."""
        session = self.require_session()
        if not has_capability(session.role, capability):
            logger.warning("Denied %s for %s (%s)", capability.value, session.username, session.role.value)
            raise Forbidden()
        return session

    def can_view_all_submissions(self) -> bool:
        return self.has_capability(Capability.VIEW_ALL_SUBMISSIONS)

    def can_approve_submission(self) -> bool:
        return self.has_capability(Capability.APPROVE_SUBMISSION)

    def can_support_approval(self) -> bool:
        return self.has_capability(Capability.SUPPORT_SUBMISSION)

    def can_view_video_submissions(self) -> bool:
        return self.has_capability(Capability.VIEW_VIDEO_SUBMISSIONS)

    def can_view_poster_submissions(self) -> bool:
        return self.has_capability(Capability.VIEW_POSTER_SUBMISSIONS)

    def can_approve_leave(self) -> bool:
        return self.has_capability(Capability.APPROVE_LEAVE)

    def can_support_leave_approval(self) -> bool:
        return self.has_capability(Capability.SUPPORT_LEAVE)

    def has_admin_role(self) -> bool:
        return self.has_capability(Capability.ADMIN)

    def capabilities(self) -> Dict[str, bool]:
        """All capability flags for the current session, keyed by capability name."""
        return {cap.value: self.has_capability(cap) for cap in Capability}
