"""
Workflow engine for media submissions and leave requests.

Both entity kinds share one state machine:

    pending -> approved     (final approval by the chief)
    pending -> rejected     (reserved; nothing in the app performs it)

Support approvals are advisory endorsements collected while an entity is
pending. They are recorded at most once per approver and never change the
status; there is no quorum before final approval.

Every mutating call checks the actor's capability through `Identity` first,
then looks up the entity, then mutates and persists. A failure at any step
raises a `WorkflowError` and leaves stored state untouched.
"""

from __future__ import annotations

import logging
import random
import uuid
from calendar import monthrange
from datetime import date, datetime, timedelta, timezone
from typing import Any, Callable, Dict, List, Optional, Set, Union

from errors import InvalidInput, MissingInput, NotFound
from identity import Identity
from models import (
    APPROVED,
    LEAVE_TYPES,
    MEDIA_TYPES,
    STATUSES,
    SUBMISSION_TYPES,
    FinalRecord,
    LeaveRequest,
    Media,
    Submission,
    SupportRecord,
    now_iso,
    parse_date,
)
from roles import Capability, Role
from storage import LEAVES_KEY, SUBMISSIONS_KEY
from users_data import CHIEF_USERNAME, USERS

logger = logging.getLogger(__name__)

# Which capability unlocks which media type in the submissions list
TYPE_VIEW_CAPABILITIES = {
    "video": Capability.VIEW_VIDEO_SUBMISSIONS,
    "poster": Capability.VIEW_POSTER_SUBMISSIONS,
}

FINAL_APPROVER_ROLE = Role.KETUA_MEDIA

Entity = Union[Submission, LeaveRequest]


def _new_id(prefix: str) -> str:
    return f"{prefix}_{uuid.uuid4().hex[:16]}"


def _text(value: Optional[str], label: str) -> str:
    """Stripped string value; None counts as empty, other types are rejected."""
    if value is None:
        return ""
    if not isinstance(value, str):
        raise InvalidInput(f"{label} must be text.")
    return value.strip()


def _required(value: Optional[str], label: str) -> str:
    value = _text(value, label)
    if not value:
        raise MissingInput(f"{label} is required.")
    return value


def _choice(value: Optional[str], allowed, label: str) -> str:
    value = _required(value, label).lower()
    if value not in allowed:
        raise InvalidInput(f"Invalid {label.lower()}: {value!r}.")
    return value


class WorkflowEngine:
    def __init__(self, identity: Identity, store, clock: Callable[[], str] = now_iso):
        self.identity = identity
        self._store = store
        self._clock = clock
        self.submissions: List[Submission] = [
            Submission.from_dict(d) for d in self._load_records(SUBMISSIONS_KEY)
        ]
        self.leaves: List[LeaveRequest] = [
            LeaveRequest.from_dict(d) for d in self._load_records(LEAVES_KEY)
        ]

    # =========================================================================
    # Persistence
    # =========================================================================
    def _load_records(self, key: str) -> List[Dict[str, Any]]:
        """Stored dicts for `key`; hand-edited junk (non-dicts, no id) is dropped."""
        items = self._store.load(key, default=[]) or []
        if not isinstance(items, list):
            logger.warning("Store key %r holds %s, expected a list; ignoring it", key, type(items).__name__)
            return []
        records = [x for x in items if isinstance(x, dict) and x.get("id")]
        if len(records) != len(items):
            logger.warning("Skipped %d malformed %s record(s)", len(items) - len(records), key)
        return records

    def _save_submissions(self) -> None:
        self._store.save(SUBMISSIONS_KEY, [s.to_dict() for s in self.submissions])

    def _save_leaves(self) -> None:
        self._store.save(LEAVES_KEY, [l.to_dict() for l in self.leaves])

    # =========================================================================
    # Create
    # =========================================================================
    def create_submission(self, type: str, title: str, description: str = "",
                          media_type: str = "file", media_url: str = "") -> Submission:
        """Create a pending submission owned by the current user."""
        actor = self.identity.require_session()
        sub_type = _choice(type, SUBMISSION_TYPES, "Type")
        title = _required(title, "Title")
        media_type = _choice(media_type, MEDIA_TYPES, "Upload method")
        media_url = _required(media_url, "Link" if media_type == "link" else "File")

        sub = Submission(
            id=_new_id("sub"),
            type=sub_type,
            title=title,
            description=_text(description, "Description"),
            submitted_by=actor.username,
            submitter_name=actor.full_name,
            submitter_role=actor.role_name,
            timestamp=self._clock(),
            media=Media(type=media_type, url=media_url),
        )
        self.submissions.append(sub)
        self._save_submissions()
        logger.info("Submission %s (%s) created by %s", sub.id, sub.type, actor.username)
        return sub

    def create_leave(self, type: str, start_date: str, end_date: str, reason: str = "") -> LeaveRequest:
        """Create a pending leave request for the current user."""
        actor = self.identity.require_session()
        leave_type = _choice(type, LEAVE_TYPES, "Leave type")
        start_raw = _required(start_date, "Start date")
        end_raw = _required(end_date, "End date")
        try:
            start, end = parse_date(start_raw), parse_date(end_raw)
        except ValueError:
            raise InvalidInput("Dates must be in YYYY-MM-DD format.")
        if end < start:
            raise InvalidInput("End date cannot be before start date.")

        leave = LeaveRequest(
            id=_new_id("leave"),
            user_id=actor.username,
            user_name=actor.full_name,
            user_role=actor.role_name,
            type=leave_type,
            start_date=start.isoformat(),
            end_date=end.isoformat(),
            reason=_text(reason, "Reason"),
            timestamp=self._clock(),
        )
        self.leaves.append(leave)
        self._save_leaves()
        logger.info("Leave %s (%s, %s..%s) created by %s",
                    leave.id, leave.type, leave.start_date, leave.end_date, actor.username)
        return leave

    # =========================================================================
    # Approvals
    # =========================================================================
    @staticmethod
    def _find(collection: List[Entity], entity_id: str) -> Entity:
        for entity in collection:
            if entity.id == entity_id:
                return entity
        logger.warning("No record with id %r", entity_id)
        raise NotFound(f"No record with id {entity_id!r}.")

    def _support(self, collection: List[Entity], entity_id: str, capability: Capability,
                 save: Callable[[], None]) -> Entity:
        actor = self.identity.require(capability)
        entity = self._find(collection, entity_id)
        record = SupportRecord(
            approver=actor.username,
            approver_name=actor.full_name,
            role=actor.role_name,
            timestamp=self._clock(),
        )
        if entity.add_support(record):
            save()
            logger.info("Support approval on %s by %s", entity.id, actor.username)
        else:
            logger.debug("%s already supported %s; nothing to do", actor.username, entity.id)
        return entity

    def _finalize(self, collection: List[Entity], entity_id: str, capability: Capability,
                  save: Callable[[], None]) -> Entity:
        actor = self.identity.require(capability)
        entity = self._find(collection, entity_id)
        if not entity.is_pending:
            # Already decided; keep the first stamp
            logger.debug("%s is %s; final approval skipped", entity.id, entity.status)
            return entity
        entity.finalize(FinalRecord(
            approver=actor.username,
            approver_name=actor.full_name,
            timestamp=self._clock(),
        ))
        save()
        logger.info("Final approval on %s by %s", entity.id, actor.username)
        return entity

    def support_approve_submission(self, submission_id: str) -> Submission:
        return self._support(self.submissions, submission_id,
                             Capability.SUPPORT_SUBMISSION, self._save_submissions)

    def approve_submission(self, submission_id: str) -> Submission:
        return self._finalize(self.submissions, submission_id,
                              Capability.APPROVE_SUBMISSION, self._save_submissions)

    def support_approve_leave(self, leave_id: str) -> LeaveRequest:
        return self._support(self.leaves, leave_id,
                             Capability.SUPPORT_LEAVE, self._save_leaves)

    def approve_leave(self, leave_id: str) -> LeaveRequest:
        return self._finalize(self.leaves, leave_id,
                              Capability.APPROVE_LEAVE, self._save_leaves)

    # =========================================================================
    # Queries
    # =========================================================================
    def get_submission(self, submission_id: str) -> Submission:
        return self._find(self.submissions, submission_id)

    def get_leave(self, leave_id: str) -> LeaveRequest:
        return self._find(self.leaves, leave_id)

    def visible_submissions(self) -> List[Submission]:
        """
        Submissions the current user may see:
          - oversight roles: everything
          - unit leads: only their media type
          - everyone else: only their own
        """
        actor = self.identity.require_session()
        if self.identity.can_view_all_submissions():
            return list(self.submissions)
        types = {t for t, cap in TYPE_VIEW_CAPABILITIES.items() if self.identity.has_capability(cap)}
        if types:
            return [s for s in self.submissions if s.type in types]
        return [s for s in self.submissions if s.submitted_by == actor.username]

    def filter_submissions(self, filter: str = "all") -> List[Submission]:
        """Visible submissions narrowed by a type or status keyword ("all" keeps everything)."""
        visible = self.visible_submissions()
        key = (filter or "all").strip().lower()
        if key == "all":
            return visible
        if key not in SUBMISSION_TYPES and key not in STATUSES:
            raise InvalidInput(f"Unknown filter {filter!r}.")
        return [s for s in visible if s.type == key or s.status == key]

    def _can_act_on(self, approve: Capability, support: Capability) -> bool:
        return self.identity.has_capability(approve) or self.identity.has_capability(support)

    def pending_approvals(self) -> List[Submission]:
        self.identity.require_session()
        if not self._can_act_on(Capability.APPROVE_SUBMISSION, Capability.SUPPORT_SUBMISSION):
            return []
        return [s for s in self.submissions if s.is_pending]

    def pending_leaves(self) -> List[LeaveRequest]:
        self.identity.require_session()
        if not self._can_act_on(Capability.APPROVE_LEAVE, Capability.SUPPORT_LEAVE):
            return []
        return [l for l in self.leaves if l.is_pending]

    def my_leaves(self) -> List[LeaveRequest]:
        actor = self.identity.require_session()
        return [l for l in self.leaves if l.user_id == actor.username]

    def approval_queue(self) -> List[Dict[str, Any]]:
        """Approval summary for pending submissions, computed from live state."""
        return [
            {
                "id": f"apr_{s.id}",
                "submissionId": s.id,
                "status": s.status,
                "supporters": [r.approver for r in s.support_approvals],
                "finalApprover": FINAL_APPROVER_ROLE.value,
            }
            for s in self.pending_approvals()
        ]

    def leaves_on(self, day: Union[str, date]) -> List[LeaveRequest]:
        """Approved leaves covering `day`."""
        day = parse_date(day)
        return [l for l in self.leaves if l.covers(day)]

    def covered_days(self, year: int, month: int) -> Set[int]:
        """Day numbers of `year`-`month` covered by at least one approved leave."""
        _, num_days = monthrange(year, month)
        out: Set[int] = set()
        for leave in self.leaves:
            if leave.status != APPROVED:
                continue
            for day in range(1, num_days + 1):
                if leave.covers(date(year, month, day)):
                    out.add(day)
        return out

    def stats(self) -> Dict[str, int]:
        counts = {status: 0 for status in STATUSES}
        for s in self.submissions:
            if s.status in counts:
                counts[s.status] += 1
        return {"total": len(self.submissions), **counts}

    def recent_activity(self, limit: int = 5) -> List[Dict[str, Any]]:
        """Newest-first mix of the first few submissions and leaves."""
        items = [{"kind": "submission", **s.to_dict()} for s in self.submissions[:3]]
        items += [{"kind": "leave", **l.to_dict()} for l in self.leaves[:2]]
        items.sort(key=lambda item: item.get("timestamp") or "", reverse=True)
        return items[:limit]

    # =========================================================================
    # Sample data
    # =========================================================================
    def seed_sample_data(self, rng: Optional[random.Random] = None) -> bool:
        """
        Fill empty collections with demo entities owned by the current user.

        Returns True if anything was written. Without a session nothing is
        seeded, since the samples need an author.
        """
        actor = self.identity.session
        if actor is None:
            return False
        rng = rng or random.Random()
        now = datetime.now(timezone.utc)
        chief = USERS[CHIEF_USERNAME]
        seeded = False

        def stamp_if_approved(entity: Entity, ts: str) -> None:
            if entity.status == APPROVED:
                entity.final_approval = FinalRecord(
                    approver=chief["username"], approver_name=chief["fullName"], timestamp=ts)

        if not self.submissions:
            for i in range(1, 6):
                sub_type = SUBMISSION_TYPES[i % 2]
                is_poster = sub_type == "poster"
                ts = (now - timedelta(seconds=rng.random() * 7 * 24 * 3600)).isoformat(timespec="milliseconds")
                sub = Submission(
                    id=f"sub_{i}",
                    type=sub_type,
                    title=f"{'Campaign Poster' if is_poster else 'Promotional Video'} {i}",
                    description=f"This is a sample submission description for item {i}",
                    submitted_by=actor.username,
                    submitter_name=actor.full_name,
                    submitter_role=actor.role_name,
                    timestamp=ts,
                    media=Media(
                        type="file" if is_poster else "link",
                        url=f"document{i}.pdf" if is_poster else f"https://youtu.be/example{i}",
                    ),
                    status=rng.choice(STATUSES),
                )
                stamp_if_approved(sub, ts)
                self.submissions.append(sub)
            self._save_submissions()
            seeded = True

        if not self.leaves:
            today = now.date()
            for i in range(1, 4):
                start = today + timedelta(days=int(rng.random() * 30))
                end = start + timedelta(days=rng.randint(1, 5))
                leave = LeaveRequest(
                    id=f"leave_{i}",
                    user_id=actor.username,
                    user_name=actor.full_name,
                    user_role=actor.role_name,
                    type=LEAVE_TYPES[i % 4],
                    start_date=start.isoformat(),
                    end_date=end.isoformat(),
                    reason=f"Leave reason {i}",
                    timestamp=self._clock(),
                    status=rng.choice(STATUSES),
                )
                stamp_if_approved(leave, leave.timestamp)
                self.leaves.append(leave)
            self._save_leaves()
            seeded = True

        if seeded:
            logger.info("Seeded sample data for %s", actor.username)
        return seeded
