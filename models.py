"""
Workflow records: submissions, leave requests and their approval stamps.

Records are stored as camelCase JSON dicts (the shape the dashboard client
reads). `to_dict()` / `from_dict()` are the only places that know that shape.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from typing import Any, Dict, List, Optional, Union

# Status values shared by both entity kinds
PENDING = "pending"
APPROVED = "approved"
REJECTED = "rejected"  # reserved; no operation moves an entity here
STATUSES = (PENDING, APPROVED, REJECTED)

SUBMISSION_TYPES = ("poster", "video")
MEDIA_TYPES = ("file", "link")
LEAVE_TYPES = ("sick", "annual", "emergency", "personal")

DATE_FMT = "%Y-%m-%d"


def now_iso() -> str:
    """UTC timestamp in ISO-8601 with millisecond precision."""
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds")


def parse_date(value: Union[str, date]) -> date:
    """Accept a `date` or a 'YYYY-MM-DD' string. Raises ValueError otherwise."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return datetime.strptime((value or "").strip(), DATE_FMT).date()


def leave_duration(start: Union[str, date], end: Union[str, date]) -> int:
    """Days covered by a leave, counting both endpoints."""
    delta = parse_date(end) - parse_date(start)
    return math.ceil(delta.total_seconds() / 86400) + 1


@dataclass
class SupportRecord:
    approver: str
    approver_name: str
    role: str  # display label, e.g. "Setiausaha"
    timestamp: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "approver": self.approver,
            "approverName": self.approver_name,
            "role": self.role,
            "timestamp": self.timestamp,
        }

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "SupportRecord":
        return cls(
            approver=d.get("approver", ""),
            approver_name=d.get("approverName", ""),
            role=d.get("role", ""),
            timestamp=d.get("timestamp", ""),
        )


@dataclass
class FinalRecord:
    approver: str
    approver_name: str
    timestamp: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "approver": self.approver,
            "approverName": self.approver_name,
            "timestamp": self.timestamp,
        }

    @classmethod
    def from_dict(cls, d: Optional[Dict[str, Any]]) -> Optional["FinalRecord"]:
        if not isinstance(d, dict) or not d:
            return None
        return cls(
            approver=d.get("approver", ""),
            approver_name=d.get("approverName", ""),
            timestamp=d.get("timestamp", ""),
        )


@dataclass
class Media:
    type: str  # file | link
    url: str

    def to_dict(self) -> Dict[str, Any]:
        return {"type": self.type, "url": self.url}

    @classmethod
    def from_dict(cls, d: Optional[Dict[str, Any]]) -> "Media":
        if not isinstance(d, dict):
            d = {}
        return cls(type=d.get("type", "file"), url=d.get("url", ""))


def _support_records(items: Any) -> List[SupportRecord]:
    if not isinstance(items, list):
        return []
    return [SupportRecord.from_dict(r) for r in items if isinstance(r, dict)]


class _Approvable:
    """Support/final approval bookkeeping shared by submissions and leaves."""

    status: str
    support_approvals: List[SupportRecord]
    final_approval: Optional[FinalRecord]

    @property
    def is_pending(self) -> bool:
        return self.status == PENDING

    def has_support_from(self, username: str) -> bool:
        return any(r.approver == username for r in self.support_approvals)

    def add_support(self, record: SupportRecord) -> bool:
        """Append `record` unless its approver already signed. Returns True if added."""
        if self.has_support_from(record.approver):
            return False
        self.support_approvals.append(record)
        return True

    def finalize(self, record: FinalRecord) -> None:
        self.status = APPROVED
        self.final_approval = record


@dataclass
class Submission(_Approvable):
    id: str
    type: str
    title: str
    description: str
    submitted_by: str
    submitter_name: str
    submitter_role: str
    timestamp: str
    media: Media
    status: str = PENDING
    support_approvals: List[SupportRecord] = field(default_factory=list)
    final_approval: Optional[FinalRecord] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "type": self.type,
            "title": self.title,
            "description": self.description,
            "submittedBy": self.submitted_by,
            "submitterName": self.submitter_name,
            "submitterRole": self.submitter_role,
            "timestamp": self.timestamp,
            "status": self.status,
            "supportApprovals": [r.to_dict() for r in self.support_approvals],
            "finalApproval": self.final_approval.to_dict() if self.final_approval else None,
            "media": self.media.to_dict(),
        }

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "Submission":
        return cls(
            id=d["id"],
            type=d.get("type", ""),
            title=d.get("title", ""),
            description=d.get("description", ""),
            submitted_by=d.get("submittedBy", ""),
            submitter_name=d.get("submitterName", ""),
            submitter_role=d.get("submitterRole", ""),
            timestamp=d.get("timestamp", ""),
            media=Media.from_dict(d.get("media")),
            status=d.get("status", PENDING),
            support_approvals=_support_records(d.get("supportApprovals")),
            final_approval=FinalRecord.from_dict(d.get("finalApproval")),
        )


@dataclass
class LeaveRequest(_Approvable):
    id: str
    user_id: str
    user_name: str
    user_role: str
    type: str
    start_date: str  # YYYY-MM-DD
    end_date: str    # YYYY-MM-DD, never before start_date
    reason: str
    timestamp: str
    status: str = PENDING
    support_approvals: List[SupportRecord] = field(default_factory=list)
    final_approval: Optional[FinalRecord] = None

    @property
    def duration(self) -> int:
        return leave_duration(self.start_date, self.end_date)

    def covers(self, day: Union[str, date]) -> bool:
        """True if this leave is approved and `day` falls inside it (both ends inclusive)."""
        if self.status != APPROVED:
            return False
        return parse_date(self.start_date) <= parse_date(day) <= parse_date(self.end_date)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "userId": self.user_id,
            "userName": self.user_name,
            "userRole": self.user_role,
            "type": self.type,
            "startDate": self.start_date,
            "endDate": self.end_date,
            "reason": self.reason,
            "status": self.status,
            "supportApprovals": [r.to_dict() for r in self.support_approvals],
            "finalApproval": self.final_approval.to_dict() if self.final_approval else None,
            "timestamp": self.timestamp,
        }

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "LeaveRequest":
        return cls(
            id=d["id"],
            user_id=d.get("userId", ""),
            user_name=d.get("userName", ""),
            user_role=d.get("userRole", ""),
            type=d.get("type", ""),
            start_date=d.get("startDate", ""),
            end_date=d.get("endDate", ""),
            reason=d.get("reason", ""),
            timestamp=d.get("timestamp", ""),
            status=d.get("status", PENDING),
            support_approvals=_support_records(d.get("supportApprovals")),
            final_approval=FinalRecord.from_dict(d.get("finalApproval")),
        )
