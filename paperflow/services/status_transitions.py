"""
Status model for exam papers.

The transition table is the single source of truth for which role may
move a paper forward from which status.  Lookups return a ``Transition``
or ``None``; there is no default branch, so a pair missing from the
table can never be acted upon.
"""
from dataclasses import dataclass
from enum import Enum


class PaperStatus(str, Enum):
    SUBMITTED = "Submitted"
    REVIEWED_BY_AUTHORITY = "CoE-approved"
    SCRUTINIZED_BY_BOARD = "BoE-approved"
    LOCKED = "Locked"
    RETRIEVED = "Downloaded"

    @property
    def rank(self) -> int:
        return STATUS_ORDER.index(self)

    @classmethod
    def parse(cls, value):
        """Exact match on the stored value; anything else is None."""
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            return None


STATUS_ORDER = (
    PaperStatus.SUBMITTED,
    PaperStatus.REVIEWED_BY_AUTHORITY,
    PaperStatus.SCRUTINIZED_BY_BOARD,
    PaperStatus.LOCKED,
    PaperStatus.RETRIEVED,
)


class Role(str, Enum):
    FACULTY = "faculty"
    AUTHORITY = "coe"
    BOARD = "boe"
    PRINCIPAL = "principal"
    ADMIN = "admin"

    @classmethod
    def parse(cls, value):
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            return None


class SideEffect(str, Enum):
    ATTRIBUTE_APPROVER = "attribute_approver"
    SET_LOCKED = "set_locked"


@dataclass(frozen=True)
class Transition:
    source: PaperStatus
    role: Role
    target: PaperStatus
    label: str
    confirmation: str
    effect: SideEffect
    requires_confirmation: bool = True

    def confirmation_prompt(self, paper) -> str:
        return self.confirmation.format(
            id=paper.id,
            uploaded_by=paper.uploaded_by,
            approved_by=paper.approved_by or paper.uploaded_by,
        )

    def build_patch(self, *, actor_id: int, now) -> dict:
        """Fields written together with the new status."""
        patch = {
            "status": self.target.value,
            "status_changed_by": actor_id,
            "status_changed_at": now,
            "updated_at": now,
        }
        if self.effect is SideEffect.ATTRIBUTE_APPROVER:
            patch["approved_by"] = actor_id
        elif self.effect is SideEffect.SET_LOCKED:
            patch["is_locked"] = True
            patch["locked_at"] = now
        return patch


_TABLE = (
    Transition(
        source=PaperStatus.SUBMITTED,
        role=Role.AUTHORITY,
        target=PaperStatus.REVIEWED_BY_AUTHORITY,
        label="Approve",
        confirmation="I confirm that {uploaded_by} has uploaded paper #{id}",
        effect=SideEffect.ATTRIBUTE_APPROVER,
    ),
    Transition(
        source=PaperStatus.REVIEWED_BY_AUTHORITY,
        role=Role.BOARD,
        target=PaperStatus.SCRUTINIZED_BY_BOARD,
        label="Approve",
        confirmation="I confirm that {approved_by} has approved paper #{id}",
        effect=SideEffect.ATTRIBUTE_APPROVER,
    ),
    Transition(
        source=PaperStatus.SCRUTINIZED_BY_BOARD,
        role=Role.AUTHORITY,
        target=PaperStatus.LOCKED,
        label="Lock",
        confirmation="I confirm all approvals are complete for paper #{id}. Locking now.",
        effect=SideEffect.SET_LOCKED,
    ),
)

TRANSITIONS = {(t.source, t.role): t for t in _TABLE}


def lookup_transition(status, role):
    """Return the Transition for (status, role) or None when the pair is illegal."""
    status = PaperStatus.parse(status)
    role = Role.parse(role)
    if status is None or role is None:
        return None
    return TRANSITIONS.get((status, role))


# Statuses a privileged rollback may start from, and may return to
ROLLBACK_SOURCES = (PaperStatus.SCRUTINIZED_BY_BOARD, PaperStatus.LOCKED)
ROLLBACK_TARGETS = (
    PaperStatus.SUBMITTED,
    PaperStatus.REVIEWED_BY_AUTHORITY,
    PaperStatus.SCRUTINIZED_BY_BOARD,
)


def is_rollback_allowed(current, target) -> bool:
    current = PaperStatus.parse(current)
    target = PaperStatus.parse(target)
    if current not in ROLLBACK_SOURCES or target not in ROLLBACK_TARGETS:
        return False
    return target.rank < current.rank
