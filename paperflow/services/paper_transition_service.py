# paperflow/services/paper_transition_service.py
import logging
from dataclasses import dataclass

from sqlalchemy.exc import SQLAlchemyError

from paperflow.extensions import db
from paperflow.models.exam_paper import ExamPaper
from paperflow.models.paper_status_event import PaperStatusEvent
from paperflow.services.identity_service import current_role, require_role
from paperflow.services.status_transitions import (
    PaperStatus,
    Role,
    is_rollback_allowed,
    lookup_transition,
)
from paperflow.services.workflow_errors import (
    ConfirmationRequired,
    IllegalTransition,
    NotFound,
    StorageFailure,
    Unauthorized,
)
from paperflow.utils.clock import local_now

logger = logging.getLogger(__name__)


@dataclass
class TransitionResult:
    paper_id: int
    previous_status: str
    status: str
    patch: dict

    def to_dict(self):
        patch = {
            k: (v.isoformat() if hasattr(v, "isoformat") else v)
            for k, v in self.patch.items()
        }
        return {
            "paper_id": self.paper_id,
            "previous_status": self.previous_status,
            "status": self.status,
            "patch": patch,
        }


# -------------------------------------------------
# Internal helpers
# -------------------------------------------------
def _load_paper(paper_id: int) -> ExamPaper:
    paper = db.session.get(ExamPaper, paper_id)
    if not paper:
        raise NotFound(paper_id)
    return paper


def _compare_and_set(paper_id: int, expected_status: str, patch: dict) -> bool:
    """
    UPDATE exam_paper SET ... WHERE id = :id AND status = :expected.
    Returns False when another actor moved the paper first.
    """
    updated = (
        ExamPaper.query
        .filter_by(id=paper_id, status=expected_status)
        .update(patch, synchronize_session=False)
    )
    return updated == 1


def _commit_status_change(*, paper_id, expected_status, patch, event, role):
    try:
        if not _compare_and_set(paper_id, expected_status, patch):
            db.session.rollback()
            logger.warning(
                "Paper #%s was moved from '%s' by another actor; rejecting",
                paper_id, expected_status,
            )
            raise IllegalTransition(
                paper_id, expected_status, role,
                message=f"Paper #{paper_id} is no longer in status '{expected_status}'",
            )
        db.session.add(event)
        db.session.commit()
    except SQLAlchemyError as e:
        db.session.rollback()
        logger.error("Status write failed for paper #%s: %s", paper_id, e)
        raise StorageFailure(f"Could not update paper #{paper_id}") from e


# -------------------------------------------------
# Forward transitions
# -------------------------------------------------
def available_transition(*, paper_id: int, caller_id: int):
    """
    The action the caller may take on this paper right now, or None.
    Used by clients to render the approve/lock control and its prompt.
    """
    role = current_role(caller_id)
    paper = _load_paper(paper_id)

    transition = lookup_transition(paper.status, role)
    if transition is None:
        return None

    return {
        "paper_id": paper.id,
        "status": paper.status,
        "label": transition.label,
        "target": transition.target.value,
        "requires_confirmation": transition.requires_confirmation,
        "confirmation": transition.confirmation_prompt(paper),
    }


def attempt_transition(
    *,
    paper_id: int,
    acting_role: str,
    confirmation_given: bool,
    caller_id: int
) -> TransitionResult:
    """
    Move a paper one step forward along the approval chain.

    The acting role supplied by the caller must match the role held by
    the authenticated identity.  The write is conditioned on the status
    read here, so a concurrent approval makes this call fail with
    IllegalTransition instead of acting on stale state.
    """
    role = current_role(caller_id)
    if Role.parse(acting_role) is not role:
        raise Unauthorized(
            f"Acting role '{acting_role}' does not match the signed-in user",
            role=role.value,
        )

    paper = _load_paper(paper_id)
    expected_status = paper.status

    transition = lookup_transition(expected_status, role)
    if transition is None:
        logger.warning(
            "Rejected '%s' action on paper #%s in status '%s'",
            role.value, paper_id, expected_status,
        )
        raise IllegalTransition(paper_id, expected_status, role.value)

    if transition.requires_confirmation and not confirmation_given:
        raise ConfirmationRequired(paper_id, transition.confirmation_prompt(paper))

    now = local_now()
    patch = transition.build_patch(actor_id=caller_id, now=now)

    _commit_status_change(
        paper_id=paper_id,
        expected_status=expected_status,
        patch=patch,
        role=role.value,
        event=PaperStatusEvent(
            paper_id=paper_id,
            action="transition",
            from_status=expected_status,
            to_status=transition.target.value,
            actor_id=caller_id,
            created_at=now,
        ),
    )

    logger.info(
        "Paper #%s: %s -> %s by user %s",
        paper_id, expected_status, transition.target.value, caller_id,
    )
    return TransitionResult(
        paper_id=paper_id,
        previous_status=expected_status,
        status=transition.target.value,
        patch=patch,
    )


# -------------------------------------------------
# Privileged rollback (outside the transition table)
# -------------------------------------------------
def rollback_paper(
    *,
    paper_id: int,
    target_status: str,
    reason: str,
    confirmation_given: bool,
    caller_id: int
) -> TransitionResult:
    """
    Return a scrutinized or locked paper to an earlier status.

    Only an admin may do this.  The forward transitions have to be run
    again afterwards; downloaded papers can never be rolled back.
    """
    require_role(caller_id, Role.ADMIN)

    if not reason or not reason.strip():
        raise IllegalTransition(
            paper_id, None, Role.ADMIN.value,
            message="A reason is required to roll back a paper",
        )

    paper = _load_paper(paper_id)
    expected_status = paper.status

    if not is_rollback_allowed(expected_status, target_status):
        raise IllegalTransition(
            paper_id, expected_status, Role.ADMIN.value,
            message=f"Cannot roll back paper #{paper_id} from '{expected_status}' to '{target_status}'",
        )

    if not confirmation_given:
        raise ConfirmationRequired(
            paper_id,
            f"I confirm paper #{paper_id} returns from '{expected_status}' to '{target_status}'",
        )

    now = local_now()
    patch = {
        "status": PaperStatus(target_status).value,
        "status_changed_by": caller_id,
        "status_changed_at": now,
        "updated_at": now,
        "is_locked": False,
        "locked_at": None,
    }

    _commit_status_change(
        paper_id=paper_id,
        expected_status=expected_status,
        patch=patch,
        role=Role.ADMIN.value,
        event=PaperStatusEvent(
            paper_id=paper_id,
            action="rollback",
            from_status=expected_status,
            to_status=patch["status"],
            actor_id=caller_id,
            note=reason.strip(),
            created_at=now,
        ),
    )

    logger.info(
        "Paper #%s rolled back %s -> %s by user %s (%s)",
        paper_id, expected_status, patch["status"], caller_id, reason.strip(),
    )
    return TransitionResult(
        paper_id=paper_id,
        previous_status=expected_status,
        status=patch["status"],
        patch=patch,
    )
