#paperflow/services/artifact_service.py
import logging
import uuid

from sqlalchemy.exc import SQLAlchemyError

from paperflow.extensions import db, object_store
from paperflow.models.exam_paper import ExamPaper
from paperflow.models.paper_status_event import PaperStatusEvent
from paperflow.services.identity_service import require_role
from paperflow.services.status_transitions import PaperStatus, Role
from paperflow.services.workflow_errors import (
    IllegalTransition,
    MissingArtifacts,
    NotFound,
    StorageFailure,
)
from paperflow.utils.clock import local_now

logger = logging.getLogger(__name__)

# Only the board may replace artifacts, and only while scrutiny is open
REPLACEABLE_STATUS = PaperStatus.REVIEWED_BY_AUTHORITY


def _discard(keys):
    for key in keys:
        try:
            object_store.remove_artifact(key)
        except StorageFailure:
            logger.error("Could not remove orphaned artifact '%s'", key)


def _artifact_key(folder: str, attempt: str, name: str, extension: str) -> str:
    extension = (extension or "docx").lstrip(".").lower()
    return f"papers/{folder}/{attempt}/{name}.{extension}"


def replace_scrutinized_artifacts(
    *,
    paper_id: int,
    caller_id: int,
    question_paper: bytes,
    scheme: bytes,
    qp_extension: str = "docx",
    scheme_extension: str = "docx"
) -> dict:
    """
    Replace the question paper and marking scheme after scrutiny.

    Both files are uploaded under a fresh attempt folder, so the paper's
    current artifacts stay untouched until the record points at the new
    ones.  The record is only repointed if it still holds the files read
    at the start; a concurrent replacement makes this one fail.  If
    anything fails, every file uploaded by this attempt is removed before
    the error is raised.
    """
    require_role(caller_id, Role.BOARD)

    paper = db.session.get(ExamPaper, paper_id)
    if not paper:
        raise NotFound(paper_id)

    if paper.status != REPLACEABLE_STATUS.value:
        raise IllegalTransition(
            paper_id, paper.status, Role.BOARD.value,
            message=f"Files can only be replaced while paper is '{REPLACEABLE_STATUS.value}'",
        )

    if not question_paper or not scheme:
        raise MissingArtifacts(
            "Both the question paper and the scheme of valuation are required",
            paper_id=paper_id,
        )

    attempt = uuid.uuid4().hex[:12]
    qp_key = _artifact_key(paper.folder, attempt, "QP", qp_extension)
    scheme_key = _artifact_key(paper.folder, attempt, "Scheme", scheme_extension)
    previous = {
        "qp_file_path": paper.qp_file_path,
        "scheme_file_path": paper.scheme_file_path,
    }

    # -------------------------------------------------
    # 1. Upload both artifacts
    # -------------------------------------------------
    try:
        object_store.put_artifact(qp_key, question_paper)
    except StorageFailure:
        logger.error("Question paper upload failed for paper #%s", paper_id)
        _discard([qp_key])
        raise

    try:
        object_store.put_artifact(scheme_key, scheme)
    except StorageFailure:
        logger.error(
            "Scheme upload failed for paper #%s; removing this attempt's files",
            paper_id,
        )
        _discard([qp_key, scheme_key])
        raise

    # -------------------------------------------------
    # 2. Point the record at the new artifacts
    # -------------------------------------------------
    now = local_now()
    patch = {
        "qp_file_path": qp_key,
        "scheme_file_path": scheme_key,
        "updated_at": now,
    }

    try:
        # Matches only if neither the status nor the files moved since the read
        updated = (
            ExamPaper.query
            .filter_by(
                id=paper_id,
                status=REPLACEABLE_STATUS.value,
                qp_file_path=previous["qp_file_path"],
                scheme_file_path=previous["scheme_file_path"],
            )
            .update(patch, synchronize_session=False)
        )
        if not updated:
            db.session.rollback()
            _discard([qp_key, scheme_key])
            logger.warning(
                "Artifact replacement for paper #%s lost to a concurrent change",
                paper_id,
            )
            raise IllegalTransition(
                paper_id, None, Role.BOARD.value,
                message=f"Paper #{paper_id} changed during the upload",
            )

        db.session.add(PaperStatusEvent(
            paper_id=paper_id,
            action="artifact_replace",
            from_status=REPLACEABLE_STATUS.value,
            to_status=REPLACEABLE_STATUS.value,
            actor_id=caller_id,
            note=f"qp={previous['qp_file_path']} scheme={previous['scheme_file_path']}",
            created_at=now,
        ))
        db.session.commit()
    except SQLAlchemyError as e:
        db.session.rollback()
        _discard([qp_key, scheme_key])
        raise StorageFailure(f"Could not record new files for paper #{paper_id}") from e

    logger.info("Paper #%s artifacts replaced by user %s", paper_id, caller_id)
    return {
        "paper_id": paper_id,
        "status": REPLACEABLE_STATUS.value,
        "qp_file_path": qp_key,
        "scheme_file_path": scheme_key,
        "previous": previous,
    }
