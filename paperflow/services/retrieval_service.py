# paperflow/services/retrieval_service.py
import logging
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from io import StringIO

import pandas as pd
from flask import current_app
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from paperflow.extensions import db, object_store
from paperflow.models.exam_paper import ExamPaper
from paperflow.models.paper_status_event import PaperStatusEvent
from paperflow.models.subject import Subject
from paperflow.models.subject_retrieval import SubjectRetrieval
from paperflow.services.status_transitions import PaperStatus
from paperflow.services.workflow_errors import (
    AlreadyRetrieved,
    NotFound,
    NotReady,
    StorageFailure,
)
from paperflow.utils.clock import local_now, to_local

logger = logging.getLogger(__name__)

BOARD_STATUSES = (PaperStatus.LOCKED.value, PaperStatus.RETRIEVED.value)


@dataclass
class RetrievalGrant:
    paper_id: int
    subject_id: int
    window_date: date
    retrieved_at: datetime
    url: str
    expires_in: int

    def to_dict(self):
        return {
            "paper_id": self.paper_id,
            "subject_id": self.subject_id,
            "window_date": self.window_date.isoformat(),
            "retrieved_at": self.retrieved_at.isoformat(),
            "retrieved": True,
            "url": self.url,
            "expires_in": self.expires_in,
        }


# =========================================================
# WINDOW
# =========================================================

def _window_start_hour() -> int:
    return int(current_app.config.get("RETRIEVAL_WINDOW_START_HOUR", 0))


def retrieval_window(moment: datetime | None = None) -> date:
    """The distribution window (a local calendar day) that contains moment."""
    moment = to_local(moment) if moment else local_now()
    return (moment - timedelta(hours=_window_start_hour())).date()


def window_bounds(window_date: date):
    """Naive local [start, end) of a window, comparable with stored datetimes."""
    start = datetime.combine(window_date, time(hour=_window_start_hour()))
    return start, start + timedelta(days=1)


# =========================================================
# ARBITER
# =========================================================

def _reject_stale(paper_id: int, window_date: date):
    """Decide why the conditional write matched nothing."""
    paper = db.session.get(ExamPaper, paper_id)
    if paper is None:
        raise NotFound(paper_id)
    if paper.is_retrieved or paper.status == PaperStatus.RETRIEVED.value:
        raise AlreadyRetrieved(paper.subject_id, window_date)
    raise NotReady(paper_id, f"status is '{paper.status}'")


def attempt_retrieval(*, paper_id: int, caller_id: int | None = None) -> RetrievalGrant:
    """
    Download a locked paper, at most once per subject per window.

    The subject-level lock row and the paper's retrieved flag are written
    in one transaction; the unique constraint on (subject, window) decides
    between concurrent attempts on any slot of the same subject.  The
    signed URL is only requested after that commit succeeds.
    """
    paper = db.session.get(ExamPaper, paper_id)
    if not paper:
        raise NotFound(paper_id)

    subject_id = paper.subject_id
    now = local_now()
    window_date = retrieval_window(now)

    if paper.is_retrieved or paper.status == PaperStatus.RETRIEVED.value:
        raise AlreadyRetrieved(subject_id, window_date)

    if paper.status != PaperStatus.LOCKED.value:
        raise NotReady(paper_id, f"status is '{paper.status}'")

    if not paper.qp_file_path:
        raise NotReady(paper_id, "no question paper uploaded")

    # A missing file would burn the subject's only download for the window
    if not object_store.exists(paper.qp_file_path):
        logger.error(
            "Question paper '%s' of paper #%s is missing from the object store",
            paper.qp_file_path, paper_id,
        )
        raise NotReady(paper_id, "question paper file is missing")

    if paper.scheduled_at is None or retrieval_window(paper.scheduled_at) != window_date:
        raise NotReady(paper_id, "not scheduled for the current distribution window")

    qp_file_path = paper.qp_file_path

    # -------------------------------------------------
    # Atomic check-and-set
    # -------------------------------------------------
    try:
        db.session.add(SubjectRetrieval(
            subject_id=subject_id,
            window_date=window_date,
            paper_id=paper_id,
            retrieved_by=caller_id,
            retrieved_at=now,
        ))
        db.session.flush()

        updated = (
            ExamPaper.query
            .filter_by(id=paper_id, status=PaperStatus.LOCKED.value, is_retrieved=False)
            .update(
                {
                    "status": PaperStatus.RETRIEVED.value,
                    "is_retrieved": True,
                    "retrieved_at": now,
                    "status_changed_by": caller_id,
                    "status_changed_at": now,
                    "updated_at": now,
                },
                synchronize_session=False,
            )
        )
        if not updated:
            db.session.rollback()
            _reject_stale(paper_id, window_date)

        db.session.add(PaperStatusEvent(
            paper_id=paper_id,
            action="retrieval",
            from_status=PaperStatus.LOCKED.value,
            to_status=PaperStatus.RETRIEVED.value,
            actor_id=caller_id,
            created_at=now,
        ))
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        logger.warning(
            "Retrieval of paper #%s rejected: subject %s already downloaded for %s",
            paper_id, subject_id, window_date,
        )
        raise AlreadyRetrieved(subject_id, window_date)
    except SQLAlchemyError as e:
        db.session.rollback()
        logger.error("Retrieval write failed for paper #%s: %s", paper_id, e)
        raise StorageFailure(f"Could not record download of paper #{paper_id}") from e

    logger.info(
        "Paper #%s downloaded by user %s (subject %s, window %s)",
        paper_id, caller_id, subject_id, window_date,
    )

    # -------------------------------------------------
    # Grant, only after the decision is committed
    # -------------------------------------------------
    ttl = int(current_app.config.get("SIGNED_URL_TTL", 300))
    url = object_store.signed_get(qp_file_path, ttl)

    return RetrievalGrant(
        paper_id=paper_id,
        subject_id=subject_id,
        window_date=window_date,
        retrieved_at=now,
        url=url,
        expires_in=ttl,
    )


# =========================================================
# DISTRIBUTION BOARD
# =========================================================

def retrieved_subject_ids(window_date: date) -> set:
    rows = (
        db.session.query(SubjectRetrieval.subject_id)
        .filter(SubjectRetrieval.window_date == window_date)
        .all()
    )
    return {r[0] for r in rows}


def get_distribution_board(window_date: date | None = None, papers_per_row: int | None = None):
    """
    Papers scheduled in the window, one row per subject with a fixed
    number of slots.  ``retrieved`` comes from the subject lock rows, so
    a client may cache it to disable controls but never decides it.
    """
    window_date = window_date or retrieval_window()
    papers_per_row = papers_per_row or int(current_app.config.get("PAPER_SLOTS", 5))
    start, end = window_bounds(window_date)

    papers = (
        ExamPaper.query
        .join(Subject)
        .filter(
            ExamPaper.status.in_(BOARD_STATUSES),
            ExamPaper.scheduled_at >= start,
            ExamPaper.scheduled_at < end,
        )
        .order_by(Subject.code, ExamPaper.created_at, ExamPaper.id)
        .all()
    )

    retrieved = retrieved_subject_ids(window_date)

    grouped = {}
    for paper in papers:
        code = paper.subject.code
        if code not in grouped:
            grouped[code] = {
                "subject_id": paper.subject_id,
                "subject_code": code,
                "subject_name": paper.subject.name,
                "window_date": window_date.isoformat(),
                "retrieved": paper.subject_id in retrieved,
                "papers": [],
            }
        grouped[code]["papers"].append({
            "id": paper.id,
            "status": paper.status,
            "is_retrieved": paper.is_retrieved,
            "scheduled_at": paper.scheduled_at.isoformat(),
        })

    for row in grouped.values():
        slots = row["papers"][:papers_per_row]
        slots += [None] * (papers_per_row - len(slots))
        row["papers"] = slots

    return list(grouped.values())


def distribution_board_as_csv(window_date: date | None = None):
    board = get_distribution_board(window_date)

    rows = []
    for row in board:
        taken = next(
            (p["id"] for p in row["papers"] if p and p["is_retrieved"]),
            None
        )
        rows.append({
            "Window": row["window_date"],
            "Subject Code": row["subject_code"],
            "Subject Name": row["subject_name"],
            "Slots": sum(1 for p in row["papers"] if p),
            "Downloaded": "Yes" if row["retrieved"] else "No",
            "Downloaded Paper": taken if taken is not None else "",
        })

    df = pd.DataFrame(
        rows,
        columns=["Window", "Subject Code", "Subject Name", "Slots", "Downloaded", "Downloaded Paper"],
    )

    buffer = StringIO()
    df.to_csv(buffer, index=False)
    buffer.seek(0)
    return buffer
