from paperflow.extensions import db
from paperflow.utils.clock import local_now


class PaperStatusEvent(db.Model):
    __tablename__ = "paper_status_event"

    id = db.Column(db.Integer, primary_key=True)

    paper_id = db.Column(
        db.Integer,
        db.ForeignKey("exam_paper.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )

    action = db.Column(db.String(30), nullable=False)
    # transition | rollback | artifact_replace | retrieval

    from_status = db.Column(db.String(30), nullable=False)
    to_status = db.Column(db.String(30), nullable=False)

    actor_id = db.Column(
        db.Integer,
        db.ForeignKey("users.id"),
        nullable=True
    )
    note = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime, default=local_now, nullable=False)

    paper = db.relationship("ExamPaper", back_populates="events")
    actor = db.relationship("User")
