from paperflow.extensions import db


class SubjectRetrieval(db.Model):
    """
    One row per (subject, window) that has been retrieved.
    The unique constraint is the lock: every slot of the subject shares it.
    """
    __tablename__ = "subject_retrieval"

    id = db.Column(db.Integer, primary_key=True)

    subject_id = db.Column(
        db.Integer,
        db.ForeignKey("subject.id"),
        nullable=False
    )
    window_date = db.Column(db.Date, nullable=False)

    paper_id = db.Column(
        db.Integer,
        db.ForeignKey("exam_paper.id"),
        nullable=False
    )
    retrieved_by = db.Column(
        db.Integer,
        db.ForeignKey("users.id"),
        nullable=True
    )
    retrieved_at = db.Column(db.DateTime, nullable=False)

    paper = db.relationship("ExamPaper")

    __table_args__ = (
        db.UniqueConstraint(
            "subject_id",
            "window_date",
            name="uq_subject_retrieval_window"
        ),
    )
