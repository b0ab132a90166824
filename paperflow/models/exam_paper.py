# paperflow/models/exam_paper.py

from paperflow.extensions import db
from paperflow.utils.clock import local_now


class ExamPaper(db.Model):
    __tablename__ = "exam_paper"

    id = db.Column(db.Integer, primary_key=True)

    subject_id = db.Column(
        db.Integer,
        db.ForeignKey("subject.id"),
        nullable=False,
        index=True
    )

    status = db.Column(
        db.String(30),
        nullable=False,
        default="Submitted"
    )
    # Submitted | CoE-approved | BoE-approved | Locked | Downloaded

    exam_name = db.Column(db.String(100))

    # Distribution slot: arbitration is scoped to the window of this value
    scheduled_at = db.Column(db.DateTime, nullable=True, index=True)

    # ----------------------------
    # Artifacts (object store keys)
    # ----------------------------
    storage_folder_path = db.Column(db.String(255), nullable=True)
    qp_file_path = db.Column(db.String(500), nullable=True)
    scheme_file_path = db.Column(db.String(500), nullable=True)

    # ----------------------------
    # Attribution
    # ----------------------------
    uploaded_by = db.Column(
        db.Integer,
        db.ForeignKey("users.id"),
        nullable=False
    )
    approved_by = db.Column(
        db.Integer,
        db.ForeignKey("users.id"),
        nullable=True
    )
    status_changed_by = db.Column(
        db.Integer,
        db.ForeignKey("users.id"),
        nullable=True
    )
    status_changed_at = db.Column(db.DateTime, nullable=True)

    # ----------------------------
    # Lock / retrieval flags
    # ----------------------------
    is_locked = db.Column(db.Boolean, nullable=False, default=False)
    locked_at = db.Column(db.DateTime, nullable=True)

    is_retrieved = db.Column(db.Boolean, nullable=False, default=False)
    retrieved_at = db.Column(db.DateTime, nullable=True)

    created_at = db.Column(
        db.DateTime,
        default=local_now,
        nullable=False
    )
    updated_at = db.Column(
        db.DateTime,
        default=local_now,
        onupdate=local_now,
        nullable=False
    )

    # ----------------------------
    # Relationships
    # ----------------------------
    subject = db.relationship(
        "Subject",
        backref=db.backref("papers", lazy=True)
    )

    uploader = db.relationship("User", foreign_keys=[uploaded_by])
    approver = db.relationship("User", foreign_keys=[approved_by])

    events = db.relationship(
        "PaperStatusEvent",
        back_populates="paper",
        lazy=True,
        order_by="PaperStatusEvent.id"
    )

    # ----------------------------
    # Helpers
    # ----------------------------
    @property
    def folder(self):
        return self.storage_folder_path or f"paper-{self.id}"

    def to_dict(self):
        return {
            "id": self.id,
            "subject_id": self.subject_id,
            "subject_code": self.subject.code if self.subject else None,
            "status": self.status,
            "scheduled_at": self.scheduled_at.isoformat() if self.scheduled_at else None,
            "qp_file_path": self.qp_file_path,
            "scheme_file_path": self.scheme_file_path,
            "approved_by": self.approved_by,
            "status_changed_by": self.status_changed_by,
            "is_locked": self.is_locked,
            "is_retrieved": self.is_retrieved,
            "retrieved_at": self.retrieved_at.isoformat() if self.retrieved_at else None,
        }

    def __repr__(self):
        return f"<ExamPaper {self.id} {self.status}>"
