"""Pytest fixtures for PaperFlow tests."""

import pytest

from paperflow import create_app
from paperflow.config import TestConfig
from paperflow.extensions import db, object_store
from paperflow.models.exam_paper import ExamPaper
from paperflow.models.subject import Subject
from paperflow.services.status_transitions import PaperStatus
from paperflow.services.user_service import create_user
from paperflow.utils.clock import local_now

PASSWORD = "secret-pass"


@pytest.fixture
def app(tmp_path):
    """Application bound to an in-memory database and a temp object store."""

    class _Config(TestConfig):
        OBJECT_STORE_ROOT = str(tmp_path / "store")

    app = create_app(_Config)
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def users(app):
    """One user per role, keyed by role name; values are user ids."""
    ids = {}
    for role in ("faculty", "coe", "boe", "principal", "admin"):
        ids[role] = create_user(f"{role}-user", PASSWORD, role).id
    ids["coe2"] = create_user("coe-second", PASSWORD, "coe").id
    return ids


@pytest.fixture
def subject(app):
    s = Subject(code="CS501", name="Data Structures")
    db.session.add(s)
    db.session.commit()
    return s


@pytest.fixture
def make_paper(app, users, subject):
    """Factory inserting a paper directly, with its original artifacts uploaded."""

    def _make(status=PaperStatus.SUBMITTED, subject_id=None, scheduled_at=None, with_files=True):
        status = PaperStatus(status)
        paper = ExamPaper(
            subject_id=subject_id or subject.id,
            status=status.value,
            uploaded_by=users["faculty"],
            scheduled_at=scheduled_at or local_now(),
            is_locked=status.rank >= PaperStatus.LOCKED.rank,
        )
        db.session.add(paper)
        db.session.flush()

        paper.storage_folder_path = f"paper-{paper.id}"
        if with_files:
            paper.qp_file_path = object_store.put_artifact(
                f"papers/{paper.storage_folder_path}/original/QP.docx", b"original question paper"
            )
            paper.scheme_file_path = object_store.put_artifact(
                f"papers/{paper.storage_folder_path}/original/Scheme.docx", b"original scheme"
            )

        db.session.commit()
        return paper

    return _make


@pytest.fixture
def login(client):
    def _login(role):
        username = "coe-second" if role == "coe2" else f"{role}-user"
        response = client.post("/login", json={"username": username, "password": PASSWORD})
        assert response.status_code == 200
        return response

    return _login
