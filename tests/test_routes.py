"""End-to-end tests through the Flask test client."""

from io import BytesIO

from paperflow.extensions import db
from paperflow.models.exam_paper import ExamPaper
from paperflow.models.user import User
from paperflow.services.status_transitions import PaperStatus


class TestAuth:
    def test_bad_credentials(self, client, users):
        response = client.post("/login", json={"username": "coe-user", "password": "nope"})
        assert response.status_code == 401

    def test_unknown_role_cannot_sign_in(self, client, app):
        legacy = User(username="legacy-staff", role="staff")
        legacy.set_password("secret-pass")
        db.session.add(legacy)
        db.session.commit()

        response = client.post("/login", json={"username": "legacy-staff", "password": "secret-pass"})
        assert response.status_code == 401

    def test_username_is_trimmed(self, client, users):
        response = client.post("/login", json={"username": " coe-user ", "password": "secret-pass"})
        assert response.status_code == 200
        assert response.get_json()["role"] == "coe"

    def test_requires_login(self, client, make_paper):
        paper = make_paper()
        response = client.post(f"/papers/{paper.id}/transition", json={"role": "coe", "confirm": True})
        assert response.status_code == 401


class TestTransitionRoutes:
    def test_approve_flow(self, client, login, make_paper, users):
        paper = make_paper()
        login("coe")

        action = client.get(f"/papers/{paper.id}/action").get_json()["action"]
        assert action["label"] == "Approve"

        response = client.post(f"/papers/{paper.id}/transition", json={"role": "coe"})
        assert response.status_code == 428
        assert response.get_json()["error"] == "confirmation_required"

        response = client.post(f"/papers/{paper.id}/transition", json={"role": "coe", "confirm": True})
        assert response.status_code == 200
        assert response.get_json()["status"] == "CoE-approved"

        response = client.post(f"/papers/{paper.id}/transition", json={"role": "coe", "confirm": True})
        assert response.status_code == 409
        assert response.get_json()["error"] == "illegal_transition"

    def test_claimed_role_is_not_trusted(self, client, login, make_paper):
        paper = make_paper(PaperStatus.REVIEWED_BY_AUTHORITY)
        login("coe")

        response = client.post(f"/papers/{paper.id}/transition", json={"role": "boe", "confirm": True})

        assert response.status_code == 403
        assert db.session.get(ExamPaper, paper.id).status == "CoE-approved"

    def test_unknown_paper(self, client, login, users):
        login("coe")
        response = client.post("/papers/999/transition", json={"role": "coe", "confirm": True})
        assert response.status_code == 404

    def test_board_uploads_files(self, client, login, make_paper):
        paper = make_paper(PaperStatus.REVIEWED_BY_AUTHORITY)
        login("boe")

        response = client.post(
            f"/papers/{paper.id}/artifacts",
            data={
                "qp_file": (BytesIO(b"new qp"), "QP.docx"),
                "scheme_file": (BytesIO(b"new scheme"), "Scheme.docx"),
            },
            content_type="multipart/form-data",
        )

        assert response.status_code == 200
        assert response.get_json()["status"] == "CoE-approved"

    def test_board_upload_needs_both_files(self, client, login, make_paper):
        paper = make_paper(PaperStatus.REVIEWED_BY_AUTHORITY)
        login("boe")

        response = client.post(
            f"/papers/{paper.id}/artifacts",
            data={"qp_file": (BytesIO(b"new qp"), "QP.docx")},
            content_type="multipart/form-data",
        )

        assert response.status_code == 400
        assert response.get_json()["error"] == "missing_artifacts"

    def test_rollback_is_admin_only(self, client, login, make_paper):
        paper = make_paper(PaperStatus.LOCKED)
        payload = {"target_status": "Submitted", "reason": "Leak suspected", "confirm": True}

        login("coe")
        assert client.post(f"/papers/{paper.id}/rollback", json=payload).status_code == 403

        login("admin")
        response = client.post(f"/papers/{paper.id}/rollback", json=payload)
        assert response.status_code == 200
        assert response.get_json()["status"] == "Submitted"


class TestRetrievalRoutes:
    def test_download_once_per_subject(self, client, login, make_paper):
        first = make_paper(PaperStatus.LOCKED)
        second = make_paper(PaperStatus.LOCKED)
        login("principal")

        response = client.post(f"/papers/{first.id}/retrieve")
        assert response.status_code == 200
        body = response.get_json()
        assert body["retrieved"] is True

        download = client.get(body["url"])
        assert download.status_code == 200
        assert download.data == b"original question paper"

        response = client.post(f"/papers/{second.id}/retrieve")
        assert response.status_code == 409
        assert response.get_json()["error"] == "already_retrieved"
        assert "url" not in response.get_json()

        board = client.get("/distribution").get_json()
        assert board[0]["retrieved"] is True

    def test_only_principal_may_download(self, client, login, make_paper):
        paper = make_paper(PaperStatus.LOCKED)
        login("coe")

        assert client.post(f"/papers/{paper.id}/retrieve").status_code == 403
        assert db.session.get(ExamPaper, paper.id).status == "Locked"

    def test_csv_export(self, client, login, make_paper):
        make_paper(PaperStatus.LOCKED)
        login("coe")

        response = client.get("/distribution/export")
        assert response.status_code == 200
        assert response.mimetype == "text/csv"
        assert b"CS501" in response.data

    def test_bad_token(self, client):
        assert client.get("/files/not-a-token").status_code == 410


class TestAdminRoutes:
    def test_admin_creates_user_who_can_sign_in(self, client, login, users):
        login("admin")

        response = client.post(
            "/admin/users",
            json={"username": "principal-two", "password": "another-pass", "role": "principal"},
        )
        assert response.status_code == 201
        assert response.get_json()["role"] == "principal"

        listed = [u["username"] for u in client.get("/admin/users").get_json()]
        assert "principal-two" in listed

        client.get("/logout")
        response = client.post("/login", json={"username": "principal-two", "password": "another-pass"})
        assert response.status_code == 200

    def test_rejects_unknown_role_and_duplicates(self, client, login, users):
        login("admin")

        response = client.post("/admin/users", json={"username": "x", "password": "y", "role": "staff"})
        assert response.status_code == 400

        response = client.post("/admin/users", json={"username": "coe-user", "password": "y", "role": "coe"})
        assert response.status_code == 400
        assert response.get_json()["message"] == "Username already exists"

    def test_only_admin_manages_users(self, client, login, users):
        login("coe")
        assert client.get("/admin/users").status_code == 403
        assert client.post(
            "/admin/users", json={"username": "x", "password": "y", "role": "coe"}
        ).status_code == 403
