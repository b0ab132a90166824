"""Tests for the filesystem object store and its signed links."""

from datetime import timedelta

import pytest

from paperflow.extensions import object_store
from paperflow.services import object_store as object_store_module
from paperflow.services.object_store import ArtifactLinkError
from paperflow.services.workflow_errors import StorageFailure


class TestArtifacts:
    def test_put_and_remove(self, app):
        key = object_store.put_artifact("papers/p1/a/QP.docx", b"content")

        assert object_store.exists(key)
        assert (object_store.root / "papers" / "p1" / "a" / "QP.docx").read_bytes() == b"content"

        object_store.remove_artifact(key)
        assert not object_store.exists(key)

    def test_remove_missing_is_ok(self, app):
        object_store.remove_artifact("papers/none/QP.docx")

    @pytest.mark.parametrize("key", ["../escape.docx", "papers/../../etc/passwd", "/abs/QP.docx", ""])
    def test_keys_cannot_escape_root(self, app, key):
        with pytest.raises(StorageFailure):
            object_store.put_artifact(key, b"x")


class TestSignedLinks:
    def test_signed_link_resolves(self, app):
        key = object_store.put_artifact("papers/p1/a/QP.docx", b"content")
        url = object_store.signed_get(key, ttl=60)

        assert url.startswith("/files/")
        token = url.rsplit("/", 1)[1]
        assert object_store.resolve_token(token).read_bytes() == b"content"

    def test_no_link_for_missing_artifact(self, app):
        with pytest.raises(StorageFailure):
            object_store.signed_get("papers/p1/missing.docx", ttl=60)

    def test_tampered_token(self, app):
        key = object_store.put_artifact("papers/p1/a/QP.docx", b"content")
        token = object_store.signed_get(key, ttl=60).rsplit("/", 1)[1]

        with pytest.raises(ArtifactLinkError):
            object_store.resolve_token(token[:-2] + "xx")

    def test_expired_token(self, app, monkeypatch):
        key = object_store.put_artifact("papers/p1/a/QP.docx", b"content")
        token = object_store.signed_get(key, ttl=60).rsplit("/", 1)[1]

        real_now = object_store_module._utcnow
        monkeypatch.setattr(object_store_module, "_utcnow", lambda: real_now() + timedelta(seconds=120))

        with pytest.raises(ArtifactLinkError):
            object_store.resolve_token(token)
