"""
Filesystem-backed object store for paper artifacts.

Artifacts are addressed by relative keys (``papers/<folder>/<attempt>/QP.docx``).
Downloads go through short-lived signed tokens rather than public paths:
``signed_get`` issues a URL, the ``/files/<token>`` route resolves it.
"""
import logging
from datetime import datetime, timezone
from pathlib import Path, PurePosixPath

from itsdangerous import BadSignature, URLSafeTimedSerializer

from paperflow.services.workflow_errors import StorageFailure

logger = logging.getLogger(__name__)


class ArtifactLinkError(Exception):
    """Raised when a download token is invalid or has expired."""


def _utcnow():
    return datetime.now(timezone.utc)


class LocalObjectStore:
    def __init__(self, app=None):
        self.root = None
        self.public_url = "/files"
        self._serializer = None
        if app is not None:
            self.init_app(app)

    def init_app(self, app):
        self.root = Path(app.config["OBJECT_STORE_ROOT"]).resolve()
        self.public_url = app.config.get("OBJECT_STORE_PUBLIC_URL", "/files").rstrip("/")
        self._serializer = URLSafeTimedSerializer(
            app.config["SECRET_KEY"], salt="paperflow-artifact"
        )
        app.extensions["object_store"] = self

    # ----------------------------
    # Paths
    # ----------------------------
    def _resolve(self, key: str) -> Path:
        if self.root is None:
            raise StorageFailure("Object store is not configured")

        relative = PurePosixPath(key)
        if relative.is_absolute() or ".." in relative.parts or not relative.parts:
            raise StorageFailure(f"Invalid artifact key '{key}'")

        return self.root.joinpath(*relative.parts)

    # ----------------------------
    # Contract
    # ----------------------------
    def put_artifact(self, key: str, data: bytes) -> str:
        target = self._resolve(key)
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(data)
        except OSError as e:
            logger.error("Upload of '%s' failed: %s", key, e)
            raise StorageFailure(f"Failed to upload '{key}'") from e
        logger.debug("Stored artifact '%s' (%d bytes)", key, len(data))
        return key

    def remove_artifact(self, key: str) -> None:
        target = self._resolve(key)
        try:
            target.unlink(missing_ok=True)
        except OSError as e:
            logger.error("Removal of '%s' failed: %s", key, e)
            raise StorageFailure(f"Failed to remove '{key}'") from e

    def exists(self, key: str) -> bool:
        return self._resolve(key).is_file()

    def signed_get(self, key: str, ttl: int) -> str:
        if not self.exists(key):
            raise StorageFailure(f"Artifact '{key}' does not exist")
        token = self._serializer.dumps({"key": key, "ttl": int(ttl)})
        return f"{self.public_url}/{token}"

    def resolve_token(self, token: str) -> Path:
        """Path of the artifact behind a signed token, if still valid."""
        try:
            payload, signed_at = self._serializer.loads(token, return_timestamp=True)
        except BadSignature as e:
            raise ArtifactLinkError("Invalid download link") from e

        age = (_utcnow() - signed_at).total_seconds()
        if age > payload["ttl"]:
            raise ArtifactLinkError("Download link has expired")

        path = self._resolve(payload["key"])
        if not path.is_file():
            raise ArtifactLinkError("Artifact no longer exists")
        return path
