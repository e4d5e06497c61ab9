from __future__ import annotations

import hashlib
import hmac
import logging
import shutil
import time
import uuid
from dataclasses import dataclass
from pathlib import Path
from urllib.parse import quote, urlencode

from app.core.config import settings

logger = logging.getLogger(__name__)

REPORTS_BUCKET = "reports"
ICONS_BUCKET = "company-icons"
PUBLIC_BUCKETS = {ICONS_BUCKET}
BUCKETS = {REPORTS_BUCKET, ICONS_BUCKET}

# Staged blobs live here until a cascade delete commits or rolls back.
TRASH_DIR = ".trash"


class BlobStorageError(RuntimeError):
    """Raised when a blob cannot be written, moved or located."""


class BlobNotFoundError(BlobStorageError):
    pass


@dataclass
class StagedBlob:
    bucket: str
    key: str
    staged_path: Path
    # .trash/<uuid> holding this blob; removed once restored or purged.
    slot: Path


class BlobStore:
    """
    Filesystem-backed blob store with two buckets.

    Icons are served publicly; report PDFs are only reachable through
    HMAC-signed, time-limited URLs.
    """

    def __init__(self, root: str | Path, signing_secret: str, public_base_url: str):
        self.root = Path(root)
        self.signing_secret = signing_secret.encode("utf-8")
        self.public_base_url = public_base_url.rstrip("/")

    def _path(self, bucket: str, key: str) -> Path:
        if bucket not in BUCKETS:
            raise BlobNotFoundError(f"Unknown bucket: {bucket}")
        bucket_root = (self.root / bucket).resolve()
        target = (bucket_root / key).resolve()
        if bucket_root not in target.parents:
            raise BlobNotFoundError(f"Invalid blob key: {key}")
        return target

    def put(self, bucket: str, key: str, content: bytes) -> None:
        target = self._path(bucket, key)
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            with open(target, "wb") as f:
                f.write(content)
        except OSError as exc:
            raise BlobStorageError(f"Failed to store {bucket}/{key}") from exc

    def exists(self, bucket: str, key: str) -> bool:
        try:
            return self._path(bucket, key).is_file()
        except BlobNotFoundError:
            return False

    def locate(self, bucket: str, key: str) -> Path:
        target = self._path(bucket, key)
        if not target.is_file():
            raise BlobNotFoundError(f"{bucket}/{key} does not exist")
        return target

    def remove(self, bucket: str, key: str) -> bool:
        """Delete a blob; returns False when it was already gone."""
        target = self._path(bucket, key)
        try:
            target.unlink()
        except FileNotFoundError:
            return False
        except OSError as exc:
            raise BlobStorageError(f"Failed to remove {bucket}/{key}") from exc
        return True

    # --- staging (compensating actions for cascade deletes) ---

    def stage(self, bucket: str, key: str) -> StagedBlob | None:
        """Move a blob out of its bucket. Returns None when there is nothing to move."""
        source = self._path(bucket, key)
        if not source.is_file():
            return None
        slot = self.root / TRASH_DIR / uuid.uuid4().hex
        staged_path = slot / bucket / key
        try:
            staged_path.parent.mkdir(parents=True, exist_ok=True)
            shutil.move(str(source), str(staged_path))
        except OSError as exc:
            raise BlobStorageError(f"Failed to stage {bucket}/{key}") from exc
        return StagedBlob(bucket=bucket, key=key, staged_path=staged_path, slot=slot)

    def restore(self, staged: StagedBlob) -> None:
        target = self._path(staged.bucket, staged.key)
        target.parent.mkdir(parents=True, exist_ok=True)
        shutil.move(str(staged.staged_path), str(target))
        shutil.rmtree(staged.slot, ignore_errors=True)

    def purge(self, staged: StagedBlob) -> None:
        try:
            shutil.rmtree(staged.slot)
        except FileNotFoundError:
            return
        except OSError as exc:
            raise BlobStorageError(f"Failed to purge staged {staged.bucket}/{staged.key}") from exc

    # --- URLs ---

    def public_url(self, bucket: str, key: str) -> str:
        return f"{self.public_base_url}/storage/{bucket}/{quote(key)}"

    def _signature(self, bucket: str, key: str, expires: int) -> str:
        message = f"{bucket}/{key}:{expires}".encode("utf-8")
        return hmac.new(self.signing_secret, message, hashlib.sha256).hexdigest()

    def signed_url(self, bucket: str, key: str, ttl_seconds: int, now: float | None = None) -> tuple[str, int]:
        expires = int((now if now is not None else time.time()) + ttl_seconds)
        query = urlencode({"expires": expires, "signature": self._signature(bucket, key, expires)})
        return f"{self.public_url(bucket, key)}?{query}", expires

    def verify_signature(
        self,
        bucket: str,
        key: str,
        expires: int | None,
        signature: str | None,
        now: float | None = None,
    ) -> bool:
        if expires is None or not signature:
            return False
        if expires < (now if now is not None else time.time()):
            return False
        return hmac.compare_digest(self._signature(bucket, key, expires), signature)


def get_blob_store() -> BlobStore:
    return BlobStore(settings.storage_dir, settings.storage_signing_secret, settings.public_base_url)


__all__ = [
    "BUCKETS",
    "ICONS_BUCKET",
    "PUBLIC_BUCKETS",
    "REPORTS_BUCKET",
    "BlobNotFoundError",
    "BlobStorageError",
    "BlobStore",
    "StagedBlob",
    "get_blob_store",
]
