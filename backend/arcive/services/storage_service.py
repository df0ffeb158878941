"""Object store for file bytes.

A bucket is a directory on local disk; keys are relative POSIX paths inside
it. Downloads go through time-limited HMAC-signed URLs served by the blob
endpoint, so the bucket directory itself is never exposed.
"""

import hashlib
import hmac
import logging
import os
import re
import secrets
import time
from pathlib import Path
from typing import Optional
from urllib.parse import quote, urlencode

from ..core.config import settings
from ..exceptions import InvalidSignatureError, NotFoundError, StorageError

logger = logging.getLogger(__name__)

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9._-]")
BLOB_ROUTE = "/api/blobs"


def sanitize_filename(name: str) -> str:
    """Replace every character outside ``[A-Za-z0-9._-]`` with ``_``."""
    return _UNSAFE_CHARS.sub("_", name) or "file"


def generate_file_key(owner_id: str, filename: str, now_ms: Optional[int] = None) -> str:
    """``users/{owner}/{epoch_ms}-{random}-{sanitized_name}``."""
    if now_ms is None:
        now_ms = int(time.time() * 1000)
    return f"users/{owner_id}/{now_ms}-{secrets.token_hex(4)}-{sanitize_filename(filename)}"


def _signature(key: str, expires: int, secret: str) -> str:
    message = f"{key}:{expires}".encode()
    return hmac.new(secret.encode(), message, hashlib.sha256).hexdigest()


class LocalObjectStore:
    """Filesystem-backed bucket.

    Public methods:
        put         -- write bytes under a key
        delete      -- remove a key; missing keys are ignored
        open        -- absolute path of an existing key
        signed_url  -- time-limited download URL for a key
        verify      -- check a signed URL's expiry and signature
    """

    def __init__(self, root: str, secret: str, ttl_seconds: int = 3600):
        self.root = Path(root).resolve()
        self.secret = secret
        self.ttl_seconds = ttl_seconds
        self.root.mkdir(parents=True, exist_ok=True)

    def _path_for(self, key: str) -> Path:
        path = (self.root / key).resolve()
        if path != self.root and self.root not in path.parents:
            raise InvalidSignatureError("Invalid object key")
        return path

    def put(self, key: str, data: bytes, content_type: str = "application/octet-stream") -> None:
        path = self._path_for(key)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            tmp = path.with_name(path.name + ".part")
            with open(tmp, "wb") as fh:
                fh.write(data)
            os.replace(tmp, path)
        except OSError as e:
            logger.error("Failed to store object %s: %s", key, e)
            raise StorageError("Failed to store file") from e
        logger.debug("Stored object", extra={"key": key, "size": len(data), "content_type": content_type})

    def delete(self, key: str) -> None:
        path = self._path_for(key)
        try:
            path.unlink()
        except FileNotFoundError:
            logger.info("Object already absent", extra={"key": key})
        except OSError as e:
            logger.error("Failed to delete object %s: %s", key, e)
            raise StorageError("Failed to delete file") from e

    def exists(self, key: str) -> bool:
        return self._path_for(key).is_file()

    def open(self, key: str) -> Path:
        path = self._path_for(key)
        if not path.is_file():
            raise NotFoundError("File content not found")
        return path

    def signed_url(self, key: str, ttl_seconds: Optional[int] = None, now: Optional[float] = None) -> str:
        if now is None:
            now = time.time()
        expires = int(now) + (ttl_seconds or self.ttl_seconds)
        query = urlencode({"expires": expires, "signature": _signature(key, expires, self.secret)})
        return f"{settings.public_app_url}{BLOB_ROUTE}/{quote(key)}?{query}"

    def verify(self, key: str, expires: int, signature: str, now: Optional[float] = None) -> None:
        """Raise InvalidSignatureError unless the URL is authentic and unexpired."""
        if now is None:
            now = time.time()
        if expires < now:
            raise InvalidSignatureError()
        expected = _signature(key, expires, self.secret)
        if not hmac.compare_digest(expected, signature):
            raise InvalidSignatureError()


_store: Optional[LocalObjectStore] = None


def get_object_store() -> LocalObjectStore:
    """FastAPI dependency returning the process-wide store."""
    global _store
    if _store is None:
        _store = LocalObjectStore(
            settings.storage_root,
            settings.session_secret_key,
            settings.signed_url_ttl_seconds,
        )
    return _store
