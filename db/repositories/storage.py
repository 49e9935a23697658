"""
Blob storage backends for original upload bytes.

Both backends refuse to overwrite an existing object: storage paths are
freshly generated per upload, so an existing object means something is
wrong and the write must fail rather than clobber it.
"""

from __future__ import annotations

import asyncio
import hashlib
import hmac
import logging
import secrets
import time
from functools import lru_cache
from pathlib import Path
from urllib.parse import quote

import requests

from app.config import StorageSettings, get_storage_settings
from uploads.errors import StorageError

logger = logging.getLogger(__name__)


class LocalBlobStore:
    """
    Local filesystem storage backend with HMAC-signed, expiring download URLs.
    """

    def __init__(
        self,
        root_dir: str | Path = "data/uploads",
        *,
        public_base_url: str = "http://localhost:8000/files",
        signing_secret: str | None = None,
    ) -> None:
        self._root_dir = Path(root_dir)
        self._public_base_url = public_base_url.rstrip("/")
        self._signing_secret = (signing_secret or secrets.token_hex(32)).encode("utf-8")

    async def put(self, path: str, content: bytes, content_type: str) -> None:
        await asyncio.to_thread(self._write, path, content)

    async def signed_url(self, path: str, ttl_seconds: int) -> str:
        target = self._resolve(path)
        if not target.exists():
            raise StorageError(f"Stored object not found: {path}")
        expires = int(time.time()) + max(1, ttl_seconds)
        signature = self._sign(path, expires)
        return f"{self._public_base_url}/{quote(path)}?expires={expires}&signature={signature}"

    def open_signed(self, path: str, expires: int, signature: str) -> Path:
        """
        Return the file behind a signed URL after checking signature and expiry.
        """

        if expires < int(time.time()):
            raise StorageError("Signed URL has expired.")
        if not hmac.compare_digest(self._sign(path, expires), signature):
            raise StorageError("Signed URL signature is invalid.")
        target = self._resolve(path)
        if not target.is_file():
            raise StorageError(f"Stored object not found: {path}")
        return target

    def _write(self, path: str, content: bytes) -> None:
        target = self._resolve(path)
        if target.exists():
            raise StorageError(f"Storage object already exists: {path}")

        tmp_path = target.with_suffix(f"{target.suffix}.tmp")
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            with tmp_path.open("xb") as handle:
                handle.write(content)
            tmp_path.replace(target)
        except OSError as exc:
            raise StorageError("Failed to write uploaded file to storage.") from exc
        finally:
            if tmp_path.exists():
                try:
                    tmp_path.unlink()
                except OSError:
                    pass

    def _resolve(self, path: str) -> Path:
        root = self._root_dir.resolve()
        target = (root / path).resolve()
        if not target.is_relative_to(root):
            raise StorageError(f"Storage path escapes the storage root: {path}")
        return target

    def _sign(self, path: str, expires: int) -> str:
        message = f"{path}:{expires}".encode("utf-8")
        return hmac.new(self._signing_secret, message, hashlib.sha256).hexdigest()


class SupabaseBlobStore:
    """
    Supabase Storage backend using the storage REST API.
    """

    def __init__(
        self,
        *,
        base_url: str,
        service_role_key: str,
        bucket: str,
        timeout_seconds: float = 15.0,
        session: requests.Session | None = None,
    ) -> None:
        self._storage_url = f"{base_url.rstrip('/')}/storage/v1"
        self._service_role_key = service_role_key
        self._bucket = bucket
        self._timeout_seconds = timeout_seconds
        self._session = session or requests.Session()

    async def put(self, path: str, content: bytes, content_type: str) -> None:
        await asyncio.to_thread(self._upload, path, content, content_type)

    async def signed_url(self, path: str, ttl_seconds: int) -> str:
        return await asyncio.to_thread(self._create_signed_url, path, ttl_seconds)

    def _upload(self, path: str, content: bytes, content_type: str) -> None:
        url = f"{self._storage_url}/object/{self._bucket}/{quote(path)}"
        headers = {**self._auth_headers(), "Content-Type": content_type, "x-upsert": "false"}
        try:
            response = self._session.post(url, data=content, headers=headers, timeout=self._timeout_seconds)
        except requests.RequestException as exc:
            raise StorageError("Failed to upload file to storage.") from exc

        if response.status_code >= 400:
            logger.error(
                "Storage upload failed bucket=%s path=%s status=%s body=%s",
                self._bucket,
                path,
                response.status_code,
                response.text[:500],
            )
            raise StorageError(f"Failed to upload file: HTTP {response.status_code}")

    def _create_signed_url(self, path: str, ttl_seconds: int) -> str:
        url = f"{self._storage_url}/object/sign/{self._bucket}/{quote(path)}"
        try:
            response = self._session.post(
                url,
                json={"expiresIn": max(1, ttl_seconds)},
                headers=self._auth_headers(),
                timeout=self._timeout_seconds,
            )
            response.raise_for_status()
            signed_path = response.json().get("signedURL")
        except (requests.RequestException, ValueError) as exc:
            raise StorageError("Failed to generate signed URL.") from exc

        if not signed_path:
            raise StorageError("Failed to generate signed URL.")
        return f"{self._storage_url}{signed_path}"

    def _auth_headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self._service_role_key}",
            "apikey": self._service_role_key,
        }


def build_blob_store(settings: StorageSettings) -> LocalBlobStore | SupabaseBlobStore:
    """
    Construct the configured blob store backend.
    """

    if settings.backend == "supabase":
        if not settings.supabase_url or not settings.supabase_service_role_key:
            raise RuntimeError("SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY are required for the supabase backend.")
        return SupabaseBlobStore(
            base_url=settings.supabase_url,
            service_role_key=settings.supabase_service_role_key,
            bucket=settings.supabase_bucket,
            timeout_seconds=settings.http_timeout_seconds,
        )
    return LocalBlobStore(
        settings.local_root_dir,
        public_base_url=settings.public_base_url,
        signing_secret=settings.signing_secret,
    )


@lru_cache(maxsize=1)
def get_blob_store() -> LocalBlobStore | SupabaseBlobStore:
    """
    Return the process-wide blob store for the configured backend.
    """

    return build_blob_store(get_storage_settings())
