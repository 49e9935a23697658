"""
uploads/naming.py

Storage naming for validated uploads.

Storage names are synthesized from a random UUID and the extension of the
*validated* type; the client filename never reaches a storage path. The
client filename is only sanitized for display and audit metadata.
"""

from __future__ import annotations

import re
import uuid

from uploads.errors import StoragePathError
from uploads.formats import extension_for

ALLOWED_STORAGE_ROOTS: tuple[str, ...] = (
    "org_branding",
    "certificate_templates",
    "file_imports",
    "certificates",
    "exports",
    "deliveries",
    "invoices",
)
MAX_PATH_LENGTH = 512
MAX_DISPLAY_NAME_LENGTH = 255
UNNAMED = "unnamed"

_PATH_SEGMENT = re.compile(r"^[A-Za-z0-9_-]+$")
_PATH_SEPARATORS = re.compile(r"[\\/]")
_UNSAFE_DISPLAY_CHARS = re.compile(r"[^A-Za-z0-9._-]")


def generate_secure_filename(validated_type: str) -> str:
    """
    Return ``<uuid4>.<ext>`` for a validated MIME type.
    """

    return f"{uuid.uuid4()}.{extension_for(validated_type)}"


def generate_storage_path(bucket: str, tenant_id: str, validated_type: str) -> str:
    """
    Build a tenant-scoped storage path for a freshly validated upload.

    Example: ``file_imports/<tenant_id>/550e8400-e29b-41d4-a716-446655440000.csv``
    """

    for label, segment in (("bucket", bucket), ("tenant_id", tenant_id)):
        if not segment or not _PATH_SEGMENT.match(segment):
            raise ValueError(f"{label} must be a single path segment of [A-Za-z0-9_-]: {segment!r}")

    return f"{bucket}/{tenant_id}/{generate_secure_filename(validated_type)}"


def validate_storage_path(path: str, expected_root: str | None = None) -> None:
    """
    Check a storage path against the allowed root prefixes and length limit.
    """

    if not path:
        raise StoragePathError("INVALID_STORAGE_PATH", "Storage path is required", details={"path": None})

    if len(path) > MAX_PATH_LENGTH:
        raise StoragePathError(
            "INVALID_STORAGE_PATH",
            f"Storage path exceeds maximum length of {MAX_PATH_LENGTH} characters",
            details={"path": path, "path_length": len(path), "max_length": MAX_PATH_LENGTH},
        )

    segments = path.split("/")
    root = segments[0]
    if root not in ALLOWED_STORAGE_ROOTS:
        raise StoragePathError(
            "INVALID_STORAGE_PATH",
            "Storage path must start with one of the allowed roots: " + ", ".join(ALLOWED_STORAGE_ROOTS),
            details={"path": path, "root": root, "allowed_roots": list(ALLOWED_STORAGE_ROOTS)},
        )

    if expected_root is not None and root != expected_root:
        raise StoragePathError(
            "INVALID_STORAGE_PATH",
            f"Storage path must start with expected root: {expected_root}",
            details={"path": path, "root": root, "expected_root": expected_root},
        )

    if any(segment in {"", ".", ".."} for segment in segments) or "\\" in path:
        raise StoragePathError(
            "INVALID_STORAGE_PATH",
            "Storage path contains empty or relative segments",
            details={"path": path},
        )


def sanitize_display_name(client_filename: str | None, max_length: int = MAX_DISPLAY_NAME_LENGTH) -> str:
    """
    Make a client filename safe to store as display/audit metadata.

    Never use the result to build a storage path, a read path or a command
    argument.
    """

    if not client_filename:
        return UNNAMED

    basename = _PATH_SEPARATORS.split(client_filename)[-1]
    sanitized = _UNSAFE_DISPLAY_CHARS.sub("_", basename)

    if len(sanitized) > max_length:
        stem, dot, ext = sanitized.rpartition(".")
        if dot and stem and len(ext) + 1 < max_length:
            return f"{stem[: max_length - len(ext) - 1]}.{ext}"
        return sanitized[:max_length]

    return sanitized or UNNAMED


def extract_display_extension(client_filename: str | None) -> str | None:
    """
    Lower-cased extension of the sanitized client filename, for display only.
    """

    stem, dot, ext = sanitize_display_name(client_filename).rpartition(".")
    if not dot or not ext:
        return None
    return ext.lower()
