"""Secure file serving from the download root.

Two layers keep requests inside the root:

1. ``sanitize_path`` rejects malformed relative paths (``..``, NUL bytes,
   backslashes, drive prefixes) before the filesystem is touched.
2. ``SecureFileServer.resolve`` canonicalizes root and target, following
   symlinks, and requires the target to sit under the root component-wise.
   A symlink inside the root pointing outside it is caught here.
"""

import logging
import re
from pathlib import Path, PurePosixPath

from fastapi.responses import FileResponse

from download_portal.core.errors import (
    AccessDeniedError,
    DownloadFileNotFoundError,
    MalformedPathError,
    ServerMisconfiguredError,
)
from download_portal.core.metrics import track_blocked_path
from download_portal.core.security_events import security_events

logger = logging.getLogger(__name__)

# "C:" style drive prefixes, meaningful to Windows path parsing
_DRIVE_PREFIX = re.compile(r"^[A-Za-z]:")

DOWNLOAD_HEADERS = {
    # Prevent caching in shared caches (CDNs, proxies)
    "Cache-Control": "private, no-store, no-cache, must-revalidate, max-age=0",
    "Pragma": "no-cache",
    "Expires": "0",
    "X-Content-Type-Options": "nosniff",
}


def sanitize_path(relative_path: str) -> PurePosixPath:
    """Normalize a caller-supplied path relative to the download root.

    Leading slashes are stripped, and empty and ``.`` components dropped.

    Raises:
        MalformedPathError: empty path, NUL byte, ``..`` component,
            backslash or drive prefix in a component
    """
    if not relative_path or "\x00" in relative_path:
        raise MalformedPathError()

    parts = []
    for component in relative_path.lstrip("/").split("/"):
        if component in ("", "."):
            continue
        if component == "..":
            raise MalformedPathError()
        if "\\" in component or _DRIVE_PREFIX.match(component):
            raise MalformedPathError()
        parts.append(component)

    if not parts:
        raise MalformedPathError()

    return PurePosixPath(*parts)


class SecureFileServer:
    """Serve regular files that live under one root directory."""

    def __init__(self, root: Path | str):
        self.root = Path(root)

    def _resolved_root(self) -> Path:
        try:
            root = self.root.resolve(strict=True)
        except (OSError, RuntimeError) as exc:
            logger.error("Downloads directory %s is missing: %s", self.root, exc)
            raise ServerMisconfiguredError("Downloads directory not configured") from exc
        if not root.is_dir():
            logger.error("Downloads directory %s is not a directory", self.root)
            raise ServerMisconfiguredError("Downloads directory not configured")
        return root

    def check_path(self, relative_path: str) -> PurePosixPath:
        """Sanitize a requested path, recording rejections."""
        try:
            return sanitize_path(relative_path)
        except MalformedPathError:
            track_blocked_path("malformed")
            security_events.log_malformed_path(relative_path)
            raise

    def resolve(self, relative_path: str) -> Path:
        """Map a relative path to a regular file under the root.

        Raises:
            MalformedPathError: path fails sanitization (400)
            DownloadFileNotFoundError: target missing or not a regular file (404)
            AccessDeniedError: target resolves outside the root (403)
            ServerMisconfiguredError: the root itself is missing (500)
        """
        safe_path = self.check_path(relative_path)
        root = self._resolved_root()

        try:
            target = (root / safe_path).resolve(strict=True)
        except (OSError, RuntimeError) as exc:
            # Missing file, or a component that is not a directory, or a symlink loop
            raise DownloadFileNotFoundError() from exc

        if not target.is_relative_to(root):
            logger.warning("Path traversal attempt detected: %s", relative_path)
            track_blocked_path("traversal")
            security_events.log_path_traversal(relative_path, str(target))
            raise AccessDeniedError()

        if not target.is_file():
            raise DownloadFileNotFoundError()

        return target

    def serve(self, relative_path: str) -> FileResponse:
        """Stream a file as an attachment named after the last path component."""
        target = self.resolve(relative_path)
        return FileResponse(
            target,
            filename=sanitize_path(relative_path).name,
            headers=DOWNLOAD_HEADERS,
        )
