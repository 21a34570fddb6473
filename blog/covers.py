"""
blog/covers.py -- Filesystem storage for post cover images.

Files land in one flat directory under a random name, keeping only a cleaned
extension from the client's filename. The client-supplied name never becomes
part of a path, so uploads cannot traverse out of the directory or overwrite
each other.

The directory is served read-only at /uploads by api/main.py. The path
stored on a post is that public form: "uploads/<name>".
"""

import logging
import re
import secrets
from pathlib import Path
from typing import Optional

from core.errors import CoverTooLarge

logger = logging.getLogger("inkpost.posts")

PUBLIC_PREFIX = "uploads"

_EXT_RE = re.compile(r"^[a-z0-9]{1,10}$")


def _extension(filename: Optional[str]) -> str:
    """Return ".ext" from the last dot-suffix of filename, or "" if unusable."""
    if not filename or "." not in filename:
        return ""
    ext = filename.rsplit(".", 1)[1].lower()
    return f".{ext}" if _EXT_RE.match(ext) else ""


class CoverStorage:
    def __init__(self, directory: Path, max_bytes: int = 5 * 1024 * 1024) -> None:
        self.directory = Path(directory)
        self.max_bytes = max_bytes
        self.directory.mkdir(parents=True, exist_ok=True)

    def save(self, filename: Optional[str], data: bytes) -> str:
        """Write data under a fresh random name and return its public path.

        Raises CoverTooLarge if data exceeds max_bytes.
        """
        if len(data) > self.max_bytes:
            raise CoverTooLarge(detail=f"limit is {self.max_bytes} bytes")
        name = secrets.token_hex(16) + _extension(filename)
        (self.directory / name).write_bytes(data)
        return f"{PUBLIC_PREFIX}/{name}"

    def resolve(self, public_path: Optional[str]) -> Optional[Path]:
        """Map a public path (or bare file name) to the stored file, or None.

        Only the final path component is used, so a tampered value cannot
        point outside the upload directory.
        """
        name = Path(public_path or "").name
        if name in ("", ".", ".."):
            return None
        target = self.directory / name
        return target if target.is_file() else None

    def remove(self, public_path: Optional[str]) -> None:
        """Delete a cover previously returned by save(). Missing files are ignored."""
        target = self.resolve(public_path)
        if target is None:
            if public_path:
                logger.info("Cover %s already gone", public_path)
            return
        target.unlink(missing_ok=True)
