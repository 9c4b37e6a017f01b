"""
Storage for uploaded images and their thumbnails.

Jobs only carry opaque location handles. This module turns uploaded bytes
into handles and handles back into bytes. Supported handles:

    - local paths and ``file://`` URIs
    - ``http://`` / ``https://`` URLs (fetched with httpx)
"""

import io
import uuid
from datetime import datetime
from pathlib import Path, PureWindowsPath
from typing import Optional, Tuple
from urllib.parse import unquote, urlparse
from urllib.request import url2pathname

import httpx
from PIL import Image, UnidentifiedImageError

from sportlens.jobs.errors import ImageFetchError
from sportlens.utils.logging_config import get_logger

logger = get_logger(__name__)

THUMBNAIL_SIZE = (200, 200)

MIME_TYPES = {
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".png": "image/png",
    ".gif": "image/gif",
    ".webp": "image/webp",
    ".bmp": "image/bmp",
    ".tif": "image/tiff",
    ".tiff": "image/tiff",
}


def guess_mime_type(handle: str) -> str:
    """
    Get MIME type from the handle's extension.

    Args:
        handle: Location handle or filename.

    Returns:
        MIME type string, image/jpeg when unknown.
    """
    path = urlparse(handle).path or handle
    return MIME_TYPES.get(Path(unquote(path)).suffix.lower(), "image/jpeg")


class ImageStore:
    """
    Stores uploads under ``base_dir`` and resolves handles to bytes.

    Layout:
        {base_dir}/uploads/       # Original uploaded files
        {base_dir}/thumbnails/    # 200x200 JPEG thumbnails
    """

    def __init__(self, base_dir: Path, http_timeout: float = 30.0):
        self.base_dir = Path(base_dir)
        self.uploads_dir = self.base_dir / "uploads"
        self.thumbnails_dir = self.base_dir / "thumbnails"
        self.uploads_dir.mkdir(parents=True, exist_ok=True)
        self.thumbnails_dir.mkdir(parents=True, exist_ok=True)
        self.http_timeout = http_timeout

    def save_upload(self, filename: str, data: bytes) -> Tuple[str, str]:
        """
        Persist uploaded bytes and build a thumbnail.

        Args:
            filename: Client-provided filename.
            data: Raw image bytes.

        Returns:
            Tuple of (source_uri, thumbnail_uri). When a thumbnail cannot be
            built the source handle doubles as the thumbnail handle.
        """
        safe_name = Path(filename).name or "image"
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        stored_name = f"{timestamp}_{uuid.uuid4().hex[:8]}_{safe_name}"
        source_path = self.uploads_dir / stored_name
        source_path.write_bytes(data)
        source_uri = source_path.resolve().as_uri()

        thumbnail_path = self._build_thumbnail(source_path.stem, data)
        thumbnail_uri = thumbnail_path.resolve().as_uri() if thumbnail_path else source_uri

        logger.debug(f"Stored upload {safe_name} at {source_path}")
        return source_uri, thumbnail_uri

    def _build_thumbnail(self, stem: str, data: bytes) -> Optional[Path]:
        try:
            with Image.open(io.BytesIO(data)) as img:
                img.thumbnail(THUMBNAIL_SIZE)
                thumb = img.convert("RGB")
                path = self.thumbnails_dir / f"{stem}_thumb.jpg"
                thumb.save(path, format="JPEG", quality=85)
                return path
        except (UnidentifiedImageError, OSError) as e:
            logger.warning(f"Could not build thumbnail for {stem}: {e}")
            return None

    def fetch_bytes(self, handle: str) -> bytes:
        """
        Fetch the bytes behind a location handle.

        Args:
            handle: Local path, file:// URI or http(s) URL.

        Returns:
            Raw image bytes.

        Raises:
            ImageFetchError: If the bytes cannot be obtained or are empty.
        """
        parsed = urlparse(handle)
        # urlparse reads a drive letter ("C:\\img.jpg") as a one-letter scheme
        is_drive_path = len(parsed.scheme) == 1 and bool(PureWindowsPath(handle).drive)

        if parsed.scheme in ("http", "https"):
            data = self._fetch_remote(handle)
        elif is_drive_path or parsed.scheme in ("", "file"):
            path = Path(url2pathname(parsed.path)) if parsed.scheme == "file" else Path(handle)
            try:
                data = path.read_bytes()
            except OSError as e:
                raise ImageFetchError(handle, str(e)) from e
        else:
            raise ImageFetchError(handle, f"unsupported scheme '{parsed.scheme}'")

        if not data:
            raise ImageFetchError(handle, "empty image")
        return data

    def _fetch_remote(self, url: str) -> bytes:
        try:
            resp = httpx.get(url, timeout=self.http_timeout, follow_redirects=True)
            resp.raise_for_status()
        except httpx.HTTPError as e:
            raise ImageFetchError(url, str(e)) from e
        return resp.content
