# product_form/utils/images.py
import io
import os
import logging
from pathlib import Path
from typing import Optional, Set
from PIL import Image, UnidentifiedImageError

logger = logging.getLogger(__name__)

# safe image extensions we keep for preview files
ALLOWED_EXT = {".jpg", ".jpeg", ".png", ".webp", ".gif"}


def _ensure_dir(path: Path):
    path.mkdir(parents=True, exist_ok=True)


def _safe_ext(filename: str) -> str:
    _, ext = os.path.splitext(filename or "")
    return ext.lower()


class PreviewStore:
    """
    Writes local previews for newly attached images under base_dir and
    releases them again. Each preview is released at most once.
    """

    def __init__(self, base_dir, size: int = 300):
        self.base_dir = Path(base_dir)
        self.size = int(size)
        self._live: Set[Path] = set()

    def create(self, token: str, filename: str, contents: bytes) -> Path:
        """
        Create a thumbnail preview for `contents`. When the bytes cannot be
        decoded as an image the raw payload is written instead.
        Returns the preview path.
        """
        _ensure_dir(self.base_dir)
        ext = _safe_ext(filename)
        if ext not in ALLOWED_EXT:
            ext = ".bin"
        path = self.base_dir / f"{token}{ext}"

        try:
            im = Image.open(io.BytesIO(contents))
            im = im.convert("RGB")
            im.thumbnail((self.size, self.size))
            path = path.with_suffix(".jpg")
            im.save(path, format="JPEG", optimize=True, quality=85)
        except (UnidentifiedImageError, OSError, ValueError) as e:
            logger.warning("Could not build thumbnail for %s (%s); using raw payload", filename, e)
            path.write_bytes(contents)

        self._live.add(path)
        return path

    def release(self, path: Optional[Path]) -> bool:
        """Delete a preview. Returns False when it was already released or unknown."""
        if path is None or path not in self._live:
            return False
        self._live.discard(path)
        path.unlink(missing_ok=True)
        return True

    def release_all(self) -> int:
        count = 0
        for path in list(self._live):
            if self.release(path):
                count += 1
        return count

    def is_live(self, path: Optional[Path]) -> bool:
        return path is not None and path in self._live

    def __len__(self) -> int:
        return len(self._live)
