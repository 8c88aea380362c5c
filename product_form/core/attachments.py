from __future__ import annotations
import logging
import uuid
from typing import Iterable, Optional, Sequence, Tuple

from product_form.models.images import ImageRef, LocalFile, PendingImage, PersistedImage
from product_form.utils.images import PreviewStore

logger = logging.getLogger(__name__)

Images = Tuple[ImageRef, ...]


class AttachmentError(ValueError):
    pass


class ImageNotFoundError(AttachmentError):
    pass


def _new_token() -> str:
    return uuid.uuid4().hex


class ImageAttachmentManager:
    """
    Turns selected files into pending images and takes them out again.

    The manager owns the preview resources of pending images; the ordered
    collection itself lives on the draft and is passed in and returned.

    Usage:
      images = manager.attach(draft.images, [LocalFile.from_path("mug.jpg")])
      images = manager.detach(images, images[0].id)
    """

    def __init__(self, previews: PreviewStore, id_factory=None):
        self.previews = previews
        self._id_factory = id_factory or _new_token

    def _fresh_id(self, images: Sequence[ImageRef]) -> str:
        taken = {img.id for img in images}
        token = self._id_factory()
        while token in taken:
            token = self._id_factory()
        return token

    def _make_pending(self, images: Sequence[ImageRef], file: LocalFile,
                      replaces: Optional[str] = None) -> PendingImage:
        token = self._fresh_id(images)
        preview = self.previews.create(token, file.filename, file.content)
        return PendingImage(
            id=token,
            display_url=preview.resolve().as_uri(),
            file=file,
            preview_path=preview,
            replaces=replaces,
        )

    def attach(self, images: Sequence[ImageRef], files: Iterable[LocalFile]) -> Images:
        """Append one pending image per file, in input order. No files is a no-op."""
        out = list(images)
        for file in files:
            out.append(self._make_pending(out, file))
        added = len(out) - len(images)
        if added:
            logger.debug("Attached %d image(s); collection size %d", added, len(out))
        return tuple(out)

    def _index_of(self, images: Sequence[ImageRef], image_id: str) -> int:
        for idx, img in enumerate(images):
            if img.id == image_id:
                return idx
        raise ImageNotFoundError(f"No image with id {image_id!r}")

    def _release(self, image: ImageRef) -> None:
        if isinstance(image, PendingImage):
            self.previews.release(image.preview_path)
        elif isinstance(image, PersistedImage):
            # server-owned, nothing held locally
            pass
        else:
            raise TypeError(f"Unknown image reference: {image!r}")

    def detach(self, images: Sequence[ImageRef], image_id: str) -> Images:
        """Remove exactly one entry; a pending image's preview is released."""
        idx = self._index_of(images, image_id)
        removed = images[idx]
        self._release(removed)
        out = tuple(images[:idx]) + tuple(images[idx + 1:])
        logger.debug("Detached image %s; collection size %d", image_id, len(out))
        return out

    def replace(self, images: Sequence[ImageRef], image_id: str, file: LocalFile) -> Images:
        """
        Swap a persisted image for a new file at the same position. Only one
        in-place replacement can be pending at a time.
        """
        idx = self._index_of(images, image_id)
        target = images[idx]
        if not isinstance(target, PersistedImage):
            raise AttachmentError("Only a stored image can be replaced in place")
        if any(isinstance(img, PendingImage) and img.replaces for img in images):
            raise AttachmentError("Another image replacement is already pending")
        pending = self._make_pending(images, file, replaces=target.remote_asset_id)
        return tuple(images[:idx]) + (pending,) + tuple(images[idx + 1:])

    def discard(self, images: Sequence[ImageRef]) -> int:
        """Release every pending preview held by `images`."""
        released = 0
        for img in images:
            if isinstance(img, PendingImage) and self.previews.release(img.preview_path):
                released += 1
        return released
