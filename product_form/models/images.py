# product_form/models/images.py
from __future__ import annotations
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Dict, Any, Union
import mimetypes


@dataclass(frozen=True)
class LocalFile:
    """Raw bytes of a locally selected file, as handed to attach()."""
    filename: str
    content: bytes
    content_type: str = "application/octet-stream"

    @classmethod
    def from_path(cls, path) -> "LocalFile":
        p = Path(path)
        content_type = mimetypes.guess_type(p.name)[0] or "application/octet-stream"
        return cls(filename=p.name, content=p.read_bytes(), content_type=content_type)

    def as_upload(self):
        return (self.filename, self.content, self.content_type)


@dataclass(frozen=True)
class PersistedImage:
    """
    Image already stored by the backend. The draft only references it;
    wire shape is {_id, public_id, secure_url}.
    """
    id: str
    remote_asset_id: str
    display_url: str

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "PersistedImage":
        if d is None:
            raise ValueError("Cannot construct PersistedImage from None")
        return cls(
            id=str(d.get("_id") or d.get("id") or ""),
            remote_asset_id=str(d.get("public_id") or d.get("remote_asset_id") or ""),
            display_url=str(d.get("secure_url") or d.get("display_url") or ""),
        )

    def to_wire(self) -> Dict[str, str]:
        return {"_id": self.id, "public_id": self.remote_asset_id, "secure_url": self.display_url}

    def to_dict(self) -> Dict[str, Any]:
        return {"kind": "persisted", "id": self.id,
                "remote_asset_id": self.remote_asset_id, "display_url": self.display_url}


@dataclass(frozen=True)
class PendingImage:
    """
    Locally selected image, owned by the draft until submission.
    `id` is a local token used for identity and removal only.
    """
    id: str
    display_url: str
    file: LocalFile
    preview_path: Optional[Path] = None
    # remote asset id of the persisted image this one replaces in place
    replaces: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": "pending",
            "id": self.id,
            "display_url": self.display_url,
            "filename": self.file.filename,
            "content_type": self.file.content_type,
            "size": len(self.file.content),
            "replaces": self.replaces,
        }


ImageRef = Union[PersistedImage, PendingImage]


def persisted_images(images):
    return [img for img in images if isinstance(img, PersistedImage)]


def pending_images(images):
    return [img for img in images if isinstance(img, PendingImage)]
