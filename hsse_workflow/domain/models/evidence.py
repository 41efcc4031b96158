"""Evidence photo metadata for on-the-spot closure.

Only metadata is handled here; file bytes live in external storage.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, eq=True)
class EvidencePhoto:
    """Metadata of an uploaded evidence photo.

    Attributes:
        file_name: Original file name.
        mime_type: Declared MIME type (must be image/*).
        size_bytes: Size of the upload.
        storage_ref: Reference into the external file store.
    """

    file_name: str
    mime_type: str
    size_bytes: int
    storage_ref: str | None = None

    @property
    def is_image(self) -> bool:
        return self.mime_type.lower().startswith("image/")
