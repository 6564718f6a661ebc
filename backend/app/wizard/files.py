"""Upload rules for the model file and reference images.

The same checks run in the wizard (when a file is attached and again
before submission) and in the quote-intake endpoint.
"""

from dataclasses import dataclass
from pathlib import PurePath

from app.config import settings


@dataclass(frozen=True)
class UploadedFile:
    filename: str
    content: bytes
    content_type: str | None = None

    @property
    def size(self) -> int:
        return len(self.content)

    @property
    def extension(self) -> str:
        return PurePath(self.filename).suffix.lower()


def _megabytes(n: int) -> str:
    return f"{n // (1024 * 1024)}MB"


def model_file_error(
    upload: UploadedFile,
    max_bytes: int | None = None,
    extensions: tuple[str, ...] | None = None,
) -> str | None:
    """Return a user-facing error for an unacceptable model file, else None."""
    max_bytes = max_bytes if max_bytes is not None else settings.max_model_file_bytes
    extensions = extensions if extensions is not None else settings.model_extensions

    if upload.size == 0:
        return "The uploaded model file is empty."
    if upload.size > max_bytes:
        return f"File size must be less than {_megabytes(max_bytes)}."
    if upload.extension not in extensions:
        return f"Please upload a valid 3D model file ({', '.join(extensions)})."
    return None


def reference_images_error(
    images: list[UploadedFile] | tuple[UploadedFile, ...],
    max_count: int | None = None,
    max_bytes: int | None = None,
) -> str | None:
    max_count = max_count if max_count is not None else settings.max_reference_images
    max_bytes = max_bytes if max_bytes is not None else settings.max_reference_image_bytes

    if len(images) > max_count:
        return f"Please attach at most {max_count} reference images."
    for image in images:
        if image.content_type and not image.content_type.startswith("image/"):
            return f"{image.filename} is not an image."
        if image.size > max_bytes:
            return f"{image.filename} must be less than {_megabytes(max_bytes)}."
    return None
