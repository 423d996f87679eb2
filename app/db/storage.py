import uuid
import logging
from typing import Optional
from google.cloud import storage

from app.core.config import STORAGE_BUCKET
from app.core.errors import ValidationError

logger = logging.getLogger("akshayapatra.storage")

ALLOWED_IMAGE_TYPES = ["image/jpeg", "image/png", "image/webp", "image/gif"]


def _bucket():
    if not STORAGE_BUCKET:
        raise ValueError("GCP_STORAGE_BUCKET environment variable not set")
    # In Cloud Run, this uses the default service account automatically.
    # Locally, it looks for GOOGLE_APPLICATION_CREDENTIALS.
    storage_client = storage.Client()
    return storage_client.bucket(STORAGE_BUCKET)


def upload_image(file_obj, folder: str, owner_id: str, filename: str, content_type: str) -> str:
    """
    Uploads an image under `<folder>/<owner_id>/` and returns its public URL.
    e.g. "scheme-images/3f2a.../a1b2c3d4.png"
    """
    ext = filename.rsplit(".", 1)[-1].lower() if filename and "." in filename else "jpg"
    blob = _bucket().blob(f"{folder}/{owner_id}/{uuid.uuid4().hex}.{ext}")

    blob.upload_from_file(file_obj, content_type=content_type or "image/jpeg")

    # Attempt to make public (if bucket policy allows per-object ACLs)
    try:
        blob.make_public()
    except Exception as e:
        # Uniform Bucket Level Access: the bucket itself must be public
        logger.debug(f"make_public skipped for {blob.name}: {e}")

    return blob.public_url


def blob_name_from_url(public_url: str, folder: str) -> Optional[str]:
    marker = f"/{STORAGE_BUCKET}/{folder}/"
    idx = public_url.find(marker) if public_url else -1
    if idx == -1:
        return None
    return public_url[idx + len(f"/{STORAGE_BUCKET}/"):]


def delete_by_public_url(public_url: str, folder: str) -> None:
    """Removes an object previously returned by upload_image. Unknown URLs are ignored."""
    name = blob_name_from_url(public_url, folder)
    if not name:
        return
    try:
        _bucket().blob(name).delete()
    except Exception as e:
        logger.warning(f"Failed to delete {name}: {e}")


class ImageStore:
    """One folder of public images in the platform bucket."""

    def __init__(self, folder: str):
        self.folder = folder

    def upload(self, file_obj, owner_id: str, filename: str, content_type: str) -> str:
        if content_type not in ALLOWED_IMAGE_TYPES:
            raise ValidationError("Only JPEG, PNG, WebP or GIF images are allowed")
        return upload_image(file_obj, self.folder, owner_id, filename, content_type)

    def delete(self, public_url: str) -> None:
        delete_by_public_url(public_url, self.folder)
