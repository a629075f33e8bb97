"""Unsigned image uploads to the external media host."""

from __future__ import annotations

import base64
import logging
import mimetypes
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import requests

from .config import IMAGE_HOST_API, REQUEST_TIMEOUT_SECONDS, get_image_host_config

logger = logging.getLogger(__name__)

DEFAULT_IMAGE_MIME = "image/jpeg"


class UploadError(Exception):
    """Raised when the media host does not return a usable image URL."""


@dataclass(frozen=True)
class UploadedImage:
    secure_url: str
    public_id: Optional[str] = None
    delete_token: Optional[str] = None


def encode_image_data_url(path: str | Path) -> str:
    """Read an image file and return it as a base64 data URL.

    Args:
        path: Local image path.

    Returns:
        ``data:<mime>;base64,<payload>`` string.
    """
    image_path = Path(path)
    mime, _ = mimetypes.guess_type(image_path.name)
    if not mime or not mime.startswith("image/"):
        mime = DEFAULT_IMAGE_MIME
    payload = base64.b64encode(image_path.read_bytes()).decode("ascii")
    return f"data:{mime};base64,{payload}"


def _upload_url(cloud_name: str) -> str:
    return f"{IMAGE_HOST_API}/{cloud_name}/image/upload"


def upload_image(
    image: str | Path,
    *,
    cloud_name: Optional[str] = None,
    upload_preset: Optional[str] = None,
    http=requests,
) -> UploadedImage:
    """Upload an image and return its hosted location.

    Args:
        image: A local file path or an already-encoded data URL.
        cloud_name: Media host account; defaults to environment config.
        upload_preset: Unsigned upload preset; defaults to environment config.
        http: Object exposing ``post`` (``requests`` or a ``Session``).

    Returns:
        UploadedImage with the secure URL and deletion handle.

    Raises:
        UploadError: When the image cannot be read, on transport failure, or
            when no secure URL is returned.
    """
    env_cloud, env_preset = get_image_host_config()
    cloud = cloud_name or env_cloud
    preset = upload_preset or env_preset
    if not cloud:
        raise UploadError("Image host is not configured; set CLOUDINARY_CLOUD_NAME.")

    image_text = str(image)
    try:
        data_url = image_text if image_text.startswith("data:") else encode_image_data_url(image)
    except OSError as exc:
        raise UploadError(f"Could not read image {image_text}: {exc.strerror or exc}") from exc

    try:
        r = http.post(
            _upload_url(cloud),
            data={
                "file": data_url,
                "upload_preset": preset,
                "return_delete_token": "1",
            },
            timeout=REQUEST_TIMEOUT_SECONDS,
        )
        result = r.json()
    except (requests.RequestException, ValueError) as exc:
        raise UploadError(f"Failed to upload image: {exc}") from exc

    secure_url = (result or {}).get("secure_url") if isinstance(result, dict) else None
    if not secure_url:
        error = (result or {}).get("error") if isinstance(result, dict) else None
        detail = error.get("message") if isinstance(error, dict) else None
        logger.error(f"Image upload returned no secure URL: {detail or result!r}")
        raise UploadError("Failed to upload image.")

    logger.info(f"Uploaded image {result.get('public_id')}")
    return UploadedImage(
        secure_url=secure_url,
        public_id=result.get("public_id"),
        delete_token=result.get("delete_token"),
    )


def delete_uploaded_image(
    uploaded: UploadedImage,
    *,
    cloud_name: Optional[str] = None,
    http=requests,
) -> bool:
    """Remove an image uploaded moments ago, using its delete token.

    Returns:
        True when the host acknowledged the deletion.
    """
    if not uploaded.delete_token:
        logger.warning(f"No delete token for {uploaded.secure_url}; image left on host.")
        return False
    cloud = cloud_name or get_image_host_config()[0]
    try:
        r = http.post(
            f"{IMAGE_HOST_API}/{cloud}/delete_by_token",
            data={"token": uploaded.delete_token},
            timeout=REQUEST_TIMEOUT_SECONDS,
        )
        r.raise_for_status()
    except requests.RequestException:
        logger.exception(f"Failed to delete uploaded image {uploaded.public_id}.")
        return False
    logger.info(f"Deleted uploaded image {uploaded.public_id}.")
    return True
