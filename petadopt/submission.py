"""Validate, upload and insert a new pet listing."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Callable, Optional

from .backend import BackendError, get_client
from .image_host import UploadedImage, delete_uploaded_image, upload_image
from .models import Listing
from .repository import insert_listing

logger = logging.getLogger(__name__)

REQUIRED_FIELDS_MESSAGE = "Please fill out all required fields."
SUCCESS_MESSAGE = "Pet listed successfully!"


class ValidationError(ValueError):
    """Raised when a form is submitted with required fields missing."""


@dataclass
class ListingForm:
    name: str = ""
    species: str = ""
    location: str = ""
    image_path: str = ""
    breed: str = ""
    age: str = ""
    gender: str = ""
    description: str = ""
    health_status: str = ""
    vaccinated: bool = False
    adoption_fee: float = 0.0
    special_needs: bool = False

    def clear(self) -> None:
        for name, value in vars(ListingForm()).items():
            setattr(self, name, value)


def listing_form_error(form: ListingForm) -> str | None:
    """Return a validation error for the listing form, if any."""
    required = (form.name, form.species, form.location, form.image_path)
    if any(not (value or "").strip() for value in required):
        return REQUIRED_FIELDS_MESSAGE
    return None


def parse_age(raw: str | None) -> Optional[int]:
    """Parse the leading integer of an age field ("3 years" -> 3)."""
    m = re.match(r"\s*([+-]?\d+)", raw or "")
    return int(m.group(1)) if m else None


def _blank_to_none(value: str | None) -> Optional[str]:
    text = (value or "").strip()
    return text or None


def build_listing_row(form: ListingForm, image_url: str) -> dict:
    listing = Listing(
        id=None,
        name=form.name.strip(),
        species=form.species,
        location=form.location.strip(),
        image_url=image_url,
        breed=_blank_to_none(form.breed),
        age=parse_age(form.age),
        gender=_blank_to_none(form.gender),
        description=_blank_to_none(form.description),
        health_status=_blank_to_none(form.health_status),
        vaccinated=bool(form.vaccinated),
        adoption_fee=float(form.adoption_fee or 0.0),
        special_needs=bool(form.special_needs),
    )
    return listing.to_insert_row()


def submit_listing(
    form: ListingForm,
    *,
    client_factory: Callable = get_client,
    uploader: Callable[[str], UploadedImage] = upload_image,
    deleter: Callable[[UploadedImage], bool] = delete_uploaded_image,
) -> Listing:
    """Run the two-phase submission: upload the image, then insert the row.

    If the insert fails after a successful upload, the uploaded image is
    deleted before the insert error is re-raised.

    Raises:
        ValidationError: Required fields missing; nothing was sent.
        UploadError: The image could not be read or uploaded; nothing was inserted.
        BackendError: The listing insert failed.
    """
    error = listing_form_error(form)
    if error:
        raise ValidationError(error)

    uploaded = uploader(form.image_path)
    row = build_listing_row(form, uploaded.secure_url)
    logger.info(f"Inserting listing {row['name']!r} ({row['species']}).")
    try:
        return insert_listing(row, client_factory=client_factory)
    except BackendError:
        logger.exception("Listing insert failed; removing uploaded image.")
        deleter(uploaded)
        raise
