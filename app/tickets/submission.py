"""Validation of new-ticket submissions, including the optional photo."""

from __future__ import annotations

import base64
import binascii
import re

from pydantic import BaseModel, ConfigDict, EmailStr, Field, PrivateAttr, model_validator

from .state import ProblemType, Urgency

MAX_IMAGE_BYTES = 5 * 1024 * 1024
ALLOWED_IMAGE_TYPES: dict[str, str] = {
    "image/jpeg": "jpeg",
    "image/png": "png",
}
MIN_DESCRIPTION_LENGTH = 10

_DATA_URL_PREFIX = re.compile(r"^data:image/[\w.+-]+;base64,")


def decode_image_data(data: str) -> bytes:
    """Decode a base64 payload, accepting an optional ``data:`` URL header."""

    encoded = _DATA_URL_PREFIX.sub("", data.strip())
    try:
        return base64.b64decode(encoded, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise ValueError("Image data is not valid base64") from exc


class ImagePayload(BaseModel):
    """Base64 encoded photo sent along with a submission."""

    data: str = Field(..., min_length=1)
    mime_type: str

    _content: bytes = PrivateAttr(default=b"")

    @model_validator(mode="after")
    def _check_image(self) -> "ImagePayload":
        mime_type = self.mime_type.strip().lower()
        if mime_type not in ALLOWED_IMAGE_TYPES:
            raise ValueError("Image must be a JPEG or PNG file")
        self.mime_type = mime_type

        content = decode_image_data(self.data)
        if not content:
            raise ValueError("Image data is empty")
        if len(content) > MAX_IMAGE_BYTES:
            raise ValueError("Image must be at most 5 MB")
        self._content = content
        return self

    @property
    def content(self) -> bytes:
        return self._content

    @property
    def extension(self) -> str:
        return ALLOWED_IMAGE_TYPES[self.mime_type]


class TicketSubmission(BaseModel):
    """Fields a requester fills in to open a ticket."""

    model_config = ConfigDict(str_strip_whitespace=True)

    requester_name: str = Field(..., min_length=1, max_length=255)
    requester_email: EmailStr
    location: str = Field(..., min_length=1, max_length=255)
    problem_type: ProblemType
    description: str = Field(..., min_length=MIN_DESCRIPTION_LENGTH)
    urgency: Urgency
    image: ImagePayload | None = None
