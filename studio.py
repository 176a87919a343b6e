"""Image transformation controller.

Owns the per-session state (uploaded image, generated image, status, error),
turns an uploaded file into a data URI, runs one generation request and
interprets the response.
"""

import base64
import binascii
import dataclasses
import logging
import threading
from dataclasses import dataclass
from enum import Enum
from typing import Optional

import settings
from system_prompt import CATALOG_PROMPT

logger = logging.getLogger(__name__)

NO_IMAGE_MESSAGE = "No image was generated. Please try again."
FALLBACK_ERROR_MESSAGE = "An error occurred during generation."
UNREADABLE_FILE_MESSAGE = "The selected file could not be read."
DEFAULT_RESULT_MIME = "image/png"


class StudioError(Exception):
    pass


class DecodeError(StudioError):
    """The selected file could not be turned into an image payload."""


class GenerationError(StudioError):
    pass


class EmptyResultError(GenerationError):
    """The service answered but no part carried image data."""


class ServiceCallError(GenerationError):
    """The outbound generation call itself failed."""


class GenerationStatus(str, Enum):
    IDLE = "idle"
    IN_PROGRESS = "in_progress"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


@dataclass(frozen=True)
class EncodedImage:
    mime_type: str
    payload: str

    @classmethod
    def from_bytes(cls, data: bytes, mime_type: str) -> "EncodedImage":
        return cls(mime_type=mime_type, payload=base64.b64encode(data).decode("utf-8"))

    @classmethod
    def from_data_uri(cls, data_uri: str) -> "EncodedImage":
        """Parse ``data:<mime>;base64,<payload>``.

        MIME type is the text between the first ``:`` and the first ``;``,
        payload is everything after the first ``,``.
        """
        if not isinstance(data_uri, str) or "," not in data_uri:
            raise DecodeError(UNREADABLE_FILE_MESSAGE)
        header, payload = data_uri.split(",", 1)
        parts = header.split(";")[0].split(":")
        mime_type = parts[1].strip() if len(parts) > 1 else ""
        if not mime_type:
            raise DecodeError(UNREADABLE_FILE_MESSAGE)
        try:
            base64.b64decode(payload, validate=True)
        except (binascii.Error, ValueError) as exc:
            raise DecodeError(UNREADABLE_FILE_MESSAGE) from exc
        return cls(mime_type=mime_type, payload=payload)

    @property
    def data_uri(self) -> str:
        return f"data:{self.mime_type};base64,{self.payload}"

    def to_bytes(self) -> bytes:
        return base64.b64decode(self.payload)


@dataclass
class StudioState:
    source_image: Optional[EncodedImage] = None
    result_image: Optional[EncodedImage] = None
    status: GenerationStatus = GenerationStatus.IDLE
    error_message: Optional[str] = None

    @property
    def is_generating(self) -> bool:
        return self.status is GenerationStatus.IN_PROGRESS

    def to_dict(self) -> dict:
        return {
            "status": self.status.value,
            "error": self.error_message,
            "is_generating": self.is_generating,
            "source_image": self.source_image.data_uri if self.source_image else None,
            "result_image": self.result_image.data_uri if self.result_image else None,
        }


@dataclass(frozen=True)
class Download:
    filename: str
    mime_type: str
    data: bytes


def encode_file(file) -> EncodedImage:
    """Read a file handle to completion using its declared content type."""
    mime_type = getattr(file, "mimetype", None) or getattr(file, "content_type", None)
    if not mime_type:
        raise DecodeError(UNREADABLE_FILE_MESSAGE)
    try:
        data = file.read()
    except OSError as exc:
        raise DecodeError(UNREADABLE_FILE_MESSAGE) from exc
    # Same shape the browser's readAsDataURL produces.
    return EncodedImage.from_data_uri(EncodedImage.from_bytes(data, mime_type).data_uri)


def first_inline_image(response) -> Optional[EncodedImage]:
    """Return the first part of the first candidate that carries inline data."""
    candidates = getattr(response, "candidates", None) or []
    if not candidates:
        return None
    content = candidates[0].content
    for part in (content.parts if content else None) or []:
        blob = getattr(part, "inline_data", None)
        if blob is None or blob.data is None:
            continue
        data = blob.data
        if isinstance(data, str):
            payload = data
        else:
            payload = base64.b64encode(data).decode("utf-8")
        return EncodedImage(mime_type=blob.mime_type or DEFAULT_RESULT_MIME, payload=payload)
    return None


class StudioController:
    """One user session's upload -> generate -> preview cycle.

    ``service`` is anything with ``generate(payload, mime_type, prompt)``
    returning a Gemini ``GenerateContentResponse``-shaped object.
    """

    def __init__(self, service, prompt=CATALOG_PROMPT, download_filename=settings.DOWNLOAD_FILENAME):
        self._service = service
        self._prompt = prompt
        self._download_filename = download_filename
        self._state = StudioState()
        self._lock = threading.Lock()
        self._alive = True

    @property
    def state(self) -> StudioState:
        with self._lock:
            return dataclasses.replace(self._state)

    @property
    def closed(self) -> bool:
        return not self._alive

    def close(self):
        with self._lock:
            self._alive = False

    def select_image(self, file):
        try:
            image = encode_file(file)
        except DecodeError as exc:
            self._fail_selection(exc)
            return
        self._apply_selection(image)

    def select_data_uri(self, data_uri):
        try:
            image = EncodedImage.from_data_uri(data_uri)
        except DecodeError as exc:
            self._fail_selection(exc)
            return
        self._apply_selection(image)

    def _apply_selection(self, image):
        with self._lock:
            if not self._alive:
                return
            self._state.source_image = image
            self._state.result_image = None
            self._state.error_message = None
            if self._state.status is not GenerationStatus.IN_PROGRESS:
                self._state.status = GenerationStatus.IDLE
        logger.info("Selected %s image (%d base64 chars)", image.mime_type, len(image.payload))

    def _fail_selection(self, exc):
        logger.warning("Could not read selected file: %s", exc)
        with self._lock:
            if not self._alive or self._state.status is GenerationStatus.IN_PROGRESS:
                return
            self._state.status = GenerationStatus.FAILED
            self._state.error_message = str(exc)

    def generate_catalog_image(self) -> bool:
        with self._lock:
            if not self._alive or self._state.source_image is None:
                logger.debug("Generate ignored: no source image")
                return False
            if self._state.status is GenerationStatus.IN_PROGRESS:
                logger.debug("Generate ignored: request already in flight")
                return False
            self._state.status = GenerationStatus.IN_PROGRESS
            self._state.error_message = None
            source = self._state.source_image

        try:
            result = self._request(source)
        except GenerationError as exc:
            logger.error("Generation error: %s", exc, exc_info=exc.__cause__ or exc)
            self._finish(None, str(exc))
        else:
            self._finish(result, None)
        return True

    def _request(self, source: EncodedImage) -> EncodedImage:
        try:
            response = self._service.generate(source.payload, source.mime_type, self._prompt)
            image = first_inline_image(response)
        except Exception as exc:
            raise ServiceCallError(str(exc) or FALLBACK_ERROR_MESSAGE) from exc
        if image is None:
            raise EmptyResultError(NO_IMAGE_MESSAGE)
        return image

    def _finish(self, result, error_message):
        with self._lock:
            if not self._alive:
                logger.debug("Session closed before generation finished; result dropped")
                return
            self._state.result_image = result
            if result is not None:
                self._state.status = GenerationStatus.SUCCEEDED
                self._state.error_message = None
            else:
                self._state.status = GenerationStatus.FAILED
                self._state.error_message = error_message

    def download_result(self) -> Optional[Download]:
        with self._lock:
            result = self._state.result_image
        if result is None:
            return None
        return Download(
            filename=self._download_filename,
            mime_type=result.mime_type,
            data=result.to_bytes(),
        )

    def reset_result(self):
        with self._lock:
            self._state.result_image = None
