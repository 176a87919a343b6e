import base64
import logging

from google import genai
from google.genai import types
from google.genai.types import Modality

import settings

logger = logging.getLogger(__name__)


def build_client(api_key=None, timeout_ms=None):
    http_options = types.HttpOptions(timeout=timeout_ms) if timeout_ms else None
    return genai.Client(api_key=api_key, http_options=http_options)


def build_contents(payload, mime_type, prompt):
    """Image part first, instruction text second, as a single user turn."""
    return [
        types.Content(
            role="user",
            parts=[
                types.Part.from_bytes(data=base64.b64decode(payload), mime_type=mime_type),
                types.Part.from_text(text=prompt),
            ],
        )
    ]


class GeminiImageService:
    """Sends one image + instruction to a Gemini image model.

    The SDK client is created on the first call, so a missing or rejected
    credential shows up as a failed call instead of an import-time error.
    """

    def __init__(self, model=None, api_key=None, timeout_ms=None):
        self.model = model or settings.IMAGE_MODEL
        self.api_key = api_key if api_key is not None else settings.GEMINI_API_KEY
        self.timeout_ms = timeout_ms if timeout_ms is not None else settings.HTTP_TIMEOUT_MS
        self._client = None

    def _get_client(self):
        if self._client is None:
            self._client = build_client(self.api_key, self.timeout_ms)
        return self._client

    def generate(self, payload, mime_type, prompt):
        client = self._get_client()
        config = types.GenerateContentConfig(
            response_modalities=[Modality.TEXT, Modality.IMAGE],
        )
        logger.info("Calling %s with %s image", self.model, mime_type)
        return client.models.generate_content(
            model=self.model,
            contents=build_contents(payload, mime_type, prompt),
            config=config,
        )
