"""Shared fixtures: real PNG bytes and a stand-in for the Gemini service."""

import base64
import io

import pytest
from google.genai import types
from PIL import Image


class FakeImageService:
    """Records calls and answers with a canned response or error."""

    def __init__(self, response=None, error=None, on_call=None):
        self.response = response
        self.error = error
        self.on_call = on_call
        self.calls = []

    def generate(self, payload, mime_type, prompt):
        self.calls.append((payload, mime_type, prompt))
        if self.on_call is not None:
            self.on_call()
        if self.error is not None:
            raise self.error
        return self.response


def make_response(*parts):
    return types.GenerateContentResponse(
        candidates=[types.Candidate(content=types.Content(role="model", parts=list(parts)))]
    )


def image_part(data, mime_type="image/png"):
    return types.Part(inline_data=types.Blob(data=data, mime_type=mime_type))


def text_part(text):
    return types.Part(text=text)


def _png(color, size=(4, 4)):
    buf = io.BytesIO()
    Image.new("RGB", size, color).save(buf, format="PNG")
    return buf.getvalue()


@pytest.fixture
def png_bytes():
    return _png((200, 30, 30))


@pytest.fixture
def studio_png_bytes():
    return _png((230, 220, 205), size=(8, 10))


@pytest.fixture
def png_data_uri(png_bytes):
    return "data:image/png;base64," + base64.b64encode(png_bytes).decode("utf-8")


@pytest.fixture
def success_response(studio_png_bytes):
    return make_response(text_part("Here is your catalog image."), image_part(studio_png_bytes))


@pytest.fixture
def fake_service(success_response):
    return FakeImageService(response=success_response)
