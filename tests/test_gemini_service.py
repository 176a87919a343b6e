"""Tests for the Gemini request adapter."""

import base64
from unittest.mock import MagicMock, patch

import pytest

from gemini_service import GeminiImageService, build_client, build_contents
from studio import GenerationStatus, StudioController


class TestBuildContents:
    """Tests for request construction."""

    def test_image_then_text(self, png_bytes):
        payload = base64.b64encode(png_bytes).decode("utf-8")

        contents = build_contents(payload, "image/png", "studio lighting")

        assert len(contents) == 1
        assert contents[0].role == "user"
        image, text = contents[0].parts
        assert image.inline_data.data == png_bytes
        assert image.inline_data.mime_type == "image/png"
        assert text.text == "studio lighting"


class TestBuildClient:

    @patch("gemini_service.genai.Client")
    def test_without_timeout(self, mock_client):
        build_client("key")
        mock_client.assert_called_once_with(api_key="key", http_options=None)

    @patch("gemini_service.genai.Client")
    def test_with_timeout(self, mock_client):
        build_client("key", timeout_ms=300_000)
        http_options = mock_client.call_args.kwargs["http_options"]
        assert http_options.timeout == 300_000


class TestGeminiImageService:
    """Tests for the service call."""

    @patch("gemini_service.genai.Client")
    def test_client_is_created_lazily(self, mock_client):
        GeminiImageService(model="m", api_key="key")
        mock_client.assert_not_called()

    @patch("gemini_service.genai.Client")
    def test_generate_content_call(self, mock_client, png_bytes):
        client = MagicMock()
        mock_client.return_value = client
        service = GeminiImageService(model="gemini-2.5-flash-image", api_key="key")
        payload = base64.b64encode(png_bytes).decode("utf-8")

        result = service.generate(payload, "image/png", "prompt text")

        assert result is client.models.generate_content.return_value
        kwargs = client.models.generate_content.call_args.kwargs
        assert kwargs["model"] == "gemini-2.5-flash-image"
        assert kwargs["contents"][0].parts[0].inline_data.data == png_bytes
        assert kwargs["contents"][0].parts[1].text == "prompt text"
        assert list(kwargs["config"].response_modalities) == ["TEXT", "IMAGE"]

    @patch("gemini_service.genai.Client")
    def test_client_is_reused(self, mock_client):
        service = GeminiImageService(model="m", api_key="key")
        service.generate("AAAA", "image/png", "p")
        service.generate("AAAA", "image/png", "p")
        assert mock_client.call_count == 1

    @patch("gemini_service.genai.Client")
    def test_missing_key_fails_the_generation(self, mock_client, png_data_uri):
        mock_client.side_effect = ValueError("Missing key inputs argument!")
        controller = StudioController(GeminiImageService(model="m", api_key=""))
        controller.select_data_uri(png_data_uri)

        controller.generate_catalog_image()

        state = controller.state
        assert state.status is GenerationStatus.FAILED
        assert state.error_message == "Missing key inputs argument!"

    def test_defaults_from_settings(self, monkeypatch):
        monkeypatch.setattr("settings.IMAGE_MODEL", "gemini-test-image")
        monkeypatch.setattr("settings.GEMINI_API_KEY", "env-key")
        monkeypatch.setattr("settings.HTTP_TIMEOUT_MS", None)

        service = GeminiImageService()

        assert service.model == "gemini-test-image"
        assert service.api_key == "env-key"
        assert service.timeout_ms is None


@pytest.mark.parametrize("timeout_ms", [None, 0])
@patch("gemini_service.genai.Client")
def test_zero_timeout_means_no_http_options(mock_client, timeout_ms):
    build_client("key", timeout_ms=timeout_ms)
    assert mock_client.call_args.kwargs["http_options"] is None
