"""Tests for the ImageGenerator orchestrator."""

import asyncio

from astrbot_plugin_openai_images.core.exceptions import TransportError
from astrbot_plugin_openai_images.core.generator import ImageGenerator
from astrbot_plugin_openai_images.core.types import (
    Base64Image,
    ImageOperation,
    MessageContent,
)
from astrbot_plugin_openai_images.core.utils import detect_mime_type

from .helpers import FakeExecutor


class TestImageGenerator:
    """Tests for ImageGenerator.generate."""

    def test_success(self, plugin_config):
        executor = FakeExecutor({"data": [{"b64_json": "QUJD"}]})
        generator = ImageGenerator(plugin_config, executor)
        result = asyncio.run(generator.generate([MessageContent("a lighthouse")]))
        assert result.error is None
        assert result.operation is ImageOperation.GENERATION
        assert result.images == [Base64Image("data:image/png;base64,QUJD")]

    def test_attachments_converted_to_png(self, plugin_config, jpeg_image):
        """Test JPEG attachments reach the service as PNG."""
        executor = FakeExecutor({"data": []})
        generator = ImageGenerator(plugin_config, executor)
        result = asyncio.run(generator.generate([MessageContent("")], [jpeg_image]))
        assert result.operation is ImageOperation.VARIATION
        image_part = executor.requests[0].form.get("image")
        assert detect_mime_type(image_part.value) == "image/png"
        assert image_part.content_type == "image/png"
        assert image_part.filename == "photo.png"

    def test_service_error(self, plugin_config):
        executor = FakeExecutor({"error": {"message": "bad key"}})
        generator = ImageGenerator(plugin_config, executor)
        result = asyncio.run(generator.generate([MessageContent("x")]))
        assert result.images is None
        assert result.error == "bad key"

    def test_transport_error(self, plugin_config):
        executor = FakeExecutor(error=TransportError("connection reset"))
        generator = ImageGenerator(plugin_config, executor)
        result = asyncio.run(generator.generate([MessageContent("x")]))
        assert result.error == "connection reset"

    def test_missing_key(self, executor):
        from astrbot_plugin_openai_images.core.config_manager import ConfigManager

        generator = ImageGenerator(ConfigManager({}).plugin_config, executor)
        result = asyncio.run(generator.generate([MessageContent("x")]))
        assert result.error == "Request settings have not been set up"
        assert executor.requests == []

    def test_can_send_message(self, plugin_config, executor):
        generator = ImageGenerator(plugin_config, executor)
        assert generator.can_send_message("", []) is False
        assert generator.can_send_message("hi", []) is True
