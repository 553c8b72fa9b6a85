"""Shared fixtures for the OpenAI Images plugin tests."""

from io import BytesIO

import pytest
from PIL import Image

from astrbot_plugin_openai_images.core.config_manager import ConfigManager
from astrbot_plugin_openai_images.core.types import ImageData

from .helpers import FakeExecutor


def _encode(mode, fmt, color):
    buffer = BytesIO()
    Image.new(mode, (8, 8), color=color).save(buffer, format=fmt)
    return buffer.getvalue()


@pytest.fixture
def png_image():
    return ImageData(data=_encode("RGBA", "PNG", (255, 0, 0, 255)), filename="photo.png")


@pytest.fixture
def mask_image():
    return ImageData(data=_encode("RGBA", "PNG", (0, 0, 0, 0)), filename="mask.png")


@pytest.fixture
def jpeg_image():
    return ImageData(
        data=_encode("RGB", "JPEG", (0, 128, 255)),
        mime_type="image/jpeg",
        filename="photo.jpg",
    )


@pytest.fixture
def plugin_config():
    return ConfigManager(
        {"api_key": "sk-test-key-123456", "body": {"n": 1, "size": "256x256"}}
    ).plugin_config


@pytest.fixture
def executor():
    return FakeExecutor()
