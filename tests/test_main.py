"""Tests for the chat command handlers."""

import asyncio
from unittest.mock import AsyncMock, Mock

from astrbot_plugin_openai_images.core.config_manager import ConfigManager
from astrbot_plugin_openai_images.core.generator import ImageGenerator
from astrbot_plugin_openai_images.core.info_modal import InfoNotifier
from astrbot_plugin_openai_images.main import OpenAIImagesPlugin

from .helpers import FakeExecutor


def make_plugin(config=None, images=None, executor=None):
    """Build a plugin without the AstrBot runtime behind it."""
    plugin = OpenAIImagesPlugin.__new__(OpenAIImagesPlugin)
    plugin.config_manager = ConfigManager(
        config if config is not None else {"api_key": "sk-test-key-123456"}
    )
    plugin.image_processor = Mock()
    plugin.image_processor.fetch_images_from_event = AsyncMock(return_value=images or [])
    plugin.generator = ImageGenerator(
        plugin.config_manager.plugin_config, executor or FakeExecutor()
    )
    plugin.info_notifier = InfoNotifier(plugin.config_manager.service_config)
    plugin.background_tasks = set()
    plugin.create_background_task = Mock(side_effect=lambda coro: coro.close())
    plugin.html_render = AsyncMock(return_value="http://render/info.png")
    return plugin


def make_event(text="/图像 a cat", origin="aiocqhttp:GroupMessage:1"):
    event = Mock()
    event.message_str = text
    event.unified_msg_origin = origin
    event.plain_result = Mock(side_effect=lambda text: ("plain", text))
    event.image_result = Mock(side_effect=lambda url: ("image", url))
    return event


def collect(agen):
    async def _run():
        return [item async for item in agen]

    return asyncio.run(_run())


class TestHelpCommand:
    """Tests for the help command."""

    def test_sends_rendered_markup(self):
        plugin = make_plugin()
        results = collect(plugin.help_command(make_event("/图像帮助")))
        assert results == [("image", "http://render/info.png")]
        _, data = plugin.html_render.await_args.args
        assert data["content"] == plugin.config_manager.service_config.info_modal_markup

    def test_falls_back_to_markdown(self):
        plugin = make_plugin()
        plugin.html_render = AsyncMock(side_effect=RuntimeError("t2i offline"))
        results = collect(plugin.help_command(make_event("/图像帮助")))
        assert results == [("plain", plugin.info_notifier.markdown.strip())]


class TestImageCommand:
    """Tests for the image command."""

    def test_info_sent_once_per_session(self, png_image):
        plugin = make_plugin(images=[png_image])
        first = collect(plugin.image_command(make_event("/图像")))
        second = collect(plugin.image_command(make_event("/图像")))
        assert first[0] == ("image", "http://render/info.png")
        assert first[1] == ("plain", "已开始图像任务[1张参考图]")
        assert second == [("plain", "已开始图像任务[1张参考图]")]

    def test_info_every_time_when_not_once(self, png_image):
        plugin = make_plugin(
            {
                "api_key": "sk-test-key-123456",
                "files": {"info_modal": {"open_modal_once": False}},
            },
            images=[png_image],
        )
        for _ in range(2):
            results = collect(plugin.image_command(make_event("/图像")))
            assert results[0] == ("image", "http://render/info.png")

    def test_no_info_without_images(self):
        plugin = make_plugin()
        results = collect(plugin.image_command(make_event()))
        assert results == [("plain", "已开始图像任务")]
        plugin.html_render.assert_not_awaited()
        plugin.create_background_task.assert_called_once()

    def test_accepted_formats_passed_to_processor(self):
        plugin = make_plugin(
            {"api_key": "sk-test-key-123456", "files": {"accepted_formats": ".png,.jpg"}}
        )
        event = make_event()
        collect(plugin.image_command(event))
        plugin.image_processor.fetch_images_from_event.assert_awaited_once_with(
            event, 2, ".png,.jpg"
        )

    def test_rejects_empty_request(self):
        plugin = make_plugin()
        results = collect(plugin.image_command(make_event("/图像")))
        assert results == [("plain", "❌ 请提供提示词或附带图片！")]
        plugin.create_background_task.assert_not_called()


class TestKeyCommand:
    """Tests for the key command."""

    def test_save_failure_does_not_crash(self):
        """Test a failing config save is reported while the key stays active."""

        class FailingConfig(dict):
            def save_config(self):
                raise OSError("read-only filesystem")

        raw = FailingConfig()
        plugin = make_plugin(raw, executor=FakeExecutor({"data": []}))
        results = collect(plugin.key_command(make_event("/图像密钥"), "sk-new-key-abcdef"))

        assert results[0] == ("plain", "✅ API Key 已启用: sk-n****cdef")
        assert results[1][1].startswith("⚠️")
        headers = plugin.generator.adapter.request_settings.headers
        assert headers["Authorization"] == "Bearer sk-new-key-abcdef"

    def test_saved_on_success(self):
        raw = {}
        plugin = make_plugin(raw, executor=FakeExecutor({"data": []}))
        results = collect(plugin.key_command(make_event("/图像密钥"), "sk-new-key-abcdef"))
        assert results == [("plain", "✅ API Key 已启用: sk-n****cdef")]
        assert raw["api_key"] == "sk-new-key-abcdef"

    def test_invalid_key(self):
        plugin = make_plugin(
            {},
            executor=FakeExecutor({"error": {"code": "invalid_api_key", "message": "x"}}),
        )
        results = collect(plugin.key_command(make_event("/图像密钥"), "sk-bad-key-000000"))
        assert results == [("plain", "❌ API Key 验证失败: Invalid API Key")]
