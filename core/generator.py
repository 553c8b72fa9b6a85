from __future__ import annotations

import time
from collections.abc import Sequence

from astrbot.api import logger

from ..adapter import OpenAIImagesAdapter
from .base_adapter import MessageValidator
from .body_builder import classify_operation, latest_message_text
from .config_manager import PluginConfig
from .exceptions import OpenAIImagesError
from .transport import RequestExecutor
from .types import GenerationResult, ImageData, KeyVerificationHandlers, MessageContent
from .utils import convert_images_batch


class ImageGenerator:
    """Adapter orchestrator responsible for dispatching generation requests."""

    def __init__(
        self,
        plugin_config: PluginConfig,
        executor: RequestExecutor | None = None,
        validate_message_before_sending: MessageValidator | None = None,
    ):
        self.plugin_config = plugin_config
        self.adapter = OpenAIImagesAdapter(
            plugin_config,
            executor,
            validate_message_before_sending=validate_message_before_sending,
        )

    def can_send_message(
        self, text: str, files: Sequence[ImageData] | None = None
    ) -> bool:
        return self.adapter.can_send_message(text, files)

    async def verify_key(self, key: str, handlers: KeyVerificationHandlers) -> bool:
        return await self.adapter.verify_key(key, handlers)

    async def generate(
        self,
        messages: Sequence[MessageContent],
        files: Sequence[ImageData] | None = None,
    ) -> GenerationResult:
        # 编辑与变体接口只接受 PNG，先统一转换再交给适配器
        converted: list[ImageData] = []
        if files:
            converted = await convert_images_batch(files)

        operation = classify_operation(latest_message_text(messages), converted)
        start = time.time()
        try:
            images = await self.adapter.call_api(messages, converted)
        except OpenAIImagesError as exc:
            logger.error(f"[OpenAIImages] {operation.value} 失败: {exc}")
            return GenerationResult(images=None, error=str(exc), operation=operation)
        except Exception as exc:  # noqa: BLE001
            logger.error(f"[OpenAIImages] Generation failed: {exc}", exc_info=True)
            return GenerationResult(images=None, error=str(exc), operation=operation)

        logger.info(
            f"[OpenAIImages] {operation.value} 完成，耗时: {time.time() - start:.2f}s, 图片数量: {len(images)}"
        )
        return GenerationResult(images=images, operation=operation)

    async def close(self) -> None:
        await self.adapter.close()
