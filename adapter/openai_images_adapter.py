from __future__ import annotations

import functools
from collections.abc import Callable, Sequence
from typing import Any

from astrbot.api import logger

from ..core.base_adapter import BaseImageAdapter, MessageValidator
from ..core.body_builder import (
    build_form_body,
    build_json_body,
    classify_operation,
    latest_message_text,
)
from ..core.config_manager import PluginConfig
from ..core.dispatcher import RequestInterceptor, identity_interceptor, prepare_request
from ..core.exceptions import ConfigurationError
from ..core.key_manager import KeyManager, build_request_settings
from ..core.result_normalizer import extract_result_data
from ..core.transport import AiohttpRequestExecutor, RequestExecutor
from ..core.types import (
    ImageData,
    ImageOperation,
    ImageResult,
    KeyVerificationHandlers,
    MessageContent,
    PreparedRequest,
)
from ..core.utils import mask_sensitive


class OpenAIImagesAdapter(BaseImageAdapter):
    """OpenAI Images 适配器：文生图、图像编辑（可选蒙版）、图像变体。"""

    def __init__(
        self,
        config: PluginConfig | None = None,
        executor: RequestExecutor | None = None,
        *,
        validate_message_before_sending: MessageValidator | None = None,
        request_interceptor: RequestInterceptor | None = None,
    ):
        config = config or PluginConfig()
        super().__init__(
            executor or AiohttpRequestExecutor(config.timeout, config.proxy),
            validate_message_before_sending,
        )
        self.service_config = config.service_config
        self.request_settings = config.request_settings
        self._raw_body: dict[str, Any] = dict(config.raw_body)
        self.request_interceptor = request_interceptor or identity_interceptor
        self._key_manager = KeyManager(self.executor)

    def _add_key(self, on_success: Callable[[str], Any], key: str) -> None:
        self.request_settings = build_request_settings(key, self.request_settings)
        logger.info(f"[OpenAIImages] 已启用 API Key: {mask_sensitive(key)}")
        on_success(key)

    async def verify_key(self, key: str, handlers: KeyVerificationHandlers) -> bool:
        wrapped = KeyVerificationHandlers(
            on_success=functools.partial(self._add_key, handlers.on_success),
            on_fail=handlers.on_fail,
            on_load=handlers.on_load,
        )
        return await self._key_manager.verify_key(key, wrapped)

    def build_request(
        self,
        messages: Sequence[MessageContent],
        files: Sequence[ImageData] | None = None,
    ) -> PreparedRequest:
        """构建单次调用的请求描述。

        Raises:
            ConfigurationError: 尚未配置请求头（通常是缺少 API Key）。
        """
        settings = self.request_settings
        if not settings.headers:
            raise ConfigurationError("Request settings have not been set up")

        files = list(files or [])
        max_chars = self.service_config.max_char_length
        operation = classify_operation(latest_message_text(messages), files)

        if operation is ImageOperation.GENERATION:
            body: Any = build_json_body(self._raw_body, messages, max_chars)
        elif operation is ImageOperation.EDIT:
            mask = files[1] if len(files) > 1 else None
            body = build_form_body(
                build_json_body(self._raw_body, messages, max_chars), files[0], mask
            )
        else:
            body = build_form_body(self._raw_body, files[0])

        return self.request_interceptor(prepare_request(operation, settings, body))

    async def call_api(
        self,
        messages: Sequence[MessageContent],
        files: Sequence[ImageData] | None = None,
    ) -> list[ImageResult]:
        request = self.build_request(messages, files)
        logger.info(
            f"[OpenAIImages] 发起 {request.operation.value if request.operation else 'unknown'} 请求: {request.url}"
        )
        result = await self.executor.execute(request)
        return self.extract_result_data(result)

    def extract_result_data(self, result: dict[str, Any]) -> list[ImageResult]:
        return extract_result_data(result)
