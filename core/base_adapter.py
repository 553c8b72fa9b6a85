from __future__ import annotations

import abc
from collections.abc import Callable, Sequence
from typing import Any

from .transport import RequestExecutor
from .types import ImageData, ImageResult, KeyVerificationHandlers, MessageContent

MessageValidator = Callable[[str, Sequence[ImageData] | None], bool]


class BaseImageAdapter(abc.ABC):
    """Base class for chat-facing image service adapters."""

    def __init__(
        self,
        executor: RequestExecutor,
        validate_message_before_sending: MessageValidator | None = None,
    ):
        self.executor = executor
        self._validate_message = validate_message_before_sending

    async def close(self) -> None:
        """Release the executor's resources, if it holds any."""

        close = getattr(self.executor, "close", None)
        if close is not None:
            await close()

    def can_send_message(
        self, text: str, files: Sequence[ImageData] | None = None
    ) -> bool:
        """Whether the chat input may be sent.

        A caller-supplied validator replaces the built-in rule entirely.
        """
        if self._validate_message is not None:
            return bool(self._validate_message(text, files))
        return bool(files) or (text or "").strip() != ""

    @abc.abstractmethod
    async def verify_key(self, key: str, handlers: KeyVerificationHandlers) -> bool:
        """Validate ``key`` remotely and install it on success."""

    @abc.abstractmethod
    async def call_api(
        self,
        messages: Sequence[MessageContent],
        files: Sequence[ImageData] | None = None,
    ) -> list[ImageResult]:
        """Send the latest turn and return the normalized images."""

    @abc.abstractmethod
    def extract_result_data(self, result: dict[str, Any]) -> list[ImageResult]:
        """Normalize a raw service response."""
