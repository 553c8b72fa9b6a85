from __future__ import annotations

from typing import TYPE_CHECKING

from astrbot.api import logger

from .constants import MODELS_URL
from .exceptions import TransportError
from .types import KeyVerificationHandlers, PreparedRequest, RequestSettings
from .utils import mask_sensitive

if TYPE_CHECKING:
    from .transport import RequestExecutor

EMPTY_KEY_MESSAGE = "Please enter a key"
INVALID_KEY_MESSAGE = "Invalid API Key"
CONNECTION_FAILED_MESSAGE = "Failed to connect to OpenAI, please try again later"


def build_request_settings(
    key: str, settings: RequestSettings | None = None
) -> RequestSettings:
    """Return new settings carrying the bearer header for ``key``.

    Existing headers are kept; a previous authorization header is replaced and
    a JSON content type is added when none is set.
    """
    settings = settings or RequestSettings()
    headers = {
        name: value
        for name, value in (settings.headers or {}).items()
        if name.lower() != "authorization"
    }
    headers["Authorization"] = f"Bearer {key}"
    if not any(name.lower() == "content-type" for name in headers):
        headers["Content-Type"] = "application/json"
    return RequestSettings(url=settings.url, headers=headers)


class KeyManager:
    """Validates candidate keys against the models endpoint."""

    def __init__(self, executor: RequestExecutor, verification_url: str = MODELS_URL):
        self._executor = executor
        self.verification_url = verification_url

    async def verify_key(self, key: str, handlers: KeyVerificationHandlers) -> bool:
        key = (key or "").strip()
        if not key:
            handlers.on_fail(EMPTY_KEY_MESSAGE)
            return False

        request = PreparedRequest(
            method="GET",
            url=self.verification_url,
            headers=dict(build_request_settings(key).headers or {}),
        )

        handlers.on_load(True)
        try:
            try:
                result = await self._executor.execute(request)
            except TransportError as exc:
                logger.warning(
                    f"[OpenAIImages] Key {mask_sensitive(key)} verification failed: {exc}"
                )
                handlers.on_fail(CONNECTION_FAILED_MESSAGE)
                return False

            error = result.get("error") if isinstance(result, dict) else None
            if error:
                code = error.get("code") if isinstance(error, dict) else None
                logger.info(
                    f"[OpenAIImages] Key {mask_sensitive(key)} rejected (code={code})"
                )
                if code == "invalid_api_key":
                    handlers.on_fail(INVALID_KEY_MESSAGE)
                else:
                    handlers.on_fail(CONNECTION_FAILED_MESSAGE)
                return False

            handlers.on_success(key)
            return True
        finally:
            handlers.on_load(False)
