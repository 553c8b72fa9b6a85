from __future__ import annotations

import asyncio
from typing import Any, Protocol

import aiohttp

from astrbot.api import logger

from .constants import DEFAULT_TIMEOUT
from .exceptions import TransportError
from .types import MultipartBody, PreparedRequest


class RequestExecutor(Protocol):
    """Performs one prepared request and returns the decoded JSON body."""

    async def execute(self, request: PreparedRequest) -> dict[str, Any]: ...


def build_form_data(body: MultipartBody) -> aiohttp.FormData:
    data = aiohttp.FormData()
    for part in body.fields:
        if part.is_file:
            data.add_field(
                part.name,
                part.value,
                filename=part.filename,
                content_type=part.content_type,
            )
        else:
            data.add_field(part.name, part.value)
    return data


class AiohttpRequestExecutor:
    """Request executor backed by a lazily created ``aiohttp.ClientSession``."""

    def __init__(self, timeout: int = DEFAULT_TIMEOUT, proxy: str | None = None):
        self.timeout = timeout
        self.proxy = proxy
        self._session: aiohttp.ClientSession | None = None

    async def close(self) -> None:
        """Close underlying HTTP session."""

        if self._session and not self._session.closed:
            await self._session.close()
        self._session = None

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession()
        return self._session

    async def execute(self, request: PreparedRequest) -> dict[str, Any]:
        kwargs: dict[str, Any] = {
            "headers": dict(request.headers),
            "proxy": self.proxy,
            "timeout": aiohttp.ClientTimeout(total=self.timeout),
        }
        if request.form is not None:
            kwargs["data"] = build_form_data(request.form)
        elif request.json is not None:
            kwargs["json"] = request.json

        session = self._get_session()
        try:
            async with session.request(request.method, request.url, **kwargs) as resp:
                try:
                    payload = await resp.json(content_type=None)
                except ValueError:
                    payload = None
                if not isinstance(payload, dict):
                    error_text = await resp.text()
                    logger.error(
                        f"[OpenAIImages] {request.method} {request.url} 返回无法解析的响应 ({resp.status}): {error_text[:200]}"
                    )
                    raise TransportError(f"Unexpected response ({resp.status})")
                if resp.status >= 400:
                    logger.error(
                        f"[OpenAIImages] {request.method} {request.url} 错误 ({resp.status})"
                    )
                return payload
        except aiohttp.ClientError as exc:
            logger.error(f"[OpenAIImages] 请求异常: {exc}")
            raise TransportError(str(exc)) from exc
        except asyncio.TimeoutError as exc:
            logger.error(f"[OpenAIImages] 请求超时: {request.url}")
            raise TransportError(f"Request timed out after {self.timeout}s") from exc
