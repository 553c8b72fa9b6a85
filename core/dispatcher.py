from __future__ import annotations

from collections.abc import Callable
from typing import Any

from .constants import IMAGE_EDIT_URL, IMAGE_GENERATION_URL, IMAGE_VARIATIONS_URL
from .types import ImageOperation, MultipartBody, PreparedRequest, RequestSettings

RequestInterceptor = Callable[[PreparedRequest], PreparedRequest]

ENDPOINTS: dict[ImageOperation, str] = {
    ImageOperation.GENERATION: IMAGE_GENERATION_URL,
    ImageOperation.EDIT: IMAGE_EDIT_URL,
    ImageOperation.VARIATION: IMAGE_VARIATIONS_URL,
}


def resolve_endpoint(operation: ImageOperation, override_url: str | None = None) -> str:
    """An explicitly configured URL always wins over the operation default."""
    return override_url or ENDPOINTS[operation]


def prepare_request(
    operation: ImageOperation,
    settings: RequestSettings,
    body: dict[str, Any] | MultipartBody,
) -> PreparedRequest:
    """Snapshot the shared settings into a descriptor for a single call.

    Multipart bodies drop any content-type header from the copy so the
    transport can set its own boundary; ``settings`` is left untouched.
    """
    headers = dict(settings.headers or {})
    url = resolve_endpoint(operation, settings.url)

    if isinstance(body, MultipartBody):
        headers = {k: v for k, v in headers.items() if k.lower() != "content-type"}
        return PreparedRequest(
            method="POST", url=url, headers=headers, form=body, operation=operation
        )
    return PreparedRequest(
        method="POST", url=url, headers=headers, json=body, operation=operation
    )


def identity_interceptor(request: PreparedRequest) -> PreparedRequest:
    return request
