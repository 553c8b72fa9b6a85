from __future__ import annotations

from typing import Any

from .constants import BASE_64_PREFIX
from .exceptions import ApiError
from .types import Base64Image, ImageResult, UrlImage


def extract_result_data(result: dict[str, Any]) -> list[ImageResult]:
    """Map a decoded images response onto ``UrlImage``/``Base64Image`` entries.

    Raises:
        ApiError: the response carries an ``error`` object.
    """
    error = result.get("error")
    if error:
        if isinstance(error, dict):
            raise ApiError(str(error.get("message") or error), code=error.get("code"))
        raise ApiError(str(error))

    images: list[ImageResult] = []
    for image_data in result.get("data") or []:
        if image_data.get("url"):
            images.append(UrlImage(url=image_data["url"]))
        else:
            images.append(Base64Image(base64=f"{BASE_64_PREFIX}{image_data.get('b64_json') or ''}"))
    return images
