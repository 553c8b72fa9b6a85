"""Request body construction for the three image operations.

``classify_operation`` decides which endpoint a turn targets; the JSON and
multipart builders then shape the body. The raw body template is only ever
read here, every builder works on its own copy.
"""

from __future__ import annotations

import copy
from collections.abc import Mapping, Sequence
from typing import Any

from .types import FormField, ImageData, ImageOperation, MessageContent, MultipartBody


def latest_message_text(messages: Sequence[MessageContent]) -> str:
    """Trimmed text of the most recent turn, empty when there is none."""
    if not messages:
        return ""
    return (messages[-1].content or "").strip()


def classify_operation(
    text: str, files: Sequence[ImageData] | None = None
) -> ImageOperation:
    """Pick the operation from the attached files and the latest text.

    ===========  ==========  ==========
    files        text        operation
    ===========  ==========  ==========
    none         any         generation
    1            empty       variation
    1            non-empty   edit
    2            any         edit (second file is the mask)
    ===========  ==========  ==========
    """
    if not files:
        return ImageOperation.GENERATION
    if len(files) > 1 or (text or "").strip():
        return ImageOperation.EDIT
    return ImageOperation.VARIATION


def build_json_body(
    raw_body: Mapping[str, Any],
    messages: Sequence[MessageContent],
    max_char_length: int,
) -> dict[str, Any]:
    body = copy.deepcopy(dict(raw_body))
    text = latest_message_text(messages)
    if text:
        body["prompt"] = text[:max_char_length]
    return body


def _stringify(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _file_field(name: str, image: ImageData) -> FormField:
    return FormField(
        name=name,
        value=image.data,
        filename=image.filename,
        content_type=image.mime_type,
    )


def build_form_body(
    raw_body: Mapping[str, Any], image: ImageData, mask: ImageData | None = None
) -> MultipartBody:
    fields = [_file_field("image", image)]
    if mask is not None:
        fields.append(_file_field("mask", mask))
    for key, value in raw_body.items():
        fields.append(FormField(name=key, value=_stringify(value)))
    return MultipartBody(fields=tuple(fields))
