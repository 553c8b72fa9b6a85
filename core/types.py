from __future__ import annotations

import enum
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from typing import Any, Union

from .constants import (
    DEFAULT_ACCEPTED_FORMATS,
    DEFAULT_MAX_NUMBER_OF_FILES,
    IMAGES_MAX_CHAR_LENGTH,
)


class ImageOperation(str, enum.Enum):
    """The three remote image operations."""

    GENERATION = "generation"
    EDIT = "edit"
    VARIATION = "variation"


@dataclass
class ImageData:
    """Image bytes with an associated MIME type."""

    data: bytes
    mime_type: str = "image/png"
    filename: str = "image.png"


@dataclass
class MessageContent:
    """A single chat turn."""

    content: str
    role: str = "user"


@dataclass(frozen=True)
class InfoModal:
    """Settings for the informational modal shown next to the file button."""

    open_modal_once: bool = True
    text_markdown: str | None = None


@dataclass(frozen=True)
class FilesPolicy:
    """Upload policy advertised to the chat interface."""

    accepted_formats: str = DEFAULT_ACCEPTED_FORMATS
    max_number_of_files: int = DEFAULT_MAX_NUMBER_OF_FILES
    info_modal: InfoModal | None = field(default_factory=InfoModal)


@dataclass(frozen=True)
class ServiceConfig:
    """Resolved, immutable adapter configuration."""

    files: FilesPolicy = field(default_factory=FilesPolicy)
    info_modal_markup: str | None = None
    max_char_length: int = IMAGES_MAX_CHAR_LENGTH


@dataclass(frozen=True)
class RequestSettings:
    """Override URL and headers shared by every call of an adapter."""

    url: str | None = None
    headers: Mapping[str, str] | None = None


@dataclass(frozen=True)
class FormField:
    """One part of a multipart body."""

    name: str
    value: str | bytes
    filename: str | None = None
    content_type: str | None = None

    @property
    def is_file(self) -> bool:
        return self.filename is not None


@dataclass(frozen=True)
class MultipartBody:
    """Ordered multipart form parts, independent of any HTTP library."""

    fields: tuple[FormField, ...] = ()

    def names(self) -> list[str]:
        return [f.name for f in self.fields]

    def file_names(self) -> list[str]:
        return [f.name for f in self.fields if f.is_file]

    def get(self, name: str) -> FormField | None:
        for f in self.fields:
            if f.name == name:
                return f
        return None


@dataclass(frozen=True)
class PreparedRequest:
    """Everything needed to perform one HTTP call, built fresh per call."""

    method: str
    url: str
    headers: Mapping[str, str] = field(default_factory=dict)
    json: dict[str, Any] | None = None
    form: MultipartBody | None = None
    operation: ImageOperation | None = None

    @property
    def is_multipart(self) -> bool:
        return self.form is not None


@dataclass(frozen=True)
class UrlImage:
    """Image hosted by the service."""

    url: str

    def to_dict(self) -> dict[str, str]:
        return {"url": self.url}


@dataclass(frozen=True)
class Base64Image:
    """Inline image as a data URI."""

    base64: str

    def to_dict(self) -> dict[str, str]:
        return {"base64": self.base64}


ImageResult = Union[UrlImage, Base64Image]


def _noop(*_args: Any) -> None:
    return None


@dataclass
class KeyVerificationHandlers:
    """Callbacks notified while a key is being verified."""

    on_success: Callable[[str], Any] = _noop
    on_fail: Callable[[str], Any] = _noop
    on_load: Callable[[bool], Any] = _noop


@dataclass
class GenerationResult:
    """Result of a generation attempt."""

    images: list[ImageResult] | None = None
    error: str | None = None
    operation: ImageOperation | None = None
