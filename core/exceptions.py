from __future__ import annotations


class OpenAIImagesError(Exception):
    """Base error for the OpenAI Images adapter."""


class ConfigurationError(OpenAIImagesError):
    """Request settings are absent or incomplete."""


class ApiError(OpenAIImagesError):
    """The service answered with an error object."""

    def __init__(self, message: str, code: str | None = None):
        super().__init__(message)
        self.message = message
        self.code = code


class TransportError(OpenAIImagesError):
    """The request never produced a decodable response."""
