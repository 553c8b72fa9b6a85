"""Tests for endpoint selection and per-call request snapshots."""

from astrbot_plugin_openai_images.core.constants import (
    IMAGE_EDIT_URL,
    IMAGE_GENERATION_URL,
    IMAGE_VARIATIONS_URL,
)
from astrbot_plugin_openai_images.core.dispatcher import prepare_request, resolve_endpoint
from astrbot_plugin_openai_images.core.types import (
    FormField,
    ImageOperation,
    MultipartBody,
    RequestSettings,
)


class TestResolveEndpoint:
    """Tests for resolve_endpoint."""

    def test_default_endpoints(self):
        assert resolve_endpoint(ImageOperation.GENERATION) == IMAGE_GENERATION_URL
        assert resolve_endpoint(ImageOperation.EDIT) == IMAGE_EDIT_URL
        assert resolve_endpoint(ImageOperation.VARIATION) == IMAGE_VARIATIONS_URL

    def test_override_wins(self):
        for operation in ImageOperation:
            assert resolve_endpoint(operation, "https://proxy/x") == "https://proxy/x"


class TestPrepareRequest:
    """Tests for prepare_request."""

    settings = RequestSettings(
        headers={"Authorization": "Bearer k", "content-type": "application/json"}
    )

    def test_json_request(self):
        """Test JSON calls keep every header."""
        request = prepare_request(ImageOperation.GENERATION, self.settings, {"prompt": "x"})
        assert request.method == "POST"
        assert request.url == IMAGE_GENERATION_URL
        assert request.json == {"prompt": "x"}
        assert not request.is_multipart
        assert request.headers["content-type"] == "application/json"

    def test_multipart_drops_content_type_from_copy(self):
        """Test multipart calls drop content-type without touching settings."""
        form = MultipartBody(fields=(FormField("image", b"x", filename="a.png"),))
        request = prepare_request(ImageOperation.VARIATION, self.settings, form)
        assert request.is_multipart
        assert request.url == IMAGE_VARIATIONS_URL
        assert request.headers == {"Authorization": "Bearer k"}
        assert self.settings.headers["content-type"] == "application/json"

    def test_headers_are_copied(self):
        """Test the descriptor does not share the settings' header dict."""
        request = prepare_request(ImageOperation.GENERATION, self.settings, {})
        assert request.headers is not self.settings.headers
