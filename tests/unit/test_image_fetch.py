"""
Unit tests for the image fetch follow-up request.

Run: pytest tests/unit/test_image_fetch.py -v
"""

from unittest.mock import MagicMock, patch

import requests

from integrations.image_fetch import build_payload, request_image_fetch


class TestRequestImageFetch:
    """Tests for request_image_fetch()"""

    def test_posts_payload(self):
        """Should POST the product identity as JSON."""
        # Arrange
        response = MagicMock(status_code=202)

        # Act
        with patch("integrations.image_fetch.requests.post", return_value=response) as mock_post:
            accepted = request_image_fetch("http://images.local/fetch", "012345678905", "Bottle", "p-1", timeout=3)

        # Assert
        assert accepted is True
        mock_post.assert_called_once_with(
            "http://images.local/fetch",
            json={"product_id": "p-1", "upc": "012345678905", "title": "Bottle"},
            timeout=3,
        )
        response.raise_for_status.assert_called_once()

    def test_no_url_skips_request(self):
        with patch("integrations.image_fetch.requests.post") as mock_post:
            assert request_image_fetch(None, "012345678905", "Bottle", "p-1") is False

        mock_post.assert_not_called()

    def test_http_error_returns_false(self):
        response = MagicMock()
        response.raise_for_status.side_effect = requests.exceptions.HTTPError("503")

        with patch("integrations.image_fetch.requests.post", return_value=response):
            assert request_image_fetch("http://images.local/fetch", "012345678905", None, "p-1") is False

    def test_timeout_returns_false(self):
        with patch("integrations.image_fetch.requests.post", side_effect=requests.exceptions.Timeout()):
            assert request_image_fetch("http://images.local/fetch", "012345678905", None, "p-1") is False

    def test_payload_without_title(self):
        assert build_payload("012345678905", None, "p-1")["title"] == ""
