"""
Tests for the downstream page-cache purge.
"""

from unittest.mock import MagicMock, patch

import httpx
import pytest

from app.services.revalidate import purge_post_cache


class TestPurgePostCache:
    """Tests for purge_post_cache()."""

    @patch("app.services.revalidate.settings")
    def test_no_url_configured(self, mock_settings):
        mock_settings.REVALIDATE_URL = ""
        assert purge_post_cache() is False

    @patch("app.services.revalidate.settings")
    @patch("app.services.revalidate.httpx.get")
    def test_calls_front_end(self, mock_get, mock_settings):
        mock_settings.REVALIDATE_URL = "https://blog.example.com/api/posts"
        mock_get.return_value = MagicMock(status_code=200)

        assert purge_post_cache() is True
        mock_get.assert_called_once_with(
            "https://blog.example.com/api/posts",
            params={"clearCache": "true"},
            timeout=5.0,
        )

    @patch("app.services.revalidate.settings")
    @patch("app.services.revalidate.httpx.get")
    def test_http_error_propagates(self, mock_get, mock_settings):
        mock_settings.REVALIDATE_URL = "https://blog.example.com/api/posts"
        mock_get.side_effect = httpx.ConnectError("refused")

        with pytest.raises(httpx.ConnectError):
            purge_post_cache()
