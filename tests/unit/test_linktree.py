"""
Unit tests for the Linktree importer.
"""

import json
from unittest.mock import Mock, patch

import pytest
import requests

from linkpage.errors import UpstreamError, ValidationError
from linkpage.linktree import extract_next_data, is_linktree_url, links_from_account, parse_linktree


def page(account):
    data = {"props": {"pageProps": {"account": account}}}
    return f'<html><head></head><body><script id="__NEXT_DATA__" type="application/json">{json.dumps(data)}</script></body></html>'


def response(status=200, text=""):
    resp = Mock()
    resp.status_code = status
    resp.text = text
    return resp


ACCOUNT = {
    "username": "maker",
    "links": [
        {"title": "Blog", "url": "https://blog.example.com"},
        {"title": "Shop", "url": "https://shop.example.com"},
    ],
    "socialLinks": [
        {"type": "YOUTUBE", "url": "https://youtube.com/@maker"},
        {"type": "TIKTOK", "url": "https://tiktok.com/@maker"},
    ],
}


class TestLinktreeUrl:
    @pytest.mark.parametrize("url", ["https://linktr.ee/maker", "http://www.linktr.ee/maker", "https://LINKTR.EE/x"])
    def test_accepted(self, url):
        assert is_linktree_url(url)

    @pytest.mark.parametrize("url", ["", None, "https://example.com/linktr.ee", "https://linktr.ee.evil.com/x", 42])
    def test_rejected(self, url):
        assert not is_linktree_url(url)


class TestExtraction:
    def test_regular_links_before_social(self):
        links = links_from_account(ACCOUNT)

        assert [link["title"] for link in links] == ["Blog", "Shop", "Youtube", "Tiktok"]
        assert "isSocial" not in links[0]
        assert links[2]["isSocial"] is True

    def test_missing_next_data(self):
        with pytest.raises(ValidationError, match="__NEXT_DATA__"):
            extract_next_data("<html></html>")

    def test_invalid_next_data(self):
        with pytest.raises(ValidationError):
            extract_next_data('<script id="__NEXT_DATA__">{broken</script>')


class TestParseLinktree:
    def test_parse(self):
        with patch("linkpage.linktree.requests.get", return_value=response(text=page(ACCOUNT))) as mock_get:
            result = parse_linktree("https://linktr.ee/maker", timeout=3)

        assert mock_get.call_args[1]["timeout"] == 3
        assert result["source"] == "linktree"
        assert result["sourceUrl"] == "https://linktr.ee/maker"
        assert result["username"] == "maker"
        assert len(result["links"]) == 4

    def test_invalid_url_is_not_fetched(self):
        with patch("linkpage.linktree.requests.get") as mock_get:
            with pytest.raises(ValidationError, match="Invalid Linktree URL"):
                parse_linktree("https://example.com/maker")

        mock_get.assert_not_called()

    def test_page_without_links(self):
        with patch("linkpage.linktree.requests.get", return_value=response(text=page({"username": "empty"}))):
            with pytest.raises(ValidationError, match="No links found"):
                parse_linktree("https://linktr.ee/empty")

    def test_unknown_page(self):
        with patch("linkpage.linktree.requests.get", return_value=response(status=404)):
            with pytest.raises(ValidationError):
                parse_linktree("https://linktr.ee/nobody")

    def test_server_error(self):
        with patch("linkpage.linktree.requests.get", return_value=response(status=503)):
            with pytest.raises(UpstreamError, match="503"):
                parse_linktree("https://linktr.ee/maker")

    def test_transport_error(self):
        with patch("linkpage.linktree.requests.get", side_effect=requests.Timeout("slow")):
            with pytest.raises(UpstreamError):
                parse_linktree("https://linktr.ee/maker")
