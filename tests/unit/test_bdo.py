"""
Unit tests for the storage backend client and document normalization.
"""

from unittest.mock import Mock, patch

import pytest
import requests

from linkpage.bdo import EMOJICODE_LENGTH, BdoClient, normalize_document
from linkpage.errors import NotFoundError, UpstreamError
from linkpage.identity import generate_keypair, verify

LINKS = [{"title": "Site", "url": "https://example.com"}]


class TestNormalizeDocument:
    """Every known stored shape normalizes to title + links."""

    @pytest.mark.parametrize(
        "blob",
        [
            {"title": "T", "links": LINKS},
            {"bdo": {"title": "T", "links": LINKS}},
            {"data": {"title": "T", "links": LINKS}},
            {"title": "T", "carrierBag": {"links": LINKS}},
            {"bdo": {"title": "T", "data": {"carrierBag": {"links": LINKS}}}},
        ],
    )
    def test_known_shapes(self, blob):
        document = normalize_document(blob)

        assert document["title"] == "T"
        assert document["links"] == LINKS

    @pytest.mark.parametrize("blob", [None, [], "text", {}, {"links": "nope"}, {"bdo": {"data": {}}}])
    def test_missing_links_normalize_to_empty(self, blob):
        assert normalize_document(blob)["links"] == []

    def test_name_used_as_title(self):
        assert normalize_document({"name": "Named", "links": []})["title"] == "Named"


class TestStubBackend:
    """Test the in-memory backend."""

    def test_create_publish_fetch(self, bdo_client, keypair):
        uuid = bdo_client.create({"title": "T", "links": LINKS}, keypair)
        emojicode = bdo_client.publish(uuid, {"title": "T", "links": LINKS}, keypair)

        assert uuid.startswith("bdo_")
        assert len(emojicode) == EMOJICODE_LENGTH
        assert bdo_client.get_by_emojicode(emojicode)["bdo"]["links"] == LINKS
        assert bdo_client.get_by_pubkey(keypair.pub_key)["bdo"]["title"] == "T"

    def test_publish_is_stable(self, bdo_client, keypair):
        uuid = bdo_client.create({"links": LINKS}, keypair)

        assert bdo_client.publish(uuid, {"links": LINKS}, keypair) == bdo_client.publish(uuid, {"links": LINKS}, keypair)

    def test_publish_requires_owner(self, bdo_client, keypair):
        uuid = bdo_client.create({"links": LINKS}, keypair)

        with pytest.raises(UpstreamError):
            bdo_client.publish(uuid, {"links": LINKS}, generate_keypair())

    def test_unknown_lookups(self, bdo_client):
        with pytest.raises(NotFoundError):
            bdo_client.get_by_emojicode("🚫")
        with pytest.raises(NotFoundError):
            bdo_client.get_by_pubkey("02" + "00" * 32)


def response(status=200, payload=None, text=""):
    resp = Mock()
    resp.status_code = status
    resp.text = text
    resp.json.return_value = payload or {}
    return resp


class TestHttpBackend:
    """Test the HTTP backend with mocked requests."""

    @pytest.fixture
    def client(self):
        return BdoClient("https://bdo.test/", backend="http", hash_="Linkitylink", timeout=5)

    def test_create_sends_signed_payload(self, client, keypair):
        with patch("linkpage.bdo.requests.request", return_value=response(payload={"uuid": "u-1"})) as mock_request:
            assert client.create({"title": "T"}, keypair) == "u-1"

        method, url = mock_request.call_args[0]
        payload = mock_request.call_args[1]["json"]
        assert (method, url) == ("PUT", "https://bdo.test/user/create")
        assert payload["pubKey"] == keypair.pub_key
        assert payload["hash"] == "Linkitylink"
        assert payload["bdo"] == {"title": "T"}
        assert verify(payload["signature"], payload["timestamp"] + "Linkitylink" + keypair.pub_key, keypair.pub_key)
        assert mock_request.call_args[1]["timeout"] == 5

    def test_publish_returns_emojicode(self, client, keypair):
        with patch("linkpage.bdo.requests.request", return_value=response(payload={"emojiShortcode": "🔗💎"})) as mock_request:
            assert client.publish("u-1", {"title": "T"}, keypair) == "🔗💎"

        assert mock_request.call_args[0][1] == "https://bdo.test/user/u-1/bdo"
        assert mock_request.call_args[1]["json"]["public"] is True

    def test_get_by_emojicode_quotes_path(self, client):
        with patch("linkpage.bdo.requests.request", return_value=response(payload={"bdo": {}})) as mock_request:
            client.get_by_emojicode("🔗")

        assert mock_request.call_args[0][1] == "https://bdo.test/emoji/%F0%9F%94%97"

    def test_404_maps_to_not_found(self, client):
        with patch("linkpage.bdo.requests.request", return_value=response(status=404)):
            with pytest.raises(NotFoundError):
                client.get_by_pubkey("02ab")

    def test_server_error_maps_to_upstream(self, client):
        with patch("linkpage.bdo.requests.request", return_value=response(status=500, text="boom")):
            with pytest.raises(UpstreamError, match="500"):
                client.get_by_emojicode("🔗")

    def test_transport_error_maps_to_upstream(self, client):
        with patch("linkpage.bdo.requests.request", side_effect=requests.ConnectionError("refused")):
            with pytest.raises(UpstreamError):
                client.get_by_emojicode("🔗")

    def test_missing_uuid_is_upstream_error(self, client, keypair):
        with patch("linkpage.bdo.requests.request", return_value=response(payload={})):
            with pytest.raises(UpstreamError, match="uuid"):
                client.create({}, keypair)

    def test_invalid_json_is_upstream_error(self, client):
        bad = response()
        bad.json.side_effect = ValueError("no json")
        with patch("linkpage.bdo.requests.request", return_value=bad):
            with pytest.raises(UpstreamError, match="invalid JSON"):
                client.get_by_emojicode("🔗")
