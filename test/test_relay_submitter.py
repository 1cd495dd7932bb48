#!/usr/bin/env python3
"""Tests for the relay submitter.

This module tests envelope construction, raw transaction encoding and the
JSON-RPC exchange with the relay, using httpx mock transports.
"""

import json
import unittest
from unittest.mock import patch

import httpx
import pytest

from gasless_relay.exceptions import ConfigurationError, RelayError
from gasless_relay.models import MAX_UINT256, Domain, ForwardRequest, TypeSchema
from gasless_relay.relay_submitter import (
    RELAY_METHOD,
    RelaySubmitter,
    build_envelope,
    build_rpc_request,
    decode_raw_transaction,
    encode_raw_transaction,
)
from gasless_relay.signer import sign_and_verify
from gasless_relay.typed_data import encode_typed_data

from conftest import FORWARDER_ADDRESS, RECIPIENT_ADDRESS, TEST_ADDRESS, TEST_PRIVATE_KEY

RELAY_URL = "http://relay.test/rpc"
TX_HASH = "0x" + "ab" * 32


def make_signed_request():
    request = ForwardRequest(
        sender=TEST_ADDRESS,
        to=RECIPIENT_ADDRESS,
        value=0,
        gas=700000,
        nonce=5,
        data=bytes.fromhex("abcdef"),
        valid_until_time=MAX_UINT256,
    )
    domain = Domain(name="Fwd", version="1", chain_id=1337, verifying_contract=FORWARDER_ADDRESS)
    return sign_and_verify(TEST_PRIVATE_KEY, encode_typed_data(request, domain, TypeSchema("ForwardRequest")))


class TestEnvelope:
    """Tests for envelope construction and encoding."""

    def setup_method(self):
        self.signed = make_signed_request()

    def test_envelope_shape(self):
        envelope = build_envelope(self.signed).to_dict()

        assert set(envelope) == {"forwardRequest", "metadata"}
        assert set(envelope["forwardRequest"]) == {"domain", "types", "primaryType", "message"}
        assert envelope["forwardRequest"]["primaryType"] == "ForwardRequest"
        assert envelope["metadata"]["signature"] == self.signed.signature_hex[2:]
        assert len(envelope["metadata"]["signature"]) == 130

    def test_message_omits_suffix(self):
        message = build_envelope(self.signed).to_dict()["forwardRequest"]["message"]

        assert "typeSuffixData" not in message
        assert message["from"] == TEST_ADDRESS
        assert message["nonce"] == "0x05"
        assert message["gas"] == "0x0aae60"
        assert message["value"] == "0x00"
        assert message["data"] == "0xabcdef"

    def test_raw_transaction_round_trip(self):
        envelope = build_envelope(self.signed)
        raw_tx = encode_raw_transaction(envelope)

        assert raw_tx.startswith("0x")
        assert decode_raw_transaction(raw_tx) == envelope.to_dict()

    def test_raw_transaction_is_compact_json(self):
        raw_tx = encode_raw_transaction(build_envelope(self.signed))
        text = bytes.fromhex(raw_tx[2:]).decode("utf-8")

        assert ", " not in text
        assert ": " not in text

    def test_rpc_request(self):
        assert build_rpc_request("0xdead") == {
            "id": 1,
            "jsonrpc": "2.0",
            "method": "eth_sendRawTransaction",
            "params": ["0xdead"],
        }


class TestRelaySubmitter(unittest.IsolatedAsyncioTestCase):
    """Test cases for RelaySubmitter."""

    def setUp(self):
        """Set up test fixtures."""
        self.signed = make_signed_request()
        self.requests: list[httpx.Request] = []

    def make_submitter(self, status_code: int, body=None, text: str | None = None) -> RelaySubmitter:
        def handler(request: httpx.Request) -> httpx.Response:
            self.requests.append(request)
            if text is not None:
                return httpx.Response(status_code, text=text)
            return httpx.Response(status_code, json=body)

        return RelaySubmitter(RELAY_URL, timeout=5.0, transport=httpx.MockTransport(handler))

    async def test_submit_success(self):
        submitter = self.make_submitter(200, {"jsonrpc": "2.0", "id": 1, "result": TX_HASH})

        tx_hash = await submitter.submit(self.signed)

        assert tx_hash == TX_HASH
        assert len(self.requests) == 1
        sent = self.requests[0]
        assert sent.method == "POST"
        assert str(sent.url) == RELAY_URL
        assert sent.headers["content-type"] == "application/json"

        body = json.loads(sent.content)
        assert body["method"] == RELAY_METHOD
        assert body["jsonrpc"] == "2.0"
        assert len(body["params"]) == 1
        assert decode_raw_transaction(body["params"][0]) == build_envelope(self.signed).to_dict()

    async def test_error_body_surfaced(self):
        submitter = self.make_submitter(400, {"error": {"message": "nonce too low"}})

        with pytest.raises(RelayError, match="nonce too low") as exc_info:
            await submitter.submit(self.signed)

        assert exc_info.value.status_code == 400
        assert exc_info.value.response == {"error": {"message": "nonce too low"}}

    async def test_jsonrpc_error_with_success_status(self):
        submitter = self.make_submitter(
            200, {"jsonrpc": "2.0", "id": 1, "error": {"code": -32000, "message": "nonce too low"}}
        )

        with pytest.raises(RelayError, match="nonce too low"):
            await submitter.submit(self.signed)

    async def test_plain_text_error(self):
        submitter = self.make_submitter(502, text="upstream unavailable")

        with pytest.raises(RelayError, match="upstream unavailable") as exc_info:
            await submitter.submit(self.signed)

        assert exc_info.value.status_code == 502

    async def test_missing_result(self):
        submitter = self.make_submitter(200, {"jsonrpc": "2.0", "id": 1})

        with pytest.raises(RelayError, match="Malformed relay response"):
            await submitter.submit(self.signed)

    async def test_transport_error_wrapped(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        submitter = RelaySubmitter(RELAY_URL, transport=httpx.MockTransport(handler))

        with pytest.raises(RelayError, match="Relay request failed"):
            await submitter.submit(self.signed)

    async def test_no_retry_on_failure(self):
        submitter = self.make_submitter(500, {"error": {"message": "boom"}})

        with pytest.raises(RelayError):
            await submitter.submit(self.signed)

        assert len(self.requests) == 1

    @patch.object(RelaySubmitter, "_post")
    async def test_request_id_forwarded(self, mock_post):
        mock_post.return_value = httpx.Response(200, json={"result": TX_HASH})

        await RelaySubmitter(RELAY_URL).submit(self.signed, request_id=7)

        assert mock_post.call_args[0][0]["id"] == 7

    def test_requires_url(self):
        with pytest.raises(ConfigurationError, match="Relay URL is required"):
            RelaySubmitter("")


if __name__ == "__main__":
    unittest.main()
