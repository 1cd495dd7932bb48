"""Submission of signed forward requests to a relay server.

The relay accepts the envelope ``{forwardRequest, metadata: {signature}}``
as compact JSON, hex-encoded and passed as the single parameter of an
``eth_sendRawTransaction`` JSON-RPC call.
"""

import json
import logging
from typing import Any

import httpx
from web3 import Web3

from .exceptions import ConfigurationError, RelayError
from .models import RelayEnvelope, SignedRequest
from .typed_data import encode_typed_data

logger = logging.getLogger(__name__)

RELAY_METHOD: str = "eth_sendRawTransaction"


def build_envelope(signed: SignedRequest) -> RelayEnvelope:
    """Wrap a signed request in the relay envelope.

    The message body omits ``typeSuffixData``; the relay rebuilds it from the
    type list, which still declares it.
    """
    typed_data = encode_typed_data(signed.request, signed.domain, signed.schema)
    return RelayEnvelope(
        forward_request=typed_data.to_json(include_suffix=False),
        signature_hex=signed.signature_hex,
    )


def encode_raw_transaction(envelope: RelayEnvelope) -> str:
    """Serialize the envelope to compact JSON and hex-encode it."""
    payload = json.dumps(envelope.to_dict(), separators=(",", ":"))
    return Web3.to_hex(payload.encode("utf-8"))


def decode_raw_transaction(raw_tx: str) -> dict[str, Any]:
    """Inverse of ``encode_raw_transaction``."""
    return json.loads(Web3.to_bytes(hexstr=raw_tx).decode("utf-8"))


def build_rpc_request(raw_tx: str, request_id: int = 1) -> dict[str, Any]:
    return {
        "id": request_id,
        "jsonrpc": "2.0",
        "method": RELAY_METHOD,
        "params": [raw_tx],
    }


def _error_message(body: Any) -> str | None:
    """Extract a JSON-RPC style ``error.message`` from a response body."""
    match body:
        case {"error": {"message": str(message)}}:
            return message
        case {"error": str(message)}:
            return message
        case _:
            return None


class RelaySubmitter:
    """Posts signed requests to the relay and returns the relay's tx hash."""

    def __init__(
        self,
        relay_url: str,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """
        Initialize the submitter.

        Args:
            relay_url: Relay JSON-RPC endpoint
            timeout: HTTP timeout in seconds
            transport: Optional httpx transport (used by tests)
        """
        if not relay_url:
            raise ConfigurationError("Relay URL is required")
        self.relay_url = relay_url
        self.timeout = timeout
        self.transport = transport

    async def _post(self, body: dict[str, Any]) -> httpx.Response:
        async with httpx.AsyncClient(transport=self.transport) as client:
            try:
                return await client.post(
                    self.relay_url,
                    json=body,
                    headers={"Content-Type": "application/json"},
                    timeout=self.timeout,
                )
            except httpx.HTTPError as e:
                raise RelayError(f"Relay request failed: {e}") from e

    def _parse_response(self, response: httpx.Response) -> str:
        try:
            body: Any = response.json()
        except ValueError:
            body = response.text

        if response.is_error:
            message = _error_message(body)
            if message is None:
                message = body if isinstance(body, str) and body else response.reason_phrase
            logger.error(f"Relay rejected request ({response.status_code}): {message}")
            raise RelayError(message, status_code=response.status_code, response=body)

        if (message := _error_message(body)) is not None:
            logger.error(f"Relay returned JSON-RPC error: {message}")
            raise RelayError(message, status_code=response.status_code, response=body)

        match body:
            case {"result": str(tx_hash)} if tx_hash:
                return tx_hash
            case _:
                raise RelayError(
                    "Malformed relay response: missing result",
                    status_code=response.status_code,
                    response=body,
                )

    async def submit(self, signed: SignedRequest, request_id: int = 1) -> str:
        """
        Submit a signed request to the relay.

        Args:
            signed: Locally verified signed request
            request_id: JSON-RPC request id

        Returns:
            Transaction hash reported by the relay

        Raises:
            RelayError: On transport failure, non-success status, JSON-RPC
                error or a response without a result
        """
        envelope = build_envelope(signed)
        raw_tx = encode_raw_transaction(envelope)
        logger.debug(f"Relay envelope: {json.dumps(envelope.to_dict())}")

        logger.info(f"Submitting nonce {signed.request.nonce} to relay {self.relay_url}")
        response = await self._post(build_rpc_request(raw_tx, request_id))
        tx_hash = self._parse_response(response)

        logger.info(f"Relay accepted request, txHash: {tx_hash}")
        return tx_hash
