"""Forward request assembly.

Combines per-run chain state (sender, nonce, chain id, calldata) with the
static request configuration into a ``ForwardRequest`` and its ``Domain``.
"""

import logging
import time

from eth_utils import keccak
from web3 import Web3

from .config import RequestConfig
from .exceptions import ConfigurationError
from .models import SUFFIX_DATA_LENGTH, Domain, ForwardRequest, checksum_address

logger = logging.getLogger(__name__)


def normalize_suffix_data(raw: str | bytes) -> bytes:
    """Normalize a configured suffix into exactly 32 bytes.

    - ``0x``-prefixed hex of exactly 32 bytes is used verbatim.
    - Other strings are UTF-8 encoded.
    - Up to 32 bytes: left-aligned, zero-padded on the right (``bytes32`` layout).
    - Longer input is replaced by its keccak256 hash.
    """
    if isinstance(raw, str):
        if raw.startswith("0x") and len(raw) == 2 + 2 * SUFFIX_DATA_LENGTH:
            try:
                return Web3.to_bytes(hexstr=raw)
            except ValueError:
                pass  # Not hex after all, treat as text
        data = raw.encode("utf-8")
    else:
        data = bytes(raw)

    if len(data) > SUFFIX_DATA_LENGTH:
        return keccak(data)
    return data.ljust(SUFFIX_DATA_LENGTH, b"\x00")


class RequestBuilder:
    """Builds forward requests for one forwarder/recipient pair."""

    def __init__(self, config: RequestConfig) -> None:
        self.config = config
        self.suffix_data: bytes = normalize_suffix_data(config.request_type_suffix)

    def build_domain(self, chain_id: int) -> Domain:
        return Domain(
            name=self.config.domain_name,
            version=self.config.domain_version,
            chain_id=chain_id,
            verifying_contract=checksum_address(self.config.forwarder_address, "forwarder"),
        )

    def resolve_valid_until(self, valid_until_time: int | None, now: int | None = None) -> int:
        """Pick the request expiry.

        An explicit ``valid_until_time`` always wins. Otherwise the configured
        policy applies; the default policy never expires, which is a
        convenience rather than a safe choice, so it is logged as a warning.
        """
        if valid_until_time is not None:
            return valid_until_time

        policy = self.config.expiry
        if policy.never_expires:
            logger.warning("No expiry configured: request will be valid until it is executed")
        return policy.resolve(int(time.time()) if now is None else now)

    def build(
        self,
        sender: str,
        call_data: bytes,
        nonce: int,
        chain_id: int,
        recipient: str | None = None,
        value: int = 0,
        gas: int | None = None,
        valid_until_time: int | None = None,
    ) -> tuple[ForwardRequest, Domain]:
        """Assemble a forward request and its signing domain.

        Args:
            sender: Address that will sign the request
            call_data: ABI-encoded call for the recipient
            nonce: Current forwarder nonce of ``sender``
            chain_id: Chain the forwarder lives on
            recipient: Target contract, defaults to the configured recipient
            value: Native value to forward, in wei
            gas: Gas budget, defaults to the configured gas limit
            valid_until_time: Absolute expiry, defaults to the expiry policy

        Raises:
            ConfigurationError: If the forwarder or recipient address is missing
        """
        if not self.config.forwarder_address:
            raise ConfigurationError("Forwarder address is required (FORWARDER_ADDRESS)")

        target = recipient or self.config.recipient_address
        if not target:
            raise ConfigurationError("Recipient address is required (RECIPIENT_CONTRACT_ADDRESS)")

        domain = self.build_domain(chain_id)
        request = ForwardRequest(
            sender=sender,
            to=target,
            value=value,
            gas=self.config.gas_limit if gas is None else gas,
            nonce=nonce,
            data=call_data,
            valid_until_time=self.resolve_valid_until(valid_until_time),
            type_suffix_data=self.suffix_data,
        )

        logger.info(f"Built {request} under {domain}")
        return request, domain
