"""
Gasless sender implementation.

This module contains the pipeline that turns configuration and one forwarder
nonce into a relayed meta-transaction: build, encode, sign and verify, submit.
"""

import logging

from web3.types import TxReceipt

from .config import GaslessConfig
from .models import SignedRequest
from .relay_submitter import RelaySubmitter
from .request_builder import RequestBuilder
from .signer import address_of, sign_and_verify
from .typed_data import encode_type, encode_typed_data
from .utils.contract_utility import ContractUtility

logger = logging.getLogger(__name__)


class GaslessSender:
    """
    Runs one gasless submission at a time.

    Stages run strictly in sequence; the relay call is the only suspension
    point. Each run is determined by the configuration and the nonce it
    reads, nothing carries over between runs.
    """

    def __init__(
        self,
        config: GaslessConfig,
        contract_util: ContractUtility | None = None,
        submitter: RelaySubmitter | None = None,
    ) -> None:
        """
        Initialize the GaslessSender.

        Args:
            config: Loaded configuration
            contract_util: Chain access, created from config when omitted
            submitter: Relay client, created from config when omitted
        """
        self.config = config
        self.contract_util = contract_util or ContractUtility(
            config.chain.rpc_url, request_timeout=config.relay.request_timeout
        )
        self.submitter = submitter or RelaySubmitter(
            config.relay.url, timeout=config.relay.request_timeout
        )
        self.builder = RequestBuilder(config.request)
        self.schema = config.request.schema
        self.account: str = address_of(config.private_key)

        logger.info(f"Using account {self.account}")
        logger.debug(f"Request type: {encode_type(self.schema)}")

    @classmethod
    def from_env(cls) -> "GaslessSender":
        """
        Create a GaslessSender from environment variables.

        Raises:
            ConfigurationError: If required environment variables are missing
        """
        config = GaslessConfig.from_env()
        config.log_config()
        return cls(config)

    def prepare(self, nonce: int | None = None, valid_until_time: int | None = None) -> SignedRequest:
        """
        Build, encode, sign and locally verify one forward request.

        Args:
            nonce: Forwarder nonce; read from the chain when omitted
            valid_until_time: Explicit expiry overriding the configured policy

        Returns:
            SignedRequest whose signature recovers to the configured account

        Raises:
            IntegrityFault: If the signature does not recover to the account
        """
        chain_id = self.contract_util.chain_id
        logger.info(f"Using chain id {chain_id} ({hex(chain_id)})")

        if nonce is None:
            nonce = self.contract_util.get_nonce(self.config.request.forwarder_address, self.account)

        recipient, call_data = self.contract_util.build_mint_call(self.config.request.recipient_address)

        request, domain = self.builder.build(
            sender=self.account,
            recipient=recipient,
            call_data=call_data,
            nonce=nonce,
            chain_id=chain_id,
            valid_until_time=valid_until_time,
        )
        typed_data = encode_typed_data(request, domain, self.schema)
        return sign_and_verify(self.config.private_key, typed_data)

    async def send(self, nonce: int | None = None) -> str:
        """
        Prepare a request and submit it to the relay.

        Returns:
            Transaction hash reported by the relay
        """
        signed = self.prepare(nonce=nonce)
        return await self.submitter.submit(signed)

    async def send_and_wait(self, nonce: int | None = None) -> TxReceipt:
        """Submit a request and wait for the relayed transaction to be mined."""
        tx_hash = await self.send(nonce=nonce)
        return self.contract_util.wait_for_receipt(tx_hash, timeout=self.config.chain.receipt_timeout)
