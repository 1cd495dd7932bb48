import json
import logging
from importlib.resources import files
from typing import Any

from hexbytes import HexBytes
from web3 import Web3
from web3.types import TxReceipt

from ..exceptions import ConfigurationError

logger = logging.getLogger(__name__)


class ContractUtility:
    """
    Read-only chain access for the gasless flow.

    Supplies the chain id, the forwarder nonce of the signing account and the
    calldata of the recipient call. Never signs or sends transactions itself:
    the relay pays for and broadcasts the forwarded call.
    """

    def __init__(self, rpc_url: str, request_timeout: int = 30) -> None:
        """
        Initialize the ContractUtility.

        Args:
            rpc_url: RPC URL for the network (required)
            request_timeout: HTTP timeout for RPC calls in seconds
        """
        if not rpc_url:
            raise ConfigurationError("RPC URL is required")

        self.rpc_url = rpc_url
        self.w3 = Web3(Web3.HTTPProvider(self.rpc_url, request_kwargs={"timeout": request_timeout}))

    @property
    def chain_id(self) -> int:
        return self.w3.eth.chain_id

    def get_contract_abi(self, contract_name: str) -> list[dict[str, Any]]:
        """Fetches ABI of the given contract from the packaged contracts folder.

        Args:
            contract_name: Name of the contract (without .json extension)

        Returns:
            List of ABI dictionaries for the contract

        Raises:
            FileNotFoundError: If the contract file doesn't exist
            json.JSONDecodeError: If the contract file is invalid JSON
        """
        contract_path = files("gasless_relay") / "contracts" / f"{contract_name}.json"

        with contract_path.open() as file:
            contract_data: dict[str, Any] = json.load(file)

        return contract_data["abi"]

    def get_nonce(self, forwarder_address: str, account: str) -> int:
        """Read the current forwarder nonce of ``account``."""
        forwarder = self.w3.eth.contract(
            address=Web3.to_checksum_address(forwarder_address),
            abi=self.get_contract_abi("Forwarder"),
        )
        nonce: int = forwarder.functions.getNonce(Web3.to_checksum_address(account)).call()
        logger.info(f"Forwarder nonce for {account}: {nonce} ({Web3.to_hex(nonce)})")
        return nonce

    def build_mint_call(self, recipient_address: str) -> tuple[str, bytes]:
        """Encode a ``mint()`` call on the recipient contract.

        Returns:
            Tuple of (checksummed recipient address, calldata)
        """
        recipient = Web3.to_checksum_address(recipient_address)
        contract = self.w3.eth.contract(address=recipient, abi=self.get_contract_abi("GaslessNft"))
        call_data: str = contract.encode_abi("mint", args=[])
        return recipient, Web3.to_bytes(hexstr=call_data)

    def wait_for_receipt(self, tx_hash: str, timeout: int = 120) -> TxReceipt:
        """Block until the relayed transaction is mined."""
        logger.info(f"Waiting up to {timeout}s for {tx_hash} to be mined...")
        receipt: TxReceipt = self.w3.eth.wait_for_transaction_receipt(HexBytes(tx_hash), timeout=timeout)

        if (status := receipt.get("status", 0)) == 1:
            logger.info(f"✓ Transaction confirmed in block {receipt['blockNumber']}")
        else:
            logger.error(f"✗ Transaction failed with status={status}")
        return receipt
