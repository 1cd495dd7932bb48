#!/usr/bin/env python3
"""Configuration management for the gasless relay client.

This module provides type-safe configuration dataclasses with validation.
Configuration is loaded from environment variables; only the gas budget,
timeouts and expiry policy have defaults.
"""

import logging
import os
from dataclasses import dataclass
from urllib.parse import urlparse

from .exceptions import ConfigurationError
from .models import ExpiryPolicy, TypeSchema, checksum_address

# Get logger for this module
logger = logging.getLogger(__name__)

DEFAULT_GAS_LIMIT: int = 700000


def _require_env(name: str, hint: str) -> str:
    value = os.environ.get(name, "")
    if not value:
        raise ConfigurationError(f"{name} environment variable is required. {hint}")
    return value


def _int_env(name: str, default: int) -> int:
    raw = os.environ.get(name, str(default))
    try:
        return int(raw)
    except ValueError:
        raise ConfigurationError(f"{name} must be an integer, got {raw!r}") from None


def _validate_url(url: str, label: str, schemes: tuple[str, ...]) -> None:
    if not url:
        raise ConfigurationError(f"{label} URL is required")
    parsed = urlparse(url)
    if parsed.scheme not in schemes:
        raise ConfigurationError(
            f"Invalid {label} URL scheme: {parsed.scheme}. Expected {', '.join(schemes)}"
        )


@dataclass(frozen=True, slots=True)
class RequestConfig:
    """Everything the request builder needs besides per-run chain state.

    Attributes:
        domain_name: EIP-712 domain name of the forwarder
        domain_version: EIP-712 domain version of the forwarder
        request_type: Primary type name registered with the forwarder
        request_type_suffix: Raw suffix string normalized into typeSuffixData
        forwarder_address: Checksummed forwarder (verifying contract) address
        recipient_address: Checksummed recipient contract address
        gas_limit: Gas budget for the forwarded call
        expiry: Policy for validUntilTime when none is given explicitly
    """

    domain_name: str
    domain_version: str
    request_type: str
    forwarder_address: str
    recipient_address: str
    request_type_suffix: str = ""
    gas_limit: int = DEFAULT_GAS_LIMIT
    expiry: ExpiryPolicy = ExpiryPolicy.never()

    def __post_init__(self) -> None:
        if not self.domain_name:
            raise ConfigurationError("Domain name is required (DOMAIN_NAME)")
        if not self.domain_version:
            raise ConfigurationError("Domain version is required (DOMAIN_VERSION)")

        # Raises on an unusable primary type name
        TypeSchema(self.request_type)

        object.__setattr__(
            self, "forwarder_address", checksum_address(self.forwarder_address, "forwarder")
        )
        object.__setattr__(
            self, "recipient_address", checksum_address(self.recipient_address, "recipient")
        )

        if self.gas_limit <= 0:
            raise ConfigurationError(f"Gas limit must be positive, got {self.gas_limit}")

    @property
    def schema(self) -> TypeSchema:
        return TypeSchema(self.request_type)


@dataclass(frozen=True, slots=True)
class RelayConfig:
    """Relay endpoint settings."""

    url: str
    request_timeout: int = 30  # seconds

    def __post_init__(self) -> None:
        _validate_url(self.url, "relay", ("http", "https"))
        if self.request_timeout <= 0:
            raise ConfigurationError(f"Request timeout must be positive, got {self.request_timeout}")
        if self.request_timeout > 120:
            raise ConfigurationError(f"Request timeout too long (max 120s), got {self.request_timeout}")


@dataclass(frozen=True, slots=True)
class ChainConfig:
    """Chain connection used for nonce lookup, calldata and receipts."""

    rpc_url: str
    receipt_timeout: int = 120  # seconds

    def __post_init__(self) -> None:
        _validate_url(self.rpc_url, "chain RPC", ("http", "https"))
        if self.receipt_timeout <= 0:
            raise ConfigurationError(f"Receipt timeout must be positive, got {self.receipt_timeout}")


@dataclass(frozen=True, slots=True)
class GaslessConfig:
    """Main configuration for one gasless submission run.

    Attributes:
        request: Request builder settings
        relay: Relay endpoint settings
        chain: Chain connection settings
        private_key: Hex-encoded signing key (never logged)
    """

    request: RequestConfig
    relay: RelayConfig
    chain: ChainConfig
    private_key: str

    def __post_init__(self) -> None:
        if not self.private_key:
            raise ConfigurationError("PRIVATE_KEY environment variable is required")

        # Should be 64 hex chars, optionally with 0x prefix
        key = self.private_key.removeprefix("0x")
        if len(key) != 64:
            raise ConfigurationError(
                f"Invalid private key length. Expected 64 hex characters, got {len(key)}"
            )
        try:
            int(key, 16)
        except ValueError:
            raise ConfigurationError("Invalid private key format. Must be hexadecimal") from None

    @classmethod
    def from_env(cls) -> "GaslessConfig":
        """Load configuration from environment variables.

        Returns:
            GaslessConfig instance with loaded values

        Raises:
            ConfigurationError: If required environment variables are missing or invalid
        """
        request_config = RequestConfig(
            domain_name=_require_env("DOMAIN_NAME", "This is the forwarder's EIP-712 domain name."),
            domain_version=_require_env("DOMAIN_VERSION", "This is the forwarder's EIP-712 domain version."),
            request_type=_require_env("REQUEST_TYPE", "This is the primary type registered with the forwarder."),
            request_type_suffix=os.environ.get("REQUEST_TYPE_SUFFIX", ""),
            forwarder_address=_require_env("FORWARDER_ADDRESS", "This is the Forwarder contract address."),
            recipient_address=_require_env(
                "RECIPIENT_CONTRACT_ADDRESS", "This is the recipient (GaslessNft) contract address."
            ),
            gas_limit=_int_env("GAS_LIMIT", DEFAULT_GAS_LIMIT),
            expiry=ExpiryPolicy.parse(os.environ.get("VALID_UNTIL", "never")),
        )

        relay_config = RelayConfig(
            url=_require_env("RELAYER_URL", "This is the relay server JSON-RPC endpoint."),
            request_timeout=_int_env("REQUEST_TIMEOUT", 30),
        )

        chain_config = ChainConfig(
            rpc_url=_require_env("CHAIN_RPC_URL", "Example: http://localhost:8545"),
            receipt_timeout=_int_env("RECEIPT_TIMEOUT", 120),
        )

        return cls(
            request=request_config,
            relay=relay_config,
            chain=chain_config,
            private_key=os.environ.get("PRIVATE_KEY", ""),
        )

    def log_config(self) -> None:
        """Log the configuration in a readable format for debugging."""
        logger.info("=" * 60)
        logger.info("Gasless Relay Configuration")
        logger.info("=" * 60)

        logger.info("Request:")
        logger.info(f"  Domain: {self.request.domain_name} v{self.request.domain_version}")
        logger.info(f"  Primary Type: {self.request.request_type}")
        logger.info(f"  Type Suffix: {self.request.request_type_suffix!r}")
        logger.info(f"  Forwarder: {self.request.forwarder_address}")
        logger.info(f"  Recipient: {self.request.recipient_address}")
        logger.info(f"  Gas Limit: {self.request.gas_limit}")
        logger.info(f"  Valid Until: {self.request.expiry}")
        if self.request.expiry.never_expires:
            logger.warning("  Signed requests will never expire (set VALID_UNTIL to bound them)")

        logger.info("Relay:")
        logger.info(f"  URL: {self.relay.url}")
        logger.info(f"  Request Timeout: {self.relay.request_timeout} seconds")

        logger.info("Chain:")
        logger.info(f"  RPC URL: {self.chain.rpc_url}")
        logger.info(f"  Receipt Timeout: {self.chain.receipt_timeout} seconds")

        logger.info("  Signing Key: [CONFIGURED]")
        logger.info("=" * 60)
