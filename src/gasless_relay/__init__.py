"""
Gasless relay client.

Builds, signs and self-verifies EIP-712 forward requests and submits them
to a meta-transaction relay.
"""

from .config import GaslessConfig, RequestConfig
from .exceptions import (
    ConfigurationError,
    GaslessRelayError,
    IntegrityFault,
    RecoveryError,
    RelayError,
    SigningError,
)
from .gasless_sender import GaslessSender
from .models import Domain, ExpiryPolicy, ForwardRequest, SignedRequest, TypeSchema
from .relay_submitter import RelaySubmitter
from .request_builder import RequestBuilder
from .signer import recover, sign, sign_and_verify
from .typed_data import TypedData, encode_typed_data

__all__ = [
    "GaslessConfig",
    "RequestConfig",
    "GaslessSender",
    "RequestBuilder",
    "RelaySubmitter",
    "TypedData",
    "encode_typed_data",
    "sign",
    "recover",
    "sign_and_verify",
    "Domain",
    "ExpiryPolicy",
    "ForwardRequest",
    "SignedRequest",
    "TypeSchema",
    "GaslessRelayError",
    "ConfigurationError",
    "SigningError",
    "RecoveryError",
    "IntegrityFault",
    "RelayError",
]
__version__ = "0.1.0"
