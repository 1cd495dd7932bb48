#!/usr/bin/env python3
"""Data models for the gasless relay pipeline.

This module provides immutable data classes for the EIP-712 domain, the
forward request type schema, the forward request itself and the signed
artefacts produced from it.
"""

import re
import time
from dataclasses import dataclass, replace
from typing import Any, ClassVar

from web3 import Web3

from .exceptions import ConfigurationError, RecoveryError

MAX_UINT256: int = 2**256 - 1
SUFFIX_DATA_LENGTH: int = 32
SIGNATURE_LENGTH: int = 65

EIP712_DOMAIN_TYPE: str = "EIP712Domain"

_ATOMIC_TYPE = re.compile(
    r"^(address|bool|string|bytes|bytes([1-9]|[12][0-9]|3[0-2])|u?int(8|16|24|32|40|48|56|64|72|80|88|96|"
    r"104|112|120|128|136|144|152|160|168|176|184|192|200|208|216|224|232|240|248|256)?)$"
)
_ARRAY_SUFFIX = re.compile(r"\[\d*\]$")


def checksum_address(value: str | None, label: str) -> str:
    """Validate an address and return its checksummed form.

    Raises:
        ConfigurationError: If the address is missing, empty or malformed
    """
    if not value:
        raise ConfigurationError(f"{label} address is required")
    if not Web3.is_address(value):
        raise ConfigurationError(f"Invalid {label} address: {value}")
    return Web3.to_checksum_address(value)


def _check_uint256(name: str, value: int) -> None:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ConfigurationError(f"{name} must be an integer, got {type(value).__name__}")
    if not 0 <= value <= MAX_UINT256:
        raise ConfigurationError(f"{name} out of uint256 range: {value}")


@dataclass(frozen=True, slots=True)
class TypedField:
    """One ``{name, type}`` member of an EIP-712 struct definition."""

    name: str
    type: str

    def to_dict(self) -> dict[str, str]:
        return {"name": self.name, "type": self.type}


# Field layouts are fixed tuples: order determines the type hash and must
# match the forwarder's compiled struct.
EIP712_DOMAIN_FIELDS: tuple[TypedField, ...] = (
    TypedField("name", "string"),
    TypedField("version", "string"),
    TypedField("chainId", "uint256"),
    TypedField("verifyingContract", "address"),
)

FORWARD_REQUEST_FIELDS: tuple[TypedField, ...] = (
    TypedField("from", "address"),
    TypedField("to", "address"),
    TypedField("value", "uint256"),
    TypedField("gas", "uint256"),
    TypedField("nonce", "uint256"),
    TypedField("data", "bytes"),
    TypedField("validUntilTime", "uint256"),
    TypedField("typeSuffixData", "bytes32"),
)


@dataclass(frozen=True, slots=True)
class Domain:
    """EIP-712 signing domain.

    Must match the forwarder's on-chain domain exactly, otherwise the
    contract rejects every signature produced under it.

    Attributes:
        name: Domain name registered with the forwarder
        version: Domain version registered with the forwarder
        chain_id: Chain ID the forwarder is deployed on
        verifying_contract: Checksummed forwarder address
    """

    name: str
    version: str
    chain_id: int
    verifying_contract: str

    def __post_init__(self) -> None:
        if not self.name:
            raise ConfigurationError("Domain name is required")
        if not self.version:
            raise ConfigurationError("Domain version is required")
        if isinstance(self.chain_id, bool) or not isinstance(self.chain_id, int) or self.chain_id <= 0:
            raise ConfigurationError(f"Chain ID must be a positive integer, got {self.chain_id!r}")
        object.__setattr__(
            self, "verifying_contract", checksum_address(self.verifying_contract, "forwarder")
        )

    def __str__(self) -> str:
        return (
            f"Domain(name={self.name}, version={self.version}, "
            f"chain={self.chain_id}, contract={self.verifying_contract[:10]}...)"
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to the EIP-712 domain JSON shape."""
        return {
            "name": self.name,
            "version": self.version,
            "chainId": self.chain_id,
            "verifyingContract": self.verifying_contract,
        }


@dataclass(frozen=True, slots=True)
class TypeSchema:
    """The primary type name together with its ordered field layout.

    ``to_dict()`` produces the ``types`` mapping, which always holds the
    ``EIP712Domain`` entry and exactly one application type keyed by
    ``primary_type``.
    """

    primary_type: str
    fields: tuple[TypedField, ...] = FORWARD_REQUEST_FIELDS

    def __post_init__(self) -> None:
        if not self.primary_type:
            raise ConfigurationError("Primary type name is required (REQUEST_TYPE)")
        if self.primary_type == EIP712_DOMAIN_TYPE:
            raise ConfigurationError(f"Primary type may not be named {EIP712_DOMAIN_TYPE}")
        if not re.fullmatch(r"[A-Za-z_][A-Za-z0-9_]*", self.primary_type):
            raise ConfigurationError(f"Invalid primary type name: {self.primary_type!r}")
        if not self.fields:
            raise ConfigurationError(f"Type {self.primary_type} declares no fields")

        names = [f.name for f in self.fields]
        if len(set(names)) != len(names):
            raise ConfigurationError(f"Duplicate field names in {self.primary_type}: {names}")

        defined = {EIP712_DOMAIN_TYPE, self.primary_type}
        for typed_field in self.fields:
            if not self.is_known_type(typed_field.type, defined):
                raise ConfigurationError(
                    f"Field {typed_field.name} of {self.primary_type} references "
                    f"undefined type {typed_field.type}"
                )

    @staticmethod
    def is_known_type(type_name: str, defined: set[str]) -> bool:
        """Check a field type is an EIP-712 atomic/dynamic type or a defined struct."""
        base = type_name
        while _ARRAY_SUFFIX.search(base):
            base = _ARRAY_SUFFIX.sub("", base)
        return bool(_ATOMIC_TYPE.match(base)) or base in defined

    @property
    def field_names(self) -> tuple[str, ...]:
        return tuple(f.name for f in self.fields)

    def to_dict(self) -> dict[str, list[dict[str, str]]]:
        """Convert to the ordered EIP-712 ``types`` mapping."""
        return {
            EIP712_DOMAIN_TYPE: [f.to_dict() for f in EIP712_DOMAIN_FIELDS],
            self.primary_type: [f.to_dict() for f in self.fields],
        }


@dataclass(frozen=True, slots=True)
class ForwardRequest:
    """One call authorized for execution by the forwarder.

    Attributes:
        sender: Checksummed signer address (``from`` on the wire)
        to: Checksummed recipient contract address
        value: Native value forwarded with the call, in wei
        gas: Gas budget for the forwarded call
        nonce: Forwarder nonce of ``sender``
        data: ABI-encoded calldata
        valid_until_time: Absolute expiry in chain timestamp units
        type_suffix_data: Opaque 32-byte extension value
    """

    sender: str
    to: str
    value: int
    gas: int
    nonce: int
    data: bytes
    valid_until_time: int
    type_suffix_data: bytes = bytes(SUFFIX_DATA_LENGTH)

    def __post_init__(self) -> None:
        object.__setattr__(self, "sender", checksum_address(self.sender, "sender"))
        object.__setattr__(self, "to", checksum_address(self.to, "recipient"))
        for name in ("value", "gas", "nonce", "valid_until_time"):
            _check_uint256(name, getattr(self, name))
        if not isinstance(self.data, (bytes, bytearray)):
            raise ConfigurationError(f"Calldata must be bytes, got {type(self.data).__name__}")
        object.__setattr__(self, "data", bytes(self.data))
        if len(self.type_suffix_data) != SUFFIX_DATA_LENGTH:
            raise ConfigurationError(
                f"typeSuffixData must be exactly {SUFFIX_DATA_LENGTH} bytes, "
                f"got {len(self.type_suffix_data)}"
            )
        object.__setattr__(self, "type_suffix_data", bytes(self.type_suffix_data))

    def __str__(self) -> str:
        return (
            f"ForwardRequest(from={self.sender[:10]}..., to={self.to[:10]}..., "
            f"nonce={self.nonce}, gas={self.gas})"
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to a mapping keyed by the EIP-712 field names."""
        return {
            "from": self.sender,
            "to": self.to,
            "value": self.value,
            "gas": self.gas,
            "nonce": self.nonce,
            "data": self.data,
            "validUntilTime": self.valid_until_time,
            "typeSuffixData": self.type_suffix_data,
        }

    def with_changes(self, **changes: Any) -> "ForwardRequest":
        return replace(self, **changes)


@dataclass(frozen=True, slots=True)
class SignedRequest:
    """A forward request together with the verified signature binding it."""

    request: ForwardRequest
    domain: Domain
    schema: TypeSchema
    signature: bytes

    def __post_init__(self) -> None:
        if len(self.signature) != SIGNATURE_LENGTH:
            raise RecoveryError(
                f"Signature must be {SIGNATURE_LENGTH} bytes, got {len(self.signature)}"
            )

    @property
    def signature_hex(self) -> str:
        return Web3.to_hex(self.signature)


@dataclass(frozen=True, slots=True)
class RelayEnvelope:
    """The object transmitted to the relay.

    Attributes:
        forward_request: ``{domain, types, primaryType, message}`` JSON mapping
        signature_hex: 0x-prefixed signature
    """

    forward_request: dict[str, Any]
    signature_hex: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "forwardRequest": self.forward_request,
            "metadata": {"signature": self.signature_hex.removeprefix("0x")},
        }


@dataclass(frozen=True, slots=True)
class ExpiryPolicy:
    """How ``validUntilTime`` is chosen when the caller gives no explicit value.

    ``never()`` yields the maximum uint256, i.e. a request that never expires.
    That is a convenience, not a recommendation: a leaked signed request stays
    executable until the nonce is consumed.
    """

    NEVER: ClassVar[str] = "never"
    ABSOLUTE: ClassVar[str] = "absolute"
    RELATIVE: ClassVar[str] = "relative"

    kind: str
    seconds: int = 0

    def __post_init__(self) -> None:
        if self.kind not in (self.NEVER, self.ABSOLUTE, self.RELATIVE):
            raise ConfigurationError(f"Unknown expiry policy: {self.kind}")
        if self.kind != self.NEVER and self.seconds <= 0:
            raise ConfigurationError(f"Expiry must be positive, got {self.seconds}")

    @classmethod
    def never(cls) -> "ExpiryPolicy":
        return cls(cls.NEVER)

    @classmethod
    def at(cls, timestamp: int) -> "ExpiryPolicy":
        return cls(cls.ABSOLUTE, timestamp)

    @classmethod
    def after(cls, seconds: int) -> "ExpiryPolicy":
        return cls(cls.RELATIVE, seconds)

    @classmethod
    def parse(cls, text: str) -> "ExpiryPolicy":
        """Parse ``never``, ``+<seconds>`` or ``<unix timestamp>``."""
        text = text.strip()
        try:
            if not text or text.lower() == cls.NEVER:
                return cls.never()
            if text.startswith("+"):
                return cls.after(int(text[1:]))
            return cls.at(int(text))
        except ValueError:
            raise ConfigurationError(
                f"Invalid VALID_UNTIL value {text!r}. Expected 'never', '+<seconds>' or a unix timestamp"
            ) from None

    @property
    def never_expires(self) -> bool:
        return self.kind == self.NEVER

    def resolve(self, now: int | None = None) -> int:
        """Return the absolute ``validUntilTime`` for a request built at ``now``."""
        match self.kind:
            case self.NEVER:
                return MAX_UINT256
            case self.ABSOLUTE:
                return self.seconds
            case _:
                return (int(time.time()) if now is None else now) + self.seconds

    def __str__(self) -> str:
        match self.kind:
            case self.NEVER:
                return "never"
            case self.ABSOLUTE:
                return f"at {self.seconds}"
            case _:
                return f"+{self.seconds}s"
