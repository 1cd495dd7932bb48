"""EIP-712 typed-data assembly for forward requests.

Turns a ``ForwardRequest``, its ``Domain`` and ``TypeSchema`` into the
``{domain, types, primaryType, message}`` structure consumed by the signer.
No hashing happens here; see ``signer.typed_data_digest``.
"""

import logging
from dataclasses import dataclass
from typing import Any

from web3 import Web3

from .exceptions import ConfigurationError
from .models import Domain, ForwardRequest, TypeSchema

logger = logging.getLogger(__name__)

SUFFIX_FIELD: str = "typeSuffixData"


def to_quantity(value: int) -> str:
    """Encode an integer as a 0x hex string of whole bytes.

    ``0 -> 0x00``, ``5 -> 0x05``, ``700000 -> 0x0aae60``.
    """
    if value < 0:
        raise ValueError(f"Cannot encode negative quantity {value}")
    byte_length = max(1, (value.bit_length() + 7) // 8)
    return Web3.to_hex(value.to_bytes(byte_length, "big"))


def encode_type(schema: TypeSchema) -> str:
    """Return the EIP-712 ``encodeType`` string of the primary type."""
    members = ",".join(f"{f.type} {f.name}" for f in schema.fields)
    return f"{schema.primary_type}({members})"


def _json_value(value: Any) -> Any:
    if isinstance(value, bool):
        return value
    if isinstance(value, int):
        return to_quantity(value)
    if isinstance(value, (bytes, bytearray)):
        return Web3.to_hex(bytes(value))
    return value


@dataclass(frozen=True, slots=True)
class TypedData:
    """Canonical EIP-712 structure for one forward request.

    ``message`` holds native values (ints, bytes, checksummed addresses) in
    the exact order the schema declares them.
    """

    request: ForwardRequest
    domain: Domain
    schema: TypeSchema
    message: dict[str, Any]

    @property
    def primary_type(self) -> str:
        return self.schema.primary_type

    def to_signable(self) -> dict[str, Any]:
        """Structure handed to ``eth_account.messages.encode_typed_data``."""
        return {
            "types": self.schema.to_dict(),
            "domain": self.domain.to_dict(),
            "primaryType": self.schema.primary_type,
            "message": dict(self.message),
        }

    def to_json(self, include_suffix: bool = True) -> dict[str, Any]:
        """JSON-serializable form with integers as hex quantities.

        Args:
            include_suffix: Keep ``typeSuffixData`` in the message body. The
                relay envelope leaves it out; the type list keeps it.
        """
        message = {
            name: _json_value(value)
            for name, value in self.message.items()
            if include_suffix or name != SUFFIX_FIELD
        }
        return {
            "domain": self.domain.to_dict(),
            "types": self.schema.to_dict(),
            "primaryType": self.schema.primary_type,
            "message": message,
        }


def encode_typed_data(request: ForwardRequest, domain: Domain, schema: TypeSchema) -> TypedData:
    """Assemble the typed-data structure for ``request``.

    Message members follow the schema's field order. ``typeSuffixData`` is
    carried as its raw 32 bytes.

    Raises:
        ConfigurationError: If the schema declares a field the request lacks
    """
    values = request.to_dict()
    missing = [name for name in schema.field_names if name not in values]
    if missing:
        raise ConfigurationError(
            f"Schema {schema.primary_type} declares fields with no request value: {missing}"
        )

    message = {name: values[name] for name in schema.field_names}
    logger.debug(f"Encoded {encode_type(schema)} for nonce {request.nonce}")
    return TypedData(request=request, domain=domain, schema=schema, message=message)
