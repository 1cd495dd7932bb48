"""EIP-712 (V4) signing and signer recovery for forward requests.

``sign_and_verify`` is the only entry point the pipeline uses: it signs,
recovers the signer from the fresh signature and refuses to hand back a
``SignedRequest`` unless the recovered address equals the request sender.
"""

import logging

from eth_account import Account
from eth_account.messages import SignableMessage, encode_typed_data
from eth_utils import keccak
from web3 import Web3

from .exceptions import IntegrityFault, RecoveryError, SigningError
from .models import SIGNATURE_LENGTH, SignedRequest
from .typed_data import TypedData

logger = logging.getLogger(__name__)


def _normalize_key(private_key: str | bytes) -> bytes:
    """Decode a 32-byte private key given as bytes or (0x-)hex."""
    if not private_key:
        raise SigningError("Private key is empty")

    if isinstance(private_key, (bytes, bytearray)):
        key = bytes(private_key)
    else:
        text = private_key.strip().removeprefix("0x")
        try:
            key = bytes.fromhex(text)
        except ValueError:
            raise SigningError("Private key is not valid hexadecimal") from None

    if len(key) != 32:
        raise SigningError(f"Private key must be 32 bytes, got {len(key)}")
    return key


def _signable(typed_data: TypedData) -> SignableMessage:
    return encode_typed_data(full_message=typed_data.to_signable())


def typed_data_digest(typed_data: TypedData) -> bytes:
    """Return the 32-byte EIP-712 digest.

    ``keccak256(0x19 || 0x01 || domainSeparator || hashStruct(message))``
    """
    signable = _signable(typed_data)
    return keccak(b"\x19" + signable.version + signable.header + signable.body)


def address_of(private_key: str | bytes) -> str:
    """Return the checksummed address controlled by ``private_key``."""
    key = _normalize_key(private_key)
    try:
        return Account.from_key(key).address
    except Exception as e:
        raise SigningError(f"Private key rejected: {e}") from e


def sign(private_key: str | bytes, typed_data: TypedData) -> bytes:
    """Sign ``typed_data`` and return the 65-byte ``r || s || v`` signature.

    Raises:
        SigningError: If the key is empty, malformed or not a valid secp256k1 key
    """
    key = _normalize_key(private_key)
    signable = _signable(typed_data)
    try:
        signed = Account.sign_message(signable, private_key=key)
    except Exception as e:
        raise SigningError(f"Failed to sign {typed_data.primary_type}: {e}") from e
    return bytes(signed.signature)


def recover(typed_data: TypedData, signature: bytes | str) -> str:
    """Recover the checksummed signer address of ``signature`` over ``typed_data``.

    Raises:
        RecoveryError: If the signature is not 65 bytes or cannot be recovered
    """
    if isinstance(signature, str):
        try:
            signature = Web3.to_bytes(hexstr=signature)
        except ValueError:
            raise RecoveryError("Signature is not valid hexadecimal") from None

    if len(signature) != SIGNATURE_LENGTH:
        raise RecoveryError(
            f"Signature must be {SIGNATURE_LENGTH} bytes, got {len(signature)}"
        )

    try:
        return Account.recover_message(_signable(typed_data), signature=signature)
    except Exception as e:
        raise RecoveryError(f"Cannot recover signer: {e}") from e


def sign_and_verify(private_key: str | bytes, typed_data: TypedData) -> SignedRequest:
    """Sign ``typed_data`` and check the signature recovers to its sender.

    Returns:
        SignedRequest bound to the request, domain and schema of ``typed_data``

    Raises:
        SigningError: If the key is unusable
        RecoveryError: If the produced signature cannot be recovered
        IntegrityFault: If the recovered address differs from ``from``
    """
    signature = sign(private_key, typed_data)
    recovered = recover(typed_data, signature)
    expected = typed_data.request.sender

    if recovered.lower() != expected.lower():
        logger.error(f"Signature recovers to {recovered}, request is from {expected}")
        raise IntegrityFault(expected=expected, recovered=recovered)

    logger.info(f"Signature verified locally for {recovered}")
    return SignedRequest(
        request=typed_data.request,
        domain=typed_data.domain,
        schema=typed_data.schema,
        signature=signature,
    )
