#!/usr/bin/env python3
"""Shared fixtures for the gasless relay tests."""

import pytest
from eth_account import Account

from gasless_relay.models import MAX_UINT256, Domain, ForwardRequest, TypeSchema
from gasless_relay.typed_data import TypedData, encode_typed_data

# Hardhat default account #0
TEST_PRIVATE_KEY = "0xac0974bec39a17e36ba4a6b4d238ff944bacb478cbed5efcae784d7bf4f2ff80"
TEST_ADDRESS = "0xf39Fd6e51aad88F6F4ce6aB8827279cffFb92266"

FORWARDER_ADDRESS = "0x" + "aa" * 20
RECIPIENT_ADDRESS = "0x" + "22" * 20
OTHER_SENDER = "0x" + "11" * 20


@pytest.fixture
def private_key() -> str:
    return TEST_PRIVATE_KEY


@pytest.fixture
def signer_address() -> str:
    assert Account.from_key(TEST_PRIVATE_KEY).address == TEST_ADDRESS
    return TEST_ADDRESS


@pytest.fixture
def domain() -> Domain:
    return Domain(name="Fwd", version="1", chain_id=1337, verifying_contract=FORWARDER_ADDRESS)


@pytest.fixture
def schema() -> TypeSchema:
    return TypeSchema("ForwardRequest")


@pytest.fixture
def forward_request(signer_address) -> ForwardRequest:
    return ForwardRequest(
        sender=signer_address,
        to=RECIPIENT_ADDRESS,
        value=0,
        gas=700000,
        nonce=5,
        data=bytes.fromhex("abcdef"),
        valid_until_time=MAX_UINT256,
        type_suffix_data=bytes(32),
    )


@pytest.fixture
def typed_data(forward_request, domain, schema) -> TypedData:
    return encode_typed_data(forward_request, domain, schema)
