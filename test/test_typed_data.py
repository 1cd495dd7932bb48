#!/usr/bin/env python3
"""Tests for typed-data assembly."""

import json

import pytest
from eth_utils import keccak

from gasless_relay.exceptions import ConfigurationError
from gasless_relay.models import FORWARD_REQUEST_FIELDS, MAX_UINT256, TypedField, TypeSchema
from gasless_relay.typed_data import encode_type, encode_typed_data, to_quantity


class TestToQuantity:
    """Tests for canonical hex quantities."""

    @pytest.mark.parametrize("value,expected", [
        (0, "0x00"),
        (5, "0x05"),
        (255, "0xff"),
        (256, "0x0100"),
        (700000, "0x0aae60"),
        (MAX_UINT256, "0x" + "ff" * 32),
    ])
    def test_even_byte_alignment(self, value, expected):
        assert to_quantity(value) == expected

    def test_negative_rejected(self):
        with pytest.raises(ValueError):
            to_quantity(-1)


class TestEncodeType:
    """Tests for the encodeType string."""

    def test_forward_request_type_string(self, schema):
        assert encode_type(schema) == (
            "ForwardRequest(address from,address to,uint256 value,uint256 gas,"
            "uint256 nonce,bytes data,uint256 validUntilTime,bytes32 typeSuffixData)"
        )


class TestEncodeTypedData:
    """Tests for encode_typed_data."""

    def test_message_follows_schema_order(self, typed_data, schema):
        assert list(typed_data.message) == list(schema.field_names)

    def test_reordered_schema_changes_message_order(self, forward_request, domain):
        reordered = TypeSchema("ForwardRequest", tuple(reversed(FORWARD_REQUEST_FIELDS)))
        typed = encode_typed_data(forward_request, domain, reordered)
        assert list(typed.message) == [f.name for f in reversed(FORWARD_REQUEST_FIELDS)]

    def test_suffix_is_raw_bytes(self, typed_data):
        suffix = typed_data.to_signable()["message"]["typeSuffixData"]
        assert isinstance(suffix, bytes)
        assert len(suffix) == 32

    def test_signable_structure(self, typed_data, domain, schema):
        signable = typed_data.to_signable()
        assert signable["primaryType"] == "ForwardRequest"
        assert signable["domain"] == domain.to_dict()
        assert signable["types"] == schema.to_dict()
        assert signable["message"]["data"] == bytes.fromhex("abcdef")
        assert signable["message"]["gas"] == 700000

    def test_json_form_uses_hex_quantities(self, typed_data):
        message = typed_data.to_json()["message"]
        assert message["value"] == "0x00"
        assert message["gas"] == "0x0aae60"
        assert message["nonce"] == "0x05"
        assert message["data"] == "0xabcdef"
        assert message["validUntilTime"] == "0x" + "ff" * 32
        assert message["typeSuffixData"] == "0x" + "00" * 32

    def test_json_form_is_serializable(self, typed_data):
        json.dumps(typed_data.to_json())

    def test_json_form_without_suffix_keeps_type(self, typed_data):
        json_form = typed_data.to_json(include_suffix=False)
        assert "typeSuffixData" not in json_form["message"]
        assert "typeSuffixData" in [f["name"] for f in json_form["types"]["ForwardRequest"]]

    def test_field_without_request_value(self, forward_request, domain):
        fields = FORWARD_REQUEST_FIELDS + (TypedField("relayData", "bytes32"),)
        schema = TypeSchema("ForwardRequest", fields)
        with pytest.raises(ConfigurationError, match="relayData"):
            encode_typed_data(forward_request, domain, schema)

    def test_type_hash_depends_on_order(self, schema):
        reordered = TypeSchema("ForwardRequest", tuple(reversed(FORWARD_REQUEST_FIELDS)))
        assert keccak(text=encode_type(schema)) != keccak(text=encode_type(reordered))
