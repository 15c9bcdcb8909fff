"""Tests for signature normalization."""

import base64

import pytest
from solders.hash import Hash
from solders.keypair import Keypair
from solders.message import Message
from solders.system_program import TransferParams, transfer
from solders.transaction import Transaction

from conftest import sign_with
from custody_signers.signing.base import ConfigError, ParsingError, SigningFailed
from custody_signers.signing.codec import (
    combine,
    create_signature_record,
    decode_tagged_signature,
    extract_at_offset,
    extract_by_address,
    pad_component,
    validate_address,
)


class TestPadComponent:
    """Tests for left-zero padding of r/s components."""

    def test_short_component_is_left_padded(self):
        padded = pad_component("1234abcd")

        assert len(padded) == 32
        assert padded[:28] == bytes(28)
        assert padded[28:] == bytes.fromhex("1234abcd")

    def test_numeric_value_preserved(self):
        for value in ("01", "ff", "00ff", "7f" * 31, "ab" * 32):
            padded = pad_component(value)
            assert len(padded) == 32
            assert int.from_bytes(padded, "big") == int(value, 16)

    def test_exact_length_unchanged(self):
        value = bytes(range(32))
        assert pad_component(value.hex()) == value

    def test_odd_length_hex(self):
        padded = pad_component("abc")
        assert padded[-2:] == bytes.fromhex("0abc")

    def test_0x_prefix_accepted(self):
        assert pad_component("0x01") == pad_component("01")

    def test_oversized_component_rejected(self):
        with pytest.raises(SigningFailed, match="component length: 33"):
            pad_component("ab" * 33)

    def test_non_hex_rejected(self):
        with pytest.raises(SigningFailed):
            pad_component("not-hex")

    def test_custom_target(self):
        assert pad_component("01", target=4) == b"\x00\x00\x00\x01"


class TestCombine:
    """Tests for r || s concatenation."""

    def test_r_first(self):
        r = b"\x01" * 32
        s = b"\x02" * 32
        signature = combine(r, s)

        assert len(signature) == 64
        assert signature[:32] == r
        assert signature[32:] == s

    def test_wrong_component_length(self):
        with pytest.raises(SigningFailed):
            combine(b"\x01" * 31, b"\x02" * 32)


class TestDecodeTaggedSignature:
    """Tests for Vault-style tagged base64 signatures."""

    def test_tag_is_optional(self):
        body = base64.b64encode(bytes(range(64))).decode()

        assert decode_tagged_signature(f"vault:v1:{body}") == decode_tagged_signature(body)
        assert decode_tagged_signature(body) == bytes(range(64))

    def test_other_versions(self):
        body = base64.b64encode(b"\x07" * 64).decode()
        assert decode_tagged_signature(f"vault:v12:{body}") == b"\x07" * 64

    def test_unpadded_body(self):
        body = base64.b64encode(b"\x05" * 64).decode().rstrip("=")
        assert len(body) == 86
        assert decode_tagged_signature(f"vault:v1:{body}") == b"\x05" * 64

    def test_empty_body(self):
        with pytest.raises(SigningFailed, match="Empty signature"):
            decode_tagged_signature("vault:v1:")

    def test_invalid_base64(self):
        with pytest.raises(SigningFailed):
            decode_tagged_signature("vault:v1:!!!not base64!!!")


class TestExtractAtOffset:
    """Tests for positional extraction from a signed transaction."""

    def test_reads_after_count_prefix(self):
        buffer = b"\x01" + b"\xaa" * 64 + b"\xbb" * 10
        assert extract_at_offset(buffer) == b"\xaa" * 64

    def test_short_buffer(self):
        with pytest.raises(SigningFailed, match="too short"):
            extract_at_offset(b"\x01" + b"\xaa" * 10)

    def test_real_transaction(self, keypair, unsigned_transaction):
        signed = sign_with(unsigned_transaction, [keypair])
        assert extract_at_offset(bytes(signed)) == bytes(signed.signatures[0])

    def test_unsigned_slot(self, unsigned_transaction):
        with pytest.raises(SigningFailed, match="No signature found"):
            extract_at_offset(bytes(unsigned_transaction))


class TestExtractByAddress:
    """Tests for address-keyed extraction from a wire transaction."""

    def test_finds_signer_slot(self, keypair, address, unsigned_transaction):
        signed = sign_with(unsigned_transaction, [keypair])
        wire = base64.b64encode(bytes(signed)).decode()

        signature = extract_by_address(wire, address)

        assert signature == bytes(keypair.sign_message(unsigned_transaction.message_data()))

    def test_second_signer(self, keypair):
        cosigner = Keypair()
        instruction = transfer(
            TransferParams(from_pubkey=cosigner.pubkey(), to_pubkey=Keypair().pubkey(), lamports=1)
        )
        message = Message.new_with_blockhash([instruction], keypair.pubkey(), Hash.default())
        transaction = Transaction([keypair, cosigner], message, Hash.default())
        wire = base64.b64encode(bytes(transaction)).decode()

        signature = extract_by_address(wire, str(cosigner.pubkey()))

        assert signature == bytes(cosigner.sign_message(transaction.message_data()))

    def test_address_not_a_signer(self, keypair, unsigned_transaction):
        signed = sign_with(unsigned_transaction, [keypair])
        wire = base64.b64encode(bytes(signed)).decode()

        with pytest.raises(SigningFailed, match="No signature found"):
            extract_by_address(wire, str(Keypair().pubkey()))

    def test_unsigned_slot(self, address, unsigned_transaction):
        wire = base64.b64encode(bytes(unsigned_transaction)).decode()

        with pytest.raises(SigningFailed, match="No signature found"):
            extract_by_address(wire, address)

    def test_undecodable_envelope(self, address):
        wire = base64.b64encode(b"\x01\x02\x03").decode()

        with pytest.raises(ParsingError):
            extract_by_address(wire, address)


class TestSignatureRecord:
    """Tests for record construction and address validation."""

    def test_record_has_single_entry(self, address):
        record = create_signature_record(b"\x09" * 64, address)
        assert record == {address: b"\x09" * 64}

    @pytest.mark.parametrize("length", [0, 63, 65])
    def test_wrong_length_never_returned(self, address, length):
        with pytest.raises(SigningFailed, match="Invalid signature length"):
            create_signature_record(b"\x09" * length, address)

    def test_validate_address(self, address):
        assert validate_address(address) == address

    @pytest.mark.parametrize("value", ["", "not-a-valid-pubkey", "1111"])
    def test_invalid_address(self, value):
        with pytest.raises(ConfigError):
            validate_address(value)
