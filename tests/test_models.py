from __future__ import annotations

import pytest
from pydantic import ValidationError

from remote_ext._hex import hex_display, parse_hex
from remote_ext.models import PAIRS_ADAPTER, RuntimeVersion, SnapshotReference

HASH_HEX = "0xf9a4ce984129569f63edc01b1c13374779f9384f1befd39931ffdcc83acf63a7"


def test_hex_display_and_truncation() -> None:
    assert hex_display(b"") == "0x"
    assert hex_display(b"\x01\x0a") == "0x010a"
    assert hex_display(bytes(range(10)), max_bytes=2) == "0x0001…<10b>"


def test_parse_hex_accepts_optional_prefix() -> None:
    assert parse_hex("0x0102") == b"\x01\x02"
    assert parse_hex("0102") == b"\x01\x02"
    assert parse_hex("0x") == b""
    with pytest.raises(ValueError):
        parse_hex("0x123")


def test_snapshot_reference_parses_and_renders_hex() -> None:
    ref = SnapshotReference.from_hex(HASH_HEX)
    assert len(ref.value) == 32
    assert ref.hex() == HASH_HEX
    assert ref.debug_form() == HASH_HEX
    assert str(ref) == "0xf9a4…63a7"
    assert ref == SnapshotReference(value=bytes.fromhex(HASH_HEX[2:]))


def test_snapshot_reference_rejects_wrong_length() -> None:
    with pytest.raises(ValidationError):
        SnapshotReference.from_hex("0x0102")
    with pytest.raises(ValidationError):
        SnapshotReference(value=12345)  # type: ignore[arg-type]


def test_snapshot_reference_is_frozen() -> None:
    ref = SnapshotReference.from_hex(HASH_HEX)
    with pytest.raises(ValidationError):
        ref.value = b"\x00" * 32  # type: ignore[misc]


def test_pairs_adapter_decodes_hex_pairs() -> None:
    pairs = PAIRS_ADAPTER.validate_python([["0x01", "0x02"], ["0xaabb", "0x"]])
    assert pairs == [(b"\x01", b"\x02"), (b"\xaa\xbb", b"")]


def test_pairs_adapter_rejects_malformed_entries() -> None:
    with pytest.raises(ValidationError):
        PAIRS_ADAPTER.validate_python([["0x01"]])
    with pytest.raises(ValidationError):
        PAIRS_ADAPTER.validate_python([["0x01", 2]])
    with pytest.raises(ValidationError):
        PAIRS_ADAPTER.validate_python({"0x01": "0x02"})


def test_runtime_version_reads_camel_case_keys() -> None:
    version = RuntimeVersion.model_validate(
        {"specName": "polkadot", "implName": "parity-polkadot", "specVersion": 1000, "apis": []}
    )
    assert version.spec_name == "polkadot"
    assert version.spec_version == 1000
    assert version.transaction_version == 0
