from __future__ import annotations

import pytest

from remote_ext.hashing import module_prefix, twox_128


def test_twox_128_of_empty_input() -> None:
    assert twox_128(b"").hex() == "99e9d85137db46ef4bbea33613baafd5"


def test_module_prefix_matches_substrate_storage_layout() -> None:
    assert module_prefix("System").hex() == "26aa394eea5630e07c48ae0c9558cef7"
    assert module_prefix("Balances").hex() == "c2261276cc9d1f8598ea4b6a74b15c2f"
    assert twox_128(b"TotalIssuance").hex() == "57c875e4cff74148e4628f264b974c80"


def test_module_prefix_is_sixteen_bytes_and_distinct() -> None:
    prefixes = {module_prefix(name) for name in ("System", "Balances", "Staking", "Session")}
    assert len(prefixes) == 4
    assert all(len(p) == 16 for p in prefixes)


def test_module_prefix_rejects_non_ascii_names() -> None:
    with pytest.raises(ValueError, match="ASCII"):
        module_prefix("Sÿstem")
