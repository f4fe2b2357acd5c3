"""Balance formatting with an explicit token description.

Formatting takes a :class:`TokenFormat` argument instead of reading a
process-wide currency setting, so two networks can be rendered side by
side.
"""

from __future__ import annotations

import dataclasses


@dataclasses.dataclass(frozen=True)
class TokenFormat:
    """Display name and decimal places of a network's native token."""

    name: str
    decimals: int

    def __post_init__(self) -> None:
        if self.decimals < 3:
            raise ValueError(f"decimals must be >= 3 to render a three-digit fraction, got {self.decimals}")

    @property
    def unit(self) -> int:
        return 10**self.decimals

    @classmethod
    def for_network(cls, network: str) -> TokenFormat:
        """Preset for ``"kusama"``, ``"polkadot"`` or ``"substrate"``."""
        try:
            return _NETWORKS[network.strip().lower()]
        except KeyError as exc:
            choices = ", ".join(sorted(_NETWORKS))
            raise ValueError(f"unknown network {network!r} (expected one of {choices})") from exc


KUSAMA = TokenFormat(name="KSM", decimals=12)
POLKADOT = TokenFormat(name="DOT", decimals=10)
SUBSTRATE = TokenFormat(name="UNIT", decimals=12)

_NETWORKS: dict[str, TokenFormat] = {
    "kusama": KUSAMA,
    "polkadot": POLKADOT,
    "substrate": SUBSTRATE,
}


def format_integer(amount: int) -> str:
    """``1234567`` -> ``"1,234,567"``."""
    return f"{amount:,}"


def format_balance(amount: int, token: TokenFormat) -> str:
    """Render *amount* (in plancks) as ``"1234,500KSM (1,234,500,000,000,000)"``.

    Whole units, a three-digit fraction, the token name, then the raw
    amount with thousands separators.
    """
    if amount < 0:
        raise ValueError(f"balance must be non-negative, got {amount}")
    whole = amount // token.unit
    milli = amount % token.unit // (token.unit // 1000)
    return f"{whole},{milli:03d}{token.name} ({format_integer(amount)})"
