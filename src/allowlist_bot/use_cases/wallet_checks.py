from __future__ import annotations

import re

EVM_ADDRESS_PATTERN = re.compile(r"^0x[0-9a-fA-F]{40}$")


def normalize_wallet_input(value: str | None) -> str:
    return (value or "").strip()


def is_valid_evm_address(value: str | None) -> bool:
    """Lowercase `0x` followed by exactly 40 hex digits of either case."""

    if value is None:
        return False
    return EVM_ADDRESS_PATTERN.fullmatch(value) is not None
