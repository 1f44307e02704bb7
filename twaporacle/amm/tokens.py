"""
In-memory ERC-20 metadata registry.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict

from ..oracle.sources import normalize_token

logger = logging.getLogger(__name__)

MAX_DECIMALS = 77  # 10**77 still fits in uint256


@dataclass(frozen=True)
class TokenInfo:
    address: str
    symbol: str
    decimals: int


class TokenRegistry:
    """Decimals lookup keyed by checksummed address."""

    def __init__(self) -> None:
        self._tokens: Dict[str, TokenInfo] = {}

    def register(self, address: str, decimals: int = 18, symbol: str = "") -> TokenInfo:
        if not 0 <= decimals <= MAX_DECIMALS:
            raise ValueError(f"Decimals out of range: {decimals}")
        address = normalize_token(address)
        info = TokenInfo(address=address, symbol=symbol, decimals=decimals)
        self._tokens[address] = info
        logger.debug("Token %s registered: %s decimals=%d", address, symbol or "?", decimals)
        return info

    def decimals(self, token: str) -> int:
        info = self._tokens.get(normalize_token(token))
        if info is None:
            raise KeyError(f"Unknown token {token}")
        return info.decimals

    def __contains__(self, token: str) -> bool:
        return normalize_token(token) in self._tokens
