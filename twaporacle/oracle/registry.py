"""
Pair registry and path table.

PairRegistry tracks the pairs sampled by the oracle, each with a reference
count equal to the number of registered path hops that use it. PathTable maps
an input token to its route towards the output token.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, Iterator, List, Optional, Sequence, Tuple

from .observations import PairInfo
from .sources import V2Pair

logger = logging.getLogger(__name__)


def hops(tokens: Sequence[str]) -> List[Tuple[str, str]]:
    """Consecutive (token_in, token_out) pairs of a path."""
    return list(zip(tokens, tokens[1:]))


@dataclass(frozen=True)
class Path:
    """A registered route and the pair backing each hop."""
    tokens: Tuple[str, ...]
    pairs: Tuple[str, ...]

    @property
    def token_in(self) -> str:
        return self.tokens[0]

    @property
    def token_out(self) -> str:
        return self.tokens[-1]


class PairRegistry:
    """Insertion-ordered set of tracked pairs with reference counts."""

    def __init__(self) -> None:
        self._pairs: Dict[str, PairInfo] = {}

    def __contains__(self, address: str) -> bool:
        return address in self._pairs

    def __len__(self) -> int:
        return len(self._pairs)

    def __iter__(self) -> Iterator[PairInfo]:
        return iter(list(self._pairs.values()))

    def get(self, address: str) -> Optional[PairInfo]:
        return self._pairs.get(address)

    def addresses(self) -> List[str]:
        return list(self._pairs)

    def refs(self, address: str) -> int:
        info = self._pairs.get(address)
        return info.refs if info else 0

    def acquire(self, pair: V2Pair) -> PairInfo:
        """Take a reference on *pair*, tracking it if new."""
        info = self._pairs.get(pair.address)
        if info is None:
            info = PairInfo(pair=pair)
            self._pairs[pair.address] = info
            logger.debug("Tracking pair %s (%s/%s)", pair.address, pair.token0, pair.token1)
        info.refs += 1
        return info

    def release(self, address: str) -> bool:
        """
        Drop a reference on *address*.

        Returns:
            True if the pair reached zero references and was retired.
        """
        info = self._pairs.get(address)
        if info is None or info.refs <= 0:
            raise RuntimeError(f"Pair {address} released more times than acquired")
        info.refs -= 1
        if info.refs == 0:
            del self._pairs[address]
            logger.debug("Retired pair %s after %d rounds", address, info.rounds)
            return True
        return False


class PathTable:
    """token_in -> Path."""

    def __init__(self) -> None:
        self._paths: Dict[str, Path] = {}

    def __contains__(self, token: str) -> bool:
        return token in self._paths

    def __len__(self) -> int:
        return len(self._paths)

    def get(self, token: str) -> Optional[Path]:
        return self._paths.get(token)

    def register(self, path: Path) -> None:
        if path.token_in in self._paths:
            raise KeyError(f"Path already registered for {path.token_in}")
        self._paths[path.token_in] = path

    def remove(self, token: str) -> Optional[Path]:
        return self._paths.pop(token, None)
