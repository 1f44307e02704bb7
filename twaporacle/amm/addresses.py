"""
Deterministic (CREATE2) pair and pool addresses.
"""

from __future__ import annotations

from eth_utils import keccak, to_canonical_address, to_checksum_address

from ..oracle.sources import sort_tokens

UNISWAP_V2_INIT_CODE_HASH = bytes.fromhex(
    "96e8ac4277198ff8b6f785478aa9a39f403cb768dd02cbee326c3e7da348845f"
)
UNISWAP_V3_POOL_INIT_CODE_HASH = bytes.fromhex(
    "e34f199b19b2b4f47f68442619d555527d244f78a3297ea89325f843f87b8b54"
)


def create2_address(deployer: str, salt: bytes, init_code_hash: bytes) -> str:
    packed = b"\xff" + to_canonical_address(deployer) + salt + init_code_hash
    return to_checksum_address(keccak(packed)[12:])


def v2_pair_address(factory: str, token_a: str, token_b: str) -> str:
    token0, token1 = sort_tokens(token_a, token_b)
    # abi.encodePacked(token0, token1)
    salt = keccak(to_canonical_address(token0) + to_canonical_address(token1))
    return create2_address(factory, salt, UNISWAP_V2_INIT_CODE_HASH)


def v3_pool_address(factory: str, token_a: str, token_b: str, fee: int) -> str:
    token0, token1 = sort_tokens(token_a, token_b)
    # abi.encode(token0, token1, fee): every word left-padded to 32 bytes
    salt = keccak(
        to_canonical_address(token0).rjust(32, b"\x00")
        + to_canonical_address(token1).rjust(32, b"\x00")
        + int(fee).to_bytes(32, "big")
    )
    return create2_address(factory, salt, UNISWAP_V3_POOL_INIT_CODE_HASH)
