"""EIP-191 signatures over ABI-encoded token allocations."""
from __future__ import annotations

import logging

from eth_abi import encode
from eth_account import Account
from eth_account.messages import encode_defunct
from eth_utils import keccak, to_checksum_address

logger = logging.getLogger(__name__)

ALLOCATION_TYPES = ["address", "uint256", "address", "uint256"]


def allocation_digest(user_address: str, nonce: int, contract_address: str, token_allocation: int) -> bytes:
    """keccak256(abi.encode(user, nonce, contract, allocation))."""

    if nonce < 0:
        raise ValueError("nonce must be non-negative")
    if token_allocation < 0:
        raise ValueError("token allocation must be non-negative")
    encoded = encode(
        ALLOCATION_TYPES,
        [to_checksum_address(user_address), nonce, to_checksum_address(contract_address), token_allocation],
    )
    return keccak(encoded)


def sign_allocation(
    user_address: str,
    nonce: int,
    contract_address: str,
    token_allocation: int,
    signing_key: str,
) -> str:
    """Sign the allocation digest with the personal-message prefix, returning 0x hex."""

    digest = allocation_digest(user_address, nonce, contract_address, token_allocation)
    signed = Account.sign_message(encode_defunct(primitive=digest), private_key=signing_key)
    logger.debug("Signed allocation=%d nonce=%d for %s", token_allocation, nonce, user_address)
    return "0x" + bytes(signed.signature).hex()


def recover_signer(
    signature: str,
    user_address: str,
    nonce: int,
    contract_address: str,
    token_allocation: int,
) -> str:
    """Return the checksum address that produced ``signature`` for this allocation."""

    digest = allocation_digest(user_address, nonce, contract_address, token_allocation)
    return Account.recover_message(encode_defunct(primitive=digest), signature=signature)


__all__ = ["ALLOCATION_TYPES", "allocation_digest", "recover_signer", "sign_allocation"]
