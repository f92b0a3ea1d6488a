"""Monotonic per-wallet nonces for allocation signatures."""
from __future__ import annotations

from .sqlite import get_conn


def next_nonce(wallet: str) -> int:
    """Atomically reserve and return the next nonce for ``wallet``.

    The first nonce is 1: the token contract expects ``nonces(wallet) + 1``.
    """

    with get_conn() as conn:
        conn.execute(
            """INSERT INTO nonces (wallet, next_nonce) VALUES (?, 1)
               ON CONFLICT(wallet) DO UPDATE SET next_nonce = next_nonce + 1""",
            (wallet,),
        )
        row = conn.execute("SELECT next_nonce FROM nonces WHERE wallet = ?", (wallet,)).fetchone()
    return int(row["next_nonce"])


__all__ = ["next_nonce"]
