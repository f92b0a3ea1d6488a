from __future__ import annotations  # On-chain activity scorer feeding the interview wallet bonus

import logging
from textwrap import dedent
from typing import Any, Dict, List, Optional

import httpx
from langchain_core.prompts import ChatPromptTemplate

from config.routing import LlmRoute
from interview.errors import AgentCallFailure
from llm_gateway import call
from .toolkit import agent_errors
from .types import WalletScore

logger = logging.getLogger(__name__)

WALLET_GUIDANCE = dedent(
    """
    You evaluate on-chain engagement of a wallet from its token and NFT holdings.
    Diverse, long-held community tokens and NFT collections indicate engagement; empty or dust wallets do not.
    Return a score from 0 to 5 and a one-line summary.
    """
).strip()

WALLET_PROMPT = ChatPromptTemplate.from_messages(
    [
        ("system", "{instructions}"),
        (
            "human",
            "Wallet: {wallet}\nChain: {chain}\n\n"
            "Token holdings ({token_count}):\n{tokens}\n\n"
            "NFT collections ({nft_count}):\n{nfts}\n",
        ),
    ]
)

MAX_LISTED = 25


class WalletActivityScorer:  # GoldRush balances summarized and scored by an LLM route
    def __init__(
        self,
        route: LlmRoute,
        *,
        api_key: str,
        base_url: str,
        chain: str,
        client: Optional[httpx.Client] = None,
    ) -> None:
        self._route = route
        self._api_key = api_key
        self._base_url = base_url.rstrip("/")
        self._chain = chain
        self._client = client

    def score(self, wallet_address: str) -> float:
        tokens = self._items(f"/{self._chain}/address/{wallet_address}/balances_v2/")
        nfts = self._items(f"/{self._chain}/address/{wallet_address}/balances_nft/")
        task = WALLET_PROMPT.format(
            instructions=WALLET_GUIDANCE,
            wallet=wallet_address,
            chain=self._chain,
            token_count=len(tokens),
            tokens=_token_lines(tokens),
            nft_count=len(nfts),
            nfts=_nft_lines(nfts),
        )
        with agent_errors("wallet"):
            result = call(task, WalletScore, cfg=self._route)
        logger.info("Wallet %s scored %.1f: %s", wallet_address, result.score, result.summary)
        return result.score

    def _items(self, path: str) -> List[Dict[str, Any]]:
        headers = {"Authorization": f"Bearer {self._api_key}"}
        client = self._client or httpx.Client(timeout=self._route.timeout_s)
        try:
            response = client.get(f"{self._base_url}{path}", headers=headers)
            response.raise_for_status()
            payload = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            raise AgentCallFailure(f"wallet lookup failed: {exc}", axis="wallet") from exc
        finally:
            if self._client is None:
                client.close()
        data = payload.get("data") if isinstance(payload, dict) else None
        items = data.get("items") if isinstance(data, dict) else None
        return [item for item in items or [] if isinstance(item, dict)]


def _quote(item: Dict[str, Any]) -> float:  # GoldRush reports null or text quotes for unpriced tokens
    try:
        return float(item.get("quote") or 0.0)
    except (TypeError, ValueError):
        return 0.0


def _token_lines(items: List[Dict[str, Any]]) -> str:
    ranked = sorted(items, key=_quote, reverse=True)
    lines = []
    for item in ranked[:MAX_LISTED]:
        symbol = item.get("contract_ticker_symbol") or item.get("contract_name") or "?"
        lines.append(f"- {symbol}: ${_quote(item):,.2f}")
    return "\n".join(lines) if lines else "None."


def _nft_lines(items: List[Dict[str, Any]]) -> str:
    lines = []
    for item in items[:MAX_LISTED]:
        name = item.get("contract_name") or item.get("contract_address") or "?"
        nft_data = item.get("nft_data")
        held = len(nft_data) if isinstance(nft_data, list) else 0
        lines.append(f"- {name}: {held} held")
    return "\n".join(lines) if lines else "None."


__all__ = ["WALLET_GUIDANCE", "WalletActivityScorer"]
