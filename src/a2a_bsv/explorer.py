"""
WhatsOnChain block explorer client.

Only the three lookups the UTXO import needs: transaction info, raw hex and
the TSC merkle proof.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

import httpx

from .config import to_chain
from .errors import ExplorerError

logger = logging.getLogger(__name__)

WOC_API_BASE = "https://api.whatsonchain.com/v1/bsv"
WOC_SITE = {"main": "https://whatsonchain.com", "test": "https://test.whatsonchain.com"}


def tx_page_url(chain: str, txid: str) -> str:
    """Human-facing explorer page for ``txid``."""
    return f"{WOC_SITE[chain]}/tx/{txid}"


def address_page_url(chain: str, address: str) -> str:
    return f"{WOC_SITE[chain]}/address/{address}"


class WhatsOnChainClient:
    def __init__(
        self,
        network: str = "mainnet",
        timeout_seconds: float = 30.0,
        http: Optional[httpx.Client] = None,
    ):
        self.chain = to_chain(network)
        self.base_url = f"{WOC_API_BASE}/{self.chain}"
        self._owns_http = http is None
        self._http = http if http is not None else httpx.Client(timeout=timeout_seconds)

    def close(self) -> None:
        if self._owns_http:
            self._http.close()

    def __enter__(self) -> "WhatsOnChainClient":
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    def tx_url(self, txid: str) -> str:
        return tx_page_url(self.chain, txid)

    def get_tx_info(self, txid: str) -> dict:
        body = self._get_json(f"/tx/{txid}", "tx info")
        if not isinstance(body, dict):
            raise ExplorerError(f"Unexpected tx info response for {txid}")
        return body

    def get_raw_tx(self, txid: str) -> str:
        return self._get(f"/tx/{txid}/hex", "raw tx").text.strip()

    def get_tsc_proof(self, txid: str) -> Any:
        return self._get_json(f"/tx/{txid}/proof/tsc", "merkle proof")

    def _get_json(self, path: str, what: str) -> Any:
        response = self._get(path, what)
        try:
            return response.json()
        except ValueError as e:
            raise ExplorerError(f"Failed to parse {what}: {e}") from e

    def _get(self, path: str, what: str) -> httpx.Response:
        url = f"{self.base_url}{path}"
        logger.debug("GET %s", url)
        try:
            response = self._http.get(url)
        except httpx.HTTPError as e:
            raise ExplorerError(f"Failed to fetch {what}: {type(e).__name__}: {e}") from e
        if not response.is_success:
            raise ExplorerError(
                f"Failed to fetch {what}: {response.status_code} {response.text[:200]}",
                status_code=response.status_code,
            )
        return response
