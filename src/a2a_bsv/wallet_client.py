"""
Wallet collaborator: the external wallet that funds and claims payments.

Payments need only two calls. ``HttpWalletClient`` speaks the BRC-100
JSON-over-HTTP substrate (``POST {base}/createAction``,
``POST {base}/internalizeAction``), with binary fields carried as arrays of
byte values.

Outputs that were not built with a BRC-29 tag (faucet or exchange funding
sent to the identity address) cannot go through ``wallet payment``: the
wallet would re-derive a key that does not match the script. They are
internalized with ``basket insertion`` instead, through ``OutputImporter``.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Mapping, Optional, Protocol, Sequence

import httpx

from .errors import WalletError

logger = logging.getLogger(__name__)

DEFAULT_WALLET_URL = "http://localhost:3321"
PAYMENT_LABEL = "a2a-payment"
PAYMENT_PROTOCOL = "wallet payment"
BASKET_INSERTION_PROTOCOL = "basket insertion"


class WalletCollaborator(Protocol):
    """The subset of a BRC-100 wallet that payments depend on."""

    def create_funding_output(
        self,
        locking_script_hex: str,
        satoshis: int,
        description: str,
        metadata: Mapping[str, str],
    ) -> Optional[bytes]:
        """Fund one output; return the transaction bundle bytes, or None."""
        ...

    def internalize_payment(
        self,
        envelope: bytes,
        output_index: int,
        derivation_prefix: str,
        derivation_suffix: str,
        sender_identity_key: str,
        description: str,
    ) -> Mapping[str, Any]:
        """Claim a received output; the result carries ``accepted``."""
        ...


class OutputImporter(Protocol):
    """Wallet call for tracking an output that carries no BRC-29 tag."""

    def insert_output(
        self,
        envelope: bytes,
        output_index: int,
        basket: str,
        description: str,
        custom_instructions: Optional[str] = None,
        tags: Sequence[str] = (),
    ) -> Mapping[str, Any]:
        """Add one output of ``envelope`` to ``basket``; the result carries ``accepted``."""
        ...


class HttpWalletClient:
    """WalletCollaborator over the BRC-100 HTTP JSON interface."""

    def __init__(
        self,
        base_url: str = DEFAULT_WALLET_URL,
        originator: Optional[str] = None,
        timeout_seconds: float = 30.0,
        http: Optional[httpx.Client] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.originator = originator
        self._owns_http = http is None
        self._http = http if http is not None else httpx.Client(timeout=timeout_seconds)

    def close(self) -> None:
        if self._owns_http:
            self._http.close()

    def __enter__(self) -> "HttpWalletClient":
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    def create_funding_output(
        self,
        locking_script_hex: str,
        satoshis: int,
        description: str,
        metadata: Mapping[str, str],
    ) -> Optional[bytes]:
        args = {
            "description": description,
            "outputs": [
                {
                    "lockingScript": locking_script_hex,
                    "satoshis": satoshis,
                    "outputDescription": description,
                    "tags": ["relinquish"],
                    "customInstructions": json.dumps(dict(metadata), separators=(",", ":")),
                }
            ],
            "options": {
                "randomizeOutputs": False,
                "acceptDelayedBroadcast": False,
            },
            "labels": [PAYMENT_LABEL],
        }
        result = self._call("createAction", args)
        tx = result.get("tx")
        if not tx:
            return None
        return _bytes_from_wire(tx, "createAction.tx")

    def internalize_payment(
        self,
        envelope: bytes,
        output_index: int,
        derivation_prefix: str,
        derivation_suffix: str,
        sender_identity_key: str,
        description: str,
    ) -> Mapping[str, Any]:
        args = {
            "tx": list(envelope),
            "outputs": [
                {
                    "outputIndex": output_index,
                    "protocol": PAYMENT_PROTOCOL,
                    "paymentRemittance": {
                        "derivationPrefix": derivation_prefix,
                        "derivationSuffix": derivation_suffix,
                        "senderIdentityKey": sender_identity_key,
                    },
                }
            ],
            "description": description,
        }
        result = self._call("internalizeAction", args)
        return {"accepted": result.get("accepted") is True}

    def insert_output(
        self,
        envelope: bytes,
        output_index: int,
        basket: str,
        description: str,
        custom_instructions: Optional[str] = None,
        tags: Sequence[str] = (),
    ) -> Mapping[str, Any]:
        remittance: dict = {"basket": basket, "tags": list(tags)}
        if custom_instructions is not None:
            remittance["customInstructions"] = custom_instructions
        args = {
            "tx": list(envelope),
            "outputs": [
                {
                    "outputIndex": output_index,
                    "protocol": BASKET_INSERTION_PROTOCOL,
                    "insertionRemittance": remittance,
                }
            ],
            "description": description,
        }
        result = self._call("internalizeAction", args)
        return {"accepted": result.get("accepted") is True}

    def _call(self, method: str, args: dict) -> dict:
        url = f"{self.base_url}/{method}"
        headers = {"Accept": "application/json", "Content-Type": "application/json"}
        if self.originator:
            headers["Originator"] = self.originator

        logger.debug("POST %s", url)
        try:
            response = self._http.post(url, json=args, headers=headers)
        except httpx.TimeoutException as e:
            raise WalletError(f"{method} timed out: {e}") from e
        except httpx.HTTPError as e:
            raise WalletError(f"{method} request failed: {type(e).__name__}: {e}") from e

        try:
            body = response.json()
        except ValueError:
            body = None

        if not response.is_success:
            detail = body.get("message") if isinstance(body, dict) else None
            raise WalletError(
                f"{method} failed with status {response.status_code}: {detail or response.text[:200]}",
                status_code=response.status_code,
            )
        if not isinstance(body, dict):
            raise WalletError(f"{method} returned a non-JSON-object response")
        return body


def _bytes_from_wire(value: Any, name: str) -> bytes:
    if not isinstance(value, list):
        raise WalletError(f"{name} must be an array of byte values, got {type(value).__name__}")
    try:
        return bytes(value)
    except (TypeError, ValueError) as e:
        raise WalletError(f"{name} is not a valid byte array: {e}") from e
