"""
BRC-29 payment construction.

Flow:
1. Draw a fresh derivation tag
2. Derive the one-time locking script for the recipient
3. Ask the wallet collaborator to fund that output
4. Re-wrap the returned bundle as Atomic BEEF naming the new transaction
"""

from __future__ import annotations

import logging
import secrets
from dataclasses import dataclass
from typing import Callable, Optional

from coincurve import PrivateKey

from .beef import BEEF_V1, BEEF_V2, decode, encode_atomic, to_transport_string
from .derivation import brc29_locking_script, new_derivation_tag
from .errors import FundingFailedError, InvalidAmountError
from .keys import identity_key_from_root
from .wallet_client import WalletCollaborator

logger = logging.getLogger(__name__)

DEFAULT_PAYMENT_DESCRIPTION = "agent payment"
DESCRIPTION_MIN = 5
DESCRIPTION_MAX = 50


def normalize_description(description: str) -> str:
    """Fit a description into the wallet's 5-50 character window."""
    if len(description) < DESCRIPTION_MIN:
        return description.ljust(DESCRIPTION_MIN)
    return description[:DESCRIPTION_MAX]


@dataclass
class PaymentResult:
    """A funded payment, ready to hand to the recipient."""

    envelope: str
    txid: str
    satoshis: int
    derivation_prefix: str
    derivation_suffix: str
    sender_identity_key: str

    def to_dict(self) -> dict:
        return {
            "beef": self.envelope,
            "txid": self.txid,
            "satoshis": self.satoshis,
            "derivationPrefix": self.derivation_prefix,
            "derivationSuffix": self.derivation_suffix,
            "senderIdentityKey": self.sender_identity_key,
        }


def build_payment(
    wallet: WalletCollaborator,
    root_key: PrivateKey,
    to: str,
    satoshis: int,
    description: Optional[str] = None,
    *,
    random_bytes: Callable[[int], bytes] = secrets.token_bytes,
) -> PaymentResult:
    """Build and fund a BRC-29 payment to the identity key ``to``.

    Every call draws a new derivation tag, so retrying a failed payment
    never reuses a locking script.
    """
    if isinstance(satoshis, bool) or not isinstance(satoshis, int) or satoshis <= 0:
        raise InvalidAmountError(satoshis)

    desc = normalize_description(description if description is not None else DEFAULT_PAYMENT_DESCRIPTION)
    tag = new_derivation_tag(random_bytes)
    locking_script = brc29_locking_script(root_key, to, tag)

    metadata = {
        "derivationPrefix": tag.prefix,
        "derivationSuffix": tag.suffix,
        "type": "BRC29",
    }
    bundle = wallet.create_funding_output(locking_script.hex(), satoshis, desc, metadata)
    if not bundle:
        raise FundingFailedError()

    envelope = decode(bundle)
    version = BEEF_V2 if envelope.known_txids else BEEF_V1
    atomic = encode_atomic(
        envelope.transactions,
        envelope.terminal_txid,
        version=version,
        known_txids=envelope.known_txids,
    )

    logger.info("Payment funded: %s (%d sats to %s...)", envelope.terminal_txid, satoshis, to[:16])
    return PaymentResult(
        envelope=to_transport_string(atomic),
        txid=envelope.terminal_txid,
        satoshis=satoshis,
        derivation_prefix=tag.prefix,
        derivation_suffix=tag.suffix,
        sender_identity_key=identity_key_from_root(root_key),
    )
