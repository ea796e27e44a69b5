"""Claiming a received BRC-29 payment into the recipient's wallet."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from .beef import from_transport_string
from .errors import InvalidSenderFormatError, PaymentError
from .keys import parse_public_key
from .payment import normalize_description
from .wallet_client import WalletCollaborator

logger = logging.getLogger(__name__)

DEFAULT_ACCEPT_DESCRIPTION = "received payment"


@dataclass
class AcceptResult:
    accepted: bool

    def to_dict(self) -> dict:
        return {"accepted": self.accepted}


def accept_payment(
    wallet: WalletCollaborator,
    envelope: str,
    output_index: int,
    derivation_prefix: str,
    derivation_suffix: str,
    sender_identity_key: str,
    description: Optional[str] = None,
) -> AcceptResult:
    """Hand the envelope and its derivation tag to the wallet for internalization.

    Wallet errors propagate unchanged; the caller decides whether to retry.
    """
    raw = from_transport_string(envelope)

    if isinstance(output_index, bool) or not isinstance(output_index, int) or output_index < 0:
        raise PaymentError(
            f"output index must be a non-negative integer, got {output_index!r}",
            field="vout",
            expected="non-negative integer",
        )
    try:
        parse_public_key(sender_identity_key)
    except (TypeError, ValueError) as e:
        raise InvalidSenderFormatError(sender_identity_key) from e

    desc = normalize_description(description if description is not None else DEFAULT_ACCEPT_DESCRIPTION)
    result = wallet.internalize_payment(
        raw,
        output_index,
        derivation_prefix,
        derivation_suffix,
        sender_identity_key,
        desc,
    )
    accepted = result.get("accepted") is True
    if accepted:
        logger.info("Payment accepted: output %d from %s...", output_index, sender_identity_key[:16])
    else:
        logger.warning("Wallet declined payment output %d from %s...", output_index, sender_identity_key[:16])
    return AcceptResult(accepted=accepted)
