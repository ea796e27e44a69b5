"""
Structural pre-check for a received payment envelope.

Nothing here touches the wallet. All checks run and every failure is
reported, so a caller sees the whole picture in one pass. Full SPV
validation happens later, when the wallet internalizes the payment.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from .beef import decode_transport
from .errors import A2AError
from .keys import parse_public_key


@dataclass
class VerificationResult:
    valid: bool
    txid: str = ""
    output_count: int = 0
    errors: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "valid": self.valid,
            "txid": self.txid,
            "outputCount": self.output_count,
            "errors": list(self.errors),
        }


def verify_payment(
    envelope: str,
    expected_amount: Optional[int] = None,
    expected_sender: Optional[str] = None,
) -> VerificationResult:
    errors: list[str] = []
    txid = ""
    output_count = 0
    outputs = None

    try:
        decoded = decode_transport(envelope)
    except A2AError as e:
        errors.append(f"parse error: {e}")
    else:
        tx = decoded.terminal_transaction
        txid = decoded.terminal_txid
        output_count = len(tx.outputs)
        outputs = tx.outputs

    if expected_sender:
        try:
            parse_public_key(expected_sender)
        except (TypeError, ValueError):
            errors.append(
                f"expected sender {expected_sender!r} is not a valid compressed public key"
            )

    if expected_amount is not None and outputs is not None:
        if not any(out.satoshis == expected_amount for out in outputs):
            errors.append(f"no output pays exactly {expected_amount} satoshis")

    return VerificationResult(
        valid=not errors,
        txid=txid,
        output_count=output_count,
        errors=errors,
    )
