"""
a2a-bsv error types.

Specific exceptions for different failure modes, enabling callers
to handle each case appropriately (fix input, refund, retry, alert, etc.).
Every error that concerns a single input names that input in ``field`` and
what was expected of it in ``expected``.
"""

from __future__ import annotations

from typing import Optional


class A2AError(Exception):
    """Base error for all a2a-bsv operations."""

    def __init__(self, message: str, field: Optional[str] = None, expected: Optional[str] = None):
        self.field = field
        self.expected = expected
        super().__init__(message)

    def to_dict(self) -> dict:
        return {
            "error": type(self).__name__,
            "message": str(self),
            "field": self.field,
            "expected": self.expected,
        }


# Payment errors
class PaymentError(A2AError):
    """Base error for payment construction failures."""
    pass


class InvalidRecipientFormatError(PaymentError):
    """Recipient is not a compressed public key (e.g. a base58 address)."""

    def __init__(self, value: str, reason: Optional[str] = None):
        self.value = value
        message = reason or (
            "to must be a compressed public key (hex, 66 characters starting with 02 or 03) "
            "for BRC-29 payments. Raw BSV addresses are not supported: the recipient must "
            "share their identity key."
        )
        super().__init__(message, field="to", expected="compressed public key hex ^0[23][0-9a-fA-F]{64}$")


class InvalidAmountError(PaymentError):
    """Payment amount is not a positive integer number of satoshis."""

    def __init__(self, value: object):
        self.value = value
        super().__init__(
            f"satoshis must be a positive integer, got {value!r}",
            field="satoshis",
            expected="positive integer",
        )


class FundingFailedError(PaymentError):
    """Wallet did not return a funding transaction (e.g. insufficient funds)."""

    def __init__(self, message: str = "createAction did not return a transaction. Check wallet funding."):
        super().__init__(message, field="tx", expected="transaction bundle bytes")


# Envelope errors
class MalformedEnvelopeError(A2AError):
    """Envelope bytes are empty, truncated, or structurally inconsistent."""

    def __init__(self, message: str, expected: Optional[str] = None):
        super().__init__(message, field="beef", expected=expected)


class TransportParseError(MalformedEnvelopeError):
    """Transport string is not valid base64."""

    def __init__(self, message: str):
        super().__init__(message, expected="base64 encoded Atomic BEEF")


# Identity errors
class InvalidSenderFormatError(A2AError):
    """Sender identity key is not a compressed public key."""

    def __init__(self, value: str, field: str = "senderIdentityKey"):
        self.value = value
        super().__init__(
            f"{field} is not a valid compressed public key",
            field=field,
            expected="compressed public key hex ^0[23][0-9a-fA-F]{64}$",
        )


# Merkle proof errors
class ProofReconstructionError(A2AError):
    """Merkle proof index/height/node data is inconsistent."""
    pass


# Collaborator errors
class WalletError(A2AError):
    """Wallet collaborator failed or rejected a request."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.status_code = status_code
        super().__init__(message)


class WalletNotFoundError(A2AError):
    """No wallet identity file in the configured storage directory."""

    def __init__(self, storage_dir: str):
        self.storage_dir = storage_dir
        super().__init__(
            f"No wallet found at {storage_dir}. Run setup to initialize a new wallet.",
            field="storage_dir",
            expected="directory containing wallet-identity.json",
        )


# Network errors
class ExplorerError(A2AError):
    """Block explorer request failed (HTTP status, DNS, connection refused, etc.)."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.status_code = status_code
        super().__init__(message)


class UtxoImportError(A2AError):
    """External UTXO cannot be imported (unconfirmed, missing output, no proof)."""
    pass
