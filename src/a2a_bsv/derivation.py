"""
BRC-29 payment key derivation (BRC-42 child keys).

A payment output is locked to a one-time key that both sides can compute:

    shared  = recipientPub * senderPriv          (compressed point)
    h       = HMAC-SHA256(shared, invoiceNumber)
    payPub  = recipientPub + h*G
    payPriv = recipientPriv + h  (mod n)         (recipient only)

The invoice number binds the BRC-29 protocol id and a fresh derivation tag,
so every payment lands on a new script.
"""

from __future__ import annotations

import base64
import hashlib
import hmac
import secrets
from dataclasses import dataclass
from typing import Callable

from coincurve import PrivateKey, PublicKey

from .errors import InvalidRecipientFormatError, InvalidSenderFormatError
from .keys import is_identity_key, p2pkh_locking_script


BRC29_SECURITY_LEVEL = 2
BRC29_PROTOCOL_ID = "3241645161d8"
TAG_PART_BYTES = 8


@dataclass(frozen=True)
class DerivationTag:
    prefix: str
    suffix: str

    @property
    def key_id(self) -> str:
        return f"{self.prefix} {self.suffix}"


def new_derivation_tag(random_bytes: Callable[[int], bytes] = secrets.token_bytes) -> DerivationTag:
    prefix = base64.b64encode(random_bytes(TAG_PART_BYTES)).decode("ascii")
    suffix = base64.b64encode(random_bytes(TAG_PART_BYTES)).decode("ascii")
    return DerivationTag(prefix=prefix, suffix=suffix)


def invoice_number(tag: DerivationTag) -> str:
    return f"{BRC29_SECURITY_LEVEL}-{BRC29_PROTOCOL_ID}-{tag.key_id}"


def _invoice_hmac(shared_point: PublicKey, tag: DerivationTag) -> bytes:
    return hmac.new(
        shared_point.format(compressed=True),
        invoice_number(tag).encode("utf-8"),
        hashlib.sha256,
    ).digest()


def _recipient_point(recipient_identity_key: str) -> PublicKey:
    if not is_identity_key(recipient_identity_key):
        raise InvalidRecipientFormatError(recipient_identity_key)
    try:
        return PublicKey(bytes.fromhex(recipient_identity_key))
    except ValueError as e:
        raise InvalidRecipientFormatError(
            recipient_identity_key,
            reason=f"to is not a valid secp256k1 point ({e}). A compressed public key is expected; "
                   "raw BSV addresses are not supported.",
        ) from e


def derive_payment_public_key(
    root_key: PrivateKey,
    recipient_identity_key: str,
    tag: DerivationTag,
) -> PublicKey:
    """Sender side: the one-time public key the payment output locks to."""
    recipient = _recipient_point(recipient_identity_key)
    shared = recipient.multiply(root_key.secret)
    return recipient.add(_invoice_hmac(shared, tag))


def brc29_locking_script(
    root_key: PrivateKey,
    recipient_identity_key: str,
    tag: DerivationTag,
) -> bytes:
    return p2pkh_locking_script(derive_payment_public_key(root_key, recipient_identity_key, tag))


def derive_spending_key(
    recipient_root_key: PrivateKey,
    sender_identity_key: str,
    tag: DerivationTag,
) -> PrivateKey:
    """Recipient side: the private key unlocking the output built for ``tag``."""
    if not is_identity_key(sender_identity_key):
        raise InvalidSenderFormatError(sender_identity_key)
    try:
        sender = PublicKey(bytes.fromhex(sender_identity_key))
    except ValueError as e:
        raise InvalidSenderFormatError(sender_identity_key) from e
    shared = sender.multiply(recipient_root_key.secret)
    return recipient_root_key.add(_invoice_hmac(shared, tag))
