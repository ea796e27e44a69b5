"""Tests for BRC-29 key derivation."""

import base64
import itertools

import pytest

from a2a_bsv.derivation import (
    DerivationTag,
    brc29_locking_script,
    derive_payment_public_key,
    derive_spending_key,
    invoice_number,
    new_derivation_tag,
)
from a2a_bsv.errors import InvalidRecipientFormatError, InvalidSenderFormatError
from a2a_bsv.keys import p2pkh_locking_script


def _counter_bytes():
    counter = itertools.count(1)
    return lambda n: next(counter).to_bytes(n, "big")


class TestTag:
    def test_parts_are_base64_of_eight_bytes(self):
        tag = new_derivation_tag()
        assert len(base64.b64decode(tag.prefix)) == 8
        assert len(base64.b64decode(tag.suffix)) == 8

    def test_uses_injected_randomness(self):
        tag = new_derivation_tag(lambda n: b"\x01" * n)
        assert tag == DerivationTag("AQEBAQEBAQE=", "AQEBAQEBAQE=")

    def test_invoice_number(self):
        tag = DerivationTag("abc", "def")
        assert tag.key_id == "abc def"
        assert invoice_number(tag) == "2-3241645161d8-abc def"


class TestDerivation:
    def test_recipient_can_spend(self, sender_key, recipient_key, sender_identity, recipient_identity):
        tag = new_derivation_tag()
        payment_pub = derive_payment_public_key(sender_key, recipient_identity, tag)
        spending_key = derive_spending_key(recipient_key, sender_identity, tag)
        assert spending_key.public_key.format() == payment_pub.format()

    def test_script_locks_to_derived_key(self, sender_key, recipient_key, sender_identity, recipient_identity):
        tag = new_derivation_tag()
        script = brc29_locking_script(sender_key, recipient_identity, tag)
        spending_key = derive_spending_key(recipient_key, sender_identity, tag)
        assert script == p2pkh_locking_script(spending_key.public_key)

    def test_distinct_tags_give_distinct_scripts(self, sender_key, recipient_identity):
        random_bytes = _counter_bytes()
        scripts = {
            brc29_locking_script(sender_key, recipient_identity, new_derivation_tag(random_bytes))
            for _ in range(20)
        }
        assert len(scripts) == 20

    def test_deterministic_for_same_tag(self, sender_key, recipient_identity):
        tag = DerivationTag("AAAAAAAAAAA=", "AAAAAAAAAAE=")
        assert brc29_locking_script(sender_key, recipient_identity, tag) == \
            brc29_locking_script(sender_key, recipient_identity, tag)

    def test_not_the_identity_key_itself(self, sender_key, recipient_identity):
        pub = derive_payment_public_key(sender_key, recipient_identity, new_derivation_tag())
        assert pub.format().hex() != recipient_identity

    def test_other_recipient_cannot_spend(self, sender_key, sender_identity, recipient_identity):
        from coincurve import PrivateKey

        tag = new_derivation_tag()
        intruder = derive_spending_key(PrivateKey.from_hex("44" * 32), sender_identity, tag)
        assert intruder.public_key.format() != \
            derive_payment_public_key(sender_key, recipient_identity, tag).format()


class TestRecipientValidation:
    @pytest.mark.parametrize("to", [
        "1BgGZ9tcN4rm9KBzDn7KprQz87SZ26SAMH",
        "04" + "ab" * 32,
        "02abc",
        "",
    ])
    def test_rejects_non_pubkeys(self, sender_key, to):
        with pytest.raises(InvalidRecipientFormatError) as exc:
            brc29_locking_script(sender_key, to, new_derivation_tag())
        err = exc.value
        assert err.field == "to"
        assert "compressed public key" in str(err)
        assert "addresses are not supported" in str(err)

    def test_rejects_off_curve_point(self, sender_key):
        with pytest.raises(InvalidRecipientFormatError) as exc:
            brc29_locking_script(sender_key, "02" + "ff" * 32, new_derivation_tag())
        assert "compressed public key" in str(exc.value)

    def test_spending_key_rejects_bad_sender(self, recipient_key):
        with pytest.raises(InvalidSenderFormatError):
            derive_spending_key(recipient_key, "not-a-pubkey", new_derivation_tag())
