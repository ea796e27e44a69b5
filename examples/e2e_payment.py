"""
End-to-end test: a real BRC-29 payment between two agents on BSV testnet.

Needs two running BRC-100 wallets (one per agent), e.g.
    SENDER_WALLET_URL=http://localhost:3321 RECEIVER_WALLET_URL=http://localhost:3322
and a funded sender wallet (see `a2a-bsv address` / `a2a-bsv import`).
"""

import os
import sys
import tempfile
from pathlib import Path

sys.path.insert(0, "../src")
from a2a_bsv import AgentWallet, WalletConfig


def open_wallet(name: str, url: str, root: Path) -> AgentWallet:
    config = WalletConfig(network="testnet", storage_dir=root / name, wallet_url=url)
    return AgentWallet.create(config)


def main():
    sender_url = os.environ.get("SENDER_WALLET_URL", "http://localhost:3321")
    receiver_url = os.environ.get("RECEIVER_WALLET_URL", "http://localhost:3322")
    sats = int(os.environ.get("PAYMENT_SATS", "1000"))

    print("🚀 a2a-bsv E2E Test: BRC-29 payment on BSV testnet")
    print("=" * 55)
    print()

    root = Path(tempfile.mkdtemp(prefix="a2a-bsv-e2e-"))
    with open_wallet("sender", sender_url, root) as sender, \
            open_wallet("receiver", receiver_url, root) as receiver:
        print("1️⃣  Wallets")
        print(f"   Sender:   {sender.identity_key}")
        print(f"   Receiver: {receiver.identity_key}")
        print()

        print(f"2️⃣  Paying {sats} sats...")
        payment = sender.create_payment(receiver.identity_key, sats, "e2e test payment")
        print(f"   TXID: {payment.txid}")
        print(f"   Envelope: {payment.envelope[:60]}...")
        print()

        print("3️⃣  Verifying...")
        check = receiver.verify_payment(
            payment.envelope,
            expected_amount=sats,
            expected_sender=payment.sender_identity_key,
        )
        if not check.valid:
            print(f"   ❌ Verification failed: {check.errors}")
            return
        print(f"   ✅ Valid ({check.output_count} outputs)")
        print()

        print("4️⃣  Accepting...")
        result = receiver.accept_payment(
            payment.envelope,
            payment.derivation_prefix,
            payment.derivation_suffix,
            payment.sender_identity_key,
        )
        if result.accepted:
            print("   🎉 PAYMENT ACCEPTED!")
        else:
            print("   ❌ Receiver wallet declined the payment")

    print()
    print("=" * 55)


if __name__ == "__main__":
    main()
