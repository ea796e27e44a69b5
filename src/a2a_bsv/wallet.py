"""
AgentWallet: one object bundling an agent's identity with its wallet.

    with AgentWallet.load(WalletConfig.from_env()) as wallet:
        payment = wallet.create_payment(recipient_key, 500, "summarize report")
"""

from __future__ import annotations

from typing import Optional

from .accept import AcceptResult, accept_payment
from .config import WalletConfig
from .explorer import WhatsOnChainClient
from .identity import WalletIdentity, create_identity, load_identity
from .importer import ImportResult, import_external_utxo
from .keys import p2pkh_address
from .payment import PaymentResult, build_payment
from .verify import VerificationResult, verify_payment
from .wallet_client import HttpWalletClient, WalletCollaborator


class AgentWallet:
    def __init__(
        self,
        config: WalletConfig,
        identity: WalletIdentity,
        wallet: Optional[WalletCollaborator] = None,
    ):
        self.config = config
        self.identity = identity
        self._owns_wallet = wallet is None
        if wallet is None:
            wallet = HttpWalletClient(
                base_url=config.wallet_url,
                originator=config.originator,
                timeout_seconds=config.timeout_seconds,
            )
        self.wallet = wallet

    @classmethod
    def create(cls, config: WalletConfig, wallet: Optional[WalletCollaborator] = None) -> "AgentWallet":
        return cls(config, create_identity(config), wallet)

    @classmethod
    def load(cls, config: WalletConfig, wallet: Optional[WalletCollaborator] = None) -> "AgentWallet":
        return cls(config, load_identity(config), wallet)

    @property
    def identity_key(self) -> str:
        return self.identity.identity_key

    def address(self) -> str:
        """P2PKH address of the identity key, for funding from faucets and exchanges."""
        return p2pkh_address(self.identity.root_key.public_key, self.config.network)

    def create_payment(self, to: str, satoshis: int, description: Optional[str] = None) -> PaymentResult:
        return build_payment(self.wallet, self.identity.root_key, to, satoshis, description)

    def verify_payment(
        self,
        envelope: str,
        expected_amount: Optional[int] = None,
        expected_sender: Optional[str] = None,
    ) -> VerificationResult:
        return verify_payment(envelope, expected_amount=expected_amount, expected_sender=expected_sender)

    def accept_payment(
        self,
        envelope: str,
        derivation_prefix: str,
        derivation_suffix: str,
        sender_identity_key: str,
        output_index: int = 0,
        description: Optional[str] = None,
    ) -> AcceptResult:
        return accept_payment(
            self.wallet,
            envelope,
            output_index,
            derivation_prefix,
            derivation_suffix,
            sender_identity_key,
            description,
        )

    def import_utxo(
        self,
        txid: str,
        vout: int = 0,
        explorer: Optional[WhatsOnChainClient] = None,
    ) -> ImportResult:
        """Import a confirmed output paying ``address()``. The wallet must also be an OutputImporter."""
        if explorer is not None:
            return import_external_utxo(self.wallet, explorer, txid, self.identity_key, vout)
        with WhatsOnChainClient(self.config.network, timeout_seconds=self.config.timeout_seconds) as woc:
            return import_external_utxo(self.wallet, woc, txid, self.identity_key, vout)

    def close(self) -> None:
        if self._owns_wallet:
            self.wallet.close()

    def __enter__(self) -> "AgentWallet":
        return self

    def __exit__(self, *exc) -> None:
        self.close()
