"""
a2a-bsv: agent-to-agent payments on BSV.

Single-use BRC-29 payment outputs, carried between agents as Atomic BEEF:
Sender builds and funds → Recipient pre-checks → Wallet internalizes.
"""

__version__ = "0.1.0"

from .errors import (
    A2AError,
    ExplorerError,
    FundingFailedError,
    InvalidAmountError,
    InvalidRecipientFormatError,
    InvalidSenderFormatError,
    MalformedEnvelopeError,
    PaymentError,
    ProofReconstructionError,
    TransportParseError,
    UtxoImportError,
    WalletError,
    WalletNotFoundError,
)
from .transaction import Transaction, TxInput, TxOutput
from .merkle_path import MerklePath, MerklePathLeaf, merkle_path_from_tsc, translate_tsc_proof
from .beef import Envelope, decode, encode_atomic, from_transport_string, to_transport_string
from .derivation import DerivationTag, brc29_locking_script, derive_spending_key, new_derivation_tag
from .payment import PaymentResult, build_payment, normalize_description
from .verify import VerificationResult, verify_payment
from .accept import AcceptResult, accept_payment
from .wallet_client import HttpWalletClient, OutputImporter, WalletCollaborator
from .config import WalletConfig
from .wallet import AgentWallet

__all__ = [
    "A2AError", "PaymentError", "InvalidRecipientFormatError", "InvalidAmountError",
    "FundingFailedError", "MalformedEnvelopeError", "TransportParseError",
    "InvalidSenderFormatError", "ProofReconstructionError", "WalletError",
    "WalletNotFoundError", "ExplorerError", "UtxoImportError",
    "Transaction", "TxInput", "TxOutput",
    "MerklePath", "MerklePathLeaf", "merkle_path_from_tsc", "translate_tsc_proof",
    "Envelope", "decode", "encode_atomic", "from_transport_string", "to_transport_string",
    "DerivationTag", "brc29_locking_script", "derive_spending_key", "new_derivation_tag",
    "PaymentResult", "build_payment", "normalize_description",
    "VerificationResult", "verify_payment",
    "AcceptResult", "accept_payment",
    "HttpWalletClient", "OutputImporter", "WalletCollaborator",
    "WalletConfig", "AgentWallet",
]
