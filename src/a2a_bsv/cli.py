"""
a2a-bsv CLI: BRC-29 payments between agents.

Commands:
    a2a-bsv setup                               Create (or report) the wallet identity
    a2a-bsv identity                            Print the identity key
    a2a-bsv address                             Print the P2PKH funding address
    a2a-bsv pay <pubkey> <sats> [desc...]       Build and fund a payment
    a2a-bsv verify <beef>                       Pre-check a received envelope
    a2a-bsv accept <beef> <prefix> <suffix> <sender> [desc...]
                                                Internalize a received payment
    a2a-bsv import <txid> [vout]                Import a confirmed external UTXO

Every command prints one JSON object on stdout:
{"success": true, "data": ...} or {"success": false, "error": "..."} (exit 1).
"""

from __future__ import annotations

import json
import logging
import sys
from typing import Any, Callable, Optional

import click

from . import __version__
from .config import WalletConfig
from .explorer import address_page_url
from .identity import create_identity, identity_exists, load_identity
from .keys import p2pkh_address
from .verify import verify_payment
from .wallet import AgentWallet

logger = logging.getLogger(__name__)

FAUCET_URL = "https://witnessonchain.com/faucet/tbsv"


def _ok(data: Any) -> None:
    click.echo(json.dumps({"success": True, "data": data}))


def _fail(error: Any) -> None:
    click.echo(json.dumps({"success": False, "error": str(error)}))
    sys.exit(1)


def _run(action: Callable[[], Any]) -> None:
    try:
        data = action()
    except Exception as e:
        logger.debug("Command failed", exc_info=True)
        _fail(e)
    else:
        _ok(data)


def _config(ctx: click.Context) -> WalletConfig:
    return WalletConfig.from_env(**ctx.obj)


def _join(words: tuple) -> Optional[str]:
    return " ".join(words) or None


def _parse_positive_int(value: str, name: str) -> int:
    try:
        parsed = int(value, 10)
    except ValueError:
        raise ValueError(f"{name} must be a positive integer") from None
    if parsed <= 0:
        raise ValueError(f"{name} must be a positive integer")
    return parsed


def _parse_index(value: str, name: str) -> int:
    try:
        parsed = int(value, 10)
    except ValueError:
        raise ValueError(f"{name} must be a non-negative integer") from None
    if parsed < 0:
        raise ValueError(f"{name} must be a non-negative integer")
    return parsed


# ── CLI ───────────────────────────────────────────────────────────

@click.group()
@click.version_option(version=__version__)
@click.option("--network", type=click.Choice(["mainnet", "testnet"]), default=None,
              help="Override BSV_NETWORK")
@click.option("--wallet-dir", type=click.Path(file_okay=False), default=None,
              help="Override BSV_WALLET_DIR")
@click.option("--wallet-url", default=None, help="Override BSV_WALLET_URL")
@click.option("-v", "--verbose", is_flag=True, default=False, help="Log to stderr")
@click.pass_context
def main(ctx: click.Context, network, wallet_dir, wallet_url, verbose: bool):
    """a2a-bsv: agent-to-agent payments on BSV."""
    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            stream=sys.stderr,
            format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        )
    ctx.obj = {"network": network, "storage_dir": wallet_dir, "wallet_url": wallet_url}


@main.command()
@click.pass_context
def setup(ctx: click.Context):
    """Create the wallet identity, or report the existing one."""
    def action():
        config = _config(ctx)
        already_existed = identity_exists(config)
        identity = load_identity(config) if already_existed else create_identity(config)
        return {
            "identityKey": identity.identity_key,
            "walletDir": str(config.storage_dir),
            "network": config.network,
            "alreadyExisted": already_existed,
        }
    _run(action)


@main.command()
@click.pass_context
def identity(ctx: click.Context):
    """Print this wallet's identity key."""
    _run(lambda: {"identityKey": load_identity(_config(ctx)).identity_key})


@main.command()
@click.pass_context
def address(ctx: click.Context):
    """Print the P2PKH address for funding this wallet."""
    def action():
        config = _config(ctx)
        wallet_identity = load_identity(config)
        addr = p2pkh_address(wallet_identity.root_key.public_key, config.network)
        page = address_page_url(config.chain, addr)
        if config.network == "testnet":
            note = f"Fund this address at {FAUCET_URL}. View on explorer: {page}"
        else:
            note = f"This is a mainnet address. View on explorer: {page}"
        return {
            "address": addr,
            "network": config.network,
            "identityKey": wallet_identity.identity_key,
            "note": note,
        }
    _run(action)


@main.command()
@click.argument("pubkey")
@click.argument("satoshis")
@click.argument("description", nargs=-1)
@click.pass_context
def pay(ctx: click.Context, pubkey: str, satoshis: str, description: tuple):
    """Pay SATOSHIS to the identity key PUBKEY."""
    def action():
        sats = _parse_positive_int(satoshis, "satoshis")
        with AgentWallet.load(_config(ctx)) as wallet:
            return wallet.create_payment(pubkey, sats, _join(description)).to_dict()
    _run(action)


@main.command()
@click.argument("beef")
@click.option("--expected-amount", default=None,
              help="Require an output of exactly this many satoshis")
@click.option("--expected-sender", default=None,
              help="Sender identity key to check the format of")
def verify(beef: str, expected_amount: Optional[str], expected_sender: Optional[str]):
    """Structurally check a received BEEF envelope (no wallet access)."""
    def action():
        amount = None
        if expected_amount is not None:
            amount = _parse_positive_int(expected_amount, "expected-amount")
        return verify_payment(beef, expected_amount=amount, expected_sender=expected_sender).to_dict()
    _run(action)


@main.command()
@click.argument("beef")
@click.argument("derivation_prefix")
@click.argument("derivation_suffix")
@click.argument("sender_identity_key")
@click.argument("description", nargs=-1)
@click.option("--vout", default="0", help="Output index to claim (default: 0)")
@click.pass_context
def accept(
    ctx: click.Context,
    beef: str,
    derivation_prefix: str,
    derivation_suffix: str,
    sender_identity_key: str,
    description: tuple,
    vout: str,
):
    """Internalize a received payment into this wallet."""
    def action():
        index = _parse_index(vout, "vout")
        with AgentWallet.load(_config(ctx)) as wallet:
            return wallet.accept_payment(
                beef,
                derivation_prefix,
                derivation_suffix,
                sender_identity_key,
                output_index=index,
                description=_join(description),
            ).to_dict()
    _run(action)


@main.command("import")
@click.argument("txid")
@click.argument("vout", default="0")
@click.pass_context
def import_utxo(ctx: click.Context, txid: str, vout: str):
    """Import a confirmed external UTXO using its merkle proof."""
    def action():
        index = _parse_index(vout, "vout")
        with AgentWallet.load(_config(ctx)) as wallet:
            return wallet.import_utxo(txid, index).to_dict()
    _run(action)


if __name__ == "__main__":
    main()
