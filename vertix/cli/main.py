"""
Vertix CLI - Command Line Interface for the Vertix Auction Engine

Main entry point for all CLI commands.
"""

import json
import logging
import click
from pathlib import Path

from vertix.utils.logger import setup_logging

# Smallest currency unit per whole coin
UNIT = 10**18


def format_amount(amount: int) -> str:
    return f"{amount / UNIT:.4f}"


@click.group()
@click.option("--debug", is_flag=True, help="Enable debug logging")
@click.option("--config", "config_path", default=None, help="Path to a .env-style config file")
@click.version_option(version="0.1.0")
@click.pass_context
def cli(ctx, debug, config_path):
    """Vertix - English auctions for tokenized and off-chain assets"""
    from vertix.core.config import load_config

    config = load_config(config_path)
    level = logging.DEBUG if debug else logging.INFO
    setup_logging(level=level, log_dir=config.log_dir, log_to_file=config.log_to_file)

    ctx.ensure_object(dict)
    ctx.obj["config"] = config


# =============================================================================
# Configuration
# =============================================================================

@cli.command("config")
@click.pass_context
def show_config(ctx):
    """Print the effective engine configuration"""
    config = ctx.obj["config"]
    click.echo(json.dumps(config.model_dump(mode="json"), indent=2))


# =============================================================================
# Demo
# =============================================================================

@cli.command("demo")
@click.option("--scenario", type=click.Choice(["sale", "reserve", "snipe", "offchain"]),
              default="sale", help="Demo scenario to run")
@click.option("--persist", is_flag=True, help="Persist engine state under the configured data dir")
@click.pass_context
def demo(ctx, scenario, persist):
    """Run an auction end to end against in-memory adapters"""
    from vertix.core.assets import AssetCategory, TokenStandard, offchain_asset, token_asset
    from vertix.core.auction import ENGINE_ADDRESS
    from vertix.core.marketplace import build_marketplace
    from vertix.core.errors import VertixError
    from vertix.crypto import address_from_label, content_hash, generate_keypair, short_hex

    config = ctx.obj["config"]
    data_dir = Path(config.data_dir) if persist else None
    market = build_marketplace(config=config, data_dir=data_dir)
    engine = market.engine

    click.echo("=" * 60)
    click.echo(f"  VERTIX AUCTION ENGINE - {scenario.upper()} DEMO")
    click.echo("=" * 60)
    click.echo()

    seller = generate_keypair().address
    alice = generate_keypair().address
    bob = generate_keypair().address
    for account in (alice, bob):
        market.fund(account, 10 * UNIT)

    click.echo(f"  Seller: {short_hex(seller)}")
    click.echo(f"  Alice:  {short_hex(alice)}  ({format_amount(market.bank.balance_of(alice))})")
    click.echo(f"  Bob:    {short_hex(bob)}  ({format_amount(market.bank.balance_of(bob))})")
    click.echo()

    if scenario == "offchain":
        asset = offchain_asset(
            AssetCategory.DOMAIN,
            content_hash(b"vertix.demo ownership proof"),
            "ipfs://vertix-demo-domain",
        )
    else:
        collection = address_from_label("vertix.demo-collection")
        creator = address_from_label("vertix.demo-creator")
        market.custody.register_collection(collection, TokenStandard.SINGLE, creator, royalty_bps=500)
        market.custody.mint(collection, seller, token_id=1)
        market.custody.set_approval_for_all(collection, seller, ENGINE_ADDRESS)
        asset = token_asset(collection, 1)

    reserve = 5 * UNIT if scenario == "reserve" else UNIT
    auction_id = engine.create_auction(
        seller, asset, reserve, duration=7 * 24 * 3600,
        hidden_reserve=(scenario == "reserve"),
    )
    click.echo(f"Created auction {auction_id}: {asset.describe()}, reserve {format_amount(reserve)}")

    def bid(bidder, name, amount):
        try:
            engine.place_bid(bidder, auction_id, amount)
            click.echo(f"  ✓ {name} bids {format_amount(amount)}")
        except VertixError as e:
            click.echo(f"  ✗ {name} bid {format_amount(amount)} rejected: {e}")

    if scenario == "reserve":
        bid(alice, "Alice", 3 * UNIT)
    else:
        bid(alice, "Alice", UNIT)
        bid(bob, "Bob", 102 * UNIT // 100)
        if scenario == "snipe":
            market.clock.advance(engine.time_remaining(auction_id) - 60)
        bid(bob, "Bob", 110 * UNIT // 100)

    auction = engine.get_auction(auction_id)
    click.echo(f"  Ends at {auction.end_time} (extensions: {auction.extensions})")
    click.echo()

    market.clock.advance(engine.time_remaining(auction_id))
    outcome = engine.end_auction(seller, auction_id)
    click.echo(f"Settled: {outcome.name}")

    if outcome.name == "SOLD":
        d = engine.calculate_payment_distribution(auction_id)
        click.echo(f"  Gross:        {format_amount(d.gross)}")
        click.echo(f"  Platform fee: {format_amount(d.platform_fee)}")
        click.echo(f"  Royalty:      {format_amount(d.royalty_fee)}")
        click.echo(f"  Seller net:   {format_amount(d.seller_net)}")
    click.echo()

    for name, account in (("Seller", seller), ("Alice", alice), ("Bob", bob)):
        click.echo(f"  {name}: {format_amount(market.bank.balance_of(account))} "
                   f"(owed {format_amount(engine.pending_refund(account))})")

    click.echo()
    click.echo(json.dumps(engine.stats(), indent=2))
    market.close()


# =============================================================================
# Status
# =============================================================================

@cli.command("status")
@click.pass_context
def status(ctx):
    """Show auctions persisted in the data directory"""
    from vertix.core.storage import StorageManager
    from vertix.core.auction import AuctionStore
    from vertix.core.funds import RefundLedger

    config = ctx.obj["config"]
    if not (Path(config.data_dir) / "vertix.db").exists():
        click.echo(f"No engine state under {config.data_dir}")
        return

    storage = StorageManager(config.data_dir)
    store = AuctionStore(storage)
    ledger = RefundLedger(storage)

    for auction in store:
        click.echo(f"  #{auction.auction_id} {auction.outcome.name:<26} "
                   f"{auction.asset.describe():<32} highest={format_amount(auction.highest_bid)}")
    click.echo(json.dumps({"auctions": store.stats(), "refunds": ledger.stats()}, indent=2))
    storage.close()


def main():
    cli(obj={})


if __name__ == "__main__":
    main()
