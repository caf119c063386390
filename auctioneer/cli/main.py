"""
Auctioneer CLI - Command Line Interface for the auction engine

Main entry point for all CLI commands.
"""

import sys
from datetime import datetime, timedelta, timezone

import click

from auctioneer.utils.logger import parse_levels, setup_logging


@click.group()
@click.option("--debug", is_flag=True, help="Enable debug logging")
@click.option("--log", "log_levels", multiple=True, metavar="SUBSYSTEM=LEVEL",
              help="Per-subsystem log level, e.g. --log bank=DEBUG")
@click.version_option(version="0.1.0")
@click.pass_context
def cli(ctx, debug, log_levels):
    """Auctioneer - deterministic on-ledger auctions"""
    import logging

    try:
        levels = parse_levels(",".join(log_levels))
    except ValueError as e:
        raise click.BadParameter(str(e), param_hint="--log")

    level = logging.DEBUG if debug else logging.WARNING
    setup_logging(level=level, levels=levels)

    ctx.ensure_object(dict)
    ctx.obj["debug"] = debug


# =============================================================================
# Genesis Commands
# =============================================================================

@cli.group()
def genesis():
    """Genesis snapshot commands"""
    pass


@genesis.command("default")
@click.option("--output", "-o", default=None, type=click.Path(dir_okay=False), help="Write to file instead of stdout")
def genesis_default(output):
    """Print the default genesis state"""
    from auctioneer.core.genesis import default_genesis, write_genesis

    state = default_genesis()
    if output:
        path = write_genesis(state, output)
        click.echo(f"✓ Default genesis written to {path}")
        return
    click.echo(state.to_json())


@genesis.command("validate")
@click.argument("file", type=click.Path(dir_okay=False))
def genesis_validate(file):
    """Validate a genesis file"""
    from auctioneer.core.auction.errors import GenesisError
    from auctioneer.core.genesis import read_genesis

    try:
        state = read_genesis(file)
    except GenesisError as exc:
        click.echo(f"❌ Invalid genesis: {exc}", err=True)
        sys.exit(1)

    click.echo(f"✓ Genesis valid: {len(state.auctions)} auctions, next auction id {state.next_auction_id}")


# =============================================================================
# Params Commands
# =============================================================================

@cli.group()
def params():
    """Auction parameter commands"""
    pass


@params.command("show")
@click.option("--env-file", default=None, type=click.Path(dir_okay=False), help="dotenv file with AUCTION_* settings")
def params_show(env_file):
    """Show the parameters in effect"""
    from auctioneer.core.config import InvalidParams, load_params

    try:
        current = load_params(env_file)
    except InvalidParams as exc:
        click.echo(f"❌ Invalid params: {exc}", err=True)
        sys.exit(1)

    click.echo("Auction Parameters")
    click.echo("-" * 40)
    click.echo(f"  max_auction_duration: {int(current.max_auction_duration.total_seconds())}s")
    click.echo(f"  bid_duration:         {int(current.bid_duration.total_seconds())}s")
    click.echo(f"  increment_surplus:    {current.increment_surplus}")
    click.echo(f"  increment_debt:       {current.increment_debt}")
    click.echo(f"  increment_collateral: {current.increment_collateral}")


# =============================================================================
# Demo Command
# =============================================================================


def _demo_address(name: str) -> bytes:
    from auctioneer.crypto import sha256

    return sha256(name.encode())[-20:]


def _demo_surplus(start: datetime):
    from auctioneer.core.auction.errors import BidTooSmall
    from auctioneer.core.engine import AuctionEngine
    from auctioneer.core.registry import AuctionRegistry
    from auctioneer.core.state import new_bank
    from auctioneer.core.types import Amount
    from auctioneer.crypto import module_address

    alice, bob = _demo_address("alice"), _demo_address("bob")
    bank = new_bank([
        (module_address("liquidator"), Amount.of("usdx", 100)),
        (alice, Amount.of("token", 100)),
        (bob, Amount.of("token", 100)),
    ])
    engine = AuctionEngine(AuctionRegistry(), bank)

    click.echo("💰 Surplus auction: selling 100usdx for token")
    auction_id = engine.start_surplus_auction("liquidator", Amount.of("usdx", 100), "token", start)

    engine.place_bid(auction_id, alice, Amount.of("token", 10), Amount.of("usdx", 100), start)
    click.echo("  ✓ Alice bids 10token")
    try:
        engine.place_bid(auction_id, bob, Amount.of("token", "10.4"), Amount.of("usdx", 100), start)
    except BidTooSmall as exc:
        click.echo(f"  ✗ Bob bids 10.4token: {exc}")
    engine.place_bid(auction_id, bob, Amount.of("token", "10.5"), Amount.of("usdx", 100), start)
    click.echo("  ✓ Bob bids 10.5token")

    end = engine.get_auction(auction_id).end_time
    result = engine.close_auction(auction_id, end)
    click.echo(f"  ✓ Closed: Bob receives {result.lot_paid}, {result.bid_burned} burned")
    click.echo(f"  ✓ token supply now {bank.total_supply('token')}")


def _demo_debt(start: datetime):
    from auctioneer.core.auction.errors import BidTooSmall
    from auctioneer.core.engine import AuctionEngine
    from auctioneer.core.registry import AuctionRegistry
    from auctioneer.core.state import new_bank
    from auctioneer.core.types import Amount
    from auctioneer.crypto import module_address

    alice, bob = _demo_address("alice"), _demo_address("bob")
    bank = new_bank([
        (module_address("cdp"), Amount.of("debt-token", 50)),
        (alice, Amount.of("debt-token", 100)),
        (bob, Amount.of("debt-token", 100)),
    ])
    engine = AuctionEngine(AuctionRegistry(), bank)

    click.echo("🏦 Debt auction: raising 50debt-token for at most 1000mint-token")
    auction_id = engine.start_debt_auction(
        "cdp", Amount.of("debt-token", 50), Amount.of("mint-token", 1000), Amount.of("debt-token", 50), start,
    )

    engine.submit_bid(auction_id, alice, Amount.of("mint-token", 960), start)
    click.echo("  ✓ Alice accepts 960mint-token")
    try:
        engine.submit_bid(auction_id, bob, Amount.of("mint-token", 950), start)
    except BidTooSmall as exc:
        click.echo(f"  ✗ Bob offers 950mint-token: {exc}")

    end = engine.get_auction(auction_id).end_time
    result = engine.close_auction(auction_id, end)
    click.echo(f"  ✓ Closed: Alice is minted {result.lot_paid}, debt settled {result.settled_debt}")


def _demo_collateral(start: datetime):
    from auctioneer.core.engine import AuctionEngine
    from auctioneer.core.registry import AuctionRegistry
    from auctioneer.core.state import new_bank
    from auctioneer.core.types import Amount, new_weighted_addresses
    from auctioneer.crypto import module_address

    alice, bob = _demo_address("alice"), _demo_address("bob")
    owner_a, owner_b = _demo_address("owner-a"), _demo_address("owner-b")
    bank = new_bank([
        (module_address("liquidator"), Amount.of("coll", 100)),
        (module_address("liquidator"), Amount.of("debt", 40)),
        (alice, Amount.of("pay", 100)),
        (bob, Amount.of("pay", 100)),
    ])
    engine = AuctionEngine(AuctionRegistry(), bank)

    click.echo("🧾 Collateral auction: 100coll, max bid 50pay, unsold lot to two owners")
    auction_id = engine.start_collateral_auction(
        "liquidator",
        Amount.of("coll", 100),
        Amount.of("pay", 50),
        new_weighted_addresses([owner_a, owner_b], [1, 1]),
        Amount.of("debt", 40),
        start,
    )

    engine.submit_bid(auction_id, alice, Amount.of("pay", 40), start)
    click.echo("  ✓ Alice bids 40pay")
    auction = engine.submit_bid(auction_id, bob, Amount.of("pay", 50), start)
    click.echo(f"  ✓ Bob bids 50pay, auction now in {auction.phase.value} phase")
    engine.submit_bid(auction_id, alice, Amount.of("coll", 80), start)
    click.echo("  ✓ Alice accepts 80coll for 50pay")

    end = engine.get_auction(auction_id).end_time
    result = engine.close_auction(auction_id, end)
    click.echo(f"  ✓ Closed: Alice receives {result.lot_paid}, liquidator receives {result.bid_paid}")
    for address, share in result.lot_returns:
        click.echo(f"  ✓ Returned {share} to {address.hex()[:8]}")


@cli.command("demo")
@click.option(
    "--scenario",
    default="all",
    type=click.Choice(["all", "surplus", "debt", "collateral"]),
    help="Demo scenario to run",
)
def demo(scenario):
    """Run the surplus, debt and collateral auction walkthroughs"""
    click.echo("=" * 60)
    click.echo("  AUCTIONEER - DEMO")
    click.echo("=" * 60)
    click.echo()

    start = datetime(2026, 1, 1, tzinfo=timezone.utc)
    scenarios = {
        "surplus": _demo_surplus,
        "debt": _demo_debt,
        "collateral": _demo_collateral,
    }
    for name, run in scenarios.items():
        if scenario in ("all", name):
            run(start)
            click.echo()
            start += timedelta(days=3)

    click.echo("✅ Demo complete!")


def main():
    cli(obj={})


if __name__ == "__main__":
    main()
