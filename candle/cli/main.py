"""
Candle CLI - Command line interface for the Candle Auction client.

Reads RPC_URL, PRIVATE_KEY and CONTRACT_ADDRESS from the environment
(or a .env file). Every action command exits 0 only once the
transaction is confirmed, and non-zero on any failure.
"""

import asyncio
import logging
import time
from datetime import datetime, timezone
from typing import Awaitable, Callable, Optional

import click

from candle import __version__
from candle.contract.base import AuctionContract
from candle.core.auction import (
    ActionResult,
    AuctionPhase,
    AuctionSession,
    AuctionSnapshot,
    phase_label,
)
from candle.core.config import ClientConfig, load_config
from candle.core.errors import ActionError, ConfigError, RemoteRejectedError
from candle.crypto import ZERO_ADDRESS
from candle.utils.logger import get_logger, setup_logging
from candle.utils.validation import format_ether, parse_ether

logger = get_logger("cli")


def build_contract(config: ClientConfig) -> AuctionContract:
    """Create the JSON-RPC contract adapter for a configuration."""
    from candle.contract.web3_contract import Web3AuctionContract

    return Web3AuctionContract.from_config(config)


def _load(ctx: click.Context, require_key: bool = True) -> ClientConfig:
    try:
        return load_config(env_file=ctx.obj.get("env_file"), require_key=require_key)
    except ConfigError as e:
        click.echo(f"✗ {e}", err=True)
        ctx.exit(1)


def _format_timestamp(ts: Optional[int]) -> str:
    if ts is None:
        return "pending"
    return datetime.fromtimestamp(ts, tz=timezone.utc).strftime("%Y-%m-%d %H:%M:%S UTC")


def _echo_snapshot(snapshot: AuctionSnapshot) -> None:
    click.echo(f"  Phase: {phase_label(snapshot.phase)}")
    if snapshot.random_end_requested:
        click.echo(f"  Random end: {_format_timestamp(snapshot.random_end_timestamp)}")
    else:
        click.echo("  Random end: not requested")
    
    if snapshot.bidders:
        click.echo("  Revealed bids:")
        for record in snapshot.bidders:
            click.echo(f"    {record.address}: {format_ether(record.revealed_bid_wei)} ETH")
    
    if snapshot.phase == AuctionPhase.ENDED:
        if snapshot.highest_bidder:
            click.echo(
                f"  Winner: {snapshot.highest_bidder} with "
                f"{format_ether(snapshot.highest_bid_wei or 0)} ETH"
            )
        else:
            click.echo("  Winner: none")


def _echo_result(result: ActionResult, success_message: str) -> bool:
    if result.ok:
        click.echo(f"Tx confirmed: {result.receipt.tx_hash}")
        click.echo(f"✓ {success_message}")
        return True
    
    error = result.error
    if isinstance(error, RemoteRejectedError) and error.reason:
        click.echo(f"✗ {result.action.value} rejected by contract: {error.reason}", err=True)
    else:
        click.echo(f"✗ {result.action.value} failed ({error.kind.value}): {error}", err=True)
    return False


def _run_action(
    ctx: click.Context,
    action: Callable[[AuctionSession], Awaitable[ActionResult]],
    success_message: str,
    config: Optional[ClientConfig] = None,
) -> None:
    """Open a session, run one action, exit non-zero unless confirmed."""
    config = config or _load(ctx)
    contract = build_contract(config)
    
    async def run() -> bool:
        session = await AuctionSession(contract, config=config).open()
        result = await action(session)
        return _echo_result(result, success_message)
    
    try:
        ok = asyncio.run(run())
    except ActionError as e:
        click.echo(f"✗ {e}", err=True)
        ok = False
    
    if not ok:
        ctx.exit(1)


def _parse_amount(ctx: click.Context, amount: str) -> int:
    try:
        return parse_ether(amount)
    except ValueError as e:
        click.echo(f"✗ {e}", err=True)
        ctx.exit(1)


@click.group()
@click.option("--debug", is_flag=True, help="Enable debug logging")
@click.option("--log-level", default="WARNING", envvar="CANDLE_LOG_LEVEL", show_default=True, help="Console log level")
@click.option("--env-file", default=None, type=click.Path(dir_okay=False), help="Path to .env file")
@click.option("--log-file", is_flag=True, help="Also write logs to ./logs/candle.log")
@click.version_option(version=__version__)
@click.pass_context
def cli(ctx, debug, log_level, env_file, log_file):
    """Candle Auction - commit-reveal sealed-bid auction client"""
    try:
        setup_logging(level=logging.DEBUG if debug else log_level, log_to_file=log_file)
    except ValueError as e:
        raise click.BadParameter(str(e), param_hint="--log-level")
    
    ctx.ensure_object(dict)
    ctx.obj["env_file"] = env_file


# =============================================================================
# Bidder Commands
# =============================================================================


@cli.command("commit")
@click.argument("amount")
@click.argument("secret")
@click.pass_context
def commit(ctx, amount, secret):
    """Commit a sealed bid of AMOUNT ETH bound to SECRET"""
    wei = _parse_amount(ctx, amount)
    click.echo(f"Committing {amount} ETH")
    _run_action(ctx, lambda s: s.sequencer.commit_bid(wei, secret), "Bid committed!")


@cli.command("reveal")
@click.argument("amount")
@click.argument("secret")
@click.pass_context
def reveal(ctx, amount, secret):
    """Reveal a bid; AMOUNT and SECRET must match the commit exactly"""
    wei = _parse_amount(ctx, amount)
    click.echo(f"Revealing {amount} ETH")
    _run_action(ctx, lambda s: s.sequencer.reveal_bid(wei, secret), "Bid revealed!")


@cli.command("withdraw")
@click.pass_context
def withdraw(ctx):
    """Withdraw the deposit after the auction ended (non-winners)"""
    _run_action(ctx, lambda s: s.sequencer.withdraw(), "Deposit withdrawn")


# =============================================================================
# Owner Commands
# =============================================================================


@cli.command("start")
@click.option("--commit-secs", type=int, default=None, help="Commit window length (seconds)")
@click.option("--reveal-secs", type=int, default=None, help="Reveal window length (seconds)")
@click.pass_context
def start(ctx, commit_secs, reveal_secs):
    """Start the auction (owner)"""
    config = _load(ctx)
    if commit_secs is None:
        commit_secs = config.commit_duration
    if reveal_secs is None:
        reveal_secs = config.reveal_duration
    _run_action(
        ctx,
        lambda s: s.sequencer.start_auction(commit_secs, reveal_secs),
        "Auction started",
        config=config,
    )


@cli.command("advance")
@click.pass_context
def advance(ctx):
    """Advance to the next phase (owner)"""
    _run_action(ctx, lambda s: s.sequencer.advance_phase(), "Phase advanced")


@cli.command("request-random")
@click.pass_context
def request_random(ctx):
    """Request the VRF-randomized reveal end (owner)"""
    _run_action(ctx, lambda s: s.sequencer.request_random_end(), "Random request submitted")


@cli.command("settle")
@click.pass_context
def settle(ctx):
    """Settle the ended auction (owner)"""
    _run_action(ctx, lambda s: s.sequencer.settle_auction(), "Auction settled")


# =============================================================================
# Read Commands
# =============================================================================


def _read_only_session(contract: AuctionContract, config: ClientConfig) -> AuctionSession:
    return AuctionSession(contract, account=contract.account or ZERO_ADDRESS, config=config)


@cli.command("status")
@click.pass_context
def status(ctx):
    """Show phase, VRF status, revealed bids and winner"""
    config = _load(ctx, require_key=False)
    contract = build_contract(config)
    
    async def run() -> AuctionSnapshot:
        session = await _read_only_session(contract, config).open()
        return await session.refresh()
    
    try:
        snapshot = asyncio.run(run())
    except ActionError as e:
        click.echo(f"✗ {e}", err=True)
        ctx.exit(1)
    
    click.echo(f"Auction {config.contract_address}")
    _echo_snapshot(snapshot)


@cli.command("watch")
@click.option("--seconds", type=float, default=0, help="Stop after N seconds (0 = until Ctrl+C)")
@click.pass_context
def watch(ctx, seconds):
    """Poll the auction and print phase changes, reveals and the winner"""
    config = _load(ctx, require_key=False)
    contract = build_contract(config)
    
    async def on_change(old, new):
        click.echo(f"[{datetime.now():%H:%M:%S}] Phase: {phase_label(old)} -> {new.label}")
    
    def on_snapshot(old: AuctionSnapshot, new: AuctionSnapshot) -> None:
        for record in new.bidders[len(old.bidders):]:
            click.echo(f"  Revealed: {record.address} {format_ether(record.revealed_bid_wei)} ETH")
        if new.highest_bidder and new.highest_bidder != old.highest_bidder:
            click.echo(f"  Winner: {new.highest_bidder} with {format_ether(new.highest_bid_wei or 0)} ETH")
        if new.random_end_timestamp and new.random_end_timestamp != old.random_end_timestamp:
            click.echo(f"  Random end: {_format_timestamp(new.random_end_timestamp)}")

    async def run():
        session = _read_only_session(contract, config)
        session.tracker.on_phase_change(on_change)
        async with session:
            _echo_snapshot(session.snapshot)
            session.store.subscribe(on_snapshot)
            deadline = time.monotonic() + seconds if seconds else None
            while deadline is None or time.monotonic() < deadline:
                await asyncio.sleep(0.5)
    
    try:
        asyncio.run(run())
    except KeyboardInterrupt:
        click.echo("\nStopped.")
    except ActionError as e:
        click.echo(f"✗ {e}", err=True)
        ctx.exit(1)


# =============================================================================
# Demo Command
# =============================================================================


@cli.command("demo")
def demo():
    """Run a full auction against the in-memory contract"""
    from candle.contract.simulated import SimulatedCandleAuction
    
    owner = "0x" + "0a" * 20
    alice = "0x" + "a1" * 20
    bob = "0x" + "b0" * 20
    
    async def run() -> bool:
        chain = SimulatedCandleAuction(owner=owner)
        sessions = {}
        for name, address in (("owner", owner), ("alice", alice), ("bob", bob)):
            sessions[name] = await AuctionSession(chain.connect(address)).open()
        
        steps = [
            ("Owner starts auction", lambda: sessions["owner"].sequencer.start_auction(120, 120)),
            ("Alice commits 1.5 ETH", lambda: sessions["alice"].sequencer.commit_bid(parse_ether("1.5"), "alice-secret")),
            ("Bob commits 2 ETH", lambda: sessions["bob"].sequencer.commit_bid(parse_ether("2"), "bob-secret")),
            ("Owner advances to Reveal", lambda: sessions["owner"].sequencer.advance_phase()),
            ("Alice reveals", lambda: sessions["alice"].sequencer.reveal_bid(parse_ether("1.5"), "alice-secret")),
            ("Bob reveals", lambda: sessions["bob"].sequencer.reveal_bid(parse_ether("2"), "bob-secret")),
            ("Owner requests random end", lambda: sessions["owner"].sequencer.request_random_end()),
        ]
        for label, step in steps:
            # Sessions hold cached phases; refresh before each step like the pollers would
            for session in sessions.values():
                await session.tracker.refresh_phase()
                await session.tracker.refresh_random_status()
            result = await step()
            click.echo(f"{'✓' if result.ok else '✗'} {label}")
            if not result.ok:
                click.echo(f"  {result.error}")
                return False
        
        chain.fulfill_random_end(int(time.time()))
        click.echo("✓ VRF resolved the reveal deadline")
        
        for session in sessions.values():
            await session.tracker.refresh_phase()
        
        settle_result = await sessions["owner"].sequencer.settle_auction()
        click.echo(f"{'✓' if settle_result.ok else '✗'} Owner settles")
        await sessions["alice"].reconciler.reconcile_winner()
        withdraw_result = await sessions["alice"].sequencer.withdraw()
        click.echo(f"{'✓' if withdraw_result.ok else '✗'} Alice withdraws deposit")
        
        click.echo()
        _echo_snapshot(await sessions["owner"].refresh())
        return settle_result.ok and withdraw_result.ok
    
    click.echo("=" * 60)
    click.echo("  CANDLE AUCTION - DEMO")
    click.echo("=" * 60)
    if not asyncio.run(run()):
        raise SystemExit(1)


if __name__ == "__main__":
    cli()
