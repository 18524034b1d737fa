"""CLI entry point for the beacon_faucet daemon."""

from __future__ import annotations

import asyncio
import logging
import sys

import click
from eth_account import Account

from beacon_faucet.beacon.client import BeaconClient
from beacon_faucet.beacon.queue import render_queue_message
from beacon_faucet.chain.web3_client import Web3ChainClient
from beacon_faucet.config import load_config
from beacon_faucet.daemon import FaucetDaemon, run_daemon
from beacon_faucet.storage.sqlite import SQLiteRequestStore
from beacon_faucet.timefmt import format_ether


def _require_secret(cfg):
    """Exit with error if no faucet private key is configured."""
    if not cfg.faucet_secret:
        click.echo("Error: No faucet private key configured.", err=True)
        click.echo("Set BEACON_FAUCET_SECRET env var or [wallet] secret in config.", err=True)
        sys.exit(1)


def _require_discord(cfg):
    """Exit with error if the chat platform identity is incomplete."""
    d = cfg.discord
    missing = [
        name for name, value in (
            ("token", d.token),
            ("application_id", d.application_id),
            ("public_key", d.public_key),
            ("guild_id", d.guild_id),
        ) if not value
    ]
    if missing:
        click.echo(f"Error: Missing Discord settings: {', '.join(missing)}", err=True)
        click.echo("Set them in the [discord] config section or BEACON_FAUCET_* env vars.", err=True)
        sys.exit(1)


@click.group()
@click.option("-c", "--config", "config_path", default=None, help="Path to config TOML file")
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging")
@click.pass_context
def cli(ctx: click.Context, config_path: str | None, verbose: bool) -> None:
    """beacon_faucet - Testnet faucet bot and beacon chain health monitor."""
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path
    ctx.obj["verbose"] = verbose

    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.DEBUG if verbose else logging.WARNING)


# ── Daemon ─────────────────────────────────────────────


@cli.command()
@click.pass_context
def run(ctx: click.Context) -> None:
    """Start the faucet bot and chain health monitor."""
    cfg = load_config(ctx.obj["config_path"])
    _require_secret(cfg)
    _require_discord(cfg)

    click.echo(f"Starting beacon_faucet daemon ({len(cfg.networks)} networks configured)")
    asyncio.run(run_daemon(cfg))


# ── Info ───────────────────────────────────────────────


@cli.command()
@click.pass_context
def status(ctx: click.Context) -> None:
    """Show daemon configuration."""
    cfg = load_config(ctx.obj["config_path"])
    d = cfg.discord
    click.echo(f"DB path:     {cfg.db_path}")
    click.echo(f"Secret:      {'***configured***' if cfg.faucet_secret else '(not set)'}")
    if cfg.faucet_secret:
        click.echo(f"Address:     {Account.from_key(cfg.faucet_secret).address}")
    click.echo(f"ENS RPC:     {cfg.ens_rpc_url or '(not set)'}")
    click.echo(f"Beacon API:  {cfg.beacon.api_url} ({'enabled' if cfg.beacon.enabled else 'disabled'})")
    click.echo(f"Guild:       {d.guild_id or '(not set)'}")
    click.echo(f"Alerts:      {d.alert_channel_id or '(not set)'}")
    click.echo(f"Endpoint:    {d.listen_host}:{d.listen_port}")
    click.echo(f"Token:       {'***configured***' if d.token else '(not set)'}")
    click.echo("")
    click.echo("Networks")
    for net in cfg.networks.values():
        click.echo(
            f"  {net.command:22s} {net.name:10s} amount={format_ether(net.request_amount)} "
            f"window={net.rate_limit_days:g}d table={net.table_name} "
            f"rpc={'set' if net.rpc_url else 'NOT SET'}"
            + (f" channel=#{net.channel}" if net.channel else "")
        )
    click.echo("")
    click.echo("Queues")
    for queue in cfg.queues.values():
        click.echo(f"  queue-{queue.key:16s} {queue.api_queue_url}")


@cli.command()
@click.pass_context
def balances(ctx: click.Context) -> None:
    """Show each faucet wallet balance and remaining request capacity."""
    cfg = load_config(ctx.obj["config_path"])
    _require_secret(cfg)

    async def _balances():
        for net in cfg.networks.values():
            if not net.rpc_url:
                click.echo(f"{net.name}: no RPC URL configured")
                continue
            chain = Web3ChainClient(
                net.rpc_url, cfg.faucet_secret, net.name, cfg.upstream_timeout,
            )
            try:
                balance = await chain.get_balance(chain.faucet_address)
            except Exception as exc:
                click.echo(f"{net.name}: balance query failed: {exc}", err=True)
                continue
            finally:
                await chain.close()
            click.echo(f"{net.name}")
            click.echo(f"  Address:   {chain.faucet_address}")
            click.echo(f"  Balance:   {format_ether(balance)} {net.currency}")
            if balance < net.min_reserve:
                click.echo("  Status:    BELOW RESERVE")
            else:
                click.echo(f"  Remaining: {balance // net.request_amount} requests")

    asyncio.run(_balances())


@cli.command()
@click.argument("network")
@click.pass_context
def queue(ctx: click.Context, network: str) -> None:
    """Show activation and exit queue estimates for NETWORK."""
    cfg = load_config(ctx.obj["config_path"])
    target = cfg.queues.get(network)
    if target is None:
        click.echo(f"Unknown queue network: {network}", err=True)
        click.echo(f"Known: {', '.join(cfg.queues) or '(none)'}", err=True)
        sys.exit(1)

    async def _queue():
        client = BeaconClient(cfg.beacon.api_url, cfg.upstream_timeout)
        try:
            stats = await client.get_queue_stats(target.api_queue_url)
        except Exception as exc:
            click.echo(f"Queue query failed: {exc}", err=True)
            sys.exit(1)
        click.echo(render_queue_message(target.name, stats))

    asyncio.run(_queue())


# ── Setup ──────────────────────────────────────────────


@cli.command("register-commands")
@click.option("--dry-run", is_flag=True, help="Print the catalog without registering it")
@click.pass_context
def register_commands(ctx: click.Context, dry_run: bool) -> None:
    """Replace the guild's slash command catalog with this bot's commands."""
    cfg = load_config(ctx.obj["config_path"])
    _require_secret(cfg)
    _require_discord(cfg)

    async def _register():
        daemon = FaucetDaemon(cfg)
        catalog = daemon.router.catalog()
        try:
            if dry_run:
                for command in catalog:
                    click.echo(f"  /{command['name']:32s} {command['description']}")
                return
            registered = await daemon.rest.put_guild_commands(
                cfg.discord.application_id, cfg.discord.guild_id, catalog,
            )
            click.echo(f"Registered {len(registered)} commands in guild {cfg.discord.guild_id}")
            for command in registered:
                click.echo(f"  /{command.get('name')}")
        except Exception as exc:
            click.echo(f"Registration failed: {exc}", err=True)
            sys.exit(1)
        finally:
            await daemon.close_clients()

    asyncio.run(_register())


@cli.command("init-db")
@click.pass_context
def init_db(ctx: click.Context) -> None:
    """Create (or migrate) the rate-limit tables."""
    cfg = load_config(ctx.obj["config_path"])

    async def _init():
        store = SQLiteRequestStore(cfg.db_path)
        tables = [net.table_name for net in cfg.networks.values()]
        await store.initialize(tables)
        try:
            for table in tables:
                click.echo(f"  {table}: {await store.count(table)} records")
        finally:
            await store.close()
        click.echo(f"Database ready at {cfg.db_path}")

    asyncio.run(_init())


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
