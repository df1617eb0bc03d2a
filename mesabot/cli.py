"""
MesaBot CLI — command-line interface for operating the reservation bot.

Usage:
    mesabot serve                                  — run the HTTP app (webhooks)
    mesabot availability show <venue-id>           — print the cached zones/tables snapshot
    mesabot availability refresh <venue-id>        — rebuild the snapshot from the database
    mesabot simulate <venue-id> --phone <number>   — talk to the bot from the terminal
    mesabot secrets set <venue> <name> <value>     — save a secret
    mesabot secrets list <venue>                   — list secrets for a venue
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path

import click

logger = logging.getLogger(__name__)

EXIT_WORDS = {"/quit", "/exit"}


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output")
def cli(verbose: bool):
    """MesaBot — messaging reservation assistant CLI."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(level=level, format="%(levelname)s: %(message)s")


@cli.command()
@click.option("--host", default="0.0.0.0", show_default=True)
@click.option("--port", default=8000, show_default=True, type=int)
def serve(host: str, port: int):
    """Run the HTTP app (Telegram webhooks, health)."""
    import uvicorn

    uvicorn.run("mesabot.main:app", host=host, port=port)


@cli.group()
def availability():
    """Inspect and rebuild venue availability snapshots."""


@availability.command("show")
@click.argument("venue_id")
@click.option("--party-size", "-p", type=int, default=None, help="Only list zones that seat this many people")
def availability_show(venue_id: str, party_size: int | None):
    """Print the availability snapshot of a venue (loads it on a cache miss)."""
    asyncio.run(_availability(venue_id, party_size=party_size, refresh=False))


@availability.command("refresh")
@click.argument("venue_id")
def availability_refresh(venue_id: str):
    """Discard the cached snapshot and rebuild it from the database."""
    asyncio.run(_availability(venue_id, party_size=None, refresh=True))


async def _availability(venue_id: str, party_size: int | None, refresh: bool):
    from mesabot.config import get_settings
    from mesabot.core.availability import AvailabilityCache
    from mesabot.core.keystore import RedisKeyValueStore
    from mesabot.core.store import SqlReservationStore
    from mesabot.db import async_session

    settings = get_settings()
    kv = RedisKeyValueStore(settings.redis_url)
    cache = AvailabilityCache(kv, SqlReservationStore(async_session), ttl_seconds=settings.availability_ttl_seconds)
    try:
        snapshot = await (cache.refresh(venue_id) if refresh else cache.get(venue_id))
    finally:
        await kv.close()

    if snapshot is None:
        click.echo(f"Error: could not load availability for {venue_id}", err=True)
        raise SystemExit(1)

    if refresh:
        click.echo(f"✓ Refreshed availability for {venue_id}")

    if party_size is not None:
        zones = AvailabilityCache.filter_by_party_size(snapshot, party_size)
        if not zones:
            click.echo(f"No zones available for {party_size} people.")
            return
        click.echo(f"Zones for {party_size} people:")
        for idx, name in enumerate(zones, 1):
            click.echo(f"  {idx}. {name}")
        return

    if not snapshot.zones:
        click.echo("No zones configured.")
        return

    click.echo(f"{'Zone':<25} {'Priority':<10} {'Tables':<10} {'Max seats':<10}")
    click.echo("-" * 55)
    for zone in snapshot.zones:
        free = [t for t in snapshot.tables if t.zone_id == zone.id and t.active and not t.occupied]
        max_seats = max((t.capacity for t in free), default=0)
        click.echo(f"{zone.name:<25} {zone.priority:<10} {len(free):<10} {max_seats:<10}")


@cli.command()
@click.argument("venue_id")
@click.option("--phone", default="+5491100000000", show_default=True, help="Customer phone to simulate")
def simulate(venue_id: str, phone: str):
    """Chat with the bot of a venue from the terminal (type /quit to leave)."""
    asyncio.run(_simulate(venue_id, phone))


async def _simulate(venue_id: str, phone: str):
    from mesabot.channels.base import ChannelTransport
    from mesabot.config import get_settings
    from mesabot.core.engine import IncomingMessage
    from mesabot.runtime import BotRuntime

    transport = ChannelTransport("console", {"token": ""})
    runtime = BotRuntime.from_settings(get_settings(), transport=transport, with_change_feed=False)
    click.echo(f"Simulating customer {phone} on venue {venue_id}. Type /quit to leave.")

    try:
        while True:
            text = await asyncio.to_thread(click.prompt, "you", prompt_suffix="> ", default="", show_default=False)
            if text.strip() in EXIT_WORDS:
                break
            if not text.strip():
                continue
            message = IncomingMessage(venue_id=venue_id, address=phone, text=text, channel_type="console")
            await runtime.engine.handle_turn(message)
    except (click.Abort, EOFError):
        click.echo()
    finally:
        await runtime.shutdown()


@cli.group()
def secrets():
    """Manage secrets."""


@secrets.command("set")
@click.argument("venue")
@click.argument("secret_name")
@click.argument("secret_value")
def secrets_set(venue: str, secret_name: str, secret_value: str):
    """Save a secret for a venue (e.g. telegram_bot_token)."""
    secrets_dir = Path(f"secrets/{venue}")
    secrets_dir.mkdir(parents=True, exist_ok=True)

    gitignore = secrets_dir / ".gitignore"
    if not gitignore.exists():
        gitignore.write_text("*\n!.gitignore\n", encoding="utf-8")

    secret_file = secrets_dir / secret_name
    secret_file.write_text(secret_value, encoding="utf-8")

    click.echo(f"✓ Saved secret: secrets/{venue}/{secret_name}")


@secrets.command("list")
@click.argument("venue")
def secrets_list(venue: str):
    """List secrets for a venue."""
    secrets_dir = Path(f"secrets/{venue}")
    if not secrets_dir.exists():
        click.echo(f"No secrets directory for {venue}")
        return

    files = [f.name for f in secrets_dir.iterdir() if f.is_file() and f.name != ".gitignore"]
    if not files:
        click.echo(f"No secrets for {venue}")
        return

    click.echo(f"Secrets for {venue}:")
    for name in sorted(files):
        click.echo(f"  • {name}")


if __name__ == "__main__":
    cli()
