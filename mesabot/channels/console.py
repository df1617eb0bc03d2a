"""Console channel — prints bot replies to the terminal (used by `mesabot simulate`)."""

from __future__ import annotations

import click

from mesabot.channels.base import ChannelAdapter, register_channel


@register_channel("console")
class ConsoleAdapter(ChannelAdapter):
    async def send(self, address: str, text: str) -> bool:
        prefix = self.config.get("prefix", "bot")
        click.secho(f"{prefix}> {text}", fg="green")
        return True
