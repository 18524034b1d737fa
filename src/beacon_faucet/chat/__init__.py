"""Chat platform adapter: REST client, interactions endpoint, commands, alerts."""

from beacon_faucet.chat.alerts import ChannelAlertSink
from beacon_faucet.chat.commands import CommandRouter
from beacon_faucet.chat.interactions import InteractionServer, SignatureVerifier
from beacon_faucet.chat.rest import DiscordRest

__all__ = [
    "ChannelAlertSink",
    "CommandRouter",
    "DiscordRest",
    "InteractionServer",
    "SignatureVerifier",
]
