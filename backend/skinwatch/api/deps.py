"""
Process-wide collaborators for the HTTP layer.

Built lazily on first use so importing the app never opens a client;
tests swap them through `app.dependency_overrides`.
"""
from skinwatch.marketplaces.base import QuoteSource
from skinwatch.marketplaces.steam import SteamMarketClient
from skinwatch.services.alerts import AlertEngine
from skinwatch.services.conversation import Conversation
from skinwatch.services.monitor import Sweeper
from skinwatch.services.notifier import Notifier, TelegramNotifier
from skinwatch.services.pricing import PriceService

_quotes: QuoteSource | None = None
_notifier: Notifier | None = None
_sweeper: Sweeper | None = None
_conversation: Conversation | None = None


def get_quotes() -> QuoteSource:
    global _quotes
    if _quotes is None:
        _quotes = SteamMarketClient()
    return _quotes


def get_notifier() -> Notifier:
    global _notifier
    if _notifier is None:
        _notifier = TelegramNotifier()
    return _notifier


def get_sweeper() -> Sweeper:
    global _sweeper
    if _sweeper is None:
        _sweeper = Sweeper(PriceService(get_quotes()), AlertEngine(get_notifier()))
    return _sweeper


def get_conversation() -> Conversation:
    global _conversation
    if _conversation is None:
        _conversation = Conversation(
            PriceService(get_quotes()), AlertEngine(get_notifier())
        )
    return _conversation


async def close_clients() -> None:
    global _quotes, _notifier, _sweeper, _conversation
    if _quotes is not None:
        await _quotes.close()
    if _notifier is not None:
        await _notifier.close()
    _quotes = _notifier = _sweeper = _conversation = None
