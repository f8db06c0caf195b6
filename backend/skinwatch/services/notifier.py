"""Outbound user notifications."""
from abc import ABC, abstractmethod

import httpx
import structlog

from skinwatch.core.config import settings

logger = structlog.get_logger(__name__)


class Notifier(ABC):
    @abstractmethod
    async def notify(self, external_user_id: str, text: str) -> bool: ...

    async def close(self) -> None:
        return None


class TelegramNotifier(Notifier):
    """
    Bot API `sendMessage`. Fire-and-forget: failures are logged and
    reported as False, never raised or retried.
    """

    def __init__(
        self,
        token: str | None = None,
        client: httpx.AsyncClient | None = None,
        api_url: str | None = None,
    ):
        self.token = token if token is not None else settings.TELEGRAM_BOT_TOKEN
        self.api_url = (api_url or settings.TELEGRAM_API_URL).rstrip("/")
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=10)

    async def notify(self, external_user_id: str, text: str) -> bool:
        if not self.token:
            logger.warning("notify.skipped", reason="TELEGRAM_BOT_TOKEN not set")
            return False

        url = f"{self.api_url}/bot{self.token}/sendMessage"
        payload = {
            "chat_id": external_user_id,
            "text": text,
            "disable_web_page_preview": True,
        }

        try:
            resp = await self._client.post(url, json=payload)
            resp.raise_for_status()
        except httpx.HTTPStatusError as e:
            logger.error(
                "notify.failed",
                chat_id=external_user_id,
                status=e.response.status_code,
                body=e.response.text[:200],
            )
            return False
        except httpx.HTTPError as e:
            logger.error("notify.failed", chat_id=external_user_id, error=str(e))
            return False

        logger.info("notify.sent", chat_id=external_user_id)
        return True

    async def close(self) -> None:
        if self._owns_client:
            await self._client.aclose()
