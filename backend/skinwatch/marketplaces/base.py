from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass
class Quote:
    success: bool
    currency: str
    lowest_price: float | None = None
    volume: int | None = None
    median_price: float | None = None


class QuoteSource(ABC):
    @abstractmethod
    async def quote(self, item_name: str, currency: str, app_id: int) -> Quote: ...

    async def close(self) -> None:
        return None
