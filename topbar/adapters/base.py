"""Base class for external source adapters."""

import logging
from abc import ABC, abstractmethod
from typing import Generic, TypeVar

from ..errors import AdapterError
from ..models import FetchResult

logger = logging.getLogger(__name__)

T = TypeVar("T")


class SourceAdapter(ABC, Generic[T]):
    """One external data source producing a typed value.

    Subclasses implement _fetch() and may raise AdapterError from it; fetch()
    turns raised errors into failed results and never raises itself.
    """

    name = "source"

    async def fetch(self) -> FetchResult[T]:
        try:
            return FetchResult.success(await self._fetch())
        except AdapterError as e:
            logger.debug(f"{self.name} adapter failed: {e}")
            return FetchResult.failure(e)

    @abstractmethod
    async def _fetch(self) -> T:
        """Query the source."""


class BestEffortAdapter(SourceAdapter[T]):
    """Adapter for cosmetic indicators.

    Any AdapterError is logged and replaced by default(), so fetch() always
    succeeds.
    """

    async def fetch(self) -> FetchResult[T]:
        try:
            return FetchResult.success(await self._fetch())
        except AdapterError as e:
            fallback = self.default(e)
            logger.debug(f"{self.name} adapter fell back to {fallback!r}: {e}")
            return FetchResult.success(fallback)

    @abstractmethod
    def default(self, error: AdapterError) -> T:
        """Safe displayable value used when the source fails."""
