"""Display enumeration for one-surface-per-monitor creation."""

import logging
from typing import List

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from ..errors import AdapterError, ParseError
from .aerospace import AerospaceClient
from .base import BestEffortAdapter

logger = logging.getLogger(__name__)


class DisplayInfo(BaseModel):
    """One physical monitor as reported by `aerospace list-monitors --json`."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    monitor_id: int = Field(..., alias="monitor-id")
    name: str = Field(default="", alias="monitor-name")

    @property
    def slug(self) -> str:
        """Identifier safe for eww variable names."""
        return f"monitor{self.monitor_id}"

    def to_payload(self) -> dict:
        return self.model_dump(by_alias=True)


DEFAULT_DISPLAY = DisplayInfo(monitor_id=1, name="default")


class DisplayAdapter(BestEffortAdapter[List[DisplayInfo]]):
    """Connected monitors; a single default display when they cannot be listed."""

    name = "displays"

    def __init__(self, client: AerospaceClient) -> None:
        self.client = client

    async def _fetch(self) -> List[DisplayInfo]:
        items = await self.client.list_monitors()
        try:
            displays = [DisplayInfo.model_validate(item) for item in items]
        except ValidationError as e:
            raise ParseError(str(items), f"invalid monitor entry: {e.errors()[0]['msg']}")
        if not displays:
            raise ParseError("[]", "no monitors reported")
        return displays

    def default(self, error: AdapterError) -> List[DisplayInfo]:
        logger.warning(f"Could not list monitors, assuming one display: {error.message}")
        return [DEFAULT_DISPLAY]
