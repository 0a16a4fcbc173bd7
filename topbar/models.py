"""Data models for topbar sources, signals and results.

Source values are pydantic models so that wire output from external tools is
validated on the way in. Signals and results are plain dataclasses.
"""

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, Generic, List, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from .constants import TOPIC_REFRESH
from .errors import AdapterError

T = TypeVar("T")


class WorkspaceDescriptor(BaseModel):
    """One virtual desktop as reported by `aerospace list-workspaces --json`."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str = Field(..., alias="workspace", min_length=1)

    @field_validator("id", mode="before")
    @classmethod
    def coerce_id(cls, v: Any) -> Any:
        if isinstance(v, int) and not isinstance(v, bool):
            return str(v)
        return v

    def to_payload(self) -> Dict[str, str]:
        return {"workspace": self.id}


class WindowDescriptor(BaseModel):
    """Focused window as reported by `aerospace list-windows --focused --json`.

    window_id is opaque; it is only handed back to a "switch to window" command.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    window_id: str = Field(..., alias="window-id")
    title: str = Field(default="", alias="window-title")
    app_name: str = Field(default="", alias="app-name")

    @field_validator("window_id", mode="before")
    @classmethod
    def coerce_window_id(cls, v: Any) -> Any:
        if isinstance(v, int) and not isinstance(v, bool):
            return str(v)
        return v

    @property
    def label(self) -> str:
        return f"{self.app_name} / {self.title}"

    def to_payload(self) -> Dict[str, str]:
        return self.model_dump(by_alias=True)


class MediaStatus(str, Enum):
    """Variant tag for MediaTrackState."""
    PLAYING = "playing"
    NOT_PLAYING = "not-playing"
    UNAVAILABLE = "unavailable"


class MediaTrackState(BaseModel):
    """Tagged media state: Playing{artist,title} | NotPlaying | Unavailable."""

    model_config = ConfigDict(frozen=True)

    status: MediaStatus
    artist: Optional[str] = None
    title: Optional[str] = None

    @model_validator(mode="after")
    def check_variant(self) -> "MediaTrackState":
        if self.status == MediaStatus.PLAYING:
            if self.artist is None or self.title is None:
                raise ValueError("Playing state requires artist and title")
        elif self.artist is not None or self.title is not None:
            raise ValueError(f"{self.status.value} state carries no track fields")
        return self

    @classmethod
    def playing(cls, artist: str, title: str) -> "MediaTrackState":
        return cls(status=MediaStatus.PLAYING, artist=artist, title=title)

    @classmethod
    def not_playing(cls) -> "MediaTrackState":
        return cls(status=MediaStatus.NOT_PLAYING)

    @classmethod
    def unavailable(cls) -> "MediaTrackState":
        return cls(status=MediaStatus.UNAVAILABLE)

    @property
    def is_playing(self) -> bool:
        return self.status == MediaStatus.PLAYING

    def to_payload(self) -> Dict[str, Any]:
        if self.is_playing:
            return {"artist": self.artist, "title": self.title, "isPlaying": True}
        return {"isPlaying": False}


class PowerState(BaseModel):
    """Battery level and (when the backend knows it) charging flag."""

    model_config = ConfigDict(frozen=True)

    level_percent: int = Field(..., ge=0, le=100)
    charging: Optional[bool] = None

    @field_validator("level_percent", mode="before")
    @classmethod
    def round_level(cls, v: Any) -> Any:
        if isinstance(v, float):
            return max(0, min(100, round(v)))
        return v

    def to_payload(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"level": self.level_percent}
        if self.charging is not None:
            payload["charging"] = self.charging
        return payload


class NetworkState(str, Enum):
    """Qualitative network classification."""
    DISCONNECTED = "disconnected"
    NO_INTERNET = "no-internet"
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"

    def to_payload(self) -> Dict[str, str]:
        return {"status": self.value}


@dataclass(frozen=True)
class RefreshSignal:
    """Zero-data refresh event.

    topic names the timer that produced it; surfaces re-pull the matching
    sources from the live OS state.
    """

    topic: str = TOPIC_REFRESH
    issued_at: float = field(default_factory=time.monotonic)


@dataclass(frozen=True)
class ErrorNotice:
    """Error message pushed to surfaces through the error channel."""

    message: str
    issued_at: float = field(default_factory=time.monotonic)


@dataclass(frozen=True)
class FetchResult(Generic[T]):
    """Either a typed value or an AdapterError, never both."""

    value: Optional[T] = None
    error: Optional[AdapterError] = None

    def __post_init__(self) -> None:
        if (self.value is None) == (self.error is None):
            raise ValueError("FetchResult needs exactly one of value or error")

    @classmethod
    def success(cls, value: T) -> "FetchResult[T]":
        return cls(value=value)

    @classmethod
    def failure(cls, error: AdapterError) -> "FetchResult[T]":
        return cls(error=error)

    @property
    def ok(self) -> bool:
        return self.error is None

    def unwrap(self) -> T:
        if self.error is not None:
            raise self.error
        return self.value  # type: ignore[return-value]

    def to_payload(self, serialize: Callable[[T], Any]) -> Any:
        if self.error is not None:
            return self.error.to_payload()
        return serialize(self.value)  # type: ignore[arg-type]


def workspaces_payload(workspaces: List[WorkspaceDescriptor]) -> List[Dict[str, str]]:
    return [ws.to_payload() for ws in workspaces]


def windows_payload(windows: List[WindowDescriptor]) -> List[Dict[str, str]]:
    return [win.to_payload() for win in windows]
