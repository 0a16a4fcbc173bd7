"""View state held by one bar surface."""

import time
from typing import List, Optional

from pydantic import BaseModel, Field

from ..models import (
    ErrorNotice,
    MediaTrackState,
    NetworkState,
    PowerState,
    WindowDescriptor,
    WorkspaceDescriptor,
)


class ErrorBanner(BaseModel):
    """Latest error-channel message; last write wins."""

    message: str
    shown_at: float
    expires_at: float

    @classmethod
    def from_notice(cls, notice: ErrorNotice, duration: float, now: Optional[float] = None) -> "ErrorBanner":
        now = time.monotonic() if now is None else now
        return cls(message=notice.message, shown_at=now, expires_at=now + duration)

    def is_visible(self, now: Optional[float] = None) -> bool:
        now = time.monotonic() if now is None else now
        return now < self.expires_at

    def remaining(self, now: Optional[float] = None) -> float:
        now = time.monotonic() if now is None else now
        return max(0.0, self.expires_at - now)


class BarViewState(BaseModel):
    """Everything a renderer needs to draw one bar.

    error holds the failure of the last workspace/window query and drives the
    retry control. banner holds error-channel notices with their expiry.
    """

    display: str
    loading: bool = True
    workspaces: List[WorkspaceDescriptor] = Field(default_factory=list)
    active_workspace: Optional[str] = None
    active_window: Optional[WindowDescriptor] = None
    media: Optional[MediaTrackState] = None
    power: Optional[PowerState] = None
    network: Optional[NetworkState] = None
    error: Optional[str] = None
    banner: Optional[ErrorBanner] = None

    def show_banner(self, notice: ErrorNotice, duration: float, now: Optional[float] = None) -> None:
        self.banner = ErrorBanner.from_notice(notice, duration, now)

    def dismiss_banner(self) -> None:
        self.banner = None

    def visible_banner(self, now: Optional[float] = None) -> Optional[ErrorBanner]:
        """Current banner, dropping it once expired."""
        if self.banner is not None and not self.banner.is_visible(now):
            self.banner = None
        return self.banner

    def is_active(self, workspace: WorkspaceDescriptor) -> bool:
        return workspace.id == self.active_workspace
