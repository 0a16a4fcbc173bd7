"""Unit tests for topbar data models."""

import pytest
from pydantic import ValidationError

from topbar.errors import ParseError, ProcessError
from topbar.models import (
    FetchResult,
    MediaStatus,
    MediaTrackState,
    NetworkState,
    PowerState,
    WindowDescriptor,
    WorkspaceDescriptor,
    windows_payload,
    workspaces_payload,
)


class TestWorkspaceDescriptor:
    """Tests for WorkspaceDescriptor."""

    def test_reads_wire_alias(self):
        ws = WorkspaceDescriptor.model_validate({"workspace": "web"})
        assert ws.id == "web"

    def test_numeric_id_is_coerced_to_string(self):
        ws = WorkspaceDescriptor.model_validate({"workspace": 3})
        assert ws.id == "3"

    def test_empty_id_rejected(self):
        with pytest.raises(ValidationError):
            WorkspaceDescriptor.model_validate({"workspace": ""})

    def test_payload_uses_wire_shape(self):
        workspaces = [WorkspaceDescriptor(id="1"), WorkspaceDescriptor(id="2")]
        assert workspaces_payload(workspaces) == [{"workspace": "1"}, {"workspace": "2"}]


class TestWindowDescriptor:
    """Tests for WindowDescriptor."""

    def test_reads_hyphenated_fields(self):
        win = WindowDescriptor.model_validate(
            {"window-id": 4242, "window-title": "README.md", "app-name": "Code"}
        )
        assert win.window_id == "4242"
        assert win.title == "README.md"
        assert win.app_name == "Code"

    def test_label(self):
        win = WindowDescriptor(window_id="1", title="Inbox", app_name="Mail")
        assert win.label == "Mail / Inbox"

    def test_payload_round_trips_aliases(self):
        win = WindowDescriptor(window_id="7", title="t", app_name="a")
        assert windows_payload([win]) == [{"window-id": "7", "window-title": "t", "app-name": "a"}]


class TestMediaTrackState:
    """Tests for the tagged media state."""

    def test_playing_payload(self):
        track = MediaTrackState.playing(artist="Daft Punk", title="One More Time")
        assert track.is_playing
        assert track.to_payload() == {"artist": "Daft Punk", "title": "One More Time", "isPlaying": True}

    def test_not_playing_payload(self):
        assert MediaTrackState.not_playing().to_payload() == {"isPlaying": False}

    def test_unavailable_is_not_playing_on_the_wire(self):
        track = MediaTrackState.unavailable()
        assert track.status == MediaStatus.UNAVAILABLE
        assert track.to_payload() == {"isPlaying": False}

    def test_playing_requires_track_fields(self):
        with pytest.raises(ValidationError):
            MediaTrackState(status=MediaStatus.PLAYING, artist="only artist")

    def test_not_playing_carries_no_fields(self):
        with pytest.raises(ValidationError):
            MediaTrackState(status=MediaStatus.NOT_PLAYING, title="stale")


class TestPowerState:
    """Tests for PowerState."""

    def test_float_level_rounded(self):
        assert PowerState(level_percent=84.6).level_percent == 85

    def test_float_level_clamped(self):
        assert PowerState(level_percent=100.4).level_percent == 100

    def test_out_of_range_int_rejected(self):
        with pytest.raises(ValidationError):
            PowerState(level_percent=120)

    def test_payload_omits_unknown_charging(self):
        assert PowerState(level_percent=50).to_payload() == {"level": 50}
        assert PowerState(level_percent=50, charging=True).to_payload() == {"level": 50, "charging": True}


class TestNetworkState:
    def test_wire_values(self):
        assert NetworkState.NO_INTERNET.to_payload() == {"status": "no-internet"}
        assert [s.value for s in NetworkState] == ["disconnected", "no-internet", "low", "medium", "high"]


class TestFetchResult:
    """Tests for FetchResult."""

    def test_success_with_empty_list_is_ok(self):
        result = FetchResult.success([])
        assert result.ok
        assert result.unwrap() == []

    def test_requires_exactly_one_side(self):
        with pytest.raises(ValueError):
            FetchResult()
        with pytest.raises(ValueError):
            FetchResult(value=1, error=ParseError("x"))

    def test_failure_unwrap_raises_error(self):
        error = ProcessError(1, "boom")
        result = FetchResult.failure(error)
        assert not result.ok
        with pytest.raises(ProcessError):
            result.unwrap()

    def test_failure_payload(self):
        result = FetchResult.failure(ProcessError(2, "no server\n"))
        payload = result.to_payload(lambda v: v)
        assert payload["error"]["kind"] == "ProcessError"
        assert payload["error"]["message"] == "Process exited with code 2: no server"
