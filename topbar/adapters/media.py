"""Spotify now-playing adapter using AppleScript via osascript.

Media status is best effort: script failures and unparsable output read as
NotPlaying. When osascript itself is missing (not macOS) the state is
Unavailable.
"""

import json
import logging

from ..constants import OSASCRIPT_BINARY
from ..errors import AdapterError, BinaryNotFound, ParseError, ScriptError
from ..models import MediaTrackState
from .base import BestEffortAdapter
from .process import BinaryResolver, CommandRunner

logger = logging.getLogger(__name__)

TRACK_SCRIPT = '''
tell application "Spotify"
  if it is running then
    set isPlaying to player state as string
    if isPlaying is "playing" then
      set currentArtist to artist of current track as string
      set currentTrack to name of current track as string
      return "{\\"artist\\":\\"" & currentArtist & "\\",\\"title\\":\\"" & currentTrack & "\\",\\"isPlaying\\":true}"
    else
      return "{\\"isPlaying\\":false}"
    end if
  else
    return "{\\"isPlaying\\":false}"
  end if
end tell
'''

FOCUS_SCRIPT = '''
tell application "Spotify"
  activate
end tell
'''


def parse_track(raw: str) -> MediaTrackState:
    """Parse the {artist, title, isPlaying} string returned by TRACK_SCRIPT."""
    text = raw.strip()
    if not text:
        raise ParseError(raw, "empty output")
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise ParseError(raw, f"invalid JSON: {e.msg}")
    if not isinstance(data, dict) or not isinstance(data.get("isPlaying"), bool):
        raise ParseError(raw, "missing isPlaying flag")
    if not data["isPlaying"]:
        return MediaTrackState.not_playing()
    artist, title = data.get("artist"), data.get("title")
    if not isinstance(artist, str) or not isinstance(title, str):
        raise ParseError(raw, "playing track without artist/title")
    return MediaTrackState.playing(artist=artist, title=title)


class SpotifyAdapter(BestEffortAdapter[MediaTrackState]):
    """Current Spotify track."""

    name = "media"

    def __init__(
        self,
        runner: CommandRunner,
        resolver: BinaryResolver,
        binary: str = OSASCRIPT_BINARY,
    ) -> None:
        self.runner = runner
        self.resolver = resolver
        self.binary = binary

    async def _run_script(self, script: str) -> str:
        path = await self.resolver.resolve(self.binary)
        result = await self.runner.run([path, "-e", script])
        if not result.ok:
            raise ScriptError(result.stderr or f"osascript exited with code {result.exit_code}")
        return result.stdout

    async def _fetch(self) -> MediaTrackState:
        return parse_track(await self._run_script(TRACK_SCRIPT))

    def default(self, error: AdapterError) -> MediaTrackState:
        if isinstance(error, BinaryNotFound):
            return MediaTrackState.unavailable()
        return MediaTrackState.not_playing()

    async def focus(self) -> None:
        """Bring Spotify to the front.

        Raises:
            AdapterError: If the script could not run
        """
        await self._run_script(FOCUS_SCRIPT)
        logger.info("Focused Spotify")
