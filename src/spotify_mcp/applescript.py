"""AppleScript control of the Spotify desktop app on macOS.

Each operation submits one fixed script to osascript and waits for its single
result. Script failures are translated into ToolError results; the shape of
the osascript process never leaks past this module.

Security Notes:
    - The only user input embedded in a script is a track URI, which is
      checked for the spotify:track: prefix and then escaped via
      _escape_for_applescript() (backslashes first, then quotes).
    - Scripts are executed via subprocess.run() with capture_output=True
      and a 30-second timeout to prevent hangs.
"""

import logging
import re
import shutil
import subprocess
import sys
from typing import Callable

from .errors import ErrorKind, Result, ToolError, invalid_params

logger = logging.getLogger(__name__)

APP_NAME = "Spotify"
TRACK_URI_PREFIX = "spotify:track:"
SCRIPT_TIMEOUT = 30  # seconds
REFOCUS_DELAY = 1  # seconds before the previous app is brought back
NOT_PLAYING = "Spotify is not playing"

# -600: application isn't running, -1728: can't get application
APP_MISSING_CODES = ("-600", "-1728")
_ERROR_CODE_RE = re.compile(r"\((-?\d+)\)\s*$")


def is_available() -> bool:
    """Check if AppleScript is available (macOS with osascript)."""
    return sys.platform == 'darwin' and shutil.which('osascript') is not None


def _escape_for_applescript(s: str) -> str:
    """Escape a string for safe use in AppleScript.

    Backslashes must be escaped first, then quotes.
    """
    return s.replace('\\', '\\\\').replace('"', '\\"')


def run_applescript(script: str) -> tuple[bool, str]:
    """Execute AppleScript and return (success, output/error).

    Args:
        script: AppleScript code to execute

    Returns:
        Tuple of (success: bool, output: str)
        On success, output is the script's return value.
        On failure, output is the error message.
    """
    if not is_available():
        return False, "AppleScript is not available"
    try:
        result = subprocess.run(
            ['osascript', '-e', script],
            capture_output=True,
            text=True,
            timeout=SCRIPT_TIMEOUT
        )
        if result.returncode == 0:
            return True, result.stdout.strip()
        else:
            return False, result.stderr.strip()
    except subprocess.TimeoutExpired:
        return False, f"AppleScript timed out after {SCRIPT_TIMEOUT} seconds"
    except OSError as e:
        return False, str(e)


def classify_error(message: str) -> ToolError:
    """Map an osascript error message to a ToolError."""
    match = _ERROR_CODE_RE.search(message)
    if match and match.group(1) in APP_MISSING_CODES:
        return ToolError(ErrorKind.NOT_FOUND, f"{APP_NAME} is not running or not installed: {message}")
    if message == "AppleScript is not available":
        return ToolError(ErrorKind.INTERNAL, message)
    return ToolError(ErrorKind.INTERNAL, f"AppleScript execution failed: {message}")


# =============================================================================
# Script templates
# =============================================================================

PLAYPAUSE_SCRIPT = f'tell application "{APP_NAME}" to playpause'
NEXT_TRACK_SCRIPT = f'tell application "{APP_NAME}" to next track'
PREVIOUS_TRACK_SCRIPT = f'tell application "{APP_NAME}" to previous track'

CURRENT_TRACK_SCRIPT = f'''
tell application "{APP_NAME}"
    if player state is playing or player state is paused then
        set t to current track
        set output to "Track: " & (name of t) & "\\n"
        set output to output & "Artist: " & (artist of t) & "\\n"
        set output to output & "Album: " & (album of t) & "\\n"
        set output to output & "URI: " & (id of t) & "\\n"
        set output to output & "State: " & (player state as string)
        return output
    else
        return "{NOT_PLAYING}"
    end if
end tell
'''


def play_track_script(uri: str) -> str:
    """Script that plays uri, then hands focus back to the previous app.

    The refocus part runs in its own try blocks so its failure never fails
    playback.
    """
    safe_uri = _escape_for_applescript(uri)
    return f'''
set previousApp to ""
try
    tell application "System Events"
        set previousApp to bundle identifier of first application process whose frontmost is true
    end tell
end try
tell application "{APP_NAME}"
    play track "{safe_uri}"
end tell
if previousApp is not "" then
    try
        delay {REFOCUS_DELAY}
        tell application id previousApp to activate
    end try
end if
'''


# =============================================================================
# Bridge
# =============================================================================

class DesktopBridge:
    """Playback control for the local Spotify app.

    The runner is injectable so tests can stand in for osascript.
    """

    def __init__(self, runner: Callable[[str], tuple[bool, str]] = run_applescript):
        self._runner = runner

    def _execute(self, script: str) -> Result:
        success, output = self._runner(script)
        if not success:
            error = classify_error(output)
            logger.warning("AppleScript failed (%s): %s", error.kind.value, output)
            return False, error
        return True, output or "Success"

    def toggle_play_pause(self, args: dict) -> Result:
        return self._execute(PLAYPAUSE_SCRIPT)

    def next_track(self, args: dict) -> Result:
        return self._execute(NEXT_TRACK_SCRIPT)

    def previous_track(self, args: dict) -> Result:
        return self._execute(PREVIOUS_TRACK_SCRIPT)

    def get_current_track(self, args: dict) -> Result:
        """Current track details, or NOT_PLAYING when the player is idle.

        Idle is a successful result, not an error.
        """
        return self._execute(CURRENT_TRACK_SCRIPT)

    def play_track(self, args: dict) -> Result:
        uri = args["uri"]
        if not uri.startswith(TRACK_URI_PREFIX):
            return invalid_params(f"Invalid track URI: {uri} (expected {TRACK_URI_PREFIX}<id>)")
        return self._execute(play_track_script(uri))
