import logging
import os
import shutil
import subprocess
import time
from datetime import datetime

from ..engine.types import IdleState

logger = logging.getLogger(__name__)


class LinuxIdleSource:
    """Clock and idle/lock source backed by systemd-logind.

    Notes:
    - `loginctl show-session` gives LockedHint everywhere logind is present.
      IdleHint/IdleSinceHintMonotonic depend on the compositor reporting idle.
    - On Hyprland, `hyprlock` often does not update LockedHint, so a running
      `hyprlock` process also counts as locked.
    """

    def __init__(self, *, detect_hyprlock: bool = True):
        self._detect_hyprlock = detect_hyprlock
        self._session_id: str | None = None
        self._user: str | None = None
        self._last_state: IdleState | None = None

    def now(self) -> datetime:
        return datetime.now().astimezone()

    def _get_user(self) -> str:
        if self._user is None:
            self._user = os.environ.get("USER") or os.environ.get("USERNAME") or ""
        return self._user

    def _find_session_id(self) -> str | None:
        """Find the active session for the current user."""

        env_session = os.environ.get("XDG_SESSION_ID")
        if env_session:
            return env_session

        user = self._get_user()
        try:
            result = subprocess.run(
                ["loginctl", "list-sessions", "--no-legend", "--no-pager"],
                capture_output=True,
                text=True,
                check=True,
            )
        except (subprocess.CalledProcessError, FileNotFoundError):
            return None

        # Columns: SESSION UID USER SEAT ...
        candidates = [
            parts[0]
            for parts in (line.split() for line in result.stdout.strip().split("\n"))
            if len(parts) >= 3 and parts[2] == user
        ]

        for session_id in candidates:
            if self._get_session_properties(session_id).get("State") == "active":
                return session_id

        return candidates[0] if candidates else None

    def _get_session_properties(self, session_id: str) -> dict[str, str]:
        try:
            result = subprocess.run(
                [
                    "loginctl",
                    "show-session",
                    session_id,
                    "--property=IdleSinceHintMonotonic",
                    "--property=LockedHint",
                    "--property=IdleHint",
                    "--property=State",
                ],
                capture_output=True,
                text=True,
                check=True,
            )
        except (subprocess.CalledProcessError, FileNotFoundError):
            return {}

        props: dict[str, str] = {}
        for line in result.stdout.strip().split("\n"):
            if "=" in line:
                key, value = line.split("=", 1)
                props[key] = value
        return props

    def _hyprlock_running(self) -> bool:
        if not self._detect_hyprlock or shutil.which("pgrep") is None:
            return False
        try:
            p = subprocess.run(["pgrep", "-x", "hyprlock"], capture_output=True, text=True)
        except OSError:
            return False
        return p.returncode == 0

    def idle_seconds(self, props: dict[str, str]) -> int | None:
        """Seconds since last input according to logind, or None if unknown."""

        idle_hint = props.get("IdleHint")
        if idle_hint == "no":
            return 0
        if idle_hint != "yes":
            return None

        try:
            # systemd reports microseconds of CLOCK_MONOTONIC
            idle_since_us = int(props.get("IdleSinceHintMonotonic") or 0)
        except ValueError:
            return None

        now_us = int(time.monotonic() * 1_000_000)
        if idle_since_us <= 0 or idle_since_us > now_us:
            return None

        return int((now_us - idle_since_us) / 1_000_000)

    def system_idle_state(self, threshold_seconds: int) -> IdleState:
        state = self._query(threshold_seconds)
        if state is not self._last_state:
            logger.debug("idle state: %s", state.value)
            self._last_state = state
        return state

    def _query(self, threshold_seconds: int) -> IdleState:
        if self._session_id is None:
            self._session_id = self._find_session_id()
            if self._session_id is None:
                return IdleState.LOCKED if self._hyprlock_running() else IdleState.UNKNOWN

        props = self._get_session_properties(self._session_id)

        if props.get("LockedHint") == "yes" or self._hyprlock_running():
            return IdleState.LOCKED

        if not props:
            # Session vanished (logout/login); look it up again next time.
            self._session_id = None
            return IdleState.UNKNOWN

        idle_seconds = self.idle_seconds(props)
        if idle_seconds is None:
            return IdleState.UNKNOWN

        return IdleState.IDLE if idle_seconds >= threshold_seconds else IdleState.ACTIVE
