"""Process-tracked audio playback for sound effects.

Files are played through the platform command-line player. Nothing here
synthesizes audio.
"""

import logging
import shutil
import subprocess
import sys
import threading

logger = logging.getLogger(__name__)

# ── toggle flags ─────────────────────────────────────────────────────
sfx_enabled: bool = True
global_mute: bool = False  # overrides all sound when True

# ── process tracking ─────────────────────────────────────────────────
_processes: list[subprocess.Popen] = []
_lock = threading.Lock()
_MAX_CONCURRENT = 4


def default_player() -> str | None:
    """afplay on macOS, aplay/paplay on Linux; None when nothing is installed."""
    candidates = ["afplay"] if sys.platform == "darwin" else ["aplay", "paplay"]
    for name in candidates:
        if shutil.which(name):
            return name
    return None


def _reap():
    """Remove finished processes — prevents zombie accumulation."""
    with _lock:
        _processes[:] = [p for p in _processes if p.poll() is None]


def play_file(filepath: str, player: str | None = None) -> None:
    """Spawn the player for ``filepath`` without waiting for it."""
    if global_mute or not sfx_enabled:
        return
    player = player or default_player()
    if not player:
        return
    _reap()
    with _lock:
        # kill oldest if too many concurrent
        while len(_processes) >= _MAX_CONCURRENT:
            old = _processes.pop(0)
            try:
                old.kill()
                old.wait()
            except OSError:
                pass
        try:
            p = subprocess.Popen(
                [player, filepath],
                stdout=subprocess.DEVNULL,
                stderr=subprocess.DEVNULL,
            )
            _processes.append(p)
        except OSError as exc:
            logger.debug("Could not play %s: %s", filepath, exc)


def stop_all() -> None:
    """Kill all running audio — call on exit."""
    with _lock:
        for p in _processes:
            try:
                p.kill()
                p.wait()
            except OSError:
                pass
        _processes.clear()
