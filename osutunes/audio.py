"""
Audio output for osutunes.

The queue engine talks to an :class:`AudioSink`: something that plays one
file at a time and reports when it has nothing left to play.
"""
import os
import shutil
import signal
import subprocess
import time
from pathlib import Path
from typing import List, Optional, Union

from osutunes.logging_config import get_logger, AudioSinkError

logger = get_logger('audio')

# mpg123 decodes in frames of 1152 samples
FRAMES_PER_SECOND: float = 44100 / 1152
MPG123_FULL_SCALE: int = 32768


class AudioSink:
    """Base class for audio sinks."""

    def play(self, file_path: Union[str, Path]) -> None:
        """Start playing a file, replacing whatever is playing."""
        raise NotImplementedError("Subclasses must implement play()")

    def stop(self) -> None:
        """Stop playback. Safe to call when nothing is playing."""
        raise NotImplementedError("Subclasses must implement stop()")

    def pause(self) -> None:
        raise NotImplementedError("Subclasses must implement pause()")

    def resume(self) -> None:
        raise NotImplementedError("Subclasses must implement resume()")

    def set_volume(self, volume: float) -> None:
        raise NotImplementedError("Subclasses must implement set_volume()")

    def set_speed(self, speed: float) -> None:
        raise NotImplementedError("Subclasses must implement set_speed()")

    def is_empty(self) -> bool:
        """True once the current song finished or was stopped."""
        raise NotImplementedError("Subclasses must implement is_empty()")

    def is_paused(self) -> bool:
        raise NotImplementedError("Subclasses must implement is_paused()")


class MPG123Sink(AudioSink):
    """Plays each song in its own mpg123 process.

    mpg123 has no way to change volume or speed of a running decode from
    the command line, so such changes restart the song at the elapsed
    position.
    """

    def __init__(self, executable: str = "mpg123") -> None:
        self.executable = executable
        self.process: Optional[subprocess.Popen] = None
        self.current_file: Optional[str] = None
        self.volume: float = 1.0
        self.speed: float = 1.0
        self._paused: bool = False
        self._start_offset: float = 0.0
        self._started_at: Optional[float] = None
        self._paused_at: Optional[float] = None

    def _build_command(self, executable: str, file_path: str, start_pos: float = 0.0) -> List[str]:
        cmd = [executable, "-q", "-f", str(int(MPG123_FULL_SCALE * self.volume))]

        if start_pos > 0:
            cmd.extend(["-k", str(max(1, int(start_pos * FRAMES_PER_SECOND)))])

        if self.speed != 1.0:
            pitch_val = max(-0.9, min(3.0, self.speed - 1.0))
            cmd.extend(["--pitch", str(round(pitch_val, 2))])

        cmd.append(file_path)
        return cmd

    def _is_running(self) -> bool:
        return self.process is not None and self.process.poll() is None

    def position(self) -> float:
        """Seconds of the song played so far, at the current speed."""
        if self._started_at is None:
            return 0.0
        end = self._paused_at if self._paused_at is not None else time.monotonic()
        return self._start_offset + (end - self._started_at) * self.speed

    def play(self, file_path: Union[str, Path], start_pos: float = 0.0) -> None:
        """Play an audio file with mpg123.

        Args:
            file_path: Absolute path to the audio file
            start_pos: Starting position in seconds

        Raises:
            AudioSinkError: If the file or the mpg123 binary is missing, or
                the process could not be started
        """
        self.stop()

        path = str(file_path)
        if not os.path.exists(path):
            raise AudioSinkError(f"File not found: {path}")

        executable = shutil.which(self.executable)
        if not executable:
            raise AudioSinkError(f"{self.executable} not found")

        cmd = self._build_command(executable, path, start_pos)
        try:
            self.process = subprocess.Popen(
                cmd,
                stdout=subprocess.DEVNULL,
                stderr=subprocess.DEVNULL,
                preexec_fn=os.setsid,
            )
        except (subprocess.SubprocessError, OSError) as e:
            logger.error(f"Failed to start {self.executable}: {e}")
            raise AudioSinkError(f"Failed to start audio player: {e}") from e

        self.current_file = path
        self._start_offset = start_pos
        self._started_at = time.monotonic()
        self._paused_at = None
        self._paused = False
        logger.info(f"Started playback: {path}")

    def stop(self) -> None:
        """Stop mpg123 playback."""
        if self._is_running():
            try:
                pgid = os.getpgid(self.process.pid)
                os.killpg(pgid, signal.SIGTERM)
                if self._paused:
                    # a stopped process only acts on SIGTERM once continued
                    os.killpg(pgid, signal.SIGCONT)
                logger.debug(f"Stopping audio process: {self.process.pid}")
                self.process.wait(timeout=1.0)
            except (ProcessLookupError, PermissionError) as e:
                logger.warning(f"Process termination error: {e}")
            except subprocess.TimeoutExpired:
                try:
                    os.killpg(os.getpgid(self.process.pid), signal.SIGKILL)
                    logger.warning(f"Force killed audio process: {self.process.pid}")
                    self.process.wait(timeout=0.5)
                except (ProcessLookupError, PermissionError, subprocess.TimeoutExpired) as e:
                    logger.warning(f"Force kill failed: {e}")
        self.process = None
        self.current_file = None
        self._started_at = None
        self._paused_at = None
        self._paused = False

    def _signal(self, signum: int) -> bool:
        try:
            os.killpg(os.getpgid(self.process.pid), signum)
            return True
        except (ProcessLookupError, PermissionError) as e:
            logger.warning(f"Failed to signal audio process: {e}")
            return False

    def pause(self) -> None:
        if self._is_running() and not self._paused and self._signal(signal.SIGSTOP):
            self._paused = True
            self._paused_at = time.monotonic()

    def resume(self) -> None:
        if self._is_running() and self._paused and self._signal(signal.SIGCONT):
            if self._started_at is not None and self._paused_at is not None:
                self._started_at += time.monotonic() - self._paused_at
            self._paused = False
            self._paused_at = None

    def _restart(self) -> None:
        """Restart the current file at the elapsed position."""
        if not self._is_running() or not self.current_file:
            return
        was_paused = self._paused
        path = self.current_file
        self.play(path, self.position())
        if was_paused:
            self.pause()

    def set_volume(self, volume: float) -> None:
        """Set volume as a gain factor (1.0 is unchanged)."""
        if volume == self.volume:
            return
        self.volume = volume
        logger.debug(f"Volume set to {volume}")
        self._restart()

    def set_speed(self, speed: float) -> None:
        if speed == self.speed:
            return
        # position() scales by the old speed, capture it first
        self._start_offset = self.position()
        if self._started_at is not None:
            self._started_at = self._paused_at if self._paused_at is not None else time.monotonic()
        self.speed = speed
        logger.debug(f"Speed set to {speed}x")
        self._restart()

    def is_empty(self) -> bool:
        return not self._is_running()

    def is_paused(self) -> bool:
        return self._paused and self._is_running()


def get_audio_sink(player_type: str = "mpg123") -> AudioSink:
    """Get an audio sink instance.

    Raises:
        AudioSinkError: If the player type is not supported
    """
    if player_type == "auto":
        player_type = detect_available_player()
    if player_type == "mpg123":
        return MPG123Sink()
    raise AudioSinkError(f"Unsupported audio player: {player_type}")


def detect_available_player() -> str:
    """Detect available audio players."""
    players = ["mpg123"]

    for player in players:
        if shutil.which(player):
            return player

    logger.warning("No supported audio player found")
    return "mpg123"  # Default fallback
