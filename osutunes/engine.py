"""
The playback queue engine.

Owns the "now playing" list and decides, once per UI tick, what the audio
sink should be playing. Every edit the UI makes to the queue goes through
this class so the playing and hovered indices stay valid while a song is
sounding.
"""
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import List, Optional, Tuple, Union

from osutunes.audio import AudioSink
from osutunes.logging_config import get_logger, AudioSinkError
from osutunes.models import Song
from osutunes.playlist import Playlist

logger = get_logger('engine')

VOLUME_MIN: float = 0.0
VOLUME_MAX: float = 2.0
VOLUME_STEP: float = 0.1
DEFAULT_VOLUME: float = 0.5


class QueueSource(Enum):
    """Where the songs in the queue come from."""

    NONE = "none"
    AD_HOC = "ad_hoc"
    PLAYLIST = "playlist"


@dataclass(frozen=True)
class QueueSnapshot:
    """Read-only view of the queue for rendering."""

    current_songs: Tuple[Song, ...]
    playing_index: int
    hovered_index: int
    source: QueueSource
    playlist_name: Optional[str]
    volume: float
    is_playing: bool
    is_paused: bool

    @property
    def now_playing(self) -> Optional[Song]:
        if self.is_playing and 0 <= self.playing_index < len(self.current_songs):
            return self.current_songs[self.playing_index]
        return None


class QueueEngine:
    """Now-playing queue bound to a single audio sink.

    Attributes:
        sink: Audio output the engine drives
        songs_root: Directory song ``audio_path`` values are relative to
        current_songs: Songs visible in the now-playing list
        source: Provider of ``current_songs``
        playlist: Attached playlist when ``source`` is PLAYLIST
        playing_index: Position of the sounding song in ``current_songs``
        hovered_index: Position of the UI cursor in ``current_songs``
        volume: Gain applied to every song, 0.0 to 2.0
        is_playing: Whether the sink was given a song that has not ended
    """

    def __init__(self, sink: AudioSink, songs_root: Union[str, Path],
                 volume: float = DEFAULT_VOLUME) -> None:
        self.sink = sink
        self.songs_root = Path(songs_root).expanduser()
        self.current_songs: List[Song] = []
        self.source: QueueSource = QueueSource.NONE
        self.playlist: Optional[Playlist] = None
        self.playing_index: int = 0
        self.hovered_index: int = 0
        self.volume: float = _clamp_volume(volume)
        self.is_playing: bool = False

    # -------------------------------------------------------------------------
    # State
    # -------------------------------------------------------------------------
    @property
    def now_playing(self) -> Optional[Song]:
        if self.is_playing and 0 <= self.playing_index < len(self.current_songs):
            return self.current_songs[self.playing_index]
        return None

    def snapshot(self) -> QueueSnapshot:
        return QueueSnapshot(
            current_songs=tuple(self.current_songs),
            playing_index=self.playing_index,
            hovered_index=self.hovered_index,
            source=self.source,
            playlist_name=self.playlist.name if self.playlist else None,
            volume=self.volume,
            is_playing=self.is_playing,
            is_paused=self.is_playing and self.sink.is_paused(),
        )

    def _go_idle(self) -> None:
        self.is_playing = False
        self.playing_index = 0
        self._clamp_hover()

    def _clamp_hover(self) -> None:
        if not self.current_songs:
            self.hovered_index = 0
        elif self.hovered_index >= len(self.current_songs):
            self.hovered_index = len(self.current_songs) - 1

    def _detach(self) -> None:
        self.current_songs = []
        self.source = QueueSource.NONE
        self.playlist = None
        self.hovered_index = 0
        self._go_idle()

    # -------------------------------------------------------------------------
    # Advance-on-empty
    # -------------------------------------------------------------------------
    def tick(self) -> None:
        """Start the next song if the sink has run dry.

        Called once per UI tick, before rendering.
        """
        if not self.sink.is_empty():
            return

        if not self.current_songs:
            if self.source is not QueueSource.NONE:
                self._detach()
            self.is_playing = False
            return

        if self.source is QueueSource.PLAYLIST:
            if self.playlist is None or self.playlist.is_empty():
                logger.info("Attached playlist has no songs left")
                self._detach()
                return
            index = self.playlist.next_index()
            if index is None:
                logger.info(f"Playlist '{self.playlist.name}' finished")
                self._detach()
                return
            self.playing_index = index

        elif self.source is QueueSource.AD_HOC:
            if self.is_playing:
                finished = self.current_songs.pop(self.playing_index)
                logger.debug(f"Finished '{finished.song_name}'")
            if not self.current_songs:
                self.source = QueueSource.NONE
                self._go_idle()
                return
            if self.playing_index > len(self.current_songs) - 1:
                self.playing_index = len(self.current_songs) - 1
            self._clamp_hover()

        else:
            self.is_playing = False
            return

        if not self._start(self.current_songs[self.playing_index]) \
                and self.source is QueueSource.AD_HOC:
            # an unplayable ad-hoc song is dropped so the queue moves on
            self.current_songs.pop(self.playing_index)
            if not self.current_songs:
                self.source = QueueSource.NONE
                self._go_idle()
            self._clamp_hover()

    def _start(self, song: Song) -> bool:
        """Hand a song to the sink.

        The outgoing song is stopped first so speed and volume only ever
        apply to the new one.

        Returns:
            True if the sink accepted the song, False otherwise
        """
        path = self.songs_root / song.audio_path
        self.sink.stop()
        try:
            self.sink.set_speed(song.modifier.speed)
            self.sink.set_volume(self.volume)
            self.sink.play(path)
        except AudioSinkError as e:
            logger.error(f"Could not play '{song.song_name}' ({path}): {e}")
            self.is_playing = False
            return False

        self.is_playing = True
        logger.info(f"Now playing: {song.display_name}")
        return True

    # -------------------------------------------------------------------------
    # Queue edits
    # -------------------------------------------------------------------------
    def force_play_hovered(self) -> None:
        """Play the hovered song now, skipping the rest of the current one."""
        if not self.current_songs or self.hovered_index == self.playing_index:
            return

        self.playing_index = self.hovered_index
        if self.source is QueueSource.PLAYLIST and self.playlist is not None:
            self.playlist.jump_to(self.playing_index)
        self._start(self.current_songs[self.playing_index])

    def remove_hovered(self) -> None:
        self.remove_at(self.hovered_index)

    def remove_at(self, index: int) -> None:
        """Remove a song from the queue, and from the attached playlist.

        Removing the sounding song stops the sink; the next tick then
        plays the song that moved into its slot.

        Args:
            index: Position in ``current_songs``
        """
        if not 0 <= index < len(self.current_songs):
            return

        removed_playing = self.is_playing and index == self.playing_index
        if removed_playing:
            self.sink.stop()
            self.is_playing = False

        removed = self.current_songs.pop(index)
        if self.source is QueueSource.PLAYLIST and self.playlist is not None:
            self.playlist.remove_at(index)

        if index < self.playing_index:
            self.playing_index -= 1
        elif self.playing_index >= len(self.current_songs):
            self.playing_index = max(0, len(self.current_songs) - 1)

        if self.hovered_index == len(self.current_songs):
            self.hovered_index = max(0, self.hovered_index - 1)

        logger.info(f"Removed '{removed.song_name}' from the queue"
                    f"{' while playing' if removed_playing else ''}")

    def load_playlist(self, playlist: Playlist) -> None:
        """Replace the queue with a copy of ``playlist``'s songs.

        Whatever is sounding is stopped; the next tick starts the
        playlist's first song.
        """
        if playlist.is_empty():
            logger.debug(f"Not loading empty playlist '{playlist.name}'")
            return

        self.sink.stop()
        self.is_playing = False
        self.current_songs = list(playlist.songs)
        self.source = QueueSource.PLAYLIST
        self.playlist = playlist
        self.playing_index = 0
        self.hovered_index = 0
        playlist.reset()
        logger.info(f"Loaded playlist '{playlist.name}' ({len(playlist)} songs)")

    def unload_playlist(self) -> None:
        """Empty the queue and stop playback."""
        self._detach()
        self.sink.stop()
        logger.info("Queue cleared")

    def add_song(self, song: Song) -> None:
        """Queue a single song picked by the user."""
        if self.source is QueueSource.PLAYLIST:
            logger.debug(f"Detaching playlist '{self.playlist.name}' for ad-hoc songs")
        self.playlist = None
        self.current_songs.append(song)
        self.source = QueueSource.AD_HOC
        logger.info(f"Queued '{song.song_name}'")

    def append_to_playlist(self, playlist: Playlist, song: Song) -> None:
        """Add a song to a playlist, and to the queue if it is playing from it."""
        playlist.add_song(song)
        if self.source is QueueSource.PLAYLIST and self.playlist is playlist:
            self.current_songs.append(song)

    def move_hover(self, direction: int) -> None:
        """Move the hover cursor by ``direction``, wrapping at both ends."""
        if not self.current_songs:
            return
        self.hovered_index = (self.hovered_index + direction) % len(self.current_songs)

    def hover_up(self) -> None:
        self.move_hover(-1)

    def hover_down(self) -> None:
        self.move_hover(1)

    def toggle_pause(self) -> None:
        if self.sink.is_empty():
            return
        if self.sink.is_paused():
            self.sink.resume()
        else:
            self.sink.pause()

    # -------------------------------------------------------------------------
    # Volume
    # -------------------------------------------------------------------------
    def set_volume(self, volume: float) -> None:
        self.volume = _clamp_volume(volume)
        self.sink.set_volume(self.volume)

    def volume_up(self) -> None:
        self.set_volume(self.volume + VOLUME_STEP)

    def volume_down(self) -> None:
        self.set_volume(self.volume - VOLUME_STEP)


def _clamp_volume(volume: float) -> float:
    return round(max(VOLUME_MIN, min(VOLUME_MAX, volume)), 1)
