"""
Application state for osutunes.

Everything the terminal UI shows besides the queue itself: which pane has
focus, the search box and its results, and the playlist list. The
methods here are what key presses are translated into.
"""
from enum import Enum
from pathlib import Path
from typing import List, Optional

from osutunes.catalog import filter_songs
from osutunes.engine import QueueEngine, QueueSource
from osutunes.logging_config import get_logger
from osutunes.models import Song
from osutunes.playlist import Playlist, save_playlists

logger = get_logger('app')


class UIMode(Enum):
    """The pane that receives key presses."""

    SEARCH = "search"
    PLAYLISTS = "playlists"
    NOW_PLAYING = "now_playing"

    def next(self) -> "UIMode":
        order = [UIMode.SEARCH, UIMode.PLAYLISTS, UIMode.NOW_PLAYING]
        return order[(order.index(self) + 1) % len(order)]


class App:
    """Holds the catalog, playlists and UI selection around one engine.

    Attributes:
        engine: The playback queue engine
        playlists: All playlists, in display order
        playlist_file: Where :meth:`save_playlists` writes
        mode: Focused pane
        query: Search box contents
        queried_songs: Catalog songs matching ``query``
        query_index: Selected search result
        playlist_index: Selected playlist
        new_playlist_name: Name being typed for a new playlist
        is_adding_playlist: Whether key presses go to ``new_playlist_name``
        status: One-line message for the UI
    """

    def __init__(self, songs: List[Song], engine: QueueEngine,
                 playlists: Optional[List[Playlist]] = None,
                 playlist_file: Optional[Path] = None) -> None:
        self.engine = engine
        self.all_songs: List[Song] = list(songs)
        self.playlists: List[Playlist] = list(playlists) if playlists else []
        self.playlist_file = playlist_file
        self.mode: UIMode = UIMode.NOW_PLAYING
        self.query: str = ""
        self.queried_songs: List[Song] = list(songs)
        self.query_index: int = 0
        self.playlist_index: int = 0
        self.new_playlist_name: str = ""
        self.is_adding_playlist: bool = False
        self.status: str = ""

    def cycle_mode(self) -> None:
        self.mode = self.mode.next()

    # -------------------------------------------------------------------------
    # Search pane
    # -------------------------------------------------------------------------
    def set_query(self, query: str) -> None:
        self.query = query
        self.queried_songs = filter_songs(self.all_songs, query)
        self.query_index = 0

    def type_char(self, ch: str) -> None:
        self.set_query(self.query + ch)

    def backspace(self) -> None:
        if self.query:
            self.set_query(self.query[:-1])

    def move_query(self, direction: int) -> None:
        if not self.queried_songs:
            return
        self.query_index = (self.query_index + direction) % len(self.queried_songs)

    @property
    def selected_song(self) -> Optional[Song]:
        if 0 <= self.query_index < len(self.queried_songs):
            return self.queried_songs[self.query_index]
        return None

    def cycle_modifier(self) -> None:
        """Switch the selected result to the next modifier."""
        song = self.selected_song
        if song is None:
            return
        self.queried_songs[self.query_index] = song.with_modifier(song.modifier.next())

    def queue_selected(self) -> None:
        song = self.selected_song
        if song is None:
            return
        self.engine.add_song(song)
        self.status = f"Queued {song.display_name}"

    def add_selected_to_playlist(self) -> None:
        """Append the selected result to the selected playlist."""
        song = self.selected_song
        playlist = self.selected_playlist
        if song is None or playlist is None:
            return
        self.engine.append_to_playlist(playlist, song)
        self.status = f"Added {song.display_name} to {playlist.name}"

    # -------------------------------------------------------------------------
    # Playlists pane
    # -------------------------------------------------------------------------
    @property
    def selected_playlist(self) -> Optional[Playlist]:
        if 0 <= self.playlist_index < len(self.playlists):
            return self.playlists[self.playlist_index]
        return None

    def move_playlist(self, direction: int) -> None:
        if not self.playlists:
            return
        self.playlist_index = (self.playlist_index + direction) % len(self.playlists)

    def start_new_playlist(self) -> None:
        self.is_adding_playlist = True
        self.new_playlist_name = ""

    def cancel_new_playlist(self) -> None:
        self.is_adding_playlist = False
        self.new_playlist_name = ""

    def create_playlist(self) -> Optional[Playlist]:
        """Create an empty playlist from ``new_playlist_name``.

        Returns:
            The new playlist, or None if no name was typed
        """
        name = self.new_playlist_name.strip()
        if not name:
            return None
        playlist = Playlist(name)
        self.playlists.append(playlist)
        self.playlist_index = len(self.playlists) - 1
        self.cancel_new_playlist()
        self.status = f"Created playlist {name}"
        logger.info(f"Created playlist '{name}'")
        return playlist

    def load_selected_playlist(self) -> None:
        playlist = self.selected_playlist
        if playlist is None:
            return
        if playlist.is_empty():
            self.status = f"{playlist.name} is empty"
            return
        self.engine.load_playlist(playlist)
        self.status = f"Playing {playlist.name}"

    def toggle_shuffle(self) -> None:
        playlist = self._active_playlist()
        if playlist is not None:
            playlist.toggle_shuffle()

    def toggle_repeat(self) -> None:
        playlist = self._active_playlist()
        if playlist is not None:
            playlist.toggle_repeat()

    def _active_playlist(self) -> Optional[Playlist]:
        """The playlist that is playing, or else the selected one."""
        if self.engine.source is QueueSource.PLAYLIST and self.engine.playlist is not None:
            return self.engine.playlist
        return self.selected_playlist

    def save_playlists(self) -> bool:
        if self.playlist_file is None:
            return False
        saved = save_playlists(self.playlists, self.playlist_file)
        self.status = "Playlists saved" if saved else "Failed to save playlists"
        return saved
