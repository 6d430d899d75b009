"""
Playlists: ordered song collections with shuffle/repeat iteration and
whole-file JSON persistence.
"""
import json
import random
from pathlib import Path
from typing import List, Optional, Union

from osutunes.logging_config import get_logger, PlaylistError, CatalogError
from osutunes.models import Song

logger = get_logger('playlist')


class Playlist:
    """A named, ordered and editable list of songs.

    The playlist keeps its own cursor so that a queue playing from it can
    ask for "the next song" without knowing about shuffle or repeat.

    Attributes:
        name: Display name, also the key used when saving
        songs: Songs in play order
        shuffle_on: Pick a random song on every advance
        repeat_on: Wrap back to the first song after the last one
    """

    def __init__(self, name: str, songs: Optional[List[Song]] = None) -> None:
        self.name: str = name
        self.songs: List[Song] = list(songs) if songs else []
        self.shuffle_on: bool = False
        self.repeat_on: bool = False
        self._cursor: int = 0
        # True while the song under the cursor has not been handed out
        self._hold: bool = True

    def __len__(self) -> int:
        return len(self.songs)

    def __repr__(self) -> str:
        return (f"Playlist(name={self.name!r}, songs={len(self.songs)}, "
                f"shuffle_on={self.shuffle_on}, repeat_on={self.repeat_on})")

    @property
    def cursor(self) -> int:
        return self._cursor

    def is_empty(self) -> bool:
        return not self.songs

    def add_song(self, song: Song) -> None:
        """Append a song to the end of the playlist."""
        self.songs.append(song)
        logger.debug(f"Added '{song.song_name}' to playlist '{self.name}'")

    def remove_at(self, index: int) -> Song:
        """Remove the song at ``index`` and keep the cursor on the same song.

        Removing the song under the cursor arms the hold flag, so the next
        advance returns the song that moved into the vacated slot instead
        of skipping over it.

        Args:
            index: Position of the song to remove

        Returns:
            The removed song

        Raises:
            PlaylistError: If ``index`` is out of range
        """
        if not 0 <= index < len(self.songs):
            raise PlaylistError(
                f"Cannot remove index {index} from playlist '{self.name}' "
                f"with {len(self.songs)} songs"
            )
        removed = self.songs.pop(index)
        if index < self._cursor:
            self._cursor -= 1
        elif index == self._cursor:
            self._hold = True
        logger.debug(f"Removed '{removed.song_name}' from playlist '{self.name}'")
        return removed

    def reset(self) -> None:
        """Rewind iteration so the next advance returns the first song."""
        self._cursor = 0
        self._hold = True

    def jump_to(self, index: int) -> None:
        """Treat the song at ``index`` as the one that was just handed out."""
        if not 0 <= index < len(self.songs):
            raise PlaylistError(f"Cannot jump to index {index} in playlist '{self.name}'")
        self._cursor = index
        self._hold = False

    def toggle_shuffle(self) -> None:
        self.shuffle_on = not self.shuffle_on
        logger.info(f"Playlist '{self.name}' shuffle {'on' if self.shuffle_on else 'off'}")

    def toggle_repeat(self) -> None:
        self.repeat_on = not self.repeat_on
        logger.info(f"Playlist '{self.name}' repeat {'on' if self.repeat_on else 'off'}")

    def next_index(self) -> Optional[int]:
        """Advance the playlist and return the index of the song to play.

        Handles the iteration modes:
        - shuffle: any index in the playlist, the current one included
        - repeat off: None once the last song has been handed out
        - repeat on: wraps back to the first song

        Returns:
            Index into ``songs``, or None at the end of the playlist

        Raises:
            PlaylistError: If the playlist is empty
        """
        if not self.songs:
            raise PlaylistError(f"Playlist '{self.name}' is empty")

        if self.shuffle_on:
            return random.randrange(len(self.songs))

        if self._hold:
            self._hold = False
        else:
            self._cursor += 1

        if self._cursor < len(self.songs):
            return self._cursor

        self._cursor = 0
        if self.repeat_on:
            return 0
        self._hold = True
        logger.info(f"Reached the end of playlist '{self.name}'")
        return None

    def get_next_song(self) -> Optional[Song]:
        """Advance the playlist and return the song to play, if any."""
        index = self.next_index()
        if index is None:
            return None
        return self.songs[index]


# Playlist file functions (save, load)
# =============================================================================


def save_playlists(playlists: List[Playlist], path: Union[str, Path]) -> bool:
    """Save every playlist to a single JSON file.

    Only names and songs are written; shuffle and repeat are session
    settings.

    Args:
        playlists: Playlists to save, in display order
        path: Destination file

    Returns:
        True if saved successfully, False otherwise
    """
    path = Path(path).expanduser()
    data = [
        {"name": playlist.name, "songs": [song.to_dict() for song in playlist.songs]}
        for playlist in playlists
    ]
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2, ensure_ascii=False)
        logger.info(f"Saved {len(playlists)} playlists to {path}")
        return True
    except (OSError, TypeError, ValueError) as e:
        logger.error(f"Failed to save playlists to {path}: {e}")
        return False


def load_playlists(path: Union[str, Path]) -> List[Playlist]:
    """Load all playlists from a JSON file.

    Args:
        path: File written by :func:`save_playlists`

    Returns:
        Loaded playlists with shuffle and repeat off, or an empty list if
        the file is missing or unreadable
    """
    path = Path(path).expanduser()
    if not path.exists():
        logger.debug(f"No playlist file at {path}")
        return []

    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
        if not isinstance(data, list):
            raise PlaylistError("Playlist file must contain a list")
        playlists = [
            Playlist(str(entry["name"]), [Song.from_dict(s) for s in entry.get("songs", [])])
            for entry in data
        ]
    except (OSError, ValueError, KeyError, TypeError, PlaylistError, CatalogError) as e:
        logger.warning(f"Failed to load playlists from {path}: {e}")
        return []

    logger.info(f"Loaded {len(playlists)} playlists from {path}")
    return playlists
