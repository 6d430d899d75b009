"""
Song and modifier value types shared by the catalog, playlists and queue.
"""
from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, Dict

from osutunes.logging_config import CatalogError


class Modifier(Enum):
    """osu! mods that change how fast a song is played back."""

    NO_MOD = "NoMod"
    DOUBLE_TIME = "DoubleTime"
    NIGHTCORE = "Nightcore"

    @property
    def speed(self) -> float:
        """Playback speed multiplier for this modifier."""
        if self is Modifier.NO_MOD:
            return 1.0
        # Nightcore pitch/amplitude compensation is not applied
        return 1.5

    @property
    def short_name(self) -> str:
        return {"NoMod": "", "DoubleTime": "DT", "Nightcore": "NC"}[self.value]

    def next(self) -> "Modifier":
        """Return the modifier that follows this one when cycling."""
        order = list(Modifier)
        return order[(order.index(self) + 1) % len(order)]


@dataclass(frozen=True)
class Song:
    """A single playable song from the catalog.

    Attributes:
        audio_path: Audio file path relative to the songs root
        song_name: Title from the beatmap metadata
        artist: Artist from the beatmap metadata
        modifier: Playback speed modifier
        length_seconds: Nominal (unmodified) duration, 0 when unknown
    """

    audio_path: str
    song_name: str
    artist: str
    modifier: Modifier = Modifier.NO_MOD
    length_seconds: int = 0

    @property
    def display_name(self) -> str:
        name = f"{self.artist} - {self.song_name}"
        if self.modifier is not Modifier.NO_MOD:
            name = f"{name} [{self.modifier.short_name}]"
        return name

    @property
    def dedup_key(self) -> str:
        return f"{self.song_name}-{self.artist}"

    def with_modifier(self, modifier: Modifier) -> "Song":
        return replace(self, modifier=modifier)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "audio_path": self.audio_path,
            "song_name": self.song_name,
            "artist": self.artist,
            "modifier": self.modifier.value,
            "length_seconds": self.length_seconds,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Song":
        """Build a Song from its serialized form.

        Raises:
            CatalogError: If a required key is missing or the modifier
                name is unknown
        """
        try:
            return cls(
                audio_path=str(data["audio_path"]),
                song_name=str(data["song_name"]),
                artist=str(data["artist"]),
                modifier=Modifier(data.get("modifier", Modifier.NO_MOD.value)),
                length_seconds=int(data.get("length_seconds", 0) or 0),
            )
        except (KeyError, TypeError, ValueError) as e:
            raise CatalogError(f"Invalid song record {data!r}: {e}") from e


def format_length(seconds: int) -> str:
    """Format a duration in MM:SS format.

    Args:
        seconds: Duration in seconds

    Returns:
        Formatted string
    """
    mins = int(seconds) // 60
    secs = int(seconds) % 60
    return f"{mins:02d}:{secs:02d}"
