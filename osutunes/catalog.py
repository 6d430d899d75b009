"""
Song catalog: builds the list of playable songs from an osu! Songs folder.

Every sub-folder of the songs root is a beatmap set holding one ``.osu``
file per difficulty. Difficulties share the audio file, so songs are
deduplicated by title and artist.
"""
import concurrent.futures
import json
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional, Union

from mutagen import File as MutagenFile
from mutagen import MutagenError

from osutunes.logging_config import get_logger, CatalogError
from osutunes.models import Song

logger = get_logger('catalog')

BEATMAP_EXTENSION: str = ".osu"
LENGTH_SCAN_WORKERS: int = 4


@dataclass(frozen=True)
class BeatmapInfo:
    """The parts of a ``.osu`` file the catalog cares about."""

    audio_filename: str
    title: str
    artist: str


def parse_beatmap(path: Union[str, Path]) -> Optional[BeatmapInfo]:
    """Read the audio file name, title and artist from a ``.osu`` file.

    Only the ``[General]`` and ``[Metadata]`` sections are read; parsing
    stops at the first section after both were seen.

    Args:
        path: Path to the ``.osu`` file

    Returns:
        Parsed info, or None if the file is unreadable or lacks an audio
        file name or title
    """
    sections: Dict[str, Dict[str, str]] = {"General": {}, "Metadata": {}}
    section = None
    try:
        with open(path, "r", encoding="utf-8-sig", errors="replace") as f:
            for raw in f:
                line = raw.strip()
                if not line or line.startswith("//"):
                    continue
                if line.startswith("[") and line.endswith("]"):
                    section = line[1:-1]
                    if section not in sections and all(sections.values()):
                        break
                    continue
                if section in sections and ":" in line:
                    key, value = line.split(":", 1)
                    sections[section][key.strip()] = value.strip()
    except OSError as e:
        logger.warning(f"Could not read beatmap {path}: {e}")
        return None

    audio_filename = sections["General"].get("AudioFilename", "")
    title = sections["Metadata"].get("Title", "")
    if not audio_filename or not title:
        logger.debug(f"Skipping beatmap without audio or title: {path}")
        return None
    return BeatmapInfo(
        audio_filename=audio_filename,
        title=title,
        artist=sections["Metadata"].get("Artist", ""),
    )


def get_length(path: Union[str, Path]) -> int:
    """Get an audio file's duration in whole seconds using mutagen.

    Returns:
        Duration, or 0 when the file is missing or not understood
    """
    try:
        audio = MutagenFile(str(path))
    except (MutagenError, OSError) as e:
        logger.debug(f"Could not read length of {path}: {e}")
        return 0
    if audio is None or getattr(audio, "info", None) is None:
        return 0
    return int(getattr(audio.info, "length", 0) or 0)


def _scan_set_folder(folder: Path, seen: Dict[str, Song], root: Path) -> List[Song]:
    """Collect the unique songs of one beatmap set folder."""
    found = []
    try:
        beatmaps = sorted(
            entry.path for entry in os.scandir(folder)
            if entry.is_file() and entry.name.lower().endswith(BEATMAP_EXTENSION)
        )
    except OSError as e:
        logger.warning(f"Skipping unreadable folder {folder}: {e}")
        return found

    for beatmap_path in beatmaps:
        info = parse_beatmap(beatmap_path)
        if info is None:
            continue
        song = Song(
            audio_path=f"{folder.relative_to(root).as_posix()}/{info.audio_filename}",
            song_name=info.title,
            artist=info.artist,
        )
        if song.dedup_key in seen:
            continue
        seen[song.dedup_key] = song
        found.append(song)
    return found


def scan_songs(root: Union[str, Path], workers: int = LENGTH_SCAN_WORKERS) -> List[Song]:
    """Scan an osu! Songs folder and build the catalog.

    Args:
        root: The songs root; each sub-folder is a beatmap set
        workers: Threads used to read audio lengths

    Returns:
        Songs sorted by title

    Raises:
        CatalogError: If the root is not a readable directory
    """
    root = Path(root).expanduser()
    try:
        folders = sorted(
            Path(entry.path) for entry in os.scandir(root)
            if entry.is_dir(follow_symlinks=True)
        )
    except OSError as e:
        raise CatalogError(f"Cannot read songs folder {root}: {e}") from e

    seen: Dict[str, Song] = {}
    songs: List[Song] = []
    for folder in folders:
        songs.extend(_scan_set_folder(folder, seen, root))

    with concurrent.futures.ThreadPoolExecutor(max_workers=max(1, workers)) as executor:
        lengths = list(executor.map(get_length, (root / s.audio_path for s in songs)))

    songs = [
        Song(s.audio_path, s.song_name, s.artist, s.modifier, length)
        for s, length in zip(songs, lengths)
    ]
    songs.sort(key=lambda s: (s.song_name.lower(), s.artist.lower()))
    logger.info(f"Scanned {len(folders)} beatmap sets, found {len(songs)} songs")
    return songs


def save_catalog(songs: List[Song], path: Union[str, Path]) -> bool:
    """Write the catalog cache.

    Returns:
        True if the cache was written, False otherwise
    """
    path = Path(path).expanduser()
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            json.dump([song.to_dict() for song in songs], f, ensure_ascii=False)
        logger.debug(f"Catalog cache saved to {path}")
        return True
    except OSError as e:
        logger.warning(f"Failed to save catalog cache: {e}")
        return False


def load_catalog(path: Union[str, Path]) -> List[Song]:
    """Read the catalog cache.

    Raises:
        CatalogError: If the cache is missing or malformed
    """
    path = Path(path).expanduser()
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, ValueError) as e:
        raise CatalogError(f"Cannot read catalog cache {path}: {e}") from e
    if not isinstance(data, list):
        raise CatalogError(f"Catalog cache {path} must contain a list")
    return [Song.from_dict(entry) for entry in data]


def load_or_scan(root: Union[str, Path], cache_path: Union[str, Path],
                 use_cache: bool = True, workers: int = LENGTH_SCAN_WORKERS) -> List[Song]:
    """Load the catalog from cache when allowed, scanning otherwise.

    A fresh scan always rewrites the cache.
    """
    if use_cache and Path(cache_path).expanduser().exists():
        try:
            songs = load_catalog(cache_path)
            logger.info(f"Loaded {len(songs)} songs from catalog cache")
            return songs
        except CatalogError as e:
            logger.warning(f"{e}, rescanning")

    songs = scan_songs(root, workers)
    save_catalog(songs, cache_path)
    return songs


def filter_songs(songs: List[Song], query: str) -> List[Song]:
    """Songs whose title contains ``query``, ignoring case."""
    if not query:
        return list(songs)
    needle = query.lower()
    return [song for song in songs if needle in song.song_name.lower()]
