"""
osutunes - Terminal music player for osu! song folders.
"""

__version__ = "1.0.0"
__author__ = "osutunes Team"
__description__ = "A terminal music player that plays the songs in your osu! Songs folder, with a play queue and playlists."

from osutunes.models import Song, Modifier
from osutunes.playlist import Playlist, load_playlists, save_playlists
from osutunes.audio import AudioSink, MPG123Sink, get_audio_sink, detect_available_player
from osutunes.engine import QueueEngine, QueueSource, QueueSnapshot
from osutunes.config import AppConfig, ConfigManager, load_config

__all__ = [
    # Models
    'Song',
    'Modifier',

    # Playlists
    'Playlist',
    'load_playlists',
    'save_playlists',

    # Audio
    'AudioSink',
    'MPG123Sink',
    'get_audio_sink',
    'detect_available_player',

    # Queue
    'QueueEngine',
    'QueueSource',
    'QueueSnapshot',

    # Config
    'AppConfig',
    'ConfigManager',
    'load_config',
]
