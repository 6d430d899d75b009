import sys
import tempfile
import pytest
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from osutunes.audio import AudioSink
from osutunes.logging_config import AudioSinkError
from osutunes.models import Song, Modifier
from osutunes.engine import QueueEngine


class FakeSink(AudioSink):
    """Audio sink that records calls instead of making sound.

    ``finish()`` simulates the current song reaching its end.
    """

    def __init__(self):
        self.played = []
        self.volume = None
        self.speed = None
        self.stop_calls = 0
        self.fail_paths = set()
        self._playing = None
        self._paused = False

    def play(self, file_path):
        if str(file_path) in self.fail_paths:
            raise AudioSinkError(f"File not found: {file_path}")
        self.played.append(str(file_path))
        self._playing = str(file_path)
        self._paused = False

    def stop(self):
        self.stop_calls += 1
        self._playing = None
        self._paused = False

    def pause(self):
        if self._playing:
            self._paused = True

    def resume(self):
        self._paused = False

    def set_volume(self, volume):
        self.volume = volume

    def set_speed(self, speed):
        self.speed = speed

    def is_empty(self):
        return self._playing is None

    def is_paused(self):
        return self._paused

    def finish(self):
        self._playing = None
        self._paused = False

    @property
    def current(self):
        return self._playing


def make_song(name, artist="Artist", modifier=Modifier.NO_MOD, length=120):
    return Song(f"{name} set/{name}.mp3", name, artist, modifier, length)


@pytest.fixture
def songs():
    """Five distinct songs A-E."""
    return [make_song(name) for name in "ABCDE"]


@pytest.fixture
def sink():
    return FakeSink()


@pytest.fixture
def engine(sink):
    return QueueEngine(sink, "/songs")


@pytest.fixture
def temp_dir():
    """Create a temporary directory."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def temp_songs_dir(temp_dir):
    """Create an osu! Songs folder with two beatmap sets.

    The first set has two difficulties of the same song, the second a
    single difficulty.
    """
    songs_dir = temp_dir / "Songs"
    first = songs_dir / "1 Camellia - Exit This Earth"
    second = songs_dir / "2 xi - Blue Zenith"
    first.mkdir(parents=True)
    second.mkdir(parents=True)

    beatmap = (
        "osu file format v14\n\n"
        "[General]\nAudioFilename: {audio}\nAudioLeadIn: 0\n\n"
        "[Editor]\nDistanceSpacing: 1\n\n"
        "[Metadata]\nTitle:{title}\nTitleUnicode:{title}\nArtist:{artist}\nVersion:{version}\n\n"
        "[Difficulty]\nHPDrainRate:5\n"
    )
    (first / "easy.osu").write_text(
        beatmap.format(audio="audio.mp3", title="Exit This Earth", artist="Camellia", version="Easy"))
    (first / "hard.osu").write_text(
        beatmap.format(audio="audio.mp3", title="Exit This Earth", artist="Camellia", version="Hard"))
    (first / "audio.mp3").write_bytes(b"not really audio")
    (second / "insane.osu").write_text(
        beatmap.format(audio="blue.mp3", title="Blue Zenith", artist="xi", version="Insane"))
    (second / "blue.mp3").write_bytes(b"not really audio")
    (songs_dir / "stray.osu").write_text("not in a set folder")

    yield songs_dir
