import pytest
from pathlib import Path
import sys

sys.path.insert(0, str(Path(__file__).parent.parent))
from osutunes.playlist import Playlist
from osutunes.logging_config import PlaylistError
from conftest import make_song


class TestSequentialIteration:
    """Tests for get_next_song() with shuffle off."""

    def test_repeat_off_plays_each_song_once(self, songs):
        """Test N calls return songs in order and call N+1 returns None."""
        playlist = Playlist("mix", songs)

        result = [playlist.get_next_song() for _ in range(len(songs))]

        assert result == songs
        assert playlist.get_next_song() is None

    def test_repeat_on_cycles(self, songs):
        """Test the first 2N+1 calls play the list twice plus one."""
        playlist = Playlist("mix", songs)
        playlist.repeat_on = True

        result = [playlist.get_next_song() for _ in range(2 * len(songs) + 1)]

        assert result == songs + songs + [songs[0]]

    def test_restart_after_end(self, songs):
        """Test iteration starts over from the first song after ending."""
        playlist = Playlist("mix", songs[:2])
        playlist.get_next_song()
        playlist.get_next_song()
        assert playlist.get_next_song() is None

        assert playlist.get_next_song() == songs[0]

    def test_single_song_repeat_off(self):
        """Test a one-song playlist plays once then ends."""
        song = make_song("Solo")
        playlist = Playlist("one", [song])

        assert playlist.get_next_song() == song
        assert playlist.get_next_song() is None

    def test_single_song_repeat_on(self):
        """Test a one-song playlist with repeat loops forever."""
        song = make_song("Solo")
        playlist = Playlist("one", [song])
        playlist.repeat_on = True

        assert [playlist.get_next_song() for _ in range(5)] == [song] * 5

    def test_next_index_matches_song(self, songs):
        """Test next_index() reports the position of the song handed out."""
        playlist = Playlist("mix", songs)

        assert playlist.next_index() == 0
        assert playlist.next_index() == 1
        assert playlist.cursor == 1

    def test_empty_playlist_raises(self):
        """Test advancing an empty playlist is rejected."""
        playlist = Playlist("empty")

        assert playlist.is_empty()
        with pytest.raises(PlaylistError):
            playlist.get_next_song()

    def test_reset_rewinds(self, songs):
        """Test reset() makes the next call return the first song."""
        playlist = Playlist("mix", songs)
        playlist.get_next_song()
        playlist.get_next_song()

        playlist.reset()

        assert playlist.get_next_song() == songs[0]

    def test_jump_to_continues_after_target(self, songs):
        """Test jump_to() makes sequential play continue after the target."""
        playlist = Playlist("mix", songs)
        playlist.get_next_song()

        playlist.jump_to(3)

        assert playlist.get_next_song() == songs[4]

    def test_jump_to_out_of_range(self, songs):
        """Test jump_to() rejects an invalid index."""
        playlist = Playlist("mix", songs)

        with pytest.raises(PlaylistError):
            playlist.jump_to(len(songs))


class TestShuffle:
    """Tests for shuffle iteration."""

    def test_shuffle_bounds(self, songs):
        """Test 1000 shuffled picks all come from the playlist."""
        playlist = Playlist("mix", songs)
        playlist.shuffle_on = True

        for _ in range(1000):
            index = playlist.next_index()
            assert 0 <= index < len(songs)

    def test_shuffle_reaches_last_song(self, songs):
        """Test the last song can be picked."""
        playlist = Playlist("mix", songs)
        playlist.shuffle_on = True

        picks = {playlist.next_index() for _ in range(1000)}

        assert len(songs) - 1 in picks

    def test_shuffle_single_song(self):
        """Test shuffling a one-song playlist does not error."""
        song = make_song("Solo")
        playlist = Playlist("one", [song])
        playlist.shuffle_on = True

        assert [playlist.get_next_song() for _ in range(10)] == [song] * 10

    def test_shuffle_never_ends(self, songs):
        """Test shuffle keeps returning songs with repeat off."""
        playlist = Playlist("mix", songs[:2])
        playlist.shuffle_on = True

        assert all(playlist.get_next_song() is not None for _ in range(20))

    def test_shuffle_does_not_move_cursor(self, songs):
        """Test shuffle leaves the sequential cursor alone."""
        playlist = Playlist("mix", songs)
        playlist.get_next_song()
        playlist.get_next_song()
        playlist.shuffle_on = True

        for _ in range(20):
            playlist.get_next_song()

        assert playlist.cursor == 1

    def test_toggles(self):
        """Test toggling shuffle and repeat."""
        playlist = Playlist("mix")

        playlist.toggle_shuffle()
        playlist.toggle_repeat()

        assert playlist.shuffle_on is True
        assert playlist.repeat_on is True

        playlist.toggle_shuffle()

        assert playlist.shuffle_on is False


class TestRemoveAt:
    """Tests for removing songs while iterating."""

    def test_remove_current_returns_next_in_slot(self, songs):
        """Test removing the handed-out song does not skip its successor."""
        playlist = Playlist("mix", songs)
        playlist.get_next_song()
        playlist.get_next_song()  # B

        playlist.remove_at(1)

        assert playlist.get_next_song() == songs[2]
        assert playlist.get_next_song() == songs[3]

    def test_remove_before_cursor(self, songs):
        """Test removing an earlier song keeps the cursor on the same song."""
        playlist = Playlist("mix", songs)
        for _ in range(3):
            playlist.get_next_song()  # C

        playlist.remove_at(0)

        assert playlist.cursor == 1
        assert playlist.get_next_song() == songs[3]

    def test_remove_after_cursor(self, songs):
        """Test removing a later song leaves iteration alone."""
        playlist = Playlist("mix", songs)
        playlist.get_next_song()

        playlist.remove_at(1)

        assert playlist.get_next_song() == songs[2]

    def test_remove_last_while_current_repeat_off(self, songs):
        """Test removing the current last song ends the playlist."""
        playlist = Playlist("mix", songs[:3])
        for _ in range(3):
            playlist.get_next_song()

        playlist.remove_at(2)

        assert playlist.get_next_song() is None

    def test_remove_last_while_current_repeat_on(self, songs):
        """Test removing the current last song wraps with repeat on."""
        playlist = Playlist("mix", songs[:3])
        playlist.repeat_on = True
        for _ in range(3):
            playlist.get_next_song()

        playlist.remove_at(2)

        assert playlist.get_next_song() == songs[0]

    def test_remove_first_before_start(self, songs):
        """Test removing the first song of a fresh playlist."""
        playlist = Playlist("mix", songs)

        playlist.remove_at(0)

        assert playlist.get_next_song() == songs[1]

    def test_remove_invalid_index(self, songs):
        """Test removing with invalid index raises."""
        playlist = Playlist("mix", songs)

        with pytest.raises(PlaylistError):
            playlist.remove_at(5)
        with pytest.raises(PlaylistError):
            playlist.remove_at(-1)

        assert len(playlist) == 5
