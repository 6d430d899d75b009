import pytest
from pathlib import Path
import sys

sys.path.insert(0, str(Path(__file__).parent.parent))
from osutunes import tui
from osutunes.app import App, UIMode
from osutunes.engine import QueueSource
from osutunes.playlist import Playlist


@pytest.fixture
def app(songs, engine):
    return App(songs, engine, [Playlist("mix", songs[:3])])


class TestTextHelpers:
    """Tests for width and truncation helpers."""

    def test_truncate_ascii(self):
        """Test plain text is cut with an ellipsis."""
        assert tui._truncate_to_width("Exit This Earth", 10) == "Exit Th..."

    def test_truncate_fits(self):
        """Test short text is unchanged."""
        assert tui._truncate_to_width("short", 10) == "short"

    def test_truncate_wide_chars(self):
        """Test double-width characters count as two columns."""
        result = tui._truncate_to_width("東方東方東方", 7)

        assert result == "東方..."
        assert tui._display_width(result) <= 7

    def test_truncate_zero_width(self):
        """Test a non-positive width gives an empty string."""
        assert tui._truncate_to_width("abc", 0) == ""

    def test_display_width_ignores_ansi(self):
        """Test escape codes take no columns."""
        assert tui._display_width("\033[1mbold\033[0m") == 4

    @pytest.mark.parametrize("rows,index,length,expected", [
        (5, 0, 3, (0, 3)),
        (5, 0, 20, (0, 5)),
        (5, 10, 20, (8, 13)),
        (5, 19, 20, (15, 20)),
    ])
    def test_visible_range(self, rows, index, length, expected):
        """Test the window keeps the index visible."""
        assert tui.visible_range(rows, index, length) == expected


class TestHandleKey:
    """Tests for key dispatch."""

    def test_tab_cycles_panes(self, app):
        """Test Tab moves focus."""
        assert tui.handle_key(app, "TAB") is True

        assert app.mode is UIMode.SEARCH

    def test_search_typing_and_enter(self, app, engine, songs):
        """Test typing in search then Enter queues the match."""
        app.mode = UIMode.SEARCH
        tui.handle_key(app, "C")

        tui.handle_key(app, "ENTER")

        assert engine.current_songs == [songs[2]]

    def test_search_q_is_text(self, app):
        """Test q types into the search box instead of quitting."""
        app.mode = UIMode.SEARCH

        assert tui.handle_key(app, "q") is True
        assert app.query == "q"

    def test_search_esc(self, app):
        """Test Esc clears the query, then leaves the pane."""
        app.mode = UIMode.SEARCH
        app.set_query("A")

        tui.handle_key(app, "ESC")
        assert app.query == ""
        assert app.mode is UIMode.SEARCH

        tui.handle_key(app, "ESC")
        assert app.mode is UIMode.NOW_PLAYING

    def test_quit_from_now_playing(self, app):
        """Test q quits from the queue pane."""
        assert tui.handle_key(app, "q") is False

    def test_quit_from_playlists(self, app):
        """Test q quits from the playlist pane."""
        app.mode = UIMode.PLAYLISTS

        assert tui.handle_key(app, "q") is False

    def test_new_playlist_entry(self, app):
        """Test n, a typed name and Enter create a playlist."""
        app.mode = UIMode.PLAYLISTS
        for key in ["n", "q", "x", "BACKSPACE", "y", "ENTER"]:
            assert tui.handle_key(app, key) is True

        assert app.playlists[-1].name == "qy"

    def test_playlist_load_and_unload(self, app, engine):
        """Test Enter loads and Esc unloads the selected playlist."""
        app.mode = UIMode.PLAYLISTS

        tui.handle_key(app, "ENTER")
        assert engine.source is QueueSource.PLAYLIST

        tui.handle_key(app, "ESC")
        assert engine.source is QueueSource.NONE
        assert app.mode is UIMode.PLAYLISTS

    def test_playlist_toggles(self, app):
        """Test e and w toggle shuffle and repeat."""
        app.mode = UIMode.PLAYLISTS

        tui.handle_key(app, "e")
        tui.handle_key(app, "w")

        assert app.playlists[0].shuffle_on is True
        assert app.playlists[0].repeat_on is True

    def test_now_playing_keys(self, app, engine, sink):
        """Test queue pane keys drive the engine."""
        app.load_selected_playlist()
        engine.tick()

        tui.handle_key(app, "j")
        tui.handle_key(app, "ENTER")
        assert engine.playing_index == 1

        tui.handle_key(app, " ")
        assert sink.is_paused() is True

        tui.handle_key(app, "+")
        assert engine.volume == 0.6

        tui.handle_key(app, "x")
        assert len(engine.current_songs) == 2

    def test_unknown_key_ignored(self, app):
        """Test unmapped keys do nothing."""
        assert tui.handle_key(app, "F") is True


class TestRender:
    """Tests for building the screen."""

    def setup_method(self):
        """Use plain colors."""
        self.theme = tui.Theme({})

    def test_render_shows_panes(self, app, engine, monkeypatch):
        """Test the frame includes each pane and the playing song."""
        monkeypatch.setattr(tui, "_get_terminal_size", lambda: (60, 100))
        app.load_selected_playlist()
        engine.tick()

        frame = tui._strip_ansi(tui.render(app, self.theme))

        assert "▶ Artist - A" in frame
        assert "Search" in frame
        assert "Now Playing (3)" in frame
        assert "mix (3)" in frame
        assert "vol 0.5" in frame

    def test_render_empty(self, engine, monkeypatch):
        """Test an empty app renders placeholders."""
        monkeypatch.setattr(tui, "_get_terminal_size", lambda: (60, 100))
        app = App([], engine)

        frame = tui._strip_ansi(tui.render(app, self.theme))

        assert "no matches" in frame
        assert "queue is empty" in frame
        assert "press n to create a playlist" in frame

    def test_theme_falls_back(self):
        """Test unknown color names use defaults."""
        theme = tui.Theme({"focus": "chartreuse"})

        assert theme.focus == tui.COLOR_MAP["yellow"]


class TestMain:
    """Tests for the command line entry point."""

    def test_version(self, capsys):
        """Test --version prints and exits 0."""
        assert tui.main(["--version"]) == 0
        assert "osutunes" in capsys.readouterr().out

    def test_help(self, capsys):
        """Test --help prints usage."""
        assert tui.main(["--help"]) == 0
        assert "--rescan" in capsys.readouterr().out

    def test_config_without_path(self):
        """Test --config without a value is a usage error."""
        assert tui.main(["--config"]) == 2
