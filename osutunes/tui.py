#!/usr/bin/env python3
"""
osutunes terminal UI.

Three panes share the screen:
- Search: filter the catalog, queue songs, add them to playlists
- Playlists: create, load, shuffle/repeat and save playlists
- Now Playing: the queue; play, pause or remove the hovered song

Tab moves focus between panes. The main loop polls stdin for one key per
tick and lets the queue engine start the next song whenever the audio
sink runs dry.
"""
import fcntl
import re
import select
import shutil
import signal
import struct
import sys
import termios
import tty
import unicodedata
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from osutunes import __version__, __description__
from osutunes.app import App, UIMode
from osutunes.audio import get_audio_sink
from osutunes.catalog import load_or_scan
from osutunes.config import ConfigManager
from osutunes.engine import QueueEngine, QueueSource
from osutunes.logging_config import get_logger, setup_logging, OsuTunesError
from osutunes.models import format_length
from osutunes.playlist import load_playlists

logger = get_logger('tui')

COLOR_MAP: Dict[str, str] = {
    "black": "\033[30m",
    "red": "\033[31m",
    "green": "\033[32m",
    "yellow": "\033[33m",
    "blue": "\033[34m",
    "magenta": "\033[35m",
    "cyan": "\033[36m",
    "white": "\033[37m",
    "gray": "\033[90m",
    "bold": "\033[1m",
    "dim": "\033[2m",
    "reverse": "\033[7m",
    "reset": "\033[0m",
    "default": "",
}
C_RESET = COLOR_MAP["reset"]

SEARCH_ROWS: int = 10
QUEUE_ROWS: int = 8
PLAYLIST_ROWS: int = 5

KEY_NAMES: Dict[str, str] = {
    "\x1b[A": "UP",
    "\x1b[B": "DOWN",
    "\x1b[C": "RIGHT",
    "\x1b[D": "LEFT",
    "\x1b[3~": "DELETE",
    "\x1b": "ESC",
    "\r": "ENTER",
    "\n": "ENTER",
    "\t": "TAB",
    "\x7f": "BACKSPACE",
    "\x08": "BACKSPACE",
}


class Theme:
    """ANSI codes for the configured colors."""

    def __init__(self, colors: Dict[str, str]) -> None:
        self.header = COLOR_MAP.get(colors.get("header", ""), COLOR_MAP["bold"])
        self.secondary = COLOR_MAP.get(colors.get("secondary", ""), COLOR_MAP["gray"])
        self.selection = COLOR_MAP.get(colors.get("selection", ""), COLOR_MAP["reverse"])
        self.focus = COLOR_MAP.get(colors.get("focus", ""), COLOR_MAP["yellow"])


# =============================================================================
# Text helpers
# =============================================================================
def _get_terminal_size() -> Tuple[int, int]:
    """(rows, columns) of the terminal the panes are drawn on."""
    try:
        if sys.stdout.isatty():
            winsize = struct.pack("HHHH", 0, 0, 0, 0)
            result = fcntl.ioctl(sys.stdout.fileno(), termios.TIOCGWINSZ, winsize)
            rows, cols, _, _ = struct.unpack("HHHH", result)
            if rows > 0 and cols > 0:
                return (rows, cols)
    except OSError:
        pass

    size = shutil.get_terminal_size()
    return (size.lines, size.columns)


def _strip_ansi(text: str) -> str:
    """Drop color codes so pane lines can be measured."""
    return re.sub(r"\x1b\[[0-?]*[ -/]*[@-~]", "", text)


@lru_cache(maxsize=4096)
def _char_display_width(ch: str) -> int:
    """Columns a character takes: 0 for combining marks, 2 for wide CJK titles."""
    if not ch:
        return 0
    cat = unicodedata.category(ch)
    if cat in ("Mn", "Me", "Cf"):
        return 0
    ea = unicodedata.east_asian_width(ch)
    if ea in ("F", "W"):
        return 2
    return 1


def _display_width(text: str) -> int:
    """Columns `text` takes on screen, color codes excluded."""
    return sum(_char_display_width(ch) for ch in _strip_ansi(text))


def _truncate_to_width(text: str, max_width: int, ellipsis: str = "...") -> str:
    """Shorten a song or playlist name to fit `max_width` columns.

    The cut is marked with `ellipsis` unless the pane is too narrow for it.
    """
    if max_width <= 0:
        return ""
    if _display_width(text) <= max_width:
        return text

    e_width = _display_width(ellipsis)
    target = max_width if e_width >= max_width else max_width - e_width

    out = []
    cur = 0
    for ch in text:
        w = _char_display_width(ch)
        if cur + w > target:
            break
        out.append(ch)
        cur += w

    if e_width >= max_width:
        return "".join(out)
    return "".join(out) + ellipsis


def visible_range(rows: int, index: int, length: int) -> Tuple[int, int]:
    """Window of at most ``rows`` items that keeps ``index`` on screen.

    Returns:
        (start, end) slice bounds
    """
    if length <= rows:
        return (0, length)
    start = max(0, min(index - rows // 2, length - rows))
    return (start, start + rows)


# =============================================================================
# Rendering
# =============================================================================
def _pane_title(app: App, mode: UIMode, title: str, theme: Theme) -> str:
    if app.mode is mode:
        return f"{theme.focus}{theme.header}▶ {title}{C_RESET}"
    return f"{theme.header}  {title}{C_RESET}"


def _header_lines(app: App, theme: Theme, width: int) -> List[str]:
    snap = app.engine.snapshot()
    song = snap.now_playing
    if song is not None:
        state = "⏸" if snap.is_paused else "▶"
        text = f"{state} {song.display_name}  {format_length(song.length_seconds)}"
    else:
        text = "osutunes"
    flags = ""
    if snap.source is QueueSource.PLAYLIST and app.engine.playlist is not None:
        playlist = app.engine.playlist
        flags = (f"  [{snap.playlist_name}"
                 f"{' shuffle' if playlist.shuffle_on else ''}"
                 f"{' repeat' if playlist.repeat_on else ''}]")
    volume = f"vol {snap.volume:.1f}"
    return [
        f"{theme.header}{_truncate_to_width(text, width - 12)}{C_RESET}"
        f"{theme.secondary}{flags}  {volume}{C_RESET}",
        "",
    ]


def _search_lines(app: App, theme: Theme, width: int) -> List[str]:
    lines = [_pane_title(app, UIMode.SEARCH, "Search", theme),
             f"  / {app.query}"]
    start, end = visible_range(SEARCH_ROWS, app.query_index, len(app.queried_songs))
    for idx in range(start, end):
        song = app.queried_songs[idx]
        name = _truncate_to_width(song.display_name, width - 12)
        length = format_length(song.length_seconds)
        if idx == app.query_index and app.mode is UIMode.SEARCH:
            lines.append(f"  {theme.selection}{name}{C_RESET} {theme.secondary}{length}{C_RESET}")
        else:
            lines.append(f"  {name} {theme.secondary}{length}{C_RESET}")
    if not app.queried_songs:
        lines.append(f"  {theme.secondary}no matches{C_RESET}")
    lines.append("")
    return lines


def _queue_lines(app: App, theme: Theme, width: int) -> List[str]:
    snap = app.engine.snapshot()
    lines = [_pane_title(app, UIMode.NOW_PLAYING, f"Now Playing ({len(snap.current_songs)})", theme)]
    start, end = visible_range(QUEUE_ROWS, snap.hovered_index, len(snap.current_songs))
    for idx in range(start, end):
        song = snap.current_songs[idx]
        marker = "♪ " if snap.is_playing and idx == snap.playing_index else "  "
        name = _truncate_to_width(song.display_name, width - 6)
        if idx == snap.hovered_index and app.mode is UIMode.NOW_PLAYING:
            lines.append(f"  {marker}{theme.selection}{name}{C_RESET}")
        else:
            lines.append(f"  {marker}{name}")
    if not snap.current_songs:
        lines.append(f"  {theme.secondary}queue is empty{C_RESET}")
    lines.append("")
    return lines


def _playlist_lines(app: App, theme: Theme, width: int) -> List[str]:
    lines = [_pane_title(app, UIMode.PLAYLISTS, "Playlists", theme)]
    start, end = visible_range(PLAYLIST_ROWS, app.playlist_index, len(app.playlists))
    for idx in range(start, end):
        playlist = app.playlists[idx]
        name = _truncate_to_width(f"{playlist.name} ({len(playlist)})", width - 4)
        if idx == app.playlist_index and app.mode is UIMode.PLAYLISTS:
            lines.append(f"  {theme.selection}{name}{C_RESET}")
        else:
            lines.append(f"  {name}")
    if app.is_adding_playlist:
        lines.append(f"  new: {app.new_playlist_name}_")
    elif not app.playlists:
        lines.append(f"  {theme.secondary}press n to create a playlist{C_RESET}")
    lines.append("")
    return lines


def _help_line(app: App) -> str:
    if app.mode is UIMode.SEARCH:
        return "type to search  enter queue  → add to playlist  ← mod  esc clear  tab next"
    if app.mode is UIMode.PLAYLISTS:
        return "enter load  n new  e shuffle  w repeat  s save  esc unload  q quit"
    return "enter play  space pause  x/del remove  +/- volume  esc clear  q quit"


def render(app: App, theme: Theme) -> str:
    """Build the full screen as one string."""
    rows, width = _get_terminal_size()
    lines: List[str] = []
    lines.extend(_header_lines(app, theme, width))
    lines.extend(_search_lines(app, theme, width))
    lines.extend(_queue_lines(app, theme, width))
    lines.extend(_playlist_lines(app, theme, width))
    lines.append(f"{theme.secondary}{_truncate_to_width(app.status, width)}{C_RESET}")
    lines.append(f"{theme.secondary}{_truncate_to_width(_help_line(app), width)}{C_RESET}")
    return "\n".join(lines[:max(1, rows - 1)])


# =============================================================================
# Input Handling Functions
# =============================================================================
def read_key(timeout: float) -> Optional[str]:
    """Wait up to ``timeout`` seconds for one key press.

    Returns:
        A key name from KEY_NAMES, a single character, or None
    """
    if not select.select([sys.stdin], [], [], timeout)[0]:
        return None
    ch = sys.stdin.read(1)
    if ch == "\x1b":
        seq = ch
        while select.select([sys.stdin], [], [], 0.01)[0]:
            seq += sys.stdin.read(1)
            if seq[-1].isalpha() or seq[-1] == "~":
                break
        return KEY_NAMES.get(seq, "ESC" if seq == ch else None)
    return KEY_NAMES.get(ch, ch)


def _handle_search(app: App, key: str) -> None:
    if key == "ESC":
        if app.query:
            app.set_query("")
        else:
            app.mode = UIMode.NOW_PLAYING
    elif key == "ENTER":
        app.queue_selected()
    elif key == "RIGHT":
        app.add_selected_to_playlist()
    elif key == "LEFT":
        app.cycle_modifier()
    elif key == "UP":
        app.move_query(-1)
    elif key == "DOWN":
        app.move_query(1)
    elif key == "BACKSPACE":
        app.backspace()
    elif len(key) == 1 and key.isprintable():
        app.type_char(key)


def _handle_playlists(app: App, key: str) -> bool:
    """Handle playlist pane keys.

    Returns:
        False if the user asked to quit, True otherwise
    """
    if app.is_adding_playlist:
        if key == "ENTER":
            app.create_playlist()
        elif key == "ESC":
            app.cancel_new_playlist()
        elif key == "BACKSPACE":
            app.new_playlist_name = app.new_playlist_name[:-1]
        elif len(key) == 1 and key.isprintable():
            app.new_playlist_name += key
        return True

    if key == "ENTER":
        app.load_selected_playlist()
    elif key == "ESC":
        if app.engine.source is QueueSource.PLAYLIST:
            app.engine.unload_playlist()
        else:
            app.mode = UIMode.NOW_PLAYING
    elif key == "UP":
        app.move_playlist(-1)
    elif key == "DOWN":
        app.move_playlist(1)
    elif key == "n":
        app.start_new_playlist()
    elif key == "e":
        app.toggle_shuffle()
    elif key == "w":
        app.toggle_repeat()
    elif key == "s":
        app.save_playlists()
    elif key == "q":
        return False
    return True


def _handle_now_playing(app: App, key: str) -> bool:
    """Handle now-playing pane keys.

    Returns:
        False if the user asked to quit, True otherwise
    """
    engine = app.engine
    if key == "ENTER":
        engine.force_play_hovered()
    elif key == " ":
        engine.toggle_pause()
    elif key in ("DELETE", "x"):
        engine.remove_hovered()
    elif key in ("UP", "k"):
        engine.hover_up()
    elif key in ("DOWN", "j"):
        engine.hover_down()
    elif key in ("+", "="):
        engine.volume_up()
    elif key in ("-", "_"):
        engine.volume_down()
    elif key == "ESC":
        engine.unload_playlist()
    elif key == "q":
        return False
    return True


def handle_key(app: App, key: str) -> bool:
    """Dispatch a key press to the focused pane.

    Returns:
        False if the user asked to quit, True otherwise
    """
    if key == "TAB":
        app.cycle_mode()
        return True
    if app.mode is UIMode.SEARCH:
        _handle_search(app, key)
        return True
    if app.mode is UIMode.PLAYLISTS:
        return _handle_playlists(app, key)
    return _handle_now_playing(app, key)


# =============================================================================
# Main Loop
# =============================================================================
def _exit_now(signum: Optional[int] = None, frame: Any = None) -> None:
    raise SystemExit(0)


def run(app: App, theme: Theme, tick_interval: float) -> None:
    """Run the input/render loop until the user quits."""
    fd = sys.stdin.fileno()
    old = termios.tcgetattr(fd)
    tty.setcbreak(fd)
    signal.signal(signal.SIGTERM, _exit_now)
    signal.signal(signal.SIGHUP, _exit_now)

    # Hide cursor for clean UI display
    print("\033[?25l", end="")
    last_frame = ""

    try:
        while True:
            app.engine.tick()

            try:
                key = read_key(tick_interval)
            except (EOFError, OSError):
                break
            if key is not None and not handle_key(app, key):
                break

            frame = render(app, theme)
            if frame != last_frame:
                print("\033[2J\033[H" + frame, end="", flush=True)
                last_frame = frame
    except KeyboardInterrupt:
        pass
    finally:
        app.engine.sink.stop()
        print("\033[?25h", end="")
        termios.tcsetattr(fd, termios.TCSADRAIN, old)
        print("\033[2J\033[H", end="")
        print("\n  Bye!")


def _print_usage() -> None:
    print(f"osutunes {__version__}")
    print("")
    print("Usage:")
    print("  osutunes                  # Run the player")
    print("  osutunes --rescan         # Rebuild the song catalog before starting")
    print("  osutunes --config <path>  # Use another config file")
    print("  osutunes --version        # Show version info")
    print("  osutunes --help           # Show this help")


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the player."""
    argv = sys.argv[1:] if argv is None else argv

    if "--version" in argv or "-v" in argv:
        print(f"osutunes {__version__}")
        print(__description__)
        return 0
    if "--help" in argv or "-h" in argv:
        _print_usage()
        return 0

    config_path = None
    if "--config" in argv:
        idx = argv.index("--config")
        if idx + 1 >= len(argv):
            _print_usage()
            return 2
        config_path = Path(argv[idx + 1])

    if not sys.stdin.isatty():
        print("Error: Must run in interactive terminal")
        return 1

    manager = ConfigManager(config_path)
    config = manager.config
    try:
        setup_logging(config.logging_level, manager.get_log_file_path(), console=False)
    except OsuTunesError as e:
        print(f"Error: {e}")
        return 1
    for issue in manager.validate_config():
        print(f"  Warning: {issue}")
    if manager.created:
        print(f"\n  Config file created at: {manager.config_path}")

    print("\n  Loading song catalog...")
    try:
        songs = load_or_scan(
            manager.get_songs_directory_path(),
            manager.get_catalog_cache_path(),
            use_cache=config.songs_use_cache and "--rescan" not in argv,
            workers=config.songs_scan_workers,
        )
        sink = get_audio_sink(config.audio_player)
    except OsuTunesError as e:
        logger.error(f"Startup failed: {e}")
        print(f"Error: {e}")
        return 1

    engine = QueueEngine(sink, manager.get_songs_directory_path(), config.audio_volume)
    app = App(songs, engine, load_playlists(manager.get_playlist_file_path()),
              manager.get_playlist_file_path())
    theme = Theme({
        "header": config.colors_header,
        "secondary": config.colors_secondary,
        "selection": config.colors_selection,
        "focus": config.colors_focus,
    })
    logger.info(f"Starting with {len(songs)} songs and {len(app.playlists)} playlists")
    run(app, theme, config.ui_tick_interval)
    return 0


if __name__ == "__main__":
    sys.exit(main())
