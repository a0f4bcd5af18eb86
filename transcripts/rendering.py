"""HTML rendering for the transcript viewer pages."""

# SPDX-License-Identifier: GPL-3.0-or-later

from __future__ import annotations

import logging
from datetime import datetime
from functools import lru_cache
from html import escape
from pathlib import Path
from typing import Iterable, List, Sequence
from urllib.parse import quote

from .config import ViewerConfig
from .models import Instance, Player, PlayerTranscriptHeader, TextType, TranscriptLine

logger = logging.getLogger(__name__)

SNIPPET_DIR = Path(__file__).resolve().parent / "web" / "snippets"

CRASH_MARKER = "*** GAME INSTANCE CRASHED HERE ***"

_CSS_CLASSES = {
    TextType.GAME_OUTPUT: "gameoutput",
    TextType.USER_INPUT: "userinput",
    TextType.SYSTEM_MESSAGE: "sysmessage",
}
_PROMPT_SUFFIX = "\n>"


@lru_cache(maxsize=None)
def _load_snippet(snippet_name: str) -> str:
    """Return the snippet text stored under ``snippet_name``."""

    path = SNIPPET_DIR / snippet_name
    if not path.exists():
        raise FileNotFoundError(f"Missing snippet file: {snippet_name}")
    return path.read_text(encoding="utf-8").strip()


def site_url(config: ViewerConfig, *parts: str) -> str:
    """Return an absolute link below the configured base URL."""

    base = config.base_url.rstrip("/")
    if not parts:
        return base + "/"
    return base + "/" + "/".join(quote(str(part), safe="") for part in parts)


def format_timestamp(value: int) -> str:
    """Format a unix timestamp as local ``MM/DD/YY HH:MM:SS TZ``.

    Values the platform cannot represent are shown as the raw integer.
    """

    try:
        moment = datetime.fromtimestamp(value).astimezone()
    except (OverflowError, OSError, ValueError):
        logger.warning("Timestamp %r is out of range; showing it unformatted", value)
        return str(value)
    return moment.strftime("%m/%d/%y %H:%M:%S %Z")


def _render_page(config: ViewerConfig, content: str, *, subtitle: str | None = None) -> str:
    title = escape(config.title, False)
    if subtitle:
        title = f"{title} - {escape(subtitle, False)}"
    footer = _load_snippet("global_footer.html").format(
        home_url=escape(site_url(config)),
        title=escape(config.title, False),
    )
    return (
        f"<html><head><title>{title}</title>"
        + f"<style>{_load_snippet('style.css')}</style>"
        + "</head><body>\n"
        + content
        + footer
        + "\n</body></html>\n"
    )


def render_error_page(config: ViewerConfig, status_line: str, message: str) -> str:
    content = (
        f"<p><h1>{escape(status_line, False)}</h1></p>\n\n"
        + f"<p>{escape(message, False)}</p>\n\n"
    )
    return _render_page(config, content)


def render_landing_page(config: ViewerConfig) -> str:
    title = escape(config.title, False)
    home = site_url(config)
    example_game = escape(f"{home}game/<instance>", False)
    example_player = escape(f"{home}player/<instance>/<player>", False)
    example_raw = escape(f"{home}rawplayer/<instance>/<player>", False)
    content = (
        f"<p><h1>{title} transcripts</h1></p>\n"
        + "<p>Every game played on this server is recorded: each player's view of "
        + "the story, every command they typed, and the messages the server sent "
        + "along the way.</p>\n"
        + "<p>When a game ends, the server tells each player where to find the "
        + "record of their game. The pages are organized like this:</p>\n"
        + "<ul>\n"
        + f"<li><code>{example_game}</code>: details about one game instance and "
        + "links to each of its players' transcripts.</li>\n"
        + f"<li><code>{example_player}</code>: one player's transcript, with game "
        + "output, typed commands and server messages styled differently.</li>\n"
        + f"<li><code>{example_raw}</code>: the same transcript as plain text, "
        + "exactly as the player saw it.</li>\n"
        + "</ul>\n"
    )
    return _render_page(config, content)


def _player_links(config: ViewerConfig, instance: Instance, players: Sequence[Player]) -> str:
    if not players:
        return " (no transcripts found!?)"
    links: List[str] = []
    for player in players:
        href = escape(site_url(config, "player", instance.hashid, str(player.row_id)))
        links.append(f"<a href='{href}'>{escape(player.username, False)}</a>")
    return " [" + " | ".join(links) + "]"


def render_instance_page(
    config: ViewerConfig, instance: Instance, players: Iterable[Player]
) -> str:
    player_list = list(players)
    hashid = escape(instance.hashid, False)
    content = (
        f"<p><h1>Game instance '{hashid}'</h1></p>\n"
        + "<p><ul>\n"
        + f"<li>story file: '{escape(instance.story_filename, False)}'</li>\n"
        + f"<li>number of players: {instance.num_players}</li>\n"
        + f"<li>started: {escape(format_timestamp(instance.start_time), False)}</li>\n"
        + f"<li>last saved: {escape(format_timestamp(instance.save_time), False)}</li>\n"
        + f"<li>Z-Machine instructions run: {instance.instructions_run}</li>\n"
        + f"<li>crashed: {'yes' if instance.crashed else 'no'}</li>\n"
        + "<li>Transcripts available for players:"
        + _player_links(config, instance, player_list)
        + "</li>\n</ul></p>\n"
    )
    return _render_page(config, content, subtitle=f"game {instance.hashid}")


def _transcript_header(
    config: ViewerConfig,
    instance_hashid: str,
    header: PlayerTranscriptHeader,
    *,
    raw: bool,
) -> str:
    player_id = str(header.player_row_id)
    game_href = escape(site_url(config, "game", instance_hashid))
    if raw:
        switch_href = escape(site_url(config, "player", instance_hashid, player_id))
        switch_label = "[view annotated transcript]"
    else:
        switch_href = escape(site_url(config, "rawplayer", instance_hashid, player_id))
        switch_label = "[view raw transcript]"
    hashid = escape(instance_hashid, False)
    return (
        f"<p><h1>Transcript for player '{escape(header.username, False)}'</h1></p>\n"
        + "<p>Details on this run of the game: "
        + f"<a href='{game_href}'>[instance {hashid}]</a></p>\n"
        + f"<p><a href='{switch_href}'>{switch_label}</a></p>\n"
    )


def render_annotated_line(line: TranscriptLine) -> str:
    """Return one transcript line as a styled span.

    A system message ending in a fresh ``>`` prompt has the prompt split off
    into its own game-output span.
    """

    css_class = _CSS_CLASSES.get(line.text_type, "sysmessage")
    content = line.content
    split_prompt = (
        line.text_type is TextType.SYSTEM_MESSAGE and content.endswith(_PROMPT_SUFFIX)
    )
    if split_prompt:
        content = content[:-1]
    body = escape(content, False).replace("\n", "<br/>")
    span = f"<span class='{css_class}'>{body}</span>"
    if split_prompt:
        span += "<span class='gameoutput'>></span>"
    return span


def render_transcript_page(
    config: ViewerConfig,
    instance_hashid: str,
    header: PlayerTranscriptHeader,
    lines: Iterable[TranscriptLine],
) -> str:
    body = "".join(render_annotated_line(line) for line in lines)
    crash_block = ""
    if header.crashed:
        crash_block = f"<div class='crashnotice'>{CRASH_MARKER}</div>\n"
    content = (
        _transcript_header(config, instance_hashid, header, raw=False)
        + f"<div class='transcript'>{body}</div>\n"
        + crash_block
    )
    return _render_page(
        config,
        content,
        subtitle=f"player {instance_hashid}/{header.player_row_id}",
    )


def render_raw_transcript_page(
    config: ViewerConfig,
    instance_hashid: str,
    header: PlayerTranscriptHeader,
    lines: Iterable[TranscriptLine],
) -> str:
    text = "".join(escape(line.content, False) for line in lines)
    if header.crashed:
        text += f"\n{CRASH_MARKER}\n"
    content = (
        _transcript_header(config, instance_hashid, header, raw=True)
        + f"<pre>\n{text}</pre>\n"
    )
    return _render_page(
        config,
        content,
        subtitle=f"player {instance_hashid}/{header.player_row_id}",
    )


__all__ = [
    "CRASH_MARKER",
    "format_timestamp",
    "render_annotated_line",
    "render_error_page",
    "render_instance_page",
    "render_landing_page",
    "render_raw_transcript_page",
    "render_transcript_page",
    "site_url",
]
