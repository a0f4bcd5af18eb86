"""Read-only records mirroring the multizork daemon's database rows."""

# SPDX-License-Identifier: GPL-3.0-or-later

from __future__ import annotations

import sqlite3
from dataclasses import dataclass
from enum import IntEnum


class TextType(IntEnum):
    """Classification the daemon stores with every transcript line."""

    GAME_OUTPUT = 0
    USER_INPUT = 1
    SYSTEM_MESSAGE = 2

    @classmethod
    def from_value(cls, value: object) -> "TextType":
        """Return the member for ``value``; unknown values are system messages."""

        try:
            return cls(int(value))
        except (TypeError, ValueError):
            return cls.SYSTEM_MESSAGE


@dataclass(frozen=True)
class Instance:
    """One play session of a story file."""

    row_id: int
    hashid: str
    story_filename: str
    num_players: int
    start_time: int
    save_time: int
    instructions_run: int
    crashed: bool = False

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> "Instance":
        return cls(
            row_id=int(row["id"]),
            hashid=str(row["hashid"]),
            story_filename=str(row["story_filename"] or ""),
            num_players=int(row["num_players"] or 0),
            start_time=int(row["starttime"] or 0),
            save_time=int(row["savetime"] or 0),
            instructions_run=int(row["instructions_run"] or 0),
            crashed=bool(row["crashed"]),
        )


@dataclass(frozen=True)
class Player:
    """A participant in an :class:`Instance`."""

    row_id: int
    instance_row_id: int
    username: str

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> "Player":
        return cls(
            row_id=int(row["id"]),
            instance_row_id=int(row["instance"]),
            username=str(row["username"] or ""),
        )


@dataclass(frozen=True)
class TranscriptLine:
    """One recorded message in a player's history."""

    row_id: int
    player_row_id: int
    text_type: TextType
    content: str

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> "TranscriptLine":
        return cls(
            row_id=int(row["id"]),
            player_row_id=int(row["player"]),
            text_type=TextType.from_value(row["texttype"]),
            content=str(row["content"] or ""),
        )


@dataclass(frozen=True)
class PlayerTranscriptHeader:
    """Player details joined with the owning instance's crash flag."""

    player_row_id: int
    username: str
    crashed: bool


__all__ = [
    "Instance",
    "Player",
    "PlayerTranscriptHeader",
    "TextType",
    "TranscriptLine",
]
