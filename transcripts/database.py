"""Read-only access to the multizork SQLite database."""

# SPDX-License-Identifier: GPL-3.0-or-later

from __future__ import annotations

import logging
import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

from .models import Instance, Player, PlayerTranscriptHeader, TranscriptLine

logger = logging.getLogger(__name__)

_INSTANCE_SQL = "SELECT * FROM instances WHERE hashid = ? LIMIT 1"
_PLAYERS_SQL = "SELECT * FROM players WHERE instance = ? ORDER BY id"
_TRANSCRIPT_SQL = "SELECT * FROM transcripts WHERE player = ? ORDER BY id"
_PLAYER_HEADER_SQL = (
    "SELECT p.id, p.username, i.crashed FROM players AS p"
    " INNER JOIN instances AS i ON p.instance = i.id"
    " WHERE i.hashid = ? AND p.id = ? LIMIT 1"
)


class DatabaseUnavailableError(RuntimeError):
    """Raised when the transcript database cannot be opened for reading."""


def _read_only_uri(path: Path) -> str:
    return path.resolve().as_uri() + "?mode=ro"


class TranscriptDatabase:
    """Own a read-only SQLite connection to the daemon's database."""

    def __init__(self, db_path: Path | str) -> None:
        self.db_path = Path(db_path)
        self._connection: sqlite3.Connection | None = None

    def open(self) -> None:
        """Open the connection; raise :class:`DatabaseUnavailableError` on failure."""

        if self._connection is not None:
            return
        if not self.db_path.is_file():
            raise DatabaseUnavailableError(f"No database file at {self.db_path}")
        try:
            connection = sqlite3.connect(_read_only_uri(self.db_path), uri=True)
            # Forces sqlite to read the header so a non-database file fails here.
            connection.execute("SELECT name FROM sqlite_master LIMIT 1").fetchall()
        except sqlite3.Error as exc:
            raise DatabaseUnavailableError(
                f"Could not open {self.db_path} read-only"
            ) from exc
        connection.row_factory = sqlite3.Row
        self._connection = connection
        logger.debug("Opened %s read-only", self.db_path)

    @property
    def connection(self) -> sqlite3.Connection:
        if self._connection is None:
            self.open()
        assert self._connection is not None
        return self._connection

    def close(self) -> None:
        if self._connection is not None:
            self._connection.close()
            self._connection = None
            logger.debug("Closed %s", self.db_path)

    @contextmanager
    def cursor(self) -> Iterator[sqlite3.Cursor]:
        cur = self.connection.cursor()
        try:
            yield cur
        finally:
            cur.close()

    # Public API ---------------------------------------------------------
    def lookup_instance(self, hashid: str) -> Instance | None:
        """Return the instance published as ``hashid`` or ``None``."""

        logger.debug("Looking up instance %r", hashid)
        with self.cursor() as cur:
            cur.execute(_INSTANCE_SQL, (hashid,))
            row = cur.fetchone()
        if row is None:
            return None
        return Instance.from_row(row)

    def list_players(self, instance_row_id: int) -> Iterator[Player]:
        """Yield the players of an instance ordered by id."""

        logger.debug("Listing players for instance row %d", instance_row_id)
        with self.cursor() as cur:
            cur.execute(_PLAYERS_SQL, (instance_row_id,))
            for row in cur:
                yield Player.from_row(row)

    def list_transcript(self, player_row_id: int) -> Iterator[TranscriptLine]:
        """Yield a player's transcript lines in recorded order."""

        logger.debug("Listing transcript for player row %d", player_row_id)
        with self.cursor() as cur:
            cur.execute(_TRANSCRIPT_SQL, (player_row_id,))
            for row in cur:
                yield TranscriptLine.from_row(row)

    def lookup_player_with_crash_flag(
        self, instance_hashid: str, player_row_id: int
    ) -> PlayerTranscriptHeader | None:
        """Return the player only when it belongs to ``instance_hashid``."""

        logger.debug(
            "Looking up player %d in instance %r", player_row_id, instance_hashid
        )
        with self.cursor() as cur:
            cur.execute(_PLAYER_HEADER_SQL, (instance_hashid, player_row_id))
            row = cur.fetchone()
        if row is None:
            return None
        return PlayerTranscriptHeader(
            player_row_id=int(row["id"]),
            username=str(row["username"] or ""),
            crashed=bool(row["crashed"]),
        )


@contextmanager
def transcript_database(db_path: Path | str) -> Iterator[TranscriptDatabase]:
    database = TranscriptDatabase(db_path)
    try:
        database.open()
        yield database
    finally:
        database.close()


__all__ = ["DatabaseUnavailableError", "TranscriptDatabase", "transcript_database"]
