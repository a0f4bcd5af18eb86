"""Flask web service exposing multizork transcripts over HTTP."""

# SPDX-License-Identifier: GPL-3.0-or-later

from __future__ import annotations

import logging
import os
from dataclasses import replace

from flask import Flask, Response, g, request
from dotenv import load_dotenv
from werkzeug.exceptions import HTTPException

from transcripts.config import ViewerConfig, load_viewer_config, normalize_base_url
from transcripts.database import DatabaseUnavailableError, TranscriptDatabase
from transcripts.errors import NotFoundError, PageError, ServiceUnavailableError
from transcripts.rendering import (
    render_error_page,
    render_instance_page,
    render_landing_page,
    render_raw_transcript_page,
    render_transcript_page,
)
from transcripts.routing import Route, RouteMatch, parse_route


logger = logging.getLogger(__name__)


load_dotenv()

# SQLite integers are signed 64-bit.
_MAX_ROW_ID = 2**63 - 1

_HTTP_ERROR_MESSAGES = {
    404: "No such page",
    405: "Request not supported",
}


def _parse_player_id(value: str) -> int:
    """Return ``value`` as a player row id or raise :class:`NotFoundError`."""

    if not value.isascii() or not value.isdigit():
        raise NotFoundError()
    player_id = int(value)
    if player_id > _MAX_ROW_ID:
        raise NotFoundError()
    return player_id


def create_app(config: ViewerConfig | None = None) -> Flask:
    """Return a configured Flask application serving the transcript pages."""

    logging.basicConfig(level=os.environ.get("LOG_LEVEL", "INFO"))
    app = Flask(__name__)
    viewer_config = config or load_viewer_config()
    viewer_config = replace(
        viewer_config, base_url=normalize_base_url(viewer_config.base_url)
    )
    app.config["VIEWER"] = viewer_config
    logger.info(
        "Serving transcripts from %s under %s",
        viewer_config.database_path,
        viewer_config.base_url,
    )

    def _html(page: str, status: int = 200) -> Response:
        return Response(page, status=status, mimetype="text/html")

    def _database() -> TranscriptDatabase:
        return g.transcript_db

    def _show_instance(hashid: str) -> str:
        instance = _database().lookup_instance(hashid)
        if instance is None:
            logger.info("No instance %r", hashid)
            raise NotFoundError()
        players = _database().list_players(instance.row_id)
        return render_instance_page(viewer_config, instance, players)

    def _show_player(hashid: str, player_arg: str, *, raw: bool) -> str:
        player_id = _parse_player_id(player_arg)
        header = _database().lookup_player_with_crash_flag(hashid, player_id)
        if header is None:
            logger.info("No player %d in instance %r", player_id, hashid)
            raise NotFoundError()
        lines = list(_database().list_transcript(header.player_row_id))
        if raw:
            return render_raw_transcript_page(viewer_config, hashid, header, lines)
        return render_transcript_page(viewer_config, hashid, header, lines)

    def _dispatch(match: RouteMatch) -> str:
        route = match.route
        if route is Route.LANDING:
            return render_landing_page(viewer_config)
        if route is Route.INSTANCE:
            return _show_instance(match.args[0])
        if route is Route.PLAYER:
            return _show_player(match.args[0], match.args[1], raw=False)
        if route is Route.RAW_PLAYER:
            return _show_player(match.args[0], match.args[1], raw=True)
        if route is Route.NOT_FOUND:
            raise NotFoundError()
        raise AssertionError(f"Unhandled route {route!r}")

    @app.before_request
    def open_database() -> None:
        logger.info("%s %s", request.method, request.path)
        database = TranscriptDatabase(viewer_config.database_path)
        try:
            database.open()
        except DatabaseUnavailableError as exc:
            logger.warning("Database unavailable: %s", exc)
            raise ServiceUnavailableError() from exc
        g.transcript_db = database

    @app.teardown_request
    def close_database(_: BaseException | None) -> None:
        database = g.pop("transcript_db", None)
        if database is not None:
            database.close()

    @app.errorhandler(PageError)
    def page_error(error: PageError) -> Response:
        page = render_error_page(viewer_config, error.status_line, error.message)
        response = _html(page, status=error.status.value)
        if error.location:
            response.headers["Location"] = error.location
        return response

    @app.errorhandler(HTTPException)
    def http_error(error: HTTPException) -> Response:
        # Werkzeug's own failures (e.g. 405) get the same minimal page.
        code = error.code or 500
        status_line = f"{code} {error.name}"
        message = _HTTP_ERROR_MESSAGES.get(code, "Something went wrong.")
        return _html(render_error_page(viewer_config, status_line, message), status=code)

    @app.route("/", defaults={"subpath": ""}, methods=["GET"])
    @app.route("/<path:subpath>", methods=["GET"])
    def show_page(subpath: str) -> Response:
        match = parse_route(request.path, viewer_config.base_url)
        return _html(_dispatch(match))

    return app


if __name__ == "__main__":
    app = create_app()
    app.run(
        host=os.environ.get("HOST", "0.0.0.0"),
        port=int(os.environ.get("PORT", 7860)),
    )
