# SPDX-License-Identifier: GPL-3.0-or-later

import os
import sqlite3
import sys
import tempfile
import unittest
from pathlib import Path
from unittest.mock import patch

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))
sys.path.insert(0, os.path.abspath(os.path.dirname(__file__)))

from sample_db import add_instance, add_player, build_sample_database
from transcripts.config import ViewerConfig
from transcripts.errors import BadRequestError, NotFoundError
from transcripts.rendering import CRASH_MARKER
from web_service import create_app


class WebServiceTest(unittest.TestCase):
    def setUp(self):
        self._tmpdir = tempfile.TemporaryDirectory()
        self.addCleanup(self._tmpdir.cleanup)
        self.db_path = build_sample_database(Path(self._tmpdir.name) / "multizork.sqlite3")
        self.config = ViewerConfig(database_path=str(self.db_path))
        self.client = create_app(self.config).test_client()

    def test_landing_page(self):
        resp = self.client.get("/")
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.mimetype, "text/html")
        self.assertIn("multizork transcripts", resp.data.decode())

    def test_instance_summary(self):
        resp = self.client.get("/game/AB12")
        body = resp.data.decode()
        self.assertEqual(resp.status_code, 200)
        self.assertIn("zork1.dat", body)
        self.assertIn("98765", body)
        self.assertIn("<a href='/player/AB12/1'>alice</a>", body)

    def test_unknown_instance_is_not_found(self):
        resp = self.client.get("/game/doesnotexist")
        body = resp.data.decode()
        self.assertEqual(resp.status_code, 404)
        self.assertIn("No such page", body)
        self.assertIn("404 Not Found", body)
        self.assertNotIn("zork1.dat", body)
        self.assertNotIn("alice", body)

    def test_annotated_transcript_scenario(self):
        resp = self.client.get("/player/AB12/1")
        body = resp.data.decode()
        self.assertEqual(resp.status_code, 200)
        self.assertIn(
            "<span class='gameoutput'>You are in a room.<br/></span>"
            "<span class='userinput'>look</span>",
            body,
        )
        self.assertNotIn(CRASH_MARKER, body)
        self.assertIn("href='/rawplayer/AB12/1'", body)
        self.assertIn("href='/game/AB12'", body)

    def test_raw_transcript(self):
        resp = self.client.get("/rawplayer/AB12/1")
        body = resp.data.decode()
        self.assertEqual(resp.status_code, 200)
        self.assertIn("<pre>\nYou are in a room.\nlook</pre>", body)
        self.assertIn("href='/player/AB12/1'", body)

    def test_transcript_is_idempotent(self):
        for path in ("/player/AB12/1", "/rawplayer/AB12/1"):
            first = self.client.get(path).data
            second = self.client.get(path).data
            self.assertEqual(first, second, path)

    def test_padded_identifiers_are_not_found(self):
        for path in (
            "/game/%20AB12",
            "/game/AB12%20",
            "/player/%20AB12/1",
            "/player/AB12/%201",
            "/rawplayer/AB12/1%20",
        ):
            resp = self.client.get(path)
            self.assertEqual(resp.status_code, 404, path)
            self.assertNotIn("zork1.dat", resp.data.decode())

    def test_out_of_range_timestamps_still_render(self):
        connection = sqlite3.connect(self.db_path)
        try:
            connection.execute(
                "UPDATE instances SET starttime = ?, savetime = ? WHERE hashid = 'AB12'",
                (99999999999999, 99999999999999),
            )
            connection.commit()
        finally:
            connection.close()
        resp = self.client.get("/game/AB12")
        self.assertEqual(resp.status_code, 200)
        self.assertIn("started: 99999999999999", resp.data.decode())

    def test_unnormalized_base_url_yields_absolute_links(self):
        config = ViewerConfig(database_path=str(self.db_path), base_url="zork/")
        client = create_app(config).test_client()
        resp = client.get("/zork/game/AB12")
        self.assertEqual(resp.status_code, 200)
        self.assertIn("<a href='/zork/player/AB12/1'>alice</a>", resp.data.decode())

    def test_player_from_other_instance_is_not_found(self):
        other = add_instance(self.db_path, "CD34")
        bob = add_player(self.db_path, other, "bob", [{"texttype": 0, "content": "secret"}])
        self.assertEqual(self.client.get(f"/player/CD34/{bob}").status_code, 200)
        for path in (f"/player/AB12/{bob}", f"/rawplayer/AB12/{bob}", "/player/CD34/1"):
            resp = self.client.get(path)
            self.assertEqual(resp.status_code, 404, path)
            self.assertNotIn("secret", resp.data.decode())

    def test_malformed_paths_are_not_found(self):
        for path in (
            "/nothing",
            "/game",
            "/game/",
            "/player/AB12",
            "/player/AB12/abc",
            "/player/AB12/-1",
            "/player/AB12/99999999999999999999999",
            "/rawplayer/AB12/",
        ):
            resp = self.client.get(path)
            self.assertEqual(resp.status_code, 404, path)
            self.assertIn("No such page", resp.data.decode())

    def test_crashed_instance_marks_both_views(self):
        crashed = add_instance(self.db_path, "EF56", crashed=True)
        carol = add_player(
            self.db_path,
            crashed,
            "carol",
            [
                {"texttype": 0, "content": "West of House\n"},
                {"texttype": 2, "content": "Server going down\n>"},
            ],
        )
        annotated = self.client.get(f"/player/EF56/{carol}").data.decode()
        raw = self.client.get(f"/rawplayer/EF56/{carol}").data.decode()
        for body in (annotated, raw):
            self.assertEqual(body.count(CRASH_MARKER), 1)
            self.assertLess(body.index("West of House"), body.index(CRASH_MARKER))
        self.assertIn(
            "<span class='sysmessage'>Server going down<br/></span>"
            "<span class='gameoutput'>></span>",
            annotated,
        )
        self.assertIn("Server going down\n&gt;\n" + CRASH_MARKER, raw)
        self.assertIn("crashed: yes", self.client.get("/game/EF56").data.decode())

    def test_escapes_stored_markup(self):
        instance = add_instance(self.db_path, "GH78", story_filename="<b>story</b>.z5")
        player = add_player(
            self.db_path,
            instance,
            "<img src=x>",
            [{"texttype": 1, "content": "say <hi> & bye"}],
        )
        summary = self.client.get("/game/GH78").data.decode()
        self.assertNotIn("<b>story</b>", summary)
        self.assertIn("&lt;b&gt;story&lt;/b&gt;.z5", summary)
        self.assertNotIn("<img src=x>", summary)
        transcript = self.client.get(f"/player/GH78/{player}").data.decode()
        self.assertIn("<span class='userinput'>say &lt;hi&gt; &amp; bye</span>", transcript)

    def test_instance_without_players(self):
        add_instance(self.db_path, "IJ90", num_players=0)
        body = self.client.get("/game/IJ90").data.decode()
        self.assertIn("(no transcripts found!?)", body)

    def test_missing_database_is_service_unavailable(self):
        config = ViewerConfig(database_path=os.path.join(self._tmpdir.name, "gone.sqlite3"))
        client = create_app(config).test_client()
        for path in ("/", "/game/AB12", "/nothing"):
            resp = client.get(path)
            self.assertEqual(resp.status_code, 503, path)
            body = resp.data.decode()
            self.assertIn("503 Service Unavailable", body)
            self.assertIn("Please try again later", body)
            self.assertNotIn("gone.sqlite3", body)

    def test_database_is_closed_after_each_request(self):
        with patch("web_service.TranscriptDatabase.close", autospec=True) as mock_close:
            self.client.get("/game/AB12")
            self.client.get("/game/doesnotexist")
        self.assertEqual(mock_close.call_count, 2)

    def test_base_url_prefix(self):
        config = ViewerConfig(database_path=str(self.db_path), base_url="/zork")
        client = create_app(config).test_client()
        resp = client.get("/zork/game/AB12")
        self.assertEqual(resp.status_code, 200)
        self.assertIn("<a href='/zork/player/AB12/1'>alice</a>", resp.data.decode())
        self.assertEqual(client.get("/zork/").status_code, 200)
        self.assertEqual(client.get("/game/AB12").status_code, 404)

    def test_page_error_location_header(self):
        app = create_app(self.config)

        @app.route("/moved", methods=["GET"])
        def moved():
            raise NotFoundError("Gone elsewhere", location="/game/AB12")

        resp = app.test_client().get("/moved")
        self.assertEqual(resp.status_code, 404)
        self.assertEqual(resp.headers["Location"], "/game/AB12")
        self.assertIn("Gone elsewhere", resp.data.decode())


    def test_bad_request_error_page(self):
        app = create_app(self.config)

        @app.route("/broken", methods=["GET"])
        def broken():
            raise BadRequestError()

        resp = app.test_client().get("/broken")
        self.assertEqual(resp.status_code, 400)
        self.assertIn("400 Bad Request", resp.data.decode())
        self.assertNotIn("Location", resp.headers)

    def test_unsupported_method_gets_error_page(self):
        resp = self.client.post("/game/AB12")
        self.assertEqual(resp.status_code, 405)
        self.assertIn("405 Method Not Allowed", resp.data.decode())


if __name__ == "__main__":
    unittest.main()
