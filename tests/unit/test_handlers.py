"""
Unit tests for the static, query and not-found handlers.
"""

import json
import logging
import os
from pathlib import Path

import pytest

from queryserver.handlers import StaticFileHandler, file_not_found, query_handler, serve_static
from queryserver.http.router import CONTINUE, Handled

from conftest import INDEX_HTML, LOGO_PNG, STYLE_CSS, make_request


class TestQueryHandler:
    """Tests for query_handler."""

    def test_animal_present(self):
        result = query_handler(make_request(path="/query", query={"animal": "cat"}))

        assert isinstance(result, Handled)
        assert result.response.status == 200
        assert result.response.content_type.startswith("application/json")
        assert json.loads(result.response.body) == {"beast": "cat"}

    def test_animal_empty(self):
        result = query_handler(make_request(path="/query", query={"animal": ""}))

        assert isinstance(result, Handled)
        assert result.response.body == b'{"beast":""}'

    def test_animal_absent_declines(self):
        assert query_handler(make_request(path="/query", query={"foo": "bar"})) is CONTINUE
        assert query_handler(make_request(path="/query")) is CONTINUE

    def test_other_parameters_ignored(self):
        result = query_handler(make_request(path="/query", query={"animal": "owl", "x": "1"}))
        assert json.loads(result.response.body) == {"beast": "owl"}

    def test_repeated_animal_uses_first(self):
        result = query_handler(make_request(path="/query", query={"animal": ["cat", "dog"]}))
        assert json.loads(result.response.body) == {"beast": "cat"}

    def test_logs_query(self, caplog):
        with caplog.at_level(logging.INFO, logger="queryserver.handlers.query"):
            query_handler(make_request(path="/query", query={"animal": "cat"}))

        assert "animal" in caplog.text
        assert "cat" in caplog.text


class TestFileNotFound:
    """Tests for the fallback."""

    def test_body_and_status(self):
        response = file_not_found(make_request(path="/missing"))

        assert response.status == 404
        assert response.body == b"Cannot find /missing"
        assert response.content_type.startswith("text/plain")

    def test_echoes_raw_path(self):
        response = file_not_found(make_request(path="/a b", raw_path="/a%20b"))
        assert response.body == b"Cannot find /a%20b"

    @pytest.mark.parametrize("method", ["GET", "POST", "DELETE", "PUT"])
    def test_any_method(self, method: str):
        assert file_not_found(make_request(method, "/x")).status == 404


class TestStaticFileHandler:
    """Tests for StaticFileHandler."""

    def test_serves_file(self, public_dir: Path):
        result = StaticFileHandler(public_dir).handle(make_request(path="/style.css"))

        assert isinstance(result, Handled)
        response = result.response
        assert response.status == 200
        assert response.body == STYLE_CSS
        assert response.content_type == "text/css; charset=utf-8"
        assert response.headers["Cache-Control"] == "public, max-age=0"
        assert "ETag" in response.headers
        assert "Last-Modified" in response.headers

    def test_serves_binary(self, public_dir: Path):
        result = StaticFileHandler(public_dir).handle(make_request(path="/logo.png"))

        assert result.response.body == LOGO_PNG
        assert result.response.content_type == "image/png"

    def test_root_serves_index(self, public_dir: Path):
        result = StaticFileHandler(public_dir).handle(make_request(path="/"))

        assert result.response.body == INDEX_HTML
        assert result.response.content_type == "text/html; charset=utf-8"

    def test_subdirectory_index(self, public_dir: Path):
        handler = StaticFileHandler(public_dir)

        assert handler.handle(make_request(path="/docs/")).response.body == b"<h1>Docs</h1>"
        assert handler.handle(make_request(path="/docs")).response.body == b"<h1>Docs</h1>"

    def test_head_is_served(self, public_dir: Path):
        result = StaticFileHandler(public_dir).handle(make_request("HEAD", "/style.css"))
        assert isinstance(result, Handled)

    @pytest.mark.parametrize("path", [
        "/missing.txt",
        "/query",
        "/.secret",
        "/docs/../.secret",
        "/../outside.txt",
        "/empty/",
        "/nul\x00byte",
    ])
    def test_declines(self, public_dir: Path, path: str):
        assert StaticFileHandler(public_dir).handle(make_request(path=path)) is CONTINUE

    @pytest.mark.parametrize("method", ["POST", "PUT", "DELETE"])
    def test_declines_other_methods(self, public_dir: Path, method: str):
        assert StaticFileHandler(public_dir).handle(make_request(method, "/style.css")) is CONTINUE

    def test_dotfiles_can_be_enabled(self, public_dir: Path):
        handler = StaticFileHandler(public_dir, serve_dotfiles=True)
        assert isinstance(handler.handle(make_request(path="/.secret")), Handled)

    def test_etag_not_modified(self, public_dir: Path):
        handler = StaticFileHandler(public_dir)
        etag = handler.handle(make_request(path="/style.css")).response.headers["ETag"]

        result = handler.handle(make_request(path="/style.css", headers={"If-None-Match": etag}))

        assert result.response.status == 304
        assert result.response.body == b""
        assert result.response.headers["ETag"] == etag

    def test_etag_list_and_star(self, public_dir: Path):
        handler = StaticFileHandler(public_dir)
        etag = handler.handle(make_request(path="/style.css")).response.headers["ETag"]

        listed = handler.handle(make_request(path="/style.css", headers={"If-None-Match": f'"x", {etag}'}))
        star = handler.handle(make_request(path="/style.css", headers={"If-None-Match": "*"}))

        assert listed.response.status == 304
        assert star.response.status == 304

    def test_etag_mismatch_serves_file(self, public_dir: Path):
        result = StaticFileHandler(public_dir).handle(
            make_request(path="/style.css", headers={"If-None-Match": '"stale"'})
        )
        assert result.response.status == 200

    def test_if_modified_since(self, public_dir: Path):
        handler = StaticFileHandler(public_dir)
        last_modified = handler.handle(make_request(path="/style.css")).response.headers["Last-Modified"]

        fresh = handler.handle(make_request(path="/style.css", headers={"If-Modified-Since": last_modified}))
        stale = handler.handle(make_request(
            path="/style.css", headers={"If-Modified-Since": "Thu, 01 Jan 1970 00:00:00 GMT"}
        ))
        garbage = handler.handle(make_request(path="/style.css", headers={"If-Modified-Since": "yesterday"}))

        assert fresh.response.status == 304
        assert stale.response.status == 200
        assert garbage.response.status == 200

    def test_missing_root_warns_and_declines(self, tmp_path: Path, caplog):
        with caplog.at_level(logging.WARNING, logger="queryserver.handlers.static"):
            handler = StaticFileHandler(tmp_path / "nope")

        assert "does not exist" in caplog.text
        assert handler.handle(make_request(path="/")) is CONTINUE
        assert handler.handle(make_request(path="/index.html")) is CONTINUE

    def test_resolve(self, public_dir: Path):
        handler = StaticFileHandler(public_dir)

        assert handler.resolve("/style.css") == (public_dir / "style.css").resolve()
        assert handler.resolve("/") == (public_dir / "index.html").resolve()
        assert handler.resolve("/nope") is None

    def test_serve_static_factory(self, public_dir: Path):
        handler = serve_static(public_dir, index_file="style.css")

        assert isinstance(handler, StaticFileHandler)
        assert handler(make_request(path="/")).response.body == STYLE_CSS

    def test_overlong_segment_declines(self, public_dir: Path):
        handler = StaticFileHandler(public_dir)

        assert handler.resolve("/" + "a" * 300) is None
        assert handler.handle(make_request(path="/" + "a" * 300)) is CONTINUE
        assert handler.handle(make_request(path="/docs/" + "b" * 300 + "/x")) is CONTINUE

    def test_non_ascii_file_name(self, public_dir: Path):
        (public_dir / "café.txt").write_bytes(b"latte")

        result = StaticFileHandler(public_dir).handle(make_request(path="/café.txt"))

        assert isinstance(result, Handled)
        assert result.response.body == b"latte"

    @pytest.mark.skipif(
        not hasattr(os, "geteuid") or os.geteuid() == 0,
        reason="file permissions are not enforced for root",
    )
    def test_unreadable_file_warns_and_declines(self, public_dir: Path, caplog):
        secret = public_dir / "locked.txt"
        secret.write_bytes(b"locked")
        secret.chmod(0)
        try:
            with caplog.at_level(logging.WARNING, logger="queryserver.handlers.static"):
                result = StaticFileHandler(public_dir).handle(make_request(path="/locked.txt"))
        finally:
            secret.chmod(0o644)

        assert result is CONTINUE
        assert "Cannot read" in caplog.text
