"""
Unit tests for the static file resolver and handler.
"""

import errno
import logging
from pathlib import Path

import pytest

from staticserver.handlers.base import Continuation
from staticserver.handlers.static import ResolvedFile, StaticFileHandler, resolve, url_to_path
from staticserver.http.errors import HttpError


def _fail_read(exc):
    def read_bytes(self):
        raise exc
    return read_bytes


class TestUrlToPath:
    """Tests for URL to filesystem path mapping."""

    def test_trailing_slash_means_index(self, public_dir: Path):
        assert url_to_path(public_dir, "/") == public_dir / "index.html"
        assert url_to_path(public_dir, "/docs/") == public_dir / "docs" / "index.html"

    def test_dot_segments_are_canonicalized(self, public_dir: Path):
        assert url_to_path(public_dir, "/docs/../style.css") == public_dir / "style.css"


class TestResolve:
    """Tests for resolve()."""

    def test_root_serves_index(self, public_dir: Path):
        result = resolve("/", public_dir)

        assert isinstance(result, ResolvedFile)
        assert result.status_code == 200
        assert result.body == (public_dir / "index.html").read_bytes()
        assert result.headers["Content-Type"].startswith("text/html")

    def test_directory_url_with_slash_serves_its_index(self, public_dir: Path):
        result = resolve("/docs/", public_dir)

        assert result.status_code == 200
        assert result.body == (public_dir / "docs" / "index.html").read_bytes()

    def test_content_type_from_extension(self, public_dir: Path):
        result = resolve("/style.css", public_dir)

        assert result.headers["Content-Type"] == "text/css; charset=utf-8"

    def test_unknown_extension_has_no_content_type(self, public_dir: Path):
        result = resolve("/LICENSE", public_dir)

        assert result.status_code == 200
        assert result.body == b"MIT"
        assert "Content-Type" not in result.headers

    def test_directory_without_slash_redirects(self, public_dir: Path):
        result = resolve("/docs", public_dir)

        assert isinstance(result, ResolvedFile)
        assert result.status_code == 302
        assert result.headers == {"Location": "/docs/"}
        assert result.body == b""

    def test_redirect_keeps_query_after_slash(self, public_dir: Path):
        result = resolve("/docs?lang=en", public_dir)

        assert result.headers["Location"] == "/docs/?lang=en"

    def test_missing_file_is_404(self, public_dir: Path):
        result = resolve("/missing.txt", public_dir)

        assert isinstance(result, HttpError)
        assert result.status_code == 404

    def test_path_below_a_file_is_404(self, public_dir: Path):
        result = resolve("/style.css/more", public_dir)

        assert result.status_code == 404

    @pytest.mark.parametrize("url", ["/.env", "/.missing", "/docs/.secret"])
    def test_dotfiles_are_forbidden_even_if_missing(self, public_dir: Path, url):
        result = resolve(url, public_dir)

        assert isinstance(result, HttpError)
        assert result.status_code == 403

    def test_hidden_directories_are_forbidden(self, public_dir: Path):
        assert resolve("/.git/config", public_dir).status_code == 403

    @pytest.mark.parametrize("url", ["/../secret.txt", "/docs/../../secret.txt", "/%2e%2e/secret.txt"])
    def test_traversal_outside_root_is_forbidden(self, public_dir: Path, url):
        result = resolve(url, public_dir)

        assert isinstance(result, HttpError)
        assert result.status_code == 403

    def test_symlink_escaping_root_is_forbidden(self, public_dir: Path):
        (public_dir / "escape.txt").symlink_to(public_dir.parent / "secret.txt")

        assert resolve("/escape.txt", public_dir).status_code == 403

    def test_dotfile_symlink_to_plain_file_is_forbidden(self, public_dir: Path):
        (public_dir / "config.txt").write_text("SECRET=1")
        (public_dir / ".env").unlink()
        (public_dir / ".env").symlink_to(public_dir / "config.txt")

        result = resolve("/.env", public_dir)

        assert isinstance(result, HttpError)
        assert result.status_code == 403

    def test_hidden_directory_symlink_is_forbidden(self, public_dir: Path):
        (public_dir / "gitdata").mkdir()
        (public_dir / "gitdata" / "config").write_text("token")
        (public_dir / ".vcs").symlink_to(public_dir / "gitdata")

        assert resolve("/.vcs/config", public_dir).status_code == 403
        assert resolve("/docs/../.vcs/config", public_dir).status_code == 403
        assert resolve("/gitdata/config", public_dir).status_code == 200

    def test_percent_encoded_names(self, public_dir: Path):
        (public_dir / "my file.txt").write_text("spaced")

        result = resolve("/my%20file.txt", public_dir)

        assert result.body == b"spaced"

    def test_permission_denied_is_403(self, public_dir: Path, monkeypatch):
        monkeypatch.setattr(Path, "read_bytes", _fail_read(PermissionError(errno.EACCES, "denied")))

        assert resolve("/style.css", public_dir).status_code == 403

    def test_unexpected_io_error_is_500_and_logged(self, public_dir: Path, monkeypatch, caplog):
        monkeypatch.setattr(Path, "read_bytes", _fail_read(OSError(errno.EIO, "I/O error")))

        with caplog.at_level(logging.ERROR, logger="staticserver.handlers.static"):
            result = resolve("/style.css", public_dir)

        assert result.status_code == 500
        assert result.status_message == "Internal Server Error"
        assert "Error reading" in caplog.text

    def test_custom_logger_receives_failures(self, public_dir: Path, monkeypatch, caplog):
        monkeypatch.setattr(Path, "read_bytes", _fail_read(OSError(errno.EIO, "I/O error")))
        custom = logging.getLogger("tests.static")

        with caplog.at_level(logging.ERROR, logger="tests.static"):
            resolve("/style.css", public_dir, custom)

        assert any(record.name == "tests.static" for record in caplog.records)

    def test_reads_fresh_contents_every_time(self, public_dir: Path):
        assert resolve("/style.css", public_dir).body == b"body { color: red; }"

        (public_dir / "style.css").write_text("body { color: blue; }")

        assert resolve("/style.css", public_dir).body == b"body { color: blue; }"


class TestStaticFileHandler:
    """Tests for StaticFileHandler."""

    def test_serves_file(self, public_dir, make_request, response):
        proceed = Continuation()

        result = StaticFileHandler(public_dir)(make_request("/style.css"), response, proceed)

        assert result is None
        assert response.finished
        assert response.status == 200
        assert response.body == b"body { color: red; }"
        assert not proceed.called

    def test_writes_redirect(self, public_dir, make_request, response):
        StaticFileHandler(public_dir)(make_request("/docs"), response, Continuation())

        assert response.status == 302
        assert response.get_header("Location") == "/docs/"
        assert response.finished

    def test_missing_file_defers_to_next(self, public_dir, make_request, response):
        proceed = Continuation()

        result = StaticFileHandler(public_dir)(make_request("/nope.txt"), response, proceed)

        assert result is None
        assert proceed.called
        assert not response.finished

    def test_forbidden_is_returned(self, public_dir, make_request, response):
        proceed = Continuation()

        result = StaticFileHandler(public_dir)(make_request("/.env"), response, proceed)

        assert isinstance(result, HttpError)
        assert result.status_code == 403
        assert not proceed.called
        assert not response.finished
