"""
=============================================================================
STATIC FILE RESOLVER
=============================================================================

Maps request URLs to files under a root directory.

=============================================================================
URL TO FILE
=============================================================================

    root = /srv/public

    GET /                 → /srv/public/index.html
    GET /docs/            → /srv/public/docs/index.html
    GET /docs             → /srv/public/docs is a directory
                            → 302 Location: /docs/
    GET /css/site.css     → /srv/public/css/site.css
    GET /.env             → 403 (dotfile, never served)
    GET /.git/config      → 403 (hidden directory)
    GET /../etc/passwd    → /etc/passwd is outside root → 403

A trailing slash means "directory index", so the redirect for /docs sends
the browser to /docs/ where relative links inside index.html resolve
against the right base.

=============================================================================
FILESYSTEM ERRORS TO HTTP
=============================================================================

    ┌──────────────────────────────┬──────────────────────────────────────┐
    │  OS error                    │  Result                              │
    ├──────────────────────────────┼──────────────────────────────────────┤
    │  (none)                      │  200 + body + Content-Type           │
    │  PermissionError   EACCES    │  403 Forbidden                       │
    │  IsADirectoryError EISDIR    │  302 Location: <url>/                │
    │  FileNotFoundError ENOENT    │  404 Not Found                       │
    │  NotADirectoryError ENOTDIR  │  404 Not Found  (/file.txt/x)        │
    │  anything else               │  500, cause logged with traceback    │
    └──────────────────────────────┴──────────────────────────────────────┘

Raw OS errors never leave this module: resolve() returns either a
ResolvedFile or an HttpError value.

=============================================================================
NO CACHING
=============================================================================

Every request touches the filesystem again. Edits show up immediately and
there is no cache to invalidate or share between threads.

=============================================================================
"""

import logging
import posixpath
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Optional, Union
from urllib.parse import unquote, urlsplit

from .base import Continuation, Handler, HandlerResult
from ..http.errors import HttpError
from ..http.mime_types import get_content_type
from ..http.request import HTTPRequest
from ..http.response import HTTPResponse
from ..http.status_codes import HTTPStatus


logger = logging.getLogger(__name__)

INDEX_FILE = "index.html"


@dataclass(frozen=True)
class ResolvedFile:
    """A successful resolution: file contents (200) or a redirect (302)."""

    body: bytes
    headers: Dict[str, str] = field(default_factory=dict)
    status_code: int = HTTPStatus.OK


Resolution = Union[ResolvedFile, HttpError]


def url_to_path(root: Path, url_path: str) -> Path:
    """
    Best-guess filesystem path for a decoded URL path.

    Appends index.html to directory URLs and canonicalizes the result
    (".." and "." are resolved, symlinks followed). The result may lie
    outside `root`; callers must check.
    """
    if url_path.endswith("/"):
        url_path += INDEX_FILE
    return (root / url_path.lstrip("/")).resolve()


def _has_dot_segment(url_path: str) -> bool:
    """True if the normalized URL path names a dotfile or passes through one."""
    return any(part.startswith(".") for part in posixpath.normpath("/" + url_path).split("/"))


def _is_hidden(root: Path, candidate: Path) -> bool:
    """True if any path segment below root starts with a dot."""
    return any(part.startswith(".") for part in candidate.relative_to(root).parts)


def resolve(
    request_url: str,
    root_directory: Union[str, Path],
    log: Optional[logging.Logger] = None,
) -> Resolution:
    """
    Resolve a request URL against a root directory.

    Args:
        request_url: Request target as sent ("/docs?x=1"), percent-encoded.
        root_directory: Directory being served.
        log: Logger for unexpected I/O failures (module logger by default).

    Returns:
        ResolvedFile for 200 and 302, HttpError for 403, 404 and 500.
    """
    log = log or logger
    target = urlsplit(request_url)
    url_path = unquote(target.path) or "/"

    if "\x00" in url_path:
        return HttpError(HTTPStatus.NOT_FOUND)

    # Checked before symlinks are followed: a linked .env is still .env
    if _has_dot_segment(url_path):
        return HttpError(HTTPStatus.FORBIDDEN)

    try:
        root = Path(root_directory).resolve()
        candidate = url_to_path(root, url_path)
    except (OSError, RuntimeError):
        # RuntimeError: symlink loop on older Pythons
        log.exception("Could not resolve %s under %s", request_url, root_directory)
        return HttpError(HTTPStatus.INTERNAL_SERVER_ERROR)

    # ─────────────────────────────────────────────────────────────────
    # SECURITY: stay inside root, never serve dotfiles
    # ─────────────────────────────────────────────────────────────────
    try:
        candidate.relative_to(root)
    except ValueError:
        log.warning("Path traversal attempt: %s", request_url)
        return HttpError(HTTPStatus.FORBIDDEN)

    if candidate.name.startswith(".") or _is_hidden(root, candidate):
        return HttpError(HTTPStatus.FORBIDDEN)

    # ─────────────────────────────────────────────────────────────────
    # READ
    # ─────────────────────────────────────────────────────────────────
    try:
        body = candidate.read_bytes()
    except PermissionError:
        return HttpError(HTTPStatus.FORBIDDEN)
    except IsADirectoryError:
        location = target.path + "/"
        if target.query:
            location += "?" + target.query
        return ResolvedFile(
            body=b"",
            headers={"Location": location},
            status_code=HTTPStatus.FOUND,
        )
    except (FileNotFoundError, NotADirectoryError):
        return HttpError(HTTPStatus.NOT_FOUND)
    except OSError:
        log.exception("Error reading %s", candidate)
        return HttpError(HTTPStatus.INTERNAL_SERVER_ERROR)

    headers = {}
    content_type = get_content_type(candidate.suffix)
    if content_type is not None:
        headers["Content-Type"] = content_type

    return ResolvedFile(body=body, headers=headers, status_code=HTTPStatus.OK)


class StaticFileHandler(Handler):
    """
    Handler that serves files from one directory.

    Usually the last handler in the chain. A 404 is not an error here: it
    calls next() so that a later handler, or the chain's own 404, answers.

    Usage:
        chain = HandlerChain([my_api_handler, StaticFileHandler("./public")])
    """

    def __init__(self, directory: Union[str, Path], log: Optional[logging.Logger] = None):
        self.root = Path(directory).resolve()
        self.log = log or logger

    def __call__(
        self,
        request: HTTPRequest,
        response: HTTPResponse,
        next: Continuation,
    ) -> HandlerResult:
        result = resolve(request.url, self.root, self.log)

        if isinstance(result, HttpError):
            if result.status_code == HTTPStatus.NOT_FOUND:
                next()
                return None
            return result

        response.write_head(result.status_code, result.headers)
        response.end(result.body)
        return None

    @property
    def name(self) -> str:
        return f"StaticFileHandler({self.root})"
