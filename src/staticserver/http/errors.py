"""
=============================================================================
HTTP ERRORS
=============================================================================

One exception type for every failure that should reach the client.

=============================================================================
WHY A SINGLE ERROR TYPE?
=============================================================================

Failures come from very different places:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                    WHERE FAILURES COME FROM                          │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   Custom handler        raise HttpError(401)                         │
    │   Static resolver       EACCES / ENOENT  ──►  HttpError(403 / 404)   │
    │   Request parser        bad request line ──►  HTTPParseError(400)    │
    │   Handler chain         nobody responded ──►  HttpError(404)         │
    │   Anything else         KeyError, bugs   ──►  HttpError(500)         │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

By the time a failure reaches the renderer it is always an HttpError, so
rendering has exactly one shape to deal with: status code + reason phrase
as a text/plain body.

=============================================================================
ERRORS ONLY
=============================================================================

HttpError only accepts 400-599. Constructing one with 200 or 302 is a bug
in the calling code, not an HTTP condition, so it raises ValueError right
away instead of producing a strange response later. Redirects are ordinary
results (see handlers/static.py), never errors.

=============================================================================
"""

from typing import Optional

from .status_codes import reason_phrase, is_error


class HttpError(Exception):
    """
    An HTTP error response waiting to be rendered.

    Usage:
        raise HttpError(403)
        raise HttpError(404, "No such page")

        error = HttpError(404)
        error.status_code     # 404
        error.status_message  # "Not Found"

    Both attributes are read-only once constructed.
    """

    def __init__(self, code: int = 400, message: Optional[str] = None):
        """
        Create an HTTP error.

        Args:
            code: Status code, 400-599 inclusive.
            message: Reason text for the client. Defaults to the standard
                     reason phrase for `code`.

        Raises:
            ValueError: If `code` is not an error status.
        """
        code = int(code)
        phrase = reason_phrase(code)
        if not is_error(code):
            raise ValueError(f"HTTP status code {code}: {phrase} is not an error")

        self._status_code = code
        self._status_message = message or phrase
        super().__init__(f"{code} {self._status_message}")

    @property
    def status_code(self) -> int:
        return self._status_code

    @property
    def status_message(self) -> str:
        return self._status_message

    def __repr__(self) -> str:
        return f"HttpError({self._status_code}, {self._status_message!r})"
