"""
=============================================================================
HTTP STATUS CODES
=============================================================================

Status codes and their reason phrases.

=============================================================================
WHERE THE PHRASES COME FROM
=============================================================================

Every response line carries a numeric code and a human-readable phrase:

    HTTP/1.1 404 Not Found
             ─┬─ ────┬────
              │      │
              │      └── Reason phrase (IANA registry)
              └───────── Status code

The standard library already ships the IANA registry as http.HTTPStatus,
an IntEnum with a .phrase attribute, so we re-export it instead of keeping
a second copy of the table:

    >>> HTTPStatus.NOT_FOUND
    <HTTPStatus.NOT_FOUND: 404>
    >>> HTTPStatus.NOT_FOUND == 404
    True
    >>> HTTPStatus.NOT_FOUND.phrase
    'Not Found'

Codes that are syntactically valid but unregistered (e.g. 499) are not
enum members, so lookups go through reason_phrase() which never raises.

=============================================================================
CATEGORIES THIS SERVER USES
=============================================================================

    ┌───────────┬──────────────────────────────────────────────────────────┐
    │   Code    │  Produced when                                           │
    ├───────────┼──────────────────────────────────────────────────────────┤
    │  200      │  File read successfully                                  │
    │  302      │  Directory requested without trailing slash              │
    │  400      │  Malformed request line or headers                       │
    │  403      │  Dotfile, hidden directory, traversal, EACCES            │
    │  404      │  Missing file, or no handler responded                   │
    │  413      │  Request larger than max_request_size                    │
    │  500      │  Anything unexpected (details only in the log)           │
    │  503      │  Thread pool queue full                                  │
    └───────────┴──────────────────────────────────────────────────────────┘

=============================================================================
"""

from http import HTTPStatus


UNKNOWN_PHRASE = "Unknown"


def reason_phrase(code: int) -> str:
    """
    Get the standard reason phrase for a status code.

    Args:
        code: Numeric HTTP status code.

    Returns:
        The registered phrase, or "Unknown" for unregistered codes.

    Examples:
        >>> reason_phrase(404)
        'Not Found'
        >>> reason_phrase(499)
        'Unknown'
    """
    try:
        return HTTPStatus(code).phrase
    except ValueError:
        return UNKNOWN_PHRASE


def is_error(code: int) -> bool:
    """Check if a status code is a client or server error (400-599)."""
    return 400 <= code <= 599


__all__ = ["HTTPStatus", "reason_phrase", "is_error", "UNKNOWN_PHRASE"]
