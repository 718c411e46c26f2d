"""
=============================================================================
MIME TYPE DETECTION
=============================================================================

Maps file extensions to Content-Type header values.

=============================================================================
HOW THE LOOKUP WORKS
=============================================================================

    index.html ──► ".html" ──► "text/html" ──► "text/html; charset=utf-8"
                   suffix      table lookup    charset added for text

Extensions we don't know return None. The static handler then sends the
file WITHOUT a Content-Type header and lets the client sniff it, rather than
claiming application/octet-stream for something that might be text.

=============================================================================
"""

from pathlib import PurePath
from typing import Optional, Union


# =============================================================================
# MIME TYPE DATABASE
# =============================================================================
#
# Keys are lowercase extensions with the leading dot.
# Grouped by top-level type; merged into MIME_TYPES below.
#
# =============================================================================

_TEXT = {
    ".html": "text/html",
    ".htm": "text/html",
    ".css": "text/css",
    ".js": "text/javascript",
    ".mjs": "text/javascript",
    ".txt": "text/plain",
    ".md": "text/markdown",
    ".csv": "text/csv",
    ".xml": "application/xml",
    ".json": "application/json",
    ".map": "application/json",    # source maps
    ".webmanifest": "application/manifest+json",
    ".yaml": "text/yaml",
    ".yml": "text/yaml",
}

_IMAGES = {
    ".png": "image/png",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".gif": "image/gif",
    ".svg": "image/svg+xml",
    ".ico": "image/x-icon",
    ".webp": "image/webp",
    ".avif": "image/avif",
    ".bmp": "image/bmp",
}

_FONTS = {
    ".woff": "font/woff",
    ".woff2": "font/woff2",
    ".ttf": "font/ttf",
    ".otf": "font/otf",
}

_MEDIA = {
    ".mp3": "audio/mpeg",
    ".wav": "audio/wav",
    ".ogg": "audio/ogg",
    ".flac": "audio/flac",
    ".mp4": "video/mp4",
    ".webm": "video/webm",
    ".mov": "video/quicktime",
}

_BINARY = {
    ".pdf": "application/pdf",
    ".zip": "application/zip",
    ".gz": "application/gzip",
    ".tar": "application/x-tar",
    ".wasm": "application/wasm",
}

MIME_TYPES = {**_TEXT, **_IMAGES, **_FONTS, **_MEDIA, **_BINARY}

# application/* types that are really text and deserve a charset
_TEXTUAL_APPLICATION_TYPES = {
    "application/json",
    "application/xml",
    "application/manifest+json",
    "image/svg+xml",
}


def _extension(path_or_ext: Union[str, PurePath]) -> str:
    """Normalize "style.CSS" or ".css" to ".css"."""
    text = str(path_or_ext)
    # PurePath(".css").suffix is "" (it looks like a dotfile)
    if text.startswith(".") and text.count(".") == 1 and "/" not in text:
        return text.lower()
    return PurePath(text).suffix.lower()


def get_mime_type(path_or_ext: Union[str, PurePath]) -> Optional[str]:
    """
    Get the bare MIME type for a path or extension.

    Examples:
        >>> get_mime_type("logo.PNG")
        'image/png'
        >>> get_mime_type(".unknownext") is None
        True
    """
    return MIME_TYPES.get(_extension(path_or_ext))


def is_text_type(mime_type: str) -> bool:
    """Check if a MIME type is text-based (and should carry a charset)."""
    return mime_type.startswith("text/") or mime_type in _TEXTUAL_APPLICATION_TYPES


def get_content_type(path_or_ext: Union[str, PurePath], charset: str = "utf-8") -> Optional[str]:
    """
    Get the full Content-Type header value for a file.

    Args:
        path_or_ext: File name, path or bare extension.
        charset: Charset appended to text types.

    Returns:
        Header value, or None when the extension is unknown.

    Examples:
        >>> get_content_type("index.html")
        'text/html; charset=utf-8'
        >>> get_content_type("image.png")
        'image/png'
    """
    mime_type = get_mime_type(path_or_ext)
    if mime_type is None:
        return None
    if is_text_type(mime_type):
        return f"{mime_type}; charset={charset}"
    return mime_type
