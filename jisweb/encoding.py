"""HTML and URL escaping of text written to the browser."""

from __future__ import annotations

_HTML_ENTITIES = {
    "<": "&lt;",
    ">": "&gt;",
    "&": "&amp;",
    '"': "&quot;",
}

_HTML_TABLE = str.maketrans(_HTML_ENTITIES)

# Characters that are unsafe in a URL; '+' is included because a decoder
# turns it back into a space.
_URL_UNSAFE = frozenset(b' <>"#%{}|\\^~[]`+')


def html_encode(text: str) -> str:
    """Replace <, >, & and " with their HTML entities."""
    return text.translate(_HTML_TABLE)


def _url_escape_needed(byte: int) -> bool:
    return byte in _URL_UNSAFE or byte < 0x20 or byte >= 0x7F


def url_encode(data: str | bytes) -> str:
    """Percent-encode the unsafe characters of a URL.

    Text is encoded as UTF-8 first; every unsafe, control or non-ASCII
    byte becomes %XX with upper-case hexadecimal digits.
    """
    raw = data.encode("utf-8") if isinstance(data, str) else bytes(data)
    return "".join(
        f"%{byte:02X}" if _url_escape_needed(byte) else chr(byte) for byte in raw
    )