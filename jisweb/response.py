"""The response written back to the browser, buffered in fixed-size blocks."""

from __future__ import annotations

from collections.abc import Callable, Iterable

from .encoding import url_encode
from .sessions import CookieJar, Session

BUFFER_SIZE = 4096

_REASONS = {
    200: "OK",
    301: "Moved Permanently",
    302: "Found",
    400: "Bad Request",
    401: "Unauthorised",
    404: "Not Found",
    500: "Internal Server Error",
    503: "Service Unavailable",
}

_CONNECTION = "\r\nConnection: close"


def status_line(
    code: int,
    version: int = 1,
    extra: Iterable[str] = (),
    cookie: str | None = None,
) -> str:
    """The status line and headers that open a response, ending in a blank line.

    Unknown codes are answered as 501.  A cookie is only set with 200, and
    the extra header lines are only sent with 301 and 302.
    """
    reason = _REASONS.get(code)
    if reason is None:
        code, reason = 501, "Not Implemented"
    head = f"HTTP/1.{version} {code} {reason}"
    if code == 200 and cookie is not None:
        head += f"\r\nSet-Cookie: ASPSESSIONID{cookie}"
    if code in (301, 302):
        head += "".join(f"\r\n{line}" for line in extra)
    return head + _CONNECTION + "\r\n\r\n"


class Response:
    """Buffered output of one request.

    Output is held until a full block of BUFFER_SIZE bytes is ready; the
    header goes out just before the first data.  A session given here is
    stored in the cookie jar, and its cookie sent, when a 200 header goes
    out.
    """

    def __init__(
        self,
        send: Callable[[bytes], object],
        *,
        http_version: int = 1,
        send_code: int = 200,
        session: Session | None = None,
        cookie_jar: CookieJar | None = None,
        close: Callable[[], object] | None = None,
        encoding: str = "utf-8",
    ) -> None:
        self.http_version = http_version
        self.send_code = send_code
        self.session = session
        self.cookie_jar = cookie_jar
        self.encoding = encoding
        self.total_bytes = 0
        self.header_sent = False
        self.redirected = False
        self.closed = False
        self._sink = send
        self._closer = close
        self._buffer = bytearray()

    def _send(self, data: bytes) -> None:
        self._sink(bytes(data))
        self.total_bytes += len(data)

    def _send_header(self, code: int, extra: Iterable[str] = ()) -> None:
        cookie = None
        if code == 200 and self.session is not None and self.cookie_jar is not None:
            cookie = self.cookie_jar.issue(self.session)
            self.session = None
        header = status_line(code, self.http_version, extra, cookie)
        self._send(header.encode(self.encoding))
        self.header_sent = True

    def _send_blocks(self) -> None:
        while len(self._buffer) >= BUFFER_SIZE:
            self._send(self._buffer[:BUFFER_SIZE])
            del self._buffer[:BUFFER_SIZE]

    def write(self, text: str | bytes) -> None:
        """Add output; whole blocks are sent as soon as they are full."""
        data = text.encode(self.encoding) if isinstance(text, str) else bytes(text)
        self._buffer += data
        if len(self._buffer) >= BUFFER_SIZE:
            if not self.header_sent:
                self._send_header(self.send_code)
            self._send_blocks()

    def redirect(self, url: str) -> None:
        """Send a 302 to url with a small link page, unless output has begun."""
        if self.header_sent:
            return
        self._send_header(302, [f"Location: {url}"])
        body = (
            "<html>\n<head><title>HTTP 302 Object Moved</title></head>\n"
            f'<body><a HREF="{url_encode(url)}">here</a>\n</body>\n</html>\n'
        )
        self._send(body.encode(self.encoding))
        self.redirected = True

    def flush(self) -> None:
        """Send the header if it has not gone, then everything buffered."""
        if not self.header_sent:
            self._send_header(self.send_code)
        self._send_blocks()
        if self._buffer:
            self._send(self._buffer)
            self._buffer.clear()

    def close(self) -> None:
        """Send what is left, unless redirected, and close the connection."""
        if self.closed:
            return
        if self._buffer and not self.redirected:
            self.flush()
        self._buffer.clear()
        if self._closer is not None:
            self._closer()
        self.closed = True

    def __enter__(self) -> Response:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()