"""W3C extended-format access log: entry formatting and a buffered writer."""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass
from typing import TextIO

from .settings import LogField, WebSite

SOFTWARE = "JCC-ASP1.0"
LOG_VERSION = "1.0"
PROTOCOL = "HTTP/1.1"


@dataclass
class LogRecord:
    """What is known about one finished request."""

    start_time: float
    client_ip: str = "0.0.0.0"
    host_ip: str = "0.0.0.0"
    post: bool = False
    path: str = "/"
    file: str = ""
    ext: str = ""
    query: str | None = None
    status: int = 200
    bytes_sent: int = 0
    bytes_received: int = 0
    elapsed_ms: int = 0
    user: str | None = None
    host: str | None = None
    user_agent: str | None = None
    cookie: str | None = None
    referer: str | None = None


def field_names(options: int) -> list[str]:
    """The #Fields labels of the properties selected by an option mask."""
    return [member.label for member in LogField if options & member]


def _or(value: str | None, missing: str) -> str:
    return value if value else missing


def format_entry(record: LogRecord, site: WebSite) -> str:
    """One log line, newline-terminated, holding the site's selected fields."""
    options = site.log_options
    when = time.localtime(record.start_time)
    parts: list[str] = []

    if options & LogField.DATE:
        fmt = "%Y-%m-%d %H:%M:%S" if options & LogField.TIME else "%Y-%m-%d"
        parts.append(time.strftime(fmt, when))
    elif options & LogField.TIME:
        parts.append(time.strftime("%H:%M:%S", when))

    fields = (
        (LogField.CLIENT_IP, record.client_ip),
        (LogField.USER_NAME, _or(record.user, "no-user")),
        (LogField.SERVICE_NAME, site.description),
        (LogField.SERVER_NAME, site.name),
        (LogField.SERVER_IP, record.host_ip),
        (LogField.SERVER_PORT, str(site.open_port)),
        (LogField.METHOD, "POST" if record.post else "GET"),
        (LogField.URI_STEM, f"{record.path}{record.file}.{record.ext}"),
        (LogField.URI_QUERY, _or(record.query, "no-querystring")),
        (LogField.STATUS, str(record.status)),
        (LogField.BYTES_SENT, str(record.bytes_sent)),
        (LogField.BYTES_RECEIVED, str(record.bytes_received)),
        (LogField.TIME_TAKEN, f"{record.elapsed_ms}ms"),
        (LogField.PROTOCOL_VERSION, PROTOCOL),
        (LogField.HOST, _or(record.host, "no-host")),
        (LogField.USER_AGENT, _or(record.user_agent, "no-useragent")),
        (LogField.COOKIE, _or(record.cookie, "no-cookie")),
        (LogField.REFERER, _or(record.referer, "no-referer")),
    )
    parts.extend(value for flag, value in fields if options & flag)
    return " ".join(parts) + "\n"


class W3CLog:
    """Queues log entries and appends them to the site's log file on flush.

    The file is opened, and its header written, on the first flush that
    has entries.  If it cannot be opened, logging stops for good.
    """

    def __init__(self, site: WebSite) -> None:
        self.site = site
        self.failed = False
        self._entries: list[str] = []
        self._lock = threading.Lock()
        self._handle: TextIO | None = None

    def add(self, record: LogRecord) -> None:
        """Queue the entry for a finished request."""
        if self.failed:
            return
        entry = format_entry(record, self.site)
        with self._lock:
            self._entries.append(entry)

    def _open(self, now: float | None) -> TextIO | None:
        try:
            handle = open(self.site.log_dir, "a", encoding="utf-8")
        except OSError:
            self.failed = True
            return None
        stamp = time.strftime(
            "%Y-%m-%d %H:%M:%S", time.localtime(time.time() if now is None else now)
        )
        fields = "".join(f" {name}" for name in field_names(self.site.log_options))
        handle.write(f"#Software: {SOFTWARE}\n")
        handle.write(f"#Version: {LOG_VERSION}\n")
        handle.write(f"#Date: {stamp}\n")
        handle.write(f"#Fields:{fields}\n")
        return handle

    def flush(self, now: float | None = None) -> int:
        """Write the queued entries; return how many were written."""
        with self._lock:
            if self.failed or not self._entries:
                return 0
            if self._handle is None:
                self._handle = self._open(now)
                if self._handle is None:
                    return 0
            self._handle.writelines(self._entries)
            self._handle.flush()
            written = len(self._entries)
            self._entries.clear()
            return written

    def close(self) -> None:
        """Close the log file if it is open."""
        with self._lock:
            if self._handle is not None:
                self._handle.close()
                self._handle = None

    def __enter__(self) -> W3CLog:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.flush()
        self.close()