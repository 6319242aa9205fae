"""Web-site settings and their binary save file."""

from __future__ import annotations

import enum
import struct
from dataclasses import dataclass, field
from pathlib import Path
from typing import BinaryIO

SIGNATURE = b"JCC-ASP1.0"
MAX_THREADS = 64
DEFAULT_PORT = 80
DEFAULT_LOG_OPTIONS = 0x60D00000

_TEXT = "latin-1"


class LogField(enum.IntFlag):
    """W3C log properties, as bits of the log option mask."""

    DATE = 0x80000000
    TIME = 0x40000000
    CLIENT_IP = 0x20000000
    USER_NAME = 0x10000000
    SERVICE_NAME = 0x08000000
    SERVER_NAME = 0x04000000
    SERVER_IP = 0x02000000
    SERVER_PORT = 0x01000000
    METHOD = 0x00800000
    URI_STEM = 0x00400000
    URI_QUERY = 0x00200000
    STATUS = 0x00100000
    BYTES_SENT = 0x00080000
    BYTES_RECEIVED = 0x00040000
    TIME_TAKEN = 0x00020000
    PROTOCOL_VERSION = 0x00010000
    HOST = 0x00008000
    USER_AGENT = 0x00004000
    COOKIE = 0x00002000
    REFERER = 0x00001000

    @property
    def label(self) -> str:
        """The name this property carries in a log's #Fields line."""
        return _LABELS[self]


_LABELS = {
    LogField.DATE: "date",
    LogField.TIME: "time",
    LogField.CLIENT_IP: "c-ip",
    LogField.USER_NAME: "user",
    LogField.SERVICE_NAME: "svc",
    LogField.SERVER_NAME: "svr",
    LogField.SERVER_IP: "s-ip",
    LogField.SERVER_PORT: "s-pt",
    LogField.METHOD: "cs-method",
    LogField.URI_STEM: "cs-uri-stem",
    LogField.URI_QUERY: "cs-uri-query",
    LogField.STATUS: "sc-status",
    LogField.BYTES_SENT: "send-bytes",
    LogField.BYTES_RECEIVED: "recv-bytes",
    LogField.TIME_TAKEN: "time",
    LogField.PROTOCOL_VERSION: "proto",
    LogField.HOST: "host",
    LogField.USER_AGENT: "u-agent",
    LogField.COOKIE: "cookie",
    LogField.REFERER: "referer",
}


@dataclass
class WebSite:
    """Settings of the one web site the server runs."""

    user_sources: str
    user_headers: str
    jccl_headers: str
    name: str
    description: str
    open_card: str
    open_port: int = DEFAULT_PORT
    worker_threads: int = 0
    sessions_max: int = 0
    session_timeout: int = 20
    logging: int = 0
    log_switch: int = 0
    log_dir: str = "//DDN:LOGDIR"
    log_options: int = DEFAULT_LOG_OPTIONS
    save_disable: bool = False
    save_trigger: bool = False

    def clamp_threads(self) -> None:
        """Keep the worker-thread count within 0 and MAX_THREADS."""
        self.worker_threads = max(0, min(self.worker_threads, MAX_THREADS))


@dataclass(frozen=True)
class ScriptSpec:
    """A registered script as it is kept in the save file."""

    path: str
    name: str
    ext: str
    init: str
    exit: str
    run: str


@dataclass
class SavedState:
    """Everything the save file holds."""

    site: WebSite
    cookie_index: int = 0
    server_index: int = 0
    scripts: list[ScriptSpec] = field(default_factory=list)


def default_site() -> WebSite:
    """The settings used when there is no save file."""
    return WebSite(
        user_sources="//DDN:ASPSRCS",
        user_headers="//DDN:JCCINCS",
        jccl_headers="//DDN:JCCINCL",
        name="127.0.0.1",
        description="Default Web Site",
        open_card="any",
    )


class _Reader:
    def __init__(self, data: bytes, offset: int) -> None:
        self._data = data
        self._offset = offset

    def take(self, size: int) -> bytes:
        end = self._offset + size
        if size < 0 or end > len(self._data):
            raise ValueError("settings file is truncated")
        chunk = self._data[self._offset:end]
        self._offset = end
        return chunk

    def number(self, fmt: str) -> int:
        code = ">" + fmt
        (value,) = struct.unpack(code, self.take(struct.calcsize(code)))
        return value

    def text(self) -> str:
        return self.take(self.number("I")).decode(_TEXT)


def load_settings(path: str | Path) -> SavedState:
    """Read a save file; fall back to the defaults if it is missing or foreign.

    A file that exists but does not carry the signature marks the defaults
    with save_disable, so it is never overwritten.
    """
    try:
        data = Path(path).read_bytes()
    except OSError:
        return SavedState(site=default_site())

    header = data[: len(SIGNATURE)]
    if header != SIGNATURE:
        site = default_site()
        site.save_disable = bool(header)
        return SavedState(site=site)

    reader = _Reader(data, len(SIGNATURE))
    cookie_index = reader.number("Q")
    server_index = reader.number("I")
    user_sources = reader.text()
    user_headers = reader.text()
    jccl_headers = reader.text()
    name = reader.text()
    description = reader.text()
    open_card = reader.text()
    open_port = reader.number("i")
    worker_threads = reader.number("i")
    sessions_max = reader.number("i")
    session_timeout = reader.number("i")
    logging = reader.number("i")
    log_switch = reader.number("i")
    log_dir = reader.text()
    log_options = reader.number("I")

    site = WebSite(
        user_sources=user_sources,
        user_headers=user_headers,
        jccl_headers=jccl_headers,
        name=name,
        description=description,
        open_card=open_card,
        open_port=open_port,
        worker_threads=worker_threads,
        sessions_max=sessions_max,
        session_timeout=session_timeout,
        logging=logging,
        log_switch=log_switch,
        log_dir=log_dir,
        log_options=log_options,
    )
    site.clamp_threads()

    scripts = []
    while reader.number("I"):
        scripts.append(
            ScriptSpec(
                path=reader.text(),
                name=reader.text(),
                ext=reader.text(),
                init=reader.text(),
                exit=reader.text(),
                run=reader.text(),
            )
        )
    return SavedState(
        site=site,
        cookie_index=cookie_index,
        server_index=server_index,
        scripts=scripts,
    )


def _put_text(out: BinaryIO, value: str) -> None:
    raw = value.encode(_TEXT)
    out.write(struct.pack(">I", len(raw)))
    out.write(raw)


def save_settings(path: str | Path, state: SavedState) -> None:
    """Write the settings and registered scripts to a save file."""
    site = state.site
    with open(path, "wb") as out:
        out.write(SIGNATURE)
        out.write(struct.pack(">Q", state.cookie_index & 0xFFFFFFFFFFFFFFFF))
        out.write(struct.pack(">I", state.server_index & 0xFFFFFFFF))
        for text in (
            site.user_sources,
            site.user_headers,
            site.jccl_headers,
            site.name,
            site.description,
            site.open_card,
        ):
            _put_text(out, text)
        out.write(
            struct.pack(
                ">6i",
                site.open_port,
                site.worker_threads,
                site.sessions_max,
                site.session_timeout,
                site.logging,
                site.log_switch,
            )
        )
        _put_text(out, site.log_dir)
        out.write(struct.pack(">I", site.log_options & 0xFFFFFFFF))

        for script in state.scripts:
            out.write(struct.pack(">I", 1))
            for text in (
                script.path,
                script.name,
                script.ext,
                script.init,
                script.exit,
                script.run,
            ):
                _put_text(out, text)
        out.write(struct.pack(">I", 0))