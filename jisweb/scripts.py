"""Registry of the script pages the server can run, and directory scanning."""

from __future__ import annotations

import struct
import threading
from collections.abc import Callable, Iterable, Iterator
from dataclasses import dataclass
from typing import Any

from .codepage import ebcdic_to_ascii

BLOCK_SIZE = 256
_END_MARK = b"\xff" * 8
_SKIP_MASK = 0x1F
_ENTRY_SIZE = 8 + 3 + 1


@dataclass(eq=False)
class Script:
    """A script page: where it is served and how it is loaded and run.

    ``ttr`` is the version stamp of the loaded member; zero means the
    script must be rebuilt before it is run again.
    """

    path: str
    name: str
    ext: str
    init: str
    exit: str
    run: str
    handle: Any = None
    factory: Callable[..., Any] | None = None
    entry: Callable[..., Any] | None = None
    ttr: int = 0


def _same(a: str, b: str) -> bool:
    return a.casefold() == b.casefold()


def _matches(script: Script, path: str, name: str, ext: str) -> bool:
    return (
        _same(script.name, name)
        and _same(script.path, path)
        and _same(script.ext, ext)
    )


class ScriptRegistry:
    """Ordered, thread-safe collection of scripts.

    Lookups ignore the case of path, name and extension.  ``unload`` is
    called with a script that is removed while it holds a loaded handle.
    """

    def __init__(self, unload: Callable[[Script], None] | None = None) -> None:
        self._scripts: list[Script] = []
        self._lock = threading.RLock()
        self._unload = unload

    def add(self, path: str, name: str, ext: str, init: str, exit: str, run: str) -> bool:
        """Register a script that is loaded on first use; False if it exists."""
        with self._lock:
            if self.get(path, name, ext) is not None:
                return False
            self._scripts.append(Script(path, name, ext, init, exit, run))
            return True

    def add_loaded(self, script: Script) -> None:
        """Append a script as it is, without checking for a duplicate."""
        with self._lock:
            self._scripts.append(script)

    def remove(self, path: str, name: str, ext: str) -> bool:
        """Remove a script, unloading it if it was loaded; False if unknown."""
        with self._lock:
            for script in self._scripts:
                if _matches(script, path, name, ext):
                    self._scripts.remove(script)
                    if script.handle is not None and self._unload is not None:
                        self._unload(script)
                    return True
        return False

    def invalidate(self, path: str, name: str, ext: str) -> bool:
        """Mark a script for rebuilding; False if unknown."""
        with self._lock:
            script = self.get(path, name, ext)
            if script is None:
                return False
            script.ttr = 0
            return True

    def get(self, path: str, name: str, ext: str) -> Script | None:
        """The script served at path/name.ext, or None."""
        with self._lock:
            return next(
                (s for s in self._scripts if _matches(s, path, name, ext)), None
            )

    def apply_directory(self, members: Iterable[tuple[str, int]]) -> list[Script]:
        """Mark scripts whose member stamp changed for rebuilding.

        Each member is matched, by name only, with the first script of
        that name.  Returns the scripts that were marked.
        """
        marked = []
        with self._lock:
            for member, ttr in members:
                script = next(
                    (s for s in self._scripts if _same(s.name, member)), None
                )
                if script is not None and script.ttr != ttr:
                    script.ttr = 0
                    marked.append(script)
        return marked

    def __iter__(self) -> Iterator[Script]:
        with self._lock:
            return iter(list(self._scripts))


def _member_name(raw: bytes) -> str:
    text = ebcdic_to_ascii(raw).split(b"\0", 1)[0]
    return text.decode("latin-1").rstrip(" ")


def _block_entries(block: bytes) -> tuple[list[tuple[str, int]], bool]:
    (used,) = struct.unpack(">h", block[:2])
    entries = []
    pos = count = 2
    while count < used:
        if block[pos:pos + 8] == _END_MARK:
            return entries, True
        if pos + _ENTRY_SIZE > len(block):
            break
        name = _member_name(block[pos:pos + 8])
        ttr = int.from_bytes(block[pos + 8:pos + 11], "big")
        skip = (block[pos + 11] & _SKIP_MASK) * 2
        entries.append((name, ttr))
        pos += _ENTRY_SIZE + skip
        count += _ENTRY_SIZE + skip
    return entries, False


def parse_directory(data: bytes) -> list[tuple[str, int]]:
    """List (member name, TTR) pairs from a partitioned data set directory.

    The data is a sequence of 256-byte directory blocks, each preceded by
    a two-byte length; names are EBCDIC and padded with spaces.  Reading
    stops at the end-of-directory marker or the last whole block.
    """
    members: list[tuple[str, int]] = []
    offset = 2
    while offset + BLOCK_SIZE <= len(data):
        entries, done = _block_entries(data[offset:offset + BLOCK_SIZE])
        members.extend(entries)
        if done:
            break
        offset += BLOCK_SIZE + 2
    return members