"""Building script members into loadable objects with the JCC compiler."""

from __future__ import annotations

import os
import shlex
import subprocess
from pathlib import Path

from .settings import WebSite


class CompileError(Exception):
    """A script member could not be built."""


def _member_path(site: WebSite, member: str) -> str:
    return f"{site.user_sources}({member})"


def compile_command(
    site: WebSite,
    member: str,
    output: str | Path,
    tempdir: str | Path,
    messages: str | Path,
) -> str:
    """The shell command line that compiles a member.

    The code section name is the first seven characters of the member
    and the member name at most eight, both upper-cased; the compiler's
    messages go to the ``messages`` file.
    """
    csect = member[:7].upper()
    filen = member[:8].upper()
    words = [
        "JCC",
        f"-hfiles={site.user_headers}",
        f"-I{site.jccl_headers}",
        f"-out={output}",
        f"-tempdir={tempdir}",
        f"-fcode=@{csect}",
        "-renteprl",
        _member_path(site, filen),
    ]
    return " ".join(shlex.quote(word) for word in words) + " >" + shlex.quote(
        str(messages)
    )


def compile_member(
    site: WebSite,
    member: str,
    output: str | Path,
    tempdir: str | Path,
    messages: str | Path,
) -> int:
    """Compile a member and return the non-zero version stamp of its source.

    Raises CompileError if the source cannot be opened, in which case the
    reason is also written to the messages file, or if the compiler fails.
    """
    source = _member_path(site, member)
    try:
        with open(source, "rb"):
            stamp = os.stat(source).st_mtime_ns or 1
    except OSError as exc:
        try:
            with open(messages, "w") as out:
                out.write(
                    f"The Source Member {site.user_sources}({member}) cannot be opened.\n"
                )
        except OSError:
            pass
        raise CompileError(f"cannot open source member {source}") from exc

    command = compile_command(site, member, output, tempdir, messages)
    result = subprocess.run(command, shell=True, check=False)
    if result.returncode != 0:
        raise CompileError(
            f"compiling {member} failed with status {result.returncode}"
        )
    return stamp