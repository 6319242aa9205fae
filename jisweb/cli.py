"""The web application server command."""

from __future__ import annotations

import errno
import re
import socket
import sys
import threading
import time
import traceback
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from urllib.parse import unquote

from .encoding import html_encode
from .response import Response
from .scripts import Script, ScriptRegistry, parse_directory
from .sessions import CookieJar, Session
from .settings import SavedState, ScriptSpec, WebSite, load_settings, save_settings
from .w3clog import LogRecord, W3CLog

INI_FILE = "//DDN:INIFILE"
SCAN_INTERVAL = 2
SWEEP_INTERVAL = 60
MAX_ACCEPT_ERRORS = 100
_HEADER_LIMIT = 16384

_INT = re.compile(r"\s*([+-]?\d+)")


def _atoi(text: str) -> int:
    match = _INT.match(text)
    return int(match.group(1)) if match else 0


def apply_overrides(site: WebSite, argv: list[str]) -> WebSite:
    """Apply -port=, -log= and -threads= options to the site; others are ignored."""
    for arg in argv:
        if arg.startswith("-port="):
            site.open_port = _atoi(arg[6:])
        elif arg.startswith("-log="):
            site.logging = _atoi(arg[5:])
        elif arg.startswith("-threads="):
            site.worker_threads = _atoi(arg[9:])
            site.clamp_threads()
    return site


@dataclass
class _Request:
    start_time: float
    client_ip: str
    host_ip: str
    method: str = "GET"
    path: str = "/"
    file: str = ""
    ext: str = ""
    query: str | None = None
    http_version: int = 1
    headers: dict[str, str] = field(default_factory=dict)
    cookie: str | None = None
    body: bytes = b""
    total_bytes: int = 0
    message: str = ""


def _split_target(request: _Request, target: str) -> None:
    raw_path, sep, query = target.partition("?")
    request.query = query if sep else None
    path = unquote(raw_path) or "/"
    directory, _, leaf = path.rpartition("/")
    request.path = directory + "/"
    name, dot, ext = leaf.rpartition(".")
    if dot:
        request.file, request.ext = name, ext
    else:
        request.file, request.ext = leaf, ""


def _session_cookie(header: str | None) -> str | None:
    if not header:
        return None
    for part in header.split(";"):
        part = part.strip()
        if part.startswith("ASPSESSIONID"):
            return part[len("ASPSESSIONID"):]
    return None


def _read_request(conn: socket.socket, addr: tuple) -> _Request:
    try:
        host_ip = conn.getsockname()[0]
    except OSError:
        host_ip = "0.0.0.0"
    request = _Request(start_time=time.time(), client_ip=str(addr[0]), host_ip=host_ip)
    data = b""
    while b"\r\n\r\n" not in data and len(data) < _HEADER_LIMIT:
        chunk = conn.recv(4096)
        if not chunk:
            break
        data += chunk
    head, _, body = data.partition(b"\r\n\r\n")
    lines = head.decode("latin-1").split("\r\n")
    parts = lines[0].split()
    if len(parts) != 3 or not parts[2].startswith("HTTP/1."):
        request.message = "HTTP/1.1 400 Bad Request"
        request.total_bytes = len(data)
        return request
    request.method = parts[0].upper()
    request.http_version = 0 if parts[2] == "HTTP/1.0" else 1
    _split_target(request, parts[1])
    for line in lines[1:]:
        name, sep, value = line.partition(":")
        if sep:
            key = name.strip().upper().replace("-", "_")
            request.headers[key] = value.strip()
    request.cookie = _session_cookie(request.headers.get("COOKIE"))
    length = _atoi(request.headers.get("CONTENT_LENGTH", "0"))
    while len(body) < length:
        chunk = conn.recv(min(65536, length - len(body)))
        if not chunk:
            break
        body += chunk
    request.body = body
    request.total_bytes = len(head) + 4 + len(body)
    return request


def _error_page(request: _Request, response: Response, session: Session) -> None:
    message = request.message or f"HTTP/1.1 {response.send_code}"
    page = html_encode(f"{request.path}{request.file}.{request.ext}")
    response.write(
        "<html>\n<head><title>"
        f"{html_encode(message)}</title></head>\n<body><h1>{html_encode(message)}</h1>\n"
        f"<p>{page}</p>\n</body>\n</html>\n"
    )


class _Server:
    def __init__(self, state: SavedState, ini_path: str) -> None:
        self.state = state
        self.site = state.site
        self.ini_path = ini_path
        self.jar = CookieJar(state.server_index, state.cookie_index)
        self.registry = ScriptRegistry()
        for spec in state.scripts:
            self.registry.add(spec.path, spec.name, spec.ext, spec.init, spec.exit, spec.run)
        self.log = W3CLog(self.site)
        self.running = True
        self.last_scan = 0.0
        self._pool: ThreadPoolExecutor | None = None
        self._sweeper: threading.Thread | None = None
        self._stop_sweep = threading.Event()

    @property
    def _logging(self) -> bool:
        return bool(self.site.logging and self.site.log_options)

    def rectify_threads(self) -> None:
        if self._pool is not None:
            self._pool.shutdown(wait=True)
            self._pool = None
        if self.site.worker_threads > 0:
            self._pool = ThreadPoolExecutor(max_workers=self.site.worker_threads)
            if self._sweeper is None:
                self._stop_sweep.clear()
                self._sweeper = threading.Thread(target=self._sweep_loop, daemon=True)
                self._sweeper.start()
        elif self._sweeper is not None:
            self._stop_sweep.set()
            self._sweeper.join()
            self._sweeper = None

    def _sweep_loop(self) -> None:
        while not self._stop_sweep.wait(SWEEP_INTERVAL):
            self.jar.sweep(time.time(), self.site.session_timeout)

    def scan_directory(self) -> None:
        try:
            with open(self.site.user_sources, "rb") as source:
                data = source.read()
        except OSError:
            return
        self.registry.apply_directory(parse_directory(data))

    def save(self) -> None:
        if self.site.save_disable:
            return
        scripts = [
            ScriptSpec(s.path, s.name, s.ext, s.init, s.exit, s.run) for s in self.registry
        ]
        state = SavedState(
            site=self.site,
            cookie_index=self.jar.cookie_index,
            server_index=self.jar.server_index,
            scripts=scripts,
        )
        try:
            save_settings(self.ini_path, state)
        except OSError as exc:
            print(f"Couldn't save settings: {exc}")

    def _run(self, entry, request: _Request, response: Response, session: Session) -> None:
        started = time.monotonic()
        try:
            entry(request, response, session)
        except Exception:
            traceback.print_exc()
            if not response.header_sent:
                response.send_code = 500
        finally:
            if self._logging:
                response.flush()
            response.close()
        if self._logging:
            self.log.add(
                LogRecord(
                    start_time=request.start_time,
                    client_ip=request.client_ip,
                    host_ip=request.host_ip,
                    post=request.method == "POST",
                    path=request.path,
                    file=request.file,
                    ext=request.ext,
                    query=request.query,
                    status=response.send_code,
                    bytes_sent=response.total_bytes,
                    bytes_received=request.total_bytes,
                    elapsed_ms=int((time.monotonic() - started) * 1000),
                    user=request.headers.get("REMOTE_USER"),
                    host=request.headers.get("HOST"),
                    user_agent=request.headers.get("USER_AGENT"),
                    cookie=request.cookie,
                    referer=request.headers.get("REFERER"),
                )
            )
        if session.used_time == 0:
            self.jar.discard(session)

    def _launch(self, entry, request: _Request, response: Response, session: Session) -> None:
        if self._pool is None:
            self._run(entry, request, response, session)
        else:
            self._pool.submit(self._run, entry, request, response, session)

    def handle(self, conn: socket.socket, addr: tuple) -> None:
        conn.settimeout(30)
        try:
            request = _read_request(conn, addr)
        except OSError:
            conn.close()
            return
        response = Response(
            conn.sendall, http_version=request.http_version, close=conn.close
        )
        entry = _error_page
        if request.message:
            response.send_code = 400
        session = self.jar.lookup(request.cookie)
        if session is None:
            session = Session()
            response.session = session
            response.cookie_jar = self.jar
            if self.site.sessions_max and len(self.jar) >= self.site.sessions_max:
                request.message = "HTTP/1.1 503 Service Unavailable"
                response.send_code = 503
                self._launch(entry, request, response, session)
                return

        now = time.time()
        if now - self.last_scan > SCAN_INTERVAL:
            self.scan_directory()
            self.last_scan = now
            if self._logging:
                self.log.flush(now)

        script: Script | None = None
        if not request.message:
            script = self.registry.get(request.path, request.file, request.ext)
        if script is not None and script.entry is not None:
            entry = script.entry
        elif not request.message:
            request.message = "HTTP/1.1 404 Not Found"
            response.send_code = 404
        self._launch(entry, request, response, session)

    def _listen(self) -> socket.socket:
        host = "" if self.site.open_card == "any" else self.site.open_card
        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        try:
            sock.bind((host, self.site.open_port))
            sock.listen(socket.SOMAXCONN)
        except OSError:
            sock.close()
            raise
        return sock

    def serve(self) -> int:
        try:
            server = self._listen()
        except OSError:
            print(
                f"Couldn't bind the Server Socket to NetWork "
                f"'{self.site.open_card}:{self.site.open_port}'."
            )
            print("Is a Web Server already running at that address?")
            return 0

        old_workers = self.site.worker_threads
        old_port = self.site.open_port
        self.rectify_threads()
        failures = 0
        try:
            while self.running:
                try:
                    conn, addr = server.accept()
                except OSError as exc:
                    if exc.errno == errno.ENOTSOCK:
                        print("Sockets subsystem was shutdown...  Terminating Server...")
                        break
                    failures += 1
                    if failures == MAX_ACCEPT_ERRORS:
                        print("Too many errors in a row...  Terminating Server...")
                        break
                    print(f"Error {exc.errno} 'accept'ing from the master listener socket.")
                    continue
                failures = 0
                self.handle(conn, addr)

                if self.site.save_trigger:
                    self.site.save_trigger = False
                    self.save()
                if old_workers != self.site.worker_threads:
                    self.site.clamp_threads()
                    old_workers = self.site.worker_threads
                    self.rectify_threads()
                if self.site.open_port != old_port:
                    old_port = self.site.open_port
                    server.close()
                    server = self._listen()
        except KeyboardInterrupt:
            pass
        finally:
            self.save()
            self.site.worker_threads = 0
            self.rectify_threads()
            if self._logging:
                self.log.flush()
            self.log.close()
            server.close()
            self.jar.clear()
        return 0


def main(argv: list[str] | None = None) -> int:
    """Run the server; options: -ini=FILE, -port=N, -log=N, -threads=N."""
    args = list(sys.argv[1:] if argv is None else argv)
    ini_path = INI_FILE
    for arg in args:
        if arg.startswith("-ini="):
            ini_path = arg[5:]
    state = load_settings(ini_path)
    apply_overrides(state.site, args)
    return _Server(state, ini_path).serve()


if __name__ == "__main__":
    sys.exit(main())