# jisweb

A small HTTP server and the building blocks around it. It gives each new
visitor a session cookie and keeps its settings in a binary settings file.
It can write a W3C extended-format access log. It also keeps a registry of
page scripts and has a helper that builds a script member with an external
compiler.

## Installing

```
pip install .
```

To run the test suite:

```
pip install .[test]
pytest
```

## Running the server

```
jisweb
```

`python -m jisweb.cli` does the same. The command reads the settings file,
which is `//DDN:INIFILE` unless `-ini=FILE` names another. If the file is
missing, built-in defaults are used: port 80 on any interface, no worker
threads, unlimited sessions, a 20-minute session timeout and logging
switched off. If the file exists but is not a settings file, the defaults
are used and the file is never overwritten.

Settings can be overridden on the command line:

```
jisweb -ini=site.ini -port=8080 -log=1 -threads=4
```

- `-ini=FILE`: the settings file to read, and to save to on shutdown.
- `-port=N`: the port to listen on.
- `-log=N`: a non-zero value turns W3C logging on, `0` turns it off.
- `-threads=N`: the number of worker threads, clamped to 0–64. With `0`,
  requests are handled on the listening thread.

Other arguments are ignored. `apply_overrides(site, argv)` applies the
`-port=`, `-log=` and `-threads=` options to a `WebSite`.

The server answers a request line it cannot parse with `400 Bad Request`.
It answers a page that has no runnable script with `404 Not Found`. Both
get a short HTML page naming the status. Every response is sent with
`Connection: close`. On shutdown (Ctrl-C, or repeated `accept` failures)
the settings, cookie counters and registered scripts are saved back to the
settings file, unless saving is disabled.

### What the server does not do

The server does not load or run page scripts. Scripts listed in the
settings file are registered, and a scan of the source library marks
changed ones for rebuilding. No script is ever given a runnable entry
point, though, so every well-formed request gets the 404 page. It does
not call `compile_member` itself.

## Sessions

`jisweb.sessions` holds `Session` and `CookieJar`. A visitor without a known
`ASPSESSIONID` cookie gets a fresh `Session`. That session is stored in the
jar, and a `Set-Cookie: ASPSESSIONID…` header sent, when a `200 OK` header
goes out. Cookies take the form `SSSSSSSS=CCCCCCCCCCCCCCCC`: the server
index and a running cookie counter, both in hexadecimal.

```python
from jisweb.sessions import CookieJar, Session

jar = CookieJar()
session = Session()
cookie = jar.issue(session)          # '00000000=0000000000000000'
assert jar.lookup(cookie, now=0) is session
```

`CookieJar.sweep(now, timeout_minutes)` removes idle sessions.
`discard(session)` and `clear()` remove sessions directly.
`Session.abandon()` marks a session so that the server discards it after
the request. The server sweeps once a minute, but only while worker
threads are running. When a maximum session count is set and reached, new
visitors get `503 Service Unavailable`.

## Responses

`jisweb.response.Response` buffers output and sends it in 4096-byte blocks
through a `send` callable. The header goes just before the first data.
It has `write`, `flush`, `redirect` (a 302 with a small link page) and
`close`, and works as a context manager. `status_line(code, version,
extra, cookie)` builds the status line and headers. It answers codes
other than 200, 301, 302, 400, 401, 404, 500 and 503 as
`501 Not Implemented`.

## Logging

When logging is on, one line per request is queued, and queued lines are
appended to the site's log file every few seconds and on shutdown. A bit
mask of `LogField` values chooses the fields. The default mask selects
`time c-ip cs-method cs-uri-stem sc-status`:

```
#Software: JCC-ASP1.0
#Version: 1.0
#Date: 2003-12-04 01:47:43
#Fields: time c-ip cs-method cs-uri-stem sc-status
01:47:43 127.0.0.1 GET /default.asp 200
```

In `jisweb.w3clog`:

- `field_names(options)` lists the field names for a mask.
- `format_entry(record, site)` renders one `LogRecord`.
- `W3CLog` queues entries with `add` and writes them with `flush`.

If the log file cannot be opened, logging stops for good.

## Settings file

`jisweb.settings` has `load_settings(path)` and `save_settings(path, state)`,
which read and write the binary settings file. The file holds a
`SavedState`: the `WebSite` configuration, the cookie counters and the
registered scripts as `ScriptSpec` entries. `default_site()` returns the
built-in defaults. `WebSite.clamp_threads()` keeps the worker count within
0–64.

## Scripts and building them

`jisweb.scripts.ScriptRegistry` is an ordered, thread-safe list of `Script`
entries. Lookups ignore case. It has `add`, `add_loaded`, `remove`,
`invalidate`, `get` and `apply_directory`. `parse_directory(data)` reads
(member name, TTR) pairs from a partitioned data set directory with EBCDIC
member names.

`jisweb.compiler.compile_command(site, member, output, tempdir, messages)`
returns the `JCC` shell command line for a member. `compile_member` runs
that command and returns a non-zero version stamp. It raises
`CompileError` if the source member cannot be opened or the compiler
fails.

## Encoding helpers

```python
from jisweb.encoding import html_encode, url_encode
from jisweb.codepage import ascii_to_ebcdic, ebcdic_to_ascii

html_encode('<a href="x">&</a>')
# '&lt;a href=&quot;x&quot;&gt;&amp;&lt;/a&gt;'

url_encode("a b+c")      # 'a%20b%2Bc'

ascii_to_ebcdic(b"A")    # b'\xc1'
ebcdic_to_ascii(b"\xc1") # b'A'
```

`url_encode` encodes text as UTF-8 first. It then percent-escapes, with
upper-case hex digits, every byte that is unsafe in a URL (space,
`< > " # % { } | \ ^ ~ [ ] ` and `+`), every control byte and every
non-ASCII byte. The code page tables are IBM code page 1047.