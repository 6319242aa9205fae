from jisweb.encoding import url_encode
from jisweb.response import BUFFER_SIZE, Response, status_line
from jisweb.sessions import CookieJar, Session


def _response(**kwargs):
    chunks = []
    return Response(chunks.append, **kwargs), chunks


def test_plain_ok_header():
    assert status_line(200) == "HTTP/1.1 200 OK\r\nConnection: close\r\n\r\n"


def test_version_zero():
    assert status_line(404, version=0).startswith("HTTP/1.0 404 Not Found\r\n")


def test_unknown_code_is_not_implemented():
    assert "501 Not Implemented" in status_line(0)
    assert "501 Not Implemented" in status_line(418)


def test_unauthorised_spelling():
    assert "401 Unauthorised" in status_line(401)


def test_cookie_only_with_200():
    assert "Set-Cookie: ASPSESSIONIDabc" in status_line(200, cookie="abc")
    assert "Set-Cookie" not in status_line(302, cookie="abc")


def test_extra_only_with_redirects():
    assert "\r\nLocation: /a\r\n" in status_line(302, extra=["Location: /a"])
    assert "\r\nLocation: /a\r\n" in status_line(301, extra=["Location: /a"])
    assert "Location" not in status_line(404, extra=["Location: /a"])


def test_small_write_is_buffered_until_flush():
    response, chunks = _response()
    response.write("hello")
    assert chunks == []
    response.flush()
    assert chunks[0] == status_line(200).encode()
    assert b"".join(chunks[1:]) == b"hello"
    assert response.total_bytes == sum(len(c) for c in chunks)


def test_large_write_sends_whole_blocks():
    response, chunks = _response()
    response.write("a" * (BUFFER_SIZE + 904))
    assert chunks[0] == status_line(200).encode()
    assert [len(c) for c in chunks[1:]] == [BUFFER_SIZE]
    response.flush()
    assert b"".join(chunks[1:]) == b"a" * (BUFFER_SIZE + 904)
    assert response.total_bytes == sum(len(c) for c in chunks)


def test_send_code_used_in_header():
    response, chunks = _response(send_code=503)
    response.write("busy")
    response.flush()
    assert chunks[0] == status_line(503).encode()


def test_redirect_sends_location_and_link():
    response, chunks = _response()
    response.redirect("/x y")
    sent = b"".join(chunks)
    assert sent.startswith(status_line(302, extra=["Location: /x y"]).encode())
    assert f'HREF="{url_encode("/x y")}"'.encode() in sent
    assert response.redirected is True
    response.write("later")
    response.close()
    assert b"later" not in b"".join(chunks)


def test_redirect_after_output_is_ignored():
    response, chunks = _response()
    response.write("data")
    response.flush()
    before = list(chunks)
    response.redirect("/elsewhere")
    assert chunks == before
    assert response.redirected is False


def test_session_cookie_round_trip():
    jar = CookieJar()
    session = Session()
    response, chunks = _response(session=session, cookie_jar=jar)
    response.write("x")
    response.flush()
    header = chunks[0].decode()
    marker = "Set-Cookie: ASPSESSIONID"
    cookie = header.split(marker, 1)[1].split("\r\n", 1)[0]
    assert jar.lookup(cookie) is session
    assert len(jar) == 1
    assert response.session is None


def test_close_flushes_and_closes():
    closed = []
    response, chunks = _response(close=lambda: closed.append(True))
    response.write("tail")
    response.close()
    assert b"".join(chunks).endswith(b"tail")
    assert closed == [True]
    response.close()
    assert closed == [True]


def test_close_without_output_sends_nothing():
    response, chunks = _response()
    response.close()
    assert chunks == []
    assert response.total_bytes == 0


def test_context_manager_closes():
    chunks = []
    with Response(chunks.append) as response:
        response.write("body")
    assert response.closed is True
    assert b"".join(chunks).endswith(b"body")