import hashlib
import re

from ig_session import FileSessionStore, Session, parse_set_cookies


def test_ingest_is_a_one_way_latch():
    session = Session()
    session.ingest({"Set-Cookie": ["a=1", "b=2; Secure"]})
    session.ingest({"Set-Cookie": ["a=9"]})

    assert session.cookies == {"a": "1", "b": "2"}


def test_secure_cookie_wins_over_plain_cookie_with_same_name():
    assert parse_set_cookies(["x=plain; Path=/", "x=secure; Path=/; Secure"]) == {"x": "secure"}
    assert parse_set_cookies(["x=secure; Secure", "x=plain"]) == {"x": "secure"}


def test_ingest_accepts_single_header_value_case_insensitively():
    session = Session()
    session.ingest({"set-cookie": "csrftoken=tok123; Path=/; Secure"})

    assert session.cookies == {"csrftoken": "tok123"}
    assert session.csrf_token == "tok123"
    assert session.session_id is None


def test_ingest_extracts_session_id_and_csrf_token():
    session = Session()
    session.ingest({"Set-Cookie": ["sessionid=sess; HttpOnly", "csrftoken=csrf; Secure", "broken-cookie"]})

    assert session.session_id == "sess"
    assert session.csrf_token == "csrf"
    assert "broken-cookie" not in session.cookies


def test_ingest_without_set_cookie_is_noop():
    session = Session()
    session.ingest({"Content-Type": "application/json"})
    assert session.cookies == {}


def test_headers_use_stored_state_and_extra_headers_win():
    session = Session(cookies={"sessionid": "s1", "csrftoken": "c1"}, user_agent="UA/1.0")
    headers = session.headers({"user-agent": "Override/2.0", "x-ig-app-id": "1"})

    assert headers["cookie"] == "sessionid=s1; csrftoken=c1"
    assert headers["referer"] == "https://www.instagram.com/"
    assert headers["x-csrftoken"] == "c1"
    assert headers["user-agent"] == "Override/2.0"
    assert headers["x-ig-app-id"] == "1"


def test_headers_generate_csrf_token_and_omit_missing_user_agent():
    session = Session(user_agent=None)
    headers = session.headers()

    assert re.fullmatch(r"[0-9a-f]{32}", headers["x-csrftoken"])
    assert "user-agent" not in headers
    assert headers["cookie"] == ""


def test_restore_replaces_authoritative_session():
    session = Session(cookies={"a": "1"})
    session.restore("new-session", "new-csrf", {"ds_user_id": "42"})

    assert session.session_id == "new-session"
    assert session.csrf_token == "new-csrf"
    assert session.cookies == {"ds_user_id": "42", "sessionid": "new-session", "csrftoken": "new-csrf"}


def test_blob_and_file_store_round_trip(tmp_path):
    session = Session(cookies={"sessionid": "abc", "csrftoken": "tok"})
    store = FileSessionStore(str(tmp_path / "cache"))

    key = session.cache_key()
    store.save(key, session.to_blob())
    restored = Session.from_blob(store.load(key))

    assert key == hashlib.md5(b"abc").hexdigest()
    assert restored.cookies == session.cookies
    assert restored.session_id == "abc"
    assert restored.csrf_token == "tok"
    assert store.load("missing") is None
