"""Request logging middleware: what gets logged and how secrets are masked."""

from fastapi.testclient import TestClient

from ginius.middleware import _mask, _mask_secret, _safe_json_body
from ginius.router import create_app
from ginius.settings import Settings


def test_mask_secret_keeps_edges():
    assert _mask_secret("abcdef1234567890") == "abcdef***7890"
    assert _mask_secret("short") == "***"
    assert _mask_secret(None) == ""


def test_mask_walks_nested_structures():
    data = {"user": {"password": "p4ssw0rd-very-long", "name": "ann"}, "items": [{"api_key": "k"}]}
    assert _mask(data) == {
        "user": {"password": "p4ssw0***long", "name": "ann"},
        "items": [{"api_key": "***"}],
    }


def test_safe_json_body_handles_non_objects():
    assert _safe_json_body(b"") is None
    assert _safe_json_body(b"{not json") is None
    assert _safe_json_body(b"[1, 2]") == {"_raw": [1, 2]}
    assert _safe_json_body(b'{"token": "x"}') == {"token": "***"}


def _app(db, db_url, **kw):
    return create_app(db, Settings(database_url=db_url, **kw))


def test_requests_are_logged(db, db_url, app_log):
    with TestClient(_app(db, db_url, log_requests=True)) as c:
        c.get("/")
    lines = [r.getMessage() for r in app_log.records if r.getMessage().startswith("request ")]
    assert lines
    assert "'path': '/'" in lines[-1]
    assert "'status': 200" in lines[-1]


def test_request_body_is_logged_masked(db, db_url, app_log):
    with TestClient(_app(db, db_url, log_requests=True, log_request_body=True)) as c:
        c.post("/", json={"password": "supersecretvalue1", "name": "x"})
    lines = [r.getMessage() for r in app_log.records if r.getMessage().startswith("request ")]
    assert lines
    assert "supersecretvalue1" not in lines[-1]
    assert "supers***lue1" in lines[-1]
    assert "'name': 'x'" in lines[-1]


def test_logging_disabled(db, db_url, app_log):
    with TestClient(_app(db, db_url, log_requests=False)) as c:
        c.get("/")
    assert not [r for r in app_log.records if r.getMessage().startswith("request ")]
