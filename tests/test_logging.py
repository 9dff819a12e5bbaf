# =============================================
# File: tests/test_logging.py
# =============================================
import sys, os, json
sys.path.append(os.path.dirname(os.path.dirname(__file__)))

from fastapi.testclient import TestClient

from fakes import FakeGateway, make_service
from magicommerce.main import app
from magicommerce.routers.personalization import get_personalization
from magicommerce.services.gateway import UpstreamError
from magicommerce.utils import slog


def _find_json_events(caplog, name: str):
    out = []
    for rec in caplog.records:
        try:
            data = json.loads(rec.message)
        except Exception:
            continue
        if data.get("event") == name:
            out.append(data)
    return out


def test_structured_log_on_request(caplog):
    caplog.set_level("INFO", logger="magicommerce")
    svc = make_service(gateway=FakeGateway(ranking=UpstreamError("timeout", "slow")))
    app.dependency_overrides[get_personalization] = lambda: svc
    try:
        r = TestClient(app).get("/personalization/recommendations", params={"user_id": "u-log", "limit": 2})
        assert r.status_code == 200
    finally:
        app.dependency_overrides.clear()

    done = _find_json_events(caplog, "request.completed")
    assert done
    evt = done[-1]
    assert evt["path"] == "/personalization/recommendations"
    assert evt["request_id"] == r.headers["X-Request-ID"]
    assert isinstance(evt["latency_ms"], int)
    assert evt["count"] == 2
    # raw user ids never reach the log
    assert evt["user"] == slog.uhash("u-log") and "u-log" not in json.dumps(evt)

    fb = _find_json_events(caplog, "recommend.fallback")
    assert fb and fb[-1]["cause"] == "timeout"


def test_uhash_is_short_and_stable():
    assert slog.uhash("abc") == slog.uhash(" abc ")
    assert len(slog.uhash("abc")) == 10
    assert slog.uhash(None) == ""
