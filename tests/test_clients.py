from __future__ import annotations

from typing import Any, Dict, List

import pytest
import requests

import starlib.clients as clients
from starlib.config import Profile
from starlib.errors import FetchFailure
from starlib.functions import FunctionOrder


PROFILE = Profile(name="test", url="http://console:8080/api/", token="abc", timeout=3)


def make_response(status: int, body: bytes = b"", reason: str = "") -> requests.Response:
    resp = requests.Response()
    resp.status_code = status
    resp._content = body
    resp.reason = reason
    resp.headers["Content-Type"] = "application/json"
    return resp


@pytest.fixture
def sent(monkeypatch):
    """Capture outgoing requests; tests push responses onto ``sent.responses``."""

    class Recorder:
        def __init__(self):
            self.calls: List[Dict[str, Any]] = []
            self.responses: List[Any] = []

    recorder = Recorder()

    def fake_request(self, method, url, **kwargs):
        recorder.calls.append(
            {"method": method, "url": url, "headers": dict(self.headers), "verify": self.verify, **kwargs}
        )
        result = recorder.responses.pop(0)
        if isinstance(result, Exception):
            raise result
        return result

    monkeypatch.setattr(requests.Session, "request", fake_request)
    return recorder


def test_fetch_root_level(sent):
    sent.responses.append(make_response(200, b'{"data": [{"DbId": 1, "DbName": "sales"}]}'))

    rows = clients.fetch_system_function(PROFILE, "dbs")

    assert rows == [{"DbId": 1, "DbName": "sales"}]
    call = sent.calls[0]
    assert call["method"] == "GET"
    assert call["url"] == "http://console:8080/api/clusters/system/dbs"
    assert call["params"] is None
    assert call["timeout"] == 3
    assert call["headers"]["Authorization"] == "Bearer abc"


def test_fetch_nested_path_is_sent_as_query_param(sent):
    sent.responses.append(make_response(200, b'{"data": []}'))

    assert clients.fetch_system_function(PROFILE, "transactions", "5001/running") == []
    assert sent.calls[0]["params"] == {"path": "5001/running"}


def test_fetch_missing_data_key(sent):
    sent.responses.append(make_response(200, b"{}"))
    assert clients.fetch_system_function(PROFILE, "dbs") == []


def test_backend_error_message_is_extracted(sent):
    sent.responses.append(make_response(500, b'{"code": "E500", "message": "show_proc failed"}'))

    with pytest.raises(FetchFailure) as exc:
        clients.fetch_system_function(PROFILE, "dbs")

    assert exc.value.status == 500
    assert exc.value.detail == "show_proc failed"
    assert "HTTP 500" in str(exc.value)


def test_non_json_error_body(sent):
    sent.responses.append(make_response(502, b"Bad Gateway", reason="Bad Gateway"))
    with pytest.raises(FetchFailure, match="Bad Gateway"):
        clients.list_clusters(PROFILE)


def test_transport_error_becomes_fetch_failure(sent):
    sent.responses.append(requests.ConnectionError("connection refused"))
    with pytest.raises(FetchFailure, match="connection refused") as exc:
        clients.list_functions(PROFILE)
    assert exc.value.status is None


def test_invalid_json_success_body(sent):
    sent.responses.append(make_response(200, b"<html>"))
    with pytest.raises(FetchFailure, match="invalid JSON"):
        clients.list_functions(PROFILE)


def test_update_orders_payload(sent):
    sent.responses.append(make_response(204))

    clients.update_function_orders(PROFILE, [FunctionOrder(3, 0, 1), FunctionOrder(7, 1, 1)])

    call = sent.calls[0]
    assert call["method"] == "PUT"
    assert call["url"].endswith("/clusters/system-functions/orders")
    assert call["json"] == {
        "functions": [
            {"id": 3, "displayOrder": 0, "categoryOrder": 1},
            {"id": 7, "displayOrder": 1, "categoryOrder": 1},
        ]
    }


def test_execute_function(sent):
    sent.responses.append(make_response(200, b'[{"QueryId": "q1"}]'))
    assert clients.execute_function(PROFILE, 12) == [{"QueryId": "q1"}]
    assert sent.calls[0]["url"].endswith("/clusters/system-functions/12/execute")
    assert sent.calls[0]["method"] == "POST"


def test_touch_access_time(sent):
    sent.responses.append(make_response(200))
    clients.touch_system_function(PROFILE, "transactions")
    assert sent.calls[0]["url"] == "http://console:8080/api/system-functions/transactions/access-time"


def test_active_cluster_missing_is_none(sent):
    sent.responses.append(make_response(404, b'{"code": "E404", "message": "No active cluster found"}'))
    assert clients.get_active_cluster(PROFILE) is None


def test_active_cluster_other_errors_propagate(sent):
    sent.responses.append(make_response(401, b'{"message": "token expired"}'))
    with pytest.raises(FetchFailure) as exc:
        clients.get_active_cluster(PROFILE)
    assert exc.value.status == 401


def test_no_token_no_auth_header(sent):
    sent.responses.append(make_response(200, b"[]"))
    clients.list_clusters(Profile(name="anon", url="http://x", verify_tls=False))
    assert "Authorization" not in sent.calls[0]["headers"]
    assert sent.calls[0]["verify"] is False


def test_create_function_body(sent):
    sent.responses.append(make_response(200, b'{"id": 13}'))
    assert clients.create_function(PROFILE, "Custom", "big_tables", "Largest tables", "select 1") == {"id": 13}
    assert sent.calls[0]["json"] == {
        "category_name": "Custom",
        "function_name": "big_tables",
        "description": "Largest tables",
        "sql_query": "select 1",
    }


def test_update_function_sends_every_field(sent):
    sent.responses.append(make_response(200, b'{"id": 12, "functionName": "slow_queries"}'))

    result = clients.update_function(PROFILE, 12, "Custom", "slow_queries", "Slow queries", "select 2")

    assert result == {"id": 12, "functionName": "slow_queries"}
    call = sent.calls[0]
    assert call["method"] == "PUT"
    assert call["url"] == "http://console:8080/api/clusters/system-functions/12"
    assert call["json"] == {
        "category_name": "Custom",
        "function_name": "slow_queries",
        "description": "Slow queries",
        "sql_query": "select 2",
    }


def test_delete_category_quotes_name(sent):
    sent.responses.append(make_response(204))

    assert clients.delete_category(PROFILE, "My Checks/daily") is None

    call = sent.calls[0]
    assert call["method"] == "DELETE"
    assert call["url"] == "http://console:8080/api/system-functions/category/My%20Checks%2Fdaily"


def test_delete_system_category_error_is_reported(sent):
    sent.responses.append(make_response(400, b'{"code": "E400", "message": "Cannot delete system category"}'))
    with pytest.raises(FetchFailure, match="Cannot delete system category") as exc:
        clients.delete_category(PROFILE, "Cluster Info")
    assert exc.value.status == 400
