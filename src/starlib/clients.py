from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List, Optional
from urllib.parse import quote

import requests

from .config import Profile
from .errors import FetchFailure
from .functions import FunctionOrder

logger = logging.getLogger(__name__)


def _session(profile: Profile) -> requests.Session:
    session = requests.Session()
    session.headers["Accept"] = "application/json"
    if profile.token:
        session.headers["Authorization"] = f"Bearer {profile.token}"
    session.verify = profile.verify_tls
    return session


def _error_detail(resp: requests.Response) -> str:
    """Extract the backend's message from an error response.

    The console answers errors as ``{"code": ..., "message": ...}``; fall back
    to the raw body for proxies and other non-JSON answers.
    """
    try:
        body = resp.json()
    except ValueError:
        return resp.text.strip() or resp.reason or "no response body"
    if isinstance(body, dict):
        for key in ("message", "error", "detail"):
            if body.get(key):
                return str(body[key])
    return str(body)


def _request(
    profile: Profile,
    method: str,
    path: str,
    operation: str,
    params: Optional[Dict[str, Any]] = None,
    json: Any = None,
) -> Any:
    url = f"{profile.base_url}{path}"
    logger.debug("%s %s params=%s", method, url, params)
    try:
        with _session(profile) as session:
            resp = session.request(method, url, params=params, json=json, timeout=profile.timeout)
    except requests.RequestException as e:
        raise FetchFailure(operation, str(e)) from e

    if not resp.ok:
        raise FetchFailure(operation, _error_detail(resp), status=resp.status_code)
    if resp.status_code == 204 or not resp.content:
        return None
    try:
        return resp.json()
    except ValueError as e:
        raise FetchFailure(operation, f"invalid JSON response: {e}", status=resp.status_code) from e


def fetch_system_function(profile: Profile, function_name: str, nested_path: Optional[str] = None) -> List[Dict[str, Any]]:
    """Return the rows of one system function level.

    ``nested_path`` is the ``/``-joined drill path below the function root,
    sent as the ``path`` query parameter.
    """
    params = {"path": nested_path} if nested_path else None
    payload = _request(
        profile,
        "GET",
        f"/clusters/system/{function_name}",
        f"load system function '{function_name}'",
        params=params,
    )
    if isinstance(payload, dict):
        return list(payload.get("data") or [])
    if isinstance(payload, list):
        return payload
    return []


def list_functions(profile: Profile) -> List[Dict[str, Any]]:
    """Return every stored function descriptor (built-in and user-defined) as raw JSON."""
    return _request(profile, "GET", "/clusters/system-functions", "list functions") or []


def create_function(profile: Profile, category: str, name: str, description: str, sql_query: str) -> Dict[str, Any]:
    body = {
        "category_name": category,
        "function_name": name,
        "description": description,
        "sql_query": sql_query,
    }
    return _request(profile, "POST", "/clusters/system-functions", "create function", json=body)


def update_function(
    profile: Profile,
    function_id: int,
    category: str,
    name: str,
    description: str,
    sql_query: str,
) -> Dict[str, Any]:
    """Replace every editable field of a user-defined function; all are required."""
    body = {
        "category_name": category,
        "function_name": name,
        "description": description,
        "sql_query": sql_query,
    }
    return _request(
        profile,
        "PUT",
        f"/clusters/system-functions/{function_id}",
        f"update function {function_id}",
        json=body,
    )


def execute_function(profile: Profile, function_id: int) -> List[Dict[str, Any]]:
    """Run a user-defined function's stored query; returns flat rows."""
    return (
        _request(
            profile,
            "POST",
            f"/clusters/system-functions/{function_id}/execute",
            f"execute function {function_id}",
            json={},
        )
        or []
    )


def update_function_orders(profile: Profile, orders: Iterable[FunctionOrder]) -> None:
    body = {"functions": [o.to_payload() for o in orders]}
    _request(profile, "PUT", "/clusters/system-functions/orders", "save function order", json=body)


def toggle_favorite(profile: Profile, function_id: int) -> Dict[str, Any]:
    return _request(
        profile,
        "PUT",
        f"/clusters/system-functions/{function_id}/favorite",
        f"toggle favorite for function {function_id}",
        json={},
    )


def delete_function(profile: Profile, function_id: int) -> None:
    _request(profile, "DELETE", f"/clusters/system-functions/{function_id}", f"delete function {function_id}")


def delete_category(profile: Profile, category_name: str) -> None:
    """Delete a custom category together with its user-defined functions."""
    _request(
        profile,
        "DELETE",
        f"/system-functions/category/{quote(category_name, safe='')}",
        f"delete category '{category_name}'",
    )


def touch_system_function(profile: Profile, function_name: str) -> None:
    _request(
        profile,
        "PUT",
        f"/system-functions/{function_name}/access-time",
        f"update access time for '{function_name}'",
        json={},
    )


def list_clusters(profile: Profile) -> List[Dict[str, Any]]:
    return _request(profile, "GET", "/clusters", "list clusters") or []


def get_active_cluster(profile: Profile) -> Optional[Dict[str, Any]]:
    try:
        return _request(profile, "GET", "/clusters/active", "get active cluster")
    except FetchFailure as e:
        if e.status == 404:
            return None
        raise


def activate_cluster(profile: Profile, cluster_id: int) -> Dict[str, Any]:
    return _request(profile, "PUT", f"/clusters/{cluster_id}/activate", f"activate cluster {cluster_id}", json={})
