from __future__ import annotations

import pytest

from starlib.context import ClusterContext, ClusterRef
from starlib.errors import FetchFailure
from starlib.execution import FunctionDispatcher, QueryResult
from starlib.functions import FunctionDescriptor
from starlib.navigation import NavigationController, NavigationStatus


def make_controller(calls):
    def fetch(function_name, nested_path):
        calls.append((function_name, nested_path))
        return [{"TransactionId": "5001"}]

    return NavigationController(fetch)


SYSTEM_FUNC = FunctionDescriptor(name="transactions", description="Transactions", category="Txn")
CUSTOM_FUNC = FunctionDescriptor(
    name="slow_queries",
    description="Slow queries",
    category="Custom",
    is_system_defined=False,
    id=12,
    sql_query="select * from slow",
)


def test_system_function_opens_navigation():
    calls, touched = [], []
    controller = make_controller(calls)
    dispatcher = FunctionDispatcher(controller, runner=lambda f: [], touch=touched.append)

    result = dispatcher.open(SYSTEM_FUNC)

    assert result is controller
    assert controller.status is NavigationStatus.BROWSING
    assert calls == [("transactions", None)]
    assert touched == ["transactions"]


def test_touch_failure_does_not_block_navigation():
    calls = []
    controller = make_controller(calls)

    def touch(name):
        raise FetchFailure("update access time", "boom", status=500)

    FunctionDispatcher(controller, runner=lambda f: [], touch=touch).open(SYSTEM_FUNC)
    assert controller.depth == 1


def test_custom_function_returns_flat_result_and_clears_navigation():
    calls = []
    controller = make_controller(calls)
    controller.select_root("transactions")
    rows = [{"QueryId": "q1", "Duration": 10}]
    dispatcher = FunctionDispatcher(controller, runner=lambda f: rows)

    result = dispatcher.open(CUSTOM_FUNC)

    assert isinstance(result, QueryResult)
    assert result.rows == rows
    assert result.schema.columns == ["QueryId", "Duration"]
    # id-like column, but custom queries never drill down
    assert result.schema.navigable_column is None
    assert controller.status is NavigationStatus.IDLE


def test_custom_function_errors_become_fetch_failures():
    controller = make_controller([])

    def runner(func):
        raise RuntimeError("mysql gone")

    with pytest.raises(FetchFailure, match="mysql gone"):
        FunctionDispatcher(controller, runner=runner).open(CUSTOM_FUNC)


def test_newer_query_supersedes_pending_one():
    dispatcher = FunctionDispatcher(make_controller([]), runner=lambda f: [])

    first = dispatcher.begin_query(CUSTOM_FUNC)
    second = dispatcher.begin_query(CUSTOM_FUNC)

    assert not dispatcher.is_current_query(first)
    assert dispatcher.is_current_query(second)


def test_opening_system_function_drops_pending_query():
    controller = make_controller([])
    dispatcher = FunctionDispatcher(controller, runner=lambda f: [])
    ticket = dispatcher.begin_query(CUSTOM_FUNC)

    dispatcher.open(SYSTEM_FUNC)

    assert not dispatcher.is_current_query(ticket)
    assert controller.depth == 1


def test_cluster_change_drops_pending_query():
    controller = make_controller([])
    dispatcher = FunctionDispatcher(controller, runner=lambda f: [{"QueryId": "old"}])
    context = ClusterContext(ClusterRef(1, "prod"))
    context.subscribe(dispatcher.invalidate_queries)
    ticket = dispatcher.begin_query(CUSTOM_FUNC)
    # the run itself still completes on its worker
    assert dispatcher.run_query(ticket.function).rows == [{"QueryId": "old"}]

    context.set_active(ClusterRef(2, "staging"))

    assert not dispatcher.is_current_query(ticket)


def test_cluster_change_resets_navigation():
    calls = []
    controller = make_controller(calls)
    context = ClusterContext(ClusterRef(1, "prod"))
    context.subscribe(controller.reset_on_context_change)
    controller.select_root("transactions")
    controller.drill_into({"TransactionId": "5001"}, "TransactionId")

    assert context.set_active(ClusterRef(2, "staging"))

    assert controller.status is NavigationStatus.IDLE


def test_same_cluster_does_not_notify():
    seen = []
    context = ClusterContext(ClusterRef(1, "prod"))
    context.subscribe(seen.append)

    assert not context.set_active(ClusterRef(1, "prod renamed"))
    assert context.clear()
    assert seen == [None]
    assert context.active is None


def test_unsubscribe():
    seen = []
    context = ClusterContext()
    context.subscribe(seen.append)
    context.unsubscribe(seen.append)
    context.set_active(ClusterRef(3))
    assert seen == []


def test_cluster_ref_from_api():
    ref = ClusterRef.from_api({"id": "7", "name": "prod", "fe_host": "fe1"})
    assert ref == ClusterRef(7, "prod")
