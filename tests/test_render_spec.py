from __future__ import annotations

from starlib.render_spec import build_render_spec, clickable_descriptor


def test_only_navigable_column_is_clickable():
    clicks = []
    spec = build_render_spec(["TransactionId", "State"], "TransactionId", lambda row, key: clicks.append((row, key)))

    assert [d.key for d in spec] == ["TransactionId", "State"]
    assert [d.clickable for d in spec] == [True, False]
    assert spec[1].on_click is None


def test_activate_invokes_callback_with_row_and_key():
    clicks = []
    spec = build_render_spec(["TransactionId", "State"], "TransactionId", lambda row, key: clicks.append((row, key)))
    row = {"TransactionId": "5001", "State": "running"}

    spec[0].activate(row)
    spec[1].activate(row)

    assert clicks == [(row, "TransactionId")]


def test_no_clickable_column_without_navigable_column():
    spec = build_render_spec(["Name", "Value"], None, lambda row, key: None)
    assert not any(d.clickable for d in spec)
    assert clickable_descriptor(spec) is None


def test_clickable_descriptor_lookup():
    spec = build_render_spec(["Host", "BackendId"], "BackendId")
    assert clickable_descriptor(spec).key == "BackendId"
