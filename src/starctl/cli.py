from __future__ import annotations

import json
import logging
from typing import Any, Dict, List, Optional

import click
from tabulate import tabulate

from starlib.config import ConfigError, Config, Profile, load_config
import starlib.clients as clients
from starlib.errors import FetchFailure, format_error_message, format_config_error, suggest_troubleshooting_steps
from starlib.execution import FunctionDispatcher, QueryResult
from starlib.functions import CatalogError, FunctionCatalog, FunctionOrder, can_drill_down
from starlib.navigation import NavigationController, NavigationFrame, depth_allows_drill
from starlib.render_spec import build_render_spec, clickable_descriptor
from starlib.schema import InferredSchema, infer_schema


@click.group(context_settings={"help_option_names": ["-h", "--help"]})
@click.option(
    "--json-output",
    "json_output",
    is_flag=True,
    help="Output JSON instead of tables (pretty-printed)",
)
@click.option(
    "-v",
    "--verbose",
    is_flag=True,
    help="Enable verbose logging to stderr (what the CLI is doing)",
)
@click.option("--profile", "profile_name", help="Profile name; uses default_profile if omitted")
@click.pass_context
def cli(ctx: click.Context, json_output: bool, verbose: bool, profile_name: Optional[str]) -> None:
    """StarRocks operator console CLI.

    Browse system functions of the active cluster through the console API.
    Configuration is loaded via XDG or the STARCTL_CONFIG environment
    variable. JSON output is always pretty-printed.
    """
    ctx.ensure_object(dict)
    ctx.obj["json"] = json_output
    ctx.obj["verbose"] = verbose
    ctx.obj["profile"] = profile_name

    # Configure logging once per process
    level = logging.INFO if verbose else logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
    )
    logging.getLogger("urllib3").setLevel(logging.WARNING)


def _load(ctx: click.Context, log: logging.Logger) -> tuple[Config, Profile]:
    try:
        log.info("Loading config...")
        cfg = load_config()
        log.info("Loaded config from %s", getattr(cfg, "source_path", "<unknown>"))
        profile = cfg.get_profile(ctx.obj.get("profile"))
    except ConfigError as e:
        click.echo(format_config_error(e), err=True)
        raise SystemExit(2)
    return cfg, profile


def _fail(ctx: click.Context, operation: str, error: Exception, context: Dict[str, Any]) -> None:
    click.echo(format_error_message(operation, error, context), err=True)
    if ctx.obj.get("verbose"):
        suggestions = suggest_troubleshooting_steps(operation, error)
        if suggestions:
            click.echo("\nTroubleshooting suggestions:", err=True)
            for suggestion in suggestions[:3]:  # Show top 3 suggestions
                click.echo(f"  • {suggestion}", err=True)
    raise SystemExit(2)


def _load_catalog(ctx: click.Context, profile: Profile, log: logging.Logger) -> FunctionCatalog:
    try:
        log.info("Loading function catalog from profile '%s'", profile.name)
        payloads = clients.list_functions(profile)
        log.info("Found %d stored functions", len(payloads))
    except FetchFailure as e:
        _fail(ctx, "list functions", e, {"profile": profile.name})
    return FunctionCatalog.from_api(
        payloads,
        persist=lambda orders: clients.update_function_orders(profile, orders),
    )


def _echo_saved_order(orders: List[FunctionOrder]) -> None:
    if orders:
        click.echo(f"Saved order for {len(orders)} functions")
    else:
        click.echo("Order changed locally; no stored functions to save")


def _cell(value: Any) -> Any:
    return "—" if value is None or value == "" else value


def _render_level(
    ctx: click.Context,
    frame: NavigationFrame,
    rows: List[Dict[str, Any]],
    schema: InferredSchema,
    log: logging.Logger,
) -> None:
    if ctx.obj.get("json"):
        out = {
            "function": frame.function_name,
            "path": frame.nested_path,
            "breadcrumb": frame.breadcrumb,
            "columns": schema.columns,
            "navigable_column": schema.navigable_column,
            "rows": rows,
        }
        click.echo(json.dumps(out, indent=2, default=str))
        return

    click.echo(" > ".join(frame.breadcrumb))
    if not rows:
        click.echo("No rows found")
        return

    descriptors = build_render_spec(schema.columns, schema.navigable_column)
    headers = [f"{d.title}*" if d.clickable else d.title for d in descriptors]
    table = [[_cell(row.get(d.key)) for d in descriptors] for row in rows]
    log.info("Rendering %d rows for %s", len(table), frame.full_path)
    click.echo(tabulate(table, headers=headers))

    link = clickable_descriptor(descriptors)
    if link is not None:
        child = frame.child(f"<{link.key}>")
        click.echo(
            f"\n* drill down with: starctl system show {frame.function_name} --path {child.nested_path}"
        )


# FUNCTIONS commands


@cli.group()
@click.pass_context
def functions(ctx: click.Context) -> None:  # noqa: D401
    """System function catalog commands."""
    pass


@functions.command("list")
@click.option("--all", "show_all", is_flag=True, help="Show every function instead of the compact per-category view")
@click.pass_context
def functions_list(ctx: click.Context, show_all: bool) -> None:
    """List functions grouped by category (favorites first)."""
    log = logging.getLogger("starctl.functions")
    cfg, profile = _load(ctx, log)
    catalog = _load_catalog(ctx, profile, log)
    categories = catalog.categories(limit=None if show_all else cfg.navigation.category_limit)

    if ctx.obj.get("json"):
        out = {
            "categories": [
                {
                    "name": c.name,
                    "order": c.order,
                    "functions": [
                        {
                            "id": f.id,
                            "name": f.name,
                            "description": f.description,
                            "favorite": f.is_favorited,
                            "system": f.is_system_defined,
                            "nestable": f.is_system_defined and can_drill_down(f.name),
                        }
                        for f in c.functions
                    ],
                }
                for c in categories
            ]
        }
        click.echo(json.dumps(out, indent=2, sort_keys=True))
        return

    rows = []
    for c in categories:
        for f in c.functions:
            rows.append(
                [
                    c.name,
                    f.id if f.id is not None else "—",
                    f.name,
                    f.description or "—",
                    "yes" if f.is_favorited else "—",
                    "system" if f.is_system_defined else "custom",
                ]
            )
    log.info("Rendering %d functions in %d categories", len(rows), len(categories))
    click.echo(tabulate(rows, headers=["CATEGORY", "ID", "NAME", "DESCRIPTION", "FAVORITE", "TYPE"]))


@functions.command("run")
@click.argument("function")
@click.pass_context
def functions_run(ctx: click.Context, function: str) -> None:
    """Open a function by name or id.

    System functions show their top level; user-defined functions run their
    stored query.
    """
    log = logging.getLogger("starctl.functions")
    cfg, profile = _load(ctx, log)
    catalog = _load_catalog(ctx, profile, log)

    func = catalog.find(function)
    if func is None:
        click.echo(f"Function not found: {function}", err=True)
        raise SystemExit(2)

    controller = NavigationController(
        lambda name, path: clients.fetch_system_function(profile, name, path),
        max_depth=cfg.navigation.max_depth,
    )
    dispatcher = FunctionDispatcher(
        controller,
        runner=lambda f: clients.execute_function(profile, f.id),
        touch=lambda name: clients.touch_system_function(profile, name),
    )

    try:
        result = dispatcher.open(func)
    except FetchFailure as e:
        _fail(ctx, "execute function", e, {"profile": profile.name, "function": func.name})

    if isinstance(result, QueryResult):
        _render_level(ctx, NavigationFrame(result.function_name), result.rows, result.schema, log)
        return

    if controller.error is not None:
        _fail(ctx, "load system function", controller.error, {"profile": profile.name, "function": func.name})
    _render_level(ctx, controller.current_frame, controller.rows, controller.schema, log)


@functions.command("create")
@click.argument("category")
@click.argument("name")
@click.option("--sql", "sql_query", required=True, help="Query the function runs")
@click.option("--description", default="", help="Short description shown in the catalog")
@click.pass_context
def functions_create(ctx: click.Context, category: str, name: str, sql_query: str, description: str) -> None:
    """Store a user-defined function backed by a SQL query."""
    log = logging.getLogger("starctl.functions")
    _, profile = _load(ctx, log)
    try:
        log.info("Creating function '%s' in category '%s'", name, category)
        created = clients.create_function(profile, category, name, description, sql_query) or {}
    except FetchFailure as e:
        _fail(ctx, "create function", e, {"profile": profile.name})

    if ctx.obj.get("json"):
        click.echo(json.dumps(created, indent=2, sort_keys=True))
        return
    click.echo(f"Created function {created.get('id', '—')}: {name}")


@functions.command("edit")
@click.argument("function_id", type=int)
@click.option("--category", help="New category")
@click.option("--name", help="New function name")
@click.option("--description", help="New description")
@click.option("--sql", "sql_query", help="New query")
@click.pass_context
def functions_edit(
    ctx: click.Context,
    function_id: int,
    category: Optional[str],
    name: Optional[str],
    description: Optional[str],
    sql_query: Optional[str],
) -> None:
    """Edit a user-defined function; options left out keep their value."""
    log = logging.getLogger("starctl.functions")
    _, profile = _load(ctx, log)
    catalog = _load_catalog(ctx, profile, log)
    try:
        func = catalog.update_function(function_id, category, name, description, sql_query)
    except CatalogError as e:
        click.echo(str(e), err=True)
        raise SystemExit(2)

    try:
        log.info("Updating function %d", function_id)
        updated = clients.update_function(
            profile, function_id, func.category, func.name, func.description, func.sql_query or ""
        ) or {}
    except FetchFailure as e:
        _fail(ctx, "update function", e, {"profile": profile.name})

    if ctx.obj.get("json"):
        click.echo(json.dumps(updated, indent=2, sort_keys=True))
        return
    click.echo(f"Updated function {function_id}: {func.name}")


@functions.command("favorite")
@click.argument("function_id", type=int)
@click.pass_context
def functions_favorite(ctx: click.Context, function_id: int) -> None:
    """Toggle the favorite flag of a stored function."""
    log = logging.getLogger("starctl.functions")
    _, profile = _load(ctx, log)
    try:
        log.info("Toggling favorite for function %d", function_id)
        updated = clients.toggle_favorite(profile, function_id) or {}
    except FetchFailure as e:
        _fail(ctx, "toggle favorite", e, {"profile": profile.name})

    favorited = bool(updated.get("isFavorited"))
    if ctx.obj.get("json"):
        click.echo(json.dumps({"id": function_id, "favorite": favorited}, indent=2, sort_keys=True))
        return
    click.echo(f"Function {function_id} {'added to' if favorited else 'removed from'} favorites")


@functions.command("delete")
@click.argument("function_id", type=int)
@click.pass_context
def functions_delete(ctx: click.Context, function_id: int) -> None:
    """Delete a user-defined function."""
    log = logging.getLogger("starctl.functions")
    _, profile = _load(ctx, log)
    catalog = _load_catalog(ctx, profile, log)
    try:
        catalog.remove(function_id)
    except CatalogError as e:
        click.echo(str(e), err=True)
        raise SystemExit(2)

    try:
        log.info("Deleting function %d", function_id)
        clients.delete_function(profile, function_id)
    except FetchFailure as e:
        _fail(ctx, "delete function", e, {"profile": profile.name})
    click.echo(f"Deleted function {function_id}")


@functions.command("delete-category")
@click.argument("category")
@click.pass_context
def functions_delete_category(ctx: click.Context, category: str) -> None:
    """Delete a custom category and its user-defined functions."""
    log = logging.getLogger("starctl.functions")
    _, profile = _load(ctx, log)
    catalog = _load_catalog(ctx, profile, log)
    try:
        removed = catalog.remove_category(category)
    except CatalogError as e:
        click.echo(str(e), err=True)
        raise SystemExit(2)

    try:
        log.info("Deleting category '%s' with %d functions", category, len(removed))
        clients.delete_category(profile, category)
    except FetchFailure as e:
        _fail(ctx, "delete category", e, {"profile": profile.name, "category": category})
    click.echo(f"Deleted category {category} ({len(removed)} functions)")


@functions.command("move-category")
@click.argument("from_index", type=int)
@click.argument("to_index", type=int)
@click.pass_context
def functions_move_category(ctx: click.Context, from_index: int, to_index: int) -> None:
    """Move a category to a new position and save the full ordering."""
    log = logging.getLogger("starctl.functions")
    _, profile = _load(ctx, log)
    catalog = _load_catalog(ctx, profile, log)
    try:
        orders = catalog.move_category(from_index, to_index)
    except CatalogError as e:
        click.echo(str(e), err=True)
        raise SystemExit(2)
    except FetchFailure as e:
        _fail(ctx, "save function order", e, {"profile": profile.name})
    _echo_saved_order(orders)


@functions.command("move")
@click.argument("category")
@click.argument("from_index", type=int)
@click.argument("to_index", type=int)
@click.option("--to-category", "target_category", help="Move the function into another category")
@click.pass_context
def functions_move(
    ctx: click.Context,
    category: str,
    from_index: int,
    to_index: int,
    target_category: Optional[str],
) -> None:
    """Move a function within (or out of) a category and save the full ordering."""
    log = logging.getLogger("starctl.functions")
    _, profile = _load(ctx, log)
    catalog = _load_catalog(ctx, profile, log)
    try:
        orders = catalog.move_function(category, from_index, to_index, target_category)
    except CatalogError as e:
        click.echo(str(e), err=True)
        raise SystemExit(2)
    except FetchFailure as e:
        _fail(ctx, "save function order", e, {"profile": profile.name})
    _echo_saved_order(orders)


# SYSTEM commands


@cli.group()
@click.pass_context
def system(ctx: click.Context) -> None:  # noqa: D401
    """System introspection commands."""
    pass


@system.command("show")
@click.argument("function")
@click.option("--path", "nested_path", help="Nested drill path below the function, e.g. 5001/running")
@click.pass_context
def system_show(ctx: click.Context, function: str, nested_path: Optional[str]) -> None:
    """Show one level of a system function."""
    log = logging.getLogger("starctl.system")
    cfg, profile = _load(ctx, log)

    nested_path = (nested_path or "").strip("/") or None
    frame = NavigationFrame(function, nested_path)
    try:
        log.info("Loading %s from profile '%s'", frame.full_path, profile.name)
        rows = clients.fetch_system_function(profile, function, nested_path)
        log.info("Found %d rows", len(rows))
    except FetchFailure as e:
        _fail(ctx, "load system function", e, {"profile": profile.name, "function": function, "path": nested_path})

    # --path is a joined string, so each "/" segment counts as one level here.
    depth = len(frame.breadcrumb)
    schema = infer_schema(rows, can_drill_down(function), depth_allows_drill(depth, cfg.navigation.max_depth))
    _render_level(ctx, frame, rows, schema, log)


# CLUSTERS commands


@cli.group()
@click.pass_context
def clusters(ctx: click.Context) -> None:  # noqa: D401
    """Cluster selection commands."""
    pass


@clusters.command("list")
@click.pass_context
def clusters_list(ctx: click.Context) -> None:
    """List clusters registered on the console."""
    log = logging.getLogger("starctl.clusters")
    _, profile = _load(ctx, log)
    try:
        items = clients.list_clusters(profile)
        active = clients.get_active_cluster(profile)
    except FetchFailure as e:
        _fail(ctx, "list clusters", e, {"profile": profile.name})

    active_id = active.get("id") if active else None
    if ctx.obj.get("json"):
        out = {
            "clusters": [
                {"id": c.get("id"), "name": c.get("name"), "active": c.get("id") == active_id}
                for c in items
            ]
        }
        click.echo(json.dumps(out, indent=2, sort_keys=True))
        return

    if not items:
        click.echo("No clusters found")
        return

    rows = [
        [c.get("id"), c.get("name"), c.get("fe_host") or "—", "yes" if c.get("id") == active_id else "—"]
        for c in items
    ]
    click.echo(tabulate(rows, headers=["ID", "NAME", "FE_HOST", "ACTIVE"]))


@clusters.command("activate")
@click.argument("cluster_id", type=int)
@click.pass_context
def clusters_activate(ctx: click.Context, cluster_id: int) -> None:
    """Make a cluster the active one for all system function calls."""
    log = logging.getLogger("starctl.clusters")
    _, profile = _load(ctx, log)
    try:
        log.info("Activating cluster %d", cluster_id)
        cluster = clients.activate_cluster(profile, cluster_id) or {}
    except FetchFailure as e:
        _fail(ctx, "activate cluster", e, {"profile": profile.name})
    click.echo(f"Active cluster: {cluster.get('name') or cluster_id}")


@cli.command()
@click.pass_context
def tui(ctx: click.Context) -> None:
    """Launch interactive TUI for system function exploration."""
    try:
        from startui.app import run_tui
        run_tui(profile_name=ctx.obj.get("profile"))
    except ImportError as e:
        click.echo(f"TUI dependencies not available: {e}", err=True)
        raise SystemExit(1)
    except Exception as e:
        error_msg = format_error_message("launch TUI", e, {})
        click.echo(error_msg, err=True)
        raise SystemExit(1)


def main() -> None:  # entry point
    cli(standalone_mode=True)


if __name__ == "__main__":  # pragma: no cover
    main()
