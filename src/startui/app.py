"""Main TUI application with global exception handling."""

import logging
from functools import partial
from typing import Any, Dict, Optional

from textual.app import App
from textual.worker import Worker, WorkerState

from starlib.config import ConfigError, load_config
import starlib.clients as clients
from starlib.context import ClusterContext, ClusterRef
from starlib.errors import FetchFailure, format_config_error, format_error_message
from starlib.execution import FunctionDispatcher, QueryTicket
from starlib.functions import FunctionCatalog, FunctionDescriptor
from starlib.navigation import FetchRequest, NavigationController, NavigationStatus

from .command_parser import CommandParser, CommandType
from .screens.base_screen import BaseListScreen
from .screens.function_list_screen import FunctionListScreen
from .screens.system_function_screen import QueryResultScreen, SystemFunctionScreen


logger = logging.getLogger(__name__)


class TUIApp(App):
    """Main TUI application for StarRocks system function exploration."""

    TITLE = "starctl TUI"
    SUB_TITLE = "StarRocks Operator Console"

    CSS = """
    Screen {
        layout: vertical;
    }

    Header {
        dock: top;
    }

    Footer {
        dock: bottom;
    }

    #screen-title {
        padding: 0 1;
        text-style: bold;
    }
    """

    def __init__(self, profile_name: Optional[str] = None):
        super().__init__()
        self.profile_name = profile_name
        self.config = None
        self.profile = None
        self.catalog: Optional[FunctionCatalog] = None
        self.cluster_context = ClusterContext()
        self.controller: Optional[NavigationController] = None
        self.dispatcher: Optional[FunctionDispatcher] = None
        self.command_parser = CommandParser()

    def on_mount(self) -> None:
        """Initialize the app on mount."""
        try:
            self.config = load_config()
            self.profile = self.config.get_profile(self.profile_name)
        except ConfigError as e:
            self.show_error_dialog(title="Configuration Error", message=format_config_error(e))
            return

        # One controller per app session; cluster switches reset it.
        self.controller = NavigationController(
            fetcher=lambda name, path: clients.fetch_system_function(self.profile, name, path),
            scheduler=self.schedule_fetch,
            on_change=self.on_navigation_changed,
            on_error=self.on_navigation_error,
            max_depth=self.config.navigation.max_depth,
        )
        self.dispatcher = FunctionDispatcher(
            self.controller,
            runner=lambda func: clients.execute_function(self.profile, func.id),
            touch=self.touch_function,
        )
        self.cluster_context.subscribe(self.controller.reset_on_context_change)
        self.cluster_context.subscribe(self.dispatcher.invalidate_queries)
        self.cluster_context.subscribe(self.on_cluster_changed)

        logger.info("TUI app initialized with profile '%s'", self.profile.name)
        self.push_screen(FunctionListScreen())
        self.load_catalog()

    async def on_exception(self, exception: Exception) -> None:
        """Global exception handler - never crash."""
        self.show_error_dialog(
            title="Unexpected Error",
            message=f"An error occurred: {str(exception)}"
        )
        logger.error(f"TUI exception: {exception}", exc_info=True)

    def show_error_dialog(self, title: str, message: str, details: Optional[str] = None) -> None:
        """Show an error notification."""
        self.bell()
        self.notify(message, title=title, severity="error", timeout=8)
        logger.error(f"{title}: {message}")
        if details:
            logger.error(f"Details: {details}")

    def show_notification(self, message: str) -> None:
        """Show a notification message."""
        self.notify(message, timeout=4)
        logger.info(f"Notification: {message}")

    # -- background work -----------------------------------------------------

    def load_catalog(self) -> None:
        self.run_worker(self._catalog_worker, name="catalog", group="catalog", thread=True, exclusive=True, exit_on_error=False)

    def _catalog_worker(self) -> Dict[str, Any]:
        logger.info("Loading function catalog")
        return {
            "functions": clients.list_functions(self.profile),
            "active": clients.get_active_cluster(self.profile),
        }

    def schedule_fetch(self, request: FetchRequest) -> None:
        """Run a navigation fetch on a thread; the result is applied on the UI thread."""
        self.run_worker(partial(self._fetch_worker, request), name="navigation", group="navigation", thread=True)

    def _fetch_worker(self, request: FetchRequest) -> Dict[str, Any]:
        try:
            return {"request": request, "rows": self.controller.fetch_rows(request)}
        except Exception as e:
            return {"request": request, "error": e}

    def _query_worker(self, ticket: QueryTicket) -> Dict[str, Any]:
        try:
            return {"ticket": ticket, "result": self.dispatcher.run_query(ticket.function)}
        except Exception as e:
            return {"ticket": ticket, "error": e}

    def touch_function(self, function_name: str) -> None:
        self.run_worker(
            partial(clients.touch_system_function, self.profile, function_name),
            name="touch",
            thread=True,
            exit_on_error=False,
        )

    def activate_cluster(self, cluster_id: int) -> None:
        self.show_notification(f"Activating cluster {cluster_id}...")
        self.run_worker(
            partial(clients.activate_cluster, self.profile, cluster_id),
            name="activate",
            thread=True,
            exit_on_error=False,
        )

    def toggle_favorite(self, func: FunctionDescriptor) -> None:
        if func.id is None:
            self.show_notification(f"'{func.name}' is not stored on the console yet")
            return
        self.run_worker(
            partial(clients.toggle_favorite, self.profile, func.id),
            name="favorite",
            thread=True,
            exit_on_error=False,
        )

    def on_worker_state_changed(self, event: Worker.StateChanged) -> None:
        """Handle worker completion."""
        name = event.worker.name
        if event.state == WorkerState.SUCCESS:
            result = event.worker.result
            if name == "navigation":
                if "error" in result:
                    self.controller.fail(result["request"], result["error"])
                else:
                    self.controller.complete(result["request"], result["rows"])

            elif name == "catalog":
                if result["active"]:
                    self.cluster_context.set_active(ClusterRef.from_api(result["active"]))
                self.catalog = FunctionCatalog.from_api(
                    result["functions"],
                    persist=lambda orders: clients.update_function_orders(self.profile, orders),
                )
                self._refresh_function_list()

            elif name == "query":
                if not self.dispatcher.is_current_query(result["ticket"]):
                    logger.debug(f"Discarding stale result for {result['ticket'].function.name}")
                elif "error" in result:
                    self.show_error_dialog(
                        title="Query Failed",
                        message=format_error_message("query", result["error"], {"profile": self.profile.name}),
                    )
                else:
                    self.push_screen(QueryResultScreen(result["result"]))

            elif name == "activate":
                cluster = ClusterRef.from_api(result)
                self.cluster_context.set_active(cluster)
                self.show_notification(f"Active cluster: {cluster.name or cluster.id}")

            elif name == "favorite":
                if self.catalog and result:
                    func = self.catalog.set_favorite(result["id"], bool(result.get("isFavorited")))
                    self.show_notification(
                        f"{func.name} {'added to' if func.is_favorited else 'removed from'} favorites"
                    )
                    self._refresh_function_list()

        elif event.state == WorkerState.ERROR:
            error = event.worker.error
            if name == "touch":
                logger.warning(f"Failed to update access time: {error}")
                return
            self.show_error_dialog(
                title="Request Failed",
                message=format_error_message(name, error, {"profile": self.profile.name}),
            )

    # -- navigation ----------------------------------------------------------

    def open_function(self, func: FunctionDescriptor) -> None:
        if func.is_system_defined:
            if not isinstance(self.screen, SystemFunctionScreen):
                self.push_screen(SystemFunctionScreen(self.controller))
            self.dispatcher.open(func)
            return

        ticket = self.dispatcher.begin_query(func)
        self.show_notification(f"Running custom function: {func.name}")
        self.run_worker(
            partial(self._query_worker, ticket),
            name="query",
            thread=True,
            exit_on_error=False,
        )

    def on_navigation_changed(self, controller: NavigationController) -> None:
        screen = self.screen
        if not isinstance(screen, SystemFunctionScreen):
            return
        if controller.status is NavigationStatus.IDLE:
            self.pop_screen()
        else:
            screen.render_state()

    def on_navigation_error(self, failure: FetchFailure) -> None:
        frame = self.controller.current_frame
        context = {"profile": self.profile.name}
        if frame is not None:
            context.update({"function": frame.function_name, "path": frame.nested_path})
        self.show_error_dialog(
            title="Load Failed",
            message=format_error_message("load system function", failure, context),
        )

    def on_cluster_changed(self, cluster: Optional[ClusterRef]) -> None:
        if cluster is None:
            return
        self.sub_title = f"StarRocks Operator Console - {cluster.name or cluster.id}"
        # Functions are stored per cluster
        if self.catalog is not None:
            self.load_catalog()

    def _refresh_function_list(self) -> None:
        for screen in self.screen_stack:
            if isinstance(screen, FunctionListScreen) and screen.data_table:
                screen.load_data()

    # -- messages --------------------------------------------------------------

    def on_base_list_screen_item_selected(self, message: BaseListScreen.ItemSelected) -> None:
        """Handle item selection from list screens."""
        key = message.item_data.get("_function_key")
        if key is None or self.catalog is None:
            return
        func = self.catalog.find(key)
        if func is None:
            self.show_notification(f"Function not found: {key}")
            return
        logger.info(f"Opening function: {func.name}")
        self.open_function(func)

    def on_base_list_screen_go_back(self, message: BaseListScreen.GoBack) -> None:
        """Handle go back from list screens."""
        if isinstance(self.screen, FunctionListScreen):
            return
        logger.info("Going back")
        self.pop_screen()

    def on_search_input_command_submitted(self, message) -> None:
        parsed = self.command_parser.parse(message.command_text)
        if parsed.error:
            self.show_notification(parsed.error)
            return
        logger.info(f"Command: {parsed.raw_input}")

        if parsed.command_type is CommandType.FUNCTION:
            func = self.catalog.find(parsed.args[0]) if self.catalog else None
            if func is None:
                self.show_notification(f"Function not found: {parsed.args[0]}")
                return
            self.open_function(func)

        elif parsed.command_type is CommandType.BACK:
            if self.controller.status is NavigationStatus.BROWSING:
                self.controller.go_back()
            elif not isinstance(self.screen, FunctionListScreen):
                self.pop_screen()

        elif parsed.command_type is CommandType.REFRESH:
            if not self.controller.refresh_current():
                self.load_catalog()

        elif parsed.command_type is CommandType.CLUSTER:
            self.activate_cluster(int(parsed.args[0]))

        elif parsed.command_type is CommandType.QUIT:
            self.exit()

        elif parsed.command_type is CommandType.HELP:
            self.notify(self.command_parser.get_help_text(), title="Help", timeout=15)


def run_tui(profile_name: Optional[str] = None) -> None:
    """Entry point for running the TUI."""
    # Log to a file only; the terminal belongs to the TUI
    log_file = "/tmp/startui_debug.log"
    logging.basicConfig(
        level=logging.DEBUG,
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
        handlers=[
            logging.FileHandler(log_file, mode='w')
        ]
    )

    logger.info(f"Starting TUI, debug log at: {log_file}")

    app = TUIApp(profile_name=profile_name)
    app.run()
