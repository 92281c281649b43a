"""natstop - Main Textual application."""

from collections.abc import Callable

from rich.markup import escape
from rich.text import Text
from textual import events
from textual.app import App, ComposeResult
from textual.containers import Container, Horizontal, Vertical
from textual.css.query import NoMatches
from textual.widgets import DataTable, ProgressBar, Sparkline, Static

from natstop.config import Config
from natstop.dashboard import DashboardController, MetricHistory
from natstop.exceptions import NatsTopError
from natstop.formatting import format_percent_bar, format_rate, format_size
from natstop.logger import get_logger
from natstop.models import ConnectionInfo, Sample, SortKey, ViewMode
from natstop.monitor import PollLoop, SampleMailbox

logger = get_logger(__name__)

# Poll the mailbox at least this often so input never waits on a sample.
MAILBOX_CHECK_SECONDS = 0.25


class ServerPanel(Static):
    """Text pane with server load and throughput."""

    DEFAULT_CSS = """
    ServerPanel {
        height: auto;
        padding: 0 1;
    }
    """

    def update_sample(self, sample: Sample | None) -> None:
        """Update the pane from a sample."""
        self.update(self._get_server_info(sample))

    def _get_server_info(self, sample: Sample | None) -> str:
        """Get server info display."""
        if sample is None:
            return "Waiting for the first sample..."

        stats = sample.snapshot.stats
        rates = sample.rates
        return (
            f"Server: {escape(stats.server_id or 'unknown')}  Version: {escape(stats.version or '?')}  "
            f"Uptime: {escape(stats.uptime or '?')}\n"
            f"  Load: CPU \\[{format_percent_bar(stats.cpu_percent)}] {stats.cpu_percent:.1f}%  "
            f"Memory: {format_size(stats.mem_bytes)}  Slow Consumers: {stats.slow_consumers}\n"
            f"  In:   Msgs: {format_size(stats.in_msgs)}  Bytes: {format_size(stats.in_bytes)}  "
            f"Msgs/Sec: {format_rate(rates.in_msgs_per_sec)}  "
            f"Bytes/Sec: {format_rate(rates.in_bytes_per_sec)}\n"
            f"  Out:  Msgs: {format_size(stats.out_msgs)}  Bytes: {format_size(stats.out_bytes)}  "
            f"Msgs/Sec: {format_rate(rates.out_msgs_per_sec)}  "
            f"Bytes/Sec: {format_rate(rates.out_bytes_per_sec)}\n\n"
            f"Connections: {sample.snapshot.connections.num_connections}"
        )


class ConnectionTable(Container):
    """Container for the connection data table."""

    DEFAULT_CSS = """
    ConnectionTable {
        height: 1fr;
        border: solid $primary;
    }
    """

    COLUMNS = (
        ("HOST", "host", 22),
        ("CID", "cid", 8),
        ("NAME", "name", 14),
        ("SUBS", "subs", 6),
        ("PENDING", "pending", 10),
        ("MSGS_TO", "msgs_to", 10),
        ("MSGS_FROM", "msgs_from", 10),
        ("BYTES_TO", "bytes_to", 10),
        ("BYTES_FROM", "bytes_from", 10),
        ("LANG", "lang", 7),
        ("VERSION", "version", 8),
    )

    def __init__(self, *args, **kwargs) -> None:
        """Initialize ConnectionTable."""
        super().__init__(*args, **kwargs)
        self._row_count = 0

    @property
    def row_count(self) -> int:
        """Get the number of connections shown."""
        return self._row_count

    def compose(self) -> ComposeResult:
        """Compose the connection table."""
        table = DataTable(id="connection-table", cursor_type="none")
        # Keys go to the dashboard, not the table.
        table.can_focus = False
        yield table

    def on_mount(self) -> None:
        """Initialize the data table when mounted."""
        table = self.query_one("#connection-table", DataTable)
        for label, key, width in self.COLUMNS:
            table.add_column(label, key=key, width=width)

    def update_connections(self, connections: list[ConnectionInfo]) -> None:
        """
        Replace the table rows with already ranked connections.

        Rows are rebuilt rather than updated in place: the ranking can move
        any connection to any position between samples.
        """
        table = self.query_one("#connection-table", DataTable)
        table.clear()
        for conn in connections:
            table.add_row(
                Text(conn.host),
                str(conn.cid),
                Text(conn.name[:14]),
                str(conn.subscriptions),
                str(conn.pending_bytes),
                format_size(conn.out_msgs),
                format_size(conn.in_msgs),
                format_size(conn.out_bytes),
                format_size(conn.in_bytes),
                Text(conn.lang),
                Text(conn.version),
                key=str(conn.cid),
            )
        self._row_count = len(connections)


class GraphBox(Vertical):
    """Bordered sparkline with a value label in its border title."""

    DEFAULT_CSS = """
    GraphBox {
        border: round $secondary;
        height: 1fr;
        width: 1fr;
    }

    GraphBox Sparkline {
        height: 1fr;
    }
    """

    def __init__(self, title: str, metric: str, *args, **kwargs) -> None:
        """Initialize GraphBox."""
        super().__init__(*args, **kwargs)
        self.metric = metric
        self.border_title = title

    def compose(self) -> ComposeResult:
        """Compose the graph box."""
        yield Sparkline([0.0], summary_function=max)

    def update_series(self, title: str, data: list[float]) -> None:
        """Update the plotted points and the label."""
        self.border_title = title
        self.query_one(Sparkline).data = data or [0.0]


class GraphPanel(Container):
    """Graphical view: CPU gauge and history charts."""

    DEFAULT_CSS = """
    GraphPanel {
        height: 1fr;
    }

    GraphPanel Horizontal {
        height: 1fr;
    }

    #cpu-gauge-box {
        border: round $secondary;
        height: auto;
        width: 1fr;
    }
    """

    def compose(self) -> ComposeResult:
        """Compose the graph layout."""
        with Horizontal(id="graph-row-load"):
            with Vertical(id="load-column"):
                with Vertical(id="cpu-gauge-box"):
                    yield ProgressBar(total=100, show_eta=False, id="cpu-gauge")
                yield GraphBox("Connections: ", "connections", id="graph-connections")
            yield GraphBox("Memory: ", "memory", id="graph-memory")
        with Horizontal(id="graph-row-in"):
            yield GraphBox("In: Msgs/Sec: ", "in_msgs_rate", id="graph-in-msgs")
            yield GraphBox("In: Bytes/Sec: ", "in_bytes_rate", id="graph-in-bytes")
        with Horizontal(id="graph-row-out"):
            yield GraphBox("Out: Msgs/Sec: ", "out_msgs_rate", id="graph-out-msgs")
            yield GraphBox("Out: Bytes/Sec: ", "out_bytes_rate", id="graph-out-bytes")

    def update_graphs(self, sample: Sample | None, history: MetricHistory) -> None:
        """Update the gauge and charts."""
        if sample is None:
            return
        stats = sample.snapshot.stats
        rates = sample.rates

        gauge_box = self.query_one("#cpu-gauge-box")
        gauge_box.border_title = f"CPU: {stats.cpu_percent:.1f}%"
        self.query_one("#cpu-gauge", ProgressBar).update(progress=min(stats.cpu_percent, 100.0))

        titles = {
            "connections": (
                f"Connections: {sample.snapshot.connections.num_connections}"
                f"/{stats.max_connections}"
            ),
            "memory": f"Memory: {format_size(stats.mem_bytes)}",
            "in_msgs_rate": f"In: Msgs/Sec: {format_rate(rates.in_msgs_per_sec)}",
            "in_bytes_rate": f"In: Bytes/Sec: {format_size(rates.in_bytes_per_sec)}",
            "out_msgs_rate": f"Out: Msgs/Sec: {format_rate(rates.out_msgs_per_sec)}",
            "out_bytes_rate": f"Out: Bytes/Sec: {format_size(rates.out_bytes_per_sec)}",
        }
        for box in self.query(GraphBox):
            box.update_series(titles[box.metric], history.series(box.metric))

    def resize_rows(self, height: int) -> None:
        """Split the terminal height between the three chart rows."""
        box_height = max(height // 3, 3)
        for row in self.query(Horizontal):
            row.styles.height = box_height


class NatsTopApp(App):
    """Main natstop application; the render surface of the dashboard."""

    TITLE = "natstop"
    SUB_TITLE = "NATS Server Monitor"
    ENABLE_COMMAND_PALETTE = False

    CSS = """
    Screen {
        layout: vertical;
    }

    #header-line {
        dock: top;
        height: 1;
        padding: 0 1;
        background: $surface;
    }
    """

    def __init__(
        self,
        config: Config | None = None,
        poll_loop: PollLoop | None = None,
        mailbox: SampleMailbox | None = None,
    ) -> None:
        """
        Initialize the NatsTopApp.

        Args:
            config: Validated options. Defaults are used if omitted.
            poll_loop: Poll loop publishing into mailbox. Built if omitted.
            mailbox: Handoff the poll loop publishes into.
        """
        super().__init__()
        self._config = config or Config()
        self._mailbox = mailbox or SampleMailbox()
        self._poll_loop = poll_loop or PollLoop(self._config, self._mailbox)
        self.controller = DashboardController(self._config, self)
        self.exit_status = 0
        self.failure: NatsTopError | None = None
        self.sub_title = self._config.base_url

    def compose(self) -> ComposeResult:
        """Compose the application layout."""
        yield Static(self.controller.header_line(), markup=False, id="header-line")
        with Vertical(id="compact-view"):
            yield ServerPanel(id="server-panel")
            yield ConnectionTable()
        yield GraphPanel(id="graph-view")

    def on_mount(self) -> None:
        """Start polling when the app is mounted."""
        self.switch_layout(self.controller.view_mode)
        self._poll_loop.start()
        self.set_interval(min(MAILBOX_CHECK_SECONDS, self._config.interval), self._check_for_updates)

    def on_unmount(self) -> None:
        """Stop polling however the app was left."""
        self._poll_loop.stop()

    def _check_for_updates(self) -> None:
        """Feed the latest published sample to the controller."""
        item = self._mailbox.take()
        if item is not None:
            self.controller.handle_sample(item)

    def on_key(self, event: events.Key) -> None:
        """Route key presses to the controller."""
        event.stop()
        self.controller.handle_key(event.key, event.character)

    def on_resize(self, event: events.Resize) -> None:
        """Route terminal resizes to the controller."""
        self.controller.handle_resize(event.size.width, event.size.height)

    # RenderSurface

    def render_view(self, controller: DashboardController) -> None:
        """Redraw the active view and the header line."""
        self.render_prompt(controller.header_line())
        try:
            if controller.view_mode is ViewMode.GRAPHICAL:
                self.query_one(GraphPanel).update_graphs(controller.current, controller.history)
            else:
                self.query_one(ServerPanel).update_sample(controller.current)
                self.query_one(ConnectionTable).update_connections(controller.ranked_connections())
        except NoMatches:
            pass  # Widgets not mounted yet

    def render_prompt(self, text: str) -> None:
        """Redraw the header line only."""
        try:
            self.query_one("#header-line", Static).update(text)
        except NoMatches:
            pass  # Widget not mounted yet

    def switch_layout(self, view_mode: ViewMode) -> None:
        """Show the widgets of view_mode and hide the others."""
        graphical = view_mode is ViewMode.GRAPHICAL
        try:
            graphs = self.query_one(GraphPanel)
            self.query_one("#compact-view").display = not graphical
        except NoMatches:
            return
        graphs.display = graphical
        if graphical:
            graphs.resize_rows(self.size.height - 1)

    def resize_widgets(self, width: int, height: int) -> None:
        """Recompute widget sizes for a new terminal size."""
        try:
            self.query_one(GraphPanel).resize_rows(height - 1)
        except NoMatches:
            pass  # Widget not mounted yet

    def schedule(self, delay: float, callback: Callable[[], None]) -> None:
        """Run callback on the UI loop after delay seconds."""
        self.set_timer(delay, callback)

    def apply_sort_hint(self, sort_key: SortKey) -> None:
        """Ask the server to rank connections by sort_key from the next poll."""
        self._poll_loop.sort_key = sort_key

    def shutdown(self, exit_code: int, error: NatsTopError | None = None) -> None:
        """Stop polling and leave the application, restoring the terminal."""
        logger.info(f"Shutting down with status {exit_code}")
        self.exit_status = exit_code
        self.failure = error
        self._poll_loop.stop()
        self.exit(error)

    def action_quit(self) -> None:
        """Handle quit action with graceful cleanup."""
        self.shutdown(0)
