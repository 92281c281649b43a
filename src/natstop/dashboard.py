"""Interactive state of the natstop dashboard."""

from collections import deque
from collections.abc import Callable
from enum import Enum
from typing import Protocol

from natstop.config import Config
from natstop.exceptions import InvalidSortKeyInput, NatsTopError
from natstop.logger import get_logger
from natstop.models import ConnectionInfo, PollFailure, Sample, SortKey, ViewMode
from natstop.ranking import rank_connections

logger = get_logger(__name__)

MESSAGE_SECONDS = 1.0

KEY_QUIT = "q"
KEY_TOGGLE_VIEW = "v"
KEY_SORT = "o"
KEY_ENTER = "enter"
KEY_BACKSPACE = "backspace"
KEY_ESCAPE = "escape"


class InputMode(Enum):
    """What keyboard input currently means."""

    VIEWING = "viewing"
    ENTERING_SORT_KEY = "entering_sort_key"


class RenderSurface(Protocol):
    """Operations the controller needs from the terminal front end."""

    def render_view(self, controller: "DashboardController") -> None: ...

    def render_prompt(self, text: str) -> None: ...

    def switch_layout(self, view_mode: ViewMode) -> None: ...

    def resize_widgets(self, width: int, height: int) -> None: ...

    def schedule(self, delay: float, callback: Callable[[], None]) -> None: ...

    def apply_sort_hint(self, sort_key: SortKey) -> None: ...

    def shutdown(self, exit_code: int, error: NatsTopError | None = None) -> None: ...


class MetricHistory:
    """Rolling windows of the values plotted in the graphical view."""

    METRICS = (
        "connections",
        "memory",
        "in_msgs_rate",
        "out_msgs_rate",
        "in_bytes_rate",
        "out_bytes_rate",
    )

    def __init__(self, capacity: int) -> None:
        """
        Initialize empty windows.

        Args:
            capacity: Maximum number of points kept per metric.
        """
        self.capacity = capacity
        self._series: dict[str, deque[float]] = {
            name: deque(maxlen=capacity) for name in self.METRICS
        }

    def append(self, sample: Sample) -> None:
        """Add one point per metric from a sample."""
        stats = sample.snapshot.stats
        rates = sample.rates
        self._series["connections"].append(float(sample.snapshot.connections.num_connections))
        self._series["memory"].append(stats.mem_bytes / 1024 / 1024)
        self._series["in_msgs_rate"].append(rates.in_msgs_per_sec)
        self._series["out_msgs_rate"].append(rates.out_msgs_per_sec)
        self._series["in_bytes_rate"].append(rates.in_bytes_per_sec)
        self._series["out_bytes_rate"].append(rates.out_bytes_per_sec)

    def series(self, name: str) -> list[float]:
        """Get the points of one metric, oldest first."""
        return list(self._series[name])

    def __len__(self) -> int:
        return len(self._series["connections"])


class DashboardController:
    """
    Dashboard state machine.

    Consumes samples, key presses and resizes one at a time and tells the
    render surface what to draw. It never touches the terminal itself.
    """

    def __init__(self, config: Config, surface: RenderSurface) -> None:
        """
        Initialize the DashboardController.

        Args:
            config: Validated options; supplies initial view mode and sort key.
            surface: Front end that renders and owns the terminal.
        """
        self._surface = surface
        self.input_mode = InputMode.VIEWING
        self.view_mode = config.view_mode
        self.sort_key = config.sort_key
        self.pending_input = ""
        self.message: str | None = None
        self.current: Sample | None = None
        self.history = MetricHistory(config.history_size)
        self.size: tuple[int, int] = (0, 0)

    @property
    def showing_message(self) -> bool:
        """Check if a rejected-input message is on screen."""
        return self.message is not None

    def prompt_text(self) -> str:
        """Get the sort prompt including the typed input."""
        return f"sort by [{self.sort_key.value}]: {self.pending_input}"

    def header_line(self) -> str:
        """Get the text of the header line for the current state."""
        if self.message is not None:
            return self.message
        if self.input_mode is InputMode.ENTERING_SORT_KEY:
            return self.prompt_text()
        return f"sort by [{self.sort_key.value}]  o: sort  v: view  q: quit"

    def ranked_connections(self) -> list[ConnectionInfo]:
        """Get the current sample's connections in display order."""
        if self.current is None:
            return []
        return rank_connections(self.current.snapshot.connections.connections, self.sort_key)

    # Events

    def handle_sample(self, item: Sample | PollFailure) -> None:
        """Handle a sample or failure published by the poll loop."""
        if isinstance(item, PollFailure):
            logger.error(f"Stopping after poll failure: {item.error}")
            self._surface.shutdown(1, item.error)
            return
        self.current = item
        self.history.append(item)
        self._surface.render_view(self)

    def handle_resize(self, width: int, height: int) -> None:
        """Handle a terminal resize."""
        self.size = (width, height)
        self._surface.resize_widgets(width, height)
        self._surface.render_view(self)

    def handle_key(self, key: str, character: str | None = None) -> None:
        """
        Handle a key press.

        Args:
            key: Key name, e.g. "q", "enter" or "backspace".
            character: Printable character of the key, if any.
        """
        if self.showing_message:
            return
        if self.input_mode is InputMode.VIEWING:
            self._handle_viewing_key(key)
        else:
            self._handle_sort_key_input(key, character)

    def _handle_viewing_key(self, key: str) -> None:
        if key == KEY_QUIT:
            self._surface.shutdown(0)
        elif key == KEY_TOGGLE_VIEW:
            self.toggle_view()
        elif key == KEY_SORT:
            self.begin_sort_edit()

    def _handle_sort_key_input(self, key: str, character: str | None) -> None:
        if key == KEY_ENTER:
            self.confirm_sort_edit()
        elif key == KEY_ESCAPE:
            self._leave_sort_edit()
            self._surface.render_view(self)
        elif key == KEY_BACKSPACE:
            self.pending_input = self.pending_input[:-1]
            self._surface.render_prompt(self.prompt_text())
        elif character and character.isprintable():
            self.pending_input += character
            self._surface.render_prompt(self.prompt_text())

    # Transitions

    def toggle_view(self) -> None:
        """Swap between the compact and graphical views."""
        if self.view_mode is ViewMode.COMPACT:
            self.view_mode = ViewMode.GRAPHICAL
        else:
            self.view_mode = ViewMode.COMPACT
        logger.debug(f"View mode: {self.view_mode.value}")
        self._surface.switch_layout(self.view_mode)
        self._surface.render_view(self)

    def begin_sort_edit(self) -> None:
        """Start typing a new sort key."""
        self.input_mode = InputMode.ENTERING_SORT_KEY
        self.pending_input = ""
        self._surface.render_prompt(self.prompt_text())

    def confirm_sort_edit(self) -> None:
        """Commit the typed sort key, or reject it with a transient message."""
        try:
            self.commit_sort_key(self.pending_input)
        except InvalidSortKeyInput as e:
            logger.info(f"Rejected sort key input {e.text!r}")
            self.message = str(e)
            self._surface.render_prompt(self.message)
            self._surface.schedule(MESSAGE_SECONDS, self.expire_message)
            return
        self._leave_sort_edit()
        self._surface.render_view(self)

    def commit_sort_key(self, text: str) -> SortKey:
        """
        Make text the active sort key.

        Raises:
            InvalidSortKeyInput: If text names no sort key.
        """
        try:
            sort_key = SortKey.parse(text)
        except ValueError:
            raise InvalidSortKeyInput(text) from None
        self.sort_key = sort_key
        logger.info(f"Sorting by {sort_key.value}")
        self._surface.apply_sort_hint(sort_key)
        return sort_key

    def expire_message(self) -> None:
        """Clear the rejected-input message and return to viewing."""
        self.message = None
        self._leave_sort_edit()
        self._surface.render_view(self)

    def _leave_sort_edit(self) -> None:
        self.pending_input = ""
        self.input_mode = InputMode.VIEWING
