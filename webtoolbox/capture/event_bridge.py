"""Event bridge from browser events to log output.

Console API calls and uncaught exceptions arrive as raw CDP events on the
session's CDP channel; native dialogs arrive through Playwright's page
``dialog`` event. Each is converted into a BrowserEvent variant and handled
by a single exhaustive dispatch. Nothing here can fail the capture: bad
payloads and dialog failures are logged and dropped.
"""

import asyncio
import logging
from typing import Any, Dict, Optional, Set

from typing_extensions import assert_never

from .models import BrowserEvent, ConsoleMessage, DialogOpened, PageException


class EventBridge:
    """Logs console messages and exceptions and auto-accepts dialogs.

    Attach at most once per session, before the navigation pipeline runs.
    """

    def __init__(self, logger: Optional[logging.Logger] = None):
        self.logger = logger or logging.getLogger(__name__)
        self._dialog_tasks: Set[asyncio.Task] = set()

    def attach(self, session) -> None:
        """Register listeners on the session's CDP channel and page."""
        self.logger.debug("Setting up console log listeners")
        session.cdp.on("Runtime.consoleAPICalled", self._on_console_api_called)
        session.cdp.on("Runtime.exceptionThrown", self._on_exception_thrown)
        session.page.on("dialog", self._on_dialog)
        self.logger.debug("Console log listeners set up successfully")

    @property
    def pending_dialog_tasks(self) -> Set[asyncio.Task]:
        """Dialog accept tasks that have not finished yet."""
        return set(self._dialog_tasks)

    def _on_console_api_called(self, params: Dict[str, Any]) -> None:
        try:
            event = ConsoleMessage.from_cdp(params)
        except Exception as e:
            self.logger.error(f"Error processing console message: {e}")
            return
        self.dispatch(event)

    def _on_exception_thrown(self, params: Dict[str, Any]) -> None:
        try:
            event = PageException.from_cdp(params)
        except Exception as e:
            self.logger.error(f"Error processing page exception: {e}")
            return
        self.dispatch(event)

    def _on_dialog(self, dialog) -> None:
        try:
            event = DialogOpened.from_playwright(dialog)
        except Exception as e:
            # a dialog left unanswered blocks the page until the deadline
            self.logger.error(f"Error processing dialog: {e}")
            event = DialogOpened(dialog_type="unknown", dialog=dialog)
        self.dispatch(event)

    def dispatch(self, event: BrowserEvent) -> None:
        """Handle one browser event."""
        if isinstance(event, ConsoleMessage):
            self.logger.info(f"Console message captured: type={event.type} value={event.text}")
        elif isinstance(event, PageException):
            self.logger.error(f"JavaScript exception captured: text={event.text}")
            for frame in event.frames:
                self.logger.debug(
                    f"Stack trace frame: function={frame.function_name} url={frame.url} "
                    f"line={frame.line_number} column={frame.column_number}"
                )
        elif isinstance(event, DialogOpened):
            self.logger.debug(
                f"JavaScript {event.dialog_type} dialog detected, handling automatically: {event.message}"
            )
            self._spawn_accept(event)
        else:
            assert_never(event)

    def _spawn_accept(self, event: DialogOpened) -> None:
        # never awaited by the capture flow
        task = asyncio.get_running_loop().create_task(self._accept_dialog(event))
        self._dialog_tasks.add(task)
        task.add_done_callback(self._dialog_tasks.discard)

    async def _accept_dialog(self, event: DialogOpened) -> None:
        try:
            await event.dialog.accept()
            self.logger.debug(f"Accepted {event.dialog_type} dialog")
        except Exception as e:
            self.logger.error(f"Failed to handle JavaScript dialog: {e}")
