"""
Nido TUI Application.

Textual host for the dispatcher: translates terminal events into dispatcher
events, runs the commands it returns, and repaints the single frame widget.
"""

from __future__ import annotations

from collections.abc import Callable

from textual import events
from textual.app import App, ComposeResult
from textual.message import Message
from textual.widgets import Static

from nido_tui.commands import Command
from nido_tui.dispatcher import Dispatcher
from nido_tui.logging import OperatorLogHandler, attach_operator_log, detach_operator_log
from nido_tui.messages import KeyPress, MouseClick, Resize
from nido_tui.scheduler import CommandScheduler, Work
from nido_tui.theme import DARK, Theme


class CommandMessage(Message):
    """Carries a command's output from a worker thread to the event loop."""

    def __init__(self, payload: object) -> None:
        super().__init__()
        self.payload = payload


class Frame(Static):
    """The whole screen, repainted after every event."""


class NidoApp(App):
    """Main Nido control panel application."""

    TITLE = "Nido"
    SUB_TITLE = "VM Control Panel"

    CSS = """
    Screen {
        overflow: hidden;
    }

    Frame {
        width: 100%;
        height: 100%;
    }
    """

    def __init__(
        self,
        dispatcher: Dispatcher,
        palette: Theme = DARK,
        *,
        runner: Callable[[Work], object] | None = None,
        **kwargs,
    ) -> None:
        super().__init__(**kwargs)
        self.dispatcher = dispatcher
        self.palette = palette
        self._runner = runner
        self.scheduler: CommandScheduler | None = None
        self._operator_log: OperatorLogHandler | None = None

    def compose(self) -> ComposeResult:
        yield Frame(id="frame")

    def on_mount(self) -> None:
        """Start the scheduler and issue the startup commands."""
        self.scheduler = CommandScheduler(
            self._post_result,
            self._runner or self._run_command,
            self.set_timer,
        )
        self._operator_log = attach_operator_log(self._post_result)
        self._handle(Resize(self.size.width, self.size.height))
        self._submit(self.dispatcher.start())
        self._paint()

    def on_unmount(self) -> None:
        if self._operator_log is not None:
            detach_operator_log(self._operator_log)
        if self.scheduler is not None:
            self.scheduler.shutdown()

    def _run_command(self, work: Work) -> None:
        self.run_worker(work, thread=True, exclusive=False, group="commands")

    def _post_result(self, payload: object) -> None:
        self.post_message(CommandMessage(payload))

    # Every key goes through the dispatcher; Textual bindings never fire.
    def on_key(self, event: events.Key) -> None:
        event.prevent_default()
        event.stop()
        self._handle(KeyPress(event.key, event.character))

    def on_click(self, event: events.Click) -> None:
        self._handle(MouseClick(event.screen_x, event.screen_y))

    def on_resize(self, event: events.Resize) -> None:
        self._handle(Resize(event.size.width, event.size.height))

    def on_command_message(self, message: CommandMessage) -> None:
        self._handle(message.payload)

    def _handle(self, event: object) -> None:
        self._submit(self.dispatcher.handle(event))
        if self.dispatcher.state.quit_requested:
            self.exit()
            return
        self._paint()

    def _submit(self, commands: list[Command]) -> None:
        if self.scheduler is not None:
            self.scheduler.submit_all(commands)

    def _paint(self) -> None:
        # Resize can arrive before on_mount has built the frame.
        if self.scheduler is None:
            return
        self.query_one(Frame).update(self.dispatcher.render(self.palette))


def run(dispatcher: Dispatcher, palette: Theme = DARK) -> None:
    """Run the TUI application."""
    app = NidoApp(dispatcher, palette)
    app.run()
