"""
Chat Application UI

Terminal interface for the chat client, built with the Textual framework.
The app connects to the relay on start, lets the user try names until one
is accepted, and then enables the message input.
"""

import asyncio
import logging
from typing import Optional

from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import Horizontal
from textual.css.query import NoMatches
from textual.widgets import Button, Footer, Header, Input, Log, Static

from ...config import ClientConfig
from ..display import TextualSink
from ..link import LinkState, ServerLink

logger = logging.getLogger(__name__)


class ChatApp(App):
    """Main chat application."""

    TITLE = "relaychat"

    CSS = """
    Screen {
        layout: vertical;
    }

    .screen-title {
        text-align: center;
        padding: 1 0;
        text-style: bold;
    }

    #chat-log {
        height: 1fr;
        border: solid $primary;
    }

    .input-row {
        height: 3;
        padding: 0 1;
    }

    .input-row Input {
        width: 1fr;
    }

    .input-row Button {
        margin: 0 0 0 1;
    }

    #status {
        padding: 0 1;
    }
    """

    BINDINGS = [
        Binding("ctrl+q", "quit", "Quit", show=True),
        Binding("ctrl+d", "disconnect", "Disconnect", show=True),
    ]

    def __init__(self, config: Optional[ClientConfig] = None) -> None:
        """Initialize the chat application."""
        super().__init__()
        self.config = config or ClientConfig()
        self.link: Optional[ServerLink] = None
        self.sink: Optional[TextualSink] = None
        self._link_task: Optional[asyncio.Task] = None

    def compose(self) -> ComposeResult:
        """Compose the main application layout."""
        yield Header()
        yield Static(
            f"[bold blue]Chat relay {self.config.host}:{self.config.port}[/]",
            classes="screen-title",
        )
        yield Log(id="chat-log")
        with Horizontal(classes="input-row"):
            yield Input(placeholder="Enter your name...", id="name-input")
            yield Button("Join", id="join-btn", variant="primary")
        with Horizontal(classes="input-row"):
            yield Input(
                placeholder="Type a message...",
                id="message-input",
                disabled=True,
            )
            yield Button("Send", id="send-btn", variant="primary", disabled=True)
            yield Button(
                "Disconnect", id="disconnect-btn", variant="warning", disabled=True
            )
        yield Static("", id="status")
        yield Footer()

    def on_mount(self) -> None:
        """Connect to the relay as soon as the UI is up."""
        self.sink = TextualSink(self.query_one("#chat-log", Log))
        self.link = ServerLink(self.config, self.sink, on_access=self.set_access)
        self._link_task = asyncio.create_task(self._run_link())

    async def _run_link(self) -> None:
        await self.link.run()
        self._set_status("[red]Disconnected[/]")
        self._set_enabled(("#name-input", "#join-btn"), False)

    async def on_button_pressed(self, event: Button.Pressed) -> None:
        """Handle button press events."""
        button_id = event.button.id

        if button_id == "join-btn":
            await self._handle_join()
        elif button_id == "send-btn":
            await self._handle_send_message()
        elif button_id == "disconnect-btn":
            await self.action_disconnect()

    async def on_input_submitted(self, event: Input.Submitted) -> None:
        """Handle input submit events (Enter key)."""
        if event.input.id == "name-input":
            await self._handle_join()
        elif event.input.id == "message-input":
            await self._handle_send_message()

    async def _handle_join(self) -> None:
        name_input = self.query_one("#name-input", Input)
        name = name_input.value.strip()
        if not name:
            self._set_status("[red]Please enter a name[/]")
            return
        awaiting = LinkState.AWAITING_NAME_ACCEPTANCE
        if not self.link or self.link.state is not awaiting:
            self._set_status("[red]Not connected to the relay[/]")
            return
        await self.link.send_to_server(name)

    async def _handle_send_message(self) -> None:
        message_input = self.query_one("#message-input", Input)
        text = message_input.value.strip()
        if not text or not self.link:
            return
        if await self.link.send_to_server(text):
            message_input.value = ""

    async def action_disconnect(self) -> None:
        """Ask the relay to end the session."""
        if self.link and self.link.has_access:
            await self.link.logout()

    async def action_quit(self) -> None:
        if self.link and self.link.has_access:
            await self.link.logout()
        self.exit()

    def set_access(self, granted: bool) -> None:
        """Enable chatting once the relay accepts the name."""
        self._set_enabled(("#name-input", "#join-btn"), not granted)
        self._set_enabled(
            ("#message-input", "#send-btn", "#disconnect-btn"), granted
        )
        self._set_status("[green]Connected[/]" if granted else "")
        if granted:
            self.query_one("#message-input", Input).focus()

    def _set_enabled(self, selectors, enabled: bool) -> None:
        for selector in selectors:
            try:
                self.query_one(selector).disabled = not enabled
            except NoMatches:
                pass

    def _set_status(self, text: str) -> None:
        try:
            self.query_one("#status", Static).update(text)
        except NoMatches:
            pass
