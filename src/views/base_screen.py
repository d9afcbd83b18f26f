from typing import Any, Callable, Iterable, Union

import aiosqlite
from textual import on, work
from textual.app import ComposeResult
from textual.binding import Binding
from textual.containers import Container
from textual.screen import Screen
from textual.widgets import Button, Footer, Header, Label, ListItem, ListView, Markdown

from db import crud
from db.realtime import Subscription, SubscriptionGroup
from utils.config import settings
from utils.errors import StorefrontError
from utils.messages import UserLogoutMessage
from utils.pure import generate_markdown_table
from utils.state import ViewState
from views.modal_dialog import ConfirmDialogModal, QuitDialogModal

# what a screen catches around a data call; anything else is a bug
FAILURES = (StorefrontError, aiosqlite.Error, OSError)


class Sidebar(Container):
    def compose(self) -> ComposeResult:
        yield Label("User Info", id="label-info-1")
        yield Markdown("", id="md-userinfo")
        yield Button("Log out", id="btn-logout", variant="error")
        yield Label("Menu", id="label-info-2")
        yield ListView(id="list-menu")

    async def on_mount(self):
        user = self.app.session.user
        if user is None:
            return

        table_rows = [
            ["Name", user.name],
            ["Phone", user.phone],
            ["Role", "Admin" if user.is_admin else "Customer"],
        ]
        md_table_str = generate_markdown_table(None, table_rows, ["l", "l"])
        await self.query_one(Markdown).update(md_table_str)

        list_menu: ListView = self.query_one("#list-menu")
        await list_menu.clear()
        await list_menu.extend(
            [
                ListItem(Label(r.title), id="list-menu-item-" + r.mode)
                for r in self.app.routes
            ]
        )
        self.highlight_item(self.screen_mode())

    def screen_mode(self) -> str:
        for r in self.app.routes:
            if isinstance(self.screen, r.screen):
                return r.mode
        return ""

    async def on_list_view_selected(self, event: ListView.Selected):
        selected_mode = event.item.id.removeprefix("list-menu-item-")
        self.highlight_item(self.screen_mode())
        if self.app.current_mode != selected_mode:
            await self.app.switch_mode(selected_mode)

    @on(Button.Pressed, "#btn-logout")
    @work(exclusive=True)
    async def handle_logout(self):
        if await self.app.push_screen_wait(
            ConfirmDialogModal("Logout", "Are you sure you want to log out?", "Logout")
        ):
            self.post_message(UserLogoutMessage())

    def highlight_item(self, mode_str: str):
        list_menu = self.query_one("#list-menu")
        for item in list_menu.children:
            item.highlighted = item.id == "list-menu-item-" + mode_str


class BaseScreen(Screen):
    """
    Inherited by all screens, contains common elements like
    headers, footers, sidebar, and keybindings.

    Screens open their live queries through `live_query`; all of them are
    released when the screen is unmounted.
    """

    BINDINGS = [
        Binding("ctrl+z", "quit", "Quit App", show=True),
    ]

    def __init__(self):
        super().__init__()
        self.view_state = ViewState()
        self.subscriptions = SubscriptionGroup()
        self.configure()

    def configure(
        self,
        header_sub_title: str = "",
        show_sidebar: bool = True,
    ) -> None:
        """
        configure behavior of the base screen
        :return:
        """
        self.app.title = settings.brand
        self.sub_title = header_sub_title
        for r in getattr(self.app, "routes", []):
            if isinstance(self, r.screen):
                self.sub_title = r.title

        self._show_sidebar = show_sidebar

    def compose(self) -> ComposeResult:
        if self._show_sidebar:
            yield Sidebar()
        yield Header()
        yield Footer(show_command_palette=False)

    def on_unmount(self) -> None:
        self.subscriptions.release_all()

    def live_query(
        self,
        collections: Union[str, Iterable[str]],
        loader: Callable[[], Any],
        on_next: Callable[[Any], Any],
        error_message: str = "Could not load data.",
    ) -> Subscription:
        """Live query bound to this screen's lifetime."""

        async def deliver(snapshot: Any) -> None:
            self.view_state.data_arrived()
            await on_next(snapshot)

        def failed(exc: BaseException) -> None:
            self.view_state.fail(error_message)
            self.notify(error_message, title="Error", severity="error")

        self.view_state.begin_loading()
        return self.subscriptions.add(crud.subscribe(collections, loader, deliver, failed))

    def show_error(self, message: str, title: str = "Error") -> None:
        self.view_state.fail(message)
        self.notify(message, title=title, severity="error")
        self.view_state.dismiss_error()

    @work()
    async def action_quit(self):
        await self.app.push_screen_wait(QuitDialogModal())
