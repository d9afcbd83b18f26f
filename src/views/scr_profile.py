from datetime import date
from typing import List, Optional

from textual import on, work
from textual.app import ComposeResult
from textual.containers import Vertical
from textual.widgets import Button, Label, Markdown

from db import crud
from db.models import Order, OrderFilter, User
from utils.messages import UserLogoutMessage
from utils.pure import format_timestamp, generate_markdown_table
from views.base_screen import BaseScreen
from views.modal_dialog import ConfirmDialogModal
from views.widgets import OrderTable


class ProfileScreen(BaseScreen):
    """
    The signed-in user's profile and what is being delivered to them today.
    """

    def compose(self) -> ComposeResult:
        yield from super().compose()
        with Vertical(id="div-profile"):
            yield Markdown("", id="md-profile")
            yield Label("Today's Deliveries", id="label-today")
            yield Label("No deliveries today.", id="label-today-empty", classes="hidden")
            yield OrderTable(id="table-today")
            yield Button("Log out", id="btn-profile-logout", variant="error")

    def on_mount(self) -> None:
        uid = self.app.session.uid
        self.live_query(
            crud.USERS,
            lambda: crud.get_user(uid),
            self.show_profile,
            "Could not load your profile.",
        )
        self.live_query(
            crud.ORDERS,
            lambda: crud.list_orders(OrderFilter(user_id=uid, delivery_day=date.today())),
            self.show_today,
            "Could not load today's deliveries.",
        )

    async def show_profile(self, user: Optional[User]) -> None:
        if user is None:
            await self.query_one(Markdown).update("Profile not found.")
            return
        rows = [
            ["Name", user.name],
            ["Phone", user.phone],
            ["Address", user.address],
            ["Role", "Admin" if user.is_admin else "Customer"],
            ["Member since", format_timestamp(user.created_at)],
        ]
        md_table_str = generate_markdown_table(None, rows, ["l", "l"])
        await self.query_one(Markdown).update(f"### {user.name}\n\n" + md_table_str)

    async def show_today(self, orders: List[Order]) -> None:
        self.query_one(OrderTable).show_orders(orders)
        self.query_one("#label-today-empty").set_class(bool(orders), "hidden")

    @on(Button.Pressed, "#btn-profile-logout")
    @work(exclusive=True)
    async def handle_logout(self) -> None:
        if await self.app.push_screen_wait(
            ConfirmDialogModal("Logout", "Are you sure you want to log out?", "Logout")
        ):
            self.post_message(UserLogoutMessage())
