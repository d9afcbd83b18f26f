from datetime import date
from typing import List, Optional

from textual import on, work
from textual.app import ComposeResult
from textual.containers import Horizontal, Vertical
from textual.widgets import Button, Label

from db import crud
from db.models import Order, OrderFilter
from db.realtime import Subscription
from services.export import export_invoice
from utils.errors import NothingToExport
from utils.logger import get_logger
from utils.pure import format_day
from views.base_screen import FAILURES, BaseScreen
from views.modal_date_picker import DatePickerModal
from views.widgets import OrderTable

_logger = get_logger(__name__)


class MyOrdersScreen(BaseScreen):
    """
    The signed-in customer's orders, live. Filtering on a delivery date
    unlocks the invoice for that day.
    """

    def __init__(self) -> None:
        super().__init__()
        self.delivery_day: Optional[date] = None
        self.orders: List[Order] = []
        self._sub: Optional[Subscription] = None

    def compose(self) -> ComposeResult:
        yield from super().compose()
        with Vertical(id="div-my-orders"):
            with Horizontal(id="hort-order-filters"):
                yield Button("Filter by delivery date", id="btn-pick-day")
                yield Button("Clear", id="btn-clear-day", classes="hidden")
                yield Button(
                    "Download Invoice",
                    id="btn-invoice",
                    variant="primary",
                    classes="hidden",
                )
            yield Label("Loading orders...", id="label-orders-status")
            yield OrderTable(id="table-my-orders")

    def on_mount(self) -> None:
        self.subscribe_orders()

    def subscribe_orders(self) -> None:
        if self._sub is not None:
            self.subscriptions.release(self._sub)
        flt = OrderFilter(user_id=self.app.session.uid, delivery_day=self.delivery_day)
        self._sub = self.live_query(
            crud.ORDERS,
            lambda: crud.list_orders(flt),
            self.show_orders,
            "Could not load your orders.",
        )
        self.refresh_filter_controls()

    async def show_orders(self, orders: List[Order]) -> None:
        self.orders = orders
        self.query_one(OrderTable).show_orders(orders)
        status = self.query_one("#label-orders-status", Label)
        if orders:
            status.add_class("hidden")
        else:
            status.update(
                "No orders for this date." if self.delivery_day else "You have no orders yet."
            )
            status.remove_class("hidden")

    def refresh_filter_controls(self) -> None:
        filtered = self.delivery_day is not None
        self.query_one("#btn-pick-day", Button).label = (
            f"Delivery: {format_day(self.delivery_day)}"
            if filtered
            else "Filter by delivery date"
        )
        self.query_one("#btn-clear-day").set_class(not filtered, "hidden")
        self.query_one("#btn-invoice").set_class(not filtered, "hidden")

    @on(Button.Pressed, "#btn-pick-day")
    @work(exclusive=True, group="pick-day")
    async def handle_pick_day(self) -> None:
        picked = await self.app.push_screen_wait(
            DatePickerModal(self.delivery_day, title="Filter by delivery date")
        )
        if picked is not None:
            self.delivery_day = picked
            self.subscribe_orders()

    @on(Button.Pressed, "#btn-clear-day")
    def handle_clear_day(self) -> None:
        self.delivery_day = None
        self.subscribe_orders()

    @on(Button.Pressed, "#btn-invoice")
    @work(exclusive=True, group="export")
    async def handle_invoice(self) -> None:
        if self.delivery_day is None or not self.view_state.begin_submit():
            return
        btn = self.query_one("#btn-invoice", Button)
        btn.disabled = True
        try:
            path = await export_invoice(
                self.app.exporter, self.orders, self.app.session.user, self.delivery_day
            )
        except NothingToExport as e:
            self.view_state.submit_succeeded()
            self.notify(str(e), title="No Orders", severity="warning")
        except FAILURES as e:
            _logger.error(f"Invoice export failed: {e}")
            self.view_state.submit_failed("Could not generate the invoice file.")
            self.notify("Could not generate the invoice file.", title="Error", severity="error")
            self.view_state.dismiss_error()
        else:
            self.view_state.submit_succeeded()
            self.notify(f"Invoice saved to {path}", title="Invoice")
        finally:
            btn.disabled = False
