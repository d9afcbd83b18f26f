from datetime import date
from typing import Dict, List, Optional

from textual import on, work
from textual.app import ComposeResult
from textual.containers import Horizontal, Vertical
from textual.widgets import Button, DataTable, Input, Label, Select

from db import crud
from db.models import PAYMENT_STATES, OrderFilter, OrderView
from db.realtime import Subscription
from services.export import export_report
from utils.errors import NothingToExport
from utils.logger import get_logger
from utils.pure import filter_by_name, format_day, payment_details
from views.base_screen import FAILURES, BaseScreen
from views.modal_date_picker import DatePickerModal
from views.modal_order_actions import run_order_actions
from views.widgets import OrderTable

_logger = get_logger(__name__)


class OrdersListScreen(BaseScreen):
    """
    Every order with its customer. Delivery date and payment narrow the
    query itself; the customer search narrows what was loaded.
    """

    def __init__(self) -> None:
        super().__init__()
        self.delivery_day: Optional[date] = None
        self.payment: Optional[str] = None
        self.loaded: List[OrderView] = []
        self.shown: List[OrderView] = []
        self._sub: Optional[Subscription] = None

    def compose(self) -> ComposeResult:
        yield from super().compose()
        with Vertical(id="div-orders-list"):
            with Horizontal(id="hort-orders-filters"):
                yield Input(placeholder="Search customer...", id="input-customer")
                yield Button("Delivery date", id="btn-filter-day")
                yield Select(
                    [(payment_details(p).text, p) for p in PAYMENT_STATES],
                    prompt="Payment",
                    id="select-payment",
                )
                yield Button("Clear", id="btn-clear-filters")
                yield Button("Download", id="btn-download", variant="primary")
            yield Label("", id="label-orders-empty", classes="hidden")
            yield OrderTable(with_customer=True, id="table-all-orders")

    def on_mount(self) -> None:
        self.subscribe_orders()

    def current_filter(self) -> OrderFilter:
        return OrderFilter(delivery_day=self.delivery_day, payment=self.payment)

    def subscribe_orders(self) -> None:
        if self._sub is not None:
            self.subscriptions.release(self._sub)
        flt = self.current_filter()
        self._sub = self.live_query(
            [crud.ORDERS, crud.USERS],
            lambda: crud.list_order_views(flt),
            self.show_loaded,
            "Could not load orders.",
        )
        self.query_one("#btn-filter-day", Button).label = (
            f"Delivery: {format_day(self.delivery_day)}"
            if self.delivery_day
            else "Delivery date"
        )

    async def show_loaded(self, views: List[OrderView]) -> None:
        self.loaded = views
        self.apply_search()

    def apply_search(self) -> None:
        query = self.query_one("#input-customer", Input).value
        self.shown = filter_by_name(self.loaded, query, key=lambda v: v.user_name)
        self.query_one(OrderTable).show_views(self.shown)

        empty = self.query_one("#label-orders-empty", Label)
        if self.shown:
            empty.add_class("hidden")
        else:
            filtered = query or self.delivery_day or self.payment
            empty.update("No orders match the filters." if filtered else "No orders yet.")
            empty.remove_class("hidden")

    @on(Input.Changed, "#input-customer")
    def handle_search(self) -> None:
        self.apply_search()

    @on(Button.Pressed, "#btn-filter-day")
    @work(exclusive=True, group="pick-day")
    async def handle_pick_day(self) -> None:
        picked = await self.app.push_screen_wait(
            DatePickerModal(self.delivery_day, title="Filter by delivery date")
        )
        if picked is not None:
            self.delivery_day = picked
            self.subscribe_orders()

    @on(Select.Changed, "#select-payment")
    def handle_payment(self, event: Select.Changed) -> None:
        payment = None if event.value is Select.BLANK else event.value
        if payment != self.payment:
            self.payment = payment
            self.subscribe_orders()

    @on(Button.Pressed, "#btn-clear-filters")
    def handle_clear(self) -> None:
        self.delivery_day = None
        self.payment = None
        self.query_one("#input-customer", Input).value = ""
        self.query_one("#select-payment", Select).clear()
        self.subscribe_orders()

    @on(DataTable.RowSelected, "#table-all-orders")
    @work(exclusive=True, group="order-actions")
    async def handle_row_selected(self, event: DataTable.RowSelected) -> None:
        views: Dict[str, OrderView] = {v.order.id: v for v in self.shown}
        view = views.get(event.row_key.value)
        if view is not None:
            await run_order_actions(self, view)

    @on(Button.Pressed, "#btn-download")
    @work(exclusive=True, group="export")
    async def handle_download(self) -> None:
        if not self.view_state.begin_submit():
            return
        btn = self.query_one("#btn-download", Button)
        btn.disabled = True
        try:
            path = await export_report(self.app.exporter, self.shown, self.delivery_day)
        except NothingToExport as e:
            self.view_state.submit_succeeded()
            self.notify(str(e), title="No Data", severity="warning")
        except FAILURES as e:
            _logger.error(f"Report export failed: {e}")
            self.view_state.submit_failed("Could not generate the orders file.")
            self.notify("Could not generate the orders file.", title="Error", severity="error")
            self.view_state.dismiss_error()
        else:
            self.view_state.submit_succeeded()
            self.notify(f"Orders saved to {path}", title="Download")
        finally:
            btn.disabled = False
