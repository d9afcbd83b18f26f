from datetime import date
from typing import Dict, List, Optional

from textual import on, work
from textual.app import ComposeResult
from textual.containers import Horizontal, Vertical
from textual.widgets import Button, DataTable, Label, Tab, Tabs

from db import crud
from db.models import DailyStats, OrderFilter, OrderView
from db.realtime import Subscription
from utils.pure import BLUE, BRAND_COLOR, GREEN
from views.base_screen import BaseScreen
from views.modal_add_order import AddOrderModal
from views.modal_order_actions import run_order_actions
from views.modal_product_form import ProductFormModal
from views.widgets import OrderTable, StatCard


class DashboardScreen(BaseScreen):
    """
    Admin landing screen.

    Layout:
    - stat cards (all orders, placed today, delivering today)
    - shortcuts to add a product or an order
    - today's deliveries or today's orders, picked with the tabs
    """

    def __init__(self) -> None:
        super().__init__()
        self.order_views: Dict[str, OrderView] = {}
        self._list_sub: Optional[Subscription] = None

    def compose(self) -> ComposeResult:
        yield from super().compose()
        with Vertical(id="div-dashboard"):
            with Horizontal(id="hort-stats"):
                yield StatCard("Total Orders", BRAND_COLOR, id="stat-total")
                yield StatCard("Today's Orders", BLUE, id="stat-today-orders")
                yield StatCard("Today's Deliveries", GREEN, id="stat-today-deliveries")
            with Horizontal(id="hort-shortcuts"):
                yield Button("Add Product", id="btn-add-product", variant="primary")
                yield Button("Add Order", id="btn-add-order", variant="primary")
            yield Tabs(
                Tab("Today's Deliveries", id="tab-deliveries"),
                Tab("Today's Orders", id="tab-orders"),
                id="tabs-dashboard",
            )
            yield Label("", id="label-dashboard-empty", classes="hidden")
            yield OrderTable(with_customer=True, id="table-dashboard")

    def on_mount(self) -> None:
        self.live_query(
            crud.ORDERS,
            crud.load_daily_stats,
            self.show_stats,
            "Could not load dashboard stats.",
        )

    async def show_stats(self, stats: DailyStats) -> None:
        self.query_one("#stat-total", StatCard).show(stats.total_orders)
        self.query_one("#stat-today-orders", StatCard).show(stats.todays_orders)
        self.query_one("#stat-today-deliveries", StatCard).show(stats.todays_deliveries)

    @on(Tabs.TabActivated, "#tabs-dashboard")
    def handle_tab(self, event: Tabs.TabActivated) -> None:
        self.subscribe_list(event.tab.id)

    def subscribe_list(self, tab_id: str) -> None:
        if self._list_sub is not None:
            self.subscriptions.release(self._list_sub)
        today = date.today()
        if tab_id == "tab-deliveries":
            flt = OrderFilter(delivery_day=today)
        else:
            flt = OrderFilter(ordered_day=today)
        self._list_sub = self.live_query(
            [crud.ORDERS, crud.USERS],
            lambda: crud.list_order_views(flt),
            self.show_views,
            "Could not load orders.",
        )

    async def show_views(self, views: List[OrderView]) -> None:
        self.order_views = {v.order.id: v for v in views}
        self.query_one(OrderTable).show_views(views)
        empty = self.query_one("#label-dashboard-empty", Label)
        if views:
            empty.add_class("hidden")
        else:
            deliveries = self.query_one(Tabs).active == "tab-deliveries"
            empty.update("No deliveries today." if deliveries else "No orders placed today.")
            empty.remove_class("hidden")

    @on(DataTable.RowSelected, "#table-dashboard")
    @work(exclusive=True, group="order-actions")
    async def handle_row_selected(self, event: DataTable.RowSelected) -> None:
        view = self.order_views.get(event.row_key.value)
        if view is not None:
            await run_order_actions(self, view)

    @on(Button.Pressed, "#btn-add-product")
    def handle_add_product(self) -> None:
        self.app.push_screen(ProductFormModal())

    @on(Button.Pressed, "#btn-add-order")
    def handle_add_order(self) -> None:
        self.app.push_screen(AddOrderModal())
