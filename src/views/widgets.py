from typing import Optional, Sequence

from rich.text import Text
from textual.widgets import DataTable, Static

from db.models import Order, OrderView
from utils.config import settings
from utils.pure import (
    Badge,
    format_day,
    format_money,
    format_timestamp,
    payment_details,
    status_details,
)


def badge_text(badge: Badge) -> Text:
    return Text(badge.text, style=f"bold {badge.color}")


class StatCard(Static):
    def __init__(self, label: str, color: str, id: Optional[str] = None) -> None:
        super().__init__(id=id, classes="stat-card")
        self.label = label
        self.color = color

    def show(self, value: int) -> None:
        text = Text()
        text.append(f"{value}\n", style=f"bold {self.color}")
        text.append(self.label)
        self.update(text)


class OrderTable(DataTable):
    """
    Row per order, keyed by order id. Customer columns only when the rows are
    OrderViews (admin lists).
    """

    def __init__(self, with_customer: bool = False, **kwargs) -> None:
        super().__init__(cursor_type="row", zebra_stripes=True, **kwargs)
        self.with_customer = with_customer

    def on_mount(self) -> None:
        self._ensure_columns()

    def _ensure_columns(self) -> None:
        # rows can arrive before our own Mount is handled
        if self.columns:
            return
        columns = ["Product", "Qty", "Total", "Ordered", "Delivery", "Status", "Payment"]
        if self.with_customer:
            columns = ["Customer", "Phone"] + columns
        self.add_columns(*columns)

    def show_orders(self, orders: Sequence[Order]) -> None:
        self._ensure_columns()
        self.clear()
        for o in orders:
            self.add_row(*self._cells(o), key=o.id)

    def show_views(self, views: Sequence[OrderView]) -> None:
        self._ensure_columns()
        self.clear()
        for v in views:
            cells = self._cells(v.order)
            if self.with_customer:
                cells = [v.user_name, v.user_phone] + cells
            self.add_row(*cells, key=v.order.id)

    @staticmethod
    def _cells(o: Order) -> list:
        return [
            o.product_name,
            f"{o.quantity} {o.unit}",
            format_money(o.total_price, settings.currency),
            format_timestamp(o.ordered_at),
            format_day(o.delivery_date),
            badge_text(status_details(o.status)),
            badge_text(payment_details(o.payment)),
        ]
