from typing import Optional, Tuple

from textual import events, on
from textual.app import ComposeResult
from textual.containers import Horizontal, Vertical
from textual.screen import ModalScreen, Screen
from textual.widgets import Button, Label

from db import crud
from db.models import OrderView
from utils.config import settings
from utils.logger import get_logger
from utils.pure import (
    format_day,
    format_money,
    next_status_options,
    payment_details,
    status_details,
    toggled_payment,
)
from views.base_screen import FAILURES
from views.modal_dialog import ConfirmDialogModal

_logger = get_logger(__name__)

OrderAction = Tuple[str, str]


class OrderActionsModal(ModalScreen[Optional[OrderAction]]):
    """
    Order card with the admin's actions. Returns ("status", new_status),
    ("payment", new_payment) or None.
    """

    def __init__(self, view: OrderView) -> None:
        super().__init__()
        self.order_view = view

    def compose(self) -> ComposeResult:
        o = self.order_view.order
        with Vertical(id="div-order-actions"):
            yield Label(f"{o.product_name}: {o.quantity} {o.unit}", id="label-order-title")
            yield Label(f"Customer: {self.order_view.user_name} ({self.order_view.user_phone})")
            yield Label(f"Delivery: {format_day(o.delivery_date)}")
            yield Label(f"Total: {format_money(o.total_price, settings.currency)}")
            yield Label(
                f"Status: {status_details(o.status).text}    "
                f"Payment: {payment_details(o.payment).text}"
            )
            yield Label("Change status to", classes="section-label")
            with Horizontal(id="hort-status-options"):
                for status in next_status_options(o.status):
                    yield Button(
                        status_details(status).text,
                        id=f"btn-status-{status}",
                        classes="btn-status",
                    )
            with Horizontal(id="hort-order-action-btns"):
                yield Button("Close", id="btn-close")
                yield Button(
                    f"Mark as {payment_details(toggled_payment(o.payment)).text}",
                    id="btn-toggle-payment",
                    variant="primary",
                )

    def on_key(self, event: events.Key) -> None:
        if event.key == "escape":
            self.dismiss(None)

    @on(Button.Pressed, ".btn-status")
    def handle_status(self, event: Button.Pressed) -> None:
        self.dismiss(("status", event.button.id.removeprefix("btn-status-")))

    @on(Button.Pressed, "#btn-toggle-payment")
    def handle_payment(self) -> None:
        self.dismiss(("payment", toggled_payment(self.order_view.order.payment)))

    @on(Button.Pressed, "#btn-close")
    def handle_close(self) -> None:
        self.dismiss(None)


async def run_order_actions(screen: Screen, view: OrderView) -> None:
    """
    Show the actions for one order and apply the chosen one after a
    confirmation. Must run inside a worker.
    """
    action = await screen.app.push_screen_wait(OrderActionsModal(view))
    if action is None:
        return
    kind, value = action
    shown = status_details(value).text if kind == "status" else payment_details(value).text
    if not await screen.app.push_screen_wait(
        ConfirmDialogModal(
            f"Confirm {kind.capitalize()} Update",
            f'Are you sure you want to change the {kind} to "{shown}"?',
        )
    ):
        return

    try:
        if kind == "status":
            await crud.update_order_status(view.order.id, value)
        else:
            await crud.update_order_payment(view.order.id, value)
    except FAILURES as e:
        _logger.error(f"Updating {kind} of {view.order.id} failed: {e}")
        screen.notify(f"Failed to update order {kind}.", title="Error", severity="error")
    else:
        screen.notify(f"Order {kind} has been updated.", title="Success")
