from datetime import date
from typing import List, Optional

from textual import events, on, work
from textual.app import ComposeResult
from textual.containers import Horizontal, Vertical
from textual.screen import ModalScreen
from textual.widgets import Button, Input, Label, RadioButton, RadioSet

from db import crud
from db.models import PAYMENT_STATES, Product, User
from utils.config import settings
from utils.errors import ValidationError
from utils.logger import get_logger
from utils.pure import (
    display_total,
    format_day,
    format_money,
    payment_details,
    tomorrow,
    validate_admin_order,
)
from utils.state import ViewState
from views.base_screen import FAILURES
from views.modal_date_picker import DatePickerModal
from views.modal_selector import SelectorModal

_logger = get_logger(__name__)


class AddOrderModal(ModalScreen[bool]):
    """
    Admin places an order for any customer. Any delivery date is allowed
    and the payment state is chosen up front.
    """

    def __init__(self) -> None:
        super().__init__()
        self.view_state = ViewState()
        self.users: List[User] = []
        self.products: List[Product] = []
        self.customer: Optional[User] = None
        self.product: Optional[Product] = None
        self.delivery_day: date = tomorrow()

    def compose(self) -> ComposeResult:
        with Vertical(id="div-add-order"):
            yield Label("Add Order", id="label-add-order-title")
            yield Label("Customer")
            yield Button("Select a customer", id="btn-pick-customer")
            yield Label("Product")
            yield Button("Select a product", id="btn-pick-product")
            with Horizontal(classes="form-row"):
                with Vertical():
                    yield Label("Quantity")
                    yield Input(
                        placeholder="0",
                        id="input-order-qty",
                        restrict=r"[0-9]*",
                        max_length=5,
                    )
                with Vertical():
                    yield Label("Delivery date")
                    yield Button(format_day(self.delivery_day), id="btn-order-day")
            yield Label("Payment")
            with RadioSet(id="radio-order-payment"):
                for state in reversed(PAYMENT_STATES):
                    yield RadioButton(
                        payment_details(state).text,
                        value=state == "unpaid",
                        id=f"radio-payment-{state}",
                    )
            yield Label("", id="label-order-total")
            with Horizontal(id="div-add-order-btns"):
                yield Button("Cancel", id="btn-add-order-cancel")
                yield Button(
                    "Create Order", id="btn-add-order-save", variant="primary", disabled=True
                )

    def on_mount(self) -> None:
        self.load_choices()

    def on_key(self, event: events.Key) -> None:
        if event.key == "escape":
            self.dismiss(False)

    @work(exclusive=True, group="load")
    async def load_choices(self) -> None:
        try:
            self.users = await crud.list_users()
            self.products = await crud.list_products()
        except FAILURES as e:
            _logger.error(f"Loading customers and products failed: {e}")
            self.view_state.fail("Could not load customers and products.")
            self.notify(
                "Could not load customers and products.", title="Error", severity="error"
            )
            return
        self.view_state.data_arrived()
        self.query_one("#btn-add-order-save", Button).disabled = False

    def refresh_total(self) -> None:
        total = None
        if self.product is not None:
            total = display_total(
                self.product.price, self.query_one("#input-order-qty", Input).value
            )
        self.query_one("#label-order-total", Label).update(
            f"Total: {format_money(total, settings.currency)}" if total is not None else ""
        )

    def selected_payment(self) -> str:
        pressed = self.query_one(RadioSet).pressed_button
        if pressed is None:
            return "unpaid"
        return pressed.id.removeprefix("radio-payment-")

    @on(Button.Pressed, "#btn-pick-customer")
    @work(exclusive=True, group="pick")
    async def handle_pick_customer(self) -> None:
        picked = await self.app.push_screen_wait(
            SelectorModal(
                "Select Customer",
                self.users,
                describe=lambda u: f"{u.name} ({u.phone})",
                search_placeholder="Search customers...",
            )
        )
        if picked is not None:
            self.customer = picked
            self.query_one("#btn-pick-customer", Button).label = picked.name

    @on(Button.Pressed, "#btn-pick-product")
    @work(exclusive=True, group="pick")
    async def handle_pick_product(self) -> None:
        picked = await self.app.push_screen_wait(
            SelectorModal(
                "Select Product",
                self.products,
                describe=lambda p: (
                    f"{p.name} ({format_money(p.price, settings.currency)}/{p.unit})"
                ),
                search_placeholder="Search products...",
            )
        )
        if picked is not None:
            self.product = picked
            self.query_one("#btn-pick-product", Button).label = picked.name
            self.refresh_total()

    @on(Button.Pressed, "#btn-order-day")
    @work(exclusive=True, group="pick")
    async def handle_pick_day(self) -> None:
        picked = await self.app.push_screen_wait(
            DatePickerModal(self.delivery_day, title="Delivery date")
        )
        if picked is not None:
            self.delivery_day = picked
            self.query_one("#btn-order-day", Button).label = format_day(picked)

    @on(Input.Changed, "#input-order-qty")
    def handle_qty_changed(self) -> None:
        self.refresh_total()

    @on(Button.Pressed, "#btn-add-order-save")
    @work(exclusive=True, group="save")
    async def handle_save(self) -> None:
        if not self.view_state.is_ready or not self.view_state.begin_submit():
            return
        save_btn = self.query_one("#btn-add-order-save", Button)
        save_btn.disabled = True
        try:
            qty = validate_admin_order(
                self.customer,
                self.product,
                self.query_one("#input-order-qty", Input).value,
            )
            await crud.create_order(
                self.customer.uid,
                self.product,
                qty,
                self.delivery_day,
                payment=self.selected_payment(),
            )
        except ValidationError as e:
            self.view_state.submit_failed(str(e))
            self.notify(str(e), title="Error", severity="error")
            self.view_state.dismiss_error()
        except FAILURES as e:
            _logger.error(f"Creating order failed: {e}")
            self.view_state.submit_failed("Failed to create the order.")
            self.notify("Failed to create the order.", title="Error", severity="error")
            self.view_state.dismiss_error()
        else:
            self.view_state.submit_succeeded()
            self.notify("Order has been created successfully!", title="Success")
            self.dismiss(True)
            return
        save_btn.disabled = False

    @on(Button.Pressed, "#btn-add-order-cancel")
    def handle_cancel(self) -> None:
        self.dismiss(False)
