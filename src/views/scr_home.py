import asyncio
from typing import Dict, List

from textual import on, work
from textual.app import ComposeResult
from textual.containers import Horizontal, Vertical, VerticalScroll
from textual.widgets import Button, Input, Label

from db import crud
from db.models import Product
from utils.config import settings
from utils.errors import ValidationError
from utils.logger import get_logger
from utils.pure import (
    display_total,
    filter_by_name,
    format_day,
    format_money,
    quantity_value,
    step_quantity,
    tomorrow,
    validate_customer_order,
)
from utils.state import OrderDraft, ViewState
from views.base_screen import FAILURES, BaseScreen
from views.modal_date_picker import DatePickerModal
from views.modal_dialog import SimpleDialogModal

_logger = get_logger(__name__)


class ProductCard(Vertical):
    """
    One product with its own quantity, delivery date and Order button.
    The draft is owned by the screen so it survives re-renders.
    """

    def __init__(self, product: Product, draft: OrderDraft) -> None:
        super().__init__(id=f"product-{product.id}", classes="product-card")
        self.product = product
        self.draft = draft
        self.view_state = ViewState(status="ready")

    def compose(self) -> ComposeResult:
        p = self.product
        with Horizontal(classes="card-head"):
            yield Label(p.name, classes="card-name")
            yield Label(
                f"{format_money(p.price, settings.currency)} / {p.unit}",
                classes="card-price",
            )
        with Horizontal(classes="card-controls"):
            yield Button("-", classes="btn-dec")
            yield Input(
                self.draft.quantity,
                placeholder="0",
                restrict=r"[0-9]*",
                max_length=5,
                classes="input-qty",
            )
            yield Button("+", classes="btn-inc")
            yield Button(format_day(self.draft.effective_day()), classes="btn-day")
            yield Label("", classes="card-total")
            yield Button("Details", classes="btn-details")
            yield Button("Order", classes="btn-order", variant="primary")

    def on_mount(self) -> None:
        self.refresh_total()

    def refresh_total(self) -> None:
        total = display_total(self.product.price, self.draft.quantity)
        self.query_one(".card-total", Label).update(
            f"Total: {format_money(total, settings.currency)}" if total is not None else ""
        )
        self.query_one(".btn-order", Button).disabled = (
            quantity_value(self.draft.quantity) <= 0 or self.view_state.submitting
        )

    def set_quantity(self, text: str) -> None:
        self.query_one(".input-qty", Input).value = text

    @on(Button.Pressed, ".btn-dec")
    def handle_dec(self) -> None:
        self.set_quantity(step_quantity(self.draft.quantity, -1))

    @on(Button.Pressed, ".btn-inc")
    def handle_inc(self) -> None:
        self.set_quantity(step_quantity(self.draft.quantity, 1))

    @on(Input.Changed, ".input-qty")
    def handle_qty_changed(self, event: Input.Changed) -> None:
        self.draft.quantity = event.value
        self.refresh_total()

    @on(Button.Pressed, ".btn-day")
    @work(exclusive=True, group="pick-day")
    async def handle_pick_day(self) -> None:
        picked = await self.app.push_screen_wait(
            DatePickerModal(
                self.draft.effective_day(),
                min_date=tomorrow(),
                title=f"Delivery date for {self.product.name}",
            )
        )
        if picked is not None:
            self.draft.delivery_day = picked
            self.query_one(".btn-day", Button).label = format_day(picked)

    @on(Button.Pressed, ".btn-details")
    def handle_details(self) -> None:
        self.app.push_screen(
            SimpleDialogModal(
                self.product.description or "No description available.",
                title=self.product.name,
            )
        )

    @on(Button.Pressed, ".btn-order")
    @work(exclusive=True, group="order")
    async def handle_order(self) -> None:
        if not self.view_state.begin_submit():
            return
        self.refresh_total()
        uid = self.app.session.uid
        day = self.draft.effective_day()
        try:
            qty = validate_customer_order(uid, self.draft.quantity, day)
            await crud.place_customer_order(uid, self.product, qty, day)
        except ValidationError as e:
            self.view_state.submit_failed(str(e))
            self.notify(str(e), title="Error", severity="error")
        except FAILURES as e:
            _logger.error(f"Order for {self.product.id} failed: {e}")
            self.view_state.submit_failed("Failed to place order.")
            self.notify("Failed to place order.", title="Error", severity="error")
        else:
            self.view_state.submit_succeeded()
            self.notify("Order placed successfully!", title="Success")
            self.draft.reset()
            self.set_quantity("")
            self.query_one(".btn-day", Button).label = format_day(self.draft.effective_day())
        self.view_state.dismiss_error()
        self.refresh_total()


class HomeScreen(BaseScreen):
    """
    Customers browse the live product list and order straight from it.
    """

    def __init__(self) -> None:
        super().__init__()
        self.products: List[Product] = []
        self.drafts: Dict[str, OrderDraft] = {}
        self._render_lock = asyncio.Lock()

    def compose(self) -> ComposeResult:
        yield from super().compose()
        with Vertical(id="div-home"):
            yield Input(placeholder="Search products...", id="input-search")
            yield Label("Loading products...", id="label-products-status")
            yield VerticalScroll(id="scroll-products")

    def on_mount(self) -> None:
        self.query_one("#input-search").focus()
        self.live_query(
            crud.PRODUCTS,
            crud.list_products,
            self.show_products,
            "Could not load products.",
        )

    async def show_products(self, products: List[Product]) -> None:
        self.products = products
        known = {p.id for p in products}
        for pid in list(self.drafts):
            if pid not in known:
                del self.drafts[pid]
        await self.render_cards()

    @on(Input.Changed, "#input-search")
    async def handle_search(self) -> None:
        await self.render_cards()

    async def render_cards(self) -> None:
        query = self.query_one("#input-search", Input).value
        shown = filter_by_name(self.products, query)

        status = self.query_one("#label-products-status", Label)
        if shown:
            status.add_class("hidden")
        else:
            status.update("No products found." if query else "No products available.")
            status.remove_class("hidden")

        scroll = self.query_one("#scroll-products", VerticalScroll)
        # live updates and typing both re-render; card ids must not collide
        async with self._render_lock:
            await scroll.remove_children()
            await scroll.mount_all(
                [ProductCard(p, self.drafts.setdefault(p.id, OrderDraft())) for p in shown]
            )
