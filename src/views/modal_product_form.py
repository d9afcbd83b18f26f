from typing import Optional

from textual import events, on, work
from textual.app import ComposeResult
from textual.containers import Horizontal, Vertical
from textual.screen import ModalScreen
from textual.widgets import Button, Input, Label, RadioButton, RadioSet, TextArea

from db import crud
from db.models import UNITS, Product
from utils.errors import NotFoundError, ValidationError
from utils.logger import get_logger
from utils.pure import validate_product_form
from utils.state import ViewState
from views.base_screen import FAILURES

_logger = get_logger(__name__)


class ProductFormModal(ModalScreen[bool]):
    """
    Add a product (product_id None) or edit an existing one.
    Adding keeps the form open and cleared for the next product; editing
    closes on success. Returns True if anything was saved.
    """

    def __init__(self, product_id: Optional[str] = None) -> None:
        super().__init__()
        self.product_id = product_id
        self.view_state = ViewState(status="loading" if product_id else "ready")
        self.saved_any = False

    @property
    def editing(self) -> bool:
        return self.product_id is not None

    def compose(self) -> ComposeResult:
        with Vertical(id="div-product-form"):
            yield Label(
                "Edit Product" if self.editing else "Add Product", id="label-form-title"
            )
            yield Label("Name")
            yield Input(placeholder="Product name", id="input-prod-name")
            yield Label("Description")
            yield TextArea(id="text-prod-desc")
            with Horizontal(classes="form-row"):
                with Vertical():
                    yield Label("Price")
                    yield Input(
                        placeholder="0.00",
                        id="input-prod-price",
                        restrict=r"[0-9]*\.?[0-9]*",
                    )
                with Vertical():
                    yield Label("Quantity")
                    yield Input(
                        placeholder="0",
                        id="input-prod-qty",
                        restrict=r"[0-9]*",
                    )
            yield Label("Unit")
            with RadioSet(id="radio-prod-unit"):
                for i, unit in enumerate(UNITS):
                    yield RadioButton(unit, value=i == 0, id=f"radio-unit-{unit}")
            yield Label("Image URL (optional)")
            yield Input(placeholder="https://...", id="input-prod-image")
            with Horizontal(id="div-form-btns"):
                yield Button("Cancel", id="btn-form-cancel")
                yield Button(
                    "Save Changes" if self.editing else "Add Product",
                    id="btn-form-save",
                    variant="primary",
                )

    def on_mount(self) -> None:
        self.query_one("#input-prod-name").focus()
        if self.editing:
            self.query_one("#btn-form-save", Button).disabled = True
            self.load_product()

    def on_key(self, event: events.Key) -> None:
        if event.key == "escape":
            self.dismiss(self.saved_any)

    @work(exclusive=True, group="load")
    async def load_product(self) -> None:
        try:
            product = await crud.get_product(self.product_id)
        except FAILURES as e:
            _logger.error(f"Loading product {self.product_id} failed: {e}")
            product = None
        if product is None:
            self.view_state.fail("Product not found.")
            self.notify("Product not found.", title="Error", severity="error")
            self.dismiss(False)
            return
        self.fill(product)
        self.view_state.data_arrived()
        self.query_one("#btn-form-save", Button).disabled = False

    def fill(self, product: Product) -> None:
        self.query_one("#input-prod-name", Input).value = product.name
        self.query_one("#text-prod-desc", TextArea).load_text(product.description)
        self.query_one("#input-prod-price", Input).value = f"{product.price:g}"
        self.query_one("#input-prod-qty", Input).value = str(product.quantity)
        self.query_one("#input-prod-image", Input).value = product.image_url
        if product.unit in UNITS:
            self.query_one(f"#radio-unit-{product.unit}", RadioButton).value = True

    def clear(self) -> None:
        for input_id in (
            "#input-prod-name",
            "#input-prod-price",
            "#input-prod-qty",
            "#input-prod-image",
        ):
            self.query_one(input_id, Input).value = ""
        self.query_one("#text-prod-desc", TextArea).load_text("")
        self.query_one(f"#radio-unit-{UNITS[0]}", RadioButton).value = True
        self.query_one("#input-prod-name").focus()

    def selected_unit(self) -> str:
        pressed = self.query_one(RadioSet).pressed_button
        return str(pressed.label) if pressed else ""

    @on(Button.Pressed, "#btn-form-save")
    @work(exclusive=True, group="save")
    async def handle_save(self) -> None:
        if not self.view_state.is_ready or not self.view_state.begin_submit():
            return
        save_btn = self.query_one("#btn-form-save", Button)
        save_btn.disabled = True
        try:
            form = validate_product_form(
                self.query_one("#input-prod-name", Input).value,
                self.query_one("#text-prod-desc", TextArea).text,
                self.query_one("#input-prod-price", Input).value,
                self.query_one("#input-prod-qty", Input).value,
                self.selected_unit(),
                self.query_one("#input-prod-image", Input).value,
            )
            if self.editing:
                await crud.update_product(
                    self.product_id,
                    name=form.name,
                    description=form.description,
                    price=form.price,
                    quantity=form.quantity,
                    unit=form.unit,
                    image_url=form.image_url,
                )
            else:
                await crud.add_product(
                    form.name,
                    form.description,
                    form.price,
                    form.quantity,
                    form.unit,
                    form.image_url,
                )
        except ValidationError as e:
            self.view_state.submit_failed(str(e))
            self.notify(str(e), title="Error", severity="error")
            self.view_state.dismiss_error()
        except NotFoundError:
            self.view_state.submit_failed("Product not found.")
            self.notify("Product not found.", title="Error", severity="error")
            self.dismiss(self.saved_any)
            return
        except FAILURES as e:
            _logger.error(f"Saving product failed: {e}")
            self.view_state.submit_failed("Failed to save the product. Please try again.")
            self.notify(
                "Failed to save the product. Please try again.",
                title="Error",
                severity="error",
            )
            self.view_state.dismiss_error()
        else:
            self.view_state.submit_succeeded()
            self.saved_any = True
            if self.editing:
                self.notify("Product has been updated successfully!", title="Success")
                self.dismiss(True)
                return
            self.notify("Product has been added successfully!", title="Success")
            self.clear()
        save_btn.disabled = False

    @on(Button.Pressed, "#btn-form-cancel")
    def handle_cancel(self) -> None:
        self.dismiss(self.saved_any)
