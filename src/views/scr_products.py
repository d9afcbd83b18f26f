from typing import Dict, List, Optional

from textual import on, work
from textual.app import ComposeResult
from textual.binding import Binding
from textual.containers import Horizontal, Vertical
from textual.widgets import Button, DataTable, Label

from db import crud
from db.models import Product
from utils.config import settings
from utils.logger import get_logger
from utils.pure import format_money
from views.base_screen import FAILURES, BaseScreen
from views.modal_dialog import ConfirmDialogModal
from views.modal_product_form import ProductFormModal

_logger = get_logger(__name__)


class ProductsScreen(BaseScreen):
    """
    Admin product catalogue, sorted by name. Enter on a row edits it.
    """

    BINDINGS = [
        Binding("enter", "edit_product", "Edit Product", show=True, key_display="⏎"),
        Binding("delete", "delete_product", "Delete Product", show=True),
    ]

    def __init__(self) -> None:
        super().__init__()
        self.products: Dict[str, Product] = {}

    def compose(self) -> ComposeResult:
        yield from super().compose()
        with Vertical(id="div-products"):
            with Horizontal(id="hort-product-btns"):
                yield Button("Add Product", id="btn-add-product", variant="primary")
                yield Button("Edit", id="btn-edit-product")
                yield Button("Delete", id="btn-delete-product", variant="error")
            yield Label("No products yet.", id="label-products-empty", classes="hidden")
            yield DataTable(id="table-products", cursor_type="row", zebra_stripes=True)

    def on_mount(self) -> None:
        table = self.query_one(DataTable)
        table.add_columns("Name", "Price", "Stock", "Unit", "Description")
        self.live_query(
            crud.PRODUCTS,
            crud.list_products,
            self.show_products,
            "Could not load products.",
        )

    async def show_products(self, products: List[Product]) -> None:
        self.products = {p.id: p for p in products}
        table = self.query_one(DataTable)
        table.clear()
        for p in products:
            table.add_row(
                p.name,
                format_money(p.price, settings.currency),
                str(p.quantity),
                p.unit,
                p.description,
                key=p.id,
            )
        self.query_one("#label-products-empty").set_class(bool(products), "hidden")

    def selected_product(self) -> Optional[Product]:
        table = self.query_one(DataTable)
        if table.row_count == 0:
            return None
        row_key, _ = table.coordinate_to_cell_key(table.cursor_coordinate)
        return self.products.get(row_key.value)

    def action_edit_product(self) -> None:
        self.handle_edit()

    @on(Button.Pressed, "#btn-add-product")
    def handle_add(self) -> None:
        self.app.push_screen(ProductFormModal())

    @on(DataTable.RowSelected, "#table-products")
    @on(Button.Pressed, "#btn-edit-product")
    def handle_edit(self) -> None:
        product = self.selected_product()
        if product is None:
            self.notify("Select a product first.", severity="warning")
            return
        self.app.push_screen(ProductFormModal(product.id))

    @on(Button.Pressed, "#btn-delete-product")
    def handle_delete_pressed(self) -> None:
        self.action_delete_product()

    @work(exclusive=True, group="delete")
    async def action_delete_product(self) -> None:
        product = self.selected_product()
        if product is None:
            self.notify("Select a product first.", severity="warning")
            return
        if not await self.app.push_screen_wait(
            ConfirmDialogModal(
                "Delete Product",
                f'Are you sure you want to delete the product "{product.name}"? '
                "This action cannot be undone.",
                "Delete",
            )
        ):
            return
        try:
            await crud.delete_product(product.id)
        except FAILURES as e:
            _logger.error(f"Deleting product {product.id} failed: {e}")
            self.notify("Failed to delete the product.", title="Error", severity="error")
        else:
            self.notify(f'"{product.name}" has been deleted.', title="Deleted")
