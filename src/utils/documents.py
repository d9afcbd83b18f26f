"""
HTML documents built from orders: the customer invoice and the admin report.
Only markup is produced here; rendering and saving belong to services.export.
"""

from datetime import date
from html import escape
from typing import Optional, Sequence

from db.models import Order, OrderView, User
from utils.config import settings
from utils.errors import NothingToExport
from utils.pure import BRAND_COLOR, format_day, format_money, grand_total

_INVOICE_CSS = """
body { font-family: Arial, sans-serif; margin: 40px; color: #333; }
h1 { color: %(brand_color)s; text-align: center; }
.header, .customer-details, .summary { margin-bottom: 20px; border-bottom: 1px solid #eee; padding-bottom: 10px; }
.header p, .customer-details p { margin: 0; }
table { width: 100%%; border-collapse: collapse; margin-top: 20px; }
th, td { border: 1px solid #ddd; padding: 8px; text-align: left; }
th { background-color: #f2f2f2; }
.total { text-align: right; font-weight: bold; }
"""

_REPORT_CSS = """
body { font-family: sans-serif; margin: 30px; }
h1 { color: %(brand_color)s; }
.header { border-bottom: 2px solid #eee; padding-bottom: 10px; margin-bottom: 20px; }
table { width: 100%%; border-collapse: collapse; }
th, td { border: 1px solid #ccc; padding: 10px; text-align: left; }
th { background-color: #f2f2f2; }
.total { text-align: right; font-weight: bold; margin-top: 20px; }
"""


def _e(value) -> str:
    return escape("N/A" if value is None or value == "" else str(value))


def _row(cells: Sequence[str]) -> str:
    return "<tr>" + "".join(f"<td>{c}</td>" for c in cells) + "</tr>"


def _head(cells: Sequence[str]) -> str:
    return "<tr>" + "".join(f"<th>{escape(c)}</th>" for c in cells) + "</tr>"


def _page(css: str, body: str) -> str:
    style = css % {"brand_color": BRAND_COLOR}
    return (
        "<html>\n<head>\n<meta charset=\"utf-8\">\n"
        f"<style>{style}</style>\n</head>\n<body>\n{body}\n</body>\n</html>\n"
    )


def _quantity(order: Order) -> str:
    return escape(f"{order.quantity or 0} {order.unit or ''}".strip())


def invoice_filename(delivery_day: date) -> str:
    return f"Invoice_{delivery_day.isoformat()}.html"


def report_filename(report_day: date) -> str:
    return f"Orders_{report_day.isoformat()}.html"


def compose_invoice_html(
    orders: Sequence[Order],
    user: Optional[User],
    delivery_day: date,
    invoice_day: date,
    brand: str = settings.brand,
    currency: str = settings.currency,
) -> str:
    """Invoice for one customer's orders delivered on delivery_day."""
    if not orders:
        raise NothingToExport(
            "There are no orders for the selected date to include in the invoice."
        )

    rows = "\n".join(
        _row(
            [
                _e(o.product_name),
                _quantity(o),
                escape(format_money(o.price, currency)),
                escape(format_money(o.total_price, currency)),
            ]
        )
        for o in orders
    )
    body = f"""<h1>{escape(brand)}</h1>
<div class="header">
<p><strong>Invoice Date:</strong> {escape(format_day(invoice_day))}</p>
<p><strong>Delivery Date:</strong> {escape(format_day(delivery_day))}</p>
</div>
<div class="customer-details">
<h3>Customer Details:</h3>
<p><strong>Name:</strong> {_e(user.name if user else None)}</p>
<p><strong>Phone:</strong> {_e(user.phone if user else None)}</p>
<p><strong>Address:</strong> {_e(user.address if user else None)}</p>
</div>
<div class="summary">
<h3>Order Summary:</h3>
<table>
<thead>{_head(["Product", "Quantity", "Unit Price", "Total"])}</thead>
<tbody>
{rows}
</tbody>
</table>
<p class="total">Grand Total: {escape(format_money(grand_total(orders), currency))}</p>
</div>"""
    return _page(_INVOICE_CSS, body)


def compose_report_html(
    views: Sequence[OrderView],
    report_day: date,
    delivery_day: Optional[date] = None,
    brand: str = settings.brand,
    currency: str = settings.currency,
) -> str:
    """Admin listing of the orders currently shown, with their customers."""
    if not views:
        raise NothingToExport(
            "There are no orders matching the current filters to download."
        )

    rows = "\n".join(
        _row(
            [
                _e(v.user_name),
                _e(v.user_phone),
                _e(v.order.product_name),
                _quantity(v.order),
                escape(format_money(v.order.total_price, currency)),
                _e(v.order.status),
                _e(v.order.payment),
            ]
        )
        for v in views
    )
    delivery_line = (
        f"<p><strong>Orders for Delivery on:</strong> {escape(format_day(delivery_day))}</p>"
        if delivery_day
        else ""
    )
    total = grand_total(v.order for v in views)
    body = f"""<h1>{escape(brand)}</h1>
<div class="header">
<p><strong>Report Date:</strong> {escape(format_day(report_day))}</p>
{delivery_line}
</div>
<h3>Order Details:</h3>
<table>
<thead>{_head(["Customer", "Phone", "Product", "Quantity", "Total", "Status", "Payment"])}</thead>
<tbody>
{rows}
</tbody>
</table>
<p class="total">Grand Total: {escape(format_money(total, currency))}</p>"""
    return _page(_REPORT_CSS, body)
