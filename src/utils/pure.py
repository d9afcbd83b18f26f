"""
Side-effect free helpers turning records and form input into display values.
Nothing in here touches the database or the UI.
"""

import math
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from typing import (
    Callable,
    Dict,
    Iterable,
    List,
    Literal,
    Optional,
    Sequence,
    Tuple,
    TypeVar,
)

from db.models import (
    ORDER_STATUSES,
    UNITS,
    DailyStats,
    Order,
    Product,
    User,
)
from utils.errors import ValidationError

T = TypeVar("T")

BRAND_COLOR = "#f49b33"
NEUTRAL_COLOR = "#9ca3af"
GREEN = "#22c55e"
RED = "#ef4444"
BLUE = "#3b82f6"
PURPLE = "#8b5cf6"


@dataclass(frozen=True)
class Badge:
    text: str
    color: str


STATUS_BADGES: Dict[str, Badge] = {
    "pending": Badge("Pending", BRAND_COLOR),
    "processing": Badge("Processing", BLUE),
    "shipped": Badge("Shipped", PURPLE),
    "delivered": Badge("Delivered", GREEN),
    "cancelled": Badge("Cancelled", RED),
}
UNKNOWN_BADGE = Badge("Unknown", NEUTRAL_COLOR)


def status_details(status: Optional[str]) -> Badge:
    return STATUS_BADGES.get(status, UNKNOWN_BADGE)


def payment_details(payment: Optional[str]) -> Badge:
    # case-sensitive on the stored value
    if payment == "paid":
        return Badge("Paid", GREEN)
    return Badge("Unpaid", RED)


def next_status_options(status: Optional[str]) -> List[str]:
    """Statuses an admin can move an order to from its current one."""
    return [s for s in ORDER_STATUSES if s != status]


def toggled_payment(payment: Optional[str]) -> str:
    return "unpaid" if payment == "paid" else "paid"


# ---------------------------
# Quantities and totals
# ---------------------------


def is_quantity_text(text: str) -> bool:
    """Quantity inputs accept nothing but digits (or an empty string)."""
    return text == "" or text.isdigit()


def quantity_value(text: Optional[str]) -> int:
    if not text or not text.isdigit():
        return 0
    return int(text)


def step_quantity(text: Optional[str], amount: int) -> str:
    return str(max(0, quantity_value(text) + amount))


def order_total(price: float, quantity: int) -> float:
    if quantity < 0:
        raise ValueError("Quantity cannot be negative.")
    return round(float(price) * quantity, 2)


def display_total(price: float, quantity_text: Optional[str]) -> Optional[float]:
    """Total to show next to a quantity input, None when it must be hidden."""
    qty = quantity_value(quantity_text)
    if qty == 0:
        return None
    return order_total(price, qty)


def grand_total(orders: Iterable[Order]) -> float:
    return round(sum(o.total_price or 0.0 for o in orders), 2)


# ---------------------------
# Filters
# ---------------------------


def filter_by_name(
    records: Sequence[T],
    query: Optional[str],
    key: Callable[[T], str] = lambda r: r.name,
) -> List[T]:
    """Case-insensitive substring match on the name of each record."""
    if not query:
        return list(records)
    needle = query.lower()
    return [r for r in records if needle in (key(r) or "").lower()]


def day_bounds(day: date) -> Tuple[datetime, datetime]:
    """First and last millisecond of a calendar day, local time."""
    start = datetime.combine(day, time(0, 0, 0, 0))
    end = datetime.combine(day, time(23, 59, 59, 999000))
    return start, end


def day_range(day: date) -> Tuple[datetime, datetime]:
    """Half-open window [midnight, next midnight) covering every timestamp of the day."""
    start = datetime.combine(day, time(0, 0, 0, 0))
    return start, start + timedelta(days=1)


def in_day(ts: Optional[datetime], day: date) -> bool:
    if ts is None:
        return False
    start, stop = day_range(day)
    return start <= ts < stop


def daily_stats(orders: Sequence[Order], today: date) -> DailyStats:
    return DailyStats(
        total_orders=len(orders),
        todays_orders=sum(1 for o in orders if in_day(o.ordered_at, today)),
        todays_deliveries=sum(1 for o in orders if in_day(o.delivery_date, today)),
    )


def tomorrow(today: Optional[date] = None) -> date:
    return (today or date.today()) + timedelta(days=1)


# ---------------------------
# Formatting
# ---------------------------


def format_day(day: Optional[date]) -> str:
    if day is None:
        return "N/A"
    return day.strftime("%d %b %Y")


def format_timestamp(ts: Optional[datetime]) -> str:
    if ts is None:
        return "N/A"
    return ts.strftime("%d %b %Y, %I:%M %p")


def format_money(amount: Optional[float], currency: str = "₹") -> str:
    return f"{currency}{(amount or 0.0):.2f}"


def format_address(components: Dict[str, Optional[str]]) -> str:
    """Join the parts of a reverse-geocoded address, skipping the empty ones."""
    keys = ("name", "street", "city", "postal_code", "country")
    return ", ".join(str(components[k]) for k in keys if components.get(k))


def generate_markdown_table(
    headers: Optional[List[str]],
    rows: List[List[str]],
    aligns: Optional[List[Literal["l", "c", "r"]]] = None,
) -> str:
    """
    Generate a Markdown table.

    Args:
        headers: List of column headers, or None to use first row as headers.
        rows: List of rows, each a list of strings.
        aligns: List of alignments ('l', 'c', 'r') for each column.
                Defaults to all left ('l').

    Returns:
        str: Markdown formatted table.
    """
    if not rows:
        return ""

    if not headers:
        headers, rows = rows[0], rows[1:]

    headers = [str(h) for h in headers]
    rows = [[str(c).replace("|", "\\|") for c in row] for row in rows]

    if aligns is None:
        aligns = ["l"] * len(headers)
    elif len(aligns) != len(headers):
        raise ValueError("Length of aligns must match number of headers.")

    align_map = {"l": ":---", "c": ":---:", "r": "---:"}

    header_line = "| " + " | ".join(headers) + " |"
    align_line = "| " + " | ".join(align_map[a] for a in aligns) + " |"
    row_lines = ["| " + " | ".join(row) + " |" for row in rows]

    return "\n".join([header_line, align_line, *row_lines])


# ---------------------------
# Form validation
# ---------------------------


def validate_phone(digits: str) -> str:
    digits = (digits or "").strip()
    if len(digits) != 10 or not digits.isdigit():
        raise ValidationError("Please enter a valid 10-digit phone number.")
    return digits


def validate_otp(code: str) -> str:
    code = (code or "").strip()
    if len(code) != 6 or not code.isdigit():
        raise ValidationError("Please enter a valid 6-digit OTP.")
    return code


def validate_profile(name: str, address: str) -> Tuple[str, str]:
    name, address = (name or "").strip(), (address or "").strip()
    if not name or not address:
        raise ValidationError("Please fill in all fields.")
    return name, address


def validate_customer_order(
    user_id: Optional[str],
    quantity_text: Optional[str],
    delivery_day: date,
    today: Optional[date] = None,
) -> int:
    """Return the quantity to order, or raise with the first problem found."""
    if not user_id:
        raise ValidationError("You must be logged in to place an order.")
    qty = quantity_value(quantity_text)
    if qty <= 0:
        raise ValidationError("Please enter a valid quantity.")
    if delivery_day < tomorrow(today):
        raise ValidationError("Delivery date must be tomorrow or later.")
    return qty


def validate_admin_order(
    customer: Optional[User],
    product: Optional[Product],
    quantity_text: Optional[str],
) -> int:
    if customer is None:
        raise ValidationError("Please select a customer.")
    if product is None:
        raise ValidationError("Please select a product.")
    if not (quantity_text or "").strip():
        raise ValidationError("Please enter a quantity.")
    qty = quantity_value(quantity_text.strip())
    if qty <= 0:
        raise ValidationError("Please enter a valid quantity.")
    return qty


@dataclass(frozen=True)
class ProductForm:
    name: str
    description: str
    price: float
    quantity: int
    unit: str
    image_url: str


def validate_product_form(
    name: str,
    description: str,
    price: str,
    quantity: str,
    unit: str,
    image_url: str = "",
) -> ProductForm:
    name, price, quantity = (name or "").strip(), (price or "").strip(), (quantity or "").strip()
    if not name:
        raise ValidationError("Product name is required.")
    if not price:
        raise ValidationError("Price is required.")
    if not quantity:
        raise ValidationError("Quantity is required.")
    if unit not in UNITS:
        raise ValidationError("Unit must be kg or pcs.")
    try:
        price_val = float(price)
    except ValueError:
        raise ValidationError("Price must be a number.") from None
    if not math.isfinite(price_val):
        raise ValidationError("Price must be a number.")
    if price_val <= 0:
        raise ValidationError("Price must be greater than zero.")
    if not quantity.isdigit():
        raise ValidationError("Quantity must be a whole number.")
    return ProductForm(
        name=name,
        description=(description or "").strip(),
        price=price_val,
        quantity=int(quantity),
        unit=unit,
        image_url=(image_url or "").strip(),
    )
