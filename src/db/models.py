# provide dataclass models

from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional

ROLES = ("user", "admin")
UNITS = ("kg", "pcs")
ORDER_STATUSES = ("pending", "processing", "shipped", "delivered", "cancelled")
PAYMENT_STATES = ("paid", "unpaid")

DEFAULT_STATUS = "processing"
DEFAULT_PAYMENT = "unpaid"


@dataclass(frozen=True)
class User:
    uid: str
    name: str
    phone: str
    address: str
    role: str  # "user" or "admin"
    created_at: Optional[datetime] = None

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"


@dataclass(frozen=True)
class Product:
    id: str
    name: str
    description: str
    price: float
    quantity: int  # stock count
    unit: str  # "kg" or "pcs"
    image_url: str = ""
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


@dataclass(frozen=True)
class Order:
    id: str
    user_id: str
    # snapshot of the product at order time
    product_id: str
    product_name: str
    price: float
    unit: str
    quantity: int
    total_price: float
    delivery_date: datetime
    ordered_at: Optional[datetime]
    status: str = DEFAULT_STATUS
    payment: str = DEFAULT_PAYMENT


@dataclass(frozen=True)
class OrderView:
    """
    Order joined with the customer it belongs to, for admin lists and reports.
    """

    order: Order
    user_name: str
    user_phone: str


@dataclass(frozen=True)
class DailyStats:
    total_orders: int
    todays_orders: int
    todays_deliveries: int


@dataclass(frozen=True)
class OrderFilter:
    """
    Filters understood by crud.list_orders. None means "no constraint".
    """

    user_id: Optional[str] = None
    delivery_day: Optional[date] = None
    ordered_day: Optional[date] = None
    payment: Optional[str] = None
