# src/db/crud.py
from __future__ import annotations

from datetime import date, datetime
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from db import models
from db.database import connect, from_db_ts, new_doc_id, server_timestamp, to_db_ts
from db.realtime import Subscription, feed
from utils.errors import NotFoundError, ValidationError
from utils.logger import get_logger
from utils.pure import daily_stats, day_range, filter_by_name, order_total

_logger = get_logger(__name__)

USERS = "users"
PRODUCTS = "products"
ORDERS = "orders"

# Customer-placed orders have always been written with a capitalised payment
# value, unlike every other path. Kept as stored data depends on it.
CUSTOMER_ORDER_PAYMENT = "Unpaid"

_COLUMNS: Dict[str, Tuple[str, ...]] = {
    USERS: ("uid", "name", "phone", "address", "role", "created_at"),
    PRODUCTS: (
        "id",
        "name",
        "description",
        "price",
        "quantity",
        "unit",
        "image_url",
        "created_at",
        "updated_at",
    ),
    ORDERS: (
        "id",
        "user_id",
        "product_id",
        "product_name",
        "price",
        "unit",
        "quantity",
        "total_price",
        "delivery_date",
        "ordered_at",
        "status",
        "payment",
    ),
}
_KEYS = {USERS: "uid", PRODUCTS: "id", ORDERS: "id"}
_OPS = ("==", "<", "<=", ">", ">=")


def _row_to_user(row) -> models.User:
    return models.User(
        uid=row["uid"],
        name=row["name"],
        phone=row["phone"],
        address=row["address"],
        role=row["role"],
        created_at=from_db_ts(row["created_at"]),
    )


def _row_to_product(row) -> models.Product:
    return models.Product(
        id=row["id"],
        name=row["name"],
        description=row["description"],
        price=float(row["price"]),
        quantity=int(row["quantity"]),
        unit=row["unit"],
        image_url=row["image_url"] or "",
        created_at=from_db_ts(row["created_at"]),
        updated_at=from_db_ts(row["updated_at"]),
    )


def _row_to_order(row) -> models.Order:
    return models.Order(
        id=row["id"],
        user_id=row["user_id"],
        product_id=row["product_id"],
        product_name=row["product_name"],
        price=float(row["price"]),
        unit=row["unit"],
        quantity=int(row["quantity"]),
        total_price=float(row["total_price"]),
        delivery_date=from_db_ts(row["delivery_date"]),
        ordered_at=from_db_ts(row["ordered_at"]),
        status=row["status"],
        payment=row["payment"],
    )


_CONVERTERS = {USERS: _row_to_user, PRODUCTS: _row_to_product, ORDERS: _row_to_order}


def _to_param(value: Any) -> Any:
    if isinstance(value, datetime):
        return to_db_ts(value)
    return value


def _check_field(collection: str, field: str) -> None:
    if field not in _COLUMNS[collection]:
        raise ValueError(f"Unknown field {field!r} for {collection}")


# ---------------------------
# Generic document access
# ---------------------------


async def get(collection: str, doc_id: str) -> Optional[Any]:
    """Fetch one document by id, None when absent."""
    key = _KEYS[collection]
    async with connect() as conn:
        cur = await conn.execute(
            f"SELECT * FROM {collection} WHERE {key} = ?;", (doc_id,)
        )
        row = await cur.fetchone()
        await cur.close()
    if not row:
        return None
    return _CONVERTERS[collection](row)


async def query(
    collection: str,
    where: Sequence[Tuple[str, str, Any]] = (),
    order_by: Sequence[Tuple[str, str]] = (),
) -> List[Any]:
    """
    Equality and range filters over a collection.

    where: [(field, op, value), ...] with op in ==, <, <=, >, >=; combined with AND.
    order_by: [(field, "asc" | "desc"), ...]
    """
    clauses: List[str] = []
    params: List[Any] = []
    for field, op, value in where:
        _check_field(collection, field)
        if op not in _OPS:
            raise ValueError(f"Unsupported operator {op!r}")
        clauses.append(f"{field} {'=' if op == '==' else op} ?")
        params.append(_to_param(value))

    orders: List[str] = []
    for field, direction in order_by:
        _check_field(collection, field)
        direction = direction.upper()
        if direction not in ("ASC", "DESC"):
            raise ValueError(f"Unsupported direction {direction!r}")
        orders.append(f"{field} {direction}")

    sql = f"SELECT * FROM {collection}"
    if clauses:
        sql += " WHERE " + " AND ".join(clauses)
    if orders:
        sql += " ORDER BY " + ", ".join(orders)

    async with connect() as conn:
        cur = await conn.execute(sql + ";", tuple(params))
        rows = await cur.fetchall()
        await cur.close()
    return [_CONVERTERS[collection](row) for row in rows]


async def update(collection: str, doc_id: str, fields: Dict[str, Any]) -> None:
    """Partial update of one document. Raises NotFoundError if it does not exist."""
    if not fields:
        return
    key = _KEYS[collection]
    for field in fields:
        _check_field(collection, field)
        if field == key:
            raise ValueError("Document id cannot be updated.")
    assignments = ", ".join(f"{f} = ?" for f in fields)
    params = [_to_param(v) for v in fields.values()] + [doc_id]
    async with connect() as conn:
        res = await conn.execute(
            f"UPDATE {collection} SET {assignments} WHERE {key} = ?;", tuple(params)
        )
        await conn.commit()
        updated = res.rowcount
    if not updated:
        raise NotFoundError(collection, doc_id)
    _logger.info(f"Updated {collection}/{doc_id}: {sorted(fields)}")
    feed.publish(collection)


async def delete(collection: str, doc_id: str) -> bool:
    key = _KEYS[collection]
    async with connect() as conn:
        res = await conn.execute(f"DELETE FROM {collection} WHERE {key} = ?;", (doc_id,))
        await conn.commit()
        deleted = res.rowcount > 0
    if deleted:
        _logger.info(f"Deleted {collection}/{doc_id}")
        feed.publish(collection)
    return deleted


def subscribe(collections, loader, on_next, on_error=None) -> Subscription:
    """Live query: loader re-runs on every write to one of the collections."""
    return feed.subscribe(collections, loader, on_next, on_error)


# ---------------------------
# Auth accounts & OTP
# ---------------------------


async def get_or_create_auth_uid(phone: str) -> str:
    """Stable uid for a phone number; created on first sign-in."""
    async with connect() as conn:
        cur = await conn.execute(
            "SELECT uid FROM auth_accounts WHERE phone = ?;", (phone,)
        )
        row = await cur.fetchone()
        await cur.close()
        if row:
            return row["uid"]
        uid = new_doc_id()
        await conn.execute(
            "INSERT INTO auth_accounts(phone, uid) VALUES (?, ?);", (phone, uid)
        )
        await conn.commit()
    _logger.info(f"Created auth account {uid}")
    return uid


async def save_otp_request(
    verification_id: str, phone: str, code_hash: str, expires_at: datetime
) -> None:
    async with connect() as conn:
        await conn.execute(
            "INSERT INTO otp_requests(verification_id, phone, code_hash, expires_at) VALUES (?, ?, ?, ?);",
            (verification_id, phone, code_hash, to_db_ts(expires_at)),
        )
        await conn.commit()


async def get_otp_request(verification_id: str) -> Optional[Dict[str, Any]]:
    async with connect() as conn:
        cur = await conn.execute(
            "SELECT verification_id, phone, code_hash, expires_at, used FROM otp_requests WHERE verification_id = ?;",
            (verification_id,),
        )
        row = await cur.fetchone()
        await cur.close()
    if not row:
        return None
    return {
        "verification_id": row["verification_id"],
        "phone": row["phone"],
        "code_hash": row["code_hash"],
        "expires_at": from_db_ts(row["expires_at"]),
        "used": bool(row["used"]),
    }


async def mark_otp_used(verification_id: str) -> None:
    async with connect() as conn:
        await conn.execute(
            "UPDATE otp_requests SET used = 1 WHERE verification_id = ?;",
            (verification_id,),
        )
        await conn.commit()


# ---------------------------
# Users
# ---------------------------


async def get_user(uid: str) -> Optional[models.User]:
    """Return the profile for uid, or None if the profile was never completed."""
    return await get(USERS, uid)


async def create_user(
    uid: str, name: str, phone: str, address: str, role: str = "user"
) -> models.User:
    """Write the profile document for uid (replacing any existing one)."""
    if role not in models.ROLES:
        raise ValidationError(f"Unknown role {role!r}.")
    created_at = server_timestamp()
    async with connect() as conn:
        await conn.execute(
            "INSERT OR REPLACE INTO users(uid, name, phone, address, role, created_at) VALUES (?, ?, ?, ?, ?, ?);",
            (uid, name, phone, address, role, to_db_ts(created_at)),
        )
        await conn.commit()
    _logger.info(f"Created profile for {uid} ({role})")
    feed.publish(USERS)
    return models.User(uid, name, phone, address, role, created_at)


async def list_users() -> List[models.User]:
    return await query(USERS, order_by=[("name", "asc")])


async def user_map() -> Dict[str, models.User]:
    return {u.uid: u for u in await list_users()}


# ---------------------------
# Products
# ---------------------------


async def get_product(product_id: str) -> Optional[models.Product]:
    return await get(PRODUCTS, product_id)


async def list_products() -> List[models.Product]:
    """All products, sorted by name."""
    return await query(PRODUCTS, order_by=[("name", "asc")])


async def add_product(
    name: str,
    description: str,
    price: float,
    quantity: int,
    unit: str,
    image_url: str = "",
) -> str:
    """Create a product and return its id."""
    product_id = new_doc_id()
    now = to_db_ts(server_timestamp())
    async with connect() as conn:
        await conn.execute(
            """
            INSERT INTO products(id, name, description, price, quantity, unit, image_url, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?);
            """,
            (product_id, name, description, price, quantity, unit, image_url, now, now),
        )
        await conn.commit()
    _logger.info(f"Added product {product_id} ({name})")
    feed.publish(PRODUCTS)
    return product_id


async def update_product(product_id: str, **fields: Any) -> None:
    """Update the given product fields and bump updated_at."""
    fields["updated_at"] = server_timestamp()
    await update(PRODUCTS, product_id, fields)


async def delete_product(product_id: str) -> bool:
    """Remove a product for good. Orders keep their own copy of it."""
    return await delete(PRODUCTS, product_id)


# ---------------------------
# Orders
# ---------------------------


async def create_order(
    user_id: str,
    product: models.Product,
    quantity: int,
    delivery_date: date,
    payment: str = models.DEFAULT_PAYMENT,
    status: str = models.DEFAULT_STATUS,
) -> models.Order:
    """
    Write an order carrying a snapshot of the product (name, price, unit).
    total_price is fixed here and never recomputed.
    """
    if quantity <= 0:
        raise ValidationError("Please enter a valid quantity.")
    delivery_ts = datetime.combine(delivery_date, datetime.min.time())
    order = models.Order(
        id=new_doc_id(),
        user_id=user_id,
        product_id=product.id,
        product_name=product.name,
        price=product.price,
        unit=product.unit,
        quantity=quantity,
        total_price=order_total(product.price, quantity),
        delivery_date=delivery_ts,
        ordered_at=server_timestamp(),
        status=status,
        payment=payment,
    )
    async with connect() as conn:
        await conn.execute(
            """
            INSERT INTO orders(id, user_id, product_id, product_name, price, unit, quantity,
                               total_price, delivery_date, ordered_at, status, payment)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?);
            """,
            (
                order.id,
                order.user_id,
                order.product_id,
                order.product_name,
                order.price,
                order.unit,
                order.quantity,
                order.total_price,
                to_db_ts(order.delivery_date),
                to_db_ts(order.ordered_at),
                order.status,
                order.payment,
            ),
        )
        await conn.commit()
    _logger.info(
        f"Order {order.id}: {order.quantity} {order.unit} {order.product_name} for {user_id}"
    )
    feed.publish(ORDERS)
    return order


async def place_customer_order(
    user_id: str, product: models.Product, quantity: int, delivery_date: date
) -> models.Order:
    return await create_order(
        user_id, product, quantity, delivery_date, payment=CUSTOMER_ORDER_PAYMENT
    )


async def get_order(order_id: str) -> Optional[models.Order]:
    return await get(ORDERS, order_id)


def _order_where(flt: models.OrderFilter) -> List[Tuple[str, str, Any]]:
    where: List[Tuple[str, str, Any]] = []
    if flt.user_id is not None:
        where.append(("user_id", "==", flt.user_id))
    if flt.delivery_day is not None:
        start, stop = day_range(flt.delivery_day)
        where += [("delivery_date", ">=", start), ("delivery_date", "<", stop)]
    if flt.ordered_day is not None:
        start, stop = day_range(flt.ordered_day)
        where += [("ordered_at", ">=", start), ("ordered_at", "<", stop)]
    if flt.payment is not None:
        where.append(("payment", "==", flt.payment))
    return where


async def list_orders(
    flt: Optional[models.OrderFilter] = None,
) -> List[models.Order]:
    """
    Orders matching the filter. Newest first, except when filtering on a
    delivery day where they come in delivery order.
    """
    flt = flt or models.OrderFilter()
    if flt.delivery_day is not None:
        order_by = [("delivery_date", "asc"), ("ordered_at", "desc")]
    else:
        order_by = [("ordered_at", "desc")]
    return await query(ORDERS, _order_where(flt), order_by)


def join_users(
    orders: Iterable[models.Order], users: Dict[str, models.User]
) -> List[models.OrderView]:
    views = []
    for o in orders:
        user = users.get(o.user_id)
        views.append(
            models.OrderView(
                order=o,
                user_name=user.name if user else "Unknown User",
                user_phone=user.phone if user else "N/A",
            )
        )
    return views


async def list_order_views(
    flt: Optional[models.OrderFilter] = None, customer_query: str = ""
) -> List[models.OrderView]:
    """Orders joined with their customer, optionally narrowed by customer name."""
    orders = await list_orders(flt)
    views = join_users(orders, await user_map())
    return filter_by_name(views, customer_query, key=lambda v: v.user_name)


async def update_order_status(order_id: str, status: str) -> None:
    if status not in models.ORDER_STATUSES:
        raise ValidationError(f"Unknown order status {status!r}.")
    await update(ORDERS, order_id, {"status": status})


async def update_order_payment(order_id: str, payment: str) -> None:
    if payment not in models.PAYMENT_STATES:
        raise ValidationError(f"Unknown payment state {payment!r}.")
    await update(ORDERS, order_id, {"payment": payment})


async def load_daily_stats(today: Optional[date] = None) -> models.DailyStats:
    orders = await query(ORDERS)
    return daily_stats(orders, today or date.today())
