import os
import sys
import tempfile
import unittest
from datetime import date, datetime, timedelta

# Ensure project src/ is on sys.path for imports
ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), os.pardir))
src_path = os.path.join(ROOT, "src")
if src_path not in sys.path:
    sys.path.insert(0, src_path)

from db import crud  # noqa: E402
from db import database as db_database  # noqa: E402
from db.models import OrderFilter  # noqa: E402
from utils.errors import NotFoundError, ValidationError  # noqa: E402
from utils.pure import payment_details  # noqa: E402


class CrudTestCase(unittest.IsolatedAsyncioTestCase):
    def setUp(self):
        # Point the DB to a temporary file and force re-initialization
        self.temp_dir = tempfile.TemporaryDirectory()
        self.db_path = os.path.join(self.temp_dir.name, "test.sqlite")
        db_database.DB_PATH = self.db_path
        db_database.DB_INIT_SCRIPTS = [db_database.SCHEMA_SCRIPT, db_database.SEED_SCRIPT]
        db_database._initialized = False

    def tearDown(self):
        self.temp_dir.cleanup()

    async def _customer(self, name="Asha", phone="+919812345678"):
        uid = await crud.get_or_create_auth_uid(phone)
        return await crud.create_user(uid, name, phone, "12 MG Road, Pune")

    # ---------- Seed data & ids ----------

    async def test_seed_creates_admin_and_products(self):
        admin = await crud.get_user("adminUid000000000001")
        self.assertIsNotNone(admin)
        self.assertTrue(admin.is_admin)
        self.assertEqual(admin.phone, "+919999999999")

        products = await crud.list_products()
        self.assertEqual([p.name for p in products], ["Milk", "Paneer", "Spring Water"])
        self.assertEqual(products[2].unit, "pcs")
        self.assertIsInstance(products[0].created_at, datetime)

    def test_new_doc_id_shape(self):
        ids = {db_database.new_doc_id() for _ in range(50)}
        self.assertEqual(len(ids), 50)
        for doc_id in ids:
            self.assertEqual(len(doc_id), 20)
            self.assertTrue(doc_id.isalnum())

    def test_timestamp_round_trip_keeps_microseconds(self):
        ts = datetime(2024, 3, 9, 23, 59, 59, 999000)
        self.assertEqual(db_database.from_db_ts(db_database.to_db_ts(ts)), ts)
        self.assertIsNone(db_database.to_db_ts(None))
        self.assertIsNone(db_database.from_db_ts(None))

    # ---------- Auth accounts & users ----------

    async def test_auth_uid_is_stable_per_phone(self):
        uid = await crud.get_or_create_auth_uid("+911111111111")
        self.assertEqual(await crud.get_or_create_auth_uid("+911111111111"), uid)
        self.assertNotEqual(await crud.get_or_create_auth_uid("+912222222222"), uid)
        self.assertEqual(
            await crud.get_or_create_auth_uid("+919999999999"), "adminUid000000000001"
        )

    async def test_create_and_get_user(self):
        self.assertIsNone(await crud.get_user("nobody"))
        user = await self._customer()
        got = await crud.get_user(user.uid)
        self.assertEqual(got.name, "Asha")
        self.assertEqual(got.role, "user")
        self.assertFalse(got.is_admin)

        with self.assertRaises(ValidationError):
            await crud.create_user("x", "X", "+910000000000", "addr", role="owner")

        users = await crud.user_map()
        self.assertIn(user.uid, users)
        self.assertIn("adminUid000000000001", users)

    async def test_otp_requests(self):
        expires = datetime.now() + timedelta(minutes=5)
        await crud.save_otp_request("ver1", "+911111111111", "abc", expires)
        req = await crud.get_otp_request("ver1")
        self.assertEqual(req["phone"], "+911111111111")
        self.assertEqual(req["code_hash"], "abc")
        self.assertEqual(req["expires_at"], expires)
        self.assertFalse(req["used"])

        await crud.mark_otp_used("ver1")
        self.assertTrue((await crud.get_otp_request("ver1"))["used"])
        self.assertIsNone(await crud.get_otp_request("missing"))

    # ---------- Products ----------

    async def test_product_add_update_delete(self):
        pid = await crud.add_product("Curd", "Set curd", 80.0, 10, "kg")
        product = await crud.get_product(pid)
        self.assertEqual(product.name, "Curd")
        self.assertEqual(product.image_url, "")

        await crud.update_product(pid, price=90.5, quantity=4)
        updated = await crud.get_product(pid)
        self.assertEqual(updated.price, 90.5)
        self.assertEqual(updated.quantity, 4)
        self.assertGreaterEqual(updated.updated_at, product.updated_at)

        self.assertTrue(await crud.delete_product(pid))
        self.assertIsNone(await crud.get_product(pid))
        self.assertFalse(await crud.delete_product(pid))

        with self.assertRaises(NotFoundError):
            await crud.update_product(pid, price=1.0)

    async def test_generic_query_rejects_unknown_fields(self):
        with self.assertRaises(ValueError):
            await crud.query(crud.PRODUCTS, [("name; DROP TABLE products", "==", "x")])
        with self.assertRaises(ValueError):
            await crud.query(crud.PRODUCTS, [("name", "LIKE", "x")])
        with self.assertRaises(ValueError):
            await crud.update(crud.PRODUCTS, "prodSeed000000000001", {"id": "other"})

    # ---------- Orders ----------

    async def test_create_order_snapshots_product(self):
        user = await self._customer()
        milk = await crud.get_product("prodSeed000000000001")
        day = date.today() + timedelta(days=2)

        order = await crud.create_order(user.uid, milk, 3, day)
        self.assertEqual(order.total_price, 180.0)
        self.assertEqual(order.status, "processing")
        self.assertEqual(order.payment, "unpaid")
        self.assertEqual(order.delivery_date, datetime.combine(day, datetime.min.time()))

        # later product edits do not touch the order
        await crud.update_product(milk.id, price=75.0, name="Milk (1L)")
        stored = await crud.get_order(order.id)
        self.assertEqual(stored.product_name, "Milk")
        self.assertEqual(stored.price, 60.0)
        self.assertEqual(stored.total_price, 180.0)

        # and neither does deleting the product
        await crud.delete_product(milk.id)
        self.assertIsNotNone(await crud.get_order(order.id))

    async def test_create_order_rejects_non_positive_quantity(self):
        user = await self._customer()
        milk = await crud.get_product("prodSeed000000000001")
        with self.assertRaises(ValidationError):
            await crud.create_order(user.uid, milk, 0, date.today())
        self.assertEqual(await crud.list_orders(), [])

    async def test_customer_orders_are_capitalised_unpaid(self):
        user = await self._customer()
        water = await crud.get_product("prodSeed000000000003")
        order = await crud.place_customer_order(user.uid, water, 2, date.today())
        self.assertEqual(order.payment, "Unpaid")
        self.assertEqual(order.unit, "pcs")

    async def test_list_orders_filters_and_ordering(self):
        asha = await self._customer()
        ravi = await self._customer("Ravi", "+919800000000")
        milk = await crud.get_product("prodSeed000000000001")
        today = date.today()
        later = today + timedelta(days=3)

        o1 = await crud.create_order(asha.uid, milk, 1, later)
        o2 = await crud.create_order(ravi.uid, milk, 2, today, payment="paid")
        o3 = await crud.create_order(asha.uid, milk, 3, today)

        # newest first without a delivery filter
        self.assertEqual([o.id for o in await crud.list_orders()], [o3.id, o2.id, o1.id])

        mine = await crud.list_orders(OrderFilter(user_id=asha.uid))
        self.assertEqual([o.id for o in mine], [o3.id, o1.id])

        due_today = await crud.list_orders(OrderFilter(delivery_day=today))
        self.assertEqual({o.id for o in due_today}, {o2.id, o3.id})

        paid = await crud.list_orders(OrderFilter(payment="paid"))
        self.assertEqual([o.id for o in paid], [o2.id])

        placed_today = await crud.list_orders(OrderFilter(ordered_day=today))
        self.assertEqual(len(placed_today), 3)
        self.assertEqual(
            await crud.list_orders(OrderFilter(ordered_day=today - timedelta(days=1))), []
        )

    async def test_day_filters_keep_last_sub_millisecond(self):
        asha = await self._customer()
        milk = await crud.get_product("prodSeed000000000001")
        day = date(2024, 5, 1)
        order = await crud.create_order(asha.uid, milk, 1, day)
        await crud.update(
            crud.ORDERS, order.id, {"ordered_at": datetime(2024, 5, 1, 23, 59, 59, 999500)}
        )

        placed = await crud.list_orders(OrderFilter(ordered_day=day))
        self.assertEqual([o.id for o in placed], [order.id])
        self.assertEqual(
            await crud.list_orders(OrderFilter(ordered_day=date(2024, 5, 2))), []
        )
        due = await crud.list_orders(OrderFilter(delivery_day=day))
        self.assertEqual([o.id for o in due], [order.id])

        stats = await crud.load_daily_stats(day)
        self.assertEqual(stats.todays_orders, 1)

    async def test_order_views_join_customers(self):
        asha = await self._customer()
        milk = await crud.get_product("prodSeed000000000001")
        await crud.create_order(asha.uid, milk, 1, date.today())
        await crud.create_order("ghostUid", milk, 1, date.today())

        views = await crud.list_order_views()
        by_user = {v.order.user_id: v for v in views}
        self.assertEqual(by_user[asha.uid].user_name, "Asha")
        self.assertEqual(by_user[asha.uid].user_phone, "+919812345678")
        self.assertEqual(by_user["ghostUid"].user_name, "Unknown User")
        self.assertEqual(by_user["ghostUid"].user_phone, "N/A")

        only_asha = await crud.list_order_views(customer_query="ash")
        self.assertEqual([v.order.user_id for v in only_asha], [asha.uid])

    async def test_update_status_and_payment(self):
        asha = await self._customer()
        milk = await crud.get_product("prodSeed000000000001")
        order = await crud.create_order(asha.uid, milk, 1, date.today())

        await crud.update_order_status(order.id, "shipped")
        await crud.update_order_payment(order.id, "paid")
        stored = await crud.get_order(order.id)
        self.assertEqual(stored.status, "shipped")
        self.assertEqual(stored.payment, "paid")
        self.assertEqual(payment_details(stored.payment).text, "Paid")

        with self.assertRaises(ValidationError):
            await crud.update_order_status(order.id, "lost")
        with self.assertRaises(ValidationError):
            await crud.update_order_payment(order.id, "Paid")
        with self.assertRaises(NotFoundError):
            await crud.update_order_status("missing", "shipped")

    async def test_daily_stats(self):
        asha = await self._customer()
        milk = await crud.get_product("prodSeed000000000001")
        today = date.today()
        await crud.create_order(asha.uid, milk, 1, today)
        await crud.create_order(asha.uid, milk, 1, today + timedelta(days=1))

        stats = await crud.load_daily_stats(today)
        self.assertEqual(stats.total_orders, 2)
        self.assertEqual(stats.todays_orders, 2)
        self.assertEqual(stats.todays_deliveries, 1)

        tomorrow_stats = await crud.load_daily_stats(today + timedelta(days=1))
        self.assertEqual(tomorrow_stats.todays_orders, 0)
        self.assertEqual(tomorrow_stats.todays_deliveries, 1)


if __name__ == "__main__":
    unittest.main()
