import os
import sys
import unittest
from datetime import date, datetime

ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), os.pardir))
src_path = os.path.join(ROOT, "src")
if src_path not in sys.path:
    sys.path.insert(0, src_path)

from db.models import Order, OrderView, User  # noqa: E402
from utils.documents import (  # noqa: E402
    compose_invoice_html,
    compose_report_html,
    invoice_filename,
    report_filename,
)
from utils.errors import NothingToExport  # noqa: E402


def make_order(name="Milk", qty=2, price=60.0, **kwargs) -> Order:
    fields = dict(
        id=f"id-{name}",
        user_id="u1",
        product_id="p1",
        product_name=name,
        price=price,
        unit="kg",
        quantity=qty,
        total_price=round(price * qty, 2),
        delivery_date=datetime(2024, 5, 2),
        ordered_at=datetime(2024, 5, 1, 9, 0),
    )
    fields.update(kwargs)
    return Order(**fields)


class InvoiceTestCase(unittest.TestCase):
    def setUp(self):
        self.user = User("u1", "Asha <Rao>", "+919812345678", "12 MG Road, Pune", "user")

    def test_filenames(self):
        self.assertEqual(invoice_filename(date(2024, 5, 2)), "Invoice_2024-05-02.html")
        self.assertEqual(report_filename(date(2024, 5, 1)), "Orders_2024-05-01.html")

    def test_empty_invoice_is_refused(self):
        with self.assertRaises(NothingToExport) as ctx:
            compose_invoice_html([], self.user, date(2024, 5, 2), date(2024, 5, 1))
        self.assertEqual(
            str(ctx.exception),
            "There are no orders for the selected date to include in the invoice.",
        )

    def test_invoice_content(self):
        html = compose_invoice_html(
            [make_order(), make_order("Paneer", 1, 420.0)],
            self.user,
            date(2024, 5, 2),
            date(2024, 5, 1),
            brand="Arya & Co",
            currency="₹",
        )
        self.assertIn("Arya &amp; Co", html)
        self.assertIn("Invoice Date:</strong> 01 May 2024", html)
        self.assertIn("Delivery Date:</strong> 02 May 2024", html)
        # customer fields are escaped
        self.assertIn("Asha &lt;Rao&gt;", html)
        self.assertIn("<td>2 kg</td>", html)
        self.assertIn("<td>₹420.00</td>", html)
        self.assertIn("Grand Total: ₹540.00", html)

    def test_invoice_without_profile_shows_placeholders(self):
        html = compose_invoice_html([make_order()], None, date(2024, 5, 2), date(2024, 5, 1))
        self.assertIn("<strong>Name:</strong> N/A", html)
        self.assertIn("<strong>Address:</strong> N/A", html)


class ReportTestCase(unittest.TestCase):
    def test_empty_report_is_refused(self):
        with self.assertRaises(NothingToExport) as ctx:
            compose_report_html([], date(2024, 5, 1))
        self.assertEqual(
            str(ctx.exception),
            "There are no orders matching the current filters to download.",
        )

    def test_report_content(self):
        views = [
            OrderView(make_order(), "Asha", "+919812345678"),
            OrderView(make_order("Water", 3, 20.0, unit="pcs", payment="paid"), "Ravi", "N/A"),
        ]
        html = compose_report_html(views, date(2024, 5, 1), currency="₹")
        self.assertNotIn("Orders for Delivery on", html)
        self.assertIn("<td>Ravi</td>", html)
        self.assertIn("<td>3 pcs</td>", html)
        self.assertIn("<td>paid</td>", html)
        self.assertIn("Grand Total: ₹180.00", html)

        html = compose_report_html(views, date(2024, 5, 1), date(2024, 5, 2))
        self.assertIn("Orders for Delivery on:</strong> 02 May 2024", html)


if __name__ == "__main__":
    unittest.main()
