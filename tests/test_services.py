import os
import sys
import tempfile
import unittest
from datetime import date, datetime
from pathlib import Path

ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), os.pardir))
src_path = os.path.join(ROOT, "src")
if src_path not in sys.path:
    sys.path.insert(0, src_path)

from db.models import Order, OrderView, User  # noqa: E402
from services.export import (  # noqa: E402
    HTML_MIME,
    DocumentExporter,
    export_invoice,
    export_report,
)
from services.location import (  # noqa: E402
    Coordinates,
    FixedLocationService,
    UnavailableLocationService,
    location_service_from_settings,
    lookup_address,
)
from utils.config import Settings  # noqa: E402
from utils.errors import NothingToExport, ServiceError  # noqa: E402


def make_order() -> Order:
    return Order(
        id="o1",
        user_id="u1",
        product_id="p1",
        product_name="Milk",
        price=60.0,
        unit="kg",
        quantity=2,
        total_price=120.0,
        delivery_date=datetime(2024, 5, 2),
        ordered_at=datetime(2024, 5, 1, 9, 0),
    )


class RecordingShareSheet:
    def __init__(self):
        self.shared = []

    async def share(self, path, mime_type):
        self.shared.append((path, mime_type))


class FailingRenderer:
    async def render(self, html):
        raise OSError("disk full")


class ExportTestCase(unittest.IsolatedAsyncioTestCase):
    def setUp(self):
        self.temp_dir = tempfile.TemporaryDirectory()
        self.share = RecordingShareSheet()
        self.exporter = DocumentExporter(share_sheet=self.share, export_dir=self.temp_dir.name)
        self.user = User("u1", "Asha", "+919812345678", "Pune", "user")

    def tearDown(self):
        self.temp_dir.cleanup()

    async def test_invoice_is_written_and_shared(self):
        path = await export_invoice(
            self.exporter, [make_order()], self.user, date(2024, 5, 2), today=date(2024, 5, 1)
        )
        self.assertEqual(path, Path(self.temp_dir.name) / "Invoice_2024-05-02.html")
        self.assertTrue(path.exists())
        self.assertIn("Grand Total", path.read_text(encoding="utf-8"))
        self.assertEqual(self.share.shared, [(path, HTML_MIME)])

    async def test_report_is_named_after_today(self):
        views = [OrderView(make_order(), "Asha", "+919812345678")]
        path = await export_report(self.exporter, views, today=date(2024, 5, 1))
        self.assertEqual(path.name, "Orders_2024-05-01.html")
        self.assertTrue(path.exists())

    async def test_nothing_to_export_touches_no_file(self):
        with self.assertRaises(NothingToExport):
            await export_invoice(self.exporter, [], self.user, date(2024, 5, 2))
        with self.assertRaises(NothingToExport):
            await export_report(self.exporter, [])
        self.assertEqual(os.listdir(self.temp_dir.name), [])
        self.assertEqual(self.share.shared, [])

    async def test_render_failure_becomes_service_error(self):
        exporter = DocumentExporter(
            renderer=FailingRenderer(), share_sheet=self.share, export_dir=self.temp_dir.name
        )
        with self.assertRaises(ServiceError):
            await export_invoice(exporter, [make_order()], self.user, date(2024, 5, 2))
        self.assertEqual(self.share.shared, [])


class LocationTestCase(unittest.IsolatedAsyncioTestCase):
    async def test_denied_permission_returns_none(self):
        self.assertIsNone(await lookup_address(UnavailableLocationService()))

    async def test_fixed_location_is_formatted(self):
        service = FixedLocationService(
            Coordinates(18.52, 73.85),
            {"street": "MG Road", "city": "Pune", "postal_code": "411001", "country": None},
        )
        self.assertEqual(await lookup_address(service), "MG Road, Pune, 411001")

    async def test_no_geocode_result_returns_empty(self):
        class NowhereService(FixedLocationService):
            async def reverse_geocode(self, coords):
                return []

        service = NowhereService(Coordinates(0, 0), {})
        self.assertEqual(await lookup_address(service), "")

    async def test_position_failure_propagates(self):
        class BrokenService(UnavailableLocationService):
            async def request_permission(self):
                return True

        with self.assertRaises(ServiceError):
            await lookup_address(BrokenService())

    def test_service_from_settings(self):
        self.assertIsInstance(
            location_service_from_settings(Settings(location=None)), UnavailableLocationService
        )
        self.assertIsInstance(
            location_service_from_settings(Settings(location="garbage")),
            UnavailableLocationService,
        )
        service = location_service_from_settings(
            Settings(location="18.52,73.85;12 MG Road, Pune")
        )
        self.assertIsInstance(service, FixedLocationService)


if __name__ == "__main__":
    unittest.main()
