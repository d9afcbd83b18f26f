import os
import sys
import unittest
from datetime import date

ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), os.pardir))
src_path = os.path.join(ROOT, "src")
if src_path not in sys.path:
    sys.path.insert(0, src_path)

from db.models import User  # noqa: E402
from utils.state import OrderDraft, Session, ViewState  # noqa: E402
from views.router import configure_routes  # noqa: E402


class SessionTestCase(unittest.TestCase):
    def test_sign_in_and_clear(self):
        session = Session()
        self.assertFalse(session.signed_in)
        self.assertIsNone(session.uid)
        self.assertFalse(session.is_admin)

        session.sign_in(User("a1", "Admin", "+919999999999", "HQ", "admin"))
        self.assertTrue(session.signed_in)
        self.assertEqual(session.role, "admin")
        self.assertTrue(session.is_admin)

        session.clear()
        self.assertIsNone(session.user)


class RouterTestCase(unittest.TestCase):
    def test_signed_out_has_no_routes(self):
        self.assertEqual(configure_routes(Session()), [])

    def test_admin_routes(self):
        session = Session(User("a1", "Admin", "+919999999999", "HQ", "admin"))
        routes = configure_routes(session)
        self.assertEqual(
            [r.title for r in routes], ["Dashboard", "Products", "All Orders", "Profile"]
        )
        self.assertEqual(routes[0].mode, "dashboard")

    def test_customer_routes(self):
        session = Session(User("u1", "Asha", "+919812345678", "Pune", "user"))
        routes = configure_routes(session)
        self.assertEqual([r.title for r in routes], ["Home", "My Orders", "Profile"])
        modes = {r.mode for r in routes}
        self.assertNotIn("dashboard", modes)
        self.assertNotIn("products", modes)
        self.assertNotIn("orders_list", modes)


class ViewStateTestCase(unittest.TestCase):
    def test_loading_to_ready(self):
        state = ViewState()
        self.assertTrue(state.is_loading)
        state.data_arrived()
        self.assertTrue(state.is_ready)

    def test_single_submit_at_a_time(self):
        state = ViewState(status="ready")
        self.assertTrue(state.begin_submit())
        self.assertFalse(state.begin_submit())
        state.submit_succeeded()
        self.assertFalse(state.submitting)
        self.assertTrue(state.begin_submit())

    def test_error_then_dismiss_returns_to_previous_state(self):
        state = ViewState()
        state.data_arrived()
        state.begin_submit()
        state.submit_failed("Failed to place order.")
        self.assertEqual(state.status, "errored")
        self.assertEqual(state.error, "Failed to place order.")
        self.assertFalse(state.submitting)

        # data keeps flowing while the error is shown
        state.data_arrived()
        self.assertEqual(state.status, "errored")

        state.dismiss_error()
        self.assertTrue(state.is_ready)
        self.assertIsNone(state.error)

    def test_error_while_loading(self):
        state = ViewState()
        state.fail("Could not load products.")
        state.dismiss_error()
        self.assertTrue(state.is_loading)


class OrderDraftTestCase(unittest.TestCase):
    def test_defaults_to_tomorrow_and_resets(self):
        draft = OrderDraft()
        self.assertEqual(draft.effective_day(date(2024, 5, 1)), date(2024, 5, 2))

        draft.quantity = "3"
        draft.delivery_day = date(2024, 5, 9)
        self.assertEqual(draft.effective_day(date(2024, 5, 1)), date(2024, 5, 9))

        draft.reset()
        self.assertEqual(draft.quantity, "")
        self.assertIsNone(draft.delivery_day)


if __name__ == "__main__":
    unittest.main()
