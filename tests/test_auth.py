import os
import sys
import tempfile
import unittest
from datetime import datetime, timedelta

ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), os.pardir))
src_path = os.path.join(ROOT, "src")
if src_path not in sys.path:
    sys.path.insert(0, src_path)

from db import database as db_database  # noqa: E402
from services.auth import (  # noqa: E402
    AuthService,
    CallbackOtpSender,
    full_phone_number,
    hash_code,
)
from utils.errors import AuthError  # noqa: E402


class FakeClock:
    def __init__(self):
        self.now = datetime(2024, 5, 1, 10, 0, 0)

    def __call__(self):
        return self.now


class AuthServiceTestCase(unittest.IsolatedAsyncioTestCase):
    def setUp(self):
        self.temp_dir = tempfile.TemporaryDirectory()
        db_database.DB_PATH = os.path.join(self.temp_dir.name, "test.sqlite")
        db_database.DB_INIT_SCRIPTS = [db_database.SCHEMA_SCRIPT, db_database.SEED_SCRIPT]
        db_database._initialized = False

        self.sent = []
        self.clock = FakeClock()
        self.auth = AuthService(
            sender=CallbackOtpSender(lambda phone, code: self.sent.append((phone, code))),
            ttl_min=5,
            clock=self.clock,
        )

    def tearDown(self):
        self.temp_dir.cleanup()

    def test_helpers(self):
        self.assertEqual(full_phone_number("9812345678", "+91"), "+919812345678")
        self.assertEqual(len(hash_code("123456")), 64)
        self.assertNotEqual(hash_code("123456"), hash_code("123457"))

    async def test_send_and_confirm_signs_in(self):
        confirmation = await self.auth.send_otp("+919812345678")
        self.assertEqual(confirmation.phone_number, "+919812345678")
        phone, code = self.sent[0]
        self.assertEqual(phone, "+919812345678")
        self.assertEqual(len(code), 6)
        self.assertTrue(code.isdigit())

        user = await self.auth.confirm(confirmation, code)
        self.assertEqual(user.phone_number, "+919812345678")
        self.assertEqual(len(user.uid), 20)
        self.assertEqual(self.auth.current_user, user)

    async def test_same_phone_gets_same_uid(self):
        c1 = await self.auth.send_otp("+919812345678")
        u1 = await self.auth.confirm(c1, self.sent[-1][1])
        await self.auth.sign_out()
        c2 = await self.auth.send_otp("+919812345678")
        u2 = await self.auth.confirm(c2, self.sent[-1][1])
        self.assertEqual(u1.uid, u2.uid)

    async def test_seeded_admin_phone_maps_to_admin_uid(self):
        confirmation = await self.auth.send_otp("+919999999999")
        user = await self.auth.confirm(confirmation, self.sent[-1][1])
        self.assertEqual(user.uid, "adminUid000000000001")

    async def test_invalid_phone_is_rejected(self):
        for bad in ("9812345678", "+91abc", "", "+91123"):
            with self.assertRaises(AuthError):
                await self.auth.send_otp(bad)
        self.assertEqual(self.sent, [])

    async def test_wrong_code(self):
        confirmation = await self.auth.send_otp("+919812345678")
        code = self.sent[0][1]
        wrong = "000000" if code != "000000" else "111111"
        with self.assertRaises(AuthError) as ctx:
            await self.auth.confirm(confirmation, wrong)
        self.assertEqual(
            str(ctx.exception), "The code you entered was incorrect. Please try again."
        )
        self.assertIsNone(self.auth.current_user)

        # the right code still works afterwards
        await self.auth.confirm(confirmation, code)
        self.assertIsNotNone(self.auth.current_user)

    async def test_code_expires(self):
        confirmation = await self.auth.send_otp("+919812345678")
        self.clock.now += timedelta(minutes=6)
        with self.assertRaises(AuthError) as ctx:
            await self.auth.confirm(confirmation, self.sent[0][1])
        self.assertEqual(str(ctx.exception), "The code has expired. Request a new one.")

    async def test_code_is_single_use(self):
        confirmation = await self.auth.send_otp("+919812345678")
        await self.auth.confirm(confirmation, self.sent[0][1])
        with self.assertRaises(AuthError) as ctx:
            await self.auth.confirm(confirmation, self.sent[0][1])
        self.assertEqual(
            str(ctx.exception), "This verification request is no longer valid."
        )

    async def test_listeners(self):
        seen = []
        listener = self.auth.on_auth_state_changed(seen.append)
        # called right away with the current (signed out) state
        self.assertEqual(seen, [None])

        confirmation = await self.auth.send_otp("+919812345678")
        user = await self.auth.confirm(confirmation, self.sent[0][1])
        await self.auth.sign_out()
        self.assertEqual(seen, [None, user, None])

        # signing out twice does not notify again
        await self.auth.sign_out()
        self.assertEqual(len(seen), 3)

        listener.unsubscribe()
        confirmation = await self.auth.send_otp("+919812345678")
        await self.auth.confirm(confirmation, self.sent[-1][1])
        self.assertEqual(len(seen), 3)


if __name__ == "__main__":
    unittest.main()
