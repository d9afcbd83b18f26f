"""
Phone number sign-in with one-time codes.

The flow follows the usual managed-auth contract: ``send_otp`` returns a
confirmation handle, ``confirm`` signs the user in, and listeners registered
with ``on_auth_state_changed`` hear about every sign-in and sign-out.
"""

from __future__ import annotations

import hashlib
import re
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, List, Optional, Protocol

import db.crud as crud
from utils.config import settings
from utils.errors import AuthError
from utils.logger import get_logger

_logger = get_logger(__name__)

_PHONE_RE = re.compile(r"\+\d{10,15}")


@dataclass(frozen=True)
class AuthUser:
    uid: str
    phone_number: str


@dataclass(frozen=True)
class Confirmation:
    verification_id: str
    phone_number: str


class OtpSender(Protocol):
    async def send(self, phone_number: str, code: str) -> None: ...


class LoggingOtpSender:
    """Writes the code to the log. For development; there is no SMS gateway."""

    async def send(self, phone_number: str, code: str) -> None:
        _logger.warning(f"OTP for {phone_number}: {code}")


class CallbackOtpSender:
    def __init__(self, callback: Callable[[str, str], None]) -> None:
        self._callback = callback

    async def send(self, phone_number: str, code: str) -> None:
        self._callback(phone_number, code)


AuthCallback = Callable[[Optional[AuthUser]], None]


class AuthListener:
    def __init__(self, service: "AuthService", callback: AuthCallback) -> None:
        self._service = service
        self.callback = callback

    def unsubscribe(self) -> None:
        self._service._remove_listener(self)

    def __enter__(self) -> "AuthListener":
        return self

    def __exit__(self, *exc) -> None:
        self.unsubscribe()


def hash_code(code: str) -> str:
    return hashlib.sha256(code.encode("utf-8")).hexdigest()


def full_phone_number(digits: str, country_code: str = settings.country_code) -> str:
    return f"{country_code}{digits}"


class AuthService:
    def __init__(
        self,
        sender: Optional[OtpSender] = None,
        ttl_min: int = settings.otp_ttl_min,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self._sender = sender or LoggingOtpSender()
        self._ttl = timedelta(minutes=ttl_min)
        self._clock = clock
        self._listeners: List[AuthListener] = []
        self.current_user: Optional[AuthUser] = None

    async def send_otp(self, phone_number: str) -> Confirmation:
        if not _PHONE_RE.fullmatch(phone_number or ""):
            raise AuthError(f"Invalid phone number {phone_number!r}.")
        code = f"{secrets.randbelow(1_000_000):06d}"
        confirmation = Confirmation(secrets.token_urlsafe(16), phone_number)
        await crud.save_otp_request(
            confirmation.verification_id,
            phone_number,
            hash_code(code),
            self._clock() + self._ttl,
        )
        await self._sender.send(phone_number, code)
        _logger.info(f"Verification code sent to {phone_number}")
        return confirmation

    async def confirm(self, confirmation: Confirmation, code: str) -> AuthUser:
        req = await crud.get_otp_request(confirmation.verification_id)
        if req is None or req["used"]:
            raise AuthError("This verification request is no longer valid.")
        if req["expires_at"] < self._clock():
            raise AuthError("The code has expired. Request a new one.")
        if not secrets.compare_digest(req["code_hash"], hash_code(code or "")):
            raise AuthError("The code you entered was incorrect. Please try again.")

        await crud.mark_otp_used(confirmation.verification_id)
        uid = await crud.get_or_create_auth_uid(req["phone"])
        self.current_user = AuthUser(uid=uid, phone_number=req["phone"])
        _logger.info(f"Signed in {uid}")
        self._notify()
        return self.current_user

    async def sign_out(self) -> None:
        if self.current_user is None:
            return
        _logger.info(f"Signed out {self.current_user.uid}")
        self.current_user = None
        self._notify()

    def on_auth_state_changed(self, callback: AuthCallback) -> AuthListener:
        """Register callback; it is called right away with the current user."""
        listener = AuthListener(self, callback)
        self._listeners.append(listener)
        callback(self.current_user)
        return listener

    def _remove_listener(self, listener: AuthListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def _notify(self) -> None:
        for listener in list(self._listeners):
            listener.callback(self.current_user)
