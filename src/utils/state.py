from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Literal, Optional

from db.models import User
from utils.pure import tomorrow


@dataclass
class Session:
    """
    Who is signed in. Passed to the router to decide which screens exist.

    Fields:
      - user: the signed-in user's profile, None when signed out
    """

    user: Optional[User] = None

    @property
    def signed_in(self) -> bool:
        return self.user is not None

    @property
    def uid(self) -> Optional[str]:
        return self.user.uid if self.user else None

    @property
    def role(self) -> Optional[str]:
        return self.user.role if self.user else None

    @property
    def is_admin(self) -> bool:
        return self.user is not None and self.user.is_admin

    def sign_in(self, user: User) -> None:
        self.user = user

    def clear(self) -> None:
        self.user = None


Status = Literal["loading", "ready", "errored"]


@dataclass
class ViewState:
    """
    Loading -> ready once data arrives. A write sets `submitting` on top of the
    current state. Errors move to `errored` until dismissed, then the view is
    back where it was.
    """

    status: Status = "loading"
    submitting: bool = False
    error: Optional[str] = None
    _stable: Status = field(default="loading", repr=False)

    @property
    def is_loading(self) -> bool:
        return self.status == "loading"

    @property
    def is_ready(self) -> bool:
        return self.status == "ready"

    def begin_loading(self) -> None:
        self.status = self._stable = "loading"
        self.error = None

    def data_arrived(self) -> None:
        self._stable = "ready"
        if self.status != "errored":
            self.status = "ready"

    def begin_submit(self) -> bool:
        """False if a write is already running; the caller must not start another."""
        if self.submitting:
            return False
        self.submitting = True
        return True

    def submit_succeeded(self) -> None:
        self.submitting = False

    def submit_failed(self, message: str) -> None:
        self.submitting = False
        self.fail(message)

    def fail(self, message: str) -> None:
        self.status = "errored"
        self.error = message

    def dismiss_error(self) -> None:
        self.status = self._stable
        self.error = None


@dataclass
class OrderDraft:
    """Quantity and delivery date being entered for one product."""

    quantity: str = ""
    delivery_day: Optional[date] = None

    def effective_day(self, today: Optional[date] = None) -> date:
        return self.delivery_day or tomorrow(today)

    def reset(self) -> None:
        self.quantity = ""
        self.delivery_day = None
