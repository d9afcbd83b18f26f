from typing import Optional

from textual import on, work
from textual.app import ComposeResult
from textual.containers import Horizontal, Vertical
from textual.screen import ModalScreen
from textual.widgets import Button, Input, Label, TextArea

from db import crud
from db.models import User
from services.location import lookup_address
from utils.errors import ServiceError, ValidationError
from utils.logger import get_logger
from utils.pure import validate_profile
from utils.state import ViewState
from views.base_screen import FAILURES

_logger = get_logger(__name__)


class SignupScreen(ModalScreen[Optional[User]]):
    """
    Shown after the first sign-in of a phone number that has no profile yet.
    Returns the saved user, or None when the user chose to log out instead.
    """

    def __init__(self, uid: str, phone: str) -> None:
        super().__init__()
        self.uid = uid
        self.phone = phone
        self.view_state = ViewState(status="ready")

    def compose(self) -> ComposeResult:
        with Vertical(id="div-signup"):
            yield Label("Complete your profile", id="label-signup-title")
            yield Label("Phone")
            yield Input(self.phone, id="input-signup-phone", disabled=True)
            yield Label("Name")
            yield Input(placeholder="Your full name", id="input-signup-name")
            yield Label("Address")
            yield TextArea(id="text-signup-address")
            yield Button("Use My Current Location", id="btn-locate")
            yield Label("", id="label-signup-error", classes="hidden")
            with Horizontal(id="div-signup-btns"):
                yield Button("Log out", id="btn-signup-logout", variant="error")
                yield Button("Save", id="btn-signup-save", variant="primary")

    def on_mount(self) -> None:
        self.query_one("#input-signup-name").focus()

    def set_error(self, message: str) -> None:
        label = self.query_one("#label-signup-error", Label)
        label.update(message)
        label.remove_class("hidden")
        self.notify(message, title="Error", severity="error")

    @on(Button.Pressed, "#btn-locate")
    @work(exclusive=True, group="locate")
    async def handle_locate(self) -> None:
        btn = self.query_one("#btn-locate", Button)
        btn.disabled = True
        btn.label = "Locating..."
        try:
            address = await lookup_address(self.app.location)
        except ServiceError as e:
            _logger.warning(f"Location lookup failed: {e}")
            self.set_error(
                "Could not fetch your location. Please try again or enter it manually."
            )
        else:
            if address is None:
                self.set_error(
                    "Permission to access location was denied. "
                    "Please enter your address manually."
                )
            elif address:
                self.query_one("#text-signup-address", TextArea).load_text(address)
        finally:
            btn.disabled = False
            btn.label = "Use My Current Location"

    @on(Button.Pressed, "#btn-signup-save")
    @work(exclusive=True, group="save")
    async def handle_save(self) -> None:
        if not self.view_state.begin_submit():
            return
        self.query_one("#label-signup-error").add_class("hidden")
        try:
            name, address = validate_profile(
                self.query_one("#input-signup-name", Input).value,
                self.query_one("#text-signup-address", TextArea).text,
            )
            user = await crud.create_user(self.uid, name, self.phone, address)
        except ValidationError as e:
            self.view_state.submit_failed(str(e))
            self.set_error(str(e))
        except FAILURES as e:
            _logger.error(f"Saving profile for {self.uid} failed: {e}")
            self.view_state.submit_failed("Failed to save your profile. Please try again.")
            self.set_error("Failed to save your profile. Please try again.")
        else:
            self.view_state.submit_succeeded()
            self.dismiss(user)
            return
        self.view_state.dismiss_error()

    @on(Button.Pressed, "#btn-signup-logout")
    def handle_logout(self) -> None:
        self.dismiss(None)
