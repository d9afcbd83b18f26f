from typing import Optional

from textual import on, work
from textual.app import ComposeResult
from textual.containers import Horizontal, Vertical
from textual.events import ScreenResume
from textual.reactive import reactive
from textual.widgets import Button, Input, Label

from services.auth import Confirmation, full_phone_number
from utils.config import settings
from utils.errors import StorefrontError
from utils.logger import get_logger
from utils.pure import validate_otp, validate_phone
from views.base_screen import FAILURES, BaseScreen
from views.modal_dialog import QuitDialogModal

_logger = get_logger(__name__)


class LoginScreen(BaseScreen):
    """
    Phone number, then the 6-digit code sent to it. Navigation after a
    successful sign-in is done by the app's auth listener, not here.
    """

    step = reactive("phone")

    def __init__(self):
        super().__init__()
        self.configure(header_sub_title="Login", show_sidebar=False)
        self.confirmation: Optional[Confirmation] = None

    def compose(self) -> ComposeResult:
        yield from super().compose()
        with Vertical(id="div-login"):
            yield Label(settings.brand, id="label-brand")
            with Vertical(id="div-phone"):
                yield Label("Enter your phone number")
                with Horizontal(classes="phone-row"):
                    yield Label(settings.country_code, id="label-country-code")
                    yield Input(
                        placeholder="10-digit mobile number",
                        id="input-phone",
                        restrict=r"[0-9]*",
                        max_length=10,
                    )
                with Horizontal(classes="login-btns"):
                    yield Button("Quit", id="btn-quit")
                    yield Button("Send OTP", id="btn-send-otp", variant="primary")
            with Vertical(id="div-otp", classes="hidden"):
                yield Label("", id="label-otp-sent")
                yield Input(
                    placeholder="6-digit code",
                    id="input-otp",
                    restrict=r"[0-9]*",
                    max_length=6,
                )
                with Horizontal(classes="login-btns"):
                    yield Button("Back", id="btn-back")
                    yield Button("Verify & Continue", id="btn-verify", variant="primary")
            yield Label("", id="label-login-error", classes="hidden")

    def on_mount(self):
        self.query_one("#input-phone").focus()

    @on(ScreenResume)
    def handle_resume(self) -> None:
        self.reset()

    def reset(self) -> None:
        self.confirmation = None
        self.view_state.submitting = False
        self.query_one("#input-phone", Input).value = ""
        self.query_one("#input-otp", Input).value = ""
        self.query_one("#input-otp", Input).remove_class("-invalid")
        self.step = "phone"
        self.clear_error()
        self._sync_buttons()

    def watch_step(self, step: str) -> None:
        self.query_one("#div-phone").set_class(step != "phone", "hidden")
        self.query_one("#div-otp").set_class(step != "otp", "hidden")
        self.query_one("#input-phone" if step == "phone" else "#input-otp").focus()

    def _sync_buttons(self) -> None:
        for btn_id in ("#btn-send-otp", "#btn-verify"):
            self.query_one(btn_id, Button).disabled = self.view_state.submitting

    def set_error(self, message: str) -> None:
        label = self.query_one("#label-login-error", Label)
        label.update(message)
        label.remove_class("hidden")
        self.notify(message, title="Error", severity="error")

    def clear_error(self) -> None:
        self.query_one("#label-login-error", Label).add_class("hidden")

    @on(Input.Submitted, "#input-phone")
    @on(Button.Pressed, "#btn-send-otp")
    @work(exclusive=True)
    async def handle_send_otp(self) -> None:
        if not self.view_state.begin_submit():
            return
        self._sync_buttons()
        self.clear_error()
        try:
            digits = validate_phone(self.query_one("#input-phone", Input).value)
            phone = full_phone_number(digits)
            self.confirmation = await self.app.auth.send_otp(phone)
        except StorefrontError as e:
            self.view_state.submit_failed(str(e))
            self.set_error(str(e))
        except FAILURES as e:
            _logger.error(f"Sending OTP failed: {e}")
            self.view_state.submit_failed("Failed to send OTP. Please try again.")
            self.set_error("Failed to send OTP. Please try again.")
        else:
            self.view_state.submit_succeeded()
            self.query_one("#label-otp-sent", Label).update(f"Code sent to {phone}")
            self.step = "otp"
        self.view_state.dismiss_error()
        self._sync_buttons()

    @on(Input.Submitted, "#input-otp")
    @on(Button.Pressed, "#btn-verify")
    @work(exclusive=True)
    async def handle_verify(self) -> None:
        if self.confirmation is None or not self.view_state.begin_submit():
            return
        self._sync_buttons()
        self.clear_error()
        try:
            code = validate_otp(self.query_one("#input-otp", Input).value)
            await self.app.auth.confirm(self.confirmation, code)
        except StorefrontError as e:
            self.view_state.submit_failed(str(e))
            self.set_error(str(e))
            self.query_one("#input-otp", Input).add_class("-invalid")
        except FAILURES as e:
            _logger.error(f"Verifying OTP failed: {e}")
            self.view_state.submit_failed("Failed to verify OTP. Please try again.")
            self.set_error("Failed to verify OTP. Please try again.")
        else:
            self.view_state.submit_succeeded()
        self.view_state.dismiss_error()
        self._sync_buttons()

    @on(Button.Pressed, "#btn-back")
    def handle_back(self) -> None:
        self.confirmation = None
        self.query_one("#input-otp", Input).value = ""
        self.clear_error()
        self.step = "phone"

    @on(Button.Pressed, "#btn-quit")
    def handle_quit_(self) -> None:
        self.app.push_screen(QuitDialogModal())
