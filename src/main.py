from typing import List, Optional

from textual import on, work
from textual.app import App
from textual.binding import Binding

from db import crud
from services.auth import AuthListener, AuthService, AuthUser, CallbackOtpSender
from services.export import DocumentExporter
from services.location import LocationService, location_service_from_settings
from utils.config import settings
from utils.logger import get_logger
from utils.messages import AuthStateChangedMessage, QuitRequestedMessage, UserLogoutMessage
from utils.state import Session
from views.base_screen import FAILURES
from views.router import Route, configure_routes
from views.scr_login import LoginScreen
from views.scr_signup import SignupScreen

_logger = get_logger()


class StorefrontApp(App):
    BINDINGS = [
        Binding("ctrl+t", "switch_light", "Toggle Theme", show=True),
    ]

    # the signed-in user's screens are added as modes on sign-in
    MODES = {"login": LoginScreen}

    CSS_PATH = ["styles/app.tcss"]

    session: Session
    routes: List[Route]

    def __init__(
        self,
        auth: Optional[AuthService] = None,
        location: Optional[LocationService] = None,
        exporter: Optional[DocumentExporter] = None,
    ):
        super().__init__()
        self.session = Session()
        self.routes = []
        self.auth = auth or AuthService(sender=CallbackOtpSender(self._deliver_otp))
        self.location = location or location_service_from_settings()
        self.exporter = exporter or DocumentExporter()
        self._auth_listener: Optional[AuthListener] = None

    def _deliver_otp(self, phone_number: str, code: str) -> None:
        # stands in for the SMS gateway
        self.notify(
            f"Your verification code is {code}",
            title=f"SMS to {phone_number}",
            timeout=30,
        )

    async def on_mount(self) -> None:
        self.title = settings.brand
        await self.switch_mode("login")
        self._auth_listener = self.auth.on_auth_state_changed(
            lambda user: self.post_message(AuthStateChangedMessage(user))
        )

    def on_unmount(self) -> None:
        if self._auth_listener is not None:
            self._auth_listener.unsubscribe()

    def action_switch_light(self):
        if self.theme == "textual-dark":
            self.theme = "solarized-light"
        else:
            self.theme = "textual-dark"
        self.notify(f"Theme changed to {self.theme}")

    @on(AuthStateChangedMessage)
    @work(exclusive=True, group="auth")
    async def handle_auth_state(self, message: AuthStateChangedMessage):
        if message.user is None:
            await self.show_login()
        else:
            await self.enter_session(message.user)

    async def show_login(self) -> None:
        self.session.clear()
        if self.current_mode != "login":
            await self.switch_mode("login")
        for r in self.routes:
            await self.remove_mode(r.mode)
        self.routes = []

    async def enter_session(self, auth_user: AuthUser) -> None:
        try:
            user = await crud.get_user(auth_user.uid)
        except FAILURES as e:
            _logger.error(f"Loading profile of {auth_user.uid} failed: {e}")
            self.notify("Could not load your profile.", title="Error", severity="error")
            await self.auth.sign_out()
            return

        if user is None:
            user = await self.push_screen_wait(
                SignupScreen(auth_user.uid, auth_user.phone_number)
            )
            if user is None:
                await self.auth.sign_out()
                return

        self.session.sign_in(user)
        self.routes = configure_routes(self.session)
        for r in self.routes:
            self.add_mode(r.mode, r.screen)
        await self.switch_mode(self.routes[0].mode)
        self.notify(f"Hello {user.name}!")

    @on(UserLogoutMessage)
    @work
    async def handle_user_logout(self):
        await self.auth.sign_out()
        self.notify("Logout successful.")

    @on(QuitRequestedMessage)
    @work
    async def handle_quit(self):
        await self.auth.sign_out()
        self.exit()


def run() -> None:
    StorefrontApp().run()


if __name__ == "__main__":
    run()
