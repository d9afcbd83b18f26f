from typing import Optional

from textual.message import Message

from services.auth import AuthUser


class QuitRequestedMessage(Message):
    """
    broadcasted when the app is about to quit
    """

    bubble = True


class UserLogoutMessage(Message):
    """
    broadcasted when the user asks to log out, the app signs out
    """

    bubble = True


class AuthStateChangedMessage(Message):
    """
    Posted at app level by the auth listener on every sign-in and sign-out.
    user is None when signed out.
    """

    bubble = True

    def __init__(self, user: Optional[AuthUser]) -> None:
        super().__init__()
        self.user = user
