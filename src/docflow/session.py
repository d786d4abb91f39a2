"""Authentication session boundary.

Credentials and sign-in flows belong to an external auth provider. This
layer only needs to know whether a session exists and, if so, who the user
is and which bearer token to present to the remote store.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable

SessionProvider = Callable[[], "AuthSession | None"]


@dataclass(frozen=True)
class AuthSession:
    """An authenticated session.

    Attributes:
        user_id: Id of the signed-in user
        access_token: Bearer token for the remote store
    """

    user_id: str
    access_token: str


class SessionState:
    """Holder of the current session, injected into the repository.

    Calling the instance returns the current session, so it can be passed
    anywhere a ``SessionProvider`` is expected.
    """

    def __init__(self, session: AuthSession | None = None) -> None:
        self._session = session

    def __call__(self) -> AuthSession | None:
        return self._session

    @property
    def authenticated(self) -> bool:
        return self._session is not None

    def sign_in(self, session: AuthSession) -> None:
        self._session = session

    def sign_out(self) -> None:
        self._session = None
