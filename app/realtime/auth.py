"""
Connection Authenticator

One synchronous gate per socket: a bearer JWT is verified before the socket
is accepted, so a rejected client never reaches the presence registry.
"""
from typing import Callable, Optional

from fastapi import WebSocket

from app.core.errors import AuthenticationError
from app.core.security import verify_token


class ConnectionAuthenticator:
    def __init__(self, verify: Callable[[str], Optional[int]] = verify_token):
        self._verify = verify

    @staticmethod
    def credential_from(websocket: WebSocket) -> Optional[str]:
        """Token from ?token=... or an Authorization: Bearer header"""
        token = websocket.query_params.get("token")
        if token:
            return token

        authorization = websocket.headers.get("authorization", "")
        scheme, _, value = authorization.partition(" ")
        if scheme.lower() == "bearer" and value.strip():
            return value.strip()
        return None

    def authenticate(self, credential: Optional[str]) -> int:
        """Return the user id bound to the credential or raise AuthenticationError"""
        if not credential:
            raise AuthenticationError("Missing token")

        user_id = self._verify(credential)
        if user_id is None:
            raise AuthenticationError("Authentication failed")
        return user_id
