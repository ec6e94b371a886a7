"""httpx authentication using an OAuth bearer token."""

from httpx import Auth, Request


class BearerAuth(Auth):
    """Attach ``Authorization: Bearer <token>`` to every request."""

    def __init__(self, token: str):
        self.token = token

    def auth_flow(self, request: Request):
        request.headers["Authorization"] = f"Bearer {self.token}"
        yield request
