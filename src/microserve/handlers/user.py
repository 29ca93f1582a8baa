"""
User endpoint.

The service is a stub: it has no storage and always describes the same
user. It exists so the CLI app has a real route to serve:

    GET /user  →  200 "User information"
"""

from typing import Optional

from ..http.request import HTTPRequest
from ..http.response import HTTPResponse, ok


class UserService:
    """Looks up user data. Stubbed."""

    def describe(self) -> str:
        return "User information"


class UserHandler:
    """
    HTTP adapter over UserService.

        users = UserHandler(UserService())
        server.add_route("GET", "/user", users.get_user)
    """

    def __init__(self, service: Optional[UserService] = None):
        self.service = service or UserService()

    def get_user(self, request: HTTPRequest) -> HTTPResponse:
        return ok(self.service.describe())
