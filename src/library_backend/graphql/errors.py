"""
GraphQL error types with stable machine-readable codes.

Each error carries ``extensions.code`` and, where a specific input value
was rejected, ``extensions.invalidArgs`` so clients can tell "fix the
input" apart from "log in again".
"""

from typing import Any

from graphql import GraphQLError


class LibraryError(GraphQLError):
    """Base class for errors surfaced to GraphQL clients."""

    code = "INTERNAL_SERVER_ERROR"

    def __init__(
        self,
        message: str,
        *,
        invalid_args: Any = None,
        original_error: Exception | None = None,
    ):
        extensions: dict[str, Any] = {"code": self.code}
        if invalid_args is not None:
            extensions["invalidArgs"] = invalid_args
        super().__init__(message, original_error=original_error, extensions=extensions)
        self.invalid_args = invalid_args


class AuthorizationError(LibraryError):
    """A mutation was attempted without an authenticated identity."""

    code = "UNAUTHENTICATED"


class AuthenticationError(LibraryError):
    """Login with an unknown username or a wrong password."""

    code = "BAD_CREDENTIALS"


class UserInputError(LibraryError):
    """A create or update was rejected by the store."""

    code = "BAD_USER_INPUT"
