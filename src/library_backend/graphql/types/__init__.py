"""GraphQL object types."""

from .author import Author
from .book import Book
from .user import Token, User

__all__ = ["Author", "Book", "Token", "User"]
