"""
Library Backend
GraphQL catalog of authors and books with live book-added notifications
"""

__version__ = "0.1.0"

from .config import settings

__all__ = ["settings", "__version__"]
