from __future__ import annotations

from typing import TYPE_CHECKING
from uuid import UUID

from strawberry.dataloader import DataLoader

if TYPE_CHECKING:
    from .resolvers.engine import ResolverEngine


class Loaders:
    """Request-scoped batch loaders.

    ``book_count`` turns the per-author ``bookCount`` field into one grouped
    COUNT query for all authors resolved in the same request. A context can
    outlive a single read (a mutation document with several ``addBook``
    fields, a WebSocket connection carrying ``bookAdded``), so writers drop
    the cached count of the author they touched.
    """

    def __init__(self, engine: ResolverEngine):
        self.book_count = DataLoader(load_fn=engine.author_book_counts)

    def forget_book_count(self, author_id: UUID) -> None:
        self.book_count.clear(author_id)
