"""Author and book storage."""
