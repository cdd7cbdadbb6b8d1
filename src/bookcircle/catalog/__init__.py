"""Book catalog module.

Provides functionality for:
- Listing and looking up books with owner/holder display data
- Cataloguing, editing and removing books (owner only)
- Direct hand-over of a book to another member
"""

from .manager import CatalogManager

__all__ = ["CatalogManager"]
