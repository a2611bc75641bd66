"""Exceptions raised by the linked-view core."""

from typing import Any, Optional


class LayoutConfigurationError(ValueError):
    """An explicit angle or centroid table is missing a required entry.

    Raised instead of silently degrading to another layout, since a wrong
    fallback would misrepresent spatial relationships.
    """

    def __init__(self, message: str, focal_id: Any = None, neighbor_id: Optional[Any] = None):
        super().__init__(message)
        self.focal_id = focal_id
        self.neighbor_id = neighbor_id
