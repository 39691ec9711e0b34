"""
Remote PLM collaborator interfaces.

Implement these with the actual REST client. Implementations are
responsible for transport, authentication and session renewal, and must
return canonical models (see bomsync.remote.normalize) so the core never
sees raw payload casing.
"""

from typing import Any, Dict, List

from ..models import Item, LineCreate, LookupResult, RemoteLine


class RemoteItemStore:
    """Abstract item store."""

    def search(self, text: str) -> List[Item]:
        """
        Search items by free text (number or name).

        Args:
            text: Search text

        Returns:
            Matching items, possibly empty
        """
        raise NotImplementedError

    def get_by_ref(self, ref: str) -> Item:
        """
        Fetch an item by its remote reference.

        Raises:
            NotFoundError: If no item has this reference
        """
        raise NotImplementedError

    def get_by_number(self, number: str) -> LookupResult:
        """
        Look an item up by item number.

        Returns:
            LookupResult.found(item), LookupResult.not_found(number), or
            LookupResult.failed(number, error) for transport failures
        """
        raise NotImplementedError

    def create(self, fields: Dict[str, Any]) -> Item:
        """
        Create an item.

        Args:
            fields: Canonical field names (number, name, description,
                category, lifecycle, attributes)

        Returns:
            The created item, including its new reference
        """
        raise NotImplementedError

    def update(self, ref: str, fields: Dict[str, Any]) -> Item:
        """Update fields of an existing item and return the new state."""
        raise NotImplementedError

    def delete(self, ref: str) -> None:
        """Delete an item (used by rollback)."""
        raise NotImplementedError


class RemoteBOMStore:
    """Abstract BOM store."""

    def list_lines(self, parent_ref: str) -> List[RemoteLine]:
        """
        List the BOM lines under a parent item.

        Args:
            parent_ref: Remote reference of the parent item

        Returns:
            Lines in remote sequence order
        """
        raise NotImplementedError

    def create_line(self, parent_ref: str, line: LineCreate) -> RemoteLine:
        """Create one BOM line under a parent item."""
        raise NotImplementedError

    def delete_line(self, parent_ref: str, line_ref: str) -> None:
        """Delete one BOM line by its line reference."""
        raise NotImplementedError
