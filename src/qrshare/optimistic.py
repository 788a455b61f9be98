"""Optimistic deletes reconciled against the server.

The item disappears from the local list before the server answers. If the
delete request fails, the authoritative list is fetched once to decide who
was right: an item that is gone there was deleted after all, an item that is
still there is put back by restoring the pre-delete snapshot.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from typing import Any, TypeVar

from qrshare.models import DeleteOutcome

logger = logging.getLogger(__name__)

T = TypeVar("T")


def optimistic_delete(
    items: Sequence[T],
    item_id: Any,
    *,
    key: Callable[[T], Any],
    delete: Callable[[], Any],
    refetch: Callable[[], Sequence[T]],
    persist: Callable[[list[T]], None],
) -> DeleteOutcome:
    """Remove item_id from items now and reconcile with the server.

    Args:
        items: The list currently shown to the user
        item_id: Identifier of the item to delete
        key: Returns an item's identifier
        delete: Sends the delete request; raises on failure. "Not found" and
            "gone" responses must already be treated as success by the caller.
        refetch: Fetches the authoritative list from the server
        persist: Stores a list as the new displayed/cached state

    Returns:
        DeleteOutcome whose items is the list that was persisted last
    """
    snapshot = list(items)
    remaining = [item for item in snapshot if key(item) != item_id]
    persist(remaining)

    try:
        delete()
        logger.info(f"Deleted {item_id}")
        return DeleteOutcome(deleted=True, items=remaining)
    except Exception as e:
        error = str(e)
        logger.warning(f"Delete of {item_id} failed ({error}); verifying against server")

    try:
        authoritative = list(refetch())
    except Exception as e:
        logger.error(f"Could not verify delete of {item_id}: {e}; rolling back")
        persist(snapshot)
        return DeleteOutcome(
            deleted=False,
            items=snapshot,
            rolled_back=True,
            error=error,
        )

    if any(key(item) == item_id for item in authoritative):
        logger.error(f"{item_id} still present on server; rolling back")
        persist(snapshot)
        return DeleteOutcome(
            deleted=False,
            items=snapshot,
            verified=True,
            rolled_back=True,
            error=error,
        )

    persist(authoritative)
    return DeleteOutcome(deleted=True, items=authoritative, verified=True, error=error)
