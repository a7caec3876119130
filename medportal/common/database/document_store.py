# medportal/common/database/document_store.py
"""
Path-addressed document tree kept in the relational database.

The first path segment names a collection, the second a document inside it,
and anything deeper addresses a field nested in that document's JSON body:

    users/{userId}                   -> whole user document
    users/{userId}/medicalHistory    -> field inside the user document
    appointments                     -> {appointmentId: document, ...}

There is no query engine: callers read a whole collection and filter it
themselves. Every operation is its own round trip and commits on its own, so
two calls are never atomic together and concurrent writers to one path race
with last-write-wins.
"""

import copy
import logging
import time
import uuid
from contextlib import asynccontextmanager
from typing import Any, Awaitable, Callable, Dict, List, Optional

from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from medportal.common.errors import StoreError
from medportal.models.models import DocumentNode

logger = logging.getLogger(__name__)


def split_path(path: str) -> List[str]:
    """Split a `/`-separated path, rejecting the empty root."""
    parts = [part for part in path.strip("/").split("/") if part]
    if not parts:
        raise ValueError("A path must name at least a collection")
    return parts


_last_key_ns = 0


def generate_key() -> str:
    """Unique key that sorts in creation order."""
    global _last_key_ns
    # Strictly increasing even when the clock does not tick between calls
    _last_key_ns = max(time.time_ns(), _last_key_ns + 1)
    return f"{_last_key_ns:016x}{uuid.uuid4().hex[:8]}"


def _get_in(data: Any, parts: List[str]) -> Any:
    for part in parts:
        if not isinstance(data, dict) or part not in data:
            return None
        data = data[part]
    return data


def _set_in(data: Dict[str, Any], parts: List[str], value: Any) -> None:
    node = data
    for part in parts[:-1]:
        child = node.get(part)
        if not isinstance(child, dict):
            if value is None:
                return
            child = {}
            node[part] = child
        node = child
    if value is None:
        node.pop(parts[-1], None)
    else:
        node[parts[-1]] = value


ChangeListener = Callable[[str], Awaitable[None]]

# Shared by every store in the process: a write through any session reaches
# the listeners of its collection.
_change_listeners: Dict[str, List[ChangeListener]] = {}


class DocumentStore:
    """Async point reads, writes, merges and appends over the shared tree."""

    def __init__(self, session: AsyncSession):
        self.session = session

    def on_change(self, collection: str, callback: ChangeListener) -> Callable[[], None]:
        """
        Call `callback(path)` after every committed write under `collection`.
        Returns an unsubscribe function.
        """
        listeners = _change_listeners.setdefault(collection, [])
        listeners.append(callback)

        def unsubscribe() -> None:
            if callback in listeners:
                listeners.remove(callback)

        return unsubscribe

    async def _notify(self, path: str) -> None:
        for listener in list(_change_listeners.get(split_path(path)[0], [])):
            try:
                await listener(path)
            except Exception:
                # A subscriber's failure must not fail the write that already committed
                logger.exception("Change listener for %s failed", path)

    @asynccontextmanager
    async def _round_trip(self, action: str, path: str):
        logger.debug("store %s %s", action, path)
        try:
            yield
            await self.session.commit()
        except SQLAlchemyError as e:
            await self.session.rollback()
            logger.error("store %s %s failed: %s", action, path, e)
            raise StoreError() from e
        if action != "read":
            await self._notify(path)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def read_path(self, path: str) -> Optional[Any]:
        """Return the value at `path`, or None when nothing is stored there."""
        parts = split_path(path)
        async with self._round_trip("read", path):
            if len(parts) == 1:
                result = await self.session.execute(
                    select(DocumentNode)
                    .where(DocumentNode.collection == parts[0])
                    .order_by(DocumentNode.key)
                    .execution_options(populate_existing=True)
                )
                nodes = result.scalars().all()
                if not nodes:
                    return None
                return {node.key: copy.deepcopy(node.data) for node in nodes}

            node = await self.session.get(DocumentNode, (parts[0], parts[1]), populate_existing=True)
            if node is None:
                return None
            return copy.deepcopy(_get_in(node.data, parts[2:]))

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def write_path(self, path: str, value: Any) -> None:
        """Overwrite the value at `path`. Writing None deletes it."""
        parts = split_path(path)
        async with self._round_trip("write", path):
            await self._set(parts, value)

    async def merge_path(self, path: str, partial: Dict[str, Any]) -> None:
        """Write each named child of `path`, leaving unnamed siblings alone."""
        parts = split_path(path)
        async with self._round_trip("merge", path):
            for child, value in partial.items():
                await self._set(parts + split_path(child), value)

    async def append_child(self, path: str, value: Any) -> str:
        """Store `value` under a freshly generated key and return the key."""
        key = generate_key()
        await self.write_path(f"{path.rstrip('/')}/{key}", value)
        return key

    async def delete_path(self, path: str) -> None:
        await self.write_path(path, None)

    async def _set(self, parts: List[str], value: Any) -> None:
        collection = parts[0]

        if len(parts) == 1:
            await self.session.execute(
                delete(DocumentNode).where(DocumentNode.collection == collection)
            )
            for key, child in (value or {}).items():
                if child is not None:
                    self.session.add(DocumentNode(collection=collection, key=key, data=copy.deepcopy(child)))
            await self.session.flush()
            return

        key = parts[1]
        node = await self.session.get(DocumentNode, (collection, key))

        if len(parts) == 2:
            if value is None:
                if node is not None:
                    await self.session.delete(node)
            elif node is None:
                self.session.add(DocumentNode(collection=collection, key=key, data=copy.deepcopy(value)))
            else:
                node.data = copy.deepcopy(value)
            await self.session.flush()
            return

        if node is None and value is None:
            return
        data = copy.deepcopy(node.data) if node is not None and isinstance(node.data, dict) else {}
        _set_in(data, parts[2:], copy.deepcopy(value))
        if node is None:
            self.session.add(DocumentNode(collection=collection, key=key, data=data))
        elif not data:
            await self.session.delete(node)
        else:
            # Fresh object so the JSON column is seen as changed
            node.data = data
        await self.session.flush()
