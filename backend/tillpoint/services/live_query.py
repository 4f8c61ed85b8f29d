# Overview: In-process live queries; each subscriber receives full-collection snapshots.

from __future__ import annotations

import queue
import threading
from collections import defaultdict
from types import SimpleNamespace


_CLOSED = object()


def snapshot_record(record) -> SimpleNamespace:
    """
    Detached copy of a mapped record's column values.

    Snapshots outlive the session that loaded them, so consumers on other
    threads can read them without touching the database.
    """
    mapper = record.__mapper__
    return SimpleNamespace(**{col.key: getattr(record, col.key) for col in mapper.column_attrs})


class LiveQuery:
    """
    Subscription to one entity's collection.

    Every committed write to the entity's table pushes the whole collection
    again; consumers re-derive state from the latest snapshot rather than
    applying deltas.
    """

    def __init__(self, hub: "LiveQueryHub", entity: str):
        self.entity = entity
        self._hub = hub
        self._queue: queue.Queue = queue.Queue()
        self._lock = threading.Lock()
        self.closed = False

    def push(self, snapshot: tuple) -> None:
        with self._lock:
            if not self.closed:
                self._queue.put(snapshot)

    def _take(self, block: bool = True, timeout: float | None = None):
        item = self._queue.get(block=block, timeout=timeout)
        if item is _CLOSED:
            # Leave the sentinel for every later reader
            self._queue.put(_CLOSED)
        return item

    def get(self, timeout: float | None = None) -> tuple:
        """Block until the next snapshot. Raises queue.Empty on timeout or once closed."""
        if self.closed:
            raise queue.Empty
        item = self._take(timeout=timeout)
        if item is _CLOSED:
            raise queue.Empty
        return item

    def latest(self) -> tuple | None:
        """Drain pending snapshots and return the newest, or None if nothing is pending."""
        newest = None
        while True:
            try:
                item = self._take(block=False)
            except queue.Empty:
                return newest
            if item is _CLOSED:
                return newest
            newest = item

    def close(self) -> None:
        """Stop receiving. Undelivered snapshots are dropped."""
        with self._lock:
            if self.closed:
                return
            self.closed = True
            while True:
                try:
                    self._queue.get_nowait()
                except queue.Empty:
                    break
            self._queue.put(_CLOSED)
        self._hub.unsubscribe(self)

    def __iter__(self):
        while not self.closed:
            item = self._take()
            if item is _CLOSED:
                return
            yield item

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()


class LiveQueryHub:
    """Fan-out of collection snapshots to the live queries of each entity."""

    def __init__(self):
        self._lock = threading.Lock()
        self._subscribers: dict[str, list[LiveQuery]] = defaultdict(list)

    def subscribe(self, entity: str, initial: tuple) -> LiveQuery:
        query = LiveQuery(self, entity)
        query.push(initial)
        with self._lock:
            self._subscribers[entity].append(query)
        return query

    def unsubscribe(self, query: LiveQuery) -> None:
        with self._lock:
            subs = self._subscribers.get(query.entity, [])
            if query in subs:
                subs.remove(query)

    def has_subscribers(self, entity: str) -> bool:
        with self._lock:
            return bool(self._subscribers.get(entity))

    def publish(self, entity: str, snapshot: tuple) -> None:
        with self._lock:
            targets = list(self._subscribers.get(entity, []))
        for query in targets:
            query.push(snapshot)
