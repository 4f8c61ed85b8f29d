# Overview: Record store over SQLAlchemy; create/update/get/list/subscribe by entity name.

"""
Record Store

Every write is its own committed unit. There is no transaction spanning
records: an order header, its lines and the matching stock writes are
separate calls, and callers decide what a failure in the middle means.

Updates may be conditional. Passing expected_version makes the write land
only if the row's version_id still matches, which turns a lost update into
a StaleRecordError instead of silently overwriting a concurrent change.

Live queries are fed from session events rather than from the store's own
write methods: any committed flush or DML statement touching an entity's
table republishes that entity's collection, whoever issued it.
"""

from __future__ import annotations

from flask import current_app, has_app_context
from sqlalchemy import event, update as sql_update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db
from ..models import Product, Inventory, Order, OrderItem, Return, ReturnItem, DailyNote
from .live_query import LiveQueryHub, LiveQuery, snapshot_record


ENTITIES = {
    "Product": Product,
    "Inventory": Inventory,
    "Order": Order,
    "OrderItem": OrderItem,
    "Return": Return,
    "ReturnItem": ReturnItem,
    "DailyNote": DailyNote,
}

EXTENSION_KEY = "tillpoint.record_store"

TABLE_ENTITIES = {model.__table__.name: name for name, model in ENTITIES.items()}

# session.info keys
_PENDING_KEY = "tillpoint.pending_entities"
_COMMITTED_KEY = "tillpoint.committed_entities"


class RecordStoreError(Exception):
    """Raised when a create/update against the store fails."""
    pass


class DuplicateRecordError(RecordStoreError):
    """Raised when a create collides with an existing primary or unique key."""
    pass


class StaleRecordError(RecordStoreError):
    """Raised when a conditional update finds the row changed since it was read."""
    pass


class RecordNotFoundError(LookupError):
    """Raised when a keyed record does not exist."""
    pass


def _model(entity: str):
    try:
        return ENTITIES[entity]
    except KeyError:
        raise ValueError(f"Unknown entity: {entity}")


class RecordStore:
    def __init__(self, hub: LiveQueryHub | None = None):
        self.hub = hub or LiveQueryHub()

    @property
    def session(self):
        return db.session

    # -------------------------------------------------------------------------
    # Writes
    # -------------------------------------------------------------------------

    def create(self, entity: str, fields: dict):
        model = _model(entity)
        record = model(**fields)
        self.session.add(record)
        self._commit(entity, f"create {entity}")
        return record

    def update(self, entity: str, key, fields: dict, *, expected_version: int | None = None):
        model = _model(entity)

        if expected_version is not None:
            return self._conditional_update(model, entity, key, fields, expected_version)

        record = self.session.get(model, key)
        if record is None:
            raise RecordNotFoundError(f"{entity} {key} not found")
        for name, value in fields.items():
            setattr(record, name, value)
        self._commit(entity, f"update {entity} {key}")
        return record

    def _conditional_update(self, model, entity: str, key, fields: dict, expected_version: int):
        if not hasattr(model, "version_id"):
            raise ValueError(f"{entity} does not support conditional updates")

        pk = model.__mapper__.primary_key[0]
        values = dict(fields)
        values["version_id"] = model.version_id + 1
        stmt = (
            sql_update(model)
            .where(pk == key, model.version_id == expected_version)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        try:
            result = self.session.execute(stmt)
            if result.rowcount != 1:
                self.session.rollback()
                if self.session.get(model, key) is None:
                    raise RecordNotFoundError(f"{entity} {key} not found")
                raise StaleRecordError(
                    f"{entity} {key} changed since version {expected_version} was read"
                )
        except SQLAlchemyError as exc:
            self.session.rollback()
            raise RecordStoreError(f"update {entity} {key} failed: {exc}") from exc

        self._commit(entity, f"update {entity} {key}")
        record = self.session.get(model, key)
        # The identity map copy predates the UPDATE statement
        self.session.refresh(record)
        return record

    def delete(self, entity: str, key) -> bool:
        model = _model(entity)
        record = self.session.get(model, key)
        if record is None:
            return False
        self.session.delete(record)
        self._commit(entity, f"delete {entity} {key}")
        return True

    def _commit(self, entity: str, action: str) -> None:
        """Commit, mapping SQLAlchemy failures to store errors."""
        try:
            self.session.commit()
        except IntegrityError as exc:
            self.session.rollback()
            raise DuplicateRecordError(f"{action} failed: {exc.orig}") from exc
        except StaleDataError as exc:
            self.session.rollback()
            raise StaleRecordError(f"{action} failed: {exc}") from exc
        except SQLAlchemyError as exc:
            self.session.rollback()
            raise RecordStoreError(f"{action} failed: {exc}") from exc

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    def get(self, entity: str, key):
        return self.session.get(_model(entity), key)

    def require(self, entity: str, key):
        record = self.get(entity, key)
        if record is None:
            raise RecordNotFoundError(f"{entity} {key} not found")
        return record

    def list(self, entity: str, filters: dict | None = None, limit: int | None = None, order_by=None) -> list:
        """Equality filters only; order_by defaults to primary key order."""
        model = _model(entity)
        query = self.session.query(model)
        if filters:
            query = query.filter_by(**filters)
        if order_by is None:
            order_by = list(model.__mapper__.primary_key)
        elif not isinstance(order_by, (list, tuple)):
            order_by = [order_by]
        query = query.order_by(*order_by)
        if limit is not None:
            query = query.limit(limit)
        return query.all()

    def snapshot(self, entity: str, filters: dict | None = None) -> tuple:
        return tuple(snapshot_record(r) for r in self.list(entity, filters))

    def subscribe(self, entity: str) -> LiveQuery:
        """Live query: first snapshot immediately, then one per committed write."""
        _model(entity)
        return self.hub.subscribe(entity, self.snapshot(entity))

    def publish(self, session, entities) -> None:
        """Push a fresh collection snapshot to every live query on the given entities."""
        for entity in sorted(entities):
            if not self.hub.has_subscribers(entity):
                continue
            model = ENTITIES[entity]
            rows = session.query(model).order_by(*model.__mapper__.primary_key)
            self.hub.publish(entity, tuple(snapshot_record(r) for r in rows))


# =============================================================================
# SESSION EVENTS
# =============================================================================

def _mark_changed(session, names) -> None:
    names = {n for n in names if n}
    if names:
        session.info.setdefault(_PENDING_KEY, set()).update(names)


def _collect_flushed(session, flush_context) -> None:
    objects = (*session.new, *session.dirty, *session.deleted)
    _mark_changed(session, (TABLE_ENTITIES.get(getattr(obj, "__tablename__", None)) for obj in objects))


def _collect_executed(orm_execute_state) -> None:
    """Bulk INSERT/UPDATE/DELETE statements bypass the flush."""
    if not (orm_execute_state.is_insert or orm_execute_state.is_update or orm_execute_state.is_delete):
        return
    table = getattr(orm_execute_state.statement, "table", None)
    _mark_changed(orm_execute_state.session, [TABLE_ENTITIES.get(getattr(table, "name", None))])


def _promote_on_commit(session) -> None:
    pending = session.info.pop(_PENDING_KEY, None)
    if pending:
        session.info.setdefault(_COMMITTED_KEY, set()).update(pending)


def _discard_on_rollback(session) -> None:
    session.info.pop(_PENDING_KEY, None)


def _publish_on_transaction_end(session, transaction) -> None:
    # No SQL can run in after_commit; the root transaction has closed by now
    if transaction.parent is not None:
        return
    entities = session.info.pop(_COMMITTED_KEY, None)
    if not entities or not has_app_context():
        return
    store = current_app.extensions.get(EXTENSION_KEY)
    if store is None:
        return
    try:
        store.publish(session, entities)
    except SQLAlchemyError:
        current_app.logger.exception("Live query publish failed for %s", sorted(entities))


_LISTENERS = (
    ("after_flush", _collect_flushed),
    ("do_orm_execute", _collect_executed),
    ("after_commit", _promote_on_commit),
    ("after_rollback", _discard_on_rollback),
    ("after_transaction_end", _publish_on_transaction_end),
)


def register_change_listeners() -> None:
    """Attach the change-tracking listeners to every Session. Safe to call twice."""
    for name, fn in _LISTENERS:
        if not event.contains(Session, name, fn):
            event.listen(Session, name, fn)


def init_record_store(app) -> RecordStore:
    register_change_listeners()
    store = RecordStore()
    app.extensions[EXTENSION_KEY] = store
    return store


def get_record_store() -> RecordStore:
    return current_app.extensions[EXTENSION_KEY]
