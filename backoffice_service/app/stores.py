"""Repository handles over one SQLAlchemy session.

``TenantScopedStore`` confines every read and write to one organization.
``GlobalStore`` sees all organizations and is reserved for the few
invariants that must hold across tenants, such as document numbering, and
for super-admin reads.
"""

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError

from .models import DocumentCounter


class GlobalStore:
    def __init__(self, db):
        self.db = db

    def query(self, model):
        return self.db.query(model)

    def get(self, model, entity_id):
        if not entity_id:
            return None
        return self.query(model).filter(model.id == entity_id).first()

    def next_counter_value(self, name, seed=None):
        """Atomically advance counter ``name`` and return the new value.

        The UPDATE holds the counter row lock until the caller's transaction
        ends, so concurrent callers are serialized. A missing counter is
        created from ``seed()`` (the last value already in use).
        """
        if self._increment(name):
            return self._current(name)

        start = seed() if seed else 0
        try:
            with self.db.begin_nested():
                self.db.add(DocumentCounter(name=name, value=start + 1))
            return start + 1
        except IntegrityError:
            # Another transaction created the counter first.
            self._increment(name)
            return self._current(name)

    def _increment(self, name):
        result = self.db.execute(
            update(DocumentCounter)
            .where(DocumentCounter.name == name)
            .values(value=DocumentCounter.value + 1)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount > 0

    def _current(self, name):
        return self.db.execute(
            select(DocumentCounter.value).where(DocumentCounter.name == name)
        ).scalar_one()


class TenantScopedStore:
    def __init__(self, db, organization_id):
        if not organization_id:
            raise ValueError("organization_id is required for a tenant-scoped store")
        self.db = db
        self.organization_id = organization_id

    def query(self, model):
        return self.db.query(model).filter(model.organization_id == self.organization_id)

    def get(self, model, entity_id):
        if not entity_id:
            return None
        return self.query(model).filter(model.id == entity_id).first()

    def add(self, entity):
        entity.organization_id = self.organization_id
        self.db.add(entity)
        return entity

    def delete(self, entity):
        if entity.organization_id != self.organization_id:
            raise ValueError("entity belongs to another organization")
        self.db.delete(entity)

    def delete_many(self, model, ids):
        """Delete the given ids owned by this organization; returns the number removed."""
        if not ids:
            return 0
        return (
            self.query(model)
            .filter(model.id.in_(list(ids)))
            .delete(synchronize_session=False)
        )

    def flush(self):
        self.db.flush()
