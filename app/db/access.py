"""Policy-checked data access.

``AccessGuard`` wraps a SQLAlchemy session for one caller. Routes and
services read and write through it instead of the raw session so every
operation is checked against ``app.auth.policies`` before it reaches the
store. Checks run inside the caller's transaction; a rejected write leaves
nothing behind.

Rows the caller may not select are reported as missing, never as
forbidden, so denied rows cannot be probed for existence.
"""
import logging
import re

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.auth import policies
from app.auth.policies import SELECT, INSERT, UPDATE, DELETE
from app.core.exceptions import (
    AuthorizationDenied,
    ConstraintViolation,
    DuplicateEntry,
    NotFound,
    ReferentialViolation,
)

logger = logging.getLogger(__name__)


def _label(model):
    words = re.sub(r"(?<!^)(?=[A-Z])", " ", model.__name__).lower()
    return words[0].upper() + words[1:]


def translate_integrity_error(exc):
    message = str(exc.orig).lower()
    if "unique" in message or "duplicate" in message:
        return DuplicateEntry()
    if "foreign key" in message:
        return ReferentialViolation()
    return ConstraintViolation(f"Constraint violation: {exc.orig}")


class _ProposedRow:
    """Read-only view of ``row`` with ``changes`` applied."""

    def __init__(self, row, changes):
        self._row = row
        self._changes = changes

    def __getattr__(self, name):
        if name in self._changes:
            return self._changes[name]
        return getattr(self._row, name)


class AccessGuard:
    def __init__(self, db: Session, user=None):
        self.db = db
        self.user = user

    def can(self, action, row):
        return policies.is_allowed(self.db, self.user, row.__tablename__, action, row)

    # ----------------------------------------------------------------
    # reads
    # ----------------------------------------------------------------
    def query(self, model):
        return self.db.query(model).filter(policies.scope_filter(self.user, model))

    def get(self, model, row_id):
        row = self.db.get(model, row_id) if row_id is not None else None
        if row is None or not self.can(SELECT, row):
            raise NotFound(f"{_label(model)} not found")
        return row

    # ----------------------------------------------------------------
    # writes
    # ----------------------------------------------------------------
    def add(self, row):
        if not self.can(INSERT, row):
            raise AuthorizationDenied()
        self._check_references(row)
        self.db.add(row)
        self.flush()
        return row

    def update(self, row, changes):
        model = type(row)
        if not self.can(SELECT, row):
            raise NotFound(f"{_label(model)} not found")

        mutable = policies.MUTABLE_FIELDS.get(row.__tablename__, set())
        fixed = sorted(set(changes) - mutable)
        if fixed:
            raise ConstraintViolation(f"Cannot modify field(s): {', '.join(fixed)}")

        if not self.can(UPDATE, row):
            raise AuthorizationDenied()
        if not self.can(UPDATE, _ProposedRow(row, changes)):
            raise AuthorizationDenied()

        try:
            for field, value in changes.items():
                setattr(row, field, value)
        except ConstraintViolation:
            self.db.rollback()
            raise
        self.flush()
        return row

    def delete(self, row):
        model = type(row)
        if not self.can(SELECT, row):
            raise NotFound(f"{_label(model)} not found")
        if not self.can(DELETE, row):
            raise AuthorizationDenied()
        self.db.delete(row)
        self.flush()

    # ----------------------------------------------------------------
    # transaction
    # ----------------------------------------------------------------
    def flush(self):
        try:
            self.db.flush()
        except IntegrityError as exc:
            self.db.rollback()
            raise translate_integrity_error(exc) from exc

    def commit(self):
        try:
            self.db.commit()
        except IntegrityError as exc:
            self.db.rollback()
            raise translate_integrity_error(exc) from exc

    def rollback(self):
        self.db.rollback()

    def _check_references(self, row):
        for fk in row.__table__.foreign_keys:
            value = getattr(row, fk.parent.key, None)
            if value is None:
                continue
            exists = self.db.execute(
                select(fk.column).where(fk.column == value).limit(1)
            ).first()
            if exists is None:
                raise ReferentialViolation(
                    f"{fk.parent.name} references a missing {fk.column.table.name} row"
                )
