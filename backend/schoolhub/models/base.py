from __future__ import annotations

import uuid

from sqlalchemy.orm import declared_attr

from ..extensions import db
from ..time_utils import utcnow, to_utc_z


def new_id() -> str:
    """Opaque, stable row identifier."""
    return str(uuid.uuid4())


class AuditedMixin:
    """
    Columns every persisted row carries.

    OPTIMISTIC CONCURRENCY: row_version is SQLAlchemy's version_id_col, so
    every UPDATE is issued as "... WHERE id = ? AND row_version = ?" and a
    zero-row result raises StaleDataError (translated to
    ConcurrencyConflictError by services.concurrency).

    SOFT DELETE: deleted_on is set iff is_deleted. Physical deletion is not
    part of the supported contract.
    """
    id = db.Column(db.String(36), primary_key=True, default=new_id)

    created_by = db.Column(db.String(64), nullable=True)
    created_on = db.Column(db.DateTime, nullable=False, default=utcnow)
    last_modified_by = db.Column(db.String(64), nullable=True)
    last_modified_on = db.Column(db.DateTime, nullable=True)

    is_deleted = db.Column(db.Boolean, nullable=False, default=False, index=True)
    deleted_on = db.Column(db.DateTime, nullable=True)

    row_version = db.Column(db.Integer, nullable=False, default=1)

    @declared_attr.directive
    def __mapper_args__(cls):
        return {"version_id_col": cls.row_version}

    def audit_dict(self) -> dict:
        return {
            "id": self.id,
            "created_by": self.created_by,
            "created_on": to_utc_z(self.created_on),
            "last_modified_by": self.last_modified_by,
            "last_modified_on": to_utc_z(self.last_modified_on),
            "is_deleted": self.is_deleted,
            "deleted_on": to_utc_z(self.deleted_on),
            "row_version": self.row_version,
        }

    def __repr__(self) -> str:
        return f"<{type(self).__name__} id={self.id!r} deleted={self.is_deleted}>"
