# Overview: Transaction scoping and optimistic-concurrency checks shared by all services.

from __future__ import annotations

from contextlib import contextmanager

from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db
from ..errors import ConcurrencyConflictError


@contextmanager
def atomic():
    """
    One unit of work on the request-scoped session.

    Commits on success. On ANY exception the session is rolled back so a
    multi-step operation (clear old default + set new default, rewrite all
    orders, re-point children + delete parent) is never half-applied.

    StaleDataError (the UPDATE ... WHERE row_version = ? matched nothing) is
    surfaced as ConcurrencyConflictError. Nothing is retried here; the loser
    of a race must re-read and try again.
    """
    try:
        yield db.session
        db.session.commit()
    except StaleDataError as exc:
        db.session.rollback()
        raise ConcurrencyConflictError(
            "Row was modified by another transaction; re-read and retry"
        ) from exc
    except Exception:
        db.session.rollback()
        raise


def check_row_version(entity, expected_version: int | None) -> None:
    """
    Compare the caller's previously-read row_version with the stored one.

    expected_version=None skips the explicit check; the ORM-level version
    check at flush time still applies.
    """
    if expected_version is None:
        return
    if entity.row_version != expected_version:
        raise ConcurrencyConflictError(
            f"{type(entity).__name__} {entity.id} is at version {entity.row_version}, "
            f"not {expected_version}; re-read and retry"
        )
