# Overview: Domain error taxonomy shared by the attachment, sub-record and category services.

"""
Domain errors for the attachment/categorization core.

Every error here is recoverable by the caller and is raised synchronously by
the service layer. None of them is retried by this package. Storage failures
(lost connections, unexpected constraint violations) are NOT wrapped: they
propagate as SQLAlchemy exceptions so callers can tell infrastructure trouble
apart from business-rule rejections.

Each class carries:
- code: stable machine-readable identifier returned in API error bodies
- http_status: status code the routes answer with
"""

from __future__ import annotations


class DomainError(ValueError):
    """Base class for business-rule rejections."""
    code = "DOMAIN_ERROR"
    http_status = 400


class NotFoundError(DomainError):
    """Referenced id does not exist or is soft-deleted."""
    code = "NOT_FOUND"
    http_status = 404


class OwnerNotFoundError(NotFoundError):
    """Owning entity does not exist."""
    code = "OWNER_NOT_FOUND"


class OwnerDeletedError(OwnerNotFoundError):
    """Mutation attempted against a soft-deleted owning entity."""
    code = "OWNER_DELETED"
    http_status = 410


class ConcurrencyConflictError(DomainError):
    """Supplied row_version is stale; re-read and retry."""
    code = "CONCURRENCY_CONFLICT"
    http_status = 409


class CycleDetectedError(DomainError):
    """Category create/move would break (or found broken) the tree invariant."""
    code = "CYCLE_DETECTED"
    http_status = 409


class HasChildrenError(DomainError):
    """Restrict-mode category delete blocked by live child categories."""
    code = "HAS_CHILDREN"
    http_status = 409


class DuplicateAttachmentError(DomainError):
    """Same media already attached to the same owner."""
    code = "DUPLICATE_ATTACHMENT"
    http_status = 409


class DuplicateMembershipError(DomainError):
    """Owner is already a member of the category."""
    code = "DUPLICATE_MEMBERSHIP"
    http_status = 409


class IncompleteOrderSetError(DomainError):
    """Reorder list is not exactly the owner's live attachments."""
    code = "INCOMPLETE_ORDER_SET"


class CrossTypeViolationError(DomainError):
    """Category, sub-record or attachment used with the wrong owning type."""
    code = "CROSS_TYPE_VIOLATION"


class MediaInUseError(DomainError):
    """Shared media row still referenced by live attachments."""
    code = "MEDIA_IN_USE"
    http_status = 409


def error_body(exc: DomainError) -> tuple[dict, int]:
    """JSON body and status for a domain error."""
    return {"error": str(exc), "code": exc.code}, exc.http_status
