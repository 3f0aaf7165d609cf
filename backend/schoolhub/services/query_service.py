# Overview: Soft-delete-aware query helpers and pagination used by every listing.

from __future__ import annotations

from flask import current_app


def live(query, model, include_deleted: bool = False):
    """Filter out soft-deleted rows unless the caller explicitly asks for them."""
    if include_deleted:
        return query
    return query.filter(model.is_deleted == False)  # noqa: E712


def paginate(query, page: int | None = None, per_page: int | None = None, serializer=None) -> dict:
    """
    Serialize a query with optional pagination.

    Args:
        query: Ordered SQLAlchemy query
        page: Page number (1-indexed). If None, returns all items.
        per_page: Items per page (config default, capped at MAX_PAGE_SIZE)
        serializer: Row -> dict callable (defaults to row.to_dict())

    Returns:
        Dict with 'items', 'count', and pagination metadata if paginated.
    """
    serialize = serializer or (lambda row: row.to_dict())

    if page is None:
        rows = query.all()
        return {
            "items": [serialize(r) for r in rows],
            "count": len(rows),
        }

    default_size = current_app.config.get("DEFAULT_PAGE_SIZE", 20)
    max_size = current_app.config.get("MAX_PAGE_SIZE", 100)
    per_page = min(per_page or default_size, max_size)
    page = max(page, 1)

    total = query.count()
    total_pages = (total + per_page - 1) // per_page if total > 0 else 1

    rows = query.offset((page - 1) * per_page).limit(per_page).all()

    return {
        "items": [serialize(r) for r in rows],
        "count": len(rows),
        "pagination": {
            "page": page,
            "per_page": per_page,
            "total": total,
            "total_pages": total_pages,
            "has_next": page < total_pages,
            "has_prev": page > 1,
        },
    }
