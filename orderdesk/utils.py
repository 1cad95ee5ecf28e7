from datetime import datetime, timezone
from decimal import Decimal


def utcnow():
    """Naive UTC timestamp, matching what SQLite hands back."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def money(value):
    if value is None:
        return None
    return f"{Decimal(value):.2f}"


def iso(value):
    return value.isoformat() if value is not None else None


def paginated(pagination, serialize):
    return {
        'data': [serialize(item) for item in pagination.items],
        'pagination': {
            'page': pagination.page,
            'limit': pagination.per_page,
            'total': pagination.total,
            'totalPages': pagination.pages,
            'hasNext': pagination.has_next,
            'hasPrev': pagination.has_prev,
        },
    }
