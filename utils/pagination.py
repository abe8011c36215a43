"""Page/limit helpers shared by the admin list endpoints."""
from django.core.paginator import Paginator


def parse_page_params(query_params, default_limit=10, max_limit=100):
    """Read ``page`` and ``limit`` from query params, clamping bad input."""
    try:
        page = int(query_params.get('page', 1))
    except (TypeError, ValueError):
        page = 1
    try:
        limit = int(query_params.get('limit', default_limit))
    except (TypeError, ValueError):
        limit = default_limit
    page = max(page, 1)
    limit = min(max(limit, 1), max_limit)
    return page, limit


def paginate_queryset(queryset, page, limit, total_key='total_items'):
    """
    Slice ``queryset`` and build the pagination block the admin panel expects.

    Returns ``(items, pagination)``. A page past the end comes back empty
    rather than clamped to the last page.
    """
    paginator = Paginator(queryset, limit)
    total = paginator.count
    total_pages = paginator.num_pages if total else 0
    items = list(paginator.page(page).object_list) if page <= total_pages else []
    pagination = {
        'current_page': page,
        'total_pages': total_pages,
        total_key: total,
        'has_next_page': page < total_pages,
        'has_prev_page': page > 1,
    }
    return items, pagination
