from rest_framework.response import Response

DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 200


def paginate(qs, page=None, page_size=None):
    """Slice ``qs`` and return ``(items, total, page, page_size)``."""
    total = qs.count()
    page = max(1, int(page or 1))
    page_size = min(MAX_PAGE_SIZE, max(1, int(page_size or DEFAULT_PAGE_SIZE)))
    start = (page - 1) * page_size
    return list(qs[start:start + page_size]), total, page, page_size


def paginated_response(qs, serialize, query: dict):
    items, total, page, page_size = paginate(qs, query.get('page'), query.get('pageSize'))
    return Response({
        'ok': True,
        'data': [serialize(obj) for obj in items],
        'pagination': {'total': total, 'page': page, 'pageSize': page_size},
    })
