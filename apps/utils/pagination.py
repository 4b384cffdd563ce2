import math
from dataclasses import dataclass, field
from typing import List

from django.core.paginator import EmptyPage, Paginator
from rest_framework.pagination import PageNumberPagination

from apps.utils.exceptions import ValidationException


class StandardResultsSetPagination(PageNumberPagination):
    page_size = 20
    page_size_query_param = "page_size"
    max_page_size = 200


@dataclass
class PaginatedResult:
    results: List = field(default_factory=list)
    total_elements: int = 0
    total_pages: int = 0


def paginate(queryset, page: int, page_size: int) -> PaginatedResult:
    """
    Service-level pagination. A page past the end is empty, not an error.
    """
    if page < 1 or page_size < 1:
        raise ValidationException("Page and page size must be positive.")

    paginator = Paginator(queryset, page_size)
    total = paginator.count
    try:
        results = list(paginator.page(page).object_list)
    except EmptyPage:
        results = []

    return PaginatedResult(
        results=results,
        total_elements=total,
        total_pages=math.ceil(total / page_size) if total else 0,
    )
