"""
Filterable, paginated tables over in-memory rows or Django querysets.

A ``Table`` is declared once per list endpoint with typed ``Column``
descriptors. Text columns match case-insensitively on a substring, select
columns match exactly, and ``none`` columns are display-only. Filtering keeps
the original row order; pagination reports ``ceil(count / page_size)`` pages.
"""
import math
from typing import Any, Callable, Dict, Generic, Iterable, List, Optional, Sequence, TypeVar, Union

from django.conf import settings
from django.core.paginator import Paginator
from django.db.models import Q, QuerySet
from rest_framework.response import Response

Row = TypeVar('Row')

FILTER_TEXT = 'text'
FILTER_SELECT = 'select'
FILTER_NONE = 'none'
FILTER_TYPES = (FILTER_TEXT, FILTER_SELECT, FILTER_NONE)

PAGE_SIZE_OPTIONS = (10, 25, 50, 100)
DEFAULT_PAGE_SIZE = 10


def default_page_size() -> int:
    """Configured SHOPDESK_PAGE_SIZE, or 10 when it is not one of the allowed sizes"""
    page_size = getattr(settings, 'SHOPDESK_PAGE_SIZE', DEFAULT_PAGE_SIZE)
    return page_size if page_size in PAGE_SIZE_OPTIONS else DEFAULT_PAGE_SIZE


class Column(Generic[Row]):
    """One table column and how rows are matched against its filter"""

    def __init__(self, key: str, label: Optional[str] = None, filter_type: str = FILTER_NONE,
                 options: Optional[Sequence[str]] = None,
                 accessor: Optional[Callable[[Row], Any]] = None,
                 lookup: Optional[str] = None):
        if filter_type not in FILTER_TYPES:
            raise ValueError(f"filter_type must be one of {', '.join(FILTER_TYPES)}")
        self.key = key
        self.label = label or key.replace('_', ' ').capitalize()
        self.filter_type = filter_type
        self.options = list(options or [])
        self.accessor = accessor
        # ORM path used when filtering a queryset, e.g. 'category__name'
        self.lookup = lookup or key.replace('.', '__')

    def __repr__(self):
        return f"Column({self.key!r}, filter_type={self.filter_type!r})"

    @property
    def is_filterable(self) -> bool:
        return self.filter_type != FILTER_NONE

    def value(self, row: Row) -> Any:
        if self.accessor is not None:
            return self.accessor(row)
        value = row
        for part in self.key.split('.'):
            if value is None:
                return None
            if isinstance(value, dict):
                value = value.get(part)
            else:
                value = getattr(value, part, None)
        return value

    def matches(self, row: Row, wanted: str) -> bool:
        value = self.value(row)
        text = '' if value is None else str(value)
        if self.filter_type == FILTER_TEXT:
            return wanted.lower() in text.lower()
        if self.filter_type == FILTER_SELECT:
            return text == wanted
        return True

    def as_q(self, wanted: str) -> Q:
        if self.filter_type == FILTER_TEXT:
            return Q(**{f'{self.lookup}__icontains': wanted})
        if self.filter_type == FILTER_SELECT:
            return Q(**{self.lookup: wanted})
        return Q()

    def describe(self) -> Dict[str, Any]:
        data = {'key': self.key, 'label': self.label, 'filter_type': self.filter_type}
        if self.options:
            data['options'] = self.options
        return data


class TablePage(Generic[Row]):
    """One page of filtered rows plus the numbers a pager needs"""

    def __init__(self, items: List[Row], page: int, page_size: int, total_count: int):
        self.items = items
        self.page = page
        self.page_size = page_size
        self.total_count = total_count
        self.total_pages = math.ceil(total_count / page_size) if total_count else 0

    def __len__(self):
        return len(self.items)

    def __iter__(self):
        return iter(self.items)

    @property
    def has_next(self) -> bool:
        return self.page < self.total_pages

    @property
    def has_previous(self) -> bool:
        return self.page > 1

    @property
    def next_page(self) -> Optional[int]:
        return self.page + 1 if self.has_next else None

    @property
    def previous_page(self) -> Optional[int]:
        return self.page - 1 if self.has_previous else None

    @property
    def start_index(self) -> int:
        """1-based index of the first row on this page, 0 when empty"""
        if not self.items:
            return 0
        return (self.page - 1) * self.page_size + 1

    @property
    def end_index(self) -> int:
        if not self.items:
            return 0
        return self.start_index + len(self.items) - 1

    def as_dict(self, results) -> Dict[str, Any]:
        return {
            'results': results,
            'count': self.total_count,
            'next': self.next_page,
            'previous': self.previous_page,
            'page': self.page,
            'page_size': self.page_size,
            'total_pages': self.total_pages,
        }


class TableState:
    """Current page, page size and filters of one table view.

    Changing a filter or the page size sends the view back to page 1.
    """

    def __init__(self, page: int = 1, page_size: Optional[int] = None, filters: Optional[Dict[str, str]] = None):
        self.page = 1
        self.page_size = DEFAULT_PAGE_SIZE
        self.filters: Dict[str, str] = {}
        self.set_page_size(default_page_size() if page_size is None else page_size)
        self.set_page(page)
        for key, value in (filters or {}).items():
            if value not in (None, ''):
                self.filters[key] = str(value)

    def __repr__(self):
        return f"TableState(page={self.page}, page_size={self.page_size}, filters={self.filters!r})"

    def set_page(self, page: int):
        self.page = max(1, int(page))

    def set_page_size(self, page_size: int):
        page_size = int(page_size)
        if page_size not in PAGE_SIZE_OPTIONS:
            raise ValueError(f"page_size must be one of {', '.join(map(str, PAGE_SIZE_OPTIONS))}")
        self.page_size = page_size
        self.page = 1

    def set_filter(self, key: str, value: Optional[str]):
        if value in (None, ''):
            self.filters.pop(key, None)
        else:
            self.filters[key] = str(value)
        self.page = 1

    def clear_filters(self):
        self.filters = {}
        self.page = 1

    @classmethod
    def from_query_params(cls, params, table: 'Table', fallback_size: Optional[int] = None) -> 'TableState':
        """Build state from request query parameters (``page``, ``page_size``/``limit``, column keys)"""
        page_size = fallback_size or table.page_size
        raw_size = params.get('page_size') or params.get('limit')
        if raw_size:
            try:
                requested = int(raw_size)
            except (TypeError, ValueError):
                requested = None
            # Sizes outside the selector fall back to the table default
            if requested in PAGE_SIZE_OPTIONS:
                page_size = requested
        try:
            page = max(1, int(params.get('page', 1)))
        except (TypeError, ValueError):
            page = 1
        filters = {}
        for column in table.columns:
            if column.is_filterable:
                value = params.get(column.key)
                if value not in (None, ''):
                    filters[column.key] = value
        state = cls(page_size=page_size, filters=filters)
        state.set_page(page)
        return state


class Table(Generic[Row]):
    """Column declarations plus filter and paginate operations"""

    def __init__(self, columns: Iterable[Column], page_size: Optional[int] = None):
        self.columns: List[Column] = list(columns)
        self._by_key = {column.key: column for column in self.columns}
        if len(self._by_key) != len(self.columns):
            raise ValueError('column keys must be unique')
        if page_size is not None and page_size not in PAGE_SIZE_OPTIONS:
            raise ValueError(f"page_size must be one of {', '.join(map(str, PAGE_SIZE_OPTIONS))}")
        self.page_size = default_page_size() if page_size is None else page_size

    def column(self, key: str) -> Column:
        return self._by_key[key]

    def active_filters(self, filters: Dict[str, Any]) -> Dict[str, str]:
        """Drop empty values, unknown keys and display-only columns"""
        active = {}
        for key, value in (filters or {}).items():
            column = self._by_key.get(key)
            if column is None or not column.is_filterable:
                continue
            if value is None:
                continue
            value = str(value).strip()
            if value:
                active[key] = value
        return active

    def filter(self, rows: Union[QuerySet, Sequence[Row]], filters: Dict[str, Any]):
        active = self.active_filters(filters)
        if isinstance(rows, QuerySet):
            query = Q()
            for key, value in active.items():
                query &= self._by_key[key].as_q(value)
            return rows.filter(query) if active else rows
        if not active:
            return list(rows)
        return [
            row for row in rows
            if all(self._by_key[key].matches(row, value) for key, value in active.items())
        ]

    def paginate(self, rows: Union[QuerySet, Sequence[Row]], page: int = 1, page_size: Optional[int] = None) -> TablePage:
        page_size = page_size or self.page_size
        if page_size < 1:
            raise ValueError('page_size must be positive')
        paginator = Paginator(rows, page_size)
        total_count = paginator.count
        total_pages = math.ceil(total_count / page_size) if total_count else 0
        page = min(max(1, page), max(total_pages, 1))
        items = list(paginator.page(page).object_list)
        return TablePage(items, page, page_size, total_count)

    def run(self, rows, state: TableState) -> TablePage:
        return self.paginate(self.filter(rows, state.filters), state.page, state.page_size)

    def describe(self) -> List[Dict[str, Any]]:
        return [column.describe() for column in self.columns]


def table_response(request, table: Table, rows, serializer_class, serializer_context=None):
    """Filter, paginate and serialize ``rows`` into the standard list response"""
    state = TableState.from_query_params(request.query_params, table)
    page = table.run(rows, state)
    context = {'request': request}
    context.update(serializer_context or {})
    serializer = serializer_class(page.items, many=True, context=context)
    return Response(page.as_dict(serializer.data))
