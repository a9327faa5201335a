import django_filters
from django.db.models import F, Q
from .models import Product


def _is_true(value):
    if isinstance(value, str):
        return value.lower() == 'true'
    return bool(value)


class ProductFilter(django_filters.FilterSet):
    """Product filters used by the product list and the POS search"""

    # Basic search - searches across name, barcode, description and category
    search = django_filters.CharFilter(method='filter_search', label='Search')

    category = django_filters.NumberFilter(field_name='category_id', lookup_expr='exact')
    active = django_filters.CharFilter(method='filter_active', label='Active')
    min_price = django_filters.NumberFilter(field_name='price', lookup_expr='gte')
    max_price = django_filters.NumberFilter(field_name='price', lookup_expr='lte')

    # Stock status filters
    in_stock = django_filters.CharFilter(method='filter_in_stock', label='In Stock')
    low_stock = django_filters.CharFilter(method='filter_low_stock', label='Low Stock')
    out_of_stock = django_filters.CharFilter(method='filter_out_of_stock', label='Out of Stock')

    class Meta:
        model = Product
        fields = ['search', 'category', 'active', 'min_price', 'max_price', 'in_stock', 'low_stock', 'out_of_stock']

    def filter_search(self, queryset, name, value):
        """Every word must appear in the name, barcode, description or category"""
        words = value.split() if value else []
        for word in words:
            queryset = queryset.filter(
                Q(name__icontains=word) | Q(barcode__icontains=word) |
                Q(description__icontains=word) | Q(category__name__icontains=word)
            )
        return queryset

    def filter_active(self, queryset, name, value):
        """Filter by active status (handles string 'true'/'false')"""
        if value is None or value == '':
            return queryset
        return queryset.filter(is_active=_is_true(value))

    def filter_in_stock(self, queryset, name, value):
        if value is None or value == '' or not _is_true(value):
            return queryset
        return queryset.filter(stock__gt=0)

    def filter_low_stock(self, queryset, name, value):
        """Stock below the product's own threshold (out-of-stock included)"""
        if value is None or value == '' or not _is_true(value):
            return queryset
        return queryset.filter(stock__lt=F('low_stock_threshold'))

    def filter_out_of_stock(self, queryset, name, value):
        if value is None or value == '' or not _is_true(value):
            return queryset
        return queryset.filter(stock__lte=0)
