import django_filters
from django.db.models import Q, F
from .models import Product, CompatibilityGroup


def _truthy(value):
    if isinstance(value, str):
        return value.strip().lower() in ('true', '1', 'yes')
    return bool(value)


class ProductFilter(django_filters.FilterSet):
    """Advanced filter for Product model using django-filter"""

    # Basic search - searches across title, SKU, HSN, barcode, brand, category
    search = django_filters.CharFilter(method='filter_search', label='Search')

    # Direct field filters
    category = django_filters.NumberFilter(field_name='category_id', lookup_expr='exact')
    brand = django_filters.NumberFilter(field_name='brand_id', lookup_expr='exact')
    tag = django_filters.NumberFilter(field_name='tags', lookup_expr='exact', distinct=True)
    is_active = django_filters.CharFilter(method='filter_is_active', label='Active')
    is_general_product = django_filters.BooleanFilter(field_name='is_general_product')
    compatibility_group = django_filters.NumberFilter(field_name='compatibility_group_id')
    low_stock = django_filters.CharFilter(method='filter_low_stock', label='Low Stock')

    # Vendor filter (through vendor price list)
    vendor = django_filters.NumberFilter(method='filter_vendor', label='Vendor ID')

    # Vehicle fitment
    variant = django_filters.NumberFilter(method='filter_variant', label='Compatible with variant')

    ordering = django_filters.OrderingFilter(
        fields=(
            ('title', 'title'),
            ('price', 'price'),
            ('stock', 'stock'),
            ('created_at', 'created_at'),
            ('updated_at', 'updated_at'),
        )
    )

    class Meta:
        model = Product
        fields = ['search', 'category', 'brand', 'tag', 'is_active', 'is_general_product',
                  'compatibility_group', 'low_stock', 'vendor', 'variant']

    def filter_search(self, queryset, name, value):
        """Every word must appear in at least one searchable field"""
        if not value or not value.strip():
            return queryset
        for word in value.split():
            queryset = queryset.filter(
                Q(title__icontains=word)
                | Q(sku__icontains=word)
                | Q(hsn_code__icontains=word)
                | Q(barcode__icontains=word)
                | Q(brand__name__icontains=word)
                | Q(category__name__icontains=word)
            )
        return queryset.distinct()

    def filter_is_active(self, queryset, name, value):
        if value in (None, ''):
            return queryset
        return queryset.filter(is_active=_truthy(value))

    def filter_low_stock(self, queryset, name, value):
        """Filter products at or below their low stock threshold"""
        if value in (None, '') or not _truthy(value):
            return queryset
        return queryset.filter(stock__lte=F('low_stock_threshold'))

    def filter_vendor(self, queryset, name, value):
        if not value:
            return queryset
        return queryset.filter(vendor_prices__vendor_id=value).distinct()

    def filter_variant(self, queryset, name, value):
        if not value:
            return queryset
        return queryset.compatible_with(int(value))


class CompatibilityGroupFilter(django_filters.FilterSet):
    search = django_filters.CharFilter(method='filter_search', label='Search')
    car_maker = django_filters.NumberFilter(field_name='car_maker_id')
    variant = django_filters.NumberFilter(field_name='variants', distinct=True)
    is_mapped = django_filters.CharFilter(method='filter_is_mapped', label='Mapped')

    class Meta:
        model = CompatibilityGroup
        fields = ['search', 'car_maker', 'variant', 'is_mapped']

    def filter_search(self, queryset, name, value):
        if not value or not value.strip():
            return queryset
        value = value.strip()
        return queryset.filter(Q(name__icontains=value) | Q(description__icontains=value))

    def filter_is_mapped(self, queryset, name, value):
        if value in (None, ''):
            return queryset
        if _truthy(value):
            return queryset.filter(products__isnull=False).distinct()
        return queryset.filter(products__isnull=True)
