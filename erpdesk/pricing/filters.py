import django_filters
from django.db.models import Q
from .models import CustomerProductPrice


class CustomerProductPriceFilter(django_filters.FilterSet):
    customer = django_filters.NumberFilter(field_name='customer_id')
    product = django_filters.NumberFilter(field_name='product_id')
    is_active = django_filters.BooleanFilter(field_name='is_active')
    search = django_filters.CharFilter(method='filter_search', label='Search')

    class Meta:
        model = CustomerProductPrice
        fields = ['customer', 'product', 'is_active', 'search']

    def filter_search(self, queryset, name, value):
        """Every word must match the customer or the product"""
        if not value or not value.strip():
            return queryset
        for word in value.split():
            queryset = queryset.filter(
                Q(customer__name__icontains=word)
                | Q(customer__phone__icontains=word)
                | Q(product__title__icontains=word)
                | Q(product__sku__icontains=word)
            )
        return queryset
