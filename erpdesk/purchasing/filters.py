import django_filters
from django.db.models import Q
from .models import PurchaseBill, PurchasePayment, VendorProductPrice


class PurchaseBillFilter(django_filters.FilterSet):
    vendor = django_filters.NumberFilter(field_name='vendor_id')
    status = django_filters.ChoiceFilter(choices=PurchaseBill.STATUS_CHOICES)
    search = django_filters.CharFilter(method='filter_search', label='Search')
    date_from = django_filters.DateFilter(field_name='bill_date', lookup_expr='gte')
    date_to = django_filters.DateFilter(field_name='bill_date', lookup_expr='lte')

    class Meta:
        model = PurchaseBill
        fields = ['vendor', 'status', 'search', 'date_from', 'date_to']

    def filter_search(self, queryset, name, value):
        value = (value or '').strip()
        if not value:
            return queryset
        return queryset.filter(Q(bill_number__icontains=value) | Q(vendor__name__icontains=value))


class PurchasePaymentFilter(django_filters.FilterSet):
    vendor = django_filters.NumberFilter(field_name='vendor_id')
    bill = django_filters.NumberFilter(method='filter_bill', label='Bill ID')
    mode = django_filters.ChoiceFilter(choices=PurchasePayment.MODE_CHOICES)
    date_from = django_filters.DateFilter(field_name='payment_date', lookup_expr='gte')
    date_to = django_filters.DateFilter(field_name='payment_date', lookup_expr='lte')

    class Meta:
        model = PurchasePayment
        fields = ['vendor', 'bill', 'mode', 'date_from', 'date_to']

    def filter_bill(self, queryset, name, value):
        """Payments made against the bill or allocated to it"""
        return queryset.filter(Q(bill_id=value) | Q(allocations__bill_id=value)).distinct()


class VendorProductPriceFilter(django_filters.FilterSet):
    vendor_id = django_filters.NumberFilter(field_name='vendor_id')
    vendor = django_filters.NumberFilter(field_name='vendor_id')
    product = django_filters.NumberFilter(field_name='product_id')
    is_active = django_filters.BooleanFilter(field_name='is_active')
    is_preferred = django_filters.BooleanFilter(field_name='is_preferred')
    search = django_filters.CharFilter(method='filter_search', label='Search')

    class Meta:
        model = VendorProductPrice
        fields = ['vendor_id', 'vendor', 'product', 'is_active', 'is_preferred', 'search']

    def filter_search(self, queryset, name, value):
        value = (value or '').strip()
        if not value:
            return queryset
        return queryset.filter(
            Q(product__title__icontains=value)
            | Q(product__sku__icontains=value)
            | Q(vendor__name__icontains=value)
        )
