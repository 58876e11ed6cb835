from django.contrib import admin
from .models import (
    PurchaseBill, PurchaseBillItem, PurchasePayment, PaymentAllocation,
    VendorProductPrice, VendorProductPriceHistory,
)


class PurchaseBillItemInline(admin.TabularInline):
    model = PurchaseBillItem
    extra = 0


class PaymentAllocationInline(admin.TabularInline):
    model = PaymentAllocation
    extra = 0


@admin.register(PurchaseBill)
class PurchaseBillAdmin(admin.ModelAdmin):
    list_display = ['bill_number', 'vendor', 'bill_date', 'total_amount', 'paid_amount', 'outstanding_amount', 'status']
    list_filter = ['status', 'bill_date', 'vendor']
    search_fields = ['bill_number', 'vendor__name']
    readonly_fields = ['subtotal', 'total_gst', 'total_amount', 'paid_amount', 'outstanding_amount', 'status', 'created_at']
    inlines = [PurchaseBillItemInline]


@admin.register(PurchasePayment)
class PurchasePaymentAdmin(admin.ModelAdmin):
    list_display = ['vendor', 'bill', 'amount', 'payment_date', 'mode', 'created_by']
    list_filter = ['mode', 'payment_date']
    search_fields = ['vendor__name', 'bill__bill_number', 'note']
    inlines = [PaymentAllocationInline]


class VendorProductPriceHistoryInline(admin.TabularInline):
    model = VendorProductPriceHistory
    extra = 0
    readonly_fields = ['purchase_price', 'effective_from', 'effective_to', 'changed_by', 'created_at']


@admin.register(VendorProductPrice)
class VendorProductPriceAdmin(admin.ModelAdmin):
    list_display = ['product', 'vendor', 'purchase_price', 'is_preferred', 'is_active', 'effective_from']
    list_filter = ['is_preferred', 'is_active', 'vendor']
    search_fields = ['product__title', 'product__sku', 'vendor__name']
    inlines = [VendorProductPriceHistoryInline]
