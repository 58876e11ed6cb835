from django.contrib import admin
from .models import CustomerProductPrice, CustomerProductPriceTier, CustomerProductPriceHistory


class CustomerProductPriceTierInline(admin.TabularInline):
    model = CustomerProductPriceTier
    extra = 0


@admin.register(CustomerProductPrice)
class CustomerProductPriceAdmin(admin.ModelAdmin):
    list_display = ['customer', 'product', 'selling_price', 'discount_percentage', 'is_active', 'updated_at']
    list_filter = ['is_active']
    search_fields = ['customer__name', 'customer__phone', 'product__title', 'product__sku']
    inlines = [CustomerProductPriceTierInline]


@admin.register(CustomerProductPriceHistory)
class CustomerProductPriceHistoryAdmin(admin.ModelAdmin):
    list_display = ['customer', 'product', 'selling_price', 'discount_percentage', 'changed_by', 'created_at']
    search_fields = ['customer__name', 'product__title']
    readonly_fields = ['created_at']
