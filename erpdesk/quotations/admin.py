from django.contrib import admin
from .models import Quotation, QuotationItem


class QuotationItemInline(admin.TabularInline):
    model = QuotationItem
    extra = 0


@admin.register(Quotation)
class QuotationAdmin(admin.ModelAdmin):
    list_display = ['quotation_number', 'customer', 'status', 'total_amount', 'sent_at', 'created_at']
    list_filter = ['status', 'created_at']
    search_fields = ['quotation_number', 'customer__name', 'customer__phone']
    readonly_fields = ['quotation_number', 'total_amount', 'sent_at', 'created_at']
    inlines = [QuotationItemInline]
