from django.contrib import admin
from .models import Vendor, VendorContact, VendorAddress, VendorBankDetail, CustomerGroup, Customer


class VendorContactInline(admin.TabularInline):
    model = VendorContact
    extra = 0


class VendorAddressInline(admin.TabularInline):
    model = VendorAddress
    extra = 0


class VendorBankDetailInline(admin.TabularInline):
    model = VendorBankDetail
    extra = 0


@admin.register(Vendor)
class VendorAdmin(admin.ModelAdmin):
    list_display = ['name', 'email', 'gst_number', 'priority', 'rating', 'is_active', 'created_at']
    list_filter = ['is_active', 'priority', 'created_at']
    search_fields = ['name', 'email', 'gst_number']
    ordering = ['name']
    inlines = [VendorContactInline, VendorAddressInline, VendorBankDetailInline]


@admin.register(CustomerGroup)
class CustomerGroupAdmin(admin.ModelAdmin):
    list_display = ['name', 'discount_percentage', 'is_active', 'created_at']
    list_filter = ['is_active', 'created_at']
    search_fields = ['name']
    ordering = ['name']


@admin.register(Customer)
class CustomerAdmin(admin.ModelAdmin):
    list_display = ['name', 'phone', 'whatsapp_number', 'email', 'customer_group', 'is_active', 'created_at']
    list_filter = ['is_active', 'customer_group', 'created_at']
    search_fields = ['name', 'phone', 'whatsapp_number', 'email', 'gst_id']
    ordering = ['name']
