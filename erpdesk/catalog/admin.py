from django.contrib import admin
from .models import (
    Category, Brand, Tag, Product, ProductImage,
    CarMaker, CarModel, CarVariant, CompatibilityGroup, ExportJob,
)


@admin.register(Category)
class CategoryAdmin(admin.ModelAdmin):
    list_display = ['name', 'parent', 'is_active', 'created_at']
    list_filter = ['is_active']
    search_fields = ['name']
    ordering = ['name']


@admin.register(Brand)
class BrandAdmin(admin.ModelAdmin):
    list_display = ['name', 'is_active', 'created_at']
    list_filter = ['is_active']
    search_fields = ['name']
    ordering = ['name']


@admin.register(Tag)
class TagAdmin(admin.ModelAdmin):
    list_display = ['name', 'ref_name', 'is_active']
    search_fields = ['name', 'ref_name']


class ProductImageInline(admin.TabularInline):
    model = ProductImage
    extra = 0


@admin.register(Product)
class ProductAdmin(admin.ModelAdmin):
    list_display = ['title', 'sku', 'category', 'brand', 'price', 'discounted_price', 'stock', 'is_general_product', 'is_active']
    list_filter = ['is_active', 'is_general_product', 'category', 'brand']
    search_fields = ['title', 'sku', 'barcode', 'hsn_code']
    filter_horizontal = ['tags', 'compatible_variants']
    raw_id_fields = ['compatibility_group']
    inlines = [ProductImageInline]
    ordering = ['title']


@admin.register(CarMaker)
class CarMakerAdmin(admin.ModelAdmin):
    list_display = ['name', 'slug', 'is_active']
    list_filter = ['is_active']
    search_fields = ['name']
    prepopulated_fields = {'slug': ('name',)}


@admin.register(CarModel)
class CarModelAdmin(admin.ModelAdmin):
    list_display = ['name', 'car_maker']
    list_filter = ['car_maker']
    search_fields = ['name', 'car_maker__name']


@admin.register(CarVariant)
class CarVariantAdmin(admin.ModelAdmin):
    list_display = ['name', 'model', 'car_maker', 'year_start', 'year_end', 'fuel_engine', 'is_active']
    list_filter = ['car_maker', 'fuel_engine', 'is_active']
    search_fields = ['name', 'model__name', 'car_maker__name']


@admin.register(CompatibilityGroup)
class CompatibilityGroupAdmin(admin.ModelAdmin):
    list_display = ['name', 'car_maker', 'year_start', 'year_end', 'fuel_engine', 'created_at']
    list_filter = ['car_maker', 'fuel_engine']
    search_fields = ['name', 'description']
    filter_horizontal = ['variants']


@admin.register(ExportJob)
class ExportJobAdmin(admin.ModelAdmin):
    list_display = ['id', 'kind', 'format', 'status', 'row_count', 'created_by', 'created_at', 'completed_at']
    list_filter = ['kind', 'status', 'format']
    readonly_fields = ['created_at', 'completed_at']
    ordering = ['-created_at']
