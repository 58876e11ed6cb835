from datetime import timedelta
from decimal import Decimal

from django.conf import settings
from django.db import models
from django.db.models import Q
from django.utils import timezone
from django.utils.text import slugify


class Category(models.Model):
    """Product categories"""
    name = models.CharField(max_length=200, db_index=True)
    parent = models.ForeignKey('self', on_delete=models.SET_NULL, null=True, blank=True, related_name='children')
    description = models.TextField(blank=True)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.name

    class Meta:
        db_table = 'categories'
        verbose_name_plural = 'categories'
        ordering = ['name']


class Brand(models.Model):
    """Product brands"""
    name = models.CharField(max_length=200, unique=True)
    description = models.TextField(blank=True)
    logo = models.ImageField(upload_to='brands/', blank=True, null=True)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.name

    class Meta:
        db_table = 'brands'
        ordering = ['name']


class Tag(models.Model):
    name = models.CharField(max_length=100, unique=True)
    ref_name = models.SlugField(max_length=120, unique=True, blank=True)
    description = models.TextField(blank=True)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)

    def save(self, *args, **kwargs):
        if not self.ref_name:
            self.ref_name = slugify(self.name)
        super().save(*args, **kwargs)

    def __str__(self):
        return self.name

    class Meta:
        db_table = 'tags'
        ordering = ['name']


class CarMaker(models.Model):
    """Vehicle manufacturer (Maruti, Hyundai, ...)"""
    name = models.CharField(max_length=100, unique=True)
    slug = models.SlugField(max_length=120, unique=True, blank=True)
    image = models.ImageField(upload_to='car_makers/', blank=True, null=True)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def save(self, *args, **kwargs):
        if not self.slug:
            self.slug = slugify(self.name)
        super().save(*args, **kwargs)

    def __str__(self):
        return self.name

    class Meta:
        db_table = 'car_makers'
        ordering = ['name']


class CarModel(models.Model):
    name = models.CharField(max_length=100)
    slug = models.SlugField(max_length=120, blank=True)
    car_maker = models.ForeignKey(CarMaker, on_delete=models.CASCADE, related_name='models')
    image = models.ImageField(upload_to='car_models/', blank=True, null=True)
    created_at = models.DateTimeField(auto_now_add=True)

    def save(self, *args, **kwargs):
        if not self.slug:
            self.slug = slugify(self.name)
        super().save(*args, **kwargs)

    def __str__(self):
        return f"{self.car_maker.name} {self.name}"

    class Meta:
        db_table = 'car_models'
        ordering = ['car_maker__name', 'name']
        unique_together = [['car_maker', 'name']]


class CarVariant(models.Model):
    """A concrete model variant, e.g. Swift VXi 1.2 Petrol (2018-2023)"""
    FUEL_CHOICES = [
        ('petrol', 'Petrol'),
        ('diesel', 'Diesel'),
        ('cng', 'CNG'),
        ('electric', 'Electric'),
        ('hybrid', 'Hybrid'),
    ]

    name = models.CharField(max_length=150)
    model = models.ForeignKey(CarModel, on_delete=models.CASCADE, related_name='variants')
    # Denormalised from model for maker-level filtering
    car_maker = models.ForeignKey(CarMaker, on_delete=models.CASCADE, related_name='variants')
    year_start = models.PositiveIntegerField(null=True, blank=True)
    year_end = models.PositiveIntegerField(null=True, blank=True)
    engine_liters = models.DecimalField(max_digits=4, decimal_places=1, null=True, blank=True)
    engine_type = models.CharField(max_length=50, blank=True)
    engine_power = models.PositiveIntegerField(null=True, blank=True)
    fuel_engine = models.CharField(max_length=20, choices=FUEL_CHOICES, blank=True)
    body_type = models.CharField(max_length=50, blank=True)
    vehicle_type = models.CharField(max_length=50, blank=True)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def save(self, *args, **kwargs):
        if self.model_id and not self.car_maker_id:
            self.car_maker_id = self.model.car_maker_id
        super().save(*args, **kwargs)

    @property
    def year_label(self):
        if self.year_start and self.year_end:
            return f"{self.year_start}-{self.year_end}"
        if self.year_start:
            return f"{self.year_start}+"
        return ''

    def __str__(self):
        label = f"{self.model.name} {self.name}"
        return f"{label} ({self.year_label})" if self.year_label else label

    class Meta:
        db_table = 'car_variants'
        ordering = ['car_maker__name', 'model__name', 'name']


class CompatibilityGroup(models.Model):
    """Named set of vehicle variants a product can be mapped to as a whole"""
    name = models.CharField(max_length=200)
    description = models.TextField(blank=True)
    car_maker = models.ForeignKey(CarMaker, on_delete=models.SET_NULL, null=True, blank=True, related_name='compatibility_groups')
    variants = models.ManyToManyField(CarVariant, related_name='compatibility_groups', blank=True)
    year_start = models.PositiveIntegerField(null=True, blank=True)
    year_end = models.PositiveIntegerField(null=True, blank=True)
    fuel_engine = models.CharField(max_length=20, choices=CarVariant.FUEL_CHOICES, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.name

    @property
    def is_mapped(self):
        return self.products.exists()

    class Meta:
        db_table = 'compatibility_groups'
        ordering = ['name']


class ProductQuerySet(models.QuerySet):
    def compatible_with(self, variant):
        """Products usable on `variant`: general ones, direct variant links or a group containing it"""
        return self.filter(
            Q(is_general_product=True)
            | Q(compatible_variants=variant)
            | Q(compatibility_group__variants=variant)
        ).distinct()

    def low_stock(self):
        return self.filter(stock__lte=models.F('low_stock_threshold'))


class Product(models.Model):
    """Product master"""
    title = models.CharField(max_length=255, db_index=True)
    sku = models.CharField(max_length=100, unique=True, blank=True, null=True, db_index=True)
    description = models.TextField(blank=True)
    category = models.ForeignKey(Category, on_delete=models.SET_NULL, null=True, blank=True, related_name='products')
    brand = models.ForeignKey(Brand, on_delete=models.SET_NULL, null=True, blank=True, related_name='products')
    tags = models.ManyToManyField(Tag, related_name='products', blank=True)
    hsn_code = models.CharField(max_length=20, blank=True)
    barcode = models.CharField(max_length=100, blank=True, db_index=True)
    price = models.DecimalField(max_digits=12, decimal_places=2, help_text="MRP")
    purchase_price = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)
    discounted_price = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)
    discount_percentage = models.DecimalField(max_digits=5, decimal_places=2, null=True, blank=True)
    taxes = models.DecimalField(max_digits=5, decimal_places=2, default=Decimal('18.00'), help_text="GST %")
    stock = models.IntegerField(default=0)
    low_stock_threshold = models.IntegerField(default=5)
    is_active = models.BooleanField(default=True, db_index=True)
    is_available = models.BooleanField(default=True)
    bulk_order_available = models.BooleanField(default=False)
    is_cod = models.BooleanField(default=True)
    lead_time = models.PositiveIntegerField(null=True, blank=True, help_text="Days")
    rating = models.DecimalField(max_digits=3, decimal_places=2, null=True, blank=True)
    image = models.ImageField(upload_to='products/', blank=True, null=True)
    # Vehicle compatibility: general, one group, or an explicit variant list
    is_general_product = models.BooleanField(default=False)
    compatibility_group = models.ForeignKey(CompatibilityGroup, on_delete=models.SET_NULL, null=True, blank=True, related_name='products')
    compatible_variants = models.ManyToManyField(CarVariant, related_name='products', blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = ProductQuerySet.as_manager()

    def __str__(self):
        return f"{self.title} ({self.sku or 'NO-SKU'})"

    def save(self, *args, **kwargs):
        super().save(*args, **kwargs)
        if not self.sku:
            self.sku = f"{self.get_sku_prefix()}-{str(self.pk).zfill(5)}"
            super().save(update_fields=['sku'])

    def get_sku_prefix(self):
        """Three-letter prefix from the category (or brand) name"""
        source = (self.category.name if self.category else None) or (self.brand.name if self.brand else None) or 'PRD'
        letters = ''.join(ch for ch in source.upper() if ch.isalnum())
        return (letters[:3] or 'PRD').ljust(3, 'X')

    @property
    def selling_price(self):
        """Discounted price when set, otherwise MRP"""
        return self.discounted_price if self.discounted_price is not None else self.price

    @property
    def is_low_stock(self):
        return self.stock <= self.low_stock_threshold

    @property
    def compatibility_mode(self):
        if self.is_general_product:
            return 'general'
        if self.compatibility_group_id:
            return 'group'
        return 'variants'

    def is_compatible_with(self, variant):
        if self.is_general_product:
            return True
        variant_id = getattr(variant, 'pk', variant)
        if self.compatible_variants.filter(pk=variant_id).exists():
            return True
        return bool(self.compatibility_group_id) and self.compatibility_group.variants.filter(pk=variant_id).exists()

    def compatibility_label(self):
        """Short human text used on labels and exports"""
        if self.is_general_product:
            return 'Universal'
        if self.compatibility_group_id:
            return self.compatibility_group.name
        return ', '.join(str(variant) for variant in self.compatible_variants.select_related('model'))

    class Meta:
        db_table = 'products'
        ordering = ['-updated_at', '-created_at']


class ProductImage(models.Model):
    """Additional product images"""
    product = models.ForeignKey(Product, on_delete=models.CASCADE, related_name='additional_images')
    image = models.ImageField(upload_to='products/additional/')
    sort_order = models.PositiveIntegerField(default=0)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'product_images'
        ordering = ['sort_order', 'id']


class ExportJob(models.Model):
    """History of CSV exports (label sheets, vendor price lists)"""
    KIND_CHOICES = [
        ('labels', 'Product Labels'),
        ('vendor_prices', 'Vendor Product Prices'),
    ]
    STATUS_CHOICES = [
        ('PENDING', 'Pending'),
        ('PROGRESS', 'In Progress'),
        ('SUCCESS', 'Success'),
        ('FAILURE', 'Failure'),
    ]
    FORMAT_CHOICES = [
        ('csv', 'CSV'),
    ]

    kind = models.CharField(max_length=30, choices=KIND_CHOICES)
    format = models.CharField(max_length=10, choices=FORMAT_CHOICES, default='csv')
    status = models.CharField(max_length=10, choices=STATUS_CHOICES, default='PENDING')
    file_name = models.CharField(max_length=255, blank=True)
    file = models.FileField(upload_to='exports/', blank=True, null=True)
    row_count = models.PositiveIntegerField(default=0)
    parameters = models.JSONField(default=dict, blank=True)
    error = models.TextField(blank=True)
    created_by = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name='export_jobs')
    created_at = models.DateTimeField(auto_now_add=True)
    completed_at = models.DateTimeField(null=True, blank=True)

    def __str__(self):
        return f"{self.get_kind_display()} export #{self.pk} ({self.status})"

    @property
    def is_expired(self):
        retention = timedelta(days=getattr(settings, 'EXPORT_RETENTION_DAYS', 7))
        return self.created_at is not None and timezone.now() - self.created_at > retention

    class Meta:
        db_table = 'export_jobs'
        ordering = ['-created_at']
