from django.db import models
from decimal import Decimal


class Vendor(models.Model):
    """Suppliers we raise purchase bills against"""
    PRIORITY_CHOICES = [
        ('low', 'Low'),
        ('medium', 'Medium'),
        ('high', 'High'),
    ]

    name = models.CharField(max_length=200, db_index=True)
    email = models.EmailField()
    gst_number = models.CharField(max_length=20, blank=True)
    priority = models.CharField(max_length=10, choices=PRIORITY_CHOICES, default='medium')
    rating = models.DecimalField(max_digits=3, decimal_places=1, null=True, blank=True)
    notes = models.TextField(blank=True)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.name

    class Meta:
        db_table = 'vendors'
        ordering = ['name']


class VendorContact(models.Model):
    vendor = models.ForeignKey(Vendor, on_delete=models.CASCADE, related_name='contacts')
    name = models.CharField(max_length=200)
    mobile_number = models.CharField(max_length=20)
    email = models.EmailField(blank=True)
    designation = models.CharField(max_length=100, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return f"{self.name} ({self.mobile_number})"

    class Meta:
        db_table = 'vendor_contacts'
        ordering = ['id']


class VendorAddress(models.Model):
    vendor = models.ForeignKey(Vendor, on_delete=models.CASCADE, related_name='addresses')
    address = models.TextField()
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return self.address[:50]

    class Meta:
        db_table = 'vendor_addresses'
        ordering = ['id']
        verbose_name_plural = 'vendor addresses'


class VendorBankDetail(models.Model):
    vendor = models.ForeignKey(Vendor, on_delete=models.CASCADE, related_name='bank_details')
    bank_name = models.CharField(max_length=200)
    ifsc_code = models.CharField(max_length=20)
    branch = models.CharField(max_length=200)
    account_number = models.CharField(max_length=40)
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return f"{self.bank_name} ****{self.account_number[-4:]}"

    class Meta:
        db_table = 'vendor_bank_details'
        ordering = ['id']


class CustomerGroup(models.Model):
    """Customer groups for pricing"""
    name = models.CharField(max_length=200, unique=True)
    description = models.TextField(blank=True)
    discount_percentage = models.DecimalField(max_digits=5, decimal_places=2, default=Decimal('0.00'))
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.name

    class Meta:
        db_table = 'customer_groups'
        ordering = ['name']


class Customer(models.Model):
    """Customers"""
    name = models.CharField(max_length=200)
    phone = models.CharField(max_length=20, unique=True, blank=True, null=True)
    whatsapp_number = models.CharField(max_length=20, blank=True)
    email = models.EmailField(blank=True)
    address = models.TextField(blank=True)
    gst_id = models.CharField(max_length=20, blank=True)
    customer_group = models.ForeignKey(CustomerGroup, on_delete=models.SET_NULL, null=True, blank=True, related_name='customers')
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.name

    @property
    def messaging_number(self):
        """Number quotations are sent to: WhatsApp number first, phone otherwise"""
        return self.whatsapp_number or self.phone or ''

    class Meta:
        db_table = 'customers'
        ordering = ['name']
