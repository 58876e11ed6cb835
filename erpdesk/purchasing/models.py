from django.db import models
from django.db.models import Sum
from django.utils import timezone
from decimal import Decimal
from erpdesk.catalog.models import Product
from erpdesk.parties.models import Vendor
from erpdesk.core.models import User


class PurchaseBill(models.Model):
    """Bill/Invoice received from a vendor"""
    STATUS_CHOICES = [
        ('outstanding', 'Outstanding'),
        ('partial', 'Partially Paid'),
        ('paid', 'Paid'),
    ]

    vendor = models.ForeignKey(Vendor, on_delete=models.PROTECT, related_name='bills')
    bill_number = models.CharField(max_length=100, blank=True)
    bill_date = models.DateField()
    discount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    notes = models.TextField(blank=True)
    attachment = models.FileField(upload_to='bills/', blank=True, null=True)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='outstanding', db_index=True)
    # Stored totals, refreshed by services.recalculate_bill
    subtotal = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal('0.00'))
    total_gst = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal('0.00'))
    total_amount = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal('0.00'))
    paid_amount = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal('0.00'))
    outstanding_amount = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal('0.00'))
    created_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name='purchase_bills')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.bill_number or f"Bill-{self.id}"

    def get_allocated_amount(self):
        return self.allocations.aggregate(total=Sum('amount'))['total'] or Decimal('0')

    class Meta:
        db_table = 'purchase_bills'
        ordering = ['-bill_date', '-id']
        constraints = [
            models.UniqueConstraint(fields=['vendor', 'bill_number'], name='unique_vendor_bill_number'),
        ]


class PurchaseBillItem(models.Model):
    """Line of a purchase bill"""
    bill = models.ForeignKey(PurchaseBill, on_delete=models.CASCADE, related_name='items')
    product = models.ForeignKey(Product, on_delete=models.SET_NULL, null=True, blank=True, related_name='purchase_bill_items')
    item_name = models.CharField(max_length=255, blank=True)
    quantity = models.DecimalField(max_digits=12, decimal_places=3)
    purchase_price = models.DecimalField(max_digits=12, decimal_places=2)
    gst_percent = models.DecimalField(max_digits=5, decimal_places=2, default=Decimal('18.00'))
    gst_amount = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal('0.00'))
    total = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal('0.00'))

    def __str__(self):
        return f"{self.item_name or self.product} x {self.quantity}"

    def get_subtotal(self):
        return self.quantity * self.purchase_price

    class Meta:
        db_table = 'purchase_bill_items'
        ordering = ['id']


class PurchasePayment(models.Model):
    """Money paid to a vendor, either against one bill or on account"""
    MODE_CHOICES = [
        ('Cash', 'Cash'),
        ('Bank', 'Bank Transfer'),
        ('UPI', 'UPI'),
        ('Cheque', 'Cheque'),
        ('Credit', 'Credit'),
    ]

    vendor = models.ForeignKey(Vendor, on_delete=models.PROTECT, related_name='payments')
    bill = models.ForeignKey(PurchaseBill, on_delete=models.SET_NULL, null=True, blank=True, related_name='payments')
    amount = models.DecimalField(max_digits=14, decimal_places=2)
    payment_date = models.DateField(default=timezone.localdate)
    mode = models.CharField(max_length=20, choices=MODE_CHOICES, default='Cash')
    note = models.TextField(blank=True)
    attachment = models.ImageField(upload_to='payments/', blank=True, null=True)
    created_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name='purchase_payments')
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return f"{self.vendor} - {self.amount} ({self.mode})"

    @property
    def allocated_amount(self):
        return self.allocations.aggregate(total=Sum('amount'))['total'] or Decimal('0')

    @property
    def unallocated_amount(self):
        return self.amount - self.allocated_amount

    class Meta:
        db_table = 'purchase_payments'
        ordering = ['-payment_date', '-id']


class PaymentAllocation(models.Model):
    """Part of a payment applied to a bill"""
    payment = models.ForeignKey(PurchasePayment, on_delete=models.CASCADE, related_name='allocations')
    bill = models.ForeignKey(PurchaseBill, on_delete=models.CASCADE, related_name='allocations')
    amount = models.DecimalField(max_digits=14, decimal_places=2)
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return f"{self.amount} of payment {self.payment_id} -> {self.bill}"

    class Meta:
        db_table = 'payment_allocations'
        ordering = ['id']


class VendorProductPrice(models.Model):
    """Price a vendor charges us for a product"""
    vendor = models.ForeignKey(Vendor, on_delete=models.CASCADE, related_name='product_prices')
    product = models.ForeignKey(Product, on_delete=models.CASCADE, related_name='vendor_prices')
    purchase_price = models.DecimalField(max_digits=12, decimal_places=2)
    minimum_order_quantity = models.DecimalField(max_digits=12, decimal_places=3, default=Decimal('1'))
    lead_time_days = models.PositiveIntegerField(null=True, blank=True)
    is_preferred = models.BooleanField(default=False)
    is_active = models.BooleanField(default=True)
    effective_from = models.DateField(default=timezone.localdate)
    notes = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.vendor} / {self.product.title}: {self.purchase_price}"

    class Meta:
        db_table = 'vendor_product_prices'
        ordering = ['product__title', 'vendor__name']
        unique_together = [['vendor', 'product']]


class VendorProductPriceHistory(models.Model):
    """One row per price period; effective_to is NULL for the current price"""
    price = models.ForeignKey(VendorProductPrice, on_delete=models.CASCADE, related_name='history')
    purchase_price = models.DecimalField(max_digits=12, decimal_places=2)
    effective_from = models.DateField()
    effective_to = models.DateField(null=True, blank=True)
    changed_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name='vendor_price_changes')
    notes = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'vendor_product_price_history'
        ordering = ['-effective_from', '-id']
