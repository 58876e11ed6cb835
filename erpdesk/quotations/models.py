from django.db import models
from decimal import Decimal
from erpdesk.catalog.models import Product, CarMaker, CarModel, CarVariant
from erpdesk.parties.models import Customer
from erpdesk.core.models import User


class Quotation(models.Model):
    """Price quotation for a customer, optionally for a specific vehicle"""
    STATUS_CHOICES = [
        ('draft', 'Draft'),
        ('sent', 'Sent'),
        ('accepted', 'Accepted'),
        ('rejected', 'Rejected'),
        ('expired', 'Expired'),
    ]

    quotation_number = models.CharField(max_length=50, unique=True)
    customer = models.ForeignKey(Customer, on_delete=models.SET_NULL, null=True, blank=True, related_name='quotations')
    vehicle_maker = models.ForeignKey(CarMaker, on_delete=models.SET_NULL, null=True, blank=True, related_name='quotations')
    vehicle_model = models.ForeignKey(CarModel, on_delete=models.SET_NULL, null=True, blank=True, related_name='quotations')
    vehicle_variant = models.ForeignKey(CarVariant, on_delete=models.SET_NULL, null=True, blank=True, related_name='quotations')
    vehicle_year = models.PositiveIntegerField(null=True, blank=True)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='draft', db_index=True)
    notes = models.TextField(blank=True)
    total_amount = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal('0.00'))
    created_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name='quotations')
    sent_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True, db_index=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.quotation_number

    class Meta:
        db_table = 'quotations'
        ordering = ['-created_at', '-id']


class QuotationItem(models.Model):
    quotation = models.ForeignKey(Quotation, on_delete=models.CASCADE, related_name='items')
    product = models.ForeignKey(Product, on_delete=models.SET_NULL, null=True, blank=True, related_name='quotation_items')
    item_name = models.CharField(max_length=255, blank=True)
    quantity = models.DecimalField(max_digits=12, decimal_places=3, default=Decimal('1'))
    price = models.DecimalField(max_digits=12, decimal_places=2)
    total = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal('0.00'))

    def __str__(self):
        return f"{self.item_name or self.product} x {self.quantity}"

    class Meta:
        db_table = 'quotation_items'
        ordering = ['id']
