from django.db import models
from erpdesk.catalog.models import Product
from erpdesk.parties.models import Customer
from erpdesk.core.models import User


class CustomerProductPrice(models.Model):
    """Negotiated price of a product for one customer"""
    customer = models.ForeignKey(Customer, on_delete=models.CASCADE, related_name='product_prices')
    product = models.ForeignKey(Product, on_delete=models.CASCADE, related_name='customer_prices')
    selling_price = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)
    discount_percentage = models.DecimalField(max_digits=5, decimal_places=2, null=True, blank=True)
    is_active = models.BooleanField(default=True)
    notes = models.TextField(blank=True)
    created_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name='customer_prices')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.customer.name} / {self.product.title}"

    class Meta:
        db_table = 'customer_product_prices'
        ordering = ['-updated_at']
        unique_together = [['customer', 'product']]


class CustomerProductPriceTier(models.Model):
    """Quantity break on a customer price; max_quantity NULL means open-ended"""
    price = models.ForeignKey(CustomerProductPrice, on_delete=models.CASCADE, related_name='price_tiers')
    min_quantity = models.DecimalField(max_digits=12, decimal_places=3)
    max_quantity = models.DecimalField(max_digits=12, decimal_places=3, null=True, blank=True)
    tier_price = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)
    tier_discount_percentage = models.DecimalField(max_digits=5, decimal_places=2, null=True, blank=True)
    priority = models.IntegerField(default=0)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        upper = self.max_quantity if self.max_quantity is not None else '+'
        return f"{self.min_quantity}-{upper}"

    def contains(self, quantity):
        if quantity < self.min_quantity:
            return False
        return self.max_quantity is None or quantity <= self.max_quantity

    class Meta:
        db_table = 'customer_product_price_tiers'
        ordering = ['min_quantity']


class CustomerProductPriceHistory(models.Model):
    """Snapshot written on every create/update of a customer price"""
    customer = models.ForeignKey(Customer, on_delete=models.CASCADE, related_name='price_history')
    product = models.ForeignKey(Product, on_delete=models.CASCADE, related_name='customer_price_history')
    selling_price = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)
    discount_percentage = models.DecimalField(max_digits=5, decimal_places=2, null=True, blank=True)
    changed_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name='customer_price_changes')
    notes = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'customer_product_price_history'
        ordering = ['-created_at', '-id']
