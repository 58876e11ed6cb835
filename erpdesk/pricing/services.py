"""Effective selling price of a product for a customer"""
from decimal import Decimal

from rest_framework.exceptions import ValidationError

from erpdesk.core.utils import money, to_decimal
from .models import CustomerProductPrice, CustomerProductPriceHistory

HUNDRED = Decimal('100')


class PricingError(ValidationError):
    """Invalid pricing input"""


def base_price(product):
    if product.discounted_price is not None:
        return product.discounted_price
    return product.price


def _discounted(amount, percentage):
    return money(amount * (HUNDRED - to_decimal(percentage)) / HUNDRED)


def _best_tier(customer_price, quantity):
    tiers = [tier for tier in customer_price.price_tiers.all() if tier.is_active and tier.contains(quantity)]
    if not tiers:
        return None
    return max(tiers, key=lambda tier: (tier.priority, tier.min_quantity))


def resolve_price(customer, product, quantity=1):
    """
    Resolution order:
      1. matching active tier of the customer's active price
      2. the customer's active price
      3. the customer's group discount
      4. the product's discounted price, else its price
    Percentages apply to the base price (discounted price when set).
    """
    quantity = to_decimal(quantity, Decimal('1'))
    if quantity <= 0:
        raise PricingError({'quantity': ['Quantity must be greater than 0']})

    base = base_price(product)
    unit_price = money(base)
    source = 'product'
    tier_id = None

    customer_price = None
    if customer is not None:
        customer_price = (
            CustomerProductPrice.objects.filter(customer=customer, product=product, is_active=True)
            .prefetch_related('price_tiers')
            .first()
        )

    tier = _best_tier(customer_price, quantity) if customer_price else None
    if tier is not None:
        if tier.tier_price is not None:
            unit_price = money(tier.tier_price)
        else:
            unit_price = _discounted(base, tier.tier_discount_percentage)
        source = 'tier'
        tier_id = tier.id
    elif customer_price is not None and (
        customer_price.selling_price is not None or customer_price.discount_percentage is not None
    ):
        if customer_price.selling_price is not None:
            unit_price = money(customer_price.selling_price)
        else:
            unit_price = _discounted(base, customer_price.discount_percentage)
        source = 'customer_price'
    elif customer is not None and customer.customer_group_id and customer.customer_group.is_active \
            and customer.customer_group.discount_percentage > 0:
        unit_price = _discounted(base, customer.customer_group.discount_percentage)
        source = 'customer_group'

    return {
        'unit_price': unit_price,
        'source': source,
        'tier_id': tier_id,
        'quantity': quantity,
        'line_total': money(unit_price * quantity),
    }


def record_price_history(customer_price, user=None, notes=''):
    return CustomerProductPriceHistory.objects.create(
        customer_id=customer_price.customer_id,
        product_id=customer_price.product_id,
        selling_price=customer_price.selling_price,
        discount_percentage=customer_price.discount_percentage,
        changed_by=user if user and user.is_authenticated else None,
        notes=notes or '',
    )
