"""
Test utilities and factories for creating test data
"""
from django.contrib.auth import get_user_model
from rest_framework.test import APIClient
from rest_framework_simplejwt.tokens import RefreshToken
from erpdesk.catalog.models import Category, Brand, Product, CarMaker, CarModel, CarVariant, CompatibilityGroup
from erpdesk.parties.models import Vendor, Customer, CustomerGroup
from erpdesk.purchasing import services as purchasing_services
from erpdesk.purchasing.models import PurchaseBill, VendorProductPrice
from erpdesk.pricing.models import CustomerProductPrice, CustomerProductPriceTier
from decimal import Decimal
from django.utils import timezone
import random
import string

User = get_user_model()


class TestDataFactory:
    """Factory class for creating test data"""

    @staticmethod
    def random_string(length=10):
        """Generate a random string"""
        return ''.join(random.choices(string.ascii_letters + string.digits, k=length))

    @staticmethod
    def create_user(username=None, email=None, password='testpass123', is_staff=False, is_superuser=False):
        """Create a test user"""
        if not username:
            username = f'testuser_{TestDataFactory.random_string(6)}'
        if not email:
            email = f'{username}@test.com'
        return User.objects.create_user(
            username=username,
            email=email,
            password=password,
            is_staff=is_staff,
            is_superuser=is_superuser
        )

    @staticmethod
    def create_category(name=None, description=None, parent=None):
        """Create a test category"""
        if not name:
            name = f'Category_{TestDataFactory.random_string(6)}'
        return Category.objects.create(name=name, description=description or '', parent=parent)

    @staticmethod
    def create_brand(name=None, description=None):
        """Create a test brand"""
        if not name:
            name = f'Brand_{TestDataFactory.random_string(6)}'
        return Brand.objects.create(name=name, description=description or '')

    @staticmethod
    def create_product(title=None, category=None, brand=None, price=Decimal('100.00'),
                       discounted_price=None, is_general_product=True, **kwargs):
        """Create a test product (general/universal fitment unless told otherwise)"""
        if not title:
            title = f'Product_{TestDataFactory.random_string(6)}'
        return Product.objects.create(
            title=title,
            category=category,
            brand=brand,
            price=price,
            discounted_price=discounted_price,
            is_general_product=is_general_product,
            **kwargs
        )

    @staticmethod
    def create_car_maker(name=None):
        if not name:
            name = f'Maker_{TestDataFactory.random_string(6)}'
        return CarMaker.objects.create(name=name)

    @staticmethod
    def create_car_model(car_maker=None, name=None):
        car_maker = car_maker or TestDataFactory.create_car_maker()
        if not name:
            name = f'Model_{TestDataFactory.random_string(6)}'
        return CarModel.objects.create(car_maker=car_maker, name=name)

    @staticmethod
    def create_car_variant(model=None, name=None, year_start=2018, year_end=None, fuel_engine='petrol'):
        model = model or TestDataFactory.create_car_model()
        if not name:
            name = f'Variant_{TestDataFactory.random_string(6)}'
        return CarVariant.objects.create(
            model=model,
            name=name,
            year_start=year_start,
            year_end=year_end,
            fuel_engine=fuel_engine
        )

    @staticmethod
    def create_compatibility_group(name=None, car_maker=None, variants=None):
        if not name:
            name = f'Group_{TestDataFactory.random_string(6)}'
        group = CompatibilityGroup.objects.create(name=name, car_maker=car_maker)
        if variants:
            group.variants.set(variants)
        return group

    @staticmethod
    def create_vendor(name=None, email=None, **kwargs):
        """Create a test vendor"""
        if not name:
            name = f'Vendor_{TestDataFactory.random_string(6)}'
        return Vendor.objects.create(name=name, email=email or f'{name.lower()}@vendor.test', **kwargs)

    @staticmethod
    def create_customer_group(name=None, discount_percentage=Decimal('0.00'), is_active=True):
        if not name:
            name = f'Group_{TestDataFactory.random_string(6)}'
        return CustomerGroup.objects.create(name=name, discount_percentage=discount_percentage, is_active=is_active)

    @staticmethod
    def create_customer(name=None, phone=None, whatsapp_number='', customer_group=None):
        """Create a test customer"""
        if not name:
            name = f'Customer_{TestDataFactory.random_string(6)}'
        if phone is None:
            phone = f'9{random.randint(100000000, 999999999)}'
        return Customer.objects.create(
            name=name,
            phone=phone,
            whatsapp_number=whatsapp_number,
            customer_group=customer_group
        )

    @staticmethod
    def create_bill(vendor=None, items=None, bill_date=None, discount=Decimal('0.00'), bill_number=None, user=None):
        """
        Create a bill with items and stored totals.

        items: list of (quantity, purchase_price, gst_percent) tuples; defaults
        to one line of 1 x 1000 @ 18% GST (total 1180.00).
        """
        vendor = vendor or TestDataFactory.create_vendor()
        bill = PurchaseBill.objects.create(
            vendor=vendor,
            bill_number=bill_number or purchasing_services.next_bill_number(),
            bill_date=bill_date or timezone.localdate(),
            discount=discount,
            created_by=user
        )
        rows = items or [(Decimal('1'), Decimal('1000.00'), Decimal('18.00'))]
        purchasing_services.create_bill_items(bill, [
            {
                'item_name': f'Item {index + 1}',
                'quantity': Decimal(str(quantity)),
                'purchase_price': Decimal(str(price)),
                'gst_percent': Decimal(str(gst)),
            }
            for index, (quantity, price, gst) in enumerate(rows)
        ])
        return purchasing_services.recalculate_bill(bill)

    @staticmethod
    def create_vendor_price(vendor=None, product=None, purchase_price=Decimal('80.00'), is_preferred=False):
        vendor = vendor or TestDataFactory.create_vendor()
        product = product or TestDataFactory.create_product()
        price = VendorProductPrice.objects.create(
            vendor=vendor, product=product, purchase_price=purchase_price, is_preferred=is_preferred
        )
        purchasing_services.open_price_history(price)
        return price

    @staticmethod
    def create_customer_price(customer=None, product=None, selling_price=None, discount_percentage=None, tiers=None):
        """tiers: list of dicts with CustomerProductPriceTier fields"""
        customer = customer or TestDataFactory.create_customer()
        product = product or TestDataFactory.create_product()
        price = CustomerProductPrice.objects.create(
            customer=customer,
            product=product,
            selling_price=selling_price,
            discount_percentage=discount_percentage
        )
        for tier in tiers or []:
            CustomerProductPriceTier.objects.create(price=price, **tier)
        return price


class AuthenticatedAPIClient(APIClient):
    """APIClient with authentication helper"""

    def authenticate_user(self, user):
        """Authenticate the client with a user"""
        refresh = RefreshToken.for_user(user)
        self.credentials(HTTP_AUTHORIZATION=f'Bearer {refresh.access_token}')
        return self

    def logout(self):
        """Remove authentication"""
        self.credentials()
