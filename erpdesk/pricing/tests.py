"""
Test suite for customer pricing
Tests: price resolution order, quantity tiers, validation and history
"""
from decimal import Decimal

from django.test import TestCase
from rest_framework import status

from erpdesk.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from erpdesk.parties.models import Customer
from erpdesk.pricing.models import CustomerProductPrice, CustomerProductPriceHistory
from erpdesk.pricing.services import resolve_price, PricingError


class PriceResolutionTests(TestCase):
    """Tier > customer price > customer group > product price"""

    def setUp(self):
        self.group = TestDataFactory.create_customer_group(name='Garages', discount_percentage=Decimal('10.00'))
        self.customer = TestDataFactory.create_customer(customer_group=self.group)
        self.product = TestDataFactory.create_product(price=Decimal('100.00'))

    def test_product_price_without_customer(self):
        result = resolve_price(None, self.product)
        self.assertEqual(result['unit_price'], Decimal('100.00'))
        self.assertEqual(result['source'], 'product')
        self.assertIsNone(result['tier_id'])

    def test_discounted_price_is_base(self):
        product = TestDataFactory.create_product(price=Decimal('100.00'), discounted_price=Decimal('90.00'))
        self.assertEqual(resolve_price(None, product)['unit_price'], Decimal('90.00'))

    def test_group_discount(self):
        result = resolve_price(self.customer, self.product)
        self.assertEqual(result['unit_price'], Decimal('90.00'))
        self.assertEqual(result['source'], 'customer_group')

    def test_inactive_group_is_ignored(self):
        self.group.is_active = False
        self.group.save()
        customer = Customer.objects.get(pk=self.customer.pk)
        self.assertEqual(resolve_price(customer, self.product)['source'], 'product')

    def test_customer_selling_price_beats_group(self):
        TestDataFactory.create_customer_price(customer=self.customer, product=self.product, selling_price=Decimal('85.00'))
        result = resolve_price(self.customer, self.product)
        self.assertEqual(result['unit_price'], Decimal('85.00'))
        self.assertEqual(result['source'], 'customer_price')

    def test_customer_discount_percentage(self):
        TestDataFactory.create_customer_price(customer=self.customer, product=self.product, discount_percentage=Decimal('20'))
        self.assertEqual(resolve_price(self.customer, self.product)['unit_price'], Decimal('80.00'))

    def test_inactive_customer_price_falls_back_to_group(self):
        price = TestDataFactory.create_customer_price(customer=self.customer, product=self.product, selling_price=Decimal('50.00'))
        price.is_active = False
        price.save()
        self.assertEqual(resolve_price(self.customer, self.product)['source'], 'customer_group')

    def test_quantity_tiers(self):
        TestDataFactory.create_customer_price(
            customer=self.customer,
            product=self.product,
            selling_price=Decimal('85.00'),
            tiers=[
                {'min_quantity': Decimal('10'), 'max_quantity': Decimal('49'), 'tier_price': Decimal('75.00')},
                {'min_quantity': Decimal('50'), 'tier_discount_percentage': Decimal('30')},
            ]
        )
        self.assertEqual(resolve_price(self.customer, self.product, 5)['source'], 'customer_price')

        result = resolve_price(self.customer, self.product, 10)
        self.assertEqual(result['unit_price'], Decimal('75.00'))
        self.assertEqual(result['source'], 'tier')
        self.assertIsNotNone(result['tier_id'])

        result = resolve_price(self.customer, self.product, 60)
        self.assertEqual(result['unit_price'], Decimal('70.00'))
        self.assertEqual(result['line_total'], Decimal('4200.00'))

    def test_tier_priority_wins_over_range(self):
        price = TestDataFactory.create_customer_price(
            customer=self.customer,
            product=self.product,
            selling_price=Decimal('85.00'),
            tiers=[
                {'min_quantity': Decimal('1'), 'tier_price': Decimal('70.00'), 'priority': 5},
                {'min_quantity': Decimal('10'), 'tier_price': Decimal('60.00'), 'priority': 0},
            ]
        )
        result = resolve_price(self.customer, self.product, 20)
        self.assertEqual(result['unit_price'], Decimal('70.00'))
        self.assertEqual(result['tier_id'], price.price_tiers.get(priority=5).id)

    def test_inactive_tier_is_skipped(self):
        TestDataFactory.create_customer_price(
            customer=self.customer,
            product=self.product,
            selling_price=Decimal('85.00'),
            tiers=[{'min_quantity': Decimal('1'), 'tier_price': Decimal('10.00'), 'is_active': False}]
        )
        self.assertEqual(resolve_price(self.customer, self.product, 3)['unit_price'], Decimal('85.00'))

    def test_quantity_must_be_positive(self):
        with self.assertRaises(PricingError):
            resolve_price(self.customer, self.product, 0)


class CustomerPriceAPITests(TestCase):

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)
        self.customer = TestDataFactory.create_customer(name='Raj Garage')
        self.product = TestDataFactory.create_product(title='Spark Plug', price=Decimal('100.00'))

    def _payload(self, **overrides):
        payload = {
            'customer_id': self.customer.id,
            'product_id': self.product.id,
            'selling_price': '85.00',
            'price_tiers': [
                {'min_quantity': '10', 'max_quantity': '49', 'tier_price': '75.00'},
                {'min_quantity': '50', 'tier_discount_percentage': '30'},
            ],
        }
        payload.update(overrides)
        return payload

    def test_create_with_tiers(self):
        response = self.client.post('/api/v1/customer-prices/', self._payload(), format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['selling_price'], '85.00')
        self.assertEqual(response.data['customer_name'], 'Raj Garage')
        self.assertEqual(len(response.data['price_tiers']), 2)

        history = CustomerProductPriceHistory.objects.get()
        self.assertEqual(history.notes, 'Created')
        self.assertEqual(history.selling_price, Decimal('85.00'))

    def test_price_or_discount_required(self):
        response = self.client.post(
            '/api/v1/customer-prices/', self._payload(selling_price=None, price_tiers=[]), format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertTrue(response.data['error'])

    def test_discount_percentage_range(self):
        response = self.client.post(
            '/api/v1/customer-prices/', self._payload(selling_price=None, discount_percentage='150'), format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('discount_percentage', response.data)

    def test_tier_validation(self):
        response = self.client.post('/api/v1/customer-prices/', self._payload(price_tiers=[
            {'min_quantity': '10'}
        ]), format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('price_tiers', response.data)

        response = self.client.post('/api/v1/customer-prices/', self._payload(price_tiers=[
            {'min_quantity': '10', 'max_quantity': '5', 'tier_price': '70'}
        ]), format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

        response = self.client.post('/api/v1/customer-prices/', self._payload(price_tiers=[
            {'min_quantity': '0', 'tier_price': '70'}
        ]), format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertFalse(CustomerProductPrice.objects.exists())

    def test_duplicate_customer_product(self):
        TestDataFactory.create_customer_price(customer=self.customer, product=self.product, selling_price=Decimal('90'))
        response = self.client.post('/api/v1/customer-prices/', self._payload(), format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_update_keeps_tiers_unless_sent(self):
        price_id = self.client.post('/api/v1/customer-prices/', self._payload(), format='json').data['id']

        response = self.client.patch(f'/api/v1/customer-prices/{price_id}/', {'selling_price': '80.00'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data['price_tiers']), 2)

        response = self.client.patch(f'/api/v1/customer-prices/{price_id}/', {'price_tiers': []}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['price_tiers'], [])

        notes = list(CustomerProductPriceHistory.objects.values_list('notes', flat=True))
        self.assertEqual(notes, ['Updated', 'Updated', 'Created'])

    def test_history_filter(self):
        self.client.post('/api/v1/customer-prices/', self._payload(), format='json')
        other = TestDataFactory.create_customer()
        TestDataFactory.create_customer_price(customer=other, selling_price=Decimal('10'))

        response = self.client.get('/api/v1/customer-prices/history/', {'customer': self.customer.id})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['count'], 1)
        self.assertEqual(response.data['results'][0]['product_title'], 'Spark Plug')

    def test_list_filter_by_customer(self):
        self.client.post('/api/v1/customer-prices/', self._payload(), format='json')
        TestDataFactory.create_customer_price(selling_price=Decimal('10'))
        response = self.client.get('/api/v1/customer-prices/', {'customer': self.customer.id})
        self.assertEqual(response.data['count'], 1)

    def test_resolve_endpoint(self):
        self.client.post('/api/v1/customer-prices/', self._payload(), format='json')
        response = self.client.get('/api/v1/customer-prices/resolve/', {
            'product': self.product.id, 'customer': self.customer.id, 'quantity': '10'
        })
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['unit_price'], '75.00')
        self.assertEqual(response.data['source'], 'tier')
        self.assertEqual(response.data['line_total'], '750.00')

        response = self.client.get('/api/v1/customer-prices/resolve/', {'product': self.product.id})
        self.assertEqual(response.data['unit_price'], '100.00')
        self.assertIsNone(response.data['customer_id'])

    def test_resolve_requires_product(self):
        response = self.client.get('/api/v1/customer-prices/resolve/', {'customer': self.customer.id})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('product', response.data)
