"""
Test suite for quotations
Tests: numbering, item pricing, vehicle validation, list stats and WhatsApp delivery
"""
from datetime import timedelta
from decimal import Decimal
from unittest import mock

import requests
from django.test import TestCase, override_settings
from django.utils import timezone
from rest_framework import status

from erpdesk.core.models import AuditLog
from erpdesk.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from erpdesk.quotations import services
from erpdesk.quotations.models import Quotation

GATEWAY_URL = 'https://gateway.test/messages'


class QuotationTestMixin:

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)
        group = TestDataFactory.create_customer_group(name='Fleet', discount_percentage=Decimal('10.00'))
        self.customer = TestDataFactory.create_customer(
            name='Raj Garage', phone='9876543210', whatsapp_number='919876543210', customer_group=group
        )
        self.maker = TestDataFactory.create_car_maker(name='Maruti')
        self.model = TestDataFactory.create_car_model(car_maker=self.maker, name='Swift')
        self.variant = TestDataFactory.create_car_variant(model=self.model, name='VXI')
        self.product = TestDataFactory.create_product(title='Air Filter', price=Decimal('200.00'))

    def _payload(self, **overrides):
        payload = {
            'customer_id': self.customer.id,
            'vehicle_maker_id': self.maker.id,
            'vehicle_model_id': self.model.id,
            'vehicle_variant_id': self.variant.id,
            'vehicle_year': 2019,
            'items': [
                {'product_id': self.product.id, 'quantity': '2'},
                {'product_id': self.product.id, 'quantity': '1', 'price': '150.00', 'item_name': 'Air Filter (OEM)'},
            ],
        }
        payload.update(overrides)
        return payload

    def _create_quotation(self, **overrides):
        response = self.client.post('/api/v1/quotations/', self._payload(**overrides), format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED, response.data)
        return Quotation.objects.get(pk=response.data['id'])


class QuotationCreateTests(QuotationTestMixin, TestCase):

    def test_create_prices_items(self):
        response = self.client.post('/api/v1/quotations/', self._payload(), format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertRegex(response.data['quotation_number'], r'^QT-\d{8}-0001$')
        self.assertEqual(response.data['status'], 'draft')
        self.assertEqual(response.data['customer_phone'], '919876543210')

        items = response.data['items']
        self.assertEqual(items[0]['price'], '180.00')
        self.assertEqual(items[0]['total'], '360.00')
        self.assertEqual(items[0]['item_name'], 'Air Filter')
        self.assertEqual(items[1]['price'], '150.00')
        self.assertEqual(response.data['total_amount'], '510.00')

    def test_walk_in_quotation_uses_product_price(self):
        response = self.client.post('/api/v1/quotations/', self._payload(
            customer_id=None, vehicle_maker_id=None, vehicle_model_id=None, vehicle_variant_id=None,
            vehicle_year=None, items=[{'product_id': self.product.id}]
        ), format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['total_amount'], '200.00')
        self.assertIsNone(response.data['customer_name'])

    def test_numbers_increment(self):
        first = self._create_quotation()
        second = self._create_quotation()
        self.assertEqual(int(second.quotation_number[-4:]), int(first.quotation_number[-4:]) + 1)

    def test_items_required(self):
        response = self.client.post('/api/v1/quotations/', self._payload(items=[]), format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('items', response.data)

        payload = self._payload()
        del payload['items']
        response = self.client.post('/api/v1/quotations/', payload, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_item_quantity_must_be_positive(self):
        response = self.client.post('/api/v1/quotations/', self._payload(
            items=[{'product_id': self.product.id, 'quantity': '0'}]
        ), format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertFalse(Quotation.objects.exists())

    def test_vehicle_consistency(self):
        other_model = TestDataFactory.create_car_model(name='City')
        response = self.client.post('/api/v1/quotations/', self._payload(vehicle_model_id=other_model.id), format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('vehicle_model_id', response.data)

        other_variant = TestDataFactory.create_car_variant(model=other_model)
        response = self.client.post('/api/v1/quotations/', self._payload(vehicle_variant_id=other_variant.id), format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('vehicle_variant_id', response.data)

    def test_vehicle_year_range(self):
        response = self.client.post('/api/v1/quotations/', self._payload(vehicle_year=1900), format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('vehicle_year', response.data)

    def test_patch_replaces_items(self):
        quotation = self._create_quotation()
        response = self.client.patch(f'/api/v1/quotations/{quotation.id}/', {
            'status': 'accepted',
            'items': [{'product_id': self.product.id, 'quantity': '3', 'price': '100'}],
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['status'], 'accepted')
        self.assertEqual(len(response.data['items']), 1)
        self.assertEqual(response.data['total_amount'], '300.00')

    def test_customer_delete_keeps_quotation(self):
        quotation = self._create_quotation()
        self.customer.delete()
        quotation.refresh_from_db()
        self.assertIsNone(quotation.customer)


class QuotationListTests(QuotationTestMixin, TestCase):

    def test_list_envelope_and_stats(self):
        old = self._create_quotation()
        Quotation.objects.filter(pk=old.pk).update(created_at=timezone.now() - timedelta(days=3))
        self._create_quotation()

        response = self.client.get('/api/v1/quotations/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertFalse(response.data['error'])
        self.assertEqual(response.data['count'], 2)
        self.assertEqual(len(response.data['data']), 2)
        self.assertEqual(response.data['stats'], {'total_count': 2, 'today_count': 1, 'recent_count': 1})

    def test_limit_and_offset(self):
        for _ in range(3):
            self._create_quotation()
        response = self.client.get('/api/v1/quotations/', {'limit': 2, 'offset': 2})
        self.assertEqual(response.data['count'], 3)
        self.assertEqual(len(response.data['data']), 1)
        self.assertEqual(response.data['stats']['total_count'], 3)

    def test_search_and_status(self):
        quotation = self._create_quotation()
        Quotation.objects.filter(pk=quotation.pk).update(status='sent')
        self._create_quotation(customer_id=None)

        response = self.client.get('/api/v1/quotations/', {'search': 'raj'})
        self.assertEqual([row['id'] for row in response.data['data']], [quotation.id])
        response = self.client.get('/api/v1/quotations/', {'status': 'draft'})
        self.assertEqual(response.data['count'], 1)

    def test_list_stats_counts_fetched_rows(self):
        now = timezone.now()
        rows = [
            Quotation(quotation_number='A', created_at=now - timedelta(hours=1)),
            Quotation(quotation_number='B', created_at=now - timedelta(hours=30)),
        ]
        stats = services.list_stats(rows, 10, now=now)
        self.assertEqual(stats['total_count'], 10)
        self.assertEqual(stats['recent_count'], 1)


@override_settings(WHATSAPP_API_URL=GATEWAY_URL, WHATSAPP_API_TOKEN='secret-token')
class SendWhatsAppTests(QuotationTestMixin, TestCase):

    def setUp(self):
        super().setUp()
        self.quotation = self._create_quotation()
        self.url = '/api/v1/quotations/send_whatsapp/'

    @mock.patch('erpdesk.quotations.services.requests.post')
    def test_send_marks_quotation_sent(self, mock_post):
        mock_post.return_value.status_code = 200
        mock_post.return_value.json.return_value = {'message_id': 'wamid.42'}

        response = self.client.post(self.url, {'quotation_no': self.quotation.quotation_number}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertFalse(response.data['error'])
        self.assertEqual(response.data['data']['message_id'], 'wamid.42')

        args, kwargs = mock_post.call_args
        self.assertEqual(args[0], GATEWAY_URL)
        self.assertEqual(kwargs['json']['to'], '919876543210')
        self.assertEqual(kwargs['json']['reference'], self.quotation.quotation_number)
        self.assertIn('Total: 510.00', kwargs['json']['message'])
        self.assertEqual(kwargs['headers']['Authorization'], 'Bearer secret-token')

        self.quotation.refresh_from_db()
        self.assertEqual(self.quotation.status, 'sent')
        self.assertIsNotNone(self.quotation.sent_at)
        self.assertTrue(AuditLog.objects.filter(action='quotation_send').exists())

    @mock.patch('erpdesk.quotations.services.requests.post')
    def test_quotation_no_from_query_string(self, mock_post):
        mock_post.return_value.status_code = 200
        mock_post.return_value.json.return_value = {}
        response = self.client.post(f'{self.url}?quotation_no={self.quotation.quotation_number}')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertNotIn('message_id', response.data['data'])

    def test_quotation_no_required(self):
        response = self.client.post(self.url, {}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertTrue(response.data['error'])
        self.assertEqual(response.data['data']['message'], 'quotation_no is required')

    def test_unknown_quotation(self):
        response = self.client.post(self.url, {'quotation_no': 'QT-NOPE'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_customer_without_number(self):
        walk_in = self._create_quotation(customer_id=None)
        response = self.client.post(self.url, {'quotation_no': walk_in.quotation_number}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

        silent = TestDataFactory.create_customer(phone='', whatsapp_number='')
        quotation = self._create_quotation(customer_id=silent.id)
        response = self.client.post(self.url, {'quotation_no': quotation.quotation_number}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['data']['message'], 'Customer has no phone or WhatsApp number')

    @override_settings(WHATSAPP_API_URL='')
    def test_gateway_not_configured(self):
        response = self.client.post(self.url, {'quotation_no': self.quotation.quotation_number}, format='json')
        self.assertEqual(response.status_code, status.HTTP_503_SERVICE_UNAVAILABLE)

    @mock.patch('erpdesk.quotations.services.requests.post')
    def test_gateway_error_keeps_draft(self, mock_post):
        mock_post.return_value.status_code = 500
        response = self.client.post(self.url, {'quotation_no': self.quotation.quotation_number}, format='json')
        self.assertEqual(response.status_code, status.HTTP_502_BAD_GATEWAY)
        self.quotation.refresh_from_db()
        self.assertEqual(self.quotation.status, 'draft')
        self.assertIsNone(self.quotation.sent_at)

    @mock.patch('erpdesk.quotations.services.requests.post')
    def test_gateway_unreachable(self, mock_post):
        mock_post.side_effect = requests.exceptions.ConnectionError('refused')
        response = self.client.post(self.url, {'quotation_no': self.quotation.quotation_number}, format='json')
        self.assertEqual(response.status_code, status.HTTP_502_BAD_GATEWAY)


class WhatsAppMessageTests(QuotationTestMixin, TestCase):

    def test_message_lists_vehicle_and_items(self):
        quotation = self._create_quotation()
        message = services.whatsapp_message(quotation)
        self.assertIn(f'Quotation {quotation.quotation_number}', message)
        self.assertIn('Dear Raj Garage,', message)
        self.assertIn('Vehicle: Maruti Swift VXI 2019', message)
        self.assertIn('- Air Filter x 2 @ 180.00 = 360.00', message)
