"""
Test suite for vendors, customer groups and customers
"""
from decimal import Decimal

from django.test import TestCase
from rest_framework import status

from erpdesk.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from erpdesk.parties.models import Vendor, VendorContact, Customer


class VendorAPITests(TestCase):
    """Vendor master with nested contacts, addresses and bank details"""

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)

    def _payload(self, **overrides):
        payload = {
            'name': '  Shree Auto Parts ',
            'email': 'accounts@shreeauto.test',
            'gst_number': '27abcde1234f1z5',
            'contacts': [
                {'name': 'Amit', 'mobile_number': '9800000001', 'designation': 'Sales'},
                {'name': 'No phone', 'mobile_number': ''},
            ],
            'addresses': [{'address': 'Plot 4, MIDC, Pune'}, {'address': '   '}],
            'bank_details': [
                {'bank_name': 'HDFC', 'ifsc_code': 'hdfc0000123', 'branch': 'Pune', 'account_number': '501000123'},
                {'bank_name': 'SBI', 'ifsc_code': '', 'branch': 'Pune', 'account_number': '1'},
            ],
        }
        payload.update(overrides)
        return payload

    def test_create_vendor_with_rows(self):
        """Incomplete nested rows are dropped, not rejected"""
        response = self.client.post('/api/v1/vendors/', self._payload(), format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['name'], 'Shree Auto Parts')
        self.assertEqual(response.data['gst_number'], '27ABCDE1234F1Z5')
        self.assertEqual(len(response.data['contacts']), 1)
        self.assertEqual(len(response.data['addresses']), 1)
        self.assertEqual(len(response.data['bank_details']), 1)
        self.assertEqual(response.data['bank_details'][0]['ifsc_code'], 'HDFC0000123')

    def test_name_and_email_required(self):
        response = self.client.post('/api/v1/vendors/', self._payload(name='  '), format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('name', response.data)

        payload = self._payload()
        del payload['email']
        response = self.client.post('/api/v1/vendors/', payload, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['email'], ['Email is required'])

    def test_update_replaces_sent_rows_only(self):
        vendor_id = self.client.post('/api/v1/vendors/', self._payload(), format='json').data['id']
        response = self.client.patch(f'/api/v1/vendors/{vendor_id}/', {
            'contacts': [{'name': 'Neha', 'mobile_number': '9800000002'}],
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([row['name'] for row in response.data['contacts']], ['Neha'])
        self.assertEqual(len(response.data['addresses']), 1)
        self.assertEqual(VendorContact.objects.filter(vendor_id=vendor_id).count(), 1)

    def test_list_search_and_filters(self):
        TestDataFactory.create_vendor(name='Alpha Spares', priority='high')
        TestDataFactory.create_vendor(name='Beta Motors', is_active=False)
        response = self.client.get('/api/v1/vendors/', {'search': 'alpha'})
        self.assertEqual([row['name'] for row in response.data], ['Alpha Spares'])
        response = self.client.get('/api/v1/vendors/', {'is_active': 'false'})
        self.assertEqual([row['name'] for row in response.data], ['Beta Motors'])
        response = self.client.get('/api/v1/vendors/', {'priority': 'high'})
        self.assertEqual(len(response.data), 1)

    def test_delete_unused_vendor(self):
        vendor = TestDataFactory.create_vendor()
        response = self.client.delete(f'/api/v1/vendors/{vendor.id}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.assertFalse(Vendor.objects.filter(pk=vendor.id).exists())

    def test_vendor_with_payments_is_protected(self):
        vendor = TestDataFactory.create_vendor()
        TestDataFactory.create_bill(vendor=vendor)
        response = self.client.delete(f'/api/v1/vendors/{vendor.id}/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertTrue(response.data['error'])
        self.assertTrue(Vendor.objects.filter(pk=vendor.id).exists())

    def test_contact_requires_vendor(self):
        response = self.client.post('/api/v1/vendor-contacts/', {'name': 'X', 'mobile_number': '1'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('vendor', response.data)


class CustomerAPITests(TestCase):

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)

    def test_group_discount_range(self):
        response = self.client.post('/api/v1/customer-groups/', {
            'name': 'Dealers', 'discount_percentage': '120'
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('discount_percentage', response.data)

    def test_blank_phones_do_not_collide(self):
        for name in ('Walk-in 1', 'Walk-in 2'):
            response = self.client.post('/api/v1/customers/', {'name': name, 'phone': ''}, format='json')
            self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(Customer.objects.filter(phone__isnull=True).count(), 2)

    def test_duplicate_phone_rejected(self):
        TestDataFactory.create_customer(phone='9811111111')
        response = self.client.post('/api/v1/customers/', {'name': 'Copy', 'phone': '9811111111'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('phone', response.data)

    def test_search_by_phone(self):
        group = TestDataFactory.create_customer_group(name='Retail', discount_percentage=Decimal('5'))
        customer = TestDataFactory.create_customer(
            name='Sunil', phone='9822222222', whatsapp_number='919822222222', customer_group=group
        )
        response = self.client.get('/api/v1/customers/search_by_phone/', {'phone': '9822222222'})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['id'], customer.id)
        self.assertEqual(response.data['customer_group_name'], 'Retail')

        response = self.client.get('/api/v1/customers/search_by_phone/', {'phone': '919822222222'})
        self.assertEqual(response.data['id'], customer.id)

        response = self.client.get('/api/v1/customers/search_by_phone/', {'phone': '9000000000'})
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        response = self.client.get('/api/v1/customers/search_by_phone/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_list_search(self):
        TestDataFactory.create_customer(name='Kiran Motors', phone='9833333333')
        TestDataFactory.create_customer(name='Other', phone='9700000000')
        response = self.client.get('/api/v1/customers/', {'search': '98333'})
        self.assertEqual([row['name'] for row in response.data], ['Kiran Motors'])

    def test_messaging_number_prefers_whatsapp(self):
        customer = TestDataFactory.create_customer(phone='9844444444', whatsapp_number='919844444444')
        self.assertEqual(customer.messaging_number, '919844444444')
        customer.whatsapp_number = ''
        self.assertEqual(customer.messaging_number, '9844444444')
