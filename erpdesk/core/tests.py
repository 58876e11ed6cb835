"""
Test suite for the Core module
Tests: authentication, settings, audit logs, shared helpers and the error envelope
"""
import io
import logging
from datetime import date
from decimal import Decimal

from django.conf import settings as django_settings
from django.contrib.auth.models import Group
from django.core.management import call_command
from django.test import TestCase
from rest_framework import status

from erpdesk.core.models import AuditLog, Setting
from erpdesk.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from erpdesk.core.utils import money, to_decimal, parse_positive_int, generate_document_number, create_audit_log
from erpdesk.quotations.models import Quotation


class AuthTests(TestCase):
    """Login, registration and the current user endpoint"""

    def setUp(self):
        self.client = AuthenticatedAPIClient()

    def test_login_returns_tokens(self):
        TestDataFactory.create_user(username='clerk', password='testpass123')
        response = self.client.post('/api/v1/auth/login/', {'username': 'clerk', 'password': 'testpass123'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIn('access', response.data)
        self.assertIn('refresh', response.data)

    def test_login_wrong_password(self):
        TestDataFactory.create_user(username='clerk', password='testpass123')
        response = self.client.post('/api/v1/auth/login/', {'username': 'clerk', 'password': 'nope'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)
        self.assertTrue(response.data['error'])

    def test_disabled_user_cannot_login(self):
        user = TestDataFactory.create_user(username='retired', password='testpass123')
        user.is_active = False
        user.save()
        response = self.client.post('/api/v1/auth/login/', {'username': 'retired', 'password': 'testpass123'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)
        self.assertNotIn('access', response.data)

    def test_refresh(self):
        TestDataFactory.create_user(username='clerk', password='testpass123')
        tokens = self.client.post('/api/v1/auth/login/', {'username': 'clerk', 'password': 'testpass123'}, format='json').data
        response = self.client.post('/api/v1/auth/refresh/', {'refresh': tokens['refresh']}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIn('access', response.data)

    def test_refresh_for_deleted_user(self):
        user = TestDataFactory.create_user(username='leaver', password='testpass123')
        tokens = self.client.post('/api/v1/auth/login/', {'username': 'leaver', 'password': 'testpass123'}, format='json').data
        user.delete()
        response = self.client.post('/api/v1/auth/refresh/', {'refresh': tokens['refresh']}, format='json')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)
        self.assertIn('Token is invalid', response.data['message'])

    def test_refresh_with_garbage_token(self):
        response = self.client.post('/api/v1/auth/refresh/', {'refresh': 'not-a-token'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)
        self.assertTrue(response.data['error'])

    def test_register(self):
        response = self.client.post('/api/v1/auth/register/', {
            'username': 'newclerk',
            'email': 'newclerk@test.com',
            'password': 'Gearbox-Clutch-2024',
            'password_confirm': 'Gearbox-Clutch-2024',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['user']['username'], 'newclerk')
        self.assertIn('access', response.data)

    def test_register_password_mismatch(self):
        response = self.client.post('/api/v1/auth/register/', {
            'username': 'newclerk',
            'password': 'Gearbox-Clutch-2024',
            'password_confirm': 'Gearbox-Clutch-2025',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('password', response.data)

    def test_me(self):
        user = TestDataFactory.create_user()
        user.groups.add(Group.objects.create(name='Purchase'))
        self.client.authenticate_user(user)
        response = self.client.get('/api/v1/auth/me/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['groups'], ['Purchase'])
        self.assertFalse(response.data['is_admin'])

    def test_me_admin_group(self):
        user = TestDataFactory.create_user()
        user.groups.add(Group.objects.create(name='Admin'))
        self.client.authenticate_user(user)
        self.assertTrue(self.client.get('/api/v1/auth/me/').data['is_admin'])

    def test_me_requires_token(self):
        response = self.client.get('/api/v1/auth/me/')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)
        self.assertTrue(response.data['error'])
        self.assertIn('message', response.data)


class SettingAPITests(TestCase):

    def setUp(self):
        self.client = AuthenticatedAPIClient()

    def test_settings_are_admin_only(self):
        self.client.authenticate_user(TestDataFactory.create_user())
        response = self.client.get('/api/v1/settings/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_admin_manages_settings(self):
        self.client.authenticate_user(TestDataFactory.create_user(is_staff=True))
        response = self.client.post('/api/v1/settings/', {'key': 'bill_number_prefix', 'value': 'VB'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(Setting.get_value('bill_number_prefix'), 'VB')

        response = self.client.patch(f"/api/v1/settings/{response.data['id']}/", {'value': 'PUR'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(Setting.get_value('bill_number_prefix'), 'PUR')

    def test_get_value_default(self):
        self.assertEqual(Setting.get_value('missing', 'fallback'), 'fallback')
        Setting.objects.create(key='blank', value='')
        self.assertEqual(Setting.get_value('blank', 'fallback'), 'fallback')


class AuditLogAPITests(TestCase):

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.other = TestDataFactory.create_user()
        create_audit_log(user=self.user, action='create', model_name='Vendor', object_id='1')
        create_audit_log(user=self.other, action='delete', model_name='PurchaseBill', object_id='2')
        self.client = AuthenticatedAPIClient()

    def test_users_see_their_own_entries(self):
        self.client.authenticate_user(self.user)
        response = self.client.get('/api/v1/audit-logs/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['count'], 1)
        self.assertEqual(response.data['results'][0]['model_name'], 'Vendor')

        foreign = AuditLog.objects.get(user=self.other)
        response = self.client.get(f'/api/v1/audit-logs/{foreign.id}/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_staff_filter_by_model(self):
        self.client.authenticate_user(TestDataFactory.create_user(is_staff=True))
        response = self.client.get('/api/v1/audit-logs/', {'model_name': 'PurchaseBill'})
        self.assertEqual(response.data['count'], 1)
        self.assertEqual(response.data['results'][0]['action'], 'delete')

    def test_missing_fields_skip_entry(self):
        self.assertIsNone(create_audit_log(user=self.user, action='create', model_name='Vendor'))
        self.assertEqual(AuditLog.objects.count(), 2)


class UtilsTests(TestCase):

    def test_money_rounds_half_up(self):
        self.assertEqual(money(Decimal('2.345')), Decimal('2.35'))
        self.assertEqual(money('10'), Decimal('10.00'))
        self.assertEqual(money(None), Decimal('0.00'))

    def test_to_decimal(self):
        self.assertEqual(to_decimal(''), Decimal('0'))
        self.assertEqual(to_decimal(1.1), Decimal('1.1'))
        self.assertEqual(to_decimal(None, Decimal('1')), Decimal('1'))

    def test_parse_positive_int(self):
        self.assertEqual(parse_positive_int('5', 20), 5)
        self.assertEqual(parse_positive_int('abc', 20), 20)
        self.assertEqual(parse_positive_int('-3', 20), 20)
        self.assertEqual(parse_positive_int('500', 20, maximum=200), 200)

    def test_document_numbers(self):
        day = date(2024, 6, 1)
        first = generate_document_number(Quotation, 'quotation_number', 'quotation_number_prefix', 'QT', on_date=day)
        self.assertEqual(first, 'QT-20240601-0001')

        Quotation.objects.create(quotation_number='QT-20240601-0007')
        Quotation.objects.create(quotation_number='QT-20240601-manual')
        following = generate_document_number(Quotation, 'quotation_number', 'quotation_number_prefix', 'QT', on_date=day)
        self.assertEqual(following, 'QT-20240601-0008')

    def test_document_number_prefix_setting(self):
        Setting.objects.create(key='quotation_number_prefix', value='EST')
        number = generate_document_number(
            Quotation, 'quotation_number', 'quotation_number_prefix', 'QT', on_date=date(2024, 6, 1)
        )
        self.assertEqual(number, 'EST-20240601-0001')


class ErrorEnvelopeTests(TestCase):

    def test_not_found_has_envelope(self):
        client = AuthenticatedAPIClient()
        client.authenticate_user(TestDataFactory.create_user())
        response = client.get('/api/v1/vendors/999999/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertTrue(response.data['error'])
        self.assertTrue(response.data['message'])


class CreateUserGroupsCommandTests(TestCase):

    def test_creates_groups_idempotently(self):
        call_command('create_user_groups', stdout=io.StringIO())
        call_command('create_user_groups', stdout=io.StringIO())
        self.assertEqual(
            sorted(Group.objects.values_list('name', flat=True)),
            ['Admin', 'Catalog', 'Purchase', 'Sales']
        )
        sales = Group.objects.get(name='Sales')
        self.assertTrue(sales.permissions.filter(codename='add_quotation').exists())
        self.assertFalse(sales.permissions.filter(codename='add_purchasebill').exists())


class LoggingConfigTests(TestCase):

    def test_app_loggers_follow_django_log_level(self):
        loggers = django_settings.LOGGING['loggers']
        self.assertEqual(loggers['erpdesk']['level'], loggers['django']['level'])
        self.assertEqual(
            logging.getLogger('erpdesk.purchasing.services').getEffectiveLevel(),
            logging.getLevelName(loggers['django']['level'])
        )
