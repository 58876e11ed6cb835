"""
Test suite for the Purchasing module
Tests: bill arithmetic and status, payments and FIFO allocation, vendor summaries,
vendor product prices, exports, dashboard and reports
"""
import io
import re
import shutil
import tempfile
from datetime import date
from decimal import Decimal

from django.core.cache import cache
from django.core.management import call_command
from django.test import TestCase, override_settings
from django.utils import timezone
from rest_framework import status

from erpdesk.catalog.models import ExportJob
from erpdesk.core.models import AuditLog
from erpdesk.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from erpdesk.purchasing import services
from erpdesk.purchasing.models import PurchaseBill, PurchasePayment, PaymentAllocation, VendorProductPrice


class BillArithmeticTests(TestCase):
    """GST and total calculation"""

    def test_item_amounts(self):
        subtotal, gst, total = services.compute_item_amounts(Decimal('2'), Decimal('100.00'), Decimal('18'))
        self.assertEqual(subtotal, Decimal('200.00'))
        self.assertEqual(gst, Decimal('36.00'))
        self.assertEqual(total, Decimal('236.00'))

    def test_item_amounts_round_half_up(self):
        subtotal, gst, total = services.compute_item_amounts(Decimal('3'), Decimal('33.33'), Decimal('5'))
        self.assertEqual(subtotal, Decimal('99.99'))
        self.assertEqual(gst, Decimal('5.00'))
        self.assertEqual(total, Decimal('104.99'))

    def test_bill_totals_with_discount(self):
        totals = services.compute_bill_totals([
            {'quantity': Decimal('2'), 'purchase_price': Decimal('100'), 'gst_percent': Decimal('18')},
            {'quantity': Decimal('1'), 'purchase_price': Decimal('50'), 'gst_percent': Decimal('0')},
        ], Decimal('10'))
        self.assertEqual(totals['subtotal'], Decimal('250.00'))
        self.assertEqual(totals['total_gst'], Decimal('36.00'))
        self.assertEqual(totals['total_amount'], Decimal('276.00'))

    def test_bill_status_rules(self):
        self.assertEqual(services.bill_status(Decimal('100'), Decimal('0'), Decimal('100')), 'outstanding')
        self.assertEqual(services.bill_status(Decimal('100'), Decimal('40'), Decimal('60')), 'partial')
        self.assertEqual(services.bill_status(Decimal('100'), Decimal('100'), Decimal('0')), 'paid')
        self.assertEqual(services.bill_status(Decimal('0'), Decimal('0'), Decimal('0')), 'outstanding')

    def test_factory_bill_figures(self):
        bill = TestDataFactory.create_bill()
        self.assertEqual(bill.subtotal, Decimal('1000.00'))
        self.assertEqual(bill.total_gst, Decimal('180.00'))
        self.assertEqual(bill.total_amount, Decimal('1180.00'))
        self.assertEqual(bill.outstanding_amount, Decimal('1180.00'))
        self.assertEqual(bill.status, 'outstanding')
        totals = services.compute_bill_totals(bill.items.all(), bill.discount)
        self.assertEqual(totals['total_amount'], bill.total_amount)

    def test_bill_str_uses_number(self):
        bill = TestDataFactory.create_bill(bill_number='INV-77')
        self.assertEqual(str(bill), 'INV-77')


class PaymentAllocationTests(TestCase):
    """Bill payments, FIFO allocation and releasing allocations"""

    def setUp(self):
        cache.clear()
        self.vendor = TestDataFactory.create_vendor()
        self.old_bill = TestDataFactory.create_bill(vendor=self.vendor, bill_date=date(2024, 1, 1))
        self.new_bill = TestDataFactory.create_bill(vendor=self.vendor, bill_date=date(2024, 2, 1))

    def test_partial_bill_payment(self):
        payment, bill = services.record_bill_payment(self.old_bill, Decimal('500'))
        self.assertEqual(bill.paid_amount, Decimal('500.00'))
        self.assertEqual(bill.outstanding_amount, Decimal('680.00'))
        self.assertEqual(bill.status, 'partial')
        self.assertEqual(payment.unallocated_amount, Decimal('0'))

    def test_bill_payment_excess_stays_unallocated(self):
        payment, bill = services.record_bill_payment(self.old_bill, Decimal('2000'))
        self.assertEqual(bill.status, 'paid')
        self.assertEqual(bill.outstanding_amount, Decimal('0.00'))
        self.assertEqual(payment.allocated_amount, Decimal('1180.00'))
        self.assertEqual(payment.unallocated_amount, Decimal('820.00'))
        self.new_bill.refresh_from_db()
        self.assertEqual(self.new_bill.paid_amount, Decimal('0.00'))

    def test_payment_amount_must_be_positive(self):
        with self.assertRaises(services.PurchasingError):
            services.record_bill_payment(self.old_bill, Decimal('0'))
        with self.assertRaises(services.PurchasingError):
            services.record_vendor_payment(self.vendor, Decimal('-5'))
        self.assertEqual(PurchasePayment.objects.count(), 0)

    def test_vendor_payment_fifo_oldest_first(self):
        payment, allocations = services.record_vendor_payment(self.vendor, Decimal('1500'))
        self.assertEqual(len(allocations), 2)
        self.assertEqual(allocations[0].bill_id, self.old_bill.id)
        self.assertEqual(allocations[0].amount, Decimal('1180.00'))
        self.assertEqual(allocations[1].amount, Decimal('320.00'))

        self.old_bill.refresh_from_db()
        self.new_bill.refresh_from_db()
        self.assertEqual(self.old_bill.status, 'paid')
        self.assertEqual(self.new_bill.status, 'partial')
        self.assertEqual(self.new_bill.outstanding_amount, Decimal('860.00'))
        self.assertEqual(payment.unallocated_amount, Decimal('0'))

    def test_fifo_never_exceeds_outstanding(self):
        payment, allocations = services.record_vendor_payment(self.vendor, Decimal('5000'))
        self.assertEqual(sum(a.amount for a in allocations), Decimal('2360.00'))
        self.assertEqual(payment.unallocated_amount, Decimal('2640.00'))
        for bill in PurchaseBill.objects.filter(vendor=self.vendor):
            self.assertEqual(bill.outstanding_amount, Decimal('0.00'))
            self.assertEqual(bill.status, 'paid')

    def test_fifo_ordering_ties_by_id(self):
        vendor = TestDataFactory.create_vendor()
        first = TestDataFactory.create_bill(vendor=vendor, bill_date=date(2024, 5, 1))
        second = TestDataFactory.create_bill(vendor=vendor, bill_date=date(2024, 5, 1))
        _, allocations = services.record_vendor_payment(vendor, Decimal('100'))
        self.assertEqual([a.bill_id for a in allocations], [first.id])
        second.refresh_from_db()
        self.assertEqual(second.paid_amount, Decimal('0.00'))

    def test_allocate_unallocated_applies_leftover(self):
        services.record_bill_payment(self.old_bill, Decimal('2000'))
        allocations = services.allocate_unallocated(self.vendor)
        self.assertEqual(len(allocations), 1)
        self.assertEqual(allocations[0].bill_id, self.new_bill.id)
        self.assertEqual(allocations[0].amount, Decimal('820.00'))
        self.new_bill.refresh_from_db()
        self.assertEqual(self.new_bill.outstanding_amount, Decimal('360.00'))
        self.assertEqual(self.new_bill.status, 'partial')

    def test_allocate_unallocated_without_balance(self):
        self.assertEqual(services.allocate_unallocated(self.vendor), [])

    def test_delete_payment_restores_bill(self):
        payment, _ = services.record_bill_payment(self.old_bill, Decimal('500'))
        services.delete_payment(payment)
        self.old_bill.refresh_from_db()
        self.assertEqual(self.old_bill.paid_amount, Decimal('0.00'))
        self.assertEqual(self.old_bill.outstanding_amount, Decimal('1180.00'))
        self.assertEqual(self.old_bill.status, 'outstanding')
        self.assertFalse(PaymentAllocation.objects.exists())

    def test_delete_bill_releases_allocations(self):
        payment, _ = services.record_bill_payment(self.old_bill, Decimal('500'))
        self.old_bill.delete()
        payment.refresh_from_db()
        self.assertIsNone(payment.bill)
        self.assertEqual(payment.allocated_amount, Decimal('0'))
        self.assertEqual(payment.unallocated_amount, Decimal('500.00'))

    def test_recalculate_after_item_change(self):
        services.record_bill_payment(self.old_bill, Decimal('1180'))
        item = self.old_bill.items.first()
        item.purchase_price = Decimal('2000.00')
        item.save()
        bill = services.recalculate_bill(self.old_bill)
        self.assertEqual(bill.total_amount, Decimal('2360.00'))
        self.assertEqual(bill.items.first().gst_amount, Decimal('360.00'))
        self.assertEqual(bill.outstanding_amount, Decimal('1180.00'))
        self.assertEqual(bill.status, 'partial')


class VendorSummaryTests(TestCase):

    def setUp(self):
        cache.clear()
        self.vendor = TestDataFactory.create_vendor(name='Summary Vendor')
        self.bill = TestDataFactory.create_bill(vendor=self.vendor, bill_date=date(2024, 1, 1))
        self.other = TestDataFactory.create_bill(vendor=self.vendor, bill_date=date(2024, 2, 1))

    def test_summary_figures(self):
        services.record_bill_payment(self.bill, Decimal('2000'))
        summary = services.vendor_payment_summary(self.vendor)
        self.assertEqual(summary['vendor_id'], self.vendor.id)
        self.assertEqual(summary['vendor_name'], 'Summary Vendor')
        self.assertEqual(summary['total_bill_amount'], 2360.0)
        self.assertEqual(summary['total_paid_amount'], 1180.0)
        self.assertEqual(summary['total_outstanding'], 1180.0)
        self.assertEqual(summary['total_bills'], 2)
        self.assertEqual(summary['unallocated_payments'], 820.0)
        self.assertEqual(summary['available_for_allocation'], 820.0)

    def test_available_is_capped_by_outstanding(self):
        services.record_vendor_payment(self.vendor, Decimal('3000'))
        summary = services.vendor_payment_summary(self.vendor)
        self.assertEqual(summary['total_outstanding'], 0.0)
        self.assertEqual(summary['unallocated_payments'], 640.0)
        self.assertEqual(summary['available_for_allocation'], 0.0)

    def test_cached_summary_is_invalidated_by_payment(self):
        first = services.vendor_payment_summary(self.vendor)
        self.assertEqual(first['total_paid_amount'], 0.0)
        services.record_bill_payment(self.bill, Decimal('100'))
        second = services.vendor_payment_summary(self.vendor)
        self.assertEqual(second['total_paid_amount'], 100.0)

    def test_summaries_keyed_by_vendor(self):
        other_vendor = TestDataFactory.create_vendor()
        summaries = services.payment_summaries([other_vendor.id, self.vendor.id, 999999])
        self.assertEqual(set(summaries.keys()), {str(self.vendor.id), str(other_vendor.id)})
        self.assertEqual(summaries[str(self.vendor.id)]['total_bills'], 2)
        self.assertEqual(summaries[str(other_vendor.id)]['total_bills'], 0)


class BillAPITests(TestCase):
    """Bill endpoints"""

    def setUp(self):
        cache.clear()
        self.user = TestDataFactory.create_user()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)
        self.vendor = TestDataFactory.create_vendor(name='Acme Motors')
        self.product = TestDataFactory.create_product(title='Brake Pad')

    def _payload(self, **overrides):
        payload = {
            'vendor_id': self.vendor.id,
            'bill_date': '2024-03-01',
            'discount': '0',
            'notes': 'March stock',
            'items': [
                {'product_id': self.product.id, 'quantity': '2', 'purchase_price': '100.00', 'gst_percent': '18'},
            ],
        }
        payload.update(overrides)
        return payload

    def test_requires_authentication(self):
        self.client.logout()
        response = self.client.get('/api/v1/bills/')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_create_bill(self):
        response = self.client.post('/api/v1/bills/', self._payload(), format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['subtotal'], '200.00')
        self.assertEqual(response.data['total_gst'], '36.00')
        self.assertEqual(response.data['total_amount'], '236.00')
        self.assertEqual(response.data['outstanding_amount'], '236.00')
        self.assertEqual(response.data['status'], 'outstanding')
        self.assertEqual(len(response.data['items']), 1)
        self.assertEqual(response.data['items'][0]['product_title'], 'Brake Pad')
        self.assertRegex(response.data['bill_number'], r'^PB-\d{8}-\d{4}$')
        self.assertTrue(AuditLog.objects.filter(action='bill_create', model_name='PurchaseBill').exists())

    def test_bill_number_prefix_from_settings(self):
        from erpdesk.core.models import Setting
        Setting.objects.create(key='bill_number_prefix', value='VB')
        response = self.client.post('/api/v1/bills/', self._payload(), format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertTrue(response.data['bill_number'].startswith('VB-'))

    def test_generated_numbers_increment(self):
        first = self.client.post('/api/v1/bills/', self._payload(), format='json').data['bill_number']
        second = self.client.post('/api/v1/bills/', self._payload(), format='json').data['bill_number']
        self.assertEqual(int(second[-4:]), int(first[-4:]) + 1)

    def test_create_requires_items(self):
        response = self.client.post('/api/v1/bills/', self._payload(items=[]), format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('items', response.data)
        self.assertTrue(response.data['error'])

    def test_create_requires_vendor(self):
        payload = self._payload()
        del payload['vendor_id']
        response = self.client.post('/api/v1/bills/', payload, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('vendor_id', response.data)

    def test_item_validation(self):
        bad_items = [
            {'product_id': self.product.id, 'quantity': '0', 'purchase_price': '100', 'gst_percent': '18'},
            {'product_id': self.product.id, 'quantity': '1', 'purchase_price': '0', 'gst_percent': '18'},
            {'product_id': self.product.id, 'quantity': '1', 'purchase_price': '10', 'gst_percent': '101'},
        ]
        for item in bad_items:
            response = self.client.post('/api/v1/bills/', self._payload(items=[item]), format='json')
            self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST, item)
            self.assertIn('items', response.data)
        self.assertEqual(PurchaseBill.objects.count(), 0)

    def test_discount_cannot_exceed_total(self):
        response = self.client.post('/api/v1/bills/', self._payload(discount='300'), format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('discount', response.data)

        response = self.client.post('/api/v1/bills/', self._payload(discount='-1'), format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_duplicate_bill_number_for_vendor(self):
        TestDataFactory.create_bill(vendor=self.vendor, bill_number='INV-1')
        response = self.client.post('/api/v1/bills/', self._payload(bill_number='INV-1'), format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('bill_number', response.data)

        other_vendor = TestDataFactory.create_vendor()
        response = self.client.post(
            '/api/v1/bills/', self._payload(vendor_id=other_vendor.id, bill_number='INV-1'), format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)

    def test_patch_replaces_items(self):
        bill_id = self.client.post('/api/v1/bills/', self._payload(), format='json').data['id']
        response = self.client.patch(f'/api/v1/bills/{bill_id}/', {
            'items': [{'item_name': 'Oil filter', 'quantity': '1', 'purchase_price': '50', 'gst_percent': '0'}]
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['total_amount'], '50.00')
        self.assertEqual(len(response.data['items']), 1)
        self.assertEqual(response.data['items'][0]['item_name'], 'Oil filter')

    def test_patch_discount_keeps_items(self):
        bill_id = self.client.post('/api/v1/bills/', self._payload(), format='json').data['id']
        response = self.client.patch(f'/api/v1/bills/{bill_id}/', {'discount': '10'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['total_amount'], '226.00')
        self.assertEqual(len(response.data['items']), 1)

    def test_paid_bill_total_cannot_drop_below_paid(self):
        bill = TestDataFactory.create_bill(vendor=self.vendor, items=[(10, '100.00', 0)])
        services.record_bill_payment(bill, Decimal('1000'))

        response = self.client.patch(f'/api/v1/bills/{bill.id}/', {
            'items': [{'item_name': 'Single', 'quantity': '1', 'purchase_price': '100', 'gst_percent': '0'}]
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['items'], ['Bill total cannot be less than the amount already paid'])

        response = self.client.patch(f'/api/v1/bills/{bill.id}/', {'discount': '1'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('discount', response.data)

        bill.refresh_from_db()
        self.assertEqual(bill.total_amount, Decimal('1000.00'))
        self.assertEqual(bill.outstanding_amount, Decimal('0.00'))
        self.assertEqual(bill.items.count(), 1)
        self.assertEqual(services.vendor_payment_summary(self.vendor)['total_outstanding'], 0.0)

    def test_partly_paid_bill_can_shrink_to_paid_amount(self):
        bill = TestDataFactory.create_bill(vendor=self.vendor, items=[(10, '100.00', 0)])
        services.record_bill_payment(bill, Decimal('400'))
        response = self.client.patch(f'/api/v1/bills/{bill.id}/', {'discount': '600'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['outstanding_amount'], '0.00')
        self.assertEqual(response.data['status'], 'paid')

    def test_vendor_change_blocked_once_paid(self):
        other = TestDataFactory.create_vendor(name='Other Traders')
        bill = TestDataFactory.create_bill(vendor=self.vendor)
        services.record_bill_payment(bill, Decimal('400'))

        response = self.client.patch(f'/api/v1/bills/{bill.id}/', {'vendor_id': other.id}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('vendor_id', response.data)
        bill.refresh_from_db()
        self.assertEqual(bill.vendor_id, self.vendor.id)
        self.assertEqual(services.vendor_payment_summary(other)['total_paid_amount'], 0.0)

    def test_vendor_change_refreshes_old_vendor_summary(self):
        other = TestDataFactory.create_vendor(name='Other Traders')
        bill = TestDataFactory.create_bill(vendor=self.vendor)
        self.assertEqual(services.vendor_payment_summary(self.vendor)['total_bills'], 1)

        response = self.client.patch(f'/api/v1/bills/{bill.id}/', {'vendor_id': other.id}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['vendor_name'], 'Other Traders')
        self.assertEqual(services.vendor_payment_summary(self.vendor)['total_bills'], 0)
        self.assertEqual(services.vendor_payment_summary(other)['total_bills'], 1)

    def test_list_filters(self):
        paid = TestDataFactory.create_bill(vendor=self.vendor, bill_number='PAID-1')
        services.record_bill_payment(paid, paid.total_amount)
        TestDataFactory.create_bill(vendor=self.vendor, bill_number='OPEN-1')

        response = self.client.get('/api/v1/bills/', {'status': 'paid'})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['count'], 1)
        self.assertEqual(response.data['results'][0]['bill_number'], 'PAID-1')
        self.assertEqual(response.data['current_page'], 1)

        response = self.client.get('/api/v1/bills/', {'search': 'open'})
        self.assertEqual([row['bill_number'] for row in response.data['results']], ['OPEN-1'])

    def test_recent_and_search(self):
        TestDataFactory.create_bill(vendor=self.vendor, bill_number='ALPHA-9')
        TestDataFactory.create_bill(vendor=self.vendor, bill_number='BETA-9')
        response = self.client.get('/api/v1/bills/recent/', {'limit': 1})
        self.assertEqual(len(response.data), 1)
        response = self.client.get('/api/v1/bills/search/', {'q': 'alpha'})
        self.assertEqual([row['bill_number'] for row in response.data], ['ALPHA-9'])

    def test_recalculate_endpoint(self):
        bill = TestDataFactory.create_bill(vendor=self.vendor)
        PurchaseBill.objects.filter(pk=bill.pk).update(total_amount=Decimal('1.00'), status='paid')
        response = self.client.post(f'/api/v1/bills/{bill.id}/recalculate/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['total_amount'], '1180.00')
        self.assertEqual(response.data['status'], 'outstanding')

    def test_add_payment_endpoint(self):
        bill = TestDataFactory.create_bill(vendor=self.vendor)
        response = self.client.post(f'/api/v1/bills/{bill.id}/add_payment/', {
            'amount': '200', 'payment_date': '2024-03-05', 'mode': 'UPI', 'note': 'advance'
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['bill']['status'], 'partial')
        self.assertEqual(response.data['bill']['outstanding_amount'], '980.00')
        self.assertEqual(response.data['payment']['mode'], 'UPI')

    def test_add_payment_rejects_zero(self):
        bill = TestDataFactory.create_bill(vendor=self.vendor)
        response = self.client.post(f'/api/v1/bills/{bill.id}/add_payment/', {'amount': '0'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('amount', response.data)

    def test_delete_bill(self):
        bill = TestDataFactory.create_bill(vendor=self.vendor)
        services.record_bill_payment(bill, Decimal('100'))
        response = self.client.delete(f'/api/v1/bills/{bill.id}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.assertFalse(PurchaseBill.objects.filter(pk=bill.id).exists())
        self.assertEqual(PurchasePayment.objects.get().unallocated_amount, Decimal('100.00'))

    def test_vendor_with_bills_cannot_be_deleted(self):
        TestDataFactory.create_bill(vendor=self.vendor)
        response = self.client.delete(f'/api/v1/vendors/{self.vendor.id}/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)


class PaymentAPITests(TestCase):

    def setUp(self):
        cache.clear()
        self.user = TestDataFactory.create_user()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)
        self.vendor = TestDataFactory.create_vendor()
        self.bill = TestDataFactory.create_bill(vendor=self.vendor, bill_date=date(2024, 1, 1))

    def test_create_payment_against_bill(self):
        response = self.client.post('/api/v1/payments/', {
            'vendor_id': self.vendor.id, 'bill_id': self.bill.id, 'amount': '300', 'mode': 'Cash'
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['allocated_amount'], '300.00')
        self.bill.refresh_from_db()
        self.assertEqual(self.bill.status, 'partial')

    def test_create_vendor_level_payment(self):
        response = self.client.post('/api/v1/payments/', {'vendor_id': self.vendor.id, 'amount': '1180'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.bill.refresh_from_db()
        self.assertEqual(self.bill.status, 'paid')

    def test_bill_must_belong_to_vendor(self):
        other = TestDataFactory.create_vendor()
        response = self.client.post('/api/v1/payments/', {
            'vendor_id': other.id, 'bill_id': self.bill.id, 'amount': '10'
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('bill_id', response.data)

    def test_payment_list_filters(self):
        services.record_bill_payment(self.bill, Decimal('100'), mode='UPI')
        services.record_vendor_payment(self.vendor, Decimal('50'), mode='Cash')
        response = self.client.get('/api/v1/payments/', {'mode': 'UPI'})
        self.assertEqual(response.data['count'], 1)
        response = self.client.get('/api/v1/payments/', {'bill': self.bill.id})
        self.assertEqual(response.data['count'], 2)

    def test_delete_payment_endpoint(self):
        payment, _ = services.record_bill_payment(self.bill, Decimal('100'))
        response = self.client.delete(f'/api/v1/payments/{payment.id}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.bill.refresh_from_db()
        self.assertEqual(self.bill.outstanding_amount, Decimal('1180.00'))
        self.assertTrue(AuditLog.objects.filter(action='payment_delete').exists())

    def test_vendor_payment_summary_endpoint(self):
        services.record_bill_payment(self.bill, Decimal('100'))
        response = self.client.get(f'/api/v1/vendors/{self.vendor.id}/payment-summary/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['total_paid_amount'], 100.0)
        self.assertEqual(response.data['total_outstanding'], 1080.0)

    def test_payment_summaries_endpoint(self):
        response = self.client.post('/api/v1/vendors/payment-summaries/', {'vendor_ids': [self.vendor.id]}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIn(str(self.vendor.id), response.data)

        response = self.client.post('/api/v1/vendors/payment-summaries/', {'vendor_ids': []}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_vendor_add_payment_and_allocate(self):
        newer = TestDataFactory.create_bill(vendor=self.vendor, bill_date=date(2024, 2, 1))
        response = self.client.post(f'/api/v1/vendors/{self.vendor.id}/add_payment/', {'amount': '1500'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['allocations_count'], 2)
        self.assertEqual(response.data['summary']['total_outstanding'], 860.0)

        outstanding = self.client.get(f'/api/v1/vendors/{self.vendor.id}/outstanding-bills/')
        self.assertEqual([row['id'] for row in outstanding.data], [newer.id])

        services.record_bill_payment(self.bill, Decimal('500'))
        response = self.client.post(f'/api/v1/vendors/{self.vendor.id}/allocate/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['allocated_amount'], '500.00')
        newer.refresh_from_db()
        self.assertEqual(newer.outstanding_amount, Decimal('360.00'))

    def test_vendor_bills_and_payments(self):
        services.record_bill_payment(self.bill, Decimal('100'))
        response = self.client.get(f'/api/v1/vendors/{self.vendor.id}/bills/')
        self.assertEqual(response.data['count'], 1)
        response = self.client.get(f'/api/v1/vendors/{self.vendor.id}/payments/')
        self.assertEqual(response.data['count'], 1)


class VendorProductPriceTests(TestCase):

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)
        self.vendor = TestDataFactory.create_vendor(name='Acme Parts')
        self.product = TestDataFactory.create_product(title='Clutch Plate')

    def test_create_opens_history(self):
        response = self.client.post('/api/v1/vendor-product-prices/', {
            'vendor_id': self.vendor.id, 'product_id': self.product.id, 'purchase_price': '80.00'
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        price = VendorProductPrice.objects.get(pk=response.data['id'])
        self.assertEqual(price.history.count(), 1)
        self.assertIsNone(price.history.get().effective_to)

    def test_price_change_closes_history_row(self):
        price = TestDataFactory.create_vendor_price(vendor=self.vendor, product=self.product)
        response = self.client.patch(f'/api/v1/vendor-product-prices/{price.id}/', {'purchase_price': '90.00'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)

        history = self.client.get(f'/api/v1/vendor-product-prices/{price.id}/history/').data
        self.assertEqual(len(history), 2)
        self.assertEqual(history[0]['purchase_price'], '90.00')
        self.assertIsNone(history[0]['effective_to'])
        self.assertEqual(history[1]['effective_to'], timezone.localdate().isoformat())
        self.assertTrue(AuditLog.objects.filter(action='price_change', model_name='VendorProductPrice').exists())

    def test_unchanged_price_keeps_history(self):
        price = TestDataFactory.create_vendor_price(vendor=self.vendor, product=self.product)
        self.client.patch(f'/api/v1/vendor-product-prices/{price.id}/', {'notes': 'call first'}, format='json')
        self.assertEqual(price.history.count(), 1)

    def test_single_preferred_vendor(self):
        first = TestDataFactory.create_vendor_price(vendor=self.vendor, product=self.product, is_preferred=True)
        other_vendor = TestDataFactory.create_vendor()
        response = self.client.post('/api/v1/vendor-product-prices/', {
            'vendor_id': other_vendor.id, 'product_id': self.product.id,
            'purchase_price': '75.00', 'is_preferred': True
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        first.refresh_from_db()
        self.assertFalse(first.is_preferred)

    def test_duplicate_vendor_product_rejected(self):
        TestDataFactory.create_vendor_price(vendor=self.vendor, product=self.product)
        response = self.client.post('/api/v1/vendor-product-prices/', {
            'vendor_id': self.vendor.id, 'product_id': self.product.id, 'purchase_price': '70.00'
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_list_filters_by_vendor(self):
        TestDataFactory.create_vendor_price(vendor=self.vendor, product=self.product)
        TestDataFactory.create_vendor_price()
        response = self.client.get('/api/v1/vendor-product-prices/', {'vendor_id': self.vendor.id})
        self.assertEqual(response.data['count'], 1)

    def test_products_filter_by_vendor(self):
        TestDataFactory.create_vendor_price(vendor=self.vendor, product=self.product)
        TestDataFactory.create_product(title='Unrelated')
        response = self.client.get('/api/v1/products/', {'vendor': self.vendor.id})
        self.assertEqual([row['title'] for row in response.data['results']], ['Clutch Plate'])


class VendorPriceExportTests(TestCase):

    def setUp(self):
        self.media_root = tempfile.mkdtemp()
        self.settings_override = override_settings(MEDIA_ROOT=self.media_root)
        self.settings_override.enable()
        self.user = TestDataFactory.create_user()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)

    def tearDown(self):
        self.settings_override.disable()
        shutil.rmtree(self.media_root, ignore_errors=True)

    def test_export_csv_records_job(self):
        vendor = TestDataFactory.create_vendor(name='Acme, Ltd')
        TestDataFactory.create_vendor_price(vendor=vendor, purchase_price=Decimal('80.50'), is_preferred=True)
        TestDataFactory.create_vendor_price()

        response = self.client.post('/api/v1/vendor-product-prices/export/', {'vendor_id': vendor.id}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response['Content-Type'], 'text/csv; charset=utf-8')

        lines = response.content.decode('utf-8').splitlines()
        self.assertEqual(lines[0], ','.join(services.VENDOR_PRICE_EXPORT_HEADER))
        self.assertEqual(len(lines), 2)
        self.assertTrue(lines[1].startswith('"Acme, Ltd",'))
        self.assertIn(',80.50,', lines[1])

        job = ExportJob.objects.get(pk=int(response['X-Export-Job-Id']))
        self.assertEqual(job.kind, 'vendor_prices')
        self.assertEqual(job.status, 'SUCCESS')
        self.assertEqual(job.row_count, 1)
        self.assertTrue(job.file_name.startswith('vendor_prices_'))


class DashboardAndReportTests(TestCase):

    def setUp(self):
        cache.clear()
        self.user = TestDataFactory.create_user()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)
        self.vendor = TestDataFactory.create_vendor(name='Top Vendor')
        self.bill = TestDataFactory.create_bill(vendor=self.vendor)
        services.record_bill_payment(self.bill, Decimal('180'), mode='UPI')

    def test_dashboard(self):
        response = self.client.get('/api/v1/purchase/dashboard/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        totals = response.data['totals']
        self.assertEqual(totals['total_bills'], 1)
        self.assertEqual(totals['total_amount'], 1180.0)
        self.assertEqual(totals['total_paid'], 180.0)
        self.assertEqual(totals['total_outstanding'], 1000.0)
        self.assertEqual(response.data['top_vendors'][0]['vendor_name'], 'Top Vendor')
        self.assertEqual({row['type'] for row in response.data['recent_activity']}, {'bill', 'payment'})

    def test_dashboard_cache_invalidated_by_new_bill(self):
        self.client.get('/api/v1/purchase/dashboard/')
        TestDataFactory.create_bill(vendor=self.vendor)
        response = self.client.get('/api/v1/purchase/dashboard/')
        self.assertEqual(response.data['totals']['total_bills'], 2)

    def test_month_report(self):
        response = self.client.get('/api/v1/purchase/reports/', {'period': 'month'})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['totals']['total_bills'], 1)
        self.assertEqual(response.data['totals']['total_amount'], 1180.0)
        self.assertEqual(response.data['monthly_data'][0]['month'], timezone.localdate().strftime('%Y-%m'))
        self.assertEqual(response.data['payment_methods'], [{'method': 'UPI', 'count': 1, 'amount': 180.0}])

    def test_report_excludes_older_bills(self):
        TestDataFactory.create_bill(vendor=self.vendor, bill_date=date(2000, 1, 1))
        report = services.purchase_report('year')
        self.assertEqual(report['totals']['total_bills'], 1)

    def test_invalid_period(self):
        response = self.client.get('/api/v1/purchase/reports/', {'period': 'decade'})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('period', response.data)

    def test_period_start(self):
        today = date(2024, 8, 17)
        self.assertEqual(services.period_start('month', today), date(2024, 8, 1))
        self.assertEqual(services.period_start('quarter', today), date(2024, 7, 1))
        self.assertEqual(services.period_start('year', today), date(2024, 1, 1))


class RecalculateBillsCommandTests(TestCase):

    def test_command_repairs_stored_figures(self):
        bill = TestDataFactory.create_bill()
        PurchaseBill.objects.filter(pk=bill.pk).update(total_amount=Decimal('5.00'), outstanding_amount=Decimal('5.00'))
        call_command('recalculate_bills', '--dry-run', stdout=io.StringIO())
        bill.refresh_from_db()
        self.assertEqual(bill.total_amount, Decimal('5.00'))

        call_command('recalculate_bills', stdout=io.StringIO())
        bill.refresh_from_db()
        self.assertEqual(bill.total_amount, Decimal('1180.00'))
        self.assertEqual(bill.outstanding_amount, Decimal('1180.00'))


def _is_document_number(value, prefix):
    return re.match(rf'^{prefix}-\d{{8}}-\d{{4}}$', value) is not None


class DocumentNumberTests(TestCase):

    def test_bill_numbers(self):
        self.assertTrue(_is_document_number(services.next_bill_number(), 'PB'))
        number = services.next_bill_number(on_date=date(2024, 1, 31))
        self.assertEqual(number, 'PB-20240131-0001')
