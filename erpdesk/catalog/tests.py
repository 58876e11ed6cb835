"""
Test suite for the Catalog module
Tests: vehicle compatibility, product API, label export wizard, export history
"""
import io
import shutil
import tempfile
from datetime import timedelta
from decimal import Decimal

from PIL import Image
from django.conf import settings as django_settings
from django.core.files.uploadedfile import SimpleUploadedFile
from django.test import TestCase, override_settings
from django.utils import timezone
from rest_framework import status

from erpdesk.catalog.label_export import LabelExportWizard, LabelExportError, product_field_value
from erpdesk.catalog.models import Product, ExportJob
from erpdesk.core.test_utils import TestDataFactory, AuthenticatedAPIClient


class CompatibilityModelTests(TestCase):
    """Product fitment: general, group or explicit variants"""

    def setUp(self):
        self.maker = TestDataFactory.create_car_maker(name='Hyundai')
        self.model = TestDataFactory.create_car_model(car_maker=self.maker, name='i20')
        self.variant = TestDataFactory.create_car_variant(model=self.model, name='Asta', year_start=2015, year_end=2020)
        self.other_variant = TestDataFactory.create_car_variant(model=self.model, name='Magna')

    def test_variant_takes_maker_from_model(self):
        self.assertEqual(self.variant.car_maker_id, self.maker.id)

    def test_variant_str_has_years(self):
        self.assertEqual(str(self.variant), 'i20 Asta (2015-2020)')

    def test_general_product_fits_everything(self):
        product = TestDataFactory.create_product()
        self.assertTrue(product.is_compatible_with(self.variant))
        self.assertEqual(product.compatibility_mode, 'general')
        self.assertEqual(product.compatibility_label(), 'Universal')

    def test_group_product(self):
        group = TestDataFactory.create_compatibility_group(name='i20 petrol', car_maker=self.maker, variants=[self.variant])
        product = TestDataFactory.create_product(is_general_product=False, compatibility_group=group)
        self.assertEqual(product.compatibility_mode, 'group')
        self.assertTrue(product.is_compatible_with(self.variant))
        self.assertFalse(product.is_compatible_with(self.other_variant))
        self.assertEqual(product.compatibility_label(), 'i20 petrol')
        self.assertTrue(group.is_mapped)

    def test_compatible_with_queryset(self):
        general = TestDataFactory.create_product(title='Wiper')
        direct = TestDataFactory.create_product(title='Mat', is_general_product=False)
        direct.compatible_variants.set([self.variant])
        group = TestDataFactory.create_compatibility_group(variants=[self.variant])
        grouped = TestDataFactory.create_product(title='Pad', is_general_product=False, compatibility_group=group)
        other = TestDataFactory.create_product(title='Other', is_general_product=False)
        other.compatible_variants.set([self.other_variant])

        found = set(Product.objects.compatible_with(self.variant).values_list('id', flat=True))
        self.assertEqual(found, {general.id, direct.id, grouped.id})

    def test_sku_generated_from_category(self):
        category = TestDataFactory.create_category(name='Brakes')
        product = TestDataFactory.create_product(category=category)
        self.assertEqual(product.sku, f'BRA-{str(product.pk).zfill(5)}')


class ProductAPITests(TestCase):

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)
        self.variant = TestDataFactory.create_car_variant()
        self.group = TestDataFactory.create_compatibility_group(variants=[self.variant])

    def test_requires_one_compatibility_mode(self):
        """A non-general product needs a group or variants, not both"""
        response = self.client.post('/api/v1/products/', {
            'title': 'Brake Disc', 'price': '1200.00', 'is_general_product': False
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertTrue(response.data['error'])

        response = self.client.post('/api/v1/products/', {
            'title': 'Brake Disc', 'price': '1200.00', 'is_general_product': False,
            'compatibility_group': self.group.id, 'compatible_variants': [self.variant.id]
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_create_group_product(self):
        response = self.client.post('/api/v1/products/', {
            'title': 'Brake Disc', 'price': '1200.00', 'is_general_product': False,
            'compatibility_group': self.group.id
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['compatibility_mode'], 'group')
        self.assertTrue(response.data['sku'].startswith('PRD-'))

    def test_general_product_drops_mapping(self):
        response = self.client.post('/api/v1/products/', {
            'title': 'Coolant', 'price': '300.00', 'is_general_product': True,
            'compatibility_group': self.group.id
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertIsNone(response.data['compatibility_group'])
        self.assertEqual(response.data['compatible_variants'], [])

    def test_switch_to_variants_clears_group(self):
        product = TestDataFactory.create_product(is_general_product=False, compatibility_group=self.group)
        response = self.client.patch(f'/api/v1/products/{product.id}/', {
            'compatible_variants': [self.variant.id]
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIsNone(response.data['compatibility_group'])
        self.assertEqual(response.data['compatibility_mode'], 'variants')

    def test_discounted_price_cannot_exceed_mrp(self):
        response = self.client.post('/api/v1/products/', {
            'title': 'Horn', 'price': '100.00', 'discounted_price': '150.00', 'is_general_product': True
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('discounted_price', response.data)

    def test_compatible_endpoint(self):
        fitting = TestDataFactory.create_product(title='Fits', is_general_product=False, compatibility_group=self.group)
        TestDataFactory.create_product(title='Universal')
        unrelated = TestDataFactory.create_product(title='Unrelated', is_general_product=False)
        unrelated.compatible_variants.set([TestDataFactory.create_car_variant()])

        response = self.client.get('/api/v1/products/compatible/', {'variant': self.variant.id})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        titles = [row['title'] for row in response.data['results']]
        self.assertEqual(titles, ['Fits', 'Universal'])
        self.assertIn(fitting.id, [row['id'] for row in response.data['results']])

        response = self.client.get('/api/v1/products/compatible/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_list_filter_by_variant(self):
        TestDataFactory.create_product(title='Fits', is_general_product=False, compatibility_group=self.group)
        unrelated = TestDataFactory.create_product(title='Unrelated', is_general_product=False)
        unrelated.compatible_variants.set([TestDataFactory.create_car_variant()])
        response = self.client.get('/api/v1/products/', {'variant': self.variant.id})
        self.assertEqual([row['title'] for row in response.data['results']], ['Fits'])
        self.assertEqual(response.data['summary']['total'], 2)

    def test_mapped_group_cannot_be_deleted(self):
        TestDataFactory.create_product(is_general_product=False, compatibility_group=self.group)
        response = self.client.delete(f'/api/v1/compatibility-groups/{self.group.id}/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_group_variants_must_match_maker(self):
        other_maker = TestDataFactory.create_car_maker()
        response = self.client.post('/api/v1/compatibility-groups/', {
            'name': 'Mixed', 'car_maker': other_maker.id, 'variants_ids': [self.variant.id]
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('variants_ids', response.data)

    def test_group_year_range(self):
        response = self.client.post('/api/v1/compatibility-groups/', {
            'name': 'Old range', 'car_maker': self.variant.car_maker_id, 'year_start': 2020, 'year_end': 2015
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('year_end', response.data)

        response = self.client.patch(
            f'/api/v1/compatibility-groups/{self.group.id}/', {'year_start': 2010, 'year_end': 2010}, format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['year_end'], 2010)


def _png(name='part.png'):
    buffer = io.BytesIO()
    Image.new('RGB', (4, 4), color='red').save(buffer, format='PNG')
    return SimpleUploadedFile(name, buffer.getvalue(), content_type='image/png')


class ProductImageUploadTests(TestCase):
    """Multipart product create with a main image and additional images"""

    def setUp(self):
        self.media_root = tempfile.mkdtemp()
        self.settings_override = override_settings(MEDIA_ROOT=self.media_root)
        self.settings_override.enable()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(TestDataFactory.create_user())

    def tearDown(self):
        self.settings_override.disable()
        shutil.rmtree(self.media_root, ignore_errors=True)

    def test_multipart_create_with_images(self):
        response = self.client.post('/api/v1/products/', {
            'title': 'Headlamp',
            'price': '2500.00',
            'is_general_product': 'true',
            'image': _png('front.png'),
            'additional_images': [_png('side.png'), _png('back.png')],
        }, format='multipart')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertTrue(response.data['image'])
        self.assertEqual(len(response.data['additional_images']), 2)
        product = Product.objects.get(pk=response.data['id'])
        self.assertEqual(product.additional_images.count(), 2)

    def test_upload_limit_defaults_to_5mb(self):
        self.assertEqual(django_settings.MAX_UPLOAD_IMAGE_SIZE, 5 * 1024 * 1024)

    @override_settings(MAX_UPLOAD_IMAGE_SIZE=16)
    def test_oversized_images_rejected(self):
        response = self.client.post('/api/v1/products/', {
            'title': 'Headlamp', 'price': '2500.00', 'is_general_product': 'true', 'image': _png(),
        }, format='multipart')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('image', response.data)

        response = self.client.post('/api/v1/products/', {
            'title': 'Headlamp', 'price': '2500.00', 'is_general_product': 'true', 'additional_images': [_png()],
        }, format='multipart')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('additional_images', response.data)
        self.assertFalse(Product.objects.filter(title='Headlamp').exists())


class LabelExportWizardTests(TestCase):
    """Export list, column selection and step navigation"""

    def setUp(self):
        self.brand = TestDataFactory.create_brand(name='Bosch')
        self.bolt = TestDataFactory.create_product(title='Bolt "M8", zinc', price=Decimal('12.50'), brand=self.brand)
        self.nut = TestDataFactory.create_product(title='Nut', price=Decimal('4.00'))

    def test_new_items_go_first_and_duplicates_merge(self):
        wizard = LabelExportWizard()
        wizard.add_product(self.bolt, 2)
        wizard.add_product(self.nut)
        wizard.add_product(self.bolt, 3)
        self.assertEqual([item.product for item in wizard.items], [self.nut, self.bolt])
        self.assertEqual(wizard.items[1].quantity, 5)

    def test_quantity_never_below_one(self):
        wizard = LabelExportWizard()
        wizard.add_product(self.nut, 2)
        self.assertEqual(wizard.update_quantity(self.nut, -10).quantity, 1)
        with self.assertRaises(LabelExportError):
            wizard.update_quantity(self.bolt, 1)

    def test_navigation_bounds(self):
        wizard = LabelExportWizard()
        self.assertFalse(wizard.can_go_to(2))
        self.assertFalse(wizard.prev_step())
        self.assertFalse(wizard.go_to(0))

        wizard.add_product(self.nut)
        self.assertFalse(wizard.go_to(3))
        self.assertTrue(wizard.next_step())
        self.assertTrue(wizard.next_step())
        self.assertEqual(wizard.current_step, 3)
        self.assertFalse(wizard.next_step())
        self.assertFalse(wizard.go_to(4))
        self.assertTrue(wizard.go_to(1))

    def test_templates_and_custom_fields(self):
        wizard = LabelExportWizard('price_tag')
        self.assertEqual(wizard.header(), ['Product Name', 'MRP', 'Barcode'])
        wizard.toggle_field('barcode_number')
        self.assertEqual(wizard.template_id, 'custom')
        self.assertEqual(wizard.fields, ['title', 'price'])
        with self.assertRaises(LabelExportError):
            wizard.set_fields(['title', 'colour'])
        with self.assertRaises(LabelExportError):
            wizard.select_template('poster')

    def test_csv_quotes_values(self):
        wizard = LabelExportWizard()
        wizard.set_fields(['title', 'price', 'brand_name', 'quantity'])
        wizard.add_product(self.bolt, 3)
        lines = wizard.to_csv().split('\n')
        self.assertEqual(lines[0], 'Product Name,MRP,Brand,Quantity')
        self.assertEqual(lines[1], '"Bolt ""M8"", zinc","12.50","Bosch",3')

    def test_csv_requires_items_and_fields(self):
        wizard = LabelExportWizard()
        with self.assertRaises(LabelExportError):
            wizard.to_csv()
        wizard.add_product(self.nut)
        wizard.set_fields([])
        with self.assertRaises(LabelExportError):
            wizard.to_csv()

    def test_field_fallbacks(self):
        self.assertEqual(product_field_value(self.nut, 'discounted_price'), '4.00')
        self.assertEqual(product_field_value(self.nut, 'brand_name'), '')
        self.assertEqual(product_field_value(self.nut, 'vehicle_compatibility'), 'Universal')
        self.assertEqual(product_field_value(self.nut, 'sku'), self.nut.sku)

    def test_file_name(self):
        self.assertEqual(
            LabelExportWizard.file_name(timezone.localdate().replace(year=2024, month=5, day=17)),
            'labels_export_2024-05-17.csv'
        )


class LabelExportAPITests(TestCase):

    def setUp(self):
        self.media_root = tempfile.mkdtemp()
        self.settings_override = override_settings(MEDIA_ROOT=self.media_root)
        self.settings_override.enable()
        self.user = TestDataFactory.create_user()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)
        self.product = TestDataFactory.create_product(title='Bolt', price=Decimal('100.00'))

    def tearDown(self):
        self.settings_override.disable()
        shutil.rmtree(self.media_root, ignore_errors=True)

    def test_fields_endpoint(self):
        response = self.client.get('/api/v1/labels/fields/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['fields'][0], {'id': 'title', 'label': 'Product Name'})
        self.assertEqual(len(response.data['templates']), 3)

    def test_export_records_history(self):
        response = self.client.post('/api/v1/labels/export/', {
            'items': [{'product': self.product.id, 'quantity': 2}],
            'template': 'price_tag',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        lines = response.content.decode('utf-8').split('\n')
        self.assertEqual(lines, ['Product Name,MRP,Barcode', '"Bolt","100.00",""'])

        job = ExportJob.objects.get(pk=int(response['X-Export-Job-Id']))
        self.assertEqual(job.status, 'SUCCESS')
        self.assertEqual(job.kind, 'labels')
        self.assertEqual(job.row_count, 1)
        self.assertEqual(job.parameters['items'], [{'product': self.product.id, 'quantity': 2}])

        history = self.client.get('/api/v1/export-history/')
        self.assertEqual(history.data['count'], 1)
        self.assertEqual(history.data['results'][0]['download_url'], f'/api/v1/export-history/{job.id}/download/')

        download = self.client.get(f'/api/v1/export-history/{job.id}/download/')
        self.assertEqual(download.status_code, status.HTTP_200_OK)
        self.assertEqual(b''.join(download.streaming_content).decode('utf-8'), response.content.decode('utf-8'))

    def test_export_validation(self):
        response = self.client.post('/api/v1/labels/export/', {'items': []}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        response = self.client.post('/api/v1/labels/export/', {
            'items': [{'product': self.product.id}], 'template': 'custom'
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertFalse(ExportJob.objects.exists())

    def test_expired_export_is_gone(self):
        response = self.client.post('/api/v1/labels/export/', {
            'items': [{'product': self.product.id}]
        }, format='json')
        job_id = int(response['X-Export-Job-Id'])
        ExportJob.objects.filter(pk=job_id).update(created_at=timezone.now() - timedelta(days=8))

        download = self.client.get(f'/api/v1/export-history/{job_id}/download/')
        self.assertEqual(download.status_code, status.HTTP_410_GONE)
        detail = self.client.get(f'/api/v1/export-history/{job_id}/')
        self.assertTrue(detail.data['is_expired'])
        self.assertIsNone(detail.data['download_url'])

    def test_delete_export(self):
        response = self.client.post('/api/v1/labels/export/', {
            'items': [{'product': self.product.id}]
        }, format='json')
        job_id = int(response['X-Export-Job-Id'])
        response = self.client.delete(f'/api/v1/export-history/{job_id}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.assertFalse(ExportJob.objects.exists())
