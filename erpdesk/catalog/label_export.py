"""
Label CSV export wizard.

Three steps: pick products (1), choose the label columns (2), download (3).
The wizard state lives in `LabelExportWizard`; the view rebuilds it from the
request payload and only ever calls `to_csv()` once step 3 is reachable.
"""
import logging
from collections import OrderedDict

from django.utils import timezone

logger = logging.getLogger(__name__)

AVAILABLE_FIELDS = OrderedDict([
    ('title', 'Product Name'),
    ('barcode_number', 'Barcode'),
    ('price', 'MRP'),
    ('discounted_price', 'Discounted Price'),
    ('hsn_code', 'HSN Code'),
    ('tax_rate', 'Tax %'),
    ('brand_name', 'Brand'),
    ('sku', 'SKU'),
    ('vehicle_compatibility', 'Vehicle Compatibility'),
    ('quantity', 'Quantity'),
])

TEMPLATES = OrderedDict([
    ('product_label', {
        'name': 'Product Label',
        'fields': ['title', 'barcode_number', 'price', 'discounted_price', 'hsn_code',
                   'tax_rate', 'brand_name', 'sku', 'quantity'],
    }),
    ('shipping_label', {
        'name': 'Shipping Label',
        'fields': ['title', 'sku', 'quantity'],
    }),
    ('price_tag', {
        'name': 'Price Tag',
        'fields': ['title', 'price', 'barcode_number'],
    }),
])

CUSTOM_TEMPLATE = 'custom'
FIRST_STEP = 1
LAST_STEP = 3


class LabelExportError(ValueError):
    pass


class ExportItem:
    __slots__ = ('product', 'quantity')

    def __init__(self, product, quantity=1):
        self.product = product
        self.quantity = max(1, int(quantity))


def _text(value):
    return '' if value is None else str(value)


def product_field_value(product, field_id):
    """String value of one label column for a product (quantity is handled by the row)"""
    if field_id == 'title':
        return product.title or ''
    if field_id == 'barcode_number':
        return product.barcode or ''
    if field_id == 'price':
        return _text(product.price) or '0'
    if field_id == 'discounted_price':
        value = product.discounted_price if product.discounted_price is not None else product.price
        return _text(value) or '0'
    if field_id == 'hsn_code':
        return product.hsn_code or ''
    if field_id == 'tax_rate':
        return _text(product.taxes) or '0'
    if field_id == 'brand_name':
        return product.brand.name if product.brand_id else ''
    if field_id == 'sku':
        return product.sku or _text(product.pk)
    if field_id == 'vehicle_compatibility':
        return product.compatibility_label()
    return ''


def quote_csv_value(value):
    return '"' + value.replace('"', '""') + '"'


class LabelExportWizard:
    """State of one label export: the product list, the chosen columns and the current step"""

    def __init__(self, template_id='product_label'):
        self.items = []
        self.current_step = FIRST_STEP
        self.template_id = 'product_label'
        self.fields = list(TEMPLATES['product_label']['fields'])
        self.select_template(template_id)

    # Export list

    def _find(self, product):
        for item in self.items:
            if item.product.pk == product.pk:
                return item
        return None

    def add_product(self, product, quantity=1):
        """Add a product, or bump its quantity when it is already listed. New items go first."""
        existing = self._find(product)
        if existing is not None:
            existing.quantity = max(1, existing.quantity + int(quantity))
            return existing
        item = ExportItem(product, quantity)
        self.items.insert(0, item)
        return item

    def remove_product(self, product):
        self.items = [item for item in self.items if item.product.pk != product.pk]

    def update_quantity(self, product, delta):
        item = self._find(product)
        if item is None:
            raise LabelExportError(f"Product {product.pk} is not in the export list")
        item.quantity = max(1, item.quantity + int(delta))
        return item

    # Columns

    def select_template(self, template_id):
        if template_id == CUSTOM_TEMPLATE:
            self.template_id = CUSTOM_TEMPLATE
            return
        if template_id not in TEMPLATES:
            raise LabelExportError(f"Unknown template '{template_id}'")
        self.template_id = template_id
        self.fields = list(TEMPLATES[template_id]['fields'])

    def toggle_field(self, field_id):
        if field_id not in AVAILABLE_FIELDS:
            raise LabelExportError(f"Unknown field '{field_id}'")
        if field_id in self.fields:
            self.fields.remove(field_id)
        else:
            self.fields.append(field_id)
        self.template_id = CUSTOM_TEMPLATE

    def set_fields(self, field_ids):
        unknown = [field_id for field_id in field_ids if field_id not in AVAILABLE_FIELDS]
        if unknown:
            raise LabelExportError(f"Unknown field(s): {', '.join(unknown)}")
        self.fields = list(dict.fromkeys(field_ids))
        self.template_id = CUSTOM_TEMPLATE

    # Navigation

    def can_go_to(self, step):
        if step < FIRST_STEP or step > LAST_STEP:
            return False
        if step <= self.current_step:
            return True
        if step == 2:
            return bool(self.items)
        if step == 3:
            return bool(self.items) and self.current_step >= 2
        return True

    def go_to(self, step):
        if not self.can_go_to(step):
            return False
        self.current_step = step
        return True

    def next_step(self):
        if self.current_step >= LAST_STEP:
            return False
        return self.go_to(self.current_step + 1)

    def prev_step(self):
        if self.current_step <= FIRST_STEP:
            return False
        self.current_step -= 1
        return True

    # Output

    def header(self):
        return [AVAILABLE_FIELDS.get(field_id, field_id) for field_id in self.fields]

    def rows(self):
        for item in self.items:
            row = []
            for field_id in self.fields:
                if field_id == 'quantity':
                    row.append(str(item.quantity))
                else:
                    row.append(quote_csv_value(product_field_value(item.product, field_id)))
            yield row

    def to_csv(self):
        if not self.items:
            raise LabelExportError('Add at least one product before exporting')
        if not self.fields:
            raise LabelExportError('Select at least one field to export')
        lines = [','.join(self.header())]
        lines.extend(','.join(row) for row in self.rows())
        logger.info(f"Built label CSV with {len(self.items)} rows and {len(self.fields)} columns")
        return '\n'.join(lines)

    @staticmethod
    def file_name(on_date=None):
        return f"labels_export_{(on_date or timezone.localdate()).isoformat()}.csv"
