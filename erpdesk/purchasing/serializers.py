from decimal import Decimal
from django.db import transaction
from rest_framework import serializers
from erpdesk.catalog.models import Product
from erpdesk.catalog.serializers import validate_image_size
from erpdesk.core.cache_signals import invalidate_purchase_caches
from erpdesk.core.utils import money
from erpdesk.parties.models import Vendor
from .models import (
    PurchaseBill, PurchaseBillItem, PurchasePayment, PaymentAllocation,
    VendorProductPrice, VendorProductPriceHistory,
)
from . import services


class PurchaseBillItemSerializer(serializers.ModelSerializer):
    product_id = serializers.IntegerField(read_only=True)
    product_title = serializers.CharField(source='product.title', read_only=True, default=None)
    product_sku = serializers.CharField(source='product.sku', read_only=True, default=None)
    subtotal = serializers.SerializerMethodField()

    class Meta:
        model = PurchaseBillItem
        fields = [
            'id', 'product_id', 'product_title', 'product_sku', 'item_name', 'quantity',
            'purchase_price', 'gst_percent', 'gst_amount', 'subtotal', 'total'
        ]

    def get_subtotal(self, obj):
        return str(money(obj.get_subtotal()))


class PurchaseBillItemWriteSerializer(serializers.Serializer):
    """Validates one entry of the `items` list sent with a bill"""
    product_id = serializers.PrimaryKeyRelatedField(
        source='product', queryset=Product.objects.all(), required=False, allow_null=True
    )
    item_name = serializers.CharField(required=False, allow_blank=True, max_length=255)
    quantity = serializers.DecimalField(max_digits=12, decimal_places=3)
    purchase_price = serializers.DecimalField(max_digits=12, decimal_places=2)
    gst_percent = serializers.DecimalField(max_digits=5, decimal_places=2, required=False, default=Decimal('18.00'))

    def validate_quantity(self, value):
        if value <= 0:
            raise serializers.ValidationError("Quantity must be greater than 0")
        return value

    def validate_purchase_price(self, value):
        if value <= 0:
            raise serializers.ValidationError("Purchase price must be greater than 0")
        return value

    def validate_gst_percent(self, value):
        if value < 0 or value > 100:
            raise serializers.ValidationError("GST must be between 0 and 100")
        return value

    def validate(self, attrs):
        if not attrs.get('product') and not (attrs.get('item_name') or '').strip():
            raise serializers.ValidationError("Select a product or enter an item name")
        return attrs


class BillAllocationSerializer(serializers.ModelSerializer):
    payment_date = serializers.DateField(source='payment.payment_date', read_only=True)
    mode = serializers.CharField(source='payment.mode', read_only=True)

    class Meta:
        model = PaymentAllocation
        fields = ['id', 'payment', 'amount', 'payment_date', 'mode', 'created_at']


class PurchaseBillSerializer(serializers.ModelSerializer):
    """
    Bill with items. Items come through context['items_data'] (popped from the
    request by the view); on update, items_data=None keeps the stored items.
    """
    vendor_id = serializers.PrimaryKeyRelatedField(
        source='vendor', queryset=Vendor.objects.all(),
        error_messages={'required': 'Vendor is required', 'null': 'Vendor is required'}
    )
    vendor_name = serializers.CharField(source='vendor.name', read_only=True)
    items = PurchaseBillItemSerializer(many=True, read_only=True)
    allocations = BillAllocationSerializer(many=True, read_only=True)
    created_by_username = serializers.CharField(source='created_by.username', read_only=True, default=None)

    class Meta:
        model = PurchaseBill
        fields = [
            'id', 'vendor_id', 'vendor_name', 'bill_number', 'bill_date', 'discount', 'notes',
            'attachment', 'status', 'subtotal', 'total_gst', 'total_amount', 'paid_amount',
            'outstanding_amount', 'items', 'allocations', 'created_by_username', 'created_at', 'updated_at'
        ]
        read_only_fields = [
            'status', 'subtotal', 'total_gst', 'total_amount', 'paid_amount', 'outstanding_amount',
            'created_at', 'updated_at'
        ]
        # Per-vendor uniqueness is checked in validate() so a blank number can be generated
        validators = []
        extra_kwargs = {'bill_number': {'required': False}}

    def validate_discount(self, value):
        if value < 0:
            raise serializers.ValidationError("Discount cannot be negative")
        return value

    def _validated_items(self):
        items_data = self.context.get('items_data')
        if items_data is None:
            if self.instance is None:
                raise serializers.ValidationError({'items': ['At least one item is required']})
            return None
        if not items_data:
            raise serializers.ValidationError({'items': ['At least one item is required']})
        item_serializer = PurchaseBillItemWriteSerializer(data=items_data, many=True)
        if not item_serializer.is_valid():
            raise serializers.ValidationError({'items': item_serializer.errors})
        return item_serializer.validated_data

    def validate(self, attrs):
        self._items = self._validated_items()

        vendor = attrs.get('vendor', getattr(self.instance, 'vendor', None))
        if self.instance is not None and vendor and vendor.pk != self.instance.vendor_id:
            # Allocations stay tied to the original vendor's payments
            if self.instance.allocations.exists() or self.instance.payments.exists():
                raise serializers.ValidationError(
                    {'vendor_id': ['Vendor cannot be changed on a bill that has payments']}
                )

        bill_number = (attrs.get('bill_number') or '').strip()
        if 'bill_number' in attrs:
            attrs['bill_number'] = bill_number
        if vendor and bill_number:
            duplicates = PurchaseBill.objects.filter(vendor=vendor, bill_number=bill_number)
            if self.instance is not None:
                duplicates = duplicates.exclude(pk=self.instance.pk)
            if duplicates.exists():
                raise serializers.ValidationError({'bill_number': ['This vendor already has a bill with this number']})

        items = self._items if self._items is not None else list(self.instance.items.all())
        discount = attrs.get('discount', getattr(self.instance, 'discount', Decimal('0')))
        totals = services.compute_bill_totals(items, Decimal('0'))
        if discount > totals['total_amount']:
            raise serializers.ValidationError({'discount': ['Discount cannot exceed the bill total']})

        if self.instance is not None:
            paid = self.instance.get_allocated_amount()
            if money(totals['total_amount'] - discount) < paid:
                field = 'items' if self._items is not None else 'discount'
                raise serializers.ValidationError({field: ['Bill total cannot be less than the amount already paid']})
        return attrs

    def create(self, validated_data):
        with transaction.atomic():
            if not validated_data.get('bill_number'):
                validated_data['bill_number'] = services.next_bill_number()
            bill = PurchaseBill.objects.create(**validated_data)
            services.create_bill_items(bill, self._items)
            return services.recalculate_bill(bill)

    def update(self, instance, validated_data):
        old_vendor_id = instance.vendor_id
        with transaction.atomic():
            if 'bill_number' in validated_data and not validated_data['bill_number']:
                validated_data['bill_number'] = instance.bill_number or services.next_bill_number()
            for attr, value in validated_data.items():
                setattr(instance, attr, value)
            instance.save()
            if self._items is not None:
                services.replace_bill_items(instance, self._items)
            else:
                services.recalculate_bill(instance)
        if instance.vendor_id != old_vendor_id:
            # Signals only see the new vendor
            invalidate_purchase_caches(old_vendor_id)
        instance._prefetched_objects_cache = {}
        return instance


class PurchaseBillListSerializer(serializers.ModelSerializer):
    vendor_name = serializers.CharField(source='vendor.name', read_only=True)
    items_count = serializers.SerializerMethodField()

    class Meta:
        model = PurchaseBill
        fields = [
            'id', 'vendor', 'vendor_name', 'bill_number', 'bill_date', 'status', 'subtotal',
            'total_gst', 'discount', 'total_amount', 'paid_amount', 'outstanding_amount',
            'items_count', 'created_at'
        ]

    def get_items_count(self, obj):
        if hasattr(obj, 'items_count'):
            return obj.items_count
        return obj.items.count()


class PaymentAllocationSerializer(serializers.ModelSerializer):
    bill_number = serializers.CharField(source='bill.bill_number', read_only=True)
    bill_date = serializers.DateField(source='bill.bill_date', read_only=True)

    class Meta:
        model = PaymentAllocation
        fields = ['id', 'bill', 'bill_number', 'bill_date', 'amount', 'created_at']


class PurchasePaymentSerializer(serializers.ModelSerializer):
    """
    Payment to a vendor. With bill_id the payment is applied to that bill
    (excess stays unallocated); without it the amount is allocated FIFO.
    """
    vendor_id = serializers.PrimaryKeyRelatedField(source='vendor', queryset=Vendor.objects.all(), required=False)
    vendor_name = serializers.CharField(source='vendor.name', read_only=True)
    bill_id = serializers.PrimaryKeyRelatedField(
        source='bill', queryset=PurchaseBill.objects.all(), required=False, allow_null=True
    )
    bill_number = serializers.CharField(source='bill.bill_number', read_only=True, default=None)
    attachment = serializers.ImageField(required=False, allow_null=True, validators=[validate_image_size])
    allocated_amount = serializers.DecimalField(max_digits=14, decimal_places=2, read_only=True)
    unallocated_amount = serializers.DecimalField(max_digits=14, decimal_places=2, read_only=True)
    allocations = PaymentAllocationSerializer(many=True, read_only=True)
    created_by_username = serializers.CharField(source='created_by.username', read_only=True, default=None)

    class Meta:
        model = PurchasePayment
        fields = [
            'id', 'vendor_id', 'vendor_name', 'bill_id', 'bill_number', 'amount', 'payment_date',
            'mode', 'note', 'attachment', 'allocated_amount', 'unallocated_amount', 'allocations',
            'created_by_username', 'created_at'
        ]
        read_only_fields = ['created_at']

    def validate_amount(self, value):
        if value <= 0:
            raise serializers.ValidationError("Amount must be greater than 0")
        return value

    def validate(self, attrs):
        bill = attrs.get('bill')
        vendor = attrs.get('vendor')
        if bill and vendor and bill.vendor_id != vendor.id:
            raise serializers.ValidationError({'bill_id': ['Bill does not belong to this vendor']})
        if not vendor:
            if not bill:
                raise serializers.ValidationError({'vendor_id': ['Vendor is required']})
            attrs['vendor'] = bill.vendor
        return attrs

    def create(self, validated_data):
        options = {
            'payment_date': validated_data.get('payment_date'),
            'mode': validated_data.get('mode'),
            'note': validated_data.get('note', ''),
            'user': validated_data.get('created_by'),
            'attachment': validated_data.get('attachment'),
        }
        if validated_data.get('bill'):
            payment, _ = services.record_bill_payment(validated_data['bill'], validated_data['amount'], **options)
        else:
            payment, _ = services.record_vendor_payment(validated_data['vendor'], validated_data['amount'], **options)
        return payment


class PaymentRequestSerializer(serializers.Serializer):
    """Body of bills/<id>/add_payment/ and vendors/<id>/add_payment/"""
    amount = serializers.DecimalField(max_digits=14, decimal_places=2)
    payment_date = serializers.DateField(required=False)
    mode = serializers.ChoiceField(choices=PurchasePayment.MODE_CHOICES, default='Cash')
    note = serializers.CharField(required=False, allow_blank=True, default='')
    attachment = serializers.ImageField(required=False, allow_null=True, validators=[validate_image_size])

    def validate_amount(self, value):
        if value <= 0:
            raise serializers.ValidationError("Amount must be greater than 0")
        return value


class PaymentSummariesRequestSerializer(serializers.Serializer):
    vendor_ids = serializers.ListField(child=serializers.IntegerField(min_value=1), allow_empty=False)


class VendorProductPriceHistorySerializer(serializers.ModelSerializer):
    changed_by_username = serializers.CharField(source='changed_by.username', read_only=True, default=None)

    class Meta:
        model = VendorProductPriceHistory
        fields = ['id', 'price', 'purchase_price', 'effective_from', 'effective_to', 'changed_by_username', 'notes', 'created_at']


class VendorProductPriceSerializer(serializers.ModelSerializer):
    vendor_id = serializers.PrimaryKeyRelatedField(source='vendor', queryset=Vendor.objects.all())
    vendor_name = serializers.CharField(source='vendor.name', read_only=True)
    product_id = serializers.PrimaryKeyRelatedField(source='product', queryset=Product.objects.all())
    product_title = serializers.CharField(source='product.title', read_only=True)
    product_sku = serializers.CharField(source='product.sku', read_only=True)

    class Meta:
        model = VendorProductPrice
        fields = [
            'id', 'vendor_id', 'vendor_name', 'product_id', 'product_title', 'product_sku',
            'purchase_price', 'minimum_order_quantity', 'lead_time_days', 'is_preferred',
            'is_active', 'effective_from', 'notes', 'created_at', 'updated_at'
        ]
        validators = []

    def validate_purchase_price(self, value):
        if value <= 0:
            raise serializers.ValidationError("Purchase price must be greater than 0")
        return value

    def validate_minimum_order_quantity(self, value):
        if value <= 0:
            raise serializers.ValidationError("Minimum order quantity must be greater than 0")
        return value

    def validate(self, attrs):
        vendor = attrs.get('vendor', getattr(self.instance, 'vendor', None))
        product = attrs.get('product', getattr(self.instance, 'product', None))
        if vendor and product:
            duplicates = VendorProductPrice.objects.filter(vendor=vendor, product=product)
            if self.instance is not None:
                duplicates = duplicates.exclude(pk=self.instance.pk)
            if duplicates.exists():
                raise serializers.ValidationError("This vendor already has a price for this product")
        return attrs

    def _user(self):
        request = self.context.get('request')
        return getattr(request, 'user', None)

    def create(self, validated_data):
        with transaction.atomic():
            price = super().create(validated_data)
            services.open_price_history(price, user=self._user(), notes=validated_data.get('notes', ''))
            services.enforce_single_preferred(price)
        return price

    def update(self, instance, validated_data):
        old_price = instance.purchase_price
        with transaction.atomic():
            price = super().update(instance, validated_data)
            if price.purchase_price != old_price:
                services.record_price_change(price, user=self._user(), notes=validated_data.get('notes', ''))
            services.enforce_single_preferred(price)
        return price
