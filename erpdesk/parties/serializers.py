from django.db import transaction
from rest_framework import serializers
from .models import Vendor, VendorContact, VendorAddress, VendorBankDetail, CustomerGroup, Customer


class VendorContactSerializer(serializers.ModelSerializer):
    class Meta:
        model = VendorContact
        fields = ['id', 'vendor', 'name', 'mobile_number', 'email', 'designation', 'created_at']
        extra_kwargs = {'vendor': {'required': False}}


class VendorAddressSerializer(serializers.ModelSerializer):
    class Meta:
        model = VendorAddress
        fields = ['id', 'vendor', 'address', 'created_at']
        extra_kwargs = {'vendor': {'required': False}}


class VendorBankDetailSerializer(serializers.ModelSerializer):
    class Meta:
        model = VendorBankDetail
        fields = ['id', 'vendor', 'bank_name', 'ifsc_code', 'branch', 'account_number', 'created_at']
        extra_kwargs = {'vendor': {'required': False}}

    def validate_ifsc_code(self, value):
        return value.strip().upper()


def _clean(row, key):
    value = row.get(key)
    return '' if value is None else str(value).strip()


def _complete_contacts(rows):
    return [
        {'name': _clean(row, 'name'), 'mobile_number': _clean(row, 'mobile_number'),
         'email': _clean(row, 'email'), 'designation': _clean(row, 'designation')}
        for row in rows
        if _clean(row, 'name') and _clean(row, 'mobile_number')
    ]


def _complete_addresses(rows):
    return [{'address': _clean(row, 'address')} for row in rows if _clean(row, 'address')]


def _complete_bank_details(rows):
    keys = ('bank_name', 'ifsc_code', 'branch', 'account_number')
    complete = []
    for row in rows:
        values = {key: _clean(row, key) for key in keys}
        if all(values.values()):
            values['ifsc_code'] = values['ifsc_code'].upper()
            complete.append(values)
    return complete


class VendorSerializer(serializers.ModelSerializer):
    """Vendor with its contacts, addresses and bank details.

    Nested rows are written on create; on update a list that is sent replaces
    the stored rows, an omitted list leaves them untouched. Incomplete rows are
    dropped rather than rejected.
    """
    contacts = serializers.ListField(child=serializers.DictField(), required=False, write_only=True)
    addresses = serializers.ListField(child=serializers.DictField(), required=False, write_only=True)
    bank_details = serializers.ListField(child=serializers.DictField(), required=False, write_only=True)

    class Meta:
        model = Vendor
        fields = [
            'id', 'name', 'email', 'gst_number', 'priority', 'rating', 'notes', 'is_active',
            'contacts', 'addresses', 'bank_details', 'created_at', 'updated_at'
        ]
        extra_kwargs = {
            'name': {'error_messages': {'blank': 'Vendor name is required', 'required': 'Vendor name is required'}},
            'email': {'error_messages': {'blank': 'Email is required', 'required': 'Email is required'}},
        }

    def validate_name(self, value):
        value = value.strip()
        if not value:
            raise serializers.ValidationError('Vendor name is required')
        return value

    def validate_gst_number(self, value):
        return value.strip().upper()

    def validate_rating(self, value):
        if value is not None and (value < 0 or value > 5):
            raise serializers.ValidationError('Rating must be between 0 and 5')
        return value

    def to_representation(self, instance):
        data = super().to_representation(instance)
        data['contacts'] = VendorContactSerializer(instance.contacts.all(), many=True).data
        data['addresses'] = VendorAddressSerializer(instance.addresses.all(), many=True).data
        data['bank_details'] = VendorBankDetailSerializer(instance.bank_details.all(), many=True).data
        return data

    def _write_children(self, vendor, contacts, addresses, bank_details):
        if contacts is not None:
            vendor.contacts.all().delete()
            VendorContact.objects.bulk_create([VendorContact(vendor=vendor, **row) for row in _complete_contacts(contacts)])
        if addresses is not None:
            vendor.addresses.all().delete()
            VendorAddress.objects.bulk_create([VendorAddress(vendor=vendor, **row) for row in _complete_addresses(addresses)])
        if bank_details is not None:
            vendor.bank_details.all().delete()
            VendorBankDetail.objects.bulk_create([VendorBankDetail(vendor=vendor, **row) for row in _complete_bank_details(bank_details)])

    @transaction.atomic
    def create(self, validated_data):
        contacts = validated_data.pop('contacts', [])
        addresses = validated_data.pop('addresses', [])
        bank_details = validated_data.pop('bank_details', [])
        vendor = Vendor.objects.create(**validated_data)
        self._write_children(vendor, contacts, addresses, bank_details)
        return vendor

    @transaction.atomic
    def update(self, instance, validated_data):
        contacts = validated_data.pop('contacts', None)
        addresses = validated_data.pop('addresses', None)
        bank_details = validated_data.pop('bank_details', None)
        for attr, value in validated_data.items():
            setattr(instance, attr, value)
        instance.save()
        self._write_children(instance, contacts, addresses, bank_details)
        instance._prefetched_objects_cache = {}
        return instance


class VendorListSerializer(serializers.ModelSerializer):
    contact_count = serializers.IntegerField(source='contacts.count', read_only=True)

    class Meta:
        model = Vendor
        fields = ['id', 'name', 'email', 'gst_number', 'priority', 'rating', 'is_active', 'contact_count', 'created_at']


class CustomerGroupSerializer(serializers.ModelSerializer):
    customer_count = serializers.IntegerField(source='customers.count', read_only=True)

    class Meta:
        model = CustomerGroup
        fields = ['id', 'name', 'description', 'discount_percentage', 'is_active', 'customer_count', 'created_at', 'updated_at']

    def validate_name(self, value):
        value = value.strip()
        if not value:
            raise serializers.ValidationError('Group name is required')
        return value

    def validate_discount_percentage(self, value):
        if value is not None and (value < 0 or value > 100):
            raise serializers.ValidationError('Discount percentage must be between 0 and 100')
        return value


class CustomerSerializer(serializers.ModelSerializer):
    customer_group_name = serializers.CharField(source='customer_group.name', read_only=True)

    class Meta:
        model = Customer
        fields = [
            'id', 'name', 'phone', 'whatsapp_number', 'email', 'address', 'gst_id',
            'customer_group', 'customer_group_name', 'is_active', 'created_at', 'updated_at'
        ]
        extra_kwargs = {'phone': {'required': False, 'allow_null': True, 'allow_blank': True}}

    def validate_phone(self, value):
        # Blank phones are stored as NULL so the unique constraint ignores them
        value = (value or '').strip()
        return value or None
