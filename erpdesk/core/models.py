from django.contrib.auth.models import AbstractUser
from django.db import models


class User(AbstractUser):
    """Extended user model with additional fields"""
    phone = models.CharField(max_length=20, blank=True, null=True)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'users'


class Setting(models.Model):
    """System settings (key/value), e.g. document number prefixes"""
    key = models.CharField(max_length=100, unique=True)
    value = models.TextField()
    description = models.TextField(blank=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.key

    @classmethod
    def get_value(cls, key, default=None):
        setting = cls.objects.filter(key=key).only('value').first()
        if setting is None or setting.value == '':
            return default
        return setting.value

    class Meta:
        db_table = 'settings'


class AuditLog(models.Model):
    """Audit log for critical operations"""
    ACTION_CHOICES = [
        ('create', 'Create'),
        ('update', 'Update'),
        ('delete', 'Delete'),
        ('view', 'View'),
        ('price_change', 'Price Change'),
        ('bill_create', 'Bill Created'),
        ('bill_update', 'Bill Updated'),
        ('bill_recalculate', 'Bill Recalculated'),
        ('payment_add', 'Payment Added'),
        ('payment_allocate', 'Payment Allocated'),
        ('payment_delete', 'Payment Deleted'),
        ('export', 'Export'),
        ('quotation_send', 'Quotation Sent'),
    ]

    user = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, related_name='audit_logs')
    action = models.CharField(max_length=50, choices=ACTION_CHOICES)
    model_name = models.CharField(max_length=100)
    object_id = models.CharField(max_length=100)
    object_name = models.CharField(max_length=255, blank=True, null=True, help_text="Human-readable name of the object (e.g., vendor name, bill number)")
    object_reference = models.CharField(max_length=255, blank=True, null=True, help_text="Reference identifier (e.g., bill number, quotation number)")
    changes = models.JSONField(default=dict, blank=True)
    ip_address = models.GenericIPAddressField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'audit_logs'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['-created_at'], name='audit_logs_created_7a1f0c_idx'),
            models.Index(fields=['action'], name='audit_logs_action_3b9e2d_idx'),
            models.Index(fields=['model_name'], name='audit_logs_model_n_5c4d1e_idx'),
            models.Index(fields=['object_reference'], name='audit_logs_object__8e2f6a_idx'),
        ]
