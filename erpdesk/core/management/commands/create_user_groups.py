from django.core.management.base import BaseCommand
from django.contrib.auth.models import Group, Permission


class Command(BaseCommand):
    help = 'Create Django user groups for RBAC: Admin, Purchase, Catalog, Sales'

    GROUPS = [
        {
            'name': 'Admin',
            'description': 'Owners and developers - full access including Django admin',
            'apps': '*',
        },
        {
            'name': 'Purchase',
            'description': 'Purchase desk - vendors, bills, payments and vendor prices',
            'apps': ['parties', 'purchasing', 'catalog'],
        },
        {
            'name': 'Catalog',
            'description': 'Catalog team - products, vehicles, compatibility groups and label exports',
            'apps': ['catalog'],
        },
        {
            'name': 'Sales',
            'description': 'Sales desk - customers, customer pricing and quotations',
            'apps': ['parties', 'pricing', 'quotations'],
        },
    ]

    def handle(self, *args, **options):
        created_count = 0
        updated_count = 0

        for group_config in self.GROUPS:
            group, created = Group.objects.get_or_create(name=group_config['name'])

            if created:
                self.stdout.write(self.style.SUCCESS(f'Created group: {group_config["name"]}'))
                created_count += 1
            else:
                self.stdout.write(f'  Group already exists: {group_config["name"]}')
                updated_count += 1

            if group_config['apps'] == '*':
                permissions = Permission.objects.all()
            else:
                permissions = Permission.objects.filter(content_type__app_label__in=group_config['apps'])
            group.permissions.set(permissions)
            self.stdout.write(f'  {permissions.count()} permissions assigned to {group_config["name"]}')

        self.stdout.write(self.style.SUCCESS(
            f'\nCompleted: {created_count} groups created, {updated_count} groups already existed'
        ))
