"""
WSGI config for the ERP Desk backend.
"""
import os

from django.core.wsgi import get_wsgi_application

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'erpdesk.config.settings')

application = get_wsgi_application()
