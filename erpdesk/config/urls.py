"""
URL configuration for the ERP Desk backend.

Every app mounts its routes under /api/v1/.
"""
from django.contrib import admin
from django.urls import path, include, re_path
from django.conf import settings
from django.views.static import serve

admin.site.site_header = "ERP Desk Admin Panel"
admin.site.site_title = "ERP Desk Admin Portal"
admin.site.index_title = "Purchasing, Catalog and Pricing Administration"

urlpatterns = [
    path('admin/', admin.site.urls),
    path('api/v1/', include('erpdesk.core.urls')),
    path('api/v1/', include('erpdesk.catalog.urls')),
    path('api/v1/', include('erpdesk.parties.urls')),
    path('api/v1/', include('erpdesk.purchasing.urls')),
    path('api/v1/', include('erpdesk.pricing.urls')),
    path('api/v1/', include('erpdesk.quotations.urls')),
    re_path(r'^media/(?P<path>.*)$', serve, {'document_root': settings.MEDIA_ROOT}),
    re_path(r'^static/(?P<path>.*)$', serve, {'document_root': settings.STATIC_ROOT}),
]
