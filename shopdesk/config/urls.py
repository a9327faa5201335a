"""
URL configuration for the shopdesk project.

Every app mounts its endpoints under ``/api/v1/``.
"""
from django.contrib import admin
from django.urls import path, include

admin.site.site_header = "ShopDesk Administration"
admin.site.site_title = "ShopDesk Admin Portal"
admin.site.index_title = "Shop management"

urlpatterns = [
    path('admin/', admin.site.urls),
    path('api/v1/', include('shopdesk.core.urls')),
    path('api/v1/', include('shopdesk.pricing.urls')),
    path('api/v1/', include('shopdesk.shops.urls')),
    path('api/v1/', include('shopdesk.catalog.urls')),
    path('api/v1/', include('shopdesk.inventory.urls')),
    path('api/v1/', include('shopdesk.parties.urls')),
    path('api/v1/', include('shopdesk.pos.urls')),
    path('api/v1/', include('shopdesk.reports.urls')),
]
