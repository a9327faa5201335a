from django.urls import path
from .views import client_list_create, client_detail, provider_list_create, provider_detail

urlpatterns = [
    # Client endpoints
    path('clients/', client_list_create, name='client-list-create'),
    path('clients/<int:pk>/', client_detail, name='client-detail'),

    # Provider endpoints
    path('providers/', provider_list_create, name='provider-list-create'),
    path('providers/<int:pk>/', provider_detail, name='provider-detail'),
]
