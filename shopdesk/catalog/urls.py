from django.urls import path
from .views import (
    category_list_create, category_detail,
    product_list_create, product_detail, product_low_stock, product_by_barcode, product_label,
)

urlpatterns = [
    # Category endpoints
    path('categories/', category_list_create, name='category-list-create'),
    path('categories/<int:pk>/', category_detail, name='category-detail'),

    # Product endpoints
    path('products/', product_list_create, name='product-list-create'),
    path('products/low-stock/', product_low_stock, name='product-low-stock'),
    path('products/by-barcode/', product_by_barcode, name='product-by-barcode'),
    path('products/<int:pk>/', product_detail, name='product-detail'),
    path('products/<int:pk>/label/', product_label, name='product-label'),
]
