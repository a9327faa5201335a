from django.urls import path
from .views import (
    cart_list_create, cart_detail, cart_items, cart_item_detail, cart_discount, cart_checkout,
    sale_list, sale_detail,
    repair_list_create, repair_detail, repair_status, repair_by_barcode, repair_label,
)

urlpatterns = [
    # Cart endpoints
    path('pos/carts/', cart_list_create, name='cart-list-create'),
    path('pos/carts/<int:pk>/', cart_detail, name='cart-detail'),
    path('pos/carts/<int:pk>/items/', cart_items, name='cart-items'),
    path('pos/carts/<int:pk>/items/<int:product_id>/', cart_item_detail, name='cart-item-detail'),
    path('pos/carts/<int:pk>/discount/', cart_discount, name='cart-discount'),
    path('pos/carts/<int:pk>/checkout/', cart_checkout, name='cart-checkout'),

    # Sale endpoints
    path('pos/sales/', sale_list, name='sale-list'),
    path('pos/sales/<int:pk>/', sale_detail, name='sale-detail'),

    # Repair endpoints
    path('repairs/', repair_list_create, name='repair-list-create'),
    path('repairs/by-barcode/', repair_by_barcode, name='repair-by-barcode'),
    path('repairs/<int:pk>/', repair_detail, name='repair-detail'),
    path('repairs/<int:pk>/status/', repair_status, name='repair-status'),
    path('repairs/<int:pk>/label/', repair_label, name='repair-label'),
]
