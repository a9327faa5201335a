import logging
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from django.db import transaction
from django.db.models import F
from django.shortcuts import get_object_or_404
from shopdesk.core.context import ShopContext
from shopdesk.core.permissions import IsShopMember, ReadOnlyOrShopAdmin
from shopdesk.core.tables import Column, Table, FILTER_SELECT, FILTER_TEXT, table_response
from shopdesk.core.utils import create_activity_log
from .filters import ProductFilter
from .label_generator import generate_label_image
from .models import Category, Product
from .serializers import CategorySerializer, ProductSerializer, ProductCreateSerializer
from .utils import generate_barcode, normalize_barcode

logger = logging.getLogger(__name__)

CATEGORY_TABLE = Table([
    Column('name', filter_type=FILTER_TEXT),
    Column('description', filter_type=FILTER_TEXT),
    Column('is_active', label='Active', filter_type=FILTER_SELECT, options=['True', 'False']),
])

PRODUCT_TABLE = Table([
    Column('name', filter_type=FILTER_TEXT),
    Column('barcode', filter_type=FILTER_TEXT),
    Column('category.name', label='Category', filter_type=FILTER_SELECT),
    Column('price'),
    Column('stock'),
    Column('is_active', label='Active', filter_type=FILTER_SELECT, options=['True', 'False']),
])


def _no_shop_response():
    return Response({'error': 'No shop selected', 'message': 'Select the shop to act for.'},
                    status=status.HTTP_400_BAD_REQUEST)


# Category views
@api_view(['GET', 'POST'])
@permission_classes([ReadOnlyOrShopAdmin])
def category_list_create(request):
    """List all categories of the shop or create a new category"""
    ctx = ShopContext.from_request(request)
    if request.method == 'GET':
        categories = ctx.scope(Category.objects.all())
        return table_response(request, CATEGORY_TABLE, categories, CategorySerializer)

    if ctx.shop is None:
        return _no_shop_response()
    serializer = CategorySerializer(data=request.data, context={'shop': ctx.shop})
    if serializer.is_valid():
        category = serializer.save(shop=ctx.shop)
        create_activity_log(ctx=ctx, action='create', model_name='Category', object_id=category.id,
                            object_name=category.name)
        return Response(CategorySerializer(category).data, status=status.HTTP_201_CREATED)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([ReadOnlyOrShopAdmin])
def category_detail(request, pk):
    """Retrieve, update or delete a category"""
    ctx = ShopContext.from_request(request)
    category = get_object_or_404(ctx.scope(Category.objects.all()), pk=pk)

    if request.method == 'GET':
        return Response(CategorySerializer(category).data)
    elif request.method in ('PUT', 'PATCH'):
        serializer = CategorySerializer(category, data=request.data, partial=request.method == 'PATCH',
                                        context={'shop': category.shop})
        if serializer.is_valid():
            serializer.save()
            create_activity_log(ctx=ctx, action='update', model_name='Category', object_id=category.id,
                                object_name=category.name, shop=category.shop)
            return Response(serializer.data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    else:  # DELETE
        # Products keep existing without a category
        create_activity_log(ctx=ctx, action='delete', model_name='Category', object_id=category.id,
                            object_name=category.name, shop=category.shop)
        category.delete()
        return Response(status=status.HTTP_204_NO_CONTENT)


# Product views
@api_view(['GET', 'POST'])
@permission_classes([ReadOnlyOrShopAdmin])
def product_list_create(request):
    """List all products or create a new product"""
    ctx = ShopContext.from_request(request)
    if request.method == 'GET':
        queryset = ctx.scope(Product.objects.select_related('category').all())
        queryset = ProductFilter(request.query_params, queryset=queryset).qs
        return table_response(request, PRODUCT_TABLE, queryset, ProductSerializer)

    if ctx.shop is None:
        return _no_shop_response()
    plan = ctx.shop.pricing_plan
    if plan is not None and Product.objects.filter(shop=ctx.shop, is_active=True).count() >= plan.max_products:
        return Response(
            {'error': 'Product limit reached', 'message': f'The {plan.name} plan allows {plan.max_products} products.'},
            status=status.HTTP_400_BAD_REQUEST
        )

    serializer = ProductCreateSerializer(data=request.data, context={'shop': ctx.shop})
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    from shopdesk.inventory.services import StockError, apply_stock_movement
    initial_stock = serializer.validated_data.pop('initial_stock', 0)
    try:
        with transaction.atomic():
            product = serializer.save(shop=ctx.shop)
            if not product.barcode:
                product.barcode = generate_barcode(product)
                product.save(update_fields=['barcode'])
            create_activity_log(ctx=ctx, action='create', model_name='Product', object_id=product.id,
                                object_name=product.name, changes={'price': str(product.price)})
            if initial_stock:
                apply_stock_movement(ctx, product, 'add', initial_stock, notes='Opening stock')
    except StockError as e:
        return Response(e.as_response_data(), status=status.HTTP_400_BAD_REQUEST)

    product.refresh_from_db()
    return Response(ProductSerializer(product).data, status=status.HTTP_201_CREATED)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([ReadOnlyOrShopAdmin])
def product_detail(request, pk):
    """Retrieve, update or delete a product"""
    ctx = ShopContext.from_request(request)
    product = get_object_or_404(ctx.scope(Product.objects.select_related('category', 'shop')), pk=pk)

    if request.method == 'GET':
        return Response(ProductSerializer(product).data)
    elif request.method in ('PUT', 'PATCH'):
        old_price = product.price
        serializer = ProductSerializer(product, data=request.data, partial=request.method == 'PATCH',
                                       context={'shop': product.shop})
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
        product = serializer.save()
        if product.price != old_price:
            create_activity_log(
                ctx=ctx, action='price_change', model_name='Product', object_id=product.id,
                object_name=product.name, shop=product.shop,
                changes={'price': {'old': str(old_price), 'new': str(product.price)}},
            )
        else:
            create_activity_log(ctx=ctx, action='update', model_name='Product', object_id=product.id,
                                object_name=product.name, shop=product.shop,
                                changes={key: str(value) for key, value in serializer.validated_data.items()})
        return Response(serializer.data)
    else:  # DELETE
        create_activity_log(ctx=ctx, action='delete', model_name='Product', object_id=product.id,
                            object_name=product.name, shop=product.shop)
        if product.sale_items.exists():
            # Sold products stay for the sales history
            product.is_active = False
            product.save(update_fields=['is_active', 'updated_at'])
        else:
            product.delete()
        return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['GET'])
@permission_classes([IsShopMember])
def product_low_stock(request):
    """Active products whose stock is below their low-stock threshold"""
    ctx = ShopContext.from_request(request)
    products = ctx.scope(Product.objects.select_related('category')).filter(
        is_active=True, stock__lt=F('low_stock_threshold')
    ).order_by('stock', 'name')
    return table_response(request, PRODUCT_TABLE, products, ProductSerializer)


@api_view(['GET'])
@permission_classes([IsShopMember])
def product_by_barcode(request):
    """Find the shop's product with an exact barcode (scanner lookup)"""
    ctx = ShopContext.from_request(request)
    barcode_value = normalize_barcode(request.query_params.get('barcode', ''))
    if not barcode_value:
        return Response({'error': 'Barcode is required'}, status=status.HTTP_400_BAD_REQUEST)
    product = ctx.scope(Product.objects.select_related('category')).filter(barcode=barcode_value).first()
    if product is None:
        return Response({'error': 'Product not found', 'message': f'No product with barcode {barcode_value}'},
                        status=status.HTTP_404_NOT_FOUND)
    return Response(ProductSerializer(product).data)


@api_view(['GET'])
@permission_classes([IsShopMember])
def product_label(request, pk):
    """Render the product's barcode label as a PNG data URL"""
    ctx = ShopContext.from_request(request)
    product = get_object_or_404(ctx.scope(Product.objects.select_related('shop', 'category')), pk=pk)
    if not product.barcode:
        product.barcode = generate_barcode(product)
        product.save(update_fields=['barcode'])
    label = generate_label_image(
        product_name=product.name,
        barcode_value=product.barcode,
        price=f'{product.price:.2f}',
        shop_name=product.shop.name,
    )
    logger.debug(f"Generated label for product {product.pk}")
    return Response({'product': product.id, 'barcode': product.barcode, 'image': label})
