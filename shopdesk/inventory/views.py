from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from django.shortcuts import get_object_or_404
from shopdesk.catalog.models import Product
from shopdesk.core.context import ShopContext
from shopdesk.core.permissions import IsShopAdmin, ReadOnlyOrShopAdmin
from shopdesk.core.tables import Column, Table, FILTER_SELECT, FILTER_TEXT, table_response
from shopdesk.core.utils import create_activity_log
from .models import StockReason, StockMovement
from .serializers import StockReasonSerializer, StockMovementSerializer, StockMovementCreateSerializer
from .services import StockError, apply_stock_movement

STOCK_REASON_TABLE = Table([
    Column('name', filter_type=FILTER_TEXT),
    Column('reason_type', label='Type', filter_type=FILTER_SELECT,
           options=[choice for choice, _ in StockReason.REASON_TYPE_CHOICES]),
    Column('description'),
])

STOCK_MOVEMENT_TABLE = Table([
    Column('product.name', label='Product', filter_type=FILTER_TEXT),
    Column('product.barcode', label='Barcode', filter_type=FILTER_TEXT),
    Column('movement_type', label='Type', filter_type=FILTER_SELECT,
           options=[choice for choice, _ in StockMovement.MOVEMENT_TYPE_CHOICES]),
    Column('product', label='Product ID', filter_type=FILTER_SELECT, accessor=lambda movement: movement.product_id,
           lookup='product_id'),
    Column('quantity'),
    Column('stock_after', label='Stock after'),
    Column('created_at', label='Time'),
])


def _no_shop_response():
    return Response({'error': 'No shop selected', 'message': 'Select the shop to act for.'},
                    status=status.HTTP_400_BAD_REQUEST)


# StockReason views
@api_view(['GET', 'POST'])
@permission_classes([ReadOnlyOrShopAdmin])
def stock_reason_list_create(request):
    """List the shop's stock reasons or create one"""
    ctx = ShopContext.from_request(request)
    if request.method == 'GET':
        reasons = ctx.scope(StockReason.objects.all())
        return table_response(request, STOCK_REASON_TABLE, reasons, StockReasonSerializer)

    if ctx.shop is None:
        return _no_shop_response()
    serializer = StockReasonSerializer(data=request.data)
    if serializer.is_valid():
        reason = serializer.save(shop=ctx.shop)
        create_activity_log(ctx=ctx, action='create', model_name='StockReason', object_id=reason.id,
                            object_name=reason.name)
        return Response(StockReasonSerializer(reason).data, status=status.HTTP_201_CREATED)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([ReadOnlyOrShopAdmin])
def stock_reason_detail(request, pk):
    """Retrieve, update or delete a stock reason"""
    ctx = ShopContext.from_request(request)
    reason = get_object_or_404(ctx.scope(StockReason.objects.all()), pk=pk)

    if request.method == 'GET':
        return Response(StockReasonSerializer(reason).data)
    elif request.method in ('PUT', 'PATCH'):
        serializer = StockReasonSerializer(reason, data=request.data, partial=request.method == 'PATCH')
        if serializer.is_valid():
            serializer.save()
            create_activity_log(ctx=ctx, action='update', model_name='StockReason', object_id=reason.id,
                                object_name=reason.name, shop=reason.shop)
            return Response(serializer.data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    else:  # DELETE
        create_activity_log(ctx=ctx, action='delete', model_name='StockReason', object_id=reason.id,
                            object_name=reason.name, shop=reason.shop)
        reason.delete()
        return Response(status=status.HTTP_204_NO_CONTENT)


# StockMovement views
@api_view(['GET', 'POST'])
@permission_classes([ReadOnlyOrShopAdmin])
def stock_movement_list_create(request):
    """List stock history or add / remove / write off stock"""
    ctx = ShopContext.from_request(request)
    if request.method == 'GET':
        movements = ctx.scope(StockMovement.objects.select_related('product', 'reason', 'created_by', 'sale'))
        return table_response(request, STOCK_MOVEMENT_TABLE, movements, StockMovementSerializer)

    serializer = StockMovementCreateSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    data = serializer.validated_data
    product = get_object_or_404(ctx.scope(Product.objects.select_related('shop')), pk=data['product'])
    reason = None
    if data.get('reason'):
        reason = get_object_or_404(StockReason.objects.filter(shop=product.shop), pk=data['reason'])

    try:
        movement = apply_stock_movement(
            ctx, product, data['movement_type'], data['quantity'], reason=reason, notes=data.get('notes', ''),
        )
    except StockError as e:
        return Response(e.as_response_data(), status=status.HTTP_400_BAD_REQUEST)
    return Response(StockMovementSerializer(movement).data, status=status.HTTP_201_CREATED)


@api_view(['GET'])
@permission_classes([IsShopAdmin])
def stock_movement_detail(request, pk):
    ctx = ShopContext.from_request(request)
    movement = get_object_or_404(ctx.scope(StockMovement.objects.select_related('product', 'reason')), pk=pk)
    return Response(StockMovementSerializer(movement).data)
