import logging
import uuid
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from django.shortcuts import get_object_or_404
from django.utils import timezone
from shopdesk.catalog.label_generator import generate_ticket_image
from shopdesk.catalog.models import Product
from shopdesk.catalog.utils import normalize_barcode
from shopdesk.core.context import ShopContext
from shopdesk.core.permissions import IsRepairDesk, IsSalesStaff
from shopdesk.core.tables import Column, Table, FILTER_SELECT, FILTER_TEXT, table_response
from shopdesk.core.utils import create_activity_log, notify
from shopdesk.parties.models import Client
from .models import Cart, Sale, Repair
from .serializers import (
    CartSerializer, SaleSerializer, SaleListSerializer, RepairSerializer, RepairStatusSerializer
)
from .services import (
    add_to_cart, checkout_cart, create_cart, refresh_cart, remove_from_cart, set_cart_discount, update_cart_quantity
)

logger = logging.getLogger(__name__)


CART_TABLE = Table([
    Column('cart_number', label='Cart', filter_type=FILTER_TEXT),
    Column('status', filter_type=FILTER_SELECT, options=[choice for choice, _ in Cart.STATUS_CHOICES]),
    Column('client.name', label='Client', filter_type=FILTER_TEXT),
    Column('updated_at', label='Updated'),
])

SALE_TABLE = Table([
    Column('sale_number', label='Sale', filter_type=FILTER_TEXT),
    Column('sales_person.username', label='Sales person', filter_type=FILTER_TEXT),
    Column('client.name', label='Client', filter_type=FILTER_TEXT),
    Column('total'),
    Column('created_at', label='Date'),
])

REPAIR_TABLE = Table([
    Column('brand', filter_type=FILTER_TEXT),
    Column('model_name', label='Model', filter_type=FILTER_TEXT),
    Column('imei', label='IMEI', filter_type=FILTER_TEXT),
    Column('defect', filter_type=FILTER_TEXT),
    Column('customer_name', label='Customer', filter_type=FILTER_TEXT),
    Column('dni', label='DNI', filter_type=FILTER_TEXT),
    Column('status', filter_type=FILTER_SELECT, options=[choice for choice, _ in Repair.STATUS_CHOICES]),
    Column('repairman.username', label='Repair person', filter_type=FILTER_TEXT),
    Column('created_at', label='Date'),
])


def _no_shop_response():
    return Response({'error': 'No shop selected', 'message': 'Select the shop to act for.'},
                    status=status.HTTP_400_BAD_REQUEST)


def _notice_response(notice, sale_cart=None):
    data = notice.as_dict()
    if sale_cart is not None:
        data['cart'] = sale_cart.as_dict()
    return Response(data, status=status.HTTP_400_BAD_REQUEST)


def _cart_data(cart, sale_cart=None):
    if sale_cart is None:
        sale_cart = refresh_cart(cart)
    cart.refresh_from_db()
    data = dict(CartSerializer(cart).data)
    data.update(sale_cart.as_dict())
    return data


def _carts_for(ctx):
    carts = ctx.scope(Cart.objects.select_related('shop', 'client', 'sales_person'))
    if not ctx.is_shop_admin:
        carts = carts.filter(sales_person=ctx.user)
    return carts


def _sales_for(ctx):
    sales = ctx.scope(Sale.objects.select_related('sales_person', 'client'))
    if not ctx.is_shop_admin:
        sales = sales.filter(sales_person=ctx.user)
    return sales


def generate_repair_barcode():
    barcode_value = f"REP-{timezone.now().strftime('%Y%m%d')}-{str(uuid.uuid4())[:6].upper()}"
    while Repair.objects.filter(barcode=barcode_value).exists():
        barcode_value = f"REP-{timezone.now().strftime('%Y%m%d')}-{str(uuid.uuid4())[:6].upper()}"
    return barcode_value


# Cart views
@api_view(['GET', 'POST'])
@permission_classes([IsSalesStaff])
def cart_list_create(request):
    """List open carts or start a new one"""
    ctx = ShopContext.from_request(request)
    if request.method == 'GET':
        carts = _carts_for(ctx).exclude(status='cancelled')
        return table_response(request, CART_TABLE, carts, CartSerializer)

    if ctx.shop is None:
        return _no_shop_response()
    client = None
    if request.data.get('client'):
        client = get_object_or_404(Client.objects.filter(shop=ctx.shop), pk=request.data.get('client'))
    cart = create_cart(ctx, ctx.shop, client=client)
    return Response(_cart_data(cart), status=status.HTTP_201_CREATED)


@api_view(['GET', 'PATCH', 'DELETE'])
@permission_classes([IsSalesStaff])
def cart_detail(request, pk):
    """Retrieve a cart with its lines and totals, change its client or status, or cancel it"""
    ctx = ShopContext.from_request(request)
    cart = get_object_or_404(_carts_for(ctx), pk=pk)

    if request.method == 'GET':
        return Response(_cart_data(cart))
    elif request.method == 'PATCH':
        serializer = CartSerializer(cart, data=request.data, partial=True, context={'shop': cart.shop})
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
        cart = serializer.save()
        return Response(_cart_data(cart))
    else:  # DELETE
        cart.items.all().delete()
        cart.status = 'cancelled'
        cart.discount = 0
        cart.save(update_fields=['status', 'discount', 'updated_at'])
        return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['POST'])
@permission_classes([IsSalesStaff])
def cart_items(request, pk):
    """Add one unit of a product, by id or by scanned barcode"""
    ctx = ShopContext.from_request(request)
    cart = get_object_or_404(_carts_for(ctx).exclude(status='cancelled'), pk=pk)
    products = Product.objects.filter(shop=cart.shop, is_active=True)

    if request.data.get('product'):
        product = get_object_or_404(products, pk=request.data.get('product'))
    elif request.data.get('barcode'):
        product = get_object_or_404(products, barcode=normalize_barcode(request.data.get('barcode')))
    else:
        return Response({'error': 'product or barcode is required'}, status=status.HTTP_400_BAD_REQUEST)

    sale_cart, notice = add_to_cart(ctx, cart, product)
    if notice is not None:
        return _notice_response(notice, sale_cart)
    return Response(_cart_data(cart, sale_cart))


@api_view(['PATCH', 'DELETE'])
@permission_classes([IsSalesStaff])
def cart_item_detail(request, pk, product_id):
    """Change a line's quantity or remove the line"""
    ctx = ShopContext.from_request(request)
    cart = get_object_or_404(_carts_for(ctx).exclude(status='cancelled'), pk=pk)

    if request.method == 'PATCH':
        if 'quantity' not in request.data:
            return Response({'error': 'quantity is required'}, status=status.HTTP_400_BAD_REQUEST)
        sale_cart, notice = update_cart_quantity(ctx, cart, product_id, request.data.get('quantity'))
    else:  # DELETE
        sale_cart, notice = remove_from_cart(ctx, cart, product_id)
    if notice is not None:
        return _notice_response(notice, sale_cart)
    return Response(_cart_data(cart, sale_cart))


@api_view(['POST'])
@permission_classes([IsSalesStaff])
def cart_discount(request, pk):
    ctx = ShopContext.from_request(request)
    cart = get_object_or_404(_carts_for(ctx).exclude(status='cancelled'), pk=pk)
    sale_cart, notice = set_cart_discount(ctx, cart, request.data.get('discount', 0))
    if notice is not None:
        return _notice_response(notice, sale_cart)
    return Response(_cart_data(cart, sale_cart))


@api_view(['POST'])
@permission_classes([IsSalesStaff])
def cart_checkout(request, pk):
    """Complete the sale; on success the cart is emptied for the next customer"""
    ctx = ShopContext.from_request(request)
    cart = get_object_or_404(_carts_for(ctx).exclude(status='cancelled'), pk=pk)
    sale, notice, sale_cart = checkout_cart(ctx, cart)
    if notice is not None:
        return _notice_response(notice, sale_cart)
    return Response({'sale': SaleSerializer(sale).data, 'cart': _cart_data(cart, sale_cart)},
                    status=status.HTTP_201_CREATED)


# Sale views
@api_view(['GET'])
@permission_classes([IsSalesStaff])
def sale_list(request):
    """Sales of the shop; sales persons see their own"""
    ctx = ShopContext.from_request(request)
    sales = _sales_for(ctx).prefetch_related('items')
    date_from = request.query_params.get('date_from')
    date_to = request.query_params.get('date_to')
    if date_from:
        sales = sales.filter(created_at__date__gte=date_from)
    if date_to:
        sales = sales.filter(created_at__date__lte=date_to)
    return table_response(request, SALE_TABLE, sales, SaleListSerializer)


@api_view(['GET'])
@permission_classes([IsSalesStaff])
def sale_detail(request, pk):
    ctx = ShopContext.from_request(request)
    sale = get_object_or_404(_sales_for(ctx).prefetch_related('items'), pk=pk)
    return Response(SaleSerializer(sale).data)


# Repair views
@api_view(['GET', 'POST'])
@permission_classes([IsRepairDesk])
def repair_list_create(request):
    """List the repair book or book a device in"""
    ctx = ShopContext.from_request(request)
    if request.method == 'GET':
        repairs = ctx.scope(Repair.objects.select_related('repairman', 'client'))
        if request.query_params.get('mine') == 'true':
            repairs = repairs.filter(repairman=ctx.user)
        return table_response(request, REPAIR_TABLE, repairs, RepairSerializer)

    if ctx.shop is None:
        return _no_shop_response()
    serializer = RepairSerializer(data=request.data, context={'shop': ctx.shop})
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    repair = serializer.save(shop=ctx.shop, barcode=generate_repair_barcode(), created_by=ctx.user)
    create_activity_log(ctx=ctx, action='create', model_name='Repair', object_id=repair.id,
                        object_name=f"Repair {repair.barcode}",
                        description=f'{repair.brand} {repair.model_name} booked in: {repair.defect}')
    if repair.repairman is not None and repair.repairman != ctx.user:
        notify([repair.repairman], 'New repair assigned',
               f'{repair.brand} {repair.model_name} ({repair.defect}) - {repair.barcode}', 'repair')
    return Response(RepairSerializer(repair).data, status=status.HTTP_201_CREATED)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsRepairDesk])
def repair_detail(request, pk):
    """Retrieve, update or delete a repair"""
    ctx = ShopContext.from_request(request)
    repair = get_object_or_404(ctx.scope(Repair.objects.select_related('repairman', 'client')), pk=pk)

    if request.method == 'GET':
        return Response(RepairSerializer(repair).data)
    elif request.method in ('PUT', 'PATCH'):
        serializer = RepairSerializer(repair, data=request.data, partial=request.method == 'PATCH',
                                      context={'shop': repair.shop})
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
        repair = serializer.save(updated_by=ctx.user)
        create_activity_log(ctx=ctx, action='update', model_name='Repair', object_id=repair.id,
                            object_name=f"Repair {repair.barcode}", shop=repair.shop,
                            changes={key: str(value) for key, value in serializer.validated_data.items()})
        return Response(serializer.data)
    else:  # DELETE
        if not ctx.is_shop_admin:
            return Response({'error': 'Only shop admins can delete repairs'}, status=status.HTTP_403_FORBIDDEN)
        create_activity_log(ctx=ctx, action='delete', model_name='Repair', object_id=repair.id,
                            object_name=f"Repair {repair.barcode}", shop=repair.shop)
        repair.delete()
        return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['PATCH'])
@permission_classes([IsRepairDesk])
def repair_status(request, pk):
    """Move a repair forward: received -> work in progress -> done -> delivered"""
    ctx = ShopContext.from_request(request)
    repair = get_object_or_404(ctx.scope(Repair.objects.all()), pk=pk)

    serializer = RepairStatusSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    new_status = serializer.validated_data['status']
    if not repair.can_move_to(new_status):
        return Response(
            {'error': 'Invalid status change',
             'message': f'A repair that is {repair.get_status_display()} cannot be moved to {new_status}.'},
            status=status.HTTP_400_BAD_REQUEST
        )

    old_status = repair.status
    repair.status = new_status
    repair.updated_by = ctx.user
    repair.save(update_fields=['status', 'updated_by', 'updated_at'])

    create_activity_log(
        ctx=ctx, action='repair_status_update', model_name='Repair', object_id=repair.id,
        object_name=f"Repair {repair.barcode}", shop=repair.shop,
        changes={'status': {'old': old_status, 'new': new_status}},
    )
    if new_status == 'done' and repair.created_by is not None and repair.created_by != ctx.user:
        notify([repair.created_by], 'Repair ready',
               f'{repair.brand} {repair.model_name} for {repair.customer_name} is ready for pickup.', 'repair')
    return Response(RepairSerializer(repair).data)


@api_view(['GET'])
@permission_classes([IsRepairDesk])
def repair_by_barcode(request):
    ctx = ShopContext.from_request(request)
    barcode_value = normalize_barcode(request.query_params.get('barcode', ''))
    if not barcode_value:
        return Response({'error': 'Barcode is required'}, status=status.HTTP_400_BAD_REQUEST)
    repair = ctx.scope(Repair.objects.select_related('repairman', 'client')).filter(barcode=barcode_value).first()
    if repair is None:
        return Response({'error': 'Repair not found'}, status=status.HTTP_404_NOT_FOUND)
    return Response(RepairSerializer(repair).data)


@api_view(['GET'])
@permission_classes([IsRepairDesk])
def repair_label(request, pk):
    """Render the repair ticket as a PNG data URL"""
    ctx = ShopContext.from_request(request)
    repair = get_object_or_404(ctx.scope(Repair.objects.select_related('shop')), pk=pk)
    lines = [
        f'Customer: {repair.customer_name}',
        f'Device: {repair.brand} {repair.model_name}',
        f'IMEI: {repair.imei or "-"}',
        f'Defect: {repair.defect}',
        f'Date: {repair.created_at:%Y-%m-%d %H:%M}',
    ]
    if repair.booking_amount is not None:
        lines.append(f'Booking: {repair.booking_amount:.2f}')
    image = generate_ticket_image(repair.shop.name, repair.barcode, lines)
    logger.debug(f"Generated ticket for repair {repair.pk}")
    return Response({'repair': repair.id, 'barcode': repair.barcode, 'image': image})
