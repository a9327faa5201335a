"""
Dashboard and report endpoints

KPIs are read through the dashboard cache in ``shopdesk.core.cache_utils``;
the cache is invalidated by ``shopdesk.core.cache_signals`` whenever sales,
products, stock movements, repairs or clients change.
"""
import logging
from datetime import datetime, timedelta
from decimal import Decimal

from django.db.models import Avg, Count, DecimalField, ExpressionWrapper, F, Q, Sum
from django.db.models.functions import TruncDate
from django.utils import timezone
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response

from shopdesk.catalog.models import Product
from shopdesk.core.cache_utils import cache_dashboard, get_cached_dashboard
from shopdesk.core.context import ShopContext
from shopdesk.core.models import User
from shopdesk.core.permissions import IsRepairDesk, IsSalesStaff, IsShopMember, IsSuperAdmin, IsWholesaler
from shopdesk.parties.models import Client
from shopdesk.pos.models import Repair, Sale, SaleItem
from shopdesk.shops.models import Shop

logger = logging.getLogger(__name__)

ZERO = Decimal('0.00')


def _parse_period(request, default_days=30):
    """Returns tuple: (date_from, date_to); raises ValueError on a malformed date"""
    date_from = request.query_params.get('date_from')
    date_to = request.query_params.get('date_to')
    today = timezone.localdate()
    date_from = datetime.strptime(date_from, '%Y-%m-%d').date() if date_from else today - timedelta(days=default_days)
    date_to = datetime.strptime(date_to, '%Y-%m-%d').date() if date_to else today
    return date_from, date_to


def _money(value):
    return str((value or ZERO).quantize(Decimal('0.01')))


def _sales_totals(sales):
    totals = sales.aggregate(
        revenue=Sum('total', output_field=DecimalField()),
        tax=Sum('tax', output_field=DecimalField()),
        discount=Sum('discount', output_field=DecimalField()),
        count=Count('id'),
    )
    return {
        'revenue': _money(totals['revenue']),
        'tax': _money(totals['tax']),
        'discount': _money(totals['discount']),
        'sale_count': totals['count'],
    }


def _cached_response(data, hit):
    response = Response(data)
    response['X-Cache'] = 'HIT' if hit else 'MISS'
    return response


def _shop_required():
    return Response({'error': 'No shop selected', 'message': 'Pass ?shop=<id> to see a shop dashboard.'},
                    status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET'])
@permission_classes([IsShopMember])
def dashboard(request):
    """
    Shop dashboard KPIs

    Admins see the whole shop; sales persons see their own sales figures.
    """
    ctx = ShopContext.from_request(request)
    if ctx.shop is None:
        return _shop_required()

    today = timezone.localdate()
    personal = not ctx.is_shop_admin
    cache_args = ('user', ctx.user.pk) if personal else ()
    cached_data, cache_key = get_cached_dashboard('shop', ctx.shop.pk, today.isoformat(), *cache_args)
    if cached_data is not None:
        return _cached_response(cached_data, hit=True)

    sales = Sale.objects.filter(shop=ctx.shop)
    if personal:
        sales = sales.filter(sales_person=ctx.user)
    products = Product.objects.filter(shop=ctx.shop, is_active=True)

    data = {
        'shop': {'id': ctx.shop.pk, 'name': ctx.shop.name, 'subscription_tier': ctx.shop.subscription_tier},
        'date': today.isoformat(),
        'today': _sales_totals(sales.filter(created_at__date=today)),
        'month': _sales_totals(sales.filter(created_at__date__gte=today.replace(day=1))),
        'products': {
            'total': products.count(),
            'low_stock': products.filter(stock__gt=0, stock__lt=F('low_stock_threshold')).count(),
            'out_of_stock': products.filter(stock__lte=0).count(),
        },
        'open_repairs': Repair.objects.filter(shop=ctx.shop).exclude(status='delivered').count(),
        'recent_sales': [
            {'id': sale.id, 'sale_number': sale.sale_number, 'total': str(sale.total),
             'created_at': sale.created_at.isoformat()}
            for sale in sales.order_by('-created_at', '-id')[:5]
        ],
    }
    if not personal:
        data['clients'] = Client.objects.filter(shop=ctx.shop, status='active').count()
        data['staff'] = User.objects.filter(shop=ctx.shop, is_active=True).count()

    cache_dashboard(cache_key, data)
    return _cached_response(data, hit=False)


@api_view(['GET'])
@permission_classes([IsSuperAdmin])
def platform_analytics(request):
    """Platform-wide figures for the super admin"""
    cached_data, cache_key = get_cached_dashboard('analytics', None, timezone.localdate().isoformat())
    if cached_data is not None:
        return _cached_response(cached_data, hit=True)

    shops = Shop.objects.all()
    active_shops = shops.filter(subscription_status='active')
    recurring = active_shops.aggregate(total=Sum('pricing_plan__price', output_field=DecimalField()))['total']

    top_shops = (
        Sale.objects.values('shop__id', 'shop__name')
        .annotate(revenue=Sum('total', output_field=DecimalField()), sale_count=Count('id'))
        .order_by('-revenue')[:10]
    )

    data = {
        'shops': {
            'total': shops.count(),
            'by_status': {row['subscription_status']: row['count']
                          for row in shops.values('subscription_status').annotate(count=Count('id'))},
            'by_tier': {row['subscription_tier']: row['count']
                        for row in shops.values('subscription_tier').annotate(count=Count('id'))},
        },
        'users': {row['role']: row['count']
                  for row in User.objects.filter(is_active=True).values('role').annotate(count=Count('id'))},
        'monthly_recurring_revenue': _money(recurring),
        'sales': _sales_totals(Sale.objects.all()),
        'top_shops': [
            {'id': row['shop__id'], 'name': row['shop__name'], 'revenue': _money(row['revenue']),
             'sale_count': row['sale_count']}
            for row in top_shops
        ],
    }
    cache_dashboard(cache_key, data)
    return _cached_response(data, hit=False)


@api_view(['GET'])
@permission_classes([IsRepairDesk])
def repairs_dashboard(request):
    """Repair counts by status; repair men see the repairs assigned to them"""
    ctx = ShopContext.from_request(request)
    if ctx.shop is None:
        return _shop_required()

    repairs = Repair.objects.filter(shop=ctx.shop)
    if ctx.role == User.ROLE_REPAIR_MAN:
        repairs = repairs.filter(repairman=ctx.user)

    by_status = {row['status']: row['count'] for row in repairs.values('status').annotate(count=Count('id'))}
    data = {
        'by_status': {choice: by_status.get(choice, 0) for choice, _ in Repair.STATUS_CHOICES},
        'total': sum(by_status.values()),
        'unassigned': repairs.filter(repairman__isnull=True).exclude(status='delivered').count(),
        'booking_amount': _money(
            repairs.exclude(status='delivered').aggregate(total=Sum('booking_amount'))['total']
        ),
    }
    return Response(data)


@api_view(['GET'])
@permission_classes([IsSalesStaff])
def sales_summary(request):
    """Sales summary report with a daily breakdown and the top products"""
    ctx = ShopContext.from_request(request)
    try:
        date_from, date_to = _parse_period(request)
    except ValueError:
        return Response({'error': 'Invalid date', 'message': 'Dates must be formatted YYYY-MM-DD.'},
                        status=status.HTTP_400_BAD_REQUEST)
    try:
        limit = min(max(1, int(request.query_params.get('limit', 10))), 100)
    except ValueError:
        limit = 10

    sales = ctx.scope(Sale.objects.all()).filter(created_at__date__gte=date_from, created_at__date__lte=date_to)
    if not ctx.is_shop_admin:
        sales = sales.filter(sales_person=ctx.user)

    items = SaleItem.objects.filter(sale__in=sales)
    items_sold = items.aggregate(total=Sum('quantity'))['total'] or 0

    daily_sales = (
        sales.annotate(date=TruncDate('created_at'))
        .values('date')
        .annotate(total=Sum('total', output_field=DecimalField()), count=Count('id'))
        .order_by('date')
    )
    top_products = (
        items.values('product__id', 'product_name')
        .annotate(quantity=Sum('quantity'), revenue=Sum('total', output_field=DecimalField()),
                  sale_count=Count('sale', distinct=True))
        .order_by('-revenue', 'product_name')[:limit]
    )
    summary = _sales_totals(sales)
    summary['items_sold'] = items_sold
    summary['clients'] = sales.filter(~Q(client=None)).values('client').distinct().count()

    logger.debug(f"Sales summary for {ctx!r}: {date_from} to {date_to}")
    return Response({
        'period': {'from': date_from.isoformat(), 'to': date_to.isoformat()},
        'summary': summary,
        'daily_breakdown': [
            {'date': row['date'].isoformat(), 'total': _money(row['total']), 'count': row['count']}
            for row in daily_sales
        ],
        'top_products': [
            {'product': row['product__id'], 'name': row['product_name'], 'quantity': row['quantity'],
             'revenue': _money(row['revenue']), 'sale_count': row['sale_count']}
            for row in top_products
        ],
    })


@api_view(['GET'])
@permission_classes([IsWholesaler])
def wholesaler_dashboard(request):
    """
    Catalog KPIs of a wholesaler

    Active products, units in stock, stock value at list price and the
    average discount of the products that carry one.
    """
    ctx = ShopContext.from_request(request)
    if ctx.shop is None:
        return _shop_required()

    cached_data, cache_key = get_cached_dashboard('wholesaler', ctx.shop.pk)
    if cached_data is not None:
        return _cached_response(cached_data, hit=True)

    products = Product.objects.filter(shop=ctx.shop, is_active=True)
    totals = products.aggregate(
        active_products=Count('id'),
        total_stock=Sum('stock'),
        stock_value=Sum(ExpressionWrapper(F('price') * F('stock'),
                                          output_field=DecimalField(max_digits=14, decimal_places=2))),
    )
    discounted = products.filter(discount_percent__gt=0)
    average_discount = discounted.aggregate(average=Avg('discount_percent'))['average']

    data = {
        'shop': {'id': ctx.shop.pk, 'name': ctx.shop.name},
        'active_products': totals['active_products'],
        'total_stock': totals['total_stock'] or 0,
        'stock_value': _money(totals['stock_value']),
        'discounted_products': discounted.count(),
        'average_discount': _money(Decimal(str(average_discount)) if average_discount is not None else None),
    }
    cache_dashboard(cache_key, data)
    return _cached_response(data, hit=False)
