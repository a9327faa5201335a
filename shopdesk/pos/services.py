"""
Point-of-sale operations

``complete_sale`` works on any ``SaleCart`` through the repository seams.
The ``*_cart`` helpers below lock a database ``Cart``, load it into a
``SaleCart``, apply one calculator operation and write the result back; each
returns the cart plus a ``CartNotice`` (None on success). Lines that stock no
longer covers are lowered and stored even when the operation is refused.
"""
import logging
import uuid

from django.db import transaction
from django.utils import timezone

from shopdesk.core.utils import create_activity_log
from .calculator import CartLine, SaleCart, check_discount, empty_cart, out_of_stock, round_money
from .models import Cart, CartItem
from .repositories import DjangoProductRepository, DjangoSaleRepository, product_info

logger = logging.getLogger(__name__)


class SaleRejected(Exception):
    """Raised inside the sale transaction to roll it back"""

    def __init__(self, notice):
        super().__init__(notice.message)
        self.notice = notice


def complete_sale(ctx, cart, products, sales, client=None):
    """
    Commit ``cart`` as a sale.

    Every line is re-checked against freshly locked stock before anything is
    written; one short line rejects the whole sale. On success the cart is
    cleared and its discount reset.

    Returns tuple: (sale, notice) with exactly one of them set
    """
    if cart.is_empty:
        return None, empty_cart()
    totals = cart.totals()
    notice = check_discount(cart.discount, totals.subtotal, totals.tax)
    if notice is not None:
        return None, notice

    try:
        with products.atomic():
            current = products.lock_for_sale([line.product_id for line in cart.lines])
            for line in cart.lines:
                product = current.get(line.product_id)
                if product is None or not product.is_active:
                    raise SaleRejected(out_of_stock(line.name, 0))
                if line.quantity > product.stock:
                    raise SaleRejected(out_of_stock(line.name, product.stock))
            sale = sales.create_sale(ctx, cart.lines, totals.rounded(), cart.tax_rate, client=client)
            for line in cart.lines:
                products.decrement_stock(ctx, line.product_id, line.quantity, sale=sale)
    except SaleRejected as e:
        logger.info(f"Sale rejected: {e.notice.code} ({e.notice.message})")
        return None, e.notice

    logger.info(f"Sale {sale.sale_number} completed: {len(cart.lines)} line(s), total {round_money(totals.total)}")
    cart.clear()
    return sale, None


def generate_cart_number():
    cart_number = f"CART-{timezone.now().strftime('%Y%m%d')}-{str(uuid.uuid4())[:8].upper()}"
    while Cart.objects.filter(cart_number=cart_number).exists():
        cart_number = f"CART-{timezone.now().strftime('%Y%m%d')}-{str(uuid.uuid4())[:8].upper()}"
    return cart_number


def create_cart(ctx, shop, client=None):
    return Cart.objects.create(
        cart_number=generate_cart_number(),
        shop=shop,
        sales_person=ctx.user,
        client=client,
    )


def lock_cart(cart):
    """Re-read ``cart`` holding its row lock; call inside ``transaction.atomic``"""
    return Cart.objects.select_for_update().select_related('shop', 'client').get(pk=cart.pk)


def load_cart(cart, refresh_stock=True):
    """Build the calculator view of a stored cart with current stock levels"""
    items = list(cart.items.select_related('product').order_by('added_at', 'id'))
    lines = [
        CartLine(
            product_id=item.product_id,
            name=item.product.name,
            price=item.unit_price,
            quantity=item.quantity,
            stock=item.product.stock,
            low_stock=item.product.is_low_stock,
        )
        for item in items
    ]
    sale_cart = SaleCart(tax_rate=cart.shop.tax_rate, discount=cart.discount, lines=lines)
    if refresh_stock:
        for item in items:
            sale_cart.refresh_line(product_info(item.product))
    return sale_cart


def save_cart(cart, sale_cart):
    """Write the lines and discount of ``sale_cart`` back to ``cart``"""
    with transaction.atomic():
        existing = {item.product_id: item for item in cart.items.all()}
        wanted = {line.product_id for line in sale_cart.lines}
        stale = [item.pk for product_id, item in existing.items() if product_id not in wanted]
        if stale:
            CartItem.objects.filter(pk__in=stale).delete()
        for line in sale_cart.lines:
            item = existing.get(line.product_id)
            if item is None:
                CartItem.objects.create(cart=cart, product_id=line.product_id, quantity=line.quantity,
                                        unit_price=round_money(line.price))
            elif item.quantity != line.quantity:
                item.quantity = line.quantity
                item.save(update_fields=['quantity'])
        cart.discount = round_money(sale_cart.discount)
        cart.save(update_fields=['discount', 'updated_at'])


def _save_adjustments(cart, sale_cart):
    if sale_cart.adjustments:
        save_cart(cart, sale_cart)
        logger.info(f"Cart {cart.cart_number} adjusted: {', '.join(n.code for n in sale_cart.adjustments)}")


def refresh_cart(cart):
    """Load ``cart`` and store any line that current stock no longer covers"""
    with transaction.atomic():
        cart = lock_cart(cart)
        sale_cart = load_cart(cart)
        _save_adjustments(cart, sale_cart)
    return sale_cart


def add_to_cart(ctx, cart, product):
    with transaction.atomic():
        cart = lock_cart(cart)
        sale_cart = load_cart(cart)
        product.refresh_from_db()
        notice = sale_cart.add_item(product_info(product))
        if notice is not None:
            _save_adjustments(cart, sale_cart)
            return sale_cart, notice
        save_cart(cart, sale_cart)
        line = sale_cart.line(product.pk)
        create_activity_log(ctx=ctx, action='cart_add', model_name='Cart', object_id=cart.id,
                            object_name=cart.cart_number, shop=cart.shop,
                            changes={'product': product.name, 'quantity': line.quantity})
    return sale_cart, None


def update_cart_quantity(ctx, cart, product_id, quantity):
    with transaction.atomic():
        cart = lock_cart(cart)
        sale_cart = load_cart(cart)
        line = sale_cart.line(product_id)
        old_quantity = line.quantity if line is not None else None
        notice = sale_cart.update_quantity(product_id, quantity)
        if notice is not None:
            _save_adjustments(cart, sale_cart)
            return sale_cart, notice
        save_cart(cart, sale_cart)
        create_activity_log(ctx=ctx, action='cart_update', model_name='Cart', object_id=cart.id,
                            object_name=cart.cart_number, shop=cart.shop,
                            changes={'product': line.name, 'quantity': {'old': old_quantity, 'new': line.quantity}})
    return sale_cart, None


def remove_from_cart(ctx, cart, product_id):
    with transaction.atomic():
        cart = lock_cart(cart)
        sale_cart = load_cart(cart)
        line = sale_cart.line(product_id)
        sale_cart.remove_item(product_id)
        if line is None:
            _save_adjustments(cart, sale_cart)
            return sale_cart, None
        save_cart(cart, sale_cart)
        create_activity_log(ctx=ctx, action='cart_remove', model_name='Cart', object_id=cart.id,
                            object_name=cart.cart_number, shop=cart.shop,
                            changes={'product': line.name, 'quantity': line.quantity})
    return sale_cart, None


def set_cart_discount(ctx, cart, discount):
    with transaction.atomic():
        cart = lock_cart(cart)
        sale_cart = load_cart(cart)
        notice = sale_cart.set_discount(discount)
        if notice is not None:
            _save_adjustments(cart, sale_cart)
        else:
            save_cart(cart, sale_cart)
    return sale_cart, notice


def checkout_cart(ctx, cart):
    """
    Turn a stored cart into a sale.

    The cart is sold exactly as stored; when stock no longer covers it the
    sale is refused and the cart is then lowered to what is left.

    Returns tuple: (sale, notice, sale_cart)
    """
    with transaction.atomic():
        cart = lock_cart(cart)
        sale_cart = load_cart(cart, refresh_stock=False)
        sale, notice = complete_sale(
            ctx, sale_cart, DjangoProductRepository(cart.shop), DjangoSaleRepository(cart.shop), client=cart.client,
        )
        if sale is None:
            sale_cart = load_cart(cart)
            _save_adjustments(cart, sale_cart)
            return None, notice, sale_cart
        save_cart(cart, sale_cart)
        create_activity_log(
            ctx=ctx, action='sale_complete', model_name='Sale', object_id=sale.id, object_name=sale.sale_number,
            shop=cart.shop, description=f'Sale {sale.sale_number} completed, total {sale.total}',
            changes={'subtotal': str(sale.subtotal), 'tax': str(sale.tax), 'discount': str(sale.discount),
                     'total': str(sale.total), 'items': sale.items.count()},
        )
    return sale, None, sale_cart
