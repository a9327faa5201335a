"""
Stock changes

Every change of ``Product.stock`` goes through ``apply_stock_movement`` so the
product row is locked, the new level is checked, and a ``StockMovement`` row
records the change. Sales call it from inside their own transaction.
"""
import logging

from django.db import transaction
from django.db.models import F

from shopdesk.catalog.models import Product
from shopdesk.core.utils import create_activity_log, notify_shop_admins
from .models import StockMovement

logger = logging.getLogger(__name__)

ACTIVITY_ACTIONS = {
    'add': 'stock_add',
    'remove': 'stock_remove',
    'wastage': 'stock_wastage',
}


class StockError(Exception):
    """A stock change that cannot be applied; nothing was written"""

    def __init__(self, code, message):
        super().__init__(message)
        self.code = code
        self.message = message

    def as_response_data(self):
        return {'error': self.code.replace('_', ' ').capitalize(), 'message': self.message, 'code': self.code}


def notify_low_stock(product, previous_stock):
    """Notify the shop admins when a product crosses below its threshold"""
    if previous_stock >= product.low_stock_threshold > product.stock:
        notify_shop_admins(
            product.shop, 'Low stock',
            f'{product.name} has {product.stock} unit(s) left (threshold {product.low_stock_threshold}).',
            'low_stock',
        )


def apply_stock_movement(ctx, product, movement_type, quantity, reason=None, notes='', sale=None):
    """
    Lock ``product``, apply the movement and record it.

    Raises StockError for a non-positive quantity, a wastage without a reason,
    or an outgoing quantity larger than the stock on hand.
    """
    if movement_type not in dict(StockMovement.MOVEMENT_TYPE_CHOICES):
        raise StockError('invalid_movement', f'Unknown movement type "{movement_type}"')
    try:
        quantity = int(quantity)
    except (TypeError, ValueError):
        raise StockError('invalid_quantity', 'Quantity must be a whole number')
    if quantity <= 0:
        raise StockError('invalid_quantity', 'Quantity must be greater than zero')
    if movement_type == 'wastage' and reason is None:
        raise StockError('reason_required', 'Please select a reason for wastage')
    if reason is not None and reason.shop_id != product.shop_id:
        raise StockError('invalid_reason', 'Reason belongs to another shop')

    outgoing = movement_type in StockMovement.OUTGOING_TYPES
    with transaction.atomic():
        locked = Product.objects.select_for_update().select_related('shop').get(pk=product.pk)
        previous_stock = locked.stock
        if outgoing and quantity > previous_stock:
            action = 'move to wastage' if movement_type == 'wastage' else 'remove'
            raise StockError(
                'insufficient_stock',
                f'Cannot {action} {quantity} items of {locked.name}. Only {previous_stock} available.'
            )

        delta = -quantity if outgoing else quantity
        Product.objects.filter(pk=locked.pk).update(stock=F('stock') + delta)
        locked.refresh_from_db(fields=['stock', 'updated_at'])
        product.stock = locked.stock

        movement = StockMovement.objects.create(
            shop=locked.shop,
            product=locked,
            movement_type=movement_type,
            quantity=quantity,
            reason=reason,
            notes=notes or '',
            stock_after=locked.stock,
            sale=sale,
            created_by=ctx.user if ctx is not None and ctx.user.is_authenticated else None,
        )

        if movement_type in ACTIVITY_ACTIONS:
            create_activity_log(
                ctx=ctx, action=ACTIVITY_ACTIONS[movement_type], model_name='Product', object_id=locked.id,
                object_name=locked.name, shop=locked.shop,
                description=f'{movement.get_movement_type_display()}: {quantity} x {locked.name}',
                changes={
                    'quantity': quantity,
                    'reason': reason.name if reason else None,
                    'notes': notes or '',
                    'old_stock': previous_stock,
                    'new_stock': locked.stock,
                },
            )
        notify_low_stock(locked, previous_stock)

    logger.info(f"Stock {movement_type} {quantity} x product {locked.pk}: {previous_stock} -> {locked.stock}")
    return movement
