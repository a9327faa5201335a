"""
Storage seams for the sale flow.

``complete_sale`` only talks to a ``ProductRepository`` and a
``SaleRepository``. The Django implementations lock product rows with
``select_for_update``; the in-memory ones back the unit tests and any
caller that keeps its catalog in memory.
"""
import copy
import logging
import uuid
from abc import ABC, abstractmethod
from contextlib import contextmanager
from typing import Dict, Iterable, List, Optional

from django.db import transaction
from django.utils import timezone

from .calculator import CartLine, ProductInfo, SaleTotals

logger = logging.getLogger(__name__)


def generate_sale_number():
    return f"SALE-{timezone.now().strftime('%Y%m%d')}-{str(uuid.uuid4())[:8].upper()}"


class ProductRepository(ABC):

    @abstractmethod
    def get(self, product_id) -> Optional[ProductInfo]:
        """Current product data, or None when unknown to this shop"""

    @abstractmethod
    def lock_for_sale(self, product_ids: Iterable[int]) -> Dict[int, ProductInfo]:
        """Lock the rows until the surrounding ``atomic`` block ends and return fresh data"""

    @abstractmethod
    def decrement_stock(self, ctx, product_id, quantity: int, sale=None) -> int:
        """Subtract ``quantity`` and return the new stock"""

    @abstractmethod
    def atomic(self):
        """Context manager; an exception inside it undoes every change"""


class SaleRepository(ABC):

    @abstractmethod
    def create_sale(self, ctx, lines: List[CartLine], totals: SaleTotals, tax_rate, client=None):
        """Persist a sale and its items; ``totals`` are already rounded"""


def product_info(product) -> ProductInfo:
    return ProductInfo(
        product_id=product.pk,
        name=product.name,
        price=product.price,
        stock=product.stock,
        low_stock_threshold=product.low_stock_threshold,
        is_active=product.is_active,
    )


class DjangoProductRepository(ProductRepository):
    """Products of one shop"""

    def __init__(self, shop):
        from shopdesk.catalog.models import Product
        self.shop = shop
        self.queryset = Product.objects.filter(shop=shop)
        self._locked = {}

    def get(self, product_id):
        product = self.queryset.filter(pk=product_id).first()
        return product_info(product) if product is not None else None

    def lock_for_sale(self, product_ids):
        # Lock in primary-key order so two checkouts never wait on each other crosswise
        products = self.queryset.select_for_update().filter(pk__in=list(product_ids)).order_by('pk')
        self._locked = {product.pk: product for product in products}
        return {pk: product_info(product) for pk, product in self._locked.items()}

    def decrement_stock(self, ctx, product_id, quantity, sale=None):
        from shopdesk.inventory.services import apply_stock_movement
        product = self._locked.get(product_id) or self.queryset.get(pk=product_id)
        movement = apply_stock_movement(ctx, product, 'sale', quantity, sale=sale,
                                        notes=f'Sale {sale.sale_number}' if sale is not None else '')
        return movement.stock_after

    def atomic(self):
        return transaction.atomic()


class DjangoSaleRepository(SaleRepository):

    def __init__(self, shop):
        self.shop = shop

    def create_sale(self, ctx, lines, totals, tax_rate, client=None):
        from .models import Sale, SaleItem
        sale_number = generate_sale_number()
        while Sale.objects.filter(sale_number=sale_number).exists():
            sale_number = generate_sale_number()

        sale = Sale.objects.create(
            shop=self.shop,
            sale_number=sale_number,
            sales_person=ctx.user if getattr(ctx.user, 'is_authenticated', False) else None,
            client=client,
            subtotal=totals.subtotal,
            tax=totals.tax,
            discount=totals.discount,
            total=totals.total,
            tax_rate=tax_rate,
        )
        SaleItem.objects.bulk_create([
            SaleItem(
                sale=sale,
                product_id=line.product_id,
                product_name=line.name,
                quantity=line.quantity,
                price=line.price,
                total=line.line_total,
            )
            for line in lines
        ])
        if client is not None:
            client.last_purchase_at = sale.created_at
            client.save(update_fields=['last_purchase_at', 'updated_at'])
        return sale


class InMemoryProductRepository(ProductRepository):
    """Products held in a dict; ``atomic`` restores the dict on error"""

    def __init__(self, products: Iterable[ProductInfo] = ()):
        self.products: Dict[int, ProductInfo] = {product.product_id: product for product in products}
        self.movements = []

    def get(self, product_id):
        return self.products.get(product_id)

    def lock_for_sale(self, product_ids):
        return {pk: self.products[pk] for pk in product_ids if pk in self.products}

    def decrement_stock(self, ctx, product_id, quantity, sale=None):
        product = self.products[product_id]
        if quantity > product.stock:
            raise ValueError(f'Stock of {product.name} would go negative')
        updated = ProductInfo(product.product_id, product.name, product.price, product.stock - quantity,
                              product.low_stock_threshold, product.is_active)
        self.products[product_id] = updated
        self.movements.append((product_id, -quantity, sale))
        return updated.stock

    def set_stock(self, product_id, stock):
        product = self.products[product_id]
        self.products[product_id] = ProductInfo(product.product_id, product.name, product.price, stock,
                                                product.low_stock_threshold, product.is_active)

    @contextmanager
    def atomic(self):
        saved_products = dict(self.products)
        saved_movements = list(self.movements)
        try:
            yield
        except Exception:
            self.products = saved_products
            self.movements = saved_movements
            raise


class InMemorySaleRecord:
    def __init__(self, sale_number, lines, totals, client=None, sales_person=None):
        self.sale_number = sale_number
        self.lines = lines
        self.subtotal = totals.subtotal
        self.tax = totals.tax
        self.discount = totals.discount
        self.total = totals.total
        self.client = client
        self.sales_person = sales_person
        self.created_at = timezone.now()

    def __repr__(self):
        return f"InMemorySaleRecord({self.sale_number!r}, total={self.total})"


class InMemorySaleRepository(SaleRepository):

    def __init__(self):
        self.sales: List[InMemorySaleRecord] = []

    def create_sale(self, ctx, lines, totals, tax_rate, client=None):
        sale = InMemorySaleRecord(generate_sale_number(), copy.deepcopy(lines), totals, client,
                                  getattr(ctx, 'user', None))
        self.sales.append(sale)
        return sale
