"""
Cart and sale arithmetic for the point of sale.

Plain Python with no Django imports: a ``SaleCart`` holds ``CartLine``
objects in insertion order and every operation either succeeds or returns a
``CartNotice`` leaving the lines untouched. Stock that fell below a line's
quantity lowers the line instead of refusing. Totals are computed exactly with
``Decimal``; ``round_money`` is applied only when a value is shown or stored.
"""
from dataclasses import dataclass, field
from decimal import Decimal, ROUND_HALF_UP, InvalidOperation
from typing import Any, Dict, Iterable, List, Optional

TWO_PLACES = Decimal('0.01')
ZERO = Decimal('0')


def to_decimal(value) -> Decimal:
    """Convert user or database input to Decimal without float noise"""
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        return Decimal(str(value))
    try:
        return Decimal(value)
    except (InvalidOperation, TypeError, ValueError):
        raise ValueError(f'Not a valid amount: {value!r}')


def round_money(value) -> Decimal:
    """Round to cents, halves away from zero"""
    return to_decimal(value).quantize(TWO_PLACES, rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class CartNotice:
    """User-facing reason an operation was refused"""
    code: str
    title: str
    message: str
    level: str = 'warning'

    def as_dict(self) -> Dict[str, str]:
        return {'error': self.title, 'message': self.message, 'code': self.code}


def out_of_stock(name: str, stock: int) -> CartNotice:
    if stock <= 0:
        return CartNotice('out_of_stock', 'Out of Stock', f'{name} is out of stock')
    return CartNotice('out_of_stock', 'Out of Stock', f'No more stock available for {name} (only {stock} left)')


def empty_cart() -> CartNotice:
    return CartNotice('empty_cart', 'Empty Cart', 'Add items to cart first')


def invalid_quantity(name: str, quantity, stock: int) -> CartNotice:
    return CartNotice('invalid_quantity', 'Invalid Quantity',
                      f'Quantity for {name} must be between 1 and {stock} (got {quantity})')


def not_in_cart(product_id) -> CartNotice:
    return CartNotice('not_in_cart', 'Not in Cart', f'Product {product_id} is not in the cart')


def invalid_discount(discount) -> CartNotice:
    return CartNotice('invalid_discount', 'Invalid Discount', f'Discount must be a positive amount (got {discount})')


def discount_exceeds_total(discount, limit) -> CartNotice:
    return CartNotice('discount_exceeds_total', 'Discount Too Large',
                      f'Discount {round_money(discount)} is larger than the sale total {round_money(limit)}')


def stock_adjusted(name: str, stock: int) -> CartNotice:
    return CartNotice('stock_adjusted', 'Quantity Adjusted',
                      f'Only {stock} of {name} left in stock, the cart quantity was lowered to match', level='info')


def discount_removed(discount, limit) -> CartNotice:
    return CartNotice('discount_removed', 'Discount Removed',
                      f'Discount {round_money(discount)} no longer fits the sale total {round_money(limit)} and was removed',
                      level='info')


@dataclass(frozen=True)
class ProductInfo:
    """What the cart needs to know about a product"""
    product_id: int
    name: str
    price: Decimal
    stock: int
    low_stock_threshold: int = 5
    is_active: bool = True

    @property
    def is_low_stock(self) -> bool:
        return self.stock < self.low_stock_threshold


@dataclass
class CartLine:
    product_id: int
    name: str
    price: Decimal
    quantity: int
    stock: int
    low_stock: bool = False

    @property
    def line_total(self) -> Decimal:
        return self.price * self.quantity

    def as_dict(self) -> Dict[str, Any]:
        return {
            'product': self.product_id,
            'name': self.name,
            'price': str(round_money(self.price)),
            'quantity': self.quantity,
            'stock': self.stock,
            'low_stock': self.low_stock,
            'line_total': str(round_money(self.line_total)),
        }


@dataclass(frozen=True)
class SaleTotals:
    subtotal: Decimal
    tax: Decimal
    discount: Decimal
    total: Decimal

    def rounded(self) -> 'SaleTotals':
        return SaleTotals(round_money(self.subtotal), round_money(self.tax),
                          round_money(self.discount), round_money(self.total))

    def as_dict(self) -> Dict[str, str]:
        rounded = self.rounded()
        return {
            'subtotal': str(rounded.subtotal),
            'tax': str(rounded.tax),
            'discount': str(rounded.discount),
            'total': str(rounded.total),
        }


def compute_totals(lines: Iterable[CartLine], tax_rate, discount=ZERO) -> SaleTotals:
    """subtotal = sum(price x quantity); tax = subtotal x rate; total = subtotal + tax - discount"""
    subtotal = sum((line.price * line.quantity for line in lines), ZERO)
    tax = subtotal * to_decimal(tax_rate)
    discount = to_decimal(discount)
    return SaleTotals(subtotal=subtotal, tax=tax, discount=discount, total=subtotal + tax - discount)


def check_discount(discount, subtotal, tax) -> Optional[CartNotice]:
    """Refuse negative discounts and discounts that would make the total negative"""
    try:
        discount = to_decimal(discount)
    except ValueError:
        return invalid_discount(discount)
    if not discount.is_finite() or discount < 0:
        return invalid_discount(discount)
    if discount > subtotal + tax:
        return discount_exceeds_total(discount, subtotal + tax)
    return None


@dataclass
class SaleCart:
    """An in-progress sale

    ``adjustments`` collects the changes the cart made on its own: a line
    lowered or dropped because stock fell, or a discount removed because the
    lines no longer cover it.
    """
    tax_rate: Decimal = Decimal('0.10')
    discount: Decimal = ZERO
    lines: List[CartLine] = field(default_factory=list)
    adjustments: List[CartNotice] = field(default_factory=list)

    def __post_init__(self):
        self.tax_rate = to_decimal(self.tax_rate)
        self.discount = to_decimal(self.discount)

    def __len__(self):
        return len(self.lines)

    @property
    def is_empty(self) -> bool:
        return not self.lines

    def line(self, product_id) -> Optional[CartLine]:
        for line in self.lines:
            if line.product_id == product_id:
                return line
        return None

    def refresh_line(self, product: ProductInfo) -> Optional[CartNotice]:
        """Re-read stock for a line; quantity is lowered to the stock and a sold-out line is dropped"""
        line = self.line(product.product_id)
        if line is None:
            return None
        line.stock = product.stock
        line.low_stock = product.is_low_stock
        if line.quantity <= product.stock:
            return None
        if product.stock <= 0:
            self.lines = [other for other in self.lines if other.product_id != product.product_id]
            notice = out_of_stock(line.name, 0)
        else:
            line.quantity = product.stock
            notice = stock_adjusted(line.name, product.stock)
        self.adjustments.append(notice)
        self._fit_discount()
        return notice

    def _fit_discount(self):
        totals = self.totals()
        limit = totals.subtotal + totals.tax
        if self.discount > limit:
            self.adjustments.append(discount_removed(self.discount, limit))
            self.discount = ZERO

    def add_item(self, product: ProductInfo) -> Optional[CartNotice]:
        """Add one unit; refused once the line reaches the product's stock"""
        existing = self.line(product.product_id)
        if existing is not None:
            self.refresh_line(product)
            if existing.quantity + 1 > product.stock:
                return out_of_stock(product.name, product.stock)
            existing.quantity += 1
            return None
        if product.stock <= 0:
            return out_of_stock(product.name, product.stock)
        self.lines.append(CartLine(
            product_id=product.product_id,
            name=product.name,
            price=to_decimal(product.price),
            quantity=1,
            stock=product.stock,
            low_stock=product.is_low_stock,
        ))
        return None

    def update_quantity(self, product_id, quantity) -> Optional[CartNotice]:
        """Accept only 0 < quantity <= stock; otherwise the line keeps its quantity"""
        line = self.line(product_id)
        if line is None:
            return not_in_cart(product_id)
        if isinstance(quantity, bool):
            return invalid_quantity(line.name, quantity, line.stock)
        try:
            new_quantity = int(quantity)
        except (TypeError, ValueError):
            return invalid_quantity(line.name, quantity, line.stock)
        if new_quantity != quantity and str(new_quantity) != str(quantity).strip():
            return invalid_quantity(line.name, quantity, line.stock)
        if not 0 < new_quantity <= line.stock:
            return invalid_quantity(line.name, quantity, line.stock)
        line.quantity = new_quantity
        self._fit_discount()
        return None

    def remove_item(self, product_id) -> None:
        self.lines = [line for line in self.lines if line.product_id != product_id]
        self._fit_discount()

    def set_discount(self, discount) -> Optional[CartNotice]:
        totals = self.totals()
        notice = check_discount(discount, totals.subtotal, totals.tax)
        if notice is None:
            self.discount = to_decimal(discount)
        return notice

    def totals(self) -> SaleTotals:
        return compute_totals(self.lines, self.tax_rate, self.discount)

    def clear(self) -> None:
        self.lines = []
        self.discount = ZERO
        self.adjustments = []

    def as_dict(self) -> Dict[str, Any]:
        data = {
            'items': [line.as_dict() for line in self.lines],
            'item_count': sum(line.quantity for line in self.lines),
            'tax_rate': str(self.tax_rate),
            'adjustments': [notice.as_dict() for notice in self.adjustments],
        }
        data.update(self.totals().as_dict())
        return data
