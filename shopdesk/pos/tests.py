"""
Test suite for the point of sale
Tests: cart arithmetic, sale completion through the repositories, cart/checkout API, repairs
"""
from decimal import Decimal
from django.test import SimpleTestCase, TestCase
from rest_framework import status
from shopdesk.catalog.models import Product
from shopdesk.core.context import ShopContext
from shopdesk.core.models import ActivityLog, Notification, User
from shopdesk.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from shopdesk.inventory.models import StockMovement
from shopdesk.pos.calculator import CartLine, ProductInfo, SaleCart, compute_totals, round_money
from shopdesk.pos.models import Cart, CartItem, Repair, Sale
from shopdesk.pos.repositories import InMemoryProductRepository, InMemorySaleRepository
from shopdesk.pos.services import add_to_cart, complete_sale, set_cart_discount


def make_product(product_id, price, stock, name=None, threshold=5, is_active=True):
    return ProductInfo(product_id, name or f'Product {product_id}', Decimal(price), stock, threshold, is_active)


class SaleTotalsTests(SimpleTestCase):
    """Test exact totals and money rounding"""

    def test_reference_example(self):
        lines = [
            CartLine(1, 'Headphones', Decimal('89.99'), 1, 10),
            CartLine(2, 'Charger', Decimal('45.50'), 2, 10),
        ]
        totals = compute_totals(lines, Decimal('0.1'))
        self.assertEqual(totals.subtotal, Decimal('180.99'))
        self.assertEqual(totals.tax, Decimal('18.099'))
        self.assertEqual(totals.total, Decimal('199.089'))
        self.assertEqual(totals.rounded().total, Decimal('199.09'))
        self.assertEqual(totals.as_dict()['tax'], '18.10')

    def test_discount_is_subtracted_after_tax(self):
        lines = [CartLine(1, 'Cable', Decimal('10.00'), 3, 10)]
        totals = compute_totals(lines, Decimal('0.21'), Decimal('5'))
        self.assertEqual(totals.total, Decimal('30.00') + Decimal('6.30') - Decimal('5'))

    def test_empty_lines_total_zero(self):
        totals = compute_totals([], Decimal('0.1'))
        self.assertEqual(totals.subtotal, Decimal('0'))
        self.assertEqual(totals.total, Decimal('0'))

    def test_round_money_half_up(self):
        self.assertEqual(round_money(Decimal('2.675')), Decimal('2.68'))
        self.assertEqual(round_money(Decimal('2.665')), Decimal('2.67'))
        self.assertEqual(round_money(0.125), Decimal('0.13'))
        self.assertEqual(round_money('199.089'), Decimal('199.09'))

    def test_round_money_rejects_garbage(self):
        with self.assertRaises(ValueError):
            round_money('ten')


class SaleCartTests(SimpleTestCase):
    """Test cart operations and their notices"""

    def setUp(self):
        self.cart = SaleCart(tax_rate='0.10')
        self.case = make_product(1, '12.50', 2, name='Phone case')

    def test_add_item_new_line(self):
        self.assertIsNone(self.cart.add_item(self.case))
        line = self.cart.line(1)
        self.assertEqual(line.quantity, 1)
        self.assertEqual(line.price, Decimal('12.50'))

    def test_add_item_increments_up_to_stock(self):
        self.cart.add_item(self.case)
        self.assertIsNone(self.cart.add_item(self.case))
        notice = self.cart.add_item(self.case)
        self.assertEqual(notice.code, 'out_of_stock')
        self.assertIn('only 2 left', notice.message)
        self.assertEqual(self.cart.line(1).quantity, 2)

    def test_add_item_without_stock(self):
        notice = self.cart.add_item(make_product(2, '5.00', 0, name='Screen protector'))
        self.assertEqual(notice.code, 'out_of_stock')
        self.assertEqual(notice.message, 'Screen protector is out of stock')
        self.assertTrue(self.cart.is_empty)

    def test_add_item_flags_low_stock(self):
        self.cart.add_item(make_product(3, '5.00', 3, threshold=5))
        self.cart.add_item(make_product(4, '5.00', 8, threshold=5))
        self.assertTrue(self.cart.line(3).low_stock)
        self.assertFalse(self.cart.line(4).low_stock)

    def test_lines_keep_insertion_order(self):
        for product_id in (7, 3, 5):
            self.cart.add_item(make_product(product_id, '1.00', 5))
        self.assertEqual([line.product_id for line in self.cart.lines], [7, 3, 5])

    def test_update_quantity_within_stock(self):
        self.cart.add_item(self.case)
        self.assertIsNone(self.cart.update_quantity(1, 2))
        self.assertEqual(self.cart.line(1).quantity, 2)

    def test_update_quantity_accepts_numeric_string(self):
        self.cart.add_item(self.case)
        self.assertIsNone(self.cart.update_quantity(1, '2'))
        self.assertEqual(self.cart.line(1).quantity, 2)

    def test_update_quantity_rejects_out_of_range(self):
        self.cart.add_item(self.case)
        for quantity in (0, -1, 3, 2.5, 'abc', None, True):
            notice = self.cart.update_quantity(1, quantity)
            self.assertEqual(notice.code, 'invalid_quantity', msg=f'quantity={quantity!r}')
            self.assertEqual(self.cart.line(1).quantity, 1)

    def test_update_quantity_unknown_product(self):
        notice = self.cart.update_quantity(99, 1)
        self.assertEqual(notice.code, 'not_in_cart')

    def test_remove_item(self):
        self.cart.add_item(self.case)
        self.cart.remove_item(1)
        self.assertTrue(self.cart.is_empty)
        # Unknown ids are ignored
        self.cart.remove_item(42)
        self.assertTrue(self.cart.is_empty)

    def test_set_discount(self):
        self.cart.add_item(self.case)
        self.assertIsNone(self.cart.set_discount('2.50'))
        self.assertEqual(self.cart.totals().total, Decimal('12.50') + Decimal('1.25') - Decimal('2.50'))

    def test_discount_up_to_total_is_allowed(self):
        self.cart.add_item(self.case)
        self.assertIsNone(self.cart.set_discount('13.75'))
        self.assertEqual(self.cart.totals().total, Decimal('0'))

    def test_discount_rejections_keep_previous_discount(self):
        self.cart.add_item(self.case)
        self.cart.set_discount('1')
        self.assertEqual(self.cart.set_discount('-1').code, 'invalid_discount')
        self.assertEqual(self.cart.set_discount('nope').code, 'invalid_discount')
        self.assertEqual(self.cart.set_discount('13.76').code, 'discount_exceeds_total')
        self.assertEqual(self.cart.discount, Decimal('1'))

    def test_notice_as_dict(self):
        data = self.cart.update_quantity(5, 1)
        self.assertEqual(set(data.as_dict()), {'error', 'message', 'code'})

    def test_as_dict(self):
        self.cart.add_item(self.case)
        self.cart.add_item(self.case)
        data = self.cart.as_dict()
        self.assertEqual(data['item_count'], 2)
        self.assertEqual(data['items'][0]['line_total'], '25.00')
        self.assertEqual(data['subtotal'], '25.00')
        self.assertEqual(data['tax'], '2.50')
        self.assertEqual(data['total'], '27.50')
        self.assertEqual(data['adjustments'], [])

    def test_re_adding_after_stock_fell_lowers_line(self):
        self.cart.add_item(make_product(1, '12.50', 5, name='Phone case'))
        self.cart.update_quantity(1, 5)
        notice = self.cart.add_item(make_product(1, '12.50', 2, name='Phone case'))
        self.assertEqual(notice.code, 'out_of_stock')
        line = self.cart.line(1)
        self.assertEqual(line.quantity, 2)
        self.assertLessEqual(line.quantity, line.stock)
        self.assertEqual([adjustment.code for adjustment in self.cart.adjustments], ['stock_adjusted'])

    def test_refresh_line_drops_sold_out_line(self):
        self.cart.add_item(self.case)
        notice = self.cart.refresh_line(make_product(1, '12.50', 0, name='Phone case'))
        self.assertEqual(notice.code, 'out_of_stock')
        self.assertTrue(self.cart.is_empty)

    def test_refresh_line_within_stock_only_updates_stock(self):
        self.cart.add_item(self.case)
        self.assertIsNone(self.cart.refresh_line(make_product(1, '12.50', 1, name='Phone case')))
        self.assertEqual(self.cart.line(1).quantity, 1)
        self.assertEqual(self.cart.line(1).stock, 1)
        self.assertEqual(self.cart.adjustments, [])

    def test_discount_removed_when_line_removed(self):
        self.cart.add_item(self.case)
        self.cart.add_item(make_product(2, '89.99', 5, name='Headphones'))
        self.assertIsNone(self.cart.set_discount('120'))
        self.cart.remove_item(2)
        self.assertEqual(self.cart.discount, Decimal('0'))
        self.assertEqual(self.cart.totals().total, Decimal('13.750'))
        self.assertEqual(self.cart.adjustments[-1].code, 'discount_removed')

    def test_discount_removed_when_quantity_lowered(self):
        self.cart.add_item(self.case)
        self.cart.add_item(self.case)
        self.cart.set_discount('20')
        self.assertIsNone(self.cart.update_quantity(1, 1))
        self.assertEqual(self.cart.discount, Decimal('0'))
        self.assertGreaterEqual(self.cart.totals().total, 0)

    def test_discount_kept_while_it_fits(self):
        self.cart.add_item(self.case)
        self.cart.add_item(self.case)
        self.cart.set_discount('5')
        self.cart.update_quantity(1, 1)
        self.assertEqual(self.cart.discount, Decimal('5'))
        self.assertEqual(self.cart.adjustments, [])


class CompleteSaleTests(SimpleTestCase):
    """Test sale completion against the in-memory repositories"""

    def setUp(self):
        self.products = InMemoryProductRepository([
            make_product(1, '89.99', 5, name='Headphones'),
            make_product(2, '45.50', 3, name='Charger'),
        ])
        self.sales = InMemorySaleRepository()
        self.cart = SaleCart(tax_rate='0.1')
        self.cart.add_item(self.products.get(1))
        self.cart.add_item(self.products.get(2))
        self.cart.add_item(self.products.get(2))

    def test_complete_sale(self):
        sale, notice = complete_sale(None, self.cart, self.products, self.sales)
        self.assertIsNone(notice)
        self.assertEqual(sale.subtotal, Decimal('180.99'))
        self.assertEqual(sale.tax, Decimal('18.10'))
        self.assertEqual(sale.total, Decimal('199.09'))
        self.assertEqual(len(sale.lines), 2)
        self.assertEqual(len(self.sales.sales), 1)

    def test_complete_sale_clears_cart_and_discount(self):
        self.cart.set_discount('9.09')
        sale, notice = complete_sale(None, self.cart, self.products, self.sales)
        self.assertIsNone(notice)
        self.assertEqual(sale.total, Decimal('190.00'))
        self.assertTrue(self.cart.is_empty)
        self.assertEqual(self.cart.discount, Decimal('0'))

    def test_complete_sale_decrements_stock(self):
        complete_sale(None, self.cart, self.products, self.sales)
        self.assertEqual(self.products.get(1).stock, 4)
        self.assertEqual(self.products.get(2).stock, 1)
        self.assertEqual(len(self.products.movements), 2)

    def test_empty_cart_leaves_state_unchanged(self):
        cart = SaleCart(tax_rate='0.1', discount='0')
        sale, notice = complete_sale(None, cart, self.products, self.sales)
        self.assertIsNone(sale)
        self.assertEqual(notice.code, 'empty_cart')
        self.assertEqual(self.sales.sales, [])
        self.assertEqual(self.products.get(1).stock, 5)

    def test_stock_changed_underneath_rejects_whole_sale(self):
        self.products.set_stock(2, 1)
        sale, notice = complete_sale(None, self.cart, self.products, self.sales)
        self.assertIsNone(sale)
        self.assertEqual(notice.code, 'out_of_stock')
        self.assertIn('Charger', notice.message)
        self.assertEqual(self.sales.sales, [])
        self.assertEqual(self.products.get(1).stock, 5)
        self.assertEqual(self.products.movements, [])
        self.assertEqual(len(self.cart.lines), 2)

    def test_deactivated_product_rejects_sale(self):
        product = self.products.get(1)
        self.products.products[1] = ProductInfo(product.product_id, product.name, product.price, product.stock,
                                                product.low_stock_threshold, is_active=False)
        sale, notice = complete_sale(None, self.cart, self.products, self.sales)
        self.assertIsNone(sale)
        self.assertEqual(notice.code, 'out_of_stock')

    def test_discount_larger_than_remaining_total(self):
        self.cart.set_discount('150')
        self.cart.remove_item(1)
        sale, notice = complete_sale(None, self.cart, self.products, self.sales)
        self.assertIsNone(sale)
        self.assertEqual(notice.code, 'discount_exceeds_total')
        self.assertFalse(self.cart.is_empty)


class CartAPITests(TestCase):
    """Test cart endpoints and checkout"""

    def setUp(self):
        self.admin = TestDataFactory.create_user()
        self.shop = TestDataFactory.create_shop(owner=self.admin)
        self.seller = TestDataFactory.create_user(role=User.ROLE_SALES_PERSON, shop=self.shop)
        self.headphones = TestDataFactory.create_product(self.shop, name='Headphones', price=Decimal('89.99'), stock=5)
        self.charger = TestDataFactory.create_product(self.shop, name='Charger', price=Decimal('45.50'), stock=3)
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.seller)

    def create_cart(self):
        response = self.client.post('/api/v1/pos/carts/', {}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        return response.data['id']

    def add(self, cart_id, product):
        return self.client.post(f'/api/v1/pos/carts/{cart_id}/items/', {'product': product.id}, format='json')

    def test_create_cart(self):
        response = self.client.post('/api/v1/pos/carts/', {}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertTrue(response.data['cart_number'].startswith('CART-'))
        self.assertEqual(response.data['items'], [])
        self.assertEqual(response.data['total'], '0.00')

    def test_add_items_and_totals(self):
        cart_id = self.create_cart()
        self.add(cart_id, self.headphones)
        self.add(cart_id, self.charger)
        response = self.add(cart_id, self.charger)
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['subtotal'], '180.99')
        self.assertEqual(response.data['tax'], '18.10')
        self.assertEqual(response.data['total'], '199.09')
        self.assertEqual(CartItem.objects.get(cart_id=cart_id, product=self.charger).quantity, 2)
        self.assertTrue(ActivityLog.objects.filter(action='cart_add', object_id=str(cart_id)).exists())

    def test_add_item_by_barcode(self):
        cart_id = self.create_cart()
        response = self.client.post(f'/api/v1/pos/carts/{cart_id}/items/',
                                    {'barcode': self.headphones.barcode.lower()}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['items'][0]['product'], self.headphones.id)

    def test_add_item_beyond_stock(self):
        single = TestDataFactory.create_product(self.shop, stock=1)
        cart_id = self.create_cart()
        self.add(cart_id, single)
        response = self.add(cart_id, single)
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['code'], 'out_of_stock')
        self.assertEqual(response.data['cart']['items'][0]['quantity'], 1)

    def test_update_quantity(self):
        cart_id = self.create_cart()
        self.add(cart_id, self.headphones)
        url = f'/api/v1/pos/carts/{cart_id}/items/{self.headphones.id}/'

        response = self.client.patch(url, {'quantity': 10}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['code'], 'invalid_quantity')

        response = self.client.patch(url, {'quantity': 3}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(CartItem.objects.get(cart_id=cart_id).quantity, 3)

    def test_update_quantity_not_in_cart(self):
        cart_id = self.create_cart()
        response = self.client.patch(f'/api/v1/pos/carts/{cart_id}/items/{self.charger.id}/',
                                     {'quantity': 1}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['code'], 'not_in_cart')

    def test_remove_item(self):
        cart_id = self.create_cart()
        self.add(cart_id, self.headphones)
        response = self.client.delete(f'/api/v1/pos/carts/{cart_id}/items/{self.headphones.id}/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['items'], [])
        self.assertFalse(CartItem.objects.filter(cart_id=cart_id).exists())

    def test_discount(self):
        cart_id = self.create_cart()
        self.add(cart_id, self.headphones)
        url = f'/api/v1/pos/carts/{cart_id}/discount/'

        response = self.client.post(url, {'discount': '500'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['code'], 'discount_exceeds_total')

        response = self.client.post(url, {'discount': '-1'}, format='json')
        self.assertEqual(response.data['code'], 'invalid_discount')

        response = self.client.post(url, {'discount': '10'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['total'], '88.99')

    def test_checkout(self):
        cart_id = self.create_cart()
        self.add(cart_id, self.headphones)
        self.add(cart_id, self.charger)
        self.add(cart_id, self.charger)

        response = self.client.post(f'/api/v1/pos/carts/{cart_id}/checkout/', format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        sale = response.data['sale']
        self.assertEqual(sale['subtotal'], '180.99')
        self.assertEqual(sale['tax'], '18.10')
        self.assertEqual(sale['total'], '199.09')
        self.assertEqual(len(sale['items']), 2)
        self.assertEqual(response.data['cart']['items'], [])
        self.assertEqual(response.data['cart']['discount'], '0.00')

        self.headphones.refresh_from_db()
        self.charger.refresh_from_db()
        self.assertEqual(self.headphones.stock, 4)
        self.assertEqual(self.charger.stock, 1)
        self.assertEqual(StockMovement.objects.filter(movement_type='sale', sale_id=sale['id']).count(), 2)
        self.assertFalse(CartItem.objects.filter(cart_id=cart_id).exists())
        self.assertTrue(ActivityLog.objects.filter(action='sale_complete', object_id=str(sale['id'])).exists())

    def test_checkout_empty_cart(self):
        cart_id = self.create_cart()
        response = self.client.post(f'/api/v1/pos/carts/{cart_id}/checkout/', format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['code'], 'empty_cart')
        self.assertEqual(Sale.objects.count(), 0)

    def test_checkout_rejected_when_stock_changed(self):
        cart_id = self.create_cart()
        self.add(cart_id, self.headphones)
        self.add(cart_id, self.charger)
        self.add(cart_id, self.charger)
        Product.objects.filter(pk=self.charger.pk).update(stock=1)

        response = self.client.post(f'/api/v1/pos/carts/{cart_id}/checkout/', format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['code'], 'out_of_stock')
        self.assertEqual(Sale.objects.count(), 0)
        self.headphones.refresh_from_db()
        self.assertEqual(self.headphones.stock, 5)
        self.assertEqual(CartItem.objects.filter(cart_id=cart_id).count(), 2)
        # The refused cart is lowered to the stock that is left
        self.assertEqual(response.data['cart']['adjustments'][0]['code'], 'stock_adjusted')
        self.assertEqual(CartItem.objects.get(cart_id=cart_id, product=self.charger).quantity, 1)

    def test_line_lowered_after_another_cart_sells_the_stock(self):
        cart_id = self.create_cart()
        for _ in range(3):
            self.add(cart_id, self.charger)
        other_id = self.create_cart()
        self.add(other_id, self.charger)
        self.add(other_id, self.charger)
        response = self.client.post(f'/api/v1/pos/carts/{other_id}/checkout/', format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)

        response = self.client.get(f'/api/v1/pos/carts/{cart_id}/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        line = response.data['items'][0]
        self.assertEqual(line['quantity'], 1)
        self.assertEqual(line['stock'], 1)
        self.assertEqual(response.data['adjustments'][0]['code'], 'stock_adjusted')
        self.assertEqual(CartItem.objects.get(cart_id=cart_id).quantity, 1)

        response = self.add(cart_id, self.charger)
        self.assertEqual(response.data['code'], 'out_of_stock')
        self.assertEqual(response.data['cart']['items'][0]['quantity'], 1)

        response = self.client.post(f'/api/v1/pos/carts/{cart_id}/checkout/', format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['sale']['items'][0]['quantity'], 1)

    def test_sold_out_line_dropped_from_cart(self):
        cart_id = self.create_cart()
        self.add(cart_id, self.headphones)
        self.add(cart_id, self.charger)
        Product.objects.filter(pk=self.charger.pk).update(stock=0)
        response = self.client.get(f'/api/v1/pos/carts/{cart_id}/')
        self.assertEqual([line['product'] for line in response.data['items']], [self.headphones.id])
        self.assertEqual(response.data['adjustments'][0]['code'], 'out_of_stock')
        self.assertFalse(CartItem.objects.filter(cart_id=cart_id, product=self.charger).exists())

    def test_discount_removed_when_line_removed(self):
        cart_id = self.create_cart()
        self.add(cart_id, self.headphones)
        self.add(cart_id, self.charger)
        response = self.client.post(f'/api/v1/pos/carts/{cart_id}/discount/', {'discount': '120'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)

        response = self.client.delete(f'/api/v1/pos/carts/{cart_id}/items/{self.headphones.id}/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['discount'], '0.00')
        self.assertEqual(response.data['total'], '50.05')
        self.assertEqual(response.data['adjustments'][0]['code'], 'discount_removed')
        self.assertEqual(Cart.objects.get(pk=cart_id).discount, Decimal('0.00'))

    def test_cart_changes_start_from_the_stored_cart(self):
        cart = TestDataFactory.create_cart(self.seller, self.shop)
        stale = Cart.objects.get(pk=cart.pk)
        ctx = ShopContext(self.seller, shop=self.shop)
        add_to_cart(ctx, cart, self.headphones)
        set_cart_discount(ctx, cart, '10')
        # A request that read the cart before the discount was set
        add_to_cart(ctx, stale, self.charger)
        cart.refresh_from_db()
        self.assertEqual(cart.discount, Decimal('10.00'))
        self.assertEqual(CartItem.objects.filter(cart=cart).count(), 2)

    def test_checkout_records_client_purchase(self):
        client = TestDataFactory.create_client(self.shop)
        cart_id = self.create_cart()
        self.client.patch(f'/api/v1/pos/carts/{cart_id}/', {'client': client.id}, format='json')
        self.add(cart_id, self.headphones)
        response = self.client.post(f'/api/v1/pos/carts/{cart_id}/checkout/', format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['sale']['client'], client.id)
        client.refresh_from_db()
        self.assertIsNotNone(client.last_purchase_at)

    def test_cart_client_from_other_shop_rejected(self):
        other_shop = TestDataFactory.create_shop()
        stranger = TestDataFactory.create_client(other_shop)
        cart_id = self.create_cart()
        response = self.client.patch(f'/api/v1/pos/carts/{cart_id}/', {'client': stranger.id}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_cancel_cart(self):
        cart_id = self.create_cart()
        self.add(cart_id, self.headphones)
        response = self.client.delete(f'/api/v1/pos/carts/{cart_id}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        response = self.add(cart_id, self.headphones)
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_sales_person_sees_only_own_carts(self):
        other_seller = TestDataFactory.create_user(role=User.ROLE_SALES_PERSON, shop=self.shop)
        other_cart = TestDataFactory.create_cart(other_seller, self.shop)
        self.create_cart()
        response = self.client.get('/api/v1/pos/carts/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['count'], 1)
        response = self.client.get(f'/api/v1/pos/carts/{other_cart.id}/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_repair_man_cannot_sell(self):
        repair_man = TestDataFactory.create_user(role=User.ROLE_REPAIR_MAN, shop=self.shop)
        self.client.authenticate_user(repair_man)
        response = self.client.post('/api/v1/pos/carts/', {}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_sale_list_and_detail(self):
        sale = TestDataFactory.create_sale(self.seller, self.shop, items=[(self.headphones, 2)])
        TestDataFactory.create_sale(self.admin, self.shop, items=[(self.charger, 1)])

        response = self.client.get('/api/v1/pos/sales/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['count'], 1)
        self.assertEqual(response.data['results'][0]['item_count'], 2)

        response = self.client.get(f'/api/v1/pos/sales/{sale.id}/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['items'][0]['product_name'], 'Headphones')

    def test_admin_sees_all_sales(self):
        TestDataFactory.create_sale(self.seller, self.shop, items=[(self.headphones, 1)])
        TestDataFactory.create_sale(self.admin, self.shop, items=[(self.charger, 1)])
        self.client.authenticate_user(self.admin)
        response = self.client.get('/api/v1/pos/sales/')
        self.assertEqual(response.data['count'], 2)


class RepairAPITests(TestCase):
    """Test the repair book"""

    def setUp(self):
        self.admin = TestDataFactory.create_user()
        self.shop = TestDataFactory.create_shop(owner=self.admin)
        self.seller = TestDataFactory.create_user(role=User.ROLE_SALES_PERSON, shop=self.shop)
        self.repair_man = TestDataFactory.create_user(role=User.ROLE_REPAIR_MAN, shop=self.shop)
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.seller)

    def repair_payload(self, **overrides):
        data = {
            'customer_name': 'Ana Lopez',
            'contact_no': '600123123',
            'brand': 'Apple',
            'model_name': 'iPhone 12',
            'imei': '356789012345678',
            'defect': 'Battery drains fast',
            'repairman': self.repair_man.id,
            'booking_amount': '20.00',
        }
        data.update(overrides)
        return data

    def test_create_repair(self):
        response = self.client.post('/api/v1/repairs/', self.repair_payload(), format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertTrue(response.data['barcode'].startswith('REP-'))
        self.assertEqual(response.data['status'], 'received')
        self.assertTrue(Notification.objects.filter(user=self.repair_man, notification_type='repair').exists())

    def test_create_repair_from_client(self):
        client = TestDataFactory.create_client(self.shop, name='Luis Garcia')
        payload = self.repair_payload(client=client.id)
        payload.pop('customer_name')
        response = self.client.post('/api/v1/repairs/', payload, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['customer_name'], 'Luis Garcia')
        self.assertEqual(response.data['dni'], client.id_number)

    def test_create_repair_requires_customer(self):
        payload = self.repair_payload()
        payload.pop('customer_name')
        response = self.client.post('/api/v1/repairs/', payload, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('customer_name', response.data)

    def test_repairman_must_be_repair_staff(self):
        response = self.client.post('/api/v1/repairs/', self.repair_payload(repairman=self.seller.id), format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('repairman', response.data)

    def test_negative_booking_amount(self):
        response = self.client.post('/api/v1/repairs/', self.repair_payload(booking_amount='-5'), format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_status_moves_forward_only(self):
        repair = TestDataFactory.create_repair(self.shop, user=self.seller, repairman=self.repair_man)
        self.client.authenticate_user(self.repair_man)
        url = f'/api/v1/repairs/{repair.id}/status/'

        response = self.client.patch(url, {'status': 'work_in_progress'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        response = self.client.patch(url, {'status': 'received'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        response = self.client.patch(url, {'status': 'done'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)

        repair.refresh_from_db()
        self.assertEqual(repair.status, 'done')
        self.assertEqual(repair.updated_by, self.repair_man)
        self.assertEqual(ActivityLog.objects.filter(action='repair_status_update').count(), 2)
        self.assertTrue(Notification.objects.filter(user=self.seller, title='Repair ready').exists())

    def test_can_move_to(self):
        repair = Repair(status='done')
        self.assertTrue(repair.can_move_to('delivered'))
        self.assertFalse(repair.can_move_to('work_in_progress'))
        self.assertFalse(repair.can_move_to('done'))
        self.assertFalse(repair.can_move_to('lost'))

    def test_find_by_barcode(self):
        repair = TestDataFactory.create_repair(self.shop, user=self.seller)
        response = self.client.get(f'/api/v1/repairs/by-barcode/?barcode={repair.barcode.lower()}')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['id'], repair.id)

    def test_repair_ticket(self):
        repair = TestDataFactory.create_repair(self.shop, user=self.seller)
        response = self.client.get(f'/api/v1/repairs/{repair.id}/label/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.data['image'].startswith('data:image/png;base64,'))

    def test_only_admin_deletes(self):
        repair = TestDataFactory.create_repair(self.shop, user=self.seller)
        response = self.client.delete(f'/api/v1/repairs/{repair.id}/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.client.authenticate_user(self.admin)
        response = self.client.delete(f'/api/v1/repairs/{repair.id}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)

    def test_repairs_of_other_shops_hidden(self):
        other_repair = TestDataFactory.create_repair(TestDataFactory.create_shop())
        TestDataFactory.create_repair(self.shop)
        response = self.client.get('/api/v1/repairs/')
        self.assertEqual(response.data['count'], 1)
        response = self.client.get(f'/api/v1/repairs/{other_repair.id}/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
