"""
Django management command to check that product stock matches the stock movement history
"""
from django.core.management.base import BaseCommand
from django.db.models import Case, IntegerField, Sum, When, F
from shopdesk.catalog.models import Product
from shopdesk.inventory.models import StockMovement


class Command(BaseCommand):
    help = 'Compare Product.stock with the sum of its stock movements'

    def add_arguments(self, parser):
        parser.add_argument('--shop', type=int, help='Check one shop only')
        parser.add_argument('--product-id', type=int, help='Check specific product ID only')
        parser.add_argument('--show-all', action='store_true', help='Show all products, not just discrepancies')

    def handle(self, *args, **options):
        products = Product.objects.select_related('shop').order_by('shop_id', 'id')
        if options.get('shop'):
            products = products.filter(shop_id=options['shop'])
        if options.get('product_id'):
            products = products.filter(id=options['product_id'])

        signed = Case(
            When(movement_type__in=StockMovement.OUTGOING_TYPES, then=-F('quantity')),
            default=F('quantity'),
            output_field=IntegerField(),
        )
        totals = {
            row['product_id']: row['total']
            for row in StockMovement.objects.filter(product__in=products)
            .values('product_id').annotate(total=Sum(signed)).order_by()
        }

        self.stdout.write("=" * 80)
        self.stdout.write(self.style.SUCCESS("STOCK vs MOVEMENT HISTORY"))
        self.stdout.write("=" * 80)

        discrepancies = 0
        for product in products:
            expected = totals.get(product.pk) or 0
            in_sync = expected == product.stock
            if not in_sync:
                discrepancies += 1
            if options.get('show_all') or not in_sync:
                line = (f"[{product.shop.name}] #{product.pk} {product.name}: stock={product.stock} "
                        f"movements={expected}")
                self.stdout.write(line if in_sync else self.style.WARNING(line))

        if discrepancies:
            self.stdout.write(self.style.ERROR(f"\n{discrepancies} product(s) out of sync"))
        else:
            self.stdout.write(self.style.SUCCESS(f"\nAll {products.count()} product(s) in sync"))
