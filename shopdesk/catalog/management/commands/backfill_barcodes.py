from django.core.management.base import BaseCommand
from shopdesk.core.cache_signals import suspend_cache_signals
from shopdesk.core.cache_utils import invalidate_dashboard_cache
from ...models import Product
from ...utils import generate_barcode


class Command(BaseCommand):
    help = 'Generate PREFIX-NUMBER barcodes for products that have none'

    def add_arguments(self, parser):
        parser.add_argument('--shop', type=int, help='Only products of this shop ID')
        parser.add_argument('--dry-run', action='store_true', help='Show the barcodes without saving them')

    def handle(self, *args, **options):
        products = Product.objects.filter(barcode='').select_related('shop', 'category').order_by('shop_id', 'id')
        if options.get('shop'):
            products = products.filter(shop_id=options['shop'])
        dry_run = options.get('dry_run', False)

        self.stdout.write(f'Found {products.count()} products without barcodes')
        created_count = 0
        touched_shops = set()
        # Dashboards are invalidated once per shop after the loop
        with suspend_cache_signals():
            for product in products:
                code = generate_barcode(product)
                if not dry_run:
                    product.barcode = code
                    product.save(update_fields=['barcode'])
                    touched_shops.add(product.shop_id)
                created_count += 1
                self.stdout.write(f'  {product.shop.name}: {product.name} -> {code}')

        for shop_id in touched_shops:
            invalidate_dashboard_cache(shop_id)

        action = 'would be assigned' if dry_run else 'assigned'
        self.stdout.write(self.style.SUCCESS(f'\nCompleted: {created_count} barcodes {action}'))
