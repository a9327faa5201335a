"""
Utility functions for catalog operations
"""
import re

from .models import Product

BARCODE_PATTERN = re.compile(r'^(?P<prefix>[A-Z0-9]{3})-(?P<number>\d+)$')


def get_prefix_for_product(product):
    """Get 3-character prefix from category name or product name"""
    for source in (product.category.name if product.category_id else None, product.name):
        if source:
            letters = re.sub(r'[^A-Z0-9]', '', source.upper())
            if len(letters) >= 3:
                return letters[:3]
    return 'UNK'


def get_max_number_for_prefix(shop, prefix):
    """Get the highest number already used for ``prefix`` in a shop"""
    max_number = 0
    existing = Product.objects.filter(shop=shop, barcode__startswith=f'{prefix}-').values_list('barcode', flat=True)
    for code in existing:
        match = BARCODE_PATTERN.match(code)
        if match and match.group('prefix') == prefix:
            max_number = max(max_number, int(match.group('number')))
    return max_number


def generate_barcode(product):
    """
    Generate a category-based barcode for a product.
    Format: PREFIX-NUMBER (e.g., PHO-0001, 5 digits past 9999)
    """
    prefix = get_prefix_for_product(product)
    next_number = get_max_number_for_prefix(product.shop, prefix) + 1
    while True:
        code = f"{prefix}-{next_number:04d}" if next_number <= 9999 else f"{prefix}-{next_number:05d}"
        if not Product.objects.filter(shop=product.shop, barcode=code).exists():
            return code
        next_number += 1


def normalize_barcode(value):
    """Uppercase and strip separators so 'pho 0001' finds 'PHO-0001'"""
    if not value:
        return ''
    return re.sub(r'[\s_]+', '-', value.strip().upper())
