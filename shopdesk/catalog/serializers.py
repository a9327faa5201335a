from rest_framework import serializers
from .models import Category, Product


class CategorySerializer(serializers.ModelSerializer):
    product_count = serializers.SerializerMethodField()

    class Meta:
        model = Category
        fields = ['id', 'shop', 'name', 'description', 'is_active', 'product_count', 'created_at', 'updated_at']
        read_only_fields = ['shop', 'created_at', 'updated_at']

    def get_product_count(self, obj):
        return obj.products.filter(is_active=True).count()

    def validate_name(self, value):
        value = value.strip()
        shop = self.context.get('shop')
        if shop is not None:
            existing = Category.objects.filter(shop=shop, name__iexact=value)
            if self.instance is not None:
                existing = existing.exclude(pk=self.instance.pk)
            if existing.exists():
                raise serializers.ValidationError('A category with this name already exists')
        return value


class ProductSerializer(serializers.ModelSerializer):
    category_name = serializers.CharField(source='category.name', read_only=True)
    is_low_stock = serializers.BooleanField(read_only=True)
    is_out_of_stock = serializers.BooleanField(read_only=True)

    class Meta:
        model = Product
        fields = [
            'id', 'shop', 'name', 'barcode', 'category', 'category_name', 'description', 'price', 'discount_percent',
            'stock', 'low_stock_threshold', 'is_low_stock', 'is_out_of_stock', 'is_active', 'created_at', 'updated_at'
        ]
        # Stock only changes through stock movements and sales
        read_only_fields = ['shop', 'stock', 'created_at', 'updated_at']

    def validate_price(self, value):
        if value < 0:
            raise serializers.ValidationError('Price cannot be negative')
        return value

    def validate_discount_percent(self, value):
        if value < 0 or value > 100:
            raise serializers.ValidationError('Discount must be between 0 and 100 percent')
        return value

    def validate_low_stock_threshold(self, value):
        if value < 0:
            raise serializers.ValidationError('Low stock threshold cannot be negative')
        return value

    def validate_category(self, value):
        shop = self.context.get('shop')
        if value is not None and shop is not None and value.shop_id != shop.pk:
            raise serializers.ValidationError('Category belongs to another shop')
        return value

    def validate_barcode(self, value):
        from .utils import normalize_barcode
        value = normalize_barcode(value)
        shop = self.context.get('shop')
        if value and shop is not None:
            existing = Product.objects.filter(shop=shop, barcode=value)
            if self.instance is not None:
                existing = existing.exclude(pk=self.instance.pk)
            if existing.exists():
                raise serializers.ValidationError('Another product already uses this barcode')
        return value


class ProductCreateSerializer(ProductSerializer):
    """Product creation may set the opening stock"""
    initial_stock = serializers.IntegerField(write_only=True, required=False, min_value=0, default=0)

    class Meta(ProductSerializer.Meta):
        fields = ProductSerializer.Meta.fields + ['initial_stock']
