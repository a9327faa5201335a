from rest_framework import serializers
from shopdesk.core.models import User
from .models import Cart, Sale, SaleItem, Repair


class CartSerializer(serializers.ModelSerializer):
    sales_person_name = serializers.CharField(source='sales_person.username', read_only=True)
    client_name = serializers.CharField(source='client.name', read_only=True)

    class Meta:
        model = Cart
        fields = ['id', 'cart_number', 'shop', 'sales_person', 'sales_person_name', 'client', 'client_name',
                  'status', 'discount', 'created_at', 'updated_at']
        read_only_fields = ['cart_number', 'shop', 'sales_person', 'discount', 'created_at', 'updated_at']

    def validate_status(self, value):
        if value not in ('active', 'held'):
            raise serializers.ValidationError('Carts can only be set to active or held')
        return value

    def validate_client(self, value):
        shop = self.context.get('shop')
        if value is not None and shop is not None and value.shop_id != shop.pk:
            raise serializers.ValidationError('Client belongs to another shop')
        return value


class SaleItemSerializer(serializers.ModelSerializer):
    class Meta:
        model = SaleItem
        fields = ['id', 'product', 'product_name', 'quantity', 'price', 'total']


class SaleSerializer(serializers.ModelSerializer):
    items = SaleItemSerializer(many=True, read_only=True)
    sales_person_name = serializers.CharField(source='sales_person.username', read_only=True)
    client_name = serializers.CharField(source='client.name', read_only=True)

    class Meta:
        model = Sale
        fields = ['id', 'sale_number', 'shop', 'sales_person', 'sales_person_name', 'client', 'client_name',
                  'subtotal', 'tax', 'tax_rate', 'discount', 'total', 'items', 'created_at']
        read_only_fields = fields


class SaleListSerializer(serializers.ModelSerializer):
    """Sale row without items, for list screens"""
    sales_person_name = serializers.CharField(source='sales_person.username', read_only=True)
    client_name = serializers.CharField(source='client.name', read_only=True)
    item_count = serializers.SerializerMethodField()

    class Meta:
        model = Sale
        fields = ['id', 'sale_number', 'sales_person', 'sales_person_name', 'client', 'client_name',
                  'subtotal', 'tax', 'discount', 'total', 'item_count', 'created_at']

    def get_item_count(self, obj):
        return sum(item.quantity for item in obj.items.all())


class RepairSerializer(serializers.ModelSerializer):
    repairman_name = serializers.CharField(source='repairman.username', read_only=True)
    client_name = serializers.CharField(source='client.name', read_only=True)

    class Meta:
        model = Repair
        fields = [
            'id', 'shop', 'client', 'client_name', 'customer_name', 'dni', 'contact_no', 'brand', 'model_name',
            'imei', 'defect', 'description', 'repairman', 'repairman_name', 'status', 'booking_amount',
            'barcode', 'created_by', 'updated_by', 'created_at', 'updated_at'
        ]
        read_only_fields = ['shop', 'status', 'barcode', 'created_by', 'updated_by', 'created_at', 'updated_at']
        extra_kwargs = {'customer_name': {'required': False}}

    def validate_repairman(self, value):
        if value is None:
            return value
        if value.role not in (User.ROLE_REPAIR_MAN, User.ROLE_ADMIN):
            raise serializers.ValidationError('Repairs can only be assigned to repair staff')
        shop = self.context.get('shop')
        if shop is not None and value.shop_id != shop.pk:
            raise serializers.ValidationError('Repairman belongs to another shop')
        return value

    def validate_client(self, value):
        shop = self.context.get('shop')
        if value is not None and shop is not None and value.shop_id != shop.pk:
            raise serializers.ValidationError('Client belongs to another shop')
        return value

    def validate_booking_amount(self, value):
        if value is not None and value < 0:
            raise serializers.ValidationError('Booking amount cannot be negative')
        return value

    def validate(self, attrs):
        """Walk-in customers need a name; registered clients fill it in"""
        if self.instance is None and not attrs.get('customer_name'):
            client = attrs.get('client')
            if client is None:
                raise serializers.ValidationError({'customer_name': 'Customer name or client is required'})
            attrs['customer_name'] = client.name
            attrs.setdefault('dni', client.id_number)
            attrs.setdefault('contact_no', client.phone)
        return attrs


class RepairStatusSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=Repair.STATUS_CHOICES)
