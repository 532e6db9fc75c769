"""
Serializers para pedidos de Estante Virtual
"""
from rest_framework import serializers

from ..models import MarketplaceOrder, MarketplaceOrderItem


class MarketplaceOrderItemSerializer(serializers.ModelSerializer):
    book_title = serializers.CharField(source="book.title", read_only=True)

    class Meta:
        model = MarketplaceOrderItem
        fields = ["id", "book", "book_title", "quantity", "unit_price", "total_price"]


class MarketplaceOrderSerializer(serializers.ModelSerializer):
    items = MarketplaceOrderItemSerializer(many=True, read_only=True)
    is_overdue = serializers.SerializerMethodField()

    class Meta:
        model = MarketplaceOrder
        fields = [
            "id", "external_id", "customer_name", "customer_address", "customer_phone",
            "total_amount", "order_date", "shipping_deadline", "status", "tracking_code",
            "shipped_at", "delivered_at", "tracking_synced_at", "is_overdue", "items",
            "created_at", "updated_at",
        ]

    def get_is_overdue(self, obj):
        return obj.is_overdue


class OrderStatusSerializer(serializers.Serializer):
    status = serializers.CharField()
    tracking_code = serializers.CharField(required=False, allow_blank=True, max_length=60)


class OrderImportItemSerializer(serializers.Serializer):
    book_id = serializers.IntegerField()
    quantity = serializers.IntegerField(min_value=1)
    unit_price = serializers.DecimalField(max_digits=10, decimal_places=2, min_value=0)


class OrderImportSerializer(serializers.Serializer):
    """Pedido tal como llega de Estante Virtual"""
    order_id = serializers.CharField(max_length=80)
    customer_name = serializers.CharField(max_length=150)
    customer_address = serializers.CharField()
    customer_phone = serializers.CharField(required=False, allow_blank=True, max_length=30)
    order_date = serializers.DateTimeField(required=False)
    items = OrderImportItemSerializer(many=True)


class OrderImportRequestSerializer(serializers.Serializer):
    """
    Sin pedidos en el cuerpo se descargan los pendientes desde la API.
    """
    orders = OrderImportSerializer(many=True, required=False)
