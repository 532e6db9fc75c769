"""
Serializers para ventas del punto de venta
"""
from rest_framework import serializers

from ..models import Sale, SaleItem


class SaleItemInputSerializer(serializers.Serializer):
    """Item del carrito. El precio unitario siempre sale del libro."""
    book_id = serializers.IntegerField()
    quantity = serializers.IntegerField()


class SaleCreateSerializer(serializers.Serializer):
    """Serializer para registrar ventas"""
    items = SaleItemInputSerializer(many=True, allow_empty=True)
    payment_method = serializers.ChoiceField(choices=[choice for choice, _ in Sale.PAYMENT_METHODS])
    customer_name = serializers.CharField(required=False, allow_blank=True, max_length=150)
    customer_email = serializers.EmailField(required=False, allow_blank=True)
    customer_phone = serializers.CharField(required=False, allow_blank=True, max_length=30)

    def to_internal_value(self, data):
        if hasattr(data, "get") and isinstance(data.get("payment_method"), str):
            data = data.copy()
            data["payment_method"] = data["payment_method"].strip().lower()
        return super().to_internal_value(data)

    def customer_info(self) -> dict:
        return {
            "name": self.validated_data.get("customer_name"),
            "email": self.validated_data.get("customer_email"),
            "phone": self.validated_data.get("customer_phone"),
        }


class SaleItemReadSerializer(serializers.ModelSerializer):
    book_title = serializers.CharField(source="book.title", read_only=True)
    book_code = serializers.CharField(source="book.code", read_only=True)

    class Meta:
        model = SaleItem
        fields = ["id", "book", "book_code", "book_title", "quantity", "unit_price", "total_price"]


class SaleReadSerializer(serializers.ModelSerializer):
    """Serializer para leer ventas con sus items"""
    items = SaleItemReadSerializer(many=True, read_only=True)

    class Meta:
        model = Sale
        fields = [
            "id", "customer_name", "customer_email", "customer_phone",
            "payment_method", "total_amount", "items", "created_at", "created_by",
        ]
