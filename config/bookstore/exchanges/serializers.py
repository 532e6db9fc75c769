"""
Serializers para trocas
"""
from rest_framework import serializers

from ..models import Exchange, ExchangeGivenBook, ExchangeItem, PreCatalogBook


class TradeCalculationSerializer(serializers.Serializer):
    estimated_sale_value = serializers.DecimalField(max_digits=10, decimal_places=2, min_value=0)
    publish_year = serializers.IntegerField(required=False, allow_null=True, min_value=0)
    is_complete_series = serializers.BooleanField(required=False, default=False)


class ExchangeItemInputSerializer(TradeCalculationSerializer):
    book_title = serializers.CharField(max_length=255)
    book_author = serializers.CharField(required=False, allow_blank=True, max_length=255)
    condition = serializers.ChoiceField(choices=[choice for choice, _ in ExchangeItem.CONDITIONS], default="used")


class GivenBookInputSerializer(serializers.Serializer):
    book_id = serializers.IntegerField(min_value=1)
    quantity = serializers.IntegerField(min_value=1, default=1)
    notes = serializers.CharField(required=False, allow_blank=True)


class ExchangeCreateSerializer(serializers.Serializer):
    customer_name = serializers.CharField(max_length=150)
    customer_email = serializers.EmailField(required=False, allow_blank=True)
    customer_phone = serializers.CharField(required=False, allow_blank=True, max_length=30)
    notes = serializers.CharField(required=False, allow_blank=True)
    items = ExchangeItemInputSerializer(many=True, allow_empty=False)
    given_books = GivenBookInputSerializer(many=True, required=False)

    def customer_info(self) -> dict:
        return {
            "name": self.validated_data["customer_name"],
            "email": self.validated_data.get("customer_email"),
            "phone": self.validated_data.get("customer_phone"),
        }


class ExchangeItemSerializer(serializers.ModelSerializer):
    class Meta:
        model = ExchangeItem
        exclude = ["exchange"]


class ExchangeGivenBookSerializer(serializers.ModelSerializer):
    class Meta:
        model = ExchangeGivenBook
        fields = ["id", "book", "book_title", "quantity", "sale_price", "notes", "inventory_processed"]


class ExchangeSerializer(serializers.ModelSerializer):
    items = ExchangeItemSerializer(many=True, read_only=True)
    given_books = ExchangeGivenBookSerializer(many=True, read_only=True)

    class Meta:
        model = Exchange
        fields = [
            "id", "customer_name", "customer_email", "customer_phone", "total_trade_value",
            "total_given_value", "status", "inventory_processed", "notes", "items", "given_books",
            "created_at", "updated_at", "created_by",
        ]


class PreCatalogBookSerializer(serializers.ModelSerializer):
    class Meta:
        model = PreCatalogBook
        fields = "__all__"
        read_only_fields = [field.name for field in PreCatalogBook._meta.fields]


class PreCatalogProcessSerializer(serializers.Serializer):
    """Datos con los que el libro entra al catálogo; todo es opcional"""

    title = serializers.CharField(required=False, max_length=255)
    author = serializers.CharField(required=False, max_length=255)
    price = serializers.DecimalField(required=False, max_digits=10, decimal_places=2, min_value=0)
    code = serializers.CharField(required=False, allow_blank=True, max_length=30)
    isbn = serializers.CharField(required=False, allow_blank=True, max_length=20)
    category = serializers.CharField(required=False, allow_blank=True, max_length=100)
    synopsis = serializers.CharField(required=False, allow_blank=True)
    publisher = serializers.CharField(required=False, allow_blank=True, max_length=150)
    edition = serializers.CharField(required=False, allow_blank=True, max_length=50)
    weight = serializers.IntegerField(required=False, min_value=0)
    quantity = serializers.IntegerField(required=False, min_value=0, default=1)
    shelf_id = serializers.IntegerField(required=False, allow_null=True)

    def overrides(self) -> dict:
        data = dict(self.validated_data)
        data.pop("quantity", None)
        data.pop("shelf_id", None)
        return data


class PreCatalogRejectSerializer(serializers.Serializer):
    notes = serializers.CharField(required=False, allow_blank=True)
