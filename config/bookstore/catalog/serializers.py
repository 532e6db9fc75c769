"""
Serializers para catalogo y estantes
"""
from rest_framework import serializers

from ..core.exceptions import ValidationError
from ..models import Book, InventoryRecord, Shelf, TransferEvent
from .images import CoverImageService


class ShelfSerializer(serializers.ModelSerializer):
    """Serializer para estantes"""
    book_count = serializers.SerializerMethodField()

    class Meta:
        model = Shelf
        fields = [
            "id", "name", "description", "location", "capacity", "is_active",
            "book_count", "created_at", "updated_at",
        ]
        read_only_fields = ["is_active", "created_at", "updated_at"]

    def get_book_count(self, obj):
        return obj.inventory_records.count()


class ShelfSimpleSerializer(serializers.ModelSerializer):
    class Meta:
        model = Shelf
        fields = ["id", "name", "location"]


class InventoryRecordSerializer(serializers.ModelSerializer):
    """Inventario con el estante actual y el resumen del libro"""
    shelf = ShelfSimpleSerializer(read_only=True)
    book_code = serializers.CharField(source="book.code", read_only=True)
    book_title = serializers.CharField(source="book.title", read_only=True)

    class Meta:
        model = InventoryRecord
        fields = [
            "id", "book", "book_code", "book_title", "quantity", "shelf", "status",
            "sent_to_marketplace", "marketplace_listing_id", "last_sync_at",
            "created_at", "updated_at",
        ]
        read_only_fields = fields


class BookSerializer(serializers.ModelSerializer):
    """
    Serializer de escritura para libros.
    Al crear acepta la cantidad y el estante inicial del inventario.
    """
    code = serializers.CharField(required=False, allow_blank=True, max_length=30)
    quantity = serializers.IntegerField(write_only=True, required=False, min_value=0, default=0)
    shelf_id = serializers.IntegerField(write_only=True, required=False, allow_null=True)

    class Meta:
        model = Book
        fields = [
            "id", "code", "isbn", "title", "author", "publisher", "publish_year",
            "edition", "pages", "category", "product_type", "synopsis", "weight",
            "price", "new_price", "condition", "cover_image", "cover_url",
            "quantity", "shelf_id", "created_at", "updated_at", "created_by",
        ]
        read_only_fields = ["created_at", "updated_at", "created_by"]
        # La unicidad se valida en el servicio (alta) y en validate (edición) para responder con DUPLICATE_BOOK
        extra_kwargs = {"isbn": {"validators": []}}

    def validate_price(self, value):
        if value < 0:
            raise serializers.ValidationError("El precio no puede ser negativo")
        return value

    def validate_isbn(self, value):
        return (value or "").strip() or None

    def validate_cover_image(self, value):
        if value:
            try:
                CoverImageService.validate_image_file(value)
            except ValidationError as e:
                raise serializers.ValidationError(e.detail)
        return value

    def validate(self, attrs):
        if self.instance is not None:
            # El codigo identifica al libro; solo los campos descriptivos cambian
            code = attrs.pop("code", None)
            if code and code != self.instance.code:
                raise serializers.ValidationError({"code": "El código no se puede modificar"})
            attrs.pop("quantity", None)
            attrs.pop("shelf_id", None)

            isbn = attrs.get("isbn")
            if isbn and Book.objects.filter(isbn=isbn).exclude(pk=self.instance.pk).exists():
                raise ValidationError("Ya existe un libro con ese código o ISBN", code="DUPLICATE_BOOK")
        return attrs


class BookReadSerializer(serializers.ModelSerializer):
    """Serializer de lectura con el inventario anidado"""
    inventory = InventoryRecordSerializer(read_only=True)
    cover = serializers.SerializerMethodField()

    class Meta:
        model = Book
        fields = [
            "id", "code", "isbn", "title", "author", "publisher", "publish_year",
            "edition", "pages", "category", "product_type", "synopsis", "weight",
            "price", "new_price", "condition", "cover", "inventory",
            "created_at", "updated_at", "created_by",
        ]

    def get_cover(self, obj):
        if obj.cover_image:
            return obj.cover_image.url
        return obj.cover_url


class TransferRequestSerializer(serializers.Serializer):
    to_shelf_id = serializers.IntegerField(required=False, allow_null=True)
    reason = serializers.CharField(required=False, allow_blank=True, max_length=255)


class TransferEventSerializer(serializers.ModelSerializer):
    """Entrada del historial de traslados"""
    book_code = serializers.CharField(source="book.code", read_only=True)
    from_shelf = ShelfSimpleSerializer(read_only=True)
    to_shelf = ShelfSimpleSerializer(read_only=True)

    class Meta:
        model = TransferEvent
        fields = ["id", "book", "book_code", "from_shelf", "to_shelf", "reason", "transferred_by", "created_at"]
        read_only_fields = fields
