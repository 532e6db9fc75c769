"""
Views para catalogo de libros y estantes
"""
from django.db import IntegrityError, transaction
from drf_spectacular.utils import extend_schema
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.response import Response

from ..core import services
from ..core.api_responses import success_response
from ..core.exceptions import ValidationError
from ..marketplace.sync import publish_listing
from ..models import Book, Shelf
from ..permissions import IsInventoryUserOrAdmin
from .serializers import (
    BookReadSerializer,
    BookSerializer,
    InventoryRecordSerializer,
    ShelfSerializer,
    ShelfSimpleSerializer,
    TransferEventSerializer,
    TransferRequestSerializer,
)


@extend_schema(tags=['Books'])
class BookViewSet(viewsets.ModelViewSet):
    """
    ViewSet para gestión del catálogo

    - Lectura: Usuarios autenticados
    - Escritura, traslados y publicación: grupo Inventory o administradores
    """
    queryset = Book.objects.select_related('inventory', 'inventory__shelf').all()
    permission_classes = [IsInventoryUserOrAdmin]
    lookup_value_regex = r'\d+'
    filterset_fields = ['category', 'condition', 'product_type', 'inventory__shelf']
    search_fields = ['title', 'author', 'isbn', 'code']
    ordering_fields = ['title', 'author', 'price', 'created_at']
    ordering = ['-created_at']

    def get_serializer_class(self):
        if self.action in ['list', 'retrieve', 'search']:
            return BookReadSerializer
        if self.action == 'transfer':
            return TransferRequestSerializer
        if self.action == 'transfers':
            return TransferEventSerializer
        return BookSerializer

    def create(self, request, *args, **kwargs):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = dict(serializer.validated_data)
        quantity = data.pop('quantity', 0)
        shelf_id = data.pop('shelf_id', None)

        book = services.create_book(data, quantity=quantity, shelf_id=shelf_id, user=request.user)
        book = self.get_queryset().get(pk=book.pk)
        return Response(BookReadSerializer(book, context=self.get_serializer_context()).data, status=status.HTTP_201_CREATED)

    def update(self, request, *args, **kwargs):
        super().update(request, *args, **kwargs)
        book = self.get_queryset().get(pk=kwargs['pk'])
        return Response(BookReadSerializer(book, context=self.get_serializer_context()).data)

    def perform_update(self, serializer):
        try:
            with transaction.atomic():
                serializer.save()
        except IntegrityError:
            raise ValidationError("Ya existe un libro con ese código o ISBN", code="DUPLICATE_BOOK")

    def destroy(self, request, *args, **kwargs):
        services.delete_book(self.get_object().pk)
        return Response(status=status.HTTP_204_NO_CONTENT)

    @action(detail=False, methods=['get'])
    def search(self, request):
        """Busca por título, autor, ISBN o código"""
        books = services.search_books(request.query_params.get('q', ''))
        return Response(BookReadSerializer(books, many=True, context=self.get_serializer_context()).data)

    @action(detail=False, methods=['get'])
    def categories(self, request):
        return Response(services.list_categories())

    @action(detail=True, methods=['post'])
    def transfer(self, request, pk=None):
        """Mueve el libro a otro estante y registra el traslado"""
        serializer = TransferRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        event = services.transfer_book(
            book_id=int(pk),
            to_shelf_id=serializer.validated_data.get('to_shelf_id'),
            reason=serializer.validated_data.get('reason'),
            actor=request.user,
        )
        return success_response(
            detail=f"Libro trasladado a {event.to_shelf.name}",
            code="BOOK_TRANSFERRED",
            http_status=status.HTTP_201_CREATED,
            transfer=TransferEventSerializer(event).data,
        )

    @action(detail=True, methods=['get'])
    def transfers(self, request, pk=None):
        events = services.list_transfers(int(pk))
        return Response(TransferEventSerializer(events, many=True).data)

    @action(detail=True, methods=['get'])
    def shelf(self, request, pk=None):
        current = services.get_current_shelf(int(pk))
        return Response({"book": int(pk), "shelf": ShelfSimpleSerializer(current).data if current else None})

    @action(detail=True, methods=['post'])
    def publish(self, request, pk=None):
        """Publica el libro en Estante Virtual"""
        record = publish_listing(int(pk), user=request.user)
        return success_response(
            detail="Libro publicado en Estante Virtual",
            code="LISTING_PUBLISHED",
            inventory=InventoryRecordSerializer(record).data,
        )


@extend_schema(tags=['Shelves'])
class ShelfViewSet(viewsets.ModelViewSet):
    """
    ViewSet para gestión de estantes

    La eliminación es lógica y solo se permite con el estante vacío.
    """
    queryset = Shelf.objects.filter(is_active=True)
    serializer_class = ShelfSerializer
    permission_classes = [IsInventoryUserOrAdmin]
    lookup_value_regex = r'\d+'
    search_fields = ['name', 'location']
    ordering_fields = ['name', 'created_at']
    ordering = ['name']

    def destroy(self, request, *args, **kwargs):
        services.delete_shelf(self.get_object().pk)
        return Response(status=status.HTTP_204_NO_CONTENT)
