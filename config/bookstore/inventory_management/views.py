"""
Views para inventario y traslados
"""
from drf_spectacular.utils import extend_schema
from rest_framework import viewsets
from rest_framework.decorators import action
from rest_framework.response import Response

from ..catalog.serializers import BookReadSerializer, InventoryRecordSerializer, TransferEventSerializer
from ..core import services
from ..core.api_responses import success_response
from ..models import InventoryRecord, TransferEvent
from ..permissions import IsInventoryUserOrAdmin
from .serializers import StockAdjustmentSerializer


@extend_schema(tags=['Inventory'])
class InventoryViewSet(viewsets.ReadOnlyModelViewSet):
    """
    Existencias por libro

    - Lectura: Usuarios autenticados
    - Ajustes: grupo Inventory o administradores
    """
    queryset = InventoryRecord.objects.select_related('book', 'shelf').all()
    serializer_class = InventoryRecordSerializer
    permission_classes = [IsInventoryUserOrAdmin]
    filterset_fields = ['status', 'shelf', 'sent_to_marketplace']
    search_fields = ['book__title', 'book__author', 'book__code']
    ordering_fields = ['quantity', 'updated_at']
    ordering = ['book__title']

    def get_serializer_class(self):
        if self.action == 'adjust':
            return StockAdjustmentSerializer
        return InventoryRecordSerializer

    @action(detail=False, methods=['get'], url_path='low-stock')
    def low_stock(self, request):
        """Libros disponibles por debajo del umbral (parámetro opcional threshold)"""
        threshold = request.query_params.get('threshold')
        try:
            threshold = int(threshold) if threshold else None
        except ValueError:
            threshold = None
        books = services.low_stock_books(threshold)
        return Response(BookReadSerializer(books, many=True, context=self.get_serializer_context()).data)

    @action(detail=True, methods=['post'])
    def adjust(self, request, pk=None):
        record = self.get_object()
        serializer = StockAdjustmentSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        record = services.adjust_stock(
            book_id=record.book_id,
            quantity=serializer.validated_data['quantity'],
            reason=serializer.validated_data.get('reason', ''),
            user=request.user,
        )
        record = self.get_queryset().get(pk=record.pk)
        return success_response(
            detail="Stock ajustado",
            code="STOCK_ADJUSTED",
            inventory=InventoryRecordSerializer(record).data,
        )


@extend_schema(tags=['Transfers'])
class TransferEventViewSet(viewsets.ReadOnlyModelViewSet):
    """Historial de traslados (solo lectura, nunca se edita)"""
    queryset = TransferEvent.objects.select_related('book', 'from_shelf', 'to_shelf').all()
    serializer_class = TransferEventSerializer
    filterset_fields = ['book', 'from_shelf', 'to_shelf']
    ordering = ['created_at', 'id']
