"""
Views para trocas de libros usados
"""
from drf_spectacular.utils import extend_schema
from rest_framework import mixins, permissions, status, viewsets
from rest_framework.decorators import action
from rest_framework.response import Response

from ..core.api_responses import success_response
from ..models import Exchange, PreCatalogBook
from ..permissions import IsInventoryUserOrAdmin, IsSalesUserOrAdmin
from . import services
from .serializers import (
    ExchangeCreateSerializer,
    ExchangeSerializer,
    PreCatalogBookSerializer,
    PreCatalogProcessSerializer,
    PreCatalogRejectSerializer,
    TradeCalculationSerializer,
)
from .trade_calculator import calculate_trade_value


@extend_schema(tags=["Exchanges"])
class ExchangeViewSet(
    mixins.CreateModelMixin,
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    viewsets.GenericViewSet,
):
    """
    Trocas: el cliente entrega libros y recibe crédito

    - Lectura: Usuarios autenticados
    - Registro, conclusión y cancelación: grupo Sales o administradores
    """

    queryset = Exchange.objects.prefetch_related("items", "given_books").all()
    permission_classes = [IsSalesUserOrAdmin]
    filterset_fields = ["status"]
    search_fields = ["customer_name", "customer_email"]
    ordering = ["-created_at", "-id"]
    lookup_value_regex = r"\d+"

    def get_permissions(self):
        if self.action == "calculate":
            return [permissions.IsAuthenticated()]
        return super().get_permissions()

    def get_serializer_class(self):
        if self.action == "create":
            return ExchangeCreateSerializer
        if self.action == "calculate":
            return TradeCalculationSerializer
        return ExchangeSerializer

    def create(self, request, *args, **kwargs):
        serializer = ExchangeCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        exchange = services.create_exchange(
            customer_info=serializer.customer_info(),
            items=serializer.validated_data["items"],
            notes=serializer.validated_data.get("notes") or None,
            user=request.user,
            given_books=serializer.validated_data.get("given_books"),
        )
        exchange = self.get_queryset().get(pk=exchange.pk)
        return Response(ExchangeSerializer(exchange).data, status=status.HTTP_201_CREATED)

    @action(detail=True, methods=["post"])
    def complete(self, request, pk=None):
        exchange = services.complete_exchange(int(pk), user=request.user)
        return success_response(detail="Troca concluida", code="EXCHANGE_COMPLETED", status=exchange.status)

    @action(detail=True, methods=["post"])
    def cancel(self, request, pk=None):
        exchange = services.cancel_exchange(int(pk), user=request.user)
        return success_response(detail="Troca cancelada", code="EXCHANGE_CANCELLED", status=exchange.status)

    @action(detail=False, methods=["post"])
    def calculate(self, request):
        """Simula el valor de troca de un libro sin registrar nada"""
        serializer = TradeCalculationSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        calculation = calculate_trade_value(
            serializer.validated_data["estimated_sale_value"],
            publish_year=serializer.validated_data.get("publish_year"),
            is_complete_series=serializer.validated_data.get("is_complete_series", False),
        )
        return Response(calculation.as_dict())


@extend_schema(tags=["Exchanges"])
class PreCatalogBookViewSet(viewsets.ReadOnlyModelViewSet):
    """
    Libros recibidos en trocas pendientes de catalogar

    - Lectura: Usuarios autenticados
    - Procesar o rechazar: grupo Inventory o administradores
    """

    queryset = PreCatalogBook.objects.select_related("exchange", "book").all()
    serializer_class = PreCatalogBookSerializer
    permission_classes = [IsInventoryUserOrAdmin]
    filterset_fields = ["status", "exchange"]
    search_fields = ["book_title", "book_author", "isbn"]
    ordering = ["-created_at", "-id"]
    lookup_value_regex = r"\d+"

    @extend_schema(request=PreCatalogProcessSerializer, responses=PreCatalogBookSerializer)
    @action(detail=True, methods=["post"])
    def process(self, request, pk=None):
        serializer = PreCatalogProcessSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        entry = services.process_pre_catalog_book(
            int(pk),
            overrides=serializer.overrides(),
            quantity=serializer.validated_data.get("quantity", 1),
            shelf_id=serializer.validated_data.get("shelf_id"),
            user=request.user,
        )
        return Response(PreCatalogBookSerializer(entry).data)

    @extend_schema(request=PreCatalogRejectSerializer, responses=PreCatalogBookSerializer)
    @action(detail=True, methods=["post"])
    def reject(self, request, pk=None):
        serializer = PreCatalogRejectSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        entry = services.reject_pre_catalog_book(
            int(pk),
            notes=serializer.validated_data.get("notes") or None,
            user=request.user,
        )
        return Response(PreCatalogBookSerializer(entry).data)
