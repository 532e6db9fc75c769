"""
Views para pedidos de Estante Virtual
"""
from drf_spectacular.utils import extend_schema
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.response import Response

from ..core import services
from ..core.api_responses import success_response
from ..models import MarketplaceOrder
from ..permissions import IsInventoryUserOrAdmin
from .importer import fetch_and_import_orders, import_orders
from .serializers import MarketplaceOrderSerializer, OrderImportRequestSerializer, OrderStatusSerializer


@extend_schema(tags=["MarketplaceOrders"])
class MarketplaceOrderViewSet(viewsets.ReadOnlyModelViewSet):
    """
    Pedidos recibidos desde Estante Virtual

    - Lectura: Usuarios autenticados (filtros status y overdue=true)
    - Cambio de estado e importación: grupo Inventory o administradores
    """

    queryset = MarketplaceOrder.objects.prefetch_related("items__book").all()
    serializer_class = MarketplaceOrderSerializer
    permission_classes = [IsInventoryUserOrAdmin]
    filter_backends = []
    lookup_value_regex = r"\d+"

    def get_serializer_class(self):
        if self.action == "update_status":
            return OrderStatusSerializer
        if self.action == "run_import":
            return OrderImportRequestSerializer
        return MarketplaceOrderSerializer

    def get_queryset(self):
        if self.action == "list":
            return services.list_orders(self.request.query_params)
        return super().get_queryset()

    @action(detail=True, methods=["post"], url_path="status")
    def update_status(self, request, pk=None):
        """
        Avanza el estado del pedido: pending -> shipped -> delivered.
        Al despachar se puede informar el código de rastreo.
        """
        serializer = OrderStatusSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        order = services.update_order_status(
            order_id=int(pk),
            new_status=serializer.validated_data["status"],
            tracking_code=serializer.validated_data.get("tracking_code"),
            user=request.user,
        )
        order = services.get_order(order.id)
        return success_response(
            detail=f"Pedido {order.external_id} actualizado a {order.status}",
            code="ORDER_STATUS_UPDATED",
            order=MarketplaceOrderSerializer(order).data,
        )

    @action(detail=False, methods=["post"], url_path="import")
    def run_import(self, request):
        """Importa los pedidos enviados o, si no hay, los pendientes de la API"""
        serializer = OrderImportRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        orders = serializer.validated_data.get("orders")
        if orders:
            summary = import_orders(orders, user=request.user)
        else:
            summary = fetch_and_import_orders(user=request.user)

        return success_response(
            detail=f"{summary.imported} pedidos importados",
            code="ORDERS_IMPORTED",
            http_status=status.HTTP_201_CREATED if summary.imported else status.HTTP_200_OK,
            **summary.as_dict(),
        )
