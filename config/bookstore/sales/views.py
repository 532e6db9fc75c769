"""
Views para gestión de ventas
"""
from drf_spectacular.utils import extend_schema
from rest_framework import mixins, status, viewsets
from rest_framework.response import Response

from ..core import services
from ..models import Sale
from ..permissions import IsSalesUserOrAdmin
from .serializers import SaleCreateSerializer, SaleReadSerializer


@extend_schema(tags=["Sales"])
class SaleViewSet(
    mixins.CreateModelMixin,
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    viewsets.GenericViewSet,
):
    """
    ViewSet para ventas del punto de venta

    - Lectura: Usuarios autenticados (filtros start_date, end_date, payment_method)
    - Creación: grupo Sales o administradores
    - Las ventas no se editan ni se eliminan
    """

    queryset = Sale.objects.prefetch_related("items__book").all()
    permission_classes = [IsSalesUserOrAdmin]
    filter_backends = []
    lookup_value_regex = r"\d+"

    def get_serializer_class(self):
        if self.action == "create":
            return SaleCreateSerializer
        return SaleReadSerializer

    def get_queryset(self):
        if self.action == "list":
            return services.list_sales(self.request.query_params)
        return super().get_queryset()

    def create(self, request, *args, **kwargs):
        """
        Registra la venta completa:
        1. Valida stock de todos los libros
        2. Calcula el total con el precio actual de cada libro
        3. Descuenta inventario y registra en auditoría
        """
        serializer = SaleCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        sale = services.create_sale(
            items=serializer.validated_data["items"],
            payment_method=serializer.validated_data["payment_method"],
            customer_info=serializer.customer_info(),
            user=request.user,
        )
        return Response(SaleReadSerializer(sale).data, status=status.HTTP_201_CREATED)
