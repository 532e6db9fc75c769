"""
Views para configuración (clave-valor) y marca
"""
from drf_spectacular.utils import extend_schema
from rest_framework import mixins, permissions, viewsets
from rest_framework.response import Response
from rest_framework.views import APIView

from ..core import services
from ..core.exceptions import NotFoundError
from ..models import Setting
from ..permissions import IsAdminOrReadOnly
from .serializers import SettingSerializer, SettingValueSerializer


@extend_schema(tags=["Settings"])
class SettingViewSet(mixins.ListModelMixin, viewsets.GenericViewSet):
    """
    Configuración del sistema

    - Lectura: Usuarios autenticados
    - PUT /settings/{key}/ crea o sobrescribe la clave (solo administradores)
    """

    queryset = Setting.objects.all()
    serializer_class = SettingSerializer
    permission_classes = [IsAdminOrReadOnly]
    lookup_field = "key"
    lookup_value_regex = r"[\w.-]+"
    filter_backends = []

    def get_serializer_class(self):
        if self.action == "update":
            return SettingValueSerializer
        return SettingSerializer

    def retrieve(self, request, key=None):
        setting = Setting.objects.filter(key=key).first()
        if setting is None:
            raise NotFoundError(f"Configuración '{key}' no encontrada", code="SETTING_NOT_FOUND")
        return Response(SettingSerializer(setting).data)

    def update(self, request, key=None):
        serializer = SettingValueSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        setting = services.set_setting(key, serializer.validated_data["value"], user=request.user)
        return Response(SettingSerializer(setting).data)


@extend_schema(tags=["Settings"])
class BrandingView(APIView):
    """Nombre, lema y logo de la tienda; público para la pantalla de login"""

    permission_classes = [permissions.AllowAny]
    authentication_classes = []

    def get(self, request):
        return Response(services.get_branding())
