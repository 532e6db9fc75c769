"""
URL configuration for config project.
"""

from django.conf import settings
from django.conf.urls.static import static
from django.contrib import admin
from django.urls import include, path
from drf_spectacular.utils import extend_schema
from drf_spectacular.views import (
    SpectacularAPIView,
    SpectacularRedocView,
    SpectacularSwaggerView,
)
from rest_framework import routers
from rest_framework_simplejwt.views import TokenObtainPairView, TokenRefreshView

from bookstore.catalog.views import BookViewSet, ShelfViewSet
from bookstore.dashboard.views import DashboardViewSet
from bookstore.exchanges.views import ExchangeViewSet, PreCatalogBookViewSet
from bookstore.export.views import ExportViewSet
from bookstore.inventory_management.views import InventoryViewSet, TransferEventViewSet
from bookstore.marketplace.views import MarketplaceOrderViewSet
from bookstore.sales.views import SaleViewSet
from bookstore.settings_store.views import BrandingView, SettingViewSet


class CustomTokenObtainPairView(TokenObtainPairView):
    """
    View para obtener el token de acceso usando las credenciales del usuario con extend_schema.
    """
    @extend_schema(
        tags=['Authentication'],
        summary='Obtener token de acceso',
        description='Endpoint para obtener un par de tokens (access y refresh) mediante credenciales de usuario.'
    )
    def post(self, request, *args, **kwargs):
        return super().post(request, *args, **kwargs)


class CustomTokenRefreshView(TokenRefreshView):
    """
    View para renovar el token de acceso usando el token de refresh con extend_schema.
    """
    @extend_schema(
        tags=['Authentication'],
        summary='Renovar token de acceso',
        description='Endpoint para renovar el token de acceso usando el token de refresh.'
    )
    def post(self, request, *args, **kwargs):
        return super().post(request, *args, **kwargs)


router = routers.DefaultRouter()
router.register(r"books", BookViewSet, basename="books")
router.register(r"shelves", ShelfViewSet, basename="shelves")
router.register(r"inventory", InventoryViewSet, basename="inventory")
router.register(r"transfers", TransferEventViewSet, basename="transfers")
router.register(r"sales", SaleViewSet, basename="sales")
router.register(r"marketplace-orders", MarketplaceOrderViewSet, basename="marketplace-orders")
router.register(r"settings", SettingViewSet, basename="settings")
router.register(r"exchanges", ExchangeViewSet, basename="exchanges")
router.register(r"pre-catalog-books", PreCatalogBookViewSet, basename="pre-catalog-books")
router.register(r"dashboard", DashboardViewSet, basename="dashboard")
router.register(r"export", ExportViewSet, basename="export")

urlpatterns = [
    path("admin/", admin.site.urls),
    # JWT Authentication
    path("api-auth/", include("rest_framework.urls", namespace="rest_framework")),
    path("api/token/", CustomTokenObtainPairView.as_view(), name="token_obtain_pair"),
    path("api/token/refresh/", CustomTokenRefreshView.as_view(), name="token_refresh"),
    # API endpoints
    path("api/branding/", BrandingView.as_view(), name="branding"),
    path("api/", include(router.urls)),
    # API Documentation
    path("api/schema/", SpectacularAPIView.as_view(), name="schema"),
    path(
        "api/docs/",
        SpectacularSwaggerView.as_view(url_name="schema"),
        name="swagger-ui",
    ),
    path(
        "api/redoc/",
        SpectacularRedocView.as_view(url_name="schema"),
        name="redoc"
    ),
]

if settings.DEBUG:
    urlpatterns += static(settings.MEDIA_URL, document_root=settings.MEDIA_ROOT)
