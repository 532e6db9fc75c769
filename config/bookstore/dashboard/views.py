"""
Views para dashboard y estadísticas
"""
from django.db.models import DecimalField, Sum
from django.db.models.functions import Coalesce
from django.utils import timezone
from drf_spectacular.utils import extend_schema
from rest_framework import permissions, viewsets
from rest_framework.decorators import action
from rest_framework.response import Response

from ..core.services import low_stock_books
from ..models import Book, InventoryRecord, MarketplaceOrder, Sale


class DashboardViewSet(viewsets.GenericViewSet):
    """
    ViewSet para dashboard y estadísticas del sistema
    """
    permission_classes = [permissions.IsAuthenticated]

    @extend_schema(tags=['Dashboard'])
    @action(detail=False, methods=['get'])
    def stats(self, request):
        """Vista general del dashboard"""
        now = timezone.now()
        today = timezone.localdate()

        today_sales = Sale.objects.filter(created_at__date=today)
        today_total = today_sales.aggregate(
            total=Coalesce(Sum('total_amount'), 0, output_field=DecimalField())
        )['total']

        pending_orders = MarketplaceOrder.objects.filter(status='pending')

        return Response({
            'total_books': Book.objects.count(),
            'books_in_stock': InventoryRecord.objects.filter(quantity__gt=0).count(),
            'today_sales_count': today_sales.count(),
            'today_sales_amount': float(today_total),
            'low_stock_count': low_stock_books().count(),
            'published_to_marketplace': InventoryRecord.objects.filter(sent_to_marketplace=True).count(),
            'pending_orders': pending_orders.count(),
            'overdue_orders': pending_orders.filter(shipping_deadline__lt=now).count(),
        })
