"""
Views para exportación de datos
"""
import pandas as pd
from django.http import HttpResponse
from django.utils import timezone
from drf_spectacular.utils import extend_schema
from rest_framework import permissions, viewsets
from rest_framework.decorators import action

from ..core.services import list_sales
from ..models import Book

MARKETPLACE_COLUMNS = [
    'ISBN', 'Titulo', 'Autor', 'Editora', 'Ano', 'Edicao', 'Categoria',
    'Preco', 'Quantidade', 'Condicao', 'Descricao', 'Peso',
]


def _file_response(df, basename, format_type):
    stamp = timezone.now().strftime("%Y%m%d")
    if format_type.lower() == 'excel':
        response = HttpResponse(
            content_type='application/vnd.openxmlformats-officedocument.spreadsheetml.sheet'
        )
        response['Content-Disposition'] = f'attachment; filename="{basename}_{stamp}.xlsx"'
        df.to_excel(response, index=False, engine='openpyxl')
    else:  # CSV
        response = HttpResponse(content_type='text/csv')
        response['Content-Disposition'] = f'attachment; filename="{basename}_{stamp}.csv"'
        df.to_csv(response, index=False, encoding='utf-8-sig')
    return response


class ExportViewSet(viewsets.GenericViewSet):
    """
    ViewSet para exportación de datos
    """
    permission_classes = [permissions.IsAuthenticated]

    @extend_schema(tags=['Export'])
    @action(detail=False, methods=['get'])
    def marketplace(self, request):
        """Catálogo con stock en el formato de carga de Estante Virtual"""
        books = (
            Book.objects.select_related('inventory')
            .filter(inventory__quantity__gt=0)
            .order_by('title')
        )

        data = []
        for book in books:
            data.append({
                'ISBN': book.isbn or '',
                'Titulo': book.title,
                'Autor': book.author,
                'Editora': book.publisher or '',
                'Ano': book.publish_year or '',
                'Edicao': book.edition or '',
                'Categoria': book.category or '',
                'Preco': float(book.price),
                'Quantidade': book.inventory.quantity,
                'Condicao': book.get_condition_display(),
                'Descricao': book.synopsis or '',
                'Peso': book.weight or '',
            })

        df = pd.DataFrame(data, columns=MARKETPLACE_COLUMNS)
        return _file_response(df, 'estante_virtual', request.query_params.get('format', 'csv'))

    @extend_schema(tags=['Export'])
    @action(detail=False, methods=['get'])
    def sales(self, request):
        """Exportar ventas a CSV o Excel (filtros start_date, end_date, payment_method)"""
        queryset = list_sales(request.query_params)

        data = []
        for sale in queryset:
            for item in sale.items.all():
                data.append({
                    'ID Venta': sale.id,
                    'Fecha': timezone.localtime(sale.created_at).strftime('%Y-%m-%d %H:%M'),
                    'Cliente': sale.customer_name or '',
                    'Pago': sale.get_payment_method_display(),
                    'Codigo': item.book.code,
                    'Libro': item.book.title,
                    'Autor': item.book.author,
                    'Cantidad': item.quantity,
                    'Precio Unitario': float(item.unit_price),
                    'Subtotal': float(item.total_price),
                    'Total Venta': float(sale.total_amount),
                    'Creado por': sale.created_by,
                })

        df = pd.DataFrame(data)
        return _file_response(df, 'ventas', request.query_params.get('format', 'csv'))
