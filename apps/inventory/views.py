from django.conf import settings
from rest_framework import viewsets, filters
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from django_filters.rest_framework import DjangoFilterBackend

from apps.utils.exceptions import ValidationException
from .serializers import InventorySerializer, InventoryUpdateSerializer
from .services import InventoryService


class InventoryViewSet(viewsets.ReadOnlyModelViewSet):
    """
    Stock on hand. Besides orders and uploads, stock only changes
    through a manual count (PUT) on one row.
    """
    serializer_class = InventorySerializer
    permission_classes = [IsAuthenticated]
    filter_backends = [DjangoFilterBackend, filters.SearchFilter]
    filterset_fields = ['product__category', 'product__client']
    search_fields = ['product__name', 'product__barcode']
    lookup_value_regex = '[0-9a-fA-F-]{36}'

    def get_queryset(self):
        return InventoryService.get_all()

    def update(self, request, pk=None):
        serializer = InventoryUpdateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        stock = InventoryService.update_by_id(pk, serializer.validated_data['quantity'])
        return Response(self.get_serializer(stock).data)

    @action(
        detail=False,
        methods=['put'],
        url_path=r'product/(?P<product_id>[0-9a-fA-F-]{36})',
        url_name='by-product',
    )
    def by_product(self, request, product_id=None):
        serializer = InventoryUpdateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        stock = InventoryService.update_by_product_id(product_id, serializer.validated_data['quantity'])
        return Response(self.get_serializer(stock).data)

    @action(detail=False, methods=['get'], url_path='low-stock')
    def low_stock(self, request):
        threshold = request.query_params.get('threshold', settings.LOW_STOCK_THRESHOLD)
        try:
            threshold = int(threshold)
        except (TypeError, ValueError):
            raise ValidationException("Threshold must be an integer")

        stocks = InventoryService.get_low_stock(threshold)

        page = self.paginate_queryset(stocks)
        serializer = self.get_serializer(page, many=True)
        return self.get_paginated_response(serializer.data)

    @action(detail=False, methods=['get'])
    def report(self, request):
        """
        Flat stock rows (barcode, name, category, mrp, quantity) for reporting.
        """
        rows = InventoryService.get_report_rows()
        return Response([
            {
                'product_id': row['product_id'],
                'barcode': row['product__barcode'],
                'name': row['product__name'],
                'category': row['product__category'],
                'mrp': row['product__mrp'],
                'quantity': row['quantity'],
            }
            for row in rows
        ])
