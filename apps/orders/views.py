from rest_framework import viewsets, status
from rest_framework.decorators import action
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated

from .serializers import (
    OrderCreateSerializer,
    OrderFilterSerializer,
    OrderItemSerializer,
    OrderItemUpdateSerializer,
    OrderLineInputSerializer,
    OrderSerializer,
    OrderUpdateSerializer,
)
from .services import OrderItemService, OrderService


class OrderViewSet(viewsets.ViewSet):
    """
    Orders and their lines. Views only check request shape;
    every rule lives in OrderService / OrderItemService.
    """
    permission_classes = [IsAuthenticated]
    lookup_value_regex = '[0-9a-fA-F-]{36}'

    def _render(self, order_id):
        order, items = OrderService.get_with_items(order_id)
        data = OrderSerializer(order).data
        data['items'] = OrderItemSerializer(items, many=True).data
        return data

    def list(self, request):
        params = OrderFilterSerializer(data=request.query_params)
        params.is_valid(raise_exception=True)

        page = OrderService.get_by_filters(**params.validated_data)
        return Response({
            'count': page.total_elements,
            'total_pages': page.total_pages,
            'results': OrderSerializer(page.results, many=True).data,
        })

    def create(self, request):
        serializer = OrderCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        order, _ = OrderService.insert(**serializer.validated_data)
        return Response(self._render(order.id), status=status.HTTP_201_CREATED)

    def retrieve(self, request, pk=None):
        return Response(self._render(pk))

    def partial_update(self, request, pk=None):
        serializer = OrderUpdateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        OrderService.update_by_id(pk, **serializer.validated_data)
        return Response(self._render(pk))

    def destroy(self, request, pk=None):
        OrderService.delete_by_id(pk)
        return Response(status=status.HTTP_204_NO_CONTENT)

    @action(detail=True, methods=['post'])
    def invoice(self, request, pk=None):
        OrderService.mark_invoiced(pk)
        return Response(self._render(pk))

    @action(detail=True, methods=['post'])
    def cancel(self, request, pk=None):
        OrderService.cancel(pk)
        return Response(self._render(pk))

    @action(detail=True, methods=['post'])
    def items(self, request, pk=None):
        serializer = OrderLineInputSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        item = OrderItemService.add(pk, **serializer.validated_data)
        return Response(
            OrderItemSerializer(OrderItemService.get_check_by_id(item.id)).data,
            status=status.HTTP_201_CREATED
        )

    @action(detail=True, methods=['put', 'delete'], url_path=r'items/(?P<item_id>[0-9a-fA-F-]{36})')
    def item_detail(self, request, pk=None, item_id=None):
        if request.method == 'DELETE':
            OrderItemService.delete_by_id(pk, item_id)
            return Response(status=status.HTTP_204_NO_CONTENT)

        serializer = OrderItemUpdateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        item = OrderItemService.update(pk, item_id, **serializer.validated_data)
        return Response(OrderItemSerializer(item).data)
