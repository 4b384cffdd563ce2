from rest_framework import filters, mixins, status, viewsets
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from django_filters.rest_framework import DjangoFilterBackend

from .models import Client, Product
from .serializers import ClientSerializer, ProductCreateSerializer, ProductSerializer, ProductUpdateSerializer
from .services import ClientService, ProductService


class ClientViewSet(
    mixins.CreateModelMixin,
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    mixins.UpdateModelMixin,
    viewsets.GenericViewSet
):
    queryset = Client.objects.all()
    serializer_class = ClientSerializer
    permission_classes = [IsAuthenticated]
    filter_backends = [filters.SearchFilter]
    search_fields = ['name']

    def perform_create(self, serializer):
        serializer.instance = ClientService.create(serializer.validated_data['name'])

    def perform_update(self, serializer):
        name = serializer.validated_data.get('name', serializer.instance.name)
        serializer.instance = ClientService.update(serializer.instance.id, name)


class ProductViewSet(mixins.CreateModelMixin, viewsets.ReadOnlyModelViewSet):
    """
    Product master. Creating a product also opens its stock row at zero;
    deleting one drops that row with it.
    """
    queryset = Product.objects.select_related('client', 'inventory')
    serializer_class = ProductSerializer
    permission_classes = [IsAuthenticated]
    filter_backends = [DjangoFilterBackend, filters.SearchFilter, filters.OrderingFilter]
    filterset_fields = ['category', 'client']
    search_fields = ['name', 'barcode']
    ordering_fields = ['name', 'mrp', 'created_at']

    def create(self, request, *args, **kwargs):
        serializer = ProductCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        product = ProductService.create(**serializer.validated_data)
        return Response(
            ProductSerializer(self.get_queryset().get(pk=product.pk)).data,
            status=status.HTTP_201_CREATED
        )

    def update(self, request, *args, **kwargs):
        product = self.get_object()
        serializer = ProductUpdateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        ProductService.update(product.id, **serializer.validated_data)
        return Response(ProductSerializer(self.get_queryset().get(pk=product.pk)).data)

    def destroy(self, request, *args, **kwargs):
        product = self.get_object()
        ProductService.delete_by_id(product.id)
        return Response(status=status.HTTP_204_NO_CONTENT)
