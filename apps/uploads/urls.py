from django.urls import path
from .views import ProductUploadAPIView, InventoryUploadAPIView

urlpatterns = [
    path('products/', ProductUploadAPIView.as_view(), name='upload-products'),
    path('inventory/', InventoryUploadAPIView.as_view(), name='upload-inventory'),
]
