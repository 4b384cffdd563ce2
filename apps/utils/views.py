# apps/utils/views.py
from rest_framework.views import APIView
from rest_framework.response import Response
from rest_framework.permissions import AllowAny
from django.conf import settings


class ServerInfoView(APIView):
    permission_classes = [AllowAny]

    def get(self, request):
        return Response({
            "app_name": "Storefront Back Office",
            "version": settings.APP_VERSION,
            "debug": settings.DEBUG,
        })


class UploadConfigView(APIView):
    """
    Limits the upload screen needs to pre-validate a file client-side.
    """
    permission_classes = [AllowAny]

    def get(self, request):
        return Response({
            "max_file_size": settings.UPLOAD_MAX_FILE_SIZE,
            "batch_size": settings.UPLOAD_BATCH_SIZE,
            "keep_first_duplicate": settings.UPLOAD_KEEP_FIRST_DUPLICATE,
            "low_stock_threshold": settings.LOW_STOCK_THRESHOLD,
        })
