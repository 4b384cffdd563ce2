import logging

from django.conf import settings
from django.http import HttpResponse
from rest_framework.parsers import MultiPartParser
from rest_framework.permissions import IsAdminUser, IsAuthenticated
from rest_framework.views import APIView

from apps.utils.exceptions import ValidationException
from .services import InventoryUploader, ProductUploader
from .tsv import parse_upload

logger = logging.getLogger(__name__)


class BaseUploadAPIView(APIView):
    """
    Accepts a multipart `file` field and answers with the per-row TSV report.
    Structural problems (extension, size, header) are a plain 400 instead.
    """
    permission_classes = [IsAuthenticated, IsAdminUser]
    parser_classes = [MultiPartParser]
    uploader_class = None
    report_name = "report.tsv"

    def get_uploader(self):
        return self.uploader_class(
            batch_size=settings.UPLOAD_BATCH_SIZE,
            keep_first_duplicate=settings.UPLOAD_KEEP_FIRST_DUPLICATE,
        )

    def post(self, request):
        uploaded = request.FILES.get("file")
        if uploaded is None:
            raise ValidationException("No file was uploaded. Send the TSV in the 'file' field.")

        uploader = self.get_uploader()
        parsed = parse_upload(uploaded, uploader.headers, settings.UPLOAD_MAX_FILE_SIZE)
        result = uploader.upload(parsed)

        logger.info(
            f"{uploaded.name}: {len(result.committed)} committed, {len(result.failed_rows)} failed",
            extra={"upload": uploaded.name, "user_id": request.user.pk},
        )

        response = HttpResponse(result.report(), content_type="text/tab-separated-values")
        response["Content-Disposition"] = f'attachment; filename="{self.report_name}"'
        return response


class ProductUploadAPIView(BaseUploadAPIView):
    uploader_class = ProductUploader
    report_name = "product_upload_report.tsv"


class InventoryUploadAPIView(BaseUploadAPIView):
    uploader_class = InventoryUploader
    report_name = "inventory_upload_report.tsv"
