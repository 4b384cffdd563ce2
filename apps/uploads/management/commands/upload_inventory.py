from apps.uploads.services import InventoryUploader

from .upload_products import Command as UploadProductsCommand


class Command(UploadProductsCommand):
    help = 'Set stock levels from a TSV file (barcode, quantity) and write a per-row report next to it'
    uploader_class = InventoryUploader
