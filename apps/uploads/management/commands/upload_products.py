import os

from django.conf import settings
from django.core.files import File
from django.core.management.base import BaseCommand, CommandError

from apps.uploads.services import ProductUploader
from apps.uploads.tsv import parse_upload
from apps.utils.exceptions import BusinessLogicException


class Command(BaseCommand):
    help = 'Import products from a TSV file and write a per-row report next to it'
    uploader_class = ProductUploader

    def add_arguments(self, parser):
        parser.add_argument('file_path', type=str, help='Path to TSV file')
        parser.add_argument('--report', type=str, help='Where to write the report (default: <file>.report.tsv)')

    def handle(self, *args, **kwargs):
        file_path = kwargs['file_path']
        if not os.path.exists(file_path):
            raise CommandError(f'File not found: {file_path}')

        report_path = kwargs.get('report') or f'{os.path.splitext(file_path)[0]}.report.tsv'
        uploader = self.uploader_class(
            batch_size=settings.UPLOAD_BATCH_SIZE,
            keep_first_duplicate=settings.UPLOAD_KEEP_FIRST_DUPLICATE,
        )

        try:
            with open(file_path, 'rb') as f:
                parsed = parse_upload(
                    File(f, name=os.path.basename(file_path)),
                    uploader.headers,
                    settings.UPLOAD_MAX_FILE_SIZE,
                )
            result = uploader.upload(parsed)
        except BusinessLogicException as e:
            raise CommandError(f'Upload failed: {e.message}')

        with open(report_path, 'wb') as out:
            out.write(result.report())

        failed = len(result.failed_rows) + len(result.malformed)
        self.stdout.write(self.style.SUCCESS(f'Committed {len(result.committed)} rows.'))
        if failed:
            self.stdout.write(self.style.WARNING(f'{failed} rows rejected, see {report_path}'))
        else:
            self.stdout.write(f'Report written to {report_path}')
