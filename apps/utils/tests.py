# apps/utils/tests.py
import json
import logging
from datetime import datetime, timedelta

from django.db import OperationalError
from django.test import SimpleTestCase, TestCase
from django.urls import reverse
from rest_framework import status

from apps.catalog.models import Client
from .exceptions import (
    BusinessLogicException,
    ConflictException,
    NotFoundException,
    ValidationException,
    custom_exception_handler,
)
from .logging import JSONFormatter
from .pagination import paginate
from .validators import check_date_range, check_none, check_not_none, normalize


class ValidatorTests(SimpleTestCase):
    def test_check_not_none(self):
        self.assertEqual(check_not_none(5, "missing"), 5)
        with self.assertRaises(NotFoundException) as ctx:
            check_not_none(None, "missing")
        self.assertEqual(ctx.exception.message, "missing")

    def test_check_none(self):
        check_none(None, "exists")
        with self.assertRaises(BusinessLogicException):
            check_none(object(), "exists")

    def test_check_date_range(self):
        now = datetime(2024, 1, 1)
        check_date_range(now, now)
        check_date_range(None, now)
        with self.assertRaises(ValidationException):
            check_date_range(now, now - timedelta(seconds=1))

    def test_normalize(self):
        self.assertEqual(normalize("  AbC-1 "), "abc-1")
        self.assertEqual(normalize(None), "")


class ExceptionHandlerTests(SimpleTestCase):
    def test_domain_exceptions_map_to_status(self):
        cases = [
            (BusinessLogicException("no"), 400, "business_error"),
            (ValidationException("bad"), 400, "validation_error"),
            (NotFoundException("gone"), 404, "not_found"),
            (ConflictException("retry"), 409, "conflict"),
        ]
        for exc, code, name in cases:
            response = custom_exception_handler(exc, {})
            self.assertEqual(response.status_code, code)
            self.assertEqual(response.data, {"error": exc.message, "code": name})

    def test_database_error_is_503(self):
        response = custom_exception_handler(OperationalError("disk I/O error"), {})
        self.assertEqual(response.status_code, status.HTTP_503_SERVICE_UNAVAILABLE)
        self.assertEqual(response.data["code"], "io_error")

    def test_unhandled_is_500(self):
        response = custom_exception_handler(RuntimeError("boom"), {})
        self.assertEqual(response.status_code, status.HTTP_500_INTERNAL_SERVER_ERROR)


class JSONFormatterTests(SimpleTestCase):
    def make_record(self, msg, args=None, **extra):
        record = logging.LogRecord("apps.orders", logging.INFO, __file__, 10, msg, args, None)
        for key, value in extra.items():
            setattr(record, key, value)
        return record

    def test_context_keys_are_copied(self):
        line = JSONFormatter().format(self.make_record("Order invoiced", order_id="abc"))
        data = json.loads(line)
        self.assertEqual(data["msg"], "Order invoiced")
        self.assertEqual(data["order_id"], "abc")
        self.assertEqual(data["lvl"], "INFO")

    def test_sensitive_fields_are_redacted(self):
        record = self.make_record({"customer_phone": "9999", "customer_name": "Asha"})
        data = json.loads(JSONFormatter().format(record))
        self.assertNotIn("9999", data["msg"])
        self.assertIn("Asha", data["msg"])


class PaginationTests(TestCase):
    def setUp(self):
        for name in ["a", "b", "c", "d", "e"]:
            Client.objects.create(name=name)

    def test_pages(self):
        page = paginate(Client.objects.order_by("name"), 2, 2)
        self.assertEqual([c.name for c in page.results], ["c", "d"])
        self.assertEqual(page.total_elements, 5)
        self.assertEqual(page.total_pages, 3)

    def test_page_past_end_is_empty(self):
        page = paginate(Client.objects.order_by("name"), 10, 2)
        self.assertEqual(page.results, [])
        self.assertEqual(page.total_elements, 5)

    def test_empty_queryset(self):
        page = paginate(Client.objects.none(), 1, 10)
        self.assertEqual(page.total_pages, 0)

    def test_invalid_arguments(self):
        with self.assertRaises(ValidationException):
            paginate(Client.objects.all(), 0, 10)


class HealthCheckTests(TestCase):
    def test_health_ok(self):
        response = self.client.get(reverse("health-check"))
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["components"]["db"], "ok")

    def test_upload_config(self):
        response = self.client.get(reverse("global-config"))
        self.assertEqual(response.status_code, 200)
        self.assertIn("max_file_size", response.json())
