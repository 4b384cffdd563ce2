# apps/uploads/tests.py
import os
import tempfile
from io import StringIO
from decimal import Decimal

from django.contrib.auth import get_user_model
from django.core.files.uploadedfile import SimpleUploadedFile
from django.core.management import call_command
from django.core.management.base import CommandError
from django.test import TestCase, override_settings
from django.urls import reverse
from rest_framework import status
from rest_framework.test import APIClient, APITestCase

from apps.catalog.models import Client, Product
from apps.catalog.services import ClientService, ProductService
from apps.inventory.models import Inventory
from apps.utils.exceptions import ValidationException

from .report import MALFORMED_MARKER, STATUS_COLUMN, SUCCESS
from .services import InventoryUploader, ProductUploader, find_duplicate_keys
from .tsv import INVENTORY_HEADERS, PRODUCT_HEADERS, parse_content, parse_upload

User = get_user_model()

PRODUCT_HEADER_LINE = "barcode\tname\tmrp\tclientName\tcategory"


def tsv(*lines):
    return "\n".join(lines) + "\n"


def report_lines(result):
    return result.report().decode("utf-8").splitlines()


class TsvParsingTests(TestCase):

    def test_header_is_matched_case_insensitively(self):
        parsed = parse_content(tsv(" BARCODE \tName\tMRP\tclientname\tCategory"), PRODUCT_HEADERS)
        self.assertEqual(parsed.headers, PRODUCT_HEADERS)
        self.assertEqual(parsed.rows, [])

    def test_wrong_header_aborts(self):
        with self.assertRaises(ValidationException) as ctx:
            parse_content(tsv("barcode\tname\tprice\tclientName\tcategory"), PRODUCT_HEADERS)
        self.assertIn("Invalid file headers", ctx.exception.message)

    def test_empty_content_aborts(self):
        with self.assertRaises(ValidationException):
            parse_content("", PRODUCT_HEADERS)

    def test_column_count_mismatch_is_set_aside(self):
        parsed = parse_content(
            tsv(PRODUCT_HEADER_LINE, "b1\tSoap\t10\tacme\tbath", "b2\tShampoo\t10", "", "b3\tGel\t5\tacme\tbath"),
            PRODUCT_HEADERS,
        )
        self.assertEqual([n for n, _ in parsed.rows], [2, 5])
        self.assertEqual(
            parsed.errors,
            ["Error in row #3: Invalid number of columns. Expected 5, but found 3"],
        )

    def test_file_metadata_checks(self):
        with self.assertRaises(ValidationException):
            parse_upload(SimpleUploadedFile("p.tsv", b""), PRODUCT_HEADERS, 1024)
        with self.assertRaises(ValidationException) as ctx:
            parse_upload(SimpleUploadedFile("p.csv", b"barcode,name"), PRODUCT_HEADERS, 1024)
        self.assertIn(".tsv", ctx.exception.message)
        big = SimpleUploadedFile("p.tsv", b"x" * (2 * 1024 * 1024))
        with self.assertRaises(ValidationException) as ctx:
            parse_upload(big, PRODUCT_HEADERS, 1024 * 1024)
        self.assertIn("1MB", ctx.exception.message)

    def test_non_utf8_content_is_rejected(self):
        with self.assertRaises(ValidationException):
            parse_upload(SimpleUploadedFile("p.tsv", b"\xff\xfe\x00bad"), PRODUCT_HEADERS, 1024)

    def test_find_duplicate_keys_ignores_empty(self):
        self.assertEqual(find_duplicate_keys(["a", "b", "a", "", ""]), {"a"})


class ProductUploadTests(TestCase):

    def setUp(self):
        self.client_acme = ClientService.create("Acme")
        ProductService.create("existing-1", "Old Soap", "bath", "12.00", self.client_acme.id)

    def upload(self, *lines, **kwargs):
        parsed = parse_content(tsv(PRODUCT_HEADER_LINE, *lines), PRODUCT_HEADERS)
        return ProductUploader(**kwargs).upload(parsed)

    def test_partial_success_rejects_every_duplicate(self):
        result = self.upload(
            "111\tSoap\t10.00\tACME\tBath",
            "111\tSoap B\t11.00\tAcme\tBath",
            "222\tShampoo\t20.00\tnobody\tHair",
            "333\tGel\t-5\tacme\tHair",
            "444\tComb\tabc\tacme\tHair",
            "555\tBrush\t30.00\tacme\tHair",
        )

        self.assertEqual(result.rows[0].error, result.rows[1].error)
        self.assertIn("Duplicate barcode '111'", result.rows[0].error)
        self.assertEqual(result.rows[2].error, "Client with name 'nobody' does not exist.")
        self.assertEqual(result.rows[3].error, "MRP cannot be negative.")
        self.assertEqual(result.rows[4].error, "Invalid number format for MRP: 'abc'")
        self.assertEqual(result.rows[5].status, SUCCESS)

        self.assertFalse(Product.objects.filter(barcode="111").exists())
        brush = Product.objects.get(barcode="555")
        self.assertEqual(brush.mrp, Decimal("30.00"))
        self.assertEqual(brush.category, "hair")
        self.assertEqual(Inventory.objects.get(product=brush).quantity, 0)

    def test_keep_first_duplicate_commits_first_occurrence(self):
        result = self.upload(
            "111\tSoap\t10.00\tacme\tBath",
            "111\tSoap B\t11.00\tacme\tBath",
            keep_first_duplicate=True,
        )
        self.assertEqual(result.rows[0].status, SUCCESS)
        self.assertIn("row #2", result.rows[1].error)
        self.assertEqual(Product.objects.get(barcode="111").name, "Soap")

    def test_existing_barcode_is_rejected(self):
        result = self.upload(" EXISTING-1 \tNew Soap\t10\tacme\tbath")
        self.assertEqual(result.rows[0].error, "Barcode 'existing-1' already exists in the database.")
        self.assertEqual(result.committed, [])

    def test_empty_fields_are_rejected(self):
        result = self.upload("\tSoap\t10\tacme\tbath", "999\t \t10\tacme\tbath")
        self.assertEqual(result.rows[0].error, "Barcode cannot be empty.")
        self.assertEqual(result.rows[1].error, "Product name cannot be empty.")

    def test_over_long_cells_are_row_errors(self):
        result = self.upload(
            "b" * 65 + "\tSoap\t10\tacme\tbath",
            "777\t" + "n" * 256 + "\t10\tacme\tbath",
            "888\tSoap\t10\tacme\t" + "c" * 256,
            "999\tComb\t4.00\tacme\thair",
        )

        self.assertEqual(result.rows[0].error, "Barcode cannot be longer than 64 characters.")
        self.assertEqual(result.rows[1].error, "Product name cannot be longer than 255 characters.")
        self.assertEqual(result.rows[2].error, "Category cannot be longer than 255 characters.")
        self.assertEqual(result.rows[3].status, SUCCESS)
        self.assertTrue(Product.objects.filter(barcode="999").exists())
        self.assertFalse(Product.objects.filter(barcode__in=["777", "888"]).exists())

    def test_report_layout(self):
        result = self.upload(
            "111\tSoap\t10.00\tacme\tbath",
            "222\tbroken row",
            "333\tGel\t-1\tacme\tbath",
        )
        lines = report_lines(result)

        self.assertEqual(lines[0], PRODUCT_HEADER_LINE + "\t" + STATUS_COLUMN)
        self.assertEqual(lines[1], "111\tSoap\t10.00\tacme\tbath\tSUCCESS")
        self.assertEqual(lines[2], "333\tGel\t-1\tacme\tbath\tMRP cannot be negative.")
        self.assertEqual(lines[3], "")
        self.assertEqual(lines[4], MALFORMED_MARKER)
        self.assertIn("row #3", lines[5])

    def test_batches_smaller_than_input(self):
        lines = [f"b{i}\tItem {i}\t1.00\tacme\tmisc" for i in range(7)]
        result = self.upload(*lines, batch_size=3)
        self.assertEqual(len(result.committed), 7)
        self.assertEqual(Inventory.objects.filter(product__barcode__startswith="b").count(), 7)


class InventoryUploadTests(TestCase):

    def setUp(self):
        acme = ClientService.create("acme")
        self.soap = ProductService.create("111", "Soap", "bath", "10.00", acme.id)
        self.gel = ProductService.create("222", "Gel", "hair", "5.00", acme.id)

    def upload(self, *lines, **kwargs):
        parsed = parse_content(tsv("barcode\tquantity", *lines), INVENTORY_HEADERS)
        return InventoryUploader(**kwargs).upload(parsed)

    def test_sets_absolute_quantities(self):
        result = self.upload("111\t40", "222\t0", "999\t5", "111x\tabc")

        self.assertEqual(result.rows[0].status, SUCCESS)
        self.assertEqual(result.rows[1].status, SUCCESS)
        self.assertEqual(result.rows[2].error, "Product with barcode '999' does not exist.")
        self.assertEqual(result.rows[3].error, "Product with barcode '111x' does not exist.")

        stock = Inventory.objects.get(product=self.soap)
        self.assertEqual(stock.quantity, 40)
        self.assertEqual(stock.version, 1)

    def test_invalid_and_negative_quantities(self):
        result = self.upload("111\tten", "222\t-3")
        self.assertEqual(result.rows[0].error, "Invalid number format for quantity: 'ten'")
        self.assertEqual(result.rows[1].error, "Quantity cannot be negative.")
        self.assertEqual(Inventory.objects.get(product=self.gel).quantity, 0)

    def test_quantity_above_column_limit_is_row_error(self):
        result = self.upload("111\t40", "222\t99999999999999999999")

        self.assertEqual(result.rows[0].status, SUCCESS)
        self.assertEqual(result.rows[1].error, "Quantity cannot exceed 2147483647.")
        self.assertEqual(Inventory.objects.get(product=self.soap).quantity, 40)
        self.assertEqual(Inventory.objects.get(product=self.gel).quantity, 0)

    def test_duplicate_barcodes_rejected(self):
        result = self.upload("111\t4", "111\t5", "222\t6")
        self.assertIsNotNone(result.rows[0].error)
        self.assertIsNotNone(result.rows[1].error)
        self.assertEqual(Inventory.objects.get(product=self.soap).quantity, 0)
        self.assertEqual(Inventory.objects.get(product=self.gel).quantity, 6)


class UploadAPITests(APITestCase):

    def setUp(self):
        self.client = APIClient()
        self.admin = User.objects.create_user(username="admin", password="testpass123", is_staff=True)
        self.clerk = User.objects.create_user(username="clerk", password="testpass123")
        Client.objects.create(name="acme")

    def test_product_upload_returns_report(self):
        self.client.force_authenticate(user=self.admin)
        content = tsv(PRODUCT_HEADER_LINE, "111\tSoap\t10\tacme\tbath", "222\tGel\t-1\tacme\tbath")
        response = self.client.post(
            reverse("upload-products"),
            {"file": SimpleUploadedFile("products.tsv", content.encode())},
            format="multipart",
        )

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response["Content-Type"], "text/tab-separated-values")
        body = response.content.decode().splitlines()
        self.assertTrue(body[1].endswith("\tSUCCESS"))
        self.assertTrue(body[2].endswith("MRP cannot be negative."))
        self.assertTrue(Product.objects.filter(barcode="111").exists())

    def test_bad_header_is_400(self):
        self.client.force_authenticate(user=self.admin)
        response = self.client.post(
            reverse("upload-products"),
            {"file": SimpleUploadedFile("products.tsv", b"sku\tname\n1\tx\n")},
            format="multipart",
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data["code"], "validation_error")

    def test_missing_file_is_400(self):
        self.client.force_authenticate(user=self.admin)
        response = self.client.post(reverse("upload-inventory"), {}, format="multipart")
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_non_staff_forbidden(self):
        self.client.force_authenticate(user=self.clerk)
        response = self.client.post(
            reverse("upload-inventory"),
            {"file": SimpleUploadedFile("inv.tsv", b"barcode\tquantity\n")},
            format="multipart",
        )
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)


@override_settings(UPLOAD_KEEP_FIRST_DUPLICATE=False)
class UploadCommandTests(TestCase):

    def setUp(self):
        Client.objects.create(name="acme")
        self.tmpdir = tempfile.mkdtemp()

    def write(self, name, content):
        path = os.path.join(self.tmpdir, name)
        with open(path, "w", encoding="utf-8") as f:
            f.write(content)
        return path

    def test_upload_products_writes_report(self):
        path = self.write("products.tsv", tsv(PRODUCT_HEADER_LINE, "111\tSoap\t10\tacme\tbath"))
        call_command("upload_products", path, stdout=StringIO())

        with open(os.path.join(self.tmpdir, "products.report.tsv"), encoding="utf-8") as f:
            lines = f.read().splitlines()
        self.assertEqual(lines[1], "111\tSoap\t10\tacme\tbath\tSUCCESS")
        self.assertTrue(Product.objects.filter(barcode="111").exists())

    def test_upload_inventory_with_bad_header_fails(self):
        path = self.write("inv.tsv", tsv("barcode\tqty", "111\t4"))
        with self.assertRaises(CommandError):
            call_command("upload_inventory", path, stdout=StringIO())

    def test_missing_file(self):
        with self.assertRaises(CommandError):
            call_command("upload_products", os.path.join(self.tmpdir, "nope.tsv"))
