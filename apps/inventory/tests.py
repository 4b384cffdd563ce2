import uuid

from django.contrib.auth import get_user_model
from django.test import TestCase
from django.urls import reverse
from rest_framework import status
from rest_framework.test import APIClient, APITestCase

from apps.catalog.services import ClientService, ProductService
from apps.utils.exceptions import (
    BusinessLogicException,
    ConflictException,
    NotFoundException,
    ValidationException,
)
from .models import Inventory
from .services import InventoryService

User = get_user_model()


def make_product(barcode, client, mrp="100.00", quantity=0):
    product = ProductService.create(barcode, f"Product {barcode}", "general", mrp, client.id)
    if quantity:
        InventoryService.bulk_set([(product.id, quantity)])
    return product


class AdjustTests(TestCase):

    def setUp(self):
        self.acme = ClientService.create("acme")
        self.product = make_product("p1", self.acme, quantity=10)

    def stock(self):
        return Inventory.objects.get(product=self.product)

    def test_deduct_and_restock(self):
        InventoryService.deduct(self.product.id, 4)
        self.assertEqual(self.stock().quantity, 6)

        InventoryService.restock(self.product.id, 2)
        self.assertEqual(self.stock().quantity, 8)

    def test_adjust_settles_line_edit(self):
        # a line going from 3 to 5 units takes 2 more from stock
        InventoryService.adjust(self.product.id, 3, 5)
        self.assertEqual(self.stock().quantity, 8)

    def test_zero_delta_is_noop(self):
        before = self.stock()
        InventoryService.adjust(self.product.id, 7, 7)
        after = self.stock()
        self.assertEqual(after.quantity, 10)
        self.assertEqual(after.version, before.version)

    def test_insufficient_stock_leaves_row_untouched(self):
        before = self.stock()
        with self.assertRaises(BusinessLogicException) as ctx:
            InventoryService.deduct(self.product.id, 11)

        self.assertIn("Not enough items in stock", ctx.exception.message)
        self.assertIn("Required: 11, Available: 10", ctx.exception.message)
        after = self.stock()
        self.assertEqual(after.quantity, 10)
        self.assertEqual(after.version, before.version)

    def test_every_write_bumps_version(self):
        v0 = self.stock().version
        InventoryService.deduct(self.product.id, 1)
        InventoryService.deduct(self.product.id, 1)
        self.assertEqual(self.stock().version, v0 + 2)

    def test_unknown_product(self):
        with self.assertRaises(NotFoundException):
            InventoryService.deduct(uuid.uuid4(), 1)

    def test_stale_write_conflicts(self):
        stale = self.stock()
        InventoryService.deduct(self.product.id, 1)

        stale.quantity = 0
        with self.assertRaises(ConflictException):
            stale.save_versioned(["quantity"])
        self.assertEqual(self.stock().quantity, 9)


class BulkAndReadTests(TestCase):

    def setUp(self):
        acme = ClientService.create("acme")
        self.a = make_product("a", acme)
        self.b = make_product("b", acme)

    def test_bulk_set_overwrites_and_skips_unknown(self):
        updated = InventoryService.bulk_set(
            [(self.a.id, 5), (self.b.id, 50), (uuid.uuid4(), 9)], batch_size=1
        )

        self.assertEqual(len(updated), 2)
        self.assertEqual(Inventory.objects.get(product=self.a).quantity, 5)
        self.assertEqual(Inventory.objects.get(product=self.b).quantity, 50)
        self.assertEqual(Inventory.objects.get(product=self.a).version, 1)

    def test_bulk_set_empty(self):
        self.assertEqual(InventoryService.bulk_set([]), [])

    def test_bulk_set_bumps_stored_version_and_stales_older_readers(self):
        InventoryService.restock(self.a.id, 4)
        InventoryService.restock(self.a.id, 1)
        held = Inventory.objects.get(product=self.a)
        self.assertEqual(held.version, 2)

        InventoryService.bulk_set([(self.a.id, 12)])

        stored = Inventory.objects.get(product=self.a)
        self.assertEqual(stored.version, 3)
        self.assertEqual(stored.quantity, 12)

        held.quantity = 0
        with self.assertRaises(ConflictException):
            held.save_versioned(["quantity"])
        self.assertEqual(Inventory.objects.get(product=self.a).quantity, 12)


    def test_low_stock(self):
        InventoryService.bulk_set([(self.a.id, 3), (self.b.id, 30)])
        low = list(InventoryService.get_low_stock(10))
        self.assertEqual([s.product_id for s in low], [self.a.id])

    def test_get_by_product_ids(self):
        rows = InventoryService.get_by_product_ids([self.a.id])
        self.assertEqual(len(rows), 1)
        self.assertEqual(InventoryService.get_by_product_ids([]), [])

    def test_report_rows(self):
        InventoryService.bulk_set([(self.a.id, 7)])
        rows = {r["product__barcode"]: r for r in InventoryService.get_report_rows()}
        self.assertEqual(rows["a"]["quantity"], 7)
        self.assertEqual(rows["b"]["quantity"], 0)

class ManualCountTests(TestCase):

    def setUp(self):
        acme = ClientService.create("acme")
        self.a = make_product("a", acme, quantity=5)

    def stock(self):
        return Inventory.objects.get(product=self.a)

    def test_update_by_id(self):
        stock = InventoryService.update_by_id(self.stock().id, 30)
        self.assertEqual(stock.quantity, 30)
        self.assertEqual(self.stock().quantity, 30)
        self.assertEqual(self.stock().version, 2)

    def test_update_by_product_id(self):
        InventoryService.update_by_product_id(self.a.id, 0)
        self.assertEqual(self.stock().quantity, 0)

    def test_unknown_rows(self):
        with self.assertRaises(NotFoundException):
            InventoryService.update_by_id(uuid.uuid4(), 1)
        with self.assertRaises(NotFoundException):
            InventoryService.update_by_product_id(uuid.uuid4(), 1)

    def test_bad_quantities_rejected(self):
        for quantity in [None, -1, 2.5, "7", True, 2147483648]:
            with self.assertRaises(ValidationException):
                InventoryService.update_by_product_id(self.a.id, quantity)
        self.assertEqual(self.stock().quantity, 5)

    def test_stale_version_conflicts(self):
        held = self.stock()
        InventoryService.update_by_product_id(self.a.id, 9)

        held.quantity = 1
        with self.assertRaises(ConflictException):
            held.save_versioned(["quantity"])
        self.assertEqual(self.stock().quantity, 9)



class InventoryAPITests(APITestCase):

    def setUp(self):
        self.client = APIClient()
        self.user = User.objects.create_user(username="clerk", password="testpass")
        acme = ClientService.create("acme")
        self.a = make_product("a", acme, quantity=2)
        self.b = make_product("b", acme, quantity=40)
        self.client.force_authenticate(user=self.user)

    def test_list(self):
        response = self.client.get(reverse("inventory-list"))
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["count"], 2)

    def test_low_stock_threshold(self):
        response = self.client.get(reverse("inventory-low-stock"), {"threshold": 5})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([r["barcode"] for r in response.data["results"]], ["a"])

    def test_low_stock_bad_threshold(self):
        response = self.client.get(reverse("inventory-low-stock"), {"threshold": "lots"})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_read_only(self):
        response = self.client.post(reverse("inventory-list"), {"quantity": 5}, format="json")
        self.assertEqual(response.status_code, status.HTTP_405_METHOD_NOT_ALLOWED)

    def test_put_sets_quantity_by_id(self):
        stock = Inventory.objects.get(product=self.a)
        response = self.client.put(reverse("inventory-detail", args=[stock.id]), {"quantity": 17}, format="json")

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["quantity"], 17)
        self.assertEqual(Inventory.objects.get(product=self.a).quantity, 17)

    def test_put_sets_quantity_by_product(self):
        url = reverse("inventory-by-product", kwargs={"product_id": str(self.b.id)})
        response = self.client.put(url, {"quantity": 0}, format="json")

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(Inventory.objects.get(product=self.b).quantity, 0)

    def test_put_rejects_negative_and_unknown(self):
        url = reverse("inventory-by-product", kwargs={"product_id": str(self.b.id)})
        response = self.client.put(url, {"quantity": -4}, format="json")
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

        url = reverse("inventory-by-product", kwargs={"product_id": str(uuid.uuid4())})
        response = self.client.put(url, {"quantity": 4}, format="json")
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(Inventory.objects.get(product=self.b).quantity, 40)
