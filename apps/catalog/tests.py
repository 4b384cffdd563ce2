# apps/catalog/tests.py
import uuid
from decimal import Decimal

from django.test import TestCase
from django.urls import reverse
from django.contrib.auth import get_user_model

from rest_framework.test import APITestCase, APIClient
from rest_framework import status

from apps.inventory.models import Inventory
from apps.utils.exceptions import BusinessLogicException, NotFoundException, ValidationException
from .models import Client, Product
from .services import ClientService, ProductService

User = get_user_model()


class ClientServiceTests(TestCase):
    def test_names_are_stored_normalized_and_unique(self):
        client = ClientService.create("  Acme Corp ")
        self.assertEqual(client.name, "acme corp")

        with self.assertRaises(BusinessLogicException):
            ClientService.create("ACME CORP")

    def test_empty_name_rejected(self):
        with self.assertRaises(BusinessLogicException):
            ClientService.create("   ")

    def test_get_by_names_matches_normalized(self):
        ClientService.create("acme")
        found = ClientService.get_by_names([" ACME ", "other", ""])
        self.assertEqual(list(found.keys()), ["acme"])

    def test_update_renames_normalized(self):
        client = ClientService.create("acme")
        ClientService.create("globex")

        renamed = ClientService.update(client.id, " Acme Foods ")
        self.assertEqual(renamed.name, "acme foods")
        self.assertEqual(Client.objects.get(id=client.id).name, "acme foods")

        # keeping its own name is not a clash
        ClientService.update(client.id, "ACME FOODS")
        with self.assertRaises(BusinessLogicException):
            ClientService.update(client.id, "Globex")
        with self.assertRaises(BusinessLogicException):
            ClientService.update(client.id, " ")
        with self.assertRaises(NotFoundException):
            ClientService.update(uuid.uuid4(), "initech")



class ProductServiceTests(TestCase):
    def setUp(self):
        self.acme = ClientService.create("acme")

    def test_create_opens_stock_row_at_zero(self):
        product = ProductService.create(" ABC-1 ", "Soap", "Bath", "25.50", self.acme.id)

        self.assertEqual(product.barcode, "abc-1")
        self.assertEqual(product.category, "bath")
        stock = Inventory.objects.get(product=product)
        self.assertEqual(stock.quantity, 0)
        self.assertEqual(stock.version, 0)

    def test_duplicate_barcode_rejected(self):
        ProductService.create("abc-1", "Soap", "bath", "25.50", self.acme.id)
        with self.assertRaises(BusinessLogicException):
            ProductService.create("ABC-1", "Soap 2", "bath", "10", self.acme.id)
        self.assertEqual(Product.objects.count(), 1)

    def test_negative_mrp_rejected(self):
        with self.assertRaises(BusinessLogicException):
            ProductService.create("abc-2", "Soap", "bath", "-1", self.acme.id)
        self.assertFalse(Inventory.objects.exists())

    def test_unknown_client(self):
        with self.assertRaises(NotFoundException):
            ProductService.create("abc-3", "Soap", "bath", "1", uuid.uuid4())

    def test_get_check_by_ids(self):
        p = ProductService.create("abc-4", "Soap", "bath", "1", self.acme.id)

        found = ProductService.get_check_by_ids([str(p.id)])
        self.assertEqual(found[p.id], p)

        with self.assertRaises(NotFoundException):
            ProductService.get_check_by_ids([p.id, uuid.uuid4()])
        with self.assertRaises(ValidationException):
            ProductService.get_check_by_ids(["not-a-uuid"])

    def test_get_check_by_barcode(self):
        p = ProductService.create("abc-5", "Soap", "bath", "1", self.acme.id)
        self.assertEqual(ProductService.get_check_by_barcode(" ABC-5"), p)
        with self.assertRaises(NotFoundException):
            ProductService.get_check_by_barcode("missing")

    def test_update_replaces_fields(self):
        p = ProductService.create("abc-6", "Soap", "bath", "10", self.acme.id)

        updated = ProductService.update(p.id, " ABC-7 ", " Soap XL ", "Bath", "12.50")

        self.assertEqual(updated.barcode, "abc-7")
        self.assertEqual(updated.name, "Soap XL")
        stored = Product.objects.get(id=p.id)
        self.assertEqual(stored.mrp, Decimal("12.50"))
        self.assertEqual(stored.category, "bath")

    def test_update_rules(self):
        p = ProductService.create("abc-8", "Soap", "bath", "10", self.acme.id)
        ProductService.create("abc-9", "Gel", "hair", "5", self.acme.id)
        other = ClientService.create("globex")

        with self.assertRaises(BusinessLogicException):
            ProductService.update(p.id, "abc-9", "Soap", "bath", "10")
        with self.assertRaises(BusinessLogicException):
            ProductService.update(p.id, "abc-8", "Soap", "bath", "-0.01")
        with self.assertRaises(BusinessLogicException):
            ProductService.update(p.id, "abc-8", "Soap", "bath", "10", client_id=other.id)
        with self.assertRaises(NotFoundException):
            ProductService.update(uuid.uuid4(), "abc-10", "Soap", "bath", "10")

        # same client and own barcode are accepted
        ProductService.update(p.id, "ABC-8", "Soap", "bath", "11", client_id=self.acme.id)
        self.assertEqual(Product.objects.get(id=p.id).mrp, Decimal("11.00"))

    def test_delete_drops_stock_row(self):
        p = ProductService.create("abc-11", "Soap", "bath", "10", self.acme.id)

        ProductService.delete_by_id(p.id)

        self.assertFalse(Product.objects.filter(id=p.id).exists())
        self.assertFalse(Inventory.objects.filter(product_id=p.id).exists())
        with self.assertRaises(NotFoundException):
            ProductService.delete_by_id(p.id)

    def test_delete_keeps_products_on_orders(self):
        from apps.inventory.services import InventoryService
        from apps.orders.services import OrderService

        p = ProductService.create("abc-12", "Soap", "bath", "10", self.acme.id)
        InventoryService.update_by_product_id(p.id, 5)
        OrderService.insert("Asha", "1", [{"product_id": p.id, "quantity": 1, "selling_price": "10"}])

        with self.assertRaises(BusinessLogicException):
            ProductService.delete_by_id(p.id)
        self.assertTrue(Product.objects.filter(id=p.id).exists())
        self.assertEqual(Inventory.objects.get(product=p).quantity, 4)



class ProductAPITests(APITestCase):
    def setUp(self):
        self.client = APIClient()
        self.user = User.objects.create_user(username="clerk", password="testpass")
        self.acme = Client.objects.create(name="acme")

    def test_requires_authentication(self):
        response = self.client.get(reverse("product-list"))
        self.assertIn(response.status_code, (status.HTTP_401_UNAUTHORIZED, status.HTTP_403_FORBIDDEN))

    def test_create_and_fetch_product(self):
        self.client.force_authenticate(user=self.user)
        response = self.client.post(
            reverse("product-list"),
            {
                "barcode": "890-1",
                "name": "Soap",
                "category": "bath",
                "mrp": "25.00",
                "client_id": str(self.acme.id),
            },
            format="json",
        )

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data["quantity"], 0)
        self.assertEqual(response.data["client_name"], "acme")

        detail = self.client.get(reverse("product-detail", args=[response.data["id"]]))
        self.assertEqual(detail.status_code, status.HTTP_200_OK)
        self.assertEqual(Decimal(detail.data["mrp"]), Decimal("25.00"))

    def test_duplicate_barcode_is_400(self):
        self.client.force_authenticate(user=self.user)
        payload = {
            "barcode": "890-2",
            "name": "Soap",
            "category": "bath",
            "mrp": "5.00",
            "client_id": str(self.acme.id),
        }
        self.client.post(reverse("product-list"), payload, format="json")
        response = self.client.post(reverse("product-list"), payload, format="json")

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data["code"], "business_error")

    def test_create_client(self):
        self.client.force_authenticate(user=self.user)
        response = self.client.post(reverse("client-list"), {"name": " Globex "}, format="json")
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data["name"], "globex")

    def test_retrieve_and_rename_client(self):
        self.client.force_authenticate(user=self.user)
        url = reverse("client-detail", args=[self.acme.id])

        self.assertEqual(self.client.get(url).data["name"], "acme")
        response = self.client.put(url, {"name": " Acme Foods "}, format="json")

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["name"], "acme foods")

    def test_update_and_delete_product(self):
        self.client.force_authenticate(user=self.user)
        product = ProductService.create("890-3", "Soap", "bath", "5.00", self.acme.id)
        url = reverse("product-detail", args=[product.id])

        response = self.client.put(
            url,
            {"barcode": "890-3", "name": "Soap Bar", "category": "bath", "mrp": "6.00"},
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["name"], "Soap Bar")
        self.assertEqual(Decimal(response.data["mrp"]), Decimal("6.00"))

        response = self.client.delete(url)
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.assertFalse(Product.objects.filter(id=product.id).exists())

        response = self.client.delete(url)
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
