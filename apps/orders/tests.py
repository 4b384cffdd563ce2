# apps/orders/tests.py
import uuid
from unittest.mock import patch
from datetime import timedelta
from decimal import Decimal

from django.contrib.auth import get_user_model
from django.test import TestCase
from django.urls import reverse
from django.utils import timezone

from rest_framework.test import APITestCase, APIClient
from rest_framework import status

from apps.catalog.services import ClientService, ProductService
from apps.inventory.models import Inventory
from apps.inventory.services import InventoryService
from apps.orders.models import Order, OrderItem
from apps.orders.services import OrderItemService, OrderService
from apps.utils.exceptions import (
    BusinessLogicException,
    ConflictException,
    NotFoundException,
    ValidationException,
)

User = get_user_model()


class OrderFixtureMixin:

    def make_product(self, barcode, quantity, mrp="100.00"):
        product = ProductService.create(barcode, f"Item {barcode}", "general", mrp, self.acme.id)
        InventoryService.bulk_set([(product.id, quantity)])
        return product

    def stock(self, product):
        return Inventory.objects.get(product=product).quantity

    def line(self, product, quantity, price):
        return {"product_id": product.id, "quantity": quantity, "selling_price": Decimal(price)}

    def assert_total_matches_lines(self, order_id):
        order = Order.objects.get(pk=order_id)
        expected = sum(
            (i.quantity * i.selling_price for i in OrderItem.objects.filter(order=order)),
            Decimal("0.00"),
        )
        self.assertEqual(order.total_amount, expected)


class OrderInsertTests(OrderFixtureMixin, TestCase):

    def setUp(self):
        self.acme = ClientService.create("acme")
        self.a = self.make_product("a", 3)
        self.b = self.make_product("b", 10)

    def test_insert_deducts_and_totals(self):
        order, items = OrderService.insert(
            "Asha", "9999999999",
            [self.line(self.a, 2, "50.00"), self.line(self.b, 3, "10.50")],
        )

        self.assertEqual(order.status, Order.Status.CREATED)
        self.assertEqual(len(items), 2)
        self.assertEqual(order.total_amount, Decimal("131.50"))
        self.assertEqual(self.stock(self.a), 1)
        self.assertEqual(self.stock(self.b), 7)
        self.assert_total_matches_lines(order.id)

    def test_insert_is_all_or_nothing(self):
        with self.assertRaises(BusinessLogicException) as ctx:
            OrderService.insert(
                "Asha", "9999999999",
                [self.line(self.a, 5, "10.00"), self.line(self.b, 1, "10.00")],
            )

        self.assertIn("Not enough items in stock", ctx.exception.message)
        self.assertEqual(self.stock(self.a), 3)
        self.assertEqual(self.stock(self.b), 10)
        self.assertFalse(Order.objects.exists())

    def test_failure_on_later_line_rolls_back_earlier_deductions(self):
        with self.assertRaises(BusinessLogicException):
            OrderService.insert(
                "Asha", "9999999999",
                [self.line(self.b, 4, "10.00"), self.line(self.a, 5, "10.00")],
            )
        self.assertEqual(self.stock(self.b), 10)
        self.assertFalse(OrderItem.objects.exists())

    def test_price_above_mrp_rejected(self):
        with self.assertRaises(BusinessLogicException) as ctx:
            OrderService.insert("Asha", "1", [self.line(self.a, 1, "100.01")])
        self.assertIn("cannot be greater than its MRP", ctx.exception.message)
        self.assertEqual(self.stock(self.a), 3)

    def test_empty_and_duplicate_lines_rejected(self):
        with self.assertRaises(BusinessLogicException):
            OrderService.insert("Asha", "1", [])
        with self.assertRaises(BusinessLogicException):
            OrderService.insert("Asha", "1", [self.line(self.a, 1, "1"), self.line(self.a, 1, "1")])

    def test_unknown_product(self):
        with self.assertRaises(NotFoundException):
            OrderService.insert(
                "Asha", "1",
                [{"product_id": uuid.uuid4(), "quantity": 1, "selling_price": Decimal("1")}],
            )
        self.assertFalse(Order.objects.exists())

    def test_non_positive_quantity(self):
        with self.assertRaises(ValidationException):
            OrderService.insert("Asha", "1", [self.line(self.a, 0, "1")])

    def test_non_integer_quantity(self):
        for quantity in [2.5, "abc", "3", None, True]:
            with self.assertRaises(ValidationException):
                OrderService.insert("Asha", "1", [self.line(self.a, quantity, "1")])
        self.assertFalse(Order.objects.exists())



class OrderItemTests(OrderFixtureMixin, TestCase):

    def setUp(self):
        self.acme = ClientService.create("acme")
        self.p = self.make_product("p", 100)
        self.q = self.make_product("q", 5, mrp="20.00")
        self.order, (self.item,) = OrderService.insert("Ravi", "1", [self.line(self.p, 10, "90.00")])

    def test_update_settles_stock_and_total_by_line_value(self):
        OrderItemService.update(self.order.id, self.item.id, 20, Decimal("80.00"))

        self.assertEqual(self.stock(self.p), 80)
        order = Order.objects.get(pk=self.order.id)
        # 20 x 80 - 10 x 90
        self.assertEqual(order.total_amount, Decimal("900.00") + Decimal("700.00"))
        self.assert_total_matches_lines(order.id)

    def test_update_down_restocks(self):
        OrderItemService.update(self.order.id, self.item.id, 4, Decimal("90.00"))
        self.assertEqual(self.stock(self.p), 96)
        self.assert_total_matches_lines(self.order.id)

    def test_update_failure_leaves_everything(self):
        with self.assertRaises(BusinessLogicException):
            OrderItemService.update(self.order.id, self.item.id, 500, Decimal("1.00"))

        self.assertEqual(self.stock(self.p), 90)
        item = OrderItem.objects.get(pk=self.item.id)
        self.assertEqual(item.quantity, 10)
        self.assertEqual(Order.objects.get(pk=self.order.id).total_amount, Decimal("900.00"))

    def test_add_and_delete_line(self):
        item = OrderItemService.add(self.order.id, self.q.id, 2, Decimal("15.00"))
        self.assertEqual(self.stock(self.q), 3)
        self.assert_total_matches_lines(self.order.id)

        OrderItemService.delete_by_id(self.order.id, item.id)
        self.assertEqual(self.stock(self.q), 5)
        self.assertFalse(OrderItem.objects.filter(pk=item.id).exists())
        self.assertEqual(Order.objects.get(pk=self.order.id).total_amount, Decimal("900.00"))

    def test_add_existing_product_rejected(self):
        with self.assertRaises(BusinessLogicException) as ctx:
            OrderItemService.add(self.order.id, self.p.id, 1, Decimal("1.00"))
        self.assertEqual(ctx.exception.message, "Order Item already exists")

    @patch('django.db.models.query.QuerySet.exists', return_value=False)
    def test_add_racing_same_product_is_conflict(self, mock_exists):
        # both requests pass the existence check; the unique line constraint decides
        with self.assertRaises(ConflictException):
            OrderItemService.add(self.order.id, self.p.id, 1, Decimal("1.00"))

        self.assertEqual(self.stock(self.p), 90)
        self.assertEqual(OrderItem.objects.filter(order=self.order).count(), 1)
        self.assertEqual(Order.objects.get(pk=self.order.id).total_amount, Decimal("900.00"))

    def test_add_above_mrp_rejected(self):
        with self.assertRaises(BusinessLogicException):
            OrderItemService.add(self.order.id, self.q.id, 1, Decimal("20.01"))
        self.assertEqual(self.stock(self.q), 5)

    def test_item_must_belong_to_order(self):
        other, (other_item,) = OrderService.insert("Mina", "2", [self.line(self.q, 1, "10.00")])
        with self.assertRaises(BusinessLogicException):
            OrderItemService.update(self.order.id, other_item.id, 2, Decimal("10.00"))
        with self.assertRaises(BusinessLogicException):
            OrderItemService.delete_by_id(self.order.id, other_item.id)

    def test_reads(self):
        self.assertEqual([i.id for i in OrderItemService.get_by_order_id(self.order.id)], [self.item.id])
        grouped = OrderItemService.get_by_order_ids([self.order.id])
        self.assertEqual(len(grouped[self.order.id]), 1)
        self.assertEqual(OrderItemService.get_by_order_ids([]), {})
        self.assertEqual(OrderItemService.get_all().count(), 1)
        self.assertEqual(OrderService.get_all().count(), 1)
        with self.assertRaises(NotFoundException):
            OrderItemService.get_check_by_id(uuid.uuid4())


class OrderLifecycleTests(OrderFixtureMixin, TestCase):

    def setUp(self):
        self.acme = ClientService.create("acme")
        self.p = self.make_product("p", 10)
        self.order, (self.item,) = OrderService.insert("Ravi", "1", [self.line(self.p, 4, "25.00")])

    def test_cancel_restocks_once(self):
        OrderService.cancel(self.order.id)
        self.assertEqual(self.stock(self.p), 10)
        self.assertEqual(Order.objects.get(pk=self.order.id).status, Order.Status.CANCELLED)

        with self.assertRaises(BusinessLogicException) as ctx:
            OrderService.cancel(self.order.id)
        self.assertIn("CANCELLED", ctx.exception.message)
        self.assertEqual(self.stock(self.p), 10)

    def test_invoice_keeps_stock_deducted(self):
        OrderService.mark_invoiced(self.order.id)
        self.assertEqual(self.stock(self.p), 6)

        with self.assertRaises(BusinessLogicException) as ctx:
            OrderService.mark_invoiced(self.order.id)
        self.assertIn("Current status: INVOICED", ctx.exception.message)

    def test_cancelled_order_cannot_be_invoiced(self):
        OrderService.cancel(self.order.id)
        with self.assertRaises(BusinessLogicException):
            OrderService.mark_invoiced(self.order.id)

    def test_terminal_orders_reject_every_mutation(self):
        OrderService.mark_invoiced(self.order.id)
        q = self.make_product("q", 10)

        attempts = [
            lambda: OrderService.update_by_id(self.order.id, customer_name="New"),
            lambda: OrderService.update_by_id(self.order.id, status=Order.Status.CANCELLED),
            lambda: OrderService.recompute_amount(self.order.id, Decimal("5")),
            lambda: OrderItemService.add(self.order.id, q.id, 1, Decimal("1")),
            lambda: OrderItemService.update(self.order.id, self.item.id, 1, Decimal("1")),
            lambda: OrderItemService.delete_by_id(self.order.id, self.item.id),
        ]
        for attempt in attempts:
            with self.assertRaises(BusinessLogicException) as ctx:
                attempt()
            self.assertIn("INVOICED", ctx.exception.message)

        self.assertEqual(self.stock(self.p), 6)
        self.assertEqual(self.stock(q), 10)

    def test_update_customer_fields(self):
        order = OrderService.update_by_id(self.order.id, customer_name="Ravi K", customer_phone="2")
        self.assertEqual(order.customer_name, "Ravi K")
        self.assertEqual(order.version, self.order.version + 1)

    def test_unknown_status_rejected(self):
        with self.assertRaises(ValidationException):
            OrderService.update_by_id(self.order.id, status="SHIPPED")

    def test_invoice_path_only_after_invoicing(self):
        with self.assertRaises(BusinessLogicException):
            OrderService.update_invoice_path(self.order.id, "/invoices/1.pdf")

        OrderService.mark_invoiced(self.order.id)
        order = OrderService.update_invoice_path(self.order.id, "/invoices/1.pdf")
        self.assertEqual(order.invoice_path, "/invoices/1.pdf")

        with self.assertRaises(ValidationException):
            OrderService.update_invoice_path(self.order.id, "")

    def test_recompute_amount(self):
        OrderService.recompute_amount(self.order.id, Decimal("-100.00"))
        self.assertEqual(Order.objects.get(pk=self.order.id).total_amount, Decimal("0.00"))

        with self.assertRaises(BusinessLogicException):
            OrderService.recompute_amount(self.order.id, Decimal("-0.01"))

    def test_delete_created_order_restocks(self):
        OrderService.delete_by_id(self.order.id)
        self.assertEqual(self.stock(self.p), 10)
        self.assertFalse(Order.objects.filter(pk=self.order.id).exists())

    def test_delete_invoiced_order_keeps_stock(self):
        OrderService.mark_invoiced(self.order.id)
        OrderService.delete_by_id(self.order.id)
        self.assertEqual(self.stock(self.p), 6)

    def test_stale_order_write_conflicts(self):
        stale = Order.objects.get(pk=self.order.id)
        OrderService.update_by_id(self.order.id, customer_name="Someone else")

        with self.assertRaises(ConflictException):
            OrderService.apply_amount_delta(stale, Decimal("1.00"))
        self.assertEqual(Order.objects.get(pk=self.order.id).total_amount, Decimal("100.00"))

    def test_missing_order(self):
        with self.assertRaises(NotFoundException):
            OrderService.get_check_by_id(uuid.uuid4())


class OrderSearchTests(OrderFixtureMixin, TestCase):

    def setUp(self):
        self.acme = ClientService.create("acme")
        self.p = self.make_product("p", 100)
        for _ in range(5):
            OrderService.insert("Ravi", "1", [self.line(self.p, 1, "1.00")])
        OrderService.cancel(Order.objects.first().id)

    def test_pages_and_filters(self):
        page = OrderService.get_by_filters(page=1, page_size=2)
        self.assertEqual(page.total_elements, 5)
        self.assertEqual(page.total_pages, 3)
        self.assertEqual(len(page.results), 2)

        last = OrderService.get_by_filters(page=3, page_size=2)
        self.assertEqual(len(last.results), 1)

        beyond = OrderService.get_by_filters(page=9, page_size=2)
        self.assertEqual(beyond.results, [])

        cancelled = OrderService.get_by_filters(status=Order.Status.CANCELLED)
        self.assertEqual(cancelled.total_elements, 1)

    def test_date_range(self):
        now = timezone.now()
        page = OrderService.get_by_filters(start_date=now - timedelta(hours=1), end_date=now + timedelta(hours=1))
        self.assertEqual(page.total_elements, 5)

        empty = OrderService.get_by_filters(start_date=now + timedelta(hours=1))
        self.assertEqual(empty.total_elements, 0)

        with self.assertRaises(ValidationException):
            OrderService.get_by_filters(start_date=now, end_date=now - timedelta(days=1))


class OrderAPITests(OrderFixtureMixin, APITestCase):

    def setUp(self):
        self.client = APIClient()
        self.user = User.objects.create_user(username="cashier", password="testpass123")
        self.client.force_authenticate(user=self.user)
        self.acme = ClientService.create("acme")
        self.p = self.make_product("p", 10)
        self.q = self.make_product("q", 10)

    def create_order(self, quantity=2):
        return self.client.post(
            reverse("orders-list"),
            {
                "customer_name": "Asha",
                "customer_phone": "9999999999",
                "items": [{"product_id": str(self.p.id), "quantity": quantity, "selling_price": "50.00"}],
            },
            format="json",
        )

    def test_create_and_retrieve(self):
        response = self.create_order()
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data["status"], "CREATED")
        self.assertEqual(Decimal(response.data["total_amount"]), Decimal("100.00"))
        self.assertEqual(len(response.data["items"]), 1)

        detail = self.client.get(reverse("orders-detail", args=[response.data["id"]]))
        self.assertEqual(detail.status_code, status.HTTP_200_OK)
        self.assertEqual(detail.data["items"][0]["barcode"], "p")

    def test_insufficient_stock_is_400(self):
        response = self.create_order(quantity=11)
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data["code"], "business_error")
        self.assertEqual(self.stock(self.p), 10)

    def test_shape_validation(self):
        response = self.client.post(
            reverse("orders-list"),
            {"customer_name": "Asha", "customer_phone": "1", "items": []},
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_unknown_order_is_404(self):
        response = self.client.get(reverse("orders-detail", args=[uuid.uuid4()]))
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(response.data["code"], "not_found")

    def test_item_endpoints(self):
        order_id = self.create_order().data["id"]

        added = self.client.post(
            reverse("orders-items", args=[order_id]),
            {"product_id": str(self.q.id), "quantity": 3, "selling_price": "10.00"},
            format="json",
        )
        self.assertEqual(added.status_code, status.HTTP_201_CREATED)
        item_id = added.data["id"]

        updated = self.client.put(
            reverse("orders-item-detail", args=[order_id, item_id]),
            {"quantity": 1, "selling_price": "10.00"},
            format="json",
        )
        self.assertEqual(updated.status_code, status.HTTP_200_OK)
        self.assertEqual(self.stock(self.q), 9)

        deleted = self.client.delete(reverse("orders-item-detail", args=[order_id, item_id]))
        self.assertEqual(deleted.status_code, status.HTTP_204_NO_CONTENT)
        self.assertEqual(self.stock(self.q), 10)
        self.assert_total_matches_lines(order_id)

    def test_invoice_then_cancel_rejected(self):
        order_id = self.create_order().data["id"]

        invoiced = self.client.post(reverse("orders-invoice", args=[order_id]))
        self.assertEqual(invoiced.status_code, status.HTTP_200_OK)
        self.assertEqual(invoiced.data["status"], "INVOICED")

        cancelled = self.client.post(reverse("orders-cancel", args=[order_id]))
        self.assertEqual(cancelled.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn("INVOICED", cancelled.data["error"])

    def test_patch_and_list(self):
        order_id = self.create_order().data["id"]
        response = self.client.patch(
            reverse("orders-detail", args=[order_id]),
            {"status": "CANCELLED"},
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(self.stock(self.p), 10)

        listing = self.client.get(reverse("orders-list"), {"status": "CANCELLED", "page_size": 5})
        self.assertEqual(listing.data["count"], 1)
        self.assertEqual(listing.data["total_pages"], 1)

    def test_bad_date_range_is_400(self):
        response = self.client.get(
            reverse("orders-list"),
            {"start_date": "2024-02-01T00:00:00Z", "end_date": "2024-01-01T00:00:00Z"},
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data["code"], "validation_error")

    def test_delete_order(self):
        order_id = self.create_order().data["id"]
        response = self.client.delete(reverse("orders-detail", args=[order_id]))
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.assertEqual(self.stock(self.p), 10)
