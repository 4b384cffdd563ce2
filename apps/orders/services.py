import uuid
import logging
from decimal import Decimal

from django.db import IntegrityError, transaction

from apps.utils.exceptions import BusinessLogicException, ConflictException, ValidationException
from apps.utils.pagination import paginate
from apps.utils.validators import check_date_range, check_not_none
from apps.inventory.services import InventoryService
from apps.catalog.services import ProductService
from .models import Order, OrderItem

logger = logging.getLogger(__name__)

CENTS = Decimal("0.01")


def _money(value) -> Decimal:
    if value is None:
        raise ValidationException("Selling price cannot be null")
    return Decimal(str(value)).quantize(CENTS)


def _check_quantity(quantity) -> int:
    if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
        raise ValidationException("Quantity must be a positive number")
    return quantity



def _check_price_ceiling(product, selling_price: Decimal):
    if selling_price < 0:
        raise ValidationException("Selling price cannot be negative")
    if selling_price > product.mrp:
        raise BusinessLogicException(
            f"Selling price for product '{product.name}' cannot be greater than its MRP: {product.mrp}"
        )


class OrderService:
    """
    Order header and its state machine:

        CREATED -> INVOICED   (terminal)
        CREATED -> CANCELLED  (terminal, restocks every line once)

    Every public mutation is one transaction; any failure discards all of it.
    """

    @staticmethod
    @transaction.atomic
    def insert(customer_name: str, customer_phone: str, items: list):
        """
        Creates an order with its lines.

        `items` is a list of {"product_id", "quantity", "selling_price"}.
        The total is computed up front for the whole batch; lines are then
        deducted and saved in input order. The first failing line aborts the
        whole order, including stock already deducted for earlier lines.
        """
        if not items:
            raise BusinessLogicException("Order must contain at least one item")

        lines = [
            (item["product_id"], _check_quantity(item["quantity"]), _money(item["selling_price"]))
            for item in items
        ]
        product_ids = [pid for pid, _, _ in lines]
        if len({str(pid) for pid in product_ids}) != len(product_ids):
            raise BusinessLogicException("An order cannot contain the same product twice")

        total = sum((qty * price for _, qty, price in lines), Decimal("0.00"))
        order = Order.objects.create(
            customer_name=customer_name,
            customer_phone=customer_phone,
            total_amount=total,
            status=Order.Status.CREATED,
        )

        products = ProductService.get_check_by_ids(product_ids)

        order_items = []
        for product_id, quantity, selling_price in lines:
            product = products[uuid.UUID(str(product_id))]
            order_items.append(
                OrderItemService.insert_line(order, product, quantity, selling_price)
            )

        logger.info(
            f"Order created with {len(order_items)} items, total {total}",
            extra={"order_id": order.id}
        )
        return order, order_items

    @staticmethod
    @transaction.atomic
    def update_by_id(order_id, status=None, customer_name=None, customer_phone=None) -> Order:
        """
        Patches status and/or customer fields of a CREATED order.
        Moving to CANCELLED restocks every line in the same transaction.
        """
        order = OrderService.get_check_mutable(order_id)
        changed = []

        if customer_name is not None:
            order.customer_name = customer_name
            changed.append("customer_name")
        if customer_phone is not None:
            order.customer_phone = customer_phone
            changed.append("customer_phone")

        if status is not None and status != order.status:
            if status not in Order.Status.values:
                raise ValidationException(f"Unknown order status: {status}")

            if status == Order.Status.CANCELLED:
                OrderService._restock_all(order)

            order.status = status
            changed.append("status")

        if changed:
            order.save_versioned(changed)
            logger.info(f"Order updated: {', '.join(changed)}", extra={"order_id": order.id})
        return order

    @staticmethod
    def cancel(order_id) -> Order:
        return OrderService.update_by_id(order_id, status=Order.Status.CANCELLED)

    @staticmethod
    @transaction.atomic
    def mark_invoiced(order_id) -> Order:
        """
        Transition: CREATED -> INVOICED. Forward only, nothing is restocked.
        """
        order = OrderService.get_check_by_id(order_id)

        if order.status != Order.Status.CREATED:
            raise BusinessLogicException(
                f"Only an order with status CREATED can be invoiced. Current status: {order.status}"
            )

        order.status = Order.Status.INVOICED
        order.save_versioned(["status"])
        logger.info("Order invoiced", extra={"order_id": order.id})
        return order

    @staticmethod
    @transaction.atomic
    def update_invoice_path(order_id, invoice_path: str) -> Order:
        """
        Records where the invoice service stored the rendered document.
        """
        if not invoice_path:
            raise ValidationException("File path cannot be empty")

        order = OrderService.get_check_by_id(order_id)
        if order.status != Order.Status.INVOICED:
            raise BusinessLogicException(
                f"Invoice path can only be recorded for an INVOICED order. Current status: {order.status}"
            )

        order.invoice_path = invoice_path
        order.save_versioned(["invoice_path"])
        return order

    @staticmethod
    @transaction.atomic
    def recompute_amount(order_id, delta) -> Order:
        """
        Adds one signed line-value delta (quantity x price) to the order total.
        """
        order = OrderService.get_check_mutable(order_id)
        return OrderService.apply_amount_delta(order, delta)

    @staticmethod
    def apply_amount_delta(order: Order, delta) -> Order:
        """
        Caller must already be inside a transaction and hold the `order` it
        checked for mutability; the CAS write fails if anyone changed it since.
        """
        delta = Decimal(str(delta))
        if delta == 0:
            return order

        updated_amount = order.total_amount + delta
        if updated_amount < 0:
            raise BusinessLogicException(
                f"Order total cannot become negative (current {order.total_amount}, change {delta})"
            )

        order.total_amount = updated_amount
        order.save_versioned(["total_amount"])
        return order

    @staticmethod
    @transaction.atomic
    def delete_by_id(order_id):
        """
        Hard delete, outside the normal lifecycle.
        Lines of a CREATED order are restocked first so no stock leaks.
        """
        order = OrderService.get_check_by_id(order_id)
        if order.status == Order.Status.CREATED:
            OrderService._restock_all(order)

        deleted, _ = Order.objects.filter(pk=order.pk, version=order.version).delete()
        if not deleted:
            raise ConflictException(f"Order {order_id} was modified concurrently. Please retry.")
        logger.info("Order deleted", extra={"order_id": order_id})

    @staticmethod
    def _restock_all(order: Order):
        for item in order.items.all():
            InventoryService.adjust(item.product_id, item.quantity, 0)

    # ------------------------------------------------------------------
    # Reads (never mutate)
    # ------------------------------------------------------------------

    @staticmethod
    def get_check_by_id(order_id) -> Order:
        return check_not_none(
            Order.objects.filter(id=order_id).first(),
            f"Order {order_id} doesn't exist"
        )

    @staticmethod
    def get_check_mutable(order_id) -> Order:
        order = OrderService.get_check_by_id(order_id)
        if not order.is_mutable:
            logger.warning(
                f"Rejected mutation of {order.status} order", extra={"order_id": order.id}
            )
            raise BusinessLogicException(f"Cannot modify an order that is already {order.status}")
        return order

    @staticmethod
    def get_with_items(order_id):
        order = OrderService.get_check_by_id(order_id)
        return order, OrderItemService.get_by_order_id(order.id)

    @staticmethod
    def get_all():
        return Order.objects.prefetch_related('items')

    @staticmethod
    def get_by_filters(start_date=None, end_date=None, status=None, page=1, page_size=20):
        check_date_range(start_date, end_date)

        qs = Order.objects.prefetch_related('items')
        if start_date is not None:
            qs = qs.filter(created_at__gte=start_date)
        if end_date is not None:
            qs = qs.filter(created_at__lte=end_date)
        if status is not None:
            qs = qs.filter(status=status)

        return paginate(qs.order_by('-created_at', 'id'), page, page_size)


class OrderItemService:
    """
    Line items of a CREATED order. Each mutation settles stock and the
    order total together so that total == sum(quantity x selling_price).
    """

    @staticmethod
    def insert_line(order: Order, product, quantity: int, selling_price: Decimal) -> OrderItem:
        _check_price_ceiling(product, selling_price)
        InventoryService.adjust(product.id, 0, quantity)
        try:
            with transaction.atomic():
                return OrderItem.objects.create(
                    order=order,
                    product=product,
                    quantity=quantity,
                    selling_price=selling_price,
                )
        except IntegrityError as e:
            # Another request added the same product to this order first
            logger.warning(f"Duplicate line for {product.barcode}", extra={"order_id": order.id})
            raise ConflictException(
                f"Order Item for product {product.barcode} already exists in order {order.id}. Please retry."
            ) from e

    @staticmethod
    @transaction.atomic
    def add(order_id, product_id, quantity, selling_price) -> OrderItem:
        order = OrderService.get_check_mutable(order_id)
        quantity = _check_quantity(quantity)
        selling_price = _money(selling_price)

        if OrderItem.objects.filter(order=order, product_id=product_id).exists():
            raise BusinessLogicException("Order Item already exists")

        product = ProductService.get_check_by_id(product_id)
        item = OrderItemService.insert_line(order, product, quantity, selling_price)
        OrderService.apply_amount_delta(order, item.line_total)

        logger.info(f"Item added: {product.barcode} x{quantity}", extra={"order_id": order.id})
        return item

    @staticmethod
    @transaction.atomic
    def update(order_id, item_id, quantity, selling_price) -> OrderItem:
        order = OrderService.get_check_mutable(order_id)
        quantity = _check_quantity(quantity)
        selling_price = _money(selling_price)

        item = OrderItemService.get_check_by_id(item_id)
        if item.order_id != order.id:
            raise BusinessLogicException(f"Order {order_id} doesn't have order item {item_id}")

        _check_price_ceiling(item.product, selling_price)

        InventoryService.adjust(item.product_id, item.quantity, quantity)
        delta = quantity * selling_price - item.line_total
        OrderService.apply_amount_delta(order, delta)

        item.quantity = quantity
        item.selling_price = selling_price
        item.save_versioned(["quantity", "selling_price"])

        logger.info(f"Item {item.id} updated, total delta {delta}", extra={"order_id": order.id})
        return item

    @staticmethod
    @transaction.atomic
    def delete_by_id(order_id, item_id):
        order = OrderService.get_check_mutable(order_id)

        item = OrderItemService.get_check_by_id(item_id)
        if item.order_id != order.id:
            raise BusinessLogicException(f"Order {order_id} doesn't have the item {item_id}")

        InventoryService.adjust(item.product_id, item.quantity, 0)
        OrderService.apply_amount_delta(order, -item.line_total)

        deleted, _ = OrderItem.objects.filter(pk=item.pk, version=item.version).delete()
        if not deleted:
            raise ConflictException(f"Order item {item_id} was modified concurrently. Please retry.")
        logger.info(f"Item {item_id} removed", extra={"order_id": order.id})

    # ------------------------------------------------------------------
    # Reads (never mutate)
    # ------------------------------------------------------------------

    @staticmethod
    def get_check_by_id(item_id) -> OrderItem:
        return check_not_none(
            OrderItem.objects.select_related('product').filter(id=item_id).first(),
            "Order Item doesn't exist"
        )

    @staticmethod
    def get_by_order_id(order_id):
        return list(OrderItem.objects.select_related('product').filter(order_id=order_id))

    @staticmethod
    def get_by_order_ids(order_ids):
        """
        Returns {order_id: [items]} for a page of orders in one query.
        """
        grouped = {}
        if not order_ids:
            return grouped
        for item in OrderItem.objects.filter(order_id__in=order_ids):
            grouped.setdefault(item.order_id, []).append(item)
        return grouped

    @staticmethod
    def get_all():
        return OrderItem.objects.select_related('product')
