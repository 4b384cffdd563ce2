import logging
from typing import Dict, Iterable, List, Tuple

from django.db import transaction
from django.utils import timezone

from apps.utils.exceptions import BusinessLogicException, ValidationException
from apps.utils.validators import check_not_none

from .models import MAX_QUANTITY, Inventory

logger = logging.getLogger(__name__)


def _check_stock_quantity(quantity) -> int:
    if quantity is None:
        raise ValidationException("Quantity cannot be null")
    if isinstance(quantity, bool) or not isinstance(quantity, int):
        raise ValidationException("Quantity must be a whole number")
    if quantity < 0:
        raise ValidationException("Quantity cannot be negative")
    if quantity > MAX_QUANTITY:
        raise ValidationException(f"Quantity cannot exceed {MAX_QUANTITY}")
    return quantity


class InventoryService:
    """
    Stock ledger.
    ALL order-driven stock changes must pass through adjust().
    """

    @staticmethod
    @transaction.atomic
    def adjust(product_id, old_quantity: int, new_quantity: int) -> Inventory:
        """
        Applies delta = old_quantity - new_quantity to stock on hand.

        adjust(pid, 0, n) deducts n, adjust(pid, n, 0) restocks n,
        adjust(pid, old, new) settles a line-item edit.
        The row is left untouched when stock would go negative.
        """
        if old_quantity is None or new_quantity is None:
            raise BusinessLogicException("Quantities cannot be null")

        stock = InventoryService.get_check_by_product_id(product_id)

        delta = old_quantity - new_quantity
        if delta == 0:
            return stock

        updated_quantity = stock.quantity + delta
        if updated_quantity < 0:
            logger.warning(
                f"Insufficient stock for {stock.product.barcode}: "
                f"on hand {stock.quantity}, requested {-delta}"
            )
            raise BusinessLogicException(
                f"Not enough items in stock for product {stock.product.name}. "
                f"Required: {-delta}, Available: {stock.quantity}"
            )

        stock.quantity = updated_quantity
        # CAS on version: a concurrent writer that read the same row loses here
        stock.save_versioned(["quantity"])
        return stock

    @staticmethod
    def deduct(product_id, quantity: int) -> Inventory:
        return InventoryService.adjust(product_id, 0, quantity)

    @staticmethod
    def restock(product_id, quantity: int) -> Inventory:
        return InventoryService.adjust(product_id, quantity, 0)

    @staticmethod
    @transaction.atomic
    def bulk_set(rows: Iterable[Tuple[object, int]], batch_size: int = 50) -> List[Inventory]:
        """
        Overwrites quantities for many products at once (upload path).
        One locking read for all rows, one batched write at the end.
        Rows pointing at unknown products are skipped; catalog integrity
        is the caller's concern.
        """
        targets: Dict[str, int] = {str(pid): qty for pid, qty in rows}
        if not targets:
            return []

        # Locked until commit, so no adjust() can land between read and write
        stocks = Inventory.objects.select_for_update().filter(product_id__in=list(targets.keys()))
        now = timezone.now()

        to_update = []
        for stock in stocks:
            stock.quantity = targets[str(stock.product_id)]
            stock.version += 1
            stock.updated_at = now
            to_update.append(stock)

        Inventory.objects.bulk_update(
            to_update, ["quantity", "version", "updated_at"], batch_size=batch_size
        )
        skipped = len(targets) - len(to_update)
        if skipped:
            logger.info(f"bulk_set skipped {skipped} rows without a stock record")
        return to_update

    @staticmethod
    @transaction.atomic
    def update_by_id(inventory_id, quantity: int) -> Inventory:
        """
        Manual stock count for one row. Version-checked like adjust().
        """
        quantity = _check_stock_quantity(quantity)
        stock = InventoryService.get_check_by_id(inventory_id)
        return InventoryService._set_quantity(stock, quantity)

    @staticmethod
    @transaction.atomic
    def update_by_product_id(product_id, quantity: int) -> Inventory:
        quantity = _check_stock_quantity(quantity)
        stock = InventoryService.get_check_by_product_id(product_id)
        return InventoryService._set_quantity(stock, quantity)

    @staticmethod
    def _set_quantity(stock: Inventory, quantity: int) -> Inventory:
        previous = stock.quantity
        stock.quantity = quantity
        stock.save_versioned(["quantity"])
        logger.info(
            f"Stock set for {stock.product.barcode}: {previous} -> {quantity}",
            extra={"product_id": stock.product_id}
        )
        return stock

    @staticmethod
    @transaction.atomic
    def initialize(products, batch_size: int = 50) -> List[Inventory]:
        """
        Opens a zero-quantity stock row for each new product.
        """
        rows = [Inventory(product=p, quantity=0) for p in products]
        if rows:
            Inventory.objects.bulk_create(rows, batch_size=batch_size)
        return rows

    # ------------------------------------------------------------------
    # Reads (never mutate)
    # ------------------------------------------------------------------

    @staticmethod
    def get_check_by_id(inventory_id) -> Inventory:
        return check_not_none(
            Inventory.objects.select_related('product').filter(id=inventory_id).first(),
            f"Inventory {inventory_id} doesn't exist"
        )

    @staticmethod
    def get_check_by_product_id(product_id) -> Inventory:
        return check_not_none(
            Inventory.objects.select_related('product').filter(product_id=product_id).first(),
            f"Inventory doesn't exist for product {product_id}"
        )

    @staticmethod
    def get_by_product_ids(product_ids) -> List[Inventory]:
        if not product_ids:
            return []
        return list(Inventory.objects.filter(product_id__in=product_ids))

    @staticmethod
    def get_all():
        return Inventory.objects.select_related('product').order_by('product__name')

    @staticmethod
    def get_low_stock(threshold: int):
        if threshold is None:
            raise BusinessLogicException("Threshold cannot be null")
        return (
            Inventory.objects.select_related('product')
            .filter(quantity__lt=threshold)
            .order_by('quantity')
        )

    @staticmethod
    def get_report_rows():
        """
        Flat rows for the (external) inventory report.
        """
        return list(
            Inventory.objects.order_by('product__name').values(
                'product_id',
                'product__name',
                'product__barcode',
                'product__category',
                'product__mrp',
                'quantity',
            )
        )
