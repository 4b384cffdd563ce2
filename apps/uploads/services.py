import logging
from collections import Counter
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from typing import Dict, List, Optional

from django.db import IntegrityError, transaction

from apps.catalog.models import Product
from apps.catalog.services import ClientService, ProductService
from apps.inventory.models import MAX_QUANTITY
from apps.inventory.services import InventoryService
from apps.utils.exceptions import BusinessLogicException, ConflictException
from apps.utils.validators import normalize

from .report import SUCCESS, build_report
from .tsv import INVENTORY_HEADERS, PRODUCT_HEADERS, ParsedUpload

logger = logging.getLogger(__name__)

MAX_MRP = Decimal("9999999999.99")


@dataclass
class UploadRow:
    row_number: int
    cells: List[str]
    error: Optional[str] = None

    @property
    def status(self) -> str:
        return self.error or SUCCESS


@dataclass
class UploadResult:
    headers: List[str]
    rows: List[UploadRow]
    malformed: List[str] = field(default_factory=list)
    committed: List = field(default_factory=list)

    @property
    def failed_rows(self) -> List[UploadRow]:
        return [row for row in self.rows if row.error]

    def report(self) -> bytes:
        return build_report(self.headers, self.rows, self.malformed)


def find_duplicate_keys(keys) -> set:
    counts = Counter(k for k in keys if k)
    return {k for k, n in counts.items() if n > 1}


class BaseUploader:
    """
    Two-phase import:

    1. validate every candidate in memory against in-file duplicates and a
       snapshot of the database fetched once for the whole batch;
    2. write the rows that passed in one chunked bulk operation.

    A bad row only gets an error in the report; its siblings still commit.
    """
    headers: List[str] = []
    key_index = 0
    key_label = "barcode"

    def __init__(self, batch_size: int = 50, keep_first_duplicate: bool = False):
        self.batch_size = batch_size
        self.keep_first_duplicate = keep_first_duplicate

    def upload(self, parsed: ParsedUpload) -> UploadResult:
        rows = [UploadRow(row_number=n, cells=cells) for n, cells in parsed.rows]
        duplicate_errors = self._duplicate_errors(rows)
        snapshot = self.load_snapshot(rows)

        entities = []
        for row in rows:
            try:
                if row.row_number in duplicate_errors:
                    raise BusinessLogicException(duplicate_errors[row.row_number])
                entities.append(self.validate_and_convert(row, snapshot))
            except BusinessLogicException as e:
                row.error = e.message

        committed = self._commit(entities) if entities else []

        logger.info(
            f"{type(self).__name__}: {len(committed)} committed, "
            f"{len(rows) - len(entities)} rejected, {len(parsed.errors)} unparsable"
        )
        return UploadResult(
            headers=parsed.headers,
            rows=rows,
            malformed=list(parsed.errors),
            committed=committed,
        )

    def _duplicate_errors(self, rows: List[UploadRow]) -> Dict[int, str]:
        keys = [normalize(row.cells[self.key_index]) for row in rows]
        duplicates = find_duplicate_keys(keys)

        errors = {}
        first_seen = {}
        for row, key in zip(rows, keys):
            if key not in duplicates:
                continue
            raw = row.cells[self.key_index].strip()
            if self.keep_first_duplicate:
                if key not in first_seen:
                    first_seen[key] = row.row_number
                    continue
                errors[row.row_number] = (
                    f"Duplicate {self.key_label} '{raw}' found within the file. "
                    f"Only the first entry (row #{first_seen[key]}) is kept."
                )
            else:
                errors[row.row_number] = (
                    f"Duplicate {self.key_label} '{raw}' found within the file. "
                    f"All entries with this {self.key_label} are rejected."
                )
        return errors

    def _commit(self, entities):
        try:
            with transaction.atomic():
                return self.commit(entities)
        except IntegrityError as e:
            logger.warning(f"{type(self).__name__}: bulk write rejected by the database: {e}")
            raise ConflictException(
                "The catalog changed while the file was being processed. "
                "No rows were committed; please upload again."
            ) from e

    def load_snapshot(self, rows: List[UploadRow]):
        raise NotImplementedError

    def validate_and_convert(self, row: UploadRow, snapshot):
        raise NotImplementedError

    def commit(self, entities):
        raise NotImplementedError


@dataclass
class ProductSnapshot:
    clients: Dict
    existing_barcodes: set


class ProductUploader(BaseUploader):
    headers = PRODUCT_HEADERS

    def load_snapshot(self, rows):
        return ProductSnapshot(
            clients=ClientService.get_by_names(row.cells[3] for row in rows),
            existing_barcodes=set(ProductService.get_by_barcodes(row.cells[0] for row in rows)),
        )

    def validate_and_convert(self, row, snapshot):
        raw_barcode, raw_name, raw_mrp, raw_client, raw_category = row.cells

        barcode = normalize(raw_barcode)
        name = raw_name.strip()
        client_name = normalize(raw_client)

        if not barcode:
            raise BusinessLogicException("Barcode cannot be empty.")
        if not name:
            raise BusinessLogicException("Product name cannot be empty.")
        category = normalize(raw_category)
        _check_length("Barcode", barcode, "barcode")
        _check_length("Product name", name, "name")
        _check_length("Category", category, "category")
        if barcode in snapshot.existing_barcodes:
            raise BusinessLogicException(f"Barcode '{barcode}' already exists in the database.")

        client = snapshot.clients.get(client_name)
        if client is None:
            raise BusinessLogicException(f"Client with name '{raw_client.strip()}' does not exist.")

        mrp = _parse_mrp(raw_mrp)

        return Product(
            barcode=barcode,
            name=name,
            category=category,
            mrp=mrp,
            client=client,
        )

    def commit(self, products):
        Product.objects.bulk_create(products, batch_size=self.batch_size)
        # UUID keys are assigned client-side, so the new rows are usable as-is
        InventoryService.initialize(products, batch_size=self.batch_size)
        return products


class InventoryUploader(BaseUploader):
    headers = INVENTORY_HEADERS

    def load_snapshot(self, rows):
        return ProductService.get_by_barcodes(row.cells[0] for row in rows)

    def validate_and_convert(self, row, products_by_barcode):
        raw_barcode, raw_quantity = row.cells
        barcode = normalize(raw_barcode)

        if not barcode:
            raise BusinessLogicException("Barcode cannot be empty.")

        product = products_by_barcode.get(barcode)
        if product is None:
            raise BusinessLogicException(f"Product with barcode '{raw_barcode.strip()}' does not exist.")

        try:
            quantity = int(raw_quantity.strip())
        except ValueError:
            raise BusinessLogicException(f"Invalid number format for quantity: '{raw_quantity.strip()}'")
        if quantity < 0:
            raise BusinessLogicException("Quantity cannot be negative.")
        if quantity > MAX_QUANTITY:
            raise BusinessLogicException(f"Quantity cannot exceed {MAX_QUANTITY}.")

        return product.id, quantity

    def commit(self, rows):
        return InventoryService.bulk_set(rows, batch_size=self.batch_size)


def _check_length(label: str, value: str, field_name: str):
    max_length = Product._meta.get_field(field_name).max_length
    if len(value) > max_length:
        raise BusinessLogicException(f"{label} cannot be longer than {max_length} characters.")


def _parse_mrp(raw: str) -> Decimal:
    raw = raw.strip()
    try:
        mrp = Decimal(raw)
    except InvalidOperation:
        raise BusinessLogicException(f"Invalid number format for MRP: '{raw}'")
    if not mrp.is_finite():
        raise BusinessLogicException(f"Invalid number format for MRP: '{raw}'")
    if mrp < 0:
        raise BusinessLogicException("MRP cannot be negative.")
    if mrp > MAX_MRP:
        raise BusinessLogicException(f"MRP cannot exceed {MAX_MRP}.")
    return mrp.quantize(Decimal("0.01"))
