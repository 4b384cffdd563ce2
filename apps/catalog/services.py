import logging
import uuid
from decimal import Decimal

from django.db import transaction
from django.db.models import ProtectedError

from apps.utils.exceptions import BusinessLogicException, NotFoundException, ValidationException
from apps.utils.validators import check_none, check_not_none, normalize
from .models import Client, Product

logger = logging.getLogger(__name__)


class ClientService:

    @staticmethod
    @transaction.atomic
    def create(name: str) -> Client:
        name = normalize(name)
        if not name:
            raise BusinessLogicException("Client name cannot be empty.")

        check_none(Client.objects.filter(name=name).first(), f"Client '{name}' already exists")
        client = Client.objects.create(name=name)
        logger.info(f"Client created: {client.name}")
        return client

    @staticmethod
    @transaction.atomic
    def update(client_id, name: str) -> Client:
        client = ClientService.get_check_by_id(client_id)
        name = normalize(name)
        if not name:
            raise BusinessLogicException("Client name cannot be empty.")

        check_none(
            Client.objects.filter(name=name).exclude(id=client.id).first(),
            f"Client '{name}' already exists"
        )
        client.name = name
        client.save(update_fields=["name", "updated_at"])
        logger.info(f"Client renamed: {client.name}")
        return client

    @staticmethod
    def get_check_by_id(client_id) -> Client:
        return check_not_none(
            Client.objects.filter(id=client_id).first(),
            f"Client {client_id} doesn't exist"
        )

    @staticmethod
    def get_by_names(names):
        """
        Single lookup for a whole upload; keys are normalized names.
        """
        names = {normalize(n) for n in names if n}
        if not names:
            return {}
        return {c.name: c for c in Client.objects.filter(name__in=names)}


class ProductService:
    """
    Product master, plus the batch lookups used by the order and upload pipelines.
    """

    @staticmethod
    @transaction.atomic
    def create(barcode, name, category, mrp, client_id, image_url=None) -> Product:
        from apps.inventory.services import InventoryService

        client = ClientService.get_check_by_id(client_id)
        barcode = normalize(barcode)
        mrp = Decimal(str(mrp))
        if mrp < 0:
            raise BusinessLogicException("MRP cannot be negative.")

        check_none(
            Product.objects.filter(barcode=barcode).first(),
            f"Product with barcode '{barcode}' already exists"
        )

        product = Product.objects.create(
            barcode=barcode,
            name=name.strip(),
            category=normalize(category),
            mrp=mrp,
            client=client,
            image_url=image_url,
        )
        # Every product owns exactly one stock row from birth
        InventoryService.initialize([product])

        logger.info(f"Product created: {product.barcode}", extra={"product_id": product.id})
        return product

    @staticmethod
    @transaction.atomic
    def update(product_id, barcode, name, category, mrp, client_id=None, image_url=None) -> Product:
        """
        Replaces the editable fields of a product. The owning client is fixed
        for the life of the product; a new MRP applies to lines added or
        edited afterwards.
        """
        product = ProductService.get_check_by_id(product_id)
        if client_id is not None and str(client_id) != str(product.client_id):
            raise BusinessLogicException("Client of a product can't be changed")

        barcode = normalize(barcode)
        if not barcode:
            raise BusinessLogicException("Barcode cannot be empty.")
        mrp = Decimal(str(mrp))
        if mrp < 0:
            raise BusinessLogicException("MRP cannot be negative.")

        if barcode != product.barcode:
            check_none(
                Product.objects.filter(barcode=barcode).first(),
                f"Another product with the barcode '{barcode}' already exists"
            )

        product.barcode = barcode
        product.name = name.strip()
        product.category = normalize(category)
        product.mrp = mrp
        product.image_url = image_url
        product.save()

        logger.info(f"Product updated: {product.barcode}", extra={"product_id": product.id})
        return product

    @staticmethod
    @transaction.atomic
    def delete_by_id(product_id):
        """
        Deletes a product and its stock row. Products already sold on an
        order are kept.
        """
        product = ProductService.get_check_by_id(product_id)
        try:
            product.delete()
        except ProtectedError as e:
            raise BusinessLogicException(
                f"Product '{product.barcode}' is used by existing orders and cannot be deleted"
            ) from e
        logger.info(f"Product deleted: {product.barcode}", extra={"product_id": product_id})

    @staticmethod
    def get_check_by_id(product_id) -> Product:
        return check_not_none(
            Product.objects.filter(id=product_id).first(),
            f"Product {product_id} doesn't exist"
        )

    @staticmethod
    def get_check_by_barcode(barcode) -> Product:
        barcode = normalize(barcode)
        return check_not_none(
            Product.objects.filter(barcode=barcode).first(),
            f"Product with barcode {barcode} doesn't exist"
        )

    @staticmethod
    def get_check_by_ids(product_ids):
        """
        Returns {product_id: Product}; every requested id must exist.
        """
        try:
            ids = [uuid.UUID(str(pid)) for pid in product_ids]
        except ValueError:
            raise ValidationException("Malformed product id.")

        products = Product.objects.in_bulk(ids)
        for pid in ids:
            if pid not in products:
                raise NotFoundException(f"Product doesn't exist with id {pid}")
        return products

    @staticmethod
    def get_by_barcodes(barcodes):
        """
        Single lookup for a whole upload. Returns {normalized_barcode: Product}.
        """
        barcodes = {normalize(b) for b in barcodes if b}
        if not barcodes:
            return {}
        return {p.barcode: p for p in Product.objects.filter(barcode__in=barcodes)}
