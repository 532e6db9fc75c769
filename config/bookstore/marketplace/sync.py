"""
Sincronizacion de anuncios y codigos de rastreo con Estante Virtual.
"""

from __future__ import annotations

import logging

from django.db import transaction
from django.utils import timezone

from ..core.exceptions import NotFoundError, ValidationError
from ..core.services import actor_name
from ..models import AuditLog, Book, InventoryRecord, MarketplaceOrder
from .client import EstanteVirtualClient, MarketplaceError

logger = logging.getLogger(__name__)


def build_listing_payload(book: Book, record: InventoryRecord) -> dict:
    """Campos del anuncio tal como los espera Estante Virtual"""
    return {
        "sku": book.code,
        "isbn": book.isbn or "",
        "title": book.title,
        "author": book.author,
        "publisher": book.publisher or "",
        "year": book.publish_year,
        "edition": book.edition or "",
        "category": book.category or "",
        "condition": book.get_condition_display(),
        "description": book.synopsis or "",
        "weight": book.weight,
        "price": str(book.price),
        "quantity": record.quantity,
    }


def publish_listing(book_id: int, client: EstanteVirtualClient | None = None, user=None) -> InventoryRecord:
    """
    Publicar un libro en Estante Virtual y marcar el inventario como sincronizado

    Raises:
        NotFoundError: Libro sin inventario
        ValidationError: Libro sin stock
        MarketplaceError: Fallo de la API
    """
    client = client or EstanteVirtualClient()
    record = InventoryRecord.objects.select_related("book").filter(book_id=book_id).first()
    if not record:
        raise NotFoundError("Inventario no encontrado", code="INVENTORY_NOT_FOUND")
    if record.quantity <= 0:
        raise ValidationError("No se puede publicar un libro sin stock", code="OUT_OF_STOCK")

    listing_id = client.publish_listing(build_listing_payload(record.book, record))

    with transaction.atomic():
        record = InventoryRecord.objects.select_for_update().get(pk=record.pk)
        record.sent_to_marketplace = True
        record.marketplace_listing_id = listing_id
        record.last_sync_at = timezone.now()
        record.save(update_fields=["sent_to_marketplace", "marketplace_listing_id", "last_sync_at", "updated_at"])

        AuditLog.objects.create(
            action="publish_marketplace_listing",
            entity="inventory_record",
            entity_id=record.id,
            performed_by=actor_name(user),
            extra_data={"book_id": book_id, "listing_id": listing_id},
        )

    logger.info("Libro %s publicado en Estante Virtual (%s)", book_id, listing_id)
    return record


def sync_tracking_code(order_id: int, client: EstanteVirtualClient | None = None) -> bool:
    """
    Enviar el codigo de rastreo de un pedido despachado.
    Un fallo de la API no revierte el estado del pedido; queda sin sincronizar.
    """
    order = MarketplaceOrder.objects.filter(id=order_id).first()
    if not order or order.status == "pending" or not order.tracking_code:
        return False

    client = client or EstanteVirtualClient()
    try:
        client.send_tracking_code(order.external_id, order.tracking_code)
    except MarketplaceError as exc:
        logger.warning("No se pudo enviar rastreo del pedido %s: %s", order.external_id, exc)
        return False

    MarketplaceOrder.objects.filter(id=order.id).update(tracking_synced_at=timezone.now())
    logger.info("Rastreo %s enviado para pedido %s", order.tracking_code, order.external_id)
    return True
