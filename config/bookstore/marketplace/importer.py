"""
Importacion de pedidos de Estante Virtual.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from decimal import Decimal, InvalidOperation
from typing import Any

from django.conf import settings
from django.db import IntegrityError, transaction
from django.utils import timezone
from django.utils.dateparse import parse_datetime

from ..core.exceptions import NotFoundError, ValidationError
from ..core.services import CENTS, actor_name
from ..models import AuditLog, Book, MarketplaceOrder, MarketplaceOrderItem
from .client import EstanteVirtualClient, MarketplaceError

logger = logging.getLogger(__name__)


@dataclass
class ImportSummary:
    imported: int = 0
    skipped: int = 0
    errors: list[str] = field(default_factory=list)

    def as_dict(self) -> dict[str, Any]:
        return {"imported": self.imported, "skipped": self.skipped, "errors": list(self.errors)}


def calculate_shipping_deadline(order_date: datetime, business_days: int | None = None) -> datetime:
    """
    Plazo de despacho: N dias habiles despues del pedido (sin sabados ni domingos)
    """
    if business_days is None:
        business_days = settings.MARKETPLACE_SHIPPING_BUSINESS_DAYS

    deadline = order_date
    added = 0
    while added < business_days:
        deadline += timedelta(days=1)
        if deadline.weekday() < 5:
            added += 1
    return deadline


def _parse_order_date(value) -> datetime:
    if not value:
        return timezone.now()
    if isinstance(value, datetime):
        parsed = value
    else:
        parsed = parse_datetime(str(value))
        if parsed is None:
            raise ValidationError(f"Fecha de pedido invalida: {value}")
    if timezone.is_naive(parsed):
        parsed = timezone.make_aware(parsed)
    return parsed


def _parse_items(raw_items) -> list[tuple[int, int, Decimal]]:
    if not raw_items:
        raise ValidationError("El pedido no tiene items")

    items = []
    for raw in raw_items:
        try:
            book_id = int(raw.get("book_id"))
            quantity = int(raw.get("quantity"))
            unit_price = Decimal(str(raw.get("unit_price"))).quantize(CENTS)
        except (AttributeError, TypeError, ValueError, InvalidOperation):
            raise ValidationError("Item de pedido invalido")
        if quantity <= 0:
            raise ValidationError("La cantidad debe ser mayor a cero")
        if unit_price < 0:
            raise ValidationError("El precio no puede ser negativo")
        items.append((book_id, quantity, unit_price))
    return items


def import_order(payload: dict[str, Any], user=None) -> tuple[MarketplaceOrder, bool]:
    """
    Importar un pedido. Si el ID externo ya existe, devuelve el pedido existente.

    Returns:
        tuple: (pedido, creado)

    Raises:
        ValidationError: Datos del pedido incompletos
        NotFoundError: Algún libro del pedido no existe
    """
    external_id = str(payload.get("order_id") or payload.get("external_id") or "").strip()
    if not external_id:
        raise ValidationError("El pedido no tiene ID externo")

    existing = MarketplaceOrder.objects.filter(external_id=external_id).first()
    if existing:
        return existing, False

    customer_name = (payload.get("customer_name") or "").strip()
    customer_address = (payload.get("customer_address") or "").strip()
    if not customer_name or not customer_address:
        raise ValidationError("El pedido debe tener nombre y dirección del cliente")

    items = _parse_items(payload.get("items"))
    order_date = _parse_order_date(payload.get("order_date"))

    books = Book.objects.in_bulk([book_id for book_id, _, _ in items])
    for book_id, _, _ in items:
        if book_id not in books:
            raise NotFoundError(f"Libro {book_id} no encontrado", code="BOOK_NOT_FOUND")

    lines = [
        (book_id, quantity, unit_price, (unit_price * quantity).quantize(CENTS))
        for book_id, quantity, unit_price in items
    ]
    total = sum((line[3] for line in lines), Decimal("0.00"))

    try:
        with transaction.atomic():
            order = MarketplaceOrder.objects.create(
                external_id=external_id,
                customer_name=customer_name,
                customer_address=customer_address,
                customer_phone=(payload.get("customer_phone") or "").strip() or None,
                total_amount=total,
                order_date=order_date,
                shipping_deadline=calculate_shipping_deadline(order_date),
                status="pending",
            )
            MarketplaceOrderItem.objects.bulk_create(
                [
                    MarketplaceOrderItem(
                        order=order,
                        book_id=book_id,
                        quantity=quantity,
                        unit_price=unit_price,
                        total_price=line_total,
                    )
                    for book_id, quantity, unit_price, line_total in lines
                ]
            )
            AuditLog.objects.create(
                action="import_marketplace_order",
                entity="marketplace_order",
                entity_id=order.id,
                performed_by=actor_name(user),
                extra_data={"external_id": external_id, "total_amount": float(total)},
            )
    except IntegrityError:
        # Otra importacion concurrente creo el mismo pedido
        return MarketplaceOrder.objects.get(external_id=external_id), False

    logger.info("Pedido %s importado (%s)", external_id, total)
    return order, True


def import_orders(payloads, user=None) -> ImportSummary:
    """Importa cada pedido en su propia transaccion y acumula los errores"""
    summary = ImportSummary()
    for position, payload in enumerate(payloads, start=1):
        if not isinstance(payload, dict):
            summary.errors.append(f"Pedido #{position}: formato invalido")
            logger.warning("Pedido #%s con formato invalido: %r", position, payload)
            continue

        external_id = payload.get("order_id") or payload.get("external_id") or "?"
        try:
            _, created = import_order(payload, user=user)
        except (ValidationError, NotFoundError) as exc:
            summary.errors.append(f"Pedido {external_id}: {exc.detail}")
            logger.warning("Error al importar pedido %s: %s", external_id, exc.detail)
            continue

        if created:
            summary.imported += 1
        else:
            summary.skipped += 1

    logger.info(
        "Importacion concluida. Importados: %s, omitidos: %s, errores: %s",
        summary.imported,
        summary.skipped,
        len(summary.errors),
    )
    return summary


def fetch_and_import_orders(client: EstanteVirtualClient | None = None, user=None) -> ImportSummary:
    client = client or EstanteVirtualClient()
    if not client.has_credentials():
        raise MarketplaceError("Credenciales de Estante Virtual no configuradas")
    return import_orders(client.fetch_orders(), user=user)
