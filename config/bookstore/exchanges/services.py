"""
Servicios de trocas (recepcion de libros usados a cambio de credito)
"""
import logging
from decimal import Decimal

from django.db import transaction
from django.db.models import F
from django.utils import timezone

from ..core.constants import EXCHANGE_TRANSITIONS, PRE_CATALOG_TRANSITIONS
from ..core.exceptions import InsufficientStockError, InvalidTransitionError, NotFoundError, ValidationError
from ..core.services import actor_name, create_book
from ..models import AuditLog, Book, Exchange, ExchangeGivenBook, ExchangeItem, InventoryRecord, PreCatalogBook
from .trade_calculator import calculate_trade_value

logger = logging.getLogger(__name__)

CENTS = Decimal("0.01")


def _given_book_lines(given_books) -> list[ExchangeGivenBook]:
    lines = []
    for given in given_books or []:
        try:
            book_id = int(given.get("book_id"))
            quantity = int(given.get("quantity", 1))
        except (TypeError, ValueError):
            raise ValidationError("Cada libro entregado debe tener book_id y quantity numéricos")
        if quantity <= 0:
            raise ValidationError("La cantidad entregada debe ser mayor a cero")
        lines.append((book_id, quantity, (given.get("notes") or "").strip() or None))

    books = Book.objects.in_bulk([book_id for book_id, _, _ in lines])
    given_lines = []
    for book_id, quantity, notes in lines:
        book = books.get(book_id)
        if not book:
            raise NotFoundError(f"Libro {book_id} no encontrado", code="BOOK_NOT_FOUND")
        given_lines.append(
            ExchangeGivenBook(
                book=book,
                book_title=book.title,
                quantity=quantity,
                sale_price=Decimal(book.price).quantize(CENTS),
                notes=notes,
            )
        )
    return given_lines


def create_exchange(customer_info: dict, items, notes: str | None = None, user=None, given_books=None) -> Exchange:
    """
    Registrar una troca pendiente. El valor de cada item se calcula en el
    servidor y el total de la troca es la suma de los valores finales.

    Args:
        customer_info: name (requerido), email, phone
        items: [{'book_title', 'book_author', 'estimated_sale_value',
                 'publish_year', 'condition', 'is_complete_series'}]
        given_books: libros del inventario que recibe el cliente
                     [{'book_id', 'quantity', 'notes'}]; el stock se
                     descuenta al concluir la troca
    """
    customer_info = customer_info or {}
    customer_name = (customer_info.get("name") or "").strip()
    if not customer_name:
        raise ValidationError("El nombre del cliente es requerido")
    if not items:
        raise ValidationError("La troca debe tener al menos un libro")

    exchange_items = []
    total = Decimal("0.00")
    for item in items:
        title = (item.get("book_title") or "").strip()
        if not title:
            raise ValidationError("Cada libro debe tener titulo")
        calculation = calculate_trade_value(
            item.get("estimated_sale_value"),
            publish_year=item.get("publish_year"),
            is_complete_series=bool(item.get("is_complete_series")),
        )
        total += calculation.final_trade_value
        exchange_items.append(
            ExchangeItem(
                book_title=title,
                book_author=(item.get("book_author") or "").strip() or None,
                estimated_sale_value=Decimal(str(item.get("estimated_sale_value"))),
                publish_year=item.get("publish_year"),
                condition=item.get("condition") or "used",
                is_complete_series=bool(item.get("is_complete_series")),
                **calculation.as_dict(),
            )
        )

    with transaction.atomic():
        given_lines = _given_book_lines(given_books)
        given_total = sum((line.sale_price * line.quantity for line in given_lines), Decimal("0.00"))

        exchange = Exchange.objects.create(
            customer_name=customer_name,
            customer_email=customer_info.get("email") or None,
            customer_phone=customer_info.get("phone") or None,
            total_trade_value=total,
            total_given_value=given_total,
            notes=notes,
            created_by=actor_name(user),
        )
        for exchange_item in exchange_items:
            exchange_item.exchange = exchange
        ExchangeItem.objects.bulk_create(exchange_items)
        for line in given_lines:
            line.exchange = exchange
        ExchangeGivenBook.objects.bulk_create(given_lines)

        AuditLog.objects.create(
            action="create_exchange",
            entity="exchange",
            entity_id=exchange.id,
            performed_by=actor_name(user),
            extra_data={
                "total_items": len(exchange_items),
                "total_given": len(given_lines),
                "total_trade_value": float(total),
            },
        )

    logger.info("Troca #%s registrada (%s)", exchange.id, total)
    return exchange


def _lock_for_transition(exchange_id: int, new_status: str) -> tuple[Exchange, str]:
    exchange = Exchange.objects.select_for_update().filter(id=exchange_id).first()
    if not exchange:
        raise NotFoundError("Troca no encontrada", code="EXCHANGE_NOT_FOUND")

    previous_status = exchange.status
    if new_status not in EXCHANGE_TRANSITIONS.get(previous_status, set()):
        raise InvalidTransitionError(f"No se puede pasar de {previous_status} a {new_status}")
    return exchange, previous_status


def _take_given_books(exchange: Exchange) -> int:
    """Descuenta del inventario los libros entregados; valida todo antes de tocar nada"""
    given_lines = list(exchange.given_books.filter(inventory_processed=False))
    if not given_lines:
        return 0

    requested: dict[int, int] = {}
    for line in given_lines:
        requested[line.book_id] = requested.get(line.book_id, 0) + line.quantity

    records = {
        record.book_id: record
        for record in InventoryRecord.objects.select_for_update()
        .filter(book_id__in=list(requested))
        .order_by("book_id")
    }
    titles = {line.book_id: line.book_title for line in given_lines}
    for book_id, quantity in requested.items():
        record = records.get(book_id)
        available = record.quantity if record else 0
        if available < quantity:
            raise InsufficientStockError(
                book_id=book_id,
                requested=quantity,
                available=available,
                detail=f"Stock insuficiente para el libro {titles[book_id]}. "
                f"Disponible: {available}, Requerido: {quantity}",
            )

    for book_id, quantity in requested.items():
        InventoryRecord.objects.filter(pk=records[book_id].pk).update(
            quantity=F("quantity") - quantity,
            updated_at=timezone.now(),
        )
    InventoryRecord.objects.filter(book_id__in=list(requested), quantity=0).update(status="sold")
    ExchangeGivenBook.objects.filter(pk__in=[line.pk for line in given_lines]).update(inventory_processed=True)
    return len(given_lines)


def complete_exchange(exchange_id: int, user=None) -> Exchange:
    """
    Concluir una troca (todo o nada)

    Descuenta el stock de los libros entregados al cliente y deja cada
    libro recibido en el pre-catálogo, pendiente de revisión.

    Raises:
        NotFoundError: Si la troca no existe
        InvalidTransitionError: Si la troca no está pendiente
        InsufficientStockError: Si algún libro entregado no tiene stock suficiente
    """
    with transaction.atomic():
        exchange, previous_status = _lock_for_transition(exchange_id, "completed")

        given_count = _take_given_books(exchange)
        entries = [
            PreCatalogBook(
                exchange=exchange,
                book_title=item.book_title,
                book_author=item.book_author,
                estimated_sale_value=item.estimated_sale_value,
                publish_year=item.publish_year,
                condition=item.condition,
                is_complete_series=item.is_complete_series,
                final_trade_value=item.final_trade_value,
            )
            for item in exchange.items.all()
        ]
        PreCatalogBook.objects.bulk_create(entries)

        exchange.status = "completed"
        exchange.inventory_processed = True
        exchange.save(update_fields=["status", "inventory_processed", "updated_at"])

        AuditLog.objects.create(
            action="completed_exchange",
            entity="exchange",
            entity_id=exchange.id,
            performed_by=actor_name(user),
            extra_data={
                "from_status": previous_status,
                "to_status": "completed",
                "given_lines": given_count,
                "pre_catalog_books": len(entries),
            },
        )

    logger.info("Troca #%s concluida: %s libros al pre-catálogo", exchange.id, len(entries))
    return exchange


def cancel_exchange(exchange_id: int, user=None) -> Exchange:
    with transaction.atomic():
        exchange, previous_status = _lock_for_transition(exchange_id, "cancelled")
        exchange.status = "cancelled"
        exchange.save(update_fields=["status", "updated_at"])

        AuditLog.objects.create(
            action="cancelled_exchange",
            entity="exchange",
            entity_id=exchange.id,
            performed_by=actor_name(user),
            extra_data={"from_status": previous_status, "to_status": "cancelled"},
        )

    logger.info("Troca #%s: %s -> cancelled", exchange.id, previous_status)
    return exchange


def _lock_pre_catalog_book(entry_id: int, new_status: str) -> PreCatalogBook:
    entry = PreCatalogBook.objects.select_for_update().filter(id=entry_id).first()
    if not entry:
        raise NotFoundError("Libro de pre-catálogo no encontrado", code="PRE_CATALOG_NOT_FOUND")
    if new_status not in PRE_CATALOG_TRANSITIONS.get(entry.status, set()):
        raise InvalidTransitionError(f"No se puede pasar de {entry.status} a {new_status}")
    return entry


def process_pre_catalog_book(
    entry_id: int,
    overrides: dict | None = None,
    quantity: int = 1,
    shelf_id: int | None = None,
    user=None,
) -> PreCatalogBook:
    """
    Pasar un libro del pre-catálogo al catálogo

    Crea el Book y su inventario con los datos del pre-catálogo; los campos
    de ``overrides`` (price, category, isbn, ...) tienen prioridad. Si la
    creación falla la entrada sigue pendiente.

    Raises:
        NotFoundError: Si la entrada o el estante no existen
        InvalidTransitionError: Si la entrada ya fue procesada o rechazada
        ValidationError: Si el código o ISBN ya existe
    """
    with transaction.atomic():
        entry = _lock_pre_catalog_book(entry_id, "processed")

        data = {
            "title": entry.book_title,
            "author": entry.book_author or "",
            "price": entry.estimated_sale_value,
            "publish_year": entry.publish_year,
            "condition": entry.condition,
            "category": entry.category,
            "synopsis": entry.synopsis,
            "isbn": entry.isbn,
            "publisher": entry.publisher,
            "edition": entry.edition,
            "weight": entry.weight,
        }
        data.update({key: value for key, value in (overrides or {}).items() if value is not None})

        book = create_book(data, quantity=quantity, shelf_id=shelf_id, user=user)

        entry.status = "processed"
        entry.book = book
        entry.save(update_fields=["status", "book", "updated_at"])

        AuditLog.objects.create(
            action="process_pre_catalog_book",
            entity="pre_catalog_book",
            entity_id=entry.id,
            performed_by=actor_name(user),
            extra_data={"book_id": book.id, "quantity": quantity},
        )

    logger.info("Pre-catálogo #%s procesado como libro %s", entry.id, book.code)
    return entry


def reject_pre_catalog_book(entry_id: int, notes: str | None = None, user=None) -> PreCatalogBook:
    with transaction.atomic():
        entry = _lock_pre_catalog_book(entry_id, "rejected")
        entry.status = "rejected"
        update_fields = ["status", "updated_at"]
        if notes:
            entry.notes = notes
            update_fields.append("notes")
        entry.save(update_fields=update_fields)

        AuditLog.objects.create(
            action="reject_pre_catalog_book",
            entity="pre_catalog_book",
            entity_id=entry.id,
            performed_by=actor_name(user),
        )

    logger.info("Pre-catálogo #%s rechazado", entry.id)
    return entry
