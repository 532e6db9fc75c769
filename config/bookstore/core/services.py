"""
Servicios de negocio para Luar Bookstore
"""
import logging
from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP
from uuid import uuid4

from django.conf import settings
from django.db import IntegrityError, transaction
from django.db.models import F, Q
from django.utils import timezone

from ..models import (
    AuditLog,
    Book,
    InventoryRecord,
    MarketplaceOrder,
    Sale,
    SaleItem,
    Setting,
    Shelf,
    TransferEvent,
)
from .constants import DEFAULT_ACTOR, DEFAULT_BRANDING, DEFAULT_TRANSFER_REASON, ORDER_TRANSITIONS
from .exceptions import InsufficientStockError, InvalidTransitionError, NotFoundError, ValidationError

logger = logging.getLogger(__name__)

CENTS = Decimal("0.01")


def actor_name(user=None) -> str:
    if user is None:
        return DEFAULT_ACTOR
    if isinstance(user, str):
        return user.strip() or DEFAULT_ACTOR
    return getattr(user, "username", None) or DEFAULT_ACTOR


def _money(value) -> Decimal:
    return Decimal(value).quantize(CENTS, rounding=ROUND_HALF_UP)


def _parse_date(value: str | None, field: str):
    if not value:
        return None
    try:
        return datetime.strptime(value, "%Y-%m-%d").date()
    except ValueError:
        raise ValidationError(f"{field} debe tener formato YYYY-MM-DD")


# ============================================================================
# Catalogo
# ============================================================================

def generate_book_code() -> str:
    return f"LV-{uuid4().hex[:8].upper()}"


def create_book(data: dict, quantity: int = 0, shelf_id: int | None = None, user=None) -> Book:
    """
    Crear un libro junto con su registro de inventario

    Args:
        data: Campos del libro (title, author, price, ...)
        quantity: Cantidad inicial
        shelf_id: Estante inicial (opcional)
        user: Usuario que realiza la acción

    Returns:
        Book: Libro creado

    Raises:
        ValidationError: Si la cantidad es negativa o el código/ISBN ya existe
        NotFoundError: Si el estante no existe
    """
    if quantity is None:
        quantity = 0
    if quantity < 0:
        raise ValidationError("La cantidad inicial no puede ser negativa")

    shelf = None
    if shelf_id:
        shelf = Shelf.objects.filter(id=shelf_id, is_active=True).first()
        if not shelf:
            raise NotFoundError("Estante no encontrado", code="SHELF_NOT_FOUND")

    data = dict(data)
    data["code"] = (data.get("code") or "").strip() or generate_book_code()
    data["isbn"] = (data.get("isbn") or "").strip() or None

    duplicates = Q(code=data["code"])
    if data["isbn"]:
        duplicates |= Q(isbn=data["isbn"])
    if Book.objects.filter(duplicates).exists():
        raise ValidationError("Ya existe un libro con ese código o ISBN", code="DUPLICATE_BOOK")

    try:
        with transaction.atomic():
            book = Book.objects.create(created_by=actor_name(user), **data)
            InventoryRecord.objects.create(book=book, quantity=quantity, shelf=shelf)
    except IntegrityError:
        raise ValidationError("Ya existe un libro con ese código o ISBN", code="DUPLICATE_BOOK")

    logger.info("Libro %s creado con %s unidades", book.code, quantity)
    return book


def delete_book(book_id: int) -> None:
    """
    Eliminar un libro solo cuando nada lo referencia

    Raises:
        NotFoundError: Si el libro no existe
        ValidationError: Si tiene stock, ventas, pedidos o traslados
    """
    with transaction.atomic():
        book = Book.objects.select_for_update().filter(id=book_id).first()
        if not book:
            raise NotFoundError("Libro no encontrado", code="BOOK_NOT_FOUND")

        record = InventoryRecord.objects.filter(book=book).first()
        if record and record.quantity > 0:
            raise ValidationError("No se puede eliminar un libro con stock", code="BOOK_IN_USE")
        if book.sale_items.exists() or book.marketplace_order_items.exists():
            raise ValidationError("No se puede eliminar un libro con ventas o pedidos", code="BOOK_IN_USE")
        if book.exchange_given_books.exists():
            raise ValidationError("No se puede eliminar un libro entregado en trocas", code="BOOK_IN_USE")
        if book.transfers.exists():
            raise ValidationError("No se puede eliminar un libro con historial de traslados", code="BOOK_IN_USE")

        if record:
            record.delete()
        book.delete()

    logger.info("Libro %s eliminado", book_id)


def search_books(query: str):
    query = (query or "").strip()
    qs = Book.objects.select_related("inventory", "inventory__shelf")
    if not query:
        return qs.none()
    return qs.filter(
        Q(title__icontains=query)
        | Q(author__icontains=query)
        | Q(isbn__icontains=query)
        | Q(code__iexact=query)
    ).order_by("title")


def list_categories() -> list[str]:
    return list(
        Book.objects.exclude(category__isnull=True)
        .exclude(category="")
        .order_by("category")
        .values_list("category", flat=True)
        .distinct()
    )


def delete_shelf(shelf_id: int) -> Shelf:
    """
    Dar de baja un estante (soft delete)

    El historial de traslados sigue apuntando al estante, por eso no se
    borra la fila. Falla si algún registro de inventario lo referencia.
    """
    with transaction.atomic():
        shelf = Shelf.objects.select_for_update().filter(id=shelf_id, is_active=True).first()
        if not shelf:
            raise NotFoundError("Estante no encontrado", code="SHELF_NOT_FOUND")

        if InventoryRecord.objects.filter(shelf=shelf).exists():
            raise ValidationError(
                "No se puede eliminar un estante que contiene libros",
                code="SHELF_NOT_EMPTY",
            )

        shelf.is_active = False
        shelf.save(update_fields=["is_active", "updated_at"])

    logger.info("Estante %s dado de baja", shelf.name)
    return shelf


def adjust_stock(book_id: int, quantity: int, reason: str = "", user=None) -> InventoryRecord:
    """
    Fijar la cantidad disponible de un libro (conteo fisico)

    Raises:
        ValidationError: Si la cantidad es negativa
        NotFoundError: Si el libro no tiene inventario
    """
    if quantity is None or quantity < 0:
        raise ValidationError("La cantidad no puede ser negativa")

    with transaction.atomic():
        record = InventoryRecord.objects.select_for_update().filter(book_id=book_id).first()
        if not record:
            raise NotFoundError("Inventario no encontrado", code="INVENTORY_NOT_FOUND")

        previous = record.quantity
        record.quantity = quantity
        record.status = "available" if quantity > 0 else "sold"
        record.save(update_fields=["quantity", "status", "updated_at"])

        AuditLog.objects.create(
            action="adjust_stock",
            entity="inventory_record",
            entity_id=record.id,
            performed_by=actor_name(user),
            extra_data={
                "book_id": book_id,
                "previous_quantity": previous,
                "quantity": quantity,
                "reason": reason,
            },
        )

    return record


def low_stock_books(threshold: int | None = None):
    if threshold is None:
        threshold = settings.LOW_STOCK_THRESHOLD
    return (
        Book.objects.select_related("inventory", "inventory__shelf")
        .filter(inventory__quantity__lt=threshold, inventory__status="available")
        .order_by("inventory__quantity", "title")
    )


# ============================================================================
# Traslados entre estantes
# ============================================================================

def transfer_book(book_id: int, to_shelf_id: int | None, reason: str | None = None, actor=None) -> TransferEvent:
    """
    Mover un libro a otro estante y registrar el traslado

    Args:
        book_id: ID del libro
        to_shelf_id: Estante de destino
        reason: Motivo (por defecto "manual transfer")
        actor: Usuario o nombre del responsable (por defecto "system")

    Returns:
        TransferEvent: Traslado registrado

    Raises:
        ValidationError: Sin destino o destino igual al estante actual
        NotFoundError: Libro, inventario o estante inexistente
    """
    if not to_shelf_id:
        raise ValidationError("Debe indicar el estante de destino", code="MISSING_DESTINATION")

    with transaction.atomic():
        # Bloqueo del registro para serializar traslados y ventas del mismo libro
        record = (
            InventoryRecord.objects.select_for_update()
            .select_related("book", "shelf")
            .filter(book_id=book_id)
            .first()
        )
        if not record:
            if Book.objects.filter(id=book_id).exists():
                raise NotFoundError("El libro no tiene registro de inventario", code="INVENTORY_NOT_FOUND")
            raise NotFoundError("Libro no encontrado", code="BOOK_NOT_FOUND")

        to_shelf = Shelf.objects.filter(id=to_shelf_id, is_active=True).first()
        if not to_shelf:
            raise NotFoundError("Estante no encontrado", code="SHELF_NOT_FOUND")

        if record.shelf_id == to_shelf.id:
            raise ValidationError(
                f"El libro ya está en el estante {to_shelf.name}",
                code="SAME_SHELF_TRANSFER",
            )

        from_shelf = record.shelf
        record.shelf = to_shelf
        record.save(update_fields=["shelf", "updated_at"])

        event = TransferEvent.objects.create(
            book=record.book,
            from_shelf=from_shelf,
            to_shelf=to_shelf,
            reason=(reason or "").strip() or DEFAULT_TRANSFER_REASON,
            transferred_by=actor_name(actor),
        )

    logger.info(
        "Libro %s trasladado de %s a %s",
        record.book.code,
        from_shelf.name if from_shelf else "-",
        to_shelf.name,
    )
    return event


def get_current_shelf(book_id: int) -> Shelf | None:
    record = InventoryRecord.objects.select_related("shelf").filter(book_id=book_id).first()
    if not record:
        raise NotFoundError("Inventario no encontrado", code="INVENTORY_NOT_FOUND")
    return record.shelf


def list_transfers(book_id: int):
    if not Book.objects.filter(id=book_id).exists():
        raise NotFoundError("Libro no encontrado", code="BOOK_NOT_FOUND")
    return TransferEvent.objects.filter(book_id=book_id).select_related("from_shelf", "to_shelf")


# ============================================================================
# Ventas (POS)
# ============================================================================

def _normalize_sale_items(items) -> list[tuple[int, int]]:
    if not items:
        raise ValidationError("El carrito está vacío", code="EMPTY_CART")

    normalized = []
    for item in items:
        book_id = item.get("book_id") or item.get("book")
        quantity = item.get("quantity")
        if not book_id:
            raise ValidationError("Cada item debe indicar el libro")
        try:
            quantity = int(quantity)
        except (TypeError, ValueError):
            raise ValidationError("La cantidad debe ser un número entero")
        if quantity <= 0:
            raise ValidationError("La cantidad debe ser mayor a cero", code="INVALID_QUANTITY")
        normalized.append((int(book_id), quantity))
    return normalized


def create_sale(items, payment_method: str, customer_info: dict | None = None, user=None) -> Sale:
    """
    Registrar una venta y descontar inventario (todo o nada)

    Args:
        items: Lista de items [{'book_id': 1, 'quantity': 2}]
        payment_method: cash, card o pix
        customer_info: Datos del cliente (name, email, phone), opcional
        user: Usuario que realiza la venta

    Returns:
        Sale: Venta creada con sus items

    Raises:
        ValidationError: Carrito vacío, cantidad no positiva o método de pago inválido
        NotFoundError: Si algún libro no existe
        InsufficientStockError: Si algún libro no tiene stock suficiente
    """
    payment_method = (payment_method or "").strip().lower()
    if payment_method not in dict(Sale.PAYMENT_METHODS):
        raise ValidationError("Método de pago inválido", code="INVALID_PAYMENT_METHOD")

    lines = _normalize_sale_items(items)
    customer_info = customer_info or {}

    # Un mismo libro puede aparecer en varias lineas; el stock se valida por el total
    requested: dict[int, int] = {}
    for book_id, quantity in lines:
        requested[book_id] = requested.get(book_id, 0) + quantity

    with transaction.atomic():
        books = Book.objects.in_bulk(list(requested))
        missing = [book_id for book_id in requested if book_id not in books]
        if missing:
            raise NotFoundError(f"Libro {missing[0]} no encontrado", code="BOOK_NOT_FOUND")

        # Orden fijo de bloqueo para evitar deadlocks entre ventas concurrentes
        records = {
            record.book_id: record
            for record in InventoryRecord.objects.select_for_update()
            .filter(book_id__in=list(requested))
            .order_by("book_id")
        }

        for book_id, quantity in requested.items():
            record = records.get(book_id)
            available = record.quantity if record else 0
            if available < quantity:
                raise InsufficientStockError(
                    book_id=book_id,
                    requested=quantity,
                    available=available,
                    detail=f"Stock insuficiente para el libro {books[book_id].title}. "
                    f"Disponible: {available}, Requerido: {quantity}",
                )

        sale_items = []
        total = Decimal("0.00")
        for book_id, quantity in lines:
            unit_price = _money(books[book_id].price)
            line_total = _money(unit_price * quantity)
            total += line_total
            sale_items.append(
                SaleItem(book_id=book_id, quantity=quantity, unit_price=unit_price, total_price=line_total)
            )

        sale = Sale.objects.create(
            customer_name=customer_info.get("name") or None,
            customer_email=customer_info.get("email") or None,
            customer_phone=customer_info.get("phone") or None,
            payment_method=payment_method,
            total_amount=_money(total),
            created_by=actor_name(user),
        )
        for sale_item in sale_items:
            sale_item.sale = sale
        SaleItem.objects.bulk_create(sale_items)

        for book_id, quantity in requested.items():
            InventoryRecord.objects.filter(pk=records[book_id].pk).update(
                quantity=F("quantity") - quantity,
                updated_at=timezone.now(),
            )
        InventoryRecord.objects.filter(book_id__in=list(requested), quantity=0).update(status="sold")

        AuditLog.objects.create(
            action="create_sale",
            entity="sale",
            entity_id=sale.id,
            performed_by=actor_name(user),
            extra_data={
                "total_items": len(sale_items),
                "total_amount": float(sale.total_amount),
                "payment_method": payment_method,
            },
        )

    logger.info("Venta #%s registrada por %s (%s)", sale.id, sale.total_amount, payment_method)
    return get_sale(sale.id)


def get_sale(sale_id: int) -> Sale:
    sale = Sale.objects.prefetch_related("items__book").filter(id=sale_id).first()
    if not sale:
        raise NotFoundError("Venta no encontrada", code="SALE_NOT_FOUND")
    return sale


def list_sales(filters: dict | None = None):
    """
    Filtros disponibles:
    - start_date / end_date: YYYY-MM-DD
    - payment_method: cash, card, pix
    """
    filters = filters or {}
    qs = Sale.objects.prefetch_related("items__book")

    start_date = _parse_date(filters.get("start_date"), "start_date")
    end_date = _parse_date(filters.get("end_date"), "end_date")
    if start_date:
        qs = qs.filter(created_at__date__gte=start_date)
    if end_date:
        qs = qs.filter(created_at__date__lte=end_date)

    payment_method = filters.get("payment_method")
    if payment_method:
        qs = qs.filter(payment_method=payment_method.strip().lower())

    return qs


# ============================================================================
# Pedidos de Estante Virtual
# ============================================================================

def update_order_status(order_id: int, new_status: str, tracking_code: str | None = None, user=None) -> MarketplaceOrder:
    """
    Avanzar el estado de un pedido: pending -> shipped -> delivered

    Raises:
        ValidationError: Estado desconocido
        NotFoundError: Pedido inexistente
        InvalidTransitionError: Retroceso, salto o pedido ya entregado
    """
    new_status = (new_status or "").strip().lower()
    if new_status not in ORDER_TRANSITIONS:
        raise ValidationError("Estado de pedido invalido", code="INVALID_ORDER_STATUS")

    with transaction.atomic():
        order = MarketplaceOrder.objects.select_for_update().filter(id=order_id).first()
        if not order:
            raise NotFoundError("Pedido no encontrado", code="ORDER_NOT_FOUND")

        previous_status = order.status
        if new_status not in ORDER_TRANSITIONS.get(previous_status, set()):
            raise InvalidTransitionError(f"No se puede pasar de {previous_status} a {new_status}")

        now = timezone.now()
        order.status = new_status
        fields_to_update = ["status", "updated_at"]

        if new_status == "shipped":
            order.shipped_at = now
            fields_to_update.append("shipped_at")
            tracking_code = (tracking_code or "").strip()
            if tracking_code:
                order.tracking_code = tracking_code
                fields_to_update.append("tracking_code")
        if new_status == "delivered":
            order.delivered_at = now
            fields_to_update.append("delivered_at")

        order.save(update_fields=fields_to_update)

        AuditLog.objects.create(
            action="marketplace_order_status_update",
            entity="marketplace_order",
            entity_id=order.id,
            performed_by=actor_name(user),
            extra_data={
                "from_status": previous_status,
                "to_status": new_status,
                "tracking_code": order.tracking_code,
            },
        )

        if new_status == "shipped" and order.tracking_code and settings.ESTANTE_VIRTUAL_SYNC_TRACKING:
            from ..marketplace.sync import sync_tracking_code

            transaction.on_commit(lambda: sync_tracking_code(order.id))

    logger.info("Pedido %s: %s -> %s", order.external_id, previous_status, new_status)
    return order


def get_order(order_id: int) -> MarketplaceOrder:
    order = MarketplaceOrder.objects.prefetch_related("items__book").filter(id=order_id).first()
    if not order:
        raise NotFoundError("Pedido no encontrado", code="ORDER_NOT_FOUND")
    return order


def list_orders(filters: dict | None = None):
    """
    Filtros disponibles:
    - status: pending, shipped, delivered
    - overdue=true: pendientes con plazo de envío vencido
    """
    filters = filters or {}
    qs = MarketplaceOrder.objects.prefetch_related("items__book")

    status_filter = filters.get("status")
    if status_filter:
        qs = qs.filter(status=status_filter.strip().lower())

    if str(filters.get("overdue", "")).lower() in {"1", "true", "yes"}:
        qs = qs.filter(status="pending", shipping_deadline__lt=timezone.now())

    return qs


# ============================================================================
# Configuración (clave-valor)
# ============================================================================

def get_setting(key: str, default: str | None = None) -> str | None:
    setting = Setting.objects.filter(key=key).first()
    if setting is None:
        return default
    return setting.value


def set_setting(key: str, value: str | None, user=None) -> Setting:
    """Crea la clave si no existe y la sobrescribe si existe (gana la última escritura)"""
    key = (key or "").strip()
    if not key:
        raise ValidationError("La clave es requerida")

    with transaction.atomic():
        setting, created = Setting.objects.update_or_create(
            key=key,
            defaults={"value": value, "updated_by": actor_name(user)},
        )
        AuditLog.objects.create(
            action="create_setting" if created else "update_setting",
            entity="setting",
            entity_id=setting.id,
            performed_by=actor_name(user),
            extra_data={"key": key},
        )
    return setting


def get_branding() -> dict[str, str]:
    branding = dict(DEFAULT_BRANDING)
    for setting in Setting.objects.filter(key__in=list(DEFAULT_BRANDING)):
        if setting.value:
            branding[setting.key] = setting.value
    return branding
