"""
Errores de negocio de la libreria.

Cada error lleva un codigo estable y el status HTTP con el que la API lo
presenta, para que el frontend pueda mostrar un mensaje especifico.
"""

from __future__ import annotations

from typing import Any


class BookstoreError(Exception):
    """Error base de la aplicación."""

    default_detail = "Ha ocurrido un error."
    default_code = "ERROR"
    http_status = 400

    def __init__(self, detail: str | None = None, code: str | None = None, **extra: Any):
        self.detail = detail or self.default_detail
        self.code = code or self.default_code
        self.extra = extra
        super().__init__(self.detail)


class ValidationError(BookstoreError):
    """Datos de entrada invalidos o incompletos."""

    default_detail = "Error de validacion"
    default_code = "VALIDATION_ERROR"
    http_status = 400


class NotFoundError(BookstoreError):
    """La entidad referenciada no existe."""

    default_detail = "Recurso no encontrado"
    default_code = "NOT_FOUND"
    http_status = 404


class InsufficientStockError(BookstoreError):
    """Se piden mas unidades de las disponibles."""

    default_detail = "Stock insuficiente"
    default_code = "INSUFFICIENT_STOCK"
    http_status = 409

    def __init__(self, book_id: int, requested: int, available: int, detail: str | None = None):
        self.book_id = book_id
        self.requested = requested
        self.available = available
        super().__init__(
            detail or f"Stock insuficiente para el libro {book_id}. Disponible: {available}, Requerido: {requested}",
            book_id=book_id,
            requested=requested,
            available=available,
        )


class InvalidTransitionError(BookstoreError):
    """Cambio de estado no permitido."""

    default_detail = "Transicion de estado invalida"
    default_code = "INVALID_TRANSITION"
    http_status = 409
