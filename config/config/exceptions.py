"""
Manejador global de excepciones DRF con formato consistente.
"""

from __future__ import annotations

import logging

from django.core.exceptions import ValidationError as DjangoValidationError
from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import exception_handler

from bookstore.core.api_responses import build_error_payload, error_payload_from_exception
from bookstore.core.exceptions import BookstoreError
from bookstore.marketplace.client import MarketplaceError

logger = logging.getLogger("bookstore")


def custom_exception_handler(exc, context):
    if isinstance(exc, (BookstoreError, DjangoValidationError)):
        payload, http_status = error_payload_from_exception(exc)
        return Response(payload, status=http_status)

    if isinstance(exc, MarketplaceError):
        logger.warning("Error de integracion con Estante Virtual: %s", exc)
        return Response(
            build_error_payload(detail=str(exc), code="MARKETPLACE_ERROR"),
            status=status.HTTP_502_BAD_GATEWAY,
        )

    response = exception_handler(exc, context)
    if response is None:
        return response

    data = response.data
    code = "ERROR"
    detail = "Ha ocurrido un error."
    errors: list[str] = []

    if isinstance(data, list):
        errors = [str(item) for item in data]
        if errors:
            detail = errors[0]
    elif isinstance(data, dict):
        if "detail" in data:
            if isinstance(data["detail"], list):
                errors = [str(item) for item in data["detail"]]
                detail = errors[0] if errors else detail
            else:
                detail = str(data["detail"])
                errors = [detail]
            if hasattr(exc, "default_code"):
                code = str(exc.default_code).upper()
        else:
            for field, value in data.items():
                if isinstance(value, list):
                    errors.extend([f"{field}: {item}" for item in value])
                else:
                    errors.append(f"{field}: {value}")
            if errors:
                detail = errors[0]
            code = "VALIDATION_ERROR"
    else:
        detail = str(data)
        errors = [detail]

    response.data = {
        "detail": detail,
        "code": code,
        "errors": errors or [detail],
    }
    return response
