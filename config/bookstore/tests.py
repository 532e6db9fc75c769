import json
import os
import tempfile
from datetime import datetime, timedelta
from decimal import Decimal
from io import BytesIO
from unittest.mock import MagicMock, patch

from django.contrib.auth.models import Group, User
from django.core.exceptions import ValidationError as DjangoValidationError
from django.core.files.uploadedfile import SimpleUploadedFile
from django.core.management import CommandError, call_command
from django.test import TestCase, override_settings
from django.utils import timezone
from PIL import Image
from rest_framework.test import APITestCase

from .catalog.images import CoverImageService
from .core import services
from .core.exceptions import (
    InsufficientStockError,
    InvalidTransitionError,
    NotFoundError,
    ValidationError,
)
from .exchanges.services import (
    cancel_exchange,
    complete_exchange,
    create_exchange,
    process_pre_catalog_book,
    reject_pre_catalog_book,
)
from .exchanges.trade_calculator import calculate_trade_value
from .marketplace.client import EstanteVirtualClient, MarketplaceError
from .marketplace.importer import calculate_shipping_deadline, import_order, import_orders
from .marketplace.sync import publish_listing, sync_tracking_code
from .models import (
    AuditLog,
    Book,
    InventoryRecord,
    MarketplaceOrder,
    PreCatalogBook,
    Sale,
    Setting,
    Shelf,
    TransferEvent,
)


def make_book(title="Dom Casmurro", price="10.00", quantity=5, shelf=None, **extra):
    data = {"title": title, "author": "Machado de Assis", "price": Decimal(price)}
    data.update(extra)
    return services.create_book(data, quantity=quantity, shelf_id=shelf.id if shelf else None)


def order_payload(external_id="EV-1", book_id=None, **extra):
    payload = {
        "order_id": external_id,
        "customer_name": "Ana Souza",
        "customer_address": "Rua das Flores 10, Sao Paulo",
        "order_date": "2024-05-02T10:00:00",
        "items": [{"book_id": book_id, "quantity": 1, "unit_price": "35.50"}],
    }
    payload.update(extra)
    return payload


def png_file(name="cover.png", fmt="PNG"):
    buffer = BytesIO()
    Image.new("RGB", (20, 30), color="red").save(buffer, format=fmt)
    return SimpleUploadedFile(name, buffer.getvalue(), content_type=f"image/{fmt.lower()}")


class TransferBookServiceTest(TestCase):
    def setUp(self):
        self.a1 = Shelf.objects.create(name="A1")
        self.b2 = Shelf.objects.create(name="B2")
        self.book = make_book(quantity=5, shelf=self.a1)

    def test_transfer_moves_book_and_appends_event(self):
        event = services.transfer_book(self.book.id, self.b2.id)

        self.assertEqual(services.get_current_shelf(self.book.id), self.b2)
        transfers = list(services.list_transfers(self.book.id))
        self.assertEqual(len(transfers), 1)
        self.assertEqual(transfers[0], event)
        self.assertEqual(event.from_shelf, self.a1)
        self.assertEqual(event.to_shelf, self.b2)
        self.assertEqual(event.reason, "manual transfer")
        self.assertEqual(event.transferred_by, "system")

    def test_transfer_uses_reason_and_actor(self):
        user = User.objects.create_user(username="estoquista", password="pass12345")

        event = services.transfer_book(self.book.id, self.b2.id, reason="reorganizacao", actor=user)

        self.assertEqual(event.reason, "reorganizacao")
        self.assertEqual(event.transferred_by, "estoquista")

    def test_transfer_to_current_shelf_is_rejected(self):
        with self.assertRaises(ValidationError) as ctx:
            services.transfer_book(self.book.id, self.a1.id)

        self.assertEqual(ctx.exception.code, "SAME_SHELF_TRANSFER")
        self.assertEqual(services.get_current_shelf(self.book.id), self.a1)
        self.assertEqual(TransferEvent.objects.count(), 0)

    def test_transfer_without_destination_is_rejected(self):
        with self.assertRaises(ValidationError) as ctx:
            services.transfer_book(self.book.id, None)
        self.assertEqual(ctx.exception.code, "MISSING_DESTINATION")

    def test_transfer_to_missing_or_inactive_shelf(self):
        with self.assertRaises(NotFoundError):
            services.transfer_book(self.book.id, 9999)

        self.b2.is_active = False
        self.b2.save()
        with self.assertRaises(NotFoundError):
            services.transfer_book(self.book.id, self.b2.id)

    def test_transfer_missing_book(self):
        with self.assertRaises(NotFoundError) as ctx:
            services.transfer_book(9999, self.b2.id)
        self.assertEqual(ctx.exception.code, "BOOK_NOT_FOUND")

    def test_transfer_events_are_append_only(self):
        event = services.transfer_book(self.book.id, self.b2.id)

        event.reason = "editado"
        with self.assertRaises(DjangoValidationError):
            event.save()
        with self.assertRaises(DjangoValidationError):
            event.delete()

        event.refresh_from_db()
        self.assertEqual(event.reason, "manual transfer")

    def test_transfer_log_is_ordered_by_creation(self):
        c3 = Shelf.objects.create(name="C3")
        services.transfer_book(self.book.id, self.b2.id)
        services.transfer_book(self.book.id, c3.id)

        names = [(e.from_shelf.name, e.to_shelf.name) for e in services.list_transfers(self.book.id)]
        self.assertEqual(names, [("A1", "B2"), ("B2", "C3")])


class CreateSaleServiceTest(TestCase):
    def setUp(self):
        self.user = User.objects.create_user(username="caixa", password="pass12345")
        self.book = make_book(price="10.00", quantity=5)
        self.other = make_book(title="Memorias Postumas", price="12.50", quantity=1)

    def test_create_sale_success(self):
        sale = services.create_sale([{"book_id": self.book.id, "quantity": 2}], "cash", user=self.user)

        self.assertEqual(sale.total_amount, Decimal("20.00"))
        self.assertEqual(sale.created_by, "caixa")
        self.assertEqual(InventoryRecord.objects.get(book=self.book).quantity, 3)
        self.assertEqual(AuditLog.objects.filter(action="create_sale", entity_id=sale.id).count(), 1)

    def test_total_equals_sum_of_lines(self):
        sale = services.create_sale(
            [
                {"book_id": self.book.id, "quantity": 1},
                {"book_id": self.other.id, "quantity": 1},
                {"book_id": self.book.id, "quantity": 2},
            ],
            "pix",
        )

        items = list(sale.items.all())
        self.assertEqual(len(items), 3)
        self.assertEqual(sum(item.total_price for item in items), sale.total_amount)
        self.assertEqual(sale.total_amount, Decimal("42.50"))
        self.assertEqual(InventoryRecord.objects.get(book=self.book).quantity, 2)

    def test_unit_price_comes_from_book(self):
        sale = services.create_sale(
            [{"book_id": self.book.id, "quantity": 1, "unit_price": "1.00"}],
            "card",
        )
        self.assertEqual(sale.items.get().unit_price, Decimal("10.00"))

    def test_insufficient_stock_leaves_inventory_unchanged(self):
        with self.assertRaises(InsufficientStockError) as ctx:
            services.create_sale(
                [
                    {"book_id": self.book.id, "quantity": 2},
                    {"book_id": self.other.id, "quantity": 2},
                ],
                "cash",
            )

        self.assertEqual(ctx.exception.book_id, self.other.id)
        self.assertEqual(ctx.exception.available, 1)
        self.assertEqual(InventoryRecord.objects.get(book=self.book).quantity, 5)
        self.assertEqual(InventoryRecord.objects.get(book=self.other).quantity, 1)
        self.assertEqual(Sale.objects.count(), 0)

    def test_duplicate_lines_are_checked_against_total_stock(self):
        with self.assertRaises(InsufficientStockError):
            services.create_sale(
                [
                    {"book_id": self.other.id, "quantity": 1},
                    {"book_id": self.other.id, "quantity": 1},
                ],
                "cash",
            )
        self.assertEqual(InventoryRecord.objects.get(book=self.other).quantity, 1)

    def test_sale_to_zero_marks_record_as_sold(self):
        services.create_sale([{"book_id": self.other.id, "quantity": 1}], "cash")

        record = InventoryRecord.objects.get(book=self.other)
        self.assertEqual(record.quantity, 0)
        self.assertEqual(record.status, "sold")

    def test_empty_cart_and_invalid_quantity(self):
        with self.assertRaises(ValidationError) as ctx:
            services.create_sale([], "cash")
        self.assertEqual(ctx.exception.code, "EMPTY_CART")

        with self.assertRaises(ValidationError) as ctx:
            services.create_sale([{"book_id": self.book.id, "quantity": 0}], "cash")
        self.assertEqual(ctx.exception.code, "INVALID_QUANTITY")

    def test_invalid_payment_method(self):
        with self.assertRaises(ValidationError) as ctx:
            services.create_sale([{"book_id": self.book.id, "quantity": 1}], "cheque")
        self.assertEqual(ctx.exception.code, "INVALID_PAYMENT_METHOD")

    def test_missing_book(self):
        with self.assertRaises(NotFoundError):
            services.create_sale([{"book_id": 9999, "quantity": 1}], "cash")

    def test_sale_is_immutable(self):
        sale = services.create_sale([{"book_id": self.book.id, "quantity": 1}], "cash")
        with self.assertRaises(DjangoValidationError):
            sale.save()

    def test_list_sales_filters(self):
        services.create_sale([{"book_id": self.book.id, "quantity": 1}], "cash")
        services.create_sale([{"book_id": self.book.id, "quantity": 1}], "pix")
        today = timezone.localdate().isoformat()

        self.assertEqual(services.list_sales({"payment_method": "pix"}).count(), 1)
        self.assertEqual(services.list_sales({"start_date": today, "end_date": today}).count(), 2)
        with self.assertRaises(ValidationError):
            services.list_sales({"start_date": "02/05/2024"})

    def test_get_sale_not_found(self):
        with self.assertRaises(NotFoundError):
            services.get_sale(9999)


class CatalogServiceTest(TestCase):
    def setUp(self):
        self.shelf = Shelf.objects.create(name="A1")

    def test_create_book_generates_code_and_inventory(self):
        book = make_book(quantity=3, shelf=self.shelf, isbn="9788535914849")

        self.assertTrue(book.code.startswith("LV-"))
        self.assertEqual(book.inventory.quantity, 3)
        self.assertEqual(book.inventory.shelf, self.shelf)

    def test_create_book_duplicate_isbn(self):
        make_book(isbn="9788535914849")
        with self.assertRaises(ValidationError) as ctx:
            make_book(title="Outra", isbn="9788535914849")
        self.assertEqual(ctx.exception.code, "DUPLICATE_BOOK")

    def test_delete_book_guards(self):
        book = make_book(quantity=2)
        with self.assertRaises(ValidationError) as ctx:
            services.delete_book(book.id)
        self.assertEqual(ctx.exception.code, "BOOK_IN_USE")

        services.adjust_stock(book.id, 0)
        services.delete_book(book.id)
        self.assertFalse(Book.objects.filter(id=book.id).exists())
        self.assertFalse(InventoryRecord.objects.filter(book_id=book.id).exists())

    def test_delete_book_with_sales_is_rejected(self):
        book = make_book(quantity=1)
        services.create_sale([{"book_id": book.id, "quantity": 1}], "cash")

        with self.assertRaises(ValidationError):
            services.delete_book(book.id)

    def test_delete_shelf_soft_deletes_only_when_empty(self):
        book = make_book(shelf=self.shelf)
        with self.assertRaises(ValidationError) as ctx:
            services.delete_shelf(self.shelf.id)
        self.assertEqual(ctx.exception.code, "SHELF_NOT_EMPTY")

        other = Shelf.objects.create(name="B2")
        services.transfer_book(book.id, other.id)
        services.delete_shelf(self.shelf.id)

        self.shelf.refresh_from_db()
        self.assertFalse(self.shelf.is_active)
        # El historial sigue apuntando al estante dado de baja
        self.assertEqual(TransferEvent.objects.get().from_shelf, self.shelf)

    def test_adjust_stock_rejects_negative(self):
        book = make_book(quantity=2)
        with self.assertRaises(ValidationError):
            services.adjust_stock(book.id, -1)

        record = services.adjust_stock(book.id, 7, reason="conteo")
        self.assertEqual(record.quantity, 7)
        self.assertEqual(AuditLog.objects.filter(action="adjust_stock").count(), 1)

    def test_search_and_categories(self):
        make_book(title="Grande Sertao", author="Guimaraes Rosa", category="Romance")
        make_book(title="Cosmos", author="Carl Sagan", category="Ciencia")

        self.assertEqual([b.title for b in services.search_books("sagan")], ["Cosmos"])
        self.assertEqual(services.search_books("").count(), 0)
        self.assertEqual(services.list_categories(), ["Ciencia", "Romance"])

    @override_settings(LOW_STOCK_THRESHOLD=3)
    def test_low_stock_books(self):
        low = make_book(title="Pouco", quantity=1)
        make_book(title="Muito", quantity=10)

        self.assertEqual(list(services.low_stock_books()), [low])


class OrderStatusServiceTest(TestCase):
    def setUp(self):
        self.book = make_book()
        self.order, _ = import_order(order_payload(book_id=self.book.id))

    def test_forward_transitions(self):
        order = services.update_order_status(self.order.id, "shipped", "BR123")
        self.assertEqual(order.status, "shipped")
        self.assertEqual(order.tracking_code, "BR123")
        self.assertIsNotNone(order.shipped_at)

        order = services.update_order_status(self.order.id, "delivered")
        self.assertEqual(order.status, "delivered")
        self.assertIsNotNone(order.delivered_at)

    def test_regression_is_rejected(self):
        services.update_order_status(self.order.id, "shipped")
        services.update_order_status(self.order.id, "delivered")

        with self.assertRaises(InvalidTransitionError):
            services.update_order_status(self.order.id, "pending")

        self.order.refresh_from_db()
        self.assertEqual(self.order.status, "delivered")

    def test_skip_is_rejected(self):
        with self.assertRaises(InvalidTransitionError):
            services.update_order_status(self.order.id, "delivered")

    def test_unknown_status_and_missing_order(self):
        with self.assertRaises(ValidationError):
            services.update_order_status(self.order.id, "cancelled")
        with self.assertRaises(NotFoundError):
            services.update_order_status(9999, "shipped")

    @override_settings(ESTANTE_VIRTUAL_SYNC_TRACKING=True, ESTANTE_VIRTUAL_API_TOKEN="token")
    @patch("bookstore.marketplace.sync.EstanteVirtualClient")
    def test_tracking_code_is_pushed_after_commit(self, client_cls):
        with self.captureOnCommitCallbacks(execute=True):
            services.update_order_status(self.order.id, "shipped", "BR123")

        client_cls.return_value.send_tracking_code.assert_called_once_with("EV-1", "BR123")
        self.order.refresh_from_db()
        self.assertIsNotNone(self.order.tracking_synced_at)

    def test_tracking_sync_failure_keeps_order_shipped(self):
        services.update_order_status(self.order.id, "shipped", "BR123")
        client = MagicMock()
        client.send_tracking_code.side_effect = MarketplaceError("timeout")

        self.assertFalse(sync_tracking_code(self.order.id, client=client))

        self.order.refresh_from_db()
        self.assertEqual(self.order.status, "shipped")
        self.assertIsNone(self.order.tracking_synced_at)

    def test_list_orders_overdue(self):
        MarketplaceOrder.objects.filter(id=self.order.id).update(
            shipping_deadline=timezone.now() - timedelta(days=1)
        )
        other, _ = import_order(
            order_payload("EV-2", book_id=self.book.id, order_date=timezone.now().isoformat())
        )

        overdue = list(services.list_orders({"overdue": "true"}))
        self.assertEqual(overdue, [self.order])
        self.assertEqual(services.list_orders({"status": "pending"}).count(), 2)


class MarketplaceImportTest(TestCase):
    def setUp(self):
        self.book = make_book()

    def test_shipping_deadline_skips_weekend(self):
        thursday = datetime(2024, 5, 2, 10, 0)
        friday = datetime(2024, 5, 3, 10, 0)
        saturday = datetime(2024, 5, 4, 10, 0)

        self.assertEqual(calculate_shipping_deadline(thursday, 2), datetime(2024, 5, 6, 10, 0))
        self.assertEqual(calculate_shipping_deadline(friday, 2), datetime(2024, 5, 7, 10, 0))
        self.assertEqual(calculate_shipping_deadline(saturday, 2), datetime(2024, 5, 7, 10, 0))

    def test_import_order_is_idempotent(self):
        order, created = import_order(order_payload(book_id=self.book.id))
        again, created_again = import_order(order_payload(book_id=self.book.id))

        self.assertTrue(created)
        self.assertFalse(created_again)
        self.assertEqual(order.id, again.id)
        self.assertEqual(MarketplaceOrder.objects.count(), 1)
        self.assertEqual(order.status, "pending")
        self.assertEqual(order.total_amount, Decimal("35.50"))

    def test_import_does_not_touch_stock(self):
        import_order(order_payload(book_id=self.book.id))
        self.assertEqual(InventoryRecord.objects.get(book=self.book).quantity, 5)

    def test_import_orders_collects_errors(self):
        summary = import_orders([
            order_payload("EV-1", book_id=self.book.id),
            order_payload("EV-1", book_id=self.book.id),
            order_payload("EV-2", book_id=9999),
            order_payload("EV-3", book_id=self.book.id, customer_address=""),
        ])

        self.assertEqual(summary.imported, 1)
        self.assertEqual(summary.skipped, 1)
        self.assertEqual(len(summary.errors), 2)

    def test_import_orders_skips_malformed_entries(self):
        summary = import_orders(["lixo", order_payload(book_id=self.book.id), 42, None])

        self.assertEqual(summary.imported, 1)
        self.assertEqual(len(summary.errors), 3)
        self.assertTrue(MarketplaceOrder.objects.filter(external_id="EV-1").exists())

    def test_publish_listing_sets_sync_flags(self):
        client = MagicMock()
        client.publish_listing.return_value = "L-77"

        record = publish_listing(self.book.id, client=client)

        self.assertTrue(record.sent_to_marketplace)
        self.assertEqual(record.marketplace_listing_id, "L-77")
        self.assertIsNotNone(record.last_sync_at)
        listing = client.publish_listing.call_args[0][0]
        self.assertEqual(listing["sku"], self.book.code)
        self.assertEqual(listing["quantity"], 5)

    def test_publish_listing_without_stock(self):
        services.adjust_stock(self.book.id, 0)
        with self.assertRaises(ValidationError):
            publish_listing(self.book.id, client=MagicMock())

    @patch("bookstore.marketplace.client.request.urlopen")
    def test_client_fetch_orders(self, urlopen):
        urlopen.return_value.__enter__.return_value.read.return_value = json.dumps(
            {"orders": [{"order_id": "EV-9"}]}
        ).encode("utf-8")

        client = EstanteVirtualClient(base_url="https://ev.test/v1", token="abc", timeout=5)
        orders = client.fetch_orders()

        self.assertEqual(orders, [{"order_id": "EV-9"}])
        req = urlopen.call_args[0][0]
        self.assertEqual(req.full_url, "https://ev.test/v1/orders?status=pending")
        self.assertEqual(req.get_header("Authorization"), "Bearer abc")

    def test_client_without_token(self):
        with self.assertRaises(MarketplaceError):
            EstanteVirtualClient(token="").fetch_orders()

    def test_import_command_from_file(self):
        with tempfile.NamedTemporaryFile("w", suffix=".json", delete=False, encoding="utf-8") as fh:
            json.dump({"orders": [order_payload(book_id=self.book.id)]}, fh)
        self.addCleanup(os.remove, fh.name)

        call_command("import_marketplace_orders", file=fh.name)

        self.assertTrue(MarketplaceOrder.objects.filter(external_id="EV-1").exists())

    def test_import_command_rejects_file_without_order_list(self):
        for content in ({"orders": "EV-1"}, "EV-1", 7):
            with tempfile.NamedTemporaryFile("w", suffix=".json", delete=False, encoding="utf-8") as fh:
                json.dump(content, fh)
            self.addCleanup(os.remove, fh.name)

            with self.assertRaises(CommandError):
                call_command("import_marketplace_orders", file=fh.name)

        self.assertEqual(MarketplaceOrder.objects.count(), 0)

    @override_settings(ESTANTE_VIRTUAL_API_TOKEN="")
    def test_import_command_without_credentials(self):
        with self.assertRaises(CommandError):
            call_command("import_marketplace_orders")


class TradeCalculatorTest(TestCase):
    def test_base_percentage(self):
        result = calculate_trade_value(25)
        self.assertEqual(result.final_percentage, 20)
        self.assertEqual(result.calculated_trade_value, Decimal("5.00"))
        self.assertEqual(result.final_trade_value, Decimal("5.00"))

    def test_value_bonus_counts_full_steps(self):
        result = calculate_trade_value(Decimal("49.90"), publish_year=2010)
        self.assertEqual(result.value_bonus, 10)
        self.assertEqual(result.final_percentage, 30)
        self.assertEqual(result.final_trade_value, Decimal("15.00"))

    def test_year_bonus(self):
        self.assertEqual(calculate_trade_value(37, publish_year=2023).year_bonus, 5)
        recent = calculate_trade_value(45, publish_year=2024)
        self.assertEqual(recent.year_bonus, 10)
        self.assertEqual(recent.final_percentage, 40)
        self.assertEqual(recent.final_trade_value, Decimal("20.00"))

    def test_complete_series_and_cap(self):
        series = calculate_trade_value(33, is_complete_series=True)
        self.assertEqual(series.final_percentage, 50)
        self.assertEqual(series.final_trade_value, Decimal("20.00"))

        expensive = calculate_trade_value(100, publish_year=2024)
        self.assertEqual(expensive.final_percentage, 50)
        self.assertEqual(expensive.final_trade_value, Decimal("50.00"))

    def test_round_up_uses_unrounded_value(self):
        # 20% de 25.01 = 5.002: queda por encima de R$ 5
        result = calculate_trade_value(Decimal("25.01"))
        self.assertEqual(result.calculated_trade_value, Decimal("5.00"))
        self.assertEqual(result.final_trade_value, Decimal("10.00"))

    def test_negative_value(self):
        with self.assertRaises(ValidationError):
            calculate_trade_value(-1)


class ExchangeServiceTest(TestCase):
    def setUp(self):
        self.exchange = create_exchange(
            {"name": "Carlos"},
            [
                {"book_title": "Duna", "estimated_sale_value": "50", "publish_year": 2020},
                {"book_title": "Neuromancer", "estimated_sale_value": "25"},
            ],
        )

    def test_total_is_sum_of_items(self):
        self.assertEqual(self.exchange.total_trade_value, Decimal("25.00"))
        self.assertEqual(self.exchange.items.count(), 2)
        self.assertEqual(self.exchange.status, "pending")

    def test_complete_only_from_pending(self):
        complete_exchange(self.exchange.id)
        with self.assertRaises(InvalidTransitionError):
            cancel_exchange(self.exchange.id)

    def test_requires_customer_and_items(self):
        with self.assertRaises(ValidationError):
            create_exchange({"name": ""}, [{"book_title": "X", "estimated_sale_value": "10"}])
        with self.assertRaises(ValidationError):
            create_exchange({"name": "Ana"}, [])

    def test_complete_sends_received_books_to_pre_catalog(self):
        complete_exchange(self.exchange.id)

        self.exchange.refresh_from_db()
        self.assertEqual(self.exchange.status, "completed")
        self.assertTrue(self.exchange.inventory_processed)
        entries = PreCatalogBook.objects.filter(exchange=self.exchange).order_by("id")
        self.assertEqual([entry.book_title for entry in entries], ["Duna", "Neuromancer"])
        self.assertTrue(all(entry.status == "pending" for entry in entries))
        self.assertEqual(entries[0].final_trade_value, Decimal("20.00"))

    def test_complete_takes_given_books_from_stock(self):
        book = make_book(title="Cosmos", price="40.00", quantity=3)
        exchange = create_exchange(
            {"name": "Ana"},
            [{"book_title": "Duna", "estimated_sale_value": "50"}],
            given_books=[{"book_id": book.id, "quantity": 2}],
        )
        self.assertEqual(exchange.total_given_value, Decimal("80.00"))
        self.assertEqual(InventoryRecord.objects.get(book=book).quantity, 3)

        complete_exchange(exchange.id)

        self.assertEqual(InventoryRecord.objects.get(book=book).quantity, 1)
        self.assertTrue(exchange.given_books.get().inventory_processed)

    def test_complete_given_book_to_zero_marks_record_as_sold(self):
        book = make_book(title="Cosmos", quantity=1)
        exchange = create_exchange(
            {"name": "Ana"},
            [{"book_title": "Duna", "estimated_sale_value": "50"}],
            given_books=[{"book_id": book.id}],
        )

        complete_exchange(exchange.id)

        record = InventoryRecord.objects.get(book=book)
        self.assertEqual(record.quantity, 0)
        self.assertEqual(record.status, "sold")

    def test_complete_without_stock_changes_nothing(self):
        cosmos = make_book(title="Cosmos", quantity=5)
        duna = make_book(title="Duna", quantity=1)
        exchange = create_exchange(
            {"name": "Ana"},
            [{"book_title": "Neuromancer", "estimated_sale_value": "25"}],
            given_books=[{"book_id": cosmos.id, "quantity": 2}, {"book_id": duna.id, "quantity": 2}],
        )

        with self.assertRaises(InsufficientStockError) as ctx:
            complete_exchange(exchange.id)

        self.assertEqual(ctx.exception.book_id, duna.id)
        self.assertEqual(ctx.exception.available, 1)
        self.assertEqual(InventoryRecord.objects.get(book=cosmos).quantity, 5)
        self.assertEqual(InventoryRecord.objects.get(book=duna).quantity, 1)
        exchange.refresh_from_db()
        self.assertEqual(exchange.status, "pending")
        self.assertFalse(exchange.inventory_processed)
        self.assertFalse(PreCatalogBook.objects.filter(exchange=exchange).exists())

    def test_given_book_must_exist(self):
        with self.assertRaises(NotFoundError):
            create_exchange(
                {"name": "Ana"},
                [{"book_title": "Duna", "estimated_sale_value": "50"}],
                given_books=[{"book_id": 9999}],
            )

    def test_given_book_cannot_be_deleted(self):
        book = make_book(title="Cosmos", quantity=1)
        exchange = create_exchange(
            {"name": "Ana"},
            [{"book_title": "Duna", "estimated_sale_value": "50"}],
            given_books=[{"book_id": book.id}],
        )
        complete_exchange(exchange.id)

        with self.assertRaises(ValidationError):
            services.delete_book(book.id)


class PreCatalogServiceTest(TestCase):
    def setUp(self):
        self.shelf = Shelf.objects.create(name="C3")
        exchange = create_exchange(
            {"name": "Carlos"},
            [{"book_title": "Duna", "book_author": "Frank Herbert", "estimated_sale_value": "50", "publish_year": 2020}],
        )
        complete_exchange(exchange.id)
        self.entry = PreCatalogBook.objects.get(exchange=exchange)

    def test_process_creates_book_with_inventory(self):
        entry = process_pre_catalog_book(
            self.entry.id,
            overrides={"price": Decimal("45.00"), "category": "Ficção"},
            quantity=1,
            shelf_id=self.shelf.id,
            user="estoque",
        )

        self.assertEqual(entry.status, "processed")
        book = entry.book
        self.assertEqual(book.title, "Duna")
        self.assertEqual(book.author, "Frank Herbert")
        self.assertEqual(book.price, Decimal("45.00"))
        self.assertEqual(book.category, "Ficção")
        self.assertEqual(book.publish_year, 2020)
        self.assertEqual(book.inventory.quantity, 1)
        self.assertEqual(book.inventory.shelf, self.shelf)
        self.assertTrue(AuditLog.objects.filter(action="process_pre_catalog_book", entity_id=entry.id).exists())

    def test_process_defaults_price_to_estimated_value(self):
        entry = process_pre_catalog_book(self.entry.id)
        self.assertEqual(entry.book.price, Decimal("50.00"))

    def test_process_twice_is_rejected(self):
        process_pre_catalog_book(self.entry.id)

        with self.assertRaises(InvalidTransitionError):
            process_pre_catalog_book(self.entry.id)
        self.assertEqual(Book.objects.filter(title="Duna").count(), 1)

    def test_failed_process_keeps_entry_pending(self):
        make_book(title="Outro", isbn="9788576570493")

        with self.assertRaises(ValidationError):
            process_pre_catalog_book(self.entry.id, overrides={"isbn": "9788576570493"})

        self.entry.refresh_from_db()
        self.assertEqual(self.entry.status, "pending")
        self.assertIsNone(self.entry.book)

    def test_reject_is_final(self):
        entry = reject_pre_catalog_book(self.entry.id, notes="Páginas faltando")

        self.assertEqual(entry.status, "rejected")
        self.assertEqual(entry.notes, "Páginas faltando")
        with self.assertRaises(InvalidTransitionError):
            process_pre_catalog_book(self.entry.id)
        with self.assertRaises(InvalidTransitionError):
            reject_pre_catalog_book(self.entry.id)

    def test_missing_entry(self):
        with self.assertRaises(NotFoundError):
            reject_pre_catalog_book(9999)


class SettingServiceTest(TestCase):
    def test_set_setting_upserts(self):
        services.set_setting("brand_name", "Luar")
        services.set_setting("brand_name", "Luar Sebo")

        self.assertEqual(Setting.objects.filter(key="brand_name").count(), 1)
        self.assertEqual(services.get_setting("brand_name"), "Luar Sebo")
        self.assertEqual(services.get_setting("missing", "x"), "x")

    def test_branding_merges_defaults(self):
        services.set_setting("logo_url", "https://cdn.test/logo.png")

        branding = services.get_branding()
        self.assertEqual(branding["brand_name"], "Luar Sebo e Livraria")
        self.assertEqual(branding["logo_url"], "https://cdn.test/logo.png")


class CoverImageServiceTest(TestCase):
    def test_validate_image_file_success(self):
        CoverImageService.validate_image_file(png_file())

    def test_validate_image_file_invalid_format(self):
        with self.assertRaises(ValidationError):
            CoverImageService.validate_image_file(png_file("cover.gif", "GIF"))

    def test_validate_image_file_not_an_image(self):
        fake = SimpleUploadedFile("cover.png", b"not an image", content_type="image/png")
        with self.assertRaises(ValidationError):
            CoverImageService.validate_image_file(fake)


class BookstoreApiTest(APITestCase):
    def setUp(self):
        self.inventory_user = User.objects.create_user(username="estoque", password="pass12345")
        self.inventory_user.groups.add(Group.objects.create(name="Inventory"))
        self.sales_user = User.objects.create_user(username="caixa", password="pass12345")
        self.sales_user.groups.add(Group.objects.create(name="Sales"))
        self.admin = User.objects.create_user(username="admin", password="pass12345", is_staff=True)

        self.a1 = Shelf.objects.create(name="A1")
        self.b2 = Shelf.objects.create(name="B2")
        self.book = make_book(price="10.00", quantity=5, shelf=self.a1)

    def assert_error_contract(self, response, status_code, code):
        self.assertEqual(response.status_code, status_code)
        self.assertEqual(response.data["code"], code)
        self.assertIn("detail", response.data)
        self.assertIsInstance(response.data["errors"], list)

    def test_requires_authentication(self):
        response = self.client.get("/api/books/")
        self.assertEqual(response.status_code, 401)

    def test_create_book_with_inventory(self):
        self.client.force_authenticate(user=self.inventory_user)
        response = self.client.post(
            "/api/books/",
            {"title": "Cosmos", "author": "Carl Sagan", "price": "35.00", "quantity": 3, "shelf_id": self.b2.id},
            format="json",
        )

        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.data["inventory"]["quantity"], 3)
        self.assertEqual(response.data["inventory"]["shelf"]["name"], "B2")
        self.assertEqual(response.data["created_by"], "estoque")

    def test_create_book_with_cover(self):
        self.client.force_authenticate(user=self.inventory_user)
        response = self.client.post(
            "/api/books/",
            {"title": "Cosmos", "author": "Carl Sagan", "price": "35.00", "cover_image": png_file()},
            format="multipart",
        )
        self.assertEqual(response.status_code, 201)
        self.assertTrue(response.data["cover"])

    def test_create_book_duplicate_isbn(self):
        make_book(isbn="9788535914849")
        self.client.force_authenticate(user=self.inventory_user)
        response = self.client.post(
            "/api/books/",
            {"title": "Outro", "author": "X", "price": "5.00", "isbn": "9788535914849"},
            format="json",
        )
        self.assert_error_contract(response, 400, "DUPLICATE_BOOK")

    def test_book_code_cannot_change(self):
        self.client.force_authenticate(user=self.inventory_user)
        response = self.client.patch(f"/api/books/{self.book.id}/", {"code": "OUTRO"}, format="json")
        self.assert_error_contract(response, 400, "VALIDATION_ERROR")

        response = self.client.patch(f"/api/books/{self.book.id}/", {"price": "15.00"}, format="json")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data["price"], "15.00")

    def test_update_book_to_existing_isbn(self):
        make_book(title="Primeiro", isbn="111")
        second = make_book(title="Segundo", isbn="222")
        self.client.force_authenticate(user=self.inventory_user)

        response = self.client.patch(f"/api/books/{second.id}/", {"isbn": "111"}, format="json")

        self.assert_error_contract(response, 400, "DUPLICATE_BOOK")
        second.refresh_from_db()
        self.assertEqual(second.isbn, "222")

        response = self.client.patch(f"/api/books/{second.id}/", {"isbn": "222"}, format="json")
        self.assertEqual(response.status_code, 200)

    def test_sales_user_cannot_edit_catalog(self):
        self.client.force_authenticate(user=self.sales_user)
        response = self.client.post("/api/books/", {"title": "X", "author": "Y", "price": "1.00"}, format="json")
        self.assertEqual(response.status_code, 403)

    def test_transfer_endpoint(self):
        self.client.force_authenticate(user=self.inventory_user)
        response = self.client.post(
            f"/api/books/{self.book.id}/transfer/", {"to_shelf_id": self.b2.id}, format="json"
        )

        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.data["code"], "BOOK_TRANSFERRED")
        self.assertEqual(response.data["transfer"]["transferred_by"], "estoque")

        response = self.client.get(f"/api/books/{self.book.id}/shelf/")
        self.assertEqual(response.data["shelf"]["name"], "B2")

        response = self.client.get(f"/api/books/{self.book.id}/transfers/")
        self.assertEqual(len(response.data), 1)

    def test_transfer_errors_use_standard_contract(self):
        self.client.force_authenticate(user=self.inventory_user)
        url = f"/api/books/{self.book.id}/transfer/"

        self.assert_error_contract(
            self.client.post(url, {"to_shelf_id": self.a1.id}, format="json"), 400, "SAME_SHELF_TRANSFER"
        )
        self.assert_error_contract(self.client.post(url, {}, format="json"), 400, "MISSING_DESTINATION")
        self.assert_error_contract(
            self.client.post(url, {"to_shelf_id": 9999}, format="json"), 404, "SHELF_NOT_FOUND"
        )

    def test_delete_shelf_with_books_is_rejected(self):
        self.client.force_authenticate(user=self.inventory_user)
        response = self.client.delete(f"/api/shelves/{self.a1.id}/")
        self.assert_error_contract(response, 400, "SHELF_NOT_EMPTY")

        response = self.client.delete(f"/api/shelves/{self.b2.id}/")
        self.assertEqual(response.status_code, 204)
        names = [shelf["name"] for shelf in self.client.get("/api/shelves/").data]
        self.assertEqual(names, ["A1"])

    def test_create_sale_endpoint(self):
        self.client.force_authenticate(user=self.sales_user)
        response = self.client.post(
            "/api/sales/",
            {"items": [{"book_id": self.book.id, "quantity": 2}], "payment_method": "CASH"},
            format="json",
        )

        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.data["total_amount"], "20.00")
        self.assertEqual(InventoryRecord.objects.get(book=self.book).quantity, 3)

    def test_create_sale_insufficient_stock_returns_conflict(self):
        self.client.force_authenticate(user=self.sales_user)
        response = self.client.post(
            "/api/sales/",
            {"items": [{"book_id": self.book.id, "quantity": 9}], "payment_method": "pix"},
            format="json",
        )

        self.assert_error_contract(response, 409, "INSUFFICIENT_STOCK")
        self.assertEqual(response.data["available"], 5)
        self.assertEqual(InventoryRecord.objects.get(book=self.book).quantity, 5)

    def test_create_sale_empty_cart(self):
        self.client.force_authenticate(user=self.sales_user)
        response = self.client.post("/api/sales/", {"items": [], "payment_method": "cash"}, format="json")
        self.assert_error_contract(response, 400, "EMPTY_CART")

    def test_inventory_user_cannot_sell(self):
        self.client.force_authenticate(user=self.inventory_user)
        response = self.client.post(
            "/api/sales/",
            {"items": [{"book_id": self.book.id, "quantity": 1}], "payment_method": "cash"},
            format="json",
        )
        self.assertEqual(response.status_code, 403)

    def test_sales_are_not_editable(self):
        sale = services.create_sale([{"book_id": self.book.id, "quantity": 1}], "cash")
        self.client.force_authenticate(user=self.admin)

        self.assertEqual(self.client.delete(f"/api/sales/{sale.id}/").status_code, 405)
        self.assertEqual(self.client.get("/api/sales/?payment_method=cash").data[0]["id"], sale.id)

    def test_order_status_endpoint(self):
        order, _ = import_order(order_payload(book_id=self.book.id))
        self.client.force_authenticate(user=self.inventory_user)
        url = f"/api/marketplace-orders/{order.id}/status/"

        response = self.client.post(url, {"status": "shipped", "tracking_code": "BR123"}, format="json")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data["order"]["tracking_code"], "BR123")

        self.client.post(url, {"status": "delivered"}, format="json")
        response = self.client.post(url, {"status": "pending"}, format="json")
        self.assert_error_contract(response, 409, "INVALID_TRANSITION")

    def test_import_orders_endpoint(self):
        self.client.force_authenticate(user=self.inventory_user)
        payload = {"orders": [order_payload(book_id=self.book.id)]}

        response = self.client.post("/api/marketplace-orders/import/", payload, format="json")
        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.data["imported"], 1)

        response = self.client.post("/api/marketplace-orders/import/", payload, format="json")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data["skipped"], 1)

    @patch("bookstore.marketplace.sync.EstanteVirtualClient")
    def test_publish_failure_returns_bad_gateway(self, client_cls):
        client_cls.return_value.publish_listing.side_effect = MarketplaceError("HTTP 500: erro")
        self.client.force_authenticate(user=self.inventory_user)

        response = self.client.post(f"/api/books/{self.book.id}/publish/", {}, format="json")

        self.assert_error_contract(response, 502, "MARKETPLACE_ERROR")
        self.assertFalse(InventoryRecord.objects.get(book=self.book).sent_to_marketplace)

    def test_settings_upsert_requires_staff(self):
        self.client.force_authenticate(user=self.sales_user)
        response = self.client.put("/api/settings/brand_name/", {"value": "Luar"}, format="json")
        self.assertEqual(response.status_code, 403)

        self.client.force_authenticate(user=self.admin)
        response = self.client.put("/api/settings/brand_name/", {"value": "Luar"}, format="json")
        self.assertEqual(response.status_code, 200)
        response = self.client.get("/api/settings/brand_name/")
        self.assertEqual(response.data["value"], "Luar")

        self.assert_error_contract(self.client.get("/api/settings/missing/"), 404, "SETTING_NOT_FOUND")

    def test_branding_is_public(self):
        services.set_setting("brand_name", "Luar Sebo")
        response = self.client.get("/api/branding/")

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data["brand_name"], "Luar Sebo")
        self.assertIn("logo_url", response.data)

    def test_exchange_endpoints(self):
        self.client.force_authenticate(user=self.sales_user)
        response = self.client.post(
            "/api/exchanges/",
            {
                "customer_name": "Carlos",
                "items": [{"book_title": "Duna", "estimated_sale_value": "45.00", "publish_year": 2024}],
            },
            format="json",
        )
        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.data["total_trade_value"], "20.00")

        exchange_id = response.data["id"]
        self.assertEqual(self.client.post(f"/api/exchanges/{exchange_id}/cancel/").status_code, 200)
        self.assert_error_contract(
            self.client.post(f"/api/exchanges/{exchange_id}/complete/"), 409, "INVALID_TRANSITION"
        )

    def test_trade_calculation_endpoint(self):
        self.client.force_authenticate(user=self.inventory_user)
        response = self.client.post(
            "/api/exchanges/calculate/", {"estimated_sale_value": "33.00", "is_complete_series": True}, format="json"
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data["final_percentage"], 50)
        self.assertEqual(response.data["final_trade_value"], Decimal("20.00"))

    def test_exchange_with_given_books(self):
        self.client.force_authenticate(user=self.sales_user)
        response = self.client.post(
            "/api/exchanges/",
            {
                "customer_name": "Carlos",
                "items": [{"book_title": "Duna", "estimated_sale_value": "50.00"}],
                "given_books": [{"book_id": self.book.id, "quantity": 6}],
            },
            format="json",
        )
        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.data["total_given_value"], "60.00")
        self.assertEqual(response.data["given_books"][0]["book_title"], self.book.title)

        exchange_id = response.data["id"]
        response = self.client.post(f"/api/exchanges/{exchange_id}/complete/")
        self.assert_error_contract(response, 409, "INSUFFICIENT_STOCK")
        self.assertEqual(InventoryRecord.objects.get(book=self.book).quantity, 5)

    def test_pre_catalog_endpoints(self):
        exchange = create_exchange(
            {"name": "Carlos"},
            [
                {"book_title": "Duna", "estimated_sale_value": "50"},
                {"book_title": "Neuromancer", "estimated_sale_value": "25"},
            ],
        )
        complete_exchange(exchange.id)
        duna = PreCatalogBook.objects.get(book_title="Duna")
        neuromancer = PreCatalogBook.objects.get(book_title="Neuromancer")

        self.client.force_authenticate(user=self.sales_user)
        response = self.client.get("/api/pre-catalog-books/", {"status": "pending"})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(len(response.data), 2)
        self.assertEqual(self.client.post(f"/api/pre-catalog-books/{duna.id}/process/").status_code, 403)

        self.client.force_authenticate(user=self.inventory_user)
        response = self.client.post(
            f"/api/pre-catalog-books/{duna.id}/process/",
            {"price": "42.00", "quantity": 2, "shelf_id": self.b2.id},
            format="json",
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data["status"], "processed")
        book = Book.objects.get(pk=response.data["book"])
        self.assertEqual(book.price, Decimal("42.00"))
        self.assertEqual(book.inventory.quantity, 2)
        self.assertEqual(book.inventory.shelf, self.b2)

        response = self.client.post(f"/api/pre-catalog-books/{duna.id}/process/")
        self.assert_error_contract(response, 409, "INVALID_TRANSITION")

        response = self.client.post(
            f"/api/pre-catalog-books/{neuromancer.id}/reject/", {"notes": "Capa rasgada"}, format="json"
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data["status"], "rejected")

        response = self.client.post("/api/pre-catalog-books/9999/reject/")
        self.assert_error_contract(response, 404, "PRE_CATALOG_NOT_FOUND")

    def test_inventory_adjust_and_low_stock(self):
        self.client.force_authenticate(user=self.inventory_user)
        record = InventoryRecord.objects.get(book=self.book)

        response = self.client.post(f"/api/inventory/{record.id}/adjust/", {"quantity": 2}, format="json")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data["inventory"]["quantity"], 2)

        response = self.client.get("/api/inventory/low-stock/?threshold=3")
        self.assertEqual([book["id"] for book in response.data], [self.book.id])

        response = self.client.post(f"/api/inventory/{record.id}/adjust/", {"quantity": -1}, format="json")
        self.assert_error_contract(response, 400, "VALIDATION_ERROR")

    def test_dashboard_stats(self):
        services.create_sale([{"book_id": self.book.id, "quantity": 2}], "cash")
        import_order(order_payload(book_id=self.book.id))
        self.client.force_authenticate(user=self.sales_user)

        response = self.client.get("/api/dashboard/stats/")

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data["total_books"], 1)
        self.assertEqual(response.data["today_sales_count"], 1)
        self.assertEqual(response.data["today_sales_amount"], 20.0)
        self.assertEqual(response.data["pending_orders"], 1)

    def test_export_marketplace_csv(self):
        self.client.force_authenticate(user=self.inventory_user)
        response = self.client.get("/api/export/marketplace/?format=csv")

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response["Content-Type"], "text/csv")
        content = response.content.decode("utf-8-sig")
        self.assertTrue(content.startswith("ISBN,Titulo,Autor"))
        self.assertIn("Dom Casmurro", content)

    def test_export_sales_excel(self):
        services.create_sale([{"book_id": self.book.id, "quantity": 1}], "card")
        self.client.force_authenticate(user=self.sales_user)

        response = self.client.get("/api/export/sales/?format=excel")

        self.assertEqual(response.status_code, 200)
        self.assertIn("spreadsheetml", response["Content-Type"])
        self.assertTrue(response.content.startswith(b"PK"))
