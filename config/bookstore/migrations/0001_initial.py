import django.db.models.deletion
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="AuditLog",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("action", models.CharField(max_length=100)),
                ("entity", models.CharField(max_length=100)),
                ("entity_id", models.PositiveIntegerField()),
                ("performed_by", models.CharField(max_length=50)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("extra_data", models.JSONField(blank=True, null=True)),
            ],
        ),
        migrations.CreateModel(
            name="Book",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("code", models.CharField(max_length=30, unique=True)),
                ("isbn", models.CharField(blank=True, max_length=20, null=True, unique=True)),
                ("title", models.CharField(max_length=255)),
                ("author", models.CharField(max_length=255)),
                ("publisher", models.CharField(blank=True, max_length=150, null=True)),
                ("publish_year", models.PositiveIntegerField(blank=True, null=True)),
                ("edition", models.CharField(blank=True, max_length=50, null=True)),
                ("pages", models.PositiveIntegerField(blank=True, null=True)),
                ("category", models.CharField(blank=True, max_length=100, null=True)),
                ("product_type", models.CharField(choices=[("book", "Libro"), ("vinyl", "Vinilo")], default="book", max_length=20)),
                ("synopsis", models.TextField(blank=True, null=True)),
                ("weight", models.PositiveIntegerField(blank=True, help_text="Peso en gramos", null=True)),
                ("price", models.DecimalField(decimal_places=2, max_digits=10)),
                ("new_price", models.DecimalField(blank=True, decimal_places=2, max_digits=10, null=True)),
                (
                    "condition",
                    models.CharField(
                        choices=[
                            ("new", "Nuevo"),
                            ("like_new", "Como nuevo"),
                            ("good", "Buen estado"),
                            ("used", "Usado"),
                            ("worn", "Desgastado"),
                        ],
                        default="used",
                        max_length=20,
                    ),
                ),
                ("cover_image", models.ImageField(blank=True, null=True, upload_to="covers/")),
                ("cover_url", models.URLField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("created_by", models.CharField(default="system", max_length=50)),
            ],
            options={
                "ordering": ["-created_at"],
                "permissions": [("manage_inventory", "Can manage inventory")],
            },
        ),
        migrations.CreateModel(
            name="Exchange",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("customer_name", models.CharField(max_length=150)),
                ("customer_email", models.EmailField(blank=True, max_length=254, null=True)),
                ("customer_phone", models.CharField(blank=True, max_length=30, null=True)),
                ("total_trade_value", models.DecimalField(decimal_places=2, default=0, max_digits=10)),
                (
                    "status",
                    models.CharField(
                        choices=[("pending", "Pendiente"), ("completed", "Completada"), ("cancelled", "Cancelada")],
                        default="pending",
                        max_length=20,
                    ),
                ),
                ("notes", models.TextField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("created_by", models.CharField(default="system", max_length=50)),
            ],
            options={
                "ordering": ["-created_at", "-id"],
            },
        ),
        migrations.CreateModel(
            name="MarketplaceOrder",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("external_id", models.CharField(max_length=80, unique=True)),
                ("customer_name", models.CharField(max_length=150)),
                ("customer_address", models.TextField()),
                ("customer_phone", models.CharField(blank=True, max_length=30, null=True)),
                ("total_amount", models.DecimalField(decimal_places=2, max_digits=10)),
                ("order_date", models.DateTimeField()),
                ("shipping_deadline", models.DateTimeField()),
                (
                    "status",
                    models.CharField(
                        choices=[("pending", "Pendiente"), ("shipped", "Enviado"), ("delivered", "Entregado")],
                        default="pending",
                        max_length=20,
                    ),
                ),
                ("tracking_code", models.CharField(blank=True, max_length=60, null=True)),
                ("shipped_at", models.DateTimeField(blank=True, null=True)),
                ("delivered_at", models.DateTimeField(blank=True, null=True)),
                ("tracking_synced_at", models.DateTimeField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={
                "ordering": ["shipping_deadline", "id"],
            },
        ),
        migrations.CreateModel(
            name="Sale",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("customer_name", models.CharField(blank=True, max_length=150, null=True)),
                ("customer_email", models.EmailField(blank=True, max_length=254, null=True)),
                ("customer_phone", models.CharField(blank=True, max_length=30, null=True)),
                (
                    "payment_method",
                    models.CharField(
                        choices=[("cash", "Efectivo"), ("card", "Tarjeta"), ("pix", "Pix")],
                        max_length=20,
                    ),
                ),
                ("total_amount", models.DecimalField(decimal_places=2, editable=False, max_digits=10)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("created_by", models.CharField(default="system", max_length=50)),
            ],
            options={
                "ordering": ["-created_at", "-id"],
            },
        ),
        migrations.CreateModel(
            name="Setting",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("key", models.CharField(max_length=100, unique=True)),
                ("value", models.TextField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("updated_by", models.CharField(blank=True, default="system", max_length=50)),
            ],
            options={
                "ordering": ["key"],
            },
        ),
        migrations.CreateModel(
            name="Shelf",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("name", models.CharField(max_length=50, unique=True)),
                ("description", models.TextField(blank=True, null=True)),
                ("location", models.CharField(blank=True, max_length=100, null=True)),
                ("capacity", models.PositiveIntegerField(blank=True, null=True)),
                ("is_active", models.BooleanField(default=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={
                "ordering": ["name"],
            },
        ),
        migrations.CreateModel(
            name="ExchangeItem",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("book_title", models.CharField(max_length=255)),
                ("book_author", models.CharField(blank=True, max_length=255, null=True)),
                ("estimated_sale_value", models.DecimalField(decimal_places=2, max_digits=10)),
                ("publish_year", models.PositiveIntegerField(blank=True, null=True)),
                (
                    "condition",
                    models.CharField(choices=[("new", "Nuevo"), ("used", "Usado")], default="used", max_length=20),
                ),
                ("is_complete_series", models.BooleanField(default=False)),
                ("base_percentage", models.PositiveIntegerField()),
                ("value_bonus", models.PositiveIntegerField(default=0)),
                ("year_bonus", models.PositiveIntegerField(default=0)),
                ("final_percentage", models.PositiveIntegerField()),
                ("calculated_trade_value", models.DecimalField(decimal_places=2, max_digits=10)),
                ("final_trade_value", models.DecimalField(decimal_places=2, max_digits=10)),
                (
                    "exchange",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="items",
                        to="bookstore.exchange",
                    ),
                ),
            ],
            options={
                "ordering": ["id"],
            },
        ),
        migrations.CreateModel(
            name="MarketplaceOrderItem",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("quantity", models.PositiveIntegerField()),
                ("unit_price", models.DecimalField(decimal_places=2, max_digits=10)),
                ("total_price", models.DecimalField(decimal_places=2, max_digits=10)),
                (
                    "book",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="marketplace_order_items",
                        to="bookstore.book",
                    ),
                ),
                (
                    "order",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="items",
                        to="bookstore.marketplaceorder",
                    ),
                ),
            ],
            options={
                "ordering": ["id"],
            },
        ),
        migrations.CreateModel(
            name="SaleItem",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("quantity", models.PositiveIntegerField()),
                ("unit_price", models.DecimalField(decimal_places=2, max_digits=10)),
                ("total_price", models.DecimalField(decimal_places=2, max_digits=10)),
                (
                    "book",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="sale_items",
                        to="bookstore.book",
                    ),
                ),
                (
                    "sale",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="items",
                        to="bookstore.sale",
                    ),
                ),
            ],
            options={
                "ordering": ["id"],
            },
        ),
        migrations.CreateModel(
            name="InventoryRecord",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("quantity", models.PositiveIntegerField(default=0)),
                (
                    "status",
                    models.CharField(
                        choices=[("available", "Disponible"), ("reserved", "Reservado"), ("sold", "Vendido")],
                        default="available",
                        max_length=20,
                    ),
                ),
                ("sent_to_marketplace", models.BooleanField(default=False)),
                ("marketplace_listing_id", models.CharField(blank=True, max_length=80, null=True)),
                ("last_sync_at", models.DateTimeField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "book",
                    models.OneToOneField(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="inventory",
                        to="bookstore.book",
                    ),
                ),
                (
                    "shelf",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="inventory_records",
                        to="bookstore.shelf",
                    ),
                ),
            ],
            options={
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(("quantity__gte", 0)),
                        name="inventory_quantity_non_negative",
                    )
                ],
            },
        ),
        migrations.CreateModel(
            name="TransferEvent",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("reason", models.CharField(max_length=255)),
                ("transferred_by", models.CharField(max_length=50)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "book",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="transfers",
                        to="bookstore.book",
                    ),
                ),
                (
                    "from_shelf",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="transfers_out",
                        to="bookstore.shelf",
                    ),
                ),
                (
                    "to_shelf",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="transfers_in",
                        to="bookstore.shelf",
                    ),
                ),
            ],
            options={
                "ordering": ["created_at", "id"],
            },
        ),
    ]
