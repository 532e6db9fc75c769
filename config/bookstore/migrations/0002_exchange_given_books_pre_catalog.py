import django.db.models.deletion
from django.db import migrations, models


class Migration(migrations.Migration):

    dependencies = [
        ("bookstore", "0001_initial"),
    ]

    operations = [
        migrations.AddField(
            model_name="exchange",
            name="total_given_value",
            field=models.DecimalField(decimal_places=2, default=0, max_digits=10),
        ),
        migrations.AddField(
            model_name="exchange",
            name="inventory_processed",
            field=models.BooleanField(default=False),
        ),
        migrations.CreateModel(
            name="ExchangeGivenBook",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("book_title", models.CharField(max_length=255)),
                ("quantity", models.PositiveIntegerField(default=1)),
                ("sale_price", models.DecimalField(decimal_places=2, max_digits=10)),
                ("notes", models.TextField(blank=True, null=True)),
                ("inventory_processed", models.BooleanField(default=False)),
                (
                    "book",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="exchange_given_books",
                        to="bookstore.book",
                    ),
                ),
                (
                    "exchange",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="given_books",
                        to="bookstore.exchange",
                    ),
                ),
            ],
            options={
                "ordering": ["id"],
            },
        ),
        migrations.CreateModel(
            name="PreCatalogBook",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("book_title", models.CharField(max_length=255)),
                ("book_author", models.CharField(blank=True, max_length=255, null=True)),
                ("estimated_sale_value", models.DecimalField(decimal_places=2, max_digits=10)),
                ("publish_year", models.PositiveIntegerField(blank=True, null=True)),
                (
                    "condition",
                    models.CharField(
                        choices=[("new", "Nuevo"), ("used", "Usado")], default="used", max_length=20
                    ),
                ),
                ("is_complete_series", models.BooleanField(default=False)),
                ("final_trade_value", models.DecimalField(decimal_places=2, default=0, max_digits=10)),
                (
                    "status",
                    models.CharField(
                        choices=[("pending", "Pendiente"), ("processed", "Procesado"), ("rejected", "Rechazado")],
                        default="pending",
                        max_length=20,
                    ),
                ),
                ("category", models.CharField(blank=True, max_length=100, null=True)),
                ("synopsis", models.TextField(blank=True, null=True)),
                ("isbn", models.CharField(blank=True, max_length=20, null=True)),
                ("publisher", models.CharField(blank=True, max_length=150, null=True)),
                ("edition", models.CharField(blank=True, max_length=50, null=True)),
                ("weight", models.PositiveIntegerField(blank=True, help_text="Peso en gramos", null=True)),
                ("notes", models.TextField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "book",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="pre_catalog_entries",
                        to="bookstore.book",
                    ),
                ),
                (
                    "exchange",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="pre_catalog_books",
                        to="bookstore.exchange",
                    ),
                ),
            ],
            options={
                "ordering": ["-created_at", "-id"],
            },
        ),
    ]
