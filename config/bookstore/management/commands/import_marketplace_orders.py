import json

from django.core.management.base import BaseCommand, CommandError

from bookstore.marketplace.client import MarketplaceError
from bookstore.marketplace.importer import fetch_and_import_orders, import_orders


class Command(BaseCommand):
    help = "Importa pedidos de Estante Virtual desde la API o desde un archivo JSON."

    def add_arguments(self, parser):
        parser.add_argument(
            "--file",
            dest="file",
            help="Archivo JSON con una lista de pedidos (o {'orders': [...]}).",
        )

    def handle(self, *args, **options):
        path = options.get("file")
        if path:
            try:
                with open(path, encoding="utf-8") as fh:
                    data = json.load(fh)
            except (OSError, ValueError) as exc:
                raise CommandError(f"No se pudo leer {path}: {exc}")
            orders = data.get("orders") if isinstance(data, dict) else data
            if not isinstance(orders, list):
                raise CommandError(f"{path} debe contener una lista de pedidos o {{'orders': [...]}}")
            summary = import_orders(orders)
        else:
            try:
                summary = fetch_and_import_orders()
            except MarketplaceError as exc:
                raise CommandError(str(exc))

        for error in summary.errors:
            self.stderr.write(error)
        self.stdout.write(
            self.style.SUCCESS(
                f"Importacion ejecutada. Importados: {summary.imported}. "
                f"Omitidos: {summary.skipped}. Errores: {len(summary.errors)}."
            )
        )
