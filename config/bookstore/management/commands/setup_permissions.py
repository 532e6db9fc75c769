"""
Comando de Django para configurar los grupos de la libreria
Ejecutar con: python manage.py setup_permissions
"""

from django.contrib.auth.models import Group, Permission
from django.core.management.base import BaseCommand

from bookstore.core.constants import GROUP_INVENTORY, GROUP_MANAGERS, GROUP_SALES

GROUPS = {
    GROUP_SALES: [
        'bookstore.view_book',
        'bookstore.view_sale',
        'bookstore.add_sale',
        'bookstore.view_exchange',
        'bookstore.add_exchange',
        'bookstore.change_exchange',
    ],
    GROUP_INVENTORY: [
        'bookstore.view_book',
        'bookstore.add_book',
        'bookstore.change_book',
        'bookstore.view_shelf',
        'bookstore.add_shelf',
        'bookstore.change_shelf',
        'bookstore.view_inventoryrecord',
        'bookstore.change_inventoryrecord',
        'bookstore.view_transferevent',
        'bookstore.add_transferevent',
        'bookstore.view_marketplaceorder',
        'bookstore.change_marketplaceorder',
        'bookstore.view_precatalogbook',
        'bookstore.change_precatalogbook',
        'bookstore.manage_inventory',
    ],
    GROUP_MANAGERS: [
        'bookstore.view_book',
        'bookstore.add_book',
        'bookstore.change_book',
        'bookstore.delete_book',
        'bookstore.view_shelf',
        'bookstore.add_shelf',
        'bookstore.change_shelf',
        'bookstore.delete_shelf',
        'bookstore.view_sale',
        'bookstore.add_sale',
        'bookstore.view_marketplaceorder',
        'bookstore.change_marketplaceorder',
        'bookstore.view_exchange',
        'bookstore.add_exchange',
        'bookstore.change_exchange',
        'bookstore.view_precatalogbook',
        'bookstore.change_precatalogbook',
        'bookstore.view_setting',
        'bookstore.change_setting',
        'bookstore.manage_inventory',
    ],
}


class Command(BaseCommand):
    help = 'Crea los grupos Sales, Inventory y Managers con sus permisos'

    def handle(self, *args, **options):
        self.stdout.write('Configurando grupos y permisos...')

        for group_name, perm_names in GROUPS.items():
            group, created = Group.objects.get_or_create(name=group_name)
            self.stdout.write(f"Grupo '{group_name}' {'creado' if created else 'ya existe'}")

            group.permissions.clear()
            for perm_name in perm_names:
                app_label, codename = perm_name.split('.')
                permission = Permission.objects.filter(
                    content_type__app_label=app_label, codename=codename
                ).first()
                if permission is None:
                    self.stderr.write(f"  Permiso '{perm_name}' no encontrado")
                    continue
                group.permissions.add(permission)

        self.stdout.write(self.style.SUCCESS('Configuración de permisos completada'))
