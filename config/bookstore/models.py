from django.core.exceptions import ValidationError
from django.db import models
from django.utils import timezone


class Shelf(models.Model):
    """Estante fisico de la tienda

    Attributes:
        name (CharField): Nombre unico del estante (ej. "A1")
        description (TextField): Descripción (opcional)
        location (CharField): Ubicación dentro de la tienda (opcional)
        capacity (PositiveIntegerField): Capacidad de libros (opcional)
        is_active (BooleanField): False cuando el estante fue dado de baja
        created_at (DateTimeField): Fecha de creación
        updated_at (DateTimeField): Fecha de actualización
    """

    name = models.CharField(max_length=50, unique=True)
    description = models.TextField(blank=True, null=True)
    location = models.CharField(max_length=100, blank=True, null=True)
    capacity = models.PositiveIntegerField(null=True, blank=True)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["name"]

    def __str__(self):
        return self.name


class Book(models.Model):
    """Libro (o vinilo) del catalogo

    Attributes:
        code (CharField): Código interno unico
        isbn (CharField): ISBN (opcional, unico)
        title (CharField): Título
        author (CharField): Autor
        publisher (CharField): Editorial (opcional)
        publish_year (PositiveIntegerField): Año de publicación (opcional)
        edition (CharField): Edición (opcional)
        pages (PositiveIntegerField): Número de páginas (opcional)
        category (CharField): Categoría (opcional)
        product_type (CharField): Libro o vinilo
        synopsis (TextField): Sinopsis (opcional)
        weight (PositiveIntegerField): Peso en gramos (opcional)
        price (DecimalField): Precio de venta actual (usado)
        new_price (DecimalField): Precio de referencia nuevo (opcional)
        condition (CharField): Estado de conservación
        cover_image (ImageField): Portada subida (opcional)
        cover_url (URLField): Portada externa (opcional)
        created_at (DateTimeField): Fecha de creación
        updated_at (DateTimeField): Fecha de actualización
        created_by (CharField): Usuario que creó el libro
    """

    PRODUCT_TYPES = [
        ("book", "Libro"),
        ("vinyl", "Vinilo"),
    ]

    CONDITIONS = [
        ("new", "Nuevo"),
        ("like_new", "Como nuevo"),
        ("good", "Buen estado"),
        ("used", "Usado"),
        ("worn", "Desgastado"),
    ]

    code = models.CharField(max_length=30, unique=True)
    isbn = models.CharField(max_length=20, unique=True, blank=True, null=True)
    title = models.CharField(max_length=255)
    author = models.CharField(max_length=255)
    publisher = models.CharField(max_length=150, blank=True, null=True)
    publish_year = models.PositiveIntegerField(null=True, blank=True)
    edition = models.CharField(max_length=50, blank=True, null=True)
    pages = models.PositiveIntegerField(null=True, blank=True)
    category = models.CharField(max_length=100, blank=True, null=True)
    product_type = models.CharField(max_length=20, choices=PRODUCT_TYPES, default="book")
    synopsis = models.TextField(blank=True, null=True)
    weight = models.PositiveIntegerField(null=True, blank=True, help_text="Peso en gramos")
    price = models.DecimalField(max_digits=10, decimal_places=2)
    new_price = models.DecimalField(max_digits=10, decimal_places=2, null=True, blank=True)
    condition = models.CharField(max_length=20, choices=CONDITIONS, default="used")
    cover_image = models.ImageField(upload_to="covers/", blank=True, null=True)
    cover_url = models.URLField(blank=True, null=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)
    created_by = models.CharField(max_length=50, default="system")

    class Meta:
        ordering = ["-created_at"]
        permissions = [
            ("manage_inventory", "Can manage inventory"),
        ]

    def __str__(self):
        return f"{self.code} - {self.title}"


class InventoryRecord(models.Model):
    """Existencias de un libro (uno a uno con Book)

    Attributes:
        book (OneToOneField): Libro
        quantity (PositiveIntegerField): Cantidad disponible, nunca negativa
        shelf (ForeignKey): Estante actual (opcional)
        status (CharField): available, reserved, sold
        sent_to_marketplace (BooleanField): Publicado en Estante Virtual
        marketplace_listing_id (CharField): ID del anuncio en Estante Virtual
        last_sync_at (DateTimeField): Última sincronización con Estante Virtual
    """

    STATUS_CHOICES = [
        ("available", "Disponible"),
        ("reserved", "Reservado"),
        ("sold", "Vendido"),
    ]

    book = models.OneToOneField(Book, on_delete=models.CASCADE, related_name="inventory")
    quantity = models.PositiveIntegerField(default=0)
    shelf = models.ForeignKey(
        Shelf,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="inventory_records",
    )
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default="available")
    sent_to_marketplace = models.BooleanField(default=False)
    marketplace_listing_id = models.CharField(max_length=80, blank=True, null=True)
    last_sync_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        constraints = [
            models.CheckConstraint(
                condition=models.Q(quantity__gte=0),
                name="inventory_quantity_non_negative",
            ),
        ]

    def __str__(self):
        return f"{self.book.title} x {self.quantity} ({self.shelf or 'sin estante'})"


class AppendOnlyModel(models.Model):
    """Base para registros inmutables: se crean una vez y nunca se editan ni eliminan"""

    class Meta:
        abstract = True

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise ValidationError(f"{self.__class__.__name__} es inmutable")
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ValidationError(f"{self.__class__.__name__} no se puede eliminar")


class TransferEvent(AppendOnlyModel):
    """Traslado de un libro entre estantes (historial append-only)"""

    book = models.ForeignKey(Book, on_delete=models.PROTECT, related_name="transfers")
    from_shelf = models.ForeignKey(
        Shelf,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="transfers_out",
    )
    to_shelf = models.ForeignKey(Shelf, on_delete=models.PROTECT, related_name="transfers_in")
    reason = models.CharField(max_length=255)
    transferred_by = models.CharField(max_length=50)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["created_at", "id"]

    def __str__(self):
        return f"{self.book.code}: {self.from_shelf or '-'} -> {self.to_shelf}"


class Sale(AppendOnlyModel):
    """Venta de mostrador (POS)

    El total se calcula en el servicio de ventas a partir de las lineas
    y no se puede modificar despues de creada la venta.
    """

    PAYMENT_METHODS = [
        ("cash", "Efectivo"),
        ("card", "Tarjeta"),
        ("pix", "Pix"),
    ]

    customer_name = models.CharField(max_length=150, blank=True, null=True)
    customer_email = models.EmailField(blank=True, null=True)
    customer_phone = models.CharField(max_length=30, blank=True, null=True)
    payment_method = models.CharField(max_length=20, choices=PAYMENT_METHODS)
    total_amount = models.DecimalField(max_digits=10, decimal_places=2, editable=False)
    created_at = models.DateTimeField(auto_now_add=True)
    created_by = models.CharField(max_length=50, default="system")

    class Meta:
        ordering = ["-created_at", "-id"]

    def __str__(self):
        return f"Venta #{self.pk} - {self.total_amount}"


class SaleItem(AppendOnlyModel):
    """Linea de venta"""

    sale = models.ForeignKey(Sale, on_delete=models.PROTECT, related_name="items")
    book = models.ForeignKey(Book, on_delete=models.PROTECT, related_name="sale_items")
    quantity = models.PositiveIntegerField()
    unit_price = models.DecimalField(max_digits=10, decimal_places=2)
    total_price = models.DecimalField(max_digits=10, decimal_places=2)

    class Meta:
        ordering = ["id"]

    def __str__(self):
        return f"{self.book.title} x {self.quantity}"


class MarketplaceOrder(models.Model):
    """Pedido importado de Estante Virtual

    Attributes:
        external_id (CharField): ID del pedido en Estante Virtual
        customer_name (CharField): Cliente
        customer_address (TextField): Dirección de envío
        customer_phone (CharField): Teléfono (opcional)
        total_amount (DecimalField): Suma de las lineas del pedido
        order_date (DateTimeField): Fecha del pedido en el marketplace
        shipping_deadline (DateTimeField): Plazo para despachar
        status (CharField): pending -> shipped -> delivered
        tracking_code (CharField): Código de rastreo (opcional)
        tracking_synced_at (DateTimeField): Envío del rastreo a Estante Virtual
    """

    STATUS_CHOICES = [
        ("pending", "Pendiente"),
        ("shipped", "Enviado"),
        ("delivered", "Entregado"),
    ]

    external_id = models.CharField(max_length=80, unique=True)
    customer_name = models.CharField(max_length=150)
    customer_address = models.TextField()
    customer_phone = models.CharField(max_length=30, blank=True, null=True)
    total_amount = models.DecimalField(max_digits=10, decimal_places=2)
    order_date = models.DateTimeField()
    shipping_deadline = models.DateTimeField()
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default="pending")
    tracking_code = models.CharField(max_length=60, blank=True, null=True)
    shipped_at = models.DateTimeField(blank=True, null=True)
    delivered_at = models.DateTimeField(blank=True, null=True)
    tracking_synced_at = models.DateTimeField(blank=True, null=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["shipping_deadline", "id"]

    def __str__(self):
        return f"Pedido {self.external_id} - {self.status}"

    @property
    def is_overdue(self):
        return self.status == "pending" and self.shipping_deadline < timezone.now()


class MarketplaceOrderItem(models.Model):
    """Linea de pedido de Estante Virtual"""

    order = models.ForeignKey(MarketplaceOrder, on_delete=models.CASCADE, related_name="items")
    book = models.ForeignKey(Book, on_delete=models.PROTECT, related_name="marketplace_order_items")
    quantity = models.PositiveIntegerField()
    unit_price = models.DecimalField(max_digits=10, decimal_places=2)
    total_price = models.DecimalField(max_digits=10, decimal_places=2)

    class Meta:
        ordering = ["id"]

    def __str__(self):
        return f"{self.order.external_id}: {self.book.title} x {self.quantity}"


class Exchange(models.Model):
    """Troca: el cliente entrega libros usados a cambio de crédito"""

    STATUS_CHOICES = [
        ("pending", "Pendiente"),
        ("completed", "Completada"),
        ("cancelled", "Cancelada"),
    ]

    customer_name = models.CharField(max_length=150)
    customer_email = models.EmailField(blank=True, null=True)
    customer_phone = models.CharField(max_length=30, blank=True, null=True)
    total_trade_value = models.DecimalField(max_digits=10, decimal_places=2, default=0)
    total_given_value = models.DecimalField(max_digits=10, decimal_places=2, default=0)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default="pending")
    inventory_processed = models.BooleanField(default=False)
    notes = models.TextField(blank=True, null=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)
    created_by = models.CharField(max_length=50, default="system")

    class Meta:
        ordering = ["-created_at", "-id"]

    def __str__(self):
        return f"Troca #{self.pk} - {self.customer_name} ({self.status})"


class ExchangeItem(models.Model):
    """Libro recibido en una troca con el detalle del cálculo"""

    CONDITIONS = [
        ("new", "Nuevo"),
        ("used", "Usado"),
    ]

    exchange = models.ForeignKey(Exchange, on_delete=models.CASCADE, related_name="items")
    book_title = models.CharField(max_length=255)
    book_author = models.CharField(max_length=255, blank=True, null=True)
    estimated_sale_value = models.DecimalField(max_digits=10, decimal_places=2)
    publish_year = models.PositiveIntegerField(null=True, blank=True)
    condition = models.CharField(max_length=20, choices=CONDITIONS, default="used")
    is_complete_series = models.BooleanField(default=False)
    base_percentage = models.PositiveIntegerField()
    value_bonus = models.PositiveIntegerField(default=0)
    year_bonus = models.PositiveIntegerField(default=0)
    final_percentage = models.PositiveIntegerField()
    calculated_trade_value = models.DecimalField(max_digits=10, decimal_places=2)
    final_trade_value = models.DecimalField(max_digits=10, decimal_places=2)

    class Meta:
        ordering = ["id"]

    def __str__(self):
        return f"{self.book_title} ({self.final_trade_value})"


class ExchangeGivenBook(models.Model):
    """Libro del inventario que la tienda entrega al cliente en una troca"""

    exchange = models.ForeignKey(Exchange, on_delete=models.CASCADE, related_name="given_books")
    book = models.ForeignKey(Book, on_delete=models.PROTECT, related_name="exchange_given_books")
    book_title = models.CharField(max_length=255)
    quantity = models.PositiveIntegerField(default=1)
    sale_price = models.DecimalField(max_digits=10, decimal_places=2)
    notes = models.TextField(blank=True, null=True)
    inventory_processed = models.BooleanField(default=False)

    class Meta:
        ordering = ["id"]

    def __str__(self):
        return f"{self.book_title} x{self.quantity}"


class PreCatalogBook(models.Model):
    """
    Libro recibido en una troca a la espera de entrar al catálogo.

    Se procesa (crea el Book con su inventario) o se rechaza; ambos
    estados son finales.
    """

    STATUS_CHOICES = [
        ("pending", "Pendiente"),
        ("processed", "Procesado"),
        ("rejected", "Rechazado"),
    ]

    exchange = models.ForeignKey(
        Exchange,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="pre_catalog_books",
    )
    book = models.ForeignKey(
        Book,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="pre_catalog_entries",
    )
    book_title = models.CharField(max_length=255)
    book_author = models.CharField(max_length=255, blank=True, null=True)
    estimated_sale_value = models.DecimalField(max_digits=10, decimal_places=2)
    publish_year = models.PositiveIntegerField(null=True, blank=True)
    condition = models.CharField(max_length=20, choices=ExchangeItem.CONDITIONS, default="used")
    is_complete_series = models.BooleanField(default=False)
    final_trade_value = models.DecimalField(max_digits=10, decimal_places=2, default=0)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default="pending")
    category = models.CharField(max_length=100, blank=True, null=True)
    synopsis = models.TextField(blank=True, null=True)
    isbn = models.CharField(max_length=20, blank=True, null=True)
    publisher = models.CharField(max_length=150, blank=True, null=True)
    edition = models.CharField(max_length=50, blank=True, null=True)
    weight = models.PositiveIntegerField(null=True, blank=True, help_text="Peso en gramos")
    notes = models.TextField(blank=True, null=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at", "-id"]

    def __str__(self):
        return f"{self.book_title} ({self.status})"


class Setting(models.Model):
    """Par clave-valor de configuración (logo, nombre de la tienda, etc.)"""

    key = models.CharField(max_length=100, unique=True)
    value = models.TextField(blank=True, null=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)
    updated_by = models.CharField(max_length=50, blank=True, default="system")

    class Meta:
        ordering = ["key"]

    def __str__(self):
        return self.key


class AuditLog(models.Model):
    """
    Log de auditoría para rastrear acciones realizadas en el sistema
    """
    action = models.CharField(max_length=100)
    entity = models.CharField(max_length=100)
    entity_id = models.PositiveIntegerField()
    performed_by = models.CharField(max_length=50)
    created_at = models.DateTimeField(auto_now_add=True)
    extra_data = models.JSONField(blank=True, null=True)

    def __str__(self):
        return f"{self.action} - {self.entity} ({self.entity_id})"
