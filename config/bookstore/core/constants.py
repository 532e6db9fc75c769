"""
Constantes compartidas
"""

GROUP_SALES = "Sales"
GROUP_INVENTORY = "Inventory"
GROUP_MANAGERS = "Managers"

DEFAULT_ACTOR = "system"
DEFAULT_TRANSFER_REASON = "manual transfer"

ORDER_TRANSITIONS = {
    "pending": {"shipped"},
    "shipped": {"delivered"},
    "delivered": set(),
}

EXCHANGE_TRANSITIONS = {
    "pending": {"completed", "cancelled"},
    "completed": set(),
    "cancelled": set(),
}

PRE_CATALOG_TRANSITIONS = {
    "pending": {"processed", "rejected"},
    "processed": set(),
    "rejected": set(),
}

DEFAULT_BRANDING = {
    "brand_name": "Luar Sebo e Livraria",
    "tagline": "Livros usados, novos e raros",
    "logo_url": "",
}
