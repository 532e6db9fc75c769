"""
Integracion con Estante Virtual (pedidos, anuncios y rastreo)
"""
