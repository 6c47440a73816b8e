# ==============================================================================
# BOOKSTORE - Catálogo de libros y gestión de pedidos
# ==============================================================================
# Paquete principal. Capas:
#   models/        → Entidades del dominio (dataclasses)
#   repositories/  → Persistencia (archivos JSON)
#   services/      → Lógica de negocio (catálogo, usuarios, pedidos)
#   main.py        → API HTTP (Flask)
# ==============================================================================

__version__ = '1.0.0'
