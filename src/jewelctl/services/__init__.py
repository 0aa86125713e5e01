"""Service layer: design session, persistence, retries, catalog and orders.

Services may import from domain and infrastructure layers.
They must never import from commands or output.
"""
