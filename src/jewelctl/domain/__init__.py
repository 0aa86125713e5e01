"""Domain layer: catalog types, bracelet geometry, letter placement, capacity rules.

This layer depends only on stdlib and pydantic.
It must never import from services, infrastructure, commands, or config.
"""
