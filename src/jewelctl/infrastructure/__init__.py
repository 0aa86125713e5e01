"""Infrastructure layer: snapshot storage, timers and local catalog files.

This layer depends on stdlib and third-party libs only.
It must never import from services, commands, or output.
"""
