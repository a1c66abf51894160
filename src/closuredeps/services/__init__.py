"""Service layer — the live module graph, ordering and watching.

Services may import from domain, infrastructure and plugins.
They must never import from commands or output.
"""
