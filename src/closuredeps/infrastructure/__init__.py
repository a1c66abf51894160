"""Infrastructure layer — JavaScript parsing, filesystem, graph index.

This layer depends on the domain layer and third-party libs (tree-sitter,
pathspec, NetworkX). It must never import from services, commands, or output.
"""
