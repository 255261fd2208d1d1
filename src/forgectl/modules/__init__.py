"""Module layer: specifiers, resolution, aliasing, loading, discovery.

This layer depends on stdlib, structlog, and forgectl.config / forgectl.errors.
It must never import from commands, packages, or cli.
"""
