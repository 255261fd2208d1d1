"""Builtin command modules, registered before any project module."""

BUILTIN_MODULES = ("forgectl.builtins.core", "forgectl.builtins.module")
