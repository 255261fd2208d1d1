"""Module specifier parsing.

A specifier is the string a config uses to name a module:

* ``greet``                 bare name; local ``.forge/greet.py`` first
* ``./website``             local path relative to ``.forge/``
* ``forge_standard/hello``  package subpath in the shared tree
* ``forge_standard.hello``  same, dotted
* ``@team/forge_aws``       scoped package directory in the shared tree
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum

from forgectl.errors import SpecifierError


class SpecifierKind(StrEnum):
    """How a specifier string is interpreted."""

    LOCAL = "local"
    SHARED = "shared"
    BARE = "bare"


@dataclass(frozen=True)
class Specifier:
    """A parsed module specifier.

    Attributes:
        text: The original string from config.
        kind: Classification driving resolution order.
        parts: Path segments (relative prefix and scope marker included
            for LOCAL and scoped SHARED specifiers).
    """

    text: str
    kind: SpecifierKind
    parts: tuple[str, ...]

    @property
    def name(self) -> str:
        """Final path segment, used to derive the default group name."""
        return self.parts[-1]


def parse_specifier(text: str) -> Specifier:
    """Classify *text* into a :class:`Specifier`.

    Raises SpecifierError for empty, absolute, or malformed specifiers.

    Examples:
        >>> parse_specifier("greet").kind
        <SpecifierKind.BARE: 'bare'>
        >>> parse_specifier("./tools/deploy").parts
        ('.', 'tools', 'deploy')
        >>> parse_specifier("forge_standard.hello").parts
        ('forge_standard', 'hello')
    """
    raw = text.strip()
    if not raw:
        msg = "Empty module specifier"
        raise SpecifierError(msg)
    if raw.startswith("/") or raw.startswith("~"):
        msg = f"Absolute module specifiers are not supported: {text!r}"
        raise SpecifierError(msg)

    if raw.startswith("./") or raw.startswith("../"):
        parts = tuple(p for p in raw.split("/") if p)
        if len(parts) < 2 or parts[-1] in (".", ".."):
            msg = f"Local specifier must name a file: {text!r}"
            raise SpecifierError(msg)
        return Specifier(text=raw, kind=SpecifierKind.LOCAL, parts=parts)

    if "/" in raw:
        parts = tuple(raw.split("/"))
    elif raw.startswith("@"):
        msg = f"Scoped specifier needs a package name: {text!r}"
        raise SpecifierError(msg)
    else:
        parts = tuple(raw.split("."))

    if any(not p for p in parts):
        msg = f"Malformed module specifier: {text!r}"
        raise SpecifierError(msg)
    if any(p.startswith("@") for p in parts[1:]):
        msg = f"Scope prefix must come first: {text!r}"
        raise SpecifierError(msg)

    kind = SpecifierKind.BARE if len(parts) == 1 else SpecifierKind.SHARED
    return Specifier(text=raw, kind=kind, parts=parts)
