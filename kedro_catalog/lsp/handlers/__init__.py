"""Handler registration helpers."""

from __future__ import annotations

from . import completion, definition, diagnostics, hover, inlay_hints, symbols


def register_all(server) -> None:
    diagnostics.register(server)
    completion.register(server)
    hover.register(server)
    definition.register(server)
    inlay_hints.register(server)
    symbols.register(server)


__all__ = ["register_all"]
