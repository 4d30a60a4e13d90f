"""Language Server Protocol integration for Kedro data catalogs."""

from .server import KedroCatalogLanguageServer, create_server, main

__all__ = ["KedroCatalogLanguageServer", "create_server", "main"]
