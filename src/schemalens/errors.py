from __future__ import annotations


class SchemaLensError(Exception):
    """Base class for errors raised at the file/config boundary."""


class CatalogError(SchemaLensError):
    """A catalog file is missing or does not describe a schema graph."""


class ConfigError(SchemaLensError):
    """The runtime configuration file cannot be read."""
