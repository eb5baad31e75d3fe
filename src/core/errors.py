"""Errors raised for structurally invalid configuration or input tables."""


class ConfigError(ValueError):
    """Invalid configuration (bad transform, bucket count, unknown table, unfitted map...)."""


class SchemaError(ValueError):
    """Structurally invalid input table (missing columns, empty, duplicate keys, bad labels)."""
