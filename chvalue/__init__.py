"""Typed client-side values for columnar database cells: types, values, references and conversions."""

__version__ = "0.1.0"
__all__ = ["convert", "sqltype", "unmarshal", "value", "value_ref"]