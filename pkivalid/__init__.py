"""Strict DER parsing and X.509 signed-data signature verification."""

__version__ = "0.1.0"
__all__ = ["algorithms", "der", "der_values", "errors", "signed_data"]