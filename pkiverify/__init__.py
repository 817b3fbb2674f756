"""Strict DER parsing, DER value decoders and ranked validation errors for Web PKI checking."""

__version__ = "0.1.0"
__all__ = ["der", "der_values", "errors"]