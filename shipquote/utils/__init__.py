"""Utility functions for the quote service."""
from .logging_security import SecureLogger, log_secure
from .text import collapse_whitespace, fold_text, mask_spans
from .units import normalize_length, normalize_weight

__all__ = [
    # Logging
    'SecureLogger',
    'log_secure',
    # Text
    'collapse_whitespace',
    'fold_text',
    'mask_spans',
    # Units
    'normalize_length',
    'normalize_weight',
]
