"""
Core Error Handling
"""

from .errors import (
    RichMCPError,
    StructuralError,
    ResolutionError,
    ValidationError,
    AddressingError,
    EditStateError,
    EditStateException,
    format_structural_error,
    format_validation_error,
)

__all__ = [
    "RichMCPError",
    "StructuralError",
    "ResolutionError",
    "ValidationError",
    "AddressingError",
    "EditStateError",
    "EditStateException",
    "format_structural_error",
    "format_validation_error",
]
