"""
Ledger Kernel

Shared foundation for the document intake ledger:
- Typed exceptions with machine-readable codes
- Structured JSON logging with review-scoped context
- Database base classes, engine and money types
- Clock and workflow primitives
"""

__version__ = "0.1.0"
