"""
Reconciliation Kernel

Shared foundation for the sales invoice reconciliation engine:
- Structured JSON logging
- Typed exceptions with machine-readable codes
- Immutable sale / stock-movement / catalog DTOs
- Read-only persistence model (SQLAlchemy) and selectors
"""

__version__ = "0.1.0"
