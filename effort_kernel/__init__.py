"""
Effort Kernel

Persistence, domain values and infrastructure for monthly effort reporting:
- Decimal person-month values at ledger precision
- Typed exceptions with machine-readable codes
- Structured JSON logging
- SQLAlchemy models, selectors and the ledger adapter used by overload
  resolution
"""

__version__ = "0.1.0"
