"""
Textile Kernel

Domain values, typed exceptions, structured logging and persistence base
for the unified ledger and inventory reconciliation core:
- Fixed-point Money for every balance
- Tagged ledger entry references
- Structured JSON logging
- SQLAlchemy models for the reference Data Store
"""

__version__ = "0.1.0"
