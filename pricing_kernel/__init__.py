"""
Pricing Kernel

Value objects, row types and persistence for catering event quotes:
- Decimal-only Money with per-currency rounding
- Self-normalizing section rows
- Typed exceptions with machine-readable codes
- Structured JSON logging
"""

__version__ = "0.1.0"
