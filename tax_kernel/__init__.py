"""
Tax Kernel - foundations for the line-item tax engines.

Decimal value helpers, the typed exception hierarchy, and structured
JSON logging shared by ``tax_engines`` and ``tax_config``.
"""

__version__ = "0.1.0"
