"""
Invoice validation engine: duplicate detection and anomaly rules for submitted invoices.
"""

__version__ = "0.1.0"
