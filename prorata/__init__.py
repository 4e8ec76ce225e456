"""
Prorata - motor de rateio de commitments e fixed charges
"""

__version__ = "1.0.0"
