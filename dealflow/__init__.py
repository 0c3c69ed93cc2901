"""
dealflow - Daily deal flow reporting for call-center back offices.
"""

__version__ = "0.1.0"
