"""
Shiftbook - shift and cash-drawer reconciliation core for POS terminals
"""

__version__ = "1.0.0"
