"""
Analysis Engine Module

Calculates risk/return metrics from monthly price series:
- CAGR
- Volatility (population std-dev of simple returns)
- Return/volatility ratio
"""

__version__ = "0.1.0"
