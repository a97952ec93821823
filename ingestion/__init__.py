"""
Data Ingestion Module

Handles fetching and validating data from external sources:
- Alpha Vantage for monthly closing prices
- Rate limiting between API requests
"""

__version__ = "0.1.0"
