"""
Campus-card (FHU) balance scraper: log in, fetch the account page, parse balances and transactions.
"""

__version__ = "0.1.0"
