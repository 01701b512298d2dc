"""Library modules shared by the report pages.

Structure:
    - common/: Formatting helpers used across all pages
    - budgets/: Budget usage classification, aggregation and ranking
    - config/: JSON-backed constants and loaders
"""

__all__ = ['common', 'budgets', 'config']
