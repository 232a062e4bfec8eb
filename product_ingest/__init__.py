"""Product Ingest - wedding product scraping and review staging."""

__version__ = "0.1.0"
