"""
Spot enrichment pipeline.

Backfills missing attributes of point-of-interest records by calling
rate-limited inference, geocoding and image services, one record at a time.
"""

__version__ = "1.0.0"
