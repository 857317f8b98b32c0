"""Initialise the RFM customer dashboard package.

This package contains a minimal JSON API server and a SQLAlchemy-backed
data access layer for browsing RFM-segmented customers and their product
history. To start the API, run ``PYTHONPATH=src python3 -m app.server``
after populating the database with ``PYTHONPATH=src python3 -m
scripts.sample_data`` or your own loader.
"""

__all__ = []
