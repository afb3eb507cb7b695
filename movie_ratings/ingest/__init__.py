"""
Ingest package: reading input units into batches.
"""

from movie_ratings.ingest.reader import REQUIRED_COLUMNS, CSVBatchReader

__all__ = ["CSVBatchReader", "REQUIRED_COLUMNS"]
