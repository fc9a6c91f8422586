"""
Utility functions and helpers for MDB_DASHBOARD.
"""

from .mongo import clean_mongo_doc, clean_mongo_docs, clean_mongo_value, redact_uri

__all__ = ["clean_mongo_doc", "clean_mongo_docs", "clean_mongo_value", "redact_uri"]
