"""Spreadsheet -> Elasticsearch indexer.

Reads the first sheet of an .xlsx file, turns every data row into a document
keyed by sanitized header names and bulk-indexes the documents.
"""

__version__ = "0.1.0"
