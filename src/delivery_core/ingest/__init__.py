"""Ingestion: platform CSV exports -> deduplicated, location-tagged transactions.

- ``cleaning_utils``: BOM/invisible stripping, tolerant column lookup, money and date parsing
- ``format_detector``: caption-row detection and CSV decoding
- ``rows``: per-platform row builders with historical header spellings
- ``dedup``: one transaction per platform-native key
- ``pipeline``: ``ingest_csv`` tying the stages together
"""
