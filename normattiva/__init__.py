"""
normattiva ingestion pipeline.

Crawls statutory text from normattiva.it, converts it into seed records of
Acts and Provisions, extracts EU cross-references and parses/validates/formats
Italian legal citations against the resulting corpus.
"""

PIPELINE_VERSION = "0.1.0"
