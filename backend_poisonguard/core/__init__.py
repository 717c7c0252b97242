"""
Core utilities: shared exceptions and cross-cutting concerns.

Used across the analysis engine, ingestion layer, API server and tools.
"""
