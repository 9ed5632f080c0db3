"""
Silver layer ETL processes for the CRM/ERP lakehouse.

This package contains one conformance stage per source entity, which reads the
bronze table, deduplicates, normalizes and derives fields, and overwrites the
matching silver Delta table. ``load_silver`` runs all stages in order.
"""
