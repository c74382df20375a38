"""Prometheus metrics feature.

Exposes the published statistics snapshot as Prometheus metric families,
plus scrape bookkeeping (requests, errors, duration).
"""
