"""Refresh feature.

A single background task discovers new fsimage versions, parses them off the
request path and atomically publishes the resulting statistics snapshot for
scrapes to read.
"""
