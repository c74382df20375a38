"""Prometheus exporter for HDFS fsimage statistics."""

__app_name__ = "fsimage-exporter"
__version__ = "0.1.0"
