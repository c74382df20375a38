"""Statistics feature.

Turns an fsimage into an immutable StatisticsSnapshot: overall, per-user,
per-group, per-path and per-path-set counts, sizes and file size
distributions. Binary decoding is delegated to Hadoop's Offline Image Viewer.
"""
