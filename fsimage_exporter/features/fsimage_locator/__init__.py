"""fsimage locator feature.

Finds the newest locally available fsimage, either by scanning the NameNode's
image directory or by downloading the most recent image from a NameNode web
endpoint into a staging file.
"""
