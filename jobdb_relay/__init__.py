"""
jobdb-relay - crawls recruiting-agent job databases through one shared browser
session and streams validated postings back to the caller.
"""

__version__ = "0.1.0"
