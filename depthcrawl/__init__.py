"""
Depth Crawler

A depth-bounded concurrent web crawler that records element attributes
while walking a link graph from a single seed.
"""

__version__ = "1.0.0"
__description__ = "Depth-bounded concurrent crawler with reference-counted termination"
