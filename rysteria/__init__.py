"""Protocol framing, UDP fragmentation, pacing and Brutal congestion control for a QUIC proxy."""

__version__ = "2.7.1"