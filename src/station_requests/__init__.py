"""
station-requests: listener request queue for radio stations.

Admits listener song requests against duplicate, recency and rate-limit rules
and picks the next request a station should play.
"""

__version__ = "0.1.0"
