"""
Invalidation signalling.

Mutation handlers talk to the rebuild worker only through the
invalidator, which feeds a bounded channel.
"""

from .channel import InvalidationChannel
from .invalidator import TimelineInvalidator

__all__ = ["InvalidationChannel", "TimelineInvalidator"]
