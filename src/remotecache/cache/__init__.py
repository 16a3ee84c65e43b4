"""Response caching and refresh throttling for remotecache.

This package provides the two components that share the TTL store:

* :class:`ResponseCache` -- stores decoded response bodies under
  ``"{prefix}:{fingerprint}"`` with the descriptor's expiration as TTL.
* :class:`ThrottleCounter` -- counts refreshes per fingerprint under
  ``"{prefix}:limit:{fingerprint}"`` and caps them per window.

Both are written against :class:`TTLStore`; :class:`DiskTTLStore` is the
:mod:`diskcache` implementation used by default.
"""

from remotecache.cache.backends import DiskTTLStore, TTLStore
from remotecache.cache.cache import ResponseCache
from remotecache.cache.throttle import ThrottleCounter, ThrottleDecision

__all__ = ["DiskTTLStore", "ResponseCache", "TTLStore", "ThrottleCounter", "ThrottleDecision"]
