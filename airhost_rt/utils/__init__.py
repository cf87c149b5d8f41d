"""
Utility functions module.

Time handling shared by the cache, the aggregator and the pricing engine.

Time Semantics:
- Every wall-clock timestamp the system emits is timezone-aware UTC
- Cache ages are measured with an injectable monotonic clock
- Pricing works on calendar dates, never on datetimes
"""
