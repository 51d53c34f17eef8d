"""Rate limiting adapters.

Admission decisions are derived entirely from window records kept in the
TTL store, so the limiter works over any medium the store supports.
"""
