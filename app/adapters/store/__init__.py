"""TTL store adapters.

The store is the only component that touches the backing medium. The rate
limiter, activity gate and analytics batcher keep no state of their own
beyond what they read back from it.
"""
