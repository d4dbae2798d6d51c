"""State layer.

This package holds the categorized request buckets, their freshness, the
per-category fetch bookkeeping (throttling, in-flight flags, cancellation
tokens) and the pure classifier used by the queue dashboard.
"""
