"""
Infrastructure Layer

Redis-backed cache store, serializers and Prometheus metrics.
"""
