"""Infrastructure layer — operational concerns for the tuner service.

Modules:
    metrics     Prometheus metrics registry (optional dependency).
"""
