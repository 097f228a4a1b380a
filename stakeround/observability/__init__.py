# MIT License
# Copyright (c) 2025 Hashborn

"""
Observability Module

Provides Prometheus metrics for the round scheduler.
"""

from .metrics import metrics_registry, render_metrics

__all__ = ['metrics_registry', 'render_metrics']
