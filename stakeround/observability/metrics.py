# MIT License
# Copyright (c) 2025 Hashborn

"""
Prometheus Metrics Exporter

Exports round scheduler metrics in Prometheus format.

Metrics:
- Active era and last nominated era
- Round actions (start only, end + start) and skip reasons
- Job progress per job name
- Chain query errors per query
- Nomination submissions per status
"""

from prometheus_client import Counter, Gauge, CollectorRegistry, generate_latest

# Create registry for metrics
metrics_registry = CollectorRegistry()

# ═══════════════════════════════════════════════════════════════════
# ERA METRICS
# ═══════════════════════════════════════════════════════════════════

active_era = Gauge(
    'stakeround_active_era',
    'Active era index last observed on chain',
    registry=metrics_registry
)

last_nominated_era = Gauge(
    'stakeround_last_nominated_era',
    'Era index of the most recent nomination round',
    registry=metrics_registry
)

# ═══════════════════════════════════════════════════════════════════
# ROUND METRICS
# ═══════════════════════════════════════════════════════════════════

rounds_total = Counter(
    'stakeround_rounds_total',
    'Round invocations that acted, by action',
    ['action'],
    registry=metrics_registry
)

round_skips_total = Counter(
    'stakeround_round_skips_total',
    'Round invocations that returned early, by reason',
    ['reason'],
    registry=metrics_registry
)

job_progress = Gauge(
    'stakeround_job_progress',
    'Latest reported progress of a job (0-100)',
    ['job'],
    registry=metrics_registry
)

nominations_total = Counter(
    'stakeround_nominations_total',
    'Nomination submissions, by status',
    ['status'],
    registry=metrics_registry
)

# ═══════════════════════════════════════════════════════════════════
# CHAIN METRICS
# ═══════════════════════════════════════════════════════════════════

chain_query_errors_total = Counter(
    'stakeround_chain_query_errors_total',
    'Chain queries that failed, by query',
    ['query'],
    registry=metrics_registry
)


def render_metrics() -> bytes:
    """Returns all metrics in the Prometheus text exposition format."""
    return generate_latest(metrics_registry)
