"""
Prometheus Metrics Module

Instrumentation for the poll service:
- API requests
- Poll creation and ballot acceptance/rejection
- Places lookup requests
- Rate limiting and errors

Usage:
    from server.metrics import metrics
    metrics.ballots_rejected.labels(reason="poll_full").inc()
    with metrics.tally_duration.time():
        compute_ranked_tally(candidates, ballots)
"""

from prometheus_client import Counter, Histogram, generate_latest, REGISTRY


class DinePollMetrics:
    """Centralized metrics for dinepoll API and ingestion"""

    def __init__(self):
        # API metrics
        self.api_requests = Counter(
            'dinepoll_api_requests_total',
            'Total API requests',
            ['endpoint', 'method', 'status_code']
        )

        self.api_request_duration = Histogram(
            'dinepoll_api_request_duration_seconds',
            'API request duration',
            ['endpoint', 'method'],
            buckets=[0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0]
        )

        # Poll metrics
        self.polls_created = Counter(
            'dinepoll_polls_created_total',
            'Total polls created',
            ['source']  # api, populate
        )

        self.ballots_submitted = Counter(
            'dinepoll_ballots_submitted_total',
            'Total ballots accepted'
        )

        self.ballots_rejected = Counter(
            'dinepoll_ballots_rejected_total',
            'Total ballots rejected by reason',
            ['reason']  # invalid_ballot, poll_closed, poll_full, not_found
        )

        self.tally_duration = Histogram(
            'dinepoll_tally_duration_seconds',
            'Ranked tally computation duration',
            buckets=[0.0005, 0.001, 0.005, 0.01, 0.05, 0.1]
        )

        # Places lookup metrics
        self.places_requests = Counter(
            'dinepoll_places_requests_total',
            'Total places service requests',
            ['operation', 'status']
        )

        self.places_request_duration = Histogram(
            'dinepoll_places_request_duration_seconds',
            'Places service request duration',
            ['operation'],
            buckets=[0.1, 0.25, 0.5, 1, 2, 5, 10]
        )

        # Rate limiting
        self.rate_limited = Counter(
            'dinepoll_rate_limited_total',
            'Requests rejected by the rate limiter'
        )

        # Error metrics
        self.errors = Counter(
            'dinepoll_errors_total',
            'Total errors by component and type',
            ['component', 'error_type']
        )

    def record_error(self, component: str, error: Exception):
        """Record an error

        Args:
            component: Component name (places/database/api/ingestion)
            error: Exception instance
        """
        error_type = type(error).__name__
        self.errors.labels(component=component, error_type=error_type).inc()


# Global metrics instance
metrics = DinePollMetrics()


def get_metrics_text() -> str:
    """Get Prometheus metrics in text format for the /metrics endpoint"""
    return generate_latest(REGISTRY).decode('utf-8')
