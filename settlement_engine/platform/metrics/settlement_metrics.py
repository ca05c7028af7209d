from prometheus_client import Counter, Gauge, Histogram


class SettlementMetrics:
    """
    Settlement Engine Core Metrics Collector

    Tracks the hold → pay → issue pipeline and the background jobs that
    clean up after it (expiration sweep, reconciliation)
    """

    def __init__(self):
        # ========== Reservation Metrics ==========
        self.reservation_requests = Counter(
            'settlement_reservation_requests_total',
            'Total reserve attempts',
            ['result'],  # result: success/insufficient/not_found/invalid
        )

        self.reservation_duration = Histogram(
            'settlement_reservation_duration_seconds',
            'Reserve transaction duration (includes inventory row lock wait)',
            buckets=[0.001, 0.005, 0.01, 0.05, 0.1, 0.5, 1.0, 2.0, 5.0],
        )

        self.reservations_released = Counter(
            'settlement_reservations_released_total',
            'Reservations returned to inventory',
            ['status', 'source'],  # status: expired/cancelled, source: sweeper/consume/api/webhook
        )

        # ========== Ticket Issuance Metrics ==========
        self.tickets_issued = Counter(
            'settlement_tickets_issued_total',
            'Tickets created by Consume',
        )

        self.consume_results = Counter(
            'settlement_consume_results_total',
            'Consume outcomes',
            ['outcome'],
        )

        # ========== Webhook Metrics ==========
        self.webhook_events = Counter(
            'settlement_webhook_events_total',
            'Payment provider notifications handled',
            ['event_type', 'outcome'],
        )

        # ========== Background Job Metrics ==========
        self.sweeper_runs = Counter(
            'settlement_sweeper_runs_total',
            'Expiration sweeper iterations',
            ['result'],  # result: ok/error
        )

        self.reconciliation_discrepancies = Counter(
            'settlement_reconciliation_discrepancies_total',
            'Reconciliation issues found',
            ['issue_type', 'severity'],
        )

        self.events_with_discrepancies = Gauge(
            'settlement_events_with_discrepancies',
            'Events whose last reconciliation run found issues (per scheduled run)',
        )

    # ========== Helper Methods ==========

    def record_reservation(self, *, result: str, duration: float) -> None:
        self.reservation_requests.labels(result=result).inc()
        self.reservation_duration.observe(duration)

    def record_release(self, *, status: str, source: str, count: int = 1) -> None:
        if count:
            self.reservations_released.labels(status=status, source=source).inc(count)

    def record_consume(self, *, outcome: str, tickets_issued: int = 0) -> None:
        self.consume_results.labels(outcome=outcome).inc()
        if tickets_issued:
            self.tickets_issued.inc(tickets_issued)

    def record_webhook_event(self, *, event_type: str, outcome: str) -> None:
        self.webhook_events.labels(event_type=event_type, outcome=outcome).inc()

    def record_discrepancy(self, *, issue_type: str, severity: str) -> None:
        self.reconciliation_discrepancies.labels(issue_type=issue_type, severity=severity).inc()


# Global metrics instance
metrics = SettlementMetrics()
