"""
Reconciliation Auditor - cross-checks the inventory, reservation, ticket and
payment ledgers of one event and describes every disagreement as an issue.
"""

from collections import Counter
from datetime import datetime
from typing import List

from settlement_engine.service.reconciliation.domain.entity.event_ledger_snapshot import (
    EventLedgerSnapshot,
)
from settlement_engine.service.reconciliation.domain.entity.reconciliation_report import (
    ReconciliationIssue,
    ReconciliationReport,
)
from settlement_engine.service.reconciliation.domain.enum.issue_type import (
    IssueSeverity,
    IssueType,
)


CONSUMED = 'consumed'


class ReconciliationAuditor:
    def __init__(self, *, revenue_tolerance_cents: int = 0) -> None:
        self.revenue_tolerance_cents = revenue_tolerance_cents

    def audit(self, snapshot: EventLedgerSnapshot, *, now: datetime) -> ReconciliationReport:
        consumed = [r for r in snapshot.reservations if r.status == CONSUMED]
        consumed_ids = {r.id for r in consumed}
        expected_revenue = sum(r.quantity * r.unit_price_cents for r in consumed)
        actual_revenue = sum(p.amount_cents for p in snapshot.payments)

        issues: List[ReconciliationIssue] = []

        if snapshot.sold_count != snapshot.ticket_count:
            issues.append(
                ReconciliationIssue(
                    type=IssueType.SOLD_COUNT_MISMATCH,
                    severity=IssueSeverity.HIGH,
                    message=(
                        f'Inventory reports {snapshot.sold_count} sold '
                        f'but {snapshot.ticket_count} tickets exist'
                    ),
                    details={
                        'sold_count': snapshot.sold_count,
                        'ticket_count': snapshot.ticket_count,
                    },
                )
            )

        orphans = [r for r in snapshot.reservations if r.status != CONSUMED and r.ticket_count > 0]
        if orphans:
            issues.append(
                ReconciliationIssue(
                    type=IssueType.ORPHAN_TICKETS,
                    severity=IssueSeverity.HIGH,
                    message=(
                        f'{sum(r.ticket_count for r in orphans)} tickets belong to '
                        f'unconsumed reservations'
                    ),
                    details={
                        'reservations': [
                            {
                                'reservation_id': str(r.id),
                                'status': r.status,
                                'ticket_count': r.ticket_count,
                            }
                            for r in orphans
                        ]
                    },
                )
            )

        miscounted = [r for r in consumed if r.ticket_count != r.quantity]
        if miscounted:
            issues.append(
                ReconciliationIssue(
                    type=IssueType.RESERVATION_TICKET_COUNT_MISMATCH,
                    severity=IssueSeverity.HIGH,
                    message=(
                        f'{len(miscounted)} consumed reservations have the wrong number of tickets'
                    ),
                    details={
                        'reservations': [
                            {
                                'reservation_id': str(r.id),
                                'quantity': r.quantity,
                                'ticket_count': r.ticket_count,
                            }
                            for r in miscounted
                        ]
                    },
                )
            )

        if len(snapshot.payments) != len(consumed):
            issues.append(
                ReconciliationIssue(
                    type=IssueType.PAYMENT_COUNT_MISMATCH,
                    severity=IssueSeverity.MEDIUM,
                    message=(
                        f'{len(snapshot.payments)} succeeded payments '
                        f'for {len(consumed)} consumed reservations'
                    ),
                    details={
                        'payments_succeeded_count': len(snapshot.payments),
                        'consumed_reservations_count': len(consumed),
                    },
                )
            )

        if abs(expected_revenue - actual_revenue) > self.revenue_tolerance_cents:
            issues.append(
                ReconciliationIssue(
                    type=IssueType.REVENUE_DISCREPANCY,
                    severity=IssueSeverity.HIGH,
                    message=f'Expected {expected_revenue} cents, collected {actual_revenue} cents',
                    details={
                        'expected_revenue_cents': expected_revenue,
                        'actual_revenue_cents': actual_revenue,
                        'tolerance_cents': self.revenue_tolerance_cents,
                    },
                )
            )

        unmatched_payments = [p for p in snapshot.payments if p.reservation_id not in consumed_ids]
        if unmatched_payments:
            issues.append(
                ReconciliationIssue(
                    type=IssueType.PAYMENTS_WITHOUT_CONSUMED_RESERVATION,
                    severity=IssueSeverity.HIGH,
                    message=(
                        f'{len(unmatched_payments)} payments have no consumed reservation '
                        f'(refund candidates)'
                    ),
                    details={
                        'payments': [
                            {
                                'provider_payment_id': p.provider_payment_id,
                                'reservation_id': (
                                    str(p.reservation_id) if p.reservation_id else None
                                ),
                                'amount_cents': p.amount_cents,
                            }
                            for p in unmatched_payments
                        ]
                    },
                )
            )

        paid_reservation_ids = {p.reservation_id for p in snapshot.payments}
        unpaid = [r for r in consumed if r.id not in paid_reservation_ids]
        if unpaid:
            issues.append(
                ReconciliationIssue(
                    type=IssueType.CONSUMED_RESERVATIONS_WITHOUT_PAYMENT,
                    severity=IssueSeverity.MEDIUM,
                    message=f'{len(unpaid)} consumed reservations have no succeeded payment',
                    details={'reservation_ids': [str(r.id) for r in unpaid]},
                )
            )

        payment_counts = Counter(p.reservation_id for p in snapshot.payments if p.reservation_id)
        duplicated = {rid: n for rid, n in payment_counts.items() if n > 1}
        if duplicated:
            issues.append(
                ReconciliationIssue(
                    type=IssueType.DUPLICATE_PAYMENTS,
                    severity=IssueSeverity.MEDIUM,
                    message=f'{len(duplicated)} reservations were paid more than once',
                    details={
                        'reservations': [
                            {'reservation_id': str(rid), 'payment_count': n}
                            for rid, n in duplicated.items()
                        ]
                    },
                )
            )

        return ReconciliationReport.new(
            event_id=snapshot.event_id,
            generated_at=now,
            issues=issues,
            sold_count=snapshot.sold_count,
            tickets_issued_count=snapshot.ticket_count,
            consumed_reservations_count=len(consumed),
            payments_succeeded_count=len(snapshot.payments),
            expected_revenue_cents=expected_revenue,
            actual_revenue_cents=actual_revenue,
        )
