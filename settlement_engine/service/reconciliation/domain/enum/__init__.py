"""Reconciliation Domain Enums"""

from settlement_engine.service.reconciliation.domain.enum.issue_type import (
    IssueSeverity,
    IssueType,
)

__all__ = ['IssueSeverity', 'IssueType']
