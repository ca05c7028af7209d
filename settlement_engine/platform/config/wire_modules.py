"""
Wire Modules Configuration

Defines the modules that need dependency injection wiring.
Shared between production and test environments.
"""

from types import ModuleType

from settlement_engine.service.reconciliation.app.command import (
    reconcile_due_use_case,
    reconcile_event_use_case,
)
from settlement_engine.service.reconciliation.app.query import (
    list_reconciliation_reports_use_case,
)
from settlement_engine.service.reservation.app.command import (
    consume_reservation_use_case,
    expire_reservations_use_case,
    initialize_inventory_use_case,
    release_reservation_use_case,
    reserve_tickets_use_case,
)
from settlement_engine.service.reservation.app.query import (
    get_availability_use_case,
    get_reservation_use_case,
)
from settlement_engine.service.settlement.app.command import (
    create_checkout_use_case,
    handle_external_event_use_case,
)
from settlement_engine.service.settlement.driving_adapter.http_controller import (
    settlement_webhook_controller,
)
from settlement_engine.service.shared_kernel.driving_adapter.auth import role_auth


WIRE_MODULES: list[ModuleType] = [
    initialize_inventory_use_case,
    reserve_tickets_use_case,
    release_reservation_use_case,
    consume_reservation_use_case,
    expire_reservations_use_case,
    get_availability_use_case,
    get_reservation_use_case,
    create_checkout_use_case,
    handle_external_event_use_case,
    reconcile_event_use_case,
    reconcile_due_use_case,
    list_reconciliation_reports_use_case,
    settlement_webhook_controller,
    role_auth,
]
