"""
Unit of Work Pattern - one session and one transaction per logical operation

Architecture:
- UoW owns the session lifecycle (opened on enter, closed on exit)
- UoW owns commit/rollback; leaving without commit rolls back
- Repositories share the UoW session, so row locks taken by one repository
  are held until the UoW commits
- Use cases create a fresh UoW per transaction through ``uow_factory``
"""

from __future__ import annotations

import abc
from contextlib import AbstractAsyncContextManager
from typing import TYPE_CHECKING, Callable, Optional

from sqlalchemy.ext.asyncio import AsyncSession


if TYPE_CHECKING:
    from settlement_engine.service.reconciliation.app.interface.i_reconciliation_query_repo import (
        IReconciliationQueryRepo,
    )
    from settlement_engine.service.reconciliation.app.interface.i_reconciliation_result_repo import (
        IReconciliationResultRepo,
    )
    from settlement_engine.service.reservation.app.interface.i_inventory_repo import (
        IInventoryRepo,
    )
    from settlement_engine.service.reservation.app.interface.i_reservation_repo import (
        IReservationRepo,
    )
    from settlement_engine.service.reservation.app.interface.i_ticket_repo import ITicketRepo
    from settlement_engine.service.settlement.app.interface.i_payment_repo import IPaymentRepo
    from settlement_engine.service.settlement.app.interface.i_processed_event_repo import (
        IProcessedEventRepo,
    )


class AbstractUnitOfWork(abc.ABC):
    """
    Abstract Unit of Work for the settlement engine

    Usage:
        async with uow_factory() as uow:
            inventory = await uow.inventory_repo.get_for_update(...)
            await uow.commit()
    """

    # Reservation ledgers
    inventory_repo: IInventoryRepo
    reservation_repo: IReservationRepo
    ticket_repo: ITicketRepo

    # Settlement ledgers
    payment_repo: IPaymentRepo
    processed_event_repo: IProcessedEventRepo

    # Reconciliation
    reconciliation_query_repo: IReconciliationQueryRepo
    reconciliation_result_repo: IReconciliationResultRepo

    async def __aenter__(self) -> AbstractUnitOfWork:
        return self

    async def __aexit__(self, *args) -> None:
        await self.rollback()

    async def commit(self) -> None:
        """Commit the transaction"""
        await self._commit()

    @abc.abstractmethod
    async def _commit(self) -> None:
        raise NotImplementedError

    @abc.abstractmethod
    async def rollback(self) -> None:
        raise NotImplementedError


class SqlAlchemyUnitOfWork(AbstractUnitOfWork):
    """
    SQLAlchemy implementation of Unit of Work

    Usage in use case:
        async with self.uow_factory() as uow:
            await self.reservation_manager.reserve(uow, ...)
            await uow.commit()
    """

    def __init__(self, *, session_factory: Callable[[], AbstractAsyncContextManager[AsyncSession]]):
        self._session_factory = session_factory
        self._session_cm: Optional[AbstractAsyncContextManager[AsyncSession]] = None
        self.session: AsyncSession

    async def __aenter__(self) -> SqlAlchemyUnitOfWork:
        from settlement_engine.service.reconciliation.driven_adapter.repo.reconciliation_query_repo_impl import (
            ReconciliationQueryRepoImpl,
        )
        from settlement_engine.service.reconciliation.driven_adapter.repo.reconciliation_result_repo_impl import (
            ReconciliationResultRepoImpl,
        )
        from settlement_engine.service.reservation.driven_adapter.repo.inventory_repo_impl import (
            InventoryRepoImpl,
        )
        from settlement_engine.service.reservation.driven_adapter.repo.reservation_repo_impl import (
            ReservationRepoImpl,
        )
        from settlement_engine.service.reservation.driven_adapter.repo.ticket_repo_impl import (
            TicketRepoImpl,
        )
        from settlement_engine.service.settlement.driven_adapter.repo.payment_repo_impl import (
            PaymentRepoImpl,
        )
        from settlement_engine.service.settlement.driven_adapter.repo.processed_event_repo_impl import (
            ProcessedEventRepoImpl,
        )

        self._session_cm = self._session_factory()
        self.session = await self._session_cm.__aenter__()

        # Create repositories with shared session
        self.inventory_repo = InventoryRepoImpl(session=self.session)
        self.reservation_repo = ReservationRepoImpl(session=self.session)
        self.ticket_repo = TicketRepoImpl(session=self.session)
        self.payment_repo = PaymentRepoImpl(session=self.session)
        self.processed_event_repo = ProcessedEventRepoImpl(session=self.session)
        self.reconciliation_query_repo = ReconciliationQueryRepoImpl(session=self.session)
        self.reconciliation_result_repo = ReconciliationResultRepoImpl(session=self.session)

        await super().__aenter__()
        return self

    async def __aexit__(self, *args) -> None:
        try:
            await super().__aexit__(*args)
        finally:
            if self._session_cm is not None:
                await self._session_cm.__aexit__(*args)
                self._session_cm = None

    async def _commit(self) -> None:
        await self.session.commit()

    async def rollback(self) -> None:
        await self.session.rollback()
