from abc import ABC, abstractmethod

from settlement_engine.service.settlement.app.dto.external_event_dto import ExternalEvent


class IWebhookVerifier(ABC):
    @abstractmethod
    def verify(self, *, payload: bytes, signature: str | None) -> ExternalEvent:
        """Raises InvalidSignatureError or MalformedExternalEventError."""
        pass
