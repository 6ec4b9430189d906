from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict

from schemas.contracts import ContractOutcome, PartiallyAvailableOutcome, dump_contract_outcome


class NegotiationPhase(str, Enum):
    IDLE = "Idle"
    SUBMITTING = "Submitting"
    RESOLVED = "Resolved"
    FAILED = "Failed"


class NegotiationState(BaseModel):
    model_config = ConfigDict(frozen=True)

    phase: NegotiationPhase = NegotiationPhase.IDLE
    outcome: Optional[ContractOutcome] = None
    errorMessage: Optional[str] = None

    @classmethod
    def idle(cls) -> "NegotiationState":
        return cls(phase=NegotiationPhase.IDLE)

    @classmethod
    def submitting(cls) -> "NegotiationState":
        return cls(phase=NegotiationPhase.SUBMITTING)

    @classmethod
    def resolved(cls, outcome) -> "NegotiationState":
        return cls(phase=NegotiationPhase.RESOLVED, outcome=outcome)

    @classmethod
    def failed(cls, message: str) -> "NegotiationState":
        return cls(phase=NegotiationPhase.FAILED, errorMessage=message)

    @property
    def is_partially_available(self) -> bool:
        return self.phase is NegotiationPhase.RESOLVED and isinstance(self.outcome, PartiallyAvailableOutcome)

    def to_payload(self) -> dict:
        return {
            "phase": self.phase.value,
            "outcome": dump_contract_outcome(self.outcome) if self.outcome is not None else None,
            "errorMessage": self.errorMessage,
        }
