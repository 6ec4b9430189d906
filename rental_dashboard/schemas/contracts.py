import os
from typing import Annotated, Any, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter


DEFAULT_SITE_ID = (os.environ.get("DEFAULT_SITE_ID") or "site_5678efgh").strip()

PROCEED_WITH_PARTIAL = "PROCEED_WITH_PARTIAL"
NEXT_AVAILABLE_DATE = "NEXT_AVAILABLE_DATE"
CONTRACT_STATUSES = ("CREATED", "PARTIALLY_AVAILABLE", "UNAVAILABLE")


class LineItemDto(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    equipmentType: str
    quantity: int = Field(1, ge=1)


class ContractRequestDto(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    clientId: str
    siteId: str = DEFAULT_SITE_ID
    startDate: str
    endDate: str
    lineItems: List[LineItemDto] = Field(..., min_length=1)


class ContractLineItem(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    lineItemId: str
    equipmentId: str
    # Telemetry is passed through as the server sends it.
    startDate: Optional[Any] = None
    endDate: Optional[Any] = None
    totalEngineHours: Optional[Any] = None
    fuelUsage: Optional[Any] = None
    downtimeHours: Optional[Any] = None
    operatingDays: Optional[Any] = None
    lastOperatorId: Optional[Any] = None


class CreatedContract(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    contractId: str
    clientId: str
    siteId: str
    startDate: str
    endDate: str
    lineItems: List[ContractLineItem] = []


class AvailabilityOption(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    type: str
    availableQuantity: Optional[int] = None
    waitlistQuantity: Optional[int] = None


class AvailabilitySuggestion(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    type: str
    nextAvailableDate: Optional[str] = None


class CreatedOutcome(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="allow", frozen=True)

    status: Literal["CREATED"] = "CREATED"
    contract: CreatedContract


class PartiallyAvailableOutcome(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="allow", frozen=True)

    status: Literal["PARTIALLY_AVAILABLE"] = "PARTIALLY_AVAILABLE"
    message: str = ""
    options: List[AvailabilityOption] = []

    def find_option(self, option_type: str) -> Optional[AvailabilityOption]:
        for option in self.options:
            if option.type == option_type:
                return option
        return None


class UnavailableOutcome(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="allow", frozen=True)

    status: Literal["UNAVAILABLE"] = "UNAVAILABLE"
    message: str = ""
    suggestions: List[AvailabilitySuggestion] = []


ContractOutcome = Annotated[
    Union[CreatedOutcome, PartiallyAvailableOutcome, UnavailableOutcome],
    Field(discriminator="status"),
]

CONTRACT_OUTCOME_ADAPTER: TypeAdapter = TypeAdapter(ContractOutcome)


def parse_contract_outcome(payload: dict):
    return CONTRACT_OUTCOME_ADAPTER.validate_python(payload)


def dump_contract_outcome(outcome) -> dict:
    payload = outcome.model_dump(mode="json", exclude_unset=True)
    payload["status"] = outcome.status
    return payload
