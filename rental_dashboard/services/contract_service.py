from __future__ import annotations

import asyncio

from pydantic import ValidationError

from schemas.contracts import CONTRACT_STATUSES, ContractRequestDto, parse_contract_outcome
from services.api_client import (
    RentalApiError,
    RentalApiRejection,
    RentalApiTransportError,
    post_json,
)


CONTRACT_PATH = "/contract"


class ContractServiceError(RuntimeError):
    pass


class TransportError(ContractServiceError):
    pass


class ServerRejection(ContractServiceError):
    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class ContractService:
    """Remote contract-creation endpoint.

    ``create`` resolves with a ``ContractOutcome`` or raises a
    ``ContractServiceError``; timeouts are the transport's concern.
    """

    def __init__(self, path: str = CONTRACT_PATH, post=post_json):
        self._path = path
        self._post = post

    async def create(self, request: ContractRequestDto):
        payload = request.model_dump(mode="json")
        try:
            body = await asyncio.to_thread(self._post, self._path, payload)
        except RentalApiTransportError as exc:
            raise TransportError(str(exc)) from exc
        except RentalApiRejection as exc:
            raise ServerRejection(str(exc), exc.status_code) from exc
        except RentalApiError as exc:
            raise TransportError(str(exc)) from exc

        try:
            return parse_contract_outcome(body)
        except ValidationError as exc:
            status = body.get("status")
            if status in CONTRACT_STATUSES:
                raise ServerRejection(f"Malformed contract response for status {status!r}") from exc
            raise ServerRejection(f"Unrecognized contract response: {status!r}") from exc
