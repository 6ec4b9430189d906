from __future__ import annotations

import asyncio
import logging
from typing import Callable

from schemas.contracts import PROCEED_WITH_PARTIAL, ContractRequestDto
from schemas.negotiation import NegotiationPhase, NegotiationState
from services.api_client import DEFAULT_ERROR_MESSAGE
from services.contract_service import ContractServiceError


LOGGER = logging.getLogger("rental_dashboard.negotiation")

StateListener = Callable[[NegotiationState], None]


class InvalidRetryState(RuntimeError):
    pass


class NegotiationController:
    """Contract request lifecycle for one contract form.

    Idle -> Submitting -> Resolved(outcome) | Failed(message). A partially
    available outcome can be retried with the server's offered quantity;
    every other resolved or failed state only leaves through ``reset``
    (``submit`` is also accepted from Failed).

    At most one submission is in flight. The guard is set before the first
    ``await``, so a second call from the same event loop sees it, and it is
    only cleared once the service call settles. ``reset`` and ``close``
    change the displayed state but do not release it.
    """

    def __init__(self, service, *, strict: bool = False):
        self._service = service
        self._strict = strict
        self._state = NegotiationState.idle()
        self._last_request: ContractRequestDto | None = None
        self._generation = 0
        self._closed = False
        self._retrying = False
        self._in_flight = False
        self._listeners: list[StateListener] = []

    @property
    def state(self) -> NegotiationState:
        return self._state

    @property
    def last_request(self) -> ContractRequestDto | None:
        return self._last_request

    @property
    def is_busy(self) -> bool:
        return self._in_flight

    @property
    def retrying(self) -> bool:
        return self._retrying

    @property
    def closed(self) -> bool:
        return self._closed

    def subscribe(self, listener: StateListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    async def submit(self, request: ContractRequestDto) -> NegotiationState:
        if self._closed:
            LOGGER.warning("Submit ignored reason=closed")
            return self._state
        if self._in_flight:
            LOGGER.warning("Submit ignored reason=in_flight")
            return self._state
        if self._state.phase is NegotiationPhase.RESOLVED:
            LOGGER.warning("Submit ignored reason=resolved status=%s", self._state.outcome.status)
            return self._state
        return await self._send(request)

    async def retry_with_partial(self) -> NegotiationState:
        if self._closed:
            LOGGER.warning("Retry ignored reason=closed")
            return self._state
        if self._in_flight:
            LOGGER.warning("Retry ignored reason=in_flight")
            return self._state
        if not self._state.is_partially_available or self._last_request is None:
            return self._reject_retry(
                f"Retry requires a partially available outcome; current phase is {self._state.phase.value}."
            )

        option = self._state.outcome.find_option(PROCEED_WITH_PARTIAL)
        if option is None:
            LOGGER.error("Retry ignored reason=missing_option option=%s", PROCEED_WITH_PARTIAL)
            if self._strict:
                raise InvalidRetryState(f"No {PROCEED_WITH_PARTIAL} option in the availability response.")
            return self._state

        adjusted = self._last_request.model_copy(deep=True)
        if option.availableQuantity is not None:
            # The option does not name a line item; the first one is patched.
            adjusted.lineItems[0].quantity = option.availableQuantity
        LOGGER.info(
            "Retrying with partial availability quantity=%s waitlist=%s",
            option.availableQuantity,
            option.waitlistQuantity,
        )
        self._retrying = True
        try:
            return await self._send(adjusted)
        finally:
            self._retrying = False

    def reset(self) -> NegotiationState:
        self._generation += 1
        self._retrying = False
        self._set_state(NegotiationState.idle())
        return self._state

    def close(self) -> None:
        self._closed = True
        self._generation += 1
        self._listeners.clear()

    def _reject_retry(self, message: str) -> NegotiationState:
        LOGGER.warning("Retry ignored reason=invalid_state phase=%s", self._state.phase.value)
        if self._strict:
            raise InvalidRetryState(message)
        return self._state

    async def _send(self, request: ContractRequestDto) -> NegotiationState:
        self._generation += 1
        generation = self._generation
        self._last_request = request
        self._in_flight = True
        self._set_state(NegotiationState.submitting())
        LOGGER.info("Submitting contract request client=%s lines=%s", request.clientId, len(request.lineItems))

        try:
            outcome = await self._service.create(request)
        except ContractServiceError as exc:
            LOGGER.warning("Contract request failed error=%s", exc)
            next_state = NegotiationState.failed(str(exc) or DEFAULT_ERROR_MESSAGE)
        except asyncio.CancelledError:
            if self._is_current(generation):
                self._set_state(NegotiationState.idle())
            raise
        except Exception:
            LOGGER.exception("Contract request crashed")
            next_state = NegotiationState.failed(DEFAULT_ERROR_MESSAGE)
        else:
            next_state = NegotiationState.resolved(outcome)
        finally:
            self._in_flight = False

        if not self._is_current(generation):
            LOGGER.info("Discarding stale contract response generation=%s current=%s", generation, self._generation)
            return self._state

        if next_state.outcome is not None:
            LOGGER.info("Contract request resolved status=%s", next_state.outcome.status)
        self._set_state(next_state)
        return self._state

    def _is_current(self, generation: int) -> bool:
        return not self._closed and generation == self._generation

    def _set_state(self, state: NegotiationState) -> None:
        self._state = state
        for listener in list(self._listeners):
            listener(state)
