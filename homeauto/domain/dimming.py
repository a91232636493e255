from __future__ import annotations
import asyncio
import logging
from dataclasses import dataclass, replace
from typing import Optional

from ..core.scheduling import Scheduler
from .entities import parse_float
from .interfaces import LightActuator, StateReader
from .models import ActuatorState

logger = logging.getLogger(__name__)

FULL_BRIGHTNESS = 100


class _CancelToken:
    def __init__(self) -> None:
        self._event = asyncio.Event()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self) -> None:
        self._event.set()

    async def wait(self) -> None:
        await self._event.wait()


@dataclass(frozen=True)
class DimParameters:
    brightness_pct: int = 80
    dim_delay_seconds: float = 5.0
    off_delay_seconds: float = 5.0
    activation_value: float = 5


class DimmingController:
    """Two-stage delayed shutoff for one light: full -> dimmed -> off.

    A stop signal waits ``dim_delay_seconds``, dims, waits
    ``off_delay_seconds`` and turns the light off. Both waits belong to one
    sequence guarded by one cancellation token, so a start signal (or a newer
    stop signal) anywhere in between cancels everything that is left.

    Dimming only applies while the live sensor-delay value equals
    ``activation_value`` (a missing value reads as 0); otherwise the light is
    switched off straight away. Parameter changes apply from the next signal.
    """

    def __init__(
        self,
        light: LightActuator,
        scheduler: Scheduler,
        states: Optional[StateReader] = None,
        sensor_delay_entity: Optional[str] = None,
        params: Optional[DimParameters] = None,
    ) -> None:
        self._light = light
        self._scheduler = scheduler
        self._states = states
        self._sensor_delay_entity = sensor_delay_entity
        self._params = params or DimParameters()
        self._token: Optional[_CancelToken] = None
        self._disposed = False
        self.state: Optional[ActuatorState] = None

    @property
    def light_id(self) -> str:
        return self._light.actuator_id

    @property
    def params(self) -> DimParameters:
        return self._params

    @property
    def disposed(self) -> bool:
        return self._disposed

    @property
    def sequence_pending(self) -> bool:
        return self._token is not None and not self._token.cancelled

    def set_dim_parameters(
        self, brightness_pct: int, delay_seconds: float, off_delay_seconds: Optional[float] = None
    ) -> None:
        logger.debug(
            "%s dim parameters: %s%% -> %s%%, dim delay %ss -> %ss",
            self.light_id, self._params.brightness_pct, brightness_pct,
            self._params.dim_delay_seconds, delay_seconds,
        )
        self._params = replace(
            self._params,
            brightness_pct=brightness_pct,
            dim_delay_seconds=delay_seconds,
            off_delay_seconds=self._params.off_delay_seconds if off_delay_seconds is None else off_delay_seconds,
        )

    def set_activation_value(self, value: float) -> None:
        logger.debug("%s activation value: %s -> %s", self.light_id, self._params.activation_value, value)
        self._params = replace(self._params, activation_value=value)

    def configure(
        self, dim_level: int, dim_delay: float, off_delay: float, activation_threshold: float
    ) -> None:
        self._params = DimParameters(
            brightness_pct=dim_level,
            dim_delay_seconds=dim_delay,
            off_delay_seconds=off_delay,
            activation_value=activation_threshold,
        )

    def should_dim(self, params: Optional[DimParameters] = None) -> bool:
        params = params or self._params
        if self._sensor_delay_entity is None or self._states is None:
            return True
        live = parse_float(self._states.get_state(self._sensor_delay_entity), default=0.0)
        return live == params.activation_value

    def _replace_token(self) -> _CancelToken:
        old, self._token = self._token, _CancelToken()
        if old is not None and not old.cancelled:
            logger.debug("Cancelling pending stop sequence for %s", self.light_id)
            old.cancel()
        return self._token

    def _cancel_pending(self) -> None:
        old, self._token = self._token, None
        if old is not None and not old.cancelled:
            logger.debug("Cancelling pending stop sequence for %s", self.light_id)
            old.cancel()

    async def _wait(self, seconds: float, token: _CancelToken) -> bool:
        """Sleep on the scheduler; False when the token was cancelled meanwhile."""
        if token.cancelled:
            return False
        if seconds > 0:
            sleeper = asyncio.ensure_future(self._scheduler.sleep(seconds))
            waiter = asyncio.ensure_future(token.wait())
            try:
                await asyncio.wait({sleeper, waiter}, return_when=asyncio.FIRST_COMPLETED)
            finally:
                sleeper.cancel()
                waiter.cancel()
        return not token.cancelled

    async def on_start_signal(self) -> None:
        if self._disposed:
            logger.debug("%s disposed, ignoring start signal", self.light_id)
            return
        # Cancel before the first suspension point so no stale dim/off can follow
        self._cancel_pending()
        logger.debug("%s start signal: full brightness", self.light_id)
        try:
            await self._light.turn_on(brightness_pct=FULL_BRIGHTNESS)
        except Exception:
            self.state = None  # light state unknown after a rejected command
            raise
        if self._token is None:
            self.state = ActuatorState.FULL

    async def on_stop_signal(self) -> None:
        if self._disposed:
            logger.debug("%s disposed, ignoring stop signal", self.light_id)
            return
        token = self._replace_token()
        try:
            await self._stop_sequence(token, self._params)
        except Exception:
            if self._token is token:
                self.state = None
            raise
        finally:
            self._release(token)

    async def _stop_sequence(self, token: _CancelToken, params: DimParameters) -> None:
        if not self.should_dim(params):
            logger.debug("%s stop signal: dimming disabled, turning off", self.light_id)
            await self._light.turn_off()
            if not token.cancelled:
                self.state = ActuatorState.OFF
            return

        dims = params.brightness_pct > 0
        self.state = ActuatorState.PENDING_DIM if dims else ActuatorState.PENDING_OFF
        logger.debug(
            "%s stop signal: dim to %s%% in %ss, off %ss later",
            self.light_id, params.brightness_pct, params.dim_delay_seconds, params.off_delay_seconds,
        )

        if not await self._wait(params.dim_delay_seconds, token):
            logger.debug("%s stop sequence cancelled before dimming", self.light_id)
            return

        if dims:
            await self._light.turn_on(brightness_pct=params.brightness_pct)
            if token.cancelled:
                return
            self.state = ActuatorState.DIMMED
            if not await self._wait(params.off_delay_seconds, token):
                logger.debug("%s stop sequence cancelled while dimmed", self.light_id)
                return

        await self._light.turn_off()
        if not token.cancelled:
            self.state = ActuatorState.OFF
            logger.debug("%s stop sequence completed", self.light_id)

    def _release(self, token: _CancelToken) -> None:
        if self._token is token:
            self._token = None

    def cancel(self) -> None:
        """Drop any pending stop sequence and leave the light where it is."""
        if self.state in (ActuatorState.PENDING_DIM, ActuatorState.PENDING_OFF):
            self.state = ActuatorState.FULL
        self._cancel_pending()

    def dispose(self) -> None:
        if self._disposed:
            return
        self._disposed = True
        self._cancel_pending()
        logger.debug("%s dimming controller disposed", self.light_id)
