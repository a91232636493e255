from __future__ import annotations
import logging
from .models import DecisionInputs, TemperatureDecision, WindowConfig

logger = logging.getLogger(__name__)


def decide_temperature(config: WindowConfig, inputs: DecisionInputs) -> TemperatureDecision:
    """Pick one target temperature for the window; first matching rule wins.

    1. power saving               -> power_saving
    2. occupied, door closed      -> occupied
    3. door open, cold outside    -> normal
    4. door open, occupied        -> normal
    5. anything else              -> passive

    Total over every combination of the four inputs.
    """
    if inputs.power_saving_active:
        decision = TemperatureDecision(config.power_saving, "power_saving", "Power saving active", inputs)
    elif inputs.occupied and not inputs.barrier_open:
        decision = TemperatureDecision(config.occupied, "occupied", "Occupied with door closed", inputs)
    elif inputs.barrier_open and inputs.is_cold_weather:
        decision = TemperatureDecision(config.normal, "normal", "Door open in cold weather", inputs)
    elif inputs.barrier_open and inputs.occupied:
        decision = TemperatureDecision(config.normal, "normal", "Occupied with door open", inputs)
    else:
        decision = TemperatureDecision(config.passive, "passive", "Unoccupied", inputs)

    logger.debug(
        "temperature: %s°C (%s) occupied=%s door_open=%s power_saving=%s cold=%s",
        decision.temperature, decision.rule,
        inputs.occupied, inputs.barrier_open, inputs.power_saving_active, inputs.is_cold_weather,
    )
    return decision


def resolve_temperature(config: WindowConfig, inputs: DecisionInputs) -> int:
    return decide_temperature(config, inputs).temperature
