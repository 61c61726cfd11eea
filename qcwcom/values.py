"""Parameters, statistics and their 14-bit wire encodings."""

from __future__ import annotations

import math
import struct
from dataclasses import dataclass
from enum import IntEnum


class ProtocolError(ValueError):
    """Raised when received data does not form a valid message or value."""


class Parameter(IntEnum):
    """A tunable controller parameter, valued by its wire identifier."""

    DELAY_COMPENSATION = 1
    STARTUP_FREQUENCY = 2
    RUN_MODE = 3
    LOCK_TIME = 4
    STARTUP_TIME = 5
    ON_TIME = 6
    OFF_TIME = 7
    RAMP_START_POWER = 8
    RAMP_END_POWER = 9
    MIN_LOCK_CURRENT = 10
    CURRENT_LIMIT = 11
    FLAT_POWER = 12
    LOCK_RANGE = 13

    @classmethod
    def from_id(cls, ident: int) -> Parameter:
        """Look up a parameter by the identifier received on the wire."""
        # Lock range can be sent but is not accepted as an incoming identifier.
        if ident == cls.LOCK_RANGE:
            raise ProtocolError(f"unknown parameter id: {ident}")
        try:
            return cls(ident)
        except ValueError:
            raise ProtocolError(f"unknown parameter id: {ident}") from None


class RunMode(IntEnum):
    """Operating mode of the controller."""

    OPEN_LOOP = 0
    TEST_CLOSED_LOOP = 1
    CLOSED_LOOP_RAMP = 2

    @classmethod
    def from_raw(cls, raw: int) -> RunMode:
        """Decode a run mode from its wire value."""
        try:
            return cls(raw)
        except ValueError:
            raise ProtocolError(f"unknown run mode: {raw}") from None


class Statistic(IntEnum):
    """A measured statistic, valued by its wire identifier."""

    MAX_PRIMARY_CURRENT = 0
    FEEDBACK_FREQUENCY = 1

    @classmethod
    def from_id(cls, ident: int) -> Statistic:
        """Look up a statistic by the identifier received on the wire."""
        try:
            return cls(ident)
        except ValueError:
            raise ProtocolError(f"unknown statistic id: {ident}") from None


def _f32(x: float) -> float:
    """Round a float to single precision."""
    try:
        return struct.unpack("<f", struct.pack("<f", x))[0]
    except OverflowError:
        return math.copysign(math.inf, x)


def _saturate(x: float, high: int) -> int:
    """Truncate toward zero and clamp into 0..high; NaN becomes 0."""
    if math.isnan(x) or x <= 0:
        return 0
    if x >= high:
        return high
    return int(x)


def _check_raw(raw: int) -> None:
    if not 0 <= raw <= 0xFFFF:
        raise ValueError(f"raw value out of range: {raw}")


def _sign_extend_i14(raw: int) -> int:
    if raw & 0x2000:
        raw |= 0xC000
    return raw - 0x10000 if raw & 0x8000 else raw


# parameter -> (decode divisor, encode multiplier, encode maximum)
_SCALED_PARAMETERS: dict[Parameter, tuple[float, float, int]] = {
    Parameter.STARTUP_FREQUENCY: (16.0, 16.0, 0xFFFF),
    Parameter.LOCK_RANGE: (16.0, 16.0, 0xFFFF),
    Parameter.RAMP_START_POWER: (16383.0, 16384.0, 0x3FFF),
    Parameter.RAMP_END_POWER: (16383.0, 16384.0, 0x3FFF),
    Parameter.MIN_LOCK_CURRENT: (256.0, 256.0, 0x3FFF),
    Parameter.CURRENT_LIMIT: (32.0, 32.0, 0x3FFF),
    Parameter.FLAT_POWER: (16383.0, 16384.0, 0x3FFF),
}

_PLAIN_PARAMETERS = frozenset(
    {Parameter.LOCK_TIME, Parameter.STARTUP_TIME, Parameter.ON_TIME, Parameter.OFF_TIME}
)


@dataclass(frozen=True)
class ParameterValue:
    """A parameter together with its value in physical units.

    Units: delay compensation in ns, frequencies in kHz, lock, startup and
    on time in µs, off time in ms, currents in A, powers as a 0..1 fraction.
    """

    parameter: Parameter
    value: float | int | RunMode

    def __post_init__(self) -> None:
        parameter = Parameter(self.parameter)
        object.__setattr__(self, "parameter", parameter)
        if parameter in _SCALED_PARAMETERS:
            object.__setattr__(self, "value", float(self.value))
        elif parameter is Parameter.RUN_MODE:
            object.__setattr__(self, "value", RunMode.from_raw(int(self.value)))
        elif parameter is Parameter.DELAY_COMPENSATION:
            value = int(self.value)
            if not -0x8000 <= value <= 0x7FFF:
                raise ValueError(f"delay compensation out of range: {value}")
            object.__setattr__(self, "value", value)
        else:
            value = int(self.value)
            if not 0 <= value <= 0xFFFF:
                raise ValueError(f"{parameter.name} out of range: {value}")
            object.__setattr__(self, "value", value)

    @classmethod
    def from_raw(cls, parameter: Parameter, raw: int) -> ParameterValue:
        """Decode a raw wire value for the given parameter."""
        _check_raw(raw)
        parameter = Parameter(parameter)
        if parameter in _SCALED_PARAMETERS:
            divisor, _, _ = _SCALED_PARAMETERS[parameter]
            return cls(parameter, _f32(raw / divisor))
        if parameter is Parameter.DELAY_COMPENSATION:
            return cls(parameter, _sign_extend_i14(raw))
        if parameter is Parameter.RUN_MODE:
            return cls(parameter, RunMode.from_raw(raw))
        if parameter is Parameter.ON_TIME:
            return cls(parameter, (raw * 10) & 0xFFFF)
        return cls(parameter, raw)

    def to_raw(self) -> tuple[Parameter, int]:
        """Encode as a (parameter, raw wire value) pair."""
        parameter = self.parameter
        if parameter in _SCALED_PARAMETERS:
            _, multiplier, high = _SCALED_PARAMETERS[parameter]
            return parameter, _saturate(_f32(self.value) * multiplier, high)
        if parameter is Parameter.DELAY_COMPENSATION:
            return parameter, self.value & 0xFFFF
        if parameter is Parameter.RUN_MODE:
            return parameter, int(self.value)
        if parameter is Parameter.ON_TIME:
            return parameter, self.value // 10
        return parameter, self.value


_STATISTIC_SCALES: dict[Statistic, float] = {
    Statistic.MAX_PRIMARY_CURRENT: 32.0,
    Statistic.FEEDBACK_FREQUENCY: 16.0,
}


@dataclass(frozen=True)
class StatisticValue:
    """A statistic with its value: current in A, frequency in kHz."""

    statistic: Statistic
    value: float

    def __post_init__(self) -> None:
        object.__setattr__(self, "statistic", Statistic(self.statistic))
        object.__setattr__(self, "value", float(self.value))

    @classmethod
    def from_raw(cls, statistic: Statistic, raw: int) -> StatisticValue:
        """Decode a raw wire value for the given statistic."""
        _check_raw(raw)
        statistic = Statistic(statistic)
        return cls(statistic, _f32(raw / _STATISTIC_SCALES[statistic]))

    def to_raw(self) -> tuple[Statistic, int]:
        """Encode as a (statistic, raw wire value) pair."""
        scale = _STATISTIC_SCALES[self.statistic]
        return self.statistic, _saturate(_f32(self.value) * scale, 16383)