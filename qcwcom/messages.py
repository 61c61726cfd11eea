"""Messages exchanged between the controller and the remote unit.

Every message starts with an identifier byte that has its top bit set;
all following bytes carry seven bits of payload each, least significant
group first.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import ClassVar

from .serial_buffer import SerialBuffer
from .values import (
    Parameter,
    ParameterValue,
    ProtocolError,
    Statistic,
    StatisticValue,
)

START_BIT = 0x80
_ID_MASK = 0x7F


def _split7(value: int, count: int) -> bytes:
    """Split an integer into `count` seven-bit groups, low group first."""
    return bytes((value >> (7 * shift)) & 0x7F for shift in range(count))


def _join7(groups: list[int]) -> int:
    """Combine received bytes, each shifted by seven bits more than the last."""
    result = 0
    for shift, byte in enumerate(groups):
        result |= byte << (7 * shift)
    return result


def _take(buffer: SerialBuffer, count: int) -> list[int]:
    taken = []
    for _ in range(count):
        byte = buffer.pop()
        if byte is None:
            raise ProtocolError("message truncated")
        taken.append(byte)
    return taken


def _check_seq(seq: int) -> int:
    seq = int(seq)
    if not 0 <= seq <= 0xFFFFFFFF:
        raise ValueError(f"sequence number out of range: {seq}")
    return seq


class _Message:
    ID: ClassVar[int]
    LENGTH: ClassVar[int]

    def _payload(self) -> bytes:
        return b""

    @classmethod
    def _decode(cls, buffer: SerialBuffer) -> _Message:
        return cls()


def _encode(message: _Message) -> bytes:
    return bytes([message.ID | START_BIT]) + message._payload()


def _try_send(data: bytes, buffer: SerialBuffer) -> bool:
    if buffer.free_space() < len(data):
        return False
    for byte in data:
        buffer.push(byte)
    return True


def _receive(buffer: SerialBuffer, registry: dict[int, type[_Message]]) -> _Message | None:
    while (byte := buffer.peek()) is not None and not byte & START_BIT:
        buffer.pop()
    head = buffer.peek()
    if head is None:
        return None
    ident = head & _ID_MASK
    kind = registry.get(ident)
    if kind is None:
        buffer.pop()
        raise ProtocolError(f"unknown message id: {ident:#x}")
    if len(buffer) < kind.LENGTH:
        return None
    buffer.pop()
    return kind._decode(buffer)


class ControllerMessage(_Message):
    """A message sent from the controller to the remote unit."""

    def encode(self) -> bytes:
        """The bytes that carry this message on the wire."""
        return _encode(self)

    def try_send(self, buffer: SerialBuffer) -> bool:
        """Push the message if it fits whole; return whether it was pushed."""
        return _try_send(self.encode(), buffer)

    @classmethod
    def try_receive(cls, buffer: SerialBuffer) -> ControllerMessage | None:
        """Decode the next message, or return None if it is not complete yet.

        Bytes before a start byte are discarded. Raises ProtocolError on an
        unknown identifier or an invalid payload; the offending bytes are
        consumed.
        """
        return _receive(buffer, _CONTROLLER_MESSAGES)  # type: ignore[return-value]


@dataclass(frozen=True)
class SetDebugLed(ControllerMessage):
    """Switch the debug LED on or off."""

    ID: ClassVar[int] = 0
    LENGTH: ClassVar[int] = 2

    state: bool

    def __post_init__(self) -> None:
        object.__setattr__(self, "state", bool(self.state))

    def _payload(self) -> bytes:
        return bytes([1 if self.state else 0])

    @classmethod
    def _decode(cls, buffer: SerialBuffer) -> SetDebugLed:
        (state,) = _take(buffer, 1)
        return cls(state != 0)


@dataclass(frozen=True)
class GetParam(ControllerMessage):
    """Ask for the current value of a parameter."""

    ID: ClassVar[int] = 1
    LENGTH: ClassVar[int] = 2

    parameter: Parameter

    def __post_init__(self) -> None:
        object.__setattr__(self, "parameter", Parameter(self.parameter))

    def _payload(self) -> bytes:
        return bytes([int(self.parameter)])

    @classmethod
    def _decode(cls, buffer: SerialBuffer) -> GetParam:
        (ident,) = _take(buffer, 1)
        return cls(Parameter.from_id(ident))


@dataclass(frozen=True)
class SetParam(ControllerMessage):
    """Set a parameter to a new value."""

    ID: ClassVar[int] = 2
    LENGTH: ClassVar[int] = 4

    value: ParameterValue

    def _payload(self) -> bytes:
        parameter, raw = self.value.to_raw()
        return bytes([int(parameter)]) + _split7(raw, 2)

    @classmethod
    def _decode(cls, buffer: SerialBuffer) -> SetParam:
        ident, *groups = _take(buffer, 3)
        parameter = Parameter.from_id(ident)
        return cls(ParameterValue.from_raw(parameter, _join7(groups)))


@dataclass(frozen=True)
class GetStat(ControllerMessage):
    """Ask for the current value of a statistic."""

    ID: ClassVar[int] = 3
    LENGTH: ClassVar[int] = 2

    statistic: Statistic

    def __post_init__(self) -> None:
        object.__setattr__(self, "statistic", Statistic(self.statistic))

    def _payload(self) -> bytes:
        return bytes([int(self.statistic)])

    @classmethod
    def _decode(cls, buffer: SerialBuffer) -> GetStat:
        (ident,) = _take(buffer, 1)
        return cls(Statistic.from_id(ident))


@dataclass(frozen=True)
class ResetStats(ControllerMessage):
    """Clear all collected statistics."""

    ID: ClassVar[int] = 4
    LENGTH: ClassVar[int] = 1


@dataclass(frozen=True)
class KeepAlive(ControllerMessage):
    """Tell the remote unit the controller is still present."""

    ID: ClassVar[int] = 5
    LENGTH: ClassVar[int] = 1


@dataclass(frozen=True)
class Run(ControllerMessage):
    """Start operation."""

    ID: ClassVar[int] = 6
    LENGTH: ClassVar[int] = 1


@dataclass(frozen=True)
class Stop(ControllerMessage):
    """Stop operation."""

    ID: ClassVar[int] = 7
    LENGTH: ClassVar[int] = 1


@dataclass(frozen=True)
class Ping(ControllerMessage):
    """A ping carrying a sequence number; only its low 28 bits are sent."""

    ID: ClassVar[int] = 0x7F
    LENGTH: ClassVar[int] = 5

    seq: int

    def __post_init__(self) -> None:
        object.__setattr__(self, "seq", _check_seq(self.seq))

    def _payload(self) -> bytes:
        return _split7(self.seq, 4)

    @classmethod
    def _decode(cls, buffer: SerialBuffer) -> Ping:
        return cls(_join7(_take(buffer, 4)))


_CONTROLLER_MESSAGES: dict[int, type[_Message]] = {
    kind.ID: kind
    for kind in (SetDebugLed, GetParam, SetParam, GetStat, ResetStats, KeepAlive, Run, Stop, Ping)
}


class RemoteMessage(_Message):
    """A message sent from the remote unit to the controller."""

    def encode(self) -> bytes:
        """The bytes that carry this message on the wire."""
        return _encode(self)

    def try_send(self, buffer: SerialBuffer) -> bool:
        """Push the message if it fits whole; return whether it was pushed."""
        return _try_send(self.encode(), buffer)

    @classmethod
    def try_receive(cls, buffer: SerialBuffer) -> RemoteMessage | None:
        """Decode the next message, or return None if it is not complete yet.

        Bytes before a start byte are discarded. Raises ProtocolError on an
        unknown identifier or an invalid payload.
        """
        return _receive(buffer, _REMOTE_MESSAGES)  # type: ignore[return-value]


@dataclass(frozen=True)
class GetParamResult(RemoteMessage):
    """The value of a parameter, in answer to GetParam."""

    ID: ClassVar[int] = 0
    LENGTH: ClassVar[int] = 4

    value: ParameterValue

    def _payload(self) -> bytes:
        parameter, raw = self.value.to_raw()
        return bytes([int(parameter)]) + _split7(raw, 2)

    @classmethod
    def _decode(cls, buffer: SerialBuffer) -> GetParamResult:
        ident, *groups = _take(buffer, 3)
        parameter = Parameter.from_id(ident)
        return cls(ParameterValue.from_raw(parameter, _join7(groups)))


@dataclass(frozen=True)
class GetStatResult(RemoteMessage):
    """The value of a statistic, in answer to GetStat."""

    ID: ClassVar[int] = 1
    LENGTH: ClassVar[int] = 4

    value: StatisticValue

    def _payload(self) -> bytes:
        statistic, raw = self.value.to_raw()
        return bytes([int(statistic)]) + _split7(raw, 2)

    @classmethod
    def _decode(cls, buffer: SerialBuffer) -> GetStatResult:
        # The statistic is checked before the value bytes are consumed.
        (ident,) = _take(buffer, 1)
        statistic = Statistic.from_id(ident)
        raw = _join7(_take(buffer, 2))
        return cls(StatisticValue.from_raw(statistic, raw))


@dataclass(frozen=True)
class LockFailed(RemoteMessage):
    """The remote unit failed to lock onto the feedback signal."""

    ID: ClassVar[int] = 2
    LENGTH: ClassVar[int] = 1


@dataclass(frozen=True)
class OcdTripped(RemoteMessage):
    """The over-current detector tripped."""

    ID: ClassVar[int] = 3
    LENGTH: ClassVar[int] = 1


@dataclass(frozen=True)
class RemotePing(RemoteMessage):
    """A ping reply carrying a sequence number; only its low 28 bits are sent."""

    ID: ClassVar[int] = 0x7F
    LENGTH: ClassVar[int] = 5

    seq: int

    def __post_init__(self) -> None:
        object.__setattr__(self, "seq", _check_seq(self.seq))

    def _payload(self) -> bytes:
        return _split7(self.seq, 4)

    @classmethod
    def _decode(cls, buffer: SerialBuffer) -> RemotePing:
        return cls(_join7(_take(buffer, 4)))


_REMOTE_MESSAGES: dict[int, type[_Message]] = {
    kind.ID: kind for kind in (GetParamResult, GetStatResult, LockFailed, OcdTripped, RemotePing)
}