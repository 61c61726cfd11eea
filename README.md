# qcwcom

This package implements the byte-level protocol used between a host
controller and a QCW resonant driver over a serial link.

Each message begins with one byte that has its top bit (`0x80`) set and
holds the message id. Any payload after that byte is sent in 7-bit groups,
lowest group first. Because no payload byte has the top bit set, a receiver
can always find the start of the next message again.

## Installing

    pip install qcwcom

To run the test suite:

    pip install "qcwcom[test]"
    pytest

## Modules

### `qcwcom.serial_buffer`

`SerialBuffer(capacity)` is a FIFO of bytes with a fixed capacity. It is
used for both transmit and receive queues.

- `push(byte)` appends one byte. It raises `ValueError` if the byte is
  outside 0–255 and `OverflowError` if the buffer is full.
- `pop()` removes and returns the oldest byte, and `peek()` returns it
  without removing it. Both return `None` when the buffer is empty.
- `free_space()` returns how many more bytes fit in the buffer.
- `len(buffer)` returns how many bytes the buffer holds.
- `capacity` is the size the buffer was created with.

### `qcwcom.values`

- `Parameter` is an `IntEnum`. Its value is each parameter's wire id:
  `DELAY_COMPENSATION`, `STARTUP_FREQUENCY`, `RUN_MODE`, `LOCK_TIME`,
  `STARTUP_TIME`, `ON_TIME`, `OFF_TIME`, `RAMP_START_POWER`,
  `RAMP_END_POWER`, `MIN_LOCK_CURRENT`, `CURRENT_LIMIT`, `FLAT_POWER`,
  `LOCK_RANGE`. `Parameter.from_id(ident)` looks up a received id.
  `LOCK_RANGE` can be sent, but `from_id` does not accept it as an
  incoming id.
- `RunMode` is an `IntEnum` with the members `OPEN_LOOP`,
  `TEST_CLOSED_LOOP` and `CLOSED_LOOP_RAMP`. `RunMode.from_raw(raw)`
  decodes a received value.
- `Statistic` is an `IntEnum` with the members `MAX_PRIMARY_CURRENT` and
  `FEEDBACK_FREQUENCY`. `Statistic.from_id(ident)` looks up a received id.
- `ParameterValue(parameter, value)` is a frozen dataclass that holds a
  value in engineering units:
  - delay compensation in ns, as a signed 14-bit value on the wire
  - frequencies in kHz
  - lock, startup and on time in µs (on time travels in units of 10 µs)
  - off time in ms
  - currents in A
  - powers as a fraction from 0 to 1

  `to_raw()` returns `(parameter, raw)`. Scaled values are truncated and
  clamped into range. `ParameterValue.from_raw(parameter, raw)` does the
  reverse.
- `StatisticValue(statistic, value)` holds a current in A or a frequency
  in kHz. It has the same `to_raw()` and `from_raw()` pair, and raw values
  are clamped to 0–16383.
- `ProtocolError` is a subclass of `ValueError`. It is raised for unknown
  ids, unknown run modes and malformed messages. A value given directly to
  a constructor that is out of range raises a plain `ValueError`.

### `qcwcom.messages`

Messages are frozen dataclasses in two families:

- `ControllerMessage` (host to driver): `SetDebugLed(state)`,
  `GetParam(parameter)`, `SetParam(value)`, `GetStat(statistic)`,
  `ResetStats()`, `KeepAlive()`, `Run()`, `Stop()`, `Ping(seq)`.
- `RemoteMessage` (driver to host): `GetParamResult(value)`,
  `GetStatResult(value)`, `RemotePing(seq)`, `LockFailed()`,
  `OcdTripped()`.

Every message has the following methods:

- `encode()` returns the bytes of the message.
- `try_send(buffer)` pushes the whole message if it fits in the buffer and
  returns `True`. Otherwise it pushes nothing and returns `False`.

Each family has the class method `try_receive(buffer)`:

- It discards bytes until it finds a start byte.
- It returns `None` if the buffer is empty or the message is not yet
  complete, and leaves the bytes in place in that case.
- If the id is unknown or the payload is invalid, it raises
  `ProtocolError`. The bad bytes are consumed, so the next call can resume.

A ping sequence number must fit in 32 bits, but only its low 28 bits are
sent.

## Example

```python
from qcwcom.serial_buffer import SerialBuffer
from qcwcom.messages import ControllerMessage, SetParam, Ping
from qcwcom.values import Parameter, ParameterValue

link = SerialBuffer(64)

SetParam(ParameterValue(Parameter.LOCK_TIME, 250)).try_send(link)
Ping(42).try_send(link)

while (message := ControllerMessage.try_receive(link)) is not None:
    print(message)
```

## What it does not do

This is a protocol library only:

- It does not open serial ports or perform any I/O. You move bytes between
  a `SerialBuffer` and your transport yourself.
- It has no command-line tool.