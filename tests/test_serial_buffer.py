from collections import deque

import pytest
from hypothesis import given
from hypothesis import strategies as st

from qcwcom.serial_buffer import SerialBuffer


def test_new_buffer_is_empty():
    buffer = SerialBuffer(8)
    assert len(buffer) == 0
    assert buffer.free_space() == 8
    assert buffer.pop() is None
    assert buffer.peek() is None


def test_fifo_order():
    buffer = SerialBuffer(4)
    for byte in (0x81, 0x02, 0x7F):
        buffer.push(byte)
    assert [buffer.pop() for _ in range(4)] == [0x81, 0x02, 0x7F, None]


def test_peek_does_not_remove():
    buffer = SerialBuffer(4)
    buffer.push(0x85)
    assert buffer.peek() == 0x85
    assert buffer.peek() == 0x85
    assert len(buffer) == 1
    assert buffer.pop() == 0x85
    assert len(buffer) == 0


def test_free_space_tracks_count():
    buffer = SerialBuffer(5)
    buffer.push(1)
    buffer.push(2)
    assert len(buffer) == 2
    assert buffer.free_space() == 3
    buffer.pop()
    assert buffer.free_space() == 4


def test_wrap_around_keeps_order():
    buffer = SerialBuffer(3)
    buffer.push(10)
    buffer.push(11)
    assert buffer.pop() == 10
    buffer.push(12)
    buffer.push(13)
    assert buffer.free_space() == 0
    assert [buffer.pop(), buffer.pop(), buffer.pop()] == [11, 12, 13]


def test_push_when_full_raises():
    buffer = SerialBuffer(2)
    buffer.push(1)
    buffer.push(2)
    with pytest.raises(OverflowError):
        buffer.push(3)
    assert buffer.pop() == 1


@pytest.mark.parametrize("byte", [-1, 256])
def test_push_rejects_non_byte(byte):
    buffer = SerialBuffer(2)
    with pytest.raises(ValueError):
        buffer.push(byte)
    assert len(buffer) == 0


def test_zero_capacity_rejected():
    with pytest.raises(ValueError):
        SerialBuffer(0)


@given(
    capacity=st.integers(min_value=1, max_value=16),
    ops=st.lists(st.one_of(st.integers(min_value=0, max_value=255), st.none()), max_size=80),
)
def test_matches_fifo_model(capacity, ops):
    buffer = SerialBuffer(capacity)
    model = deque()
    for op in ops:
        if op is None:
            expected = model.popleft() if model else None
            assert buffer.peek() == expected
            assert buffer.pop() == expected
        elif len(model) < capacity:
            buffer.push(op)
            model.append(op)
        else:
            with pytest.raises(OverflowError):
                buffer.push(op)
        assert len(buffer) == len(model)
        assert buffer.free_space() == capacity - len(model)