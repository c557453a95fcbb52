import threading

import pytest
import serial


class FakeClock:
    """ Monotonic clock that only moves when the sender yields """

    def __init__(self, step=0.0005):
        self.now = 0.0
        self.step = step
        self.on_idle = None

    def __call__(self):
        return self.now

    def idle(self):
        self.now += self.step
        if self.on_idle is not None:
            self.on_idle(self.now)


class FakeSerialPort:
    """
    In-memory stand-in for SerialPortClass.SerialPort.
    - fail_on_write: 1-based write attempt that raises SerialException
    - stop_after:    set stop_event right after this many successful writes
    """

    def __init__(self, port='COM7', clock=None, fail_on_write=None,
                 stop_event=None, stop_after=None, fail_configure=False):
        self.port = port
        self.clock = clock
        self.fail_on_write = fail_on_write
        self.stop_event = stop_event
        self.stop_after = stop_after
        self.fail_configure = fail_configure
        self.frames = []
        self.times = []
        self.attempts = 0
        self.close_count = 0
        self.configured = False
        self.frame_length = None

    def configure(self):
        if self.fail_configure:
            raise serial.SerialException("settings rejected")
        self.configured = True

    def set_timeouts(self, frame_length):
        self.frame_length = frame_length

    def write(self, data):
        self.attempts += 1
        if self.fail_on_write is not None and self.attempts >= self.fail_on_write:
            raise serial.SerialException("device disconnected")
        self.frames.append(data)
        if self.clock is not None:
            self.times.append(self.clock())
        if self.stop_after is not None and len(self.frames) >= self.stop_after:
            self.stop_event.set()
        return len(data)

    def close(self):
        self.close_count += 1


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def stop_event():
    return threading.Event()

