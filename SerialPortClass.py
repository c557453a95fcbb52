# SerialPortClass.py

import queue

import serial
import serial.tools.list_ports
from typing import List, Optional

#%% Settings
# ─── Line settings expected by the ECU ───
DEFAULT_BAUD = 115200
BYTE_SIZE = serial.EIGHTBITS
PARITY = serial.PARITY_NONE
STOP_BITS = serial.STOPBITS_ONE

# ─── I/O timeouts [ms] (without these a write can block forever) ───
READ_INTERVAL_TIMEOUT_MS = 50
READ_TOTAL_TIMEOUT_CONSTANT_MS = 10
READ_TOTAL_TIMEOUT_MULTIPLIER_MS = 10
WRITE_TOTAL_TIMEOUT_CONSTANT_MS = 50
WRITE_TOTAL_TIMEOUT_MULTIPLIER_MS = 10


def total_timeout(constant_ms: int, multiplier_ms: int, n_bytes: int) -> float:
    """ constant + multiplier * bytes, converted to seconds for pyserial """
    return (constant_ms + multiplier_ms * n_bytes) / 1000.0


class SerialPort:
    """
    Exclusive owner of one serial channel.
    - open:      SerialPort(port)      (COM7, /dev/ttyUSB0, loop://, ...)
    - configure: 115200 8N1 on top of the current port settings
    - timeouts:  set_timeouts(frame_length)
    - write:     raw bytes, no newline added
    - close:     at most once
    """

    def __init__(self, port: str):
        self.port = port
        self.serial: Optional[serial.SerialBase] = None
        # Raises serial.SerialException with the OS error text (missing, busy, no access)
        self.serial = serial.serial_for_url(port, baudrate=DEFAULT_BAUD)

    @property
    def is_open(self) -> bool:
        return self.serial is not None and self.serial.is_open

    @staticmethod
    def list_ports() -> List[str]:
        return [p.device for p in serial.tools.list_ports.comports()]

    def configure(self):
        """ Read the current line settings and overwrite baud/bytesize/parity/stopbits """
        self._check_open()
        settings = self.serial.get_settings()
        settings.update(baudrate=DEFAULT_BAUD,
                        bytesize=BYTE_SIZE,
                        parity=PARITY,
                        stopbits=STOP_BITS)
        self.serial.apply_settings(settings)

    def set_timeouts(self, frame_length: int):
        """ Bound every read/write call; frame_length is the longest frame that will be written """
        self._check_open()
        self.serial.inter_byte_timeout = READ_INTERVAL_TIMEOUT_MS / 1000.0
        self.serial.timeout = total_timeout(READ_TOTAL_TIMEOUT_CONSTANT_MS,
                                            READ_TOTAL_TIMEOUT_MULTIPLIER_MS,
                                            frame_length)
        self.serial.write_timeout = total_timeout(WRITE_TOTAL_TIMEOUT_CONSTANT_MS,
                                                  WRITE_TOTAL_TIMEOUT_MULTIPLIER_MS,
                                                  frame_length)

    def write(self, data: bytes) -> int:
        self._check_open()
        try:
            return self.serial.write(data)
        except queue.Full:
            # loop:// buffers writes in a bounded queue that nobody drains here
            raise serial.SerialTimeoutException("Write timeout: loop buffer is full") from None

    def close(self):
        if self.serial is None:
            return
        try:
            if self.serial.is_open:
                self.serial.close()
        finally:
            self.serial = None

    def _check_open(self):
        if not self.is_open:
            raise serial.PortNotOpenError()
