# -*- coding: utf-8 -*-
"""
PulseSender.py

Periodic +/- test signal for the motor ECU.
Every period one frame `#v,v,v,v;` is written to the serial port and the sign of v is flipped,
until the stop event is set or a write fails.
"""

#%% Import Libraries
import logging
import sys
import time

import serial

LOGGER_NAME = "excserial"

MAX_FREQUENCY = 1000         # [Hz]
STATUS_PRINT_INTERVAL = 2.0  # [s]
STATUS_LINE_WIDTH = 120

EXIT_SUCCESS = 0
EXIT_FAILURE = 1

LOG_FORMAT = '%(asctime)s [%(levelname)s] %(message)s'
LOG_DATEFMT = '%Y-%m-%d %H:%M:%S'


def setup_logger() -> logging.Logger:
    """ Console logger: notices on stdout, diagnostics (WARNING+) on stderr """
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(logging.DEBUG)
    logger.propagate = False  # Prevent duplicate propagation to the root logger

    # Repeated main() calls in one process must not stack handlers
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    out = logging.StreamHandler(stream=sys.stdout)
    out.setLevel(logging.INFO)
    out.addFilter(lambda record: record.levelno < logging.WARNING)
    logger.addHandler(out)

    err = logging.StreamHandler(stream=sys.stderr)
    err.setLevel(logging.WARNING)
    logger.addHandler(err)

    return logger


def add_log_file(logger: logging.Logger, log_file: str) -> logging.FileHandler:
    fh = logging.FileHandler(log_file, mode='w', encoding='utf-8')
    fh.setLevel(logging.DEBUG)
    fh.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=LOG_DATEFMT))
    logger.addHandler(fh)
    logger.debug(f"==== excserial LOG START ({log_file}) ====")
    return fh


def format_frame(value: int) -> bytes:
    """ ECU wire convention: the same value four times, no newline """
    return f"#{value},{value},{value},{value};".encode('ascii')


def yield_cpu():
    # sleep(0) gives up the time slice without the ~15 ms timer granularity of a real sleep
    time.sleep(0)


#%% Pulse Sender Class
class PulseSender:
    def __init__(self, serial_port, value: int, frequency: int, stop_event,
                 logger=None, clock=time.perf_counter, idle=yield_cpu):
        if value == 0:
            raise ValueError("value must be nonzero")
        if not 1 <= frequency <= MAX_FREQUENCY:
            raise ValueError(f"frequency must be in [1, {MAX_FREQUENCY}], got {frequency}")

        self.serial_port = serial_port
        self.value = value
        self.frequency = frequency
        # Integer ms: periods below 1 ms cannot be expressed
        self.period_ms = 1000 // frequency
        self.stop_event = stop_event
        self.logger = logger or logging.getLogger(LOGGER_NAME)
        self.clock = clock
        self.idle = idle

        self.messages_sent = 0
        self.last_send_time = None
        self.last_print_time = None
        self._status_shown = False

    @property
    def period(self) -> float:
        return self.period_ms / 1000.0

    def run(self) -> int:
        """ Send until stopped (EXIT_SUCCESS) or until a write fails (EXIT_FAILURE) """
        self.logger.info(f"Sending [+/-] {self.value} to {self.serial_port.port} "
                         f"with {self.frequency}Hz ({self.period_ms} ms)...")
        self.last_send_time = self.last_print_time = self.clock()

        while True:
            now = self._wait_for_slot()
            if now is None:
                break

            frame = format_frame(self.value)
            try:
                self.serial_port.write(frame)
            except (serial.SerialException, OSError) as e:
                self._end_status_line()
                self.logger.error(f"Failed to write to {self.serial_port.port} with error: {e}")
                return EXIT_FAILURE

            self.value *= -1
            self.messages_sent += 1
            self.last_send_time = now

            if now - self.last_print_time >= STATUS_PRINT_INTERVAL:
                self._print_status()
                self.last_print_time = now

        self._end_status_line()
        self.logger.info("Got ctrl+c, exiting...")
        self.logger.debug(f"Messages sent: {self.messages_sent}")
        return EXIT_SUCCESS

    def _wait_for_slot(self):
        """ Busy-wait for the next send time; None when the stop event wins """
        period = self.period
        while True:
            if self.stop_event.is_set():
                return None
            now = self.clock()
            if now - self.last_send_time >= period:
                return now
            self.idle()

    def _print_status(self):
        out = sys.stdout
        out.write('\r' + ' ' * STATUS_LINE_WIDTH)
        out.write(f"\rMessages sent: {self.messages_sent}")
        out.flush()
        self._status_shown = True
        self.logger.debug(f"Messages sent: {self.messages_sent}")

    def _end_status_line(self):
        # Move off the in-place status line before the next log line
        if self._status_shown:
            sys.stdout.write('\n')
            sys.stdout.flush()
            self._status_shown = False
