# launcher.py
"""
excserial: send an alternating +/- test signal to a motor ECU over a serial port.

Usage: excserial <port> <number> <frequency> [log_file]
  e.g. excserial COM3 10 500   -> '#10,10,10,10;' / '#-10,-10,-10,-10;' ... at 500 Hz
"""

import sys
from typing import List, Optional, Tuple

import serial

from CtrlHandler import STOP_REQUESTED, install_ctrl_handler
from PulseSender import (EXIT_FAILURE, EXIT_SUCCESS, MAX_FREQUENCY, PulseSender,
                         add_log_file, format_frame, setup_logger)
from SerialPortClass import SerialPort

USAGE = ("Usage: excserial COM3 10 500 [log_file] "
         "[Pulses with 10 alternating +/- at 500 Hz]")


def print_usage():
    print(USAGE)
    ports = SerialPort.list_ports()
    print(f"Available ports: {', '.join(ports) if ports else '(none)'}")


def parse_number(text: str) -> int:
    try:
        return int(text)
    except ValueError:
        raise ValueError(f"Can't convert arg {text} to number!") from None


def validate_arguments(value_arg: str, frequency_arg: str) -> Tuple[int, int]:
    """ Everything is checked here, before any port is touched """
    value = parse_number(value_arg)
    if value == 0:
        raise ValueError("Number to send cant be 0")

    frequency = parse_number(frequency_arg)
    if frequency > MAX_FREQUENCY:
        raise ValueError(f"Frequency cant be bigger than {MAX_FREQUENCY}")
    if frequency < 1:
        raise ValueError("Frequency must be at least 1")

    return value, frequency


def main(argv: Optional[List[str]] = None) -> int:
    args = sys.argv[1:] if argv is None else list(argv)
    if len(args) < 3:
        print_usage()
        return EXIT_SUCCESS

    port, value_arg, frequency_arg = args[:3]
    log_file = args[3] if len(args) > 3 else None

    logger = setup_logger()
    logger.info("Starting excserial program...")

    try:
        value, frequency = validate_arguments(value_arg, frequency_arg)
    except ValueError as e:
        logger.error(str(e))
        return EXIT_FAILURE

    fh = None
    if log_file:
        try:
            fh = add_log_file(logger, log_file)
        except OSError as e:
            logger.error(f"Could not open log file {log_file}: {e}")
            return EXIT_FAILURE

    try:
        return run_session(logger, port, value, frequency)
    finally:
        if fh is not None:
            logger.removeHandler(fh)
            fh.close()


def run_session(logger, port: str, value: int, frequency: int) -> int:
    """ Open, configure and drive one port; the port is closed on every path """
    # ─── Bind to the serial port ───
    try:
        sp = SerialPort(port)
    except (serial.SerialException, ValueError) as e:
        logger.error(f"Could not open {port} with error: {e}")
        return EXIT_FAILURE

    try:
        try:
            install_ctrl_handler(STOP_REQUESTED)
        except (ValueError, OSError) as e:
            logger.error(f"Failed to set control handler: {e}")
            return EXIT_FAILURE

        try:
            sp.configure()
        except (serial.SerialException, ValueError) as e:
            logger.error(f"Could not configure {port} with error: {e}")
            return EXIT_FAILURE
        logger.info("Serial port successfully configured!")

        # Negative frames are the longest ones
        try:
            sp.set_timeouts(len(format_frame(-abs(value))))
        except (serial.SerialException, ValueError) as e:
            logger.error(f"Could not set timeouts with error: {e}")
            return EXIT_FAILURE

        sender = PulseSender(sp, value, frequency, STOP_REQUESTED, logger=logger)
        return sender.run()
    finally:
        sp.close()
        logger.debug(f"{port} closed")


if __name__ == '__main__':
    sys.exit(main())
