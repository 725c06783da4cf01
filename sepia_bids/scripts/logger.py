import os
import logging as _logging
from enum import Enum

LOGGER_NAME = 'sepia_bids'

class LogLevel(Enum):
    CRITICAL = 50
    ERROR = 40
    WARNING = 30
    INFO = 20
    DEBUG = 10
    NOTSET = 0

class _StringStream:
    '''
    a stream that keeps every record it receives, optionally echoing it to stdout
    '''

    def __init__(self, max_records=None, print_new_records=True):
        self.items = []
        self.max_records = max_records
        self.print_new_records = print_new_records

    def __getitem__(self, index):
        return self.items[index]

    def __len__(self):
        return len(self.items)

    def write(self, record):
        self.items.append(record)

        if self.print_new_records:
            print(record, end="")

        if self.max_records and len(self.items) > self.max_records:
            self.items.pop(0)

    def flush(self):
        pass

_FORMATTER = _logging.Formatter('[%(levelname)s]: %(message)s')

# in-memory stream handlers, in the order they sit at the front of logger.handlers
STREAM_ROLES = ('console', 'warnings', 'errors')

def _stream_handler(role, level, print_new_records):
    handler = _logging.StreamHandler(stream=_StringStream(print_new_records=print_new_records))
    handler.setFormatter(_FORMATTER)
    handler.setLevel(level.value)
    handler.sepia_bids_role = role
    return handler

def get_handler(logger, role):
    """The in-memory handler with the given role ('console', 'warnings' or 'errors'), or None."""
    for handler in logger.handlers:
        if getattr(handler, 'sepia_bids_role', None) == role:
            return handler
    return None

def get_file_handler(logger):
    for handler in logger.handlers:
        if isinstance(handler, _logging.FileHandler):
            return handler
    return None

def make_logger(name=LOGGER_NAME, logpath=None, printlevel=LogLevel.INFO, warnlevel=LogLevel.WARNING, errorlevel=LogLevel.ERROR, writelevel=LogLevel.INFO):
    """
    Get the named logger, creating its handlers on first use.

    The first three handlers are in-memory streams for console output, warnings
    and errors. A file handler follows them the first time a logpath is given;
    later calls with a new logpath close it and open the new file. Handlers
    attached by anyone else (e.g. log capture in test runners) are left alone.
    """
    logger = _logging.getLogger(name=name)

    for log_level in LogLevel:
        if _logging.getLevelName(log_level.value) != log_level.name:
            _logging.addLevelName(log_level.value, log_level.name)

    if any(get_handler(logger, role) is None for role in STREAM_ROLES):
        for role in STREAM_ROLES:
            old_handler = get_handler(logger, role)
            if old_handler is not None:
                logger.removeHandler(old_handler)
        levels = (printlevel, warnlevel, errorlevel)
        for i, role in enumerate(STREAM_ROLES):
            logger.handlers.insert(i, _stream_handler(role, levels[i], print_new_records=(role == 'console')))
        logger.setLevel(printlevel.value)
        logger.propagate = False

    if logpath is None:
        return logger

    logpath = os.path.abspath(logpath)
    old_handler = get_file_handler(logger)
    if old_handler is not None:
        if old_handler.baseFilename == logpath:
            return logger
        logger.removeHandler(old_handler)
        old_handler.close()

    file_handler = _logging.FileHandler(logpath, mode='w')
    file_handler.setFormatter(_FORMATTER)
    file_handler.setLevel(writelevel.value)
    logger.handlers.insert(len(STREAM_ROLES), file_handler)

    # logger level <= every handler level
    get_handler(logger, 'console').setLevel(printlevel.value)
    logger.setLevel(min(printlevel.value, writelevel.value))

    return logger


def show_warning_summary(logger):
    warnings_handler = get_handler(logger, 'warnings')
    errors_handler = get_handler(logger, 'errors')
    warnings_occurred = warnings_handler is not None and any("WARNING" in message for message in warnings_handler.stream.items)
    errors_occurred = errors_handler is not None and any("ERROR" in message for message in errors_handler.stream.items)

    if warnings_occurred:
        logger.log(LogLevel.INFO.value, "Warnings occurred!")

    if errors_occurred:
        logger.log(LogLevel.INFO.value, "Errors occurred!")

    return warnings_occurred, errors_occurred
