"""Logging utilities for certhaproxy.

Use `pre_arg_parse_setup` as early as possible and `post_arg_parse_setup`
once a `.Configuration` exists. Until then, records are kept in memory;
afterwards they go to a rotating file in ``logs_dir`` and, depending on
``debug``, to the terminal.

"""
import functools
import logging
import logging.handlers
import os
import sys
import traceback

from certhaproxy import constants
from certhaproxy import errors
from certhaproxy import util

# Logging format
CLI_FMT = "%(message)s"
FILE_FMT = "%(asctime)s:%(levelname)s:%(name)s:%(message)s"

# ANSI SGR escape codes
ANSI_SGR_RED = "\033[31m"
ANSI_SGR_RESET = "\033[0m"


logger = logging.getLogger(__name__)


def pre_arg_parse_setup():
    """Setup logging before command line arguments are parsed.

    Terminal logging is set to `.constants.QUIET_LOGGING_LEVEL`, every
    record is also buffered in memory so `post_arg_parse_setup` can
    write it to the log file.

    """
    memory_handler = MemoryHandler()
    memory_handler.setLevel(logging.DEBUG)

    stream_handler = ColoredStreamHandler()
    stream_handler.setFormatter(logging.Formatter(CLI_FMT))
    stream_handler.setLevel(constants.QUIET_LOGGING_LEVEL)

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)  # send all records to handlers
    root_logger.addHandler(memory_handler)
    root_logger.addHandler(stream_handler)

    sys.excepthook = functools.partial(
        except_hook, debug='--debug' in sys.argv)


def post_arg_parse_setup(config):
    """Setup logging after command line arguments are parsed.

    :param .Configuration config: Configuration

    :returns: path of the log file
    :rtype: str

    """
    file_handler, file_path = setup_log_file_handler(
        config.resolved_logs_dir, constants.LOG_FILE, FILE_FMT)

    root_logger = logging.getLogger()
    memory_handler = stderr_handler = None
    for handler in root_logger.handlers:
        if isinstance(handler, ColoredStreamHandler):
            stderr_handler = handler
        elif isinstance(handler, MemoryHandler):
            memory_handler = handler
    if memory_handler is None or stderr_handler is None:
        raise errors.Error(
            "Previously configured logging handlers have been removed!")

    root_logger.addHandler(file_handler)
    root_logger.removeHandler(memory_handler)
    memory_handler.setTarget(file_handler)
    memory_handler.flush(force=True)
    memory_handler.close()

    level = logging.DEBUG if config.debug else logging.INFO
    stderr_handler.setLevel(level)
    logger.debug("Root logging level set at %d", level)
    logger.info("Saving debug log to %s", file_path)

    sys.excepthook = functools.partial(except_hook, debug=config.debug)
    return file_path


def setup_log_file_handler(logs_dir, logfile, fmt):
    """Setup file debug logging.

    :param str logs_dir: directory of the log file
    :param str logfile: basename for the log file
    :param str fmt: logging format string

    :returns: file handler and absolute path to the log file
    :rtype: tuple

    """
    util.make_or_verify_dir(logs_dir, 0o700)
    log_file_path = os.path.join(logs_dir, logfile)
    try:
        handler = logging.handlers.RotatingFileHandler(
            log_file_path, maxBytes=2 ** 20,
            backupCount=constants.MAX_LOG_BACKUPS)
    except IOError as error:
        raise errors.FilesystemError(
            "Unable to open log file {0}: {1}".format(log_file_path, error),
            log_file_path, error)
    # one file per invocation
    if handler.stream.tell():
        handler.doRollover()
    handler.setLevel(logging.DEBUG)
    handler.setFormatter(logging.Formatter(fmt=fmt))
    return handler, log_file_path


class ColoredStreamHandler(logging.StreamHandler):
    """Sends colored logging output to a stream.

    Records at `red_level` or above are printed in red when the stream
    is a tty.

    :ivar bool colored: True if output should be colored
    :ivar int red_level: The level at which to output

    """
    def __init__(self, stream=None):
        super().__init__(stream)
        self.colored = (sys.stderr.isatty() if stream is None else
                        stream.isatty())
        self.red_level = logging.WARNING

    def format(self, record):
        out = super().format(record)
        if self.colored and record.levelno >= self.red_level:
            return ''.join((ANSI_SGR_RED, out, ANSI_SGR_RESET))
        return out


class MemoryHandler(logging.handlers.MemoryHandler):
    """Buffers logging messages in memory until flush(force=True)."""

    def __init__(self, target=None, capacity=10000):
        # capacity doesn't matter because shouldFlush() is overridden
        super().__init__(capacity, target=target)

    def close(self):
        """Close the memory handler, but keep the target."""
        target = self.target
        super().close()
        self.target = target

    def flush(self, force=False):  # pylint: disable=arguments-differ
        # logging.shutdown() calls flush(); only an explicit
        # flush(force=True) empties the buffer.
        if force:
            super().flush()

    def shouldFlush(self, record):
        return False


def except_hook(exc_type, exc_value, trace, debug):
    """Logs fatal exceptions and reports them to the user.

    Known errors (`.errors.Error`) are reported by their message only,
    unless ``debug`` is set. ``sys.exit`` is always called with a
    nonzero status.

    :param type exc_type: type of the raised exception
    :param BaseException exc_value: raised exception
    :param traceback trace: traceback of where the exception was raised
    :param bool debug: True if the traceback should be shown to the user

    """
    exc_info = (exc_type, exc_value, trace)
    if debug or not issubclass(exc_type, Exception):
        logger.error('Exiting abnormally:', exc_info=exc_info)
    else:
        logger.debug('Exiting abnormally:', exc_info=exc_info)
        if not issubclass(exc_type, errors.Error):
            logger.error('An unexpected error occurred:')
            traceback.print_exception(exc_type, exc_value, None)
    sys.exit(str(exc_value) or exc_type.__name__)
