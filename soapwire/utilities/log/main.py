import logging
from queue import Queue
from typing import Optional, List
from logging.handlers import QueueHandler, QueueListener

from soapwire.settings import get_general_settings
from soapwire.settings.main import LogSettings

PACKAGE_LOGGER = "soapwire"
LOG_FORMAT = '%(asctime)s %(levelname)s %(name)s %(message)s'


class LoggingService:
    """
    Wires a named logger to its sinks through a queue so that emitting a record
    never blocks a SOAP call on console or file IO.

    Configuring the package logger ("soapwire") covers every module logger below it,
    including the transport's per-attempt retry warnings.
    """

    def __init__(self, logger_name: str = PACKAGE_LOGGER, settings: Optional[LogSettings] = None,
                 log_level: Optional[int] = None):

        self.settings: LogSettings = settings if settings else LogSettings()
        self.propagate = False
        self.sinks: List[logging.Handler] = []

        self.logger_name: str = logger_name
        self.logger = logging.getLogger(self.logger_name)
        self.logger_level = int(log_level if log_level is not None else self.settings.log_level)

        self.log_queue: Optional[Queue] = None
        self.log_listener: Optional[QueueListener] = None

    def __enter__(self) -> logging.Logger:
        return self.configure_logger()

    def __exit__(self, exc_type, exc, tb) -> None:
        self.stop()

    def set_propagate(self, propagate: bool):
        self.propagate = propagate

    def append_sink(self, sink: logging.Handler):
        self.sinks.append(sink)

    def configure_logger(self) -> logging.Logger:
        self.logger.setLevel(self.logger_level)
        self.logger.propagate = self.propagate

        # Handlers already attached means configured
        if self.logger.handlers:
            return self.logger

        if self.settings.log_to_console:
            console = logging.StreamHandler()
            console.setLevel(self.logger_level)
            console.setFormatter(logging.Formatter(LOG_FORMAT))
            self.append_sink(console)

        # QueueHandler -> QueueListener -> sinks; each sink applies its own level
        self.log_queue = self.log_queue or Queue(maxsize=self.settings.log_max_queue)
        if not self.log_listener:
            self.log_listener = QueueListener(self.log_queue, *self.sinks, respect_handler_level=True)
        self.logger.addHandler(QueueHandler(self.log_queue))

        self.start()
        return self.logger

    def start(self):
        if self.log_listener and (not self.log_listener._thread or not self.log_listener._thread.is_alive()):
            self.log_listener.start()

    def stop(self):
        """Flush queued records to the sinks and stop the listener thread."""
        if self.log_listener and self.log_listener._thread:
            self.log_listener.stop()


def configure_transport_logging(settings: Optional[LogSettings] = None,
                                sinks: Optional[List[logging.Handler]] = None) -> LoggingService:
    """
    Configure the package logger from SOAPWIRE_LOG_* settings and return the running service.

    :param settings: defaults to the environment-backed general settings
    :param sinks: extra handlers (file, syslog, ...) fed alongside the console
    """
    service = LoggingService(PACKAGE_LOGGER, settings=settings or get_general_settings().log_settings)
    for sink in sinks or []:
        service.append_sink(sink)
    service.configure_logger()
    return service
