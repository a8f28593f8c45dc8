"""Unit tests for the logger factory"""

import logging

from product_services.utils.logger import get_logger


class CountingHandler(logging.Handler):
    def __init__(self):
        super().__init__()
        self.records = []

    def emit(self, record):
        self.records.append(record)


class TestGetLogger:

    def test_module_logger_does_not_reach_default_logger(self):
        default = logging.getLogger("product_services")
        counter = CountingHandler()
        default.addHandler(counter)
        try:
            get_logger("product_services.tests.logger_case").warning("single line")
        finally:
            default.removeHandler(counter)

        assert counter.records == []

    def test_configured_once(self):
        first = get_logger("product_services.tests.configured_once")
        second = get_logger("product_services.tests.configured_once")

        assert first is second
        assert len(second.handlers) == 2
        assert second.propagate is False
