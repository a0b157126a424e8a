"""Tests for structured log formatting."""

import logging

from npm_gallery.logging import StructuredFormatter, get_logger, setup_logging


def _record(**extra):
    record = logging.LogRecord(
        "npm_gallery.test", logging.WARNING, __file__, 1, "failed", None, None
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestStructuredFormatter:
    """Tests for StructuredFormatter."""

    def test_appends_extra_fields(self):
        formatter = StructuredFormatter("%(levelname)s %(message)s")

        line = formatter.format(_record(source="npms-io", attempt=2))

        assert line == "WARNING failed | source=npms-io | attempt=2"

    def test_plain_without_extra(self):
        formatter = StructuredFormatter("%(message)s")

        assert formatter.format(_record()) == "failed"

    def test_private_fields_hidden(self):
        formatter = StructuredFormatter("%(message)s")

        assert formatter.format(_record(_internal=True)) == "failed"


class TestSetupLogging:
    """Tests for setup_logging."""

    def test_sets_package_level_and_quiets_httpx(self):
        setup_logging(logging.DEBUG, include_timestamp=False)

        assert get_logger("npm_gallery").level == logging.DEBUG
        assert logging.getLogger("httpx").level == logging.WARNING
        handlers = logging.getLogger().handlers
        assert len(handlers) == 1
        assert isinstance(handlers[0].formatter, StructuredFormatter)
