import logging

import pytest

from reflex_data_explorer.logging_config import setup_logging

PACKAGE = logging.getLogger("reflex_data_explorer")


@pytest.fixture(autouse=True)
def _restore_package_logger():
    level = PACKAGE.level
    yield
    for handler in list(PACKAGE.handlers):
        PACKAGE.removeHandler(handler)
        handler.close()
    PACKAGE.setLevel(level)


def test_repeated_setup_keeps_one_stream_handler() -> None:
    setup_logging()
    setup_logging("debug")

    assert len(PACKAGE.handlers) == 1
    assert PACKAGE.level == logging.DEBUG
    assert PACKAGE.handlers[0].level == logging.DEBUG


def test_unknown_level_name_falls_back_to_info() -> None:
    setup_logging("chatty")

    assert PACKAGE.level == logging.INFO


def test_log_file_receives_records(tmp_path) -> None:
    path = tmp_path / "grid.log"
    setup_logging(logging.WARNING, log_file=str(path))

    logging.getLogger("reflex_data_explorer.record_store").warning("write rejected: record 9 not found")
    for handler in PACKAGE.handlers:
        handler.flush()

    assert len(PACKAGE.handlers) == 2
    assert "WARNING reflex_data_explorer.record_store: write rejected" in path.read_text(encoding="utf-8")
