# tests/test_logging_config.py
import logging

import pytest

from tabclean.utils.logging_config import PipelineLogger, get_logger, log_execution_time, setup_logging


@pytest.fixture
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    for handler in root.handlers:
        handler.close()
    root.handlers[:] = handlers
    root.setLevel(level)


def test_setup_logging_writes_file(tmp_path, restore_root_logger):
    logger = setup_logging(log_level="DEBUG", log_dir=str(tmp_path), log_to_console=False)

    logger.info("hello")

    log_files = list(tmp_path.glob("cleaning_*.log"))
    assert len(log_files) == 1
    assert "hello" in log_files[0].read_text()
    assert logging.getLogger().level == logging.DEBUG


def test_get_logger_namespace():
    assert get_logger("pipeline").name == "tabclean.pipeline"
    assert get_logger("tabclean.table").name == "tabclean.table"


def test_log_execution_time_reraises(caplog):
    @log_execution_time
    def explode():
        raise RuntimeError("boom")

    with caplog.at_level(logging.ERROR):
        with pytest.raises(RuntimeError):
            explode()

    assert "Failed explode" in caplog.text


def test_pipeline_logger_records_failure(caplog):
    logger = logging.getLogger("tabclean.test")

    with caplog.at_level(logging.INFO, logger="tabclean.test"):
        with pytest.raises(ValueError):
            with PipelineLogger("impute_missing", logger) as step:
                step.log_metric("missing_filled", 3)
                raise ValueError("bad column")

    assert step.metrics == {"missing_filled": 3}
    assert step.elapsed is not None
    assert "Metric - missing_filled: 3" in caplog.text
    assert "=== Failed impute_missing" in caplog.text


def test_unknown_level_rejected(tmp_path):
    with pytest.raises(ValueError):
        setup_logging(log_level="LOUD", log_dir=str(tmp_path))
