from stable_fluids.logging_config import setup_logging

import logging


def test_setup_logging_replaces_handlers(tmp_path):
    log_file = tmp_path / "stable_fluids.log"
    logger = setup_logging(logging.DEBUG, log_file=str(log_file))
    assert logger.name == "stable_fluids"
    assert len(logger.handlers) == 2

    logger = setup_logging(logging.WARNING)
    assert len(logger.handlers) == 1
    assert logger.level == logging.WARNING


def test_log_file_receives_package_records(tmp_path):
    log_file = tmp_path / "stable_fluids.log"
    setup_logging(logging.INFO, log_file=str(log_file))
    logging.getLogger("stable_fluids.solvers").info("Solve took 3 iterations")
    for handler in logging.getLogger("stable_fluids").handlers:
        handler.flush()

    assert "Solve took 3 iterations" in log_file.read_text()
    setup_logging(logging.WARNING)
