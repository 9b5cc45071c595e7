import logging
import logging.handlers
import sys


def setup_logging(log_level=logging.INFO, log_file=None):
    """
    Set up logging for lazymzml.

    Args:
        log_level (int): The minimum logging level to display.
        log_file (str): Path to the log file. If None, logs are not saved to a file.
    """
    logger = logging.getLogger("lazymzml")
    logger.setLevel(log_level)

    # Remove all existing handlers to avoid duplicates
    if logger.hasHandlers():
        logger.handlers.clear()

    formatter = logging.Formatter(
        "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )

    # Logs go to stderr so that command output on stdout stays parseable
    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(log_level)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    if log_file:
        file_handler = logging.handlers.RotatingFileHandler(
            log_file, maxBytes=10 * 1024 * 1024, backupCount=5
        )
        file_handler.setLevel(log_level)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    logger.debug("Logging configured")
    return logger
