# omp_deploy/logging.py
import logging
import logging.handlers
import os
import platform
import sys
from datetime import datetime

DEFAULT_LOG_DIR = "logs"
DEFAULT_LOG_FILENAME = "omp_deploy.log"
DEFAULT_LOG_KEEP = 3

_LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logging(
    log_dir=DEFAULT_LOG_DIR,
    log_filename=DEFAULT_LOG_FILENAME,
    log_keep=DEFAULT_LOG_KEEP,
    file_log_level=logging.INFO,
    cli_log_level=logging.WARNING,
    when="midnight",
    interval=1,
    force_reconfigure=False,
):
    """Sets up the package logger with daily file rotation and console output.

    Args:
        log_dir (str): Directory to store log files.
        log_filename (str): The base name of the log file.
        log_keep (int): Number of backup log files to keep.
        file_log_level (int): The minimum level written to the log file.
        cli_log_level (int): The minimum level echoed to the console.
        when (str): Indicates when to rotate. See TimedRotatingFileHandler docs.
        interval (int): The rotation interval.
        force_reconfigure (bool): Drop existing handlers and build new ones.

    Returns:
        logging.Logger: The configured "omp_deploy" logger.
    """
    logger = logging.getLogger("omp_deploy")
    logger.setLevel(min(file_log_level, cli_log_level))

    if force_reconfigure:
        for handler in list(logger.handlers):
            logger.removeHandler(handler)
            handler.close()

    if not logger.handlers:
        formatter = logging.Formatter(_LOG_FORMAT)

        try:
            os.makedirs(log_dir, exist_ok=True)
            log_path = os.path.join(log_dir, log_filename)
            file_handler = logging.handlers.TimedRotatingFileHandler(
                log_path,
                when=when,
                interval=interval,
                backupCount=log_keep,
                encoding="utf-8",
            )
            file_handler.setLevel(file_log_level)
            file_handler.setFormatter(formatter)
            logger.addHandler(file_handler)
        except OSError as e:
            print(
                f"Warning: Failed to create log file handler in '{log_dir}': {e}",
                file=sys.stderr,
            )

        console_handler = logging.StreamHandler()
        console_handler.setFormatter(formatter)
        console_handler.setLevel(cli_log_level)
        logger.addHandler(console_handler)

        logger.debug(
            f"Logging setup complete. Dir: {log_dir}, Filename: {log_filename}, "
            f"File level: {file_log_level}, CLI level: {cli_log_level}"
        )

    return logger


def log_separator(logger, app_name=None, app_version="0.0.0"):
    """Writes a separator block to the file handlers with OS, app version,
       Python version, and time.

    Args:
        logger: The logger object.
        app_name: The name of the application.
        app_version: The version of the application.
    """
    os_name = platform.system()
    os_info = f"{os_name} {platform.release()}"
    if os_name == "Windows":
        os_info = f"{os_name} {platform.version()}"
    current_time = datetime.now().strftime("%Y-%m-%d %H:%M:%S")

    separator_line = "=" * 100
    info_lines = [
        f"{app_name} v{app_version}",
        f"Operating System: {os_info}",
        f"Python Version: {platform.python_version()}",
        f"Timestamp: {current_time}",
    ]

    for handler in logger.handlers:
        if not isinstance(handler, logging.FileHandler):
            continue
        if getattr(handler, "stream", None) is None:
            continue
        try:
            handler.stream.write("\n" + separator_line + "\n")
            for line in info_lines:
                handler.stream.write(line + "\n")
            handler.stream.write(separator_line + "\n\n")
            handler.stream.flush()
        except ValueError as e:
            if "I/O operation on closed file" in str(e):
                print(
                    f"Warning: Could not write to log file (stream closed): {e}",
                    file=sys.stderr,
                )
            else:
                raise
