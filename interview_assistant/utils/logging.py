import logging
import sys


def configure_logging(level: str = "INFO") -> None:
	root_logger = logging.getLogger()
	if root_logger.handlers:
		root_logger.setLevel(logging.getLevelName(level.upper()))
		return

	handler = logging.StreamHandler(sys.stdout)
	formatter = logging.Formatter(
		"%(asctime)s | %(levelname)s | %(name)s | %(message)s",
		datefmt="%Y-%m-%d %H:%M:%S",
	)
	handler.setFormatter(formatter)
	root_logger.addHandler(handler)
	root_logger.setLevel(logging.getLevelName(level.upper()))


def set_debug(enabled: bool, default_level: str = "INFO") -> None:
	"""Switch the package loggers to DEBUG while the user debug flag is on."""
	level = "DEBUG" if enabled else default_level.upper()
	logging.getLogger("interview_assistant").setLevel(logging.getLevelName(level))
