from tsr.logging.logger import LogConfig, get_logger, setup_logging

__all__ = ["LogConfig", "get_logger", "setup_logging"]
