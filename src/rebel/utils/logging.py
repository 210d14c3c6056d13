"""Logging utilities."""

import logging
import sys
import threading
from pathlib import Path

from rich.logging import RichHandler


def _is_main_thread() -> bool:
    """Check if we're running on the interpreter's main thread.
    
    Returns:
        True if called from the main thread, False from a worker thread
    """
    return threading.current_thread() is threading.main_thread()


def setup_logger(
    name: str = "rebel",
    level: int = logging.INFO,
    log_file: Path = None,
    use_rich: bool = True
) -> logging.Logger:
    """Setup logger with optional file output and rich formatting.
    
    Worker threads share handlers with the logger they obtained, so a logger
    first configured from a worker thread gets a plain stream handler instead
    of a Rich console.
    """
    logger = logging.getLogger(name)
    logger.setLevel(level)
    
    # Remove existing handlers
    logger.handlers.clear()
    logger.propagate = False
    
    use_rich = use_rich and _is_main_thread()
    
    # Console handler
    if use_rich:
        try:
            console_handler = RichHandler(
                rich_tracebacks=True,
                tracebacks_show_locals=False,
                show_time=True,
                show_path=True
            )
        except RuntimeError:
            use_rich = False
    
    if not use_rich:
        console_handler = logging.StreamHandler(sys.stdout)
        formatter = logging.Formatter(
            '%(asctime)s - %(name)s - %(threadName)s - %(levelname)s - %(message)s'
        )
        console_handler.setFormatter(formatter)
    
    console_handler.setLevel(level)
    logger.addHandler(console_handler)
    
    # File handler
    if log_file:
        log_file = Path(log_file)
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file)
        file_handler.setLevel(level)
        formatter = logging.Formatter(
            '%(asctime)s - %(name)s - %(threadName)s - %(levelname)s - %(message)s'
        )
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)
    
    return logger


_default_logger = None
_setup_lock = threading.Lock()


def get_logger(name: str = None) -> logging.Logger:
    """Get a logger instance.
    
    Named loggers live under the ``rebel.`` namespace and are initialized on
    first use. Initialization is serialized so concurrent worker threads do not
    attach duplicate handlers.
    """
    global _default_logger
    
    with _setup_lock:
        if name:
            logger_name = f"rebel.{name}"
            logger = logging.getLogger(logger_name)
            
            if not logger.handlers:
                logger = setup_logger(logger_name)
            
            return logger
        
        if _default_logger is None:
            _default_logger = setup_logger()
        
        return _default_logger
