"""
Logging setup for the watcher using structlog.
Provides structured logging with JSON or console output.
"""

import logging
import sys
from pathlib import Path
from typing import Optional, Union
import structlog
from structlog.stdlib import LoggerFactory


def setup_logging(
    log_level: str = "INFO",
    log_format: str = "json",
    log_file: Optional[Union[str, Path]] = None,
    debug: bool = False
) -> None:
    """
    Set up structured logging.
    
    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_format: Output format (json or console)
        log_file: Optional log file path, written with the same renderer
        debug: Add call-site information to every record
    """
    level = getattr(logging, log_level.upper())
    
    # Configure standard library logging
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=level,
    )
    # APScheduler logs every job run at INFO
    logging.getLogger("apscheduler").setLevel(max(level, logging.WARNING))
    logging.getLogger("httpx").setLevel(max(level, logging.WARNING))
    
    processors = [
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]
    
    if debug:
        processors.append(
            structlog.processors.CallsiteParameterAdder(
                {
                    structlog.processors.CallsiteParameter.MODULE,
                    structlog.processors.CallsiteParameter.FUNC_NAME,
                    structlog.processors.CallsiteParameter.LINENO,
                }
            )
        )
    
    if log_format == "console":
        processors.append(structlog.dev.ConsoleRenderer(colors=True))
    else:
        processors.append(structlog.processors.JSONRenderer())
    
    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=LoggerFactory(),
        context_class=dict,
        cache_logger_on_first_use=True,
    )
    
    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        
        file_handler = logging.FileHandler(log_path)
        file_handler.setLevel(level)
        file_handler.setFormatter(logging.Formatter('%(message)s'))
        logging.getLogger().addHandler(file_handler)
    
    logger = structlog.get_logger(__name__)
    logger.info(
        "Logging system initialized",
        level=log_level,
        format=log_format,
        file=str(log_file) if log_file else None,
        debug=debug
    )


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """
    Get a structured logger instance.
    
    Args:
        name: Logger name (usually __name__)
        
    Returns:
        Configured structlog logger
    """
    return structlog.get_logger(name)


class CycleLogger:
    """
    Specialized logger for detection cycles with context management.
    """
    
    def __init__(self, name: str = "watcher"):
        self.logger = structlog.get_logger(name)
        self.context = {}
    
    def bind_context(self, **kwargs) -> 'CycleLogger':
        """
        Bind context variables to the logger.
        
        Args:
            **kwargs: Context variables to bind
            
        Returns:
            Self for method chaining
        """
        self.context.update(kwargs)
        return self
    
    def log_cycle_start(self, target_url: str) -> None:
        """Log detection cycle start."""
        self.logger.info(
            "Detection cycle started",
            target_url=target_url,
            **self.context
        )
    
    def log_outcome(self, outcome: str, fingerprint: str, previous_fingerprint: Optional[str] = None) -> None:
        """Log the result of the fingerprint comparison."""
        level = "warning" if outcome == "changed" else "info"
        getattr(self.logger, level)(
            "Fingerprint compared",
            outcome=outcome,
            fingerprint=fingerprint,
            previous_fingerprint=previous_fingerprint,
            **self.context
        )
    
    def log_cycle_complete(self, duration_seconds: float, notified: bool = False) -> None:
        """Log detection cycle completion."""
        self.logger.info(
            "Detection cycle completed",
            duration_seconds=duration_seconds,
            notified=notified,
            **self.context
        )
    
    def log_phase_error(self, phase: str, error: str, exc_info: bool = False) -> None:
        """Log a failure inside one phase of the cycle."""
        self.logger.error(
            "Detection cycle error",
            phase=phase,
            error=error,
            exc_info=exc_info,
            **self.context
        )
    
    def log_notification(
        self,
        subject: str,
        success: bool,
        error: Optional[str] = None,
        exc_info: bool = False
    ) -> None:
        """Log a notification attempt."""
        level = "info" if success else "error"
        getattr(self.logger, level)(
            "Notification attempted",
            subject=subject,
            success=success,
            error=error,
            exc_info=exc_info,
            **self.context
        )
