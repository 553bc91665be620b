import itertools
import logging
import time
from typing import Optional


def setup_dispatch_logger(name: str = "actdispatch", level: str = "INFO") -> logging.Logger:
    """Setup standardized logger for dispatch operations."""
    logger = logging.getLogger(name)

    if not logger.handlers:  # Avoid duplicate handlers
        handler = logging.StreamHandler()
        formatter = logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
        )
        handler.setFormatter(formatter)
        logger.addHandler(handler)

    logger.setLevel(getattr(logging, level.upper(), logging.INFO))
    return logger


def log_dispatch(logger: logging.Logger,
                 session_id: str,
                 session_type: str,
                 target: Optional[str],
                 action: str,
                 success: bool,
                 duration_ms: float,
                 prefix_arg: Optional[int] = None,
                 originating_command: Optional[str] = None,
                 deferred: bool = False,
                 error: Optional[str] = None) -> None:
    """Log one finished action cycle in a structured format."""

    log_data = {
        "session_id": session_id,
        "type": session_type,
        "target": _sanitize_target(target),
        "action": action,
        "success": success,
        "duration_ms": round(duration_ms, 1)
    }

    if prefix_arg is not None:
        log_data["prefix_arg"] = prefix_arg

    if originating_command:
        log_data["originating_command"] = originating_command

    # Mark actions replayed after a prompt unwind
    if deferred:
        log_data["deferred"] = True

    if error:
        log_data["error"] = error

    status_icon = "✅" if success else "❌"
    action_desc = action.replace("-", " ").replace("_", " ").title()

    if error:
        logger.error(f"{status_icon} {action_desc}: {log_data}")
    else:
        logger.info(f"{status_icon} {action_desc}: {log_data}")


def _sanitize_target(target: Optional[str]) -> Optional[str]:
    """Keep log lines short for very long targets."""
    if target is None:
        return None
    target = target.replace("\n", " ")
    if len(target) > 200:
        return target[:197] + "..."
    return target


_session_counter = itertools.count(1)


def create_session_id() -> str:
    """Create unique session ID for tracking."""
    return f"session_{int(time.time() * 1000)}_{next(_session_counter)}"
