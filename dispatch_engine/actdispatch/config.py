from __future__ import annotations

import os
from dotenv import load_dotenv
from pydantic import BaseModel

# Load environment variables from .env (if present)
load_dotenv()


def _env_flag(name: str, default: str = "0") -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


def _env_list(name: str, default: str) -> list[str]:
    return [item.strip() for item in os.getenv(name, default).split(",") if item.strip()]


class Settings(BaseModel):
    # Root log level for dispatch loggers
    log_level: str = os.getenv("ACTDISPATCH_LOG_LEVEL", "INFO")

    # Optional YAML file with keymaps and edit-policy overrides
    config_file: str = os.getenv("ACTDISPATCH_CONFIG_FILE", "")

    # Leave injected prompts open for editing unless a command says otherwise
    allow_edit_default: bool = _env_flag("ACTDISPATCH_ALLOW_EDIT")

    # Unwind every open prompt before running the chosen action
    quit_after_action: bool = _env_flag("ACTDISPATCH_QUIT_AFTER_ACTION")

    # How an armed session is shown: "status" (message area) or "inline" (marker at target)
    indicator: str = os.getenv("ACTDISPATCH_INDICATOR", "status")

    # Keys that show the bindings without ending the transient scope
    help_keys: list[str] = _env_list("ACTDISPATCH_HELP_KEYS", "C-h")

    # HTML export
    css_theme: str = os.getenv("CSS_THEME", "light")
    html_font_size: str = os.getenv("HTML_FONT_SIZE", "15px")
    html_max_width: str = os.getenv("HTML_MAX_WIDTH", "960px")


settings = Settings()
