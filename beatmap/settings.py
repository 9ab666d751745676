"""
User settings for beatmap tools.

Stored as JSON at ~/.beatmap/settings.json. Values found on disk are merged
over DEFAULT_SETTINGS category by category, so settings added in newer
versions pick up their defaults.
"""
import copy
import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional

from beatmap.constants import BPB_DEFAULT, BPM_DEFAULT

logger = logging.getLogger(__name__)

DEFAULT_SETTINGS: Dict[str, Dict[str, Any]] = {
    "editor": {
        "default_bpm": BPM_DEFAULT,
        "default_bpb": BPB_DEFAULT,
    },
    "files": {
        "indent": None,
        "auto_save_enabled": True,
        "auto_save_dir": None,  # None = ~/.beatmap/autosave
    },
    "logging": {
        "level": "INFO",
    },
}


def get_settings_path() -> Path:
    """Default location of the settings file."""
    return Path.home() / ".beatmap" / "settings.json"


def load_settings(config_path: Optional[Path] = None) -> Dict[str, Dict[str, Any]]:
    """
    Load settings, falling back to defaults.

    A missing file is created with the defaults. An unreadable file is
    reported and ignored.

    Args:
        config_path: Settings file (default ~/.beatmap/settings.json)

    Returns:
        Settings dictionary keyed by category
    """
    if config_path is None:
        config_path = get_settings_path()
    config_path = Path(config_path)

    settings = copy.deepcopy(DEFAULT_SETTINGS)

    if not config_path.exists():
        try:
            save_settings(settings, config_path)
            logger.info("Created new settings file with defaults at %s", config_path)
        except OSError as e:
            logger.warning("Failed to save default settings: %s", e)
        return settings

    try:
        with open(config_path, "r", encoding="utf-8") as f:
            loaded = json.load(f)
    except (OSError, ValueError) as e:
        logger.warning("Failed to load settings from %s: %s", config_path, e)
        return settings

    if not isinstance(loaded, dict):
        logger.warning("Ignoring settings file %s: expected an object", config_path)
        return settings

    # Merge with defaults (in case new settings added)
    for category in settings:
        if isinstance(loaded.get(category), dict):
            settings[category].update(loaded[category])

    return settings


def save_settings(settings: Dict[str, Dict[str, Any]], config_path: Optional[Path] = None):
    """
    Write settings to disk.

    Raises:
        OSError: If the file cannot be written
    """
    if config_path is None:
        config_path = get_settings_path()
    config_path = Path(config_path)
    config_path.parent.mkdir(parents=True, exist_ok=True)
    with open(config_path, "w", encoding="utf-8") as f:
        json.dump(settings, f, indent=2)


def configure_logging(settings: Dict[str, Dict[str, Any]], verbose: bool = False):
    """Configure root logging from the "logging" settings category."""
    level = "DEBUG" if verbose else settings.get("logging", {}).get("level", "INFO")
    logging.basicConfig(
        level=getattr(logging, str(level).upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
