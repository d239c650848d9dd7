import json
import os
from pathlib import Path

from bkptool.errors import ConfigError

CONFIG_ENV = "BKPTOOL_CONFIG"
ROOT_ENV = "BKPTOOL_ROOT"

DEFAULT_CONFIG = {
    "root": str(Path("~") / ".local" / "share" / "bkptool"),
    "diff_backend": "external",
    "diff_command": "diff",
    "audit_log": True,
}


def global_config_file():
    """~/.config/bkptool/config.json, or whatever BKPTOOL_CONFIG points at."""
    override = os.environ.get(CONFIG_ENV)
    if override:
        return Path(override).expanduser()
    return Path.home() / ".config" / "bkptool" / "config.json"


def load_global_config():
    config_file = global_config_file()
    if not config_file.exists():
        return {}
    try:
        raw = json.loads(config_file.read_text())
    except json.JSONDecodeError as e:
        raise ConfigError(f"Invalid JSON in {config_file}: {e}") from e
    except OSError as e:
        raise ConfigError(f"Cannot read {config_file}: {e}") from e
    if not isinstance(raw, dict):
        raise ConfigError(f"Expected a JSON object in {config_file}")
    return raw


def load_config(root=None):
    # Merge order: defaults → global config → BKPTOOL_ROOT → explicit root
    config = {**DEFAULT_CONFIG, **load_global_config()}

    env_root = os.environ.get(ROOT_ENV)
    if env_root:
        config["root"] = env_root
    if root:
        config["root"] = str(root)

    if not config.get("root"):
        raise ConfigError("Store root is empty. Set 'root' in the config file or BKPTOOL_ROOT.")
    config["root"] = Path(config["root"]).expanduser()
    return config
