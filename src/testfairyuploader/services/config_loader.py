"""Configuration loader for TestFairy Uploader."""

from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from testfairyuploader.errors import TestFairyError


class ConfigLoader:
    """Loads YAML build step configuration used as CLI defaults."""

    SUPPORTED_KEYS = {
        "app_file",
        "mapping_file",
        "testers_groups",
        "notify_testers",
        "auto_update",
        "max_duration",
        "record_on_background",
        "data_only_wifi",
        "video_enabled",
        "screenshot_interval",
        "video_quality",
        "advanced_options",
        "cpu",
        "memory",
        "network",
        "logs",
        "phone_signal",
        "wifi",
        "gps",
        "battery",
        "opengl",
        "keystore_path",
        "artifacts_dir",
        "verbose",
        "log_file",
    }

    def load(self, config_path: Optional[str]) -> Dict[str, Any]:
        if not config_path:
            return {}

        path = Path(config_path)
        if not path.exists():
            raise TestFairyError(f"Config file not found: {config_path}")

        try:
            parsed = yaml.safe_load(path.read_text(encoding="utf-8"))
        except (yaml.YAMLError, OSError) as exc:
            raise TestFairyError(f"Invalid config file '{config_path}': {exc}") from exc

        if parsed is None:
            return {}
        if not isinstance(parsed, dict):
            raise TestFairyError("Config file must contain a YAML mapping at the root.")

        unknown = sorted(set(parsed.keys()) - self.SUPPORTED_KEYS)
        if unknown:
            unknown_list = ", ".join(unknown)
            raise TestFairyError(f"Unknown configuration keys: {unknown_list}")

        return parsed
