"""Persisted global settings: tool locations and jarsigner algorithms."""

import os
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from testfairyuploader.constants import DEFAULT_JARSIGNER, DEFAULT_ZIPALIGN
from testfairyuploader.errors import TestFairyError
from testfairyuploader.models import BuildEnvironment

SETTINGS_VARIABLE = "TESTFAIRY_SETTINGS_FILE"


def default_settings_path() -> str:
    override = os.environ.get(SETTINGS_VARIABLE)
    if override:
        return override
    return str(Path.home() / ".testfairyuploader" / "settings.yml")


class SettingsStore:
    """Loads and saves the tool paths shared by every build."""

    SUPPORTED_KEYS = {"jarsigner_path", "zipalign_path", "sigalg", "digestalg"}

    def __init__(self, settings_file: Optional[str] = None, logger=None):
        self.settings_file = settings_file or default_settings_path()
        self.logger = logger

    def load(self) -> Dict[str, Any]:
        path = Path(self.settings_file)
        if not path.exists():
            return {}

        try:
            parsed = yaml.safe_load(path.read_text(encoding="utf-8"))
        except (yaml.YAMLError, OSError) as exc:
            raise TestFairyError(f"Invalid settings file '{self.settings_file}': {exc}") from exc

        if parsed is None:
            return {}
        if not isinstance(parsed, dict):
            raise TestFairyError("Settings file must contain a YAML mapping at the root.")

        return {key: parsed[key] for key in self.SUPPORTED_KEYS if parsed.get(key)}

    def save(
        self,
        jarsigner_path: Optional[str],
        zipalign_path: Optional[str],
        sigalg: Optional[str] = None,
        digestalg: Optional[str] = None,
    ):
        settings = self.load()
        updates = {
            "jarsigner_path": jarsigner_path,
            "zipalign_path": zipalign_path,
            "sigalg": sigalg,
            "digestalg": digestalg,
        }
        for key, value in updates.items():
            if value is None:
                continue
            if value:
                settings[key] = value
            else:
                settings.pop(key, None)

        path = Path(self.settings_file)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(yaml.safe_dump(settings, default_flow_style=False), encoding="utf-8")
        except OSError as exc:
            raise TestFairyError(f"Could not write settings file '{self.settings_file}': {exc}") from exc

        if self.logger:
            self.logger.info("Saved settings to %s", self.settings_file)

    def get_environment(self) -> BuildEnvironment:
        settings = self.load()
        return BuildEnvironment(
            jarsigner_path=str(settings.get("jarsigner_path") or DEFAULT_JARSIGNER),
            zipalign_path=str(settings.get("zipalign_path") or DEFAULT_ZIPALIGN),
            sigalg=str(settings.get("sigalg") or ""),
            digestalg=str(settings.get("digestalg") or ""),
        )
