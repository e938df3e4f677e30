import os
import yaml

APP_VERSION = "1.0.0"
SETTINGS_ENV = "PRT_SETTINGS"
LOG_FORMAT_ENV = "PRT_LOG_FORMAT"


class YamlConfig:
    """Load and save settings to a YAML file."""

    def __init__(self, path: str | None = None) -> None:
        self.path = path or os.environ.get(SETTINGS_ENV, "settings.yaml")

    def load(self) -> dict:
        if not os.path.exists(self.path):
            data: dict = {}
        else:
            with open(self.path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        log_format = os.environ.get(LOG_FORMAT_ENV)
        if log_format:
            data["log_format"] = log_format
        return data

    def save(self, data: dict) -> None:
        with open(self.path, "w", encoding="utf-8") as f:
            yaml.safe_dump(dict(data), f)
