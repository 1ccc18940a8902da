from __future__ import annotations
from pathlib import Path
import fcntl
from typing import Any, Dict, FrozenSet, Union
import yaml

from kiracord.util.logger import get_logger

logger = get_logger("app_configuration")


CONFIG_PATH = Path("./config/app_config.yml").resolve()

DEFAULT_COMMAND_PREFIX = "!"
DEFAULT_LANGUAGE = "en"


class AppConfig:
    """File-lock based accessor around the YAML application configuration.

    The class caches the contents of ``./config/app_config.yml`` and exposes
    typed shortcuts for the values the governance engine needs: the command
    prefix, the global operator list, language and storage locations.
    Uses fcntl shared locks so a file being rewritten is never half-read.
    """

    def __init__(self, config_path: Path | None = None, data: Dict[str, Any] | None = None) -> None:
        self.config_path = config_path
        self._data: Dict[str, Any] = {}
        if data is not None:
            self._data = dict(data)
        elif config_path is not None:
            self.reload()

    # --------------------------
    # Private helpers
    # --------------------------
    def load_from_disk(self) -> Dict[str, Any]:
        if self.config_path is None:
            return {}
        try:
            with self.config_path.open("r", encoding="utf-8") as f:
                fcntl.flock(f.fileno(), fcntl.LOCK_SH)
                data = yaml.safe_load(f)
                fcntl.flock(f.fileno(), fcntl.LOCK_UN)
        except FileNotFoundError:
            logger.error("[APP CONFIGURATION] Config file %s not found.", self.config_path)
            return {}
        except Exception as exc:
            logger.error("[APP CONFIGURATION] Failed to load config %s: %s", self.config_path, exc)
            return {}

        if not isinstance(data, dict):
            logger.warning("[APP CONFIGURATION] Config file %s has no top-level mapping", self.config_path)
            return {}
        return data

    # --------------------------
    # Public API
    # --------------------------
    def reload(self) -> Dict[str, Any]:
        """Re-read the YAML file, replace the cache and return the new mapping."""
        self._data = self.load_from_disk()
        return self._data

    @property
    def data(self) -> Dict[str, Any]:
        return self._data

    def get(self, key: str, default: Any = None) -> Any:
        return self._data.get(key, default)

    # --------------------------
    # High-level shortcuts
    # --------------------------
    @property
    def command_prefix(self) -> str:
        value = self._data.get("command_prefix")
        return str(value) if value else DEFAULT_COMMAND_PREFIX

    @property
    def default_language(self) -> str:
        value = self._data.get("default_language")
        return str(value).lower() if value else DEFAULT_LANGUAGE

    @property
    def operators(self) -> FrozenSet[str]:
        """Return the ids of global operators as strings.

        Operators bypass every permission and frequency check in every guild.
        """
        raw = self._data.get("operators") or []
        if not isinstance(raw, (list, tuple, set)):
            raw = [raw]
        return frozenset(str(entry).strip() for entry in raw if str(entry).strip())

    def is_operator(self, user_id: Union[int, str, Any]) -> bool:
        return str(user_id) in self.operators

    @property
    def translations_dir(self) -> Path:
        return Path(self._data.get("translations_dir") or "./config/translations").resolve()

    @property
    def database_path(self) -> Path:
        return Path(self._data.get("database_path") or "./data/kiracord.db").resolve()

    @property
    def mute_vote_threshold(self) -> int:
        """Number of distinct voters needed before ``votemute`` mutes a member."""
        try:
            return max(1, int(self._data.get("mute_vote_threshold", 3)))
        except (TypeError, ValueError):
            return 3


# Shared application-wide configuration instance
app_config = AppConfig(CONFIG_PATH)
