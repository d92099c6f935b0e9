import os
import tomllib
from pathlib import Path

from .catalog import IdentifierPolicy
from .replace import ReplaceStrategy

CONFIG_ENV = 'SYMDEDUP_CONFIG'

SETTING_IDENTIFIER = 'match.identifier'
SETTING_VERIFY_CONTENT = 'match.verify_content'
SETTING_STRATEGY = 'replace.strategy'
SETTING_CONCURRENCY = 'replace.concurrency'
SETTING_LOG_PATH = 'logging.path'
SETTING_LOG_LEVEL = 'logging.level'


class DedupSettings:
    """Read-only access to a TOML configuration file.

    The file is ``config_path`` if given, otherwise the file named by SYMDEDUP_CONFIG. Without either, all
    lookups return their defaults. A config file that is named but missing raises FileNotFoundError.

    Example settings file:

        [match]
        identifier = "relative"
        verify_content = true

        [replace]
        strategy = "atomic"
        concurrency = 8

        [logging]
        path = "/var/log/symdedup.log"
        level = "INFO"
    """

    def __init__(self, config_path: str | os.PathLike | None = None):
        if config_path is None:
            config_path = os.environ.get(CONFIG_ENV) or None

        self._config_path = Path(config_path) if config_path is not None else None
        self._settings = {}

        if self._config_path is not None:
            with open(self._config_path, 'rb') as f:
                self._settings = tomllib.load(f)

    @property
    def config_path(self) -> Path | None:
        return self._config_path

    def get(self, key: str, default=None):
        """Get a setting by dotted key, e.g. ``'replace.strategy'`` reads ``settings['replace']['strategy']``.

        Returns ``default`` if any component of the key is missing or an intermediate value is not a table.
        """
        value = self._settings

        for k in key.split('.'):
            if isinstance(value, dict) and k in value:
                value = value[k]
            else:
                return default

        return value

    @property
    def identifier_policy(self) -> IdentifierPolicy:
        value = self.get(SETTING_IDENTIFIER, IdentifierPolicy.RELATIVE_PATH.value)
        try:
            return IdentifierPolicy(value)
        except ValueError:
            raise ValueError(f"Invalid value for {SETTING_IDENTIFIER}: {value!r}") from None

    @property
    def verify_content(self) -> bool:
        value = self.get(SETTING_VERIFY_CONTENT, False)
        if not isinstance(value, bool):
            raise ValueError(f"Invalid value for {SETTING_VERIFY_CONTENT}: {value!r}")
        return value

    @property
    def strategy(self) -> ReplaceStrategy:
        value = self.get(SETTING_STRATEGY, ReplaceStrategy.ATOMIC.value)
        try:
            return ReplaceStrategy(value)
        except ValueError:
            raise ValueError(f"Invalid value for {SETTING_STRATEGY}: {value!r}") from None

    @property
    def concurrency(self) -> int | None:
        value = self.get(SETTING_CONCURRENCY)
        if value is None:
            return None
        if isinstance(value, bool) or not isinstance(value, int) or value < 1:
            raise ValueError(f"Invalid value for {SETTING_CONCURRENCY}: {value!r}")
        return value
