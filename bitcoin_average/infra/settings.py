from __future__ import annotations

import os
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict

BASE_DIR = Path(__file__).resolve().parents[2]


def _default_workers() -> int:
    return os.cpu_count() or 1


@dataclass(frozen=True)
class _Defaults:
    """Значения по умолчанию для конфигурации проекта."""

    logs_dir: Path = BASE_DIR / "logs"
    total_days: int = 50
    global_timeout_seconds: float = 10.0
    max_attempts_per_day: int = 10
    currency: str = "USD"
    backoff_unit_seconds: float = 0.1
    request_timeout: float = 5.0
    max_workers: int = field(default_factory=_default_workers)
    log_level: str = "INFO"
    console_log_level: str = "WARNING"
    log_format: str = (
        "%(asctime)s [%(levelname)s] %(name)s - %(message)s"
    )


class SettingsLoader:
    """Singleton для загрузки и кеширования конфигурации проекта.

    Источник конфигурации:
    - pyproject.toml → секция [tool.bitcoin_average]
    - при отсутствии ключа используется значение по умолчанию.

    Доступные ключи:
    - total_days: сколько последних дней запрашивать
    - global_timeout_seconds: общий дедлайн на всю пачку запросов
    - max_attempts_per_day: потолок попыток на один день
    - currency: целевая валюта (USD/EUR)
    - backoff_unit_seconds: шаг экспоненциальной задержки
    - request_timeout: таймаут одного HTTP-запроса
    - max_workers: размер пула потоков
    - logs_dir, log_level, console_log_level, log_format: настройки логирования
    """

    _instance: "SettingsLoader | None" = None
    _initialized: bool = False

    def __new__(cls, *args: Any, **kwargs: Any) -> "SettingsLoader":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __init__(self) -> None:
        if self.__class__._initialized:
            return
        self.__class__._initialized = True

        self._defaults = _Defaults()
        self._config: Dict[str, Any] = {}
        self.reload()

    def _load_from_pyproject(self) -> Dict[str, Any]:
        """Загрузка конфигурации из pyproject.toml (секция [tool.bitcoin_average])."""
        pyproject_path = BASE_DIR / "pyproject.toml"
        if not pyproject_path.exists():
            return {}

        with pyproject_path.open("rb") as f:
            data = tomllib.load(f)

        tool_section = data.get("tool", {})
        return tool_section.get("bitcoin_average", {}) or {}

    def reload(self) -> None:
        """Полная перезагрузка конфигурации из pyproject.toml."""
        raw = self._load_from_pyproject()
        defaults = self._defaults

        cfg: Dict[str, Any] = {}

        logs_dir = Path(raw.get("logs_dir", defaults.logs_dir))
        if not logs_dir.is_absolute():
            logs_dir = BASE_DIR / logs_dir

        cfg["logs_dir"] = logs_dir
        cfg["total_days"] = int(raw.get("total_days", defaults.total_days))
        cfg["global_timeout_seconds"] = float(
            raw.get("global_timeout_seconds", defaults.global_timeout_seconds),
        )
        cfg["max_attempts_per_day"] = int(
            raw.get("max_attempts_per_day", defaults.max_attempts_per_day),
        )
        cfg["currency"] = str(raw.get("currency", defaults.currency)).upper()
        cfg["backoff_unit_seconds"] = float(
            raw.get("backoff_unit_seconds", defaults.backoff_unit_seconds),
        )
        cfg["request_timeout"] = float(
            raw.get("request_timeout", defaults.request_timeout),
        )
        # 0 в конфиге означает "по числу ядер".
        max_workers = int(raw.get("max_workers", 0))
        cfg["max_workers"] = max_workers if max_workers > 0 else defaults.max_workers
        cfg["log_level"] = str(raw.get("log_level", defaults.log_level)).upper()
        cfg["console_log_level"] = str(
            raw.get("console_log_level", defaults.console_log_level),
        ).upper()
        cfg["log_format"] = str(raw.get("log_format", defaults.log_format))

        self._config = cfg

    def get(self, key: str, default: Any | None = None) -> Any:
        """Получить значение конфигурации по ключу.

        Если ключ не найден, возвращается default.
        """
        return self._config.get(key, default)
