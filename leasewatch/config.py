import logging
import os
from pathlib import Path
from typing import Optional

import yaml
from pydantic import ValidationError

from leasewatch.errors import ConfigurationError
from leasewatch.merge.registry import ClientRegistry
from leasewatch.models.options import Options
from leasewatch.normalizer.duration import format_duration

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = "config/options.yaml"


def load_options(path: str | Path | None = None) -> Options:
    """
    Читает YAML-конфигурацию и валидирует её.
    Любая ошибка здесь фатальна: движок не стартует на невалидном пуле или резервациях.
    """
    path = Path(path or os.getenv("LEASEWATCH_CONFIG", DEFAULT_CONFIG_PATH))
    if not path.exists():
        raise ConfigurationError(f"config file not found: {path}")

    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigurationError(f"config file {path} is not valid YAML: {e}") from e

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigurationError(f"config file {path} must contain a mapping at top level")

    env_level = os.getenv("LEASEWATCH_LOG_LEVEL")
    if env_level:
        data["log_level"] = env_level

    try:
        options = Options.model_validate(data)
    except ValidationError as e:
        raise ConfigurationError(f"invalid configuration in {path}:\n{e}") from e

    logger.info("[CONFIG] Acquired %d DHCP network/ranges", len(options.dhcp_pools))
    logger.info("[CONFIG] Acquired %d IP address reservations", len(options.dhcp_ip_address_reservations))
    logger.info("[CONFIG] Acquired %d friendly name definitions", len(options.dhcp_clients_friendly_names))
    logger.info("[CONFIG] Cleanup threshold for past DHCP clients set to %s",
                format_duration(options.dhcp_server.forget_past_clients_after))
    return options


def build_registry(options: Options) -> ClientRegistry:
    return ClientRegistry(options.dhcp_ip_address_reservations, options.dhcp_clients_friendly_names)


def read_start_epoch(path: str | Path, override: Optional[str] = None) -> int:
    """
    Номер текущего запуска DHCP-сервера. Файл пишет стартовый скрипт dnsmasq,
    увеличивая значение при каждом рестарте. LEASEWATCH_START_EPOCH имеет приоритет.
    """
    raw = override if override is not None else os.getenv("LEASEWATCH_START_EPOCH")
    source = "LEASEWATCH_START_EPOCH"
    if raw is None:
        source = str(path)
        try:
            raw = Path(path).read_text(encoding="utf-8")
        except OSError as e:
            raise ConfigurationError(f"failed to read start epoch file {path}: {e}") from e

    try:
        epoch = int(str(raw).strip())
    except ValueError as e:
        raise ConfigurationError(f"start epoch in {source} is not an integer: {raw!r}") from e

    if epoch < 0:
        raise ConfigurationError(f"start epoch in {source} must not be negative: {epoch}")

    logger.info("[CONFIG] The current DHCP server start epoch is %d", epoch)
    return epoch
