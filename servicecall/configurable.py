"""Per-service configuration using pydantic-settings.

A service declares its configuration as a nested ``Settings`` class:

    class FetchInvoice(ServiceCall):
        class Settings(ServiceSettings):
            base_url: str = "https://billing.example.com"
            timeout: float = 5.0

        def call(self):
            return fetch(self.config().base_url, timeout=self.config().timeout)

Values resolve as: explicit ``configure()`` overrides, then environment
variables (``SERVICECALL_BASE_URL``), then field defaults.

Invariants:
    - One settings instance per owning class, built lazily on first read
    - A subclass without its own ``Settings`` reads its parent's instance
      until the subclass itself is configured
    - Nothing here locks; configure at startup, read during call()
"""

from typing import TYPE_CHECKING

from pydantic_settings import BaseSettings, SettingsConfigDict

from servicecall.core.logger import get_logger
from servicecall.errors import ConfigurationError

if TYPE_CHECKING:
    from servicecall.base import ServiceCall

logger = get_logger(__name__)


class ServiceSettings(BaseSettings):
    """Base class for a service's ``Settings``.

    Override ``model_config`` in a subclass to change the env prefix.
    """

    model_config = SettingsConfigDict(
        env_prefix="SERVICECALL_",
        extra="forbid",
        frozen=True,
    )


_configs: dict[type, ServiceSettings] = {}


def _settings_class(service_cls: type["ServiceCall"]) -> type[ServiceSettings]:
    settings_cls = getattr(service_cls, "Settings", None)
    if not (isinstance(settings_cls, type) and issubclass(settings_cls, ServiceSettings)):
        raise ConfigurationError(
            service_cls.__qualname__, "declares no Settings(ServiceSettings) class"
        )
    return settings_cls


def get_config(service_cls: type["ServiceCall"]) -> ServiceSettings:
    """Return the configuration instance ``service_cls`` reads from."""
    _settings_class(service_cls)
    for klass in service_cls.__mro__:
        if klass in _configs:
            return _configs[klass]
        if "Settings" in vars(klass):
            _configs[klass] = klass.Settings()
            return _configs[klass]
    # _settings_class() guarantees some class in the MRO owns Settings
    raise ConfigurationError(service_cls.__qualname__, "Settings owner not found")


def configure(service_cls: type["ServiceCall"], **overrides: object) -> ServiceSettings:
    """Give ``service_cls`` its own configuration with ``overrides`` applied.

    Raises:
        ConfigurationError: If the service has no Settings or a key is unknown.
    """
    settings_cls = _settings_class(service_cls)
    unknown = sorted(set(overrides) - set(settings_cls.model_fields))
    if unknown:
        raise ConfigurationError(
            service_cls.__qualname__, f"unknown configuration keys: {unknown}"
        )
    values = get_config(service_cls).model_dump()
    values.update(overrides)
    _configs[service_cls] = settings_cls(**values)
    logger.debug(
        "service_config.configured",
        service=service_cls.__qualname__,
        keys=sorted(overrides),
    )
    return _configs[service_cls]


def reset_config(service_cls: type["ServiceCall"]) -> None:
    """Drop the configuration owned by ``service_cls``; the next read rebuilds it."""
    _configs.pop(service_cls, None)


def clear_config_cache() -> None:
    """Drop every service configuration. Intended for tests."""
    _configs.clear()
