"""Connection settings for the network document store.

Configuration is layered: a bundled ``docprog.env`` shipped inside the
package supplies defaults, an optional ``docprog-dev.env`` in the working
directory overrides it, and ``DOCPROG_*`` environment variables override
both. Later sources win.

Manifesto:
    Connection parameters should be validated once at startup and then
    passed around as a value. ``DocStoreSettings`` is that value; the
    network backend never reads the environment itself.

    - **Pydantic validation:** Type-checked when loaded
    - **Layered sources:** Bundled default < local override < environment
    - **Sensible defaults:** Works against a local Redis out of the box

Examples:
    >>> from docprog.core.settings import DocStoreSettings
    >>> s = DocStoreSettings(_env_file=None)
    >>> s.bucket_name
    'default'

Tags:
    settings, configuration, pydantic, environment, docprog

Doc-Types:
    - API Reference
    - Configuration Guide
"""

from __future__ import annotations

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


BUNDLED_ENV_FILE = Path(__file__).resolve().parent.parent / "docprog.env"
LOCAL_ENV_FILE = Path("docprog-dev.env")


class DocStoreSettings(BaseSettings):
    """Resolved configuration for the network backend.

    Fields
    ──────
    host                  : Store host address
    port                  : Store port
    bucket_name           : Target bucket; used as the key namespace
    io_pool_size          : I/O connections per key-value endpoint
    computation_pool_size : Compute pool size (no Redis analog; reported on connect)
    kv_endpoints          : Key-value endpoints per node
    socket_timeout        : Per-operation driver timeout (seconds)
    log_level             : Structlog log level
    log_format            : ``json`` or ``console``
    """

    model_config = SettingsConfigDict(
        env_prefix="DOCPROG_",
        env_file=(BUNDLED_ENV_FILE, LOCAL_ENV_FILE),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ── Connection ───────────────────────────────────────────────
    host: str = Field(default="localhost")
    port: int = Field(default=6379, ge=1, le=65535)
    bucket_name: str = Field(default="default", min_length=1)

    # ── Driver tuning ────────────────────────────────────────────
    io_pool_size: int = Field(default=4, ge=1)
    computation_pool_size: int = Field(default=4, ge=1)
    kv_endpoints: int = Field(default=2, ge=1)
    socket_timeout: float = Field(default=2.5, gt=0)

    # ── Logging ──────────────────────────────────────────────────
    log_level: str = Field(default="INFO")
    log_format: str = Field(default="json")

    @property
    def url(self) -> str:
        return f"redis://{self.host}:{self.port}/0"

    @property
    def max_connections(self) -> int:
        """Connection pool bound: I/O pool size per endpoint, times endpoints."""
        return self.io_pool_size * self.kv_endpoints


# ── Settings factory with caching ────────────────────────────────────────

_settings_cache: dict[str, DocStoreSettings] = {}


def load_settings(
    *,
    local_env_file: Path | None = None,
    _force_reload: bool = False,
) -> DocStoreSettings:
    """Load, validate, and cache a :class:`DocStoreSettings` instance.

    Parameters
    ----------
    local_env_file:
        Override file to layer on top of the bundled defaults.  Defaults
        to ``docprog-dev.env`` in the working directory.
    _force_reload:
        Bypass cache and reload from disk.
    """
    override = (local_env_file or LOCAL_ENV_FILE).resolve()
    cache_key = str(override)

    if not _force_reload and cache_key in _settings_cache:
        return _settings_cache[cache_key]

    settings = DocStoreSettings(
        _env_file=(BUNDLED_ENV_FILE, override),  # type: ignore[call-arg]
    )
    _settings_cache[cache_key] = settings
    return settings


def clear_settings_cache() -> None:
    """Drop cached settings (used by tests)."""
    _settings_cache.clear()


__all__ = [
    "DocStoreSettings",
    "load_settings",
    "clear_settings_cache",
    "BUNDLED_ENV_FILE",
    "LOCAL_ENV_FILE",
]
