"""Configuration — PARAM = VALUE files with environment overrides."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Mapping, Optional, Sequence

from rhtsupport_reporter.core.errors import ConfigError

logger = logging.getLogger(__name__)

DEFAULT_CONF_FILE = Path("/etc/libreport/plugins/rhtsupport.conf")
DEFAULT_UREPORT_CONF_FILE = Path("/etc/libreport/plugins/ureport.conf")

DEFAULT_URL = "https://api.access.redhat.com/rs"
DEFAULT_BIG_FILE_URL = "ftp://dropbox.redhat.com/incoming/"
# RH has a 250m limit for web attachments
DEFAULT_BIG_SIZE_MB = 200

ENV_PREFIX = "RHTSupport_"
UREPORT_ENV_PREFIX = "uReport_"

_TRUE = {"1", "yes", "on", "true"}
_FALSE = {"0", "no", "off", "false"}


def load_conf_file(path: Path, settings: Optional[dict[str, str]] = None) -> dict[str, str]:
    """Parse `PARAM = VALUE` lines of `path` into `settings`."""
    settings = {} if settings is None else settings
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"Can't open configuration file '{path}': {e.strerror}") from e

    for lineno, raw in enumerate(text.splitlines(), 1):
        line = raw.strip()
        if not line or line.startswith("#"):
            continue
        key, sep, value = line.partition("=")
        key = key.strip()
        if not sep or not key:
            logger.warning("%s:%d: ignoring line without '=': %s", path, lineno, line)
            continue
        value = value.strip()
        if len(value) >= 2 and value[0] == value[-1] == '"':
            value = value[1:-1]
        settings[key] = value
    return settings


def string_to_bool(value: str) -> bool:
    lowered = value.strip().lower()
    if lowered in _TRUE:
        return True
    if lowered in _FALSE:
        return False
    raise ConfigError(f"Not a boolean value: '{value}'")


def _lookup(
    name: str,
    settings: Mapping[str, str],
    environ: Mapping[str, str],
    prefix: str,
) -> Optional[str]:
    """Resolve a parameter: env var → config file → None."""
    env_value = environ.get(prefix + name)
    if env_value is not None:
        return env_value
    return settings.get(name)


@dataclass
class ReporterConfig:
    url: str = DEFAULT_URL
    login: str = ""
    password: str = ""
    big_file_url: str = DEFAULT_BIG_FILE_URL
    big_size_mb: int = DEFAULT_BIG_SIZE_MB
    ssl_verify: bool = True
    submit_ureport: bool = False

    @classmethod
    def load(
        cls,
        paths: Sequence[Path] = (),
        environ: Optional[Mapping[str, str]] = None,
        submit_ureport_flag: bool = False,
    ) -> "ReporterConfig":
        """Merge config files (later wins), env overrides and defaults.

        With no explicit `paths` the system-wide file is read when present.
        """
        environ = os.environ if environ is None else environ
        settings: dict[str, str] = {}

        if not paths:
            if DEFAULT_CONF_FILE.exists():
                paths = [DEFAULT_CONF_FILE]
            else:
                logger.debug("Default configuration %s not found", DEFAULT_CONF_FILE)
        for path in paths:
            logger.info("Loading settings from '%s'", path)
            load_conf_file(Path(path), settings)

        def get(name: str, default: str) -> str:
            value = _lookup(name, settings, environ, ENV_PREFIX)
            return default if value is None else value

        big_size = get("BigSizeMB", str(DEFAULT_BIG_SIZE_MB))
        try:
            big_size_mb = int(big_size)
        except ValueError:
            big_size_mb = -1
        if big_size_mb < 0:
            raise ConfigError(f"BigSizeMB must be a non-negative number: '{big_size}'")

        return cls(
            url=get("URL", DEFAULT_URL),
            login=get("Login", ""),
            password=get("Password", ""),
            big_file_url=get("BigFileURL", DEFAULT_BIG_FILE_URL),
            big_size_mb=big_size_mb,
            ssl_verify=string_to_bool(get("SSLVerify", "1")),
            submit_ureport=string_to_bool(
                get("SubmitUReport", "1" if submit_ureport_flag else "0")
            ),
        )


@dataclass
class MicroreportConfig:
    include_auth_data: bool = True
    auth_data_items: list[str] = field(default_factory=list)
    contact_email: Optional[str] = None

    @classmethod
    def load(
        cls,
        path: Optional[Path] = None,
        environ: Optional[Mapping[str, str]] = None,
    ) -> "MicroreportConfig":
        environ = os.environ if environ is None else environ
        settings: dict[str, str] = {}
        if path is None:
            path = DEFAULT_UREPORT_CONF_FILE
        if Path(path).exists():
            load_conf_file(Path(path), settings)
        else:
            logger.debug("Microreport configuration %s not found", path)

        include_auth = _lookup("IncludeAuthData", settings, environ, UREPORT_ENV_PREFIX)
        items = _lookup("AuthDataItems", settings, environ, UREPORT_ENV_PREFIX) or ""
        email = _lookup("ContactEmail", settings, environ, UREPORT_ENV_PREFIX)

        include = string_to_bool(include_auth) if include_auth is not None else True
        return cls(
            include_auth_data=include,
            auth_data_items=[i.strip() for i in items.split(",") if i.strip()] if include else [],
            contact_email=email or None,
        )
