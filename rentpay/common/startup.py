"""Log the effective runtime configuration once at startup, with secrets masked."""

import os

from sqlalchemy.engine import make_url
from sqlalchemy.exc import ArgumentError

from rentpay.common.logging import logger

SECRET_MARKERS = ("KEY", "SECRET", "PASSWORD", "TOKEN")


def _mask_url_password(value: str) -> str:
    try:
        return make_url(value).render_as_string(hide_password=True)
    except ArgumentError:
        return "<redacted>"


def redacted_env(name: str) -> str:
    """Env value as safe to log: secret-named keys hidden, URL passwords masked."""

    value = os.getenv(name)
    if value is None:
        return "<unset>"
    if any(marker in name for marker in SECRET_MARKERS):
        return "<redacted>"
    if name.endswith("_URL") and "@" in value:
        return _mask_url_password(value)
    return value


def log_startup_config(service_name: str, keys: list[str]) -> None:
    config = {"service": service_name, **{key: redacted_env(key) for key in keys}}
    logger.info("startup_config=%s", config)
