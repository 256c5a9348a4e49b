"""Configuration for index synchronisation.

Usage
-----
Create a configuration with defaults:

>>> config = IndexSyncConfig()
>>> config.enabled
True

Or load from environment variables:

>>> import os
>>> os.environ["INDEXSYNC_UPDATE_WITH"] = "update"
>>> IndexSyncConfig.from_env().update_with
<UpdateMode.UPDATE: 'update'>

"""

from __future__ import annotations

import dataclasses as dc
import enum
import os

_TRUE_VALUES = frozenset({"1", "true", "yes", "on"})
_FALSE_VALUES = frozenset({"0", "false", "no", "off"})


class UpdateMode(enum.StrEnum):
    """How an update event writes the current document."""

    INDEX = "index"
    UPDATE = "update"


@dc.dataclass(frozen=True, slots=True)
class IndexSyncConfig:
    """Settings shared by every component of an ``IndexSync`` context.

    Attributes
    ----------
    enabled
        State assumed for a collection that has no explicit enable/disable
        entry in the current execution context. Default is ``True``.
    update_with
        Default write mode for update events when neither the binding nor the
        collection chooses one.
    log_level
        Raw log level handed to :func:`indexsync.logging.configure_logging`.

    """

    enabled: bool = True
    update_with: UpdateMode = UpdateMode.INDEX
    log_level: str = "INFO"

    @staticmethod
    def _parse_bool(env_var: str, *, default: bool) -> bool:
        raw = os.environ.get(env_var, "").strip().lower()
        if not raw:
            return default
        if raw in _TRUE_VALUES:
            return True
        if raw in _FALSE_VALUES:
            return False
        msg = f"{env_var} must be a boolean, got: {raw!r}"
        raise ValueError(msg)

    @staticmethod
    def _parse_update_mode(env_var: str, default: UpdateMode) -> UpdateMode:
        raw = os.environ.get(env_var, "").strip().lower()
        if not raw:
            return default
        try:
            return UpdateMode(raw)
        except ValueError as exc:
            choices = ", ".join(mode.value for mode in UpdateMode)
            msg = f"{env_var} must be one of {choices}, got: {raw!r}"
            raise ValueError(msg) from exc

    @classmethod
    def from_env(cls) -> IndexSyncConfig:
        """Create configuration from environment variables.

        Reads ``INDEXSYNC_ENABLED``, ``INDEXSYNC_UPDATE_WITH`` and
        ``INDEXSYNC_LOG_LEVEL``. Unset or blank variables keep their defaults.

        Raises
        ------
        ValueError
            If ``INDEXSYNC_ENABLED`` is not a boolean or
            ``INDEXSYNC_UPDATE_WITH`` is not a known update mode.

        """
        return cls(
            enabled=cls._parse_bool("INDEXSYNC_ENABLED", default=True),
            update_with=cls._parse_update_mode(
                "INDEXSYNC_UPDATE_WITH", UpdateMode.INDEX
            ),
            log_level=os.environ.get("INDEXSYNC_LOG_LEVEL", "").strip() or "INFO",
        )
