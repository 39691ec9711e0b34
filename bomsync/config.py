"""Sync configuration.

A single SyncConfig is built once and passed to every component's
constructor. This module is the only place that reads the environment.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Tuple, Union

from dotenv import load_dotenv


def _env_float(name: str, default: float) -> float:
    value = os.getenv(name)
    return float(value) if value not in (None, "") else default


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    return int(value) if value not in (None, "") else default


@dataclass(frozen=True)
class SyncConfig:
    """Settings shared by the reconciliation components.

    Args:
        create_delay_seconds: Fixed pause between consecutive line creates
        delete_delay_seconds: Fixed pause between consecutive line deletes
        verify_attempts: Polls made when verifying a newly created entity
        verify_initial_delay_seconds: First verification delay, doubled per retry
        side_channel_attribute: Line attribute whose presence triggers sending
            the attribute payload with a line create
        attribute_columns: Extra sheet columns copied into BOMLine.attributes
        indent_unit: Indentation applied per level when writing rows back
        actor: Name recorded on history events
        history_db_url: Postgres DSN for the history store (None = in memory)
        log_level: Logging level name used by scripts
    """
    create_delay_seconds: float = 0.15
    delete_delay_seconds: float = 0.0
    verify_attempts: int = 3
    verify_initial_delay_seconds: float = 0.5
    side_channel_attribute: str = "rack_position"
    attribute_columns: Tuple[str, ...] = field(default_factory=tuple)
    indent_unit: str = "  "
    actor: str = "bomsync"
    history_db_url: Optional[str] = None
    log_level: str = "INFO"

    @classmethod
    def from_env(cls, env_file: Optional[Union[str, Path]] = None) -> "SyncConfig":
        """Build a config from environment variables, loading a .env file first."""
        if env_file is not None:
            load_dotenv(env_file)
        else:
            load_dotenv()

        columns = os.getenv("BOMSYNC_ATTRIBUTE_COLUMNS", "")
        config = cls(
            create_delay_seconds=_env_float("BOMSYNC_CREATE_DELAY", 0.15),
            delete_delay_seconds=_env_float("BOMSYNC_DELETE_DELAY", 0.0),
            verify_attempts=_env_int("BOMSYNC_VERIFY_ATTEMPTS", 3),
            verify_initial_delay_seconds=_env_float("BOMSYNC_VERIFY_DELAY", 0.5),
            side_channel_attribute=os.getenv("BOMSYNC_SIDE_CHANNEL_ATTRIBUTE", "rack_position"),
            attribute_columns=tuple(c.strip() for c in columns.split(",") if c.strip()),
            indent_unit=os.getenv("BOMSYNC_INDENT", "  "),
            actor=os.getenv("BOMSYNC_ACTOR", "bomsync"),
            history_db_url=os.getenv("BOMSYNC_HISTORY_DB_URL") or None,
            log_level=os.getenv("LOG_LEVEL", "INFO"),
        )
        config.validate()
        return config

    def validate(self) -> bool:
        """Ensure every setting is usable."""
        problems: List[str] = []
        if self.create_delay_seconds < 0:
            problems.append("create_delay_seconds must be >= 0")
        if self.delete_delay_seconds < 0:
            problems.append("delete_delay_seconds must be >= 0")
        if self.verify_attempts < 1:
            problems.append("verify_attempts must be >= 1")
        if self.verify_initial_delay_seconds < 0:
            problems.append("verify_initial_delay_seconds must be >= 0")
        if not self.actor:
            problems.append("actor must not be empty")

        if problems:
            raise ValueError(f"Invalid sync configuration: {'; '.join(problems)}")

        return True
