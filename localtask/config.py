"""
Task configuration.
Values come from constructor arguments, from LOCALTASK_* environment
variables, or from CLI flags layered on top of the environment.
"""

import os
from dataclasses import dataclass, replace
from typing import Optional

from localtask.errors import ConfigurationError


@dataclass(frozen=True)
class TaskConfig:
    """Spill and combine settings for a single local task"""
    sort_mb: float = 100
    spill_percent: float = 0.80
    spill_records: Optional[int] = None
    min_spills_for_combine: int = 3
    temp_dir: Optional[str] = None
    task_id: str = "local"

    @property
    def spill_bytes(self) -> int:
        """Buffered bytes that trigger a spill."""
        return int(self.sort_mb * 1024 * 1024 * self.spill_percent)

    def validate(self):
        """
        Check the configuration before any record is processed

        Raises:
            ConfigurationError: If any value is out of range
        """
        if self.sort_mb <= 0:
            raise ConfigurationError(f"sort_mb must be positive, got {self.sort_mb}")
        if not 0 < self.spill_percent <= 1:
            raise ConfigurationError(
                f"spill_percent must be in (0, 1], got {self.spill_percent}")
        if self.spill_records is not None and self.spill_records <= 0:
            raise ConfigurationError(
                f"spill_records must be positive, got {self.spill_records}")
        if self.min_spills_for_combine < 0:
            raise ConfigurationError(
                f"min_spills_for_combine cannot be negative, got {self.min_spills_for_combine}")
        if self.temp_dir is not None and not os.path.isdir(self.temp_dir):
            raise ConfigurationError(f"temp_dir does not exist: {self.temp_dir}")
        return self

    def with_overrides(self, **overrides) -> "TaskConfig":
        """Copy of this config with every non-None override applied."""
        return replace(self, **{k: v for k, v in overrides.items() if v is not None})

    @classmethod
    def from_env(cls) -> "TaskConfig":
        """Build a config from LOCALTASK_* environment variables."""
        try:
            spill_records = os.getenv('LOCALTASK_SPILL_RECORDS')
            return cls(
                sort_mb=float(os.getenv('LOCALTASK_SORT_MB', cls.sort_mb)),
                spill_percent=float(os.getenv('LOCALTASK_SPILL_PERCENT', cls.spill_percent)),
                spill_records=int(spill_records) if spill_records else None,
                min_spills_for_combine=int(
                    os.getenv('LOCALTASK_MIN_SPILLS_FOR_COMBINE', cls.min_spills_for_combine)),
                temp_dir=os.getenv('LOCALTASK_TEMP_DIR') or None,
                task_id=os.getenv('LOCALTASK_TASK_ID', cls.task_id),
            )
        except ValueError as e:
            raise ConfigurationError(f"Invalid LOCALTASK_* environment value: {e}") from e
