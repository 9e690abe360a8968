"""Follow-up sequence and tracker configuration."""

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Optional
from datetime import datetime

from ..storage.models import Platform
from .scheduler import DEFAULT_FOLLOW_UP_HOUR, DEFAULT_SEQUENCE, validate_hour, validate_sequence

logger = logging.getLogger(__name__)


def config_dir() -> Path:
    """Directory holding the config file and default database."""
    return Path.home() / ".outreach-tracker"


@dataclass
class OutreachConfig:
    """Tunable settings for the tracker."""

    sequence: Dict[int, Platform] = field(default_factory=lambda: dict(DEFAULT_SEQUENCE))
    follow_up_hour: int = DEFAULT_FOLLOW_UP_HOUR
    default_profile: str = "main"
    db_path: Path = field(default_factory=lambda: config_dir() / "leads.db")
    updated_at: datetime = field(default_factory=datetime.now)

    @property
    def max_attempts(self) -> int:
        return len(self.sequence)


class ConfigManager:
    """Manage and persist tracker configuration."""

    def __init__(self, config_path: Optional[Path] = None):
        """Initialize config manager."""
        self.config_path = config_path or config_dir() / "config.json"
        self.config = self._load_config()

    def _load_config(self) -> OutreachConfig:
        """Load configuration from file."""
        if self.config_path.exists():
            try:
                with open(self.config_path, 'r') as f:
                    data = json.load(f)
                sequence = data.get("sequence")
                return OutreachConfig(
                    sequence=validate_sequence(
                        {int(slot): Platform(name) for slot, name in sequence.items()}
                    ) if sequence else dict(DEFAULT_SEQUENCE),
                    follow_up_hour=validate_hour(data.get("follow_up_hour", DEFAULT_FOLLOW_UP_HOUR)),
                    default_profile=data.get("default_profile", "main"),
                    db_path=Path(data["db_path"]) if data.get("db_path") else config_dir() / "leads.db",
                )
            except (OSError, ValueError, AttributeError) as e:
                logger.error(f"Error loading config from {self.config_path}: {e}")

        return OutreachConfig()

    def save_config(self):
        """Save configuration to file."""
        self.config_path.parent.mkdir(parents=True, exist_ok=True)
        data = {
            "sequence": {str(slot): p.value for slot, p in self.config.sequence.items()},
            "follow_up_hour": self.config.follow_up_hour,
            "default_profile": self.config.default_profile,
            "db_path": str(self.config.db_path),
            "updated_at": self.config.updated_at.isoformat(),
        }
        with open(self.config_path, 'w') as f:
            json.dump(data, f, indent=2)

    def set_sequence(self, sequence: Dict[int, Platform]):
        """Replace the follow-up sequence."""
        self.config.sequence = validate_sequence(sequence)
        self.config.updated_at = datetime.now()
        self.save_config()

    def set_follow_up_hour(self, hour: int):
        """Set the hour of day follow-ups become due."""
        self.config.follow_up_hour = validate_hour(hour)
        self.config.updated_at = datetime.now()
        self.save_config()

    def set_default_profile(self, profile: str):
        """Set the profile used when none is given."""
        self.config.default_profile = profile
        self.config.updated_at = datetime.now()
        self.save_config()
