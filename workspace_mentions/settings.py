"""Settings manager for mention-loading limits in settings.yaml files.

Manages three-scope settings system:
- User global (~/.workspace-mentions/settings.yaml)
- Project (.workspace-mentions/settings.yaml)
- Local (.workspace-mentions/settings.local.yaml)

Limits live under the ``mentions:`` section, e.g.::

    mentions:
      max_mentioned_files: 4
      max_total_context_chars: 30000
"""

import logging
from pathlib import Path
from typing import Any

import yaml

from .lib.mention_loading.models import MentionLimits

logger = logging.getLogger(__name__)

SETTINGS_DIR_NAME = ".workspace-mentions"
MENTIONS_SECTION = "mentions"


class MentionSettings:
    """Reads mention limits across user/project/local scopes."""

    def __init__(self, settings_dir: Path | None = None, user_settings_dir: Path | None = None):
        """Initialize settings manager with standard paths.

        Args:
            settings_dir: Base directory for project/local settings (for testing).
                          If None, uses .workspace-mentions in current directory.
            user_settings_dir: Base directory for user settings (for testing).
                          If None, uses ~/.workspace-mentions.
        """
        if settings_dir is None:
            settings_dir = Path(SETTINGS_DIR_NAME)
        if user_settings_dir is None:
            user_settings_dir = Path.home() / SETTINGS_DIR_NAME

        self.user_settings_file = user_settings_dir / "settings.yaml"
        self.project_settings_file = settings_dir / "settings.yaml"
        self.local_settings_file = settings_dir / "settings.local.yaml"

    def _scopes(self) -> list[tuple[str, Path]]:
        # Merge order: later overrides earlier
        return [
            ("user", self.user_settings_file),
            ("project", self.project_settings_file),
            ("local", self.local_settings_file),
        ]

    def get_merged_settings(self) -> dict[str, Any]:
        """Get merged settings from all scopes.

        Merge order (later overrides earlier):
        1. User settings
        2. Project settings
        3. Local settings

        Returns:
            Merged settings dictionary
        """
        merged: dict[str, Any] = {}
        for _, path in self._scopes():
            settings = self._read_settings(path)
            if settings:
                merged = self._deep_merge(merged, settings)
        return merged

    def get_limits(self) -> MentionLimits:
        """Build MentionLimits from the merged ``mentions:`` section.

        Returns:
            Limits with unset fields at their defaults

        Raises:
            pydantic.ValidationError: If a configured value is invalid or unknown
        """
        section = self.get_merged_settings().get(MENTIONS_SECTION) or {}
        if not isinstance(section, dict):
            logger.warning(f"Ignoring non-mapping '{MENTIONS_SECTION}' settings section")
            return MentionLimits()
        return MentionLimits.model_validate(section)

    def get_limit_sources(self) -> dict[str, str]:
        """Report which scope supplied each limit ("default" if none did)."""
        sources = dict.fromkeys(MentionLimits.model_fields, "default")
        for scope, path in self._scopes():
            settings = self._read_settings(path) or {}
            section = settings.get(MENTIONS_SECTION)
            if not isinstance(section, dict):
                continue
            for key in section:
                if key in sources:
                    sources[key] = scope
        return sources

    def set_limit(self, name: str, value: int, scope: str = "local") -> None:
        """Persist a single limit in the given scope.

        Args:
            name: MentionLimits field name
            value: New value
            scope: "user", "project" or "local"
        """
        if name not in MentionLimits.model_fields:
            raise ValueError(f"Unknown mention limit: {name}")
        # Validate before writing so a bad value never reaches disk
        MentionLimits.model_validate({name: value})

        path = dict(self._scopes()).get(scope)
        if path is None:
            raise ValueError(f"Unknown settings scope: {scope}")

        self._update_settings(path, {MENTIONS_SECTION: {name: value}})
        logger.info(f"Set {name}={value} in {scope} settings")

    def _read_settings(self, path: Path) -> dict[str, Any] | None:
        """Read settings from YAML file.

        Args:
            path: Path to settings file

        Returns:
            Settings dict or None if file doesn't exist or can't be parsed
        """
        if not path.exists():
            return None

        try:
            with open(path, encoding="utf-8") as f:
                data = yaml.safe_load(f)
        except (OSError, yaml.YAMLError) as e:
            logger.warning(f"Failed to read settings from {path}: {e}")
            return None

        if data is None:
            return {}
        if not isinstance(data, dict):
            logger.warning(f"Ignoring settings file without a top-level mapping: {path}")
            return None
        return data

    def _write_settings(self, path: Path, settings: dict[str, Any]) -> None:
        """Write settings to YAML file.

        Args:
            path: Path to settings file
            settings: Settings dictionary
        """
        path.parent.mkdir(parents=True, exist_ok=True)

        try:
            with open(path, "w", encoding="utf-8") as f:
                yaml.dump(settings, f, default_flow_style=False, sort_keys=False)
        except OSError as e:
            logger.error(f"Failed to write settings to {path}: {e}")
            raise

    def _update_settings(self, path: Path, updates: dict[str, Any]) -> None:
        existing = self._read_settings(path) or {}
        merged = self._deep_merge(existing, updates)
        self._write_settings(path, merged)

    def _deep_merge(self, base: dict[str, Any], overlay: dict[str, Any]) -> dict[str, Any]:
        """Deep merge two dictionaries.

        Args:
            base: Base dictionary
            overlay: Overlay dictionary (takes precedence)

        Returns:
            Merged dictionary
        """
        result = base.copy()

        for key, value in overlay.items():
            if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                result[key] = self._deep_merge(result[key], value)
            else:
                result[key] = value

        return result
