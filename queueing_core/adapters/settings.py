"""Queueing Core Settings - Whitelisted Adapter Settings.

Copyright (c) 2024-2026 BlackRoad OS, Inc. All rights reserved.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Sequence

from queueing_core.errors import ValidationError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SettingDefinition:
    """A setting an adapter accepts.

    Attributes:
        setting: Setting key
        type: "string" or "number"
        allowed_values: Suggested values shown to operators
        description: Human readable description
    """

    setting: str
    type: str = "string"
    allowed_values: Sequence[Any] = ()
    description: str = ""

    def __post_init__(self):
        if self.type not in ("string", "number"):
            raise ValueError(f"Unsupported setting type: {self.type}")

    def coerce(self, value: Any) -> Any:
        """Convert a submitted value to this setting's type."""
        if self.type == "string":
            return str(value)
        if isinstance(value, bool):
            raise ValidationError(f"Setting {self.setting} must be a number")
        if isinstance(value, (int, float)):
            return value
        try:
            text = str(value).strip()
            return int(text) if text.lstrip("-").isdigit() else float(text)
        except ValueError as e:
            raise ValidationError(
                f"Setting {self.setting} must be a number, got {value!r}"
            ) from e

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "setting": self.setting,
            "type": self.type,
            "allowed_values": list(self.allowed_values),
        }
        if self.description:
            data["description"] = self.description
        return data


@dataclass
class AdapterSettings:
    """Declarative settings list plus current values.

    Only keys declared in ``definitions`` can ever be saved. Unknown keys are
    ignored without error.
    """

    description: str
    definitions: List[SettingDefinition] = field(default_factory=list)
    values: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        self._lock = threading.RLock()

    def get(self, setting: str, default: Any = None) -> Any:
        with self._lock:
            return self.values.get(setting, default)

    def keys(self) -> List[str]:
        return [d.setting for d in self.definitions]

    def to_dict(self) -> Dict[str, Any]:
        """Settings document: description, list and current values."""
        with self._lock:
            data: Dict[str, Any] = {
                "description": self.description,
                "list": [d.to_dict() for d in self.definitions],
            }
            data.update(self.values)
            return data

    def save(self, submitted: Optional[Mapping[str, Any]]) -> Dict[str, Any]:
        """Apply whitelisted, non-null values.

        Values are validated first and applied together, so a bad value
        leaves every setting unchanged.

        Returns:
            The settings that were applied
        """
        if not submitted:
            return {}

        changes: Dict[str, Any] = {}
        for definition in self.definitions:
            value = submitted.get(definition.setting)
            if value is not None:
                changes[definition.setting] = definition.coerce(value)

        ignored = set(submitted) - set(self.keys())
        if ignored:
            logger.debug(f"Ignoring unknown settings: {sorted(ignored)}")

        with self._lock:
            self.values.update(changes)

        for setting, value in changes.items():
            logger.info(f"{setting} changed to: {value}")
        return changes


__all__ = ["SettingDefinition", "AdapterSettings"]
