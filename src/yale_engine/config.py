# src/yale_engine/config.py
"""Configuration for yale storage instances.

Two layers, mirroring how the engine is used:

- :class:`StorageOptions` is the native, frozen configuration object handed to
  :class:`yale_engine.yale_core.YaleStorage` and the structure operations.
- :class:`YaleEngineSettings` is the pydantic-facing model used for YAML
  settings files; :func:`load_settings` reads one and ``to_options()``
  translates it into StorageOptions.

Notes:
    - Settings files may carry unrelated keys; the model allows and ignores
      unknown fields (``extra="allow"``).
    - A settings file may either be the mapping itself or nest it under a
      top-level ``yale_engine:`` key.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Final

from pydantic import BaseModel, ConfigDict, Field, ValidationError
from ruamel.yaml import YAML
from ruamel.yaml.error import YAMLError

from .dtypes import ElementType
from .errors import EngineSettingsError

GROWTH_FACTOR: Final[float] = 1.5

_GROWTH_FACTOR_ERROR = "growth_factor must be a finite float > 1; got {value}"
_SETTINGS_READ_ERROR = "Could not read yale_engine settings from {path}: {detail}"
_SETTINGS_MAPPING_ERROR = "yale_engine settings must be a mapping; got {typ}"
_SETTINGS_INVALID_ERROR = "Invalid yale_engine settings: {detail}"
_SETTINGS_SECTION: Final[str] = "yale_engine"


@dataclass(slots=True, frozen=True)
class StorageOptions:
    """Behavioral options for a yale storage instance.

    Attributes:
        growth_factor: Multiplicative capacity growth applied when an insertion
            does not fit. Must be > 1 so repeated single inserts are amortized
            O(1).
        strict: If True, recoverable input problems (duplicate coordinates in
            a legacy import) raise; otherwise they warn and are repaired.
        warn_on_clamp: If True, a CapacityClampWarning is emitted whenever a
            requested capacity exceeds the maximum and is clamped.
        default_element_type: Element type used by create() and YaleStorage
            when none is given, and by the import functions for inputs that
            carry no dtype of their own (plain Python sequences).
    """

    growth_factor: float = GROWTH_FACTOR
    strict: bool = True
    warn_on_clamp: bool = False
    default_element_type: ElementType = ElementType.FLOAT64

    def __post_init__(self) -> None:
        """Validate option values.

        Raises:
            ValueError: If growth_factor is not a finite float > 1, or
                default_element_type is not an ElementType value.
        """
        factor = float(self.growth_factor)
        if not math.isfinite(factor) or factor <= 1.0:
            raise ValueError(_GROWTH_FACTOR_ERROR.format(value=self.growth_factor))
        # Accept plain strings such as "int32".
        object.__setattr__(
            self, "default_element_type", ElementType(self.default_element_type)
        )


DEFAULT_OPTIONS: Final[StorageOptions] = StorageOptions()


class YaleEngineSettings(BaseModel):
    """Settings schema for yale_engine as read from YAML.

    This model mirrors StorageOptions with YAML-friendly defaults.
    """

    model_config = ConfigDict(extra="allow")

    growth_factor: float = Field(
        default=GROWTH_FACTOR,
        gt=1.0,
        description="Capacity growth factor applied on resize",
    )
    strict: bool = Field(
        default=True,
        description="Raise instead of warn on repairable input problems",
    )
    warn_on_clamp: bool = Field(
        default=False,
        description="Warn when a requested capacity is clamped to the maximum",
    )
    default_element_type: ElementType = Field(
        default=ElementType.FLOAT64,
        description="Element type used when none is given",
    )

    def to_options(self) -> StorageOptions:
        """Convert these settings to native StorageOptions.

        Returns:
            Fully constructed StorageOptions instance.
        """
        return StorageOptions(
            growth_factor=self.growth_factor,
            strict=self.strict,
            warn_on_clamp=self.warn_on_clamp,
            default_element_type=self.default_element_type,
        )


def load_settings(path: str | Path) -> YaleEngineSettings:
    """Load and validate yale_engine settings from a YAML file.

    Args:
        path: Path to the YAML file.

    Raises:
        EngineSettingsError: If the file cannot be read or parsed, is not a
            mapping, or fails validation.

    Returns:
        Validated YaleEngineSettings.
    """
    settings_path = Path(path)
    yaml = YAML(typ="safe")
    try:
        with settings_path.open(encoding="utf-8") as handle:
            raw: Any = yaml.load(handle)
    except (OSError, YAMLError) as exc:
        msg = _SETTINGS_READ_ERROR.format(path=settings_path, detail=exc)
        raise EngineSettingsError(msg) from exc

    if raw is None:
        raw = {}
    if not isinstance(raw, dict):
        raise EngineSettingsError(
            _SETTINGS_MAPPING_ERROR.format(typ=type(raw).__name__)
        )
    section = raw.get(_SETTINGS_SECTION, raw)
    if not isinstance(section, dict):
        raise EngineSettingsError(
            _SETTINGS_MAPPING_ERROR.format(typ=type(section).__name__)
        )

    try:
        return YaleEngineSettings.model_validate(section)
    except ValidationError as exc:
        raise EngineSettingsError(_SETTINGS_INVALID_ERROR.format(detail=exc)) from exc
