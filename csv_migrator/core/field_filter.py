"""
Field filter policy.

Applies a swappable, versioned filtering and transformation policy to raw CSV
records before they reach the destination store. The policy is an immutable
value (``FieldFilterConfig``); ``FieldFilterProvider`` re-reads it from a JSON
file on a fixed cadence so it can change without restarting the worker.

Dependencies: pydantic, csv_migrator.core.exceptions
System role: Record transformer plugged into the chunked batch processor
"""

import json
import logging
import os
import tempfile
import threading
import time
from datetime import datetime
from pathlib import Path
from typing import Any, Callable

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from csv_migrator.core.exceptions import FieldFilterConfigError, RecordValidationError

logger = logging.getLogger(__name__)

Record = dict[str, Any]
RecordFilter = Callable[[Record], bool]
RecordTransformer = Callable[[Record], Record | None]


def _iso_date(value: Any) -> Any:
    if not value:
        return value
    text = str(value).strip()
    for fmt in ("%Y-%m-%d", "%m/%d/%Y", "%d.%m.%Y", "%Y/%m/%d"):
        try:
            return datetime.strptime(text, fmt).date().isoformat()
        except ValueError:
            continue
    try:
        return datetime.fromisoformat(text).isoformat()
    except ValueError:
        logger.warning("Invalid date value left unchanged: %s", text)
        return value


def _boolean(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in {"true", "1", "yes", "y", "active"}
    return bool(value)


def _number(cast: Callable[[str], Any]) -> Callable[[Any], Any]:
    def convert(value: Any) -> Any:
        if value is None or value == "":
            return value
        try:
            return cast(str(value).strip())
        except ValueError:
            return value

    return convert


TRANSFORMS: dict[str, Callable[[Any], Any]] = {
    "lower": lambda v: v.lower() if isinstance(v, str) else v,
    "upper": lambda v: v.upper() if isinstance(v, str) else v,
    "strip": lambda v: v.strip() if isinstance(v, str) else v,
    "lower_strip": lambda v: v.lower().strip() if isinstance(v, str) else v,
    "digits": lambda v: "".join(ch for ch in v if ch.isdigit()) if isinstance(v, str) else v,
    "phone": lambda v: "".join(ch for ch in v if ch.isdigit() or ch == "+") if isinstance(v, str) else v,
    "iso_date": _iso_date,
    "boolean": _boolean,
    "int": _number(int),
    "float": _number(float),
}


class MissingFieldHandling(BaseModel):
    """How empty or absent values are projected."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    include_empty_values: bool = Field(default=True, alias="includeEmptyValues")
    default_value: Any = Field(default=None, alias="defaultValue")


class FieldFilterConfig(BaseModel):
    """
    Immutable field filter policy.

    Accepts both snake_case keys and the camelCase keys used by existing
    policy files.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    include_fields: tuple[str, ...] = Field(default=(), alias="includeFields")
    exclude_fields: tuple[str, ...] = Field(default=(), alias="excludeFields")
    rename_fields: dict[str, str] = Field(default_factory=dict, alias="renameFields")
    transform_fields: dict[str, str] = Field(default_factory=dict, alias="transformFields")
    record_filter: dict[str, tuple[str, ...]] = Field(default_factory=dict, alias="recordFilter")
    missing_field_handling: MissingFieldHandling = Field(
        default_factory=MissingFieldHandling,
        alias="missingFieldHandling",
    )
    required_fields: tuple[str, ...] = Field(default=(), alias="requiredFields")
    fail_on_missing_required_fields: bool = Field(
        default=False,
        alias="failOnMissingRequiredFields",
    )

    @field_validator("include_fields", "exclude_fields", "required_fields", mode="before")
    @classmethod
    def _none_as_empty_list(cls, value: Any) -> Any:
        return () if value is None else value

    @field_validator("rename_fields", "transform_fields", "record_filter", mode="before")
    @classmethod
    def _none_as_empty_mapping(cls, value: Any) -> Any:
        return {} if value is None else value

    @field_validator("transform_fields")
    @classmethod
    def _known_transforms(cls, value: dict[str, str]) -> dict[str, str]:
        unknown = sorted({name for name in value.values() if name not in TRANSFORMS})
        if unknown:
            raise ValueError(
                f"Unknown transforms: {', '.join(unknown)} (available: {', '.join(sorted(TRANSFORMS))})"
            )
        return value


def _is_empty(value: Any) -> bool:
    return value is None or value == ""


def _passes_declarative_filter(record: Record, rules: dict[str, tuple[str, ...]]) -> bool:
    for field, allowed in rules.items():
        value = record.get(field)
        if value is None or str(value) not in allowed:
            return False
    return True


def _project(record: Record, field: str, handling: MissingFieldHandling, result: Record) -> None:
    if field in record:
        value = record[field]
        if handling.include_empty_values or not _is_empty(value):
            result[field] = value
            return
    if handling.default_value is not None:
        result[field] = handling.default_value


def apply_field_filter(
    record: Record,
    config: FieldFilterConfig,
    record_filter: RecordFilter | None = None,
) -> Record | None:
    """
    Apply the policy to a single record.

    Order: record gate, required-field check, rename, transform, projection.

    Args:
        record: Raw CSV record (not modified)
        config: Policy snapshot
        record_filter: Optional programmatic gate, takes precedence over the
            declarative ``record_filter`` rules of the config

    Returns:
        Record | None: Filtered record, or None when the record is excluded

    Raises:
        RecordValidationError: Required fields missing and the policy fails hard
    """
    if record_filter is not None:
        if not record_filter(record):
            return None
    elif config.record_filter and not _passes_declarative_filter(record, config.record_filter):
        return None

    if config.required_fields:
        missing = [f for f in config.required_fields if _is_empty(record.get(f))]
        if missing:
            if config.fail_on_missing_required_fields:
                raise RecordValidationError(missing)
            return None

    filtered = dict(record)

    for old_name, new_name in config.rename_fields.items():
        if old_name in filtered:
            filtered[new_name] = filtered.pop(old_name)

    for field, transform_name in config.transform_fields.items():
        if field in filtered:
            filtered[field] = TRANSFORMS[transform_name](filtered[field])

    result: Record = {}
    handling = config.missing_field_handling
    if config.include_fields:
        for field in config.include_fields:
            _project(filtered, field, handling, result)
    else:
        excluded = set(config.exclude_fields)
        for field in filtered:
            if field not in excluded:
                _project(filtered, field, handling, result)
    return result


def make_transformer(
    config: FieldFilterConfig,
    record_filter: RecordFilter | None = None,
) -> RecordTransformer:
    """Bind a policy snapshot into a ``record -> record | None`` function."""

    def transform(record: Record) -> Record | None:
        return apply_field_filter(record, config, record_filter)

    return transform


def load_field_filter_config(path: str | Path) -> FieldFilterConfig:
    """
    Read and validate a policy file.

    Raises:
        FileNotFoundError: The file does not exist
        FieldFilterConfigError: The file is not valid JSON or fails validation
    """
    raw = Path(path).read_text(encoding="utf-8")
    try:
        return FieldFilterConfig.model_validate(json.loads(raw))
    except (json.JSONDecodeError, ValidationError) as e:
        raise FieldFilterConfigError(str(path), str(e)) from e


class FieldFilterProvider:
    """
    Hot-reloading source of ``FieldFilterConfig`` snapshots.

    ``snapshot()`` is cheap; at most once per ``refresh_interval`` it checks
    the file's mtime and re-reads it when it changed. A malformed file leaves
    the last good snapshot in place. A missing file means the pass-through
    default policy.
    """

    def __init__(
        self,
        config_path: str | Path,
        refresh_interval: float = 5.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.config_path = Path(config_path)
        self.refresh_interval = refresh_interval
        self._clock = clock
        self._lock = threading.Lock()
        self._config = FieldFilterConfig()
        self._mtime: float | None = None
        self._last_check: float | None = None
        self.reload()

    def snapshot(self) -> FieldFilterConfig:
        """Return the current policy, refreshing it first when due."""
        now = self._clock()
        if self._last_check is None or now - self._last_check >= self.refresh_interval:
            self.reload()
        return self._config

    def reload(self) -> FieldFilterConfig:
        """Re-read the policy file if its mtime changed since the last read."""
        with self._lock:
            self._last_check = self._clock()
            try:
                mtime = self.config_path.stat().st_mtime
            except FileNotFoundError:
                if self._mtime is not None:
                    logger.info("Field filter config removed, using defaults: %s", self.config_path)
                self._config = FieldFilterConfig()
                self._mtime = None
                return self._config

            if mtime == self._mtime:
                return self._config

            try:
                self._config = load_field_filter_config(self.config_path)
                self._mtime = mtime
                logger.info("Field filter config loaded from %s", self.config_path)
            except FileNotFoundError:
                self._config = FieldFilterConfig()
                self._mtime = None
            except FieldFilterConfigError as e:
                # Remember the mtime so a broken file is not re-parsed every check.
                self._mtime = mtime
                logger.error("Keeping previous field filter config: %s", e)
            return self._config

    def save(self, config: FieldFilterConfig) -> FieldFilterConfig:
        """
        Persist a new policy and make it current immediately.

        Writes to a temporary file and renames it over the target so readers
        never observe a partial file.
        """
        payload = json.dumps(config.model_dump(by_alias=True, mode="json"), indent=2)
        self.config_path.parent.mkdir(parents=True, exist_ok=True)
        with self._lock:
            fd, tmp_path = tempfile.mkstemp(dir=self.config_path.parent, suffix=".tmp")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as fh:
                    fh.write(payload)
                os.replace(tmp_path, self.config_path)
            except OSError:
                Path(tmp_path).unlink(missing_ok=True)
                raise
            self._config = config
            self._mtime = self.config_path.stat().st_mtime
            self._last_check = self._clock()
        logger.info("Field filter config saved to %s", self.config_path)
        return config
