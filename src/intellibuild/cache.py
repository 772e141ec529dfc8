# cache.py
from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr, ValidationError, field_serializer

from .classifier import DEFAULT_PROJECT_EXTENSION, DEFAULT_SOURCE_EXTENSION
from .errors import CacheNotFound
from .model import CompilerSyntax, ScanCandidates

# ---------------------------------------------------------------------
# Core idea
# ---------------------------------------------------------------------
# One JSON document at the repository root holds everything a run needs
# from the previous run:
#   - project_file_map: project path -> source names it references
#   - last_setup_run:   when the environment bootstrap last ran
#   - tuning knobs (workers, extensions, compiler syntax, ...)
#
# Fields this version does not know about are kept on load and written back
# on save, so older and newer tool versions can share one file.
# Known fields holding values this version cannot read (a newer compiler
# syntax, say) fall back to defaults for the run and are written back raw.
# ---------------------------------------------------------------------

CONF_FILE_NAME = "intellibuild.json"
DEFAULT_SETUP_INTERVAL_HOURS = 4.0


class RunConfig(BaseModel):
    """Persisted per-repository state and tuning parameters."""

    model_config = ConfigDict(extra="allow", validate_assignment=True)

    project_file_map: Dict[str, List[str]] = Field(default_factory=dict)
    # ISO-8601 on disk; epoch seconds from older files are accepted on load
    last_setup_run: Optional[datetime] = None

    workers: Optional[int] = Field(default=None, ge=1)
    source_extension: str = DEFAULT_SOURCE_EXTENSION
    project_extension: str = DEFAULT_PROJECT_EXTENSION
    setup_script: Optional[str] = None
    setup_interval_hours: float = Field(default=DEFAULT_SETUP_INTERVAL_HOURS, gt=0)
    compiler: CompilerSyntax = CompilerSyntax.MSBUILD
    compiler_command: List[str] = Field(default_factory=list)  # used with compiler="custom"
    scan_candidates: ScanCandidates = ScanCandidates.CHANGED

    _unparsed: Dict[str, Any] = PrivateAttr(default_factory=dict)

    @property
    def unparsed(self) -> Dict[str, Any]:
        """Raw values of known fields that failed validation on load."""
        return self._unparsed

    @field_serializer("last_setup_run")
    def _serialize_timestamp(self, value: Optional[datetime]) -> Optional[str]:
        if value is None:
            return None
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc).isoformat()


def _salvage(data: Dict[str, Any], error: ValidationError) -> Tuple[Optional[RunConfig], Dict[str, Any]]:
    """
    Validate `data` again without the top-level fields named in `error`.

    Returns the config (None if it still fails) and the dropped raw values.
    A broken dependency map is dropped but never kept for write-back.
    """
    bad_keys = {err["loc"][0] for err in error.errors() if err["loc"]}
    dropped = {k: data[k] for k in bad_keys if k in data}
    kept = {k: v for k, v in data.items() if k not in dropped}
    try:
        conf = RunConfig.model_validate(kept)
    except ValidationError:
        return None, dropped
    conf._unparsed = {k: v for k, v in dropped.items() if k != "project_file_map"}
    return conf, dropped


def config_path(repo_root: str | Path) -> Path:
    return Path(repo_root) / CONF_FILE_NAME


class CacheStore:
    """
    File-based store for RunConfig:
      <repo_root>/intellibuild.json
    """

    def __init__(self, repo_root: str | Path):
        self.root = Path(repo_root).resolve()

    @property
    def path(self) -> Path:
        return config_path(self.root)

    def load(self) -> RunConfig:
        """
        Read the persisted config.

        Raises CacheNotFound when the file is missing, unreadable or not JSON, or
        when its dependency map does not validate. Callers treat all of these as
        "no cache". Other invalid fields fall back to their defaults and end up
        in `unparsed`.
        """
        try:
            raw = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            raise CacheNotFound(details={"path": str(self.path), "reason": "missing"})
        except OSError as e:
            raise CacheNotFound(details={"path": str(self.path), "reason": str(e)})

        try:
            data = json.loads(raw)
        except json.JSONDecodeError as e:
            raise CacheNotFound(details={"path": str(self.path), "reason": f"invalid json: {e}"})

        if not isinstance(data, dict):
            raise CacheNotFound(details={"path": str(self.path), "reason": "not a json object"})

        try:
            return RunConfig.model_validate(data)
        except ValidationError as e:
            conf, bad = _salvage(data, e)
            if conf is None or "project_file_map" in bad:
                raise CacheNotFound(
                    details={"path": str(self.path), "reason": f"invalid schema: {e}"},
                    salvaged=conf,
                )
            return conf

    def save(self, conf: RunConfig) -> Path:
        """
        Write the config atomically (tmp file, then rename).

        Values kept in `conf.unparsed` are written back as they were read,
        unless the field was assigned since. OSError propagates; the runner
        reports it without failing the build.
        """
        payload = conf.model_dump(mode="json")
        for key, raw in conf.unparsed.items():
            if key not in conf.model_fields_set:
                payload[key] = raw
        text = json.dumps(payload, sort_keys=True, indent=2, ensure_ascii=False)

        tmp = self.path.with_suffix(".json.tmp")
        try:
            tmp.write_text(text + "\n", encoding="utf-8")
            tmp.replace(self.path)
        finally:
            if tmp.exists():
                tmp.unlink(missing_ok=True)
        return self.path
