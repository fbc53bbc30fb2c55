from __future__ import annotations

import dataclasses
import json
import logging
import os
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from .log import logger

DEFAULT_CONFIG_FILE = "mojibake_audit.json"

DEFAULT_IGNORED_DIRS = frozenset(
    {
        ".bzr",  # Bazaar
        ".git",  # Git
        ".hg",  # Mercurial
        ".pc",  # quilt
        ".svn",  # Subversion
        "CVS",
        "RCS",
        "SCCS",
        "_darcs",
        "_sgbak",  # Vault/Fortress
    }
)

DEFAULT_EXTENSIONS = frozenset({".pl", ".pm", ".pod", ".psgi", ".t"})

DEFAULT_SHEBANG_MARKERS = ("perl",)

VALIDATOR_CHOICES = ("auto", "codec", "reference")


@dataclass(frozen=True)
class AuditConfig:
    """Process-wide, read-only audit settings.

    Built once at startup and passed explicitly to discovery and the app.
    """

    ignored_dirs: frozenset[str] = DEFAULT_IGNORED_DIRS
    extensions: frozenset[str] = DEFAULT_EXTENSIONS
    shebang_markers: tuple[str, ...] = DEFAULT_SHEBANG_MARKERS
    gate_env: str = ""
    workers: int = 4
    validator: str = "auto"
    log_level: int = logging.INFO

    def __post_init__(self) -> None:
        if self.workers < 1:
            raise ValueError(f"workers must be at least 1, got {self.workers}")
        if self.validator not in VALIDATOR_CHOICES:
            raise ValueError(f"Unsupported validator: {self.validator}")

    @classmethod
    def defaults_dict(cls) -> dict[str, Any]:
        return {
            "ignored_dirs": sorted(DEFAULT_IGNORED_DIRS),
            "extensions": sorted(DEFAULT_EXTENSIONS),
            "shebang_markers": list(DEFAULT_SHEBANG_MARKERS),
            "gate_env": "",
            "workers": 4,
            "validator": "auto",
            "logging": {
                "level": "INFO",
            },
        }

    @classmethod
    def load(cls, path: Path | None = None) -> AuditConfig:
        """Load config from a JSON file merged onto the defaults.

        Without `path`, `mojibake_audit.json` in the working directory is used
        when present. Broken files are reported and ignored.
        """
        cfg_file = path if path is not None else Path.cwd() / DEFAULT_CONFIG_FILE
        loaded: dict[str, Any] = {}
        if cfg_file.exists():
            try:
                with cfg_file.open("r", encoding="utf-8-sig") as f:
                    data = json.load(f)
                if isinstance(data, dict):
                    loaded = data
                else:
                    logger.warning(
                        "[config] %s: expected a JSON object, using defaults",
                        cfg_file,
                    )
            except (OSError, ValueError) as exc:
                logger.warning("[config] failed to read %s: %s", cfg_file, exc)
        elif path is not None:
            logger.warning("[config] %s not found, using defaults", cfg_file)

        return cls.from_dict(loaded)

    @classmethod
    def from_dict(cls, incoming: Mapping[str, Any]) -> AuditConfig:
        """Build a config from `incoming` merged onto the defaults."""
        raw = cls._merge_dict(cls.defaults_dict(), dict(incoming))
        logging_cfg = raw.get("logging", {})
        if not isinstance(logging_cfg, Mapping):
            logging_cfg = {}
        validator = str(raw.get("validator", "auto")).strip().lower()
        if validator not in VALIDATOR_CHOICES:
            logger.warning("[config] unknown validator %r, using auto", validator)
            validator = "auto"
        return cls(
            ignored_dirs=frozenset(cls._to_str_list(raw.get("ignored_dirs"))),
            extensions=frozenset(
                cls._normalize_ext(ext)
                for ext in cls._to_str_list(raw.get("extensions"))
            ),
            shebang_markers=tuple(cls._to_str_list(raw.get("shebang_markers"))),
            gate_env=str(raw.get("gate_env") or "").strip(),
            workers=cls._to_int(raw.get("workers"), default=4, minimum=1),
            validator=validator,
            log_level=cls._parse_log_level(logging_cfg.get("level", "INFO")),
        )

    def with_overrides(self, **changes: Any) -> AuditConfig:
        """Return a copy with the non-None `changes` applied."""
        applied = {k: v for k, v in changes.items() if v is not None}
        return dataclasses.replace(self, **applied)

    def is_gated(self, environ: Mapping[str, str] | None = None) -> bool:
        """Whether the release gate is closed, i.e. checking must be skipped."""
        if not self.gate_env:
            return False
        env = os.environ if environ is None else environ
        value = str(env.get(self.gate_env, "")).strip()
        return value in ("", "0")

    @property
    def gate_reason(self) -> str:
        return f"these tests are for release testing, set {self.gate_env}=1 to run"

    @staticmethod
    def _merge_dict(base: dict[str, Any], incoming: dict[str, Any]) -> dict[str, Any]:
        merged: dict[str, Any] = dict(base)
        for key, value in incoming.items():
            if (
                key in merged
                and isinstance(merged[key], dict)
                and isinstance(value, dict)
            ):
                merged[key] = AuditConfig._merge_dict(merged[key], value)
            else:
                merged[key] = value
        return merged

    @staticmethod
    def _to_str_list(value: Any) -> list[str]:
        if isinstance(value, str):
            value = [value]
        if not isinstance(value, Iterable):
            return []
        return [str(item).strip() for item in value if str(item).strip()]

    @staticmethod
    def _normalize_ext(value: str) -> str:
        ext = value.lower()
        return ext if ext.startswith(".") else f".{ext}"

    @staticmethod
    def _parse_log_level(value: Any) -> int:
        text = str(value).strip().upper()
        if not text:
            return logging.INFO
        return logging._nameToLevel.get(text, logging.INFO)

    @staticmethod
    def _to_int(value: Any, *, default: int, minimum: int | None = None) -> int:
        try:
            parsed = int(value)
        except (TypeError, ValueError):
            parsed = default
        if minimum is not None and parsed < minimum:
            return default
        return parsed
