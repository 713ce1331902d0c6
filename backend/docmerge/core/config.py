"""
Process-wide configuration, read once from environment variables.

- SOFFICE_PATH: explicit LibreOffice binary (must exist to be used)
- CONVERT_TIMEOUT_SECONDS: bounded wait for one conversion
- CORS_ALLOW_ORIGINS: comma-separated origins
- LOG_LEVEL, HOST, PORT
"""
from __future__ import annotations

import os
import shutil
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import List, Optional, Sequence

from .errors import MissingEngineError

SOFFICE_CANDIDATES: tuple[str, ...] = (
    r"C:\Program Files\LibreOffice\program\soffice.exe",
    r"C:\Program Files (x86)\LibreOffice\program\soffice.exe",
    "/usr/bin/soffice",
    "/usr/local/bin/soffice",
    "/Applications/LibreOffice.app/Contents/MacOS/soffice",
)

DEFAULT_CORS_ORIGINS: tuple[str, ...] = (
    "http://localhost:5173",
    "http://127.0.0.1:5173",
    "http://localhost:3000",
    "http://127.0.0.1:3000",
)


def _parse_cors_origins(env_value: str | None) -> List[str]:
    """
    Parses comma-separated origins:
      CORS_ALLOW_ORIGINS="http://localhost:5173,http://127.0.0.1:5173"
    Empty/None -> default list.
    """
    if not env_value:
        return list(DEFAULT_CORS_ORIGINS)
    parts = [p.strip() for p in env_value.split(",")]
    return [p for p in parts if p]


def _env_float(name: str, default: float) -> float:
    raw = (os.getenv(name) or "").strip()
    if not raw:
        return default
    try:
        value = float(raw)
    except ValueError as e:
        raise ValueError(f"{name} must be a number, got: {raw!r}") from e
    if value <= 0:
        raise ValueError(f"{name} must be positive, got: {raw!r}")
    return value


def _env_int(name: str, default: int) -> int:
    raw = (os.getenv(name) or "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError as e:
        raise ValueError(f"{name} must be an integer, got: {raw!r}") from e


@dataclass(frozen=True)
class Settings:
    soffice_path: Optional[str] = None
    convert_timeout: float = 120.0
    cors_allow_origins: tuple[str, ...] = DEFAULT_CORS_ORIGINS
    log_level: str = "INFO"
    host: str = "0.0.0.0"
    port: int = 8000

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            soffice_path=(os.getenv("SOFFICE_PATH") or "").strip() or None,
            convert_timeout=_env_float("CONVERT_TIMEOUT_SECONDS", 120.0),
            cors_allow_origins=tuple(_parse_cors_origins(os.getenv("CORS_ALLOW_ORIGINS"))),
            log_level=(os.getenv("LOG_LEVEL") or "INFO").strip().upper(),
            host=(os.getenv("HOST") or "0.0.0.0").strip(),
            port=_env_int("PORT", 8000),
        )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings.from_env()


def resolve_soffice_path(
    override: Optional[str] = None,
    candidates: Sequence[str] = SOFFICE_CANDIDATES,
) -> str:
    """
    Locate the LibreOffice binary.

    Order: explicit override (only if the file exists), the fixed install
    locations, then `soffice` on PATH. Nothing found -> MissingEngineError.
    """
    if override and Path(override).is_file():
        return override

    for candidate in candidates:
        if Path(candidate).is_file():
            return candidate

    on_path = shutil.which("soffice")
    if on_path:
        return on_path

    raise MissingEngineError(
        "LibreOffice (soffice) not found: set SOFFICE_PATH or install LibreOffice"
    )
