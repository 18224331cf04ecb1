#!/usr/bin/env python3
"""
Transfer Invoice Service - Configuration Management
Filesystem locations and converter settings, injected into every component.
"""

import os
import shutil
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional


def _env(name: str, default: str = "") -> str:
    value = os.getenv(name)
    return value if value is not None and value != "" else default


def _default_soffice() -> str:
    return shutil.which("soffice") or "soffice"


@dataclass
class ServiceConfig:
    """Main configuration container"""
    assets_dir: Path = field(default_factory=lambda: Path.cwd() / "assets")
    tmp_dir: Path = field(default_factory=lambda: Path.cwd() / "tmp")
    template_name: str = "Invoice.xlsx"
    sheet_name: str = "Invoice"
    soffice_path: str = field(default_factory=_default_soffice)
    settle_delay: float = 0.5
    conversion_timeout: Optional[float] = None
    cors_origins: List[str] = field(default_factory=list)

    def __post_init__(self):
        """Normalize paths and validate numeric settings"""
        self.assets_dir = Path(self.assets_dir)
        self.tmp_dir = Path(self.tmp_dir)
        if self.settle_delay < 0:
            raise ValueError(f"settle_delay must be non-negative, got {self.settle_delay}")
        if self.conversion_timeout is not None and self.conversion_timeout <= 0:
            raise ValueError(f"conversion_timeout must be positive, got {self.conversion_timeout}")

    @property
    def template_path(self) -> Path:
        return self.assets_dir / self.template_name

    def ensure_directories(self) -> "ServiceConfig":
        """Create the assets and tmp directories if they do not exist yet."""
        self.assets_dir.mkdir(parents=True, exist_ok=True)
        self.tmp_dir.mkdir(parents=True, exist_ok=True)
        return self

    @classmethod
    def from_env(cls) -> "ServiceConfig":
        """
        Build a configuration from INVOICE_* environment variables.

        Unset variables fall back to the dataclass defaults.
        """
        kwargs = {}
        if _env("INVOICE_ASSETS_DIR"):
            kwargs["assets_dir"] = Path(_env("INVOICE_ASSETS_DIR"))
        if _env("INVOICE_TMP_DIR"):
            kwargs["tmp_dir"] = Path(_env("INVOICE_TMP_DIR"))
        if _env("INVOICE_SOFFICE_PATH"):
            kwargs["soffice_path"] = _env("INVOICE_SOFFICE_PATH")
        if _env("INVOICE_SETTLE_DELAY"):
            kwargs["settle_delay"] = float(_env("INVOICE_SETTLE_DELAY"))
        if _env("INVOICE_CONVERSION_TIMEOUT"):
            kwargs["conversion_timeout"] = float(_env("INVOICE_CONVERSION_TIMEOUT"))
        kwargs["cors_origins"] = [o.strip() for o in _env("INVOICE_CORS_ORIGINS").split(",") if o.strip()]
        return cls(**kwargs)
