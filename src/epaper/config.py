"""Application configuration: settings schema and config.yaml loader"""

import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field


CONFIG_FILE = "config.yaml"
ENV_PREFIX = "EPAPER_"


class Settings(BaseModel):
    app_name:           str   = "epaper"
    db_url:             str   = "sqlite:///epaper.db"
    storage_dir:        str   = Field(default="storage", description="Object store root directory")
    public_url:         str   = Field(default="",        description="Base URL for stored objects; empty yields file URIs")
    output_dir:         str   = Field(default="dist",    description="Directory for previews and downloaded PDFs")
    article_limit:      int   = Field(default=30, ge=5, le=100, description="Max articles per edition")
    max_category_pages: int   = Field(default=4,  ge=1,  description="Max category pages after the front page")
    raster_scale:       int   = Field(default=2,  ge=2,  description="Oversampling factor for page snapshots")
    jpeg_quality:       int   = Field(default=95, ge=1, le=100, description="JPEG quality of embedded pages")
    locale:             str   = Field(default="bn", pattern="^(bn|en)$", description="bn or en")
    font_path:          str   = Field(default="",   description="TTF font for rasterizing; empty picks an installed Bengali-capable font")
    image_timeout:      float = Field(default=10.0, gt=0, description="Seconds to wait for a remote image")
    thumbnail:          bool  = Field(default=True, description="Upload a front-page thumbnail on publish")
    duplicate_policy:   str   = Field(default="reject", pattern="^(reject|allow)$", description="Same-date publish handling")
    fallback_to_latest: bool  = Field(default=False, description="Use latest articles when the day has none")
    log_level:          str   = "INFO"


def load_config(overrides: dict[str, Any] = None) -> Settings:
    """Load Settings from config.yaml, then EPAPER_<FIELD> env vars, then non-None CLI overrides."""
    data: dict[str, Any] = {}
    if Path(CONFIG_FILE).exists():
        try:
            data = yaml.safe_load(Path(CONFIG_FILE).read_text()) or {}
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid {CONFIG_FILE}: {e}") from e

    for name in Settings.model_fields:
        if val := os.getenv(f"{ENV_PREFIX}{name.upper()}"):
            data[name] = val

    if overrides:
        data.update({k: v for k, v in overrides.items() if v is not None})
    return Settings(**data)
