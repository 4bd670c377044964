"""Configuration management using Pydantic Settings."""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Session settings loaded from environment variables.

    Components never read a global instance; a ``Settings`` object is
    handed to each of them explicitly.
    """

    model_config = SettingsConfigDict(
        env_prefix="LINKNODE_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Record resolution
    not_set: str = Field(
        default="[notset]",
        description="Sentinel value for a blank or missing field"
    )
    typed_delimiter: str = Field(
        default="|",
        description="Separator between field name and value for typed entities"
    )
    multi_value_delimiter: str = ","

    # Rendering surface
    surface_width: int = 800
    surface_height: int = 600

    # Coordinate transform
    zoom_base: float = 1.5
    fit_padding: float = Field(
        default=0.05,
        description="Fraction of the bounding box added on each axis by zoom-to-fit"
    )
    fit_epsilon: float = Field(
        default=1.0,
        description="Expansion applied to a degenerate (zero width/height) bounding box"
    )
    geo_min_x: float = -180.0
    geo_max_x: float = 180.0
    geo_min_y: float = -90.0
    geo_max_y: float = 90.0

    # World positions
    world_init_min: float = 0.0
    world_init_max: float = 1.0
    random_seed: int | None = Field(
        default=None,
        description="Seed for initial world positions (None = nondeterministic)"
    )

    # Node / link geometry (pixels)
    node_min_px: float = 3.0
    node_max_px: float = 20.0
    node_fixed_px: float = 5.0
    link_min_px: float = 1.0
    link_max_px: float = 8.0
    label_max_chars: int = 24

    # Colors
    default_node_color: str = "#c0c0c0"
    default_link_color: str = "#808080"
    multi_color: str = "#ffffff"
    no_color_bin: str = "[nocolor]"

    # Interaction
    recent_relationships: int = 20

    # Batch layout preview
    layout_workers: int = Field(
        default=4,
        description="Size of the worker pool computing candidate layouts"
    )
    layout_iterations: int = 50

    # API Configuration
    api_host: str = "0.0.0.0"
    api_port: int = 8000
    api_debug: bool = False


def get_dev_settings() -> Settings:
    """Get development environment settings."""
    return Settings(api_debug=True)


def get_test_settings() -> Settings:
    """Get test environment settings.

    Deterministic world positions and a small worker pool.
    """
    return Settings(
        random_seed=42,
        layout_workers=2,
        layout_iterations=10,
    )


# Default instance for entry points (API, scripts)
settings = Settings()
