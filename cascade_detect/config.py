"""
Configuration management for the cascade detection pipeline.

Provides a layered configuration system with the following precedence
(highest to lowest):

    CLI arguments > Environment variables > YAML config file > Defaults

Design constraints:
    - The system MUST run with zero configuration (safe defaults only).
    - Missing or invalid values fail early and loudly.
    - No detection logic, I/O, or model loading belongs here.

Non-goals:
    - No dynamic reloading.
    - No database-backed or remote configuration.
"""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Tuple

import yaml

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Project root resolution
# ---------------------------------------------------------------------------
# Resolved relative to this file's location: cascade_detect/config.py → repo root
_PROJECT_ROOT = Path(__file__).resolve().parent.parent


def get_project_root() -> Path:
    """Return the resolved project root directory."""
    return _PROJECT_ROOT


# ---------------------------------------------------------------------------
# Configuration dataclasses
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ModelConfig:
    """Classifier resources and backend preference.

    Attributes:
        face_cascade: Face cascade resource name or path. Relative names
                      are looked up in the project root, then in the
                      cascades bundled with OpenCV.
        eye_cascade: Eye cascade resource name or path.
        backend: Backend preference — 'auto', 'cpu' or 'cuda'.
    """

    face_cascade: str = "haarcascade_frontalface_alt.xml"
    eye_cascade: str = "haarcascade_eye.xml"
    backend: str = "auto"


@dataclass(frozen=True)
class CascadeParams:
    """Multi-scale detection parameters for one object class.

    Attributes:
        scale_factor: Step between successive pyramid scales (> 1.0).
        min_neighbors: Minimum grouped raw windows to accept a detection.
        min_size: Smallest (width, height) window scanned. (0, 0) uses
                  the classifier's trained minimum.
    """

    scale_factor: float = 1.1
    min_neighbors: int = 10
    min_size: Tuple[int, int] = (20, 20)


@dataclass(frozen=True)
class DetectionConfig:
    """Detection parameters for faces and for eyes within faces."""

    face: CascadeParams = field(default_factory=CascadeParams)
    eye: CascadeParams = field(default_factory=CascadeParams)


@dataclass(frozen=True)
class PreprocessConfig:
    """Preprocessing applied to the intensity image before detection.

    Attributes:
        equalize_hist: Apply histogram equalization. Applied on both the
                       CPU and GPU paths.
    """

    equalize_hist: bool = True


@dataclass(frozen=True)
class InputConfig:
    """Input source configuration.

    Attributes:
        source: Path to an image file or a directory of images.
    """

    source: str = "lena.jpg"


@dataclass(frozen=True)
class OutputConfig:
    """Output behavior configuration.

    Attributes:
        mode: Output mode(s). Supports multiple comma-separated values:
              'display', 'save_image', 'save_json', 'save_csv'.
              Example: "display,save_json"
        save_path: Directory where output artifacts are written.
    """

    mode: str = "display"
    save_path: str = "output/"


@dataclass(frozen=True)
class VisualizationConfig:
    """Visualization rendering parameters.

    Attributes:
        face_color: BGR color for face rectangles.
        eye_color: BGR color for eye rectangles.
        thickness: Line thickness in pixels.
    """

    face_color: Tuple[int, int, int] = (255, 0, 0)
    eye_color: Tuple[int, int, int] = (0, 0, 255)
    thickness: int = 2


@dataclass(frozen=True)
class AppConfig:
    """Top-level application configuration.

    Aggregates all sub-configurations into a single, frozen object.
    """

    model: ModelConfig = field(default_factory=ModelConfig)
    detection: DetectionConfig = field(default_factory=DetectionConfig)
    preprocess: PreprocessConfig = field(default_factory=PreprocessConfig)
    input: InputConfig = field(default_factory=InputConfig)
    output: OutputConfig = field(default_factory=OutputConfig)
    visualization: VisualizationConfig = field(default_factory=VisualizationConfig)


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------

_VALID_BACKENDS = {"auto", "cpu", "cuda"}
_VALID_OUTPUT_MODES = {"display", "save_image", "save_json", "save_csv"}


def _validate_cascade_params(name: str, params: CascadeParams) -> None:
    if params.scale_factor <= 1.0:
        raise ValueError(
            f"detection.{name}.scale_factor must be greater than 1.0, "
            f"got {params.scale_factor}."
        )

    if params.min_neighbors < 0:
        raise ValueError(
            f"detection.{name}.min_neighbors must be non-negative, "
            f"got {params.min_neighbors}."
        )

    if len(params.min_size) != 2 or any(d < 0 for d in params.min_size):
        raise ValueError(
            f"detection.{name}.min_size must be a non-negative (width, height) "
            f"pair, got {params.min_size}."
        )


def validate_config(config: AppConfig) -> None:
    """Validate configuration values. Raises ValueError on invalid state."""

    if config.model.backend not in _VALID_BACKENDS:
        raise ValueError(
            f"Invalid model.backend: '{config.model.backend}'. "
            f"Must be one of {_VALID_BACKENDS}."
        )

    if not config.model.face_cascade or not config.model.eye_cascade:
        raise ValueError("model.face_cascade and model.eye_cascade must be set.")

    # Validate each mode in comma-separated list
    modes = set(m.strip() for m in config.output.mode.split(','))
    invalid_modes = modes - _VALID_OUTPUT_MODES
    if invalid_modes:
        raise ValueError(
            f"Invalid output.mode(s): {invalid_modes}. "
            f"Valid modes: {_VALID_OUTPUT_MODES}. "
            f"Use comma-separated values for multiple outputs."
        )

    _validate_cascade_params("face", config.detection.face)
    _validate_cascade_params("eye", config.detection.eye)

    if config.visualization.thickness <= 0:
        raise ValueError(
            f"visualization.thickness must be positive, "
            f"got {config.visualization.thickness}."
        )


# ---------------------------------------------------------------------------
# YAML loading
# ---------------------------------------------------------------------------

def _parse_tuple(value, expected_len: int, cast_type=float):
    """Convert a list from YAML into a tuple of the expected type and length."""
    if isinstance(value, (list, tuple)):
        if len(value) != expected_len:
            raise ValueError(
                f"Expected {expected_len} values, got {len(value)}: {value}"
            )
        return tuple(cast_type(v) for v in value)
    return value


def _parse_bool(value) -> bool:
    """Interpret YAML booleans and env-var strings alike."""
    if isinstance(value, str):
        return value.strip().lower() in ("1", "true", "yes", "on")
    return bool(value)


def _build_model_config(raw: dict) -> ModelConfig:
    """Build ModelConfig from a raw YAML dict."""
    kwargs = {}
    if "face_cascade" in raw:
        kwargs["face_cascade"] = str(raw["face_cascade"])
    if "eye_cascade" in raw:
        kwargs["eye_cascade"] = str(raw["eye_cascade"])
    if "backend" in raw:
        kwargs["backend"] = str(raw["backend"]).lower()
    return ModelConfig(**kwargs)


def _build_cascade_params(raw: dict) -> CascadeParams:
    kwargs = {}
    if "scale_factor" in raw:
        kwargs["scale_factor"] = float(raw["scale_factor"])
    if "min_neighbors" in raw:
        kwargs["min_neighbors"] = int(raw["min_neighbors"])
    if "min_size" in raw:
        kwargs["min_size"] = _parse_tuple(raw["min_size"], 2, int)
    return CascadeParams(**kwargs)


def _build_detection_config(raw: dict) -> DetectionConfig:
    """Build DetectionConfig from a raw YAML dict."""
    return DetectionConfig(
        face=_build_cascade_params(raw.get("face") or {}),
        eye=_build_cascade_params(raw.get("eye") or {}),
    )


def _build_preprocess_config(raw: dict) -> PreprocessConfig:
    kwargs = {}
    if "equalize_hist" in raw:
        kwargs["equalize_hist"] = _parse_bool(raw["equalize_hist"])
    return PreprocessConfig(**kwargs)


def _build_input_config(raw: dict) -> InputConfig:
    """Build InputConfig from a raw YAML dict."""
    kwargs = {}
    if "source" in raw:
        kwargs["source"] = str(raw["source"])
    return InputConfig(**kwargs)


def _build_output_config(raw: dict) -> OutputConfig:
    """Build OutputConfig from a raw YAML dict."""
    kwargs = {}
    if "mode" in raw:
        kwargs["mode"] = str(raw["mode"]).lower()
    if "save_path" in raw:
        kwargs["save_path"] = str(raw["save_path"])
    return OutputConfig(**kwargs)


def _build_visualization_config(raw: dict) -> VisualizationConfig:
    """Build VisualizationConfig from a raw YAML dict."""
    kwargs = {}
    if "face_color" in raw:
        kwargs["face_color"] = _parse_tuple(raw["face_color"], 3, int)
    if "eye_color" in raw:
        kwargs["eye_color"] = _parse_tuple(raw["eye_color"], 3, int)
    if "thickness" in raw:
        kwargs["thickness"] = int(raw["thickness"])
    return VisualizationConfig(**kwargs)


# ---------------------------------------------------------------------------
# Environment variable overrides
# ---------------------------------------------------------------------------

_ENV_PREFIX = "CASCADE_DETECT_"


def _apply_env_overrides(raw: dict) -> dict:
    """Apply environment variable overrides to the raw config dict.

    Environment variables follow the pattern:
        CASCADE_DETECT_MODEL_BACKEND=cuda
        CASCADE_DETECT_DETECTION_FACE_MIN_NEIGHBORS=5

    Each variable maps to a fixed path in the nested config dict.
    """
    env_map = {
        f"{_ENV_PREFIX}MODEL_BACKEND": ("model", "backend"),
        f"{_ENV_PREFIX}MODEL_FACE_CASCADE": ("model", "face_cascade"),
        f"{_ENV_PREFIX}MODEL_EYE_CASCADE": ("model", "eye_cascade"),
        f"{_ENV_PREFIX}DETECTION_FACE_SCALE_FACTOR": ("detection", "face", "scale_factor"),
        f"{_ENV_PREFIX}DETECTION_FACE_MIN_NEIGHBORS": ("detection", "face", "min_neighbors"),
        f"{_ENV_PREFIX}DETECTION_EYE_SCALE_FACTOR": ("detection", "eye", "scale_factor"),
        f"{_ENV_PREFIX}DETECTION_EYE_MIN_NEIGHBORS": ("detection", "eye", "min_neighbors"),
        f"{_ENV_PREFIX}PREPROCESS_EQUALIZE_HIST": ("preprocess", "equalize_hist"),
        f"{_ENV_PREFIX}INPUT_SOURCE": ("input", "source"),
        f"{_ENV_PREFIX}OUTPUT_MODE": ("output", "mode"),
        f"{_ENV_PREFIX}OUTPUT_SAVE_PATH": ("output", "save_path"),
    }

    for env_var, path in env_map.items():
        value = os.environ.get(env_var)
        if value is not None:
            node = raw
            for key in path[:-1]:
                node = node.setdefault(key, {})
            node[path[-1]] = value
            logger.debug("Config override from env: %s=%s", env_var, value)

    return raw


# ---------------------------------------------------------------------------
# Public loader
# ---------------------------------------------------------------------------

def load_config(config_path: Optional[str] = None) -> AppConfig:
    """Load and validate application configuration.

    Precedence (highest → lowest):
        Environment variables > YAML file > Hard-coded defaults

    Args:
        config_path: Path to a YAML configuration file. If None,
                     the system runs entirely on defaults (safe for
                     programmatic usage).

    Returns:
        A validated, frozen AppConfig instance.

    Raises:
        FileNotFoundError: If config_path is provided but does not exist.
        ValueError: If any configuration value is invalid.
        yaml.YAMLError: If the YAML file is malformed.
    """
    raw: dict = {}

    # --- Layer 1: YAML file ---
    if config_path is not None:
        resolved = Path(config_path)
        if not resolved.is_absolute():
            resolved = _PROJECT_ROOT / resolved

        if not resolved.is_file():
            raise FileNotFoundError(
                f"Configuration file not found: {resolved}. "
                f"Provide a valid path or omit to use defaults."
            )

        logger.info("Loading config from: %s", resolved)
        with open(resolved, "r", encoding="utf-8") as f:
            raw = yaml.safe_load(f) or {}

    # --- Layer 2: Environment variable overrides ---
    raw = _apply_env_overrides(raw)

    # --- Build typed configs ---
    config = AppConfig(
        model=_build_model_config(raw.get("model") or {}),
        detection=_build_detection_config(raw.get("detection") or {}),
        preprocess=_build_preprocess_config(raw.get("preprocess") or {}),
        input=_build_input_config(raw.get("input") or {}),
        output=_build_output_config(raw.get("output") or {}),
        visualization=_build_visualization_config(raw.get("visualization") or {}),
    )

    # --- Validate ---
    validate_config(config)

    logger.debug("Configuration loaded: %s", config)
    return config
