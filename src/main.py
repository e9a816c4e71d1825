"""
DoubleCheck: live camera preview with two on-device detection models.

The primary model finds the target item and the preview draws its box plus
two marker boxes beside it. The secondary model finds auxiliary items, draws
all of them and logs their centers into the in-memory frame history.

Usage:
    python src/main.py --config config/config.yaml

Arguments:
    --config: Path to configuration file
    --no-display: Run detection without the preview window
    --log-level: Override the configured log level

Keys (preview window):
    q: quit
    n / p: move the frame history cursor forward / back
"""

import os
import sys
import argparse
import logging
import yaml
from typing import Dict, Any, Tuple, Optional

# Import local modules
from models.config import Config
from ops.logging import setup_logging
from runtime.context import build_runtime_context

VALID_LOG_LEVELS = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """Recursively merge override into base and return base."""
    for k, v in (override or {}).items():
        if isinstance(v, dict) and isinstance(base.get(k), dict):
            _deep_merge(base[k], v)
        else:
            base[k] = v
    return base


def load_config(config_path: str) -> Dict[str, Any]:
    """
    Load configuration with layering:
    - `config/default.yaml` (checked in)
    - `config/config.yaml` (local overrides)
    - plus any explicitly provided `--config` path (treated as overrides)
    """
    try:
        base_path = os.path.join(os.path.dirname(config_path), "default.yaml")
        base_cfg: Dict[str, Any] = {}
        if os.path.exists(base_path):
            with open(base_path, "r") as f:
                base_cfg = yaml.safe_load(f) or {}

        local_overrides_path = os.path.join(os.path.dirname(config_path), "config.yaml")
        local_cfg: Dict[str, Any] = {}
        if os.path.exists(local_overrides_path):
            with open(local_overrides_path, "r") as f:
                local_cfg = yaml.safe_load(f) or {}

        merged = _deep_merge(base_cfg, local_cfg)

        # Finally apply explicit config_path if it's not the local override file itself
        if os.path.exists(config_path) and os.path.abspath(config_path) != os.path.abspath(local_overrides_path):
            with open(config_path, "r") as f:
                explicit_cfg = yaml.safe_load(f) or {}
            merged = _deep_merge(merged, explicit_cfg)

        return merged
    except Exception as e:
        logging.error(f"Failed to load configuration: {e}")
        sys.exit(1)


def _validate_model(name: str, model_cfg: Any) -> Optional[str]:
    if not isinstance(model_cfg, dict):
        return f"detection.{name} must be a mapping"
    if not isinstance(model_cfg.get('model', ''), str):
        return f"detection.{name}.model must be a string path"
    if 'label' in model_cfg and (not isinstance(model_cfg['label'], str) or not model_cfg['label']):
        return f"detection.{name}.label must be a non-empty string"
    for key in ('conf_threshold', 'iou_threshold'):
        if key in model_cfg:
            value = model_cfg[key]
            if not isinstance(value, (int, float)) or not (0 <= value <= 1):
                return f"detection.{name}.{key} must be a number between 0 and 1"
    if 'box_scale' in model_cfg:
        scale = model_cfg['box_scale']
        if not isinstance(scale, (int, float)) or scale <= 0:
            return f"detection.{name}.box_scale must be a positive number"
    return None


def validate_config(config: Dict[str, Any]) -> Tuple[bool, Optional[str]]:
    """
    Validate configuration file structure and values.

    Args:
        config: Configuration dictionary

    Returns:
        Tuple of (is_valid, error_message)
    """
    # Required top-level sections
    required_sections = ['camera', 'detection', 'log_level']
    for section in required_sections:
        if section not in config:
            return False, f"Missing required configuration section: {section}"

    # Validate camera settings
    camera = config.get('camera') or {}
    if 'device_id' not in camera:
        return False, "Missing camera.device_id"
    if isinstance(camera['device_id'], bool) or not isinstance(camera['device_id'], (int, str)):
        return False, "camera.device_id must be an integer (index) or string (file path)"
    if isinstance(camera['device_id'], int) and camera['device_id'] < 0:
        return False, "camera.device_id integer must be non-negative"

    if 'resolution' in camera:
        if not isinstance(camera['resolution'], list) or len(camera['resolution']) != 2:
            return False, "camera.resolution must be a list of [width, height]"
        if not all(isinstance(x, int) and x > 0 for x in camera['resolution']):
            return False, "camera.resolution values must be positive integers"

    if 'fps' in camera:
        if not isinstance(camera['fps'], int) or camera['fps'] <= 0:
            return False, "camera.fps must be a positive integer"

    if camera.get('aspect_ratio') is not None:
        ratio = camera['aspect_ratio']
        if not isinstance(ratio, (int, float)) or ratio <= 0:
            return False, "camera.aspect_ratio must be a positive number"

    if camera.get('rotate', 0) not in (0, 90, 180, 270):
        return False, "camera.rotate must be one of: 0, 90, 180, 270"

    # Validate detection settings
    detection = config.get('detection') or {}
    for name in ('primary', 'secondary'):
        if name not in detection:
            return False, f"Missing detection.{name}"
        error = _validate_model(name, detection[name])
        if error:
            return False, error

    # Optional display settings
    display = config.get('display') or {}
    if 'view_width' in display:
        if not isinstance(display['view_width'], int) or display['view_width'] <= 0:
            return False, "display.view_width must be a positive integer"
    if 'logo_size' in display:
        if not isinstance(display['logo_size'], int) or display['logo_size'] <= 0:
            return False, "display.logo_size must be a positive integer"
    markers = display.get('markers')
    if markers is not None:
        if not isinstance(markers, list):
            return False, "display.markers must be a list"
        names = set()
        for marker in markers:
            if not isinstance(marker, dict) or 'name' not in marker or 'width' not in marker:
                return False, "display.markers entries need a name and a width"
            if not isinstance(marker['width'], (int, float)) or marker['width'] <= 0:
                return False, "display.markers width must be a positive number"
            if marker['name'] in names:
                return False, f"Duplicate marker name: {marker['name']}"
            names.add(marker['name'])

    # Validate log settings
    if config['log_level'] not in VALID_LOG_LEVELS:
        return False, f"log_level must be one of: {', '.join(VALID_LOG_LEVELS)}"

    return True, None


def main():
    """Main application function."""
    # Parse command-line arguments
    parser = argparse.ArgumentParser(description='DoubleCheck - live two-model detection preview')
    parser.add_argument('--config', type=str, default='config/config.yaml',
                        help='Path to configuration file')
    parser.add_argument('--no-display', action='store_true',
                        help='Run without the preview window')
    parser.add_argument('--log-level', type=str, choices=VALID_LOG_LEVELS,
                        help='Override the configured log level')
    args = parser.parse_args()

    # Load configuration
    raw_config = load_config(args.config)
    if args.log_level:
        raw_config['log_level'] = args.log_level

    # Validate configuration
    is_valid, error_msg = validate_config(raw_config)
    if not is_valid:
        logging.error(f"Configuration validation failed: {error_msg}")
        sys.exit(1)

    config = Config.from_dict(raw_config)

    # Setup logging
    setup_logging(config.log_path, config.log_level)

    logging.info("Starting DoubleCheck")

    display = config.display.enabled and not args.no_display
    ctx = build_runtime_context(config, display=display)
    engine = ctx.create_engine()
    engine.run()

    logging.info(
        f"DoubleCheck stopped: {ctx.store.record_count} frame records, "
        f"cursor at {ctx.store.cursor}"
    )


if __name__ == "__main__":
    main()
