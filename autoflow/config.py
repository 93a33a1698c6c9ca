# autoflow/config.py
from __future__ import annotations
import copy, json, os
from typing import Optional

# Field (inches). Origin top-left, +X right, +Y down, heading 0 = +X, positive = clockwise on screen.
FIELD_SIZE_IN = 144.0
TILE_IN       = 24.0

# Preview colors (RGB)
BG_COLOR       = (30, 30, 30)
GRID_COLOR     = (50, 50, 50)
PATH_COLOR     = (100, 180, 255)
WAYPOINT_COLOR = (50, 255, 50)
ROBOT_COLOR    = (252, 3, 248)
ARROW_COLOR    = (255, 255, 255)

CONFIG_FILENAME = "autoflow.json"

DEFAULT_CONFIG = {
    "initial_pose": {
        "x":       {"value": 72.0},
        "y":       {"value": 72.0},
        "heading": {"value": 0.0},
    },
    "robot_physics": {
        "drive_speed_ips":      {"value": 24.0},
        "turn_ms_per_90":       {"value": 800.0},
        "track_width_in":       {"value": 12.0},
        "wheel_diameter_in":    {"value": 4.0},
        "counts_per_motor_rev": {"value": 537.7},
        "gear_reduction":       {"value": 1.0},
    },
    "encoder": {
        "drive_speed": {"value": 0.6},
        "turn_speed":  {"value": 0.5},
        "timeout_s":   {"value": 5.0},
        "settle_ms":   {"value": 250},
    },
    "preview": {
        "use_curves":          {"value": 1},
        "spline_steps":        {"value": 100},
        "linear_steps":        {"value": 20},
        "simplify_epsilon_in": {"value": 2.0},
        "pixels_per_in":       {"value": 4.0},
    },
    "codegen": {
        "style":        {"value": "simple"},
        "project_name": {"value": "Auto"},
        "package":      {"value": "org.firstinspires.ftc.teamcode"},
        "group":        {"value": "Auto"},
    },
}

def _flatten(section: dict) -> dict:
    """Extract 'value' from nested dict structure."""
    flat = {}
    for k, v in section.items():
        flat[k] = v.get("value", v) if isinstance(v, dict) and "value" in v else v
    return flat

def _merge(base: dict, override: dict) -> dict:
    """Recursively overlay override onto a copy of base."""
    out = copy.deepcopy(base)
    for k, v in override.items():
        if isinstance(v, dict) and isinstance(out.get(k), dict) and "value" not in v:
            out[k] = _merge(out[k], v)
        elif isinstance(out.get(k), dict) and "value" in out[k] and not isinstance(v, dict):
            out[k] = {"value": v}
        else:
            out[k] = copy.deepcopy(v)
    return out

def _load_json(path: str) -> Optional[dict]:
    """Load JSON file, return None on failure."""
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, ValueError):
        return None
    return data if isinstance(data, dict) else None

def _save_json(path: str, data: dict) -> None:
    """Save JSON file, creating the parent directory."""
    parent = os.path.dirname(path)
    if parent:
        os.makedirs(parent, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(data, f, indent=2)

def default_config() -> dict:
    return copy.deepcopy(DEFAULT_CONFIG)

def load_config(path: Optional[str] = None) -> dict:
    """Load config from path (or ./autoflow.json), overlaying it on the defaults."""
    candidate = path or os.path.join(os.getcwd(), CONFIG_FILENAME)
    data = _load_json(candidate)
    if data is None:
        return default_config()
    return _merge(DEFAULT_CONFIG, data)

def save_config(cfg: dict, path: Optional[str] = None) -> str:
    """Save config dictionary, returning the path written."""
    target = path or os.path.join(os.getcwd(), CONFIG_FILENAME)
    _save_json(target, cfg)
    return target

def initial_pose_flat(cfg: dict) -> dict:
    """Flatten initial_pose section."""
    return _flatten(cfg.get("initial_pose", DEFAULT_CONFIG["initial_pose"]))

def physics_flat(cfg: dict) -> dict:
    """Flatten robot_physics section."""
    return _flatten(cfg.get("robot_physics", DEFAULT_CONFIG["robot_physics"]))

def encoder_flat(cfg: dict) -> dict:
    """Flatten encoder section."""
    return _flatten(cfg.get("encoder", DEFAULT_CONFIG["encoder"]))

def preview_flat(cfg: dict) -> dict:
    """Flatten preview section."""
    return _flatten(cfg.get("preview", DEFAULT_CONFIG["preview"]))

def codegen_flat(cfg: dict) -> dict:
    """Flatten codegen section."""
    return _flatten(cfg.get("codegen", DEFAULT_CONFIG["codegen"]))
