"""
Typed configuration models matching the YAML config structure.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union


@dataclass
class CameraConfig:
    """Camera configuration."""
    device_id: Union[int, str] = 0
    resolution: List[int] = field(default_factory=lambda: [1280, 720])
    fps: int = 30
    aspect_ratio: Optional[float] = None
    rotate: int = 0
    flip_horizontal: bool = False
    flip_vertical: bool = False
    max_retries: int = 3

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "CameraConfig":
        """Adapter: Create from config dictionary."""
        return cls(
            device_id=d.get("device_id", 0),
            resolution=d.get("resolution", [1280, 720]),
            fps=d.get("fps", 30),
            aspect_ratio=d.get("aspect_ratio"),
            rotate=d.get("rotate", 0) or 0,
            flip_horizontal=d.get("flip_horizontal", False),
            flip_vertical=d.get("flip_vertical", False),
            max_retries=d.get("max_retries", 3),
        )

    def to_dict(self) -> Dict[str, Any]:
        d = {
            "device_id": self.device_id,
            "resolution": self.resolution,
            "fps": self.fps,
            "rotate": self.rotate,
            "flip_horizontal": self.flip_horizontal,
            "flip_vertical": self.flip_vertical,
            "max_retries": self.max_retries,
        }
        if self.aspect_ratio is not None:
            d["aspect_ratio"] = self.aspect_ratio
        return d


@dataclass
class ModelConfig:
    """One detection request: a model file and the label it looks for."""
    model: str = ""
    label: str = ""
    conf_threshold: float = 0.25
    iou_threshold: float = 0.45
    box_scale: float = 1.0

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "ModelConfig":
        return cls(
            model=d.get("model", ""),
            label=d.get("label", ""),
            conf_threshold=d.get("conf_threshold", 0.25),
            iou_threshold=d.get("iou_threshold", 0.45),
            box_scale=d.get("box_scale", 1.0),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "model": self.model,
            "label": self.label,
            "conf_threshold": self.conf_threshold,
            "iou_threshold": self.iou_threshold,
            "box_scale": self.box_scale,
        }


@dataclass
class DetectionConfig:
    """Detection configuration (primary + secondary request)."""
    primary: ModelConfig = field(
        default_factory=lambda: ModelConfig(label="rez", box_scale=0.8)
    )
    secondary: ModelConfig = field(default_factory=lambda: ModelConfig(label="pill"))

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "DetectionConfig":
        primary = {"label": "rez", "box_scale": 0.8}
        primary.update(d.get("primary") or {})
        secondary = {"label": "pill"}
        secondary.update(d.get("secondary") or {})
        return cls(
            primary=ModelConfig.from_dict(primary),
            secondary=ModelConfig.from_dict(secondary),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "primary": self.primary.to_dict(),
            "secondary": self.secondary.to_dict(),
        }


@dataclass
class MarkerConfig:
    """A marker box drawn beside the primary detection."""
    name: str
    width: float
    color: List[int] = field(default_factory=lambda: [0, 255, 0])

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "MarkerConfig":
        return cls(
            name=d["name"],
            width=d["width"],
            color=d.get("color", [0, 255, 0]),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {"name": self.name, "width": self.width, "color": self.color}


def _default_markers() -> List[MarkerConfig]:
    return [
        MarkerConfig(name="green", width=75, color=[0, 255, 0]),
        MarkerConfig(name="yellow", width=50, color=[0, 255, 255]),
    ]


@dataclass
class DisplayConfig:
    """Presentation configuration."""
    enabled: bool = True
    view_width: int = 720
    window_name: str = "DoubleCheck"
    logo_path: Optional[str] = None
    logo_size: int = 100
    markers: List[MarkerConfig] = field(default_factory=_default_markers)

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "DisplayConfig":
        markers = d.get("markers")
        return cls(
            enabled=d.get("enabled", True),
            view_width=d.get("view_width", 720),
            window_name=d.get("window_name", "DoubleCheck"),
            logo_path=d.get("logo_path"),
            logo_size=d.get("logo_size", 100),
            markers=[MarkerConfig.from_dict(m) for m in markers] if markers is not None else _default_markers(),
        )

    def to_dict(self) -> Dict[str, Any]:
        d: Dict[str, Any] = {
            "enabled": self.enabled,
            "view_width": self.view_width,
            "window_name": self.window_name,
            "logo_size": self.logo_size,
            "markers": [m.to_dict() for m in self.markers],
        }
        if self.logo_path is not None:
            d["logo_path"] = self.logo_path
        return d


@dataclass
class Config:
    """
    Complete application configuration.
    
    This is a typed representation of the YAML config structure.
    """
    camera: CameraConfig = field(default_factory=CameraConfig)
    detection: DetectionConfig = field(default_factory=DetectionConfig)
    display: DisplayConfig = field(default_factory=DisplayConfig)
    log_path: str = "logs/doublecheck.log"
    log_level: str = "INFO"

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "Config":
        """Adapter: Create Config from raw dictionary (e.g., from load_config)."""
        return cls(
            camera=CameraConfig.from_dict(d.get("camera", {}) or {}),
            detection=DetectionConfig.from_dict(d.get("detection", {}) or {}),
            display=DisplayConfig.from_dict(d.get("display", {}) or {}),
            log_path=d.get("log_path", "logs/doublecheck.log"),
            log_level=d.get("log_level", "INFO"),
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert back to dictionary (for saving or passing to existing code)."""
        return {
            "camera": self.camera.to_dict(),
            "detection": self.detection.to_dict(),
            "display": self.display.to_dict(),
            "log_path": self.log_path,
            "log_level": self.log_level,
        }
