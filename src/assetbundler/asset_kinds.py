"""Asset kind classification and per-kind import settings."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from enum import Enum
from pathlib import PurePosixPath
from typing import Any, Optional, Union

from .utils import normalize_relative_path


class AssetKind(str, Enum):
    TEXTURE = "texture"
    AUDIO = "audio"
    SHADER = "shader"


EXTENSION_KINDS: dict[str, AssetKind] = {
    ".png": AssetKind.TEXTURE,
    ".jpg": AssetKind.TEXTURE,
    ".jpeg": AssetKind.TEXTURE,
    ".psd": AssetKind.TEXTURE,
    ".wav": AssetKind.AUDIO,
    ".mp3": AssetKind.AUDIO,
    ".ogg": AssetKind.AUDIO,
    ".shader": AssetKind.SHADER,
    "": AssetKind.SHADER,  # compiled shader blobs ship without an extension
}


@dataclass(frozen=True)
class PlatformTextureSettings:
    name: str = "Standalone"
    overridden: bool = True
    format: str = "BC7"
    max_texture_size: int = 4096
    compression: str = "CompressedHQ"


@dataclass(frozen=True)
class TextureSettings:
    texture_type: str = "GUI"
    alpha_is_transparency: bool = True
    alpha_source: str = "FromInput"
    wrap_mode: str = "Clamp"
    aniso_level: int = 1
    filter_mode: str = "Trilinear"
    mipmap_enabled: bool = True
    mipmap_filter: str = "KaiserFilter"
    srgb: bool = True
    platform: PlatformTextureSettings = field(default_factory=PlatformTextureSettings)
    kind: AssetKind = AssetKind.TEXTURE


@dataclass(frozen=True)
class AudioSettings:
    compression_format: str = "Vorbis"
    sample_rate_setting: str = "OptimizeSampleRate"
    load_type: str = "CompressedInMemory"
    quality: float = 0.25
    preload_audio_data: bool = True
    kind: AssetKind = AssetKind.AUDIO


@dataclass(frozen=True)
class ShaderSettings:
    kind: AssetKind = AssetKind.SHADER


AssetSettings = Union[TextureSettings, AudioSettings, ShaderSettings]


def classify(relative_path: str) -> Optional[AssetKind]:
    """Return the asset kind for ``relative_path`` or ``None`` when unknown."""
    suffix = PurePosixPath(normalize_relative_path(relative_path)).suffix.lower()
    return EXTENSION_KINDS.get(suffix)


def _texture_settings(relative_path: str) -> TextureSettings:
    lowered = "/" + normalize_relative_path(relative_path).lower()
    terrain = "/terrain/" in lowered
    normal_map = "_normal" in lowered
    linear = normal_map or "_mask" in lowered
    return TextureSettings(
        texture_type="NormalMap" if normal_map else "GUI",
        wrap_mode="Repeat" if terrain else "Clamp",
        aniso_level=8 if terrain else 1,
        srgb=not linear,
    )


def settings_for(relative_path: str, kind: Optional[AssetKind] = None) -> Optional[AssetSettings]:
    kind = kind or classify(relative_path)
    if kind is AssetKind.TEXTURE:
        return _texture_settings(relative_path)
    if kind is AssetKind.AUDIO:
        return AudioSettings()
    if kind is AssetKind.SHADER:
        return ShaderSettings()
    return None


def settings_payload(settings: AssetSettings) -> dict[str, Any]:
    payload = asdict(settings)
    kind = payload.pop("kind")
    return {"kind": AssetKind(kind).value, "settings": payload}
