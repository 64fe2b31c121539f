from __future__ import annotations

import re
from typing import Optional

PLATFORM_CODES = {
    "windows": "win",
    "mac": "mac",
    "linux": "linux",
}

_TARGET_TOKEN_PATTERN = re.compile(r"_?\[(?:platform|target)\]", re.IGNORECASE)
_VARIABLE_PATTERN = re.compile(r"\[([A-Za-z_\-]+)\]")


def platform_code(target: str) -> str:
    return PLATFORM_CODES.get(target.lower(), target)


def normalize_bundle_name(bundle_name: str) -> str:
    return bundle_name.replace(".", "_")


def default_template(targetless: bool) -> str:
    return "resource_[bundle_name]" if targetless else "resource_[bundle_name]_[platform]"


def render_filename(
    template: Optional[str],
    bundle_name: str,
    target: Optional[str],
    *,
    targetless: bool = False,
) -> str:
    """Render an output filename for one (bundle, target) pair.

    Targetless builds strip every platform/target token, along with the
    underscore in front of it, so they never carry a platform suffix.
    """
    targetless = targetless or target is None
    template = template or default_template(targetless)

    if targetless:
        template = _TARGET_TOKEN_PATTERN.sub("", template)

    normalized = normalize_bundle_name(bundle_name)
    variables = {
        "bundle_name": normalized,
        "bundlename": normalized,
        "bundle-name": normalized,
        "original_bundle_name": bundle_name,
    }
    if not targetless and target is not None:
        code = platform_code(target)
        variables["platform"] = code
        variables["target"] = code

    return _VARIABLE_PATTERN.sub(lambda match: variables.get(match.group(1).lower(), match.group(0)), template)
