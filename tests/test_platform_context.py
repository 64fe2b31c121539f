from __future__ import annotations

from assetbundler.platform_context import PlatformContext, detect_current_platform


def test_detect_current_platform_maps_sys_platform(monkeypatch) -> None:
    monkeypatch.setattr("assetbundler.platform_context.sys.platform", "darwin")
    assert detect_current_platform() == "mac"
    monkeypatch.setattr("assetbundler.platform_context.sys.platform", "win32")
    assert detect_current_platform() == "windows"
    monkeypatch.setattr("assetbundler.platform_context.sys.platform", "linux")
    assert detect_current_platform() == "linux"


def test_switch_only_when_target_differs() -> None:
    calls: list[str] = []
    context = PlatformContext(calls.append, current="linux")

    assert context.ensure("linux") is False
    assert context.ensure("windows") is True
    assert context.ensure("windows") is False
    assert context.ensure(None) is False

    assert calls == ["windows"]
    assert context.current == "windows"
    assert context.switch_count == 1
