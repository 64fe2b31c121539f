from __future__ import annotations

import json
import subprocess

import pytest

from assetbundler.build_tool import BUILD_METHOD, BundleRequest, CommandLineBuildTool
from assetbundler.errors import BuildInvocationError, ConfigurationError


@pytest.fixture()
def executable(tmp_path):
    path = tmp_path / "Editor" / "Tool"
    path.parent.mkdir()
    path.write_text("#!/bin/sh\n", encoding="utf-8")
    return path


def test_missing_executable_is_configuration_error(tmp_path) -> None:
    with pytest.raises(ConfigurationError, match="not found"):
        CommandLineBuildTool(tmp_path / "absent", tmp_path)


def test_build_writes_request_and_returns_manifest(tmp_path, executable, monkeypatch) -> None:
    commands: list[list[str]] = []
    scratch = tmp_path / "workspace" / "AssetBundles"

    def fake_run(command, **kwargs):
        commands.append(command)
        (scratch / "AssetBundles.manifest").write_text("manifest", encoding="utf-8")
        return subprocess.CompletedProcess(command, 0, stdout="", stderr="")

    monkeypatch.setattr("assetbundler.build_tool.subprocess.run", fake_run)
    tool = CommandLineBuildTool(executable, tmp_path / "workspace")
    (tmp_path / "workspace").mkdir()

    manifest = tool.build(scratch, [BundleRequest("demo", ("Assets/Data/demo/a.png",))], "lzma", "windows")

    assert manifest == scratch / "AssetBundles.manifest"
    command = commands[0]
    assert command[0] == str(executable)
    assert command[command.index("-buildTarget") + 1] == "StandaloneWindows64"
    assert command[command.index("-executeMethod") + 1] == BUILD_METHOD
    request = json.loads((tmp_path / "workspace" / "build_request.json").read_text(encoding="utf-8"))
    assert request["compression"] == "lzma"
    assert request["bundles"] == [{"name": "demo", "assets": ["Assets/Data/demo/a.png"]}]


def test_build_without_manifest_returns_none(tmp_path, executable, monkeypatch) -> None:
    monkeypatch.setattr(
        "assetbundler.build_tool.subprocess.run",
        lambda command, **kwargs: subprocess.CompletedProcess(command, 0, stdout="", stderr=""),
    )
    (tmp_path / "workspace").mkdir()
    tool = CommandLineBuildTool(executable, tmp_path / "workspace")

    assert tool.build(tmp_path / "workspace" / "AssetBundles", [], "chunk", "linux") is None


def test_nonzero_exit_raises_with_output_tail(tmp_path, executable, monkeypatch) -> None:
    monkeypatch.setattr(
        "assetbundler.build_tool.subprocess.run",
        lambda command, **kwargs: subprocess.CompletedProcess(command, 3, stdout="", stderr="license error\n"),
    )
    tool = CommandLineBuildTool(executable, tmp_path / "workspace")

    with pytest.raises(BuildInvocationError, match="exit code 3: license error"):
        tool.switch_platform("mac")
