from __future__ import annotations

import logging

import pytest
from rich.logging import RichHandler

from assetbundler.logging_utils import (
    LogBlockBuilder,
    configure_logging,
    render_fields_block,
    render_section_block,
)


@pytest.fixture(autouse=True)
def _restore_root_logger():
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    yield
    for handler in list(root.handlers):
        if handler not in handlers:
            handler.close()
        root.removeHandler(handler)
    for handler in handlers:
        root.addHandler(handler)
    root.setLevel(level)


class TestRenderBlocks:
    def test_fields_block_has_title_underline_and_aligned_labels(self) -> None:
        block = render_fields_block("Staged Bundle", {"Bundle": "demo", "Selected": 3}, pad_top=False)
        lines = block.splitlines()
        assert lines[0] == "Staged Bundle"
        assert lines[1] == "-" * len("Staged Bundle")
        assert lines[2].strip().startswith("Bundle")
        assert lines[2].index(":") == lines[3].index(":")

    def test_pad_top_adds_leading_blank_line(self) -> None:
        assert render_fields_block("Title", {"A": 1}).startswith("\n")

    def test_long_values_wrap(self) -> None:
        builder = LogBlockBuilder("Wrap", wrap_width=60, pad_top=False)
        builder.add_fields({"Error": "word " * 40})
        assert len(builder.render().splitlines()) > 3

    def test_sequences_are_joined(self) -> None:
        block = render_fields_block("Targets", {"Targets": ["windows", "mac"]}, pad_top=False)
        assert "windows, mac" in block

    def test_section_block_lists_items_and_empty_label(self) -> None:
        block = render_section_block(
            "Run Recap",
            [("Succeeded", ["one", "two"]), ("Failed", [])],
            fields={"Bundles": 2},
            pad_top=False,
        )
        assert "Succeeded:" in block
        assert "one" in block
        assert "(none)" in block


class TestConfigureLogging:
    def test_plain_console_handler(self, monkeypatch) -> None:
        monkeypatch.setenv("PLAIN_CONSOLE_LOGS", "1")
        monkeypatch.delenv("CONSOLE_LEVEL", raising=False)

        configure_logging(logging.DEBUG)

        root = logging.getLogger()
        assert len(root.handlers) == 1
        assert not isinstance(root.handlers[0], RichHandler)
        assert root.level == logging.DEBUG

    def test_forced_rich_handler(self, monkeypatch) -> None:
        monkeypatch.delenv("PLAIN_CONSOLE_LOGS", raising=False)
        monkeypatch.setenv("RICH_CONSOLE_LOGS", "true")

        configure_logging(logging.INFO)

        assert isinstance(logging.getLogger().handlers[0], RichHandler)

    def test_file_handler_uses_log_level_env(self, tmp_path, monkeypatch) -> None:
        monkeypatch.setenv("PLAIN_CONSOLE_LOGS", "1")
        monkeypatch.setenv("LOG_LEVEL", "WARNING")
        monkeypatch.delenv("CONSOLE_LEVEL", raising=False)
        log_file = tmp_path / "logs" / "build.log"

        configure_logging(logging.ERROR, log_file=log_file)
        logging.getLogger("assetbundler.test").warning("written to file")
        for handler in logging.getLogger().handlers:
            handler.flush()

        assert log_file.exists()
        assert "written to file" in log_file.read_text(encoding="utf-8")
        assert logging.getLogger().level == logging.WARNING
