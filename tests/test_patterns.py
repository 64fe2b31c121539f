from __future__ import annotations

import logging

import pytest

from assetbundler.errors import PatternError
from assetbundler.patterns import (
    PatternMatcher,
    compile_pattern,
    glob_to_regex,
    is_excluded,
    is_included,
)


@pytest.fixture(autouse=True)
def _clear_pattern_cache():
    compile_pattern.cache_clear()
    yield
    compile_pattern.cache_clear()


class TestGlobToRegex:
    """Translation of glob syntax into anchored regular expressions."""

    def test_star_does_not_cross_separators(self) -> None:
        pattern = compile_pattern("textures/*.png")
        assert pattern.matches("textures/a.png")
        assert not pattern.matches("textures/sub/a.png")

    def test_unanchored_pattern_matches_at_any_depth(self) -> None:
        pattern = compile_pattern("*.png")
        assert pattern.matches("a.png")
        assert pattern.matches("deep/nested/a.png")
        assert not pattern.matches("a.png.bak")

    def test_double_star_prefix_matches_zero_or_more_directories(self) -> None:
        pattern = compile_pattern("**/*.tmp")
        assert pattern.matches("scratch.tmp")
        assert pattern.matches("a/b/c/scratch.tmp")

    def test_double_star_inside_pattern_spans_directories(self) -> None:
        pattern = compile_pattern("docs/**")
        assert pattern.matches("docs/a/b.txt")
        assert not pattern.matches("other/a.txt")

    def test_question_mark_matches_exactly_one_character(self) -> None:
        pattern = compile_pattern("a?.png")
        assert pattern.matches("ab.png")
        assert not pattern.matches("a.png")
        assert not pattern.matches("abc.png")

    def test_leading_slash_anchors_to_root(self) -> None:
        pattern = compile_pattern("/root.txt")
        assert pattern.matches("root.txt")
        assert not pattern.matches("sub/root.txt")

    def test_trailing_slash_matches_directory_contents(self) -> None:
        pattern = compile_pattern("textures/")
        assert pattern.matches("textures/a.png")
        assert pattern.matches("art/textures/deep/a.png")
        assert not pattern.matches("texturesx/a.png")

    def test_matching_is_case_insensitive(self) -> None:
        assert compile_pattern("*.PNG").matches("Icon.png")

    def test_backslashes_are_normalized(self) -> None:
        assert compile_pattern("textures\\*.png").matches("textures\\a.png")

    def test_character_class(self) -> None:
        pattern = compile_pattern("icon[12].png")
        assert pattern.matches("icon1.png")
        assert not pattern.matches("icon3.png")
        assert compile_pattern("icon[!12].png").matches("icon3.png")

    def test_regex_metacharacters_are_literal(self) -> None:
        pattern = compile_pattern("a+b(1).png")
        assert pattern.matches("a+b(1).png")
        assert not pattern.matches("aab1.png")

    def test_empty_pattern_raises(self) -> None:
        with pytest.raises(PatternError):
            glob_to_regex("   ")

    def test_unterminated_class_raises(self) -> None:
        with pytest.raises(PatternError) as excinfo:
            glob_to_regex("icon[12.png")
        assert excinfo.value.pattern == "icon[12.png"


class TestFailClosed:
    def test_invalid_pattern_never_matches_and_logs(self, caplog) -> None:
        caplog.set_level(logging.WARNING, logger="assetbundler.patterns")
        pattern = compile_pattern("[z-a].png")

        assert pattern.valid is False
        assert pattern.matches("a.png") is False
        assert "Ignoring Invalid Pattern" in caplog.text

    def test_invalid_include_pattern_does_not_abort_selection(self) -> None:
        matcher = PatternMatcher(include=["[oops", "*.png"])

        assert matcher.selects("a.png")
        assert not matcher.selects("a.wav")
        assert compile_pattern("[oops").valid is False


class TestSelection:
    def test_empty_include_selects_everything(self) -> None:
        assert is_included("anything/at/all.bin", [])
        assert is_included("anything/at/all.bin", None)

    def test_empty_exclude_excludes_nothing(self) -> None:
        assert not is_excluded("a.png", [])

    def test_exclude_wins_over_include(self) -> None:
        matcher = PatternMatcher(include=["textures/"], exclude=["*.tmp"])
        assert not matcher.selects("textures/a.tmp")
        assert matcher.selects("textures/a.png")

    def test_exclude_cannot_add_files_back(self) -> None:
        assert not PatternMatcher(include=["*.png"], exclude=["*.tmp"]).selects("audio/a.wav")

    def test_matcher_applies_both_lists(self) -> None:
        matcher = PatternMatcher(include=["*.png", "*.wav"], exclude=["**/old/*"])
        paths = ["b.png", "old/c.png", "a.wav", "x.txt"]
        assert [path for path in paths if matcher.selects(path)] == ["b.png", "a.wav"]
