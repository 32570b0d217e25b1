"""
Tests for template compilation, matching and pattern guessing.
"""

import pytest

from autotitle.errors import CompileError
from autotitle.rename.parser import MatchResult, compile_template, guess_pattern


class TestCompileTemplate:
    """Compiling templates into anchored matchers."""

    def test_lazy_fields_and_extension(self):
        """Test that the lazy ANY field stops at the first closing bracket."""
        matcher = compile_template("[{{ANY}}] {{SERIES}} - {{EP_NUM}}.{{EXT}}")

        result = matcher.match("[Subs] [v2] My show - 01.mkv")

        assert result == {"Any": "Subs", "Series": "[v2] My show", "EpNum": "01", "Ext": "mkv"}

    def test_repeated_placeholder_gets_numbered_names(self):
        """Test that a placeholder used twice yields Any_1 and Any_2."""
        matcher = compile_template("[{{ANY}}] {{EP_NUM}} [{{ANY}}].{{EXT}}")

        assert matcher.field_names == ["Any_1", "EpNum", "Any_2"]
        result = matcher.match("[Grp] 05 [1080p].mkv")
        assert result["Any_1"] == "Grp"
        assert result["Any_2"] == "1080p"
        assert result["EpNum"] == "05"

    def test_single_placeholder_keeps_bare_name(self):
        matcher = compile_template("{{SERIES}} - {{EP_NUM}}.{{EXT}}")
        assert matcher.field_names == ["Series", "EpNum"]

    def test_match_is_anchored(self):
        """Test that partial matches are rejected."""
        matcher = compile_template("E{{EP_NUM}}.{{EXT}}")

        assert matcher.match("E05.mkv") is not None
        assert matcher.match("Show E05.mkv") is None
        assert matcher.match("E05 extra.mkv") is None

    def test_literal_text_is_escaped(self):
        """Test that regex metacharacters in the template are literal."""
        matcher = compile_template("Show (Part 1).S01E{{EP_NUM}}.{{EXT}}")

        assert matcher.match("Show (Part 1).S01E03.mkv")["EpNum"] == "03"
        assert matcher.match("Show (Part 1)XS01E03.mkv") is None
        assert matcher.match("Show Part 1.S01E03.mkv") is None

    def test_resolution_forms(self):
        matcher = compile_template("{{SERIES}} {{RES}}.{{EXT}}")

        assert matcher.match("Show 1080p.mkv")["Res"] == "1080p"
        assert matcher.match("Show 1920x1080.mp4")["Res"] == "1920x1080"
        assert matcher.match("Show HD.mkv") is None

    def test_unknown_placeholder_is_literal(self):
        matcher = compile_template("{{FOO}} {{EP_NUM}}.{{EXT}}")

        assert matcher.match("{{FOO}} 03.mkv") == {"EpNum": "03", "Ext": "mkv"}
        assert matcher.match("bar 03.mkv") is None

    def test_filename_without_extension_never_matches(self):
        matcher = compile_template("{{EP_NUM}}.{{EXT}}")
        assert matcher.match("05") is None
        assert matcher.match_typed("05") is None

    def test_extension_comes_from_last_dot(self):
        matcher = compile_template("{{SERIES}} - {{EP_NUM}}.{{EXT}}")
        assert matcher.match("Show - 01.en.mkv") is None
        assert matcher.match("Show.v2 - 01.mkv")["Series"] == "Show.v2"

    def test_match_typed(self):
        """Test that match_typed converts the episode number and keeps the resolution."""
        matcher = compile_template("[{{ANY}}] {{SERIES}} - {{EP_NUM}} ({{RES}}).{{EXT}}")

        result = matcher.match_typed("[Subs] Show - 012 (720p).mkv")

        assert result == MatchResult(episode_number=12, resolution="720p", extension="mkv")

    def test_match_typed_without_episode_or_resolution(self):
        matcher = compile_template("{{SERIES}}.{{EXT}}")
        assert matcher.match_typed("Movie.mp4") == MatchResult(episode_number=0, resolution="", extension="mp4")

    @pytest.mark.parametrize("template", ["", ".{{EXT}}", "{{EXT}}"])
    def test_empty_body_is_rejected(self, template):
        with pytest.raises(CompileError):
            compile_template(template)

    def test_non_string_template_is_rejected(self):
        with pytest.raises(CompileError) as exc_info:
            compile_template(None)
        assert "must be a string" in str(exc_info.value)


class TestGuessPattern:
    """Deriving a starting template from an example filename."""

    def test_fansub_release_name(self):
        assert (
            guess_pattern("[SubsPlease] Frieren - 05 (1080p) [A1B2C3D4].mkv")
            == "[SubsPlease] Frieren - {{EP_NUM}} ({{RES}}) [{{ANY}}].{{EXT}}"
        )

    def test_season_episode_name(self):
        assert guess_pattern("Show.S01E07.720p.mkv") == "Show.S01E{{EP_NUM}}.{{RES}}.{{EXT}}"

    def test_episode_keyword(self):
        assert guess_pattern("Show Episode 12.mp4") == "Show Episode {{EP_NUM}}.{{EXT}}"

    def test_fallback_skips_years_codecs_and_versions(self):
        assert guess_pattern("Show 2019 07v2 x264.mkv") == "Show 2019 {{EP_NUM}}v2 x264.{{EXT}}"

    def test_guessed_template_matches_its_example(self):
        """Test that a guessed template compiles and matches the file it came from."""
        name = "[SubsPlease] Frieren - 05 (1080p) [A1B2C3D4].mkv"

        result = compile_template(guess_pattern(name)).match_typed(name)

        assert result == MatchResult(episode_number=5, resolution="1080p", extension="mkv")
