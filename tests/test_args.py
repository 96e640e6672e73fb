"""Tests for backend argument construction."""

from __future__ import annotations

from runwire.backends.args import (
    CODEX_DEFAULT_ARGS,
    build_args,
    build_claude_args,
    build_codex_args,
    clean_args,
    dedupe_singletons,
    flag_names,
)


class TestDedupeSingletons:
    def test_keeps_first_occurrence(self) -> None:
        args = ["--verbose", "-x", "--verbose", "--print", "y", "--print"]
        assert dedupe_singletons(args, {"--verbose", "--print"}) == [
            "--verbose",
            "-x",
            "--print",
            "y",
        ]

    def test_non_singletons_untouched(self) -> None:
        args = ["-c", "a=1", "-c", "b=2"]
        assert dedupe_singletons(args, {"--yolo"}) == args


class TestFlagNames:
    def test_equals_form_counts_as_flag(self) -> None:
        assert flag_names(["--resume=abc", "--model", "opus", "-p"]) == {
            "--resume",
            "--model",
            "opus",
            "-p",
        }


class TestCleanArgs:
    def test_drops_empty_and_non_strings(self) -> None:
        assert clean_args(["a", "", None, 3, "b"]) == ["a", "b"]
        assert clean_args(None) == []


class TestClaudeArgs:
    def test_defaults(self) -> None:
        assert build_claude_args() == [
            "--dangerously-skip-permissions",
            "--print",
            "--output-format",
            "stream-json",
            "--verbose",
        ]

    def test_resume_appended(self) -> None:
        args = build_claude_args([], "sess-1")
        assert args[-2:] == ["--resume", "sess-1"]

    def test_blank_context_ignored(self) -> None:
        assert "--resume" not in build_claude_args([], "  ")

    def test_caller_resume_wins(self) -> None:
        args = build_claude_args(["-r", "mine"], "sess-1")
        assert "--resume" not in args
        assert args.count("-r") == 1

    def test_short_print_respected(self) -> None:
        args = build_claude_args(["-p"])
        assert "--print" not in args
        assert "-p" in args

    def test_caller_output_format_respected(self) -> None:
        args = build_claude_args(["--output-format", "json"])
        assert args.count("--output-format") == 1
        assert "stream-json" not in args

    def test_caller_output_format_equals_form_respected(self) -> None:
        args = build_claude_args(["--output-format=json"])
        assert "--output-format" not in args
        assert "stream-json" not in args

    def test_caller_resume_equals_form_wins(self) -> None:
        args = build_claude_args(["--resume=mine"], "sess-1")
        assert "--resume" not in args
        assert "sess-1" not in args
        assert "--resume=mine" in args

    def test_skip_permissions_once_in_caller_position(self) -> None:
        args = build_claude_args(["--model", "opus", "--dangerously-skip-permissions"])
        assert args.count("--dangerously-skip-permissions") == 1
        assert args.index("--dangerously-skip-permissions") == 2

    def test_duplicated_singletons_collapsed(self) -> None:
        args = build_claude_args(["--verbose", "--verbose", "--print", "--print"])
        assert args.count("--verbose") == 1
        assert args.count("--print") == 1


class TestCodexArgs:
    def test_defaults(self) -> None:
        assert build_codex_args() == ["exec", "--yolo", *CODEX_DEFAULT_ARGS]

    def test_resume(self) -> None:
        args = build_codex_args(["--model", "o3"], "abcd-1234")
        assert args[:2] == ["exec", "--yolo"]
        assert args[-3:] == ["resume", "abcd-1234", "-"]
        assert args.index("--model") < args.index("resume")

    def test_bypass_flag_deduplicated(self) -> None:
        args = build_codex_args(["--yolo", "-m", "x"])
        assert args.count("--yolo") == 1
        assert args[1] == "--yolo"

    def test_custom_defaults(self) -> None:
        assert build_codex_args(default_args=[]) == ["exec", "--yolo"]


class TestBuildArgs:
    def test_claude_variant_uses_claude_rules(self) -> None:
        args = build_args("claude-code-glm", ["--model", "glm-4.6"], "s")
        assert args[0] == "--dangerously-skip-permissions"
        assert args[-2:] == ["--resume", "s"]

    def test_claude_default_args_precede_extra(self) -> None:
        args = build_args("claude-code", ["--b"], None, ["--a"])
        assert args.index("--a") < args.index("--b")

    def test_codex(self) -> None:
        assert build_args("codex")[0] == "exec"

    def test_kimi_passes_through(self) -> None:
        assert build_args("kimi-cli", ["--foo", ""], "ignored") == ["--foo"]
