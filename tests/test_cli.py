"""Tests for the stackgen command-line interface (stackgen.cli).

Covers:
- Argument parsing
- scaffold_project with mocked command runners (step failures, abort)
- clone_repository
- main() exit codes for success, failures, invalid config and cancellation
"""

from __future__ import annotations

import json
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from stackgen.cli import (
    EXIT_CANCELLED,
    EXIT_FAILURE,
    EXIT_OK,
    EXIT_STEP_FAILURES,
    RunReport,
    build_parser,
    clone_repository,
    main,
    scaffold_project,
)
from stackgen.config import CommandPolicy, Config
from stackgen.external.clone import CloneError
from stackgen.external.commands import CommandResult, ExternalCommandFailedError
from stackgen.prompts import UserCancelledError
from stackgen.scaffolder.models import FollowUpCommand, ScaffoldRequest, TemplateFile


def _runner(results_for):
    """Build a mock runner whose ``run`` maps commands to results via *results_for*."""
    runner = MagicMock()

    async def _run(commands):
        return [results_for(command) for command in commands]

    runner.run = AsyncMock(side_effect=_run)
    return runner


def _ok(command: FollowUpCommand) -> CommandResult:
    return CommandResult(command=command, exit_code=0)


def _fail_npm_base(command: FollowUpCommand) -> CommandResult:
    if command.args == ("install",):
        return CommandResult(command=command, exit_code=1, stderr="npm ERR! network")
    return CommandResult(command=command, exit_code=0)


@pytest.fixture
def env_output(monkeypatch: pytest.MonkeyPatch, output_dir: Path) -> Path:
    for name in ("STACKGEN_GIT_INIT", "STACKGEN_REPOSITORIES", "STACKGEN_ABORT_ON_FAILURE"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("STACKGEN_OUTPUT_DIR", str(output_dir))
    monkeypatch.setenv("STACKGEN_STREAM_OUTPUT", "false")
    return output_dir


# ---------------------------------------------------------------------------
# Parser
# ---------------------------------------------------------------------------


class TestParser:
    @pytest.mark.unit
    @pytest.mark.parametrize(
        "command",
        ["create-react-skeleton", "create-flask-skeleton", "create-fastapi-skeleton", "clone-repo"],
    )
    def test_subcommands(self, command: str):
        args = build_parser().parse_args([command])
        assert args.command == command
        assert args.config is None

    @pytest.mark.unit
    def test_config_option(self):
        args = build_parser().parse_args(["--config", "stackgen.json", "clone-repo"])
        assert args.config == "stackgen.json"

    @pytest.mark.unit
    def test_command_required(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args([])

    @pytest.mark.unit
    def test_unknown_command(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args(["create-django-skeleton"])


# ---------------------------------------------------------------------------
# RunReport
# ---------------------------------------------------------------------------


class TestRunReport:
    @pytest.mark.unit
    def test_exit_codes(self):
        report = RunReport()
        report.record("Write files", "ok")
        assert report.exit_code == EXIT_OK

        report.record("npm install", "failed", "exit 1")
        assert report.exit_code == EXIT_STEP_FAILURES
        assert [s.name for s in report.failed_steps] == ["npm install"]

        report.aborted = True
        assert report.exit_code == EXIT_FAILURE


# ---------------------------------------------------------------------------
# scaffold_project
# ---------------------------------------------------------------------------


class TestScaffoldProject:
    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_python_project_runs_no_commands(
        self, config: Config, flask_pytest_request: ScaffoldRequest
    ):
        runner = _runner(_ok)
        report = await scaffold_project(flask_pytest_request, config, runner=runner)

        assert report.exit_code == EXIT_OK
        assert [s.name for s in report.steps] == ["Resolve templates", "Write files"]
        runner.run.assert_not_called()
        root = config.project_root("flask-app")
        assert (root / "requirements.txt").read_text(encoding="utf-8") == "flask\npytest\n"

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_react_records_every_command(
        self, config: Config, react_full_request: ScaffoldRequest
    ):
        report = await scaffold_project(react_full_request, config, runner=_runner(_ok))

        assert report.exit_code == EXIT_OK
        names = [s.name for s in report.steps]
        assert names[:2] == ["Resolve templates", "Write files"]
        assert names[2] == "npm install"
        assert names[-1] == "npm install --save-dev jest"
        assert all(s.status == "ok" for s in report.steps)

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_failed_command_continues(
        self, config: Config, react_full_request: ScaffoldRequest
    ):
        report = await scaffold_project(
            react_full_request, config, runner=_runner(_fail_npm_base)
        )

        assert report.exit_code == EXIT_STEP_FAILURES
        assert [s.name for s in report.failed_steps] == ["npm install"]
        assert report.failed_steps[0].detail == "exit 1: npm ERR! network"
        assert len(report.steps) == 2 + 5

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_abort_marks_remaining_skipped(
        self, config: Config, react_full_request: ScaffoldRequest
    ):
        root = config.project_root(react_full_request.project_name)
        first = FollowUpCommand(executable="npm", args=("install",), working_directory=root)
        failed = CommandResult(command=first, exit_code=1)
        runner = MagicMock()
        runner.run = AsyncMock(side_effect=ExternalCommandFailedError(failed, [failed]))

        report = await scaffold_project(react_full_request, config, runner=runner)

        assert report.aborted
        assert report.exit_code == EXIT_FAILURE
        statuses = [s.status for s in report.steps[2:]]
        assert statuses[0] == "failed"
        assert statuses[1:] == ["skipped"] * 4

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_existing_project_conflicts(
        self, config: Config, flask_pytest_request: ScaffoldRequest
    ):
        root = config.project_root(flask_pytest_request.project_name)
        root.mkdir()
        (root / "app.py").write_text("# mine\n", encoding="utf-8")

        runner = _runner(_ok)
        report = await scaffold_project(flask_pytest_request, config, runner=runner)

        runner.run.assert_not_called()
        assert report.aborted
        assert report.exit_code == EXIT_FAILURE
        assert [(s.name, s.status) for s in report.steps[:2]] == [
            ("Resolve templates", "ok"),
            ("Write files", "failed"),
        ]
        assert all(s.status == "skipped" for s in report.steps[2:])
        assert "not empty" in report.error
        assert (root / "app.py").read_text(encoding="utf-8") == "# mine\n"

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_write_failures_skip_commands_under_abort(
        self, output_dir: Path, react_request: ScaffoldRequest
    ):
        config = Config(
            output_dir=output_dir,
            commands=CommandPolicy(abort_on_failure=True, stream_output=False),
        )
        registry = MagicMock()
        registry.resolve_templates.return_value = [
            TemplateFile("blocker", "file"),
            TemplateFile("blocker/child.txt", "nope"),
        ]
        registry.resolve_commands.return_value = [
            FollowUpCommand(executable="npm", args=("install",), working_directory=output_dir)
        ]
        runner = _runner(_ok)

        report = await scaffold_project(react_request, config, registry=registry, runner=runner)

        runner.run.assert_not_called()
        assert report.aborted
        assert [s.status for s in report.steps] == ["ok", "failed", "failed", "skipped"]

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_git_init_runs_for_python(
        self, output_dir: Path, fastapi_request: ScaffoldRequest
    ):
        config = Config(
            output_dir=output_dir,
            git_init=True,
            commands=CommandPolicy(stream_output=False),
        )
        runner = _runner(_ok)
        report = await scaffold_project(fastapi_request, config, runner=runner)

        (commands,), _ = runner.run.call_args
        assert [c.argv for c in commands] == [["git", "init"]]
        assert report.steps[-1].name == "git init"


# ---------------------------------------------------------------------------
# clone_repository
# ---------------------------------------------------------------------------


class TestCloneRepository:
    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_clones_into_output_dir(self, config: Config):
        with patch("stackgen.cli.clone", AsyncMock()) as clone_mock:
            report = await clone_repository("https://github.com/golang/go.git", "go", config)

        clone_mock.assert_awaited_once_with(
            "https://github.com/golang/go.git",
            config.output_dir / "go",
            timeout=config.clone_timeout,
            stream=False,
        )
        assert report.exit_code == EXIT_OK

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_clone_error_is_recorded(self, config: Config):
        with patch("stackgen.cli.clone", AsyncMock(side_effect=CloneError("boom"))):
            report = await clone_repository("https://example.com/r.git", "r", config)

        assert report.aborted
        assert report.exit_code == EXIT_FAILURE
        assert [(s.name, s.status, s.detail) for s in report.steps] == [
            ("Clone repository", "failed", "boom")
        ]
        assert report.error == "boom"


# ---------------------------------------------------------------------------
# main()
# ---------------------------------------------------------------------------


class TestMain:
    @pytest.mark.unit
    def test_flask_skeleton(self, env_output: Path, flask_pytest_request: ScaffoldRequest):
        with patch("stackgen.cli.prompt_scaffold_request", return_value=flask_pytest_request) as prompt:
            code = main(["create-flask-skeleton"])

        assert code == EXIT_OK
        prompt.assert_called_once()
        assert (env_output / "flask-app" / "app" / "main.py").exists()
        assert (env_output / "flask-app" / "tests" / "test_main.py").exists()

    @pytest.mark.unit
    def test_existing_directory_fails(self, env_output: Path, fastapi_request: ScaffoldRequest):
        target = env_output / fastapi_request.project_name
        target.mkdir()
        (target / "keep").write_text("", encoding="utf-8")

        with (
            patch("stackgen.cli.prompt_scaffold_request", return_value=fastapi_request),
            patch("stackgen.cli.print_summary_table") as summary,
        ):
            assert main(["create-fastapi-skeleton"]) == EXIT_FAILURE

        rows = summary.call_args.args[0]
        assert summary.call_args.kwargs["title"].startswith("Summary")
        assert rows[0][:2] == ("Resolve templates", "ok")
        assert rows[1][:2] == ("Write files", "failed")
        assert "not empty" in rows[1][2]
        assert [p.name for p in target.iterdir()] == ["keep"]

    @pytest.mark.unit
    def test_react_with_failed_install(self, env_output: Path, react_request: ScaffoldRequest):
        failing = MagicMock()

        async def _run(commands):
            return [CommandResult(command=c, exit_code=1, stderr="npm ERR!") for c in commands]

        failing.run = AsyncMock(side_effect=_run)
        with (
            patch("stackgen.cli.prompt_scaffold_request", return_value=react_request),
            patch("stackgen.cli.CommandRunner", return_value=failing),
        ):
            code = main(["create-react-skeleton"])

        assert code == EXIT_STEP_FAILURES
        assert (env_output / "react-app" / "package.json").exists()

    @pytest.mark.unit
    def test_cancelled(self, env_output: Path):
        with patch("stackgen.cli.prompt_scaffold_request", side_effect=UserCancelledError()):
            assert main(["create-react-skeleton"]) == EXIT_CANCELLED
        assert list(env_output.iterdir()) == []

    @pytest.mark.unit
    def test_interrupt_during_commands(self, env_output: Path, react_request: ScaffoldRequest):
        interrupted = MagicMock()
        interrupted.run = AsyncMock(side_effect=KeyboardInterrupt)
        with (
            patch("stackgen.cli.prompt_scaffold_request", return_value=react_request),
            patch("stackgen.cli.CommandRunner", return_value=interrupted),
        ):
            assert main(["create-react-skeleton"]) == EXIT_CANCELLED

        interrupted.run.assert_awaited_once()

    @pytest.mark.unit
    def test_interrupt_during_clone(self, env_output: Path):
        with (
            patch(
                "stackgen.cli.prompt_clone_target",
                return_value=("https://github.com/golang/go.git", "go"),
            ),
            patch("stackgen.cli.clone", AsyncMock(side_effect=KeyboardInterrupt)),
        ):
            assert main(["clone-repo"]) == EXIT_CANCELLED

    @pytest.mark.unit
    def test_clone_repo(self, env_output: Path):
        with (
            patch(
                "stackgen.cli.prompt_clone_target",
                return_value=("https://github.com/golang/go.git", "go"),
            ) as prompt,
            patch("stackgen.cli.clone", AsyncMock()) as clone_mock,
        ):
            code = main(["clone-repo"])

        assert code == EXIT_OK
        repositories = prompt.call_args.args[0]
        assert "ollama" in repositories and "go" in repositories
        assert clone_mock.call_args.args[1] == env_output / "go"

    @pytest.mark.unit
    def test_clone_failure(self, env_output: Path):
        with (
            patch("stackgen.cli.prompt_clone_target", return_value=("bad://url", "x")),
            patch("stackgen.cli.print_summary_table") as summary,
        ):
            assert main(["clone-repo"]) == EXIT_FAILURE

        (row,) = summary.call_args.args[0]
        assert row[:2] == ("Clone repository", "failed")
        assert "Unsupported URL scheme" in row[2]
        assert not (env_output / "x").exists()

    @pytest.mark.unit
    def test_config_file(self, tmp_path: Path, flask_pytest_request: ScaffoldRequest):
        out = tmp_path / "from-config"
        config_path = tmp_path / "stackgen.json"
        config_path.write_text(
            json.dumps({"output_dir": str(out), "commands": {"stream_output": False}}),
            encoding="utf-8",
        )

        with patch("stackgen.cli.prompt_scaffold_request", return_value=flask_pytest_request):
            assert main(["--config", str(config_path), "create-flask-skeleton"]) == EXIT_OK
        assert (out / "flask-app" / "requirements.txt").exists()

    @pytest.mark.unit
    def test_invalid_config_file(self, tmp_path: Path):
        config_path = tmp_path / "stackgen.json"
        config_path.write_text('{"clone_timeout": -5}', encoding="utf-8")
        assert main(["--config", str(config_path), "clone-repo"]) == EXIT_FAILURE

    @pytest.mark.unit
    def test_missing_config_file(self, tmp_path: Path):
        assert main(["--config", str(tmp_path / "missing.json"), "clone-repo"]) == EXIT_FAILURE

    @pytest.mark.unit
    def test_invalid_environment(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setenv("STACKGEN_REPOSITORIES", "broken")
        assert main(["clone-repo"]) == EXIT_FAILURE
