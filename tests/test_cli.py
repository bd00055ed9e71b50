from __future__ import annotations

from pathlib import Path
from typing import Any, Dict

import httpx
from click.testing import CliRunner

import gitit.cli as cli_mod
import gitit.pipeline as pipeline_mod
from gitit import __version__
from gitit.cli import cli as gitit_cli
from gitit.errors import DestinationConflictError
from gitit.models import DownloadOptions, DownloadTemplateResult


def fake_download(calls: Dict[str, Any]):
    def download(template: str, options: DownloadOptions, **kwargs: Any) -> DownloadTemplateResult:
        calls["template"] = template
        calls["options"] = options
        return DownloadTemplateResult(
            name="org-repo",
            tar="https://example.com/x.tar.gz",
            source="org/repo",
            dir="/tmp/org-repo",
        )

    return download


def test_version() -> None:
    result = CliRunner().invoke(gitit_cli, ["--version"])
    assert result.exit_code == 0
    assert __version__ in result.output


def test_cache_dir(isolated_env: Path) -> None:
    result = CliRunner().invoke(gitit_cli, ["cache-dir"])
    assert result.exit_code == 0, result.output
    assert result.output.strip() == str(isolated_env.resolve())


def test_clone_passes_flags(monkeypatch, tmp_path: Path) -> None:
    calls: Dict[str, Any] = {}
    monkeypatch.setattr(cli_mod, "download_template_sync", fake_download(calls))

    result = CliRunner().invoke(
        gitit_cli,
        [
            "clone",
            "gh:org/repo",
            "my-app",
            "--cwd",
            str(tmp_path),
            "--force",
            "--prefer-offline",
            "--auth",
            "tok",
            "--no-registry",
        ],
    )

    assert result.exit_code == 0, result.output
    assert "Successfully cloned org-repo" in result.output
    options: DownloadOptions = calls["options"]
    assert calls["template"] == "gh:org/repo"
    assert options.dir == "my-app"
    assert options.cwd == str(tmp_path)
    assert options.force is True
    assert options.force_clean is False
    assert options.prefer_offline is True
    assert options.auth == "tok"
    assert options.registry is False
    assert options.install is False


def test_flags_override_config_file(monkeypatch, tmp_path: Path) -> None:
    (tmp_path / "gitit.config.yml").write_text(
        "install: true\nregistry: https://registry.example.com\nprovider: gitlab\n"
    )
    calls: Dict[str, Any] = {}
    monkeypatch.setattr(cli_mod, "download_template_sync", fake_download(calls))

    result = CliRunner().invoke(
        gitit_cli, ["clone", "starter", "--cwd", str(tmp_path), "--no-install"]
    )

    assert result.exit_code == 0, result.output
    options: DownloadOptions = calls["options"]
    assert options.install is False
    assert options.registry == "https://registry.example.com"
    assert options.provider == "gitlab"


def test_create_and_new_are_aliases(monkeypatch, tmp_path: Path) -> None:
    monkeypatch.chdir(tmp_path)
    calls: Dict[str, Any] = {}
    monkeypatch.setattr(cli_mod, "download_template_sync", fake_download(calls))
    runner = CliRunner()
    for name in ("create", "new"):
        result = runner.invoke(gitit_cli, [name, "gh:org/repo"])
        assert result.exit_code == 0, result.output
        assert calls["template"] == "gh:org/repo"


def test_failure_reports_stage(monkeypatch, tmp_path: Path) -> None:
    monkeypatch.chdir(tmp_path)
    def failing(template: str, options: DownloadOptions, **kwargs: Any):
        raise DestinationConflictError("/tmp/out")

    monkeypatch.setattr(cli_mod, "download_template_sync", failing)

    result = CliRunner().invoke(gitit_cli, ["clone", "gh:org/repo"])

    assert result.exit_code == 1
    assert "destination failed:" in result.output
    assert "--force" in result.output


def test_invalid_config_reports_config_stage(tmp_path: Path) -> None:
    (tmp_path / "gitit.config.yml").write_text("not_an_option: 1\n")
    result = CliRunner().invoke(gitit_cli, ["clone", "gh:org/repo", "--cwd", str(tmp_path)])
    assert result.exit_code == 1
    assert "config failed:" in result.output


def test_clone_end_to_end(monkeypatch, tmp_path: Path, make_tarball) -> None:
    tarball = make_tarball({"README.md": "hello\n"})

    def handler(request: httpx.Request) -> httpx.Response:
        if str(request.url) != "https://api.github.com/repos/org/repo/tarball/v1":
            return httpx.Response(404)
        return httpx.Response(200, headers={"etag": '"1"'}, content=tarball)

    monkeypatch.setattr(
        pipeline_mod,
        "new_client",
        lambda: httpx.AsyncClient(transport=httpx.MockTransport(handler)),
    )

    result = CliRunner().invoke(
        gitit_cli, ["clone", "gh:org/repo#v1", "out", "--cwd", str(tmp_path)]
    )

    assert result.exit_code == 0, result.output
    assert (tmp_path / "out" / "README.md").read_text() == "hello\n"


def test_clone_missing_template_reports_fetch_stage(monkeypatch, tmp_path: Path) -> None:
    monkeypatch.setattr(
        pipeline_mod,
        "new_client",
        lambda: httpx.AsyncClient(transport=httpx.MockTransport(lambda r: httpx.Response(404))),
    )

    result = CliRunner().invoke(
        gitit_cli, ["clone", "gh:org/missing", "--cwd", str(tmp_path)]
    )

    assert result.exit_code == 1
    assert "fetch failed:" in result.output
    assert not (tmp_path / "org-missing").exists()


def test_unexpected_error_is_one_line(monkeypatch, tmp_path: Path) -> None:
    monkeypatch.chdir(tmp_path)

    def failing(template: str, options: DownloadOptions, **kwargs: Any):
        raise PermissionError(13, "Permission denied")

    monkeypatch.setattr(cli_mod, "download_template_sync", failing)

    result = CliRunner().invoke(gitit_cli, ["clone", "gh:org/repo"])

    assert result.exit_code == 1
    assert isinstance(result.exception, SystemExit)
    assert result.output.strip().splitlines() == [
        "gitit failed: [Errno 13] Permission denied"
    ]


def test_failing_hook_names_the_hook(monkeypatch, tmp_path: Path, make_tarball) -> None:
    tarball = make_tarball({"README.md": "hello\n"})
    monkeypatch.setattr(
        pipeline_mod,
        "new_client",
        lambda: httpx.AsyncClient(
            transport=httpx.MockTransport(
                lambda request: httpx.Response(200, content=tarball)
            )
        ),
    )
    (tmp_path / "cli_failing_hooks.py").write_text(
        "def explode(result):\n    raise ValueError('template is not allowed')\n"
    )
    (tmp_path / "gitit.config.yml").write_text(
        "hooks:\n  afterDownload: cli_failing_hooks:explode\n"
    )

    result = CliRunner().invoke(
        gitit_cli, ["clone", "gh:org/repo", "out", "--cwd", str(tmp_path)]
    )

    assert result.exit_code == 1
    assert isinstance(result.exception, SystemExit)
    assert "after_download hook failed: template is not allowed" in result.output
    assert not (tmp_path / "out").exists()


def test_failure_message_prefers_error_stage() -> None:
    assert cli_mod.failure_message(DestinationConflictError("/x")).startswith(
        "destination failed: Destination /x"
    )
    assert cli_mod.failure_message(RuntimeError("multi\nline")) == "gitit failed: multi line"
