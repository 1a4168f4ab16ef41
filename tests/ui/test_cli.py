from __future__ import annotations

import io
import uuid
from pathlib import Path
from typing import TYPE_CHECKING

import pytest

from lingx.api.schemas import (
    BranchDiffResponse,
    BranchInfo,
    ChangedEntry,
    LanguageCounts,
    MergeRequest,
    MergeResponse,
)
from lingx.config import ApiConfig, ProjectConfig, TranslationFilesConfig
from lingx.domain.errors import (
    CatalogNotFoundError,
    ResolutionCancelled,
    UnresolvedConflictError,
)
from lingx.domain.reconciliation import (
    AddedEntry,
    Conflict,
    DiffResult,
    LanguageSummary,
    MergeSummary,
    PolicyOutcome,
    ReconciliationResult,
    ReconciliationStatus,
    ResolutionMode,
)
from lingx.domain.sync import FullSyncReport, SyncDirection, SyncReport
from lingx.ui import cli

if TYPE_CHECKING:
    from collections.abc import Callable

MAIN = BranchInfo(id=uuid.uuid4(), name="main", slug="main", is_default=True)
FEATURE = BranchInfo(id=uuid.uuid4(), name="feature", slug="feature")


def _config() -> ProjectConfig:
    return ProjectConfig(
        project="webshop",
        space="frontend",
        files=TranslationFilesConfig(directory=Path("locales")),
        api=ApiConfig(),
    )


def _report(
    direction: SyncDirection,
    status: ReconciliationStatus = ReconciliationStatus.APPLIED,
) -> SyncReport:
    summary = MergeSummary(languages={"de": LanguageSummary(added=2, skipped=1)})
    result = ReconciliationResult(
        status=status,
        diff=DiffResult(),
        outcome=PolicyOutcome(cancelled=status is ReconciliationStatus.CANCELLED),
        summary=summary,
    )
    return SyncReport(direction=direction, result=result)


@pytest.fixture
def config(monkeypatch: pytest.MonkeyPatch) -> ProjectConfig:
    project_config = _config()
    monkeypatch.setattr(cli, "load_project_config", lambda _path: project_config)
    return project_config


def _recording(
    captured: dict[str, object],
    result: object,
) -> Callable[..., object]:
    def fake(config: ProjectConfig, **kwargs: object) -> object:
        captured["config"] = config
        captured.update(kwargs)
        return result

    return fake


def test_push_defaults_to_explicit_resolution(
    monkeypatch: pytest.MonkeyPatch,
    config: ProjectConfig,
    capsys: pytest.CaptureFixture[str],
) -> None:
    captured: dict[str, object] = {}
    monkeypatch.setattr(cli, "push_project", _recording(captured, _report(SyncDirection.PUSH)))

    code = cli.run(["push"])

    assert code == cli.EXIT_OK
    assert captured["config"] is config
    assert captured["mode"] is ResolutionMode.EXPLICIT
    assert captured["prompt"] is None
    assert captured["delete_remote"] is False
    assert captured["languages"] is None
    assert "Push: applied" in capsys.readouterr().out


def test_push_flags(monkeypatch: pytest.MonkeyPatch, config: ProjectConfig) -> None:
    captured: dict[str, object] = {}
    monkeypatch.setattr(cli, "push_project", _recording(captured, _report(SyncDirection.PUSH)))

    cli.run(["push", "--force", "--delete", "--languages", "en, de", "--dry-run"])

    assert captured["mode"] is ResolutionMode.FORCE_SOURCE
    assert captured["delete_remote"] is True
    assert captured["languages"] == ("en", "de")
    assert captured["dry_run"] is True


def test_interactive_pull_uses_terminal_prompt(
    monkeypatch: pytest.MonkeyPatch,
    config: ProjectConfig,
) -> None:
    captured: dict[str, object] = {}
    monkeypatch.setattr(cli, "pull_project", _recording(captured, _report(SyncDirection.PULL)))

    cli.run(["pull", "--interactive"])

    prompt = captured["prompt"]
    assert isinstance(prompt, cli.TerminalConflictPrompt)
    assert (prompt.source_label, prompt.target_label) == ("remote", "local")
    assert captured["mode"] is ResolutionMode.INTERACTIVE


def test_cancelled_report_exits_130(monkeypatch: pytest.MonkeyPatch, config: ProjectConfig) -> None:
    report = _report(SyncDirection.PUSH, ReconciliationStatus.CANCELLED)
    monkeypatch.setattr(cli, "push_project", _recording({}, report))

    assert cli.run(["push", "--interactive"]) == cli.EXIT_CANCELLED


def test_ctrl_c_during_a_push_exits_130(
    monkeypatch: pytest.MonkeyPatch,
    config: ProjectConfig,
    capsys: pytest.CaptureFixture[str],
) -> None:
    def interrupted(_config: ProjectConfig, **_kwargs: object) -> SyncReport:
        cli.sigint_handler(2, None)
        return _report(SyncDirection.PUSH)

    monkeypatch.setattr(cli, "push_project", interrupted)

    assert cli.run(["push"]) == cli.EXIT_CANCELLED
    assert "Interrupted" in capsys.readouterr().err


def test_ctrl_c_at_the_conflict_prompt_cancels_resolution() -> None:
    def interrupted(_question: str) -> str:
        cli.sigint_handler(2, None)
        return "s"

    prompt = cli.TerminalConflictPrompt(input_func=interrupted, output=io.StringIO())

    with pytest.raises(ResolutionCancelled):
        prompt(Conflict("en", "greeting", "Hi", "Hello"), position=1, total=1)


def test_sync_prints_both_directions(
    monkeypatch: pytest.MonkeyPatch,
    config: ProjectConfig,
    capsys: pytest.CaptureFixture[str],
) -> None:
    report = FullSyncReport(push=_report(SyncDirection.PUSH), pull=_report(SyncDirection.PULL))
    monkeypatch.setattr(cli, "sync_project", _recording({}, report))

    assert cli.run(["sync", "--force"]) == cli.EXIT_OK

    out = capsys.readouterr().out
    assert "Push: applied" in out
    assert "Pull: applied" in out
    assert "de: 2 added, 0 updated, 1 skipped, 0 deleted" in out


def test_unresolved_conflicts_exit_3(
    monkeypatch: pytest.MonkeyPatch,
    config: ProjectConfig,
    capsys: pytest.CaptureFixture[str],
) -> None:
    def fake_push(_config: ProjectConfig, **_kwargs: object) -> SyncReport:
        raise UnresolvedConflictError([Conflict("en", "shop\x1ftitle", "A", "B")])

    monkeypatch.setattr(cli, "push_project", fake_push)

    assert cli.run(["push"]) == cli.EXIT_UNRESOLVED
    err = capsys.readouterr().err
    assert "[en] shop:title" in err
    assert "--force or --interactive" in err


def test_domain_errors_exit_1(monkeypatch: pytest.MonkeyPatch, config: ProjectConfig) -> None:
    def fake_diff(_config: ProjectConfig, **_kwargs: object) -> DiffResult:
        raise CatalogNotFoundError("branch webshop/frontend/main")

    monkeypatch.setattr(cli, "diff_project", fake_diff)

    assert cli.run(["diff"]) == cli.EXIT_FAILURE


def test_diff_output(
    monkeypatch: pytest.MonkeyPatch,
    config: ProjectConfig,
    capsys: pytest.CaptureFixture[str],
) -> None:
    diff = DiffResult(
        added_only_source=(AddedEntry("es", "greeting", "Hola"),),
        changed_both_present=(Conflict("en", "greeting", "Hi", "Hello"),),
    )
    monkeypatch.setattr(cli, "diff_project", lambda _config, **_kwargs: diff)

    cli.run(["diff", "--languages", "en,es"])

    out = capsys.readouterr().out
    assert "+ [es] greeting: Hola" in out
    assert "~ [en] greeting: Hello -> Hi" in out
    assert "1 added, 0 removed, 1 changed, 0 unchanged" in out


def test_usage_errors_exit_2(config: ProjectConfig) -> None:
    assert cli.run([]) == cli.EXIT_USAGE
    assert cli.run(["push", "--force", "--interactive"]) == cli.EXIT_USAGE
    assert cli.run(["push", "--languages", " , "]) == cli.EXIT_USAGE
    assert cli.run(["--help"]) == cli.EXIT_OK


def test_missing_configuration_exits_2(
    monkeypatch: pytest.MonkeyPatch,
    tmp_path: Path,
) -> None:
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("LINGX_PROJECT", raising=False)
    monkeypatch.delenv("LINGX_SPACE", raising=False)

    assert cli.run(["diff"]) == cli.EXIT_USAGE


class _FakeClient:
    def __init__(self, diff: BranchDiffResponse) -> None:
        self._diff = diff
        self.merges: list[MergeRequest] = []

    def resolve_branch(self, _project: str, _space: str, branch: str) -> BranchInfo:
        return {"main": MAIN, "feature": FEATURE}[branch]

    def diff(self, _source: uuid.UUID, _target: uuid.UUID) -> BranchDiffResponse:
        return self._diff

    def merge(self, _source: uuid.UUID, request: MergeRequest) -> MergeResponse:
        self.merges.append(request)
        return MergeResponse(
            success=True,
            status="applied",
            upserted=1,
            languages={"en": LanguageCounts(updated=1)},
        )


def _conflicting_diff() -> BranchDiffResponse:
    return BranchDiffResponse(
        source=FEATURE,
        target=MAIN,
        changed=[
            ChangedEntry(language="en", key="greeting", source_value="Hi", target_value="Hello")
        ],
    )


def test_branch_merge_force_sends_source_resolutions(
    monkeypatch: pytest.MonkeyPatch,
    config: ProjectConfig,
    capsys: pytest.CaptureFixture[str],
) -> None:
    client = _FakeClient(_conflicting_diff())
    monkeypatch.setattr(cli, "api_client", lambda _config: client)

    code = cli.run(["branch", "merge", "feature", "main", "--force", "--delete"])

    assert code == cli.EXIT_OK
    (request,) = client.merges
    assert request.target_branch_id == MAIN.id
    assert request.delete_unmatched is True
    assert [(r.key, r.resolution.value, r.language) for r in request.resolutions] == [
        ("greeting", "source", "en")
    ]
    assert "Merge feature -> main: applied" in capsys.readouterr().out


def test_branch_merge_without_flags_refuses_conflicts(
    monkeypatch: pytest.MonkeyPatch,
    config: ProjectConfig,
) -> None:
    client = _FakeClient(_conflicting_diff())
    monkeypatch.setattr(cli, "api_client", lambda _config: client)

    assert cli.run(["branch", "merge", "feature", "main"]) == cli.EXIT_UNRESOLVED
    assert client.merges == []
