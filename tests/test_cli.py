from pathlib import Path

import pytest
from typer.testing import CliRunner

from yt_sync import __version__
from yt_sync.cli.app import app
from yt_sync.models.config import MediaFormat
from yt_sync.models.results import RunReport, SyncResult, TargetState

runner = CliRunner()


class DummyOrchestrator:
    instances: list["DummyOrchestrator"] = []
    final_state = TargetState.DONE

    def __init__(self, options, playlist_client, fetcher, progress_manager=None, events=None):
        self.options = options
        self.playlist_client = playlist_client
        self.fetcher = fetcher
        self.targets = []
        self.config_errors = {}
        DummyOrchestrator.instances.append(self)

    def cancel(self):
        pass

    async def run(self, targets, config_errors=None):
        self.targets = list(targets)
        self.config_errors = dict(config_errors or {})
        return RunReport(
            results=[SyncResult(target=t, state=self.final_state) for t in self.targets],
            config_errors=self.config_errors,
            dry_run=self.options.dry_run,
        )


@pytest.fixture(autouse=True)
def dummy_orchestrator(monkeypatch):
    DummyOrchestrator.instances.clear()
    DummyOrchestrator.final_state = TargetState.DONE
    monkeypatch.setattr("yt_sync.cli.app.SyncOrchestrator", DummyOrchestrator)
    yield
    DummyOrchestrator.instances.clear()


@pytest.fixture
def config_file(tmp_path: Path) -> Path:
    path = tmp_path / "config.toml"
    path.write_text(
        f"""
[options]
max_downloads = 2

[[items]]
id = "PLone"
location = "{tmp_path / 'one'}"
save_playlist = true

[[items]]
id = "PLtwo"
location = "{tmp_path / 'two'}"
format = "video"
""",
        encoding="utf-8",
    )
    return path


def test_version() -> None:
    result = runner.invoke(app, ["--version"])
    assert result.exit_code == 0
    assert __version__ in result.output


def test_sync_runs_configured_targets(config_file: Path) -> None:
    result = runner.invoke(app, ["sync", "--config", str(config_file), "--retries", "4"])

    assert result.exit_code == 0, result.output
    [orchestrator] = DummyOrchestrator.instances
    assert [t.playlist_id for t in orchestrator.targets] == ["PLone", "PLtwo"]
    assert orchestrator.options.max_downloads == 2
    assert orchestrator.options.max_attempts == 4
    assert orchestrator.options.prune is True


def test_sync_exit_code_reflects_failures(config_file: Path) -> None:
    DummyOrchestrator.final_state = TargetState.FAILED

    result = runner.invoke(app, ["sync", "--config", str(config_file)])

    assert result.exit_code == 1


def test_sync_with_playlist_id_builds_single_target(tmp_path: Path) -> None:
    location = tmp_path / "adhoc"
    result = runner.invoke(
        app,
        [
            "sync",
            "--config",
            str(tmp_path / "none.toml"),
            "--playlist-id",
            "PLadhoc",
            "--location",
            str(location),
            "--format",
            "video",
            "--save-playlist",
            "--workers",
            "5",
            "--no-prune",
            "--keep-mismatched",
            "--dry-run",
        ],
    )

    assert result.exit_code == 0, result.output
    [orchestrator] = DummyOrchestrator.instances
    [target] = orchestrator.targets
    assert target.playlist_id == "PLadhoc"
    assert target.location == location
    assert target.format == MediaFormat.VIDEO
    assert target.save_playlist is True
    assert orchestrator.options.max_downloads == 5
    assert orchestrator.options.prune is False
    assert orchestrator.options.redownload_on_format_mismatch is False
    assert orchestrator.options.dry_run is True
    assert not (tmp_path / "none.toml").exists()


def test_sync_without_config_creates_default(tmp_path: Path) -> None:
    path = tmp_path / "cfg" / "config.toml"

    result = runner.invoke(app, ["sync", "--config", str(path)])

    assert result.exit_code == 1
    assert path.is_file()
    assert DummyOrchestrator.instances == []


def test_sync_passes_invalid_items_as_config_errors(tmp_path: Path) -> None:
    path = tmp_path / "config.toml"
    path.write_text(
        f'[[items]]\nid = "PLok"\nlocation = "{tmp_path}"\n\n'
        f'[[items]]\nid = "PLbad"\nlocation = "{tmp_path}"\nformat = "flac"\n',
        encoding="utf-8",
    )

    result = runner.invoke(app, ["sync", "--config", str(path)])

    assert result.exit_code == 1
    [orchestrator] = DummyOrchestrator.instances
    assert [t.playlist_id for t in orchestrator.targets] == ["PLok"]
    assert list(orchestrator.config_errors) == ["PLbad"]


def test_init_writes_default_config(tmp_path: Path) -> None:
    path = tmp_path / "config.toml"

    result = runner.invoke(app, ["init", "--config", str(path)])

    assert result.exit_code == 0
    assert path.is_file()


def test_init_refuses_to_overwrite_without_confirmation(tmp_path: Path) -> None:
    path = tmp_path / "config.toml"
    path.write_text("# mine\n", encoding="utf-8")

    result = runner.invoke(app, ["init", "--config", str(path)], input="n\n")

    assert result.exit_code != 0
    assert path.read_text(encoding="utf-8") == "# mine\n"


def test_validate_lists_targets(config_file: Path) -> None:
    result = runner.invoke(app, ["validate", "--config", str(config_file)])

    assert result.exit_code == 0, result.output
    assert "PLone" in result.output
    assert "PLtwo" in result.output


def test_validate_exports_schema(config_file: Path, tmp_path: Path) -> None:
    schema = tmp_path / "schema.json"

    result = runner.invoke(
        app, ["validate", "--config", str(config_file), "--export-schema", str(schema)]
    )

    assert result.exit_code == 0, result.output
    assert schema.is_file()
