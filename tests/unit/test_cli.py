"""
Unit tests for the etlflow command line.
"""

import json
import logging

import pytest

from etlflow.cli.main import main
from etlflow.config import ConfigStore
from etlflow.observability.logger import ROOT_LOGGER_NAME


@pytest.fixture(autouse=True)
def reset_logging(monkeypatch):
    for name in ("ETL_NOTIFY_COMPLETION_URL", "ETL_NOTIFY_FAILURE_URL", "ETL_CONFIG_DIR"):
        monkeypatch.delenv(name, raising=False)
    yield
    # main() binds a handler to the captured stdout of the current test
    logging.getLogger(ROOT_LOGGER_NAME).handlers.clear()


@pytest.fixture
def config_dir(tmp_path, definition_factory, write_json, three_records):
    directory = tmp_path / "configs"
    write_json(three_records)
    store = ConfigStore(directory, create_defaults=False)
    store.save_config(definition_factory(name="test_etl", schedule="0 8 * * *"))
    return directory


def run_cli(config_dir, *args):
    main(["--config-dir", str(config_dir), "--log-level", "ERROR", *args])


class TestCommands:
    def test_no_command_prints_help(self, capsys):
        with pytest.raises(SystemExit) as exc_info:
            main([])
        assert exc_info.value.code == 1
        assert "usage: etlflow" in capsys.readouterr().out

    def test_list(self, config_dir, capsys):
        run_cli(config_dir, "list")
        out = capsys.readouterr().out

        assert "test_etl" in out
        assert "0 8 * * *" in out
        assert "1 configuration(s)" in out

    def test_show(self, config_dir, capsys):
        run_cli(config_dir, "show", "test_etl")
        document = json.loads(capsys.readouterr().out)

        assert document["name"] == "test_etl"
        assert document["source"]["mapping"]["id"]["sourceField"] == "ID"

    def test_show_unknown(self, config_dir, capsys):
        with pytest.raises(SystemExit) as exc_info:
            run_cli(config_dir, "show", "missing")
        assert exc_info.value.code == 1
        assert "Pipeline configuration not found: missing" in capsys.readouterr().out

    def test_run(self, config_dir, tmp_path, capsys):
        run_cli(config_dir, "run", "test_etl")
        result = json.loads(capsys.readouterr().out)

        assert result["success"]
        assert result["records_loaded"] == 3
        assert (tmp_path / "out" / "output.json").exists()

    def test_run_unknown(self, config_dir, capsys):
        with pytest.raises(SystemExit) as exc_info:
            run_cli(config_dir, "run", "missing")
        assert exc_info.value.code == 1
        assert "Pipeline configuration not found: missing" in capsys.readouterr().out

    def test_enable_disable(self, config_dir, capsys):
        run_cli(config_dir, "disable", "test_etl")
        assert not ConfigStore(config_dir, create_defaults=False).get_config("test_etl").enabled

        run_cli(config_dir, "enable", "test_etl")
        assert ConfigStore(config_dir, create_defaults=False).get_config("test_etl").enabled
        assert "Enabled test_etl" in capsys.readouterr().out

    def test_schedule(self, config_dir):
        run_cli(config_dir, "schedule", "test_etl", "*/15 * * * *")
        assert ConfigStore(config_dir, create_defaults=False).get_config("test_etl").schedule == "*/15 * * * *"

    def test_schedule_rejects_invalid_expression(self, config_dir, capsys):
        with pytest.raises(SystemExit) as exc_info:
            run_cli(config_dir, "schedule", "test_etl", "every day")
        assert exc_info.value.code == 1
        assert "Invalid cron expression" in capsys.readouterr().out
        assert ConfigStore(config_dir, create_defaults=False).get_config("test_etl").schedule == "0 8 * * *"

    def test_remove(self, config_dir):
        run_cli(config_dir, "remove", "test_etl")
        assert "test_etl" not in ConfigStore(config_dir, create_defaults=False)

        with pytest.raises(SystemExit):
            run_cli(config_dir, "remove", "test_etl")

    def test_validate(self, config_dir, definition_factory, tmp_path, capsys):
        valid = tmp_path / "valid.json"
        valid.write_text(json.dumps(definition_factory(name="new_etl").to_document()), encoding="utf-8")
        invalid = tmp_path / "invalid.yaml"
        invalid.write_text("name: broken\n", encoding="utf-8")

        run_cli(config_dir, "validate", str(valid))
        assert f"{valid}: valid" in capsys.readouterr().out

        with pytest.raises(SystemExit):
            run_cli(config_dir, "validate", str(invalid))
        out = capsys.readouterr().out
        assert "invalid" in out
        assert "Source configuration is required" in out

    def test_export_import(self, config_dir, tmp_path):
        export_path = tmp_path / "export.json"
        run_cli(config_dir, "export", str(export_path))

        other_dir = tmp_path / "other"
        run_cli(other_dir, "import", str(export_path))

        assert "test_etl" in ConfigStore(other_dir, create_defaults=False)

    def test_stats(self, config_dir, capsys):
        run_cli(config_dir, "stats")
        stats = json.loads(capsys.readouterr().out)

        assert stats["total"] == 1
        assert stats["scheduled"] == 1
