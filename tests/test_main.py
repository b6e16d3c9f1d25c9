"""Tests for the Typer CLI."""

import json

from typer.testing import CliRunner

from pyaudit.main import EXIT_FATAL, app

runner = CliRunner()


class TestAudit:
    def test_text_report_and_exit_code(self, project):
        result = runner.invoke(app, ["audit", str(project), "--format", "text"])
        assert result.exit_code == 1
        assert "app/util.py:2:20: WARNING [PY001]" in result.output
        assert "scripts/run.py:3:8: WARNING [PY011]" in result.output
        assert "6 findings in 3 files (4 scanned)" in result.output

    def test_clean_exit_zero(self, tmp_path):
        (tmp_path / "ok.py").write_text("x: int | None = None\n")
        result = runner.invoke(app, ["audit", str(tmp_path), "--format", "text"])
        assert result.exit_code == 0
        assert "No findings (1 file(s) scanned)." in result.output

    def test_rich_report(self, project):
        result = runner.invoke(app, ["audit", str(project), "--verbose"], env={"COLUMNS": "200"})
        assert result.exit_code == 1
        assert "Summary" in result.output
        assert "app/models.py" in result.output

    def test_json_to_file(self, project, tmp_path):
        out = tmp_path / "report.json"
        result = runner.invoke(app, ["audit", str(project), "--format", "json", "--output", str(out)])
        assert result.exit_code == 1
        data = json.loads(out.read_text())
        assert data["total"] == 6
        assert data["files_scanned"] == 4
        assert [f["path"] for f in data["files"]][0] == "app/clean.py"

    def test_rule_selection(self, project):
        result = runner.invoke(app, ["audit", str(project), "-f", "text", "-r", "PY012", "-r", "PY011"])
        assert result.exit_code == 1
        assert "PY012: 1" in result.output
        assert "PY001" not in result.output

    def test_unknown_rule_is_fatal(self, project):
        result = runner.invoke(app, ["audit", str(project), "--rule", "PY999"])
        assert result.exit_code == EXIT_FATAL
        assert "PY999" in result.output

    def test_exclude(self, project):
        result = runner.invoke(app, ["audit", str(project), "-f", "text", "-x", "scripts", "-x", "app/models.py"])
        assert result.exit_code == 1
        assert "(2 scanned)" in result.output
        assert "PY011" not in result.output

    def test_extension_option(self, project):
        result = runner.invoke(app, ["audit", str(project), "-f", "text", "--ext", "pyw"])
        assert result.exit_code == 0
        assert "No findings (0 file(s) scanned)." in result.output

    def test_config_file_discovered(self, project):
        (project / ".pyaudit.yaml").write_text("rules: [PY011]\n")
        result = runner.invoke(app, ["audit", str(project), "-f", "text"])
        assert result.exit_code == 1
        assert "1 finding in 1 file (4 scanned)" in result.output

    def test_flags_override_config_file(self, project):
        (project / ".pyaudit.yaml").write_text("rules: [PY011]\n")
        result = runner.invoke(app, ["audit", str(project), "-f", "text", "-r", "PY008"])
        assert "PY008: 1" in result.output
        assert "PY011" not in result.output

    def test_invalid_config_is_fatal(self, project):
        (project / ".pyaudit.yaml").write_text("workers: 0\n")
        result = runner.invoke(app, ["audit", str(project)])
        assert result.exit_code == EXIT_FATAL
        assert "Error" in result.output

    def test_missing_target_is_usage_error(self, tmp_path):
        result = runner.invoke(app, ["audit", str(tmp_path / "absent")])
        assert result.exit_code == 2

    def test_single_file(self, project):
        result = runner.invoke(app, ["audit", str(project / "scripts" / "run.py"), "-f", "text"])
        assert result.exit_code == 1
        assert "run.py:3:8" in result.output


class TestRules:
    def test_lists_catalog(self):
        result = runner.invoke(app, ["rules"], env={"COLUMNS": "200"})
        assert result.exit_code == 0
        for i in range(1, 16):
            assert f"PY{i:03d}" in result.output

    def test_show_selected_rules(self):
        result = runner.invoke(app, ["rules", "-r", "PY009", "--rule", "PY003", "-v"], env={"COLUMNS": "200"})
        assert result.exit_code == 0
        assert "PY009" in result.output
        assert "PY003" in result.output
        assert "PY001" not in result.output
        assert "f-string" in result.output

    def test_show_unknown_rule_is_fatal(self):
        result = runner.invoke(app, ["rules", "-r", "PY999"])
        assert result.exit_code == EXIT_FATAL
        assert "unknown rule identifier: PY999" in result.output

    def test_bad_catalog_is_fatal(self, tmp_path):
        catalog = tmp_path / "catalog.yaml"
        catalog.write_text("- id: X1\n")
        result = runner.invoke(app, ["rules", "--catalog", str(catalog)])
        assert result.exit_code == EXIT_FATAL


def test_version():
    result = runner.invoke(app, ["--version"])
    assert result.exit_code == 0
    assert result.output.startswith("pyaudit ")


def test_help_lists_commands():
    result = runner.invoke(app, ["--help"])
    assert result.exit_code == 0
    assert "audit" in result.output
    assert "rules" in result.output
