"""
Tests for the comfyui-fields CLI
"""

import json
from unittest.mock import patch

import pytest

from comfyui_workflow_fields import cli
from comfyui_workflow_fields.cli_utils import (
    EXIT_ERROR,
    EXIT_NOT_FOUND,
    EXIT_OK,
    EXIT_VALIDATION,
    _exit_code_for_error,
    _parse_value,
)
from comfyui_workflow_fields.dropdown_provider import DropdownOptionProvider


@pytest.fixture(autouse=True)
def offline_options(mock_client):
    provider = DropdownOptionProvider(client=mock_client)
    with patch("comfyui_workflow_fields.dropdown_provider.get_option_provider", return_value=provider):
        yield provider


@pytest.fixture
def api_file(tmp_path, sample_api_workflow):
    path = tmp_path / "api.json"
    path.write_text(json.dumps(sample_api_workflow))
    return str(path)


@pytest.fixture
def gui_file(tmp_path, sample_gui_workflow):
    path = tmp_path / "gui.json"
    path.write_text(json.dumps(sample_gui_workflow))
    return str(path)


def run(capsys, *argv):
    with pytest.raises(SystemExit) as exc_info:
        cli.main(list(argv))
    captured = capsys.readouterr()
    return exc_info.value.code, captured.out, captured.err


class TestAnalyzeAndFields:
    def test_analyze(self, capsys, api_file):
        """Test analyze command"""
        code, out, _ = run(capsys, "analyze", api_file)
        assert code == EXIT_OK
        result = json.loads(out)
        assert result["encoding"] == "named"
        assert result["counts"]["seed"] == 1

    def test_pretty_before_or_after_command(self, capsys, api_file):
        """Test --pretty on either side of the command"""
        _, out, _ = run(capsys, "--pretty", "analyze", api_file)
        assert out.startswith("{\n")
        _, out, _ = run(capsys, "analyze", api_file, "--pretty")
        assert out.startswith("{\n")

    def test_fields_by_category(self, capsys, gui_file):
        """Test fields --category"""
        code, out, _ = run(capsys, "fields", gui_file, "--category", "seed")
        assert code == EXIT_OK
        result = json.loads(out)
        assert result["count"] == 1
        seed = result["groups"]["Seeds"][0]
        assert seed["field_id"] == "3-seed"
        assert seed["display_value"] == "12345"

    def test_unknown_category(self, capsys, gui_file):
        """Test unknown category exit code"""
        code, out, _ = run(capsys, "fields", gui_file, "-c", "colour")
        assert code == EXIT_VALIDATION
        assert json.loads(out)["code"] == "INVALID_PARAMS"

    def test_unrecognised_document(self, capsys, tmp_path):
        """Test unrecognised document exit code"""
        path = tmp_path / "list.json"
        path.write_text("[1, 2, 3]")
        code, out, _ = run(capsys, "analyze", str(path))
        assert code == EXIT_VALIDATION
        assert json.loads(out)["code"] == "STRUCTURAL_ERROR"

    def test_invalid_json(self, capsys, tmp_path):
        """Test invalid JSON input"""
        path = tmp_path / "broken.json"
        path.write_text("{not json")
        code, out, _ = run(capsys, "analyze", str(path))
        assert code == EXIT_VALIDATION
        assert json.loads(out)["code"] == "INVALID_PARAMS"

    def test_missing_file(self, capsys, tmp_path):
        """Test missing workflow file"""
        code, _, err = run(capsys, "analyze", str(tmp_path / "nope.json"))
        assert code == EXIT_VALIDATION
        assert "Workflow file not found" in err


class TestValidate:
    def test_valid(self, capsys, api_file):
        """Test validate with a good value"""
        code, out, _ = run(capsys, "validate", "3", "steps", "30", api_file)
        assert code == EXIT_OK
        assert json.loads(out) == {"field_id": "3-steps", "valid": True, "errors": []}

    def test_invalid(self, capsys, api_file):
        """Test validate with a bad value"""
        code, out, _ = run(capsys, "validate", "3", "steps", "many", api_file)
        assert code == EXIT_VALIDATION
        assert json.loads(out)["errors"] == ["Must be a valid number"]

    def test_unknown_field(self, capsys, api_file):
        """Test validate on an unknown field"""
        code, out, _ = run(capsys, "validate", "3", "model", "x", api_file)
        assert code == EXIT_NOT_FOUND
        assert json.loads(out)["code"] == "NOT_FOUND"


class TestApply:
    def test_apply_prints_workflow(self, capsys, api_file):
        """Test apply prints the reconciled workflow"""
        code, out, _ = run(capsys, "apply", api_file, "--edits", '{"3": {"steps": 30}}')
        assert code == EXIT_OK
        assert json.loads(out)["3"]["inputs"]["steps"] == 30

    def test_apply_from_file_with_report(self, capsys, tmp_path, gui_file):
        """Test apply with @file edits and --full"""
        edits = tmp_path / "edits.json"
        edits.write_text(json.dumps({"3": {"cfg": "high", "steps": 25}}))
        code, out, err = run(capsys, "apply", gui_file, "-e", f"@{edits}", "--full")
        assert code == EXIT_OK
        result = json.loads(out)
        assert result["document"]["nodes"][0]["widgets_values"][2] == 25
        assert result["skipped"][0]["field_id"] == "3-cfg"
        assert "Skipped 3-cfg" in err

    def test_missing_edits_file(self, capsys, api_file, tmp_path):
        """Test missing edits file"""
        code, _, _ = run(capsys, "apply", api_file, "-e", f"@{tmp_path / 'missing.json'}")
        assert code == EXIT_VALIDATION

    def test_edits_must_be_object(self, capsys, api_file):
        """Test edits that are not an object"""
        code, out, _ = run(capsys, "apply", api_file, "-e", "[1]")
        assert code == EXIT_VALIDATION
        assert json.loads(out)["code"] == "INVALID_PARAMS"


class TestSeedsDiffOptions:
    def test_randomize_seeds(self, capsys, api_file):
        """Test randomize-seeds command"""
        code, out, err = run(capsys, "randomize-seeds", api_file)
        assert code == EXIT_OK
        assert 1 <= json.loads(out)["3"]["inputs"]["seed"] < 2**31
        assert "Randomized 1 seed(s)" in err

    def test_diff(self, capsys, tmp_path, sample_api_workflow, api_file):
        """Test diff command"""
        sample_api_workflow["3"]["inputs"]["steps"] = 50
        edited = tmp_path / "edited.json"
        edited.write_text(json.dumps(sample_api_workflow))
        code, out, _ = run(capsys, "diff", api_file, str(edited))
        assert code == EXIT_OK
        assert json.loads(out)["nodes_modified"][0]["changes"] == [{"field": "inputs.steps", "from": 20, "to": 50}]

    def test_diff_mismatched(self, capsys, api_file, gui_file):
        """Test diff of GUI against API"""
        code, out, _ = run(capsys, "diff", api_file, gui_file)
        assert code == EXIT_VALIDATION

    def test_static_options(self, capsys):
        """Test options for a static dropdown"""
        code, out, _ = run(capsys, "options", "KSampler", "sampler_name")
        assert code == EXIT_OK
        result = json.loads(out)
        assert result["status"] == "loaded"
        assert "euler" in result["options"]

    def test_catalog_options(self, capsys):
        """Test options for a model catalog"""
        code, out, _ = run(capsys, "options", "LoraLoader", "lora_name", "--timeout", "2")
        assert code == EXIT_OK
        assert json.loads(out)["catalog"] == "loras"

    def test_no_command(self, capsys):
        """Test missing command"""
        code, _, _ = run(capsys)
        assert code == EXIT_ERROR


class TestCliUtils:
    def test_parse_value(self):
        """Test CLI value parsing"""
        assert _parse_value("42") == 42
        assert _parse_value("true") is True
        assert _parse_value("euler") == "euler"

    def test_exit_code_for_error(self):
        """Test error code to exit code mapping"""
        assert _exit_code_for_error({"code": "NOT_FOUND"}) == EXIT_NOT_FOUND
        assert _exit_code_for_error({"code": "STRUCTURAL_ERROR"}) == EXIT_VALIDATION
        assert _exit_code_for_error({"code": "SOMETHING_ELSE"}) == EXIT_ERROR
