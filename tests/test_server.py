"""
Tests for the MCP tool surface
"""

from unittest.mock import MagicMock, patch

import pytest

from comfyui_workflow_fields import server
from comfyui_workflow_fields.dropdown_provider import DropdownOptionProvider


@pytest.fixture
def providers(mock_client):
    """Patch the global providers with offline ones."""
    schema_provider = MagicMock()
    schema_provider.peek.return_value = None
    schema_provider.get.return_value = None
    option_provider = DropdownOptionProvider(client=mock_client, schema_provider=schema_provider)
    with patch.object(server, "get_schema_provider", return_value=schema_provider), patch.object(
        server, "get_option_provider", return_value=option_provider
    ), patch.object(server, "get_client", return_value=mock_client):
        yield schema_provider, option_provider


class TestAnalyzeWorkflow:
    def test_api_workflow(self, providers, sample_api_workflow):
        """Test analyzing an API prompt"""
        result = server.analyze_workflow(sample_api_workflow)
        assert result["encoding"] == "named"
        assert result["schema_loaded"] is False
        assert result["counts"]["seed"] == 1
        assert result["counts"]["prompt"] == 2

    def test_gui_media_fields(self, providers, sample_gui_workflow):
        """Test media fields in a GUI export"""
        result = server.analyze_workflow(sample_gui_workflow)
        assert [f["field_id"] for f in result["media_fields"]] == ["10-image"]
        assert "10-image" not in {f["field_id"] for f in result["fields"]}

    def test_unrecognised_document(self, providers):
        """Test structural error response"""
        result = server.analyze_workflow(["not", "a", "workflow"])
        assert result["isError"]
        assert result["code"] == "STRUCTURAL_ERROR"

    def test_unexpected_exception_becomes_internal_error(self, providers, sample_api_workflow):
        """Test unexpected exceptions become INTERNAL_ERROR"""
        with patch.object(server, "classify_document", side_effect=RuntimeError("boom")):
            result = server.analyze_workflow(sample_api_workflow)
        assert result == {"error": "boom", "code": "INTERNAL_ERROR", "isError": True}


class TestListEditableFields:
    def test_category_filter(self, providers, sample_api_workflow):
        """Test category filter"""
        result = server.list_editable_fields(sample_api_workflow, category="Seed")
        assert result["count"] == 1
        assert result["fields"][0]["field_id"] == "3-seed"

    def test_all_fields(self, providers, sample_api_workflow):
        """Test listing every editable field"""
        result = server.list_editable_fields(sample_api_workflow)
        assert result["count"] == len(result["fields"])
        assert "3-model" not in {f["field_id"] for f in result["fields"]}

    def test_unknown_category(self, providers, sample_api_workflow):
        """Test unknown category name"""
        result = server.list_editable_fields(sample_api_workflow, category="colour")
        assert result["code"] == "VALIDATION_ERROR"
        assert result["details"] == {"field": "category"}


class TestFieldOptions:
    def test_static_options(self, providers):
        """Test static options"""
        result = server.get_field_options("KSampler", "scheduler")
        assert result["status"] == "loaded"
        assert result["subtype"] == "combo"
        assert "karras" in result["options"]

    def test_catalog_options(self, providers, mock_client):
        """Test catalog options"""
        result = server.get_field_options("CheckpointLoaderSimple", "ckpt_name", wait=True)
        assert result["status"] == "loaded"
        assert result["catalog"] == "checkpoints"
        assert result["options"] == ["sd_xl_base_1.0.safetensors", "dreamshaper_8.safetensors"]
        mock_client.list_models.assert_called_once()

    def test_schema_unavailable_is_free_text(self, providers):
        """Test free text when the schema is missing"""
        result = server.get_field_options("SomeCustomNode", "variant", wait=True)
        assert result["status"] == "empty"
        assert result["free_text"]
        assert result["error"]["code"] == "RESOLUTION_ERROR"


class TestValidateFieldValue:
    def test_invalid_value(self, providers, sample_api_workflow):
        """Test invalid value"""
        result = server.validate_field_value(sample_api_workflow, "3", "steps", "abc")
        assert result == {"valid": False, "errors": ["Must be a valid number"], "field_id": "3-steps"}

    def test_valid_value(self, providers, sample_api_workflow):
        """Test valid value"""
        assert server.validate_field_value(sample_api_workflow, "3", "steps", 30)["valid"]

    def test_unknown_field(self, providers, sample_api_workflow):
        """Test unknown field"""
        result = server.validate_field_value(sample_api_workflow, "3", "model", ["4", 0])
        assert result["code"] == "NOT_FOUND"
        assert result["details"] == {"field_id": "3-model"}


class TestApplyFieldEdits:
    def test_edits_applied(self, providers, sample_api_workflow):
        """Test edits applied to an API prompt"""
        result = server.apply_field_edits(sample_api_workflow, {"3": {"steps": "30", "cfg": "x"}})
        assert result["workflow"]["3"]["inputs"]["steps"] == 30
        assert result["workflow"]["3"]["inputs"]["cfg"] == 7.5
        assert [entry["field_id"] for entry in result["skipped"]] == ["3-cfg"]
        assert result["dropped"] == []
        assert result["diff"]["nodes_modified"][0]["node_id"] == "3"
        assert sample_api_workflow["3"]["inputs"]["steps"] == 20

    def test_gui_edits(self, providers, sample_gui_workflow):
        """Test edits applied to a GUI export"""
        result = server.apply_field_edits(sample_gui_workflow, {"6": {"text": "a castle on a hill"}})
        assert result["workflow"]["nodes"][3]["widgets_values"] == ["a castle on a hill"]

    def test_structural_error(self, providers):
        """Test malformed workflow"""
        result = server.apply_field_edits({"nodes": "oops"}, {})
        assert result["code"] == "STRUCTURAL_ERROR"


class TestSeedsAndDiff:
    def test_randomize_seeds(self, providers, sample_api_workflow):
        """Test seed randomization tool"""
        result = server.randomize_seeds(sample_api_workflow)
        assert list(result["seeds"]) == ["3-seed"]
        assert result["workflow"]["3"]["inputs"]["seed"] == result["seeds"]["3-seed"]

    def test_diff_mismatched(self, providers, sample_api_workflow, sample_gui_workflow):
        """Test diff of mismatched encodings"""
        result = server.diff_workflow_documents(sample_api_workflow, sample_gui_workflow)
        assert result["isError"]
        assert result["code"] == "VALIDATION_ERROR"


class TestSubmitWorkflow:
    def test_submit(self, providers, mock_client, sample_api_workflow):
        """Test submitting to /prompt"""
        mock_client.queue_prompt.return_value = {"prompt_id": "abc123", "number": 1}
        result = server.submit_workflow(sample_api_workflow, {"3": {"steps": 12}})
        assert result["response"] == {"prompt_id": "abc123", "number": 1}
        submitted = mock_client.queue_prompt.call_args[0][0]
        assert submitted["3"]["inputs"]["steps"] == 12

    def test_connection_failure(self, providers, mock_client, sample_api_workflow, capturing_logger):
        """Test submit when ComfyUI is down"""
        mock_client.queue_prompt.return_value = {"error": "Connection refused"}
        result = server.submit_workflow(sample_api_workflow)
        assert result["code"] == "CONNECTION_ERROR"
        assert result["isError"]
        assert "workflow_submit_failed" in capturing_logger.messages()


class TestClearOptionCache:
    def test_clear_catalog(self, providers):
        """Test clearing one catalog"""
        server.get_field_options("CheckpointLoaderSimple", "ckpt_name", wait=True)
        server.get_field_options("KSampler", "scheduler")
        assert server.clear_option_cache("checkpoints") == {"cleared": 1, "catalog": "checkpoints"}

    def test_clear_all_invalidates_schema(self, providers):
        """Test clearing everything also drops the schema"""
        schema_provider, _ = providers
        server.get_field_options("KSampler", "scheduler")
        result = server.clear_option_cache()
        assert result == {"cleared": 1, "catalog": None}
        schema_provider.invalidate.assert_called_once()

    def test_unknown_catalog_rejected(self, providers):
        """Only catalog folders the option provider knows can be cleared."""
        result = server.clear_option_cache("textures")
        assert result["isError"]
        assert result["code"] == "VALIDATION_ERROR"
        assert result["details"] == {"field": "catalog"}
        assert "loras" in result["error"]


class TestListOptionCatalogs:
    def test_lists_catalog_folders(self, providers):
        """The catalogs offered here are the ones clear_option_cache accepts."""
        catalogs = server.list_option_catalogs()["catalogs"]
        assert "checkpoints" in catalogs
        assert "input" in catalogs
        for catalog in catalogs:
            assert server.clear_option_cache(catalog)["catalog"] == catalog
