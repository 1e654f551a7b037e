"""
Tests for workflow document comparison
"""

import copy

from comfyui_workflow_fields.workflow_diff import diff_documents


class TestApiDiff:
    def test_identical(self, sample_api_workflow):
        """Test identical prompts"""
        result = diff_documents(sample_api_workflow, copy.deepcopy(sample_api_workflow))
        assert result["identical"]
        assert result["encoding"] == "named"
        assert result["summary"] == "7 node(s) unchanged"

    def test_modified_inputs(self, sample_api_workflow):
        """Test modified inputs"""
        edited = copy.deepcopy(sample_api_workflow)
        edited["3"]["inputs"]["cfg"] = 5.0
        edited["6"]["inputs"]["text"] = "x" * 120
        result = diff_documents(sample_api_workflow, edited)

        assert not result["identical"]
        modified = {entry["node_id"]: entry for entry in result["nodes_modified"]}
        assert modified["3"]["class_type"] == "KSampler"
        assert modified["3"]["changes"] == [{"field": "inputs.cfg", "from": 7.5, "to": 5.0}]
        assert modified["6"]["changes"][0]["to"] == "x" * 100 + "..."
        assert result["nodes_unchanged"] == 5

    def test_added_and_removed(self, sample_api_workflow):
        """Test added and removed nodes"""
        edited = copy.deepcopy(sample_api_workflow)
        del edited["9"]
        edited["10"] = {"class_type": "PreviewImage", "inputs": {"images": ["8", 0]}}
        result = diff_documents(sample_api_workflow, edited)
        assert result["nodes_added"] == [{"node_id": "10", "class_type": "PreviewImage"}]
        assert result["nodes_removed"] == [{"node_id": "9", "class_type": "SaveImage"}]
        assert "1 node(s) added" in result["summary"]


class TestGuiDiff:
    def test_widget_changes(self, sample_gui_workflow):
        """Test widget value changes"""
        edited = copy.deepcopy(sample_gui_workflow)
        edited["nodes"][0]["widgets_values"][2] = 30
        result = diff_documents(sample_gui_workflow, edited)
        assert result["encoding"] == "positional"
        assert result["nodes_modified"] == [
            {
                "node_id": "3",
                "class_type": "KSampler",
                "changes": [{"field": "widgets_values[2]", "from": 20, "to": 30}],
            }
        ]

    def test_structure_changes_reported_once(self, sample_gui_workflow):
        """Test structural changes reported once"""
        edited = copy.deepcopy(sample_gui_workflow)
        edited["nodes"][0]["pos"] = [0, 0]
        result = diff_documents(sample_gui_workflow, edited)
        assert result["nodes_modified"][0]["changes"] == [{"field": "structure", "keys": ["pos"]}]

    def test_named_widgets(self):
        """Test widgets_values mappings"""
        doc_a = {"nodes": [{"id": 1, "type": "VHS_VideoCombine", "widgets_values": {"frame_rate": 8}}]}
        doc_b = {"nodes": [{"id": 1, "type": "VHS_VideoCombine", "widgets_values": {"frame_rate": 24}}]}
        changes = diff_documents(doc_a, doc_b)["nodes_modified"][0]["changes"]
        assert changes == [{"field": "widgets_values.frame_rate", "from": 8, "to": 24}]


class TestMismatchedDocuments:
    def test_encodings_must_match(self, sample_gui_workflow, sample_api_workflow):
        """Test GUI against API is rejected"""
        result = diff_documents(sample_gui_workflow, sample_api_workflow)
        assert result["code"] == "VALIDATION_ERROR"
        assert result["encodings"] == ["positional", "named"]

    def test_unrecognised_documents(self):
        """Test unrecognised documents"""
        result = diff_documents([], [])
        assert result["code"] == "VALIDATION_ERROR"
        assert result["encodings"] == [None, None]
