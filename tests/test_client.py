"""
Tests for the ComfyUI HTTP client and its retry decorator
"""

import json
import urllib.error
from unittest.mock import MagicMock, patch

import pytest

from comfyui_workflow_fields import client as client_module
from comfyui_workflow_fields.client import ComfyUIClient, get_client, reset_client, retry


def _response(payload):
    resp = MagicMock()
    resp.read.return_value = json.dumps(payload).encode()
    resp.__enter__.return_value = resp
    return resp


@pytest.fixture(autouse=True)
def no_sleep():
    with patch.object(client_module.time, "sleep") as sleep:
        yield sleep


class TestRetry:
    def test_success_first_try(self):
        """Test no retry on success"""
        calls = []

        @retry(max_attempts=3, backoff=0.1)
        def fetch():
            calls.append(1)
            return {"ok": True}

        assert fetch() == {"ok": True}
        assert len(calls) == 1

    def test_transient_error_dict_is_retried(self, no_sleep):
        """Test transient errors retried with backoff"""
        results = iter([{"error": "Connection refused"}, {"error": "503 Service Unavailable"}, ["a.safetensors"]])

        @retry(max_attempts=3, backoff=0.5, multiplier=2)
        def fetch():
            return next(results)

        assert fetch() == ["a.safetensors"]
        assert [c.args[0] for c in no_sleep.call_args_list] == [0.5, 1.0]

    def test_permanent_error_returned_immediately(self, no_sleep):
        """Test permanent errors are not retried"""
        @retry(max_attempts=3)
        def fetch():
            return {"error": "HTTP Error 404: Not Found"}

        assert fetch() == {"error": "HTTP Error 404: Not Found"}
        no_sleep.assert_not_called()

    def test_last_transient_error_is_returned(self):
        """Test last transient error returned after the final attempt"""
        @retry(max_attempts=2, backoff=0)
        def fetch():
            return {"error": "timed out"}

        assert fetch() == {"error": "timed out"}

    def test_exceptions_reraised(self):
        """Test exceptions propagate"""
        @retry(max_attempts=2, backoff=0)
        def fetch():
            raise RuntimeError("connection reset by peer")

        with pytest.raises(RuntimeError):
            fetch()


class TestComfyUIClient:
    def test_get_object_info(self):
        """Test /object_info request"""
        with patch("urllib.request.urlopen", return_value=_response({"KSampler": {}})) as urlopen:
            result = ComfyUIClient("http://comfy:8188").get_object_info(timeout=5)
        assert result == {"KSampler": {}}
        request = urlopen.call_args[0][0]
        assert request.full_url == "http://comfy:8188/object_info"
        assert urlopen.call_args[1]["timeout"] == 5

    def test_list_models(self):
        """Test /models/<folder> request"""
        with patch("urllib.request.urlopen", return_value=_response(["a.safetensors"])) as urlopen:
            result = ComfyUIClient("http://comfy:8188").list_models("loras")
        assert result == ["a.safetensors"]
        assert urlopen.call_args[0][0].full_url == "http://comfy:8188/models/loras"

    def test_queue_prompt_posts_json(self):
        """Test /prompt POST body"""
        with patch("urllib.request.urlopen", return_value=_response({"prompt_id": "p1"})) as urlopen:
            result = ComfyUIClient("http://comfy:8188").queue_prompt({"3": {"class_type": "KSampler", "inputs": {}}})
        assert result == {"prompt_id": "p1"}
        request = urlopen.call_args[0][0]
        assert request.get_method() == "POST"
        body = json.loads(request.data)
        assert body["client_id"] == "comfyui-fields"
        assert body["prompt"]["3"]["class_type"] == "KSampler"

    def test_unreachable_server_returns_error(self):
        """Test unreachable server"""
        error = urllib.error.URLError("Connection refused")
        with patch("urllib.request.urlopen", side_effect=error) as urlopen:
            result = ComfyUIClient("http://comfy:8188").get_object_info()
        assert "error" in result
        assert urlopen.call_count == client_module.RETRY_MAX_ATTEMPTS

    def test_is_available(self):
        """Test availability check"""
        with patch("urllib.request.urlopen", return_value=_response({"system": {}})):
            assert ComfyUIClient().is_available()


class TestGlobalClient:
    def test_reset_rereads_url(self, monkeypatch):
        """Test reset_client picks up a new COMFYUI_URL"""
        monkeypatch.setenv("COMFYUI_URL", "http://first:8188")
        reset_client()
        assert get_client().base_url == "http://first:8188"
        monkeypatch.setenv("COMFYUI_URL", "http://second:8188")
        assert get_client().base_url == "http://first:8188"
        reset_client()
        assert get_client().base_url == "http://second:8188"
        reset_client()
