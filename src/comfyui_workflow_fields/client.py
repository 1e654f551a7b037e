"""
ComfyUI API Client

Low-level HTTP client for the collaborators the field engine talks to:
the capability schema (/object_info), catalog listings (/models/<folder>)
and the opaque prompt submission endpoint (/prompt).
"""

import functools
import json
import os
import time
import urllib.parse
import urllib.request
import urllib.error
from typing import Callable, List, Optional, TypeVar, Union

# Retry configuration from environment
RETRY_MAX_ATTEMPTS = int(os.environ.get("COMFYUI_RETRY_ATTEMPTS", "3"))
RETRY_BACKOFF = float(os.environ.get("COMFYUI_RETRY_BACKOFF", "1.0"))
RETRY_MULTIPLIER = float(os.environ.get("COMFYUI_RETRY_MULTIPLIER", "2.0"))

# Retryable error patterns
RETRYABLE_ERRORS = [
    "timed out",
    "connection refused",
    "connection reset",
    "temporary failure",
    "service unavailable",
    "502",
    "503",
    "504",
]

T = TypeVar("T")


def retry(
    max_attempts: int = RETRY_MAX_ATTEMPTS,
    backoff: float = RETRY_BACKOFF,
    multiplier: float = RETRY_MULTIPLIER,
) -> Callable[[Callable[..., T]], Callable[..., T]]:
    """
    Decorator for retrying functions with exponential backoff.

    Args:
        max_attempts: Maximum number of attempts.
        backoff: Initial backoff delay in seconds.
        multiplier: Multiplier for backoff between retries.

    Returns:
        Decorated function with retry logic.
    """

    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        @functools.wraps(func)
        def wrapper(*args, **kwargs) -> T:
            last_error = None
            delay = backoff

            for attempt in range(max_attempts):
                try:
                    result = func(*args, **kwargs)

                    # Error dicts are retried when the message looks transient
                    if isinstance(result, dict) and "error" in result:
                        error_str = str(result["error"]).lower()
                        is_retryable = any(pattern in error_str for pattern in RETRYABLE_ERRORS)

                        if is_retryable and attempt < max_attempts - 1:
                            last_error = result
                            time.sleep(delay)
                            delay *= multiplier
                            continue

                    return result

                except Exception as e:
                    last_error = e
                    error_str = str(e).lower()
                    is_retryable = any(pattern in error_str for pattern in RETRYABLE_ERRORS)

                    if is_retryable and attempt < max_attempts - 1:
                        time.sleep(delay)
                        delay *= multiplier
                        continue

                    raise

            if isinstance(last_error, dict):
                return last_error
            elif last_error:
                return {"error": str(last_error), "retried": max_attempts}
            return {"error": "Max retries exceeded"}

        return wrapper

    return decorator


class ComfyUIClient:
    """HTTP client for ComfyUI API."""

    def __init__(self, base_url: Optional[str] = None):
        self.base_url = base_url or os.environ.get("COMFYUI_URL", "http://localhost:8188")

    @retry()
    def request(
        self,
        endpoint: str,
        method: str = "GET",
        data: Optional[dict] = None,
        timeout: float = 30,
    ) -> Union[dict, list]:
        """Make HTTP request to ComfyUI API with automatic retry."""
        url = f"{self.base_url}{endpoint}"
        req = urllib.request.Request(url, method=method)

        if data:
            req.data = json.dumps(data).encode()
            req.add_header("Content-Type", "application/json")

        try:
            with urllib.request.urlopen(req, timeout=timeout) as resp:
                return json.loads(resp.read())
        except urllib.error.URLError as e:
            return {"error": str(e)}
        except TimeoutError as e:
            return {"error": f"timed out: {e}"}
        except json.JSONDecodeError:
            return {"error": "Invalid JSON response"}

    def get(self, endpoint: str, timeout: float = 30) -> Union[dict, list]:
        """GET request."""
        return self.request(endpoint, "GET", timeout=timeout)

    def post(self, endpoint: str, data: dict, timeout: float = 30) -> Union[dict, list]:
        """POST request."""
        return self.request(endpoint, "POST", data, timeout=timeout)

    def is_available(self) -> bool:
        """Check if ComfyUI is reachable."""
        result = self.get("/system_stats")
        return isinstance(result, dict) and "error" not in result

    def get_object_info(self, node_type: Optional[str] = None, timeout: float = 30) -> dict:
        """Get node capability schema, for one node type or all of them."""
        if node_type:
            return self.get(f"/object_info/{urllib.parse.quote(node_type)}", timeout=timeout)
        return self.get("/object_info", timeout=timeout)

    def list_models(self, folder: str, timeout: float = 30) -> Union[List[str], dict]:
        """List file names in a model folder (checkpoints, loras, vae, input, ...)."""
        return self.get(f"/models/{urllib.parse.quote(folder)}", timeout=timeout)

    def queue_prompt(self, workflow: dict, client_id: str = "comfyui-fields") -> dict:
        """Queue a workflow for execution."""
        return self.post("/prompt", {"prompt": workflow, "client_id": client_id})


# Global client instance
_client: Optional[ComfyUIClient] = None


def get_client() -> ComfyUIClient:
    """Get or create global client instance."""
    global _client
    if _client is None:
        _client = ComfyUIClient()
    return _client


def reset_client():
    """Drop the global client so the next get_client() re-reads COMFYUI_URL."""
    global _client
    _client = None
