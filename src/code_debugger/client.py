"""
Client for the remote execution/repair service.

Both endpoints take and return JSON. Any failure to reach the service or
to make sense of its reply is raised as TransportError; a reply that
reports a failing program is a normal response.
"""

from dataclasses import dataclass, field
from typing import Any, Optional, Tuple

import httpx

from code_debugger.config import DebuggerConfig
from code_debugger.logging import get_logger
from code_debugger.state import Patch

logger = get_logger(__name__)

NO_ERROR = "NONE"
REPAIR_SUCCESS = "SUCCESS"


class TransportError(Exception):
    """Raised when a service call fails or its response cannot be parsed."""

    def __init__(self, operation: str, message: str):
        self.operation = operation
        super().__init__(f"{operation}: {message}")


@dataclass(frozen=True)
class RunResponse:
    """Reply from the run endpoint."""

    stdout: str = ""
    stderr: str = ""
    error_type: str = NO_ERROR

    @property
    def succeeded(self) -> bool:
        return self.error_type == NO_ERROR

    @property
    def combined_output(self) -> str:
        """stdout, followed by stderr on a new line when there is any."""
        if self.stderr:
            return self.stdout + "\n" + self.stderr
        return self.stdout

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "RunResponse":
        return cls(
            stdout=_text(data.get("stdout")),
            stderr=_text(data.get("stderr")),
            error_type=_text(data.get("error_type")),
        )


@dataclass(frozen=True)
class RepairResponse:
    """Reply from the repair endpoint."""

    final_code: str = ""
    changes: Tuple[Patch, ...] = field(default_factory=tuple)
    last_stdout: str = ""
    final_status: str = ""

    @property
    def succeeded(self) -> bool:
        return self.final_status == REPAIR_SUCCESS

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "RepairResponse":
        parsed_error = data.get("parsed_error") or {}
        if not isinstance(parsed_error, dict):
            raise ValueError("parsed_error must be an object")
        last_iteration = parsed_error.get("last_iteration") or {}
        if not isinstance(last_iteration, dict):
            raise ValueError("parsed_error.last_iteration must be an object")

        raw_changes = data.get("changes") or []
        if not isinstance(raw_changes, list):
            raise ValueError("changes must be a list")
        patches = [Patch.from_dict(item) for item in raw_changes]
        # Stable: keeps the service's order within one iteration
        patches.sort(key=lambda p: p.iteration)

        return cls(
            final_code=_text(data.get("final_code")),
            changes=tuple(patches),
            last_stdout=_text(last_iteration.get("stdout")),
            final_status=_text(parsed_error.get("final_status")),
        )


def _text(value: Any) -> str:
    if value is None:
        return ""
    return str(value)


class ExecutionServiceClient:
    """
    Async HTTP client for the run and repair endpoints.

    Uses one httpx.AsyncClient for the client's lifetime. A client passed in
    by the caller is used as-is and not closed here.
    """

    def __init__(
        self,
        run_url: str,
        repair_url: str,
        timeout_seconds: Optional[float] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        """
        Initialize the client.

        Args:
            run_url: Full URL of the run endpoint
            repair_url: Full URL of the repair endpoint
            timeout_seconds: Per-request timeout; None waits indefinitely
            http_client: Pre-built client (tests inject a MockTransport here)
        """
        self.run_url = run_url
        self.repair_url = repair_url
        self.timeout_seconds = timeout_seconds
        self._owns_client = http_client is None
        self._http = http_client or httpx.AsyncClient(
            timeout=httpx.Timeout(timeout_seconds),
            headers={"Content-Type": "application/json"},
        )

        logger.info(
            "ExecutionServiceClient initialized",
            run_url=run_url,
            repair_url=repair_url,
            timeout=timeout_seconds,
        )

    @classmethod
    def from_config(
        cls,
        config: DebuggerConfig,
        http_client: Optional[httpx.AsyncClient] = None,
    ) -> "ExecutionServiceClient":
        return cls(
            run_url=config.run_url,
            repair_url=config.repair_url,
            timeout_seconds=config.service.timeout_seconds,
            http_client=http_client,
        )

    async def run(self, code: str) -> RunResponse:
        """
        Execute code once.

        Raises:
            TransportError: If the call fails or the reply is malformed
        """
        data = await self._post("run", self.run_url, {"code": code})
        try:
            return RunResponse.from_dict(data)
        except (ValueError, TypeError) as e:
            raise TransportError("run", f"malformed response: {e}") from e

    async def repair(self, code: str, prompt: str, max_iterations: int) -> RepairResponse:
        """
        Ask the service to repair code toward the given instructions.

        Raises:
            TransportError: If the call fails or the reply is malformed
        """
        payload = {
            "code": code,
            "prompt": prompt,
            "max_iterations": str(max_iterations),
        }
        data = await self._post("repair", self.repair_url, payload)
        try:
            return RepairResponse.from_dict(data)
        except (ValueError, KeyError, TypeError) as e:
            raise TransportError("repair", f"malformed response: {e}") from e

    async def _post(self, operation: str, url: str, payload: dict[str, Any]) -> dict[str, Any]:
        try:
            response = await self._http.post(url, json=payload)
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPStatusError as e:
            raise TransportError(
                operation, f"service returned HTTP {e.response.status_code}"
            ) from e
        except httpx.HTTPError as e:
            raise TransportError(operation, f"request failed: {e!r}") from e
        except ValueError as e:
            raise TransportError(operation, f"invalid JSON: {e}") from e

        if not isinstance(data, dict):
            raise TransportError(operation, "response is not a JSON object")

        return data

    async def aclose(self) -> None:
        if self._owns_client:
            await self._http.aclose()

    async def __aenter__(self) -> "ExecutionServiceClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()
