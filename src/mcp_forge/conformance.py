"""Black-box conformance check of a running MCP server.

The validator issues a handful of sequential HTTP requests against a server
produced by ``mcp-forge`` and checks the response shapes of the wire
contract. Failures are recorded as ``CheckResult(passed=False)``; the
validator itself never raises for server or network problems.
"""

import base64
import logging

import httpx
from pydantic import BaseModel

from mcp_forge.generator.ir import RESOURCE_PREFIX, TOOL_PREFIX

logger = logging.getLogger(__name__)

AUTH_SCHEMES = ("auto", "basic")
TOOL_SAMPLE_BODY = {"test": True}

ROOT_CHECK = "Root endpoint"
RESOURCE_CHECK = "Resource endpoint"
TOOL_CHECK = "Tool endpoint"
AUTH_CHECK = "Authentication"
CONNECTION_CHECK = "Connection"


class CheckResult(BaseModel):
    test: str
    passed: bool
    message: str = ""


class ConformanceReport(BaseModel):
    success: bool
    results: list[CheckResult] = []

    @property
    def failures(self) -> list[CheckResult]:
        return [r for r in self.results if not r.passed]


def _is_str_list(value) -> bool:
    return isinstance(value, list) and all(isinstance(v, str) for v in value)


def _envelope_ok(body, key: str) -> bool:
    """``{success: bool, <key>: {id: str, content: [...]}}``"""
    if not isinstance(body, dict) or not isinstance(body.get("success"), bool):
        return False
    inner = body.get(key)
    return (
        isinstance(inner, dict)
        and isinstance(inner.get("id"), str)
        and isinstance(inner.get("content"), list)
    )


class ConformanceValidator:
    """Checks a running server against the MCP wire contract.

    ``auth_scheme="auto"`` sends the key both as ``X-API-Key`` and as a
    bearer token, which covers header API keys and Bearer auth.
    ``auth_scheme="basic"`` sends ``Authorization: Basic base64(api_key)``
    where ``api_key`` is ``user:password``.
    """

    def __init__(
        self,
        url: str,
        api_key: str | None = None,
        timeout: float = 10.0,
        auth_scheme: str = "auto",
        transport: httpx.BaseTransport | None = None,
    ):
        if auth_scheme not in AUTH_SCHEMES:
            raise ValueError(f"auth_scheme must be one of {', '.join(AUTH_SCHEMES)}, got {auth_scheme!r}")
        self.base_url = url.rstrip("/")
        self.api_key = api_key
        self.timeout = timeout
        self.auth_scheme = auth_scheme
        self.transport = transport

    def auth_headers(self) -> dict[str, str]:
        if not self.api_key:
            return {}
        if self.auth_scheme == "basic":
            token = base64.b64encode(self.api_key.encode("utf-8")).decode("ascii")
            return {"Authorization": f"Basic {token}"}
        return {"X-API-Key": self.api_key, "Authorization": f"Bearer {self.api_key}"}

    def run(self) -> ConformanceReport:
        """Run every check in order and return the collected results."""
        results: list[CheckResult] = []
        logger.info("Validating MCP server at %s", self.base_url)
        with httpx.Client(timeout=self.timeout, transport=self.transport) as client:
            try:
                root = client.get(self.base_url + "/")
            except (httpx.HTTPError, httpx.InvalidURL) as e:
                results.append(CheckResult(
                    test=CONNECTION_CHECK, passed=False, message=f"Could not connect to server: {e}",
                ))
                return self._report(results)

            root_result, capabilities = self._check_root(root)
            results.append(root_result)
            if capabilities is None:
                return self._report(results)

            resources = capabilities["resources"]
            tools = capabilities["tools"]
            results.append(self._check_resource(client, resources))
            results.append(self._check_tool(client, tools))
            results.append(self._check_auth(client, resources, tools))
        return self._report(results)

    def _report(self, results: list[CheckResult]) -> ConformanceReport:
        for r in results:
            logger.debug("%s %s: %s", "PASS" if r.passed else "FAIL", r.test, r.message)
        return ConformanceReport(success=all(r.passed for r in results), results=results)

    # -- checks ---------------------------------------------------------------

    def _check_root(self, response: httpx.Response) -> tuple[CheckResult, dict | None]:
        if not response.is_success:
            return CheckResult(
                test=ROOT_CHECK, passed=False, message=f"HTTP {response.status_code}: {response.reason_phrase}",
            ), None
        try:
            body = response.json()
        except ValueError:
            return CheckResult(test=ROOT_CHECK, passed=False, message="Response is not JSON"), None

        capabilities = body.get("capabilities") if isinstance(body, dict) else None
        if (
            not isinstance(body, dict)
            or not isinstance(body.get("name"), str)
            or not isinstance(body.get("version"), str)
            or not isinstance(capabilities, dict)
            or not _is_str_list(capabilities.get("resources"))
            or not _is_str_list(capabilities.get("tools"))
        ):
            return CheckResult(
                test=ROOT_CHECK, passed=False, message="Missing required fields (name, version, capabilities)",
            ), None
        return CheckResult(
            test=ROOT_CHECK, passed=True, message=f"Server: {body['name']} v{body['version']}",
        ), capabilities

    def _check_resource(self, client: httpx.Client, resources: list[str]) -> CheckResult:
        if not resources:
            return CheckResult(test=RESOURCE_CHECK, passed=True, message="No resources to test")
        path = resources[0]
        try:
            response = client.get(self.base_url + RESOURCE_PREFIX + path, headers=self.auth_headers())
        except httpx.HTTPError as e:
            return CheckResult(test=RESOURCE_CHECK, passed=False, message=f"Error accessing resource: {e}")
        return self._check_envelope(RESOURCE_CHECK, response, "data", f"Successfully accessed resource: {path}")

    def _check_tool(self, client: httpx.Client, tools: list[str]) -> CheckResult:
        if not tools:
            return CheckResult(test=TOOL_CHECK, passed=True, message="No tools to test")
        path = tools[0]
        try:
            response = client.post(
                self.base_url + TOOL_PREFIX + path, json=TOOL_SAMPLE_BODY, headers=self.auth_headers(),
            )
        except httpx.HTTPError as e:
            return CheckResult(test=TOOL_CHECK, passed=False, message=f"Error calling tool: {e}")
        return self._check_envelope(TOOL_CHECK, response, "result", f"Successfully called tool: {path}")

    def _check_envelope(self, test: str, response: httpx.Response, key: str, ok_message: str) -> CheckResult:
        if not response.is_success:
            return CheckResult(test=test, passed=False, message=f"HTTP {response.status_code}: {response.reason_phrase}")
        try:
            body = response.json()
        except ValueError:
            return CheckResult(test=test, passed=False, message="Response is not JSON")
        if not _envelope_ok(body, key):
            kind = "resource" if key == "data" else "tool"
            return CheckResult(test=test, passed=False, message=f"Invalid {kind} response format")
        return CheckResult(test=test, passed=True, message=ok_message)

    def _check_auth(self, client: httpx.Client, resources: list[str], tools: list[str]) -> CheckResult:
        if not self.api_key:
            return CheckResult(
                test=AUTH_CHECK, passed=True, message="No API key provided, skipping authentication test",
            )
        # Tools are called at most once per run
        if not resources:
            message = (
                "No resources to test, skipping authentication test" if tools
                else "No endpoints available to test authentication"
            )
            return CheckResult(test=AUTH_CHECK, passed=True, message=message)
        try:
            response = client.get(self.base_url + RESOURCE_PREFIX + resources[0])
        except httpx.HTTPError as e:
            return CheckResult(test=AUTH_CHECK, passed=False, message=f"Error testing authentication: {e}")
        if response.status_code == 401:
            return CheckResult(test=AUTH_CHECK, passed=True, message="Correctly rejected unauthenticated request")
        return CheckResult(test=AUTH_CHECK, passed=False, message=f"Expected 401, got {response.status_code}")
