"""Tests for the runner executor and entry point."""

import io
import json

import pytest

from request_pipeline import HmacTokenVerifier, InMemoryCacheStore
from request_pipeline._internal.clock import ManualClock
from request_pipeline.runner.__main__ import main
from request_pipeline.runner.executor import Executor
from request_pipeline.runner.schema import RequestSchema, RunnerInput

HANDLERS = '''
from request_pipeline import Response


async def whoami(ctx):
    return {"id": ctx.principal.id, "roles": sorted(ctx.principal.roles)}


def health(ctx):
    return Response(status=204)


def echo(ctx):
    return ctx.request.json()


async def crash(ctx):
    raise RuntimeError("hidden detail")


async def cached(ctx):
    return await ctx.cache.get_or_set("hits", lambda: {"fresh": True})
'''


@pytest.fixture
def handler_path(tmp_path):
    path = tmp_path / "handlers.py"
    path.write_text(HANDLERS)
    return str(path)


@pytest.fixture
def runner_clock():
    return ManualClock()


@pytest.fixture
def token(runner_clock):
    return HmacTokenVerifier("runner-secret-0123456789abcdefghijk", clock=runner_clock).issue("alice")


def _input(handler_path, request, **config):
    base = {
        "rate_limit": {"max_requests": 5, "window_seconds": 60},
        "auth": {
            "secret": "runner-secret-0123456789abcdefghijk",
            "principals": [{"id": "alice", "roles": ["admin", "reader"]}],
        },
        "routes": [
            {"path": "/me", "handler": "whoami", "requires_auth": True},
            {"path": "/health", "handler": "health", "rate_limited": False},
            {"method": "POST", "path": "/echo", "handler": "echo"},
            {"path": "/crash", "handler": "crash"},
            {"path": "/admin", "handler": "whoami", "required_role": "root"},
            {"path": "/cached", "handler": "cached"},
        ],
    }
    base.update(config)
    return RunnerInput.model_validate(
        {"config": base, "request": request, "handler_path": handler_path}
    )


class TestExecute:
    """End-to-end tests for Executor.execute()."""

    @pytest.fixture
    def executor(self, runner_clock):
        return Executor(clock=runner_clock)

    async def test_authenticated_request(self, executor, handler_path, token):
        """Test that a valid bearer token reaches the handler."""
        output = await executor.execute(
            _input(
                handler_path,
                {"path": "/me", "headers": {"Authorization": f"Bearer {token}"}},
            )
        )

        assert output.status == 200
        assert output.body == {"id": "alice", "roles": ["admin", "reader"]}
        assert "X-Request-ID" in output.headers

    async def test_missing_token(self, executor, handler_path):
        """Test that a protected route without a token returns 401."""
        output = await executor.execute(_input(handler_path, {"path": "/me"}))

        assert output.status == 401
        assert output.body["error"] == "AuthError"
        assert output.body["details"] == {"reason": "missing_or_malformed"}

    async def test_forbidden(self, executor, handler_path, token):
        """Test that a missing role returns 403."""
        output = await executor.execute(
            _input(
                handler_path,
                {"path": "/admin", "headers": {"Authorization": f"Bearer {token}"}},
            )
        )
        assert output.status == 403

    async def test_handler_response_passthrough(self, executor, handler_path):
        """Test that a handler's own Response is returned as-is."""
        output = await executor.execute(_input(handler_path, {"path": "/health"}))
        assert output.status == 204
        assert output.body is None

    async def test_validation_error(self, executor, handler_path):
        """Test that an invalid JSON body returns 400."""
        output = await executor.execute(
            _input(handler_path, {"method": "POST", "path": "/echo", "body": "{oops"})
        )
        assert output.status == 400
        assert output.body["details"] == {"body": "invalid JSON"}

    async def test_echo(self, executor, handler_path):
        """Test that a JSON body round-trips through the handler."""
        output = await executor.execute(
            _input(handler_path, {"method": "POST", "path": "/echo", "body": '{"a": 1}'})
        )
        assert output.body == {"a": 1}

    async def test_internal_error_hidden(self, executor, handler_path):
        """Test that unexpected exceptions become an opaque 500."""
        output = await executor.execute(_input(handler_path, {"path": "/crash"}))

        assert output.status == 500
        assert "hidden detail" not in json.dumps(output.body)

    async def test_unknown_route(self, executor, handler_path):
        """Test that an unmatched path returns 404."""
        output = await executor.execute(_input(handler_path, {"path": "/nowhere"}))
        assert output.status == 404

    async def test_injected_cache_is_shared(self, handler_path, runner_clock):
        """Test that an injected cache survives across executions."""
        cache = InMemoryCacheStore(clock=runner_clock)
        executor = Executor(clock=runner_clock, cache=cache)

        await executor.execute(_input(handler_path, {"path": "/cached"}))

        assert await cache.get("hits") == {"fresh": True}

    async def test_missing_handler_file(self, executor, tmp_path):
        """Test that an unloadable handler becomes a 500 naming the fault."""
        output = await executor.execute(
            _input(str(tmp_path / "absent.py"), {"path": "/health"})
        )

        assert output.status == 500
        assert output.body["error"] == "HandlerLoadError"

    async def test_build_failure(self, executor, handler_path):
        """Test that a route naming an unknown function becomes a 500."""
        output = await executor.execute(
            _input(handler_path, {"path": "/x"}, routes=[{"path": "/x", "handler": "nope"}])
        )

        assert output.status == 500
        assert output.body["error"] == "PipelineFactoryError"


class TestBuildRequest:
    """Tests for Executor._build_request()."""

    def test_headers_are_case_insensitive(self):
        """Test that request headers can be read in any case."""
        request = Executor._build_request(
            RequestSchema(method="post", path="/x", headers={"authorization": "Bearer t"})
        )

        assert request.method == "POST"
        assert request.headers["Authorization"] == "Bearer t"
        assert request.body == b""


class TestMain:
    """Tests for the command-line entry point."""

    def test_invalid_input(self, monkeypatch, capsys):
        """Test that malformed input yields a 400 output and exit code 1."""
        monkeypatch.setattr("sys.stdin", io.StringIO('{"config": {}}'))

        assert main() == 1

        output = json.loads(capsys.readouterr().out)
        assert output["status"] == 400
        assert output["body"]["error"] == "InvalidRunnerInput"

    def test_successful_run(self, monkeypatch, capsys, handler_path):
        """Test a full run through stdin and stdout."""
        payload = {
            "config": {"routes": [{"path": "/health", "handler": "health"}]},
            "request": {"path": "/health"},
            "handler_path": handler_path,
        }
        monkeypatch.setattr("sys.stdin", io.StringIO(json.dumps(payload)))

        assert main() == 0

        output = json.loads(capsys.readouterr().out)
        assert output["status"] == 204
