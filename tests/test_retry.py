import pytest

from snackbase import NotFoundError, RateLimitError, ServerError, ValidationError
from snackbase.retry import RetryPolicy


@pytest.mark.asyncio
async def test_server_error_exhausts_retries(client, backend, sleeps):
    backend.flaky_failures = 10

    with pytest.raises(ServerError) as exc_info:
        await client.get("/api/v1/flaky")

    assert exc_info.value.status == 500
    assert exc_info.value.message == "Database unavailable"
    assert backend.calls["flaky"] == 4
    assert sleeps == [1.0, 2.0, 4.0]


@pytest.mark.asyncio
async def test_transient_server_error_recovers(client, backend, sleeps):
    backend.flaky_failures = 2
    response = await client.get("/api/v1/flaky")
    assert response.data == {"ok": True}
    assert backend.calls["flaky"] == 3
    assert len(sleeps) == 2


@pytest.mark.asyncio
async def test_rate_limit_honours_retry_after(client, backend, sleeps):
    response = await client.get("/api/v1/limited")
    assert response.status == 200
    assert backend.calls["limited"] == 2
    assert sleeps[0] >= 60


@pytest.mark.asyncio
async def test_validation_error_is_not_retried(client, backend, sleeps):
    with pytest.raises(ValidationError) as exc_info:
        await client.post("/api/v1/users", {"email": "nope"})
    assert exc_info.value.fields["email"] == ["Invalid email format"]
    assert backend.calls["users"] == 1
    assert sleeps == []


@pytest.mark.asyncio
async def test_not_found_is_not_retried(client, backend):
    with pytest.raises(NotFoundError, match="Collection 'posts' not found"):
        await client.get("/api/v1/collections/posts")
    assert backend.calls["collections"] == 1


@pytest.mark.asyncio
async def test_zero_retries_fails_fast(make_client, backend, sleeps):
    client = make_client(max_retries=0)
    backend.flaky_failures = 1
    with pytest.raises(ServerError):
        await client.get("/api/v1/flaky")
    assert backend.calls["flaky"] == 1
    assert sleeps == []


# --- policy in isolation ---

def _policy(**kwargs):
    delays = []

    async def sleep(delay):
        delays.append(delay)

    return RetryPolicy(sleep=sleep, **kwargs), delays


@pytest.mark.asyncio
async def test_backoff_is_capped():
    policy, delays = _policy(max_retries=5, base_delay=1.0, max_delay=5.0)

    async def always_fails():
        raise ServerError()

    with pytest.raises(ServerError):
        await policy.run(always_fails)
    assert delays == [1.0, 2.0, 4.0, 5.0, 5.0]


@pytest.mark.asyncio
async def test_retry_after_exceeds_cap():
    policy, delays = _policy(max_retries=1, base_delay=0.5, max_delay=2.0)
    attempts = []

    async def limited():
        attempts.append(1)
        if len(attempts) == 1:
            raise RateLimitError(retry_after=30)
        return "done"

    assert await policy.run(limited) == "done"
    assert delays == [30]


@pytest.mark.asyncio
async def test_last_error_surfaces_unchanged():
    policy, _ = _policy(max_retries=2, base_delay=0)
    raised = []

    async def fails():
        error = ServerError(f"attempt {len(raised) + 1}")
        raised.append(error)
        raise error

    with pytest.raises(ServerError) as exc_info:
        await policy.run(fails)
    assert exc_info.value is raised[-1]
    assert exc_info.value.message == "attempt 3"


@pytest.mark.asyncio
async def test_non_client_errors_are_not_retried():
    policy, delays = _policy(max_retries=3)
    attempts = []

    async def broken():
        attempts.append(1)
        raise KeyError("oops")

    with pytest.raises(KeyError):
        await policy.run(broken)
    assert len(attempts) == 1
    assert delays == []
