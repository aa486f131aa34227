"""Integration tests for the user HTTP API.

A real UserHTTPServer is started on an ephemeral port and exercised with
httpx over the network, backed by the core UserService and an in-memory
store.
"""

import asyncio
import json
import uuid

import httpx
import pytest

from userhub.adapters.http.api import UserAPI, parse_int, parse_user_id
from userhub.adapters.http.server import UserHTTPServer
from userhub.core.errors import internal_error
from userhub.core.models import User
from userhub.core.user_service import UserService
from userhub.tests.fakes import FakeUserServicePort, FakeUserStorePort

# ============================================================================
# Test Fixtures
# ============================================================================


@pytest.fixture
def store() -> FakeUserStorePort:
    return FakeUserStorePort()


async def start_server(service, request_timeout: float = 5.0) -> UserHTTPServer:
    server = UserHTTPServer(
        api=UserAPI(service),
        host="127.0.0.1",
        port=0,
        request_timeout=request_timeout,
    )
    await server.start()
    return server


@pytest.fixture
async def client(store: FakeUserStorePort) -> httpx.AsyncClient:
    """HTTP client for a live server over the real user service."""
    server = await start_server(UserService(store=store))
    try:
        async with httpx.AsyncClient(
            base_url=f"http://127.0.0.1:{server.port}", timeout=10.0
        ) as client:
            yield client
    finally:
        await server.stop()


async def create(client: httpx.AsyncClient, name: str, email: str) -> dict:
    response = await client.post("/api/v1/users", json={"name": name, "email": email})
    assert response.status_code == 201
    return response.json()


# ============================================================================
# Create
# ============================================================================


@pytest.mark.asyncio
async def test_create_returns_201_with_public_fields(client: httpx.AsyncClient) -> None:
    response = await client.post(
        "/api/v1/users", json={"name": "John", "email": "john@example.com"}
    )

    assert response.status_code == 201
    body = response.json()
    assert set(body) == {"id", "name", "email"}
    assert body["name"] == "John"
    assert body["email"] == "john@example.com"
    assert str(uuid.UUID(body["id"])) == body["id"]


@pytest.mark.asyncio
async def test_create_invalid_email_is_400(
    client: httpx.AsyncClient, store: FakeUserStorePort
) -> None:
    response = await client.post(
        "/api/v1/users", json={"name": "John", "email": "not-an-email"}
    )

    assert response.status_code == 400
    error = response.json()["error"]
    assert error["kind"] == "VALIDATION_ERROR"
    assert error["code"] == "invalid_email"
    assert store.calls == []


@pytest.mark.asyncio
async def test_create_missing_name_is_400(client: httpx.AsyncClient) -> None:
    response = await client.post("/api/v1/users", json={"email": "john@example.com"})

    assert response.status_code == 400
    assert response.json()["error"]["code"] == "invalid_name"


@pytest.mark.asyncio
async def test_create_duplicate_email_is_409(client: httpx.AsyncClient) -> None:
    await create(client, "John", "john@example.com")

    response = await client.post(
        "/api/v1/users", json={"name": "Other", "email": "john@example.com"}
    )

    assert response.status_code == 409
    assert response.json()["error"]["kind"] == "CONFLICT_ERROR"


@pytest.mark.asyncio
@pytest.mark.parametrize("body", [b"{not json", b"[1, 2, 3]", b'"string"'])
async def test_create_malformed_body_is_400(
    client: httpx.AsyncClient, body: bytes
) -> None:
    response = await client.post(
        "/api/v1/users", content=body, headers={"Content-Type": "application/json"}
    )

    assert response.status_code == 400
    assert response.json()["error"]["message"] == "Invalid JSON"


@pytest.mark.asyncio
async def test_non_string_field_is_400(client: httpx.AsyncClient) -> None:
    response = await client.post(
        "/api/v1/users", json={"name": 42, "email": "john@example.com"}
    )

    assert response.status_code == 400


# ============================================================================
# Read, Update, Delete
# ============================================================================


@pytest.mark.asyncio
async def test_get_user(client: httpx.AsyncClient) -> None:
    created = await create(client, "John", "john@example.com")

    response = await client.get(f"/api/v1/users/{created['id']}")

    assert response.status_code == 200
    assert response.json() == created


@pytest.mark.asyncio
async def test_get_unknown_user_is_404(client: httpx.AsyncClient) -> None:
    response = await client.get(f"/api/v1/users/{uuid.uuid4()}")

    assert response.status_code == 404
    assert response.json()["error"]["kind"] == "NOT_FOUND_ERROR"


@pytest.mark.asyncio
@pytest.mark.parametrize("method", ["GET", "PUT", "DELETE"])
async def test_invalid_id_is_400(
    client: httpx.AsyncClient, store: FakeUserStorePort, method: str
) -> None:
    response = await client.request(
        method, "/api/v1/users/not-a-uuid", json={} if method == "PUT" else None
    )

    assert response.status_code == 400
    assert response.json()["error"]["message"] == "Invalid user ID"
    assert store.calls == []


@pytest.mark.asyncio
async def test_partial_update(client: httpx.AsyncClient) -> None:
    created = await create(client, "John", "john@example.com")

    response = await client.put(
        f"/api/v1/users/{created['id']}", json={"name": "Jane", "email": ""}
    )

    assert response.status_code == 200
    assert response.json() == {
        "id": created["id"],
        "name": "Jane",
        "email": "john@example.com",
    }


@pytest.mark.asyncio
async def test_update_to_taken_email_is_409(client: httpx.AsyncClient) -> None:
    await create(client, "John", "john@example.com")
    other = await create(client, "Other", "other@example.com")

    response = await client.put(
        f"/api/v1/users/{other['id']}", json={"email": "john@example.com"}
    )

    assert response.status_code == 409


@pytest.mark.asyncio
async def test_update_invalid_email_is_400(client: httpx.AsyncClient) -> None:
    created = await create(client, "John", "john@example.com")

    response = await client.put(
        f"/api/v1/users/{created['id']}", json={"email": "broken"}
    )

    assert response.status_code == 400


@pytest.mark.asyncio
async def test_delete_then_get(client: httpx.AsyncClient) -> None:
    created = await create(client, "John", "john@example.com")

    deleted = await client.delete(f"/api/v1/users/{created['id']}")
    again = await client.delete(f"/api/v1/users/{created['id']}")
    fetched = await client.get(f"/api/v1/users/{created['id']}")

    assert deleted.status_code == 204
    assert deleted.content == b""
    assert again.status_code == 404
    assert fetched.status_code == 404


# ============================================================================
# List
# ============================================================================


@pytest.mark.asyncio
async def test_list_defaults(client: httpx.AsyncClient) -> None:
    for i in range(3):
        await create(client, f"User {i}", f"u{i}@example.com")

    response = await client.get("/api/v1/users")

    assert response.status_code == 200
    body = response.json()
    assert body["limit"] == 10
    assert body["offset"] == 0
    assert body["total"] == 3
    assert len(body["users"]) == 3


@pytest.mark.asyncio
async def test_list_bad_parameters_fall_back_to_defaults(
    client: httpx.AsyncClient,
) -> None:
    response = await client.get("/api/v1/users?limit=abc&offset=-4")

    assert response.status_code == 200
    body = response.json()
    assert body["limit"] == 10
    assert body["offset"] == 0


@pytest.mark.asyncio
async def test_list_paging(client: httpx.AsyncClient) -> None:
    for i in range(3):
        await create(client, f"User {i}", f"u{i}@example.com")

    response = await client.get("/api/v1/users", params={"limit": 2, "offset": 2})

    body = response.json()
    assert body["total"] == 1
    assert len(body["users"]) == 1


@pytest.mark.asyncio
async def test_list_oversized_limit_is_400(
    client: httpx.AsyncClient, store: FakeUserStorePort
) -> None:
    response = await client.get("/api/v1/users?limit=100000000000000000000")

    assert response.status_code == 400
    assert response.json()["error"]["code"] == "invalid_page"
    assert not any(call[0] == "list" for call in store.calls)


# ============================================================================
# Health, Routing, Failures
# ============================================================================


@pytest.mark.asyncio
async def test_health(client: httpx.AsyncClient) -> None:
    response = await client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "healthy"}


@pytest.mark.asyncio
async def test_unknown_route_is_404(client: httpx.AsyncClient) -> None:
    response = await client.get("/api/v2/users")

    assert response.status_code == 404
    assert response.json()["error"]["code"] == "route_not_found"


async def read_response(reader: asyncio.StreamReader) -> tuple[bytes, bytes]:
    head = await reader.readuntil(b"\r\n\r\n")
    length = 0
    for line in head.split(b"\r\n"):
        name, _, value = line.partition(b":")
        if name.strip().lower() == b"content-length":
            length = int(value)
    return head, await reader.readexactly(length)


@pytest.mark.asyncio
async def test_unknown_route_keeps_connection_alive() -> None:
    server = await start_server(UserService(store=FakeUserStorePort()))
    try:
        reader, writer = await asyncio.open_connection("127.0.0.1", server.port)
        request = b"GET /api/v2/users HTTP/1.1\r\nHost: localhost\r\n\r\n"
        try:
            statuses = []
            for _ in range(2):
                writer.write(request)
                await writer.drain()
                head, body = await asyncio.wait_for(read_response(reader), 5.0)
                statuses.append(head.split(b"\r\n", 1)[0])
                assert json.loads(body)["error"]["code"] == "route_not_found"
        finally:
            writer.close()
            await writer.wait_closed()
    finally:
        await server.stop()

    assert statuses == [b"HTTP/1.1 404 Not Found"] * 2


@pytest.mark.asyncio
async def test_internal_error_hides_details(
    client: httpx.AsyncClient, store: FakeUserStorePort
) -> None:
    store.set_failure("list", internal_error("list failed", cause=OSError("secret path")))

    response = await client.get("/api/v1/users")

    assert response.status_code == 500
    error = response.json()["error"]
    assert error["kind"] == "INTERNAL_ERROR"
    assert error["message"] == "Internal server error"
    assert "secret" not in response.text


@pytest.mark.asyncio
async def test_unexpected_exception_is_500() -> None:
    service = FakeUserServicePort()
    service.error = RuntimeError("boom")
    server = await start_server(service)
    try:
        async with httpx.AsyncClient(
            base_url=f"http://127.0.0.1:{server.port}", timeout=10.0
        ) as client:
            response = await client.get("/api/v1/users")
    finally:
        await server.stop()

    assert response.status_code == 500
    assert "boom" not in response.text


@pytest.mark.asyncio
async def test_request_timeout_cancels_and_returns_500() -> None:
    store = FakeUserStorePort()
    user = User.new("John", "john@example.com")
    store.add_user(user)
    store.block("get_by_id")
    server = await start_server(UserService(store=store), request_timeout=0.2)
    try:
        async with httpx.AsyncClient(
            base_url=f"http://127.0.0.1:{server.port}", timeout=10.0
        ) as client:
            response = await client.put(
                f"/api/v1/users/{user.id}", json={"name": "Jane"}
            )
    finally:
        await server.stop()

    assert response.status_code == 500
    assert store.updated_users == []
    assert store.users[user.id].name == "John"


def test_rejects_non_positive_timeout() -> None:
    with pytest.raises(ValueError):
        UserHTTPServer(api=UserAPI(FakeUserServicePort()), request_timeout=0)


# ============================================================================
# Request Parsing Helpers
# ============================================================================


def test_parse_user_id_canonicalizes() -> None:
    raw = "6F9619FF-8B86-D011-B42D-00C04FC964FF"
    assert parse_user_id(raw) == raw.lower()
    assert parse_user_id("nope") is None


@pytest.mark.parametrize(
    "values,expected",
    [(None, 0), ([], 0), (["25"], 25), (["x"], 0), (["-3"], -3)],
)
def test_parse_int(values, expected: int) -> None:
    assert parse_int(values) == expected
