import pytest
from fastapi.testclient import TestClient
from jose import jwt
from unittest.mock import AsyncMock, MagicMock

from toolforge.api.deps import get_clients, get_schema_generator, get_trace_logger, get_visualization_service
from toolforge.core import auth
from toolforge.core.auth import get_session_provider
from toolforge.exceptions import NoRecordsError, SchemaGenerationError
from toolforge.main import app
from toolforge.schemas.auth import Identity
from toolforge.schemas.dashboard import DashboardConfig
from toolforge.schemas.tool import ToolSchema
from toolforge.services.schema_generator import SchemaGeneratorService
from toolforge.services.sql_gateway import SqlExecutionGateway
from conftest import FakeSupabase

API = "/api/v1"
JWT_SECRET = "test-jwt-secret"

SCHEMA = {
    "name": "Package Delivery Tracker",
    "description": "Tracks deliveries",
    "purpose": "Know where packages are",
    "fields": [
        {"name": "driver", "type": "text", "description": "Driver name", "required": True},
        {"name": "delivered", "type": "boolean", "description": "Delivered yet"},
        {"name": "status", "type": "select", "options": ["pending", "delivered"]},
    ],
    "sqlSchema": "CREATE TABLE IF NOT EXISTS deliveries (id uuid primary key);",
}


def bearer(user_id="user-1"):
    token = jwt.encode({"sub": user_id, "aud": "authenticated"}, JWT_SECRET, algorithm="HS256")
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture(autouse=True)
def jwt_secret(monkeypatch):
    monkeypatch.setattr(auth.settings, "SUPABASE_JWT_SECRET", JWT_SECRET)
    monkeypatch.setattr(auth.settings, "ALLOW_SESSION_IDENTITY", False)


@pytest.fixture
def provider():
    mock = MagicMock()
    mock.identity = Identity(id="user-1", email="owner@example.com")
    mock.is_loading = False
    return mock


@pytest.fixture
def generator():
    mock = MagicMock()
    mock.generate_tool_schema = AsyncMock(return_value=ToolSchema.model_validate(SCHEMA))
    return mock


@pytest.fixture
def visualization():
    mock = MagicMock()
    mock.suggest = AsyncMock(return_value=DashboardConfig(
        type="bar_chart",
        title="Deliveries per driver",
        configuration={"fields": ["driver"], "layout": {"x": "driver"}},
    ))
    return mock


@pytest.fixture
def overrides(fake_clients, provider, generator, visualization, trace_logger):
    app.dependency_overrides[get_clients] = lambda: fake_clients
    app.dependency_overrides[get_session_provider] = lambda: provider
    app.dependency_overrides[get_schema_generator] = lambda: generator
    app.dependency_overrides[get_visualization_service] = lambda: visualization
    app.dependency_overrides[get_trace_logger] = lambda: trace_logger
    yield app.dependency_overrides
    app.dependency_overrides.clear()


@pytest.fixture
def anonymous(overrides):
    return TestClient(app)


@pytest.fixture
def client(overrides):
    return TestClient(app, headers=bearer("user-1"))


@pytest.fixture
def tool_id(client):
    response = client.post(f"{API}/tools", json=SCHEMA)
    assert response.status_code == 201
    return response.json()["id"]


def test_health(anonymous):
    response = anonymous.get("/")
    assert response.status_code == 200
    assert response.json()["status"] == "operational"


def test_generate_returns_schema(client, generator, fake_clients):
    response = client.post(f"{API}/tools/generate", json={"description": "Track deliveries"})
    assert response.status_code == 200
    assert response.json()["sqlSchema"] == SCHEMA["sqlSchema"]
    generator.generate_tool_schema.assert_awaited_once_with("Track deliveries", fake_clients.token_client)


def test_generated_sql_runs_with_callers_client(overrides, fake_clients, trace_logger):
    fake_clients.token_client = FakeSupabase("token")
    gateway = SqlExecutionGateway(fake_clients)
    service = SchemaGeneratorService(openai_client=MagicMock(), gateway=gateway, trace_logger=trace_logger)
    service._call_llm = AsyncMock(return_value=ToolSchema.model_validate(SCHEMA).model_dump_json(by_alias=True))
    overrides[get_schema_generator] = lambda: service

    response = TestClient(app, headers=bearer("user-1")).post(
        f"{API}/tools/generate", json={"description": "Track deliveries"}
    )

    assert response.status_code == 200
    assert fake_clients.token_client.rpc_calls == [("execute_sql", {"sql": SCHEMA["sqlSchema"]})]
    assert fake_clients.anon_client.rpc_calls == []
    assert fake_clients.released == [fake_clients.token_client]


def test_generate_requires_credentials(anonymous, generator):
    response = anonymous.post(f"{API}/tools/generate", json={"description": "Track deliveries"})
    assert response.status_code == 401
    generator.generate_tool_schema.assert_not_called()


def test_generate_failure_is_reported(client, generator):
    generator.generate_tool_schema.side_effect = SchemaGenerationError("model unavailable")
    response = client.post(f"{API}/tools/generate", json={"description": "Track deliveries"})
    assert response.status_code == 502
    assert response.json()["detail"] == "Error generating tool schema: model unavailable"


def test_signed_in_session_does_not_authorize_anonymous_requests(client, anonymous, tool_id):
    assert anonymous.get(f"{API}/tools").status_code == 401
    assert anonymous.post(f"{API}/tools", json=SCHEMA).status_code == 401
    assert anonymous.delete(f"{API}/tools/{tool_id}").status_code == 401
    assert client.get(f"{API}/tools/{tool_id}").status_code == 200


def test_single_user_mode_uses_session_identity(anonymous, monkeypatch):
    monkeypatch.setattr(auth.settings, "ALLOW_SESSION_IDENTITY", True)
    response = anonymous.post(f"{API}/tools", json=SCHEMA)
    assert response.status_code == 201


def test_single_user_mode_without_session(anonymous, provider, monkeypatch):
    monkeypatch.setattr(auth.settings, "ALLOW_SESSION_IDENTITY", True)
    provider.identity = None
    assert anonymous.get(f"{API}/tools").status_code == 401


def test_session_state(anonymous):
    response = anonymous.get(f"{API}/auth/session")
    assert response.json() == {
        "identity": {"id": "user-1", "email": "owner@example.com"},
        "is_loading": False,
    }


def test_save_and_read_tool(client, tool_id):
    response = client.get(f"{API}/tools/{tool_id}")
    assert response.status_code == 200
    body = response.json()
    assert body["tool"]["name"] == "Package Delivery Tracker"
    assert body["tool"]["owner_id"] == "user-1"
    assert body["tool"]["is_deployed"] is False
    assert [f["name"] for f in body["fields"]] == ["driver", "delivered", "status"]
    assert [f["position"] for f in body["fields"]] == [0, 1, 2]


def test_list_tools_with_search(client, tool_id):
    assert [t["id"] for t in client.get(f"{API}/tools").json()] == [tool_id]
    assert client.get(f"{API}/tools", params={"search": "DELIVERY"}).json()[0]["field_count"] == 3
    assert client.get(f"{API}/tools", params={"search": "gym"}).json() == []


def test_other_users_tool_is_not_found(client, tool_id):
    other = TestClient(app, headers=bearer("user-2"))
    assert other.get(f"{API}/tools/{tool_id}").status_code == 404
    assert other.get(f"{API}/tools").json() == []


def test_unknown_tool_is_not_found(client):
    assert client.get(f"{API}/tools/missing").status_code == 404


def test_malformed_tool_id_is_not_found(client, fake_clients):
    fake_clients.anon_client.fail("tools", "select", 'invalid input syntax for type uuid: "abc"', code="22P02")
    response = client.get(f"{API}/tools/abc")
    assert response.status_code == 404


def test_token_client_is_released_after_request(client, fake_clients):
    fake_clients.token_client = FakeSupabase("token")
    client.get(f"{API}/tools")
    assert fake_clients.released == [fake_clients.token_client]


def test_dashboard_suggestion(client, tool_id, visualization):
    client.post(f"{API}/tools/{tool_id}/records", json={"data": {"driver": "Ana"}})

    response = client.post(f"{API}/tools/{tool_id}/dashboard")

    assert response.status_code == 200
    assert response.json()["type"] == "bar_chart"
    tool, fields, records = visualization.suggest.await_args.args
    assert tool.id == tool_id
    assert [f.name for f in fields] == ["driver", "delivered", "status"]
    assert [r.data for r in records] == [{"driver": "Ana"}]


def test_dashboard_without_records(client, tool_id, visualization):
    visualization.suggest.side_effect = NoRecordsError()
    response = client.post(f"{API}/tools/{tool_id}/dashboard")
    assert response.status_code == 400


def test_update_and_deploy_tool(client, tool_id, trace_logger):
    response = client.patch(f"{API}/tools/{tool_id}", json={"name": "Deliveries"})
    assert response.json()["name"] == "Deliveries"

    response = client.post(f"{API}/tools/{tool_id}/deploy")
    assert response.json()["is_deployed"] is True
    response = client.post(f"{API}/tools/{tool_id}/deploy")
    assert response.json()["is_deployed"] is True

    events = [call.args[0] for call in trace_logger.log_event.await_args_list]
    assert events.count("tool_deployed") == 1


def test_form_definition(client, tool_id):
    form = client.get(f"{API}/tools/{tool_id}/form").json()
    assert form["title"] == "Add Data"
    assert [c["kind"] for c in form["controls"]] == ["text", "boolean", "select"]
    assert form["controls"][2]["options"] == ["pending", "delivered"]


def test_record_lifecycle(client, tool_id):
    records_url = f"{API}/tools/{tool_id}/records"

    response = client.post(records_url, json={"data": {"driver": "Ana", "delivered": "true", "status": "pending"}})
    assert response.status_code == 201
    record_id = response.json()["id"]

    records = client.get(records_url).json()
    assert records[0]["data"] == {"driver": "Ana", "delivered": True, "status": "pending"}

    form = client.get(f"{API}/tools/{tool_id}/form", params={"record_id": record_id}).json()
    assert form["title"] == "Edit Data"
    assert form["controls"][0]["value"] == "Ana"

    response = client.put(f"{records_url}/{record_id}", json={"data": {"driver": "Ben", "delivered": False}})
    assert response.status_code == 200
    assert response.json()["data"] == {"driver": "Ben", "delivered": False}

    table = client.get(f"{API}/tools/{tool_id}/table").json()
    assert [c["header"] for c in table["columns"]] == ["Driver", "Delivered", "Status", "Actions"]
    assert table["rows"][0]["cells"] == {"data.driver": "Ben", "data.delivered": "No", "data.status": "-"}

    assert client.delete(f"{records_url}/{record_id}").status_code == 204
    assert client.get(records_url).json() == []
    assert client.delete(f"{records_url}/{record_id}").status_code == 404


def test_required_field_is_enforced(client, tool_id):
    response = client.post(f"{API}/tools/{tool_id}/records", json={"data": {"driver": "  "}})
    assert response.status_code == 422
    assert response.json()["detail"] == "Missing required fields: driver"


def test_form_for_unknown_record(client, tool_id):
    response = client.get(f"{API}/tools/{tool_id}/form", params={"record_id": "missing"})
    assert response.status_code == 404


def test_export(client, tool_id):
    client.post(f"{API}/tools/{tool_id}/records", json={"data": {"driver": "Ana"}})

    response = client.get(f"{API}/tools/{tool_id}/export")

    assert response.status_code == 200
    assert response.headers["content-disposition"] == 'attachment; filename="package-delivery-tracker-data.json"'
    assert response.json() == [{"driver": "Ana"}]


def test_delete_tool(client, tool_id, fake_clients):
    client.post(f"{API}/tools/{tool_id}/records", json={"data": {"driver": "Ana"}})

    assert client.delete(f"{API}/tools/{tool_id}").status_code == 204

    assert client.get(f"{API}/tools/{tool_id}").status_code == 404
    assert fake_clients.anon_client.tables["tool_records"] == []


def test_bearer_token_scopes_backend_client(client, fake_clients):
    headers = bearer("user-1")

    response = client.get(f"{API}/tools", headers=headers)

    assert response.status_code == 200
    assert fake_clients.tokens[-1] == headers["Authorization"].split(" ", 1)[1]


def test_logout(client, fake_clients):
    assert client.post(f"{API}/auth/logout").status_code == 204
    fake_clients.anon_client.auth.sign_out.assert_awaited_once()
