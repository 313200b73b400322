import pytest

from toolforge.exceptions import SqlExecutionError
from toolforge.services.sql_gateway import SqlExecutionGateway, requires_privileged
from conftest import FakeSupabase


@pytest.mark.parametrize("sql, expected", [
    ('CREATE EXTENSION IF NOT EXISTS "uuid-ossp";', True),
    ("create   table t (id int); create extension pgcrypto;", True),
    ("CREATE TABLE t (id int);", False),
    ("-- extension\nCREATE TABLE t (id int);", False),
])
def test_requires_privileged(sql, expected):
    assert requires_privileged(sql) is expected


@pytest.mark.asyncio
async def test_plain_sql_uses_shared_client(fake_clients, trace_logger):
    gateway = SqlExecutionGateway(fake_clients, trace_logger=trace_logger)
    await gateway.execute_sql("CREATE TABLE t (id int);")

    assert fake_clients.anon_client.rpc_calls == [("execute_sql", {"sql": "CREATE TABLE t (id int);"})]
    assert fake_clients.service_client.rpc_calls == []
    trace_logger.log_event.assert_awaited_once_with("sql_executed", {"path": "authenticated"})


@pytest.mark.asyncio
async def test_extension_sql_uses_service_role(fake_clients):
    sql = 'CREATE EXTENSION IF NOT EXISTS "uuid-ossp"; CREATE TABLE t (id uuid);'
    gateway = SqlExecutionGateway(fake_clients)
    await gateway.execute_sql(sql)

    assert fake_clients.service_client.rpc_calls == [("execute_sql", {"sql": sql})]
    assert fake_clients.anon_client.rpc_calls == []
    assert fake_clients.released == [fake_clients.service_client]


@pytest.mark.asyncio
async def test_custom_function_name(fake_clients):
    gateway = SqlExecutionGateway(fake_clients, function_name="run_ddl")
    await gateway.execute_sql("CREATE TABLE t (id int);")
    assert fake_clients.anon_client.rpc_calls[0][0] == "run_ddl"


@pytest.mark.asyncio
async def test_backend_error_message_is_surfaced(fake_clients, trace_logger):
    fake_clients.anon_client.rpc_error = 'syntax error at or near "TABL"'
    gateway = SqlExecutionGateway(fake_clients, trace_logger=trace_logger)

    with pytest.raises(SqlExecutionError) as exc_info:
        await gateway.execute_sql("CREATE TABL t (id int);")

    assert exc_info.value.detail == 'Failed to execute SQL: syntax error at or near "TABL"'
    assert trace_logger.log_event.await_args.args[0] == "sql_execution_failed"


@pytest.mark.asyncio
async def test_callers_client_runs_plain_sql(fake_clients):
    caller = FakeSupabase("token")
    gateway = SqlExecutionGateway(fake_clients)

    await gateway.execute_sql("CREATE TABLE t (id int);", caller)

    assert caller.rpc_calls == [("execute_sql", {"sql": "CREATE TABLE t (id int);"})]
    assert fake_clients.anon_client.rpc_calls == []
    assert fake_clients.released == []


@pytest.mark.asyncio
async def test_extension_sql_ignores_callers_client(fake_clients):
    caller = FakeSupabase("token")
    gateway = SqlExecutionGateway(fake_clients)

    await gateway.execute_sql("CREATE EXTENSION pgcrypto;", caller)

    assert caller.rpc_calls == []
    assert len(fake_clients.service_client.rpc_calls) == 1


@pytest.mark.asyncio
async def test_service_client_released_on_failure(fake_clients):
    fake_clients.service_client.rpc_error = "permission denied to create extension"
    gateway = SqlExecutionGateway(fake_clients)

    with pytest.raises(SqlExecutionError):
        await gateway.execute_sql("CREATE EXTENSION plpgsql;")

    assert fake_clients.released == [fake_clients.service_client]
