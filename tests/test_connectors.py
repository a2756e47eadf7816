"""
Tests for the dummy and RunPod connectors and the connector factory.
"""

import json

import httpx
import pytest

from conftest import make_config
from gingo.modules.connector import (
    ConnectorError,
    ConnectorFactory,
    DummyConnector,
    RunPodConnector,
    UnknownBackendStatusError,
)
from gingo.modules.connector.runpod import STATUS_MAP, map_status
from gingo.modules.pods import Pod, PodStatus


# =============================================================================
# Dummy connector
# =============================================================================

class TestDummyConnector:

    @pytest.mark.asyncio
    async def test_create_and_list(self):
        connector = DummyConnector(name_prefix="gingo-", seed=7)
        config = make_config(backend_create_params={"gpuCount": 1})

        pod = await connector.create(config)
        await connector.create(make_config(id="search"))

        assert pod.status == PodStatus.STARTING
        assert pod.extra == {"gpuCount": 1}
        listed = await connector.list_pods(["chat", "search", "empty"])
        assert [p.id for p in listed["chat"]] == [pod.id]
        assert len(listed["search"]) == 1
        assert listed["empty"] == []

    @pytest.mark.asyncio
    async def test_status_is_scriptable(self):
        connector = DummyConnector()
        pod_id = connector.add_existing("chat", pod_id="p1")

        assert await connector.get_status(Pod(id=pod_id)) == PodStatus.GREY
        connector.set_status(pod_id, PodStatus.UNHEALTHY)
        assert await connector.get_status(Pod(id=pod_id)) == PodStatus.UNHEALTHY

    @pytest.mark.asyncio
    async def test_restart_clears_unhealthy(self):
        connector = DummyConnector()
        connector.add_existing("chat", pod_id="p1", status=PodStatus.UNHEALTHY)

        await connector.restart(Pod(id="p1"))

        assert await connector.get_status(Pod(id="p1")) == PodStatus.GREY

    @pytest.mark.asyncio
    async def test_remove(self):
        connector = DummyConnector()
        connector.add_existing("chat", pod_id="p1")

        await connector.remove(Pod(id="p1"))

        assert (await connector.list_pods(["chat"]))["chat"] == []
        with pytest.raises(ConnectorError):
            await connector.remove(Pod(id="p1"))

    @pytest.mark.asyncio
    async def test_unknown_pod(self):
        with pytest.raises(ConnectorError):
            await DummyConnector().get_status(Pod(id="ghost"))


# =============================================================================
# RunPod connector
# =============================================================================

class RunPodMock:
    """Records GraphQL requests and replies from a queue of payloads."""

    def __init__(self, *responses):
        self.responses = list(responses)
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        response = self.responses.pop(0)
        if isinstance(response, httpx.Response):
            return response
        return httpx.Response(200, json=response)

    def body(self, index: int = -1) -> dict:
        return json.loads(self.requests[index].content)


def runpod(mock: RunPodMock) -> RunPodConnector:
    client = httpx.AsyncClient(transport=httpx.MockTransport(mock))
    return RunPodConnector(api_key="secret", api_url="https://runpod.test/graphql", client=client)


class TestRunPodStatusMap:

    @pytest.mark.parametrize("backend_status,expected", [
        ("CREATED", PodStatus.STARTING),
        ("RUNNING", PodStatus.GREY),
        ("RESTARTING", PodStatus.RESTARTING),
        ("EXITED", PodStatus.UNHEALTHY),
        ("PAUSED", PodStatus.UNHEALTHY),
        ("DEAD", PodStatus.UNHEALTHY),
        ("TERMINATED", PodStatus.UNHEALTHY),
    ])
    def test_known_statuses(self, backend_status, expected):
        assert map_status(backend_status) == expected

    def test_map_never_reports_healthy(self):
        assert PodStatus.HEALTHY not in STATUS_MAP.values()

    def test_unknown_status_rejected(self):
        with pytest.raises(UnknownBackendStatusError) as exc_info:
            map_status("MIGRATING")
        assert exc_info.value.backend_status == "MIGRATING"


class TestRunPodConnector:

    def test_requires_api_key(self):
        with pytest.raises(ValueError):
            RunPodConnector(api_key="")

    @pytest.mark.asyncio
    async def test_get_status(self):
        mock = RunPodMock({"data": {"pod": {"id": "abc", "desiredStatus": "RUNNING"}}})

        status = await runpod(mock).get_status(Pod(id="abc"))

        assert status == PodStatus.GREY
        assert mock.requests[0].url.params["api_key"] == "secret"
        assert mock.body()["variables"] == {"input": {"podId": "abc"}}

    @pytest.mark.asyncio
    async def test_get_status_unknown_value(self):
        mock = RunPodMock({"data": {"pod": {"id": "abc", "desiredStatus": "HIBERNATING"}}})

        with pytest.raises(UnknownBackendStatusError):
            await runpod(mock).get_status(Pod(id="abc"))

    @pytest.mark.asyncio
    async def test_get_status_missing_pod(self):
        mock = RunPodMock({"data": {"pod": None}})

        with pytest.raises(ConnectorError, match="not found"):
            await runpod(mock).get_status(Pod(id="abc"))

    @pytest.mark.asyncio
    async def test_list_pods_by_name(self):
        mock = RunPodMock({"data": {"myself": {"pods": [
            {"id": "a", "name": "gingo-chat", "desiredStatus": "RUNNING",
             "imageName": "img", "containerDiskInGb": 20, "volumeInGb": 0},
            {"id": "b", "name": "gingo-search", "desiredStatus": "EXITED"},
            {"id": "c", "name": "someone-else", "desiredStatus": "RUNNING"},
        ]}}})

        result = await runpod(mock).list_pods(["chat", "search", "empty"])

        assert [p.id for p in result["chat"]] == ["a"]
        assert result["chat"][0].extra == {"imageName": "img", "containerDiskInGb": 20, "volumeInGb": 0}
        assert result["search"][0].status == PodStatus.UNHEALTHY
        assert result["empty"] == []

    @pytest.mark.asyncio
    async def test_create_sends_name_and_params(self):
        mock = RunPodMock({"data": {"podFindAndDeployOnDemand": {
            "id": "new", "imageName": "img", "containerDiskInGb": 20, "volumeInGb": 0,
        }}})
        config = make_config(backend_create_params={"gpuTypeId": "NVIDIA A40", "imageName": "img"})

        pod = await runpod(mock).create(config)

        assert pod.id == "new"
        assert pod.status == PodStatus.STARTING
        assert pod.extra["imageName"] == "img"
        sent = mock.body()["variables"]["input"]
        assert sent["name"] == "gingo-chat"
        assert sent["gpuTypeId"] == "NVIDIA A40"

    @pytest.mark.asyncio
    async def test_create_without_id(self):
        mock = RunPodMock({"data": {"podFindAndDeployOnDemand": None}})

        with pytest.raises(ConnectorError):
            await runpod(mock).create(make_config())

    @pytest.mark.asyncio
    async def test_remove(self):
        mock = RunPodMock({"data": {"podTerminate": None}})

        await runpod(mock).remove(Pod(id="abc"))

        assert "podTerminate" in mock.body()["query"]
        assert mock.body()["variables"] == {"input": {"podId": "abc"}}

    @pytest.mark.asyncio
    async def test_restart_resends_stored_fields(self):
        mock = RunPodMock({"data": {"podEditJob": {"id": "abc"}}})
        pod = Pod(id="abc", extra={"imageName": "img", "containerDiskInGb": 20, "volumeInGb": 0})

        await runpod(mock).restart(pod)

        assert mock.body()["variables"]["input"] == {
            "podId": "abc", "imageName": "img", "containerDiskInGb": 20, "volumeInGb": 0,
        }

    @pytest.mark.asyncio
    async def test_restart_without_extra(self):
        mock = RunPodMock()

        with pytest.raises(ConnectorError, match="missing"):
            await runpod(mock).restart(Pod(id="abc"))
        assert mock.requests == []

    @pytest.mark.asyncio
    async def test_graphql_errors(self):
        mock = RunPodMock({"errors": [{"message": "There are no longer any instances available."}]})

        with pytest.raises(ConnectorError, match="no longer any instances"):
            await runpod(mock).create(make_config())

    @pytest.mark.asyncio
    async def test_http_error_status(self):
        mock = RunPodMock(httpx.Response(401, text="unauthorized"))

        with pytest.raises(ConnectorError, match="401"):
            await runpod(mock).get_status(Pod(id="abc"))

    @pytest.mark.asyncio
    async def test_transport_error(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        connector = RunPodConnector(api_key="secret", client=client)

        with pytest.raises(ConnectorError, match="request failed"):
            await connector.get_status(Pod(id="abc"))


# =============================================================================
# Factory
# =============================================================================

class StubConfig(dict):
    """Dict with the ConfigModule ``get`` signature."""


class TestConnectorFactory:

    def test_dummy(self):
        connector = ConnectorFactory.build(StubConfig(connector="dummy", pod_name_prefix="x-"))
        assert isinstance(connector, DummyConnector)
        assert connector.name_prefix == "x-"

    def test_runpod(self):
        connector = ConnectorFactory.build(StubConfig(
            connector="runpod", runpod_api_key="k", pod_name_prefix="gingo-",
        ))
        assert isinstance(connector, RunPodConnector)
        assert connector.api_url == "https://api.runpod.io/graphql"

    def test_runpod_custom_url(self):
        connector = ConnectorFactory.build(StubConfig(
            connector="RunPod", runpod_api_key="k", runpod_api_url="https://proxy.test/graphql",
        ))
        assert connector.api_url == "https://proxy.test/graphql"

    def test_runpod_requires_key(self):
        with pytest.raises(ValueError, match="RUNPOD_API_KEY"):
            ConnectorFactory.build(StubConfig(connector="runpod"))

    def test_unknown(self):
        with pytest.raises(ValueError, match="Unknown connector"):
            ConnectorFactory.build(StubConfig(connector="aws"))
