import pytest
from starlette.testclient import TestClient

from sentryagent.server.app import create_app
from sentryagent.server.store import InMemoryRunStore, ScanRecord
from sentryagent.utils.exceptions import IngestError
from sentryagent.workflow.audit_workflow import WORKFLOW_KEY, WorkflowRegistry, build_audit_workflow
from tests.fakes import FakeFetcher, FakeGenerator, finding, reply_with

REPO = "https://github.com/acme/vault"
BASE = f"/api/workflows/{WORKFLOW_KEY}"


@pytest.fixture
def stores():
    return InMemoryRunStore(), InMemoryRunStore()


def make_client(fetcher, stores, generator=None):
    registry = WorkflowRegistry()
    generator = generator or FakeGenerator({"reentrancyAgent": reply_with(finding())})
    registry.register(WORKFLOW_KEY, build_audit_workflow(generator, fetcher=fetcher))
    runs, scans = stores
    return TestClient(create_app(registry, run_store=runs, scan_store=scans))


@pytest.fixture
def client(sample_files, stores):
    return make_client(FakeFetcher(sample_files), stores)


class TestWorkflowSurface:

    def test_list_workflows(self, client):
        data = client.get("/api/workflows").json()
        assert data[WORKFLOW_KEY]["id"] == "web3-audit-workflow"
        assert [s["id"] for s in data[WORKFLOW_KEY]["steps"]][0] == "fetch-code"

    def test_create_run(self, client, stores):
        response = client.post(f"{BASE}/create-run")
        assert response.status_code == 200
        run_id = response.json()["runId"]
        assert stores[0].get(run_id) is not None

    def test_create_run_with_explicit_id(self, client):
        assert client.post(f"{BASE}/create-run", json={"runId": "r-1"}).json() == {"runId": "r-1"}
        assert client.post(f"{BASE}/create-run", json={"runId": "r-1"}).status_code == 409

    def test_unknown_workflow(self, client):
        response = client.post("/api/workflows/nope/create-run")
        assert response.status_code == 404
        assert response.json() == {"error": "Workflow not found: nope", "errorType": "WorkflowNotFoundError"}

    def test_start_sync(self, client):
        run_id = client.post(f"{BASE}/create-run").json()["runId"]
        response = client.post(f"{BASE}/start", json={"runId": run_id, "inputData": {"repoUrl": REPO}})

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "completed"
        assert data["result"]["counts"]["vulnerabilities"] == 1

    def test_start_unknown_run(self, client):
        response = client.post(f"{BASE}/start", json={"runId": "missing", "inputData": {"repoUrl": REPO}})
        assert response.status_code == 404

    def test_start_twice_conflicts(self, client):
        run_id = client.post(f"{BASE}/create-run").json()["runId"]
        client.post(f"{BASE}/start", json={"runId": run_id, "inputData": {"repoUrl": REPO}})
        response = client.post(f"{BASE}/start", json={"runId": run_id, "inputData": {"repoUrl": REPO}})
        assert response.status_code == 409

    def test_start_async_then_poll(self, client):
        run_id = client.post(f"{BASE}/create-run").json()["runId"]
        response = client.post(f"{BASE}/start-async", json={"runId": run_id, "inputData": {"repoUrl": REPO}})

        assert response.status_code == 202
        assert response.json()["runId"] == run_id

        # TestClient runs background tasks before returning
        status = client.get(f"{BASE}/runs/{run_id}").json()
        assert status["status"] == "completed"
        assert status["progress"] == 100
        assert set(status["steps"]) == {"fetch-code", "analyze-structure", "analyze-vulns", "build-report"}

        report = client.get(f"{BASE}/runs/{run_id}/execution-result")
        assert report.status_code == 200
        assert report.json()["counts"]["solidityFiles"] == 2

    def test_execution_result_before_start(self, client):
        run_id = client.post(f"{BASE}/create-run").json()["runId"]
        response = client.get(f"{BASE}/runs/{run_id}/execution-result")
        assert response.status_code == 400
        assert response.json()["error"] == "not completed"

    def test_execution_result_unknown_run(self, client):
        assert client.get(f"{BASE}/runs/missing/execution-result").status_code == 404

    def test_failed_run(self, stores):
        client = make_client(FakeFetcher([], error=IngestError("gitingest error: 500 boom")), stores)
        run_id = client.post(f"{BASE}/create-run").json()["runId"]
        data = client.post(f"{BASE}/start", json={"runId": run_id, "inputData": {"repoUrl": REPO}}).json()

        assert data["status"] == "failed"
        assert "gitingest error" in data["error"]
        response = client.get(f"{BASE}/runs/{run_id}/execution-result")
        assert response.status_code == 400
        assert response.json()["status"] == "failed"

    def test_invalid_json_body(self, client):
        response = client.post(f"{BASE}/start", content=b"{not json", headers={"Content-Type": "application/json"})
        assert response.status_code == 400


class TestScanApi:

    def test_requires_repo_url(self, client):
        response = client.post("/scan/start", json={})
        assert response.status_code == 400
        assert response.json() == {"error": "repoUrl is required"}

    def test_scan_lifecycle(self, client):
        response = client.post("/scan/start", json={"repoUrl": REPO})
        assert response.status_code == 200
        scan_id = response.json()["scanId"]
        assert scan_id.isdigit()

        status = client.get(f"/scan/status/{scan_id}").json()
        assert status == {"status": "completed", "progress": 100}

        report = client.get(f"/scan/report/{scan_id}").json()
        assert report["scanId"] == scan_id
        assert report["counts"]["bySeverity"]["critical"] == 1

    def test_failed_scan(self, stores):
        client = make_client(FakeFetcher([], error=IngestError("gitingest error: 502 down")), stores)
        scan_id = client.post("/scan/start", json={"repoUrl": REPO}).json()["scanId"]

        status = client.get(f"/scan/status/{scan_id}").json()
        assert status["status"] == "failed"
        assert "502" in status["error"]
        assert client.get(f"/scan/report/{scan_id}").status_code == 400

    def test_unknown_scan(self, client):
        assert client.get("/scan/status/123").json() == {"status": "unknown", "progress": 0}
        assert client.get("/scan/report/123").status_code == 404

    def test_report_not_ready(self, client, stores):
        stores[1].set("42", ScanRecord(status="in_progress", progress=30))
        assert client.get("/scan/status/42").json() == {"status": "in_progress", "progress": 30}
        assert client.get("/scan/report/42").status_code == 400

    def test_scan_ids_are_unique(self, client):
        first = client.post("/scan/start", json={"repoUrl": REPO}).json()["scanId"]
        second = client.post("/scan/start", json={"repoUrl": REPO}).json()["scanId"]
        assert first != second
