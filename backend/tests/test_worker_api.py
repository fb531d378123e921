from decimal import Decimal

import pytest

from conftest import bearer, task_payload
from taskmarket.db import Database


async def _publish(client, token, **overrides) -> int:
    resp = await client.post("/api/enterprise/tasks", json=task_payload(**overrides), headers=bearer(token))
    assert resp.status_code == 201, resp.text
    return resp.json()["data"]["taskId"]


@pytest.mark.asyncio
async def test_market_is_public_and_filterable(client, login):
    ent = await login("ent-market", role="enterprise")
    await client.patch("/api/enterprise/profile", json={"companyName": "Acme"}, headers=bearer(ent))
    await _publish(client, ent, title="Label street signs", type="labeling", subType="image_labeling", budget="80.00")
    await _publish(client, ent, title="Market sizing report", budget="900.00")

    data = (await client.get("/api/worker/market")).json()["data"]
    assert data["total"] == 2
    assert {item["enterpriseName"] for item in data["list"]} == {"Acme"}

    data = (await client.get("/api/worker/market", params={"type": "labeling"})).json()["data"]
    assert [item["title"] for item in data["list"]] == ["Label street signs"]

    data = (await client.get("/api/worker/market", params={"type": "all", "minBudget": "100"})).json()["data"]
    assert [item["title"] for item in data["list"]] == ["Market sizing report"]

    data = (await client.get("/api/worker/market", params={"keyword": "street"})).json()["data"]
    assert len(data["list"]) == 1


@pytest.mark.asyncio
async def test_accepted_task_leaves_market_and_second_accept_conflicts(client, login):
    ent = await login("ent-race", role="enterprise")
    first = await login("worker-first", role="individual")
    second = await login("worker-second", role="individual")
    task_id = await _publish(client, ent)

    resp = await client.post(f"/api/worker/tasks/{task_id}/accept", headers=bearer(first))
    assert resp.status_code == 201
    assert resp.json()["data"]["orderId"] > 0

    resp = await client.post(f"/api/worker/tasks/{task_id}/accept", headers=bearer(second))
    assert resp.status_code == 409
    assert resp.json()["code"] == "conflict"

    data = (await client.get("/api/worker/market")).json()["data"]
    assert data["list"] == []


@pytest.mark.asyncio
async def test_accept_missing_task_is_not_found(client, login):
    worker = await login("worker-404", role="individual")
    resp = await client.post("/api/worker/tasks/12345/accept", headers=bearer(worker))
    assert resp.status_code == 404


@pytest.mark.asyncio
async def test_user_without_role_is_forbidden(client, login):
    token = await login("no-role")
    resp = await client.get("/api/worker/profile", headers=bearer(token))
    assert resp.status_code == 403


@pytest.mark.asyncio
async def test_my_tasks_and_detail_visibility(client, login):
    ent = await login("ent-mine", role="enterprise")
    mine = await login("worker-mine", role="individual")
    other = await login("worker-other", role="individual")
    task_id = await _publish(client, ent, title="Transcribe interviews")
    await client.post(f"/api/worker/tasks/{task_id}/accept", headers=bearer(mine))
    await client.post(
        f"/api/worker/tasks/{task_id}/submit",
        json={"result": "Transcript", "attachments": ["https://files/t.docx"]},
        headers=bearer(mine),
    )

    data = (await client.get("/api/worker/tasks", params={"status": "submitted"}, headers=bearer(mine))).json()["data"]
    assert [item["id"] for item in data["list"]] == [task_id]
    assert data["list"][0]["taskStatus"] == "submitted"
    assert data["list"][0]["submittedResult"] == "Transcript"

    data = (await client.get("/api/worker/tasks", headers=bearer(mine))).json()["data"]
    assert data["list"] == []

    detail = (await client.get(f"/api/worker/tasks/{task_id}", headers=bearer(mine))).json()["data"]
    assert detail["result"] == "Transcript"
    assert detail["attachments"] == ["https://files/t.docx"]

    resp = await client.get(f"/api/worker/tasks/{task_id}", headers=bearer(other))
    assert resp.status_code == 404


@pytest.mark.asyncio
async def test_submit_by_other_worker_is_not_found(client, login):
    ent = await login("ent-sub", role="enterprise")
    mine = await login("worker-a", role="individual")
    other = await login("worker-b", role="individual")
    task_id = await _publish(client, ent)
    await client.post(f"/api/worker/tasks/{task_id}/accept", headers=bearer(mine))

    resp = await client.post(f"/api/worker/tasks/{task_id}/submit", json={"result": "x"}, headers=bearer(other))
    assert resp.status_code == 404


@pytest.mark.asyncio
async def test_profile_earnings_and_review(client, login):
    ent = await login("ent-pay", role="enterprise")
    worker = await login("worker-pay", role="individual")
    await client.post("/api/enterprise/recharge", json={"amount": "1000.00"}, headers=bearer(ent))
    task_id = await _publish(client, ent, budget="250.00")
    await client.post(f"/api/worker/tasks/{task_id}/accept", headers=bearer(worker))
    await client.post(f"/api/worker/tasks/{task_id}/submit", json={"result": "done"}, headers=bearer(worker))
    resp = await client.post(f"/api/enterprise/tasks/{task_id}/approve", json={"rating": 4}, headers=bearer(worker))
    assert resp.status_code == 403
    resp = await client.post(f"/api/enterprise/tasks/{task_id}/approve", json={"rating": 4}, headers=bearer(ent))
    assert resp.status_code == 200

    resp = await client.patch(
        "/api/worker/profile",
        json={"realName": "Zhang Wei", "skills": [" Excel ", "", "SQL"], "portfolio": ["https://p/1"]},
        headers=bearer(worker),
    )
    profile = resp.json()["data"]
    assert profile["realName"] == "Zhang Wei"
    assert profile["skills"] == ["Excel", "SQL"]
    assert profile["completedTasks"] == 1
    assert Decimal(str(profile["creditScore"])) == Decimal("4.0")
    assert Decimal(str(profile["earnings"])) == Decimal("250.00")

    txs = (await client.get("/api/worker/transactions", headers=bearer(worker))).json()["data"]
    assert [tx["type"] for tx in txs] == ["income"]

    resp = await client.post(f"/api/worker/tasks/{task_id}/review", json={"rating": 5}, headers=bearer(worker))
    assert resp.status_code == 201
    assert resp.json()["data"]["reviewType"] == "individual_to_enterprise"
    resp = await client.post(f"/api/worker/tasks/{task_id}/review", json={"rating": 5}, headers=bearer(worker))
    assert resp.status_code == 409

    profile = (await client.get("/api/enterprise/profile", headers=bearer(ent))).json()["data"]
    assert Decimal(str(profile["creditScore"])) == Decimal("5.0")

    reviews = (await client.get("/api/worker/reviews", headers=bearer(worker))).json()["data"]
    assert [r["rating"] for r in reviews] == [4]


@pytest.mark.asyncio
async def test_task_type_catalog(client):
    resp = await client.get("/api/task-types")
    data = resp.json()["data"]
    assert [t["value"] for t in data["taskTypes"]] == ["report", "video", "labeling"]
    assert {s["value"] for s in data["orderStatus"]} == {"in_progress", "submitted", "completed", "rejected"}
    assert (await client.get("/ping")).json() == {"status": "ok"}


@pytest.mark.asyncio
async def test_worker_ledger_excludes_own_company_rows(client, login):
    ent = await login("ent-client", role="enterprise")
    await client.post("/api/enterprise/recharge", json={"amount": "500.00"}, headers=bearer(ent))
    task_id = await _publish(client, ent, budget="500.00")

    dual = await login("dual-user", role="enterprise")
    resp = await client.post("/api/enterprise/recharge", json={"amount": "1000.00"}, headers=bearer(dual))
    assert resp.status_code == 200
    dual = await login("dual-user", role="individual")
    await client.post(f"/api/worker/tasks/{task_id}/accept", headers=bearer(dual))
    await client.post(f"/api/worker/tasks/{task_id}/submit", json={"result": "done"}, headers=bearer(dual))
    resp = await client.post(f"/api/enterprise/tasks/{task_id}/approve", json={}, headers=bearer(ent))
    assert resp.status_code == 200, resp.text

    txs = (await client.get("/api/worker/transactions", headers=bearer(dual))).json()["data"]
    assert [tx["type"] for tx in txs] == ["income"]
    assert Decimal(str(txs[0]["balance"])) == Decimal("500.00")
    profile = (await client.get("/api/worker/profile", headers=bearer(dual))).json()["data"]
    assert Decimal(str(profile["earnings"])) == Decimal("500.00")


@pytest.mark.asyncio
async def test_unreachable_storage_is_503(app, client):
    broken = Database("sqlite+aiosqlite:////nonexistent-dir/x/market.db")
    app.state.database = broken
    try:
        resp = await client.get("/api/worker/market")
    finally:
        await broken.dispose()

    assert resp.status_code == 503
    body = resp.json()
    assert body["success"] is False
    assert body["code"] == "storage_unavailable"
