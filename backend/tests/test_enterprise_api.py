from datetime import datetime
from decimal import Decimal

import pytest

from conftest import OWNER_OPEN_ID, bearer, task_payload


async def _publish(client, token, **overrides) -> int:
    resp = await client.post("/api/enterprise/tasks", json=task_payload(**overrides), headers=bearer(token))
    assert resp.status_code == 201, resp.text
    return resp.json()["data"]["taskId"]


async def _deliver(client, worker_token, task_id, result="Report link"):
    resp = await client.post(f"/api/worker/tasks/{task_id}/accept", headers=bearer(worker_token))
    assert resp.status_code == 201, resp.text
    resp = await client.post(f"/api/worker/tasks/{task_id}/submit", json={"result": result}, headers=bearer(worker_token))
    assert resp.status_code == 200, resp.text


@pytest.mark.asyncio
async def test_create_task_round_trip(client, login):
    token = await login("ent-a", role="enterprise")
    payload = task_payload(budget="500.00")
    resp = await client.post("/api/enterprise/tasks", json=payload, headers=bearer(token))
    assert resp.status_code == 201
    task_id = resp.json()["data"]["taskId"]

    detail = (await client.get(f"/api/enterprise/tasks/{task_id}", headers=bearer(token))).json()["data"]
    assert detail["status"] == "approved"
    assert Decimal(str(detail["budget"])) == Decimal("500.00")
    sent = datetime.fromisoformat(payload["deadline"])
    got = datetime.fromisoformat(detail["deadline"].replace("Z", "+00:00"))
    assert got.replace(tzinfo=None, microsecond=0) == sent.replace(tzinfo=None, microsecond=0)
    assert detail["orderId"] is None


@pytest.mark.asyncio
async def test_video_task_needs_pricing(client, login):
    token = await login("ent-video", role="enterprise")
    resp = await client.post(
        "/api/enterprise/tasks",
        json=task_payload(type="video", subType="product_promo", isVideoTask=True),
        headers=bearer(token),
    )
    assert resp.status_code == 422


@pytest.mark.asyncio
async def test_worker_cannot_use_enterprise_api(client, login):
    token = await login("just-worker", role="individual")
    resp = await client.get("/api/enterprise/stats", headers=bearer(token))
    assert resp.status_code == 403
    assert resp.json()["code"] == "forbidden"


@pytest.mark.asyncio
async def test_tasks_are_scoped_to_caller(client, login):
    owner = await login("ent-owner", role="enterprise")
    other = await login("ent-other", role="enterprise")
    task_id = await _publish(client, owner)

    resp = await client.get(f"/api/enterprise/tasks/{task_id}", headers=bearer(other))
    assert resp.status_code == 404
    listing = (await client.get("/api/enterprise/tasks", headers=bearer(other))).json()["data"]
    assert listing["list"] == []
    assert listing["total"] == 0


@pytest.mark.asyncio
async def test_full_lifecycle_updates_stats_and_ledger(client, login):
    ent = await login("ent-life", role="enterprise")
    worker = await login("worker-life", role="individual", name="Mei")
    await client.post("/api/enterprise/recharge", json={"amount": "1000.00"}, headers=bearer(ent))
    task_id = await _publish(client, ent, budget="500.00")
    await _deliver(client, worker, task_id)

    stats = (await client.get("/api/enterprise/stats", headers=bearer(ent))).json()["data"]
    assert stats["pendingReview"] == 1
    assert stats["total"] == 1

    recent = (await client.get("/api/enterprise/tasks/recent", headers=bearer(ent))).json()["data"]
    assert recent[0]["workerName"] == "Mei"
    assert recent[0]["status"] == "submitted"

    resp = await client.post(
        f"/api/enterprise/tasks/{task_id}/reject", json={"comment": "Add charts"}, headers=bearer(ent)
    )
    assert resp.status_code == 200
    detail = (await client.get(f"/api/enterprise/tasks/{task_id}", headers=bearer(ent))).json()["data"]
    assert detail["status"] == "in_progress"
    assert detail["orderStatus"] == "in_progress"
    assert detail["reviewComment"] == "Add charts"

    resp = await client.post(f"/api/worker/tasks/{task_id}/submit", json={"result": "v2"}, headers=bearer(worker))
    assert resp.status_code == 200
    resp = await client.post(
        f"/api/enterprise/tasks/{task_id}/approve", json={"rating": 5, "comment": "Great"}, headers=bearer(ent)
    )
    assert resp.status_code == 200

    detail = (await client.get(f"/api/enterprise/tasks/{task_id}", headers=bearer(ent))).json()["data"]
    assert detail["status"] == "completed"
    assert detail["reviewTime"] is not None
    assert detail["result"] == "v2"
    assert Decimal(str(detail["actualAmount"])) == Decimal("500.00")

    stats = (await client.get("/api/enterprise/stats", headers=bearer(ent))).json()["data"]
    assert stats["completed"] == 1
    assert Decimal(str(stats["balance"])) == Decimal("500.00")

    txs = (await client.get("/api/enterprise/transactions", headers=bearer(ent))).json()["data"]
    assert [tx["type"] for tx in txs] == ["pay", "recharge"]


@pytest.mark.asyncio
async def test_approve_unknown_task_is_not_found(client, login):
    token = await login("ent-404", role="enterprise")
    resp = await client.post("/api/enterprise/tasks/9999/approve", json={}, headers=bearer(token))
    assert resp.status_code == 404
    assert resp.json() == {"success": False, "code": "not_found", "message": "Task not found"}


@pytest.mark.asyncio
async def test_approve_beyond_balance_is_conflict(client, login):
    ent = await login("ent-short", role="enterprise")
    worker = await login("worker-short", role="individual")
    await client.post("/api/enterprise/recharge", json={"amount": "100.00"}, headers=bearer(ent))
    task_id = await _publish(client, ent, budget="500.00")
    await _deliver(client, worker, task_id)

    resp = await client.post(f"/api/enterprise/tasks/{task_id}/approve", json={}, headers=bearer(ent))
    assert resp.status_code == 409
    assert resp.json()["code"] == "conflict"

    detail = (await client.get(f"/api/enterprise/tasks/{task_id}", headers=bearer(ent))).json()["data"]
    assert detail["status"] == "submitted"
    balance = (await client.get("/api/enterprise/profile", headers=bearer(ent))).json()["data"]["balance"]
    assert Decimal(str(balance)) == Decimal("100.00")
    assert (await client.get("/api/worker/transactions", headers=bearer(worker))).json()["data"] == []


@pytest.mark.asyncio
async def test_filter_by_status_and_keyword(client, login):
    token = await login("ent-filter", role="enterprise")
    await _publish(client, token, title="Sales deck review")
    cancelled = await _publish(client, token, title="Logo labeling")
    await client.post(f"/api/enterprise/tasks/{cancelled}/cancel", headers=bearer(token))

    data = (await client.get("/api/enterprise/tasks", params={"status": "cancelled"}, headers=bearer(token))).json()
    assert [item["id"] for item in data["data"]["list"]] == [cancelled]

    data = (await client.get("/api/enterprise/tasks", params={"status": "all", "keyword": "deck"}, headers=bearer(token))).json()
    assert [item["title"] for item in data["data"]["list"]] == ["Sales deck review"]


@pytest.mark.asyncio
async def test_profile_update_and_withdraw(client, login):
    token = await login("ent-profile", role="enterprise")
    resp = await client.patch(
        "/api/enterprise/profile", json={"companyName": "Blue River", "contact": "+86 10 5555"}, headers=bearer(token)
    )
    profile = resp.json()["data"]
    assert profile["name"] == "Blue River"
    assert profile["contact"] == "+86 10 5555"
    assert Decimal(str(profile["creditScore"])) == Decimal("5.0")

    await client.post("/api/enterprise/recharge", json={"amount": "20.00"}, headers=bearer(token))
    resp = await client.post("/api/enterprise/withdraw", json={"amount": "25.00"}, headers=bearer(token))
    assert resp.status_code == 409
    resp = await client.post("/api/enterprise/withdraw", json={"amount": "5.00"}, headers=bearer(token))
    assert Decimal(str(resp.json()["data"]["balance"])) == Decimal("15.00")


@pytest.mark.asyncio
async def test_recharge_rejects_non_positive_amount(client, login):
    token = await login("ent-zero", role="enterprise")
    resp = await client.post("/api/enterprise/recharge", json={"amount": "0"}, headers=bearer(token))
    assert resp.status_code == 422


@pytest.mark.asyncio
async def test_moderation_is_admin_only(client, login):
    ent = await login("ent-mod", role="enterprise")
    task_id = await _publish(client, ent)

    resp = await client.post(f"/api/admin/tasks/{task_id}/reject", headers=bearer(ent))
    assert resp.status_code == 403

    admin = await login(OWNER_OPEN_ID)
    resp = await client.post(f"/api/admin/tasks/{task_id}/reject", headers=bearer(admin))
    assert resp.status_code == 409
    assert resp.json()["message"] == "Task is not pending review"
