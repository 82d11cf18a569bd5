import asyncio

from aiohttp import test_utils

from santa_exchange.db import MemoryStore
from santa_exchange.web import create_app


def _world():
    store = MemoryStore()
    users = {name: store.add_user(name, f"{name.lower()}@example.com") for name in ("A", "B", "C", "D", "E")}
    return store, users


def _run(store, scenario):
    async def runner():
        client = test_utils.TestClient(test_utils.TestServer(create_app(store)))
        await client.start_server()
        try:
            await scenario(client)
        finally:
            await client.close()

    asyncio.run(runner())


def test_full_exchange_over_http():
    store, users = _world()

    async def scenario(client):
        resp = await client.post(
            "/api/exchanges", json={"name": "Office", "giftBudget": "$20", "createdBy": users["A"]}
        )
        assert resp.status == 201
        exchange = await resp.json()
        exchange_id = exchange["id"]
        assert exchange["participants"] == [users["A"]]
        assert exchange["status"] == "open"

        for name in ("B", "C"):
            resp = await client.post(
                f"/api/exchanges/{exchange_id}/request-join", json={"userId": users[name]}
            )
            assert resp.status == 200
        body = await resp.json()
        assert [item["userId"] for item in body["pendingParticipants"]] == [users["B"], users["C"]]

        for name in ("B", "C"):
            resp = await client.post(
                f"/api/exchanges/{exchange_id}/approve-participant", json={"userId": users[name]}
            )
            assert resp.status == 200

        resp = await client.get(f"/api/exchanges/{exchange_id}/can-generate")
        assert (await resp.json()) == {"canGenerate": True}

        resp = await client.post(f"/api/exchanges/{exchange_id}/generate-assignments")
        assert resp.status == 201
        body = await resp.json()
        assert body["assignmentCount"] == 3
        assert body["exchange"]["status"] == "assigned"
        assert "assignments" not in body

        resp = await client.post(f"/api/exchanges/{exchange_id}/generate-assignments")
        assert resp.status == 409
        assert (await resp.json())["code"] == "already_generated"

        resp = await client.get(
            f"/api/exchanges/{exchange_id}/assignments", params={"requesterId": users["B"]}
        )
        assert resp.status == 200
        body = await resp.json()
        assert body["total"] == 3
        assert body["assignment"]["giverId"] == users["B"]
        assert body["assignment"]["recipientId"] != users["B"]

        resp = await client.get(
            f"/api/assignments/giver/{users['C']}/exchange/{exchange_id}",
            params={"requesterId": users["C"]},
        )
        assert resp.status == 200
        assert (await resp.json())["giverId"] == users["C"]

    _run(store, scenario)


def test_assignments_are_private():
    store, users = _world()

    async def scenario(client):
        resp = await client.post(
            "/api/exchanges", json={"name": "Office", "giftBudget": "$20", "createdBy": users["A"]}
        )
        exchange_id = (await resp.json())["id"]
        for name in ("B", "C"):
            await client.post(f"/api/exchanges/{exchange_id}/request-join", json={"userId": users[name]})
            await client.post(
                f"/api/exchanges/{exchange_id}/approve-participant", json={"userId": users[name]}
            )
        await client.post(f"/api/exchanges/{exchange_id}/generate-assignments")

        resp = await client.get(
            f"/api/exchanges/{exchange_id}/assignments", params={"requesterId": users["E"]}
        )
        assert resp.status == 403

        resp = await client.get(
            f"/api/assignments/giver/{users['B']}/exchange/{exchange_id}",
            params={"requesterId": users["A"]},
        )
        assert resp.status == 403

        resp = await client.get(f"/api/exchanges/{exchange_id}/assignments")
        assert resp.status == 400

    _run(store, scenario)


def test_decline_and_closed_exchange_over_http():
    store, users = _world()

    async def scenario(client):
        resp = await client.post(
            "/api/exchanges", json={"name": "Office", "giftBudget": "$20", "createdBy": users["A"]}
        )
        exchange_id = (await resp.json())["id"]

        await client.post(f"/api/exchanges/{exchange_id}/request-join", json={"userId": users["D"]})
        resp = await client.post(
            f"/api/exchanges/{exchange_id}/decline-participant", json={"userId": users["D"]}
        )
        assert resp.status == 200
        body = await resp.json()
        assert users["D"] not in body["participants"]
        assert body["pendingParticipants"] == []

        resp = await client.post(
            f"/api/exchanges/{exchange_id}/decline-participant", json={"userId": users["D"]}
        )
        assert resp.status == 404
        assert (await resp.json())["code"] == "no_pending_request"

        resp = await client.post(f"/api/exchanges/{exchange_id}/request-join", json={"userId": users["A"]})
        assert resp.status == 409
        assert (await resp.json())["code"] == "already_participant"

        resp = await client.post(f"/api/exchanges/{exchange_id}/generate-assignments")
        assert resp.status == 400
        assert (await resp.json())["code"] == "insufficient_participants"

        for name in ("B", "C"):
            await client.post(f"/api/exchanges/{exchange_id}/request-join", json={"userId": users[name]})
            await client.post(
                f"/api/exchanges/{exchange_id}/approve-participant", json={"userId": users[name]}
            )
        await client.post(f"/api/exchanges/{exchange_id}/generate-assignments")

        resp = await client.delete(f"/api/exchanges/{exchange_id}/participants/{users['B']}")
        assert resp.status == 409
        assert (await resp.json())["code"] == "exchange_closed"

    _run(store, scenario)


def test_bad_requests():
    store, users = _world()

    async def scenario(client):
        resp = await client.post("/api/exchanges", json={"name": "", "giftBudget": "$20", "createdBy": 1})
        assert resp.status == 400
        assert (await resp.json())["code"] == "invalid_input"

        resp = await client.post(
            "/api/exchanges", data="{not json", headers={"Content-Type": "application/json"}
        )
        assert resp.status == 400

        resp = await client.get("/api/exchanges/9999")
        assert resp.status == 404

        resp = await client.post("/api/exchanges/9999/request-join", json={"userId": users["B"]})
        assert resp.status == 404

        resp = await client.post("/api/exchanges/1/request-join", json={"userId": "abc"})
        assert resp.status == 400

    _run(store, scenario)


def test_listing_updating_and_deleting():
    store, users = _world()

    async def scenario(client):
        resp = await client.post(
            "/api/exchanges",
            json={"name": "Office", "giftBudget": "$20", "createdBy": users["A"], "endDate": "2026-12-20"},
        )
        exchange_id = (await resp.json())["id"]

        resp = await client.patch(f"/api/exchanges/{exchange_id}", json={"giftBudget": "$30"})
        body = await resp.json()
        assert body["giftBudget"] == "$30"
        assert body["endDate"] == "2026-12-20"

        resp = await client.get("/api/exchanges")
        assert [item["id"] for item in await resp.json()] == [exchange_id]

        resp = await client.get(f"/api/exchanges/user/{users['A']}")
        assert [item["id"] for item in await resp.json()] == [exchange_id]
        resp = await client.get(f"/api/exchanges/user/{users['B']}")
        assert await resp.json() == []

        resp = await client.delete(f"/api/exchanges/{exchange_id}")
        assert resp.status == 200
        resp = await client.get(f"/api/exchanges/{exchange_id}")
        assert resp.status == 404

    _run(store, scenario)


def test_malformed_bodies_are_bad_requests():
    store, users = _world()

    async def scenario(client):
        resp = await client.post(
            "/api/exchanges",
            json={"name": "Office", "giftBudget": "$20", "createdBy": users["A"], "startDate": {"x": 1}},
        )
        assert resp.status == 400
        assert (await resp.json())["code"] == "invalid_input"

        resp = await client.post(
            "/api/exchanges", json={"name": "Office", "giftBudget": "$20", "createdBy": users["A"]}
        )
        exchange_id = (await resp.json())["id"]
        resp = await client.patch(f"/api/exchanges/{exchange_id}", json={"endDate": 20261224})
        assert resp.status == 400

        resp = await client.post(
            "/api/exchanges",
            data=b'{"name": "\xff\xfe"}',
            headers={"Content-Type": "application/json; charset=utf-8"},
        )
        assert resp.status == 400
        assert (await resp.json())["code"] == "invalid_input"

    _run(store, scenario)
