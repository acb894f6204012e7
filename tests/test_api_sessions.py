from __future__ import annotations

import pytest

from app.state import global_state

REGIONS = [
    {
        "id": "a",
        "text": "PO Number",
        "points": [{"x": 10, "y": 10}, {"x": 90, "y": 10}, {"x": 90, "y": 25}, {"x": 10, "y": 25}],
    },
    {
        "id": "b",
        "text": "PO-1234",
        "points": [{"x": 10, "y": 30}, {"x": 70, "y": 30}, {"x": 70, "y": 45}, {"x": 10, "y": 45}],
    },
]


async def _create(client, **extra) -> dict:
    response = await client.post("/api/sessions", json={"regions": REGIONS, **extra})
    assert response.status_code == 201
    return response.json()


@pytest.mark.asyncio
async def test_create_session_starts_empty(client) -> None:
    body = await _create(client, vendorId="acme")

    assert body["sessionId"]
    assert body["vendorId"] == "acme"
    assert body["fieldSources"] == {}
    assert body["canUndo"] is False
    assert body["canRedo"] is False


@pytest.mark.asyncio
async def test_field_update_undo_redo(client) -> None:
    session_id = (await _create(client))["sessionId"]

    updated = await client.put(f"/api/sessions/{session_id}/fields/poNumber", json={"sourceIds": ["b", "gone"]})

    body = updated.json()
    assert updated.status_code == 200
    assert body["fieldSources"]["poNumber"]["ids"] == ["b", "gone"]
    assert body["fieldSources"]["poNumber"]["boxes"][0] == {
        "id": "b",
        "top": 30.0,
        "left": 10.0,
        "right": 70.0,
        "bottom": 45.0,
    }
    assert body["danglingIds"] == ["gone"]
    assert body["highlights"] == {"poNumber": "strong"}
    assert body["canUndo"] is True

    undone = (await client.post(f"/api/sessions/{session_id}/undo")).json()
    assert undone["fieldSources"] == {}
    assert undone["canRedo"] is True
    assert undone["futureDepth"] == 1

    redone = (await client.post(f"/api/sessions/{session_id}/redo")).json()
    assert redone["fieldSources"]["poNumber"]["ids"] == ["b", "gone"]
    assert redone["historyDepth"] == 1


@pytest.mark.asyncio
async def test_batch_update_is_one_step(client) -> None:
    session_id = (await _create(client))["sessionId"]

    response = await client.post(
        f"/api/sessions/{session_id}/batch",
        json={"updates": [{"fieldId": "x", "sourceIds": ["a"]}, {"fieldId": "y", "sourceIds": ["b"]}]},
    )

    body = response.json()
    assert sorted(body["fieldSources"]) == ["x", "y"]
    assert body["historyDepth"] == 1


@pytest.mark.asyncio
async def test_clearing_field_with_null(client) -> None:
    session_id = (await _create(client))["sessionId"]
    await client.put(f"/api/sessions/{session_id}/fields/x", json={"sourceIds": ["a"]})

    response = await client.put(f"/api/sessions/{session_id}/fields/x", json={"sourceIds": None})

    assert response.json()["fieldSources"] == {}
    assert response.json()["historyDepth"] == 2


@pytest.mark.asyncio
async def test_apply_stored_layout_map(client) -> None:
    await client.post(
        "/api/layout-maps",
        json={
            "id": "lm-acme",
            "vendorId": "acme",
            "fieldRules": {
                "poNumber": [
                    {
                        "id": "po-rule",
                        "anchorConfig": {"aliases": ["po number"]},
                        "positionConfig": {"point": {"width": 100, "height": 20}},
                    }
                ]
            },
        },
    )
    session_id = (await _create(client, vendorId="acme"))["sessionId"]

    response = await client.post(f"/api/sessions/{session_id}/extract/acme")

    body = response.json()
    assert response.status_code == 200
    assert body["fieldSources"]["poNumber"]["ids"] == ["b"]
    assert body["historyDepth"] == 1


@pytest.mark.asyncio
async def test_apply_missing_layout_map_is_404(client) -> None:
    session_id = (await _create(client))["sessionId"]

    response = await client.post(f"/api/sessions/{session_id}/extract/nobody")

    assert response.status_code == 404


@pytest.mark.asyncio
async def test_unknown_session_is_404(client) -> None:
    assert (await client.get("/api/sessions/missing")).status_code == 404
    assert (await client.post("/api/sessions/missing/undo")).status_code == 404
    assert (await client.delete("/api/sessions/missing")).status_code == 404


@pytest.mark.asyncio
async def test_delete_session(client) -> None:
    session_id = (await _create(client))["sessionId"]

    response = await client.delete(f"/api/sessions/{session_id}")

    assert response.status_code == 204
    assert len(global_state.sessions) == 0
    assert (await client.get(f"/api/sessions/{session_id}")).status_code == 404


@pytest.mark.asyncio
async def test_transaction_purges_removed_line_items(client) -> None:
    session_id = (await _create(client))["sessionId"]
    await client.post(
        f"/api/sessions/{session_id}/batch",
        json={
            "updates": [
                {"fieldId": "lineItem-1-sku", "sourceIds": ["a"]},
                {"fieldId": "lineItem-2-sku", "sourceIds": ["b"]},
            ]
        },
    )

    response = await client.post(
        f"/api/sessions/{session_id}/transaction",
        json={"updates": [{"fieldId": "poNumber", "sourceIds": ["b"]}], "validLineNumbers": [1]},
    )

    body = response.json()
    assert response.status_code == 200
    assert sorted(body["fieldSources"]) == ["lineItem-1-sku", "poNumber"]
    assert body["historyDepth"] == 2

    undone = (await client.post(f"/api/sessions/{session_id}/undo")).json()
    assert sorted(undone["fieldSources"]) == ["lineItem-1-sku", "lineItem-2-sku"]
