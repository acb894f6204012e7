from __future__ import annotations

import pytest

from app.state import global_state

LAYOUT_MAP = {
    "id": "lm-acme",
    "name": "ACME purchase order",
    "vendorId": "acme",
    "version": "2",
    "fieldRules": {
        "poNumber": [
            {
                "id": "po-rule",
                "anchorConfig": {"aliases": ["PO Number"]},
                "positionConfig": {"point": {"width": 100, "height": 20}},
            }
        ]
    },
}


@pytest.mark.asyncio
async def test_save_then_load_layout_map(client) -> None:
    saved = await client.post("/api/layout-maps", json=LAYOUT_MAP)

    assert saved.status_code == 200
    assert saved.json()["updatedAt"]
    assert (global_state.layout_store.directory / "acme_rules.json").exists()

    loaded = await client.get("/api/layout-maps/acme")

    assert loaded.status_code == 200
    body = loaded.json()
    assert body["id"] == "lm-acme"
    assert body["fieldRules"]["poNumber"][0]["positionConfig"]["startingPosition"] == "bottomLeft"

    listing = await client.get("/api/layout-maps")
    assert listing.json() == ["acme"]


@pytest.mark.asyncio
async def test_load_unknown_vendor_is_404(client) -> None:
    response = await client.get("/api/layout-maps/nobody")

    assert response.status_code == 404


@pytest.mark.asyncio
async def test_load_invalid_vendor_id_is_400(client) -> None:
    response = await client.get("/api/layout-maps/.hidden")

    assert response.status_code == 400


@pytest.mark.asyncio
async def test_save_without_vendor_is_400(client) -> None:
    body = {key: value for key, value in LAYOUT_MAP.items() if key != "vendorId"}

    response = await client.post("/api/layout-maps", json=body)

    assert response.status_code == 400
    assert response.json() == {"detail": "vendorId is required"}


@pytest.mark.asyncio
async def test_save_legacy_fields_list_is_migrated(client) -> None:
    legacy = {
        "id": "lm-old",
        "vendorId": "old-co",
        "fields": [{"id": "total", "rules": [{"id": "t", "ruleType": "regex", "parserConfig": {"patterns": [{"regex": "\\d+"}]}}]}],
    }

    response = await client.post("/api/layout-maps", json=legacy)

    assert response.status_code == 200
    rules = response.json()["fieldRules"]["total"]
    assert rules[0]["ruleType"] == "regexMatch"
