"""Problem Routes — HTTP status mapping and request/response shapes.

Tests cover:
    - Create returns 201; anonymous create is 403
    - Hidden private problem is 404 on detail, other gates 403
    - Conflicts are 409, validation failures 400 with the error envelope
    - Display ids usable in every problem path
"""

from tests.factories import ADMIN, OTHER, OWNER, THIRD, headers_for, statement

BASE = "/api/v1/problems"


async def _create(client, display_id=None, locales=("en",)) -> str:
    res = await client.post(
        BASE,
        json={
            "display_id": display_id,
            "statements": [statement(loc) for loc in locales],
        },
        headers=headers_for(OWNER),
    )
    assert res.status_code == 201, res.text
    return res.json()["problem"]["id"]


async def test_create_and_get_detail(client):
    problem_id = await _create(client, display_id="P100", locales=("en", "ja"))

    res = await client.get(
        f"{BASE}/P100", params={"locale": "ja"}, headers=headers_for(OWNER),
    )
    assert res.status_code == 200
    body = res.json()
    assert body["problem"]["id"] == problem_id
    assert body["result_locale"] == "ja"
    assert body["locales"] == ["en", "ja"]
    assert body["permission_level"] == "MANAGE"
    assert "status" not in body


async def test_anonymous_create_forbidden(client):
    res = await client.post(BASE, json={"statements": [statement()]})
    assert res.status_code == 403
    assert res.json()["error"]["code"] == "FORBIDDEN"


async def test_private_detail_is_404_for_others(client):
    problem_id = await _create(client)
    res = await client.get(f"{BASE}/{problem_id}", headers=headers_for(OTHER))
    assert res.status_code == 404
    assert res.json()["error"]["code"] == "NOT_FOUND"


async def test_statement_write_without_edit_is_403(client):
    problem_id = await _create(client)
    res = await client.put(
        f"{BASE}/{problem_id}/statements/en",
        json={"title": "Hijack", "content_sections": []},
        headers=headers_for(OTHER),
    )
    assert res.status_code == 403


async def test_display_id_conflict_is_409(client):
    await _create(client, display_id="P1")
    problem_id = await _create(client, display_id="P2")

    res = await client.put(
        f"{BASE}/{problem_id}/display-id",
        json={"display_id": "P1"},
        headers=headers_for(OWNER),
    )
    assert res.status_code == 409
    error = res.json()["error"]
    assert error["code"] == "DISPLAY_ID_CONFLICT"
    assert error["details"]["display_id"] == "P1"


async def test_request_body_validation_is_400(client):
    res = await client.post(
        BASE,
        json={"statements": [{"locale": "not a locale", "title": "T"}]},
        headers=headers_for(OWNER),
    )
    assert res.status_code == 400
    error = res.json()["error"]
    assert error["code"] == "VALIDATION"
    assert any("locale" in d["field"] for d in error["details"])


async def test_public_toggle_and_listing(client):
    problem_id = await _create(client)

    listed = await client.get(BASE)
    assert listed.json() == {"count": 0, "problems": []}

    res = await client.put(
        f"{BASE}/{problem_id}/public",
        json={"is_public": True},
        headers=headers_for(OWNER),
    )
    assert res.status_code == 200

    listed = await client.get(BASE, params={"locale": "en"})
    body = listed.json()
    assert body["count"] == 1
    assert body["problems"][0]["title"] == "A + B (en)"
    assert (await client.get(f"{BASE}/{problem_id}")).status_code == 200


async def test_listing_take_above_limit_is_400(client):
    res = await client.get(BASE, params={"take": 1000})
    assert res.status_code == 400


async def test_permissions_replace_and_read(client):
    problem_id = await _create(client)
    entries = [
        {"principal_type": "group", "principal_id": "setters", "level": "EDIT"},
        {"principal_type": "user", "principal_id": OTHER.user_id, "level": "VIEW"},
    ]

    res = await client.put(
        f"{BASE}/{problem_id}/permissions",
        json={"entries": entries},
        headers=headers_for(OWNER),
    )
    assert res.status_code == 200
    permissions = res.json()["permissions"]
    assert permissions[0] == {
        "principal_type": "user", "principal_id": OWNER.user_id,
        "level": "MANAGE", "is_owner": True,
    }
    assert len(permissions) == 3

    edit = await client.put(
        f"{BASE}/{problem_id}/statements/fr",
        json={"title": "A plus B", "content_sections": [
            {"type": "description", "text": "Additionner."},
        ]},
        headers=headers_for(THIRD),
    )
    assert edit.status_code == 200
    assert edit.json()["statement"]["locale"] == "fr"

    denied = await client.get(
        f"{BASE}/{problem_id}/permissions", headers=headers_for(THIRD),
    )
    assert denied.status_code == 403


async def test_duplicate_principals_are_400(client):
    problem_id = await _create(client)
    entry = {"principal_type": "user", "principal_id": "u5", "level": "VIEW"}
    res = await client.put(
        f"{BASE}/{problem_id}/permissions",
        json={"entries": [entry, {**entry, "level": "EDIT"}]},
        headers=headers_for(OWNER),
    )
    assert res.status_code == 400
    assert res.json()["error"]["details"]["duplicates"] == ["user:u5"]


async def test_statements_all_locales_and_delete_locale(client):
    problem_id = await _create(client, locales=("en", "ja"))

    res = await client.get(
        f"{BASE}/{problem_id}/statements", headers=headers_for(OWNER),
    )
    assert sorted(res.json()["statements"]) == ["en", "ja"]

    deleted = await client.delete(
        f"{BASE}/{problem_id}/statements/ja", headers=headers_for(OWNER),
    )
    assert deleted.json() == {"locales": ["en"]}
    last = await client.delete(
        f"{BASE}/{problem_id}/statements/en", headers=headers_for(OWNER),
    )
    assert last.status_code == 400


async def test_samples_outside_samples_section_rejected(client):
    problem_id = await _create(client)
    res = await client.put(
        f"{BASE}/{problem_id}/statements/en",
        json={"title": "T", "content_sections": [
            {"type": "description", "samples": [{"input": "1", "output": "1"}]},
        ]},
        headers=headers_for(OWNER),
    )
    assert res.status_code == 400


async def test_delete_problem(client):
    problem_id = await _create(client, display_id="GONE")

    denied = await client.delete(f"{BASE}/GONE", headers=headers_for(OTHER))
    assert denied.status_code == 403

    res = await client.delete(f"{BASE}/GONE", headers=headers_for(ADMIN))
    assert res.status_code == 200
    assert res.json() == {"problem_id": problem_id, "removed_files": 0}
    missing = await client.get(f"{BASE}/{problem_id}", headers=headers_for(OWNER))
    assert missing.status_code == 404


async def test_display_id_with_slash_rejected(client):
    res = await client.post(
        BASE,
        json={"display_id": "contest/A", "statements": [statement()]},
        headers=headers_for(OWNER),
    )
    assert res.status_code == 400
    assert res.json()["error"]["details"]["field"] == "display_id"

    problem_id = await _create(client)
    renamed = await client.put(
        f"{BASE}/{problem_id}/display-id",
        json={"display_id": "contest/A"},
        headers=headers_for(OWNER),
    )
    assert renamed.status_code == 400


async def test_dotted_display_id_reaches_every_route(client):
    problem_id = await _create(client, display_id="abc.2024-D1_T1")

    detail = await client.get(f"{BASE}/abc.2024-D1_T1", headers=headers_for(OWNER))
    assert detail.json()["problem"]["id"] == problem_id
    files = await client.get(
        f"{BASE}/abc.2024-D1_T1/files", headers=headers_for(OWNER),
    )
    assert files.status_code == 200
