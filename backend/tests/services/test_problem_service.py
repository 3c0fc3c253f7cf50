"""Problem Aggregate Service — gate, statements, display ids, visibility and listing.

Tests cover:
    - Statement round-trip and locale fallback in get_problem_detail
    - Failing VIEW on get_problem_detail is NOT_FOUND; every other gate is FORBIDDEN
    - Display id uniqueness, including the commit-time IntegrityError path
    - Public toggle: VIEW for everyone, never EDIT
    - query_problem_set visibility per identity and pagination bounds
"""

from problemhub.core.domain_types import (
    ANONYMOUS, MAX_PRINCIPAL_ID_LENGTH, Identity, PermissionGrant,
    PermissionLevel, PrincipalType,
)

from tests.factories import (
    ADMIN, OTHER, OWNER, THIRD, create_problem, statement,
)


def _grant(principal_id, level, principal_type=PrincipalType.USER):
    return PermissionGrant(principal_type, principal_id, level)


# ─── Creation ────────────────────────────────────────────────────

async def test_create_problem_is_private_and_owned(service):
    result = await service.create_problem(
        OWNER, display_id="P1000", statements=[statement("en")],
    )

    assert result["status"] == "ok"
    assert result["problem"]["display_id"] == "P1000"
    assert result["problem"]["is_public"] is False
    detail = await service.get_problem_detail(OWNER, result["problem"]["id"])
    assert detail["permission_level"] == "MANAGE"
    assert detail["owner_id"] == OWNER.user_id


async def test_anonymous_cannot_create(service):
    result = await service.create_problem(ANONYMOUS, statements=[statement()])
    assert result["error_code"] == "FORBIDDEN"


async def test_create_rejects_repeated_locale(service):
    result = await service.create_problem(
        OWNER, statements=[statement("en-US"), statement("en-us")],
    )
    assert result["error_code"] == "VALIDATION"
    assert result["field"] == "locale"


async def test_create_rejects_invalid_statement(service):
    bad = statement("en")
    bad["title"] = "   "
    result = await service.create_problem(OWNER, statements=[bad])
    assert result["error_code"] == "VALIDATION"


# ─── Statements ──────────────────────────────────────────────────

async def test_statement_round_trip_across_locales(service):
    problem_id = await create_problem(service)
    ja = statement("ja", "A たす B")

    update = await service.update_statement(
        OWNER, problem_id, ja["locale"], ja["title"], ja["content_sections"],
    )
    assert update["status"] == "ok"

    result = await service.get_statements_all_locales(OWNER, problem_id)
    assert sorted(result["statements"]) == ["en", "ja"]
    assert result["statements"]["ja"]["title"] == "A たす B"
    assert result["statements"]["ja"]["content_sections"] == ja["content_sections"]


async def test_update_statement_replaces_existing_locale(service):
    problem_id = await create_problem(service)
    await service.update_statement(OWNER, problem_id, "EN", "Renamed", [])

    result = await service.get_statements_all_locales(OWNER, problem_id)
    assert list(result["statements"]) == ["en"]
    assert result["statements"]["en"]["title"] == "Renamed"
    assert result["statements"]["en"]["content_sections"] == []


async def test_update_statement_validates_locale(service):
    problem_id = await create_problem(service)
    result = await service.update_statement(OWNER, problem_id, "en_US", "T", [])
    assert result["error_code"] == "VALIDATION"
    assert result["field"] == "locale"


async def test_detail_locale_fallback(service):
    problem_id = await create_problem(service, locales=("en", "ja"))

    assert (await service.get_problem_detail(OWNER, problem_id, "ja"))["result_locale"] == "ja"
    assert (await service.get_problem_detail(OWNER, problem_id, "fr"))["result_locale"] == "en"
    detail = await service.get_problem_detail(OWNER, problem_id)
    assert detail["result_locale"] == "en"
    assert detail["locales"] == ["en", "ja"]


async def test_detail_falls_back_to_first_locale_without_default(service):
    problem_id = await create_problem(service, locales=("ja", "de"))
    detail = await service.get_problem_detail(OWNER, problem_id, "fr")
    assert detail["result_locale"] == "de"


async def test_detail_without_statements_is_not_found(service):
    result = await service.create_problem(OWNER)
    detail = await service.get_problem_detail(OWNER, result["problem"]["id"])
    assert detail["error_code"] == "NOT_FOUND"


async def test_delete_statement_keeps_last_locale(service):
    problem_id = await create_problem(service, locales=("en", "ja"))

    result = await service.delete_statement(OWNER, problem_id, "JA")
    assert result == {"status": "ok", "locales": ["en"]}

    last = await service.delete_statement(OWNER, problem_id, "en")
    assert last["error_code"] == "VALIDATION"
    missing = await service.delete_statement(OWNER, problem_id, "fr")
    assert missing["error_code"] == "NOT_FOUND"


# ─── Gate ────────────────────────────────────────────────────────

async def test_detail_hides_private_problem(service):
    problem_id = await create_problem(service)
    result = await service.get_problem_detail(OTHER, problem_id)
    assert result["error_code"] == "NOT_FOUND"


async def test_other_operations_forbid_without_level(service):
    problem_id = await create_problem(service)

    checks = [
        await service.update_statement(OTHER, problem_id, "en", "T", []),
        await service.get_statements_all_locales(OTHER, problem_id),
        await service.set_public(OTHER, problem_id, True),
        await service.set_display_id(OTHER, problem_id, "X1"),
        await service.get_permissions(OTHER, problem_id),
        await service.delete_problem(OTHER, problem_id),
    ]
    assert {r["error_code"] for r in checks} == {"FORBIDDEN"}


async def test_unknown_problem_is_not_found(service):
    result = await service.get_statements_all_locales(OWNER, "no-such-problem")
    assert result["error_code"] == "NOT_FOUND"


async def test_group_grant_allows_edit_not_manage(service):
    problem_id = await create_problem(service)
    await service.set_permissions(OWNER, problem_id, [
        _grant("setters", PermissionLevel.EDIT, PrincipalType.GROUP),
    ])

    edit = await service.update_statement(THIRD, problem_id, "en", "By group", [])
    assert edit["status"] == "ok"
    manage = await service.set_permissions(THIRD, problem_id, [])
    assert manage["error_code"] == "FORBIDDEN"


async def test_edit_holder_sees_detail_without_permissions(service):
    problem_id = await create_problem(service)
    await service.set_permissions(OWNER, problem_id, [
        _grant(OTHER.user_id, PermissionLevel.EDIT),
    ])

    detail = await service.get_problem_detail(OTHER, problem_id)
    assert detail["permission_level"] == "EDIT"
    assert "permissions" not in detail
    assert "owner_id" not in detail


async def test_admin_manages_any_problem(service):
    problem_id = await create_problem(service)
    detail = await service.get_problem_detail(ADMIN, problem_id)
    assert detail["permission_level"] == "MANAGE"
    assert detail["permissions"][0]["is_owner"] is True


async def test_set_permissions_is_idempotent(service):
    problem_id = await create_problem(service)
    grants = [
        _grant(OTHER.user_id, PermissionLevel.VIEW),
        _grant("setters", PermissionLevel.EDIT, PrincipalType.GROUP),
    ]
    first = await service.set_permissions(OWNER, problem_id, grants)
    second = await service.set_permissions(OWNER, problem_id, grants)

    assert first["permissions"] == second["permissions"]
    assert second == await service.get_permissions(OWNER, problem_id)


async def test_set_permissions_duplicate_principal(service):
    problem_id = await create_problem(service)
    result = await service.set_permissions(OWNER, problem_id, [
        _grant(OTHER.user_id, PermissionLevel.VIEW),
        _grant(OTHER.user_id, PermissionLevel.EDIT),
    ])
    assert result["error_code"] == "VALIDATION"
    listing = await service.get_permissions(OWNER, problem_id)
    assert len(listing["permissions"]) == 1


# ─── Visibility ──────────────────────────────────────────────────

async def test_public_toggle_grants_view_only(service):
    problem_id = await create_problem(service)
    assert (await service.get_problem_detail(OTHER, problem_id))["error_code"] == "NOT_FOUND"

    result = await service.set_public(OWNER, problem_id, True)
    assert result["problem"]["is_public"] is True

    detail = await service.get_problem_detail(OTHER, problem_id)
    assert detail["permission_level"] == "VIEW"
    assert (await service.get_problem_detail(ANONYMOUS, problem_id))["status"] == "ok"
    edit = await service.update_statement(OTHER, problem_id, "en", "T", [])
    assert edit["error_code"] == "FORBIDDEN"

    await service.set_public(OWNER, problem_id, False)
    assert (await service.get_problem_detail(OTHER, problem_id))["error_code"] == "NOT_FOUND"


async def test_set_public_keeps_permission_entries(service):
    problem_id = await create_problem(service)
    await service.set_permissions(OWNER, problem_id, [
        _grant(OTHER.user_id, PermissionLevel.EDIT),
    ])
    await service.set_public(OWNER, problem_id, True)
    await service.set_public(OWNER, problem_id, False)

    detail = await service.get_problem_detail(OTHER, problem_id)
    assert detail["permission_level"] == "EDIT"


# ─── Display ids ─────────────────────────────────────────────────

async def test_display_id_resolves_like_problem_id(service):
    problem_id = await create_problem(service, display_id="P1001")
    detail = await service.get_problem_detail(OWNER, "P1001")
    assert detail["problem"]["id"] == problem_id


async def test_display_id_conflict_on_create(service):
    await create_problem(service, display_id="P1001")
    result = await service.create_problem(
        OTHER, display_id="P1001", statements=[statement()],
    )
    assert result["error_code"] == "DISPLAY_ID_CONFLICT"


async def test_set_display_id_conflict_and_clear(service):
    await create_problem(service, display_id="P1")
    problem_id = await create_problem(service, display_id="P2")

    conflict = await service.set_display_id(OWNER, problem_id, "P1")
    assert conflict["error_code"] == "DISPLAY_ID_CONFLICT"

    same = await service.set_display_id(OWNER, "P2", "P2")
    assert same["status"] == "ok"

    cleared = await service.set_display_id(OWNER, "P2", None)
    assert cleared["problem"]["display_id"] is None
    assert (await service.get_problem_detail(OWNER, "P2"))["error_code"] == "NOT_FOUND"


async def test_set_display_id_rejects_uuid_shape(service):
    problem_id = await create_problem(service)
    result = await service.set_display_id(OWNER, problem_id, problem_id)
    assert result["error_code"] == "VALIDATION"


async def test_display_id_race_maps_integrity_error(service, monkeypatch):
    await create_problem(service, display_id="P7")
    problem_id = await create_problem(service)

    async def never_taken(display_id, exclude=None):
        return False

    monkeypatch.setattr(service, "_display_id_taken", never_taken)
    result = await service.set_display_id(OWNER, problem_id, "P7")

    assert result["error_code"] == "DISPLAY_ID_CONFLICT"
    created = await service.create_problem(
        OWNER, display_id="P7", statements=[statement()],
    )
    assert created["error_code"] == "DISPLAY_ID_CONFLICT"


# ─── Listing ─────────────────────────────────────────────────────

async def test_query_problem_set_visibility(service):
    private_id = await create_problem(service)
    public_id = await create_problem(service)
    shared_id = await create_problem(service)
    await service.set_public(OWNER, public_id, True)
    await service.set_permissions(OWNER, shared_id, [
        _grant("setters", PermissionLevel.VIEW, PrincipalType.GROUP),
    ])

    def ids(result):
        return {p["id"] for p in result["problems"]}

    assert ids(await service.query_problem_set(ANONYMOUS)) == {public_id}
    assert ids(await service.query_problem_set(OTHER)) == {public_id}
    assert ids(await service.query_problem_set(THIRD)) == {public_id, shared_id}
    assert ids(await service.query_problem_set(OWNER)) == {
        private_id, public_id, shared_id,
    }
    assert (await service.query_problem_set(ADMIN))["count"] == 3


async def test_query_problem_set_titles_follow_locale(service):
    await create_problem(service, locales=("en", "ja"))
    result = await service.query_problem_set(OWNER, locale="ja")

    item = result["problems"][0]
    assert item["result_locale"] == "ja"
    assert item["title"] == "A + B (ja)"
    assert item["locales"] == ["en", "ja"]


async def test_query_problem_set_pagination(service):
    for _ in range(5):
        await create_problem(service)

    page = await service.query_problem_set(OWNER, skip=3, take=2)
    assert page["count"] == 5
    assert len(page["problems"]) == 2
    beyond = await service.query_problem_set(OWNER, skip=10, take=2)
    assert beyond["count"] == 5
    assert beyond["problems"] == []


async def test_query_problem_set_rejects_bad_bounds(service):
    assert (await service.query_problem_set(OWNER, take=0))["error_code"] == "VALIDATION"
    assert (await service.query_problem_set(OWNER, take=101))["error_code"] == "VALIDATION"
    assert (await service.query_problem_set(OWNER, skip=-1))["error_code"] == "VALIDATION"


async def test_create_rejects_owner_id_wider_than_column(service):
    result = await service.create_problem(
        Identity(user_id="u" * (MAX_PRINCIPAL_ID_LENGTH + 1)),
        statements=[statement()],
    )
    assert result["error_code"] == "VALIDATION"
    assert result["field"] == "user_id"
