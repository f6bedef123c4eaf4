"""Admin endpoints: role guards, resource CRUD, user status and audit trail."""

from toiletcheck_api.db.models import AuditLog, Organization


def test_admin_routes_require_level_80(test_client, make_user, auth_headers):
    headers = auth_headers(make_user(role="supervisor"))

    for path in ("/api/admin/stats", "/api/admin/audit-logs", "/api/admin/resources/organizations"):
        response = test_client.get(path, headers=headers)
        assert response.status_code == 403
        assert response.json()["error"] == "Forbidden - Requires role level 80 or higher"


def test_user_list_requires_level_90(test_client, make_user, auth_headers):
    admin_headers = auth_headers(make_user(role="admin"))
    super_headers = auth_headers(make_user(role="super_admin"))

    assert test_client.get("/api/admin/users", headers=admin_headers).status_code == 403
    roles = test_client.get("/api/admin/users?roles=true", headers=admin_headers).json()["data"]
    assert [r["name"] for r in roles] == ["owner", "super_admin", "admin", "supervisor", "user"]

    users = test_client.get("/api/admin/users", headers=super_headers).json()["data"]
    assert len(users) == 2


def test_create_organization_is_audited(test_client, make_user, auth_headers, db_session):
    admin = make_user(role="admin")
    headers = auth_headers(admin)

    response = test_client.post(
        "/api/admin/resources/organizations",
        json={"name": "Grand Mall", "short_code": "GMAL", "unknown_column": "ignored"},
        headers=headers,
    )

    assert response.status_code == 201
    assert response.json()["message"] == "Organization created successfully"
    org_id = response.json()["data"]["id"]
    assert db_session.get(Organization, org_id).created_by == admin.id

    logs = test_client.get("/api/admin/audit-logs?action=CREATE_ORGANIZATION", headers=headers).json()
    entries = logs["data"]["logs"]
    assert len(entries) == 1
    assert entries[0]["resource_id"] == org_id
    assert entries[0]["user_id"] == admin.id


def test_create_location_generates_qr_code(test_client, facility, make_user, auth_headers):
    headers = auth_headers(make_user(role="admin"))

    response = test_client.post(
        "/api/admin/resources/locations",
        json={
            "name": "Toilet Lt. 4",
            "short_code": "F4T1",
            "organization_id": facility["organization"].id,
            "building_id": facility["building"].id,
        },
        headers=headers,
    )

    assert response.status_code == 201
    data = response.json()["data"]
    assert data["code"] == "F4T1"
    assert data["qr_code"].startswith("PROS-BLD1-F4T1-")


def test_create_with_missing_fields(test_client, make_user, auth_headers):
    response = test_client.post(
        "/api/admin/resources/buildings",
        json={"name": "Annex"},
        headers=auth_headers(make_user(role="admin")),
    )

    assert response.status_code == 400
    assert response.json()["error"].startswith("Missing required fields")


def test_unknown_resource_type(test_client, make_user, auth_headers):
    response = test_client.get("/api/admin/resources/toilets", headers=auth_headers(make_user(role="admin")))

    assert response.status_code == 400


def test_soft_delete_and_update(test_client, facility, make_user, auth_headers, db_session):
    headers = auth_headers(make_user(role="admin"))
    building_id = facility["building"].id

    assert test_client.delete("/api/admin/resources/buildings", headers=headers).status_code == 400

    updated = test_client.patch(
        f"/api/admin/resources/buildings?id={building_id}",
        json={"name": "North Block", "organization_id": "not-updatable"},
        headers=headers,
    )
    assert updated.status_code == 200
    assert updated.json()["data"]["name"] == "North Block"
    assert updated.json()["data"]["organization_id"] == facility["organization"].id

    deleted = test_client.delete(f"/api/admin/resources/buildings?id={building_id}", headers=headers)
    assert deleted.status_code == 200
    assert deleted.json()["data"]["is_active"] is False

    actions = [row.action for row in db_session.query(AuditLog).order_by(AuditLog.id)]
    assert actions == ["UPDATE_BUILDING", "DELETE_BUILDING"]


def test_deactivation_revokes_sessions(test_client, make_user, auth_headers):
    admin_headers = auth_headers(make_user(role="admin"))
    target = make_user(role="user")
    target_headers = auth_headers(target)

    response = test_client.post(
        "/api/admin/users/toggle-status",
        json={"userId": target.id, "isActive": False},
        headers=admin_headers,
    )

    assert response.status_code == 200
    assert response.json()["data"]["isActive"] is False
    assert test_client.get("/api/auth/me", headers=target_headers).status_code == 401


def test_toggle_status_guards(test_client, make_user, auth_headers):
    admin = make_user(role="admin")
    headers = auth_headers(admin)
    peer = make_user(role="admin")

    own = test_client.post(
        "/api/admin/users/toggle-status", json={"userId": admin.id, "isActive": False}, headers=headers
    )
    assert own.status_code == 400

    higher = test_client.post(
        "/api/admin/users/toggle-status", json={"userId": peer.id, "isActive": False}, headers=headers
    )
    assert higher.status_code == 403

    not_bool = test_client.post(
        "/api/admin/users/toggle-status", json={"userId": peer.id, "isActive": "no"}, headers=headers
    )
    assert not_bool.status_code == 400


def test_assign_role_requires_owner(test_client, make_user, auth_headers):
    target = make_user()
    body = {"userId": target.id, "roleName": "supervisor"}

    denied = test_client.post(
        "/api/admin/users/assign-role", json=body, headers=auth_headers(make_user(role="super_admin"))
    )
    assert denied.status_code == 403

    granted = test_client.post(
        "/api/admin/users/assign-role", json=body, headers=auth_headers(make_user(role="owner"))
    )
    assert granted.status_code == 200
    assert granted.json()["data"]["operation"] == "updated"

    me = test_client.get("/api/auth/verify-role", headers=auth_headers(target)).json()["data"]
    assert me["role"]["name"] == "supervisor"


def test_admin_reads_any_inspection(test_client, facility, make_user, auth_headers, make_inspection):
    record = make_inspection(make_user(), facility["location"])
    headers = auth_headers(make_user(role="admin"))

    assert test_client.get(f"/api/admin/inspections/{record.id}", headers=headers).status_code == 200
    listing = test_client.get("/api/admin/inspections", headers=headers).json()["data"]
    assert listing["count"] == 1
