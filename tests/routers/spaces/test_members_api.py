"""HTTP tests for space membership management."""

import pytest


@pytest.mark.integration
class TestMembersEndpoints:
  def test_list(self, client, space, admin_user):
    client.act_as(admin_user)

    response = client.get("/api/spaces/acme/members")

    assert response.status_code == 200
    members = response.json()["members"]
    assert {m["email"]: m["role"] for m in members} == {
      "owner@example.com": "owner",
      "admin@example.com": "admin",
      "member@example.com": "member",
    }

  def test_member_cannot_list(self, client, space, member_user):
    client.act_as(member_user)
    assert client.get("/api/spaces/acme/members").status_code == 403

  def test_add(self, client, space, admin_user, make_user):
    newcomer = make_user("new@example.com", "New Person")
    client.act_as(admin_user)

    response = client.post(
      "/api/spaces/acme/members", json={"email": "new@example.com"}
    )

    assert response.status_code == 201
    data = response.json()
    assert data["userId"] == newcomer.id
    assert data["role"] == "member"
    assert data["name"] == "New Person"

  def test_add_unknown_user(self, client, space, admin_user):
    client.act_as(admin_user)
    response = client.post(
      "/api/spaces/acme/members", json={"email": "ghost@example.com"}
    )
    assert response.status_code == 404
    assert response.json()["code"] == "USER_NOT_FOUND"

  def test_add_existing_member(self, client, space, admin_user):
    client.act_as(admin_user)
    response = client.post(
      "/api/spaces/acme/members", json={"email": "member@example.com"}
    )
    assert response.status_code == 409

  def test_invalid_role(self, client, space, owner, make_user):
    make_user("new@example.com")
    client.act_as(owner)
    response = client.post(
      "/api/spaces/acme/members",
      json={"email": "new@example.com", "role": "superuser"},
    )
    assert response.status_code == 400

  def test_change_role(self, client, space, admin_user, member_user):
    client.act_as(admin_user)

    response = client.patch(
      f"/api/spaces/acme/members/{member_user.id}", json={"role": "admin"}
    )

    assert response.status_code == 200
    assert response.json()["role"] == "admin"

  def test_last_owner_protected(self, client, space, owner):
    client.act_as(owner)
    response = client.patch(
      f"/api/spaces/acme/members/{owner.id}", json={"role": "member"}
    )
    assert response.status_code == 409
    assert response.json()["code"] == "LAST_OWNER"

  def test_admin_cannot_touch_owner(self, client, space, admin_user, owner):
    client.act_as(admin_user)
    response = client.delete(f"/api/spaces/acme/members/{owner.id}")
    assert response.status_code == 403

  def test_remove(self, client, space, admin_user, member_user):
    client.act_as(admin_user)

    response = client.delete(f"/api/spaces/acme/members/{member_user.id}")

    assert response.status_code == 200
    assert response.json() == {"message": "Member removed successfully"}
    client.act_as(member_user)
    assert client.get("/api/spaces/acme/files").status_code == 403

  def test_remove_non_member(self, client, space, admin_user, outsider):
    client.act_as(admin_user)
    response = client.delete(f"/api/spaces/acme/members/{outsider.id}")
    assert response.status_code == 404
    assert response.json()["code"] == "MEMBER_NOT_FOUND"
