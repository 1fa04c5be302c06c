"""
Account administration and self-service profile endpoints.

Test blocks:
  1. Listing and lookup
  2. Own profile and password
  3. Super admin updates
  4. Deleting accounts
"""

import pytest

from app.core.security import verify_password
from app.models.user import User, UserRole

from conftest import API, PASSWORD


# ═══════════════════════════════════════════════════════════════════════════════
# Block 1: Listing and lookup
# ═══════════════════════════════════════════════════════════════════════════════

class TestLookup:

    @pytest.mark.parametrize("actor,status", [("root", 200), ("um1", 403), ("eng1", 403), ("u1", 403)])
    def test_list_all_is_super_admin_only(self, client, world, auth_headers, actor, status):
        r = client.get(f"{API}/users", headers=auth_headers(world[actor]))
        assert r.status_code == status
        if status == 200:
            assert len(r.json()["users"]) == len(world)

    def test_engineers_list(self, client, make_user, world, auth_headers):
        make_user("eng0", UserRole.engineer, verified=False)
        r = client.get(f"{API}/users/engineers/list", headers=auth_headers(world["root"]))
        assert [u["username"] for u in r.json()["engineers"]] == ["eng1", "eng2"]

    def test_members_of_user_master(self, client, world, auth_headers):
        url = f"{API}/users/user-master/{world['um1'].id}/users"
        r = client.get(url, headers=auth_headers(world["um1"]))
        assert [u["id"] for u in r.json()["users"]] == [world["u1"].id]
        assert client.get(url, headers=auth_headers(world["root"])).status_code == 200
        assert client.get(url, headers=auth_headers(world["um2"])).status_code == 403

    def test_get_user(self, client, world, auth_headers):
        u1 = world["u1"]
        r = client.get(f"{API}/users/{u1.id}", headers=auth_headers(u1))
        assert r.json()["user"]["username"] == "u1"
        assert "password" not in r.json()["user"]
        assert client.get(f"{API}/users/{u1.id}", headers=auth_headers(world["u2"])).status_code == 403
        assert client.get(f"{API}/users/{u1.id}", headers=auth_headers(world["root"])).status_code == 200
        assert client.get(f"{API}/users/999", headers=auth_headers(world["root"])).status_code == 404
        # existence is not revealed to accounts that could not read it anyway
        assert client.get(f"{API}/users/999", headers=auth_headers(u1)).status_code == 403


# ═══════════════════════════════════════════════════════════════════════════════
# Block 2: Own profile and password
# ═══════════════════════════════════════════════════════════════════════════════

class TestProfile:

    def test_read_and_update(self, client, world, auth_headers, reload):
        headers = auth_headers(world["u1"])
        assert client.get(f"{API}/users/me/profile", headers=headers).json()["user"]["email"] == "u1@example.com"

        r = client.put(f"{API}/users/me/profile", headers=headers, json={"email": "new@example.com"})
        assert r.status_code == 200
        fresh = reload(User, world["u1"].id)
        assert fresh.email == "new@example.com"
        assert fresh.username == "u1"

    def test_update_conflict(self, client, world, auth_headers):
        r = client.put(f"{API}/users/me/profile", headers=auth_headers(world["u1"]), json={"username": "u2"})
        assert r.status_code == 400
        assert r.json()["code"] == "conflict"

    def test_change_password(self, client, world, auth_headers, reload):
        headers = auth_headers(world["u1"])
        r = client.put(f"{API}/users/me/password", headers=headers,
                       json={"current_password": "wrong-one", "new_password": "Another123!"})
        assert r.status_code == 400
        assert r.json()["code"] == "validation_failed"

        r = client.put(f"{API}/users/me/password", headers=headers,
                       json={"current_password": PASSWORD, "new_password": "Another123!"})
        assert r.status_code == 200
        assert verify_password("Another123!", reload(User, world["u1"].id).password)

        login = client.post(f"{API}/auth/login", json={"username": "u1", "password": "Another123!"})
        assert login.status_code == 200

    def test_new_password_too_short(self, client, world, auth_headers):
        r = client.put(f"{API}/users/me/password", headers=auth_headers(world["u1"]),
                       json={"current_password": PASSWORD, "new_password": "short"})
        assert r.status_code == 400


# ═══════════════════════════════════════════════════════════════════════════════
# Block 3: Super admin updates
# ═══════════════════════════════════════════════════════════════════════════════

class TestAdminUpdate:

    def test_only_super_admin(self, client, world, auth_headers):
        r = client.put(f"{API}/users/{world['u1'].id}", headers=auth_headers(world["um1"]), json={"level": 5})
        assert r.status_code == 403

    def test_move_user_to_other_master(self, client, world, auth_headers, reload):
        r = client.put(f"{API}/users/{world['u1'].id}", headers=auth_headers(world["root"]),
                       json={"user_master_id": world["um2"].id, "level": 5})
        assert r.status_code == 200
        fresh = reload(User, world["u1"].id)
        assert fresh.user_master_id == world["um2"].id
        assert fresh.level == 5

    def test_user_master_must_be_approved(self, client, make_user, world, auth_headers):
        pending = make_user("pum", UserRole.user_master, approved=False)
        headers = auth_headers(world["root"])
        for master_id in (pending.id, world["eng1"].id, 999):
            r = client.put(f"{API}/users/{world['u1'].id}", headers=headers, json={"user_master_id": master_id})
            assert r.status_code == 400, master_id
            assert r.json()["code"] == "validation_failed"

    def test_user_needs_a_master(self, client, world, auth_headers):
        r = client.put(f"{API}/users/{world['eng1'].id}", headers=auth_headers(world["root"]), json={"role": "user"})
        assert r.status_code == 400

    def test_non_user_cannot_have_master(self, client, world, auth_headers):
        r = client.put(f"{API}/users/{world['eng1'].id}", headers=auth_headers(world["root"]),
                       json={"user_master_id": world["um1"].id})
        assert r.status_code == 400

    def test_promotion_clears_master_and_sets_level(self, client, world, auth_headers, reload):
        r = client.put(f"{API}/users/{world['u1'].id}", headers=auth_headers(world["root"]), json={"role": "user_master"})
        assert r.status_code == 200
        fresh = reload(User, world["u1"].id)
        assert fresh.role == UserRole.user_master
        assert fresh.user_master_id is None
        assert fresh.level == 2

    def test_user_master_with_members_keeps_role(self, client, world, auth_headers, reload):
        r = client.put(f"{API}/users/{world['um1'].id}", headers=auth_headers(world["root"]), json={"role": "engineer"})
        assert r.status_code == 400
        assert r.json()["code"] == "conflict"
        assert reload(User, world["um1"].id).role == UserRole.user_master
        assert reload(User, world["u1"].id).user_master_id == world["um1"].id

    def test_user_master_without_members_can_change_role(self, client, make_user, world, auth_headers, reload):
        lonely = make_user("lonelyum", UserRole.user_master)
        r = client.put(f"{API}/users/{lonely.id}", headers=auth_headers(world["root"]), json={"role": "engineer"})
        assert r.status_code == 200
        assert reload(User, lonely.id).role == UserRole.engineer

    def test_duplicate_email(self, client, world, auth_headers):
        r = client.put(f"{API}/users/{world['u1'].id}", headers=auth_headers(world["root"]),
                       json={"email": "u2@example.com"})
        assert r.status_code == 400
        assert r.json()["code"] == "conflict"


# ═══════════════════════════════════════════════════════════════════════════════
# Block 4: Deleting accounts
# ═══════════════════════════════════════════════════════════════════════════════

class TestDelete:

    def test_clean_delete(self, client, make_user, world, auth_headers, reload):
        spare = make_user("spare", UserRole.engineer)
        assert client.delete(f"{API}/users/{spare.id}", headers=auth_headers(world["um1"])).status_code == 403
        assert client.delete(f"{API}/users/{spare.id}", headers=auth_headers(world["root"])).status_code == 200
        assert reload(User, spare.id) is None

    def test_cannot_delete_self(self, client, world, auth_headers):
        r = client.delete(f"{API}/users/{world['root'].id}", headers=auth_headers(world["root"]))
        assert r.status_code == 400
        assert r.json()["code"] == "validation_failed"

    def test_owner_of_work_is_kept(self, client, world, make_project, auth_headers, reload):
        make_project(world["u1"], "ALPHA")
        r = client.delete(f"{API}/users/{world['u1'].id}", headers=auth_headers(world["root"]))
        assert r.status_code == 400
        assert r.json()["code"] == "conflict"
        assert reload(User, world["u1"].id) is not None

    def test_user_master_with_members_is_kept(self, client, world, auth_headers, reload):
        r = client.delete(f"{API}/users/{world['um1'].id}", headers=auth_headers(world["root"]))
        assert r.status_code == 400
        assert r.json()["code"] == "conflict"
        assert reload(User, world["um1"].id) is not None
        assert reload(User, world["u1"].id).user_master_id == world["um1"].id

    def test_missing(self, client, world, auth_headers):
        assert client.delete(f"{API}/users/999", headers=auth_headers(world["root"])).status_code == 404
