"""
Ticket numbering and lifecycle.

Test blocks:
  1. Ticket numbers (format, per-code sequence, no reuse, concurrent creation)
  2. Filing tickets (project permission)
  3. Status changes, assignment and approvals
  4. Listing and detail
"""

import threading
from concurrent.futures import ThreadPoolExecutor
from datetime import date

import pytest
from sqlalchemy import insert

from app.core.errors import Conflict
from app.db.base import Base
from app.db.session import make_engine, make_session_factory
from app.models.notification import Notification, NotificationKind
from app.models.project import Project, TicketSequence
from app.models.ticket import Ticket, TicketStatus
from app.models.user import User, UserRole
from app.services.approvals import initial_approval_flags
from app.services import tickets as ticket_service
from app.services.tickets import create_ticket, ensure_sequence, format_ticket_number

from conftest import API, make_settings


# ═══════════════════════════════════════════════════════════════════════════════
# Block 1: Ticket numbers
# ═══════════════════════════════════════════════════════════════════════════════

class TestTicketNumbers:

    def test_format(self):
        assert format_ticket_number("ALPHA", 1) == "BITM-ALPHA-0001"
        assert format_ticket_number("ALPHA", 12345) == "BITM-ALPHA-12345"

    def test_sequence_is_per_project_code(self, world, make_project, make_ticket):
        alpha = make_project(world["u1"], "ALPHA")
        beta = make_project(world["u1"], "BETA")
        assert make_ticket(world["u1"], alpha).ticket_number == "BITM-ALPHA-0001"
        assert make_ticket(world["u1"], alpha).ticket_number == "BITM-ALPHA-0002"
        assert make_ticket(world["u1"], beta).ticket_number == "BITM-BETA-0001"
        assert make_ticket(world["u1"], alpha).ticket_number == "BITM-ALPHA-0003"

    def test_numbers_are_not_reused_after_delete(self, db, world, make_project, make_ticket):
        project = make_project(world["u1"], "GAMMA")
        make_ticket(world["u1"], project)
        second = make_ticket(world["u1"], project)
        db.delete(second)
        db.commit()
        assert make_ticket(world["u1"], project).ticket_number == "BITM-GAMMA-0003"

    def test_missing_counter_is_seeded_from_existing_numbers(self, db, world):
        project = Project(name="Legacy", code="OLD", owner_id=world["u1"].id)
        db.add(project)
        db.flush()
        db.add(Ticket(ticket_number="BITM-OLD-0007", project_id=project.id, creator_id=world["u1"].id, title="t"))
        db.commit()
        assert db.get(TicketSequence, "OLD") is None

        ticket = create_ticket(db, world["u1"], project.id, title="next")
        assert ticket.ticket_number == "BITM-OLD-0008"

    def test_counter_seeded_concurrently_is_a_conflict(self, db, world, monkeypatch):
        project = Project(name="Legacy", code="OLD", owner_id=world["u1"].id)
        db.add(project)
        db.commit()

        def seeded_elsewhere(session, code):
            # another request inserts the counter between our lookup and our insert
            session.execute(insert(TicketSequence).values(project_code=code, last_value=3))
            return 0

        monkeypatch.setattr(ticket_service, "_highest_issued", seeded_elsewhere)
        with pytest.raises(Conflict):
            create_ticket(db, world["u1"], project.id, title="next")
        assert db.query(Ticket).count() == 0

    def test_concurrent_creation_yields_contiguous_numbers(self, tmp_path):
        settings = make_settings(f"sqlite:///{tmp_path / 'itms.db'}")
        engine = make_engine(settings)
        Base.metadata.create_all(engine)
        factory = make_session_factory(engine)

        with factory() as s:
            owner = User(
                username="owner", email="owner@example.com", password="-", role=UserRole.engineer,
                is_verified=True, **initial_approval_flags(UserRole.engineer),
            )
            s.add(owner)
            s.flush()
            project = Project(name="Race", code="RACE", owner_id=owner.id)
            s.add(project)
            s.flush()
            ensure_sequence(s, "RACE")
            s.commit()
            owner_id, project_id = owner.id, project.id

        workers = 10
        start = threading.Barrier(workers)

        def file_one(i):
            with factory() as s:
                creator = s.get(User, owner_id)
                start.wait()
                return create_ticket(s, creator, project_id, title=f"ticket {i}").ticket_number

        with ThreadPoolExecutor(max_workers=workers) as pool:
            numbers = list(pool.map(file_one, range(workers)))

        engine.dispose()
        assert sorted(numbers) == [format_ticket_number("RACE", n) for n in range(1, workers + 1)]


# ═══════════════════════════════════════════════════════════════════════════════
# Block 2: Filing tickets
# ═══════════════════════════════════════════════════════════════════════════════

class TestCreate:

    def test_owner_files_ticket(self, client, world, make_project, auth_headers):
        project = make_project(world["u1"], "ALPHA")
        r = client.post(f"{API}/tickets", headers=auth_headers(world["u1"]), json={
            "project_id": project.id, "title": "VPN down", "severity": "high",
            "requested_end_date": "2026-12-01",
        })
        assert r.status_code == 200, r.text
        t = r.json()["ticket"]
        assert t["ticket_number"] == "BITM-ALPHA-0001"
        assert t["status"] == "new"
        assert t["project_code"] == "ALPHA"
        assert t["creator_name"] == "u1"
        assert t["requested_end_date"] == "2026-12-01"
        assert t["is_approved_by_user_master"] is False

    def test_user_cannot_file_on_foreign_project(self, client, world, make_project, auth_headers):
        project = make_project(world["u1"], "ALPHA")
        r = client.post(f"{API}/tickets", headers=auth_headers(world["u2"]), json={"project_id": project.id, "title": "x"})
        assert r.status_code == 403

    @pytest.mark.parametrize("actor", ["um2", "eng1", "root"])
    def test_non_user_roles_may_file_anywhere(self, client, world, make_project, auth_headers, actor):
        project = make_project(world["u1"], "ALPHA")
        r = client.post(f"{API}/tickets", headers=auth_headers(world[actor]), json={"project_id": project.id, "title": "x"})
        assert r.status_code == 200

    def test_missing_project(self, client, world, auth_headers):
        r = client.post(f"{API}/tickets", headers=auth_headers(world["root"]), json={"project_id": 404, "title": "x"})
        assert r.status_code == 404

    def test_rejected_filing_does_not_consume_a_number(self, client, world, make_project, make_ticket, auth_headers):
        project = make_project(world["u1"], "ALPHA")
        client.post(f"{API}/tickets", headers=auth_headers(world["u2"]), json={"project_id": project.id, "title": "x"})
        assert make_ticket(world["u1"], project).ticket_number == "BITM-ALPHA-0001"


# ═══════════════════════════════════════════════════════════════════════════════
# Block 3: Lifecycle
# ═══════════════════════════════════════════════════════════════════════════════

@pytest.fixture
def ticket(world, make_project, make_ticket):
    project = make_project(world["u1"], "ALPHA")
    return make_ticket(world["u1"], project)


class TestLifecycle:

    def _status(self, client, headers, ticket_id, status):
        return client.put(f"{API}/tickets/{ticket_id}/status", headers=headers, json={"status": status})

    def test_assign_sets_status_and_notifies(self, client, db, world, ticket, auth_headers, reload):
        r = client.put(f"{API}/tickets/{ticket.id}/assign", headers=auth_headers(world["root"]),
                       json={"engineer_id": world["eng1"].id})
        assert r.status_code == 200
        assert r.json()["ticket"]["assigned_engineer_name"] == "eng1"

        t = reload(Ticket, ticket.id)
        assert t.status == TicketStatus.assigned
        assert t.assigned_engineer_id == world["eng1"].id
        kinds = [n.kind for n in db.query(Notification).filter_by(user_id=world["eng1"].id)]
        assert kinds == [NotificationKind.ticket_assigned.value]

    def test_only_super_admin_assigns(self, client, world, ticket, auth_headers):
        r = client.put(f"{API}/tickets/{ticket.id}/assign", headers=auth_headers(world["eng1"]),
                       json={"engineer_id": world["eng1"].id})
        assert r.status_code == 403

    def test_assignee_must_be_engineer(self, client, world, ticket, auth_headers):
        r = client.put(f"{API}/tickets/{ticket.id}/assign", headers=auth_headers(world["root"]),
                       json={"engineer_id": world["u2"].id})
        assert r.status_code == 400

    def test_status_by_assigned_engineer(self, client, db, world, ticket, auth_headers, reload):
        ticket.assigned_engineer_id = world["eng1"].id
        db.commit()

        r = self._status(client, auth_headers(world["eng1"]), ticket.id, "in_progress")
        assert r.status_code == 200
        assert reload(Ticket, ticket.id).actual_end_date is None
        assert db.query(Notification).filter_by(
            user_id=world["u1"].id, kind=NotificationKind.ticket_status.value
        ).count() == 1

    @pytest.mark.parametrize("actor", ["u1", "eng2", "um1"])
    def test_status_forbidden_for_others(self, client, db, world, ticket, auth_headers, actor):
        ticket.assigned_engineer_id = world["eng1"].id
        db.commit()
        assert self._status(client, auth_headers(world[actor]), ticket.id, "closed").status_code == 403

    def test_complete_stamps_end_date(self, client, world, ticket, auth_headers, reload):
        r = self._status(client, auth_headers(world["root"]), ticket.id, "complete")
        assert r.status_code == 200
        assert reload(Ticket, ticket.id).actual_end_date == date.today()

    def test_unknown_status(self, client, world, ticket, auth_headers):
        r = self._status(client, auth_headers(world["root"]), ticket.id, "exploded")
        assert r.status_code == 400
        assert r.json()["code"] == "validation_failed"

    def test_missing_ticket(self, client, world, auth_headers):
        assert self._status(client, auth_headers(world["root"]), 999, "closed").status_code == 404

    def test_user_master_approves_own_users_ticket(self, client, db, world, ticket, auth_headers, reload):
        r = client.put(f"{API}/tickets/{ticket.id}/approve", headers=auth_headers(world["um1"]),
                       json={"approval_type": "user_master"})
        assert r.status_code == 200
        t = reload(Ticket, ticket.id)
        assert t.is_approved_by_user_master is True
        assert t.is_approved_by_super_admin is False
        assert db.query(Notification).filter_by(
            user_id=world["u1"].id, kind=NotificationKind.ticket_approved.value
        ).count() == 1

    def test_foreign_user_master_cannot_approve(self, client, world, ticket, auth_headers):
        r = client.put(f"{API}/tickets/{ticket.id}/approve", headers=auth_headers(world["um2"]),
                       json={"approval_type": "user_master"})
        assert r.status_code == 403

    def test_approval_type_must_match_role(self, client, world, ticket, auth_headers):
        for actor, kind in (("um1", "super_admin"), ("root", "user_master"), ("root", None)):
            r = client.put(f"{API}/tickets/{ticket.id}/approve", headers=auth_headers(world[actor]),
                           json={"approval_type": kind})
            assert r.status_code == 403, (actor, kind)

    def test_super_admin_approval(self, client, world, ticket, auth_headers, reload):
        r = client.put(f"{API}/tickets/{ticket.id}/approve", headers=auth_headers(world["root"]),
                       json={"approval_type": "super_admin"})
        assert r.status_code == 200
        assert reload(Ticket, ticket.id).is_approved_by_super_admin is True


# ═══════════════════════════════════════════════════════════════════════════════
# Block 4: Listing and detail
# ═══════════════════════════════════════════════════════════════════════════════

class TestListing:

    def test_my_tickets_by_role(self, client, db, world, make_project, make_ticket, auth_headers):
        project = make_project(world["u1"], "ALPHA")
        mine = make_ticket(world["u1"], project)
        assigned = make_ticket(world["root"], project)
        assigned.assigned_engineer_id = world["eng1"].id
        db.commit()

        r = client.get(f"{API}/tickets/my", headers=auth_headers(world["u1"]))
        assert [t["id"] for t in r.json()["tickets"]] == [mine.id]

        r = client.get(f"{API}/tickets/my", headers=auth_headers(world["eng1"]))
        assert [t["id"] for t in r.json()["tickets"]] == [assigned.id]

    def test_awaiting_approval_queue(self, client, db, world, make_project, make_ticket, auth_headers):
        alpha = make_project(world["u1"], "ALPHA")
        beta = make_project(world["u2"], "BETA")
        pending = make_ticket(world["u1"], alpha)
        done = make_ticket(world["u1"], alpha)
        own = make_ticket(world["um1"], alpha)
        foreign = make_ticket(world["u2"], beta)
        done.is_approved_by_user_master = True
        db.commit()

        r = client.get(f"{API}/tickets/awaiting-approval", headers=auth_headers(world["um1"]))
        assert r.status_code == 200
        assert [t["id"] for t in r.json()["tickets"]] == [pending.id, own.id]
        # the queue is readable even though the tickets themselves are not
        assert client.get(f"{API}/tickets/{pending.id}", headers=auth_headers(world["um1"])).status_code == 403

        r = client.get(f"{API}/tickets/awaiting-approval", headers=auth_headers(world["root"]))
        assert [t["id"] for t in r.json()["tickets"]] == [pending.id, done.id, own.id, foreign.id]

    @pytest.mark.parametrize("actor", ["u1", "eng1"])
    def test_awaiting_approval_needs_authority(self, client, world, auth_headers, actor):
        r = client.get(f"{API}/tickets/awaiting-approval", headers=auth_headers(world[actor]))
        assert r.status_code == 403

    def test_list_all(self, client, world, ticket, auth_headers):
        assert client.get(f"{API}/tickets", headers=auth_headers(world["u1"])).status_code == 403
        assert client.get(f"{API}/tickets", headers=auth_headers(world["um1"])).status_code == 403
        r = client.get(f"{API}/tickets", headers=auth_headers(world["eng2"]))
        assert r.status_code == 200
        assert len(r.json()["tickets"]) == 1

    def test_detail_visibility(self, client, world, ticket, auth_headers):
        assert client.get(f"{API}/tickets/{ticket.id}", headers=auth_headers(world["u2"])).status_code == 403
        r = client.get(f"{API}/tickets/{ticket.id}", headers=auth_headers(world["eng2"]))
        assert r.status_code == 200
        assert r.json()["ticket"]["project_name"] == "Project ALPHA"
        assert client.get(f"{API}/tickets/999", headers=auth_headers(world["root"])).status_code == 404
