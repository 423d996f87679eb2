import io
from datetime import datetime, timezone

import pytest

from app.core.errors import NotFoundError, ValidationError
from app.services.winners import WinnerService, prize_value


@pytest.fixture
def manager(staff_member):
    return staff_member("mg", "manager")


def seed_scheme(db, scheme_id="s1", winners=3):
    return db.put("schemes", scheme_id, name="Gold Saver", subscription_amount=500, number_of_winners=winners,
                  created_at=datetime(2024, 1, 1, tzinfo=timezone.utc))


def seed_prize(db, prize_id, rank, cash=None, product=None, is_active=True):
    return db.put("prizes", prize_id, scheme_id="s1", name=f"Prize {rank}", rank=rank, cash_amount=cash,
                  product_details=product, is_active=is_active)


def seed_card(db, card_id, user_id):
    return db.put("cards", card_id, user_id=user_id, cardholder_name=f"Holder {user_id}", phone_number="+91")


# --- Winner assignment ---

def test_ranks_follow_pick_order(db):
    seed_scheme(db)
    seed_prize(db, "p2", 2, cash=500)
    seed_prize(db, "p1", 1, cash=1000)
    seed_prize(db, "p3", 3, product={"estimatedValue": 250})
    for n in (1, 2, 3):
        seed_card(db, f"c{n}", f"u{n}")

    created = WinnerService(db).create_multiple("s1", ["c2", "c1", "c3"], created_by="mg")

    assert [(w["card_id"], w["rank"], w["prize_id"]) for w in created] == [
        ("c2", 1, "p1"), ("c1", 2, "p2"), ("c3", 3, "p3"),
    ]
    assert [w["prize_value"] for w in created] == [1000, 500, 250]
    assert all(w["status"] == "pending" and w["is_active"] for w in created)
    assert created[0]["user_name"] == "Holder u2"
    assert len(db.data["winners"]) == 3


def test_extra_winners_share_the_last_prize(db):
    seed_scheme(db, winners=3)
    seed_prize(db, "p1", 1, cash=1000)
    for n in (1, 2, 3):
        seed_card(db, f"c{n}", f"u{n}")

    created = WinnerService(db).create_multiple("s1", ["c1", "c2", "c3"], created_by="mg")
    assert [w["prize_id"] for w in created] == ["p1", "p1", "p1"]
    assert [w["rank"] for w in created] == [1, 2, 3]


def test_picks_beyond_number_of_winners_are_ignored(db):
    seed_scheme(db, winners=2)
    seed_prize(db, "p1", 1, cash=1000)
    seed_prize(db, "p2", 2, cash=500)
    seed_prize(db, "p3", 3, cash=100)
    for n in (1, 2, 3):
        seed_card(db, f"c{n}", f"u{n}")

    created = WinnerService(db).create_multiple("s1", ["c1", "c2", "c3"], created_by="mg")
    assert [w["card_id"] for w in created] == ["c1", "c2"]


def test_inactive_prizes_are_skipped(db):
    seed_scheme(db)
    seed_prize(db, "p1", 1, cash=1000, is_active=False)
    seed_prize(db, "p2", 2, cash=500)
    seed_card(db, "c1", "u1")

    [winner] = WinnerService(db).create_multiple("s1", ["c1"], created_by="mg")
    assert winner["prize_id"] == "p2"


def test_create_multiple_errors(db):
    service = WinnerService(db)
    with pytest.raises(NotFoundError):
        service.create_multiple("missing", ["c1"], created_by="mg")

    seed_scheme(db, "s0", winners=0)
    with pytest.raises(ValidationError, match="no winners configured"):
        service.create_multiple("s0", ["c1"], created_by="mg")

    seed_scheme(db)
    with pytest.raises(ValidationError, match="No active prizes"):
        service.create_multiple("s1", ["c1"], created_by="mg")

    seed_prize(db, "p1", 1, cash=10)
    with pytest.raises(ValidationError, match="No valid cards"):
        service.create_multiple("s1", ["ghost"], created_by="mg")
    assert "winners" not in db.data


def test_prize_value():
    assert prize_value({"cash_amount": 100}) == 100
    assert prize_value({"cash_amount": 0, "product_details": {"estimatedValue": 40}}) == 40
    assert prize_value({"product_details": None}) == 0


def test_winner_routes(client, db, staff_member, manager):
    seed_scheme(db)
    seed_prize(db, "p1", 1, cash=1000)
    seed_card(db, "c1", "u1")

    response = client.post("/api/v1/admin/winners", json={"schemeId": "s1", "cardIds": ["c1"]}, headers=manager)
    assert response.status_code == 201
    winner_id = response.json()["data"][0]["id"]

    assert client.post("/api/v1/admin/winners", json={"schemeId": "s1", "cardIds": []},
                       headers=manager).status_code == 400

    listed = client.get("/api/v1/admin/winners", params={"schemeId": "s1"}, headers=manager).json()["data"]
    assert [w["id"] for w in listed] == [winner_id]

    # Managers cannot change a winner, support can
    assert client.patch(f"/api/v1/admin/winners/{winner_id}", json={"status": "claimed"},
                        headers=manager).status_code == 403
    support = staff_member("sp", "support")
    response = client.patch(f"/api/v1/admin/winners/{winner_id}", json={"status": "claimed"}, headers=support)
    assert response.status_code == 200
    assert response.json()["data"]["status"] == "claimed"
    assert client.patch(f"/api/v1/admin/winners/{winner_id}", json={"status": "lost"},
                        headers=support).status_code == 400

    assert client.delete(f"/api/v1/admin/winners/{winner_id}", headers=support).status_code == 200
    assert client.get("/api/v1/admin/winners", headers=manager).json()["data"] == []


# --- Schemes and prizes ---

def test_scheme_crud(client, db, manager):
    body = {"name": "Silver", "subscription_amount": 250, "start_date": "2024-01-01", "end_date": "2024-12-31"}
    response = client.post("/api/v1/admin/schemes", json=body, headers=manager)
    assert response.status_code == 201
    scheme = response.json()["data"]
    assert scheme["created_by"] == "mg"
    assert scheme["status"] == "draft"

    bad = {**body, "end_date": "2023-12-31"}
    assert client.post("/api/v1/admin/schemes", json=bad, headers=manager).status_code == 400

    response = client.patch(f"/api/v1/admin/schemes/{scheme['id']}", json={"status": "active"}, headers=manager)
    assert response.json()["data"]["status"] == "active"
    assert client.patch("/api/v1/admin/schemes/nope", json={"status": "active"}, headers=manager).status_code == 404

    assert client.get("/api/v1/admin/schemes/nope", headers=manager).status_code == 404
    assert len(client.get("/api/v1/admin/schemes", headers=manager).json()["data"]) == 1


def test_public_scheme_listing(client, db, end_user):
    seed_scheme(db)
    headers = end_user("u1")
    assert client.get("/api/v1/schemes", headers=headers).json()["data"][0]["name"] == "Gold Saver"
    assert client.get("/api/v1/schemes", headers={}).status_code == 401


def test_scheme_image_replaces_previous(client, db, images, manager):
    seed_scheme(db)
    db.data["schemes"]["s1"]["image_url"] = "https://storage.googleapis.com/test-bucket/old.png"

    response = client.post("/api/v1/admin/schemes/s1/image", headers=manager,
                           files={"file": ("banner.png", io.BytesIO(b"png"), "image/png")})
    assert response.status_code == 200
    assert response.json()["data"]["image_url"] == images.uploaded[0]
    assert images.deleted == ["https://storage.googleapis.com/test-bucket/old.png"]


def test_prize_routes(client, db, manager, staff_member):
    seed_scheme(db)
    assert client.post("/api/v1/admin/schemes/nope/prizes", json={"name": "TV", "rank": 1},
                       headers=manager).status_code == 404

    response = client.post("/api/v1/admin/schemes/s1/prizes", headers=manager,
                           json={"name": "TV", "rank": 2, "prize_type": "product",
                                 "product_details": {"estimatedValue": 30000}})
    assert response.status_code == 201
    prize_id = response.json()["data"]["id"]
    client.post("/api/v1/admin/schemes/s1/prizes", json={"name": "Cash", "rank": 1, "cash_amount": 5000},
                headers=manager)

    listed = client.get("/api/v1/admin/schemes/s1/prizes", headers=manager).json()["data"]
    assert [p["rank"] for p in listed] == [1, 2]

    # Deleting needs schemes:delete, which managers do not have
    assert client.delete(f"/api/v1/admin/prizes/{prize_id}", headers=manager).status_code == 403
    admin = staff_member("ad", "admin")
    assert client.delete(f"/api/v1/admin/prizes/{prize_id}", headers=admin).status_code == 200
    assert db.row("prizes", prize_id)["is_active"] is False
    assert len(client.get("/api/v1/admin/schemes/s1/prizes", headers=manager).json()["data"]) == 1


# --- Monthly draws ---

def test_draw_winners_by_month(client, db, manager):
    seed_scheme(db)
    response = client.post("/api/v1/admin/schemes/s1/winners", headers=manager, json={
        "month": "2024-03", "winners": [{"user_id": "u1"}, {"user_id": "u2", "allow_future_participation": True}],
    })
    assert response.json()["data"] == {"added": 2}

    march = client.get("/api/v1/admin/schemes/s1/winners", params={"month": "2024-03"}, headers=manager)
    assert {w["user_id"] for w in march.json()["data"]} == {"u1", "u2"}
    april = client.get("/api/v1/admin/schemes/s1/winners", params={"month": "2024-04"}, headers=manager)
    assert april.json()["data"] == []

    assert client.get("/api/v1/admin/schemes/s1/winners", headers=manager).status_code == 400
    assert client.get("/api/v1/admin/schemes/s1/eligible", params={"month": "March"},
                      headers=manager).status_code == 400


def test_periods_go_through_rpc(client, rpc, manager):
    rpc.responses["get_scheme_periods"] = [{"period": "2024-01"}]
    response = client.post("/api/v1/admin/schemes/s1/periods", headers=manager)
    assert response.json()["data"] == [{"period": "2024-01"}]
    assert rpc.calls == [
        ("ensure_scheme_periods", {"p_scheme_id": "s1"}),
        ("get_scheme_periods", {"p_scheme_id": "s1"}),
    ]
