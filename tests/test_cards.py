from datetime import datetime, timezone

import pytest


@pytest.fixture
def manager(staff_member):
    return staff_member("mg", "manager")


def seed_card(db, card_id, user_id, status="active", payments=0, day=1, **fields):
    return db.put("cards", card_id, user_id=user_id, cardholder_name=f"Holder {user_id}", phone_number="+91",
                  scheme_id=fields.pop("scheme_id", "s1"), subscription_status=status,
                  total_payments_made=payments, total_wallet_balance=payments * 100,
                  commission_wallet_balance=fields.pop("commission", 0), is_active=fields.pop("is_active", True),
                  created_at=datetime(2024, 1, day, tzinfo=timezone.utc), **fields)


def test_list_joins_profile_and_scheme(client, db, manager):
    db.put("user_profiles", "u1", full_name="Asha Rao", phone_number="+9198", kyc_verified=True)
    db.put("schemes", "s1", name="Gold Saver")
    seed_card(db, "c1", "u1")

    response = client.get("/api/v1/admin/cards", headers=manager)
    assert response.status_code == 200
    [card] = response.json()["data"]
    assert card["cardholderName"] == "Holder u1"
    assert card["schemeName"] == "Gold Saver"
    assert card["userProfile"]["fullName"] == "Asha Rao"
    assert card["userProfile"]["kycVerified"] is True


def test_list_filters(client, db, manager):
    seed_card(db, "c1", "u1", status="active")
    seed_card(db, "c2", "u1", status="paused", day=2)
    seed_card(db, "c3", "u2", status="active", day=3)

    def ids(params):
        response = client.get("/api/v1/admin/cards", params=params, headers=manager)
        return [c["id"] for c in response.json()["data"]]

    assert ids({}) == ["c3", "c2", "c1"]
    assert ids({"userId": "u1"}) == ["c2", "c1"]
    assert ids({"status": "active"}) == ["c3", "c1"]


def test_create_defaults(client, db, manager):
    response = client.post("/api/v1/admin/cards", headers=manager, json={
        "userId": "u1", "cardholderName": "Asha", "phoneNumber": "+919800000000", "schemeId": "s1",
    })
    assert response.status_code == 201
    card = response.json()["data"]
    assert card["subscriptionStatus"] == "active"
    assert card["paymentMethod"] == "upi_mandate"
    assert card["totalPaymentsMade"] == 0
    assert card["isActive"] is True
    assert "subscription_status" not in card
    assert client.get(f"/api/v1/admin/cards/{card['id']}", headers=manager).json()["data"].keys() == card.keys()


def test_create_rejects_unknown_status(client, manager):
    response = client.post("/api/v1/admin/cards", headers=manager, json={
        "userId": "u1", "cardholderName": "Asha", "phoneNumber": "+91", "subscriptionStatus": "frozen",
    })
    assert response.status_code == 400


def test_update_and_soft_delete(client, db, manager):
    seed_card(db, "c1", "u1")

    response = client.patch("/api/v1/admin/cards/c1", json={"subscriptionStatus": "paused"}, headers=manager)
    assert response.status_code == 200
    card = response.json()["data"]
    assert card["subscriptionStatus"] == "paused"
    assert card["userId"] == "u1"

    assert client.patch("/api/v1/admin/cards/c1", json={}, headers=manager).status_code == 400
    assert client.patch("/api/v1/admin/cards/nope", json={"mandateId": "m"}, headers=manager).status_code == 404

    assert client.delete("/api/v1/admin/cards/c1", headers=manager).status_code == 200
    assert db.row("cards", "c1")["is_active"] is False
    assert client.delete("/api/v1/admin/cards/nope", headers=manager).status_code == 404


def test_get_card(client, db, manager):
    seed_card(db, "c1", "u1")
    assert client.get("/api/v1/admin/cards/c1", headers=manager).json()["data"]["userId"] == "u1"
    assert client.get("/api/v1/admin/cards/nope", headers=manager).status_code == 404


def test_support_can_read_but_not_edit(client, db, staff_member):
    seed_card(db, "c1", "u1")
    support = staff_member("sp", "support")
    assert client.get("/api/v1/admin/cards", headers=support).status_code == 200
    assert client.delete("/api/v1/admin/cards/c1", headers=support).status_code == 403
    assert db.row("cards", "c1")["is_active"] is True


def test_stats(client, db, manager):
    seed_card(db, "c1", "u1", status="active", payments=3, commission=50)
    seed_card(db, "c2", "u2", status="active", payments=1)
    seed_card(db, "c3", "u3", status="cancelled", payments=2, commission=10)

    stats = client.get("/api/v1/admin/cards/stats", headers=manager).json()["data"]
    assert stats["totalCards"] == 3
    assert stats["activeCards"] == 2
    assert stats["byStatus"]["cancelled"] == 1
    assert stats["byStatus"]["paused"] == 0
    assert stats["totalWalletBalance"] == 600
    assert stats["totalCommissionBalance"] == 60
    assert stats["totalPaymentsMade"] == 6


def test_eligible_cards_for_draw(client, db, manager):
    seed_card(db, "late", "u1", payments=2, day=5)
    seed_card(db, "early", "u2", payments=1, day=2)
    seed_card(db, "unpaid", "u3", payments=0)
    seed_card(db, "paused", "u4", status="paused", payments=4)
    seed_card(db, "closed", "u5", payments=4, is_active=False)
    seed_card(db, "other", "u6", payments=4, scheme_id="s2")

    response = client.get("/api/v1/admin/winners/eligible-cards", params={"schemeId": "s1"}, headers=manager)
    assert [c["id"] for c in response.json()["data"]] == ["early", "late"]

    assert client.get("/api/v1/admin/winners/eligible-cards", headers=manager).status_code == 400


def test_end_user_sees_only_own_active_cards(client, db, end_user):
    headers = end_user("u1")
    seed_card(db, "mine", "u1")
    seed_card(db, "old", "u1", is_active=False)
    seed_card(db, "theirs", "u2")
    assert [c["id"] for c in client.get("/api/v1/cards", headers=headers).json()["data"]] == ["mine"]
