from urllib.parse import urlencode

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError

from crankslist.models.message import Message
from crankslist.routers import messages as messages_router

TREK = {"title": "Trek 520", "price": 800, "type": "touring", "condition": "good", "location": "Vancouver, BC"}


def contact_payload(listing_id, **overrides):
    payload = {
        "bikeId": listing_id,
        "bikeTitle": "Trek 520",
        "buyerName": "Bo",
        "buyerEmail": "bo@buyer.test",
        "message": "Is it still available?",
        "sellerEmail": "seller@crankslist.test",
    }
    payload.update(overrides)
    return payload


# ---------- Auth ----------
def test_signup_signin_and_cookie_session(client):
    r = client.post("/api/auth/signup", json={"email": "Rider@Crankslist.test", "password": "secret123",
                                             "confirm_password": "secret123"})
    assert r.status_code == 200
    assert r.json()["approval_status"] == "pending"

    r = client.post("/api/auth/signup", json={"email": "rider@crankslist.test", "password": "secret123",
                                             "confirm_password": "secret123"})
    assert r.status_code == 409

    r = client.post("/api/auth/signup", json={"email": "new@crankslist.test", "password": "secret123",
                                             "confirm_password": "nope"})
    assert r.status_code == 400
    assert r.json()["detail"] == "Passwords do not match"

    client.cookies.clear()
    assert client.get("/api/me").json()["user"] is None
    assert client.post("/api/auth/signin", json={"email": "rider@crankslist.test", "password": "bad"}).status_code == 401

    r = client.post("/api/auth/signin", json={"email": "rider@crankslist.test", "password": "secret123"})
    assert r.status_code == 200
    me = client.get("/api/me").json()
    assert me["user"]["email"] == "rider@crankslist.test"
    assert me["is_admin"] is False

    client.post("/api/auth/signout")
    client.cookies.clear()
    assert client.get("/api/me").json()["user"] is None


# ---------- Seller onboarding ----------
def test_seller_goes_from_pending_to_sold_listing(client, signup, admin_headers, profile_id_for):
    seller = signup("seller@crankslist.test")

    status = client.get("/api/sell/status", headers=seller).json()
    assert status["approval_status"] == "pending" and status["can_sell"] is False

    r = client.post("/api/listings", json=TREK, headers=seller)
    assert r.status_code == 403
    assert client.get("/api/listings").json()["total"] == 0

    queue = client.get("/api/admin/users", headers=admin_headers).json()
    pid = profile_id_for("seller@crankslist.test")
    assert pid in [p["id"] for p in queue["pending"]]

    assert client.post(f"/api/admin/users/{pid}/approve", headers=admin_headers).status_code == 200
    queue = client.get("/api/admin/users", headers=admin_headers).json()
    assert [p["id"] for p in queue["approved"]] == [pid]
    assert pid not in [p["id"] for p in queue["pending"]]
    assert client.get("/api/sell/status", headers=seller).json()["can_sell"] is True

    r = client.post("/api/listings", json={**TREK, "seller_email": "someone@else.test"}, headers=seller)
    assert r.status_code == 200
    trek = r.json()["item"]
    assert trek["seller_email"] == "seller@crankslist.test"
    assert trek["is_sold"] is False

    surly = client.post("/api/listings", json={**TREK, "title": "Surly LHT", "price": 1100}, headers=seller).json()["id"]
    assert [it["id"] for it in client.get("/api/listings").json()["items"]] == [surly, trek["id"]]

    r = client.post(f"/api/account/listings/{trek['id']}/sold", json={"sold": True}, headers=seller)
    assert r.json()["is_sold"] is True
    assert [it["id"] for it in client.get("/api/listings").json()["items"]] == [surly]
    # still reachable directly and in the owner's list
    assert client.get(f"/api/listings/{trek['id']}").json()["item"]["is_sold"] is True
    mine = client.get("/api/account/listings", headers=seller).json()["items"]
    assert {it["id"] for it in mine} == {surly, trek["id"]}


def test_rejected_seller_sees_reason(client, signup, admin_headers, profile_id_for):
    seller = signup("seller@crankslist.test")
    pid = profile_id_for("seller@crankslist.test")
    r = client.post(f"/api/admin/users/{pid}/reject", json={"reason": "Incomplete profile"}, headers=admin_headers)
    assert r.json()["profile"]["approval_status"] == "rejected"

    status = client.get("/api/sell/status", headers=seller).json()
    assert status == {"ok": True, "approval_status": "rejected", "can_sell": False,
                      "rejection_reason": "Incomplete profile"}
    assert client.post("/api/listings", json=TREK, headers=seller).status_code == 403
    assert client.post(f"/api/admin/users/{pid}/approve", headers=admin_headers).status_code == 409


def test_admin_endpoints_need_admin(client, signup, profile_id_for):
    user = signup("seller@crankslist.test")
    pid = profile_id_for("seller@crankslist.test")
    assert client.get("/api/is_admin", headers=user).json()["is_admin"] is False
    assert client.get("/api/admin/users", headers=user).status_code == 403
    assert client.post(f"/api/admin/users/{pid}/approve", headers=user).status_code == 403
    assert client.get("/api/admin/users").status_code == 401


def test_reject_without_body_uses_default_reason(client, signup, admin_headers, profile_id_for):
    signup("seller@crankslist.test")
    pid = profile_id_for("seller@crankslist.test")
    r = client.post(f"/api/admin/users/{pid}/reject", headers=admin_headers)
    assert r.json()["profile"]["rejection_reason"] == "No reason provided"
    assert client.post("/api/admin/users/9999/reject", headers=admin_headers).status_code == 404


# ---------- Listings ----------
def test_create_listing_validation(client, approved_seller):
    cases = [
        {k: v for k, v in TREK.items() if k != "title"},
        {**TREK, "price": -5},
        {**TREK, "price": "eight hundred"},
        {**TREK, "type": "unicycle"},
        {**TREK, "condition": "mint"},
        {**TREK, "currency": "EUR"},
        {**TREK, "images": [f"https://img.test/{i}.jpg" for i in range(6)]},
    ]
    for payload in cases:
        assert client.post("/api/listings", json=payload, headers=approved_seller).status_code == 400, payload
    assert client.post("/api/listings", json=TREK).status_code == 401


def test_only_owner_marks_sold(client, create_listing, signup, admin_headers, profile_id_for):
    lid = create_listing()
    other = signup("other@crankslist.test")
    client.post(f"/api/admin/users/{profile_id_for('other@crankslist.test')}/approve", headers=admin_headers)
    assert client.post(f"/api/account/listings/{lid}/sold", json={"sold": True}, headers=other).status_code == 403
    assert client.post("/api/account/listings/9999/sold", json={"sold": True}, headers=other).status_code == 404


def test_listing_detail_masks_seller(client, create_listing, approved_seller):
    lid = create_listing()
    item = client.get(f"/api/listings/{lid}").json()["item"]
    assert item["seller_email_masked"] == "se***@crankslist.test"
    assert "seller_email" not in item
    assert item["seller_name"] == "Seller"

    client.put("/api/account/profile", json={"display_name": "Sam", "phone": "604-555-0101"},
               headers=approved_seller)
    assert client.get(f"/api/listings/{lid}").json()["item"]["seller_name"] == "Sam"
    card = client.get(f"/api/listings/{lid}/contact").json()
    assert card["email"] == "se***@crankslist.test"
    assert card["phone"] == "604-555-0101"

    assert client.get("/api/listings/9999").status_code == 404


def test_browse_filters_and_shareable_query(client, create_listing):
    trek = create_listing()
    giant = create_listing(title="Giant Defy", price=1200, type="road", location="Victoria, BC", brand="Giant")
    norco = create_listing(title="Norco Storm", price=450, type="mountain", location="Burnaby, BC")

    def ids(**params):
        return [it["id"] for it in client.get("/api/listings", params=params).json()["items"]]

    assert ids() == [norco, giant, trek]
    assert ids(type="road") == [giant]
    assert ids(price="$1,000 - $2,000") == [giant]
    assert ids(price="under $500") == [norco]
    assert ids(search="GIANT") == [giant]
    assert ids(location="bc", maxPrice="1000") == [norco, trek]
    assert ids(minPrice="abc") == [norco, giant, trek]

    body = client.get("/api/listings", params={"location": " Vancouver ", "price": "$500 - $1,000"}).json()
    expected = urlencode([("price", "$500 - $1,000"), ("location", "Vancouver")])
    assert body["query"] == expected
    assert body["url"] == "/browse?" + expected
    assert body["filters"] == {"type": "", "minPrice": 500, "maxPrice": 1000, "location": "Vancouver", "search": ""}
    assert body["empty"] is False

    body = client.get("/api/listings", params={"search": "tandem"}).json()
    assert body["empty"] is True and body["items"] == [] and body["clear_url"] == "/browse"


def test_filter_edit_endpoint(client):
    r = client.post("/api/browse/filters", json={"query": "type=road&search=giant", "key": "type", "value": ""})
    assert r.json()["query"] == "search=giant"
    assert r.json()["url"] == "/browse?search=giant"

    r = client.post("/api/browse/filters", json={"query": "search=giant", "key": "location", "value": "Victoria"})
    assert r.json()["filters"]["location"] == "Victoria"

    r = client.post("/api/browse/filters", json={"query": "search=giant", "clear": True})
    assert r.json()["url"] == "/browse" and r.json()["query"] == ""
    assert client.post("/api/browse/filters", json={"query": ""}).status_code == 400


def test_categories_are_seeded(client):
    names = [c["name"] for c in client.get("/api/categories").json()["items"]]
    assert names[:3] == ["road", "mountain", "hybrid"]
    assert "touring" in names and len(names) == 10


# ---------- Profile ----------
def test_username_conflict_over_http(client, signup):
    a = signup("a@crankslist.test")
    b = signup("b@crankslist.test")
    assert client.put("/api/account/profile", json={"username": "jdoe"}, headers=a).status_code == 200
    r = client.put("/api/account/profile", json={"username": "jdoe"}, headers=b)
    assert r.status_code == 409
    assert r.json()["detail"] == "Username is already taken"
    assert client.put("/api/account/profile", json={"username": "j doe"}, headers=b).status_code == 400
    assert client.get("/api/account/profile", headers=a).json()["profile"]["username"] == "jdoe"
    assert client.get("/api/account/profile", headers=b).json()["profile"]["username"] == ""


def test_change_password_over_http(client, signup):
    h = signup("a@crankslist.test")
    r = client.post("/api/account/password", json={"new_password": "another1", "confirm_password": "another2"},
                    headers=h)
    assert r.status_code == 400 and r.json()["detail"] == "New passwords do not match"
    r = client.post("/api/account/password", json={"new_password": "another1", "confirm_password": "another1"},
                    headers=h)
    assert r.status_code == 200
    assert client.post("/api/auth/signin", json={"email": "a@crankslist.test", "password": "another1"}).status_code == 200


# ---------- Messaging ----------
def test_buyer_message_reaches_seller_inbox(client, db, create_listing, approved_seller):
    lid = create_listing()
    assert client.get("/api/messages/unread_count", headers=approved_seller).json()["count"] == 0

    r = client.post("/api/contact-seller", json=contact_payload(lid, sellerEmail="attacker@evil.test"))
    assert r.status_code == 200
    assert r.json()["success"] is True
    mid = r.json()["messageId"]

    stored = db.execute(select(Message).where(Message.id == mid)).scalar_one()
    assert stored.recipient_email == "seller@crankslist.test"

    assert client.get("/api/messages/unread_count", headers=approved_seller).json()["count"] == 1
    inbox = client.get("/api/messages", headers=approved_seller).json()["items"]
    assert [m["id"] for m in inbox] == [mid]
    assert inbox[0]["subject"] == "Interest in: Trek 520"
    assert inbox[0]["bike"] == {"title": "Trek 520", "price": 800, "location": "Vancouver, BC"}
    assert inbox[0]["is_read"] is False

    r = client.post(f"/api/messages/{mid}/read", headers=approved_seller)
    assert r.json()["changed"] is True and r.json()["is_read"] is True
    r = client.post(f"/api/messages/{mid}/read", headers=approved_seller)
    assert r.json()["changed"] is False
    assert client.get("/api/messages/unread_count", headers=approved_seller).json()["count"] == 0


def test_contact_seller_error_shapes(client, create_listing, monkeypatch):
    lid = create_listing()

    r = client.post("/api/contact-seller", json=contact_payload(lid, message="   "))
    assert r.status_code == 400 and r.json() == {"error": "Missing required fields"}
    r = client.post("/api/contact-seller", json={k: v for k, v in contact_payload(lid).items() if k != "sellerEmail"})
    assert r.status_code == 400
    r = client.post("/api/contact-seller", json=contact_payload("abc"))
    assert r.status_code == 400 and r.json() == {"error": "Missing required fields"}

    r = client.post("/api/contact-seller", json=contact_payload(lid + 100))
    assert r.status_code == 404 and r.json() == {"error": "Listing not found"}

    def broken(db, **kwargs):
        raise SQLAlchemyError("disk I/O error")

    monkeypatch.setattr(messages_router, "send_message", broken)
    r = client.post("/api/contact-seller", json=contact_payload(lid))
    assert r.status_code == 500 and r.json() == {"error": "Failed to send message"}


def test_only_recipient_reads_message(client, create_listing, signup):
    lid = create_listing()
    mid = client.post("/api/contact-seller", json=contact_payload(lid)).json()["messageId"]
    stranger = signup("stranger@crankslist.test")
    assert client.post(f"/api/messages/{mid}/read", headers=stranger).status_code == 403
    assert client.post("/api/messages/9999/read", headers=stranger).status_code == 404
    assert client.get("/api/messages", headers=stranger).json()["items"] == []
    assert client.get("/api/messages").status_code == 401


def test_health(client):
    assert client.get("/health").json() == {"status": "ok"}
