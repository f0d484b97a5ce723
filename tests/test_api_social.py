from app.models.favorite import Favorite
from app.models.message import Message
from app.models.notification import Notification
from app.models.review import Review

from conftest import auth_headers, make_order


# --------------------------------------------------------------------
# Reviews
# --------------------------------------------------------------------
def review(client, user, farm, order, rating=5, comment="Great tomatoes"):
    return client.post("/reviews/", json={
        "farmer_id": farm.id, "order_id": order.id, "rating": rating, "comment": comment,
    }, headers=auth_headers(user))


def test_buyer_reviews_completed_order_once(client, db, buyer, farm):
    order = make_order(db, buyer, farm, status="completed")

    first = review(client, buyer, farm, order)
    assert first.status_code == 201
    assert first.json()["buyer_id"] == buyer.id

    assert review(client, buyer, farm, order, rating=1).status_code == 409
    assert db.query(Review).count() == 1


def test_review_needs_completed_order(client, db, buyer, farm):
    order = make_order(db, buyer, farm, status="ready")
    assert review(client, buyer, farm, order).status_code == 403
    assert db.query(Review).count() == 0


def test_review_only_by_the_orders_buyer(client, db, buyer, other_buyer, farm):
    order = make_order(db, buyer, farm, status="completed")
    assert review(client, other_buyer, farm, order).status_code == 403


def test_review_must_match_the_orders_farm(client, db, buyer, farm, other_farm):
    order = make_order(db, buyer, farm, status="completed")
    assert review(client, buyer, other_farm, order).status_code == 422


def test_rating_range(client, db, buyer, farm):
    order = make_order(db, buyer, farm, status="completed")
    assert review(client, buyer, farm, order, rating=6).status_code == 422


def test_author_edits_review(client, db, buyer, other_buyer, farm):
    order = make_order(db, buyer, farm, status="completed")
    review_id = review(client, buyer, farm, order).json()["id"]

    edited = client.put(f"/reviews/{review_id}", json={"rating": 3}, headers=auth_headers(buyer))
    assert edited.status_code == 200
    assert edited.json()["rating"] == 3
    assert client.put(f"/reviews/{review_id}", json={"rating": 1}, headers=auth_headers(other_buyer)).status_code == 403

    listed = client.get("/reviews/", params={"farmer_id": farm.id}, headers=auth_headers(other_buyer)).json()
    assert [r["rating"] for r in listed] == [3]


# --------------------------------------------------------------------
# Favorites
# --------------------------------------------------------------------
def test_favorite_notifies_farmer(client, db, buyer, farmer, farm):
    response = client.post("/favorites/", json={"farmer_id": farm.id}, headers=auth_headers(buyer))
    assert response.status_code == 201

    notification = db.query(Notification).one()
    assert notification.recipient_id == farmer.id
    assert notification.type == "favorited"
    assert notification.message == "Your farm Green Acres was added to favorites"


def test_favorite_twice_is_conflict(client, db, buyer, farm):
    headers = auth_headers(buyer)
    assert client.post("/favorites/", json={"farmer_id": farm.id}, headers=headers).status_code == 201
    assert client.post("/favorites/", json={"farmer_id": farm.id}, headers=headers).status_code == 409
    assert db.query(Favorite).count() == 1
    assert db.query(Notification).count() == 1


def test_farmer_cannot_favorite_own_farm(client, db, farmer, farm):
    response = client.post("/favorites/", json={"farmer_id": farm.id}, headers=auth_headers(farmer))
    assert response.status_code == 403
    assert db.query(Favorite).count() == 0
    assert db.query(Notification).count() == 0


def test_favorite_missing_farm(client, buyer):
    response = client.post("/favorites/", json={"farmer_id": 999}, headers=auth_headers(buyer))
    assert response.status_code == 422


def test_favorites_are_private_and_removable(client, db, buyer, other_buyer, farm):
    client.post("/favorites/", json={"farmer_id": farm.id}, headers=auth_headers(buyer))

    assert client.get("/favorites/", headers=auth_headers(other_buyer)).json() == []
    assert client.delete(f"/favorites/{farm.id}", headers=auth_headers(other_buyer)).status_code == 404
    assert client.delete(f"/favorites/{farm.id}", headers=auth_headers(buyer)).status_code == 200
    assert db.query(Favorite).count() == 0


# --------------------------------------------------------------------
# Messages
# --------------------------------------------------------------------
def send(client, sender, recipient, content):
    return client.post("/messages/", json={"recipient_id": recipient.id, "content": content},
                       headers=auth_headers(sender))


def test_message_thread_and_read_receipts(client, db, buyer, farmer):
    assert send(client, buyer, farmer, "Do you have eggs?").status_code == 201
    assert send(client, buyer, farmer, "A dozen, please").status_code == 201

    conversations = client.get("/messages/conversations", headers=auth_headers(farmer)).json()
    assert len(conversations) == 1
    assert conversations[0]["profile"]["id"] == buyer.id
    assert conversations[0]["last_message"]["content"] == "A dozen, please"
    assert conversations[0]["unread_count"] == 2

    thread = client.get(f"/messages/with/{buyer.id}", headers=auth_headers(farmer)).json()
    assert [m["content"] for m in thread] == ["Do you have eggs?", "A dozen, please"]
    assert all(m["is_read"] for m in thread)

    again = client.get("/messages/conversations", headers=auth_headers(farmer)).json()
    assert again[0]["unread_count"] == 0


def test_conversations_newest_first(client, buyer, farmer, other_farmer):
    send(client, buyer, farmer, "first")
    send(client, other_farmer, buyer, "second")

    conversations = client.get("/messages/conversations", headers=auth_headers(buyer)).json()
    assert [c["profile"]["id"] for c in conversations] == [other_farmer.id, farmer.id]


def test_blank_message_rejected(client, db, buyer, farmer):
    assert send(client, buyer, farmer, "   ").status_code == 422
    assert db.query(Message).count() == 0


def test_message_to_missing_user(client, db, buyer):
    response = client.post("/messages/", json={"recipient_id": 999, "content": "hello"},
                           headers=auth_headers(buyer))
    assert response.status_code == 422


def test_messages_private_to_participants(client, buyer, farmer, other_buyer):
    message_id = send(client, buyer, farmer, "private").json()["id"]
    assert client.get("/messages/", headers=auth_headers(other_buyer)).json() == []
    assert client.patch(f"/messages/{message_id}/read", headers=auth_headers(other_buyer)).status_code == 404
    assert client.patch(f"/messages/{message_id}/read", headers=auth_headers(buyer)).status_code == 403
    assert client.patch(f"/messages/{message_id}/read", headers=auth_headers(farmer)).json()["is_read"] is True


# --------------------------------------------------------------------
# Notifications
# --------------------------------------------------------------------
def test_notification_inbox(client, db, buyer, other_buyer, farmer, farm):
    client.post("/favorites/", json={"farmer_id": farm.id}, headers=auth_headers(buyer))
    client.post("/favorites/", json={"farmer_id": farm.id}, headers=auth_headers(other_buyer))
    farmer_headers = auth_headers(farmer)

    inbox = client.get("/notifications/", params={"unread": True}, headers=farmer_headers).json()
    assert len(inbox) == 2

    marked = client.patch(f"/notifications/{inbox[0]['id']}/read", headers=farmer_headers)
    assert marked.status_code == 200
    assert marked.json()["is_read"] is True

    assert len(client.get("/notifications/", params={"unread": True}, headers=farmer_headers).json()) == 1
    assert len(client.get("/notifications/", params={"unread": False}, headers=farmer_headers).json()) == 1
    assert client.get("/notifications/", headers=auth_headers(buyer)).json() == []
    assert client.patch(f"/notifications/{inbox[0]['id']}/read", headers=auth_headers(buyer)).status_code == 404
