import pytest
from fastapi import status

from learnshop.models.product import Product


@pytest.fixture()
def placed_order(client, user, course, product, auth_headers):
    headers = auth_headers(user)
    client.post("/api/cart/add", json={"itemId": course.id, "itemType": "course"}, headers=headers)
    client.post(
        "/api/cart/add",
        json={"itemId": product.id, "itemType": "product", "quantity": 2},
        headers=headers,
    )
    res = client.post(
        "/api/orders",
        json={"paymentMethod": "card", "shippingAddress": "12 Rue Ampere"},
        headers=headers,
    )
    assert res.status_code == status.HTTP_201_CREATED
    return res.json()


def test_checkout_empty_cart(client, user, auth_headers):
    res = client.post("/api/orders", json={"paymentMethod": "card"}, headers=auth_headers(user))
    assert res.status_code == status.HTTP_400_BAD_REQUEST
    assert res.json() == {"detail": "Cart is empty"}


def test_checkout_requires_payment_method(client, user, course, auth_headers):
    headers = auth_headers(user)
    client.post("/api/cart/add", json={"itemId": course.id, "itemType": "course"}, headers=headers)

    res = client.post("/api/orders", json={"paymentMethod": "  "}, headers=headers)
    assert res.status_code == status.HTTP_400_BAD_REQUEST


def test_checkout_requires_login(client):
    res = client.post("/api/orders", json={"paymentMethod": "card"})
    assert res.status_code == status.HTTP_401_UNAUTHORIZED


def test_checkout_creates_order(client, session, user, course, product, placed_order, auth_headers):
    assert placed_order["totalAmount"] == 170.0
    assert isinstance(placed_order["orderId"], int)

    headers = auth_headers(user)
    assert client.get("/api/cart", headers=headers).json()["items"] == []
    assert session.get(Product, product.id).stock == 1

    courses = client.get("/api/courses/my-courses", headers=headers).json()["courses"]
    assert [c["courseId"] for c in courses] == [course.id]


def test_my_orders_lists_summary(client, user, placed_order, auth_headers):
    orders = client.get("/api/orders/my-orders", headers=auth_headers(user)).json()["orders"]

    [order] = orders
    assert order["id"] == placed_order["orderId"]
    assert order["status"] == "pending"
    assert order["paymentMethod"] == "card"
    assert set(order["itemsSummary"].split(", ")) == {"Residential Wiring", "Digital Multimeter"}


def test_order_detail_is_owner_only(client, user, other_user, placed_order, auth_headers):
    url = f"/api/orders/{placed_order['orderId']}"

    res = client.get(url, headers=auth_headers(user))
    assert res.status_code == status.HTTP_200_OK
    order = res.json()["order"]
    assert order["totalAmount"] == 170.0
    assert sorted((i["itemType"], i["quantity"], i["price"]) for i in order["items"]) == [
        ("course", 1, 150.0),
        ("product", 2, 10.0),
    ]

    assert client.get(url, headers=auth_headers(other_user)).status_code == status.HTTP_404_NOT_FOUND
    assert client.get("/api/orders/424242", headers=auth_headers(user)).status_code == status.HTTP_404_NOT_FOUND


def test_admin_list_requires_admin(client, user, admin, placed_order, auth_headers):
    res = client.get("/api/orders", headers=auth_headers(user))
    assert res.status_code == status.HTTP_403_FORBIDDEN

    res = client.get("/api/orders", headers=auth_headers(admin))
    assert res.status_code == status.HTTP_200_OK
    [order] = res.json()["orders"]
    assert order["userEmail"] == "student@example.com"
    assert order["userName"] == "student"

    res = client.get("/api/orders", params={"status": "shipped"}, headers=auth_headers(admin))
    assert res.json()["orders"] == []


def test_admin_status_update(client, user, admin, placed_order, auth_headers):
    url = f"/api/orders/{placed_order['orderId']}/status"
    headers = auth_headers(admin)

    res = client.patch(url, json={"status": "teleported"}, headers=headers)
    assert res.status_code == status.HTTP_400_BAD_REQUEST
    assert res.json() == {"detail": "Invalid order status"}

    res = client.patch(url, json={"status": "shipped"}, headers=headers)
    assert res.status_code == status.HTTP_200_OK

    orders = client.get("/api/orders/my-orders", headers=auth_headers(user)).json()["orders"]
    assert orders[0]["status"] == "shipped"

    res = client.patch("/api/orders/424242/status", json={"status": "shipped"}, headers=headers)
    assert res.status_code == status.HTTP_404_NOT_FOUND

    res = client.patch(url, json={"status": "delivered"}, headers=auth_headers(user))
    assert res.status_code == status.HTTP_403_FORBIDDEN
