from sqlmodel import select

from glam.models import Booking, PaymentTransaction
from glam.payments import sadad
from glam.routers import payments_routes

from conftest import signup


def make_booking(client, artist, customer, price=300):
    response = client.post(
        "/bookings",
        json={
            "artist_id": artist["artist_id"],
            "booking_date": "2026-10-20",
            "booking_time": "15:00",
            "location_type": "artist_studio",
            "total_price": price,
        },
        headers=customer["headers"],
    )
    assert response.status_code == 201
    return response.json()


def initiate(client, booking, customer):
    response = client.post(
        "/payments/sadad/initiate",
        json={"booking_id": booking["id"], "customer_email": "noor@example.com", "customer_phone": "55550000"},
        headers=customer["headers"],
    )
    assert response.status_code == 200, response.text
    return response.json()


def test_initiate_without_credentials(client, artist, customer, monkeypatch):
    monkeypatch.setattr(sadad.settings, "SADAD_MERCHANT_ID", None)
    booking = make_booking(client, artist, customer)
    response = client.post(
        "/payments/sadad/initiate", json={"booking_id": booking["id"]}, headers=customer["headers"]
    )
    assert response.status_code == 500
    assert response.json()["detail"] == "Payment gateway not configured"


def test_initiate_unknown_booking(client, customer, sadad_credentials):
    response = client.post("/payments/sadad/initiate", json={"booking_id": "nope"}, headers=customer["headers"])
    assert response.status_code == 404


def test_initiate_creates_pending_transaction(client, artist, customer, sadad_credentials, test_db):
    booking = make_booking(client, artist, customer)
    data = initiate(client, booking, customer)

    assert data["payment_url"] == "https://sadadqa.com/webpurchase"
    assert data["ORDER_ID"].startswith(f"ORD-{booking['id'][:8]}-")
    assert data["TXN_AMOUNT"] == "300.00"
    assert data["merchant_id"] == "7654321"
    assert data["checksumhash"] == sadad.generate_checksum(
        f"7654321|{data['ORDER_ID']}|300.00|QAR|noor@example.com|55550000", "test-secret"
    )

    transaction = test_db.get(PaymentTransaction, data["transaction_id"])
    assert transaction.status == "pending"
    assert transaction.order_id == data["ORDER_ID"]
    assert transaction.amount == 300

    stored = test_db.get(Booking, booking["id"])
    assert stored.payment_status == "processing"
    assert stored.sadad_order_id == data["ORDER_ID"]


def test_only_the_customer_can_pay(client, artist, customer, sadad_credentials):
    booking = make_booking(client, artist, customer)
    stranger = signup(client, "sara@example.com", "customer")
    response = client.post(
        "/payments/sadad/initiate", json={"booking_id": booking["id"]}, headers=stranger["headers"]
    )
    assert response.status_code == 403


def test_checkout_page(client, artist, customer, sadad_credentials):
    booking = make_booking(client, artist, customer)
    data = initiate(client, booking, customer)

    response = client.get(data["checkout_url"])
    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/html")
    assert 'action="https://sadadqa.com/webpurchase"' in response.text
    assert f'value="{data["ORDER_ID"]}"' in response.text

    assert client.get("/payments/sadad/ORD-missing/checkout").status_code == 404


def test_callback_success_confirms_booking_and_verify_succeeds(client, artist, customer, sadad_credentials, sleeps):
    booking = make_booking(client, artist, customer)
    order_id = initiate(client, booking, customer)["ORDER_ID"]

    checksum = sadad.generate_checksum(f"7654321|{order_id}|300.00|success", "test-secret")
    response = client.post(
        "/payments/sadad/callback",
        data={
            "order_id": order_id,
            "status": "success",
            "amount": "300.00",
            "transaction_number": "TX-991",
            "checksum": checksum,
        },
    )
    assert response.status_code == 200
    assert response.json() == {
        "success": True, "status": "success", "order_id": order_id, "booking_id": booking["id"],
    }

    stored = client.get(f"/bookings/{booking['id']}", headers=customer["headers"]).json()
    assert stored["status"] == "confirmed"
    assert stored["payment_status"] == "success"

    response = client.post(f"/payments/sadad/{order_id}/verify", headers=customer["headers"])
    assert response.status_code == 200
    assert response.json()["outcome"] == "success"
    assert response.json()["success"] is True
    assert response.json()["attempts"] == 1
    assert sleeps == []


def test_callback_failure_is_reported_by_verify(client, artist, customer, sadad_credentials, test_db):
    booking = make_booking(client, artist, customer)
    order_id = initiate(client, booking, customer)["ORDER_ID"]

    response = client.get(
        "/payments/sadad/callback",
        params={"order_id": order_id, "status": "failed", "error_message": "Card declined"},
    )
    assert response.status_code == 200
    assert response.json()["status"] == "failed"

    stored = test_db.get(Booking, booking["id"])
    assert stored.status == "pending"
    assert stored.payment_status == "failed"

    result = client.post(f"/payments/sadad/{order_id}/verify", headers=customer["headers"]).json()
    assert result["outcome"] == "failed"
    assert result["error_message"] == "Card declined"


def test_callback_json_body(client, artist, customer, sadad_credentials, test_db):
    booking = make_booking(client, artist, customer)
    order_id = initiate(client, booking, customer)["ORDER_ID"]

    response = client.post("/payments/sadad/callback", json={"order_id": order_id, "status": "cancelled"})
    assert response.json()["status"] == "cancelled"

    transaction = test_db.exec(
        select(PaymentTransaction).where(PaymentTransaction.order_id == order_id)
    ).one()
    assert transaction.status == "cancelled"
    assert transaction.response_data == {"order_id": order_id, "status": "cancelled"}


def test_callback_rejects_bad_input(client, artist, customer, sadad_credentials):
    response = client.post("/payments/sadad/callback", data={"status": "success"})
    assert response.status_code == 400

    booking = make_booking(client, artist, customer)
    order_id = initiate(client, booking, customer)["ORDER_ID"]
    response = client.post(
        "/payments/sadad/callback",
        data={"order_id": order_id, "status": "success", "amount": "300.00", "checksum": "deadbeef"},
    )
    assert response.status_code == 400
    assert response.json()["detail"] == "Invalid checksum"


def test_verify_times_out_after_sixty_seconds(client, artist, customer, sadad_credentials, sleeps):
    booking = make_booking(client, artist, customer)
    order_id = initiate(client, booking, customer)["ORDER_ID"]

    response = client.post(f"/payments/sadad/{order_id}/verify", headers=customer["headers"])
    assert response.status_code == 200
    result = response.json()
    assert result["outcome"] == "timeout"
    assert result["success"] is False
    assert result["attempts"] == 20
    assert sleeps == [3.0] * 20
    assert sum(sleeps) == 60


def test_verify_unknown_order(client, customer):
    response = client.post("/payments/sadad/ORD-missing/verify", headers=customer["headers"])
    assert response.status_code == 404


def test_callback_and_verify_query_in_worker_threads(client, artist, customer, sadad_credentials, monkeypatch):
    booking = make_booking(client, artist, customer)
    order_id = initiate(client, booking, customer)["ORDER_ID"]

    offloaded = []
    run_in_threadpool = payments_routes.run_in_threadpool

    async def recording(func, *args, **kwargs):
        offloaded.append(func)
        return await run_in_threadpool(func, *args, **kwargs)

    monkeypatch.setattr(payments_routes, "run_in_threadpool", recording)

    client.get("/payments/sadad/callback", params={"order_id": order_id, "status": "success"})
    assert offloaded == [payments_routes.apply_callback]

    offloaded.clear()
    result = client.post(f"/payments/sadad/{order_id}/verify", headers=customer["headers"]).json()
    assert result["outcome"] == "success"
    # first lookup, ownership check, one poll
    assert len(offloaded) == 3
