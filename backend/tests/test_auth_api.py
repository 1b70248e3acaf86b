from datetime import datetime, timedelta, timezone

from conftest import auth_headers
from models.users import User
from services.unit_of_work import transaction


def test_register_login_and_me(client):
    r = client.post("/register", json={
        "email": "Carla@NovaHogar.mx",
        "password": "muysegura1",
        "first_name": "Carla",
        "last_name": "Ruiz",
    })
    assert r.status_code == 201, r.text
    assert r.json()["email"] == "carla@novahogar.mx"
    assert r.json()["role"] == "customer"

    r = client.post("/login", json={"email": "carla@novahogar.mx", "password": "muysegura1"})
    assert r.status_code == 200
    token = r.json()["access_token"]

    me = client.get("/me", headers={"Authorization": f"Bearer {token}"})
    assert me.json()["first_name"] == "Carla"
    assert me.json()["subscribed"] is False


def test_duplicate_registration_and_bad_password(client):
    payload = {"email": "ana@novahogar.mx", "password": "otraclave1", "first_name": "A", "last_name": "L"}
    assert client.post("/register", json=payload).status_code == 400

    r = client.post("/login", json={"email": "ana@novahogar.mx", "password": "incorrecta"})
    assert r.status_code == 401


def test_invalid_token_is_rejected(client):
    r = client.get("/me", headers={"Authorization": "Bearer not-a-token"})
    assert r.status_code == 401

    r = client.get("/me", headers=auth_headers("nadie@novahogar.mx"))
    assert r.status_code == 401


def login_as(client, password, email="ana@novahogar.mx"):
    return client.post("/login", json={"email": email, "password": password}).status_code


def test_account_locks_after_repeated_failures(client, db, seed):
    assert [login_as(client, "incorrecta") for _ in range(5)] == [401] * 5

    # Locked: even the right password is refused
    r = client.post("/login", json={"email": "ana@novahogar.mx", "password": "secreto123"})
    assert r.status_code == 423
    assert "minute" in r.json()["detail"]

    db.expire_all()
    user = db.get(User, seed.users["ana"])
    assert user.locked_until is not None
    assert user.failed_attempts == 0

    # Other accounts are unaffected
    assert login_as(client, "secreto123", email="luis@novahogar.mx") == 200


def test_lock_expires_and_success_resets_counters(client, db, seed):
    for _ in range(5):
        login_as(client, "incorrecta")

    with transaction(db):
        db.get(User, seed.users["ana"]).locked_until = datetime.now(timezone.utc) - timedelta(minutes=1)

    assert login_as(client, "secreto123") == 200
    db.expire_all()
    user = db.get(User, seed.users["ana"])
    assert (user.failed_attempts, user.locked_until) == (0, None)


def test_successful_login_clears_earlier_failures(client, db, seed):
    for _ in range(3):
        login_as(client, "incorrecta")
    assert login_as(client, "secreto123") == 200

    # Counter started over, so four more misses do not lock yet
    assert [login_as(client, "incorrecta") for _ in range(4)] == [401] * 4
    assert login_as(client, "secreto123") == 200
