from sqlalchemy.exc import OperationalError

from claimdesk.models.organization import Organization
from claimdesk.models.user import User
from claimdesk.services.passwords import verify_password

VALID_PAYLOAD = {
    "email": "founder@acme.test",
    "password": "hunter22",
    "name": "Fran Founder",
    "organizationName": "Acme",
}


def test_register_creates_organization_and_owner(client, db_session):
    response = client.post("/api/auth/register", json=VALID_PAYLOAD)

    assert response.status_code == 201
    body = response.json()
    assert body["message"] == "Organization created successfully"
    assert body["user"]["role"] == "ADMIN"
    assert body["user"]["isOwner"] is True
    assert body["user"]["organization"]["name"] == "Acme"
    assert body["user"]["organizationId"] == body["organization"]["id"]
    assert "password" not in body["user"]

    owner = db_session.query(User).filter(User.email == "founder@acme.test").one()
    assert owner.password != "hunter22"
    assert verify_password("hunter22", owner.password)


def test_register_duplicate_email_is_409_without_new_organization(client, db_session):
    first = client.post("/api/auth/register", json=VALID_PAYLOAD)
    second = client.post("/api/auth/register", json={**VALID_PAYLOAD, "organizationName": "Other"})

    assert first.status_code == 201
    assert second.status_code == 409
    assert second.json() == {"error": "User with this email already exists"}
    assert db_session.query(Organization).count() == 1


def test_register_validation_errors(client, db_session):
    cases = [
        ({"email": "a@b.co", "password": "hunter22"}, "Email, password, and organization name are required"),
        ({**VALID_PAYLOAD, "email": "not-an-email"}, "Invalid email format"),
        ({**VALID_PAYLOAD, "password": "12345"}, "Password must be at least 6 characters long"),
        ({**VALID_PAYLOAD, "organizationName": " A "}, "Organization name must be at least 2 characters long"),
    ]

    for payload, message in cases:
        response = client.post("/api/auth/register", json=payload)
        assert response.status_code == 400
        assert response.json() == {"error": message}

    assert db_session.query(Organization).count() == 0
    assert db_session.query(User).count() == 0


def test_register_rolls_back_organization_when_owner_insert_fails(client, db_session, monkeypatch):
    def failing_commit():
        raise OperationalError("INSERT INTO users", {}, Exception("disk full"))

    monkeypatch.setattr(db_session, "commit", failing_commit)

    response = client.post("/api/auth/register", json=VALID_PAYLOAD)

    monkeypatch.undo()
    assert response.status_code == 500
    assert response.json() == {"error": "Internal server error"}
    assert db_session.query(Organization).count() == 0
    assert db_session.query(User).count() == 0


def test_register_rejects_address_the_email_validator_refuses(client, db_session):
    response = client.post("/api/auth/register", json={**VALID_PAYLOAD, "email": "first..last@acme.test"})

    assert response.status_code == 400
    assert response.json() == {"error": "Invalid email format"}
    assert db_session.query(Organization).count() == 0


def test_register_keeps_email_as_submitted(client, db_session):
    response = client.post("/api/auth/register", json={**VALID_PAYLOAD, "email": "Founder@Acme.test"})

    assert response.status_code == 201
    assert response.json()["user"]["email"] == "Founder@Acme.test"
