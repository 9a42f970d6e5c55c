from supportdesk.core.config import Settings
from supportdesk.dependencies.auth import verify_admin_password


def test_admin_login_succeeds_with_shared_secret(client):
    response = client.post("/auth/admin", json={"password": "letmein"})

    assert response.status_code == 200
    assert response.json() == {"success": True}


def test_admin_login_rejects_wrong_or_missing_password(client):
    wrong = client.post("/auth/admin", json={"password": "nope"})
    missing = client.post("/auth/admin", json={})

    assert wrong.status_code == 401
    assert wrong.json()["success"] is False
    assert missing.status_code == 401


def test_verify_admin_password():
    settings = Settings(admin_password="secret")

    assert verify_admin_password("secret", settings)
    assert not verify_admin_password("Secret", settings)
    assert not verify_admin_password("", settings)
    assert not verify_admin_password(None, settings)
