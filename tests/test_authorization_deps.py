from fastapi import Depends, FastAPI
from fastapi.testclient import TestClient
from jose import jwt

from floorline.core.config import JWT_ALGORITHM
from floorline.core.constants import ROLE_ADMIN
from floorline.deps import Actor, get_current_actor, require_role
from floorline.services.auth import create_access_token, decode_access_token


def _app():
    app = FastAPI()

    @app.get("/whoami")
    def whoami(actor: Actor = Depends(get_current_actor)):
        return {"id": actor.id, "role": actor.role, "name": actor.name}

    @app.get("/admin-only")
    def admin_only(actor: Actor = Depends(require_role([ROLE_ADMIN]))):
        return {"id": actor.id}

    return TestClient(app)


def _bearer(token):
    return {"Authorization": f"Bearer {token}"}


def test_valid_token_resolves_actor():
    client = _app()
    token = create_access_token(7, role="server", name="Rae")

    response = client.get("/whoami", headers=_bearer(token))

    assert response.status_code == 200
    assert response.json() == {"id": 7, "role": "SERVER", "name": "Rae"}


def test_missing_expired_and_forged_tokens_are_unauthorized():
    client = _app()
    expired = create_access_token(7, role="SERVER", expires_minutes=-5)
    forged = jwt.encode({"sub": "7", "role": "ADMIN"}, "someone-elses-key", algorithm=JWT_ALGORITHM)

    assert client.get("/whoami").status_code == 401
    assert client.get("/whoami", headers=_bearer(expired)).status_code == 401
    assert client.get("/whoami", headers=_bearer(forged)).status_code == 401
    assert client.get("/whoami", headers=_bearer("not-a-jwt")).status_code == 401


def test_token_without_subject_or_known_role_is_unauthorized():
    client = _app()
    no_subject = create_access_token("", role="SERVER")
    bad_role = create_access_token(7, role="DISHWASHER")

    assert client.get("/whoami", headers=_bearer(no_subject)).status_code == 401
    assert client.get("/whoami", headers=_bearer(bad_role)).status_code == 401


def test_require_role_rejects_other_roles():
    client = _app()

    server = client.get("/admin-only", headers=_bearer(create_access_token(2, role="SERVER")))
    admin = client.get("/admin-only", headers=_bearer(create_access_token(1, role="ADMIN")))

    assert server.status_code == 403
    assert server.json()["detail"] == "Insufficient permissions"
    assert admin.status_code == 200


def test_decode_round_trip_keeps_claims():
    claims = decode_access_token(create_access_token(3, role="KITCHEN", name="Kit"))

    assert claims["sub"] == "3"
    assert claims["role"] == "KITCHEN"
    assert claims["name"] == "Kit"
