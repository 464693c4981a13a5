import json
import os

import pytest
from fastapi import BackgroundTasks
from fastapi.testclient import TestClient

from portal.main import create_app
from portal.routers.auth import get_credential_store, get_reset_notifier

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 64


@pytest.fixture
def client(settings, notifier):
    app = create_app(settings)
    app.dependency_overrides[get_reset_notifier] = lambda: notifier
    with TestClient(app) as client:
        yield client


def register(client, email="a@x.com", password="secret1"):
    return client.post("/api/auth/register", json={"email": email, "password": password})


def login(client, email="a@x.com", password="secret1"):
    return client.post("/api/auth/login", json={"email": email, "password": password})


@pytest.fixture
def auth_headers(client):
    register(client)
    token = login(client).json()["token"]
    return {"Authorization": f"Bearer {token}"}


def test_health(client):
    assert client.get("/health").json() == {"status": "healthy"}


def test_end_to_end_profile_flow(client):
    response = register(client, "a@x.com", "secret1")
    assert response.status_code == 201
    assert isinstance(response.json()["id"], int)

    response = login(client, "a@x.com", "secret1")
    assert response.status_code == 200
    body = response.json()
    assert body["user"]["email"] == "a@x.com"
    assert body["tokenType"] == "bearer"
    headers = {"Authorization": f"Bearer {body['token']}"}

    response = client.put("/api/profile", headers=headers, data={
        "firstName": "Ada",
        "skills": "Go, SQL",
        "certificates": json.dumps([{"certificateName": "", "startDate": "2024-01-01"}]),
    })
    assert response.status_code == 200

    response = client.get("/api/profile", headers=headers)
    assert response.status_code == 200
    profile = response.json()
    assert profile["skills"] == ["Go", "SQL"]
    assert profile["certificates"] == []
    assert profile["firstName"] == "Ada"


def test_register_conflicts_for_any_case(client):
    assert register(client, "a@x.com").status_code == 201

    response = register(client, "A@X.com")
    assert response.status_code == 409
    assert response.json()["message"] == "Email already registered"


def test_register_validation_errors(client):
    response = client.post("/api/auth/register", json={"email": "not-an-email", "password": "123"})

    assert response.status_code == 422
    assert sorted(error["field"] for error in response.json()["errors"]) == ["email", "password"]


def test_login_failures_look_the_same(client):
    register(client)

    wrong_password = login(client, "a@x.com", "wrong-password")
    unknown_email = login(client, "nobody@x.com", "wrong-password")

    assert wrong_password.status_code == unknown_email.status_code == 401
    assert wrong_password.json() == unknown_email.json()


def test_me_requires_a_valid_token(client, auth_headers):
    assert client.get("/api/auth/me", headers=auth_headers).json()["email"] == "a@x.com"

    assert client.get("/api/auth/me").status_code == 401
    response = client.get("/api/auth/me", headers={"Authorization": "Bearer garbage"})
    assert response.status_code == 401
    assert response.headers["www-authenticate"] == "Bearer"


def test_profile_requires_credentials(client):
    assert client.get("/api/profile").status_code == 401
    assert client.put("/api/profile", data={"bio": "x"}).status_code == 401
    assert client.delete("/api/profile").status_code == 401


def test_get_profile_before_first_write(client, auth_headers):
    assert client.get("/api/profile", headers=auth_headers).status_code == 404


def test_partial_updates_merge(client, auth_headers):
    client.put("/api/profile", headers=auth_headers, data={"bio": "x"})
    response = client.put("/api/profile", headers=auth_headers, data={"firstName": "Yu"})

    assert response.status_code == 200
    assert response.json()["bio"] == "x"
    assert response.json()["firstName"] == "Yu"


def test_json_body_and_form_encoding_store_the_same_skills(client, auth_headers):
    form = client.put("/api/profile", headers=auth_headers, data={"skills": json.dumps(["Go", "SQL"])})
    native = client.put("/api/profile", headers=auth_headers, json={"skills": ["Go", "SQL"]})

    assert form.json()["skills"] == native.json()["skills"] == ["Go", "SQL"]


def test_null_list_fields_clear_in_json_and_form(client, auth_headers):
    client.put("/api/profile", headers=auth_headers, json={"skills": ["Go"], "firstName": "Ada"})

    native = client.put("/api/profile", headers=auth_headers, json={
        "skills": None, "education": None, "certificates": None,
    })
    assert native.status_code == 200
    assert native.json()["skills"] == []
    assert native.json()["education"] == []

    form = client.put("/api/profile", headers=auth_headers, data={"skills": "null", "education": "null"})
    assert form.status_code == 200
    assert form.json()["skills"] == native.json()["skills"]
    assert form.json()["education"] == native.json()["education"]


def test_education_flat_fields(client, auth_headers):
    response = client.put("/api/profile", headers=auth_headers, data={
        "educationLevel": "bachelor",
        "university": "UCL",
        "startDate": "2020-09",
        "endDate": "2023-06",
        "currentlyStudying": "true",
    })

    assert response.status_code == 200
    assert response.json()["education"] == [{
        "degree": "bachelor",
        "institution": "UCL",
        "course": None,
        "fieldOfStudy": None,
        "startDate": "2020-09-01",
        "endDate": None,
        "currentlyStudying": True,
        "experienceLevel": None,
    }]


def test_invalid_profile_reports_every_field(client, auth_headers):
    response = client.put("/api/profile", headers=auth_headers, data={
        "firstName": "A",
        "bio": "x" * 501,
        "education": "{broken",
    })

    assert response.status_code == 422
    assert sorted(error["field"] for error in response.json()["errors"]) == ["bio", "education", "firstName"]


def test_invalid_json_body(client, auth_headers):
    response = client.put(
        "/api/profile",
        headers={**auth_headers, "Content-Type": "application/json"},
        content=b"{not json",
    )
    assert response.status_code == 422


def test_upload_photo_and_resume(client, auth_headers, settings):
    response = client.put(
        "/api/profile",
        headers=auth_headers,
        data={"firstName": "Ada"},
        files={
            "profilePhoto": ("me.png", PNG_BYTES, "image/png"),
            "resume": ("My CV.pdf", b"%PDF-1.4 test", "application/pdf"),
        },
    )

    assert response.status_code == 200
    profile = response.json()
    assert profile["profilePhoto"].startswith("/uploads/photos/")
    assert profile["resume"].startswith("/uploads/resumes/")
    assert profile["resume"].endswith("My_CV.pdf")
    assert profile["resumeFilename"] == "My CV.pdf"

    stored = os.path.join(settings.uploads_dir, profile["resume"][len("/uploads/"):])
    with open(stored, "rb") as f:
        assert f.read() == b"%PDF-1.4 test"

    # a later update without files keeps both references
    response = client.put("/api/profile", headers=auth_headers, data={"bio": "hello"})
    assert response.json()["profilePhoto"] == profile["profilePhoto"]
    assert response.json()["resume"] == profile["resume"]


def test_oversized_upload_is_rejected(client, auth_headers, settings):
    big = b"%PDF" + b"0" * settings.max_resume_bytes
    response = client.put(
        "/api/profile",
        headers=auth_headers,
        files={"resume": ("cv.pdf", big, "application/pdf")},
    )

    assert response.status_code == 413
    assert client.get("/api/profile", headers=auth_headers).status_code == 404


def test_unsupported_upload_type_is_rejected(client, auth_headers):
    response = client.put(
        "/api/profile",
        headers=auth_headers,
        files={"profilePhoto": ("me.pdf", b"%PDF", "application/pdf")},
    )

    assert response.status_code == 415
    assert response.json()["errors"][0]["field"] == "profilePhoto"


def test_delete_profile_is_idempotent(client, auth_headers):
    client.put("/api/profile", headers=auth_headers, data={"firstName": "Ada"})

    assert client.delete("/api/profile", headers=auth_headers).status_code == 200
    assert client.delete("/api/profile", headers=auth_headers).status_code == 200
    assert client.get("/api/profile", headers=auth_headers).status_code == 404


def test_password_reset_by_email(client, notifier):
    register(client)

    response = client.post("/api/auth/forgot-password", json={"email": "a@x.com"})
    assert response.status_code == 200
    assert len(notifier.sent) == 1

    unknown = client.post("/api/auth/forgot-password", json={"email": "nobody@x.com"})
    assert unknown.json() == response.json()
    assert len(notifier.sent) == 1

    mismatch = client.put("/api/auth/reset-by-email", json={
        "email": "a@x.com", "newPassword": "newsecret", "confirmPassword": "other-one",
    })
    assert mismatch.status_code == 400

    reset = {"email": "a@x.com", "newPassword": "newsecret", "confirmPassword": "newsecret"}
    assert client.put("/api/auth/reset-by-email", json=reset).status_code == 200
    assert login(client, "a@x.com", "newsecret").status_code == 200
    assert login(client, "a@x.com", "secret1").status_code == 401

    assert client.put("/api/auth/reset-by-email", json=reset).status_code == 404


def test_password_reset_by_token(client, notifier):
    register(client)
    client.post("/api/auth/forgot-password", json={"email": "a@x.com"})

    payload = {"token": notifier.last_token, "newPassword": "newsecret", "confirmPassword": "newsecret"}
    assert client.post("/api/auth/reset-password", json=payload).status_code == 200
    assert client.post("/api/auth/reset-password", json=payload).status_code == 404
    assert login(client, "a@x.com", "newsecret").status_code == 200


async def test_reset_email_is_delivered_after_the_response(db, settings, notifier):
    background_tasks = BackgroundTasks()
    store = get_credential_store(background_tasks, db=db, settings=settings, notifier=notifier)
    await store.register("a@x.com", "secret1")

    await store.request_reset("a@x.com")
    await store.request_reset("nobody@x.com")

    # both requests return before any mail goes out
    assert notifier.sent == []
    assert len(background_tasks.tasks) == 1

    await background_tasks()
    assert [email for email, _ in notifier.sent] == ["a@x.com"]


def test_api_responses_are_not_cached(client):
    response = register(client)

    assert response.headers["cache-control"] == "no-cache, no-store, must-revalidate"
    assert "cache-control" not in client.get("/health").headers


def test_root_reports_service_status(client, settings):
    assert client.get("/").json() == {"message": settings.app_name, "status": "running", "version": "1.0.0"}
