import pytest

from app.models import ClaimStatus, UserRole, VerificationStatus

SUBMISSION = {
    "name": "Layla Haddad",
    "photo_url": "https://cdn.example.com/layla.jpg",
    "whatsapp_number": "+971501234567",
    "license_number": "LIC-7788",
    "rera_id": "BRN-12345",
    "experience_years": 6,
    "rera_certificate_url": "https://docs.example.com/rera.pdf",
    "license_doc_url": "https://docs.example.com/license.pdf",
    "languages": ["English", "Arabic"],
    "areas_of_operation": ["Dubai Marina"],
}


@pytest.fixture
def admin(make_user):
    return make_user(role=UserRole.ADMIN)


def directory_ids(client):
    res = client.get("/api/v1/simsars/")
    assert res.status_code == 200
    return [b["id"] for b in res.json()]


def test_submit_review_and_verify(client, make_broker, admin, headers_for):
    broker = make_broker(status=VerificationStatus.UNSUBMITTED)
    owner = headers_for(broker.user)

    res = client.post(f"/api/v1/simsars/{broker.id}/verification", headers=owner, json=SUBMISSION)
    assert res.status_code == 201
    request_id = res.json()["id"]
    assert res.json()["status"] == "UNDER_REVIEW"
    assert str(broker.id) not in directory_ids(client)

    queue = client.get("/api/v1/admin/verifications", headers=headers_for(admin)).json()
    assert [r["id"] for r in queue] == [request_id]

    res = client.post(
        f"/api/v1/admin/verifications/{request_id}/decision",
        headers=headers_for(admin),
        json={"status": "VERIFIED", "notes": "All documents valid"},
    )
    assert res.status_code == 200
    assert res.json()["decided_at"] is not None
    assert str(broker.id) in directory_ids(client)

    status_res = client.get(f"/api/v1/simsars/{broker.id}/verification-status", headers=owner)
    assert status_res.status_code == 200
    assert status_res.json()["status"] == "VERIFIED"
    assert status_res.json()["pending"] is False
    assert status_res.json()["notes"] == "All documents valid"


def test_missing_fields_are_reported(client, make_broker, headers_for):
    broker = make_broker(status=VerificationStatus.UNSUBMITTED)
    payload = {k: v for k, v in SUBMISSION.items() if k not in ("rera_id", "license_doc_url")}

    res = client.post(f"/api/v1/simsars/{broker.id}/verification", headers=headers_for(broker.user), json=payload)

    assert res.status_code == 400
    assert sorted(res.json()["fields"]) == ["license_doc_url", "rera_id"]


def test_duplicate_pending_submission_is_409(client, make_broker, headers_for):
    broker = make_broker(status=VerificationStatus.UNSUBMITTED)
    url = f"/api/v1/simsars/{broker.id}/verification"
    assert client.post(url, headers=headers_for(broker.user), json=SUBMISSION).status_code == 201
    assert client.post(url, headers=headers_for(broker.user), json=SUBMISSION).status_code == 409


def test_only_owner_can_submit(client, make_broker, make_user, headers_for):
    broker = make_broker(status=VerificationStatus.UNSUBMITTED)
    other_broker = make_broker(status=VerificationStatus.UNSUBMITTED)
    url = f"/api/v1/simsars/{broker.id}/verification"

    assert client.post(url, json=SUBMISSION).status_code == 401
    assert client.post(url, headers=headers_for(make_user()), json=SUBMISSION).status_code == 403
    assert client.post(url, headers=headers_for(other_broker.user), json=SUBMISSION).status_code == 403


def test_status_visible_to_owner_and_admin_only(client, make_broker, make_user, admin, headers_for):
    broker = make_broker(status=VerificationStatus.UNSUBMITTED)
    url = f"/api/v1/simsars/{broker.id}/verification-status"

    assert client.get(url, headers=headers_for(broker.user)).json()["status"] == "UNSUBMITTED"
    assert client.get(url, headers=headers_for(admin)).status_code == 200
    assert client.get(url, headers=headers_for(make_user())).status_code == 403


def test_decision_errors(client, make_broker, admin, headers_for):
    broker = make_broker(status=VerificationStatus.UNSUBMITTED)
    request_id = client.post(
        f"/api/v1/simsars/{broker.id}/verification", headers=headers_for(broker.user), json=SUBMISSION
    ).json()["id"]
    url = f"/api/v1/admin/verifications/{request_id}/decision"

    assert client.post(url, headers=headers_for(admin), json={"status": "UNDER_REVIEW"}).status_code == 409
    assert client.post(url, headers=headers_for(admin), json={"status": "MAYBE"}).status_code == 422
    assert client.post(url, headers=headers_for(broker.user), json={"status": "VERIFIED"}).status_code == 403
    assert client.post(url, headers=headers_for(admin), json={"status": "REJECTED"}).status_code == 200
    assert client.post(url, headers=headers_for(admin), json={"status": "VERIFIED"}).status_code == 404


def test_unknown_broker_is_404(client):
    res = client.get("/api/v1/simsars/00000000-0000-0000-0000-000000000000")
    assert res.status_code == 404
    assert res.json()["detail"] == "Broker not found"


def test_profile_update_recomputes_score(client, make_broker, make_user, headers_for):
    broker = make_broker(status=VerificationStatus.UNSUBMITTED)
    before = broker.profile_completeness_score

    res = client.put(
        f"/api/v1/simsars/{broker.id}",
        headers=headers_for(broker.user),
        json={"bio": "Marina specialist", "photo_url": "https://cdn.example.com/x.jpg"},
    )
    assert res.status_code == 200
    assert res.json()["score"] == before + 25

    res = client.put(f"/api/v1/simsars/{broker.id}", headers=headers_for(make_broker().user), json={"bio": "x"})
    assert res.status_code == 403


def test_my_profile(client, make_broker, make_user, headers_for):
    broker = make_broker()
    assert client.get("/api/v1/simsars/me/profile", headers=headers_for(broker.user)).json()["id"] == str(broker.id)
    assert client.get("/api/v1/simsars/me/profile", headers=headers_for(make_user())).status_code == 403


def test_directory_sort_and_filters(client, make_broker):
    make_broker(name="Omar Saleh", languages=["Arabic"], areas_of_operation=["Palm Jumeirah"])
    sara = make_broker(name="Sara Lee", languages=["English"], bio="Downtown expert")

    res = client.get("/api/v1/simsars/", params={"language": "English"})
    assert [b["id"] for b in res.json()] == [str(sara.id)]
    res = client.get("/api/v1/simsars/", params={"sort": "score"})
    assert res.json()[0]["id"] == str(sara.id)


def test_claim_review_flow(client, make_broker, make_user, admin, headers_for):
    broker = make_broker()
    buyer = make_user()

    res = client.post(
        f"/api/v1/simsars/{broker.id}/claims",
        headers=headers_for(buyer),
        json={"proof_links": {"contract": "https://docs.example.com/spa.pdf"}},
    )
    assert res.status_code == 201
    claim_id = res.json()["id"]

    pending = client.get("/api/v1/admin/claims", headers=headers_for(admin)).json()
    assert [c["id"] for c in pending] == [claim_id]
    res = client.post(
        f"/api/v1/admin/claims/{claim_id}/decision",
        headers=headers_for(admin),
        json={"status": ClaimStatus.APPROVED.value},
    )
    assert res.status_code == 200

    review = {"claim_id": claim_id, "rating": 5, "text": "Smooth handover, very responsive"}
    res = client.post(f"/api/v1/simsars/{broker.id}/reviews", headers=headers_for(buyer), json=review)
    assert res.status_code == 201
    assert res.json()["verified"] is True
    assert client.post(f"/api/v1/simsars/{broker.id}/reviews", headers=headers_for(buyer), json=review).status_code == 409

    profile = client.get(f"/api/v1/simsars/{broker.id}").json()
    assert profile["rating"] == 5.0
    assert profile["review_count"] == 1
    assert len(client.get(f"/api/v1/simsars/{broker.id}/reviews").json()) == 1


def test_claim_against_unverified_broker(client, make_broker, make_user, headers_for):
    broker = make_broker(status=VerificationStatus.REJECTED)
    res = client.post(f"/api/v1/simsars/{broker.id}/claims", headers=headers_for(make_user()), json={})
    assert res.status_code == 400
