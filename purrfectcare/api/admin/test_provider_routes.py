# purrfectcare/api/admin/test_provider_routes.py
import pytest

APPLY_PAYLOAD = {
    "organizationName": "Happy Paws Shelter",
    "serviceType": "Pet_Adoption",
    "serviceDescription": "Rescue shelter rehoming dogs and cats in the valley.",
    "contactPhone": "014000000",
    "contactAddress": "Lalitpur"
}

@pytest.fixture
def applicant(make_user):
    return make_user(name="Shelter Owner")

@pytest.fixture
def super_admin_headers(make_user, auth_headers):
    return auth_headers(make_user(name="Root", roles="SUPER_ADMIN"))

@pytest.fixture
def submit(client, auth_headers):
    def _submit(user, **overrides):
        return client.post("/api/admin/apply", json={**APPLY_PAYLOAD, **overrides}, headers=auth_headers(user))
    return _submit

def test_apply_and_view_own_application(client, applicant, auth_headers, submit):
    assert client.get("/api/admin", headers=auth_headers(applicant)).status_code == 404

    response = submit(applicant)

    assert response.status_code == 201
    body = response.get_json()
    assert body["message"] == "Service provider application submitted successfully. SUPER_ADMIN will review your application."
    assert body["application"]["serviceType"] == "pet_adoption"
    assert body["application"]["status"] == "pending"

    mine = client.get("/api/admin", headers=auth_headers(applicant)).get_json()
    assert mine["organizationName"] == "Happy Paws Shelter"

    duplicate = submit(applicant)
    assert duplicate.get_json()["error"] == "You already have a pending application"

@pytest.mark.parametrize("overrides, message", [
    ({"serviceType": "astrology"}, "astrology is not a valid service type"),
    ({"serviceDescription": "Too short"}, "Description must be at least 20 characters"),
    ({"organizationName": "   "}, "Organization name is required"),
])
def test_apply_validation(applicant, submit, overrides, message):
    response = submit(applicant, **overrides)

    assert response.status_code == 400
    assert message in response.get_json()["error"]

def test_only_super_admin_reviews(client, make_user, auth_headers, applicant, submit):
    application_id = submit(applicant).get_json()["application"]["_id"]
    admin = auth_headers(make_user(roles="ADMIN"))

    assert client.get("/api/admin/applications", headers=admin).status_code == 403
    assert client.post(f"/api/admin/applications/{application_id}/approve", json={}, headers=admin).status_code == 403

def test_approval_promotes_user(client, mongo, applicant, auth_headers, submit, super_admin_headers):
    application_id = submit(applicant).get_json()["application"]["_id"]

    response = client.post(
        f"/api/admin/applications/{application_id}/approve",
        json={"reviewNotes": "Documents verified"},
        headers=super_admin_headers
    )

    assert response.status_code == 200
    assert response.get_json()["message"] == (
        "Service provider application approved! User role has been updated to ADMIN with their service type."
    )
    assert response.get_json()["application"]["status"] == "approved"

    user = mongo.users.find_one({"_id": applicant["_id"]})
    assert user["roles"] == "ADMIN"
    assert user["service_type"] == "pet_adoption"

    # 승인된 사용자는 관리자 API를 사용할 수 있고 다시 신청할 수 없습니다.
    assert client.get("/api/adoption/applications/admin/stats", headers=auth_headers(applicant)).status_code == 200
    assert submit(applicant).get_json()["error"] == "You are already an approved service provider"

    again = client.post(f"/api/admin/applications/{application_id}/approve", json={}, headers=super_admin_headers)
    assert again.get_json()["error"] == 'Cannot approve application with status "approved"'

def test_rejection_requires_reason(client, mongo, applicant, submit, super_admin_headers):
    application_id = submit(applicant).get_json()["application"]["_id"]
    url = f"/api/admin/applications/{application_id}/reject"

    missing = client.post(url, json={}, headers=super_admin_headers)
    assert missing.status_code == 400
    assert missing.get_json()["error"] == "Rejection reason is required"

    rejected = client.post(url, json={"rejectionReason": "Incomplete documents"}, headers=super_admin_headers)
    assert rejected.get_json()["message"] == "Service provider application rejected."
    assert rejected.get_json()["application"]["rejectionReason"] == "Incomplete documents"
    assert mongo.users.find_one({"_id": applicant["_id"]})["roles"] == "USER"

    # 거절된 뒤에는 다시 신청할 수 있습니다.
    assert submit(applicant).status_code == 201

def test_list_applications_with_filters(client, make_user, submit, super_admin_headers, object_id):
    first = make_user(name="Vet Owner")
    second = make_user(name="Groomer")
    submit(first, serviceType="veterinary")
    submit(second, serviceType="grooming")

    everything = client.get("/api/admin/applications", headers=super_admin_headers).get_json()
    assert everything["pagination"]["total"] == 2

    vets = client.get("/api/admin/applications?serviceType=veterinary", headers=super_admin_headers).get_json()
    assert len(vets["applications"]) == 1
    assert vets["applications"][0]["userId"]["name"] == "Vet Owner"
    assert vets["applications"][0]["userId"]["email"] == first["email"]

    unknown = client.post(f"/api/admin/applications/{object_id()}/approve", json={}, headers=super_admin_headers)
    assert unknown.status_code == 404
    assert unknown.get_json()["error"] == "Application not found"
