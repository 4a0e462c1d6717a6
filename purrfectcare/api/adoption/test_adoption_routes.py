# purrfectcare/api/adoption/test_adoption_routes.py
import pytest
from bson import ObjectId

LISTING_PAYLOAD = {
    "name": "Bella",
    "species": "Dog",
    "breed": "Labrador",
    "gender": "Female",
    "age": 18,
    "description": "Friendly and playful lab who loves long walks.",
    "healthInfo": "Vaccinated",
    "specialNeeds": "Needs a daily joint supplement",
    "adoptionFee": 1500,
    "photos": ["http://img/bella-1.png", "http://img/bella-2.png"],
    "location": "Kathmandu"
}

APPLICATION_PAYLOAD = {
    "message": "We have a big garden and lots of love to give.",
    "contactPhone": "9812345678",
    "contactEmail": "Family@Example.com",
    "livingSituation": "house_with_yard",
    "hasOtherPets": False,
    "hasChildren": True
}

@pytest.fixture
def shelter(make_user):
    return make_user(name="Happy Paws", roles="ADMIN", phone_number="014000000")

@pytest.fixture
def shelter_headers(shelter, auth_headers):
    return auth_headers(shelter)

@pytest.fixture
def create_listing(client, shelter_headers):
    def _create_listing(**overrides):
        response = client.post("/api/adoption/listings/admin", json={**LISTING_PAYLOAD, **overrides}, headers=shelter_headers)
        assert response.status_code == 201, response.get_json()
        return response.get_json()
    return _create_listing

@pytest.fixture
def apply(client, auth_headers):
    def _apply(user, listing_id, **overrides):
        return client.post(
            f"/api/adoption/applications/listing/{listing_id}",
            json={**APPLICATION_PAYLOAD, **overrides},
            headers=auth_headers(user)
        )
    return _apply

def test_create_listing_normalizes_input(create_listing, shelter):
    listing = create_listing(name="  Bella  ")

    assert listing["name"] == "Bella"
    assert listing["species"] == "dog"
    assert listing["gender"] == "female"
    assert listing["status"] == "available"
    assert listing["postedBy"] == str(shelter["_id"])

def test_create_listing_accepts_form_data(client, shelter_headers):
    form = {k: str(v) for k, v in LISTING_PAYLOAD.items() if k != "photos"}

    response = client.post("/api/adoption/listings/admin", data=form, headers=shelter_headers)

    assert response.status_code == 201
    assert response.get_json()["age"] == 18

@pytest.mark.parametrize("overrides, message", [
    ({"name": ""}, "Pet name is required"),
    ({"species": "dragon"}, "dragon is not a valid species"),
    ({"age": -1}, "Age cannot be negative"),
    ({"description": "short"}, "Description must be at least 10 characters"),
    ({"photos": [f"http://img/{i}.png" for i in range(6)]}, "Maximum 5 photos allowed"),
])
def test_create_listing_validation(client, shelter_headers, overrides, message):
    response = client.post("/api/adoption/listings/admin", json={**LISTING_PAYLOAD, **overrides}, headers=shelter_headers)

    assert response.status_code == 400
    assert message in response.get_json()["error"]

def test_regular_user_cannot_create_listing(client, make_user, auth_headers):
    response = client.post("/api/adoption/listings/admin", json=LISTING_PAYLOAD, headers=auth_headers(make_user()))

    assert response.status_code == 403

def test_public_listing_search_and_filters(client, create_listing):
    create_listing()
    create_listing(name="Tom", species="cat", gender="male", age=6, breed="Siamese", location="Pokhara",
                   description="Calm indoor cat looking for a quiet home.")

    def names(query=""):
        return sorted(l["name"] for l in client.get(f"/api/adoption/listings?{query}").get_json()["listings"])

    assert names() == ["Bella", "Tom"]
    assert names("search=siam") == ["Tom"]
    assert names("species=DOG") == ["Bella"]
    assert names("gender=male") == ["Tom"]
    assert names("minAge=12") == ["Bella"]
    assert names("maxAge=12") == ["Tom"]
    assert names("location=pokh") == ["Tom"]

    listing = client.get("/api/adoption/listings").get_json()["listings"][0]
    assert listing["postedBy"]["name"] == "Happy Paws"
    assert "email" not in listing["postedBy"]

def test_listing_detail_includes_organization(client, mongo, shelter, create_listing):
    listing = create_listing()
    mongo.provider_applications.insert_one({
        "user_id": shelter["_id"], "organization_name": "Happy Paws Shelter", "status": "approved"
    })

    detail = client.get(f"/api/adoption/listings/{listing['_id']}").get_json()

    assert detail["postedBy"]["phoneNumber"] == "014000000"
    assert detail["postedBy"]["organizationName"] == "Happy Paws Shelter"
    assert client.get("/api/adoption/listings/bad-id").status_code == 400

def test_update_and_delete_listing_ownership(client, make_user, auth_headers, shelter_headers, create_listing):
    listing = create_listing()
    url = f"/api/adoption/listings/admin/{listing['_id']}"
    other_admin = auth_headers(make_user(roles="ADMIN"))

    denied = client.put(url, json={"age": 20}, headers=other_admin)
    assert denied.status_code == 403
    assert denied.get_json()["error"] == "Access denied. You can only manage your own listings."

    updated = client.put(url, json={"age": 20, "status": "adopted"}, headers=shelter_headers)
    assert updated.get_json()["age"] == 20
    assert updated.get_json()["status"] == "available"

    deleted = client.delete(url, headers=shelter_headers)
    assert deleted.get_json() == {"message": "Listing deleted successfully"}
    assert client.get(f"/api/adoption/listings/{listing['_id']}").status_code == 404
    assert client.get("/api/adoption/listings").get_json()["listings"] == []

def test_application_rules(apply, make_user, shelter, create_listing):
    listing = create_listing()
    adopter = make_user()

    own = apply(shelter, listing["_id"])
    assert own.get_json()["error"] == "You cannot apply for your own listing"

    first = apply(adopter, listing["_id"])
    assert first.status_code == 201
    assert first.get_json()["status"] == "pending"
    assert first.get_json()["contactEmail"] == "family@example.com"

    again = apply(adopter, listing["_id"])
    assert again.status_code == 400
    assert again.get_json()["error"] == "You have already applied for this pet"

    short = apply(make_user(), listing["_id"], message="Please")
    assert "Message must be at least 20 characters" in short.get_json()["error"]

def test_unverified_user_cannot_apply(apply, make_user, create_listing):
    listing = create_listing()

    response = apply(make_user(is_verified=False), listing["_id"])

    assert response.status_code == 403
    assert response.get_json()["code"] == "EMAIL_NOT_VERIFIED"

def test_approval_adopts_pet_and_rejects_others(client, mongo, apply, make_user, auth_headers, shelter_headers, create_listing):
    listing = create_listing()
    winner = make_user(name="Winner")
    loser = make_user(name="Loser")
    winning_id = apply(winner, listing["_id"]).get_json()["_id"]
    losing_id = apply(loser, listing["_id"]).get_json()["_id"]

    response = client.patch(
        f"/api/adoption/applications/{winning_id}/approve",
        json={"reviewNotes": "Great fit"},
        headers=shelter_headers
    )

    assert response.status_code == 200
    body = response.get_json()
    assert body["message"] == "Application approved successfully. Pet has been marked as adopted."
    assert body["application"]["status"] == "approved"
    assert body["application"]["reviewNotes"] == "Great fit"

    stored_listing = mongo.adoption_listings.find_one({"_id": ObjectId(listing["_id"])})
    assert stored_listing["status"] == "adopted"
    assert stored_listing["adopted_by"] == winner["_id"]

    sibling = mongo.adoption_applications.find_one({"_id": ObjectId(losing_id)})
    assert sibling["status"] == "rejected"
    assert sibling["review_notes"] == "Another application was approved for this pet."

    pets = client.get("/api/pets", headers=auth_headers(winner)).get_json()["pets"]
    assert len(pets) == 1
    pet = pets[0]
    assert pet["name"] == "Bella"
    assert pet["species"] == "dog"
    assert pet["age"] == 1.5
    assert pet["photos"] == LISTING_PAYLOAD["photos"]
    assert pet["medicalNotes"] == "Vaccinated\nNeeds a daily joint supplement"
    assert pet["dateOfBirth"] is not None

    # 이미 입양된 공고에는 새 신청도, 수정도 할 수 없습니다.
    late = apply(make_user(), listing["_id"])
    assert late.get_json()["error"] == "This pet is no longer available for adoption"
    edit = client.put(f"/api/adoption/listings/admin/{listing['_id']}", json={"age": 30}, headers=shelter_headers)
    assert edit.get_json()["error"] == "Cannot edit a listing that has already been adopted"

    repeat = client.patch(f"/api/adoption/applications/{winning_id}/approve", json={}, headers=shelter_headers)
    assert repeat.get_json()["error"] == "Cannot approve an application that is already approved"

def test_reject_application(client, apply, make_user, shelter_headers, create_listing):
    listing = create_listing()
    application_id = apply(make_user(), listing["_id"]).get_json()["_id"]

    response = client.patch(
        f"/api/adoption/applications/{application_id}/reject",
        json={"reviewNotes": "Not a match"},
        headers=shelter_headers
    )

    assert response.get_json()["message"] == "Application rejected successfully."
    assert response.get_json()["application"]["status"] == "rejected"
    approve = client.patch(f"/api/adoption/applications/{application_id}/approve", json={}, headers=shelter_headers)
    assert approve.get_json()["error"] == "Cannot approve an application that is already rejected"

def test_other_admin_cannot_review(client, apply, make_user, auth_headers, create_listing):
    listing = create_listing()
    application_id = apply(make_user(), listing["_id"]).get_json()["_id"]

    response = client.patch(
        f"/api/adoption/applications/{application_id}/approve",
        json={},
        headers=auth_headers(make_user(roles="ADMIN"))
    )

    assert response.status_code == 403

def test_application_views(client, apply, make_user, auth_headers, shelter, shelter_headers, create_listing):
    listing = create_listing()
    adopter = make_user(name="Adopter", phone_number="9800000002")
    application_id = apply(adopter, listing["_id"]).get_json()["_id"]

    mine = client.get("/api/adoption/applications/me", headers=auth_headers(adopter)).get_json()
    assert mine["applications"][0]["listingId"]["name"] == "Bella"
    assert mine["applications"][0]["listingId"]["postedBy"]["name"] == "Happy Paws"

    for_listing = client.get(f"/api/adoption/applications/listing/{listing['_id']}", headers=shelter_headers).get_json()
    applicant = for_listing["applications"][0]["applicantId"]
    assert applicant["email"] == adopter["email"]
    assert applicant["phoneNumber"] == "9800000002"

    assert client.get(f"/api/adoption/applications/{application_id}", headers=auth_headers(adopter)).status_code == 200
    assert client.get(f"/api/adoption/applications/{application_id}", headers=shelter_headers).status_code == 200
    stranger = client.get(f"/api/adoption/applications/{application_id}", headers=auth_headers(make_user()))
    assert stranger.status_code == 403

def test_all_applications_scope(client, apply, make_user, auth_headers, shelter_headers, create_listing):
    listing = create_listing()
    apply(make_user(), listing["_id"])
    other_admin = auth_headers(make_user(roles="ADMIN"))
    super_admin = auth_headers(make_user(roles="SUPER_ADMIN"))

    assert client.get("/api/adoption/applications/admin/all", headers=shelter_headers).get_json()["pagination"]["total"] == 1
    assert client.get("/api/adoption/applications/admin/all", headers=other_admin).get_json()["pagination"]["total"] == 0
    assert client.get("/api/adoption/applications/admin/all", headers=super_admin).get_json()["pagination"]["total"] == 1

def test_admin_stats(client, apply, make_user, shelter_headers, create_listing):
    adopted = create_listing()
    create_listing(name="Max")
    winner_app = apply(make_user(), adopted["_id"]).get_json()["_id"]
    apply(make_user(), adopted["_id"])
    client.patch(f"/api/adoption/applications/{winner_app}/approve", json={}, headers=shelter_headers)

    stats = client.get("/api/adoption/applications/admin/stats", headers=shelter_headers).get_json()

    assert stats == {
        "listings": {"total": 2, "available": 1, "adopted": 1},
        "applications": {"total": 2, "pending": 0, "approved": 1, "rejected": 1}
    }
