"""Tests for the tour endpoints."""

from conftest import at, auth, make_review, make_tour

from tourhub.config import get_settings
from tourhub.services.filter_sort import TOURS

API = "/api/v1"


def test_list_tours_envelope(api_client, seed):
    seed(*(make_tour(title=f"Tour {i}", created_at=at(i)) for i in range(3)))

    response = api_client.get(f"{API}/tours", params={"limit": 2})

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["data"]["pagination"] == {"page": 1, "limit": 2, "totalItems": 3, "totalPages": 2}
    items = body["data"]["items"]
    assert [t["title"] for t in items] == ["Tour 2", "Tour 1"]
    assert all("id" in t and "_id" not in t and "reviews" not in t for t in items)


def test_public_listing_hides_unpublished_tours(api_client, seed):
    seed(make_tour(title="Live"), make_tour(title="Hidden", tour_status="Draft"))

    public = api_client.get(f"{API}/tours", params={"status": "Draft"}).json()["data"]
    admin = api_client.get(f"{API}/tours", headers=auth("admin-1", "admin")).json()["data"]
    drafts = api_client.get(f"{API}/tours", params={"status": "Draft"}, headers=auth("admin-1", "admin")).json()

    assert [t["title"] for t in public["items"]] == ["Live"]
    assert admin["pagination"]["totalItems"] == 2
    assert [t["title"] for t in drafts["data"]["items"]] == ["Hidden"]


def test_sort_and_filter(api_client, seed):
    seed(
        make_tour(title="Mid", price=50, category="hiking"),
        make_tour(title="Cheap", price=10, category="hiking"),
        make_tour(title="Dear", price=90, category="diving"),
    )

    response = api_client.get(f"{API}/tours", params={"category": "hiking", "sort": "price", "order": "asc"})

    assert [t["title"] for t in response.json()["data"]["items"]] == ["Cheap", "Mid"]


def test_unknown_sort_field_is_rejected(api_client):
    response = api_client.get(f"{API}/tours", params={"sort": "password"})

    assert response.status_code == 400
    error = response.json()["error"]
    assert error["code"] == "INVALID_SORT_FIELD"
    assert error["details"] == {"providedField": "password", "allowedFields": list(TOURS.allowed_sorts)}


def test_out_of_range_paging_is_rejected(api_client):
    cases = [
        ({"limit": 0}, "limit"),
        ({"limit": 101}, "limit"),
        ({"page": "x"}, "page"),
        ({"page": "\u00b2"}, "page"),
        ({"limit": "\u00b2"}, "limit"),
        ({"page": "9" * 25}, "page"),
    ]
    for params, field in cases:
        response = api_client.get(f"{API}/tours", params=params)
        assert response.status_code == 400
        assert response.json()["error"]["code"] == "VALIDATION_ERROR"
        assert response.json()["error"]["details"] == {"field": field}


def test_limit_all_returns_everything_on_one_page(api_client, seed):
    seed(*(make_tour(title=f"T{i}") for i in range(12)))

    response = api_client.get(f"{API}/tours", params={"limit": "all", "page": 3})

    data = response.json()["data"]
    assert data["pagination"] == {"page": 1, "limit": 12, "totalItems": 12, "totalPages": 1}
    assert len(data["items"]) == 12


def test_limit_all_over_threshold(api_client, seed, test_settings):
    strict = test_settings.model_copy(update={"pagination_memory_threshold": 3})
    api_client.app.dependency_overrides[get_settings] = lambda: strict
    seed(*(make_tour() for _ in range(4)))

    response = api_client.get(f"{API}/tours", params={"limit": "all"})

    assert response.status_code == 413
    error = response.json()["error"]
    assert error["code"] == "RESULT_SET_TOO_LARGE"
    assert error["details"] == {"totalItems": 4, "threshold": 3}


def test_get_tour_and_rating(api_client, seed):
    (tour,) = seed(make_tour(title="Fjords", reviews=[make_review(5), make_review(4), make_review(1, "pending")]))

    detail = api_client.get(f"{API}/tours/{tour.id}").json()["data"]
    rating = api_client.get(f"{API}/tours/{tour.id}/rating").json()["data"]

    assert detail["id"] == tour.id
    assert len(detail["reviews"]) == 3
    assert rating == {"averageRating": 4.5, "reviewCount": 3, "approvedReviewCount": 2}


def test_unknown_tour_is_not_found(api_client):
    for tour_id in ("65f1c0ffee0000000000beef", "not-an-id"):
        response = api_client.get(f"{API}/tours/{tour_id}")
        assert response.status_code == 404
        assert response.json()["error"]["code"] == "TOUR_NOT_FOUND"


def test_view_increments_are_anonymous(api_client, seed):
    (tour,) = seed(make_tour(views=5))

    api_client.patch(f"{API}/tours/{tour.id}/views/increment")
    response = api_client.patch(f"{API}/tours/{tour.id}/views/increment")

    assert response.status_code == 200
    assert response.json()["data"] == {"id": tour.id, "field": "views", "value": 7}


def test_booking_increment_requires_identity(api_client, seed):
    (tour,) = seed(make_tour())

    anonymous = api_client.patch(f"{API}/tours/{tour.id}/bookings/increment")
    booked = api_client.patch(f"{API}/tours/{tour.id}/bookings/increment", headers=auth("user-1"))

    assert anonymous.status_code == 401
    assert anonymous.json()["error"]["code"] == "AUTHENTICATION_REQUIRED"
    assert booked.json()["data"]["value"] == 1


def test_create_tour(api_client):
    body = {"title": "Sunset Cruise!", "tourStatus": "Published", "price": 120, "images": ["a.jpg"]}

    assert api_client.post(f"{API}/tours", json=body).status_code == 401
    assert api_client.post(f"{API}/tours", json=body, headers=auth("user-1", "user")).status_code == 403

    response = api_client.post(f"{API}/tours", json=body, headers=auth("seller-9", "seller"))

    assert response.status_code == 201
    data = response.json()["data"]
    assert data["slug"] == "sunset-cruise"
    assert data["author"] == "seller-9"
    assert data["averageRating"] == 0
    assert data["reviewCount"] == 0
    listed = api_client.get(f"{API}/tours").json()["data"]["items"]
    assert [t["id"] for t in listed] == [data["id"]]


def test_create_tour_rejects_unknown_status(api_client):
    response = api_client.post(
        f"{API}/tours",
        json={"title": "Odd", "tourStatus": "Paused"},
        headers=auth("admin-1", "admin"),
    )

    assert response.status_code == 400
    assert response.json()["error"]["details"] == {"field": "tourStatus"}
