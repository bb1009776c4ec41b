import pytest

from grubby import store
from grubby.errors import FunctionError


def test_current_user_id(supabase):
    assert store.current_user_id(supabase, "Bearer alice-token") == "alice"
    for header in (None, "", "Basic abc", "Bearer ", "Bearer nope"):
        with pytest.raises(FunctionError) as e:
            store.current_user_id(supabase, header)
        assert e.value.status == 401


def test_trip_lifecycle(supabase):
    with pytest.raises(FunctionError) as e:
        store.create_trip(supabase, "alice", {"title": "Rome"})
    assert e.value.status == 400

    first = store.create_trip(supabase, "alice", {"title": "Rome", "destination": "Rome, Italy", "bogus": 1})
    second = store.create_trip(supabase, "alice", {"title": "Tokyo", "destination": "Tokyo"})
    store.create_trip(supabase, "bob", {"title": "Lima", "destination": "Lima"})
    assert first["is_public"] is False
    assert "bogus" not in first
    assert [t["title"] for t in store.list_trips(supabase, "alice")] == ["Tokyo", "Rome"]

    updated = store.update_trip(supabase, first["id"], "alice", {"is_public": True, "user_id": "bob"})
    assert updated["is_public"] is True
    assert updated["user_id"] == "alice"

    with pytest.raises(FunctionError) as e:
        store.update_trip(supabase, second["id"], "bob", {"title": "Mine now"})
    assert e.value.status == 404

    store.delete_trip(supabase, second["id"], "alice")
    assert [t["title"] for t in store.list_trips(supabase, "alice")] == ["Rome"]


def test_shared_trip_only_when_public(supabase):
    trip = store.create_trip(supabase, "alice", {"title": "Rome", "destination": "Rome"})
    store.add_rating(supabase, "alice", {"trip_id": trip["id"], "place_name": "Roscioli", "overall_rating": 9})
    with pytest.raises(FunctionError) as e:
        store.get_shared_trip(supabase, trip["id"])
    assert e.value.status == 404

    store.update_trip(supabase, trip["id"], "alice", {"is_public": True})
    shared = store.get_shared_trip(supabase, trip["id"])
    assert [r["place_name"] for r in shared["ratings"]] == ["Roscioli"]


@pytest.mark.parametrize("rating", [-1, 10.5, "great"])
def test_rating_must_be_between_0_and_10(supabase, rating):
    with pytest.raises(FunctionError) as e:
        store.add_rating(supabase, "alice", {"trip_id": "t1", "place_name": "X", "overall_rating": rating})
    assert e.value.status == 400


def test_rating_requires_trip_and_place(supabase):
    with pytest.raises(FunctionError):
        store.add_rating(supabase, "alice", {"place_name": "X"})


def test_unknown_place_type_becomes_other(supabase):
    row = store.add_rating(supabase, "alice", {"trip_id": "t1", "place_name": "X", "place_type": "spaceport"})
    assert row["place_type"] == "other"
    assert row["user_id"] == "alice"


def test_update_and_delete_rating(supabase):
    row = store.add_rating(supabase, "alice", {"trip_id": "t1", "place_name": "X", "overall_rating": 5})
    assert store.update_rating(supabase, row["id"], "alice", {"overall_rating": 8, "trip_id": "t9"})["trip_id"] == "t1"
    with pytest.raises(FunctionError):
        store.update_rating(supabase, row["id"], "alice", {"overall_rating": 11})
    with pytest.raises(FunctionError) as e:
        store.delete_rating(supabase, row["id"], "bob")
    assert e.value.status == 404
    store.delete_rating(supabase, row["id"], "alice")
    assert store.list_ratings(supabase, "t1") == []


def test_add_restaurant_to_trip(supabase):
    row = store.add_restaurant_to_trip(supabase, "alice", "t1", {
        "id": "p1", "name": "Roscioli", "address": "Via dei Giubbonari 21", "phoneNumber": "+39 06 687 5287",
        "priceRange": 3, "location": {"lat": 41.89, "lng": 12.47}, "images": ["https://img.example/1.jpg"],
    })
    assert row["place_type"] == "restaurant"
    assert row["place_id"] == "p1"
    assert row["place_name"] == "Roscioli"
    assert row["latitude"] == 41.89
    assert row["phone_number"] == "+39 06 687 5287"
    assert row["photos"] == ["https://img.example/1.jpg"]


def test_save_itinerary_validates_dates(supabase):
    with pytest.raises(FunctionError) as e:
        store.save_itinerary(supabase, "alice", {"title": "Rome", "start_date": "2025-03-05",
                                                 "end_date": "2025-03-01"})
    assert e.value.status == 400
    with pytest.raises(FunctionError) as e:
        store.save_itinerary(supabase, "alice", {"title": "Rome", "start_date": "2025-03-05"})
    assert "end_date" in e.value.message
    with pytest.raises(FunctionError):
        store.save_itinerary(supabase, "alice", {"title": "Rome", "start_date": "soon", "end_date": "later"})


def test_save_itinerary_inserts_then_updates(supabase):
    saved = store.save_itinerary(supabase, "alice", {"title": "Rome", "start_date": "2025-03-01T00:00:00Z",
                                                     "end_date": "2025-03-03", "events": [{"title": "Lunch"}]})
    assert saved["start_date"] == "2025-03-01"
    again = store.save_itinerary(supabase, "alice", {"id": saved["id"], "title": "Rome again",
                                                     "start_date": "2025-03-01", "end_date": "2025-03-04"})
    assert again["id"] == saved["id"]
    assert again["events"] == []
    assert [i["title"] for i in store.list_itineraries(supabase, "alice")] == ["Rome again"]
    assert store.get_itinerary(supabase, saved["id"], "alice")["end_date"] == "2025-03-04"
    with pytest.raises(FunctionError) as e:
        store.get_itinerary(supabase, saved["id"], "bob")
    assert e.value.status == 404
    store.delete_itinerary(supabase, saved["id"], "alice")
    assert store.list_itineraries(supabase, "alice") == []


def test_cache_place_upserts_on_place_id(supabase):
    store.cache_place({"google_place_id": "p1", "name": "Old"})
    store.cache_place({"google_place_id": "p1", "name": "New"})
    store.cache_place({"google_place_id": None, "name": "Ignored"})
    assert supabase.db["restaurants"] == [{"google_place_id": "p1", "name": "New"}]


def test_get_client_requires_configuration():
    with pytest.raises(FunctionError) as e:
        store.get_client()
    assert e.value.message == "Supabase URL not configured"
