from datetime import timedelta

from icalendar import Calendar

from grubby import export

ITINERARY = {
    "id": "it-1",
    "title": "Paris Food Trip",
    "start_date": "2025-03-01",
    "end_date": "2025-03-03",
    "events": [
        {"id": "e2", "date": "2025-03-02", "time": "19:30", "type": "restaurant", "title": "Dinner at Septime",
         "restaurantData": {"name": "Septime", "address": "80 Rue de Charonne, Paris",
                            "phone": "+33 1 43 67 38 29", "website": "https://septime-charonne.fr"}},
        {"id": "e1", "date": "2025-03-01", "time": "12:00", "type": "restaurant", "title": "Lunch at Chez Janou",
         "description": "Provencal bistro",
         "restaurantData": {"name": "Chez Janou", "address": "2 Rue Roger Verlomme, Paris"}},
        {"id": "e0", "date": "2025-03-01", "time": "09:00", "type": "activity", "title": "Louvre"},
    ],
}


def test_text_groups_by_date_and_sorts_by_time():
    text = export.itinerary_to_text(ITINERARY)
    lines = text.splitlines()
    assert lines[0] == "Paris Food Trip"
    assert lines[1] == "March 1st, 2025 - March 3rd, 2025"
    assert lines[3] == "Saturday, March 1st"
    assert lines[4] == "─" * 50
    assert text.index("09:00 - Louvre") < text.index("12:00 - Lunch at Chez Janou") < text.index("Sunday, March 2nd")
    assert "   Provencal bistro" in lines
    assert "   Location: 80 Rue de Charonne, Paris" in lines
    assert "   Phone: +33 1 43 67 38 29" in lines
    assert "   Website: https://septime-charonne.fr" in lines


def test_text_without_events():
    text = export.itinerary_to_text(dict(ITINERARY, events=[]))
    assert text.endswith("No events scheduled.\n")


def test_csv_rows_are_sorted_and_quoted():
    rows = export.itinerary_to_csv(ITINERARY).splitlines()
    assert rows[0] == "date,time,type,title,address"
    assert rows[1] == "2025-03-01,09:00,activity,Louvre,"
    assert rows[2] == '2025-03-01,12:00,restaurant,Lunch at Chez Janou,"2 Rue Roger Verlomme, Paris"'
    assert len(rows) == 4


def test_ics_has_two_hour_events():
    bad = {"id": "x", "date": "someday", "time": "noon", "title": "Broken"}
    cal = Calendar.from_ical(export.itinerary_to_ics(dict(ITINERARY, events=ITINERARY["events"] + [bad])))
    events = list(cal.walk("VEVENT"))
    assert len(events) == 3
    septime = next(e for e in events if str(e.get("summary")) == "Dinner at Septime")
    start, end = septime.decoded("dtstart"), septime.decoded("dtend")
    assert end - start == timedelta(hours=2)
    assert (start.hour, start.minute) == (19, 30)
    assert str(septime.get("location")) == "80 Rue de Charonne, Paris"


def test_export_filename():
    assert export.export_filename("Paris Food Trip!", "txt") == "paris_food_trip__itinerary.txt"
    assert export.export_filename(None, "ics") == "itinerary_itinerary.ics"


def test_text_keeps_free_form_dates_as_headers():
    ev = {"id": "e9", "date": "March 1", "time": "20:00", "type": "restaurant", "title": "Late supper"}
    lines = export.itinerary_to_text(dict(ITINERARY, events=[ev])).splitlines()
    assert lines[3] == "March 1"
    assert "20:00 - Late supper" in lines
