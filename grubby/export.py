import re
import csv
import io
from collections import defaultdict
from datetime import datetime, date, timedelta
from typing import Dict

from icalendar import Calendar, Event

EVENT_HOURS = 2
RULE = "─" * 50


def _events(itinerary: Dict):
    return itinerary.get("events") or []


def _start(ev):
    try:
        return datetime.fromisoformat(f'{ev.get("date")}T{ev.get("time") or "09:00"}')
    except (TypeError, ValueError):
        return None


def _address(ev):
    return (ev.get("restaurantData") or {}).get("address", "")


def itinerary_to_ics(itinerary: Dict) -> bytes:
    cal = Calendar(); cal.add("prodid", "-//Grubby//Itinerary//EN"); cal.add("version", "2.0")
    cal.add("x-wr-calname", itinerary.get("title") or "Itinerary")
    for ev in _events(itinerary):
        dt = _start(ev)
        if dt is None:
            continue
        e = Event()
        e.add("uid", f'{ev.get("id") or id(ev)}@grubby')
        e.add("summary", ev.get("title") or ev.get("type", "Event"))
        e.add("dtstart", dt); e.add("dtend", dt + timedelta(hours=EVENT_HOURS))
        if _address(ev):
            e.add("location", _address(ev))
        desc = [ev.get("description") or "", f'Type: {ev.get("type", "other")}']
        e.add("description", "\n".join(d for d in desc if d))
        cal.add_component(e)
    return cal.to_ical()


def itinerary_to_csv(itinerary: Dict) -> str:
    buf = io.StringIO()
    w = csv.writer(buf, lineterminator="\n")
    w.writerow(["date", "time", "type", "title", "address"])
    for ev in sorted(_events(itinerary), key=lambda e: (e.get("date") or "", e.get("time") or "")):
        w.writerow([ev.get("date", ""), ev.get("time", ""), ev.get("type", ""), ev.get("title", ""), _address(ev)])
    return buf.getvalue()


def _ordinal(n):
    if 11 <= n % 100 <= 13: return f"{n}th"
    return str(n) + {1: "st", 2: "nd", 3: "rd"}.get(n % 10, "th")


def _long_date(value, with_year=True):
    d = date.fromisoformat(str(value)[:10])
    out = f"{d.strftime('%B')} {_ordinal(d.day)}"
    return f"{out}, {d.year}" if with_year else f"{d.strftime('%A')}, {out}"


def _day_header(day):
    if not day: return "Unscheduled"
    try:
        return _long_date(day, with_year=False)
    except ValueError:
        return day


def itinerary_to_text(itinerary: Dict) -> str:
    lines = [itinerary.get("title") or "Itinerary",
             f'{_long_date(itinerary["start_date"])} - {_long_date(itinerary["end_date"])}', ""]
    by_date = defaultdict(list)
    for ev in _events(itinerary):
        by_date[str(ev.get("date") or "")].append(ev)
    if not by_date:
        lines.append("No events scheduled.")
        return "\n".join(lines) + "\n"
    for day in sorted(by_date):
        lines += [_day_header(day), RULE, ""]
        for ev in sorted(by_date[day], key=lambda e: e.get("time") or ""):
            lines.append(f'{ev.get("time", "")} - {ev.get("title", "")}')
            if ev.get("description"):
                lines.append(f'   {ev["description"]}')
            rd = ev.get("restaurantData")
            if rd:
                lines.append(f'   Location: {rd.get("address", "")}')
                if rd.get("phone"): lines.append(f'   Phone: {rd["phone"]}')
                if rd.get("website"): lines.append(f'   Website: {rd["website"]}')
            lines.append("")
        lines.append("")
    return "\n".join(lines)


def export_filename(title, ext) -> str:
    slug = re.sub(r"[^a-z0-9]", "_", (title or "itinerary").lower())
    return f"{slug}_itinerary.{ext}"
