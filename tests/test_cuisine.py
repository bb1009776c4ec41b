import pytest

from grubby import config, cuisine
from grubby.errors import FunctionError


def test_place_type_map_then_name_hints():
    assert cuisine.map_place_type_to_cuisine(["restaurant", "sushi_restaurant"], "Anything") == "Sushi"
    assert cuisine.map_place_type_to_cuisine([], "Tony's Pizza Place") == "Pizza"
    assert cuisine.map_place_type_to_cuisine(["restaurant"], "Blue Door") == "Restaurant"


@pytest.mark.parametrize("name,expected", [
    ("Ramen House", "Japanese"),
    ("Taqueria El Sol", "Mexican"),
    ("The Crown Tavern", "American Pub"),
    ("Blue Door", "International"),
])
def test_cuisine_from_name(name, expected):
    assert cuisine.cuisine_from_name(name) == expected


def test_parse_reply_handles_fences_and_generic_answers():
    assert cuisine.parse_cuisine_reply('```json\n{"cuisine": "Thai"}\n```') == "Thai"
    assert cuisine.parse_cuisine_reply('Sure! {"cuisine": "Peruvian"} Hope that helps.') == "Peruvian"
    assert cuisine.parse_cuisine_reply('{"cuisine": "Restaurant"}') is None
    with pytest.raises(ValueError):
        cuisine.parse_cuisine_reply("no idea")


def test_detect_without_key_uses_name_patterns():
    assert cuisine.detect_cuisine("Curry Corner") == "Indian"


def test_detect_uses_openai_reply(monkeypatch, fake_openai):
    monkeypatch.setattr(config, "OPENAI_KEY", "okey")
    monkeypatch.setattr(cuisine, "OpenAI", fake_openai(reply='{"cuisine": "Ethiopian"}'))
    assert cuisine.detect_cuisine("Blue Nile", "1 Main St", ["restaurant"]) == "Ethiopian"
    (client,) = fake_openai.instances
    assert client.kwargs["api_key"] == "okey"
    (req,) = client.requests
    assert req["model"] == "gpt-4o-mini"
    assert req["temperature"] == 0.1
    assert '"Blue Nile"' in req["messages"][1]["content"]


def test_detect_generic_reply_is_international(monkeypatch, fake_openai):
    monkeypatch.setattr(config, "OPENAI_KEY", "okey")
    monkeypatch.setattr(cuisine, "OpenAI", fake_openai(reply='{"cuisine": "Food"}'))
    assert cuisine.detect_cuisine("Blue Nile") == "International"


def test_detect_falls_back_on_errors(monkeypatch, fake_openai):
    monkeypatch.setattr(config, "OPENAI_KEY", "okey")
    monkeypatch.setattr(cuisine, "OpenAI", fake_openai(error=RuntimeError("network")))
    assert cuisine.detect_cuisine("Pho Saigon") == "Vietnamese"
    monkeypatch.setattr(cuisine, "OpenAI", fake_openai(reply="I am not sure"))
    assert cuisine.detect_cuisine("Pho Saigon") == "Vietnamese"


def test_detect_requires_name():
    with pytest.raises(FunctionError) as e:
        cuisine.detect_cuisine("")
    assert e.value.status == 400
