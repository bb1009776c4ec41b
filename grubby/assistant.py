import re
import logging
from datetime import datetime, timezone
from typing import Dict, List, Optional

import openai
from openai import OpenAI

from grubby import config
from grubby.errors import FunctionError, require

logger = logging.getLogger(__name__)

PERPLEXITY_HOST = "https://api.perplexity.ai"
PERPLEXITY_MODEL = "sonar"
CHAT_MODEL = "gpt-4o-mini"

INFO_PROMPTS = {
    "current_info": (
        "You are a restaurant information expert. Provide comprehensive, accurate information about restaurants. Be specific and helpful.",
        "Provide comprehensive current information about {ctx}: operating status, contact details, specialties, recent updates, awards, news, changes, anything current and relevant.",
    ),
    "reviews": (
        "You are a restaurant review expert. Provide detailed analysis and summary of restaurant reviews and customer feedback.",
        "Provide detailed review analysis for {ctx}: customer feedback, ratings, what people say about food, service, atmosphere, recent experiences.",
    ),
    "trending": (
        "You are a restaurant trend expert. Provide information about current popularity, buzz, and trending status of restaurants.",
        "Is {ctx} trending? Any recent awards, media mentions, social media buzz, popularity, waiting times, reservations difficulty?",
    ),
    "verification": (
        "You are a restaurant verification expert. Provide accurate current details for restaurant verification.",
        "Verify and provide all current details for {ctx}: address, phone, hours, website, social media, current status.",
    ),
    "hours": (
        "You are a restaurant hours expert. Provide comprehensive current operating hours and schedule information. Format hours clearly with specific times.",
        "Complete detailed operating hours for {ctx}: exact daily hours, special schedules, current hours today, any recent changes to hours, holiday schedules.",
    ),
}
DEFAULT_PROMPT = ("You are a restaurant information expert. Provide comprehensive information about restaurants.",
                  "Comprehensive information about {ctx}")

CHATBOT_SYSTEM = ("You are Grubby, a friendly restaurant and travel assistant. Help users discover restaurants, "
                  "plan meals on their trips and decide where to eat. Keep answers concise and practical.")


def restaurant_context(name, address=None, city=None):
    where = f" in {city}" if city else (f" at {address}" if address else "")
    return f"{name}{where}" + (f" ({address})" if address else "")


def build_info_prompts(name, address=None, city=None, info_type=None, additional_context=None):
    ctx = restaurant_context(name, address, city)
    if info_type == "custom":
        system = (f"You are a restaurant information expert. Provide comprehensive, detailed, current information "
                  f'about {ctx} related to this specific question: "{additional_context}".')
        return system, f"Current detailed information about {ctx}: {additional_context or 'general information'}"
    system, user = INFO_PROMPTS.get(info_type, DEFAULT_PROMPT)
    user = user.format(ctx=ctx)
    if additional_context:
        user += f" {additional_context}"
    return system, user


def tidy(text: str) -> str:
    text = re.sub(r"\*\*([^*]+)\*\*", r"\1", text)
    text = re.sub(r"\*([^*]+)\*", r"\1", text)
    text = text.replace("*", "")
    return re.sub(r"\s+", " ", text).strip()


def _complete(client, **kwargs) -> str:
    try:
        resp = client.chat.completions.create(**kwargs)
    except openai.RateLimitError as e:
        raise FunctionError("Rate limit exceeded. Please try again later.", status=429, details=str(e))
    except openai.AuthenticationError as e:
        raise FunctionError("AI provider rejected the API key", status=401, details=str(e))
    except openai.APIError as e:
        raise FunctionError("AI provider error", status=500, details=str(e))
    content = resp.choices[0].message.content if resp.choices else None
    if not content:
        raise FunctionError("Invalid response format from AI provider", status=500)
    return content


def perplexity_client():
    return OpenAI(api_key=require(config.PERPLEXITY_KEY, "Perplexity API key"), base_url=PERPLEXITY_HOST)


def restaurant_info(name, address=None, city=None, info_type="current_info", additional_context=None) -> Dict:
    if not name:
        raise FunctionError("restaurantName is required", status=400)
    client = perplexity_client()
    system, user = build_info_prompts(name, address, city, info_type, additional_context)
    logger.info("Restaurant info request: %s (%s)", name, info_type)
    raw = _complete(client, model=PERPLEXITY_MODEL, temperature=0.2, max_tokens=1000,
                    messages=[{"role": "system", "content": system}, {"role": "user", "content": user}])
    hours = info_type == "hours" or "hour" in (additional_context or "").lower()
    return {
        "restaurantName": name,
        "infoType": info_type,
        "generatedInfo": raw if hours else tidy(raw),
        "lastUpdated": datetime.now(timezone.utc).isoformat(),
        "sources": ["Perplexity AI"],
    }


def chat(messages: List[Dict], context: Optional[str] = None) -> Dict:
    history = [m for m in messages or [] if m.get("role") in ("user", "assistant") and m.get("content")]
    if not history:
        raise FunctionError("messages are required", status=400)
    client = OpenAI(api_key=require(config.OPENAI_KEY, "OpenAI API key"))
    system = CHATBOT_SYSTEM + (f"\n\nContext: {context}" if context else "")
    reply = _complete(client, model=CHAT_MODEL, temperature=0.7, max_tokens=500,
                      messages=[{"role": "system", "content": system}] + history[-20:])
    return {"reply": reply, "timestamp": datetime.now(timezone.utc).isoformat()}
