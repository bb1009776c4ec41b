from types import SimpleNamespace

import pytest

from grubby import amadeus, config, store

PROVIDER_KEYS = ("AMADEUS_KEY", "AMADEUS_SECRET", "GOOGLE_PLACES_KEY", "MAPBOX_TOKEN", "YELP_KEY",
                 "FLIGHTAPI_KEY", "OPENAI_KEY", "PERPLEXITY_KEY", "SUPABASE_URL", "SUPABASE_SERVICE_KEY")


@pytest.fixture(autouse=True)
def no_provider_keys(monkeypatch):
    """Every test starts unconfigured; tests opt in to the keys they need."""
    for name in PROVIDER_KEYS:
        monkeypatch.setattr(config, name, None)
    monkeypatch.setattr(config, "PAGE_TOKEN_DELAY", 0)
    amadeus.reset_token()
    store.reset_client()
    yield
    amadeus.reset_token()


class FakeQuery:
    def __init__(self, db, table):
        self.db = db
        self.table = table
        self.op = "select"
        self.payload = None
        self.conflict = None
        self.filters = []
        self.order_by = None

    def select(self, *_):
        self.op = "select"
        return self

    def insert(self, row):
        self.op, self.payload = "insert", row
        return self

    def update(self, row):
        self.op, self.payload = "update", row
        return self

    def upsert(self, row, on_conflict=None):
        self.op, self.payload, self.conflict = "upsert", row, on_conflict
        return self

    def delete(self):
        self.op = "delete"
        return self

    def eq(self, column, value):
        self.filters.append((column, value))
        return self

    def order(self, column, desc=False):
        self.order_by = (column, desc)
        return self

    def execute(self):
        rows = self.db.setdefault(self.table, [])
        match = [r for r in rows if all(r.get(k) == v for k, v in self.filters)]
        if self.op == "insert":
            row = dict(self.payload)
            row.setdefault("id", f"{self.table}-{len(rows) + 1}")
            row.setdefault("created_at", f"2025-01-{len(rows) + 1:02d}T00:00:00")
            rows.append(row)
            return SimpleNamespace(data=[dict(row)])
        if self.op == "update":
            for r in match:
                r.update(self.payload)
            return SimpleNamespace(data=[dict(r) for r in match])
        if self.op == "delete":
            for r in match:
                rows.remove(r)
            return SimpleNamespace(data=match)
        if self.op == "upsert":
            existing = [r for r in rows if r.get(self.conflict) == self.payload.get(self.conflict)]
            if existing:
                existing[0].update(self.payload)
                return SimpleNamespace(data=[dict(existing[0])])
            rows.append(dict(self.payload))
            return SimpleNamespace(data=[dict(self.payload)])
        if self.order_by:
            col, desc = self.order_by
            match = sorted(match, key=lambda r: r.get(col) or "", reverse=desc)
        return SimpleNamespace(data=[dict(r) for r in match])


class FakeAuth:
    def __init__(self, users):
        self.users = users

    def get_user(self, token):
        if token not in self.users:
            raise RuntimeError("invalid JWT")
        return SimpleNamespace(user=SimpleNamespace(id=self.users[token]))


class FakeSupabase:
    def __init__(self):
        self.db = {}
        self.auth = FakeAuth({"alice-token": "alice", "bob-token": "bob"})

    def table(self, name):
        return FakeQuery(self.db, name)


@pytest.fixture
def supabase(monkeypatch):
    fake = FakeSupabase()
    monkeypatch.setattr(store, "get_client", lambda: fake)
    return fake


def completion(content):
    return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=content))])


class FakeOpenAI:
    """Stands in for ``openai.OpenAI``; records client kwargs and requests."""
    instances = []

    def __init__(self, reply=None, error=None, **kwargs):
        self.kwargs = kwargs
        self.requests = []
        self.reply = reply
        self.error = error
        self.chat = SimpleNamespace(completions=SimpleNamespace(create=self._create))
        FakeOpenAI.instances.append(self)

    def _create(self, **kwargs):
        self.requests.append(kwargs)
        if self.error:
            raise self.error
        return completion(self.reply)


@pytest.fixture
def fake_openai():
    FakeOpenAI.instances = []

    def factory(reply=None, error=None):
        return lambda **kwargs: FakeOpenAI(reply=reply, error=error, **kwargs)
    factory.instances = FakeOpenAI.instances
    return factory
