import json
import re

import pytest

from app.services.redis_cache import RedisCache

QUERY_RE = re.compile(r"@from:\{(.*?)\} @to:\{(.*?)\} @timestamp:\[(-?\d+) (-?\d+)\]")


class FakeClock:
    """可控的 time.time()"""

    def __init__(self, now: float = 1_700_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


class FakeRedis:
    """
    内存版 Redis，只实现 RedisCache 用到的命令。
    FT.SEARCH 按 chat_between_query 生成的查询格式做过滤，返回 RESP2 结构。
    """

    def __init__(self):
        self.docs = {}
        self.zsets = {}
        self.sets = {}
        self.strings = {}
        self.expiry = {}
        self.commands = []

    async def zadd(self, name, mapping):
        zset = self.zsets.setdefault(name, {})
        added = sum(1 for member in mapping if member not in zset)
        zset.update(mapping)
        return added

    async def zrange(self, name, start, end, desc=False, withscores=False):
        items = sorted(self.zsets.get(name, {}).items(), key=lambda kv: (kv[1], kv[0]), reverse=desc)
        return [(member, float(score)) for member, score in items]

    async def sadd(self, name, *values):
        members = self.sets.setdefault(name, set())
        added = len(set(values) - members)
        members.update(values)
        return added

    async def sismember(self, name, value):
        return int(value in self.sets.get(name, set()))

    async def set(self, name, value, ex=None):
        self.strings[name] = value
        self.expiry[name] = ex
        return True

    async def get(self, name):
        return self.strings.get(name)

    async def ping(self):
        return True

    async def execute_command(self, *args):
        self.commands.append(args)
        command = args[0]
        if command == "JSON.SET":
            key, _path, body = args[1:4]
            if "NX" in args[4:] and key in self.docs:
                return None
            self.docs[key] = body
            return "OK"
        if command == "FT.SEARCH":
            return self._search(args[2], list(args[3:]))
        raise AssertionError(f"unexpected command {command}")

    def _search(self, query, options):
        match = QUERY_RE.fullmatch(query)
        assert match, query
        froms = set(match.group(1).split("|"))
        tos = set(match.group(2).split("|"))
        low, high = int(match.group(3)), int(match.group(4))

        rows = []
        for key, body in self.docs.items():
            doc = json.loads(body)
            if doc["from"] in froms and doc["to"] in tos and low <= doc["timestamp"] <= high:
                rows.append((key, body, doc["timestamp"]))
        rows.sort(key=lambda row: row[2], reverse=True)

        i = options.index("LIMIT")
        offset, num = int(options[i + 1]), int(options[i + 2])
        res = [len(rows)]
        for key, body, _ in rows[offset:offset + num]:
            res.extend([key, ["$", body]])
        return res


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def fake_redis():
    return FakeRedis()


@pytest.fixture
def cache(fake_redis, clock):
    return RedisCache(fake_redis, timeout=1.0, page_size=100, key_attempts=3, clock=clock)
