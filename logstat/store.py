"""Stores that download mutations are applied to."""

# Standard libraries
from collections import defaultdict

# Installed packages
import duckdb
import redis

from logstat.stats import Incr, ZIncrBy, HIncrBy

PACKAGE_PREFIX = "downloads:rubygem:"


def apply(mutations, store):
    """Hand each mutation to the matching store operation.

    Store errors are not caught; retrying is up to the caller.
    """
    for mutation in mutations:
        match mutation:
            case Incr(key):
                store.increment_counter(key)
            case ZIncrBy(key, member, delta):
                store.increment_sorted_set_member(key, member, delta)
            case HIncrBy(key, field, delta):
                store.increment_hash_field(key, field, delta)
            case _:
                raise TypeError("Unknown mutation: {0!r}".format(mutation))


class MemoryStore:
    def __init__(self):
        self.counters = defaultdict(int)
        self.sorted_sets = defaultdict(lambda: defaultdict(int))
        self.hashes = defaultdict(lambda: defaultdict(int))

    def increment_counter(self, key):
        self.counters[key] += 1

    def increment_sorted_set_member(self, key, member, delta):
        self.sorted_sets[key][member] += delta

    def increment_hash_field(self, key, field, delta):
        self.hashes[key][field] += delta

    def package_totals(self):
        return {k[len(PACKAGE_PREFIX):]: v for k, v in self.counters.items()
                if k.startswith(PACKAGE_PREFIX)}

    def close(self):
        pass


class DuckDBStore:
    """Keeps the redis-style counters, sorted sets and hashes in DuckDB tables."""

    def __init__(self, conn):
        self.conn = conn
        conn.execute('''CREATE TABLE IF NOT EXISTS counters
                          ( name TEXT PRIMARY KEY
                          , total BIGINT NOT NULL)''')
        conn.execute('''CREATE TABLE IF NOT EXISTS sorted_sets
                          ( name TEXT NOT NULL
                          , member TEXT NOT NULL
                          , score DOUBLE NOT NULL
                          , PRIMARY KEY (name, member))''')
        conn.execute('''CREATE TABLE IF NOT EXISTS hashes
                          ( name TEXT NOT NULL
                          , field TEXT NOT NULL
                          , total BIGINT NOT NULL
                          , PRIMARY KEY (name, field))''')

    @classmethod
    def connect(cls, path):
        return cls(duckdb.connect(path))

    def increment_counter(self, key):
        self.conn.execute("INSERT INTO counters VALUES (?, 1) "
                          "ON CONFLICT (name) DO UPDATE SET total = total + EXCLUDED.total",
                          [key])

    def increment_sorted_set_member(self, key, member, delta):
        self.conn.execute("INSERT INTO sorted_sets VALUES (?, ?, ?) "
                          "ON CONFLICT (name, member) DO UPDATE SET score = score + EXCLUDED.score",
                          [key, member, delta])

    def increment_hash_field(self, key, field, delta):
        self.conn.execute("INSERT INTO hashes VALUES (?, ?, ?) "
                          "ON CONFLICT (name, field) DO UPDATE SET total = total + EXCLUDED.total",
                          [key, field, delta])

    def counter(self, key):
        row = self.conn.execute("SELECT total FROM counters WHERE name = ?", [key]).fetchone()
        return row[0] if row else 0

    def sorted_set(self, key):
        return {m: s for m, s in self.conn.execute(
            "SELECT member, score FROM sorted_sets WHERE name = ?", [key]).fetchall()}

    def hash(self, key):
        return {f: t for f, t in self.conn.execute(
            "SELECT field, total FROM hashes WHERE name = ?", [key]).fetchall()}

    def package_totals(self):
        return {name[len(PACKAGE_PREFIX):]: total for name, total in self.conn.execute(
            "SELECT name, total FROM counters WHERE starts_with(name, ?)",
            [PACKAGE_PREFIX]).fetchall()}

    def close(self):
        self.conn.close()


class RedisStore:
    def __init__(self, client):
        self.client = client

    @classmethod
    def from_url(cls, url, db=5):
        client = redis.Redis.from_url(url, db=db, decode_responses=True)
        client.ping()
        return cls(client)

    def increment_counter(self, key):
        self.client.incr(key)

    def increment_sorted_set_member(self, key, member, delta):
        self.client.zincrby(key, delta, member)

    def increment_hash_field(self, key, field, delta):
        self.client.hincrby(key, field, delta)

    def package_totals(self):
        keys = list(self.client.scan_iter(match=PACKAGE_PREFIX + "*"))
        if not keys:
            return {}
        return {k[len(PACKAGE_PREFIX):]: int(v)
                for k, v in zip(keys, self.client.mget(keys)) if v is not None}

    def close(self):
        self.client.close()
