import sqlite3
import threading
from datetime import datetime, timezone

import pytest

from dnsSweep.db.sqlite import SQLiteResultSink
from dnsSweep.errors import PersistenceError
from dnsSweep.scanner.models import QueryRecord


def _record(ip="192.0.2.1", domain="example.com", answer=""):
    return QueryRecord(
        timestamp=datetime(2024, 5, 6, 7, 8, 9, tzinfo=timezone.utc),
        ip=ip,
        domain=domain,
        query=f"x.{domain}. A",
        answer=answer,
    )


def test_creates_table_and_inserts(tmp_path):
    path = tmp_path / "dns.db"
    with SQLiteResultSink(path) as sink:
        sink.insert(_record(answer="x.example.com. 60 IN A 192.0.2.1\n"))
        assert sink.count() == 1

    conn = sqlite3.connect(path)
    rows = conn.execute("SELECT timestamp, ip, domain, query, answer FROM dns_queries").fetchall()
    conn.close()
    assert rows == [
        (
            "2024-05-06T07:08:09+00:00",
            "192.0.2.1",
            "example.com",
            "x.example.com. A",
            "x.example.com. 60 IN A 192.0.2.1\n",
        )
    ]


def test_concurrent_writers_lose_nothing(tmp_path):
    sink = SQLiteResultSink(tmp_path / "dns.db")

    def writer(n):
        for i in range(50):
            sink.insert(_record(ip=f"10.0.{n}.{i}"))

    threads = [threading.Thread(target=writer, args=(n,)) for n in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert sink.count() == 400
    sink.close()


def test_duplicates_are_kept(tmp_path):
    with SQLiteResultSink(tmp_path / "dns.db") as sink:
        sink.insert(_record())
        sink.insert(_record())
        assert sink.count() == 2


def test_reopening_appends(tmp_path):
    path = tmp_path / "dns.db"
    with SQLiteResultSink(path) as sink:
        sink.insert(_record())
    with SQLiteResultSink(path) as sink:
        sink.insert(_record())
        assert sink.count() == 2


def test_fetch_records_round_trips(tmp_path):
    with SQLiteResultSink(tmp_path / "dns.db") as sink:
        sink.insert(_record(domain="a.org"))
        records = sink.fetch_records(limit=10)

    assert len(records) == 1
    assert records[0].domain == "a.org"
    assert records[0].timestamp == datetime(2024, 5, 6, 7, 8, 9, tzinfo=timezone.utc)


def test_insert_after_close_raises(tmp_path):
    sink = SQLiteResultSink(tmp_path / "dns.db")
    sink.close()
    with pytest.raises(PersistenceError):
        sink.insert(_record())


def test_unopenable_path_raises(tmp_path):
    blocker = tmp_path / "file"
    blocker.write_text("")
    with pytest.raises(PersistenceError):
        SQLiteResultSink(blocker / "dns.db")


def test_reads_after_close_raise(tmp_path):
    sink = SQLiteResultSink(tmp_path / "dns.db")
    sink.insert(_record())
    sink.close()
    with pytest.raises(PersistenceError):
        sink.count()
    with pytest.raises(PersistenceError):
        sink.fetch_records()
