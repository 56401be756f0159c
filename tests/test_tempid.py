"""Tests for temporary ids and the temp-ref counter."""

import threading

from factum import TempId, TempRefCounter
from factum.values import DB_PART_DB, Keyword


def test_tempid_repr_and_elements():
    tempid = TempId("db.part/user", -1001)
    assert tempid.tag == "db/id"
    assert tempid.elements == (Keyword("db.part/user"), -1001)
    assert repr(tempid) == "#db/id[:db.part/user -1001]"


def test_tempid_without_ref():
    tempid = TempId(DB_PART_DB)
    assert tempid.elements == (DB_PART_DB,)
    assert repr(tempid) == "#db/id[:db.part/db]"


def test_tempid_normalizes_partition():
    assert TempId(":db.part/user", -1) == TempId(Keyword("db.part/user"), -1)
    assert isinstance(TempId("db.part/user").partition, Keyword)


def test_counter_starts_below_start():
    counter = TempRefCounter()
    assert counter.last == -1000
    assert counter.next_ref() == -1001
    assert counter.next_ref() == -1002
    assert counter.last == -1002


def test_counter_custom_start():
    counter = TempRefCounter(start=0)
    assert [counter.next_ref() for _ in range(3)] == [-1, -2, -3]


def test_counter_is_unique_across_threads():
    counter = TempRefCounter()
    results: list[list[int]] = [[] for _ in range(8)]

    def worker(out: list[int]) -> None:
        for _ in range(500):
            out.append(counter.next_ref())

    threads = [threading.Thread(target=worker, args=(out,)) for out in results]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    refs = [ref for out in results for ref in out]
    assert len(refs) == len(set(refs)) == 4000
    assert min(refs) == -5000
    assert all(out == sorted(out, reverse=True) for out in results)
