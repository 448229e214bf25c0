from __future__ import annotations

import json

import pytest

from nft_lottery.tasks import (
    QueueFileTaskSource,
    StaticTaskSource,
    parse_task,
)


def test_parse_task_converts_ether_to_wei():
    task = parse_task({"calldata": "0xdeadbeef", "nativePrice": "0.01", "maxNativeSpend": "0.02"})
    assert task.target_calldata == b"\xde\xad\xbe\xef"
    assert task.native_price == 10**16
    assert task.max_native_spend == 2 * 10**16
    assert task.within_cap


def test_parse_task_defaults_prices():
    task = parse_task({"calldata": "0x01"})
    assert task.native_price == 10**16
    assert task.max_native_spend == 2 * 10**16


def test_price_over_cap_is_flagged():
    task = parse_task({"calldata": "0x01", "nativePrice": "0.05", "maxNativeSpend": "0.02"})
    assert not task.within_cap


@pytest.mark.parametrize(
    "raw",
    [
        {},
        {"calldata": "0x"},
        {"calldata": "not-hex"},
        {"calldata": "0x01", "nativePrice": "lots"},
        {"calldata": "0x01", "maxNativeSpend": "-1"},
        ["0x01"],
    ],
)
def test_parse_task_rejects_bad_input(raw):
    with pytest.raises(ValueError):
        parse_task(raw)


def test_static_source_returns_same_task_every_time():
    source = StaticTaskSource(json.dumps({"calldata": "0xaa"}))
    first = source.take(1)
    second = source.take(8453)
    assert first == second
    assert first.target_calldata == b"\xaa"


def test_static_source_without_task():
    assert StaticTaskSource(None).take(1) is None
    assert StaticTaskSource("").take(1) is None


def test_static_source_bad_json():
    with pytest.raises(ValueError):
        StaticTaskSource("{nope").take(1)


def test_queue_source_pops_in_order(tmp_path):
    path = tmp_path / "tasks.json"
    path.write_text(
        json.dumps({"8453": [{"calldata": "0x01"}, {"calldata": "0x02"}], "1": []}),
        encoding="utf-8",
    )
    source = QueueFileTaskSource(str(path))

    assert source.pending(8453) == 2
    assert source.take(8453).target_calldata == b"\x01"
    assert source.take(8453).target_calldata == b"\x02"
    assert source.take(8453) is None
    assert source.take(1) is None

    stored = json.loads(path.read_text(encoding="utf-8"))
    assert stored["8453"] == []


def test_queue_source_consumes_bad_task(tmp_path):
    path = tmp_path / "tasks.json"
    path.write_text(json.dumps({"1": [{"calldata": "zz"}, {"calldata": "0x02"}]}), encoding="utf-8")
    source = QueueFileTaskSource(str(path))

    with pytest.raises(ValueError):
        source.take(1)
    assert source.take(1).target_calldata == b"\x02"


def test_queue_source_missing_file(tmp_path):
    assert QueueFileTaskSource(str(tmp_path / "absent.json")).take(1) is None
