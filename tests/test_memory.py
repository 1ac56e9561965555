import threading

import pytest

from reactor_agent.memory import DictLongTermMemory, InMemoryMemory
from reactor_agent.message import Msg


def make_msgs(count, role="user", prefix="m"):
    return [Msg("alice", f"{prefix}{i}", role) for i in range(count)]


def stamped(text, timestamp, role="user", name="alice"):
    return Msg(name, text, role, timestamp=timestamp)


def test_add_single_and_list():
    memory = InMemoryMemory()
    memory.add(Msg("alice", "one", "user"))
    memory.add(make_msgs(2))
    assert memory.size() == 3
    assert [m.get_text_content() for m in memory.get_messages()] == ["one", "m0", "m1"]


def test_add_none_is_ignored():
    memory = InMemoryMemory()
    memory.add(None)
    assert memory.is_empty()


def test_add_rejects_non_messages():
    memory = InMemoryMemory()
    with pytest.raises(TypeError):
        memory.add(["not a message"])
    assert memory.size() == 0


def test_capacity_evicts_oldest_first():
    memory = InMemoryMemory(max_messages=3)
    msgs = make_msgs(5)
    for msg in msgs:
        memory.add(msg)
        assert memory.size() <= 3
    assert memory.get_messages() == msgs[2:]


def test_without_auto_truncate_capacity_is_not_enforced():
    memory = InMemoryMemory(max_messages=2, auto_truncate=False)
    memory.add(make_msgs(4))
    assert memory.size() == 4
    assert memory.truncate_to_recent(2) == 2
    assert [m.get_text_content() for m in memory.get_messages()] == ["m2", "m3"]


def test_set_max_messages_truncates_immediately():
    memory = InMemoryMemory(max_messages=10)
    memory.add(make_msgs(6))
    memory.set_max_messages(4)
    assert [m.get_text_content() for m in memory.get_messages()] == ["m2", "m3", "m4", "m5"]


@pytest.mark.parametrize("count, expected", [(0, []), (-1, []), (2, ["m3", "m4"]),
                                             (5, ["m0", "m1", "m2", "m3", "m4"]),
                                             (50, ["m0", "m1", "m2", "m3", "m4"])])
def test_get_recent_messages(count, expected):
    memory = InMemoryMemory()
    memory.add(make_msgs(5))
    assert [m.get_text_content() for m in memory.get_recent_messages(count)] == expected


def test_returned_lists_are_copies():
    memory = InMemoryMemory()
    memory.add(make_msgs(2))
    messages = memory.get_messages()
    messages.clear()
    assert memory.size() == 2


def test_filters_by_role_name_and_text():
    memory = InMemoryMemory()
    memory.add([Msg("alice", "hello there", "user"),
                Msg("bot", "hi alice", "assistant"),
                Msg("bob", "hello bot", "user")])
    assert [m.name for m in memory.get_messages_by_role("user")] == ["alice", "bob"]
    assert [m.name for m in memory.get_messages_by_sender("bot")] == ["bot"]
    assert [m.name for m in memory.get_messages({"contains_text": "hello"})] == ["alice", "bob"]
    assert [m.name for m in memory.filter_messages(role="user", name="bob")] == ["bob"]
    assert memory.get_messages({"role": "system"}) == []


def test_timestamp_filters():
    memory = InMemoryMemory()
    memory.add([stamped("early", "2024-01-01 10:00:00.000"),
                stamped("middle", "2024-01-01 11:00:00.000"),
                stamped("late", "2024-01-01 12:00:00.000")])

    after = memory.filter_messages(after="2024-01-01 11:00:00.000")
    assert [m.get_text_content() for m in after] == ["middle", "late"]

    before = memory.filter_messages(before="2024-01-01 11:00:00.000")
    assert [m.get_text_content() for m in before] == ["early"]

    in_range = memory.get_messages_in_time_range("2024-01-01 10:30:00.000", "2024-01-01 12:00:00.000")
    assert [m.get_text_content() for m in in_range] == ["middle", "late"]


def test_malformed_timestamps_do_not_match_or_raise():
    memory = InMemoryMemory()
    memory.add([stamped("bad", "yesterday-ish"), stamped("good", "2024-01-01 10:00:00.000")])
    assert [m.get_text_content() for m in memory.filter_messages(after="2023-01-01 00:00:00.000")] == ["good"]
    assert memory.filter_messages(after="not a time") == []
    assert memory.get_messages_in_time_range("garbage", "2024-01-01 10:00:00.000") == []
    assert memory.remove_messages_older_than("nonsense") == 0
    assert memory.size() == 2


def test_remove_messages_older_than():
    memory = InMemoryMemory()
    memory.add([stamped("old", "2020-01-01 00:00:00.000"),
                stamped("new", "2030-01-01 00:00:00.000")])
    assert memory.remove_messages_older_than("2025-01-01 00:00:00.000") == 1
    assert [m.get_text_content() for m in memory.get_messages()] == ["new"]


def test_remove_message_and_clear():
    memory = InMemoryMemory()
    msgs = make_msgs(3)
    memory.add(msgs)
    assert memory.remove_message(msgs[1].id) is True
    assert memory.remove_message("missing") is False
    assert memory.get_messages() == [msgs[0], msgs[2]]
    memory.clear()
    assert memory.is_empty()
    assert memory.get_first_message() is None
    assert memory.get_last_message() is None


def test_search_and_stats():
    memory = InMemoryMemory()
    memory.add([Msg("alice", "Hello World", "user"), Msg("bot", "goodbye", "assistant")])
    assert len(memory.search_messages("hello")) == 1
    assert memory.search_messages("hello", case_sensitive=True) == []

    stats = memory.get_memory_stats()
    assert stats["total_messages"] == 2
    assert stats["role_counts"] == {"user": 1, "assistant": 1}
    # len("Hello World") // 4 + 10 + len("goodbye") // 4 + 10
    assert memory.estimate_token_count() == 2 + 10 + 1 + 10


def test_export_import_and_snapshot():
    memory = InMemoryMemory()
    msgs = make_msgs(3)
    memory.add(msgs)

    exported = memory.export_memory()
    snapshot = memory.create_snapshot()

    other = InMemoryMemory()
    other.import_memory(exported)
    assert other.get_messages() == msgs

    memory.clear()
    memory.restore_from_snapshot(snapshot)
    assert memory.get_messages() == msgs


def test_state_dict_round_trip_keeps_configuration():
    memory = InMemoryMemory(max_messages=5, auto_truncate=False)
    memory.add(make_msgs(2))
    state = memory.state_dict()

    restored = InMemoryMemory()
    restored.load_state_dict(state)
    assert restored.max_messages == 5
    assert restored.auto_truncate is False
    assert [m.id for m in restored.get_messages()] == [m.id for m in memory.get_messages()]


def test_concurrent_writers_respect_capacity():
    memory = InMemoryMemory(max_messages=50)

    def writer():
        for msg in make_msgs(100):
            memory.add(msg)
            memory.get_recent_messages(5)

    threads = [threading.Thread(target=writer) for _ in range(4)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()
    assert memory.size() == 50


def test_long_term_memory_store_search_and_persist(tmp_path):
    path = tmp_path / "ltm" / "memory.json"
    memory = DictLongTermMemory(storage_path=str(path))
    memory.store("fav_color", "The user likes Blue", {"topic": "preferences"})
    memory.store("city", "The user lives in Paris", {"topic": "location"})

    assert memory.retrieve("fav_color") == "The user likes Blue"
    assert memory.exists("city")
    assert [r["key"] for r in memory.search("blue")] == ["fav_color"]
    assert [r["key"] for r in memory.search_by_criteria({"topic": "location"})] == ["city"]
    assert memory.update("city", "The user lives in Lyon") is True
    assert memory.retrieve_with_metadata("city")["metadata"] == {"topic": "location"}
    assert memory.update("missing", "x") is False

    reloaded = DictLongTermMemory(storage_path=str(path))
    assert reloaded.get_item_count() == 2
    assert reloaded.retrieve("city") == "The user lives in Lyon"

    assert reloaded.delete("city") is True
    assert reloaded.delete("city") is False


def test_long_term_memory_backup_and_restore():
    memory = DictLongTermMemory()
    memory.store("a", "alpha")
    backup = memory.create_backup()
    memory.clear_all()
    assert memory.get_item_count() == 0
    assert memory.restore_from_backup(backup) is True
    assert memory.retrieve("a") == "alpha"
    assert memory.restore_from_backup({}) is False
    assert memory.get_statistics()["total_items"] == 1
