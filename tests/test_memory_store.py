import json
import random

from musebot.config.schema import MemoryConfig
from musebot.memory.store import EXPERIENCES_FILE, LONG_TERM_FILE, PROJECTS_FILE, MemoryStore
from musebot.memory.types import MemoryKind, ProjectStatus


def test_ids_strictly_increase(memory):
    ids = [memory.add_thought(f"t{i}").id for i in range(20)]
    assert ids == sorted(ids)
    assert len(set(ids)) == len(ids)


def test_session_buffer_trims_to_low_water(tmp_path):
    store = MemoryStore(tmp_path, MemoryConfig(session_high_water=5, session_low_water=3))
    for i in range(6):
        store.add_thought(f"thought {i}")

    assert [r.content for r in store.session] == ["thought 3", "thought 4", "thought 5"]


def test_experience_log_trims_independently(tmp_path):
    store = MemoryStore(tmp_path, MemoryConfig(experience_high_water=4, experience_low_water=2))
    for i in range(5):
        store.add_action(f"act{i}", "success")

    assert [r.action for r in store.experiences] == ["act3", "act4"]
    assert len(store.session) == 5


def test_add_action_records_kind_and_outcome(memory):
    record = memory.add_action("write_poem", "failure", "Failed to write poem")

    assert record.kind == MemoryKind.ACTION
    assert record.content == "write_poem: failure"
    assert not record.succeeded
    assert memory.get_recent_experiences(1) == [record]


def test_consolidation_promotes_reflections_achievements_and_successes(memory):
    memory.add_thought("plain thought")
    memory.add_thought("I reflected", MemoryKind.REFLECTION)
    memory.add_thought("I finished", MemoryKind.ACHIEVEMENT)
    memory.add_action("write_poem", "success")
    memory.add_action("read_file", "failure")

    promoted = memory.consolidate()

    assert promoted == 3
    assert {r.content for r in memory.archive} == {"I reflected", "I finished", "write_poem: success"}
    assert all(r.scope == "archived" for r in memory.archive)
    assert all(r.scope == "session" for r in memory.session)


def test_consolidation_is_idempotent(memory):
    memory.add_thought("lesson", MemoryKind.REFLECTION)
    memory.consolidate()
    archived = list(memory.archive)

    assert memory.consolidate() == 0
    assert memory.archive == archived


def test_archive_trims_after_consolidation(tmp_path):
    store = MemoryStore(tmp_path, MemoryConfig(archive_high_water=3, archive_low_water=2))
    for i in range(4):
        store.add_thought(f"r{i}", MemoryKind.REFLECTION)
    store.consolidate()

    assert [r.content for r in store.archive] == ["r2", "r3"]


def test_get_context_and_oracle_messages(memory):
    memory.add_thought("first")
    memory.add_thought("a choice", MemoryKind.DECISION)
    memory.add_action("make_joke", "success")
    memory.add_thought("second")

    context = memory.get_context()
    assert [r.content for r in context.recent_thoughts] == ["first", "second"]
    assert context.session_length == 4

    messages = memory.format_for_oracle()
    assert messages[:2] == [
        {"role": "assistant", "content": "first"},
        {"role": "assistant", "content": "second"},
    ]
    assert messages[-1] == {"role": "user", "content": "Recent actions: make_joke: success"}


def test_project_lookup_is_case_insensitive(memory):
    project = memory.add_project("Garden", "a digital garden")

    assert memory.find_active_project("gARDEN") is project
    assert memory.find_active_project("garden", exclude_id=project.id) is None


def test_update_project_merges_and_refreshes(memory):
    project = memory.add_project("Garden", "a digital garden")

    updated = memory.update_project(project.id, notes=["watered"], files={"projects/garden/a.txt"})

    assert updated.notes == ["watered"]
    assert updated.files == {"projects/garden/a.txt"}
    assert updated.description == "a digital garden"
    assert memory.get_project(project.id) is updated


def test_update_project_rejects_duplicate_rename(memory):
    memory.add_project("Garden", "")
    other = memory.add_project("Orchard", "")

    assert memory.update_project(other.id, name="garden") is None
    assert memory.get_project(other.id).name == "Orchard"


def test_update_project_unknown_id(memory):
    assert memory.update_project(12345, notes=["x"]) is None


def test_cleanup_keeps_newest_active_projects(memory):
    for i in range(4):
        project = memory.add_project(f"P{i}", "")
        project.created = f"2026-01-0{i + 1}T12:00:00"
    random.Random(7).shuffle(memory.projects)

    cleaned = memory.cleanup_projects()

    assert cleaned == 2
    assert {p.name for p in memory.get_active_projects()} == {"P3", "P2"}
    assert {p.name for p in memory.projects if p.status == ProjectStatus.COMPLETED} == {"P0", "P1"}


def test_persist_and_load_roundtrip(tmp_path):
    store = MemoryStore(tmp_path)
    store.add_thought("insight", MemoryKind.REFLECTION)
    store.add_action("create_file", "success", "Created file: temp/a.txt")
    store.add_project("Garden", "a digital garden")
    store.consolidate()

    assert store.persist()

    on_disk = json.loads((tmp_path / PROJECTS_FILE).read_text())
    assert on_disk[0]["lastWorked"]
    experiences = json.loads((tmp_path / EXPERIENCES_FILE).read_text())
    assert experiences[0]["actionName"] == "create_file"

    reloaded = MemoryStore(tmp_path)
    reloaded.load()
    assert [r.content for r in reloaded.archive] == [r.content for r in store.archive]
    assert reloaded.experiences[0].action == "create_file"
    assert reloaded.projects[0].name == "Garden"
    assert reloaded.session == []
    assert reloaded.add_thought("next").id > max(r.id for r in store.archive)


def test_corrupt_resource_degrades_independently(tmp_path):
    store = MemoryStore(tmp_path)
    store.add_action("wait", "success")
    store.persist()
    (tmp_path / LONG_TERM_FILE).write_text("{not json")

    reloaded = MemoryStore(tmp_path)
    reloaded.load()

    assert reloaded.archive == []
    assert len(reloaded.experiences) == 1


def test_persist_leaves_no_temp_files(tmp_path):
    store = MemoryStore(tmp_path)
    store.add_thought("x")
    store.persist()

    assert sorted(p.name for p in tmp_path.iterdir()) == sorted(
        [LONG_TERM_FILE, EXPERIENCES_FILE, PROJECTS_FILE]
    )


def test_snapshot_written(memory):
    memory.add_thought("x")
    snapshot = memory.create_snapshot()

    assert snapshot["session_memories"] == 1
    assert list(memory.memory_path.glob("snapshot-*.json"))
