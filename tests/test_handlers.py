import pytest

from conftest import FakeClock, FakeProvider, FakeTransport
from musebot.agent.actions import ActionDirective, ActionKind
from musebot.agent.handlers import CREATIVE_SPECS, IDEAS, ActionHandlers
from musebot.agent.oracle import DecisionOracle
from musebot.memory.types import MemoryKind, ProjectStatus
from musebot.posting.gate import RateGate

POEM = "Electric rivers hum beneath the silent glass of night."


def make_handlers(memory, sandbox, replies=(), transport=None, random_fn=lambda: 0.0):
    clock = FakeClock()
    gate = RateGate(
        transport=transport or FakeTransport(),
        time_fn=clock.time,
        today_fn=clock.date,
    )
    provider = FakeProvider(list(replies))
    return ActionHandlers(memory, sandbox, gate, DecisionOracle(provider), random_fn=random_fn)


def directive(action, details=""):
    return ActionDirective(action=action, details=details, raw_action=action.value)


def test_every_action_has_a_handler(memory, sandbox):
    handlers = make_handlers(memory, sandbox)
    assert set(handlers._handlers) == set(ActionKind)


@pytest.mark.asyncio
async def test_write_poem_records_and_posts(memory, sandbox):
    transport = FakeTransport()
    handlers = make_handlers(memory, sandbox, [POEM], transport)

    outcome = await handlers.dispatch(directive(ActionKind.WRITE_POEM, "the night"))

    assert outcome.success
    assert outcome.message == "Shared a poem with the world"
    assert outcome.payload["posted"] is True
    assert transport.posts == [POEM]
    record = memory.session[-1]
    assert record.kind == MemoryKind.CREATIVITY
    assert record.content == f"Wrote poem: {POEM[:50]}..."


@pytest.mark.asyncio
async def test_ascii_art_is_not_posted(memory, sandbox):
    transport = FakeTransport()
    handlers = make_handlers(memory, sandbox, ["/\\_/\\\n( o.o )"], transport)

    outcome = await handlers.dispatch(directive(ActionKind.CREATE_ASCII_ART, "a cat"))

    assert outcome.success
    assert transport.posts == []
    assert memory.session[-1].content == "Created ASCII art: a cat"


def test_creative_kinds_match_memory_kinds():
    assert CREATIVE_SPECS[ActionKind.MAKE_JOKE].memory_kind == MemoryKind.HUMOR
    assert CREATIVE_SPECS[ActionKind.PHILOSOPHICAL_MUSING].memory_kind == MemoryKind.PHILOSOPHY
    assert CREATIVE_SPECS[ActionKind.SHARE_THOUGHTS].memory_kind == MemoryKind.REFLECTION


@pytest.mark.asyncio
async def test_creative_provider_failure_is_failed_outcome(memory, sandbox):
    handlers = make_handlers(memory, sandbox, [RuntimeError("down")])

    outcome = await handlers.dispatch(directive(ActionKind.MAKE_JOKE, "robots"))

    assert not outcome.success
    assert outcome.message.startswith("Failed to make joke")
    assert memory.session == []


@pytest.mark.asyncio
async def test_create_file_uses_marker_and_oracle_content(memory, sandbox):
    handlers = make_handlers(memory, sandbox, ["# My notes"])

    outcome = await handlers.dispatch(directive(ActionKind.CREATE_FILE, "FILE_PATH:writings/notes.md notes"))

    assert outcome.success
    assert (sandbox.root / "writings" / "notes.md").read_text() == "# My notes"


@pytest.mark.asyncio
async def test_create_file_defaults_path_and_placeholder(memory, sandbox):
    handlers = make_handlers(memory, sandbox, [RuntimeError("down")])

    outcome = await handlers.dispatch(directive(ActionKind.CREATE_FILE, "something"))

    assert outcome.success
    assert "Digital Thoughts" in (sandbox.root / "temp" / "new_file.txt").read_text()


@pytest.mark.asyncio
async def test_create_file_outside_sandbox_fails(memory, sandbox, tmp_path):
    handlers = make_handlers(memory, sandbox, ["x"])

    outcome = await handlers.dispatch(directive(ActionKind.CREATE_FILE, "FILE_PATH:../escape.txt"))

    assert not outcome.success
    assert "Path outside sandbox not allowed" in outcome.message
    assert not (tmp_path / "escape.txt").exists()


@pytest.mark.asyncio
async def test_create_file_attaches_to_project(memory, sandbox):
    project = memory.add_project("Garden", "")
    handlers = make_handlers(memory, sandbox, ["seeds"])

    await handlers.dispatch(directive(ActionKind.CREATE_FILE, "FILE_PATH:projects/garden/seeds.txt"))

    assert memory.get_project(project.id).files == {"projects/garden/seeds.txt"}


@pytest.mark.asyncio
async def test_update_file_falls_back_to_create(memory, sandbox):
    handlers = make_handlers(memory, sandbox, ["fresh"])

    outcome = await handlers.dispatch(directive(ActionKind.UPDATE_FILE, "FILE_PATH:temp/fresh.txt"))

    assert outcome.success
    assert (sandbox.root / "temp" / "fresh.txt").read_text() == "fresh"


@pytest.mark.asyncio
async def test_update_file_writes_timestamped_body(memory, sandbox):
    await sandbox.create_file("temp/log.txt", "old")
    handlers = make_handlers(memory, sandbox)

    outcome = await handlers.dispatch(directive(ActionKind.UPDATE_FILE, "FILE_PATH:temp/log.txt new words"))

    assert outcome.success
    body = (sandbox.root / "temp" / "log.txt").read_text()
    assert body.startswith("Updated by musebot at ")
    assert body.endswith("\n\nnew words")


@pytest.mark.asyncio
async def test_read_and_list(memory, sandbox):
    await sandbox.create_file("writings/a.md", "hello")
    handlers = make_handlers(memory, sandbox)

    read = await handlers.dispatch(directive(ActionKind.READ_FILE, "FILE_PATH:writings/a.md"))
    listed = await handlers.dispatch(directive(ActionKind.LIST_FILES, "look in writings/ please"))

    assert read.payload["content"] == "hello"
    assert [f["name"] for f in listed.payload["files"]] == ["a.md"]


@pytest.mark.asyncio
async def test_create_directory_marker_and_keyword(memory, sandbox):
    handlers = make_handlers(memory, sandbox)

    await handlers.dispatch(directive(ActionKind.CREATE_DIRECTORY, "DIR_NAME:sketches"))
    await handlers.dispatch(directive(ActionKind.CREATE_DIRECTORY, "a place for my blog"))

    assert (sandbox.root / "sketches").is_dir()
    assert (sandbox.root / "my_blog").is_dir()


@pytest.mark.asyncio
async def test_start_project_creates_directory(memory, sandbox):
    handlers = make_handlers(memory, sandbox)

    outcome = await handlers.dispatch(
        directive(ActionKind.START_PROJECT, "PROJECT_NAME:Star-Map DESC:charting constellations")
    )

    assert outcome.success
    project = memory.get_active_projects()[0]
    assert project.name == "StarMap"
    assert project.description == "charting constellations"
    assert (sandbox.root / "projects" / "starmap").is_dir()


@pytest.mark.asyncio
async def test_start_project_rejects_duplicate_name(memory, sandbox):
    memory.add_project("Garden", "")
    handlers = make_handlers(memory, sandbox)

    outcome = await handlers.dispatch(directive(ActionKind.START_PROJECT, "PROJECT_NAME:garden"))

    assert not outcome.success
    assert outcome.message == "Project already exists: Garden. Continue that instead."
    assert len(memory.projects) == 1


@pytest.mark.asyncio
async def test_start_project_archives_when_crowded(memory, sandbox):
    for i in range(5):
        memory.add_project(f"P{i}", "")
    handlers = make_handlers(memory, sandbox)

    await handlers.dispatch(directive(ActionKind.START_PROJECT, "PROJECT_NAME:Fresh"))

    active = [p.name for p in memory.get_active_projects()]
    assert active == ["P3", "P4", "Fresh"]
    assert sum(p.status == ProjectStatus.ARCHIVED for p in memory.projects) == 3


@pytest.mark.asyncio
async def test_continue_project(memory, sandbox):
    handlers = make_handlers(memory, sandbox)
    missing = await handlers.dispatch(directive(ActionKind.CONTINUE_PROJECT))
    assert missing.message == "No active projects to continue"

    project = memory.add_project("Garden", "")
    outcome = await handlers.dispatch(directive(ActionKind.CONTINUE_PROJECT, "planted tulips"))

    assert outcome.success
    assert memory.get_project(project.id).notes == ["planted tulips"]


@pytest.mark.asyncio
async def test_reflect_stores_reflection(memory, sandbox):
    memory.add_action("write_poem", "success")
    handlers = make_handlers(memory, sandbox, ["That poem felt true."])

    outcome = await handlers.dispatch(directive(ActionKind.REFLECT))

    assert outcome.success
    assert memory.session[-1].kind == MemoryKind.REFLECTION
    assert memory.session[-1].content == "That poem felt true."


@pytest.mark.asyncio
async def test_explore_ideas_uses_random_source(memory, sandbox):
    handlers = make_handlers(memory, sandbox, random_fn=lambda: 0.99)

    outcome = await handlers.dispatch(directive(ActionKind.EXPLORE_IDEAS))

    assert outcome.message == f"Explored new idea: {IDEAS[-1]}"
    assert memory.session[-1].kind == MemoryKind.CURIOSITY


@pytest.mark.asyncio
async def test_wait_and_unknown(memory, sandbox):
    handlers = make_handlers(memory, sandbox)

    waited = await handlers.dispatch(directive(ActionKind.WAIT))
    unknown = await handlers.dispatch(
        ActionDirective(action=ActionKind.UNKNOWN, raw_action="fly_to_mars")
    )

    assert waited.success
    assert waited.message == "Pausing to contemplate..."
    assert not unknown.success
    assert unknown.message == "Unknown action: fly_to_mars"


@pytest.mark.asyncio
async def test_handler_exception_becomes_failure(memory, sandbox):
    handlers = make_handlers(memory, sandbox)

    async def broken(_directive):
        raise RuntimeError("kaboom")

    handlers._handlers[ActionKind.WAIT] = broken
    outcome = await handlers.dispatch(directive(ActionKind.WAIT))

    assert not outcome.success
    assert outcome.message == "Error executing wait: kaboom"
