import pytest

from manual_sorting.core.events import EditEvent, EditEventBus, EditEventKind
from manual_sorting.core.exceptions import OrderStoreError
from manual_sorting.core.order_manager import OrderManager
from manual_sorting.core.store import MemoryBackend


ORDERING = {
    "namespace_key": "customFileOrder",
    "reserved_keys": [],
    "recursive_delete": True,
    "enabled_on_start": True,
    "queue": {"slow_task_warning_seconds": 0},
}


class FlakyBackend(MemoryBackend):
    """Memory backend whose next ``fail_loads`` reads raise OSError."""

    def __init__(self, initial=None):
        super().__init__(initial)
        self.fail_loads = 0

    async def load_data(self):
        if self.fail_loads:
            self.fail_loads -= 1
            raise OSError("settings store temporarily unavailable")
        return await super().load_data()


def saved(backend):
    return backend.data["customFileOrder"]


@pytest.fixture
def manager(tree_host, memory_backend):
    return OrderManager(tree_host, memory_backend, ORDERING)


@pytest.mark.asyncio
async def test_init_order_persists_natural_order_on_first_run(manager, memory_backend):
    result = await manager.init_order()

    assert result == {"/": ["a.md", "b.md", "folder1"], "folder1": ["folder1/c.md"]}
    assert saved(memory_backend) == result


@pytest.mark.asyncio
async def test_init_order_reconciles_pinned_order(tree_host):
    backend = MemoryBackend({"customFileOrder": {"/": ["b.md", "a.md"], "folder1": []}})

    await OrderManager(tree_host, backend, ORDERING).init_order()

    assert saved(backend) == {"/": ["b.md", "a.md", "folder1"], "folder1": ["folder1/c.md"]}


@pytest.mark.asyncio
async def test_init_order_migrates_legacy_layout(tree_host):
    backend = MemoryBackend({"/": ["folder1", "b.md", "a.md"]})

    await OrderManager(tree_host, backend, ORDERING).init_order()

    assert backend.data == {
        "customFileOrder": {"/": ["folder1", "b.md", "a.md"], "folder1": ["folder1/c.md"]},
    }


@pytest.mark.asyncio
async def test_init_order_with_unreadable_store_starts_from_natural_order(tree_host):
    backend = FlakyBackend()
    backend.fail_loads = 1

    result = await OrderManager(tree_host, backend, ORDERING).init_order()

    assert result["/"] == ["a.md", "b.md", "folder1"]


@pytest.mark.asyncio
async def test_move_then_reconcile(manager, tree_host, memory_backend):
    await manager.init_order()
    # the host performs the move, then reports it
    tree_host.rename("a.md", "folder1/a.md")

    result = await manager.move_file("/a.md", "/folder1/a.md", "/folder1/c.md")
    await manager.drain()

    assert result.success is True
    assert saved(memory_backend) == {
        "/": ["b.md", "folder1"],
        "folder1": ["folder1/a.md", "folder1/c.md"],
    }


@pytest.mark.asyncio
async def test_duplicate_move_leaves_state_and_queue_usable(manager, memory_backend):
    await manager.init_order()
    before = memory_backend.data

    result = await manager.move_file("b.md", "folder1/c.md")
    await manager.drain()

    assert result.success is False
    assert memory_backend.data == before


@pytest.mark.asyncio
async def test_rename_folder_through_event_bus(manager, tree_host, memory_backend):
    bus = EditEventBus()
    manager.attach(bus)
    await manager.init_order()
    await manager.move_file("folder1", "folder1", 0)
    await manager.drain()

    tree_host.rename("folder1", "renamed")
    bus.emit_rename("folder1", "renamed")
    await manager.drain()

    assert saved(memory_backend) == {
        "/": ["renamed", "a.md", "b.md"],
        "renamed": ["renamed/c.md"],
    }


@pytest.mark.asyncio
async def test_create_and_delete_events(manager, tree_host, memory_backend):
    bus = EditEventBus()
    manager.attach(bus)
    await manager.init_order()
    await manager.move_file("b.md", "b.md", 0)
    await manager.drain()

    tree_host.add("folder1/sub", folder=True)
    bus.emit_create("folder1/sub")
    tree_host.add("z.md")
    bus.emit_create("z.md")
    tree_host.remove("a.md")
    bus.emit_delete("a.md")
    await manager.drain()

    assert saved(memory_backend) == {
        "/": ["b.md", "folder1", "z.md"],
        "folder1": ["folder1/c.md", "folder1/sub"],
        "folder1/sub": [],
    }


@pytest.mark.asyncio
async def test_delete_folder_event(manager, tree_host, memory_backend):
    await manager.init_order()
    tree_host.remove("folder1")

    await manager.delete_item("/folder1")
    await manager.drain()

    assert saved(memory_backend) == {"/": ["a.md", "b.md"]}


@pytest.mark.asyncio
async def test_reconcile_repairs_missed_events(manager, tree_host, memory_backend):
    await manager.init_order()
    await manager.move_file("folder1", "folder1", 0)
    await manager.drain()

    # several external edits, only one reported
    tree_host.add("x.md")
    tree_host.add("y.md")
    tree_host.remove("b.md")
    await manager.create_item("x.md")
    await manager.drain()

    assert saved(memory_backend)["/"] == ["folder1", "a.md", "x.md", "y.md"]


@pytest.mark.asyncio
async def test_failed_read_during_mutation_keeps_pinned_order(tree_host):
    backend = FlakyBackend()
    manager = OrderManager(tree_host, backend, ORDERING)
    await manager.init_order()
    await manager.move_file("folder1", "folder1", 0)
    await manager.move_file("b.md", "b.md", "a.md")
    await manager.drain()
    assert saved(backend)["/"] == ["folder1", "b.md", "a.md"]

    tree_host.add("new.md")
    backend.fail_loads = 1
    with pytest.raises(OrderStoreError):
        await manager.create_item("new.md")
    await manager.drain()

    # the follow-up reconcile still picks up the new file behind the pinned ones
    assert saved(backend)["/"] == ["folder1", "b.md", "a.md", "new.md"]


@pytest.mark.asyncio
async def test_failed_read_during_update_saves_nothing(tree_host):
    backend = FlakyBackend()
    manager = OrderManager(tree_host, backend, ORDERING)
    await manager.init_order()
    await manager.move_file("b.md", "b.md", 0)
    await manager.drain()
    saves = backend.save_count

    backend.fail_loads = 1
    with pytest.raises(OrderStoreError):
        await manager.update_order()

    assert backend.save_count == saves
    assert saved(backend)["/"] == ["b.md", "a.md", "folder1"]


@pytest.mark.asyncio
async def test_restore_order_uses_persisted_sequence(manager, make_surface):
    await manager.init_order()
    await manager.move_file("folder1", "folder1", 0)
    surface = make_surface(["a.md", "b.md", "folder1"], scroll=50)

    applied = await manager.restore_order(surface, "/")

    assert applied == ["folder1", "a.md", "b.md"]
    assert surface.paths() == applied
    assert surface.scroll == 50


@pytest.mark.asyncio
async def test_disabled_manager_ignores_events_and_restores(manager, memory_backend, make_surface):
    bus = EditEventBus()
    manager.attach(bus)
    await manager.init_order()
    manager.disable()

    assert manager.handle_event(EditEvent(EditEventKind.DELETE, "a.md")) is None
    bus.emit_delete("a.md")
    surface = make_surface(["b.md", "a.md"])
    applied = await manager.restore_order(surface, "/")
    await manager.drain()

    assert manager.enabled is False
    assert applied == []
    assert surface.reorder_calls == 0
    assert "a.md" in saved(memory_backend)["/"]


@pytest.mark.asyncio
async def test_enable_reinitialises_order(tree_host, memory_backend):
    manager = OrderManager(tree_host, memory_backend, dict(ORDERING, enabled_on_start=False))
    assert manager.enabled is False
    assert memory_backend.data is None

    await manager.enable()

    assert manager.enable() is None
    assert saved(memory_backend)["/"] == ["a.md", "b.md", "folder1"]


@pytest.mark.asyncio
async def test_reset_order_returns_to_natural_order(manager, memory_backend):
    await manager.init_order()
    await manager.move_file("folder1", "folder1", 0)
    await manager.drain()
    assert saved(memory_backend)["/"] == ["folder1", "a.md", "b.md"]

    await manager.reset_order()

    assert saved(memory_backend)["/"] == ["a.md", "b.md", "folder1"]


@pytest.mark.asyncio
async def test_get_flatten_paths(manager):
    await manager.init_order()

    assert await manager.get_flatten_paths() == ["a.md", "b.md", "folder1", "folder1/c.md"]


@pytest.mark.asyncio
async def test_burst_of_events_is_serialized(manager, tree_host, memory_backend):
    bus = EditEventBus()
    manager.attach(bus)
    await manager.init_order()

    for i in range(20):
        tree_host.add(f"n{i}.md")
        bus.emit_create(f"n{i}.md")
    await manager.drain()

    root = saved(memory_backend)["/"]
    assert root == ["a.md", "b.md", "folder1"] + [f"n{i}.md" for i in range(20)]


@pytest.mark.asyncio
async def test_walk_on_event_loop_when_configured(tree_host, memory_backend):
    manager = OrderManager(tree_host, memory_backend, dict(ORDERING, walk_in_thread=False))

    await manager.init_order()

    assert saved(memory_backend)["/"] == ["a.md", "b.md", "folder1"]


@pytest.mark.asyncio
async def test_defaults_come_from_config_manager(tree_host, memory_backend):
    manager = OrderManager(tree_host, memory_backend)
    assert manager.enabled is True

    await manager.init_order()

    assert "customFileOrder" in memory_backend.data


@pytest.mark.asyncio
async def test_handle_event_returns_awaitable_result(manager, tree_host):
    bus = EditEventBus()
    pending = []
    bus.subscribe(lambda event: pending.append(manager.handle_event(event)))
    await manager.init_order()

    tree_host.add("q.md")
    bus.emit_create("q.md")
    result = await pending[0]
    await manager.drain()

    assert result.success is True
    assert result.details["path"] == "q.md"
