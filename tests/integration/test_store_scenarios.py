"""Integration tests exercising stores, cells and middleware together."""

import asyncio

import pytest

from burrow import State, apply_middleware, create_store


def render_text(parts):
    """Tiny stand-in for a view binding: re-renders text whenever a cell changes."""
    output = {"text": ""}

    def refresh(_=None):
        output["text"] = "".join(
            str(part.get()) if isinstance(part, State) else part for part in parts
        )

    refresh()
    for part in parts:
        if isinstance(part, State):
            part.subscribe(refresh)
    return output


@pytest.mark.integration
@pytest.mark.store
def test_store_state_binds_to_rendered_text():
    """A binding on store.state re-renders on every dispatch"""
    counter = create_store(0, {"increment": lambda state, args: state + 1})
    view = render_text(["Count: ", counter.state])

    assert view["text"] == "Count: 0"
    counter.increment()
    assert view["text"] == "Count: 1"


@pytest.mark.integration
@pytest.mark.store
def test_derived_binding_follows_store():
    """A mapped cell bound into a view reflects reducer updates"""
    counter = create_store(1, {"increment": lambda state, args: state + 1})
    doubled = counter.state >> (lambda value: value * 2)
    view = render_text(["Double: ", doubled])

    assert view["text"] == "Double: 2"
    counter.increment()
    assert view["text"] == "Double: 4"


@pytest.mark.integration
@pytest.mark.store
def test_input_handler_updates_store_and_view():
    """An event handler calling a reducer updates derived bindings"""
    profile = create_store({"name": ""}, {
        "set_name": lambda state, args: {**state, "name": args["name"]},
    })
    name = profile.state.map(lambda state: state["name"])
    view = render_text(["Name: ", name])

    def on_input(value):
        profile.set_name({"name": value})

    on_input("Ada")

    assert view["text"] == "Name: Ada"
    assert profile.get_state() == {"name": "Ada"}


@pytest.mark.integration
@pytest.mark.store
def test_derived_length_tracks_list_updates(event_log):
    """Derived cells see every reducer result in order"""
    store = create_store([], {
        "add": lambda state, args: [*state, args["item"]],
        "remove": lambda state, args: [i for i in state if i["id"] != args["id"]],
    })
    store.subscribe(event_log)
    lengths = []
    store.state.map(len).subscribe(lengths.append)

    store.add({"item": {"id": 1}})
    store.add({"item": {"id": 2}})
    store.remove({"id": 1})

    assert store.get_state() == [{"id": 2}]
    assert event_log.events == ["add", "add", "remove"]
    assert lengths == [1, 2, 1]


@pytest.mark.integration
@pytest.mark.store
def test_interleaved_reducers_preserve_event_order(event_log):
    """Events are emitted in dispatch order across different reducers"""
    store = create_store(0, {
        "add": lambda state, args: state + args["n"],
        "sub": lambda state, args: state - args["n"],
    })
    store.subscribe(event_log)

    store.add({"n": 5})
    store.sub({"n": 2})
    store.add({"n": 1})

    assert store.get_state() == 4
    assert [(e["event"], e["state"]) for e in event_log] == [
        ("add", 5),
        ("sub", 3),
        ("add", 4),
    ]


@pytest.mark.integration
@pytest.mark.store
def test_large_list_add_update_remove(event_log):
    """Updates on a large collection keep integrity and emit once each"""
    initial = [{"id": index, "value": index} for index in range(1000)]
    store = create_store(initial, {
        "add": lambda state, args: [*state, args["item"]],
        "update": lambda state, args: [
            args["item"] if item["id"] == args["item"]["id"] else item
            for item in state
        ],
        "remove": lambda state, args: [i for i in state if i["id"] != args["id"]],
    })
    store.subscribe(event_log)

    store.add({"item": {"id": 1000, "value": 1000}})
    store.update({"item": {"id": 500, "value": 9999}})
    store.remove({"id": 10})

    final = store.get_state()
    assert len(final) == 1000
    assert next(item for item in final if item["id"] == 500)["value"] == 9999
    assert all(item["id"] != 10 for item in final)
    assert [(e["event"], len(e["state"])) for e in event_log] == [
        ("add", 1001),
        ("update", 1001),
        ("remove", 1000),
    ]


@pytest.mark.integration
@pytest.mark.middleware
def test_accounts_persistence_middleware_runs_after_listeners():
    """Listener and middleware notifications interleave per dispatch"""
    order = []
    store = create_store(
        [],
        apply_middleware(
            lambda event, args, next_state: order.append(f"mw:{event}:{len(next_state)}")
        )({
            "add": lambda state, args: [*state, args["account"]],
            "update": lambda state, args: [
                args["account"] if item["id"] == args["account"]["id"] else item
                for item in state
            ],
            "remove": lambda state, args: [
                item for item in state if item["id"] != args["account"]["id"]
            ],
        }),
    )
    store.subscribe(lambda state, event, args: order.append(f"listener:{event}:{len(state)}"))

    store.add({"account": {"id": 1, "name": "A"}})
    store.update({"account": {"id": 1, "name": "B"}})
    store.remove({"account": {"id": 1, "name": "B"}})

    assert store.get_state() == []
    assert order == [
        "listener:add:1",
        "mw:add:1",
        "listener:update:1",
        "mw:update:1",
        "listener:remove:0",
        "mw:remove:0",
    ]


@pytest.mark.integration
@pytest.mark.store
def test_stores_per_account_are_isolated():
    """A store cache keyed by account id keeps stores independent"""
    stores = {}

    def use_expenses_store(account_id):
        if account_id not in stores:
            stores[account_id] = create_store(
                [], {"add": lambda state, args: [*state, args["expense"]]}
            )
        return stores[account_id]

    a = use_expenses_store("a")
    b = use_expenses_store("b")
    events_a, events_b = [], []
    a.subscribe(lambda state, event, args: events_a.append((state, event, args)))
    b.subscribe(lambda state, event, args: events_b.append((state, event, args)))

    a.add({"expense": {"id": 1, "amount": 10}})

    assert use_expenses_store("a") is a
    assert a.get_state() == [{"id": 1, "amount": 10}]
    assert b.get_state() == []
    assert events_a == [
        ([{"id": 1, "amount": 10}], "add", {"expense": {"id": 1, "amount": 10}})
    ]
    assert events_b == []


@pytest.mark.integration
@pytest.mark.store
def test_standalone_state_and_store_update_independently(event_log):
    """A separate loading flag and a store do not interfere"""
    loading = State(True)
    store = create_store(0, {"update": lambda state, args: state + args["n"]})
    store.subscribe(event_log)
    loading_events = []
    loading.subscribe(loading_events.append)

    store.update({"n": 3})
    loading.set(False)

    assert store.get_state() == 3
    assert event_log == [{"state": 3, "event": "update", "args": {"n": 3}}]
    assert loading_events == [False]


@pytest.mark.integration
@pytest.mark.store
@pytest.mark.asyncio
async def test_async_initial_load_updates_state_and_bindings(event_log):
    """A reducer dispatched from a coroutine behaves like a sync one"""
    store = create_store(0, {"init": lambda state, args: args.get("data", state)})
    store.subscribe(event_log)
    state_events = []
    store.state.subscribe(state_events.append)

    async def load():
        await asyncio.sleep(0.01)
        store.init({"data": 5})

    await load()

    assert store.get_state() == 5
    assert event_log == [{"state": 5, "event": "init", "args": {"data": 5}}]
    assert state_events == [5]


@pytest.mark.integration
@pytest.mark.middleware
@pytest.mark.asyncio
async def test_middleware_scheduling_timer_completes_after_dispatch():
    """A sync middleware may schedule later work without blocking the chain"""
    order = []
    done = asyncio.Event()
    loop = asyncio.get_running_loop()

    def first(event, args, next_state, proceed):
        order.append(f"mw1:{event}:{next_state}")
        return proceed()

    def timer(event, args, next_state):
        order.append(f"mw2-start:{event}:{next_state}")

        def finish():
            order.append(f"mw2-end:{event}:{next_state}")
            done.set()

        loop.call_later(0.01, finish)

    store = create_store(
        0, apply_middleware(first, timer)({"inc": lambda state, args: state + args["step"]})
    )
    store.subscribe(lambda state, event, args: order.append(f"listener:{event}:{state}"))

    store.inc({"step": 2})

    assert store.get_state() == 2
    assert order == ["listener:inc:2", "mw1:inc:2", "mw2-start:inc:2"]

    await asyncio.wait_for(done.wait(), timeout=1)
    assert order == [
        "listener:inc:2",
        "mw1:inc:2",
        "mw2-start:inc:2",
        "mw2-end:inc:2",
    ]


@pytest.mark.integration
@pytest.mark.middleware
@pytest.mark.asyncio
async def test_cross_store_wiring_through_listener():
    """One store's listener may dispatch into another store"""
    totals = create_store(0, {"add": lambda state, args: state + args})
    items = create_store([], {"push": lambda state, args: [*state, args]})
    items.subscribe(lambda state, event, args: totals.add(args))

    items.push(3)
    items.push(4)
    await items.flush()

    assert items.get_state() == [3, 4]
    assert totals.get_state() == 7
