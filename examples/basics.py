import asyncio

from burrow import State, apply_middleware, create_store

# ------------------------------------------------------------------------------------------------

print()
print("=" * 100)
print("Defining a state cell")
print("-" * 100)
print()

# A State holds one value and notifies subscribers when it is set.
current_name = State("Alice")

log_on_change = lambda name: print(f"Name changed to: {name}")

# subscribe() returns a disposer that removes the callback again.
dispose = current_name.subscribe(log_on_change)
current_name.set("Smith")  # Prints "Name changed to: Smith"

dispose()
current_name.set("Bob")  # This will not print anything

# ------------------------------------------------------------------------------------------------

print()
print("=" * 100)
print("Deriving cells")
print("-" * 100)
print()

# map() (or >>) creates a read-only cell that follows its source.
greeting = current_name >> (lambda name: f"Hello, {name}!")
greeting.subscribe(print)

current_name.set("Charlie")  # Prints "Hello, Charlie!"

# ------------------------------------------------------------------------------------------------

print()
print("=" * 100)
print("Defining the store")
print("-" * 100)
print()

# Each reducer becomes a method on the store.
counter = create_store(
    0,
    {
        "increment": lambda count, args: count + 1,
        "add": lambda count, args: count + args["n"],
    },
)


def on_dispatch(state, event, args):
    print(f"{event}({args}) -> {state}")


counter.subscribe(on_dispatch)
counter.increment()  # increment(None) -> 1
counter.add({"n": 10})  # add({'n': 10}) -> 11

# Writing the state directly skips store listeners.
counter.set(100)
print(f"Direct write: {counter.get_state()}")

# ------------------------------------------------------------------------------------------------

print()
print("=" * 100)
print("Middleware")
print("-" * 100)
print()


def audit(event, args, next_state, proceed):
    print(f"[audit] {event} -> {next_state}")
    proceed()


async def save(event, args, next_state):
    await asyncio.sleep(0.01)
    print(f"[save] persisted {next_state}")


async def main():
    todos = create_store(
        [],
        apply_middleware(audit, save)({"add": lambda todos, text: [*todos, text]}),
    )
    todos.add("write docs")
    todos.add("ship it")
    await todos.flush()


asyncio.run(main())
