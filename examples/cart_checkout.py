from burrow import apply_middleware, create_store


def receipt_log(event, args, cart):
    print(f"    [log] {event} -> {len(cart['items'])} item(s)")


def add_item(cart, args):
    return {**cart, "items": [*cart["items"], args]}


def remove_item(cart, args):
    return {**cart, "items": [i for i in cart["items"] if i["sku"] != args["sku"]]}


# Define a store for a shopping cart
cart = create_store(
    {"items": []},
    apply_middleware(receipt_log)({"add": add_item, "remove": remove_item}),
)


def update_ui(total: float):
    print(f">>> Cart Total: ${total:.2f}")


# The >> operator derives a new cell from the store's state.
total_price = cart.state >> (
    lambda c: sum(item["price"] * item["qty"] for item in c["items"])
)
total_price.subscribe(update_ui)  # Subscribe and update the UI when it changes

print("=" * 50)

# Whenever a reducer runs, total_price updates first, then the log middleware.
cart.add({"sku": "apple", "price": 10.0, "qty": 2})
cart.add({"sku": "pear", "price": 5.0, "qty": 3})
cart.remove({"sku": "apple"})

# ==================================================
# >>> Cart Total: $20.00
#     [log] add -> 1 item(s)
# >>> Cart Total: $35.00
#     [log] add -> 2 item(s)
# >>> Cart Total: $15.00
#     [log] remove -> 1 item(s)
