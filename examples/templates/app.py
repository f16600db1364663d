"""Templates — server-rendered pages with kida.

Demonstrates ``app.templates()``, a custom ``@app.template_filter()``,
template inheritance, form posts rendered back into a page, static files
next to the templates, and a JSON endpoint over the same data.

Needs the templates extra::

    pip install smallapi[templates]

Run:
    cd examples/templates && python app.py
"""

from dataclasses import asdict, dataclass
from datetime import datetime
from pathlib import Path

from smallapi import App
from smallapi.errors import BadRequest
from smallapi.middleware.builtin import logger, recovery

HERE = Path(__file__).parent


@dataclass(frozen=True, slots=True)
class User:
    name: str
    email: str
    role: str


@dataclass(frozen=True, slots=True)
class Item:
    id: int
    name: str
    description: str
    price: float
    in_stock: bool


USER = User(name="John Doe", email="john@example.com", role="Admin")

ITEMS = (
    Item(1, "Laptop", "High-performance laptop", 999.99, True),
    Item(2, "Mouse", "Wireless optical mouse", 29.99, True),
    Item(3, "Keyboard", "Mechanical keyboard", 149.99, False),
    Item(4, "Monitor", "4K display monitor", 299.99, True),
)

app = App()
app.use(logger(), recovery())
app.templates(HERE / "views")
app.static("/static", HERE / "static")


@app.template_filter()
def money(value: float) -> str:
    return f"${value:,.2f}"


def page(title: str, **extra):
    """Values every page shares, plus *extra*."""
    return {
        "title": title,
        "current_time": datetime.now().strftime("%B %d, %Y %H:%M:%S"),
        "user": USER,
        **extra,
    }


@app.get("/")
def index(ctx):
    ctx.render("index.html", page("SmallAPI Template Example", items=ITEMS))


@app.get("/about")
def about(ctx):
    ctx.render("about.html", page("About - SmallAPI"))


@app.get("/items")
def items(ctx):
    in_stock_only = ctx.query("in_stock") == "true"
    shown = [item for item in ITEMS if item.in_stock or not in_stock_only]
    ctx.render("items.html", page("Items - SmallAPI", items=shown, in_stock_only=in_stock_only))


@app.get("/items/:id")
def item_detail(ctx):
    try:
        item_id = ctx.param_int("id")
    except BadRequest:
        ctx.status(400).html("<h1>Invalid item ID</h1>")
        return
    item = next((item for item in ITEMS if item.id == item_id), None)
    if item is None:
        ctx.status(404).html("<h1>Item not found</h1>")
        return
    ctx.render("item_detail.html", page(f"{item.name} - SmallAPI", item=item))


@app.get("/contact")
def contact(ctx):
    ctx.render("contact.html", page("Contact Us - SmallAPI"))


@app.post("/contact")
def contact_submit(ctx):
    form = {name: ctx.form(name) for name in ("name", "email", "message")}
    ctx.render(
        "contact_success.html",
        page(
            "Contact Submitted - SmallAPI",
            message="Thank you for your message! We'll get back to you soon.",
            form=form,
        ),
    )


@app.get("/api/items")
def api_items(ctx):
    ctx.json({"items": [asdict(item) for item in ITEMS], "total": len(ITEMS)})


if __name__ == "__main__":
    app.run()
