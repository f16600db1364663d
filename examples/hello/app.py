"""Hello World — the simplest smallapi app.

Demonstrates routes, path parameters, query strings, JSON output, the
builtin middleware, and the generated API docs at ``/docs``.

Run:
    python app.py
"""

from smallapi import App
from smallapi.middleware.builtin import logger, recovery

app = App()
app.use(logger(), recovery())


@app.get("/")
def index(ctx):
    ctx.text("Hello, World!")


@app.get("/hello/:name")
def greet(ctx):
    ctx.text(f"Hello, {ctx.param('name')}!")


@app.get("/api/status")
def status(ctx):
    ctx.json({"status": "ok", "framework": "smallapi"})


@app.get("/search")
def search(ctx):
    ctx.json({"query": ctx.query("q"), "page": ctx.query_int("page", 1)})


@app.post("/created")
def created(ctx):
    ctx.status(201).set_header("X-Custom", "smallapi")
    ctx.text("Created")


app.enable_docs()


if __name__ == "__main__":
    app.run()
