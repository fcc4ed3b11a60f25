"""Blog — file-based templates with inheritance and a custom modifier.

Demonstrates:
- FileSystemResolver loading templates from ./templates
- tal:extends / tal:slot for a shared layout
- tal:repeat, tal:define and the tal:_href shorthand
- A custom ``excerpt`` modifier registered with a decorator
- render_template_async with an awaitable context value

Run:
    python app.py
"""

from pathlib import Path

import anyio

from taltree import FileSystemResolver, TemplateEngine

TEMPLATES_DIR = Path(__file__).parent / "templates"
SITE = "Field Notes"
EXCERPT_WORDS = 8

engine = TemplateEngine(FileSystemResolver(TEMPLATES_DIR))

POSTS = [
    {
        "slug": "hello-world",
        "url": "/posts/hello-world",
        "title": "Hello, world",
        "author": "ada lovelace",
        "tags": ["intro", "meta"],
        "body": "This is the first post on this blog and it says hello and not much else.",
    },
    {
        "slug": "templates",
        "url": "/posts/templates",
        "title": "Templates & trees",
        "author": "grace hopper",
        "tags": ["markup"],
        "body": "Attribute directives keep templates valid markup.",
    },
]

POSTS_BY_SLUG = {post["slug"]: post for post in POSTS}


@engine.modifiers.register("excerpt")
def excerpt(value: str) -> str:
    words = value.split()
    if len(words) <= EXCERPT_WORDS:
        return value
    return " ".join(words[:EXCERPT_WORDS]) + "..."


def render_index() -> str:
    return engine.render_template("index.html", site=SITE, posts=POSTS, count=len(POSTS))


def render_post(slug: str) -> str:
    """Render one post. Raises ``KeyError`` for an unknown slug."""
    post = POSTS_BY_SLUG[slug]
    return engine.render_template("post.html", site=SITE, post=post)


async def load_posts() -> list[dict]:
    await anyio.sleep(0)
    return POSTS


async def render_index_async() -> str:
    return await engine.render_template_async(
        "index.html", site=SITE, posts=load_posts(), count=len(POSTS)
    )


if __name__ == "__main__":
    print(render_index())
    print(render_post("hello-world"))
