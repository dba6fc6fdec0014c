"""In-memory database core: a B+ tree index over a page store, query executors and a plan optimizer."""

__version__ = "0.1.0"

__all__ = [
    "pages",
    "guards",
    "iterator",
    "removal",
    "tree",
    "render",
    "plans",
    "operators",
    "joins",
    "optimizer",
]