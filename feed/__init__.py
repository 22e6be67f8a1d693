"""
Vibescroll feed package.

Modules
───────
models       — Pydantic data models (Topic, Highlight, TopicBatch, FeedSnapshot)
controller   — FeedController: navigation, prefetch, concepts, pagination, checkpoint
service      — ContentService contract + HTTP (httpx) and in-process implementations
persistence  — Key-value stores for the feed checkpoint (memory, SQLite)
input        — Keyboard / swipe / selection adapters and command dispatch
highlights   — Highlight offset resolution and content segmentation
generator    — Claude-backed topic, deep-dive, explanation and answer generation
search       — Trending stories via Claude web_search
parsing      — Parse-and-validate step for Claude's topic JSON
categorizer  — Category coercion (model answer → domain → keywords)
dedup        — URL / title-key deduplication for results and feed batches
demo         — Bundled demo topics and canned deep dives
"""
