"""
Flask content API for Vibescroll.

Routes
──────
GET  /api/topics?count=3&exclude=id1,id2        Batch of topics (JSON)
GET  /api/expand?topicId=...&title=...&content=  Deep dive for a topic (JSON)
POST /api/explore  {concept, topicId, topicContext}            Concept explanation
POST /api/ask      {question, topicId, selectedText, topicContext}  Answer
GET  /api/health                                 Liveness + mode
"""

from __future__ import annotations

import logging
import os
import sys

from dotenv import load_dotenv
from flask import Flask, jsonify, request

# Allow running as `python web/app.py` from the project root
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

load_dotenv()

from config.settings import Settings
from feed.generator import ContentGenerator

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

settings = Settings()
settings.validate()
generator = ContentGenerator(settings)

app = Flask(__name__)

logger.info("Content API starting (live=%s)", settings.live)

#: Upper bound on topics per request; each live topic costs a Claude call.
MAX_TOPICS_PER_REQUEST = 10


def _json_body() -> dict:
    body = request.get_json(silent=True)
    return body if isinstance(body, dict) else {}


# ── Topics ─────────────────────────────────────────────────────────────────

@app.route("/api/topics")
def list_topics():
    """Return a topic batch, skipping the ids listed in ``exclude``."""
    try:
        count = int(request.args.get("count", settings.batch_size))
    except ValueError:
        return jsonify({"error": "count must be an integer"}), 400
    count = max(1, min(count, MAX_TOPICS_PER_REQUEST))

    exclude = {i for i in request.args.get("exclude", "").split(",") if i}
    batch = generator.topics(count, exclude_ids=exclude)
    return jsonify(batch.model_dump(mode="json", by_alias=True))


# ── Deep dives ─────────────────────────────────────────────────────────────

@app.route("/api/expand")
def expand_topic():
    """Return the deep dive for a topic."""
    topic_id = request.args.get("topicId", "").strip()
    if not topic_id:
        return jsonify({"error": "Missing topicId"}), 400

    content = generator.expand(
        topic_id,
        request.args.get("title", ""),
        request.args.get("content", ""),
    )
    return jsonify({"content": content})


@app.route("/api/explore", methods=["POST"])
def explore_concept():
    """Explain a concept in the context of the topic it came from."""
    body = _json_body()
    concept = (body.get("concept") or "").strip()
    if not concept:
        return jsonify({"error": "Missing concept"}), 400

    content = generator.explain(
        concept,
        body.get("topicId") or "",
        body.get("topicContext") or "",
    )
    return jsonify({"content": content})


@app.route("/api/ask", methods=["POST"])
def ask_question():
    """Answer a reader's question about a topic."""
    body = _json_body()
    question = (body.get("question") or "").strip()
    if not question:
        return jsonify({"error": "Missing question"}), 400

    answer = generator.answer(
        question,
        body.get("topicId") or "",
        body.get("selectedText") or "",
        body.get("topicContext") or "",
    )
    return jsonify({"answer": answer})


@app.route("/api/health")
def health():
    return jsonify({"status": "ok", "mode": "live" if settings.live else "demo"})


# ── Entry point ────────────────────────────────────────────────────────────

if __name__ == "__main__":
    app.run(debug=settings.debug, host="0.0.0.0", port=settings.port)
