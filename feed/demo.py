"""
Bundled demo content.

Served when no Anthropic key is configured, or when the live pipeline
produces nothing, so the feed is always navigable. Every topic here carries
unlocated highlights; offsets are resolved at load time like live topics.
"""

from __future__ import annotations

import random
from datetime import datetime, timedelta, timezone

from feed.highlights import resolve_highlights
from feed.models import Highlight, Topic, TopicCategory

_DEMO_TOPICS: list[dict] = [
    {
        "id": "topic-1",
        "title": "Quantum Computing Achieves New Milestone in Error Correction",
        "summary": (
            "Researchers have demonstrated a quantum error correction system that "
            "could make practical quantum computers a reality within the decade."
        ),
        "content": (
            "A team at Google Quantum AI has achieved a significant breakthrough in "
            "quantum error correction, demonstrating a system that reduces errors "
            "faster than it creates them. This milestone, known as 'below threshold' "
            "operation, has been a holy grail in quantum computing research. The "
            "breakthrough uses a technique called surface codes applied to a grid of "
            "72 qubits, showing that adding more qubits actually improves reliability "
            "rather than introducing more noise."
        ),
        "source": "Nature",
        "source_url": "https://nature.com",
        "age_minutes": 30,
        "category": TopicCategory.TECH,
        "highlights": [
            "quantum error correction",
            "surface codes applied to a grid of 72 qubits",
            "below threshold",
        ],
    },
    {
        "id": "topic-2",
        "title": "New Study Links Gut Microbiome to Mental Health Outcomes",
        "summary": (
            "A comprehensive analysis reveals specific gut bacteria that correlate "
            "with depression and anxiety symptoms."
        ),
        "content": (
            "Scientists from the Flemish Gut Flora Project have identified specific "
            "bacterial species that are consistently depleted in people with "
            "depression, regardless of antidepressant treatment. The study analyzed "
            "over 1,000 participants and found that bacteria producing butyrate, a "
            "compound that strengthens the gut barrier, were particularly important. "
            "This gut-brain axis research suggests that targeted probiotics or "
            "dietary interventions could complement traditional mental health "
            "treatments."
        ),
        "source": "Science Daily",
        "source_url": "https://sciencedaily.com",
        "age_minutes": 120,
        "category": TopicCategory.HEALTH,
        "highlights": [
            "bacterial species that are consistently depleted",
            "butyrate",
            "gut-brain axis",
        ],
    },
    {
        "id": "topic-3",
        "title": "Central Banks Signal Coordinated Shift in Monetary Policy",
        "summary": (
            "Federal Reserve and ECB hint at synchronized rate adjustments as "
            "inflation concerns evolve."
        ),
        "content": (
            "In an unusual display of coordination, both the Federal Reserve and "
            "European Central Bank have signaled potential policy shifts. Fed Chair "
            "Jerome Powell emphasized a 'data-dependent approach' while ECB President "
            "Christine Lagarde pointed to 'encouraging disinflation trends.' Market "
            "analysts interpret this as preparation for divergent rate paths, with "
            "the ECB potentially cutting sooner while the Fed maintains its cautious "
            "stance."
        ),
        "source": "Bloomberg",
        "source_url": "https://bloomberg.com",
        "age_minutes": 240,
        "category": TopicCategory.FINANCE,
        "highlights": [
            "data-dependent approach",
            "disinflation trends",
            "divergent rate paths",
        ],
    },
    {
        "id": "topic-4",
        "title": "AI-Designed Proteins Could Revolutionize Medicine",
        "summary": "DeepMind's AlphaFold successor creates novel proteins for targeted drug delivery.",
        "content": (
            "Building on AlphaFold, DeepMind has unveiled AlphaProteo, a system "
            "capable of designing entirely new proteins that don't exist in nature. "
            "The tool has already created proteins that can bind to specific disease "
            "targets with unprecedented precision. Early applications include "
            "proteins that can deliver drugs directly to cancer cells while avoiding "
            "healthy tissue, and enzymes that break down environmental pollutants."
        ),
        "source": "MIT Technology Review",
        "source_url": "https://technologyreview.com",
        "age_minutes": 360,
        "category": TopicCategory.SCIENCE,
        "highlights": [
            "AlphaProteo",
            "proteins that don't exist in nature",
            "deliver drugs directly to cancer cells",
        ],
    },
    {
        "id": "topic-5",
        "title": "The Rise of 'Third Places' in Remote Work Era",
        "summary": (
            "As hybrid work persists, people flock to libraries, cafes, and "
            "co-working spaces for social connection."
        ),
        "content": (
            "Sociologist Ray Oldenburg's concept of 'third places', social "
            "environments separate from home and work, is experiencing a "
            "renaissance. Libraries report 40% increases in weekday visitors, while "
            "a new wave of 'work cafes' designed for laptop workers is spreading "
            "across major cities. The trend reflects a fundamental shift in how "
            "people balance productivity and community."
        ),
        "source": "The Atlantic",
        "source_url": "https://theatlantic.com",
        "age_minutes": 480,
        "category": TopicCategory.CULTURE,
        "highlights": [
            "third places",
            "40% increases in weekday visitors",
            "balance productivity and community",
        ],
    },
]

DEMO_EXPANSIONS: dict[str, str] = {
    "topic-1": (
        "The achievement at Google Quantum AI represents a fundamental shift in "
        "quantum computing viability. **Error correction** has been the primary "
        "obstacle preventing quantum computers from performing useful calculations. "
        "When qubits interact with their environment, they lose their quantum "
        "properties, a process called **decoherence**.\n\n"
        "The new **surface code** implementation changes this equation. By arranging "
        "physical qubits in a 2D grid where each logical qubit is protected by its "
        "neighbors, the team showed that larger grids actually perform better.\n\n"
        "The implications span **drug discovery**, **materials science** and "
        "**cryptography**. Most experts now believe fault-tolerant quantum computers "
        "could arrive within 5-10 years."
    ),
    "topic-2": (
        "The **gut-brain connection** operates through multiple pathways. The "
        "**vagus nerve** provides a direct neural highway between intestinal neurons "
        "and the brain, and gut bacteria produce neurotransmitters like **serotonin** "
        "and **GABA** that influence mood.\n\n"
        "The Flemish study identified two bacterial genera, **Coprococcus** and "
        "**Dialister**, that were consistently depleted in depressed individuals. "
        "These bacteria produce **butyrate**, a short-chain fatty acid that maintains "
        "the intestinal lining and reduces inflammation.\n\n"
        "Several biotech companies are developing \"**psychobiotics**\", probiotics "
        "designed to improve mental health. Diet remains the most accessible "
        "intervention."
    ),
    "topic-3": (
        "Central bank coordination reflects unusual global economic conditions. "
        "Pandemic-era stimulus created synchronized inflation, but paths back to "
        "price stability are diverging.\n\n"
        "The **ECB** faces a fragile growth picture, while the **US economy** has "
        "proven resilient, keeping the Fed cautious.\n\n"
        "Currency traders position for **euro weakness** if rate differentials "
        "widen, and bond investors face duration risk that varies by region."
    ),
}

DEMO_EXPLANATIONS: dict[str, str] = {
    "quantum error correction": (
        "**Quantum error correction (QEC)** is a set of techniques to protect quantum "
        "information from errors due to decoherence and other quantum noise.\n\n"
        "Unlike classical error correction, QEC must work around the **no-cloning "
        "theorem**: you cannot copy an unknown quantum state.\n\n"
        "**Key Concepts:**\n"
        "• **Syndrome measurement**: detecting errors without collapsing the state\n"
        "• **Logical vs physical qubits**: one logical qubit spans many physical ones\n"
        "• **Error thresholds**: below a certain error rate, more qubits help"
    ),
    "butyrate": (
        "**Butyrate** is a short-chain fatty acid produced when beneficial gut "
        "bacteria ferment dietary fiber.\n\n"
        "**What it does:**\n"
        "• Primary fuel for colon cells\n"
        "• Maintains gut barrier integrity\n"
        "• Reduces inflammation"
    ),
    "gut-brain axis": (
        "The **gut-brain axis** is the bidirectional communication system between "
        "your GI tract and central nervous system.\n\n"
        "**Communication channels:**\n"
        "1. **Vagus nerve**\n"
        "2. **Neurotransmitters**: most serotonin is made in the gut\n"
        "3. **Immune signaling**\n"
        "4. **Microbial metabolites** such as butyrate"
    ),
}

EXPANSION_PLACEHOLDER = "Additional context is being gathered for this topic."


def demo_topics(shuffle: bool = True) -> list[Topic]:
    """Build the demo topics, timestamped relative to now.

    Args:
        shuffle: Randomise the order, as the live feed does.
    """
    now = datetime.now(timezone.utc)
    topics: list[Topic] = []
    for entry in _DEMO_TOPICS:
        highlights = [
            Highlight(id=f"{entry['id']}-h-{idx}", text=text)
            for idx, text in enumerate(entry["highlights"])
        ]
        topics.append(Topic(
            id=entry["id"],
            title=entry["title"],
            summary=entry["summary"],
            content=entry["content"],
            source=entry["source"],
            source_url=entry["source_url"],
            timestamp=now - timedelta(minutes=entry["age_minutes"]),
            category=entry["category"],
            highlights=resolve_highlights(entry["content"], highlights),
        ))

    if shuffle:
        random.shuffle(topics)
    return topics


def demo_expansion(topic_id: str) -> str:
    return DEMO_EXPANSIONS.get(topic_id, EXPANSION_PLACEHOLDER)


def demo_explanation(concept: str) -> str:
    """Return a canned explanation for *concept*, matched by substring."""
    concept_lower = concept.strip().lower()
    for key, value in DEMO_EXPLANATIONS.items():
        if key in concept_lower or (concept_lower and concept_lower in key):
            return value

    return (
        f"# {concept}\n\n"
        "This concept is being explored. With an Anthropic API key configured, "
        "Vibescroll searches for the latest information and has Claude write a "
        "clear explanation.\n\n"
        "Add `ANTHROPIC_API_KEY` to your `.env` file to enable live exploration."
    )


def demo_answer(question: str, selected_text: str = "") -> str:
    about = f' about "{selected_text}"' if selected_text else ""
    return (
        f'To answer "{question}"{about}, Vibescroll needs an Anthropic API key.\n\n'
        "Add `ANTHROPIC_API_KEY=your_key` to `.env` and restart the server."
    )
