"""
portfolio_runtime.data.portfolio

Static portfolio content loaded by the data models.
"""

from __future__ import annotations

from typing import Any

USER_PROFILE: dict[str, Any] = {
    "name": "Alex Moreira",
    "title": "Software Engineer",
    "tagline": "Building reliable systems and the tools around them.",
    "location": "Lisbon, Portugal",
    "email": "alex@example.com",
    "links": [
        {"label": "GitHub", "url": "https://github.com/example"},
        {"label": "LinkedIn", "url": "https://www.linkedin.com/in/example"},
    ],
}

SECTIONS: list[dict[str, Any]] = [
    {
        "id": "about",
        "type": "cards",
        "title": "About",
        "subtitle": "Engineer focused on distributed systems and developer tooling.",
        "content": [
            {
                "title": "Background",
                "description": "Ten years across backend services, data pipelines and build infrastructure.",
                "tags": ["backend", "infrastructure"],
            },
        ],
    },
    {
        "id": "experience",
        "type": "timeline",
        "title": "Experience",
        "subtitle": "Selected roles",
        "content": [
            {
                "period": "2021 - present",
                "title": "Senior Software Engineer",
                "organization": "Example Systems",
                "description": "Led the migration of the order pipeline to an event-driven architecture.",
            },
            {
                "period": "2017 - 2021",
                "title": "Software Engineer",
                "organization": "Sample Labs",
                "description": "Built internal deployment tooling used by forty teams.",
            },
        ],
    },
    {
        "id": "projects",
        "type": "cards",
        "title": "Projects",
        "subtitle": "Open-source and side projects",
        "content": [
            {
                "title": "queue-inspector",
                "description": "Terminal UI for inspecting message broker queues.",
                "tags": ["python", "cli"],
                "url": "https://github.com/example/queue-inspector",
            },
            {
                "title": "schema-diff",
                "description": "Detects breaking changes between two API schema versions.",
                "tags": ["openapi", "tooling"],
                "url": "https://github.com/example/schema-diff",
            },
        ],
    },
    {
        "id": "skills",
        "type": "skills",
        "title": "Skills",
        "content": [
            {"category": "Languages", "items": ["Python", "Go", "SQL"]},
            {"category": "Platforms", "items": ["PostgreSQL", "Kafka", "Kubernetes"]},
        ],
    },
    {
        "id": "gallery",
        "type": "gallery",
        "title": "Gallery",
        "subtitle": "Talks and events",
        "content": [
            {"src": "/static/img/talk-2023.jpg", "caption": "Conference talk, 2023"},
            {"src": "/static/img/workshop.jpg", "caption": "Tooling workshop"},
        ],
    },
]
