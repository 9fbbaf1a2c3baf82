"""
portfolio_runtime.views.pages

Concrete portfolio views.

Responsibilities:
- Hero, navigation, section and footer markup, each a pure function of its data.
- The navigation table shared by the navigation view and the route plan.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from html import escape
from typing import Any

from portfolio_runtime.views.base import BaseView


@dataclass(frozen=True, slots=True)
class NavItem:
    path: str
    label: str
    section_id: str | None = None


NAVIGATION_ITEMS: tuple[NavItem, ...] = (
    NavItem("/", "Home"),
    NavItem("/about", "About", "about"),
    NavItem("/experience", "Experience", "experience"),
    NavItem("/projects", "Projects", "projects"),
    NavItem("/skills", "Skills", "skills"),
    NavItem("/gallery", "Gallery", "gallery"),
)


class HeroView(BaseView):
    name = "hero"

    def render(self, data: Mapping[str, Any]) -> str:
        links = "".join(
            f'<a class="hero__link" href="{escape(link["url"])}">{escape(link["label"])}</a>'
            for link in data.get("links", ())
        )
        return (
            '<div class="hero">'
            f'<h1 class="hero__name">{escape(data["name"])}</h1>'
            f'<p class="hero__title">{escape(data.get("title", ""))}</p>'
            f'<p class="hero__tagline">{escape(data.get("tagline", ""))}</p>'
            f'<nav class="hero__links">{links}</nav>'
            "</div>"
        )


class NavigationView(BaseView):
    name = "navigation"

    def render(self, data: Mapping[str, Any]) -> str:
        current = data.get("current_path", "/")
        items = []
        for item in data.get("items", ()):
            active = item["path"] == current
            attrs = ' class="nav__link nav__link--active" aria-current="page"' if active else ' class="nav__link"'
            items.append(f'<li><a href="{escape(item["path"])}"{attrs}>{escape(item["label"])}</a></li>')
        return f'<nav class="nav" aria-label="Main navigation"><ul class="nav__list">{"".join(items)}</ul></nav>'


class SectionView(BaseView):
    name = "section"

    def render(self, data: Mapping[str, Any]) -> str:
        sections = data.get("sections", ())
        if not sections:
            return '<p class="empty-state">No content available.</p>'
        active = data.get("active")
        return "".join(_section(s, active=s["id"] == active) for s in sections)


class FooterView(BaseView):
    name = "footer"

    def render(self, data: Mapping[str, Any]) -> str:
        year = data.get("year", "")
        email = data.get("email")
        contact = f'<a href="mailto:{escape(email)}">{escape(email)}</a>' if email else ""
        return (
            '<div class="footer">'
            f'<p class="footer__copyright">&copy; {escape(str(year))} {escape(data["name"])}</p>'
            f'<p class="footer__contact">{contact}</p>'
            "</div>"
        )


def _section(section: Mapping[str, Any], *, active: bool) -> str:
    body = _BODIES.get(section["type"], _unknown)(section.get("content") or ())
    subtitle = section.get("subtitle")
    classes = "section section--active" if active else "section"
    return (
        f'<section id="{escape(section["id"])}" class="{classes}" data-type="{escape(section["type"])}">'
        f'<h2 class="section__title">{escape(section["title"])}</h2>'
        + (f'<p class="section__subtitle">{escape(subtitle)}</p>' if subtitle else "")
        + body
        + "</section>"
    )


def _timeline(items: Sequence[Mapping[str, Any]]) -> str:
    entries = "".join(
        '<li class="timeline__item">'
        f'<span class="timeline__period">{escape(i.get("period", ""))}</span>'
        f'<h3>{escape(i["title"])}</h3>'
        f'<p class="timeline__org">{escape(i.get("organization", ""))}</p>'
        f'<p>{escape(i.get("description", ""))}</p>'
        "</li>"
        for i in items
    )
    return f'<ol class="timeline">{entries}</ol>'


def _cards(items: Sequence[Mapping[str, Any]]) -> str:
    cards = []
    for i in items:
        tags = "".join(f'<span class="tag">{escape(t)}</span>' for t in i.get("tags", ()))
        title = escape(i["title"])
        if i.get("url"):
            title = f'<a href="{escape(i["url"])}">{title}</a>'
        cards.append(
            f'<article class="card"><h3>{title}</h3><p>{escape(i.get("description", ""))}</p>'
            f'<div class="card__tags">{tags}</div></article>'
        )
    return f'<div class="cards">{"".join(cards)}</div>'


def _skills(items: Sequence[Mapping[str, Any]]) -> str:
    groups = "".join(
        f'<div class="skills__group"><h3>{escape(g["category"])}</h3><ul>'
        + "".join(f"<li>{escape(s)}</li>" for s in g.get("items", ()))
        + "</ul></div>"
        for g in items
    )
    return f'<div class="skills">{groups}</div>'


def _gallery(items: Sequence[Mapping[str, Any]]) -> str:
    figures = "".join(
        f'<figure><img src="{escape(i["src"])}" alt="{escape(i.get("caption", ""))}" loading="lazy">'
        f'<figcaption>{escape(i.get("caption", ""))}</figcaption></figure>'
        for i in items
    )
    return f'<div class="gallery">{figures}</div>'


def _unknown(items: Any) -> str:
    return '<p class="empty-state">Unsupported content type.</p>'


_BODIES = {
    "timeline": _timeline,
    "cards": _cards,
    "skills": _skills,
    "gallery": _gallery,
}


def default_views() -> tuple[BaseView, ...]:
    return (HeroView(), NavigationView(), SectionView(), FooterView())
