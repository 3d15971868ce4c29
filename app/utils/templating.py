"""Jinja2 environment shared by HTML pages and email bodies"""
from pathlib import Path

from jinja2 import Environment, FileSystemLoader, select_autoescape

TEMPLATE_DIR = Path(__file__).resolve().parent.parent / "templates"

templates = Environment(
    loader=FileSystemLoader(str(TEMPLATE_DIR)),
    autoescape=select_autoescape(["html"]),
)


def render_template(template_name: str, /, **context) -> str:
    return templates.get_template(template_name).render(**context)
