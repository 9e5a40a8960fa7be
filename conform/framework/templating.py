"""Binds Metadata into text templates.

Templates use `str.format` field syntax over the metadata namespace, e.g.
`{repository.sha}`, `{version.major}` or `{variables[image]}`. Literal braces
are written doubled.
"""

from __future__ import annotations

from conform.framework.errors import TemplateRenderError
from conform.framework.metadata import Metadata


def render_template(template: str, metadata: Metadata, *, label: str) -> str:
    try:
        return template.format_map(metadata.template_values())
    except (AttributeError, IndexError, KeyError, TypeError, ValueError) as exc:
        raise TemplateRenderError(label, exc) from exc
