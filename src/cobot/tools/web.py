"""create_web_page: generates a standalone HTML page with a secondary model."""

from __future__ import annotations

import logging
import os
import re
from collections.abc import Callable
from typing import Any

from cobot.tools.base import BaseTool
from cobot.types.tools import ToolContext, ToolDef, ToolParam, ToolResult

logger = logging.getLogger(__name__)

_TEMPERATURE = 0.7
_MAX_TOKENS = 4000

_SYSTEM_PROMPT = """You are an expert web developer who creates complete, standalone HTML files.

Generate a complete HTML file with the following requirements:
1. Include all CSS within <style> tags in the <head>
2. Include all JavaScript within <script> tags before the closing </body>
3. Make it responsive and mobile-friendly
4. Use semantic HTML5 elements
5. Include appropriate meta tags
6. Add hover effects and smooth transitions
7. Make it visually appealing with the specified style and color scheme
8. Ensure all interactive elements are functional
9. Use modern CSS features like flexbox/grid
10. Add a subtle animation or micro-interaction

Style preference: {style}
Color scheme: {color_scheme}

Return ONLY the complete HTML code (no explanations, no markdown code blocks)."""

_DEFINITION = ToolDef(
    name="create_web_page",
    description=(
        "Generate a complete HTML file with embedded CSS and JavaScript based on a text "
        "prompt. Creates a single standalone HTML file that includes all necessary styles and "
        'scripts. Example: {"prompt": "Create a portfolio website with a dark theme and smooth '
        'animations", "file_path": "portfolio.html"}'
    ),
    parameters=(
        ToolParam(
            name="prompt",
            type="string",
            description=(
                "Detailed description of the web page you want to create (e.g., \"Create a "
                'landing page for a coffee shop with menu and contact form")'
            ),
        ),
        ToolParam(
            name="file_path",
            type="string",
            description='Path where the HTML file should be saved (e.g., "index.html", "pages/about.html")',
        ),
        ToolParam(
            name="style",
            type="string",
            description="Visual style preference for the web page",
            required=False,
            enum=("modern", "minimal", "corporate", "creative", "classic"),
            default="modern",
        ),
        ToolParam(
            name="color_scheme",
            type="string",
            description="Color scheme preference",
            required=False,
            enum=("light", "dark", "colorful", "monochrome"),
            default="light",
        ),
        ToolParam(
            name="overwrite",
            type="boolean",
            description="Overwrite existing file",
            required=False,
            default=False,
        ),
    ),
)

_FENCE_OPEN = re.compile(r"```html\n?")
_FENCE_CLOSE = re.compile(r"```\n?$")


def clean_html(text: str) -> str:
    """Strip markdown code fences the model sometimes adds."""
    if "```html" in text:
        return _FENCE_CLOSE.sub("", _FENCE_OPEN.sub("", text)).strip()
    return text


def _default_client_factory(api_key: str, base_url: str | None) -> Any:
    from openai import AsyncOpenAI

    kwargs: dict[str, Any] = {"api_key": api_key}
    if base_url:
        kwargs["base_url"] = base_url
    return AsyncOpenAI(**kwargs)


class CreateWebPageTool(BaseTool):
    """Asks a frontend model for HTML and writes it to disk.

    Configured by ``FRONTEND_OPENAI_API_KEY``, ``FRONTEND_OPENAI_BASE_URL``
    and ``FRONTEND_MODEL``.
    """

    def __init__(self, client_factory: Callable[[str, str | None], Any] | None = None) -> None:
        self._client_factory = client_factory or _default_client_factory

    @property
    def definition(self) -> ToolDef:
        return _DEFINITION

    async def run(
        self,
        ctx: ToolContext,
        prompt: str,
        file_path: str,
        style: str = "modern",
        color_scheme: str = "light",
        overwrite: bool = False,
    ) -> ToolResult:
        path = ctx.resolve(file_path)
        if path.exists() and not overwrite:
            return self._error("Error: File already exists, use overwrite=true")

        api_key = os.environ.get("FRONTEND_OPENAI_API_KEY")
        base_url = os.environ.get("FRONTEND_OPENAI_BASE_URL")
        model = os.environ.get("FRONTEND_MODEL")
        if not api_key:
            return self._error("Error: FRONTEND_OPENAI_API_KEY environment variable not set")
        if not model:
            return self._error("Error: FRONTEND_MODEL environment variable not set")

        client = self._client_factory(api_key, base_url)
        try:
            completion = await client.chat.completions.create(
                model=model,
                messages=[
                    {
                        "role": "system",
                        "content": _SYSTEM_PROMPT.format(style=style, color_scheme=color_scheme),
                    },
                    {"role": "user", "content": prompt},
                ],
                temperature=_TEMPERATURE,
                max_tokens=_MAX_TOKENS,
            )
        except Exception as exc:  # noqa: BLE001
            logger.debug("frontend generation failed: %s", exc)
            return self._error(f"Error: Failed to create web page - {exc}")

        choices = getattr(completion, "choices", None) or []
        content = choices[0].message.content if choices else None
        if not content:
            return self._error("Error: Failed to generate web page content")

        html = clean_html(content)
        if "<!DOCTYPE html" not in html and "<html" not in html:
            return self._error("Error: Generated content is not valid HTML")

        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(html, encoding="utf-8")
        except OSError as exc:
            logger.debug("write failed for %s: %s", path, exc)
            return self._error("Error: Failed to create file")

        return self._ok(
            {"path": file_path, "size": len(html)},
            f"Created web page: {file_path}",
        )
