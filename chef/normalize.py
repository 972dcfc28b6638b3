"""Turn extracted text into a structured `Recipe`.

The model is asked for one exact layout (see `chef.prompts`). Parsing the reply
is deterministic: the same reply always gives the same recipe or the same error.
"""

import logging
import re

from chef.aopenai import ChatLLM, Completer
from chef.errors import EmptyInputError, MalformedResponseError
from chef.models import IngredientCategory, Recipe
from chef.prompts import NormalizeRecipePrompt


DEFAULT_CATEGORY = "Ingredients"

HEADER_RE = re.compile(
    r"^(title|source|ingredients|instructions)\s*(?::\s*(.*))?$", re.IGNORECASE
)
BULLET_RE = re.compile(r"^[-*•]\s+")
STEP_RE = re.compile(r"^(?:step\s*)?\d+\s*[.):]\s*(.*)$", re.IGNORECASE)
URL_RE = re.compile(r"^https?://\S+$")


logger = logging.getLogger(__name__)


def _clean(text: str) -> str:
    text = text.strip().lstrip("#").strip()
    return text.replace("**", "").replace("__", "").strip()


def _source(value: str) -> str | None:
    value = value.strip().strip("<>").strip()
    return value if URL_RE.match(value) else None


def _indent(raw: str) -> int:
    raw = raw.expandtabs(4)
    return len(raw) - len(raw.lstrip())


def _ingredient_categories(lines: list[tuple[int, str]]) -> list[IngredientCategory]:
    """Group `(indent, text)` ingredient lines into categories.

    A line is a category when the line after it is indented deeper, or when it
    sits at category depth and ends with a colon. Anything deeper than the
    current category is one of its items, colon or not.
    """
    categories: list[IngredientCategory] = []
    depth: int | None = None
    flat = False
    for n, (indent, text) in enumerate(lines):
        if depth is not None and indent > depth:
            categories[-1].items.append(text)
            continue
        nested = n + 1 < len(lines) and lines[n + 1][0] > indent
        if nested or text.endswith(":"):
            name = text.removesuffix(":").strip()
            categories.append(IngredientCategory(name or DEFAULT_CATEGORY, []))
            depth = indent
            # A colon header with nothing nested under it takes the flat items after it.
            flat = not nested
            continue
        if not flat:
            categories.append(IngredientCategory(DEFAULT_CATEGORY, []))
            depth = indent
            flat = True
        categories[-1].items.append(text)
    return [c for c in categories if c.items]


def parse_recipe(reply: str, source_url: str | None = None) -> Recipe:
    title = ""
    model_source: str | None = None
    ingredient_lines: list[tuple[int, str]] = []
    steps: list[str] = []
    numbered = False
    section: str | None = None

    for raw in reply.splitlines():
        line = raw.strip()
        if not line or line.startswith("```"):
            continue

        bullet = BULLET_RE.match(line)
        step = STEP_RE.match(line)

        if not bullet and not step:
            header = HEADER_RE.match(_clean(line))
            if header:
                section = header.group(1).lower()
                rest = _clean(header.group(2) or "")
                if section == "title" and rest:
                    title = rest
                elif section == "source" and rest:
                    model_source = _source(rest)
                continue

        if section == "ingredients":
            text = _clean(BULLET_RE.sub("", line))
            if text:
                ingredient_lines.append((_indent(raw), text))

        elif section == "instructions":
            if step:
                text = _clean(step.group(1))
                if text:
                    steps.append(text)
                    numbered = True
                continue
            text = _clean(BULLET_RE.sub("", line))
            if not text:
                continue
            if numbered:
                steps[-1] = f"{steps[-1]} {text}"
            else:
                steps.append(text)

    categories = _ingredient_categories(ingredient_lines)

    if not title:
        raise MalformedResponseError("The reply has no title.", reply=reply)
    if not categories:
        raise MalformedResponseError("The reply has no ingredients.", reply=reply)
    if not steps:
        raise MalformedResponseError("The reply has no instructions.", reply=reply)

    return Recipe(
        title=title,
        source_url=source_url if source_url else model_source,
        ingredients=categories,
        instructions=steps,
    )


class RecipeNormalizer:
    def __init__(self, llm: Completer | None = None) -> None:
        self.llm = ChatLLM() if llm is None else llm

    async def normalize(self, text: str, source_url: str | None = None) -> Recipe:
        if not text.strip():
            raise EmptyInputError()
        prompt = NormalizeRecipePrompt(text, source_url)
        reply = await self.llm.complete(str(prompt))
        try:
            recipe = parse_recipe(reply, source_url)
        except MalformedResponseError as e:
            logger.warning("Could not parse model reply: %s", e)
            raise
        logger.info("Normalized %r", recipe.title)
        return recipe
