from datetime import datetime
from enum import Enum
from typing import Any, Self

import markdown2  # pyright: ignore[reportMissingTypeStubs]

from chef.errors import InvalidRecipeError, InvalidSourceError


EDITABLE_FIELDS = ("title", "source_url", "ingredients", "instructions")


class SourceKind(Enum):
    text = "text"
    image = "image"
    video = "video"


class SourceInput:
    """What the user handed over. Text, image bytes, or a video URL."""

    def __init__(self, kind: SourceKind | str, payload: str | bytes) -> None:
        try:
            self.kind = SourceKind(kind)
        except ValueError as e:
            raise InvalidSourceError(f"Unknown source kind: {kind!r}") from e
        expected = bytes if self.kind is SourceKind.image else str
        if not isinstance(payload, expected):
            raise InvalidSourceError(
                f"A {self.kind.value} source takes {expected.__name__}, "
                f"not {type(payload).__name__}."
            )
        self.payload = payload

    @classmethod
    def text(cls, text: str) -> Self:
        return cls(SourceKind.text, text)

    @classmethod
    def image(cls, data: bytes) -> Self:
        return cls(SourceKind.image, data)

    @classmethod
    def video(cls, url: str) -> Self:
        return cls(SourceKind.video, url)

    def __repr__(self) -> str:
        # Never echo image bytes.
        shown = self.payload if isinstance(self.payload, str) else "<bytes>"
        return f"<SourceInput(kind={self.kind.value}, payload={shown!r})>"


class IngredientCategory:
    def __init__(self, name: str, items: list[str]) -> None:
        self.name = name
        self.items = items

    def __repr__(self) -> str:
        return f"<IngredientCategory(name={self.name}, items={len(self.items)})>"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, IngredientCategory):
            return NotImplemented
        return self.name == other.name and self.items == other.items

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "items": list(self.items)}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Self:
        try:
            return cls(name=str(data["name"]), items=[str(i) for i in data["items"]])
        except (KeyError, TypeError) as e:
            raise InvalidRecipeError(f"Bad ingredient category: {data!r}") from e


def _timestamp(value: datetime | str | None) -> datetime | None:
    if value is None or isinstance(value, datetime):
        return value
    return datetime.fromisoformat(value)


class Recipe:
    def __init__(
        self,
        *,
        title: str,
        ingredients: list[IngredientCategory],
        instructions: list[str],
        source_url: str | None = None,
        id: str | None = None,
        created_at: datetime | None = None,
        updated_at: datetime | None = None,
    ) -> None:
        self.id = id
        self.title = title
        self.source_url = source_url
        self.ingredients = ingredients
        self.instructions = instructions
        self.created_at = created_at
        self.updated_at = updated_at

    def __repr__(self) -> str:
        return f"<Recipe(id={self.id}, title={self.title})>"

    def validate(self) -> None:
        """Raise `InvalidRecipeError` unless the recipe may be persisted."""
        if not isinstance(self.title, str) or not self.title.strip():
            raise InvalidRecipeError("A recipe needs a title.")
        if not self.ingredients:
            raise InvalidRecipeError("A recipe needs at least one ingredient category.")
        for category in self.ingredients:
            if not category.name.strip():
                raise InvalidRecipeError("Ingredient categories need a name.")
            if not category.items or not all(i.strip() for i in category.items):
                raise InvalidRecipeError(
                    f"Ingredient category {category.name!r} is empty."
                )
        if not self.instructions or not all(s.strip() for s in self.instructions):
            raise InvalidRecipeError("A recipe needs at least one instruction step.")

    def replace(self, **fields: Any) -> "Recipe":
        unknown = set(fields) - set(EDITABLE_FIELDS)
        if unknown:
            raise InvalidRecipeError(f"Cannot edit fields: {sorted(unknown)}")
        values = {
            "title": self.title,
            "source_url": self.source_url,
            "ingredients": self.ingredients,
            "instructions": self.instructions,
        }
        values.update(fields)
        return Recipe(
            id=self.id,
            created_at=self.created_at,
            updated_at=self.updated_at,
            **values,
        )

    @property
    def ingredient_items(self) -> list[str]:
        return [item for category in self.ingredients for item in category.items]

    @property
    def markdown(self) -> str:
        lines = [f"### {self.title}", ""]
        if self.source_url:
            lines += [f"Source: <{self.source_url}>", ""]
        lines += ["#### Ingredients", ""]
        for category in self.ingredients:
            lines += [f"**{category.name}**", ""]
            lines += [f"- {item}" for item in category.items]
            lines.append("")
        lines += ["#### Instructions", ""]
        lines += [f"{n}. {step}" for n, step in enumerate(self.instructions, 1)]
        return "\n".join(lines)

    @property
    def html(self) -> str:
        return markdown2.markdown(  # pyright: ignore[reportUnknownVariableType, reportUnknownMemberType]
            self.markdown
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "source_url": self.source_url,
            "ingredients": [c.to_dict() for c in self.ingredients],
            "instructions": list(self.instructions),
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Self:
        try:
            return cls(
                id=data.get("id"),
                title=data["title"],
                source_url=data.get("source_url"),
                ingredients=[
                    IngredientCategory.from_dict(c) for c in data["ingredients"]
                ],
                instructions=[str(s) for s in data["instructions"]],
                created_at=_timestamp(data.get("created_at")),
                updated_at=_timestamp(data.get("updated_at")),
            )
        except (KeyError, TypeError) as e:
            raise InvalidRecipeError(f"Bad recipe data: {e}") from e


def parse_fields(data: dict[str, Any]) -> dict[str, Any]:
    """User-edited fields from a JSON body, converted to model types."""
    fields: dict[str, Any] = {}
    for name in EDITABLE_FIELDS:
        if name not in data:
            continue
        value = data[name]
        if name == "ingredients":
            if not isinstance(value, list):
                raise InvalidRecipeError("ingredients must be a list of categories.")
            value = [IngredientCategory.from_dict(c) for c in value]
        elif name == "instructions":
            if not isinstance(value, list):
                raise InvalidRecipeError("instructions must be a list of steps.")
            value = [str(s) for s in value]
        fields[name] = value
    unknown = set(data) - set(EDITABLE_FIELDS)
    if unknown:
        raise InvalidRecipeError(f"Cannot edit fields: {sorted(unknown)}")
    return fields


class StagedRecipe:
    """A discovered recipe waiting for the user to confirm it."""

    def __init__(
        self,
        *,
        recipe: Recipe,
        query: str,
        snippet: str | None = None,
    ) -> None:
        self.recipe = recipe
        self.query = query
        self.snippet = snippet

    def __repr__(self) -> str:
        return f"<StagedRecipe(query={self.query}, title={self.recipe.title})>"

    @property
    def url(self) -> str | None:
        return self.recipe.source_url

    def to_dict(self) -> dict[str, Any]:
        return {
            "query": self.query,
            "snippet": self.snippet,
            "recipe": self.recipe.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Self:
        if not isinstance(data.get("recipe"), dict):
            raise InvalidRecipeError("A staged recipe needs a recipe.")
        recipe = Recipe.from_dict(data["recipe"])
        # Staged recipes are unpersisted, whatever the client sent back.
        recipe.id = recipe.created_at = recipe.updated_at = None
        return cls(
            recipe=recipe,
            query=str(data.get("query", "")),
            snippet=data.get("snippet"),
        )
