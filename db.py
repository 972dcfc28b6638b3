from datetime import datetime, timezone
import json
import logging
import sqlite3
from typing import Any
from uuid import uuid4

from databases import Database
from databases.interfaces import Record

from chef.errors import DuplicateTitleError, NotFoundError
from chef.models import IngredientCategory, Recipe
import config


CONFIG = config.Config()


# Title is compared with the column's default (binary) collation: case-sensitive.
CREATE_RECIPES_TABLE = """
CREATE TABLE IF NOT EXISTS Recipes (
    id VARCHAR(64) PRIMARY KEY,
    title VARCHAR(256) NOT NULL UNIQUE,
    source_url VARCHAR(2048),
    ingredients TEXT NOT NULL,
    ingredients_text TEXT NOT NULL,
    instructions TEXT NOT NULL,
    created_at VARCHAR(32) NOT NULL,
    updated_at VARCHAR(32) NOT NULL
)
"""


CREATE_RECIPE = """
INSERT INTO Recipes(
    id, title, source_url, ingredients, ingredients_text, instructions,
    created_at, updated_at
)
VALUES (
    :id, :title, :source_url, :ingredients, :ingredients_text, :instructions,
    :created_at, :updated_at
)
"""


UPDATE_RECIPE = """
UPDATE Recipes SET
    title = :title,
    source_url = :source_url,
    ingredients = :ingredients,
    ingredients_text = :ingredients_text,
    instructions = :instructions,
    updated_at = :updated_at
WHERE id = :id
"""


GET_RECIPE = "SELECT * FROM Recipes WHERE id = :id"


GET_RECIPE_BY_TITLE = "SELECT * FROM Recipes WHERE title = :title"


SEARCH_RECIPES_BY_INGREDIENT = """
SELECT * FROM Recipes WHERE ingredients_text LIKE :pattern ESCAPE '\\' ORDER BY title
"""


LIST_RECIPES = "SELECT * FROM Recipes ORDER BY title"


db = Database(CONFIG.db_url)


logger = logging.getLogger(__name__)


def now() -> datetime:
    return datetime.now(timezone.utc)


def like_pattern(term: str) -> str:
    escaped = term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped.lower()}%"


def recipe_values(recipe: Recipe) -> dict[str, Any]:
    return {
        "id": recipe.id,
        "title": recipe.title,
        "source_url": recipe.source_url,
        "ingredients": json.dumps([c.to_dict() for c in recipe.ingredients]),
        "ingredients_text": "\n".join(recipe.ingredient_items).lower(),
        "instructions": json.dumps(recipe.instructions),
    }


def recipe_from_record(record: Record) -> Recipe:
    return Recipe(
        id=record["id"],
        title=record["title"],
        source_url=record["source_url"],
        ingredients=[
            IngredientCategory.from_dict(c) for c in json.loads(record["ingredients"])
        ],
        instructions=json.loads(record["instructions"]),
        created_at=datetime.fromisoformat(record["created_at"]),
        updated_at=datetime.fromisoformat(record["updated_at"]),
    )


class RecipesRepository:
    """Recipes repository.

    Title uniqueness is left to the table's UNIQUE constraint, so two concurrent
    creates with the same title cannot both succeed.
    """

    def __init__(self, db: Database) -> None:
        self.db = db

    async def create_tables(self) -> None:
        await self.db.execute(  # pyright: ignore[reportUnknownMemberType]
            query=CREATE_RECIPES_TABLE
        )

    async def create(self, recipe: Recipe) -> Recipe:
        recipe.validate()
        stamp = now()
        created = recipe.replace(title=recipe.title.strip())
        created.id = uuid4().hex
        created.created_at = created.updated_at = stamp
        values = recipe_values(created)
        values["created_at"] = values["updated_at"] = stamp.isoformat()
        try:
            await self.db.execute(  # pyright: ignore[reportUnknownMemberType]
                CREATE_RECIPE, values=values
            )
        except sqlite3.IntegrityError as e:
            raise DuplicateTitleError(created.title) from e
        logger.info("Created recipe %s %r", created.id, created.title)
        return created

    async def update(self, id: str, fields: dict[str, Any]) -> Recipe:
        existing = await self.get(id)
        updated = existing.replace(**fields)
        updated.validate()
        updated.title = updated.title.strip()
        updated.updated_at = now()
        values = recipe_values(updated)
        values["updated_at"] = updated.updated_at.isoformat()
        try:
            await self.db.execute(  # pyright: ignore[reportUnknownMemberType]
                UPDATE_RECIPE, values=values
            )
        except sqlite3.IntegrityError as e:
            raise DuplicateTitleError(updated.title) from e
        logger.info("Updated recipe %s", id)
        return updated

    async def get(self, id: str) -> Recipe:
        result = await self.db.fetch_one(  # pyright: ignore[reportUnknownMemberType]
            GET_RECIPE, values={"id": id}
        )
        if result is None:
            raise NotFoundError(id)
        return recipe_from_record(result)

    async def find_by_title(self, title: str) -> Recipe | None:
        result = await self.db.fetch_one(  # pyright: ignore[reportUnknownMemberType]
            GET_RECIPE_BY_TITLE, values={"title": title}
        )
        return None if result is None else recipe_from_record(result)

    async def search_by_ingredient(self, term: str) -> list[Recipe]:
        result = await self.db.fetch_all(  # pyright: ignore[reportUnknownMemberType]
            SEARCH_RECIPES_BY_INGREDIENT, values={"pattern": like_pattern(term)}
        )
        return [recipe_from_record(r) for r in result]

    async def list_all(self) -> list[Recipe]:
        result = await self.db.fetch_all(  # pyright: ignore[reportUnknownMemberType]
            LIST_RECIPES
        )
        return [recipe_from_record(r) for r in result]
